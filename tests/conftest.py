# (c) Copyright Datacraft, 2026
"""
Shared fixtures.

Every test gets its own SQLite registry database in tmp_path; tenant
schemas are database files attached from a sibling directory.
"""
from unittest.mock import MagicMock

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker

from alumnet.core.config import ProvisioningMode, Settings
from alumnet.core.db.base import Base
from alumnet.core.db.engine import build_engine
from alumnet.core.features.tenants.db import orm  # noqa: F401
from alumnet.core.features.tenants.db.orm import Tenant
from alumnet.core.features.tenants.schema import TenantCreate
from alumnet.core.tenancy.context import TenantContext, create_tenant_context
from alumnet.core.tenancy.lifecycle import build_lifecycle

ADMIN_TOKEN = "test-admin-token"


@pytest.fixture
def settings(tmp_path) -> Settings:
	return Settings(
		_env_file=None,
		db_url=f"sqlite:///{tmp_path / 'registry.db'}",
		sqlite_schema_dir=tmp_path / "schemas",
		provisioning_mode=ProvisioningMode.INLINE,
		deletion_grace_period_hours=0,
		tenant_base_domain="alumnet.test",
		admin_api_token=ADMIN_TOKEN,
	)


@pytest.fixture
async def engine(settings):
	engine = build_engine(settings)
	async with engine.begin() as conn:
		await conn.run_sync(Base.metadata.create_all)
	yield engine
	await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker:
	return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
def dispatch() -> MagicMock:
	return MagicMock()


@pytest.fixture
def lifecycle(engine, session_factory, settings, dispatch):
	return build_lifecycle(engine, session_factory, settings=settings, dispatch=dispatch)


@pytest.fixture
def provisioner(lifecycle):
	return lifecycle.provisioner


@pytest.fixture
def make_tenant(lifecycle):
	"""Factory fixture creating a fully provisioned, active tenant."""
	async def _make_tenant(slug: str = "acme", **kwargs) -> Tenant:
		data = TenantCreate(name=kwargs.pop("name", slug.title()), slug=slug, **kwargs)
		return await lifecycle.create_tenant(data)

	return _make_tenant


@pytest.fixture
def make_context():
	def _make_context(tenant: Tenant) -> TenantContext:
		return create_tenant_context(tenant)

	return _make_context


@pytest.fixture
async def make_registry_tenant(session_factory):
	"""Factory fixture inserting a bare registry row, without provisioning."""
	async def _make_registry_tenant(slug: str, **kwargs) -> Tenant:
		async with session_factory() as session:
			tenant = Tenant(name=slug.title(), slug=slug, **kwargs)
			session.add(tenant)
			await session.commit()
			return tenant

	return _make_registry_tenant
