# (c) Copyright Datacraft, 2026
"""Request dependencies shared by the routers."""
import secrets
from typing import Annotated

from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from alumnet.core.config import Settings
from alumnet.core.tenancy.context import TenantContext
from alumnet.core.tenancy.lifecycle import TenantLifecycleManager
from alumnet.core.tenancy.middleware import require_tenant_from_request
from alumnet.core.tenancy.scoping import TenantScopedSession


def get_app_settings(request: Request) -> Settings:
	return request.app.state.settings


def get_lifecycle(request: Request) -> TenantLifecycleManager:
	return request.app.state.lifecycle


async def get_registry_session(request: Request):
	"""Session on the shared registry tables only."""
	async with request.app.state.session_factory() as session:
		yield session


async def get_tenant_session(request: Request):
	"""Session routed to the schema of the request's tenant."""
	context = require_tenant_from_request(request)
	async with TenantScopedSession(request.app.state.engine, context) as session:
		yield session


def require_admin(
	settings: Annotated[Settings, Depends(get_app_settings)],
	x_admin_token: Annotated[str | None, Header()] = None,
) -> None:
	if not settings.admin_api_token:
		raise HTTPException(status_code=403, detail="Admin API is disabled")
	if x_admin_token is None or not secrets.compare_digest(
		x_admin_token, settings.admin_api_token
	):
		raise HTTPException(status_code=401, detail="Invalid admin token")


ActiveTenant = Annotated[TenantContext, Depends(require_tenant_from_request)]
TenantSession = Annotated[AsyncSession, Depends(get_tenant_session)]
RegistrySession = Annotated[AsyncSession, Depends(get_registry_session)]
Lifecycle = Annotated[TenantLifecycleManager, Depends(get_lifecycle)]
