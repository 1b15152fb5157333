# (c) Copyright Datacraft, 2026
"""
Query scoping for tenant-scoped models.

Tenant tables are declared on `TenantBase` under the placeholder schema
`TENANT_SCHEMA`. A `TenantScopedSession` binds its session to the engine
with a schema translation map pointing the placeholder at the active
tenant's schema. Session guards make every other path fail closed: a
session without a tenant that touches a tenant table raises
MissingTenantContext instead of querying anything.
"""
import logging
from typing import Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession
from sqlalchemy.orm import Mapper, ORMExecuteState, Session
from sqlalchemy.sql.util import find_tables

from alumnet.core.db.base import TENANT_SCHEMA, TenantBase
from .context import TenantContext, get_tenant_context, require_tenant_context
from .exceptions import CrossTenantAccess, MissingTenantContext

logger = logging.getLogger(__name__)

# session.info key holding the TenantContext a session is bound to
SESSION_TENANT_KEY = "tenant_context"


def is_tenant_mapper(mapper: Mapper) -> bool:
	return mapper.local_table.metadata is TenantBase.metadata


def is_tenant_table(table: Any) -> bool:
	return getattr(table, "metadata", None) is TenantBase.metadata


def touches_tenant_tables(statement: Any) -> bool:
	"""True when a Core or ORM statement reads or writes a tenant table."""
	tables = find_tables(
		statement,
		check_columns=True,
		include_aliases=True,
		include_joins=True,
		include_crud=True,
	)
	return any(is_tenant_table(t) for t in tables)


def get_session_tenant(session: Session) -> TenantContext | None:
	return session.info.get(SESSION_TENANT_KEY)


def _check_session_tenant(session: Session, what: str) -> None:
	bound = get_session_tenant(session)
	if bound is None:
		raise MissingTenantContext(
			f"{what} touches tenant-scoped tables on a session without a tenant"
		)
	current = get_tenant_context()
	if current is not None and current.tenant_id != bound.tenant_id:
		logger.error(
			f"Session bound to tenant {bound.tenant_slug} used while "
			f"tenant {current.tenant_slug} is active"
		)
		raise CrossTenantAccess(
			f"Session bound to tenant {bound.tenant_slug} used while "
			f"tenant {current.tenant_slug} is active"
		)


def _guard_execute(orm_execute_state: ORMExecuteState) -> None:
	if any(
		is_tenant_mapper(m) for m in orm_execute_state.all_mappers
	) or touches_tenant_tables(orm_execute_state.statement):
		_check_session_tenant(orm_execute_state.session, "Query")


def _guard_flush(session: Session, flush_context: Any, instances: Any) -> None:
	for obj in (*session.new, *session.dirty, *session.deleted):
		if isinstance(obj, TenantBase):
			_check_session_tenant(session, "Flush")
			return


def _set_local_search_path(session: Session, transaction: Any, connection: Any) -> None:
	"""Scope raw SQL on PostgreSQL to the tenant for this transaction only."""
	bound = get_session_tenant(session)
	if bound is None or connection.dialect.name != "postgresql":
		return
	quoted = connection.dialect.identifier_preparer.quote_identifier(bound.schema_name)
	connection.exec_driver_sql(f"SET LOCAL search_path TO {quoted}, public")


def install_session_guards() -> None:
	"""Install the guards on every Session. Safe to call repeatedly."""
	for name, fn in (
		("do_orm_execute", _guard_execute),
		("before_flush", _guard_flush),
		("after_begin", _set_local_search_path),
	):
		if not event.contains(Session, name, fn):
			event.listen(Session, name, fn)


def install_search_path_reset(engine: AsyncEngine) -> None:
	"""
	Reset session state on every pool checkout.

	Pooled PostgreSQL connections must not remember a previous tenant's
	search_path.
	"""
	if engine.dialect.name != "postgresql":
		return

	@event.listens_for(engine.sync_engine, "checkout")
	def _reset_search_path(dbapi_connection, connection_record, connection_proxy):
		cursor = dbapi_connection.cursor()
		try:
			cursor.execute("RESET search_path")
		finally:
			cursor.close()


def scoped_engine(engine: AsyncEngine, context: TenantContext) -> AsyncEngine:
	"""Engine view that routes the tenant placeholder to the tenant's schema."""
	return engine.execution_options(
		schema_translate_map={TENANT_SCHEMA: context.schema_name}
	)


class TenantScopedSession:
	"""
	Async context manager yielding a session scoped to one tenant.

	Uses the explicit context when given, otherwise the active one;
	with neither it raises MissingTenantContext.

	Example:
		async with TenantScopedSession(engine) as session:
			alumni = (await session.scalars(select(Alumnus))).all()
	"""

	def __init__(self, engine: AsyncEngine, context: TenantContext | None = None):
		self.engine = engine
		self.context = context
		self.session: AsyncSession | None = None

	async def __aenter__(self) -> AsyncSession:
		context = self.context or require_tenant_context()
		self.session = AsyncSession(
			bind=scoped_engine(self.engine, context),
			expire_on_commit=False,
			info={SESSION_TENANT_KEY: context},
		)
		return self.session

	async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
		if self.session is not None:
			await self.session.close()
			self.session = None


install_session_guards()
