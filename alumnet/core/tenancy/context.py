# (c) Copyright Datacraft, 2026
"""Tenant context management using contextvars for async safety."""
import contextvars
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterator
from uuid import UUID

from .exceptions import (
	InvalidTenantState,
	MissingTenantContext,
	TenantNotFound,
	TenantSuspended,
)

logger = logging.getLogger(__name__)

# Each asyncio task and each thread sees its own value
_tenant_context: contextvars.ContextVar["TenantContext | None"] = contextvars.ContextVar(
	"tenant_context", default=None
)
_opt_out_reason: contextvars.ContextVar[str | None] = contextvars.ContextVar(
	"tenancy_opt_out", default=None
)


@dataclass(frozen=True, slots=True)
class TenantContext:
	"""
	Immutable tenant context for the current request or job.

	Captured once when the request is admitted; later changes to the
	tenant record (e.g. suspension) do not affect a context already
	handed out, so in-flight work can drain.
	"""
	tenant_id: UUID
	tenant_slug: str
	schema_name: str
	domain: str | None = None
	settings: dict[str, Any] | None = None

	def get_setting(self, key: str, default: Any = None) -> Any:
		if self.settings is None:
			return default
		return self.settings.get(key, default)


def get_tenant_context() -> TenantContext | None:
	"""Get the current tenant context, or None if none is active."""
	return _tenant_context.get()


def set_tenant_context(context: TenantContext | None) -> contextvars.Token:
	"""
	Set the tenant context for the current async chain.

	Prefer `TenantContextManager`; a bare set must be paired with
	`reset_tenant_context(token)` in a finally block.
	"""
	return _tenant_context.set(context)


def reset_tenant_context(token: contextvars.Token) -> None:
	_tenant_context.reset(token)


def clear_tenant_context() -> None:
	"""Explicit teardown: drop whatever tenant is active in this context."""
	_tenant_context.set(None)


def require_tenant_context() -> TenantContext:
	"""Get the current tenant context, raising if none is set."""
	ctx = get_tenant_context()
	if ctx is None:
		reason = _opt_out_reason.get()
		if reason is not None:
			raise MissingTenantContext(
				f"Tenant-scoped operation attempted inside tenancy opt-out ({reason})"
			)
		raise MissingTenantContext()
	return ctx


class TenantContextManager:
	"""
	Context manager for scoped tenant assignment.

	The previous value is always restored on exit, whether the body
	returns or raises.

	Example:
		async with TenantContextManager(tenant_context):
			await process_alumni()
	"""

	def __init__(self, context: TenantContext):
		if context is None:
			raise MissingTenantContext("TenantContextManager requires a tenant context")
		self.context = context
		self.token: contextvars.Token | None = None

	def __enter__(self) -> TenantContext:
		self.token = set_tenant_context(self.context)
		return self.context

	def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
		if self.token is not None:
			_tenant_context.reset(self.token)
			self.token = None

	async def __aenter__(self) -> TenantContext:
		return self.__enter__()

	async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
		self.__exit__(exc_type, exc_val, exc_tb)


tenant_scope = TenantContextManager


@contextmanager
def tenancy_opt_out(reason: str) -> Iterator[None]:
	"""
	Run a block explicitly without a tenant.

	Only registry (public) tables may be touched inside; tenant-scoped
	access still fails. Every opt-out is logged with its reason.
	"""
	if not reason:
		raise ValueError("A tenancy opt-out requires a reason")
	logger.warning(f"Tenancy opt-out: {reason}")
	context_token = _tenant_context.set(None)
	reason_token = _opt_out_reason.set(reason)
	try:
		yield
	finally:
		_opt_out_reason.reset(reason_token)
		_tenant_context.reset(context_token)


def get_opt_out_reason() -> str | None:
	return _opt_out_reason.get()


def create_tenant_context(tenant, domain: str | None = None) -> TenantContext:
	"""
	Build a context for a registry tenant record.

	Only active tenants with a registered schema are admitted; this is
	the gate that stops new requests for suspended tenants.
	"""
	from alumnet.core.features.tenants.db.orm import TenantStatus

	status = TenantStatus(tenant.status)
	if status == TenantStatus.DELETED:
		raise TenantNotFound(f"Tenant {tenant.slug} has been deleted")
	if status == TenantStatus.SUSPENDED:
		raise TenantSuspended(f"Tenant {tenant.slug} is suspended")
	if status != TenantStatus.ACTIVE:
		raise InvalidTenantState(
			f"Tenant {tenant.slug} is {status.value} and cannot serve requests"
		)
	if tenant.is_trial_expired:
		raise TenantSuspended(f"Trial for tenant {tenant.slug} has expired")
	if not tenant.schema_name:
		raise InvalidTenantState(f"Tenant {tenant.slug} has no registered schema")

	return TenantContext(
		tenant_id=tenant.id,
		tenant_slug=tenant.slug,
		schema_name=tenant.schema_name,
		domain=domain,
		settings=dict(tenant.settings) if tenant.settings else None,
	)
