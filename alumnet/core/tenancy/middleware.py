# (c) Copyright Datacraft, 2026
"""
Tenant middleware for FastAPI.

Resolves the tenant from the request and sets the tenant context for the
request lifecycle. A request that resolves to no tenant is rejected;
there is no fallback tenant.
"""
import logging
from typing import Callable, Awaitable
from uuid import UUID

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import async_sessionmaker
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from .context import (
	TenantContext,
	TenantContextManager,
	create_tenant_context,
	tenancy_opt_out,
)
from .exceptions import InvalidTenantState, MissingTenantContext, TenancyError, TenantNotFound
from .registry import SchemaRegistry, normalize_hostname

logger = logging.getLogger(__name__)

DEFAULT_EXCLUDED_PATHS = ["/health", "/docs", "/openapi.json", "/admin"]


class TenantResolutionStrategy:
	"""Base class for tenant resolution strategies."""

	async def resolve(
		self, request: Request, registry: SchemaRegistry
	) -> TenantContext | None:
		"""
		Resolve tenant from request. Returns None if no tenant found.

		Raises TenantSuspended or InvalidTenantState for a tenant that
		exists but may not serve requests.
		"""
		raise NotImplementedError


class HostHeaderStrategy(TenantResolutionStrategy):
	"""Resolve tenant from Host header (custom domain or subdomain)."""

	def __init__(self, base_domain: str = "localhost"):
		self.base_domain = normalize_hostname(base_domain)

	async def resolve(
		self, request: Request, registry: SchemaRegistry
	) -> TenantContext | None:
		host = normalize_hostname(request.headers.get("host", ""))
		if not host:
			return None

		# Registered domains first: acme.example.com, alumni.acme.edu
		try:
			tenant_id = await registry.resolve_by_domain(host)
			tenant = await registry.get_tenant(tenant_id)
			return create_tenant_context(tenant, domain=host)
		except TenantNotFound:
			pass

		# Then <slug>.base_domain
		suffix = f".{self.base_domain}"
		if not host.endswith(suffix):
			return None
		slug = host[: -len(suffix)]
		if not slug or "." in slug:
			return None
		try:
			tenant = await registry.get_tenant_by_slug(slug)
		except TenantNotFound:
			return None
		return create_tenant_context(tenant, domain=host)


class HeaderStrategy(TenantResolutionStrategy):
	"""Resolve tenant from X-Tenant-ID or X-Tenant-Slug header."""

	def __init__(
		self,
		id_header: str = "X-Tenant-ID",
		slug_header: str = "X-Tenant-Slug",
	):
		self.id_header = id_header
		self.slug_header = slug_header

	async def resolve(
		self, request: Request, registry: SchemaRegistry
	) -> TenantContext | None:
		# Try tenant ID first
		tenant_id = request.headers.get(self.id_header)
		if tenant_id:
			try:
				uuid = UUID(tenant_id)
			except ValueError:
				logger.warning(f"Invalid tenant ID in header: {tenant_id}")
			else:
				try:
					tenant = await registry.get_tenant(uuid)
				except TenantNotFound:
					return None
				return create_tenant_context(tenant)

		# Try tenant slug
		slug = request.headers.get(self.slug_header)
		if slug:
			try:
				tenant = await registry.get_tenant_by_slug(slug.strip())
			except TenantNotFound:
				return None
			return create_tenant_context(tenant)

		return None


class PathPrefixStrategy(TenantResolutionStrategy):
	"""Resolve tenant from URL path prefix: /t/<slug>/..."""

	def __init__(self, prefix: str = "/t"):
		self.prefix = prefix.rstrip("/")

	async def resolve(
		self, request: Request, registry: SchemaRegistry
	) -> TenantContext | None:
		path = request.url.path
		if not path.startswith(f"{self.prefix}/"):
			return None

		slug = path[len(self.prefix) + 1:].split("/")[0]
		if not slug:
			return None
		try:
			tenant = await registry.get_tenant_by_slug(slug)
		except TenantNotFound:
			return None
		return create_tenant_context(tenant)


class FixedTenantStrategy(TenantResolutionStrategy):
	"""
	Bind every request to one configured tenant.

	Used by single-tenant deployments: scoping still runs, against the
	one tenant, rather than being skipped.
	"""

	def __init__(self, slug: str):
		self.slug = slug

	async def resolve(
		self, request: Request, registry: SchemaRegistry
	) -> TenantContext | None:
		try:
			tenant = await registry.get_tenant_by_slug(self.slug)
		except TenantNotFound:
			logger.error(f"Configured tenant {self.slug} does not exist")
			return None
		return create_tenant_context(tenant)


class ChainedStrategy(TenantResolutionStrategy):
	"""Try multiple strategies in order until one succeeds."""

	def __init__(self, strategies: list[TenantResolutionStrategy]):
		self.strategies = strategies

	async def resolve(
		self, request: Request, registry: SchemaRegistry
	) -> TenantContext | None:
		for strategy in self.strategies:
			context = await strategy.resolve(request, registry)
			if context:
				return context
		return None


STRATEGIES: dict[str, Callable[..., TenantResolutionStrategy]] = {
	"host": HostHeaderStrategy,
	"header": HeaderStrategy,
	"path": PathPrefixStrategy,
}


def build_strategy(names: list[str], base_domain: str = "localhost") -> ChainedStrategy:
	"""Build a chained strategy from configured names, in the given order."""
	strategies = []
	for name in names:
		if name not in STRATEGIES:
			raise ValueError(f"Unknown tenant resolution strategy: {name}")
		if name == "host":
			strategies.append(HostHeaderStrategy(base_domain=base_domain))
		else:
			strategies.append(STRATEGIES[name]())
	if not strategies:
		raise ValueError("At least one tenant resolution strategy is required")
	return ChainedStrategy(strategies)


class TenantMiddleware(BaseHTTPMiddleware):
	"""
	FastAPI middleware for tenant resolution and context management.

	Resolves the tenant before any handler runs and holds the tenant
	context for exactly the lifetime of the request. Excluded paths run
	under an explicit, logged tenancy opt-out.
	"""

	def __init__(
		self,
		app: ASGIApp,
		session_factory: async_sessionmaker,
		strategy: TenantResolutionStrategy | None = None,
		excluded_paths: list[str] | None = None,
	):
		super().__init__(app)
		self.session_factory = session_factory
		self.strategy = strategy or ChainedStrategy([
			HostHeaderStrategy(),
			HeaderStrategy(),
		])
		self.excluded_paths = (
			DEFAULT_EXCLUDED_PATHS if excluded_paths is None else excluded_paths
		)

	async def dispatch(
		self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
	) -> Response:
		path = request.url.path
		if self._is_excluded_path(path):
			with tenancy_opt_out(f"{request.method} {path}"):
				return await call_next(request)

		try:
			async with self.session_factory() as db_session:
				context = await self.strategy.resolve(request, SchemaRegistry(db_session))
		except TenancyError as exc:
			return self._reject(request, exc)

		if context is None:
			logger.info(f"No tenant for host={request.headers.get('host')} path={path}")
			return JSONResponse(status_code=404, content={"detail": "Tenant not found"})

		request.state.tenant_context = context
		async with TenantContextManager(context):
			return await call_next(request)

	def _reject(self, request: Request, exc: TenancyError) -> JSONResponse:
		# A known tenant that is not serving (provisioning, deleting) is forbidden
		status_code = 403 if isinstance(exc, InvalidTenantState) else exc.status_code
		logger.info(f"Rejected {request.method} {request.url.path}: {exc.detail}")
		return JSONResponse(status_code=status_code, content={"detail": exc.detail})

	def _is_excluded_path(self, path: str) -> bool:
		"""Check if path should be excluded from tenant resolution."""
		for excluded in self.excluded_paths:
			if path == excluded or path.startswith(f"{excluded.rstrip('/')}/"):
				return True
		return False


def get_tenant_from_request(request: Request) -> TenantContext | None:
	"""Get tenant context from request state."""
	return getattr(request.state, "tenant_context", None)


def require_tenant_from_request(request: Request) -> TenantContext:
	"""Get tenant context from request, raising if not present."""
	context = get_tenant_from_request(request)
	if context is None:
		raise MissingTenantContext("Tenant context required")
	return context
