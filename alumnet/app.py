# (c) Copyright Datacraft, 2026
import logging
import os
from contextlib import asynccontextmanager
from logging.config import dictConfig
from pathlib import Path
from typing import Callable

import yaml
from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker

from alumnet.core.config import DeploymentMode, Settings, get_settings
from alumnet.core.db.engine import build_engine
from alumnet.core.features.alumni.router import router as alumni_router
from alumnet.core.features.tenants.router import admin_router as tenants_admin_router
from alumnet.core.features.tenants.router import router as tenants_router
from alumnet.core.tenancy.exceptions import TenancyError
from alumnet.core.tenancy.lifecycle import build_lifecycle
from alumnet.core.tenancy.middleware import (
	FixedTenantStrategy,
	TenantMiddleware,
	TenantResolutionStrategy,
	build_strategy,
)
from alumnet.core.version import __version__

logger = logging.getLogger(__name__)

health_router = APIRouter(tags=["health"])


@health_router.get("/health")
async def health() -> dict:
	return {"status": "ok", "version": __version__}


def configure_logging(settings: Settings) -> None:
	logging_config_path = settings.log_config or Path(
		os.environ.get("ALUMNET__MAIN__LOGGING_CFG", "/etc/alumnet/logging.yaml")
	)

	if logging_config_path.exists() and logging_config_path.is_file():
		with open(logging_config_path, "r") as stream:
			config = yaml.load(stream, Loader=yaml.FullLoader)

		dictConfig(config)


def resolution_strategy(settings: Settings) -> TenantResolutionStrategy:
	# Single-tenant deployments are scoped to their one tenant, never unscoped
	if settings.deployment_mode == DeploymentMode.SINGLE_TENANT:
		return FixedTenantStrategy(settings.default_tenant_slug)
	return build_strategy(
		settings.resolution_strategies,
		base_domain=settings.tenant_base_domain,
	)


def create_app(
	settings: Settings | None = None,
	engine: AsyncEngine | None = None,
	session_factory: async_sessionmaker | None = None,
	dispatch: Callable | None = None,
) -> FastAPI:
	settings = settings or get_settings()
	configure_logging(settings)
	prefix = settings.api_prefix

	owns_engine = engine is None
	if engine is None:
		engine = build_engine(settings)
	if session_factory is None:
		session_factory = async_sessionmaker(engine, expire_on_commit=False)

	@asynccontextmanager
	async def lifespan(app: FastAPI):
		"""Application lifespan handler for startup/shutdown events."""
		logger.info(
			f"Starting alumnet API server ({settings.deployment_mode.value}, "
			f"resolution={settings.tenant_resolution})"
		)
		yield
		logger.info("Shutting down alumnet API server...")
		if owns_engine:
			await engine.dispose()

	app = FastAPI(
		title="Alumnet REST API",
		version=__version__,
		lifespan=lifespan,
	)
	app.state.settings = settings
	app.state.engine = engine
	app.state.session_factory = session_factory
	app.state.lifecycle = build_lifecycle(
		engine, session_factory, settings=settings, dispatch=dispatch
	)

	@app.exception_handler(TenancyError)
	async def tenancy_error_handler(request: Request, exc: TenancyError) -> JSONResponse:
		if exc.status_code >= 500:
			logger.error(f"{request.method} {request.url.path}: {exc.detail}")
		return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})

	app.add_middleware(
		TenantMiddleware,
		session_factory=session_factory,
		strategy=resolution_strategy(settings),
		excluded_paths=[
			f"{prefix}/health",
			f"{prefix}/admin",
			"/docs",
			"/redoc",
			"/openapi.json",
		],
	)

	app.include_router(health_router, prefix=prefix)
	app.include_router(tenants_admin_router, prefix=prefix)
	app.include_router(tenants_router, prefix=prefix)
	app.include_router(alumni_router, prefix=prefix)

	return app


app = create_app()
