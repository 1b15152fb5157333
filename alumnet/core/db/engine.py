# (c) Copyright Datacraft, 2026
import logging
import ssl

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import NullPool

from alumnet.core.config import Settings
from alumnet.core.tenancy.schema import attach_sqlite_schemas
from alumnet.core.tenancy.scoping import install_search_path_reset

logger = logging.getLogger(__name__)


def build_engine(settings: Settings) -> AsyncEngine:
	"""Create the shared engine; one pool serves every tenant."""
	url = settings.async_db_url

	if url.startswith("sqlite"):
		engine = create_async_engine(url, poolclass=NullPool)
		attach_sqlite_schemas(engine, settings.sqlite_schema_dir)
		return engine

	connect_args = {}
	if settings.db_ssl:
		# asyncpg requires an SSL context, not sslmode
		ssl_context = ssl.create_default_context()
		ssl_context.check_hostname = False
		ssl_context.verify_mode = ssl.CERT_NONE
		connect_args["ssl"] = ssl_context

	if settings.db_null_pool:
		engine = create_async_engine(url, poolclass=NullPool, connect_args=connect_args)
	else:
		engine = create_async_engine(
			url,
			pool_size=settings.db_pool_size,
			pool_pre_ping=True,
			connect_args=connect_args,
		)
	install_search_path_reset(engine)
	return engine

