# (c) Copyright Datacraft, 2026
"""
Schema-per-tenant database management.

On PostgreSQL each tenant owns a real schema. On SQLite (local
development and tests) each tenant schema is a database file in a
directory, attached under the schema name to every new connection.
"""
import logging
import re
import weakref
from pathlib import Path
from uuid import UUID

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import AsyncEngine

logger = logging.getLogger(__name__)

PUBLIC_SCHEMA = "public"

# sync Engine -> directory holding its attached tenant databases
_sqlite_schema_dirs: "weakref.WeakKeyDictionary" = weakref.WeakKeyDictionary()

_SCHEMA_NAME_RE = re.compile(r"^[a-z_][a-z0-9_]{0,62}$")


def validate_schema_name(schema_name: str) -> str:
	if not _SCHEMA_NAME_RE.match(schema_name):
		raise ValueError(f"Invalid schema name: {schema_name}")
	return schema_name


def attach_sqlite_schemas(engine: AsyncEngine, schema_dir: Path) -> None:
	"""Attach every tenant database file in `schema_dir` on connect."""
	schema_dir = Path(schema_dir)
	schema_dir.mkdir(parents=True, exist_ok=True)
	_sqlite_schema_dirs[engine.sync_engine] = schema_dir

	@event.listens_for(engine.sync_engine, "connect")
	def _attach_schemas(dbapi_connection, connection_record):
		cursor = dbapi_connection.cursor()
		try:
			for path in sorted(schema_dir.glob("*.db")):
				cursor.execute(f"ATTACH DATABASE '{path}' AS \"{path.stem}\"")
		finally:
			cursor.close()


class TenantSchemaManager:
	"""
	Manages per-tenant schemas.

	Each tenant gets its own schema (namespace), providing strong data
	isolation while sharing the same database and connection pool.
	"""

	def __init__(self, engine: AsyncEngine, prefix: str = "tenant_"):
		self.engine = engine
		self.prefix = prefix

	@property
	def dialect(self) -> str:
		return self.engine.dialect.name

	@property
	def _sqlite_dir(self) -> Path:
		schema_dir = _sqlite_schema_dirs.get(self.engine.sync_engine)
		if schema_dir is None:
			raise RuntimeError("SQLite engine was built without attach_sqlite_schemas")
		return schema_dir

	def _sqlite_path(self, schema_name: str) -> Path:
		return self._sqlite_dir / f"{schema_name}.db"

	def _quote(self, schema_name: str) -> str:
		validate_schema_name(schema_name)
		return self.engine.dialect.identifier_preparer.quote_identifier(schema_name)

	def get_schema_name(self, tenant_id: UUID) -> str:
		"""Deterministic schema name for a tenant id."""
		return validate_schema_name(f"{self.prefix}{tenant_id.hex}")

	async def schema_exists(self, schema_name: str) -> bool:
		validate_schema_name(schema_name)
		if self.dialect == "sqlite":
			return self._sqlite_path(schema_name).exists()

		async with self.engine.connect() as conn:
			result = await conn.execute(
				text(
					"SELECT EXISTS(SELECT 1 FROM information_schema.schemata "
					"WHERE schema_name = :schema)"
				),
				{"schema": schema_name},
			)
			return bool(result.scalar())

	async def create_schema(self, schema_name: str) -> bool:
		"""Create a schema if it doesn't exist. Returns True if created."""
		if schema_name == PUBLIC_SCHEMA:
			raise ValueError("Cannot create public schema")
		quoted = self._quote(schema_name)
		if await self.schema_exists(schema_name):
			return False

		if self.dialect == "sqlite":
			# An empty file is a valid empty database
			self._sqlite_path(schema_name).touch(exist_ok=True)
		else:
			async with self.engine.begin() as conn:
				await conn.execute(text(f"CREATE SCHEMA IF NOT EXISTS {quoted}"))
		logger.info(f"Created schema: {schema_name}")
		return True

	async def drop_schema(self, schema_name: str, cascade: bool = True) -> bool:
		"""
		Drop a schema. Returns False if it was already gone.

		Irreversible - this deletes all data in the schema.
		"""
		if schema_name == PUBLIC_SCHEMA:
			raise ValueError("Cannot drop public schema")
		quoted = self._quote(schema_name)
		if not await self.schema_exists(schema_name):
			return False

		if self.dialect == "sqlite":
			self._sqlite_path(schema_name).unlink(missing_ok=True)
		else:
			async with self.engine.begin() as conn:
				cascade_sql = "CASCADE" if cascade else "RESTRICT"
				await conn.execute(text(f"DROP SCHEMA IF EXISTS {quoted} {cascade_sql}"))
		logger.warning(f"Dropped schema: {schema_name}")
		return True

	async def list_schemas(self) -> list[str]:
		"""List all tenant schemas."""
		if self.dialect == "sqlite":
			return sorted(
				path.stem for path in self._sqlite_dir.glob(f"{self.prefix}*.db")
			)

		async with self.engine.connect() as conn:
			result = await conn.execute(
				text(
					"SELECT schema_name FROM information_schema.schemata "
					"WHERE schema_name LIKE :pattern "
					"ORDER BY schema_name"
				),
				{"pattern": f"{self.prefix}%"},
			)
			return [row[0] for row in result.fetchall()]

	async def list_tables(self, schema_name: str) -> list[str]:
		quoted = self._quote(schema_name)
		async with self.engine.connect() as conn:
			if self.dialect == "sqlite":
				result = await conn.execute(
					text(
						f"SELECT name FROM {quoted}.sqlite_master "
						"WHERE type = 'table' ORDER BY name"
					)
				)
			else:
				result = await conn.execute(
					text(
						"SELECT tablename FROM pg_tables WHERE schemaname = :schema "
						"ORDER BY tablename"
					),
					{"schema": schema_name},
				)
			return [row[0] for row in result.fetchall()]

	async def get_schema_size(self, schema_name: str) -> int:
		"""Get the total size of a schema in bytes."""
		validate_schema_name(schema_name)
		if self.dialect == "sqlite":
			path = self._sqlite_path(schema_name)
			return path.stat().st_size if path.exists() else 0

		async with self.engine.connect() as conn:
			result = await conn.execute(
				text(
					"SELECT COALESCE(SUM(pg_total_relation_size("
					"quote_ident(schemaname) || '.' || quote_ident(tablename)"
					")), 0) as size "
					"FROM pg_tables WHERE schemaname = :schema"
				),
				{"schema": schema_name},
			)
			return int(result.scalar() or 0)

	async def get_schema_table_counts(self, schema_name: str) -> dict[str, int]:
		"""Get row counts for all tables in a schema."""
		quoted = self._quote(schema_name)
		tables = await self.list_tables(schema_name)
		counts = {}
		async with self.engine.connect() as conn:
			for table in tables:
				table_quoted = self.engine.dialect.identifier_preparer.quote_identifier(table)
				count_result = await conn.execute(
					text(f"SELECT COUNT(*) FROM {quoted}.{table_quoted}")
				)
				counts[table] = int(count_result.scalar() or 0)
		return counts
