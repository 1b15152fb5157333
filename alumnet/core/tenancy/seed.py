# (c) Copyright Datacraft, 2026
"""
Initial data for new tenant schemas.

Seeders run right after the migrations of a provisioning run, inside the
tenant's own schema. They only insert what is missing, so a resumed
provisioning run seeds the same data once.
"""
import logging
from typing import Any, Callable

from sqlalchemy import JSON, Column, DateTime, MetaData, String, Table, inspect, select
from sqlalchemy.engine import Connection

from alumnet.core.utils.tz import utc_now

logger = logging.getLogger(__name__)

TenantSeeder = Callable[[Connection, str, dict[str, Any]], int]

DEFAULT_SETTINGS: dict[str, Any] = {
	"directory.visibility": "members",
	"events.require_rsvp": False,
	"mentoring.enabled": True,
}


def settings_table(schema_name: str) -> Table:
	return Table(
		"settings",
		MetaData(),
		Column("key", String(128), primary_key=True),
		Column("value", JSON),
		Column("updated_at", DateTime(timezone=True), nullable=False),
		schema=schema_name,
	)


def seed_settings(conn: Connection, schema_name: str, initial_data: dict[str, Any]) -> int:
	"""Write default settings, overridden by `initial_data`, where not yet set."""
	if not inspect(conn).has_table("settings", schema=schema_name):
		logger.warning(f"Schema {schema_name} has no settings table yet; not seeding settings")
		return 0
	table = settings_table(schema_name)
	existing = set(conn.execute(select(table.c.key)).scalars())
	now = utc_now()
	rows = [
		{"key": key, "value": value, "updated_at": now}
		for key, value in {**DEFAULT_SETTINGS, **initial_data}.items()
		if key not in existing
	]
	if rows:
		conn.execute(table.insert(), rows)
		logger.info(f"Seeded {len(rows)} settings into {schema_name}")
	return len(rows)


DEFAULT_SEEDERS: list[TenantSeeder] = [seed_settings]
