# (c) Copyright Datacraft, 2026
"""Mentor flag and graduation year index on alumni.

Revision ID: t0003
Revises: t0002
"""
from sqlalchemy.engine import Connection

revision: str = 't0003'
down_revision: str | None = 't0002'


def upgrade(conn: Connection, schema: str) -> None:
	quoted = conn.dialect.identifier_preparer.quote_identifier(schema)
	conn.exec_driver_sql(
		f"ALTER TABLE {quoted}.alumni "
		"ADD COLUMN is_mentor BOOLEAN NOT NULL DEFAULT FALSE"
	)
	if conn.dialect.name == 'sqlite':
		# SQLite qualifies the index name, not the table
		conn.exec_driver_sql(
			f"CREATE INDEX {quoted}.idx_alumni_graduation_year "
			"ON alumni (graduation_year)"
		)
	else:
		conn.exec_driver_sql(
			f"CREATE INDEX idx_alumni_graduation_year "
			f"ON {quoted}.alumni (graduation_year)"
		)
