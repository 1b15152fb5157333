# (c) Copyright Datacraft, 2026
"""Per-tenant settings.

Revision ID: t0004
Revises: t0003
"""
import sqlalchemy as sa
from sqlalchemy.engine import Connection

revision: str = 't0004'
down_revision: str | None = 't0003'


def upgrade(conn: Connection, schema: str) -> None:
	metadata = sa.MetaData()
	sa.Table(
		'settings',
		metadata,
		sa.Column('key', sa.String(128), primary_key=True),
		sa.Column('value', sa.JSON, nullable=True),
		sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
		schema=schema,
	)
	metadata.create_all(conn)
