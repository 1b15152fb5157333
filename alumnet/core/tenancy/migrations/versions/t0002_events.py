# (c) Copyright Datacraft, 2026
"""Events calendar.

Revision ID: t0002
Revises: t0001
"""
import sqlalchemy as sa
from sqlalchemy.engine import Connection

revision: str = 't0002'
down_revision: str | None = 't0001'


def upgrade(conn: Connection, schema: str) -> None:
	metadata = sa.MetaData()
	sa.Table(
		'events',
		metadata,
		sa.Column('id', sa.Uuid, primary_key=True),
		sa.Column('title', sa.String(255), nullable=False),
		sa.Column('starts_at', sa.DateTime(timezone=True), nullable=False),
		sa.Column('location', sa.String(255), nullable=True),
		sa.Column('capacity', sa.Integer, nullable=True),
		sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
		sa.Index('idx_events_starts_at', 'starts_at'),
		schema=schema,
	)
	metadata.create_all(conn)
