# (c) Copyright Datacraft, 2026
"""Alumni directory.

Revision ID: t0001
Revises:
"""
import sqlalchemy as sa
from sqlalchemy.engine import Connection

revision: str = 't0001'
down_revision: str | None = None


def upgrade(conn: Connection, schema: str) -> None:
	metadata = sa.MetaData()
	sa.Table(
		'alumni',
		metadata,
		sa.Column('id', sa.Uuid, primary_key=True),
		sa.Column('first_name', sa.String(100), nullable=False),
		sa.Column('last_name', sa.String(100), nullable=False),
		sa.Column('email', sa.String(255), nullable=False, unique=True),
		sa.Column('graduation_year', sa.Integer, nullable=True),
		sa.Column('degree', sa.String(255), nullable=True),
		sa.Column('employer', sa.String(255), nullable=True),
		sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
		schema=schema,
	)
	metadata.create_all(conn)
