# (c) Copyright Datacraft, 2026
"""Alumni directory ORM models (tenant schema)."""
import uuid
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import JSON, Boolean, DateTime, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from alumnet.core.db.base import TenantBase
from alumnet.core.utils.tz import utc_now


class Alumnus(TenantBase):
	__tablename__ = "alumni"

	id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
	first_name: Mapped[str] = mapped_column(String(100), nullable=False)
	last_name: Mapped[str] = mapped_column(String(100), nullable=False)
	email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
	graduation_year: Mapped[int | None] = mapped_column(Integer)
	degree: Mapped[str | None] = mapped_column(String(255))
	employer: Mapped[str | None] = mapped_column(String(255))
	is_mentor: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
	created_at: Mapped[datetime] = mapped_column(
		DateTime(timezone=True), default=utc_now, nullable=False
	)

	def __repr__(self):
		return f"Alumnus(id={self.id}, email={self.email})"


class Event(TenantBase):
	__tablename__ = "events"

	id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
	title: Mapped[str] = mapped_column(String(255), nullable=False)
	starts_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
	location: Mapped[str | None] = mapped_column(String(255))
	capacity: Mapped[int | None] = mapped_column(Integer)
	created_at: Mapped[datetime] = mapped_column(
		DateTime(timezone=True), default=utc_now, nullable=False
	)


class Setting(TenantBase):
	"""Key-value tenant settings, seeded when the schema is provisioned."""

	__tablename__ = "settings"

	key: Mapped[str] = mapped_column(String(128), primary_key=True)
	value: Mapped[Any] = mapped_column(JSON)
	updated_at: Mapped[datetime] = mapped_column(
		DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False
	)
