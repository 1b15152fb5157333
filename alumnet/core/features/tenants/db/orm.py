# (c) Copyright Datacraft, 2026
"""Tenant registry ORM models (shared schema)."""
import uuid
from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column
from uuid_extensions import uuid7

from alumnet.core.db.base import Base
from alumnet.core.utils.tz import as_utc, utc_now


class TenantStatus(str, Enum):
	PENDING = "pending"
	PROVISIONING = "provisioning"
	ACTIVE = "active"
	SUSPENDED = "suspended"
	PENDING_DELETION = "pending_deletion"
	DELETED = "deleted"

	def can_transition_to(self, target: "TenantStatus") -> bool:
		return target in _TRANSITIONS[self]


_TRANSITIONS: dict[TenantStatus, frozenset[TenantStatus]] = {
	TenantStatus.PENDING: frozenset({TenantStatus.PROVISIONING, TenantStatus.PENDING_DELETION}),
	TenantStatus.PROVISIONING: frozenset({TenantStatus.ACTIVE, TenantStatus.PENDING_DELETION}),
	TenantStatus.ACTIVE: frozenset({TenantStatus.SUSPENDED, TenantStatus.PENDING_DELETION}),
	TenantStatus.SUSPENDED: frozenset({TenantStatus.ACTIVE, TenantStatus.PENDING_DELETION}),
	TenantStatus.PENDING_DELETION: frozenset({TenantStatus.DELETED}),
	TenantStatus.DELETED: frozenset(),
}


class SchemaOperation(str, Enum):
	REGISTER = "register"
	CREATE = "create"
	MIGRATE = "migrate"
	DROP = "drop"
	DEREGISTER = "deregister"


class Tenant(Base):
	"""Isolated customer organization and its schema registration."""
	__tablename__ = "tenants"

	id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid7)
	name: Mapped[str] = mapped_column(String(255), nullable=False)
	slug: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
	status: Mapped[str] = mapped_column(String(20), default=TenantStatus.PENDING.value, nullable=False)

	# Stable for the tenant's lifetime once registered
	schema_name: Mapped[str | None] = mapped_column(String(63), unique=True)

	# Subscription
	plan: Mapped[str] = mapped_column(String(50), default="free")
	trial_ends_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
	contact_email: Mapped[str | None] = mapped_column(String(255))

	settings: Mapped[dict | None] = mapped_column(JSON)

	# Provisioning
	provisioning_attempts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
	last_error: Mapped[str | None] = mapped_column(Text)
	provisioned_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

	# Deletion
	deletion_requested_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
	purge_after: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
	deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

	created_at: Mapped[datetime] = mapped_column(
		DateTime(timezone=True), default=utc_now, nullable=False
	)
	updated_at: Mapped[datetime] = mapped_column(
		DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False
	)

	@property
	def is_trial_expired(self) -> bool:
		if self.trial_ends_at is None:
			return False
		return as_utc(self.trial_ends_at) <= utc_now()

	def __repr__(self):
		return f"Tenant(id={self.id}, slug={self.slug}, status={self.status})"


class TenantDomain(Base):
	"""External hostname routed to one tenant."""
	__tablename__ = "tenant_domains"

	id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
	tenant_id: Mapped[UUID] = mapped_column(
		ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True
	)
	# Always stored lower-cased
	hostname: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
	is_primary: Mapped[bool] = mapped_column(Boolean, default=False)
	created_at: Mapped[datetime] = mapped_column(
		DateTime(timezone=True), default=utc_now, nullable=False
	)


class TenantSchemaOperation(Base):
	"""Audit trail of physical schema operations."""
	__tablename__ = "tenant_schema_operations"

	id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid7)
	tenant_id: Mapped[UUID] = mapped_column(Uuid, nullable=False, index=True)
	operation: Mapped[str] = mapped_column(String(20), nullable=False)
	schema_name: Mapped[str] = mapped_column(String(63), nullable=False)
	details: Mapped[dict | None] = mapped_column(JSON)
	created_at: Mapped[datetime] = mapped_column(
		DateTime(timezone=True), default=utc_now, nullable=False
	)
