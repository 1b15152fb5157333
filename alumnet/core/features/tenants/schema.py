# (c) Copyright Datacraft, 2026
"""Tenant Pydantic schemas."""
from uuid import UUID
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

SLUG_PATTERN = r"^[a-z0-9](?:[a-z0-9-]{0,98}[a-z0-9])?$"


class TenantCreate(BaseModel):
	"""Schema for creating a tenant."""
	name: str = Field(min_length=1, max_length=255)
	slug: str = Field(pattern=SLUG_PATTERN)
	plan: str = "free"
	contact_email: str | None = None
	trial_ends_at: datetime | None = None
	settings: dict[str, Any] | None = None
	# First domain becomes the primary one
	domains: list[str] = Field(default_factory=list)

	@field_validator("slug", mode="before")
	@classmethod
	def lower_slug(cls, value: str) -> str:
		return value.lower() if isinstance(value, str) else value


class TenantUpdate(BaseModel):
	"""Schema for updating a tenant."""
	name: str | None = None
	plan: str | None = None
	contact_email: str | None = None
	trial_ends_at: datetime | None = None
	settings: dict[str, Any] | None = None


class TenantInfo(BaseModel):
	"""Basic tenant information."""
	id: UUID
	name: str
	slug: str
	status: str
	plan: str = "free"
	created_at: datetime | None = None

	model_config = ConfigDict(from_attributes=True)


class DomainInfo(BaseModel):
	hostname: str
	is_primary: bool = False

	model_config = ConfigDict(from_attributes=True)


class DomainCreate(BaseModel):
	hostname: str = Field(min_length=1, max_length=255)
	is_primary: bool = False


class TenantDetail(BaseModel):
	"""Detailed tenant information."""
	id: UUID
	name: str
	slug: str
	status: str
	plan: str = "free"
	schema_name: str | None = None
	contact_email: str | None = None
	trial_ends_at: datetime | None = None
	settings: dict[str, Any] | None = None
	provisioning_attempts: int = 0
	last_error: str | None = None
	provisioned_at: datetime | None = None
	deletion_requested_at: datetime | None = None
	purge_after: datetime | None = None
	deleted_at: datetime | None = None
	created_at: datetime | None = None
	updated_at: datetime | None = None
	domains: list[DomainInfo] = Field(default_factory=list)

	model_config = ConfigDict(from_attributes=True)


class TenantListResponse(BaseModel):
	"""Paginated tenant list."""
	items: list[TenantInfo]
	total: int
	page: int
	page_size: int


class CurrentTenant(BaseModel):
	"""Tenant bound to the current request."""
	id: UUID
	slug: str
	domain: str | None = None
	settings: dict[str, Any] | None = None


class SchemaStatusInfo(BaseModel):
	schema_name: str | None
	exists: bool
	applied_revisions: list[str] = Field(default_factory=list)
	pending_revisions: list[str] = Field(default_factory=list)
	tables: list[str] = Field(default_factory=list)
	table_counts: dict[str, int] = Field(default_factory=dict)
	size_bytes: int = 0
	issues: list[str] = Field(default_factory=list)

	model_config = ConfigDict(from_attributes=True)


class SchemaOperationInfo(BaseModel):
	operation: str
	schema_name: str
	details: dict[str, Any] | None = None
	created_at: datetime

	model_config = ConfigDict(from_attributes=True)


class MigrationReport(BaseModel):
	migrated: dict[str, list[str]] = Field(default_factory=dict)
	failed: dict[str, str] = Field(default_factory=dict)

	model_config = ConfigDict(from_attributes=True)
