# (c) Copyright Datacraft, 2026
"""Tenancy error taxonomy."""


class TenancyError(Exception):
	"""Base class for tenancy errors; carries the HTTP status of the boundary."""

	status_code: int = 500

	def __init__(self, detail: str):
		self.detail = detail
		super().__init__(detail)


class TenantNotFound(TenancyError):
	"""Resolution by id, slug or domain failed."""

	status_code = 404


class TenantSuspended(TenancyError):
	"""Tenant exists but may not receive new requests."""

	status_code = 403


class MissingTenantContext(TenancyError):
	"""A tenant-scoped operation ran without an active tenant."""

	status_code = 400

	def __init__(self, detail: str = "No tenant context available - this operation requires a tenant"):
		super().__init__(detail)


class CrossTenantAccess(TenancyError):
	"""A session bound to one tenant was used while another tenant is active."""

	status_code = 500


class SchemaConflict(TenancyError):
	"""Schema name collides with an existing registration."""

	status_code = 409


class DomainConflict(TenancyError):
	"""Hostname is already claimed by a different tenant."""

	status_code = 409


class TenantAlreadyExists(TenancyError):
	status_code = 409


class InvalidTenantState(TenancyError):
	"""Requested lifecycle transition is not allowed from the current state."""

	status_code = 409


class UnsafeDeletion(TenancyError):
	"""Schema drop requested for a tenant that is not pending deletion."""

	status_code = 409


class ProvisioningFailure(TenancyError):
	"""Schema setup failed part-way; the tenant stays in provisioning."""

	status_code = 503

	def __init__(self, detail: str, cause: Exception | None = None):
		self.cause = cause
		super().__init__(detail)
