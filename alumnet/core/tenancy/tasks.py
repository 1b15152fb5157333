# (c) Copyright Datacraft, 2026
"""Background jobs for tenant provisioning, deletion and migrations."""
import asyncio
import logging
from typing import Awaitable, Callable, TypeVar
from uuid import UUID

from celery import shared_task

from alumnet.core.config import get_settings
from .exceptions import ProvisioningFailure
from .lifecycle import TenantLifecycleManager, build_lifecycle

logger = logging.getLogger(__name__)
settings = get_settings()

T = TypeVar("T")


def _log_task(name: str) -> str:
	return f"Running task: {name}"


async def _with_lifecycle(fn: Callable[[TenantLifecycleManager], Awaitable[T]]) -> T:
	# Each job runs in a fresh event loop; its engine must not outlive it
	from alumnet.core.db.engine import build_engine

	engine = build_engine(settings)
	try:
		return await fn(build_lifecycle(engine, settings=settings))
	finally:
		await engine.dispose()


def run_with_lifecycle(fn: Callable[[TenantLifecycleManager], Awaitable[T]]) -> T:
	return asyncio.run(_with_lifecycle(fn))


@shared_task(
	bind=True,
	name="tenancy.provision_schema",
	autoretry_for=(ProvisioningFailure,),
	retry_backoff=True,
	retry_backoff_max=settings.provisioning_retry_backoff_max,
	retry_jitter=True,
	max_retries=settings.provisioning_max_attempts - 1,
)
def provision_schema(self, tenant_id: str) -> dict:
	"""
	Provision a tenant's schema and activate the tenant.

	Retried with exponential backoff on ProvisioningFailure. Once the
	retries are spent the tenant stays in provisioning for an operator.
	"""
	logger.info(_log_task(f"provision_schema:{tenant_id}"))
	try:
		tenant = run_with_lifecycle(lambda lc: lc.provision(UUID(tenant_id)))
	except ProvisioningFailure as exc:
		if self.request.retries >= self.max_retries:
			logger.error(
				f"Provisioning tenant {tenant_id} failed after "
				f"{self.request.retries + 1} attempts, operator action required: {exc.detail}"
			)
		raise
	return {"tenant_id": tenant_id, "status": tenant.status}


@shared_task(name="tenancy.finalize_deletion")
def finalize_deletion(tenant_id: str, ignore_grace_period: bool = False) -> dict:
	"""Drop a pending-deletion tenant's schema and deregister it."""
	logger.info(_log_task(f"finalize_deletion:{tenant_id}"))
	tenant = run_with_lifecycle(
		lambda lc: lc.finalize_deletion(UUID(tenant_id), ignore_grace_period=ignore_grace_period)
	)
	return {"tenant_id": tenant_id, "status": tenant.status}


@shared_task(name="tenancy.purge_due_tenants")
def purge_due_tenants() -> list[str]:
	"""Celery beat task finalizing tenants whose grace period has passed."""
	logger.info(_log_task("purge_due_tenants"))
	return run_with_lifecycle(lambda lc: lc.purge_due_tenants())


@shared_task(name="tenancy.migrate_all_schemas")
def migrate_all_schemas() -> dict:
	"""Roll pending tenant migrations out to every live tenant schema."""
	logger.info(_log_task("migrate_all_schemas"))
	report = run_with_lifecycle(lambda lc: lc.provisioner.migrate_all())
	return {"migrated": report.migrated, "failed": report.failed}
