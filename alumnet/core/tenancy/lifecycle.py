# (c) Copyright Datacraft, 2026
"""
Tenant lifecycle.

	pending -> provisioning -> active <-> suspended
	any non-deleted state -> pending_deletion -> deleted

Every state change is committed before the physical step that follows
it, so a crash always leaves a state from which the same call can be
repeated.
"""
import logging
from datetime import timedelta
from typing import Callable
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import async_sessionmaker

from alumnet.core.config import ProvisioningMode, Settings, get_settings
from alumnet.core.features.tenants.db.orm import Tenant, TenantStatus
from alumnet.core.features.tenants.schema import TenantCreate
from alumnet.core.utils.tz import as_utc, utc_now
from .exceptions import (
	InvalidTenantState,
	ProvisioningFailure,
	TenancyError,
	TenantAlreadyExists,
	UnsafeDeletion,
)
from .provisioner import SchemaProvisioner
from .registry import SchemaRegistry

logger = logging.getLogger(__name__)

PROVISION_TASK = "tenancy.provision_schema"
FINALIZE_DELETION_TASK = "tenancy.finalize_deletion"


def transition(tenant: Tenant, target: TenantStatus, schema_verified: bool = False) -> None:
	"""
	Move a tenant to `target`, refusing moves outside the lifecycle.

	Leaving provisioning for active requires `schema_verified`: only a
	provisioning run that has checked the schema may activate a tenant.
	"""
	current = TenantStatus(tenant.status)
	if not current.can_transition_to(target):
		raise InvalidTenantState(
			f"Tenant {tenant.slug} cannot move from {current.value} to {target.value}"
		)
	if (
		current == TenantStatus.PROVISIONING
		and target == TenantStatus.ACTIVE
		and not schema_verified
	):
		raise InvalidTenantState(
			f"Tenant {tenant.slug} is still provisioning; retry provisioning instead"
		)
	tenant.status = target.value
	logger.info(f"Tenant {tenant.slug}: {current.value} -> {target.value}")


class TenantLifecycleManager:
	def __init__(
		self,
		session_factory: async_sessionmaker,
		provisioner: SchemaProvisioner,
		settings: Settings | None = None,
		dispatch: Callable | None = None,
	):
		self.session_factory = session_factory
		self.provisioner = provisioner
		self.settings = settings or get_settings()
		if dispatch is None:
			from alumnet.core.tasks import send_task
			dispatch = send_task
		self.dispatch = dispatch

	@property
	def inline(self) -> bool:
		return self.settings.provisioning_mode == ProvisioningMode.INLINE

	async def get_tenant(self, tenant_id: UUID) -> Tenant:
		async with self.session_factory() as session:
			return await SchemaRegistry(session).get_tenant(tenant_id)

	async def create_tenant(self, data: TenantCreate) -> Tenant:
		"""
		Record a tenant, claim its domains and start provisioning.

		The tenant row, its domains and the move to provisioning are
		committed together; a slug or domain conflict leaves nothing
		behind. Inline provisioning failures are logged and the tenant is
		returned in provisioning, to be retried.
		"""
		async with self.session_factory() as session:
			registry = SchemaRegistry(session)
			existing = await session.scalar(select(Tenant.id).where(Tenant.slug == data.slug))
			if existing is not None:
				raise TenantAlreadyExists(f"Tenant with slug {data.slug} already exists")

			tenant = Tenant(
				name=data.name,
				slug=data.slug,
				plan=data.plan,
				contact_email=data.contact_email,
				trial_ends_at=data.trial_ends_at,
				settings=data.settings,
				status=TenantStatus.PENDING.value,
			)
			session.add(tenant)
			try:
				await session.flush()
			except IntegrityError as exc:
				raise TenantAlreadyExists(
					f"Tenant with slug {data.slug} already exists"
				) from exc

			for index, hostname in enumerate(data.domains):
				await registry.add_domain(tenant.id, hostname, is_primary=index == 0)

			transition(tenant, TenantStatus.PROVISIONING)
			await session.commit()
			tenant_id = tenant.id

		logger.info(f"Created tenant {data.slug} ({tenant_id})")

		if not self.inline:
			self.dispatch(PROVISION_TASK, kwargs={"tenant_id": str(tenant_id)})
			return await self.get_tenant(tenant_id)

		try:
			return await self.provision(tenant_id)
		except ProvisioningFailure as exc:
			logger.error(f"Inline provisioning of tenant {data.slug} failed: {exc.detail}")
			return await self.get_tenant(tenant_id)

	async def provision(self, tenant_id: UUID, reset_attempts: bool = False) -> Tenant:
		"""
		Create and migrate the tenant's schema, then activate the tenant.

		Safe to repeat: an active tenant is returned unchanged and a
		tenant left in provisioning resumes where it stopped. Attempts are
		bounded by `provisioning_max_attempts`; `reset_attempts` is the
		operator's way to start over.
		"""
		max_attempts = self.settings.provisioning_max_attempts

		async with self.session_factory() as session:
			tenant = await SchemaRegistry(session).get_tenant(tenant_id)
			status = TenantStatus(tenant.status)
			if status == TenantStatus.ACTIVE:
				return tenant
			if status == TenantStatus.PENDING:
				transition(tenant, TenantStatus.PROVISIONING)
			elif status != TenantStatus.PROVISIONING:
				raise InvalidTenantState(
					f"Tenant {tenant.slug} is {status.value} and cannot be provisioned"
				)

			if reset_attempts:
				tenant.provisioning_attempts = 0
			if tenant.provisioning_attempts >= max_attempts:
				await session.commit()
				raise ProvisioningFailure(
					f"Provisioning of tenant {tenant.slug} gave up after "
					f"{tenant.provisioning_attempts} attempts: {tenant.last_error}"
				)
			tenant.provisioning_attempts += 1
			attempt = tenant.provisioning_attempts
			slug = tenant.slug
			initial_data = dict(tenant.settings or {})
			await session.commit()

		logger.info(f"Provisioning tenant {slug} (attempt {attempt}/{max_attempts})")
		try:
			await self.provisioner.create_schema(tenant_id, initial_data=initial_data)
			issues = await self.provisioner.validate_schema(tenant_id)
			if issues:
				raise ProvisioningFailure(
					f"Schema of tenant {slug} is not usable: {'; '.join(issues)}"
				)
		except ProvisioningFailure as exc:
			async with self.session_factory() as session:
				tenant = await SchemaRegistry(session).get_tenant(tenant_id)
				tenant.last_error = exc.detail[:2000]
				await session.commit()
			raise

		async with self.session_factory() as session:
			tenant = await SchemaRegistry(session).get_tenant(tenant_id)
			if tenant.status == TenantStatus.PROVISIONING.value:
				transition(tenant, TenantStatus.ACTIVE, schema_verified=True)
				tenant.provisioned_at = utc_now()
				tenant.last_error = None
				await session.commit()
			return tenant

	async def suspend_tenant(self, tenant_id: UUID, reason: str | None = None) -> Tenant:
		"""
		Stop admitting new requests for the tenant.

		Contexts captured before the suspension finish their work. The
		schema and its data are kept.
		"""
		async with self.session_factory() as session:
			tenant = await SchemaRegistry(session).get_tenant(tenant_id)
			if tenant.status == TenantStatus.SUSPENDED.value:
				return tenant
			transition(tenant, TenantStatus.SUSPENDED)
			await session.commit()
		if reason:
			logger.info(f"Tenant {tenant.slug} suspended: {reason}")
		return tenant

	async def reactivate_tenant(self, tenant_id: UUID) -> Tenant:
		"""Lift a suspension. Only suspended tenants can be reactivated."""
		async with self.session_factory() as session:
			tenant = await SchemaRegistry(session).get_tenant(tenant_id)
			if tenant.status == TenantStatus.ACTIVE.value:
				return tenant
			if tenant.status != TenantStatus.SUSPENDED.value:
				raise InvalidTenantState(
					f"Tenant {tenant.slug} is {tenant.status} and cannot be reactivated"
				)
			transition(tenant, TenantStatus.ACTIVE)
			await session.commit()
			return tenant

	async def delete_tenant(self, tenant_id: UUID) -> Tenant:
		"""
		Request deletion of a tenant.

		Idempotent: repeating the call on a tenant already pending
		deletion or deleted changes nothing. The schema is dropped once
		the grace period has passed, right away when it is zero.
		"""
		async with self.session_factory() as session:
			tenant = await SchemaRegistry(session).get_tenant(tenant_id)
			status = TenantStatus(tenant.status)
			if status == TenantStatus.DELETED:
				return tenant
			if status != TenantStatus.PENDING_DELETION:
				transition(tenant, TenantStatus.PENDING_DELETION)
				now = utc_now()
				tenant.deletion_requested_at = now
				tenant.purge_after = now + timedelta(
					hours=self.settings.deletion_grace_period_hours
				)
				await session.commit()

		if tenant.purge_after is not None and as_utc(tenant.purge_after) > utc_now():
			logger.info(f"Tenant {tenant.slug} will be purged after {tenant.purge_after}")
			return tenant

		if not self.inline:
			self.dispatch(FINALIZE_DELETION_TASK, kwargs={"tenant_id": str(tenant_id)})
			return tenant
		return await self.finalize_deletion(tenant_id)

	async def finalize_deletion(
		self,
		tenant_id: UUID,
		ignore_grace_period: bool = False,
	) -> Tenant:
		"""
		Drop the tenant's schema, deregister it and mark the tenant deleted.

		Resumable: after a crash between drop and deregistration the drop
		is skipped and deregistration completes.
		"""
		async with self.session_factory() as session:
			tenant = await SchemaRegistry(session).get_tenant(tenant_id)
			if tenant.status == TenantStatus.DELETED.value:
				return tenant
			if tenant.status != TenantStatus.PENDING_DELETION.value:
				raise UnsafeDeletion(
					f"Tenant {tenant.slug} is {tenant.status}; request deletion first"
				)
			if (
				not ignore_grace_period
				and tenant.purge_after is not None
				and as_utc(tenant.purge_after) > utc_now()
			):
				raise UnsafeDeletion(
					f"Tenant {tenant.slug} is within its deletion grace period "
					f"until {tenant.purge_after}"
				)

		await self.provisioner.drop_schema(tenant_id)

		async with self.session_factory() as session:
			registry = SchemaRegistry(session)
			await registry.deregister(tenant_id)
			tenant = await registry.get_tenant(tenant_id)
			transition(tenant, TenantStatus.DELETED)
			tenant.deleted_at = utc_now()
			await session.commit()
			return tenant

	async def purge_due_tenants(self) -> list[str]:
		"""Finalize every tenant whose grace period has passed."""
		now = utc_now()
		async with self.session_factory() as session:
			tenants = await SchemaRegistry(session).list_tenants(
				statuses=[TenantStatus.PENDING_DELETION]
			)
			due = [
				(t.id, t.slug) for t in tenants
				if t.purge_after is None or as_utc(t.purge_after) <= now
			]

		purged = []
		for tenant_id, slug in due:
			try:
				await self.finalize_deletion(tenant_id)
			except TenancyError as exc:
				logger.error(f"Purging tenant {slug} failed: {exc.detail}")
				continue
			purged.append(slug)
		if purged:
			logger.info(f"Purged tenants: {', '.join(purged)}")
		return purged


def build_lifecycle(
	engine,
	session_factory: async_sessionmaker | None = None,
	settings: Settings | None = None,
	dispatch: Callable | None = None,
) -> TenantLifecycleManager:
	"""Wire a lifecycle manager and its provisioner to one engine."""
	from .schema import TenantSchemaManager

	settings = settings or get_settings()
	if session_factory is None:
		session_factory = async_sessionmaker(engine, expire_on_commit=False)
	provisioner = SchemaProvisioner(
		engine,
		session_factory,
		schema_manager=TenantSchemaManager(engine, prefix=settings.tenant_schema_prefix),
	)
	return TenantLifecycleManager(session_factory, provisioner, settings, dispatch=dispatch)
