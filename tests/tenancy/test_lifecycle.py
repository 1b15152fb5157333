# (c) Copyright Datacraft, 2026
"""Tests for the tenant lifecycle."""
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import select

from alumnet.core.config import ProvisioningMode
from alumnet.core.features.alumni.db.orm import Alumnus, Setting
from alumnet.core.features.tenants.db.orm import Tenant, TenantDomain, TenantStatus
from alumnet.core.features.tenants.schema import TenantCreate
from alumnet.core.tenancy.exceptions import (
    DomainConflict,
    InvalidTenantState,
    ProvisioningFailure,
    TenantAlreadyExists,
    TenantNotFound,
    TenantSuspended,
    UnsafeDeletion,
)
from alumnet.core.tenancy.context import TenantContextManager, create_tenant_context
from alumnet.core.tenancy.lifecycle import build_lifecycle, transition
from alumnet.core.tenancy.migrations import TenantMigration, load_migrations
from alumnet.core.tenancy.registry import SchemaRegistry
from alumnet.core.tenancy.scoping import TenantScopedSession
from alumnet.core.utils.tz import as_utc, utc_now


def lifecycle_with(engine, session_factory, settings, dispatch, **overrides):
    return build_lifecycle(
        engine,
        session_factory,
        settings=settings.model_copy(update=overrides),
        dispatch=dispatch,
    )


@pytest.mark.asyncio
async def test_create_tenant_inline(make_tenant, provisioner, session_factory):
    tenant = await make_tenant("acme", domains=["Alumni.Acme.EDU", "acme.example.com"])

    assert tenant.status == TenantStatus.ACTIVE.value
    assert tenant.schema_name == f"tenant_{tenant.id.hex}"
    assert tenant.provisioning_attempts == 1
    assert tenant.provisioned_at is not None
    assert await provisioner.schema_manager.schema_exists(tenant.schema_name)

    async with session_factory() as session:
        domains = (await session.scalars(
            select(TenantDomain).where(TenantDomain.tenant_id == tenant.id)
        )).all()
    primary = {d.hostname: d.is_primary for d in domains}
    assert primary == {"alumni.acme.edu": True, "acme.example.com": False}


@pytest.mark.asyncio
async def test_create_tenant_queued(engine, session_factory, settings, dispatch):
    lifecycle = lifecycle_with(
        engine, session_factory, settings, dispatch,
        provisioning_mode=ProvisioningMode.QUEUED,
    )

    tenant = await lifecycle.create_tenant(TenantCreate(name="Acme", slug="acme"))

    assert tenant.status == TenantStatus.PROVISIONING.value
    assert tenant.schema_name is None
    dispatch.assert_called_once_with(
        "tenancy.provision_schema", kwargs={"tenant_id": str(tenant.id)}
    )

    # What the worker does
    tenant = await lifecycle.provision(tenant.id)
    assert tenant.status == TenantStatus.ACTIVE.value


@pytest.mark.asyncio
async def test_duplicate_slug(make_tenant):
    await make_tenant("acme")
    with pytest.raises(TenantAlreadyExists):
        await make_tenant("ACME")


@pytest.mark.asyncio
async def test_domain_conflict_leaves_nothing_behind(make_tenant, session_factory):
    await make_tenant("acme", domains=["alumni.example.com"])

    with pytest.raises(DomainConflict):
        await make_tenant("globex", domains=["ALUMNI.example.com"])

    async with session_factory() as session:
        with pytest.raises(TenantNotFound):
            await SchemaRegistry(session).get_tenant_by_slug("globex")


@pytest.mark.asyncio
async def test_provisioning_failure_stays_in_provisioning(lifecycle, provisioner):
    good = provisioner.migrations
    provisioner.migrations = load_migrations()[:2] + [
        TenantMigration("t0003", "t0002", "breaks", _fail)
    ]

    tenant = await lifecycle.create_tenant(TenantCreate(name="Acme", slug="acme"))

    assert tenant.status == TenantStatus.PROVISIONING.value
    assert "disk full" in tenant.last_error
    assert tenant.provisioning_attempts == 1

    provisioner.migrations = good
    tenant = await lifecycle.provision(tenant.id)
    assert tenant.status == TenantStatus.ACTIVE.value
    assert tenant.last_error is None
    assert tenant.provisioning_attempts == 2


@pytest.mark.asyncio
async def test_provisioning_attempts_are_bounded(
    engine, session_factory, settings, dispatch
):
    lifecycle = lifecycle_with(
        engine, session_factory, settings, dispatch, provisioning_max_attempts=2
    )
    good = lifecycle.provisioner.migrations
    lifecycle.provisioner.migrations = [TenantMigration("t0001", None, "breaks", _fail)]

    tenant = await lifecycle.create_tenant(TenantCreate(name="Acme", slug="acme"))
    with pytest.raises(Exception, match="disk full"):
        await lifecycle.provision(tenant.id)
    with pytest.raises(Exception, match="gave up after 2 attempts"):
        await lifecycle.provision(tenant.id)

    lifecycle.provisioner.migrations = good
    tenant = await lifecycle.provision(tenant.id, reset_attempts=True)
    assert tenant.status == TenantStatus.ACTIVE.value


@pytest.mark.asyncio
async def test_provision_is_idempotent(lifecycle, make_tenant):
    tenant = await make_tenant("acme")
    again = await lifecycle.provision(tenant.id)
    assert again.status == TenantStatus.ACTIVE.value
    assert again.provisioning_attempts == 1


@pytest.mark.asyncio
async def test_suspend_and_reactivate(lifecycle, make_tenant):
    tenant = await make_tenant("acme")

    suspended = await lifecycle.suspend_tenant(tenant.id, reason="unpaid invoice")
    assert suspended.status == TenantStatus.SUSPENDED.value
    assert (await lifecycle.suspend_tenant(tenant.id)).status == TenantStatus.SUSPENDED.value

    reactivated = await lifecycle.reactivate_tenant(tenant.id)
    assert reactivated.status == TenantStatus.ACTIVE.value
    assert reactivated.schema_name == tenant.schema_name


@pytest.mark.asyncio
async def test_invalid_transitions(lifecycle, make_registry_tenant, make_tenant):
    pending = await make_registry_tenant("pending")
    with pytest.raises(InvalidTenantState):
        await lifecycle.suspend_tenant(pending.id)

    tenant = await make_tenant("acme")
    await lifecycle.delete_tenant(tenant.id)
    with pytest.raises(InvalidTenantState):
        await lifecycle.reactivate_tenant(tenant.id)
    with pytest.raises(InvalidTenantState):
        await lifecycle.provision(tenant.id)


@pytest.mark.asyncio
async def test_delete_tenant_end_to_end(
    lifecycle, provisioner, make_tenant, make_context, engine, session_factory
):
    acme = await make_tenant("acme", domains=["acme.example.com"])
    globex = await make_tenant("globex")
    globex_ctx = make_context(globex)
    async with TenantScopedSession(engine, globex_ctx) as session:
        session.add(Alumnus(first_name="Grace", last_name="Hopper", email="grace@example.com"))
        await session.commit()

    deleted = await lifecycle.delete_tenant(acme.id)

    assert deleted.status == TenantStatus.DELETED.value
    assert deleted.schema_name is None
    assert deleted.deleted_at is not None
    assert not await provisioner.schema_manager.schema_exists(acme.schema_name)
    async with session_factory() as session:
        registry = SchemaRegistry(session)
        with pytest.raises(TenantNotFound):
            await registry.resolve(acme.id)
        with pytest.raises(TenantNotFound):
            await registry.resolve_by_domain("acme.example.com")

    # Other tenants are untouched
    async with TenantScopedSession(engine, globex_ctx) as session:
        emails = (await session.scalars(select(Alumnus.email))).all()
    assert emails == ["grace@example.com"]


@pytest.mark.asyncio
async def test_delete_tenant_is_idempotent(lifecycle, make_tenant):
    tenant = await make_tenant("acme")

    first = await lifecycle.delete_tenant(tenant.id)
    second = await lifecycle.delete_tenant(tenant.id)

    assert first.status == second.status == TenantStatus.DELETED.value
    assert as_utc(second.deleted_at) == as_utc(first.deleted_at)


@pytest.mark.asyncio
async def test_grace_period(engine, session_factory, settings, dispatch, provisioner):
    lifecycle = lifecycle_with(
        engine, session_factory, settings, dispatch, deletion_grace_period_hours=72
    )
    tenant = await lifecycle.create_tenant(TenantCreate(name="Acme", slug="acme"))

    pending = await lifecycle.delete_tenant(tenant.id)
    assert pending.status == TenantStatus.PENDING_DELETION.value
    assert pending.purge_after > utc_now() + timedelta(hours=71)
    assert await lifecycle.provisioner.schema_manager.schema_exists(tenant.schema_name)
    dispatch.assert_not_called()

    # Repeating the request does not restart the grace period
    again = await lifecycle.delete_tenant(tenant.id)
    assert as_utc(again.purge_after) == as_utc(pending.purge_after)

    with pytest.raises(UnsafeDeletion):
        await lifecycle.finalize_deletion(tenant.id)
    assert await lifecycle.purge_due_tenants() == []

    deleted = await lifecycle.finalize_deletion(tenant.id, ignore_grace_period=True)
    assert deleted.status == TenantStatus.DELETED.value


@pytest.mark.asyncio
async def test_queued_deletion_dispatches_finalize(
    engine, session_factory, settings, dispatch, make_tenant
):
    tenant = await make_tenant("acme")
    lifecycle = lifecycle_with(
        engine, session_factory, settings, dispatch,
        provisioning_mode=ProvisioningMode.QUEUED,
    )

    pending = await lifecycle.delete_tenant(tenant.id)

    assert pending.status == TenantStatus.PENDING_DELETION.value
    dispatch.assert_called_once_with(
        "tenancy.finalize_deletion", kwargs={"tenant_id": str(tenant.id)}
    )


@pytest.mark.asyncio
async def test_finalize_resumes_after_drop(
    engine, session_factory, settings, dispatch, provisioner
):
    """A crash between schema drop and deregistration is recoverable."""
    lifecycle = lifecycle_with(
        engine, session_factory, settings, dispatch, deletion_grace_period_hours=1
    )
    tenant = await lifecycle.create_tenant(TenantCreate(name="Acme", slug="acme"))
    await lifecycle.delete_tenant(tenant.id)

    # Dropped, then the process died before deregistering
    assert await lifecycle.provisioner.drop_schema(tenant.id) is True

    deleted = await lifecycle.finalize_deletion(tenant.id, ignore_grace_period=True)
    assert deleted.status == TenantStatus.DELETED.value
    assert deleted.schema_name is None


@pytest.mark.asyncio
async def test_finalize_requires_pending_deletion(lifecycle, make_tenant, provisioner):
    tenant = await make_tenant("acme")
    with pytest.raises(UnsafeDeletion):
        await lifecycle.finalize_deletion(tenant.id, ignore_grace_period=True)
    assert await provisioner.schema_manager.schema_exists(tenant.schema_name)


@pytest.mark.asyncio
async def test_purge_due_tenants(engine, session_factory, settings, dispatch):
    lifecycle = lifecycle_with(
        engine, session_factory, settings, dispatch, deletion_grace_period_hours=72
    )
    due = await lifecycle.create_tenant(TenantCreate(name="Acme", slug="acme"))
    waiting = await lifecycle.create_tenant(TenantCreate(name="Globex", slug="globex"))
    await lifecycle.delete_tenant(due.id)
    await lifecycle.delete_tenant(waiting.id)

    async with session_factory() as session:
        tenant = await session.get(Tenant, due.id)
        tenant.purge_after = utc_now() - timedelta(minutes=1)
        await session.commit()

    assert await lifecycle.purge_due_tenants() == ["acme"]
    assert (await lifecycle.get_tenant(due.id)).status == TenantStatus.DELETED.value
    assert (await lifecycle.get_tenant(waiting.id)).status == TenantStatus.PENDING_DELETION.value


def _fail(conn, schema):
    raise RuntimeError("disk full")


@pytest.mark.asyncio
async def test_reactivate_refuses_half_provisioned_tenant(lifecycle, provisioner):
    good = provisioner.migrations
    provisioner.migrations = load_migrations()[:1] + [
        TenantMigration("t0002", "t0001", "breaks", _fail)
    ]
    tenant = await lifecycle.create_tenant(TenantCreate(name="Acme", slug="acme"))
    assert tenant.status == TenantStatus.PROVISIONING.value

    with pytest.raises(InvalidTenantState):
        await lifecycle.reactivate_tenant(tenant.id)

    tenant = await lifecycle.get_tenant(tenant.id)
    assert tenant.status == TenantStatus.PROVISIONING.value
    with pytest.raises(InvalidTenantState):
        create_tenant_context(tenant)

    # Provisioning is the way out of provisioning
    provisioner.migrations = good
    tenant = await lifecycle.provision(tenant.id)
    assert tenant.status == TenantStatus.ACTIVE.value
    assert await provisioner.validate_schema(tenant.id) == []


@pytest.mark.asyncio
async def test_only_verified_schema_activates(make_registry_tenant):
    tenant = await make_registry_tenant("acme", status=TenantStatus.PROVISIONING.value)

    with pytest.raises(InvalidTenantState):
        transition(tenant, TenantStatus.ACTIVE)
    assert tenant.status == TenantStatus.PROVISIONING.value

    transition(tenant, TenantStatus.ACTIVE, schema_verified=True)
    assert tenant.status == TenantStatus.ACTIVE.value


@pytest.mark.asyncio
async def test_unusable_schema_is_not_activated(lifecycle, provisioner):
    provisioner.validate_schema = AsyncMock(return_value=["Pending migration: t0004"])

    tenant = await lifecycle.create_tenant(TenantCreate(name="Acme", slug="acme"))

    assert tenant.status == TenantStatus.PROVISIONING.value
    assert "Pending migration: t0004" in tenant.last_error
    with pytest.raises(ProvisioningFailure):
        await lifecycle.provision(tenant.id)


@pytest.mark.asyncio
async def test_suspension_lets_captured_context_finish(
    lifecycle, make_tenant, make_context, engine
):
    tenant = await make_tenant("beta")
    ctx = make_context(tenant)

    async with TenantContextManager(ctx):
        await lifecycle.suspend_tenant(tenant.id, reason="mid-session")

        # Work that captured the context before the suspension drains
        async with TenantScopedSession(engine) as session:
            session.add(Alumnus(first_name="Ada", last_name="Lovelace", email="ada@example.com"))
            await session.commit()
        async with TenantScopedSession(engine) as session:
            emails = (await session.scalars(select(Alumnus.email))).all()
        assert emails == ["ada@example.com"]

    # New work for the tenant is refused
    suspended = await lifecycle.get_tenant(tenant.id)
    with pytest.raises(TenantSuspended):
        create_tenant_context(suspended)


@pytest.mark.asyncio
async def test_new_schema_is_seeded_with_settings(lifecycle, provisioner, make_tenant, make_context, engine):
    tenant = await make_tenant("acme", settings={"mentoring.enabled": False, "theme": "navy"})

    async with TenantScopedSession(engine, make_context(tenant)) as session:
        rows = (await session.scalars(select(Setting))).all()
    stored = {s.key: s.value for s in rows}
    assert stored == {
        "directory.visibility": "members",
        "events.require_rsvp": False,
        "mentoring.enabled": False,
        "theme": "navy",
    }

    # A repeated provisioning run seeds nothing twice
    await provisioner.create_schema(tenant.id, initial_data={"theme": "red"})
    async with TenantScopedSession(engine, make_context(tenant)) as session:
        theme = await session.get(Setting, "theme")
    assert theme.value == "navy"
