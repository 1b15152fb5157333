# (c) Copyright Datacraft, 2026
"""Tests for settings validation."""
import pytest
from pydantic import ValidationError

from alumnet.core.config import DeploymentMode, Settings
from alumnet.core.tenancy.middleware import ChainedStrategy, HeaderStrategy, build_strategy


def make_settings(**kwargs) -> Settings:
    return Settings(_env_file=None, **kwargs)


def test_single_tenant_requires_default_slug():
    with pytest.raises(ValidationError, match="default_tenant_slug"):
        make_settings(deployment_mode=DeploymentMode.SINGLE_TENANT)


def test_multi_tenant_never_falls_back_to_default():
    with pytest.raises(ValidationError, match="never fall back"):
        make_settings(default_tenant_slug="acme")


def test_single_tenant_with_slug():
    settings = make_settings(deployment_mode="single_tenant", default_tenant_slug="acme")
    assert settings.deployment_mode == DeploymentMode.SINGLE_TENANT


@pytest.mark.parametrize(
    "url, expected",
    [
        ("postgresql://u:p@db/alumnet", "postgresql+asyncpg://u:p@db/alumnet"),
        ("postgresql+psycopg://u:p@db/alumnet", "postgresql+asyncpg://u:p@db/alumnet"),
        ("sqlite:///dev.db", "sqlite+aiosqlite:///dev.db"),
        ("postgresql+asyncpg://u:p@db/alumnet", "postgresql+asyncpg://u:p@db/alumnet"),
    ],
)
def test_async_db_url(url, expected):
    assert make_settings(db_url=url).async_db_url == expected


def test_schema_prefix_must_be_identifier():
    with pytest.raises(ValidationError):
        make_settings(tenant_schema_prefix="Tenant-")


def test_resolution_strategies():
    settings = make_settings(tenant_resolution=" Header , path,")
    assert settings.resolution_strategies == ["header", "path"]

    strategy = build_strategy(settings.resolution_strategies)
    assert isinstance(strategy, ChainedStrategy)
    assert isinstance(strategy.strategies[0], HeaderStrategy)


def test_unknown_resolution_strategy():
    with pytest.raises(ValueError):
        build_strategy(["token"])
    with pytest.raises(ValueError):
        build_strategy([])


def test_env_prefix(monkeypatch):
    monkeypatch.setenv("ALUMNET_DELETION_GRACE_PERIOD_HOURS", "0")
    assert make_settings().deletion_grace_period_hours == 0
