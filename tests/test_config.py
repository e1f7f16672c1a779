"""Settings loading and validation tests"""

import pytest
from pydantic import ValidationError

from campaign_engine.core.config import (
    DatabaseConfig,
    Settings,
    VendorConfig,
    get_settings,
    load_config_file,
)


@pytest.fixture
def fresh_settings():
    get_settings.cache_clear()
    yield get_settings
    get_settings.cache_clear()


def test_test_profile_uses_memory_backend(monkeypatch, fresh_settings):
    monkeypatch.setenv("ENVIRONMENT", "test")
    monkeypatch.delenv("DB_BACKEND", raising=False)

    settings = fresh_settings()

    assert settings.environment == "test"
    assert settings.database.backend == "memory"
    assert settings.vendor.dispatch_jitter == (0.0, 0.0)
    assert settings.observability.enable_metrics is False


def test_environment_variables_override_yaml(monkeypatch, fresh_settings):
    monkeypatch.setenv("ENVIRONMENT", "test")
    monkeypatch.setenv("DB_BACKEND", "postgres")
    monkeypatch.setenv("DB_HOST", "db.internal")
    monkeypatch.setenv("VENDOR_SUCCESS_RATE", "0.25")

    settings = fresh_settings()

    assert settings.database.backend == "postgres"
    assert settings.database.url.startswith("postgresql+asyncpg://")
    assert "@db.internal:" in settings.database.url
    assert settings.vendor.success_rate == 0.25


def test_missing_profile_file_is_empty():
    assert load_config_file("staging-does-not-exist") == {}


def test_unknown_environment_is_rejected():
    with pytest.raises(ValidationError):
        Settings(environment="qa")


def test_unknown_backend_is_rejected():
    with pytest.raises(ValidationError):
        DatabaseConfig(backend="sqlite")


@pytest.mark.parametrize("rate", [-0.1, 1.5])
def test_success_rate_bounds(rate):
    with pytest.raises(ValidationError):
        VendorConfig(success_rate=rate)


def test_jitter_bounds():
    with pytest.raises(ValidationError):
        VendorConfig(dispatch_jitter_min=2.0, dispatch_jitter_max=1.0)

    with pytest.raises(ValidationError):
        VendorConfig(response_jitter_min=-1.0)

    vendor = VendorConfig(response_jitter_min=0.5, response_jitter_max=0.5)
    assert vendor.response_jitter == (0.5, 0.5)
