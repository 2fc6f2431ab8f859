"""
Tests for centralized configuration.
"""
import pytest
from insightforge.core.config import Settings, get_settings, reload_settings


@pytest.fixture
def restore_settings():
    yield
    reload_settings()


@pytest.mark.unit
def test_settings_defaults():
    settings = Settings()

    assert settings.max_file_size_mb == 25
    assert settings.max_preview_rows == 200
    assert settings.default_histogram_bins == 20
    assert settings.dataset_ttl_seconds == 3600
    assert settings.rate_limit_per_minute == 10
    assert settings.log_level == "INFO"


@pytest.mark.unit
def test_settings_from_env(restore_settings, monkeypatch):
    monkeypatch.setenv("MAX_FILE_SIZE_MB", "100")
    monkeypatch.setenv("RATE_LIMIT_PER_MINUTE", "20")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = reload_settings()

    assert settings.max_file_size_mb == 100
    assert settings.rate_limit_per_minute == 20
    assert settings.log_level == "DEBUG"
    assert get_settings() is settings


@pytest.mark.unit
def test_settings_validation():
    with pytest.raises(ValueError):
        Settings(max_file_size_mb=0)

    with pytest.raises(ValueError):
        Settings(max_file_size_mb=2000)

    with pytest.raises(ValueError):
        Settings(dataset_ttl_seconds=10)

    with pytest.raises(ValueError):
        Settings(log_level="INVALID")


@pytest.mark.unit
def test_settings_properties():
    settings = Settings(max_file_size_mb=50, allowed_origins="http://a.test, ,http://b.test")

    assert settings.max_file_size_bytes == 50 * 1024 * 1024
    assert settings.allowed_origins_list == ["http://a.test", "http://b.test"]


@pytest.mark.unit
def test_settings_singleton():
    assert get_settings() is get_settings()
