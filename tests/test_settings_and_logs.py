import io
import json
import logging
from datetime import date

from msa_property_sync.logs import configure_logging, get_logger
from msa_property_sync.settings import (
    DEFAULT_START_DATE,
    ProviderCredentials,
    Settings,
    get_settings,
    reset_settings_cache,
)


def test_settings_defaults(monkeypatch):
    for name in (
        "SFR_API_KEY",
        "SFR_API_URL",
        "MSA_SYNC_DB_PATH",
        "MSA_SYNC_MAX_WORKERS",
        "MSA_SYNC_PROVIDER_TIMEOUT_S",
        "MSA_SYNC_GEOCODER_TIMEOUT_S",
        "MSA_SYNC_PAGE_SIZE",
        "MSA_SYNC_DEFAULT_START_DATE",
    ):
        monkeypatch.delenv(name, raising=False)
    s = Settings.from_env()
    assert s.api_key == ""
    assert s.db_path == "./msa_sync.sqlite"
    assert s.provider_timeout_s == 30
    assert s.geocoder_timeout_s == 10
    assert s.max_workers == 4
    assert s.page_size == 100
    assert s.default_start_date == DEFAULT_START_DATE == date(2025, 12, 3)


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("SFR_API_KEY", "abc")
    monkeypatch.setenv("SFR_API_URL", "https://provider.test/")
    monkeypatch.setenv("MSA_SYNC_MAX_WORKERS", "0")
    monkeypatch.setenv("MSA_SYNC_PAGE_SIZE", "not-a-number")
    monkeypatch.setenv("MSA_SYNC_DEFAULT_START_DATE", "2026-01-01")
    s = Settings.from_env()
    assert s.api_url == "https://provider.test"
    assert s.max_workers == 1
    assert s.page_size == 100
    assert s.default_start_date == date(2026, 1, 1)
    assert s.credentials == ProviderCredentials(api_key="abc", api_url="https://provider.test")


def test_settings_cache_reset(monkeypatch):
    monkeypatch.setenv("MSA_SYNC_DB_PATH", "/tmp/one.sqlite")
    reset_settings_cache()
    assert get_settings().db_path == "/tmp/one.sqlite"
    monkeypatch.setenv("MSA_SYNC_DB_PATH", "/tmp/two.sqlite")
    assert get_settings().db_path == "/tmp/one.sqlite"
    reset_settings_cache()
    assert get_settings().db_path == "/tmp/two.sqlite"
    reset_settings_cache()


def test_credentials_repr_hides_key():
    creds = ProviderCredentials(api_key="super-secret", api_url="https://provider.test")
    assert "super-secret" not in repr(creds)


def test_json_log_lines_carry_extras():
    stream = io.StringIO()
    configure_logging("INFO", json_lines=True, stream=stream)
    try:
        get_logger("orchestrator").info("synced", extra={"city_code": "SD"})
        get_logger("orchestrator").debug("hidden")
    finally:
        configure_logging("WARNING")

    lines = [json.loads(line) for line in stream.getvalue().splitlines()]
    assert len(lines) == 1
    assert lines[0]["message"] == "synced"
    assert lines[0]["logger"] == "msa_sync.orchestrator"
    assert lines[0]["level"] == "INFO"
    assert lines[0]["city_code"] == "SD"
    assert logging.getLogger("msa_sync").propagate is False
