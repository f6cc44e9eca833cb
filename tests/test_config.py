from __future__ import annotations

import pytest

from cashdesk.config import ConfigError, load_config

_ENV_KEYS = [
    "CASHDESK_TIMEOUT_SECONDS",
    "CASHDESK_CONNECT_TIMEOUT_SECONDS",
    "CASHDESK_READ_TIMEOUT_SECONDS",
    "CASHDESK_RETRIES",
    "CASHDESK_RETRY_BACKOFF_SECONDS",
    "CASHDESK_MAX_CONNECTIONS",
    "CASHDESK_VERIFY_SSL",
    "CASHDESK_ENV",
    "CASHDESK_API_BASE_URL",
    "CASHDESK_API_BASE_URL_DEV",
    "CASHDESK_API_BASE_URL_STAGING",
    "CASHDESK_AUTO_FINALIZE_DELAY_SECONDS",
    "CASHDESK_PRINT_POINT_ID",
    "CASHDESK_PRINT_POLL_SECONDS",
]


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    # setenv first so values loaded from .env files are also undone
    for key in _ENV_KEYS:
        monkeypatch.setenv(key, "")
        monkeypatch.delenv(key)


def test_load_config_requires_base_url(tmp_path) -> None:
    with pytest.raises(ConfigError, match="CASHDESK_API_BASE_URL"):
        load_config(str(tmp_path / "missing.env"))


def test_load_config_defaults(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    monkeypatch.setenv("CASHDESK_API_BASE_URL", "https://register.example.com/api/")
    cfg = load_config(str(tmp_path / "missing.env"))
    assert cfg.api_base_url == "https://register.example.com/api"
    assert cfg.env_name == "dev"
    assert cfg.auto_finalize_delay_seconds == 1.5
    assert cfg.print_point_id == 3
    assert cfg.print_poll_seconds == 30.0


def test_load_config_profile(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    monkeypatch.setenv("CASHDESK_ENV", "Staging")
    monkeypatch.setenv("CASHDESK_API_BASE_URL_STAGING", "https://staging.example.com")
    cfg = load_config(str(tmp_path / "missing.env"))
    assert cfg.api_base_url == "https://staging.example.com"
    assert cfg.env_name == "Staging"


def test_load_config_reads_env_file(tmp_path) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text("CASHDESK_API_BASE_URL=https://file.example.com\nCASHDESK_PRINT_POINT_ID=7\n")
    cfg = load_config(str(env_file))
    assert cfg.api_base_url == "https://file.example.com"
    assert cfg.print_point_id == 7


@pytest.mark.parametrize(
    ("key", "value"),
    [
        ("CASHDESK_TIMEOUT_SECONDS", "0"),
        ("CASHDESK_RETRIES", "-1"),
        ("CASHDESK_RETRY_BACKOFF_SECONDS", "-0.1"),
        ("CASHDESK_MAX_CONNECTIONS", "0"),
        ("CASHDESK_AUTO_FINALIZE_DELAY_SECONDS", "-1"),
        ("CASHDESK_PRINT_POINT_ID", "0"),
        ("CASHDESK_PRINT_POLL_SECONDS", "abc"),
    ],
)
def test_load_config_rejects_invalid_values(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path,
    key: str,
    value: str,
) -> None:
    monkeypatch.setenv("CASHDESK_API_BASE_URL", "https://register.example.com")
    monkeypatch.setenv(key, value)
    with pytest.raises(ConfigError, match=key):
        load_config(str(tmp_path / "missing.env"))
