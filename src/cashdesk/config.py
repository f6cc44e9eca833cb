from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Callable

from dotenv import load_dotenv

PREFIX = "CASHDESK_"


class ConfigError(ValueError):
    pass


@dataclass(frozen=True)
class ClientConfig:
    env_name: str
    api_base_url: str
    connect_timeout_seconds: float = 5.0
    read_timeout_seconds: float = 15.0
    retries: int = 3
    retry_backoff_seconds: float = 0.3
    max_connections: int = 20
    verify_ssl: bool = True
    auto_finalize_delay_seconds: float = 1.5
    print_point_id: int = 3
    print_poll_seconds: float = 30.0


@dataclass(frozen=True)
class _Setting:
    field: str
    parse: Callable[[str], Any]
    default: str
    check: Callable[[Any], bool]
    rule: str

    @property
    def env_var(self) -> str:
        return PREFIX + self.field.upper()


def _positive(value: float) -> bool:
    return value > 0


def _not_negative(value: float) -> bool:
    return value >= 0


def _at_least_one(value: int) -> bool:
    return value >= 1


_SETTINGS = (
    _Setting("retries", int, "3", _not_negative, ">= 0"),
    _Setting("retry_backoff_seconds", float, "0.3", _not_negative, ">= 0"),
    _Setting("max_connections", int, "20", _at_least_one, ">= 1"),
    _Setting("auto_finalize_delay_seconds", float, "1.5", _not_negative, ">= 0"),
    _Setting("print_point_id", int, "3", _at_least_one, ">= 1"),
    _Setting("print_poll_seconds", float, "30", _positive, "> 0"),
)


def _read(name: str, parse: Callable[[str], Any], default: str, check: Callable[[Any], bool], rule: str) -> Any:
    raw = os.getenv(name) or default
    try:
        value = parse(raw.strip())
    except ValueError as exc:
        raise ConfigError(f"Invalid {name}: expected {parse.__name__}, got {raw!r}") from exc
    if not check(value):
        raise ConfigError(f"Invalid {name}: expected {rule}, got {value}")
    return value


def _read_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if not raw:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def load_config(env_file: str | None = None) -> ClientConfig:
    """Build the client settings from ``CASHDESK_*`` variables.

    Values already in the environment win over the ``.env`` file. The base
    URL may be set per profile (``CASHDESK_API_BASE_URL_STAGING``) and falls
    back to ``CASHDESK_API_BASE_URL``. The timeouts derive from
    ``CASHDESK_TIMEOUT_SECONDS`` unless set individually.
    """
    load_dotenv(env_file)

    env_name = (os.getenv(PREFIX + "ENV") or "dev").strip()
    profile_url = os.getenv(f"{PREFIX}API_BASE_URL_{env_name.upper()}") or ""
    api_base_url = (profile_url.strip() or (os.getenv(PREFIX + "API_BASE_URL") or "").strip()).rstrip("/")
    if not api_base_url:
        raise ConfigError(f"Missing required config value: {PREFIX}API_BASE_URL")

    overall = _read(PREFIX + "TIMEOUT_SECONDS", float, "10", _positive, "> 0")
    connect = _read(PREFIX + "CONNECT_TIMEOUT_SECONDS", float, str(min(overall, 5.0)), _positive, "> 0")
    read = _read(PREFIX + "READ_TIMEOUT_SECONDS", float, str(max(overall, connect)), _positive, "> 0")

    tuned = {
        setting.field: _read(setting.env_var, setting.parse, setting.default, setting.check, setting.rule)
        for setting in _SETTINGS
    }
    return ClientConfig(
        env_name=env_name,
        api_base_url=api_base_url,
        connect_timeout_seconds=connect,
        read_timeout_seconds=read,
        verify_ssl=_read_bool(PREFIX + "VERIFY_SSL", True),
        **tuned,
    )
