from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv


_STORE_NAME_ENV = "HAIKU_STORE_NAME"
_STORE_PATH_ENV = "HAIKU_STORE_PATH"
_STORE_MAX_RECORDS_ENV = "HAIKU_STORE_MAX_RECORDS"
_STORE_TIMEOUT_ENV = "HAIKU_STORE_TIMEOUT"
_LLM_API_URL_ENV = "LLM_API_URL"
_LLM_MODEL_ENV = "LLM_MODEL"
_LLM_API_KEY_ENV = "LLM_API_KEY"
_LLM_TIMEOUT_ENV = "LLM_TIMEOUT"
_SENSOR_MODE_ENV = "SENSOR_MODE"
_INTERVAL_ENV = "HAIKU_INTERVAL_SECONDS"
_SCHEDULER_ENABLED_ENV = "HAIKU_SCHEDULER_ENABLED"
_LOG_LEVEL_ENV = "LOG_LEVEL"

@dataclass(frozen=True)
class Settings:
    store_name: str
    store_path: Optional[str]
    store_max_records: int
    store_timeout: float
    llm_api_url: Optional[str]
    llm_model: Optional[str]
    llm_api_key: Optional[str] = field(default=None, repr=False)
    llm_timeout: float = 30.0
    sensor_mode: str = "hardware"
    interval_seconds: float = 3600.0
    scheduler_enabled: bool = True
    log_level: str = "INFO"

    @property
    def llm_configured(self) -> bool:
        return bool(self.llm_api_url and self.llm_model and self.llm_api_key)


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_non_negative_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed >= 0 else default


def _read_positive_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip().lower()
    if candidate in {"1", "true", "yes", "on"}:
        return True
    if candidate in {"0", "false", "no", "off"}:
        return False
    return default


def _read_sensor_mode(default: str) -> str:
    # Unknown modes pass through; build_sensor_reader rejects them at start-up.
    return _read_str_env(_SENSOR_MODE_ENV, default).lower()


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    load_dotenv(override=False)
    return Settings(
        store_name=_read_str_env(_STORE_NAME_ENV, "haikus"),
        store_path=_read_optional_env(_STORE_PATH_ENV, "./tmp/haikus.json"),
        store_max_records=_read_non_negative_int(_STORE_MAX_RECORDS_ENV, 8760),
        store_timeout=_read_positive_float(_STORE_TIMEOUT_ENV, 10.0),
        llm_api_url=_read_optional_env(_LLM_API_URL_ENV, None),
        llm_model=_read_optional_env(_LLM_MODEL_ENV, None),
        llm_api_key=_read_optional_env(_LLM_API_KEY_ENV, None),
        llm_timeout=_read_positive_float(_LLM_TIMEOUT_ENV, 30.0),
        sensor_mode=_read_sensor_mode("hardware"),
        interval_seconds=_read_positive_float(_INTERVAL_ENV, 3600.0),
        scheduler_enabled=_read_bool(_SCHEDULER_ENABLED_ENV, True),
        log_level=_read_log_level("INFO"),
    )
