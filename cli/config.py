from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlsplit

from settings import _read_positive_float

DEFAULT_BASE_URL = "http://localhost:8000"
DEFAULT_TIMEOUT = 10.0

_BASE_URL_ENV = "API_BASE_URL"
_TIMEOUT_ENV = "CLI_TIMEOUT"
_SCHEMES = ("http", "https")


@dataclass(frozen=True)
class CLIConfig:
    base_url: str = DEFAULT_BASE_URL
    timeout: float = DEFAULT_TIMEOUT


def normalize_base_url(value: str) -> str:
    """Accept ``host:port`` shorthand and drop trailing slashes.

    Raises ``ValueError`` for schemes other than http and https.
    """
    candidate = value.strip().rstrip("/")
    if "://" not in candidate:
        candidate = f"http://{candidate}"
    parts = urlsplit(candidate)
    if parts.scheme.lower() not in _SCHEMES or not parts.netloc:
        raise ValueError(f"Unsupported haiku API base URL {value!r}.")
    return candidate


def load_config(
    base_url: Optional[str] = None,
    timeout: Optional[float] = None,
) -> CLIConfig:
    url = base_url or (os.getenv(_BASE_URL_ENV) or "").strip() or DEFAULT_BASE_URL
    if timeout is None or timeout <= 0:
        timeout = _read_positive_float(_TIMEOUT_ENV, DEFAULT_TIMEOUT)
    return CLIConfig(base_url=normalize_base_url(url), timeout=timeout)
