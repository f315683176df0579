from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

DEFAULT_BASE_URL = "http://localhost:8000"
DEFAULT_TIMEOUT = 60.0


@dataclass(frozen=True)
class CLIConfig:
    base_url: str = DEFAULT_BASE_URL
    timeout: float = DEFAULT_TIMEOUT


def _positive_float(raw: Optional[str], fallback: float) -> float:
    try:
        value = float((raw or "").strip())
    except ValueError:
        return fallback
    return value if value > 0 else fallback


def load_config(
    base_url: Optional[str] = None,
    timeout: Optional[float] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> CLIConfig:
    """Command-line values win over ``API_BASE_URL`` / ``CLI_HTTP_TIMEOUT``."""
    env = os.environ if environ is None else environ
    url = base_url or env.get("API_BASE_URL") or DEFAULT_BASE_URL
    if timeout is None:
        timeout = _positive_float(env.get("CLI_HTTP_TIMEOUT"), DEFAULT_TIMEOUT)
    return CLIConfig(base_url=url.rstrip("/"), timeout=timeout)
