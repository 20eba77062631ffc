from __future__ import annotations

import os
from datetime import UTC, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.environ.get(name, str(default)))
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.environ.get(name, str(default)))
    except ValueError:
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    raw = raw.strip().lower()
    if raw in {"1", "true", "yes", "y", "on"}:
        return True
    if raw in {"0", "false", "no", "n", "off"}:
        return False
    return default


def load_timezone(name: str) -> tzinfo:
    name = (name or "").strip()
    if not name or name.upper() == "UTC":
        return UTC
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"Unknown timezone: {name}") from e


BY_CHANNEL = _env_bool("TVSORT_BY_CHANNEL", False)
TIMEZONE = os.environ.get("TVSORT_TIMEZONE", "UTC").strip() or "UTC"
WORKERS = max(1, _env_int("TVSORT_WORKERS", 1))
LOG_LEVEL = os.environ.get("TVSORT_LOG_LEVEL", "INFO").strip().upper() or "INFO"
HTTP_TIMEOUT_SECONDS = _env_float("TVSORT_HTTP_TIMEOUT_SECONDS", 20.0)
USER_AGENT = os.environ.get(
    "TVSORT_USER_AGENT",
    "tvsort/0.1 (+listings normalizer)",
).strip()
