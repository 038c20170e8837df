"""Application configuration helpers."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Callable, Optional

from pydantic import BaseModel, ConfigDict, Field

ENV_FILE_CANDIDATES = (Path(".env"), Path(".env.local"))


class Settings(BaseModel):
    """Global application settings loaded from environment variables or .env files."""

    database_path: Path = Field(
        default=Path("./data/aisle.db"),
        description="SQLite database location.",
    )
    api_token: Optional[str] = Field(
        default=None,
        description="Bearer token required for mutating endpoints.",
    )
    log_level: str = Field(default="INFO", description="Logging level (DEBUG/INFO/WARNING/ERROR)")
    log_format: str = Field(
        default="plain",
        description="Logging format (plain/json).",
    )
    log_requests: bool = Field(
        default=True,
        description="Emit request access logs when true.",
    )
    seed_default_stores: bool = Field(
        default=False,
        description="Create the default store set on startup when no store exists.",
    )
    rebalance_epsilon: float = Field(
        default=1e-6,
        gt=0,
        description="Neighbouring sort keys closer than this are reported as crowded.",
    )
    server_host: str = Field(default="127.0.0.1", description="Interface uvicorn binds to.")
    server_port: int = Field(default=8000, ge=1, le=65535, description="Port uvicorn listens on.")

    model_config = ConfigDict(frozen=True)


def _coerce_bool(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


ENV_PREFIX = "AISLE_"

# Settings field -> converter for its raw env value. Values that fail to convert
# are skipped and the field keeps its default.
_CONVERTERS: dict[str, Callable[[str], object]] = {
    "database_path": Path,
    "api_token": str,
    "log_level": str,
    "log_format": str,
    "log_requests": _coerce_bool,
    "seed_default_stores": _coerce_bool,
    "rebalance_epsilon": float,
    "server_host": str,
    "server_port": int,
}


def _read_env_file(path: Path) -> dict[str, str]:
    if not path.is_file():
        return {}
    values: dict[str, str] = {}
    for raw_line in path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, raw_value = line.split("=", 1)
        values[key.strip()] = raw_value.strip().strip("\"'")
    return values


def _load_from_env() -> dict[str, object]:
    """Collect ``AISLE_*`` overrides; the process environment wins over .env files."""

    file_values: dict[str, str] = {}
    for candidate in ENV_FILE_CANDIDATES:
        file_values.update(_read_env_file(candidate))

    payload: dict[str, object] = {}
    for field, convert in _CONVERTERS.items():
        key = ENV_PREFIX + field.upper()
        raw = os.environ.get(key) or file_values.get(key)
        if not raw:
            continue
        try:
            payload[field] = convert(raw)
        except ValueError:
            continue
    return payload


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings."""

    return Settings(**_load_from_env())
