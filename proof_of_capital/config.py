"""
Environment-driven service configuration.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()


def env_int(key: str, default: int) -> int:
    val = os.getenv(key)
    if val is None or not val.strip():
        return default
    return int(val)


def env_list(key: str, default: List[str]) -> List[str]:
    val = os.getenv(key)
    if val is None:
        return list(default)
    return [v.strip() for v in val.split(",") if v.strip()]


@dataclass(frozen=True)
class Settings:
    host: str
    port: int
    log_level: int
    log_file: Optional[str]
    cors_origins: List[str]
    max_curve_levels: int
    max_scenario_steps: int


def load_settings() -> Settings:
    level_name = os.getenv("POC_LOG_LEVEL", "INFO").upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        raise ValueError(f"POC_LOG_LEVEL: unknown level {level_name!r}")

    settings = Settings(
        host=os.getenv("POC_HOST", "127.0.0.1"),
        port=env_int("POC_PORT", 8000),
        log_level=level,
        log_file=os.getenv("POC_LOG_FILE") or None,
        cors_origins=env_list("POC_CORS_ORIGINS", ["http://127.0.0.1:8000", "http://localhost:8000"]),
        max_curve_levels=env_int("POC_MAX_CURVE_LEVELS", 2000),
        max_scenario_steps=env_int("POC_MAX_SCENARIO_STEPS", 500),
    )
    if settings.max_curve_levels < 1 or settings.max_scenario_steps < 1:
        raise ValueError("POC_MAX_CURVE_LEVELS and POC_MAX_SCENARIO_STEPS must be >= 1")
    return settings
