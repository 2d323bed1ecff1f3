"""
Configuration loader for the BisnisPintar package.

Reads `docs/protocol/CONFIG.yaml`, normalises environment variables, and exposes
typed accessors for downstream modules (snapshot storage, database session
factory, advisor client).
"""
from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional, Union

import os

import yaml
from dotenv import load_dotenv

ROOT_DIR = Path(__file__).resolve().parents[2]
DEFAULT_CONFIG_PATH = ROOT_DIR / "docs/protocol/CONFIG.yaml"

DEFAULT_SLOT_KEY = "bisnisPintarItems"
DEFAULT_GEMINI_BASE = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_GEMINI_MODEL = "gemini-2.5-flash"

# .env.local preferred, then .env; the real environment always wins
load_dotenv(ROOT_DIR / ".env.local", override=False)
load_dotenv(ROOT_DIR / ".env", override=False)


def _expand_env(value: Any) -> Any:
    """Recursively expand environment variables inside CONFIG values."""
    if isinstance(value, str):
        return os.path.expandvars(value)
    if isinstance(value, list):
        return [_expand_env(item) for item in value]
    if isinstance(value, dict):
        return {key: _expand_env(val) for key, val in value.items()}
    return value


@dataclass(frozen=True)
class AppSettings:
    title: str = "BisnisPintar AI"
    reports_dir: str = "data/reports"
    default_category: str = "Umum"
    chart_limit: int = 10


@dataclass(frozen=True)
class StorageSettings:
    backend: str = "sqlite"
    slot_key: str = DEFAULT_SLOT_KEY
    json_dir: str = "data/slots"


@dataclass(frozen=True)
class DBSettings:
    uri: str = "sqlite:///db/bisnis_pintar.db"


@dataclass(frozen=True)
class AdvisorSettings:
    api_base: str = DEFAULT_GEMINI_BASE
    model: str = DEFAULT_GEMINI_MODEL
    api_key_env: str = "GEMINI_API_KEY"
    timeout_s: float = 60.0
    retry_attempts: int = 3
    sample_size: int = 20

    def resolve_api_key(self) -> str:
        """Return the configured key, falling back to the legacy API_KEY variable."""
        for name in (self.api_key_env, "API_KEY"):
            value = (os.getenv(name) or "").strip()
            if value:
                return value
        return ""


@dataclass(frozen=True)
class AppConfig:
    app: AppSettings
    storage: StorageSettings
    db: DBSettings
    advisor: AdvisorSettings


def resolve_path(raw: Union[str, Path]) -> Path:
    """Anchor relative paths at the repository root."""
    path = Path(raw)
    if not path.is_absolute():
        path = ROOT_DIR / path
    return path


@lru_cache(maxsize=1)
def load_config(path: Optional[Union[str, Path]] = None) -> AppConfig:
    """
    Load the configuration file and convert it into typed objects.

    Parameters
    ----------
    path: Optional path override; defaults to docs/protocol/CONFIG.yaml.
    """
    cfg_path = Path(path) if path else DEFAULT_CONFIG_PATH
    if not cfg_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {cfg_path}")

    with cfg_path.open("r", encoding="utf-8") as fh:
        raw_data: Dict[str, Any] = yaml.safe_load(fh) or {}

    expanded = _expand_env(raw_data)

    app_cfg = AppSettings(**(expanded.get("app") or {}))
    storage_cfg = StorageSettings(**(expanded.get("storage") or {}))
    db_cfg = DBSettings(**(expanded.get("db") or {}))
    advisor_cfg = AdvisorSettings(**(expanded.get("advisor") or {}))

    return AppConfig(
        app=app_cfg,
        storage=storage_cfg,
        db=db_cfg,
        advisor=advisor_cfg,
    )


__all__ = [
    "AdvisorSettings",
    "AppConfig",
    "AppSettings",
    "DBSettings",
    "StorageSettings",
    "load_config",
    "resolve_path",
]
