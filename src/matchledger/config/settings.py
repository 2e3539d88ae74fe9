"""Runtime settings sourced from the environment."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path


logger = logging.getLogger(__name__)

_DB_PATH_ENV = "MATCHLEDGER_DB_PATH"
_RELOAD_DEBOUNCE_ENV = "MATCHLEDGER_RELOAD_DEBOUNCE"
_STORE_TIMEOUT_ENV = "MATCHLEDGER_STORE_TIMEOUT"
_LEGACY_FALLBACK_ENV = "MATCHLEDGER_LEGACY_TX_FALLBACK"

_DEFAULT_DB_PATH = Path("matchledger.sqlite")
_RELOAD_DEBOUNCE_DEFAULT = 0.1
_STORE_TIMEOUT_DEFAULT = 5.0


@dataclass(frozen=True)
class Settings:
    db_path: Path | str = _DEFAULT_DB_PATH
    reload_debounce: float = _RELOAD_DEBOUNCE_DEFAULT
    store_timeout: float = _STORE_TIMEOUT_DEFAULT
    legacy_transaction_fallback: bool = False


def _env_float(name: str, default: float, *, clamp_min: float | None = None, clamp_max: float | None = None) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Invalid float for %s: %s; using default %.2f", name, raw, default)
        return default
    if clamp_min is not None:
        value = max(clamp_min, value)
    if clamp_max is not None:
        value = min(clamp_max, value)
    return value


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    normalized = raw.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off", ""}:
        return False
    logger.warning("Invalid flag for %s: %s; using default %s", name, raw, default)
    return default


def load_settings() -> Settings:
    env_db = os.getenv(_DB_PATH_ENV)
    db_path: Path | str
    if env_db and env_db.startswith("file:"):
        db_path = env_db
    elif env_db:
        db_path = Path(env_db)
    else:
        db_path = _DEFAULT_DB_PATH
    return Settings(
        db_path=db_path,
        reload_debounce=_env_float(_RELOAD_DEBOUNCE_ENV, _RELOAD_DEBOUNCE_DEFAULT, clamp_min=0.0),
        store_timeout=_env_float(_STORE_TIMEOUT_ENV, _STORE_TIMEOUT_DEFAULT, clamp_min=0.1, clamp_max=120.0),
        legacy_transaction_fallback=_env_flag(_LEGACY_FALLBACK_ENV, False),
    )
