"""Environment driven settings and logging setup."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from comics_api.errors import ConfigurationError

PORT_ENV_VAR = "PORT"
ENVIRONMENT_ENV_VAR = "COMICS_ENV"
STORE_ENV_VAR = "COMICS_STORE"
DB_PATH_ENV_VAR = "COMICS_DB_PATH"
SEED_ENV_VAR = "COMICS_SEED"
LOG_LEVEL_ENV_VAR = "COMICS_LOG_LEVEL"

DEFAULT_PORT = 8082
DEFAULT_ENVIRONMENT = "development"
DEFAULT_DB_PATH = Path("comics.db")
DEFAULT_LOG_LEVEL = "INFO"

STORE_SQLITE = "sqlite"
STORE_MEMORY = "memory"
STORE_KINDS = (STORE_SQLITE, STORE_MEMORY)

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


@dataclass(frozen=True)
class Settings:
    """Runtime configuration for the API process."""

    port: int = DEFAULT_PORT
    environment: str = DEFAULT_ENVIRONMENT
    store: str = STORE_SQLITE
    db_path: Path = DEFAULT_DB_PATH
    seed: bool = True
    log_level: str = DEFAULT_LOG_LEVEL


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """Build ``Settings`` from the process environment (or a given mapping)."""
    env = os.environ if environ is None else environ

    raw_port = env.get(PORT_ENV_VAR)
    if raw_port:
        try:
            port = int(raw_port)
        except ValueError as exc:
            raise ConfigurationError(
                f"Invalid value for {PORT_ENV_VAR}: {raw_port!r}"
            ) from exc
        if not 0 < port < 65536:
            raise ConfigurationError(f"{PORT_ENV_VAR} out of range: {port}")
    else:
        port = DEFAULT_PORT

    store = (env.get(STORE_ENV_VAR) or STORE_SQLITE).strip().lower()
    if store not in STORE_KINDS:
        raise ConfigurationError(
            f"Invalid value for {STORE_ENV_VAR}: {store!r} "
            f"(expected one of {', '.join(STORE_KINDS)})"
        )

    raw_db_path = env.get(DB_PATH_ENV_VAR)
    db_path = Path(raw_db_path) if raw_db_path else DEFAULT_DB_PATH

    return Settings(
        port=port,
        environment=env.get(ENVIRONMENT_ENV_VAR) or DEFAULT_ENVIRONMENT,
        store=store,
        db_path=db_path,
        seed=_parse_bool(SEED_ENV_VAR, env.get(SEED_ENV_VAR), default=True),
        log_level=(env.get(LOG_LEVEL_ENV_VAR) or DEFAULT_LOG_LEVEL).upper(),
    )


def _parse_bool(name: str, value: str | None, *, default: bool) -> bool:
    if value in (None, ""):
        return default
    lowered = value.strip().lower()
    if lowered in _TRUTHY:
        return True
    if lowered in _FALSY:
        return False
    raise ConfigurationError(f"Invalid value for {name}: {value!r}")


def configure_logging(level: str = DEFAULT_LOG_LEVEL) -> None:
    """Attach a console handler to the root logger once."""
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    if root.handlers:
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    root.addHandler(handler)


__all__ = ["Settings", "configure_logging", "load_settings"]
