from __future__ import annotations

import os
import pathlib
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv


def _bool_from_env(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _int_from_env(value: Optional[str], default: int) -> int:
    if value is None or value == "":
        return default
    return int(value)


def _require_env(key: str) -> str:
    value = os.getenv(key)
    if value is None or value == "":
        raise RuntimeError(f"Missing required environment variable: {key}")
    return value


@dataclass(frozen=True)
class KeeperSettings:
    raffle_url: str
    poll_interval_seconds: int = 30
    run_once: bool = False
    state_file: str = "keeper_state.json"
    timeout_seconds: int = 10
    stuck_after_seconds: int = 600


def load_from_environment() -> KeeperSettings:
    return KeeperSettings(
        raffle_url=_require_env("RAFFLE_URL").rstrip("/"),
        poll_interval_seconds=_int_from_env(os.getenv("POLL_INTERVAL_SECONDS"), 30),
        run_once=_bool_from_env(os.getenv("RUN_ONCE"), False),
        state_file=os.getenv("STATE_FILE", "keeper_state.json"),
        timeout_seconds=_int_from_env(os.getenv("KEEPER_TIMEOUT_SECONDS"), 10),
        stuck_after_seconds=_int_from_env(os.getenv("STUCK_AFTER_SECONDS"), 600),
    )


@lru_cache(maxsize=1)
def load_config(dotenv_path: Optional[str] = None) -> KeeperSettings:
    if dotenv_path:
        load_dotenv(dotenv_path)
    else:
        default_path = pathlib.Path(".env")
        if default_path.exists():
            load_dotenv(default_path)
    return load_from_environment()
