# cache_mutex/config.py

from __future__ import annotations

import os
import re
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

from loguru import logger


BACKENDS = ("redis", "sql", "memory")


def env_bool(name: str, default: bool = False) -> bool:
    """
    Parses an environment variable as a boolean.
    Returns the default value if the variable is unset.
    True values: "1", "true", "t", "yes", "y", "on" (case-insensitive).
    """
    val = os.environ.get(name)
    if val is None:
        return default
    return val.strip().lower() in {"1", "true", "t", "yes", "y", "on"}

def env_int(name: str, default: int, *, min_value: int = 1) -> int:
    """
    Parses an environment variable as an integer.
    Returns the default value if the variable is unset.
    """
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        val = int(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got={raw!r}") from e
    if val < min_value:
        raise ValueError(f"{name} must be >= {min_value}, got={val}")
    return val


def env_float(name: str, default: Optional[float], *, min_value: float = 0.0) -> Optional[float]:
    """
    Parses an environment variable as a float.
    Returns the default value (which may be None) if the variable is unset.
    """
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        val = float(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be a number, got={raw!r}") from e
    if val < min_value:
        raise ValueError(f"{name} must be >= {min_value}, got={val}")
    return val


def env_list(name: str, default: Tuple[str, ...]) -> Tuple[str, ...]:
    """Parses a comma-separated environment variable, dropping blanks."""
    raw = os.environ.get(name)
    if raw is None:
        return default
    items = tuple(part.strip() for part in raw.split(",") if part.strip())
    return items or default


def env_regex(name: str, default: str) -> str:
    """
    Reads a regular expression from an environment variable.
    Returns the default pattern if the variable is unset or empty.
    """
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        re.compile(raw)
    except re.error as e:
        raise ValueError(f"{name} must be a valid regex, got={raw!r}: {e}") from e
    return raw


def project_root() -> Path:
    """Returns the absolute path to the project root directory."""
    return Path(__file__).resolve().parents[1]


@dataclass(frozen=True)
class Paths:
    """Immutable container for project directory paths."""
    base_dir: Path
    log_dir: Path


def build_paths() -> Paths:
    """
    Resolves project paths and creates the log directory on disk.
    LOG_DIR overrides the default ./logs location.
    """
    base = project_root()

    log_dir = Path(os.getenv("LOG_DIR", str(base / "logs")))
    log_dir.mkdir(parents=True, exist_ok=True)

    return Paths(base_dir=base, log_dir=log_dir)


@dataclass(frozen=True)
class StoreSettings:
    """Where lock records live and how their keys are prefixed."""
    backend: str = "redis"
    servers: Tuple[str, ...] = ("localhost",)
    namespace: str = "cache_mutex"
    url: Optional[str] = None
    table: str = "mutex_locks"


def load_store_settings() -> StoreSettings:
    """
    Loads store settings from environment variables.

    - MUTEX_BACKEND: redis | sql | memory
    - MUTEX_SERVERS: comma-separated addresses (redis backend)
    - MUTEX_NAMESPACE: prefix applied to every lock key
    - MUTEX_DB_URL: SQLAlchemy URL (sql backend)
    - MUTEX_TABLE: lock table name (sql backend)
    """
    backend = (os.environ.get("MUTEX_BACKEND") or "redis").strip().lower()
    if backend not in BACKENDS:
        raise ValueError(f"MUTEX_BACKEND must be one of {BACKENDS}, got={backend!r}")

    return StoreSettings(
        backend=backend,
        servers=env_list("MUTEX_SERVERS", ("localhost",)),
        namespace=os.environ.get("MUTEX_NAMESPACE", "cache_mutex").strip(),
        url=os.environ.get("MUTEX_DB_URL") or None,
        table=os.environ.get("MUTEX_TABLE", "mutex_locks").strip(),
    )


@dataclass(frozen=True)
class RetrySettings:
    """Retry budget for transient store errors."""
    resilient: bool = True
    attempts: int = 5
    delay_s: float = 30.0
    matching: str = "IO timeout"


def load_retry_settings() -> RetrySettings:
    return RetrySettings(
        resilient=env_bool("MUTEX_RESILIENT", default=True),
        attempts=env_int("MUTEX_RETRY_ATTEMPTS", 5, min_value=1),
        delay_s=env_float("MUTEX_RETRY_DELAY_S", 30.0),
        matching=env_regex("MUTEX_RETRY_MATCHING", "IO timeout"),
    )


@dataclass(frozen=True)
class MutexSettings:
    """Polling cadence and default acquisition window (None = wait forever)."""
    poll_s: float = 0.1
    timeout_s: Optional[float] = None


def load_mutex_settings() -> MutexSettings:
    poll_s = env_float("MUTEX_POLL_S", 0.1)
    if poll_s <= 0:
        raise ValueError(f"MUTEX_POLL_S must be > 0, got={poll_s}")
    return MutexSettings(
        poll_s=poll_s,
        timeout_s=env_float("MUTEX_TIMEOUT_S", None),
    )


def configure_logging(paths: Paths) -> None:
    """Configure loguru sinks (console + file)."""
    logger.remove()

    def _console_sink(message: str) -> None:
        """
        Writes logs to stderr, resolved per call so redirected streams are honored.
        stdout stays free for command output.
        """
        sys.stderr.write(message)
        sys.stderr.flush()

    # Console sink
    logger.add(
        _console_sink,
        level=os.getenv("LOG_LEVEL", "INFO"),
        colorize=True,
        backtrace=False,
        diagnose=False,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
               "<level>{level}</level> | "
               "<level>{message}</level>\n",
    )

    # File sink
    logger.add(
        str(paths.log_dir / "app.log"),
        rotation="10 MB",
        retention="7 days",
        level="DEBUG",
        backtrace=False,
        diagnose=False,
        format="{time:YYYY-MM-DD HH:mm:ss} | {level} | {name}:{function}:{line} | {message}",
    )
