# main.py

from __future__ import annotations

import os
import subprocess
import sys
from pathlib import Path

import click
from dotenv import load_dotenv
from loguru import logger

# Import internal project components
from cache_mutex.config import (
    build_paths,
    configure_logging,
    load_mutex_settings,
    load_retry_settings,
    load_store_settings,
)
from cache_mutex.core.pool import MutexPool
from cache_mutex.errors import LockTimeoutError, MutexError
from cache_mutex.stores.factory import build_store

# --- 1. Environment Setup ---
# Load .env from the same folder as main.py for local development
ENV_PATH = Path(__file__).resolve().parent / ".env"

# Allow system environment variables (Docker/CI) to override .env
load_dotenv(dotenv_path=ENV_PATH, override=False)

# Exit code for "lock not obtained in time"
EXIT_LOCK_TIMEOUT = 3


# --- 2. Helper Functions ---

def env_default(name: str, default: str | None = None) -> str | None:
    """Retrieve env var, returning default if None or empty."""
    val = os.getenv(name)
    return val if val not in (None, "") else default


# --- 3. Dependency Injection Builders ---

def build_pool() -> MutexPool:
    """Assemble a MutexPool from environment settings."""
    store_settings = load_store_settings()
    logger.debug(
        f"Store backend={store_settings.backend} servers={','.join(store_settings.servers)} "
        f"namespace={store_settings.namespace}"
    )
    store = build_store(store_settings)
    return MutexPool.from_settings(
        store,
        retry_settings=load_retry_settings(),
        mutex_settings=load_mutex_settings(),
    )


# --- 4. Main CLI Commands ---

CONTEXT_SETTINGS = dict(help_option_names=['-h', '--help'], max_content_width=120)


@click.group(context_settings=CONTEXT_SETTINGS)
def cli() -> None:
    """
    CROSS-PROCESS MUTEX TOOL

    Serializes commands across hosts through a shared Redis or SQL store.

    \b
    USAGE EXAMPLES:
    1. Run a job under a lock, waiting at most 30s:
       $ python main.py run --key nightly-report --timeout 30 -- ./report.sh

    2. Inspect or clear a stuck lock:
       $ python main.py status --key nightly-report
       $ python main.py clear --key nightly-report --yes
    """
    paths = build_paths()
    configure_logging(paths)


@cli.command("run", help="Run a command while holding the named lock.")
@click.option("--key", default=lambda: env_default("MUTEX_KEY"), required=True,
              help="Lock name.")
@click.option("--timeout", type=float, default=None,
              help="Seconds to wait for the lock (default: MUTEX_TIMEOUT_S, or forever).")
@click.argument("command", nargs=-1, required=True, type=click.UNPROCESSED)
def run_cmd(key: str, timeout: float | None, command: tuple[str, ...]) -> None:
    try:
        pool = build_pool()
        mutex = pool.mutex(key) if timeout is None else pool.mutex(key, timeout)

        logger.info(f"Waiting for lock '{key}' (timeout={mutex.timeout})")
        result = mutex.run(lambda: subprocess.run(list(command), check=False))

    except LockTimeoutError as error:
        logger.error(str(error))
        sys.exit(EXIT_LOCK_TIMEOUT)
    except (MutexError, ValueError, OSError) as error:
        logger.exception(f"Locked run failed: {error}")
        sys.exit(1)

    logger.info(f"Command finished with exit code {result.returncode}; lock '{key}' released")
    sys.exit(result.returncode)


@cli.command("status", help="Show who currently holds the named lock.")
@click.option("--key", required=True, help="Lock name.")
def status_cmd(key: str) -> None:
    try:
        holder = build_pool().mutex(key).current_lock()
    except (MutexError, ValueError) as error:
        logger.error(f"Status check failed: {error}")
        sys.exit(1)

    click.echo(holder if holder is not None else "unlocked")


@cli.command("clear", help="Delete the lock record regardless of owner (stuck locks only).")
@click.option("--key", required=True, help="Lock name.")
@click.option("--yes", is_flag=True, help="Confirm deletion without prompting.")
def clear_cmd(key: str, yes: bool) -> None:
    try:
        pool = build_pool()
        holder = pool.mutex(key).current_lock()
        if holder is None:
            click.echo("unlocked")
            return

        if not yes:
            click.confirm(f"Delete lock '{key}' held by {holder}?", abort=True)

        pool.retry.execute(lambda: pool.store.delete(key))
    except (MutexError, ValueError) as error:
        logger.error(f"Clear failed: {error}")
        sys.exit(1)

    logger.warning(f"Lock '{key}' cleared (was held by {holder})")
    click.echo(f"cleared {holder}")


if __name__ == "__main__":
    cli()
