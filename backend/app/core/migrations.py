from pathlib import Path
import logging
import os
import threading
import time
import traceback

from alembic import command
from alembic.config import Config

from app.db import BuildAdminConnectionUrl

logger = logging.getLogger("app.migrations")

BACKEND_ROOT = Path(__file__).resolve().parents[2]


def _read_int_env(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _build_alembic_config() -> Config:
    config_path = BACKEND_ROOT / "alembic.ini"
    if not config_path.exists():
        raise RuntimeError("Missing alembic.ini for migrations")
    alembic_cfg = Config(str(config_path))
    alembic_cfg.set_main_option("sqlalchemy.url", BuildAdminConnectionUrl())
    alembic_cfg.set_main_option("script_location", str(BACKEND_ROOT / "alembic"))
    return alembic_cfg


def RunMigrations(revision: str = "head") -> None:
    """Upgrade the ledger database, giving up after MIGRATIONS_TIMEOUT_SECONDS.

    Alembic runs on a daemon thread so a hung DDL lock cannot block the
    request that triggered it forever; progress is logged while it waits.
    """
    alembic_cfg = _build_alembic_config()
    timeout_seconds = _read_int_env("MIGRATIONS_TIMEOUT_SECONDS", 600)
    progress_seconds = max(_read_int_env("MIGRATIONS_PROGRESS_LOG_SECONDS", 20), 1)

    logger.info(
        "running migrations revision=%s timeout=%ss progress_log=%ss",
        revision,
        timeout_seconds,
        progress_seconds,
    )

    error: dict[str, str] = {}
    done = threading.Event()

    def _run() -> None:
        try:
            command.upgrade(alembic_cfg, revision)
        except Exception:  # noqa: BLE001
            error["trace"] = traceback.format_exc()
        finally:
            done.set()

    thread = threading.Thread(target=_run, name="alembic-upgrade", daemon=True)
    thread.start()
    start = time.monotonic()

    while not done.wait(timeout=progress_seconds):
        elapsed = int(time.monotonic() - start)
        logger.info("migrations still running elapsed=%ss", elapsed)
        if timeout_seconds > 0 and elapsed >= timeout_seconds:
            logger.error("migrations timed out elapsed=%ss", elapsed)
            raise TimeoutError(f"migrations timed out after {elapsed}s")

    if "trace" in error:
        logger.error("migrations failed:\n%s", error["trace"])
        raise RuntimeError("migrations failed")

    logger.info("migrations complete revision=%s", revision)
