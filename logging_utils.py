"""File logging for Ondas (the terminal belongs to the TUI, so no console handler)."""
import logging
import os
import traceback
from datetime import datetime
from pathlib import Path
from typing import Optional

_LOGGER = logging.getLogger("ondas.logging")
LOG_DIR_ENV = "ONDAS_LOG_DIR"
LOG_FILE = "ondas.log"
_FILE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
_FILE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
_logging_configured = False


def get_log_dir() -> Path:
    configured = os.environ.get(LOG_DIR_ENV)
    if configured:
        return Path(configured).expanduser()
    return Path.home() / ".ondas" / "logs"


def get_log_path() -> Path:
    return get_log_dir() / LOG_FILE


def configure_logging(*, force: bool = False, level: int = logging.DEBUG) -> Optional[Path]:
    """Attach a file handler to the ``ondas`` logger. Safe to call repeatedly."""
    global _logging_configured
    logger = logging.getLogger("ondas")
    if _logging_configured and not force:
        return get_log_path()

    if force:
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()

    logger.setLevel(level)
    try:
        log_dir = get_log_dir()
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(get_log_path(), encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt=_FILE_DATE_FORMAT))
        logger.addHandler(file_handler)
    except OSError as exc:
        _LOGGER.warning("Failed to configure file logging: %s", exc, exc_info=True)
        return None

    _logging_configured = True
    return get_log_path()


def log_exception(context: str, exc: BaseException) -> Optional[Path]:
    """Append ``exc`` with its traceback to the log file; returns the path written."""
    try:
        log_dir = get_log_dir()
        log_dir.mkdir(parents=True, exist_ok=True)
        path = get_log_path()
        timestamp = datetime.now().isoformat()
        with path.open("a", encoding="utf-8") as handle:
            handle.write(f"[{timestamp}] {context} failed: {type(exc).__name__}: {exc}\n")
            traceback.print_exception(type(exc), exc, exc.__traceback__, file=handle)
            handle.write("\n")
        return path
    except OSError as log_exc:
        _LOGGER.warning("Failed to write log file: %s", log_exc, exc_info=True)
        return None
