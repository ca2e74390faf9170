import json
import logging
import os
import time
from logging.handlers import RotatingFileHandler

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LEDGER_LOGGERS = ("points", "app.points_ledger", "app.points_banking", "app.points_notifications")


class LocalTimeFormatter(logging.Formatter):
    converter = time.localtime


def _build_file_handler(path: str, level: str, formatter: logging.Formatter) -> RotatingFileHandler:
    max_bytes = int(os.getenv("LOG_MAX_BYTES", "5000000"))
    backup_count = int(os.getenv("LOG_BACKUP_COUNT", "5"))
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    handler = RotatingFileHandler(path, maxBytes=max_bytes, backupCount=backup_count)
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging() -> None:
    log_level = os.getenv("LOG_LEVEL", "INFO").upper()
    ledger_level = os.getenv("POINTS_LOG_LEVEL", "").strip().upper() or log_level
    log_file_path = os.getenv("LOG_FILE_PATH", "/app/logs/backend.log").strip()
    frontend_log_file_path = os.getenv("FRONTEND_LOG_FILE_PATH", "/app/logs/frontend.log").strip()

    formatter = LocalTimeFormatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)
    # An empty path keeps logging on the console only.
    if log_file_path:
        root_logger.addHandler(_build_file_handler(log_file_path, log_level, formatter))

    for name in LEDGER_LOGGERS:
        logging.getLogger(name).setLevel(ledger_level)

    frontend_logger = logging.getLogger("frontend")
    frontend_logger.handlers.clear()
    frontend_logger.propagate = False
    frontend_logger.setLevel(log_level)
    frontend_logger.addHandler(console_handler)
    if frontend_log_file_path:
        frontend_logger.addHandler(_build_file_handler(frontend_log_file_path, log_level, formatter))

    logging.getLogger("uvicorn.access").handlers.clear()


def format_frontend_message(message: str, context: dict | None = None) -> str:
    if not context:
        return message
    payload = {"message": message, "context": context}
    return json.dumps(payload, separators=(",", ":"))
