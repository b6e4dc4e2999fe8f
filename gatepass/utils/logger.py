# gatepass/utils/logger.py
"""
Logging for the gate pass backend.

Application logs go to the console and, unless LOG_TO_FILE is off, to a
rotating file in /logs/. Committed gate pass changes (creation, gate steps,
approval actions, cancellation) are also written as one line each to the
gate audit trail, a separate rotating file the security office can keep
for longer than the application log.
"""

import logging
import os
from logging.handlers import RotatingFileHandler

from gatepass.config import settings

LOG_LEVEL = settings.LOG_LEVEL.upper()
LOG_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.dirname(__file__))), "logs")
AUDIT_LOGGER_NAME = "gatepass.audit"

_configured = False


def _rotating_file(filename: str, backup_count: int, fmt: logging.Formatter) -> RotatingFileHandler:
    os.makedirs(LOG_DIR, exist_ok=True)
    handler = RotatingFileHandler(
        filename=os.path.join(LOG_DIR, filename),
        maxBytes=5 * 1024 * 1024,
        backupCount=backup_count,
        encoding="utf-8",
    )
    handler.setFormatter(fmt)
    return handler


def _configure_root_logger():
    global _configured
    if _configured:
        return
    _configured = True

    fmt = logging.Formatter(
        fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console = logging.StreamHandler()
    console.setLevel(LOG_LEVEL)
    console.setFormatter(fmt)

    root = logging.getLogger()
    root.setLevel(LOG_LEVEL)
    root.addHandler(console)

    audit_logger = logging.getLogger(AUDIT_LOGGER_NAME)
    audit_logger.setLevel(logging.INFO)

    if settings.LOG_TO_FILE:
        app_file = _rotating_file("gatepass.log", 10, fmt)
        app_file.setLevel(LOG_LEVEL)
        root.addHandler(app_file)

        # Audit lines carry their own timestamp and pass id, nothing else
        audit_file = _rotating_file(
            settings.AUDIT_LOG_FILE,
            settings.AUDIT_LOG_BACKUPS,
            logging.Formatter("%(asctime)s | %(message)s", datefmt="%Y-%m-%dT%H:%M:%S%z"),
        )
        audit_logger.addHandler(audit_file)


def get_logger(name: str) -> logging.Logger:
    """Get a named logger. Call this at the top of every module."""
    _configure_root_logger()
    return logging.getLogger(name)


def format_audit(action: str, pass_id: str, **details) -> str:
    """One audit line: action, pass id, then key=value details in a stable order."""
    parts = [action, f"pass={pass_id}"]
    parts.extend(f"{key}={value}" for key, value in sorted(details.items()) if value is not None)
    return " ".join(parts)


def audit(action: str, pass_id: str, **details):
    """Record a committed gate pass change on the audit trail."""
    get_logger(AUDIT_LOGGER_NAME).info(format_audit(action, pass_id, **details))
