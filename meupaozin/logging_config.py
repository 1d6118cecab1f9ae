"""Centralized logging configuration for the API process."""

import logging
import logging.handlers
from pathlib import Path
from typing import Any

from meupaozin.correlation import install_logrecord_factory

_FORMAT = "%(asctime)s [%(levelname)s] %(name)s [%(correlation_id)s]: %(message)s"


def _file_handler(project_root: Path, cfg: dict[str, Any], level: int) -> logging.Handler:
    log_file = cfg.get("file", "data/logs/app.log")
    max_bytes = int(cfg.get("max_bytes", 10 * 1024 * 1024))
    backup_count = int(cfg.get("backup_count", 3))
    log_path = project_root / log_file
    log_path.parent.mkdir(parents=True, exist_ok=True)
    h = logging.handlers.RotatingFileHandler(
        log_path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
    )
    h.setLevel(level)
    return h


def _console_handler(level: int) -> logging.Handler:
    h = logging.StreamHandler()
    h.setLevel(level)
    return h


def setup_logging(project_root: Path, settings: dict[str, Any]) -> None:
    """Configure the root logger: rotating file handler with optional console output.

    Reads config from settings.get("logging", {}). Creates the log directory
    if needed. Every record carries the request correlation id ("-" outside
    of a request).
    """
    cfg = settings.get("logging", {})
    level_name = str(cfg.get("level", "INFO")).upper()
    log_to_console = cfg.get("log_to_console", True)
    level = getattr(logging, level_name, logging.INFO)
    install_logrecord_factory()
    formatter = logging.Formatter(_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    root = logging.getLogger()
    root.setLevel(level)
    for h in root.handlers[:]:
        root.removeHandler(h)
    file_handler = _file_handler(project_root, cfg, level)
    file_handler.setFormatter(formatter)
    root.addHandler(file_handler)
    if log_to_console:
        console_handler = _console_handler(level)
        console_handler.setFormatter(formatter)
        root.addHandler(console_handler)
    # aiokafka is chatty at INFO during reconnects
    logging.getLogger("aiokafka").setLevel(max(level, logging.WARNING))
