"""Logging setup for the respimg package logger and its per-module overrides."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from respimg.config.loader import LoggingSettings

LOGGER_NAME = "respimg"
LOG_FILENAME = f"{LOGGER_NAME}.log"
LOG_FORMAT = "%(asctime)s %(process)08x %(thread)08x %(levelname).1s %(module)s %(message)s"
MAX_BYTES = 2 * 1024 * 1024
BACKUP_COUNT = 5

_overridden: set[str] = set()


def configure_logging(settings: LoggingSettings | None = None) -> logging.Logger:
    """Attach respimg's handlers according to ``settings`` and return the package logger.

    Records from ``respimg.*`` loggers go to a rotating file (and stderr when
    ``settings.console`` is set). Entries in ``settings.modules`` raise or lower
    single sub-loggers such as ``respimg.cache`` without changing the package
    level; handlers accept the lowest configured level so those overrides are
    not filtered out again on the way to the file.
    """

    settings = settings or LoggingSettings()
    package_level = level_number(settings.level)
    module_levels = {qualify(name): level_number(level) for name, level in settings.modules.items()}

    logger = logging.getLogger(LOGGER_NAME)
    _detach_handlers(logger)
    _reset_overrides()
    logger.propagate = False
    logger.setLevel(package_level)

    for name, level in module_levels.items():
        logging.getLogger(name).setLevel(level)
        _overridden.add(name)

    handler_level = min([package_level, *module_levels.values()])
    formatter = logging.Formatter(LOG_FORMAT)
    for handler in _build_handlers(settings):
        handler.setLevel(handler_level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger


def level_number(level: str) -> int:
    """Map ``debug``/``warn``/``ERROR``... onto the logging constants."""

    candidate = level.strip().upper()
    if candidate == "WARN":
        candidate = "WARNING"
    numeric = logging.getLevelName(candidate)
    if not isinstance(numeric, int):
        raise ValueError(f"Unsupported log level: {level!r}")
    return numeric


def qualify(name: str) -> str:
    """Place a relative logger name (``cache``) under the package (``respimg.cache``)."""

    name = name.strip(".")
    if name == LOGGER_NAME or name.startswith(f"{LOGGER_NAME}."):
        return name
    return f"{LOGGER_NAME}.{name}"


def log_file_path(path: Path | None) -> Path:
    """Resolve the log file; directories and suffix-less paths receive ``respimg.log``."""

    if path is None:
        return Path.cwd() / LOG_FILENAME
    candidate = path if path.is_absolute() else Path.cwd() / path
    if candidate.is_dir() or candidate.suffix == "":
        return candidate / LOG_FILENAME
    return candidate


def _build_handlers(settings: LoggingSettings) -> list[logging.Handler]:
    file_path = log_file_path(settings.path)
    file_path.parent.mkdir(parents=True, exist_ok=True)
    handlers: list[logging.Handler] = [
        RotatingFileHandler(file_path, maxBytes=MAX_BYTES, backupCount=BACKUP_COUNT, encoding="utf-8")
    ]
    if settings.console:
        handlers.append(logging.StreamHandler())
    return handlers


def _detach_handlers(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


def _reset_overrides() -> None:
    while _overridden:
        logging.getLogger(_overridden.pop()).setLevel(logging.NOTSET)
