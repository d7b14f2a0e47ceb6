import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, MutableMapping, Optional, Tuple

from rich.logging import RichHandler

from provider_registry.constants import (
    DEBUG_LOG_FORMAT,
    INFO_LOG_FORMAT,
    LOG_DATE_FORMAT,
    LOG_FILE_BACKUP_COUNT,
    LOG_FILE_MAX_BYTES,
    LOG_FILE_NAME,
    LOG_LEVEL_ENV_VAR,
    LOGGER_NAME,
)

logger = logging.getLogger(LOGGER_NAME)

# Kept so file logging can be reconfigured without stacking handlers
_file_handler: Optional[RotatingFileHandler] = None


class ContextLoggerAdapter(logging.LoggerAdapter):
    """
    Logger adapter that appends bound context fields to every message.

    Fields are rendered as ``key=value`` pairs in insertion order, e.g.
    ``Fetching releases [namespace=hashicorp name=terraform-provider-aws]``.
    """

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> Tuple[Any, MutableMapping[str, Any]]:
        fields = " ".join(
            f"{key}={value}"
            for key, value in (self.extra or {}).items()
            if value is not None
        )
        if fields:
            msg = f"{msg} [{fields}]"
        return msg, kwargs


def get_context_logger(**fields: Any) -> ContextLoggerAdapter:
    """
    Build a logger adapter bound to the given structured context.

    Parameters:
        **fields: Context values (e.g. namespace, name, version) rendered with each message.

    Returns:
        ContextLoggerAdapter: Adapter over the package logger carrying `fields`.
    """
    return ContextLoggerAdapter(logger, dict(fields))


def set_log_level(level_name: str) -> None:
    """
    Set the log level for the package logger and reconfigure all attached handlers.

    If `level_name` is not a valid logging level name the function logs a warning
    and leaves the current configuration unchanged. Rich console handlers always use
    a message-only formatter; other handlers switch between the informational and
    debug formats depending on the resolved level.

    Parameters:
        level_name (str): Case-insensitive name of the desired logging level (e.g., "debug", "INFO").
    """
    level = getattr(logging, level_name.upper(), None)
    if not isinstance(level, int):
        logger.warning(f"Invalid log level name: {level_name}. Using current level.")
        return

    logger.setLevel(level)

    for handler in logger.handlers:
        handler.setLevel(level)

        if isinstance(handler, RichHandler):
            formatter = logging.Formatter("%(message)s")
        elif level >= logging.INFO:
            formatter = logging.Formatter(INFO_LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
        else:
            formatter = logging.Formatter(DEBUG_LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

        handler.setFormatter(formatter)

    logger.log(level, f"Log level set to {logging.getLevelName(level)}")


def add_file_logging(log_dir_path: Path, level_name: str = "INFO") -> None:
    """
    Enable rotating file logging for the package logger.

    Creates the directory if necessary and attaches a RotatingFileHandler writing
    to the package log file inside it. Invalid level names fall back to INFO.
    Existing file logging configured by this module is removed and closed first.
    """
    global _file_handler
    if _file_handler and _file_handler in logger.handlers:
        logger.removeHandler(_file_handler)
        _file_handler.close()

    log_dir_path.mkdir(parents=True, exist_ok=True)
    log_file = log_dir_path / LOG_FILE_NAME

    resolved = getattr(logging, level_name.upper(), None)
    if not isinstance(resolved, int):
        logger.warning(
            f"Invalid file log level name: {level_name}. Defaulting to INFO."
        )
        resolved = logging.INFO
    file_log_level = resolved
    if file_log_level >= logging.INFO:
        file_formatter = logging.Formatter(INFO_LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    else:
        file_formatter = logging.Formatter(DEBUG_LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    _file_handler = RotatingFileHandler(
        log_file,
        maxBytes=LOG_FILE_MAX_BYTES,
        backupCount=LOG_FILE_BACKUP_COUNT,
        encoding="utf-8",
    )
    _file_handler.setFormatter(file_formatter)
    _file_handler.setLevel(file_log_level)

    logger.addHandler(_file_handler)
    logger.info(
        f"File logging enabled at {log_file} with level {logging.getLevelName(file_log_level)}"
    )


def _initialize_logger() -> None:
    """
    Initialize the package logger with a console RichHandler and an initial log level.

    Removes any existing handlers, disables propagation to the root logger and
    attaches a RichHandler. The initial level is read from the environment variable
    named by LOG_LEVEL_ENV_VAR (defaults to "INFO"; invalid values fall back to INFO).
    """
    logger.propagate = False

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()

    console_handler = RichHandler(
        rich_tracebacks=True,
        show_time=True,
        show_level=True,
        show_path=False,
        markup=False,
        log_time_format=LOG_DATE_FORMAT,
    )

    default_log_level = os.environ.get(LOG_LEVEL_ENV_VAR, "INFO").upper()
    resolved = getattr(logging, default_log_level, None)
    if not isinstance(resolved, int):
        logger.warning(
            f"Invalid {LOG_LEVEL_ENV_VAR}={default_log_level}; defaulting to INFO."
        )
        resolved = logging.INFO
    initial_level = resolved

    console_handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(console_handler)

    logger.setLevel(initial_level)
    console_handler.setLevel(initial_level)


# Initialize the logger when the module is imported
_initialize_logger()
