"""
Logging configuration for hex_maped.
"""

import logging
import logging.handlers
from pathlib import Path
from typing import TYPE_CHECKING, Optional, Union

from ..settings.logging import IO_LOGGER

if TYPE_CHECKING:
    from ..settings import AppSettings

CONSOLE_FORMAT = "%(asctime)s : %(levelname)-8s : %(message)s"


class ColoredFormatter(logging.Formatter):
    """Console formatter that colors the level name."""

    # ANSI color codes
    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
        "RESET": "\033[0m",  # Reset
    }

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.COLORS["RESET"])
        reset = self.COLORS["RESET"]

        formatted = super().format(record)

        # Color only the level name
        if record.levelname in formatted:
            formatted = formatted.replace(
                record.levelname, f"{color}{record.levelname}{reset}", 1
            )

        return formatted


class CSVFormatter(logging.Formatter):
    """CSV-safe formatter for file logging."""

    def format(self, record: logging.LogRecord) -> str:
        timestamp = self.formatTime(record, self.datefmt)
        level = record.levelname.ljust(8)
        duration = f"{int(record.relativeCreated)} ms"
        module = record.name
        line_no = str(record.lineno)
        message = record.getMessage()
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"

        # Standard CSV quote escaping
        message = message.replace('"', '""')

        return f'"{timestamp}";{level};"{duration}";"{module}";"{line_no}";"{message}"'


def setup_logging(
    settings: Optional["AppSettings"] = None,
    log_file: Optional[Union[str, Path]] = None,
    console_level: Optional[str] = None,
) -> None:
    """
    Setup application logging with console and file handlers.

    Args:
        settings: AppSettings instance for logging configuration; without it
            only a plain console handler at INFO is installed
        log_file: Override for the log file location (enables file logging)
        console_level: Override for the console level
    """
    prefs = settings.logging if settings is not None else None
    console_enabled = prefs.console_enabled if prefs is not None else True
    level = console_level or (prefs.console_level if prefs is not None else "INFO")
    use_colors = prefs.console_colors if prefs is not None else False
    file_enabled = log_file is not None or (prefs is not None and prefs.file_enabled)
    file_level = prefs.file_level if prefs is not None else "DEBUG"
    if log_file is None and prefs is not None:
        log_file = prefs.log_file

    # Configure root logger to capture everything
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    project_logger = logging.getLogger("hex_maped")
    project_logger.setLevel(logging.DEBUG)

    # Clear any existing handlers
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    if console_enabled:
        if use_colors:
            console_formatter: logging.Formatter = ColoredFormatter(
                fmt=CONSOLE_FORMAT, datefmt="%H:%M:%S"
            )
        else:
            console_formatter = logging.Formatter(fmt=CONSOLE_FORMAT, datefmt="%H:%M:%S")

        console_handler = logging.StreamHandler()
        console_handler.setLevel(getattr(logging, level.upper(), logging.INFO))
        console_handler.setFormatter(console_formatter)
        root_logger.addHandler(console_handler)

    # File handler with rotation - only if enabled
    log_path = None
    if file_enabled and log_file is not None:
        try:
            log_path = Path(log_file)
            log_path.parent.mkdir(parents=True, exist_ok=True)

            file_handler = logging.handlers.RotatingFileHandler(
                log_path,
                maxBytes=10 * 1024 * 1024,  # 10MB
                backupCount=5,
                encoding="utf-8",
            )
            file_handler.setLevel(file_level)
            file_handler.setFormatter(CSVFormatter(datefmt="%Y-%m-%d %H:%M:%S"))
            root_logger.addHandler(file_handler)
        except OSError as e:
            # If file logging fails, just continue with console logging
            log_path = None
            root_logger.warning(f"Could not setup file logging: {e}")

    # Suppress DEBUG logs from noisy libraries
    logging.getLogger("PIL").setLevel(logging.INFO)
    logging.getLogger("PIL.PngImagePlugin").setLevel(logging.INFO)

    # Configured logger levels; the I/O workers default to INFO
    logger_levels: dict[str, str] = {}
    if prefs is not None:
        logger_levels = {IO_LOGGER: prefs.io_log_level, **prefs.logger_levels()}
    for name, logger_level in logger_levels.items():
        logging.getLogger(name).setLevel(logger_level)

    logger = logging.getLogger(__name__)
    logger.info("Logging initialized")
    if console_enabled:
        logger.debug(f"Console logging: {level} (colors: {use_colors})")
    if log_path:
        logger.debug(f"File logging: {file_level} at {log_path.absolute()}")
    if logger_levels:
        logger.debug(f"Logger levels: {logger_levels}")
