"""
Logging configuration for ncl-gen.

All records go to stderr so generated configuration printed with
--stdout stays clean. Console output is colored per pipeline stage when
stderr is a terminal; --log-file adds a rotating plain-text file.
"""

import logging
import logging.handlers
import sys
from dataclasses import dataclass
from pathlib import Path


ROOT_LOGGER = "ncl_gen"


class Colors:
    """ANSI color codes."""

    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    MAGENTA = "\033[35m"
    CYAN = "\033[36m"


LEVEL_COLORS = {
    logging.DEBUG: Colors.DIM,
    logging.INFO: Colors.GREEN,
    logging.WARNING: Colors.YELLOW,
    logging.ERROR: Colors.RED,
    logging.CRITICAL: Colors.BOLD + Colors.RED,
}

# Last component of the logger name -> color
STAGE_COLORS = {
    "lexer": Colors.MAGENTA,
    "parser": Colors.MAGENTA,
    "renderer": Colors.CYAN,
    "loader": Colors.BLUE,
    "validator": Colors.BLUE,
    "main": Colors.GREEN,
}


class ColoredFormatter(logging.Formatter):
    """
    Formatter that colors the level, the pipeline stage and
    warning/error messages.
    """

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        use_colors: bool = True,
    ):
        super().__init__(fmt, datefmt)
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        if not self.use_colors:
            return super().format(record)

        saved = record.levelname, record.name, record.msg

        record.levelname = f"{LEVEL_COLORS.get(record.levelno, '')}{record.levelname:8}{Colors.RESET}"

        stage_color = STAGE_COLORS.get(record.name.rsplit(".", 1)[-1])
        if stage_color:
            record.name = f"{stage_color}{record.name}{Colors.RESET}"

        if record.levelno >= logging.WARNING:
            record.msg = f"{LEVEL_COLORS[min(record.levelno, logging.ERROR)]}{record.msg}{Colors.RESET}"

        try:
            return super().format(record)
        finally:
            record.levelname, record.name, record.msg = saved


class PlainFormatter(logging.Formatter):
    """Formatter with padded level names for log files."""

    def format(self, record: logging.LogRecord) -> str:
        levelname = record.levelname
        record.levelname = f"{levelname:8}"
        try:
            return super().format(record)
        finally:
            record.levelname = levelname


@dataclass
class LogConfig:
    """Logging settings built from the command line."""

    console_level: str = "warning"
    console_colors: bool = True

    file_enabled: bool = False
    file_path: str = "ncl-gen.log"
    file_level: str = "debug"
    file_max_bytes: int = 1024 * 1024  # 1 MB
    file_backup_count: int = 3

    format: str = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    date_format: str = "%Y-%m-%d %H:%M:%S"


def get_log_level(level_str: str) -> int:
    """Convert string log level to logging constant."""
    levels = {
        "debug": logging.DEBUG,
        "info": logging.INFO,
        "warning": logging.WARNING,
        "warn": logging.WARNING,
        "error": logging.ERROR,
        "critical": logging.CRITICAL,
    }
    return levels.get(level_str.lower(), logging.INFO)


def setup_logging(config: LogConfig | None = None) -> None:
    """
    Install console (and optionally file) handlers on the ncl_gen logger.

    Calling it again replaces the handlers from the previous call.

    Args:
        config: Logging configuration (uses defaults if None)
    """
    config = config or LogConfig()

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(logging.DEBUG)  # handlers filter
    logger.handlers.clear()

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(get_log_level(config.console_level))
    console.setFormatter(ColoredFormatter(
        fmt=config.format,
        datefmt=config.date_format,
        use_colors=config.console_colors and sys.stderr.isatty(),
    ))
    logger.addHandler(console)

    if config.file_enabled:
        log_path = Path(config.file_path)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            log_path,
            maxBytes=config.file_max_bytes,
            backupCount=config.file_backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(get_log_level(config.file_level))
        file_handler.setFormatter(PlainFormatter(fmt=config.format, datefmt=config.date_format))
        logger.addHandler(file_handler)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for a component.

    Args:
        name: Component name, e.g. "language.parser" (prefixed with ncl_gen)

    Returns:
        Logger instance
    """
    if name.startswith(ROOT_LOGGER):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")
