"""Logging configuration for git-worktree-keeper

Two sinks: a stderr handler for normal runs and a log file under
``~/.git-worktree-keeper`` that is used while the picker owns the terminal
(and always with --debug).
"""
import logging
import sys
from pathlib import Path

LOG_DIR_NAME = ".git-worktree-keeper"
LOG_FILE_NAME = "git-worktree-keeper.log"

FILE_FORMAT = "%(asctime)s - %(name)s - %(threadName)s - %(levelname)s - %(message)s"
DEBUG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
PLAIN_FORMAT = "[%(name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class ColoredFormatter(logging.Formatter):
    """Formatter that colours the level name when stderr is a terminal."""

    COLORS = {
        'DEBUG': '\033[36m',     # Cyan
        'INFO': '\033[32m',      # Green
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[35m',  # Magenta
    }
    RESET = '\033[0m'

    def format(self, record):
        color = self.COLORS.get(record.levelname)
        if color and sys.stderr.isatty():
            # Work on a copy; other handlers share the record
            record = logging.makeLogRecord(record.__dict__)
            record.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(record)


def get_log_file() -> Path:
    """Path of the debug/TUI log file."""
    return Path.home() / LOG_DIR_NAME / LOG_FILE_NAME


def _level_for(verbose: bool, debug: bool) -> int:
    if debug:
        return logging.DEBUG
    if verbose:
        return logging.INFO
    return logging.WARNING


def _file_handler() -> logging.Handler:
    log_file = get_log_file()
    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_file, mode='w')  # one run per file
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(fmt=FILE_FORMAT, datefmt=DATE_FORMAT))
    return handler


def _console_handler(level: int, debug: bool) -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    if debug:
        handler.setFormatter(ColoredFormatter(fmt=DEBUG_FORMAT, datefmt=DATE_FORMAT))
    else:
        handler.setFormatter(ColoredFormatter(fmt=PLAIN_FORMAT))
    return handler


def setup_logging(verbose: bool = False, debug: bool = False, tui_mode: bool = False) -> None:
    """
    Configure logging for the application.

    Args:
        verbose: If True, show INFO level messages
        debug: If True, show DEBUG level messages and detailed formatting
        tui_mode: If True, log only to the file (the picker owns the terminal)
    """
    level = _level_for(verbose, debug)

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    # Handlers filter; the root passes everything the file sink may want
    root_logger.setLevel(logging.DEBUG if tui_mode else level)

    if tui_mode or debug:
        root_logger.addHandler(_file_handler())
    if not tui_mode:
        root_logger.addHandler(_console_handler(level, debug))

    # GitPython logs every subprocess at DEBUG
    logging.getLogger("git").setLevel(logging.INFO if debug else logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for the specified module.

    Args:
        name: Name of the module (typically __name__)

    Returns:
        Logger named without the package prefix ("services.hook_service" -> "hook_service")
    """
    for prefix in ('git_worktree_keeper.', 'services.'):
        if name.startswith(prefix):
            name = name[len(prefix):]
    return logging.getLogger(name)
