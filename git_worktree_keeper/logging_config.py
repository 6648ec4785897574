"""Logging configuration for git-worktree-keeper"""
import logging
import sys
from pathlib import Path
from typing import Optional, Union

PACKAGE_PREFIX = "git_worktree_keeper."

LOG_DIR = Path.home() / ".git-worktree-keeper"
LOG_FILE_NAME = "git-worktree-keeper.log"

DETAILED_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
SIMPLE_FORMAT = "[%(name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# ANSI codes per level name
LEVEL_COLORS = {
    "DEBUG": "\033[36m",
    "INFO": "\033[32m",
    "WARNING": "\033[33m",
    "ERROR": "\033[31m",
    "CRITICAL": "\033[35m",
}
RESET = "\033[0m"


class ColoredFormatter(logging.Formatter):
    """Formatter that colors the level name when stderr is a terminal."""

    def format(self, record):
        color = LEVEL_COLORS.get(record.levelname)
        if color is None or not sys.stderr.isatty():
            return super().format(record)

        # Other handlers share the record, so color a copy
        colored = logging.makeLogRecord(record.__dict__)
        colored.levelname = f"{color}{record.levelname}{RESET}"
        return super().format(colored)


def _console_handler(level: int, debug: bool) -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    if debug:
        handler.setFormatter(ColoredFormatter(fmt=DETAILED_FORMAT, datefmt=DATE_FORMAT))
    else:
        handler.setFormatter(ColoredFormatter(fmt=SIMPLE_FORMAT))
    return handler


def _file_handler(path: Path) -> logging.Handler:
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, mode="w")  # One run per file
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(fmt=DETAILED_FORMAT, datefmt=DATE_FORMAT))
    return handler


def setup_logging(
    verbose: bool = False,
    debug: bool = False,
    log_file: Union[str, Path, None] = None,
) -> Optional[Path]:
    """
    Configure logging for the application.

    Args:
        verbose: If True, show INFO level messages
        debug: If True, show DEBUG level messages and write a log file
        log_file: Write every message to this file (debug defaults it
            to ~/.git-worktree-keeper/git-worktree-keeper.log)

    Returns:
        Path of the log file, if one is written
    """
    if debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING

    if log_file is None and debug:
        log_file = LOG_DIR / LOG_FILE_NAME

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if log_file else level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    root_logger.addHandler(_console_handler(level, debug))
    if log_file:
        log_file = Path(log_file)
        root_logger.addHandler(_file_handler(log_file))

    # GitPython's own command log duplicates the runner's; our services
    # log under "git.<module>", so only git.cmd is quieted
    logging.getLogger("git.cmd").setLevel(logging.DEBUG if debug else logging.WARNING)

    return Path(log_file) if log_file else None


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for the specified module.

    Args:
        name: Name of the module (typically __name__)

    Returns:
        Logger instance named without the package prefix
    """
    if name.startswith(PACKAGE_PREFIX):
        name = name[len(PACKAGE_PREFIX):]
    if name.startswith("services."):
        name = name[len("services."):]

    return logging.getLogger(name)
