"""
Shared logging utilities.

Every diagnostic goes both to a persistent, rotating log file and to the
interactive console. The console output is severity coloured and written
through tqdm so that it does not tear progress bars apart.
"""

import getpass
import logging
import os
import platform
import socket
import stat
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path

import click
from tqdm import tqdm

LOG_FILE_ENV_VAR = "APPD_LOG_FILE_PATH"

LEVEL_COLORS = {
    logging.CRITICAL: "red",
    logging.ERROR: "red",
    logging.WARNING: "yellow",
    logging.INFO: "green",
    logging.DEBUG: "blue",
}


class CustomFormatter(logging.Formatter):
    """Custom formatter that includes username and hostname in log messages."""

    def __init__(self):
        super().__init__(
            '%(asctime)s - %(levelname)s - [%(username)s@%(hostname)s] - [%(filename)s:%(lineno)d] - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        self.username = getpass.getuser()
        self.hostname = socket.gethostname()

    def format(self, record):
        record.username = self.username
        record.hostname = self.hostname
        return super().format(record)


class ConsoleFormatter(logging.Formatter):
    """Console formatter: ``<date>: LEVEL: message`` with a coloured level."""

    def __init__(self, use_color: bool = True):
        super().__init__('%(asctime)s: %(levelname)s: %(message)s', datefmt='%Y-%m-%d %H:%M:%S')
        self.use_color = use_color

    def format(self, record):
        levelname = record.levelname
        if self.use_color:
            record.levelname = click.style(levelname, fg=LEVEL_COLORS.get(record.levelno))
        try:
            return super().format(record)
        finally:
            record.levelname = levelname


class TqdmConsoleHandler(logging.Handler):
    """Write log records through tqdm so active progress bars stay intact."""

    def emit(self, record):
        try:
            tqdm.write(self.format(record), file=sys.stderr)
        except Exception:
            self.handleError(record)


class ReadOnlyRotatingFileHandler(RotatingFileHandler):
    """RotatingFileHandler that sets rotated files to read-only."""
    def doRollover(self):
        super().doRollover()
        if self.backupCount > 0:
            rotated_file = f"{self.baseFilename}.1"
            if os.path.exists(rotated_file):
                try:
                    if os.name == 'nt' or platform.system().lower().startswith('win'):
                        os.chmod(rotated_file, stat.S_IREAD)
                    else:
                        os.chmod(rotated_file, 0o444)
                except OSError as e:
                    logging.getLogger(__name__).warning(f"Could not set rotated log file to read-only: {e}")


def color_enabled(no_color: bool = False) -> bool:
    """Decide whether console output should be coloured."""
    if no_color or os.getenv("NO_COLOR") is not None:
        return False
    if os.getenv("TERM") == "dumb":
        return False
    return sys.stderr.isatty()


def resolve_log_file(log_file_path: str = None) -> str:
    """Pick the log file: explicit path, then environment variable, then a dated default."""
    if log_file_path:
        return log_file_path
    env_log_file = os.getenv(LOG_FILE_ENV_VAR)
    if env_log_file:
        return env_log_file
    return f"appd-config-manager-{datetime.now().strftime('%Y%m%d')}.log"


def setup_logging(verbose: bool = False, log_level: str = "INFO", log_file_path: str = None,
                  no_color: bool = False) -> logging.Logger:
    """Setup logging to both the log file and the console.

    Args:
        verbose (bool): Enable verbose logging (overrides log_level)
        log_level (str): Logging level (ERROR, WARNING, INFO, DEBUG)
        log_file_path (str): Custom log file path (optional, overrides environment variable)
        no_color (bool): Disable coloured console output

    Returns:
        logging.Logger: Configured logger instance
    """
    level_map = {
        "ERROR": logging.ERROR,
        "WARNING": logging.WARNING,
        "INFO": logging.INFO,
        "DEBUG": logging.DEBUG
    }

    if verbose:
        actual_level = logging.DEBUG
    else:
        actual_level = level_map.get(log_level.upper(), logging.INFO)

    log_file = resolve_log_file(log_file_path)
    log_path = Path(log_file)
    if log_path.parent != Path('.'):
        log_path.parent.mkdir(parents=True, exist_ok=True)

    file_handler = ReadOnlyRotatingFileHandler(
        log_file, maxBytes=1_048_576, backupCount=5, encoding='utf-8', mode='a'
    )
    file_handler.setFormatter(CustomFormatter())

    console_handler = TqdmConsoleHandler()
    console_handler.setFormatter(ConsoleFormatter(use_color=color_enabled(no_color)))

    logging.basicConfig(
        level=actual_level,
        handlers=[file_handler, console_handler],
        force=True
    )
    # Keep urllib3 connection chatter out of verbose runs.
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    logger.debug(f"Logging initialized. Log file: {log_file}")
    logger.debug(f"Log level set to: {logging.getLevelName(actual_level)}")
    return logger
