"""
Logging configuration.

Sets up file logging for stacking runs and, optionally, console echo of the
engine's progress notices.
"""

from __future__ import annotations
import logging
from pathlib import Path
from datetime import datetime
from logging.handlers import RotatingFileHandler

LOG_FORMAT = '%(asctime)s | %(levelname)-8s | %(name)s | %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def get_log_file_path(log_dir: Path | str = "logs") -> Path:
    """
    Get the path to the current log file.

    Parameters
    ----------
    log_dir : Path or str
        Directory containing log files (default: "logs")

    Returns
    -------
    Path
        Path to today's log file
    """
    return Path(log_dir) / f"tablestack_{datetime.now().strftime('%Y%m%d')}.log"


def setup_logging(log_dir: Path | str | None = "logs", verbose: bool = False) -> Path | None:
    """
    Set up logging for the ``tablestack`` package.

    Parameters
    ----------
    log_dir : Path, str or None
        Directory for log files; None disables the file handler
    verbose : bool
        Also echo INFO messages to stderr

    Returns
    -------
    Path or None
        Path to the current log file

    Notes
    -----
    - Rotating log files (max 10 MB, keeps 5 backups)
    - Log format: timestamp | level | module | message
    - Calling twice does not add duplicate handlers
    """
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)
    pkg_logger = logging.getLogger('tablestack')
    pkg_logger.setLevel(logging.DEBUG)

    for h in list(pkg_logger.handlers):
        if getattr(h, "_tablestack", False):
            pkg_logger.removeHandler(h)
            h.close()

    log_file = None
    if log_dir is not None:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        log_file = get_log_file_path(log_dir)

        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=10 * 1024 * 1024,  # 10 MB
            backupCount=5,
            encoding='utf-8'
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        file_handler._tablestack = True
        pkg_logger.addHandler(file_handler)

    if verbose:
        stream_handler = logging.StreamHandler()
        stream_handler.setLevel(logging.INFO)
        stream_handler.setFormatter(logging.Formatter('[%(levelname)s] %(message)s'))
        stream_handler._tablestack = True
        pkg_logger.addHandler(stream_handler)

    pkg_logger.debug("=" * 80)
    pkg_logger.debug("Logging initialised")
    return log_file
