"""Logging for lxcmesh: Rich output on stderr, optional log file."""
import logging
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

console = Console(stderr=True)

DEFAULT_LOG_FILE = Path("/var/log/lxcmesh/lxcmesh.log")
FALLBACK_LOG_FILE = Path("/tmp/lxcmesh.log")

_FILE_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"


def _level(verbose: bool) -> int:
    return logging.DEBUG if verbose else logging.INFO


def setup_file_logging(log_file: Optional[str] = None, verbose: bool = False) -> Path:
    """Mirror lxcmesh log records into a file, once per process.

    Uses /tmp when the log directory cannot be created.
    """
    package_logger = logging.getLogger("lxcmesh")
    for handler in package_logger.handlers:
        if isinstance(handler, logging.FileHandler):
            return Path(handler.baseFilename)

    path = Path(log_file) if log_file else DEFAULT_LOG_FILE
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except PermissionError:
        path = FALLBACK_LOG_FILE

    handler = logging.FileHandler(path)
    handler.setLevel(_level(verbose))
    handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    package_logger.addHandler(handler)
    package_logger.setLevel(_level(verbose))
    package_logger.info(f"Logging to {path}")
    return path


def set_verbose(verbose: bool) -> None:
    """Switch every lxcmesh logger between DEBUG and INFO."""
    for name, logger in logging.Logger.manager.loggerDict.items():
        if name.startswith("lxcmesh") and isinstance(logger, logging.Logger):
            logger.setLevel(_level(verbose))


def get_logger(name: str) -> logging.Logger:
    """Logger for name with a RichHandler attached."""
    logger = logging.getLogger(name)
    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        handler = RichHandler(console=console, show_path=False)
        handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
    return logger
