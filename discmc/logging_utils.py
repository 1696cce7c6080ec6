"""
Logging setup for the command-line tools.

Standard output is reserved for configurations, so log records go either to
the file given with ``-l`` or to standard error.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import List, Optional

from .replica import replica_file_name, replica_logger

LOG_FORMAT = "%(message)s"
VERBOSE_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def configure_logging(verbose: bool = False, log_path: Optional[Path] = None) -> logging.Handler:
    """Install a single handler on the ``discmc`` logger and return it."""
    package_logger = logging.getLogger("discmc")
    for existing in list(package_logger.handlers):
        package_logger.removeHandler(existing)
        existing.close()
    if log_path is not None:
        handler: logging.Handler = logging.FileHandler(log_path, mode="w", encoding="utf-8")
    else:
        handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(VERBOSE_FORMAT if verbose else LOG_FORMAT))
    package_logger.addHandler(handler)
    package_logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    if verbose:
        package_logger.debug("Verbose flag set")
    return handler


def attach_replica_logs(log_root: str, n_replicas: int, verbose: bool = False) -> List[logging.Handler]:
    """Send each replica's progress to its own file derived from ``log_root``."""
    handlers: List[logging.Handler] = []
    for index in range(n_replicas):
        name = replica_file_name(log_root, index)
        handler = logging.FileHandler(name, mode="w", encoding="utf-8")
        handler.setFormatter(logging.Formatter(VERBOSE_FORMAT if verbose else LOG_FORMAT))
        chain_logger = replica_logger(index)
        chain_logger.addHandler(handler)
        chain_logger.propagate = False
        handlers.append(handler)
        logging.getLogger("discmc").debug("%s opened for replica log.", name)
    return handlers


def detach_replica_logs(handlers: List[logging.Handler]) -> None:
    for index, handler in enumerate(handlers):
        chain_logger = replica_logger(index)
        chain_logger.removeHandler(handler)
        chain_logger.propagate = True
        handler.close()


def release_logging(handler: logging.Handler) -> None:
    logging.getLogger("discmc").removeHandler(handler)
    handler.close()
