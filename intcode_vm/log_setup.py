"""
Intcode VM: Logging Setup

One logger tree rooted at "intcode_vm"; every module logs through
logging.getLogger(__name__). Call setup_logging() once from a driver:

  console: rich.logging.RichHandler at the requested level
  file   : optional, DEBUG and up, one line per record:
            time | level | logger | function:line | message
"""

import logging
from pathlib import Path
from typing import Optional, Union

from rich.console import Console
from rich.logging import RichHandler

__all__ = ['setup_logging', 'verbosity_to_level']

ROOT_LOGGER = "intcode_vm"

FILE_FORMAT = "%(asctime)s | %(levelname)-7s | %(name)s | %(funcName)s:%(lineno)d | %(message)s"


def verbosity_to_level(verbose: int = 0, quiet: bool = False) -> int:
    """Map -v counts / --quiet onto a logging level."""
    if quiet:
        return logging.ERROR
    if verbose <= 0:
        return logging.WARNING
    if verbose == 1:
        return logging.INFO
    return logging.DEBUG


def setup_logging(console_level: int = logging.WARNING,
                  log_file: Optional[Union[str, Path]] = None,
                  name: str = ROOT_LOGGER) -> logging.Logger:
    """Configure and return the package logger.

    Safe to call more than once: existing handlers are replaced, so a CLI
    invoked repeatedly in one process (tests) does not stack handlers.
    """
    logger = logging.getLogger(name)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    logger.setLevel(logging.DEBUG if log_file else console_level)
    logger.propagate = False

    console = RichHandler(
        level=console_level,
        console=Console(stderr=True),
        show_time=True,
        show_path=False,
        rich_tracebacks=True,
    )
    logger.addHandler(console)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(str(log_path), encoding="utf-8")
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        logger.addHandler(fh)
        logger.info("Log file: %s", log_path)

    return logger
