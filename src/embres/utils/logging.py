"""Logging configuration with Rich formatting.

Library modules call :func:`configure_module_logger` once at import time;
applications that want embres output on the root logger call
:func:`setup_logging`.
"""

import logging
import sys
from typing import Optional, Union

from rich.console import Console
from rich.logging import RichHandler

_HIGHLIGHT_KEYWORDS = ["resource", "module", "cache", "xml", "stream"]


def _rich_handler(
    console: Console,
    level: int,
    show_path: bool = False,
    show_time: bool = True,
    rich_tracebacks: bool = True,
) -> RichHandler:
    handler = RichHandler(
        console=console,
        show_path=show_path,
        show_time=show_time,
        rich_tracebacks=rich_tracebacks,
        markup=True,
        show_level=True,
        level=level,
        omit_repeated_times=False,
        keywords=_HIGHLIGHT_KEYWORDS,
    )
    handler.setFormatter(logging.Formatter(fmt="%(message)s", datefmt="[%X]"))
    return handler


def setup_logging(
    level: int = logging.INFO,
    show_path: bool = False,
    show_time: bool = True,
    rich_tracebacks: bool = True,
    console: Optional[Console] = None,
) -> None:
    """
    Configure the root logger with a single Rich handler.

    Args:
        level: Logging level (default: INFO).
        show_path: Show file path in log messages (default: False).
        show_time: Show timestamp in log messages (default: True).
        rich_tracebacks: Use Rich for traceback formatting (default: True).
        console: Optional Rich Console instance (default: creates new one).
    """
    if console is None:
        console = Console(stderr=True)

    handler = _rich_handler(
        console,
        level,
        show_path=show_path,
        show_time=show_time,
        rich_tracebacks=rich_tracebacks,
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Replace, never stack, handlers
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.propagate = False


def get_logger(name: str, level: Optional[int] = None) -> logging.Logger:
    """
    Get a logger, installing the Rich root handler on first use.

    Args:
        name: Logger name (typically __name__).
        level: Optional logging level override.

    Returns:
        Logger instance.
    """
    logger = logging.getLogger(name)

    if level is not None:
        logger.setLevel(level)

    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        root_logger = logging.getLogger()
        if not any(isinstance(h, RichHandler) for h in root_logger.handlers):
            setup_logging()

    return logger


def configure_module_logger(
    module_name: str,
    level: int = logging.INFO,
    use_colors: bool = True,
) -> logging.Logger:
    """
    Configure a module-specific logger writing to stderr.

    Args:
        module_name: Module name (typically __name__).
        level: Logging level.
        use_colors: Use a Rich handler (default: True); plain stream otherwise.

    Returns:
        Configured logger instance.
    """
    logger = logging.getLogger(module_name)
    logger.setLevel(level)
    logger.handlers.clear()

    handler: Union[RichHandler, logging.Handler]
    if use_colors:
        console = Console(stderr=True, legacy_windows=False)
        handler = _rich_handler(console, logging.NOTSET)
    else:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(
            logging.Formatter(
                fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )

    logger.addHandler(handler)
    logger.propagate = False

    return logger
