"""
Logging setup and function-level logging decorators.

All podlabel modules log under the "podlabel" logger hierarchy
("podlabel.pipeline", "podlabel.database", ...). The CLI calls setup_logging()
once for "podlabel"; child loggers propagate to its handlers, so nothing else
in the package installs handlers.

Usage:
    from podlabel.logger import setup_logging, log_function

    logger = setup_logging("podlabel", "logs/pipeline.log", verbose=True)

    @log_function(logger_name="podlabel.ingestion", log_args=True)
    def search_by_person(query):
        ...
"""

import functools
import logging
import time
from pathlib import Path
from typing import Any, Callable, Optional, Union


LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
CONSOLE_FORMAT = "%(levelname)s: %(message)s"


def _handler(handler: logging.Handler, level: int, fmt: str) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt))
    return handler


def setup_logging(
    logger_name: str = "podlabel",
    log_file: Union[str, Path] = "logs/pipeline.log",
    verbose: bool = False,
    level: int = logging.INFO,
) -> logging.Logger:
    """
    Attach a file handler (and a DEBUG console handler when verbose) to a logger.

    Calling it again for an already configured logger returns it unchanged.

    Args:
        logger_name: Logger to configure, normally the package root "podlabel"
        log_file: Log file path; its directory is created if needed
        verbose: Also log to the console, at DEBUG level
        level: Level of the file handler

    Returns:
        The configured logger
    """
    logger = logging.getLogger(logger_name)
    if logger.handlers:
        return logger

    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    logger.setLevel(logging.DEBUG if verbose else level)
    logger.addHandler(
        _handler(logging.FileHandler(log_path, encoding="utf-8"), level, LOG_FORMAT)
    )
    if verbose:
        logger.addHandler(_handler(logging.StreamHandler(), logging.DEBUG, CONSOLE_FORMAT))
    return logger


def _describe_call(name: str, args: tuple, kwargs: dict, with_args: bool) -> str:
    if not (with_args and (args or kwargs)):
        return f"Calling {name}"
    rendered = [repr(a) for a in args] + [f"{k}={v!r}" for k, v in kwargs.items()]
    return f"Calling {name} with args: {', '.join(rendered)}"


def log_function(
    logger_name: Optional[str] = None,
    level: int = logging.INFO,
    log_args: bool = False,
    log_result: bool = False,
    log_execution_time: bool = True,
) -> Callable:
    """
    Log entry and exit of the decorated function, and any exception it raises.

    Exceptions are logged with their traceback and re-raised unchanged.

    Args:
        logger_name: Logger to use (default: the decorated function's module)
        level: Level of the entry/exit records
        log_args: Include the call arguments in the entry record
        log_result: Include the return value in the exit record
        log_execution_time: Include the elapsed time in the exit record
    """

    def decorator(func: Callable) -> Callable:
        logger = logging.getLogger(logger_name or func.__module__)
        name = func.__name__

        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            logger.log(level, _describe_call(name, args, kwargs, log_args))
            started = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                logger.error(
                    f"Exception in {name} after {time.perf_counter() - started:.2f}s: "
                    f"{type(e).__name__}: {e}",
                    exc_info=True,
                )
                raise

            parts = [f"Completed {name}"]
            if log_execution_time:
                parts.append(f"in {time.perf_counter() - started:.2f}s")
            if log_result:
                parts.append(f"with result: {result!r}")
            logger.log(level, " ".join(parts))
            return result

        return wrapper

    return decorator


def log_with_timer(logger_name: Optional[str] = None) -> Callable:
    """Shorthand for log_function with timing only (no arguments, no result)."""
    return log_function(logger_name=logger_name)
