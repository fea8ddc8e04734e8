"""
Structured logging configuration for reachik.

Uses structlog (https://www.structlog.org/). Library modules only call
:func:`get_logger`; the CLI (or the embedding study runner) calls
:func:`configure_logging` once. Solvers wrap each solve in
:func:`solver_context` so every event emitted while solving carries the
planning group and, for discretized solves, the sample index.

Usage::

    from reachik.core.logging import configure_logging, get_logger, solver_context

    configure_logging(json_output=True)
    logger = get_logger(__name__)
    with solver_context(planning_group="manipulator"):
        logger.debug("ik_no_solution")
"""

import logging
import os
import sys
from contextlib import contextmanager
from typing import Any, Iterator, Optional

import structlog

LOG_LEVEL_ENV_VAR = "REACHIK_LOG_LEVEL"
DEFAULT_LOG_LEVEL = "INFO"


def resolve_log_level(level: Optional[str] = None) -> int:
    """
    Numeric log level from an explicit name, ``$REACHIK_LOG_LEVEL`` or INFO.

    Unknown names fall back to INFO.
    """
    name = level or os.environ.get(LOG_LEVEL_ENV_VAR) or DEFAULT_LOG_LEVEL
    value = logging.getLevelName(name.upper())
    return value if isinstance(value, int) else logging.INFO


def _processors() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]


def configure_logging(
    level: Optional[str] = None,
    json_output: bool = False,
    log_file: Optional[str] = None,
) -> None:
    """
    Configure structured logging for reachik and the libraries it drives.

    Args:
        level: Minimum log level name. Defaults to ``$REACHIK_LOG_LEVEL``,
            then INFO.
        json_output: Emit JSON lines (batch studies) instead of colored
            console output.
        log_file: Optional file receiving the same lines as stderr.
    """
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        format="%(message)s",
        level=resolve_log_level(level),
        handlers=handlers,
        force=True,
    )

    renderer: structlog.types.Processor
    if json_output:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[*_processors(), structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
    )
    for handler in logging.root.handlers:
        handler.setFormatter(formatter)


@contextmanager
def solver_context(**context: Any) -> Iterator[None]:
    """Bind key/values such as planning_group to every event logged in the block."""
    with structlog.contextvars.bound_contextvars(**context):
        yield


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a structlog logger for the given module name.

    Args:
        name: Module name, typically ``__name__``.
    """
    return structlog.get_logger(name)
