"""Logging configuration for the fulfillment service.

Standard library logging owns the sinks (stdout, plus rotating files when a
log directory is given); structlog owns the event dictionaries every module
emits. Call ``configure_logging()`` once at process start.
"""

import logging
import logging.handlers
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import structlog

_LEVELS_BY_ENV = {
    "production": "INFO",
    "staging": "INFO",
    "development": "DEBUG",
    "test": "WARNING",
}


def current_env() -> str:
    return (os.getenv("ENVIRONMENT") or os.getenv("PROTEAN_ENV") or "development").lower()


def get_log_level(env: str | None = None) -> str:
    """LOG_LEVEL wins; otherwise the level is derived from the environment name."""
    env = env or current_env()
    return os.getenv("LOG_LEVEL", _LEVELS_BY_ENV.get(env, "INFO")).upper()


def _rotating_handler(path: Path, level) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        filename=path,
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
        encoding="utf-8",
    )
    handler.setLevel(level)
    return handler


def setup_stdlib_logging(level: str, log_dir: str | Path | None = None) -> None:
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = []

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    root_logger.addHandler(console_handler)

    if log_dir is not None:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        root_logger.addHandler(_rotating_handler(log_dir / "fulfillment.log", level))
        root_logger.addHandler(_rotating_handler(log_dir / "fulfillment_error.log", logging.ERROR))

    for noisy in ("protean", "urllib3", "asyncio", "httpx"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def setup_structlog(env: str) -> None:
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if env in ("production", "staging"):
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=sys.stdout.isatty(),
                exception_formatter=structlog.dev.RichTracebackFormatter(max_frames=2),
            )
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_logging(env: str | None = None, log_dir: str | Path | None = None) -> None:
    """Configure stdlib and structlog logging for the given environment."""
    env = env or current_env()
    setup_stdlib_logging(get_log_level(env), log_dir)
    setup_structlog(env)


@contextmanager
def order_context(order_id: str, **extra) -> Iterator[None]:
    """Bind ``order_id`` (and any extra keys) to every log line emitted inside the block."""
    with structlog.contextvars.bound_contextvars(order_id=str(order_id), **extra):
        yield
