"""Structured logging for reconciliation sessions.

Every record emitted while a test run is in flight carries that run's
``run_id``. The id lives in structlog's context variables, so it follows
the session into asyncio tasks without being threaded through calls.
Console handlers go quiet while a Rich live display owns the terminal.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING

import structlog
from structlog.contextvars import bind_contextvars, get_contextvars, unbind_contextvars

if TYPE_CHECKING:
    from testtree.config.models import LoggingConfig, LogOutputConfig

_RUN_ID_KEY = "run_id"

# Third-party loggers that are noisy below WARNING
_QUIET_LOGGERS = ("watchfiles.main", "watchfiles.watcher")

_SHARED_PROCESSORS: list[structlog.types.Processor] = [
    structlog.contextvars.merge_contextvars,
    structlog.processors.add_log_level,
    structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S", key="timestamp"),
]


def bind_run_id(run_id: str) -> None:
    """Attach run_id to every record logged until unbind_run_id()."""
    bind_contextvars(**{_RUN_ID_KEY: run_id})


def unbind_run_id() -> None:
    unbind_contextvars(_RUN_ID_KEY)


def current_run_id() -> str | None:
    return get_contextvars().get(_RUN_ID_KEY)


class ConsoleSuppressingFilter(logging.Filter):
    """Drops console records while a Rich live display is active."""

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: ARG002
        from testtree.core.progress import is_console_suppressed

        return not is_console_suppressed()


def _level(name: str) -> int:
    return logging.getLevelNamesMapping().get(name.upper(), logging.INFO)


def _formatter(output: LogOutputConfig, is_console: bool) -> logging.Formatter:
    renderer: structlog.types.Processor
    if output.format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(
            colors=is_console and sys.stderr.isatty(),
            pad_event_to=0,
            pad_level=False,
        )
    return structlog.stdlib.ProcessorFormatter(
        processor=renderer, foreign_pre_chain=_SHARED_PROCESSORS
    )


def _handler(output: LogOutputConfig, default_level: int) -> logging.Handler:
    is_console = output.destination in ("stderr", "stdout")
    handler: logging.Handler
    if is_console:
        handler = logging.StreamHandler(getattr(sys, output.destination))
        handler.addFilter(ConsoleSuppressingFilter())
    else:
        path = Path(output.destination)
        path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(path, mode="a")
    handler.setLevel(_level(output.level) if output.level else default_level)
    handler.setFormatter(_formatter(output, is_console))
    return handler


def configure_logging(
    *,
    config: LoggingConfig | None = None,
    json_format: bool = False,
    level: str = "INFO",
) -> None:
    """Route structlog through stdlib handlers, one per configured output.

    Without a config, logs go to stderr at ``level``.
    """
    from testtree.config.models import LoggingConfig, LogOutputConfig

    if config is None:
        config = LoggingConfig(
            level=level,  # type: ignore[arg-type]
            outputs=[LogOutputConfig(format="json" if json_format else "console")],
        )
    default_level = _level(config.level)

    structlog.configure(
        processors=[*_SHARED_PROCESSORS, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.make_filtering_bound_logger(default_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        # Reconfiguration must reach loggers created at import time
        cache_logger_on_first_use=False,
    )

    root = logging.getLogger()
    for old in root.handlers[:]:
        root.removeHandler(old)
        old.close()
    root.setLevel(default_level)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    for output in config.outputs:
        root.addHandler(_handler(output, default_level))


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    logger = structlog.get_logger()
    if name:
        logger = logger.bind(logger=name)
    return logger  # type: ignore[no-any-return]
