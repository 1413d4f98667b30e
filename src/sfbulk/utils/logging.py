from __future__ import annotations

import logging
import sys
from typing import IO, cast

import structlog

_SHARED_PROCESSORS: list[structlog.types.Processor] = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.processors.StackInfoRenderer(),
]


def configure_logging(
    level: str = "INFO", json: bool = True, stream: IO[str] | None = None
) -> None:
    """Route sfbulk's structlog events through stdlib logging.

    Workflow hosts usually own the root logger, so this is opt-in: call it
    once at start-up when running the nodes standalone.

    Args:
        level: Standard logging level name ("DEBUG", "INFO", ...).
        json: Render events as JSON lines when True, coloured console
            output otherwise.
        stream: Destination stream, ``sys.stdout`` by default.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    renderer: structlog.types.Processor
    if json:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *_SHARED_PROCESSORS,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
            foreign_pre_chain=_SHARED_PROCESSORS,
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)


def get_logger(name: str) -> structlog.BoundLogger:
    """Return a structlog logger bound to *name* (usually ``__name__``)."""
    return cast(structlog.BoundLogger, structlog.get_logger(name))


def bind_job_context(job_id: str, sobject: str | None = None) -> None:
    """Attach the ingest job id (and object) to every event on this task.

    Uses structlog's contextvars so concurrent bulk runs in the same event
    loop keep separate context.
    """
    values: dict[str, str] = {"job_id": job_id}
    if sobject:
        values["sobject"] = sobject
    structlog.contextvars.bind_contextvars(**values)


def clear_job_context() -> None:
    structlog.contextvars.unbind_contextvars("job_id", "sobject")
