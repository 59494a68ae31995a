"""Structured logging setup using structlog."""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

from mysteryfactory.core.config import get_settings


_CONFIGURED = False
_JOB_CONTEXT_KEYS = ("tenant_id", "job_id", "platform")


def _add_default_context(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    del logger, method_name
    for key in _JOB_CONTEXT_KEYS:
        event_dict.setdefault(key, None)
    return event_dict


def configure_logging() -> None:
    """Initialize structlog once; JSON lines on stderr unless LOG_JSON=false. Stdout stays free for command output."""

    global _CONFIGURED
    if _CONFIGURED:
        return

    settings = get_settings()
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(level=level, format="%(message)s")

    renderer: Any = structlog.processors.JSONRenderer()
    if not settings.log_json:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            _add_default_context,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            renderer,
        ],
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=True,
    )

    _CONFIGURED = True


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    configure_logging()
    return structlog.get_logger(name)


def bind_job_context(*, tenant_id: str, job_id: str | None = None, platform: str | None = None) -> None:
    """Attach the job being executed to every log line emitted until clear_job_context."""

    structlog.contextvars.bind_contextvars(
        tenant_id=tenant_id,
        job_id=job_id,
        platform=platform,
    )


def clear_job_context() -> None:
    structlog.contextvars.unbind_contextvars(*_JOB_CONTEXT_KEYS)
