"""Structured logging with per-query context using structlog and contextvars."""

import logging
from contextvars import ContextVar

import structlog

# Context variables for the source task currently running
current_query_id: ContextVar[str | None] = ContextVar("current_query_id", default=None)
current_source: ContextVar[str | None] = ContextVar("current_source", default=None)

_configured = False


def setup_structured_logging(level: str = "INFO") -> None:
    """Configure structlog with JSON output and per-query context.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
    """
    global _configured
    if _configured:
        return

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,  # Inject query context
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, level.upper(), logging.INFO),
    )

    _configured = True


def bind_query_context(query_id: str, source: str) -> None:
    """Bind query context for all subsequent logs in this async context.

    Each fan-out task runs in its own copy of the context, so bindings made
    inside one source task are invisible to its siblings.

    Args:
        query_id: Identifier shared by all sources of one fan-out call
        source: Name of the source being fetched
    """
    current_query_id.set(query_id)
    current_source.set(source)
    structlog.contextvars.bind_contextvars(query_id=query_id, source=source)


def clear_query_context() -> None:
    """Clear query context after a source task completes."""
    current_query_id.set(None)
    current_source.set(None)
    structlog.contextvars.clear_contextvars()


def get_query_logger(name: str = "snaxel_query") -> structlog.stdlib.BoundLogger:
    """Get a structlog logger that carries the bound query context."""
    return structlog.get_logger(name)


def get_current_query_id() -> str | None:
    return current_query_id.get()


def get_current_source() -> str | None:
    return current_source.get()
