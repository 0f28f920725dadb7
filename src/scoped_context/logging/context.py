"""Log context enrichment utilities."""

from __future__ import annotations

from typing import Any, Protocol

import structlog


class ContextSink(Protocol):
    """Ambient key-value store read by the logging backend."""

    def set(self, key: str, value: Any) -> None: ...

    def remove(self, key: str) -> None: ...

    def get(self, key: str, default: Any = None) -> Any: ...


class StructlogContextSink:
    """Sink backed by structlog's contextvars (thread/task-local)."""

    def set(self, key: str, value: Any) -> None:
        structlog.contextvars.bind_contextvars(**{key: value})

    def remove(self, key: str) -> None:
        structlog.contextvars.unbind_contextvars(key)

    def get(self, key: str, default: Any = None) -> Any:
        return structlog.contextvars.get_contextvars().get(key, default)


def bind_context(**kwargs: object) -> None:
    """Bind key-value pairs to the current logging context (thread/task-local)."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Clear the current logging context."""
    structlog.contextvars.clear_contextvars()


def unbind_context(*keys: str) -> None:
    """Remove specific keys from the logging context."""
    structlog.contextvars.unbind_contextvars(*keys)


def get_context() -> dict[str, Any]:
    """Return a copy of the current logging context."""
    return dict(structlog.contextvars.get_contextvars())
