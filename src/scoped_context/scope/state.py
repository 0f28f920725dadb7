"""Per-execution-context key stacks behind scoped log context.

Each key maps to a stack of pushed values. The stacks live in a
``ContextVar`` so they follow the logical unit of work (a thread, or an
asyncio task) rather than a physical thread. Every change replaces the
mapping with a new one built from tuples, so a task spawned inside a scope
starts from a snapshot and can never mutate its parent's stacks.

Scopes do not cross threads: work handed to an executor thread starts
without them unless the caller submits it through
``contextvars.copy_context().run``.

The sink is updated before the stacks, so a sink that rejects a value
leaves the stacks as they were.
"""

from __future__ import annotations

import logging
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any

from scoped_context.logging.context import ContextSink

logger = logging.getLogger(__name__)

_ABSENT: Any = object()


class ContextStackError(RuntimeError):
    """Raised when a key is popped more often than it was pushed."""


@dataclass(frozen=True)
class KeyStack:
    """Values pushed for one key, innermost last.

    ``baseline`` is the sink value found when the first value was pushed
    (a key bound outside this library), restored once the stack drains.
    """

    values: tuple[str, ...] = ()
    baseline: Any = field(default=_ABSENT, compare=False)

    @property
    def top(self) -> str:
        return self.values[-1]

    @property
    def has_baseline(self) -> bool:
        return self.baseline is not _ABSENT


_scope_state: ContextVar[dict[str, KeyStack]] = ContextVar("scoped_context_state")


def _state() -> dict[str, KeyStack]:
    return _scope_state.get({})


def push(key: str, value: str, sink: ContextSink) -> None:
    """Push ``value`` for ``key`` and make it the sink's current value."""
    state = _state()
    stack = state.get(key)
    if stack is None:
        stack = KeyStack(baseline=sink.get(key, _ABSENT))
    sink.set(key, value)
    _scope_state.set({**state, key: KeyStack(stack.values + (value,), stack.baseline)})


def pop(key: str, sink: ContextSink) -> None:
    """Pop the innermost value for ``key`` and expose the enclosing one.

    Raises:
        ContextStackError: ``key`` has nothing left to pop.
    """
    state = _state()
    stack = state.get(key)
    if stack is None or not stack.values:
        logger.error("Context key %r popped without a matching push", key)
        raise ContextStackError(f"No scoped value to pop for context key {key!r}")

    remaining = stack.values[:-1]
    new_state = dict(state)
    if remaining:
        sink.set(key, remaining[-1])
        new_state[key] = KeyStack(remaining, stack.baseline)
        _scope_state.set(new_state)
        return

    if stack.has_baseline:
        sink.set(key, stack.baseline)
    else:
        sink.remove(key)
    del new_state[key]
    _scope_state.set(new_state)


def current_stacks() -> dict[str, tuple[str, ...]]:
    """Snapshot of the pushed values per key in the current context."""
    return {key: stack.values for key, stack in _state().items()}


def clear_scope_state(sink: ContextSink) -> None:
    """Drop every scoped value in the current context.

    Meant for execution contexts that get reused (pooled worker threads)
    where a unit of work may have been abandoned mid-scope.
    """
    state = _state()
    if not state:
        return
    for key, stack in state.items():
        if stack.has_baseline:
            sink.set(key, stack.baseline)
        else:
            sink.remove(key)
    _scope_state.set({})
    logger.debug("Cleared scoped context keys: %s", sorted(state))
