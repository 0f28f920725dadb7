"""Scoped context manager: runs units of work with temporary log context."""

from __future__ import annotations

import inspect
import time
from collections.abc import Awaitable, Callable, Iterator, Mapping
from contextlib import AbstractContextManager, contextmanager
from typing import Any, TypeVar

from scoped_context.config.schema import ScopeConfig
from scoped_context.logging.context import ContextSink, StructlogContextSink
from scoped_context.scope import state

T = TypeVar("T")

DEFAULT_TIMER_KEY = "operationTimeMs"


def with_prefix(pairs: Mapping[str, str], prefix: str) -> dict[str, str]:
    """Return a copy of ``pairs`` with ``prefix`` prepended to every key."""
    return {prefix + key: value for key, value in pairs.items()}


def _takes_result(observer: Callable[..., Any]) -> bool:
    try:
        signature = inspect.signature(observer)
    except (TypeError, ValueError):
        return True
    try:
        signature.bind(None)
    except TypeError:
        return False
    return True


def _elapsed_ms(start_ns: int) -> str:
    return str((time.monotonic_ns() - start_ns) // 1_000_000)


class ScopedContextManager:
    """Pushes key-value pairs into the ambient log context around work.

    Each key keeps a stack of values per execution context, so nested scopes
    may reuse a key and the enclosing value comes back when the inner scope
    exits. Teardown runs on every exit path, including exceptions and
    cancellation. Scopes are not carried into executor threads; submit work
    through ``contextvars.copy_context().run`` if it needs them.
    """

    def __init__(
        self,
        sink: ContextSink | None = None,
        timer_key: str = DEFAULT_TIMER_KEY,
    ) -> None:
        self._sink: ContextSink = sink if sink is not None else StructlogContextSink()
        self._timer_key = timer_key

    @classmethod
    def from_config(
        cls, config: ScopeConfig, sink: ContextSink | None = None
    ) -> ScopedContextManager:
        return cls(sink=sink, timer_key=config.timer_key)

    @property
    def sink(self) -> ContextSink:
        return self._sink

    @property
    def timer_key(self) -> str:
        return self._timer_key

    @contextmanager
    def scoped(self, pairs: Mapping[str, str]) -> Iterator[None]:
        """Context manager form: push ``pairs`` on entry, pop them on exit."""
        pushed: list[str] = []
        try:
            for key, value in pairs.items():
                state.push(key, value, self._sink)
                pushed.append(key)
            yield
        finally:
            for key in reversed(pushed):
                state.pop(key, self._sink)

    def run_scoped(self, pairs: Mapping[str, str], work: Callable[[], T]) -> T:
        """Run ``work`` with ``pairs`` in the log context and return its result."""
        with self.scoped(pairs):
            return work()

    def run_scoped_with_prefix(
        self, pairs: Mapping[str, str], prefix: str, work: Callable[[], T]
    ) -> T:
        return self.run_scoped(with_prefix(pairs, prefix), work)

    def run_scoped_timed(
        self,
        pairs: Mapping[str, str],
        work: Callable[[], T],
        observer: Callable[..., Any],
    ) -> T:
        """Run ``work`` in scope, then report its duration to ``observer``.

        The elapsed milliseconds are visible under the timer key only while
        ``observer`` runs. ``observer`` takes either no arguments or the
        result of ``work``. It is skipped entirely when ``work`` raises.
        """

        def timed() -> T:
            start_ns = time.monotonic_ns()
            result = work()
            with self.scoped({self._timer_key: _elapsed_ms(start_ns)}):
                self._notify(observer, result)
            return result

        return self.run_scoped(pairs, timed)

    async def arun_scoped(
        self, pairs: Mapping[str, str], work: Callable[[], Awaitable[T]]
    ) -> T:
        """Await ``work()`` with ``pairs`` in the log context of the current task."""
        with self.scoped(pairs):
            return await work()

    async def arun_scoped_with_prefix(
        self, pairs: Mapping[str, str], prefix: str, work: Callable[[], Awaitable[T]]
    ) -> T:
        return await self.arun_scoped(with_prefix(pairs, prefix), work)

    async def arun_scoped_timed(
        self,
        pairs: Mapping[str, str],
        work: Callable[[], Awaitable[T]],
        observer: Callable[..., Any],
    ) -> T:
        """Async counterpart of :meth:`run_scoped_timed`; ``observer`` may be a coroutine function."""

        async def timed() -> T:
            start_ns = time.monotonic_ns()
            result = await work()
            with self.scoped({self._timer_key: _elapsed_ms(start_ns)}):
                outcome = self._notify(observer, result)
                if inspect.isawaitable(outcome):
                    await outcome
            return result

        return await self.arun_scoped(pairs, timed)

    def clear(self) -> None:
        """Drop all scoped values of the current execution context."""
        state.clear_scope_state(self._sink)

    @staticmethod
    def _notify(observer: Callable[..., Any], result: Any) -> Any:
        if _takes_result(observer):
            return observer(result)
        return observer()


_default_manager = ScopedContextManager()


def get_default_manager() -> ScopedContextManager:
    return _default_manager


def set_default_manager(manager: ScopedContextManager) -> None:
    """Replace the manager used by the module-level helpers."""
    global _default_manager
    _default_manager = manager


def scoped(pairs: Mapping[str, str]) -> AbstractContextManager[None]:
    return _default_manager.scoped(pairs)


def run_scoped(pairs: Mapping[str, str], work: Callable[[], T]) -> T:
    return _default_manager.run_scoped(pairs, work)


def run_scoped_with_prefix(
    pairs: Mapping[str, str], prefix: str, work: Callable[[], T]
) -> T:
    return _default_manager.run_scoped_with_prefix(pairs, prefix, work)


def run_scoped_timed(
    pairs: Mapping[str, str], work: Callable[[], T], observer: Callable[..., Any]
) -> T:
    return _default_manager.run_scoped_timed(pairs, work, observer)


async def arun_scoped(pairs: Mapping[str, str], work: Callable[[], Awaitable[T]]) -> T:
    return await _default_manager.arun_scoped(pairs, work)


async def arun_scoped_with_prefix(
    pairs: Mapping[str, str], prefix: str, work: Callable[[], Awaitable[T]]
) -> T:
    return await _default_manager.arun_scoped_with_prefix(pairs, prefix, work)


async def arun_scoped_timed(
    pairs: Mapping[str, str], work: Callable[[], Awaitable[T]], observer: Callable[..., Any]
) -> T:
    return await _default_manager.arun_scoped_timed(pairs, work, observer)


def clear_scope() -> None:
    _default_manager.clear()
