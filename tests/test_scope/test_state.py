"""Tests for per-context key stacks."""

from __future__ import annotations

import pytest

from scoped_context.logging.context import StructlogContextSink, bind_context, get_context
from scoped_context.scope import state
from scoped_context.scope.state import ContextStackError


@pytest.fixture
def sink() -> StructlogContextSink:
    return StructlogContextSink()


class TestPushPop:
    def test_push_sets_sink_value(self, sink: StructlogContextSink) -> None:
        state.push("job", "a", sink)
        assert get_context() == {"job": "a"}
        assert state.current_stacks() == {"job": ("a",)}

    def test_pop_restores_enclosing_value(self, sink: StructlogContextSink) -> None:
        state.push("job", "a", sink)
        state.push("job", "b", sink)
        assert get_context()["job"] == "b"
        state.pop("job", sink)
        assert get_context()["job"] == "a"
        assert state.current_stacks() == {"job": ("a",)}

    def test_last_pop_removes_key(self, sink: StructlogContextSink) -> None:
        state.push("job", "a", sink)
        state.pop("job", sink)
        assert "job" not in get_context()
        assert state.current_stacks() == {}

    def test_keys_are_independent(self, sink: StructlogContextSink) -> None:
        state.push("a", "1", sink)
        state.push("b", "2", sink)
        state.pop("a", sink)
        assert get_context() == {"b": "2"}

    def test_double_pop_raises(self, sink: StructlogContextSink) -> None:
        state.push("other", "x", sink)
        with pytest.raises(ContextStackError):
            state.pop("job", sink)
        # Unrelated keys are untouched
        assert get_context() == {"other": "x"}
        assert state.current_stacks() == {"other": ("x",)}

    def test_context_stack_error_is_runtime_error(self) -> None:
        assert issubclass(ContextStackError, RuntimeError)


class TestBaseline:
    def test_externally_bound_value_restored(self, sink: StructlogContextSink) -> None:
        bind_context(request_id="outer")
        state.push("request_id", "inner", sink)
        assert get_context()["request_id"] == "inner"
        state.pop("request_id", sink)
        assert get_context()["request_id"] == "outer"
        assert state.current_stacks() == {}


class TestClearScopeState:
    def test_clear_removes_managed_keys(self, sink: StructlogContextSink) -> None:
        bind_context(service="api")
        state.push("job", "a", sink)
        state.push("job", "b", sink)
        state.push("step", "s", sink)
        state.clear_scope_state(sink)
        assert get_context() == {"service": "api"}
        assert state.current_stacks() == {}

    def test_clear_restores_baseline(self, sink: StructlogContextSink) -> None:
        bind_context(job="external")
        state.push("job", "a", sink)
        state.clear_scope_state(sink)
        assert get_context() == {"job": "external"}

    def test_clear_on_empty_state_is_noop(self, sink: StructlogContextSink) -> None:
        bind_context(service="api")
        state.clear_scope_state(sink)
        assert get_context() == {"service": "api"}


class RejectingSink(StructlogContextSink):
    """Structlog sink that refuses one key."""

    def __init__(self, rejected: str) -> None:
        self.rejected = rejected

    def set(self, key: str, value: object) -> None:
        if key == self.rejected:
            raise TypeError(f"cannot bind {key!r}")
        super().set(key, value)


class TestSinkFailure:
    def test_rejected_push_leaves_stacks_unchanged(self) -> None:
        sink = RejectingSink("bad")
        with pytest.raises(TypeError):
            state.push("bad", "v", sink)
        assert state.current_stacks() == {}
        assert get_context() == {}

    def test_rejected_nested_push_keeps_outer_value(self) -> None:
        sink = RejectingSink("never")
        state.push("job", "a", sink)
        sink.rejected = "job"
        with pytest.raises(TypeError):
            state.push("job", "b", sink)
        assert state.current_stacks() == {"job": ("a",)}
        assert get_context() == {"job": "a"}
