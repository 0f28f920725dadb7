"""Shared test fixtures for scoped context."""

from __future__ import annotations

from typing import Iterator

import pytest

from scoped_context.logging.context import clear_context
from scoped_context.scope.manager import ScopedContextManager
from scoped_context.scope.state import _scope_state


@pytest.fixture(autouse=True)
def clean_context() -> Iterator[None]:
    """Start and finish every test with an empty ambient context."""
    clear_context()
    _scope_state.set({})
    yield
    clear_context()
    _scope_state.set({})


@pytest.fixture
def manager() -> ScopedContextManager:
    return ScopedContextManager()
