"""Scoped context: nestable key-value log context for structlog."""

from scoped_context.scope.manager import (
    ScopedContextManager,
    arun_scoped,
    arun_scoped_timed,
    arun_scoped_with_prefix,
    clear_scope,
    get_default_manager,
    run_scoped,
    run_scoped_timed,
    run_scoped_with_prefix,
    scoped,
    set_default_manager,
)
from scoped_context.scope.state import ContextStackError

try:
    from importlib.metadata import version as _pkg_version
    __version__ = _pkg_version("scoped-context")
except Exception:
    __version__ = "dev"

__all__ = [
    "ContextStackError",
    "ScopedContextManager",
    "arun_scoped",
    "arun_scoped_timed",
    "arun_scoped_with_prefix",
    "clear_scope",
    "get_default_manager",
    "run_scoped",
    "run_scoped_timed",
    "run_scoped_with_prefix",
    "scoped",
    "set_default_manager",
]
