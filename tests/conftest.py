"""Global pytest configuration.

Provides small factories for hand-built frames and frame predicates so tests
can describe traces without depending on the interpreter's real call stack.
"""

from __future__ import annotations

from typing import Callable

import pytest

from fiberfailure.trace import StackFrame


@pytest.fixture
def make_frame() -> Callable[..., StackFrame]:
    """Return a factory for frames in a fictional application module."""

    def _make(
        function: str, module: str = "app.service", lineno: int = 1
    ) -> StackFrame:
        filename = "/srv/" + module.replace(".", "/") + ".py"
        return StackFrame(
            module=module, function=function, filename=filename, lineno=lineno
        )

    return _make


@pytest.fixture
def all_internal() -> Callable[[StackFrame], bool]:
    """Predicate treating every frame as runtime-internal (no caller frames)."""
    return lambda frame: True
