"""Native exceptions produced from unified leaf failures."""

from __future__ import annotations

import io
import sys
import traceback
from typing import TYPE_CHECKING, Optional, TextIO, Tuple

from fiberfailure.config import FAILURE_CONFIG
from fiberfailure.trace import StackFrame, render_frames

if TYPE_CHECKING:
    from fiberfailure.cause import FiberId


class LeafFailure(Exception):
    """A single leaf failure rendered as a raisable exception.

    Carries the leaf's message and trace instead of a Python traceback, and
    reports the class name of the value it was derived from.

    Attributes:
        class_name: Qualified type name of the original failure value.
        message: Human-readable message.
        trace: Frames recorded for the leaf, innermost first.
        fiber_id: Interrupting fiber, for interruption leaves.
        frame_separator: Printed before every frame when rendering.
    """

    def __init__(
        self,
        class_name: str,
        message: str,
        trace: Tuple[StackFrame, ...] = (),
        fiber_id: Optional[FiberId] = None,
        frame_separator: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.class_name = class_name
        self.message = message
        self.trace = tuple(trace)
        self.fiber_id = fiber_id
        self.frame_separator = (
            frame_separator
            if frame_separator is not None
            else FAILURE_CONFIG.frame_separator
        )

    def __reduce__(self):
        return (
            self.__class__,
            (
                self.class_name,
                self.message,
                self.trace,
                self.fiber_id,
                self.frame_separator,
            ),
        )

    def render_string(self) -> str:
        """Return ``class_name: message`` followed by one line per frame."""
        frames = render_frames(self.trace, self.frame_separator)
        return f"{self.class_name}: {self.message}{frames}\n"

    def print_trace(self, file: Optional[TextIO] = None) -> None:
        """Write `render_string()` to ``file`` (stderr by default)."""
        if file is None:
            file = sys.stderr
        file.write(self.render_string())


def format_exception_trace(exc: BaseException) -> str:
    """Return an exception's full trace as text.

    Exceptions that know how to print themselves (``print_trace``) do so;
    anything else goes through `traceback.format_exception`.
    """
    print_trace = getattr(exc, "print_trace", None)
    if callable(print_trace):
        buffer = io.StringIO()
        print_trace(buffer)
        return buffer.getvalue()
    return "".join(traceback.format_exception(exc))


def print_exception_trace(exc: BaseException, file: TextIO) -> None:
    """Print an exception's full trace to ``file``."""
    file.write(format_exception_trace(exc))
