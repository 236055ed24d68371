"""Stack frames as plain values.

Frames are kept innermost first, the order in which a stack is walked from a
throw point outwards. ``StackFrame`` records the module a frame executed in so
that the runtime boundary can be found by module name; the capture helpers
build frames from live interpreter frames and from exception tracebacks.
"""

from __future__ import annotations

import os
import sys
import traceback
from dataclasses import dataclass
from itertools import takewhile
from types import FrameType, TracebackType
from typing import Callable, Iterable, Optional, Tuple

#: Predicate deciding whether a frame belongs to the runtime's own namespace.
FramePredicate = Callable[["StackFrame"], bool]


@dataclass(frozen=True)
class StackFrame:
    """A single frame of a trace.

    Attributes:
        module: Name of the module the code ran in (``__name__`` of its globals).
        function: Qualified name of the function.
        filename: Source file path.
        lineno: Line number being executed, or None when unknown.
    """

    module: str
    function: str
    filename: str
    lineno: Optional[int] = None

    @classmethod
    def from_frame(
        cls, frame: FrameType, lineno: Optional[int] = None
    ) -> "StackFrame":
        """Build a StackFrame from a live interpreter frame.

        Args:
            frame: Interpreter frame.
            lineno: Line to report instead of the frame's current line.

        Returns:
            The frame as an immutable value.
        """
        code = frame.f_code
        return cls(
            module=frame.f_globals.get("__name__", "<unknown>"),
            function=code.co_qualname,
            filename=code.co_filename,
            lineno=frame.f_lineno if lineno is None else lineno,
        )

    def __str__(self) -> str:
        location = os.path.basename(self.filename) or "<unknown>"
        if self.lineno is not None:
            location = f"{location}:{self.lineno}"
        return f"{self.module}.{self.function}({location})"


def capture_stack(start: Optional[FrameType] = None) -> Tuple[StackFrame, ...]:
    """Capture the current call stack, innermost frame first.

    Args:
        start: Frame to start from. Defaults to the caller of this function.

    Returns:
        Frames from ``start`` out to the outermost frame.
    """
    frame = start if start is not None else sys._getframe(1)
    frames = []
    while frame is not None:
        frames.append(StackFrame.from_frame(frame))
        frame = frame.f_back
    return tuple(frames)


def frames_from_traceback(tb: Optional[TracebackType]) -> Tuple[StackFrame, ...]:
    """Convert a traceback into frames, innermost (the raise point) first."""
    frames = [StackFrame.from_frame(f, lineno) for f, lineno in traceback.walk_tb(tb)]
    frames.reverse()
    return tuple(frames)


def user_span(
    frames: Iterable[StackFrame], is_internal: FramePredicate
) -> Tuple[StackFrame, ...]:
    """Return the leading frames that precede the first runtime-internal frame.

    Args:
        frames: Frames, innermost first.
        is_internal: Boundary predicate.

    Returns:
        The longest prefix of ``frames`` in which no frame is internal.
    """
    return tuple(takewhile(lambda frame: not is_internal(frame), frames))


def render_frames(frames: Iterable[StackFrame], separator: str) -> str:
    """Render frames as ``separator`` + frame for each frame, concatenated."""
    return "".join(f"{separator}{frame}" for frame in frames)
