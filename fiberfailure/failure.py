"""Raise a fiber's failure tree as a single Python exception.

``FiberFailure`` wraps a ``Cause`` and derives the usual exception surface
from it on demand:

- ``message``: message of the first unified leaf, or ``"<unknown>"``.
- ``cause``: the first defect's exception, else the first exception-valued
  typed failure, else None.
- ``stack_trace``: frames of the code that crossed into the runtime (the
  throw point up to the first runtime-internal frame), followed by the trace
  of the first unified leaf.
- ``suppressed``: the remaining unified leaves as exceptions, attached once.

Derived values are computed at most once per instance, also when accessed
from several threads.
"""

from __future__ import annotations

import sys
import threading
from types import FrameType
from typing import Callable, Generic, List, NoReturn, Optional, TextIO, Tuple, TypeVar

from fiberfailure.cause import Cause, Die, Fail, Unified
from fiberfailure.config import FAILURE_CONFIG, FailureConfig
from fiberfailure.errors import format_exception_trace, print_exception_trace
from fiberfailure.logging import get_logger
from fiberfailure.trace import (
    FramePredicate,
    StackFrame,
    capture_stack,
    render_frames,
    user_span,
)

logger = get_logger(__name__)

T = TypeVar("T")


class _Once(Generic[T]):
    """Write-once cell filled by ``compute`` on first `get()`."""

    __slots__ = ("_compute", "_lock", "_value", "_ready")

    def __init__(self, compute: Callable[[], T]) -> None:
        self._compute = compute
        self._lock = threading.Lock()
        self._value: Optional[T] = None
        self._ready = False

    def get(self) -> T:
        if not self._ready:
            with self._lock:
                if not self._ready:
                    self._value = self._compute()
                    self._ready = True
        return self._value  # type: ignore[return-value]


class FiberFailure(Exception):
    """Exception raised in place of a failed fiber.

    Args:
        cause: Failure tree of the fiber.
        is_internal: Predicate marking runtime-internal frames. Defaults to
            ``config.is_internal_frame``.
        config: Rendering configuration. Defaults to the global instance.

    Raises:
        TypeError: If ``cause`` is not a Cause.
    """

    def __init__(
        self,
        cause: Cause,
        is_internal: Optional[FramePredicate] = None,
        config: Optional[FailureConfig] = None,
    ) -> None:
        if not isinstance(cause, Cause):
            raise TypeError(
                f"FiberFailure requires a Cause, got {type(cause).__name__}"
            )
        super().__init__()
        self._fiber_cause = cause
        self._config = config if config is not None else FAILURE_CONFIG
        self._is_internal = (
            is_internal if is_internal is not None else self._config.is_internal_frame
        )
        self._throw_point = capture_stack(self._throw_point_frame())

        self._unified = _Once(lambda: self._fiber_cause.unified(self._is_internal))
        self._message = _Once(self._compute_message)
        self._native_cause = _Once(self._compute_native_cause)
        self._stack_trace = _Once(self._compute_stack_trace)

        self._suppressed: List[BaseException] = []
        self._suppressed_filled = False
        self._suppressed_lock = threading.Lock()

    def _throw_point_frame(self) -> Optional[FrameType]:
        # Skip this module's helpers and any constructor frames of this instance
        frame = sys._getframe(1)
        while frame is not None and (
            frame.f_globals.get("__name__") == __name__
            or (
                frame.f_code.co_name == "__init__"
                and frame.f_locals.get("self") is self
            )
        ):
            frame = frame.f_back
        return frame

    def __reduce__(self):
        with self._suppressed_lock:
            state = {
                "throw_point": self._throw_point,
                "suppressed": list(self._suppressed),
                "suppressed_filled": self._suppressed_filled,
                "notes": list(getattr(self, "__notes__", ())),
            }
        return (self.__class__, (self._fiber_cause,), state)

    def __setstate__(self, state: dict) -> None:
        # __init__ re-ran at the load site; restore the pickled throw point
        self._throw_point = state["throw_point"]
        self._suppressed = list(state["suppressed"])
        self._suppressed_filled = state["suppressed_filled"]
        if state["notes"]:
            self.__notes__ = list(state["notes"])

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._fiber_cause!r})"

    def __str__(self) -> str:
        return self.render_string()

    @property
    def fiber_cause(self) -> Cause:
        """The wrapped failure tree."""
        return self._fiber_cause

    @property
    def message(self) -> str:
        return self.primary_message()

    @property
    def cause(self) -> Optional[BaseException]:
        return self.primary_native_cause()

    @property
    def stack_trace(self) -> Tuple[StackFrame, ...]:
        return self.combined_stack_trace()

    @property
    def suppressed(self) -> Tuple[BaseException, ...]:
        return self.suppressed_failures()

    def unified(self) -> Tuple[Unified, ...]:
        """Leaf failures of the wrapped cause, primary first."""
        return self._unified.get()

    def primary_message(self) -> str:
        return self._message.get()

    def primary_native_cause(self) -> Optional[BaseException]:
        return self._native_cause.get()

    def combined_stack_trace(self) -> Tuple[StackFrame, ...]:
        return self._stack_trace.get()

    def _compute_message(self) -> str:
        unified = self.unified()
        if not unified:
            return self._config.unknown_message
        return unified[0].message

    def _compute_native_cause(self) -> Optional[BaseException]:
        cause = self._fiber_cause
        defect = cause.find(
            lambda node: node.exception if isinstance(node, Die) else None
        )
        if defect is not None:
            return defect
        return cause.find(
            lambda node: node.value
            if isinstance(node, Fail) and isinstance(node.value, BaseException)
            else None
        )

    def _compute_stack_trace(self) -> Tuple[StackFrame, ...]:
        user_trace = user_span(self._throw_point, self._is_internal)
        unified = self.unified()
        cause_trace = unified[0].trace if unified else ()
        logger.debug(
            "Combined trace: %d caller frame(s), %d cause frame(s)",
            len(user_trace),
            len(cause_trace),
        )
        return user_trace + cause_trace

    def add_suppressed(self, exc: BaseException) -> None:
        """Append an exception to the suppressed slot.

        Raises:
            TypeError: If ``exc`` is not an exception.
            ValueError: If ``exc`` is this failure itself.
        """
        if not isinstance(exc, BaseException):
            raise TypeError(f"Cannot suppress {type(exc).__name__}")
        if exc is self:
            raise ValueError("Self-suppression not permitted")
        with self._suppressed_lock:
            self._attach(exc)

    def _attach(self, exc: BaseException) -> None:
        # Mirrored into __notes__ so the default exception reporter shows it
        self._suppressed.append(exc)
        trace = format_exception_trace(exc).rstrip("\n")
        self.add_note(f"{self._config.suppressed_prefix}{trace}")

    def fill_suppressed(self) -> None:
        """Attach every leaf but the first to the suppressed slot, once.

        Later calls, and calls after the slot was filled through
        `add_suppressed()`, leave the slot untouched.
        """
        with self._suppressed_lock:
            if self._suppressed_filled or self._suppressed:
                logger.debug("Suppressed slot already populated; skipping")
                self._suppressed_filled = True
                return
            separator = self._config.frame_separator
            secondary = [leaf.to_exception(separator) for leaf in self.unified()[1:]]
            for exc in secondary:
                self._attach(exc)
            self._suppressed_filled = True
        if secondary:
            logger.debug("Attached %d suppressed failure(s)", len(secondary))

    def suppressed_failures(self) -> Tuple[BaseException, ...]:
        """Populate the suppressed slot if needed and return its contents."""
        self.fill_suppressed()
        with self._suppressed_lock:
            return tuple(self._suppressed)

    def render_string(self) -> str:
        """Return the message followed by one ``\\n\\tat`` line per frame."""
        frames = render_frames(
            self.combined_stack_trace(), self._config.frame_separator
        )
        return f"{self.primary_message()}{frames}\n"

    def print_trace(self, file: Optional[TextIO] = None) -> None:
        """Write the rendered failure and every suppressed entry to ``file``.

        Args:
            file: Text sink. Defaults to stderr.
        """
        if file is None:
            file = sys.stderr
        file.write(self.render_string())
        for exc in self.suppressed_failures():
            file.write(self._config.suppressed_prefix)
            print_exception_trace(exc, file)


def fiber_failure(
    cause: Cause,
    is_internal: Optional[FramePredicate] = None,
    config: Optional[FailureConfig] = None,
) -> FiberFailure:
    """Wrap ``cause`` in a FiberFailure."""
    return FiberFailure(cause, is_internal=is_internal, config=config)


def raise_failure(cause: Cause) -> NoReturn:
    """Raise ``cause`` as a FiberFailure with its suppressed slot filled.

    The exception is chained from its primary native cause, so ``__cause__``
    points at the first defect (or exception-valued failure) in the tree.
    """
    failure = FiberFailure(cause)
    failure.fill_suppressed()
    raise failure from failure.primary_native_cause()
