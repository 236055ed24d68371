"""Immutable failure trees produced by fiber execution.

A ``Cause`` describes why a fiber failed: a typed failure (``Fail``), a defect
(``Die``), an interruption (``Interrupt``), or a sequential (``Then``) or
parallel (``Both``) combination of those. Nodes are frozen dataclasses and are
only ever read here.

Traversal is depth-first and left-to-right for both combinators, so
``nodes()``, ``find()`` and ``unified()`` always agree on ordering.
"""

from __future__ import annotations

from dataclasses import dataclass
from itertools import zip_longest
from typing import Any, Callable, Iterator, List, Optional, Tuple, TypeVar

from fiberfailure.config import FAILURE_CONFIG
from fiberfailure.errors import LeafFailure
from fiberfailure.trace import (
    FramePredicate,
    StackFrame,
    frames_from_traceback,
    user_span,
)

T = TypeVar("T")

INTERRUPTED_CLASS_NAME = "InterruptedError"


def _qualified_name(value: Any) -> str:
    tp = type(value)
    if tp.__module__ == "builtins":
        return tp.__qualname__
    return f"{tp.__module__}.{tp.__qualname__}"


def _safe_str(value: Any) -> str:
    try:
        return str(value)
    except Exception:
        return f"<{_qualified_name(value)} str() failed>"


@dataclass(frozen=True)
class FiberId:
    """Identity of a fiber.

    Attributes:
        id: Fiber sequence number.
        start_time_millis: Wall-clock start time of the fiber.
    """

    id: int
    start_time_millis: int = 0

    @property
    def thread_name(self) -> str:
        return f"fiber-{self.id}"


@dataclass(frozen=True)
class Unified:
    """One leaf failure flattened for reporting.

    Attributes:
        fiber_id: Interrupting fiber for interruption leaves, else None.
        class_name: Qualified type name of the failure value.
        message: Human-readable message.
        trace: Frames, innermost first, already cut at the runtime boundary.
    """

    fiber_id: Optional[FiberId]
    class_name: str
    message: str
    trace: Tuple[StackFrame, ...] = ()

    def to_exception(self, frame_separator: Optional[str] = None) -> LeafFailure:
        """Render this leaf as a native exception.

        Args:
            frame_separator: Separator the exception renders frames with.
                Defaults to the global configuration.
        """
        return LeafFailure(
            self.class_name, self.message, self.trace, self.fiber_id, frame_separator
        )


class Cause:
    """Base class of every node in a failure tree."""

    def nodes(self) -> Iterator["Cause"]:
        """Yield every node, parent before children, left before right."""
        stack: List[Cause] = [self]
        while stack:
            node = stack.pop()
            yield node
            if isinstance(node, _Combinator):
                stack.append(node.right)
                stack.append(node.left)

    def leaves(self) -> Iterator["Cause"]:
        """Yield the Fail, Die and Interrupt nodes in traversal order."""
        for node in self.nodes():
            if isinstance(node, (Fail, Die, Interrupt)):
                yield node

    def find(self, fn: Callable[["Cause"], Optional[T]]) -> Optional[T]:
        """Return the first non-None result of ``fn`` over the nodes.

        Args:
            fn: Called on each node in traversal order.

        Returns:
            The first value ``fn`` returned that is not None, or None.
        """
        for node in self.nodes():
            result = fn(node)
            if result is not None:
                return result
        return None

    def unified(
        self, is_internal: Optional[FramePredicate] = None
    ) -> Tuple[Unified, ...]:
        """Flatten the tree into its leaf failures, in traversal order.

        Args:
            is_internal: Boundary predicate used to cut the tracebacks of
                exception values. Defaults to the global configuration.

        Returns:
            One Unified per leaf. Empty for a cause without leaves.
        """
        if is_internal is None:
            is_internal = FAILURE_CONFIG.is_internal_frame
        return tuple(leaf._unify(is_internal) for leaf in self.leaves())

    @property
    def is_empty(self) -> bool:
        """True if the tree holds no leaf failure."""
        return next(self.leaves(), None) is None

    def _unify(self, is_internal: FramePredicate) -> Unified:
        raise TypeError(f"{type(self).__name__} is not a leaf failure")


def _unify_exception(
    exc: BaseException, trace: Tuple[StackFrame, ...], is_internal: FramePredicate
) -> Unified:
    own = user_span(frames_from_traceback(exc.__traceback__), is_internal)
    return Unified(None, _qualified_name(exc), _safe_str(exc), own + trace)


@dataclass(frozen=True)
class Empty(Cause):
    """No failure."""


@dataclass(frozen=True)
class Fail(Cause):
    """A typed, recoverable failure carrying an arbitrary value."""

    value: Any
    trace: Tuple[StackFrame, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "trace", tuple(self.trace))

    def _unify(self, is_internal: FramePredicate) -> Unified:
        if isinstance(self.value, BaseException):
            return _unify_exception(self.value, self.trace, is_internal)
        message = _safe_str(self.value)
        return Unified(None, _qualified_name(self.value), message, self.trace)


@dataclass(frozen=True)
class Die(Cause):
    """A defect: an unexpected exception raised while the fiber ran."""

    exception: BaseException
    trace: Tuple[StackFrame, ...] = ()

    def __post_init__(self) -> None:
        if not isinstance(self.exception, BaseException):
            raise TypeError(
                f"Die requires an exception, got {type(self.exception).__name__}"
            )
        object.__setattr__(self, "trace", tuple(self.trace))

    def _unify(self, is_internal: FramePredicate) -> Unified:
        return _unify_exception(self.exception, self.trace, is_internal)


@dataclass(frozen=True)
class Interrupt(Cause):
    """The fiber was interrupted by another fiber."""

    fiber_id: FiberId
    trace: Tuple[StackFrame, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "trace", tuple(self.trace))

    def _unify(self, is_internal: FramePredicate) -> Unified:
        message = f'Interrupted by thread "{self.fiber_id.thread_name}"'
        return Unified(self.fiber_id, INTERRUPTED_CLASS_NAME, message, self.trace)


class _Combinator(Cause):
    """Shared behaviour of ``Then`` and ``Both``.

    Equality, hashing and repr walk the tree with an explicit stack, so
    arbitrarily deep chains never hit the recursion limit.
    """

    left: Cause
    right: Cause

    def __post_init__(self) -> None:
        _check_children(self)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Cause):
            return NotImplemented
        missing = object()
        pairs = zip_longest(self.nodes(), other.nodes(), fillvalue=missing)
        for mine, theirs in pairs:
            if isinstance(mine, _Combinator) or isinstance(theirs, _Combinator):
                if type(mine) is not type(theirs):
                    return False
            elif mine != theirs:
                return False
        return True

    def __hash__(self) -> int:
        return hash(
            tuple(
                type(node).__name__ if isinstance(node, _Combinator) else node
                for node in self.nodes()
            )
        )

    def __repr__(self) -> str:
        parts: List[str] = []
        stack: List[Any] = [self]
        while stack:
            item = stack.pop()
            if isinstance(item, str):
                parts.append(item)
            elif isinstance(item, _Combinator):
                opening = f"{type(item).__name__}(left="
                stack.extend([")", item.right, ", right=", item.left, opening])
            else:
                parts.append(repr(item))
        return "".join(parts)


@dataclass(frozen=True, eq=False, repr=False)
class Then(_Combinator):
    """``right`` happened after ``left``."""

    left: Cause
    right: Cause


@dataclass(frozen=True, eq=False, repr=False)
class Both(_Combinator):
    """``left`` and ``right`` happened concurrently."""

    left: Cause
    right: Cause


def _check_children(node: Cause) -> None:
    for name in ("left", "right"):
        child = getattr(node, name)
        if not isinstance(child, Cause):
            raise TypeError(
                f"{type(node).__name__}.{name} must be a Cause, "
                f"got {type(child).__name__}"
            )


#: Shared instance for the cause without failures.
EMPTY = Empty()

__all__ = [
    "Cause",
    "Empty",
    "Fail",
    "Die",
    "Interrupt",
    "Then",
    "Both",
    "EMPTY",
    "FiberId",
    "Unified",
    "INTERRUPTED_CLASS_NAME",
]
