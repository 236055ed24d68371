"""fiberfailure: raise fiber failure trees as ordinary Python exceptions.

A fiber runtime describes failures as a ``Cause`` tree that may hold several
typed failures, defects and interruptions combined sequentially or in
parallel. ``FiberFailure`` collapses such a tree into one exception with a
message, a chained cause, a merged stack trace and suppressed secondary
failures.

Primary API:
    FiberFailure - Exception wrapping a Cause
    fiber_failure() - Build a FiberFailure from a Cause
    raise_failure() - Raise a Cause as a FiberFailure
    Cause, Empty, Fail, Die, Interrupt, Then, Both - Failure tree nodes

Example:
    from fiberfailure import Both, Fail, FiberFailure, raise_failure

    try:
        raise_failure(Both(Fail("a"), Fail("b")))
    except FiberFailure as exc:
        exc.message          # "a"
        exc.suppressed       # (LeafFailure("b"),)
        exc.print_trace()
"""

from __future__ import annotations

from fiberfailure import logging
from fiberfailure._version import __version__
from fiberfailure.cause import (
    EMPTY,
    Both,
    Cause,
    Die,
    Empty,
    Fail,
    FiberId,
    Interrupt,
    Then,
    Unified,
)
from fiberfailure.config import FAILURE_CONFIG, FailureConfig
from fiberfailure.errors import LeafFailure, print_exception_trace
from fiberfailure.failure import FiberFailure, fiber_failure, raise_failure
from fiberfailure.trace import StackFrame, capture_stack

__all__ = [
    # Version
    "__version__",
    # Failure trees
    "Cause",
    "Empty",
    "EMPTY",
    "Fail",
    "Die",
    "Interrupt",
    "Then",
    "Both",
    "FiberId",
    "Unified",
    # Adapter
    "FiberFailure",
    "fiber_failure",
    "raise_failure",
    "LeafFailure",
    "print_exception_trace",
    # Traces
    "StackFrame",
    "capture_stack",
    # Configuration
    "FailureConfig",
    "FAILURE_CONFIG",
    # Utilities
    "logging",
]
