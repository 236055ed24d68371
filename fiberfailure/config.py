"""Configuration for the fiber failure adapter."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Tuple

if TYPE_CHECKING:
    from fiberfailure.trace import StackFrame


@dataclass
class FailureConfig:
    """Rendering defaults and the runtime boundary used when merging traces."""

    # Modules equal to, or nested under, one of these belong to the runtime
    internal_prefixes: Tuple[str, ...] = ("fiberfailure",)

    # Message reported when the cause holds no leaf failure
    unknown_message: str = "<unknown>"

    # Printed before every frame of a rendered trace
    frame_separator: str = "\n\tat "

    # Printed before each suppressed entry by print_trace
    suppressed_prefix: str = "\tSuppressed: "

    def is_internal_frame(self, frame: StackFrame) -> bool:
        """Return True if the frame's module belongs to the runtime namespace."""
        module = frame.module
        for prefix in self.internal_prefixes:
            if module == prefix or module.startswith(prefix + "."):
                return True
        return False


# Global configuration instance
FAILURE_CONFIG = FailureConfig()
