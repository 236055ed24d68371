"""Tests for centralized logging behavior and configuration."""

import logging
from io import StringIO

import pytest

from fiberfailure.logging import (
    disable_debug_logging,
    enable_debug_logging,
    get_logger,
    reset_logging,
    set_global_log_level,
    setup_root_logger,
)


@pytest.fixture(autouse=True)
def _reset_logging_each_test():
    """Reset logging state before and after each test to avoid cross-test bleed."""
    reset_logging()
    yield
    reset_logging()


def test_effective_levels_enable_disable():
    """Verify effective levels: INFO by default, DEBUG after enable, back to INFO after disable."""
    logger = get_logger("fiberfailure.test")

    capture = StringIO()
    handler = logging.StreamHandler(capture)
    handler.setLevel(logging.DEBUG)
    logger.handlers.clear()
    logger.addHandler(handler)

    logger.info("info-1")
    assert "info-1" in capture.getvalue()

    capture.seek(0)
    capture.truncate(0)
    logger.debug("debug-1")
    assert "debug-1" not in capture.getvalue()

    enable_debug_logging()
    logger.debug("debug-2")
    assert "debug-2" in capture.getvalue()

    capture.seek(0)
    capture.truncate(0)
    disable_debug_logging()
    logger.debug("debug-3")
    assert "debug-3" not in capture.getvalue()


def test_global_level_propagates_to_children_and_new_loggers():
    """Changing global level updates effective level of existing and new child loggers."""
    cause_logger = get_logger("fiberfailure.cause")
    failure_logger = get_logger("fiberfailure.failure")

    assert cause_logger.getEffectiveLevel() == logging.INFO
    assert failure_logger.getEffectiveLevel() == logging.INFO

    set_global_log_level(logging.WARNING)
    assert cause_logger.getEffectiveLevel() == logging.WARNING
    assert failure_logger.getEffectiveLevel() == logging.WARNING

    trace_logger = get_logger("fiberfailure.trace")
    assert trace_logger.getEffectiveLevel() == logging.WARNING


def test_setup_root_logger_idempotent_no_duplicate_handlers():
    """Repeated setup should not accumulate handlers or change semantics."""
    capture = StringIO()
    handler = logging.StreamHandler(capture)
    setup_root_logger(level=logging.INFO, handler=handler)

    root_logger = logging.getLogger("fiberfailure")
    assert len(root_logger.handlers) == 1

    setup_root_logger(level=logging.DEBUG)
    assert len(root_logger.handlers) == 1

    set_global_log_level(logging.ERROR)
    assert root_logger.level == logging.ERROR


def test_custom_format_string_applied():
    """Custom format string is respected by the root handler."""
    capture = StringIO()
    handler = logging.StreamHandler(capture)
    fmt = "LEVEL:%(levelname)s|NAME:%(name)s|MSG:%(message)s"
    setup_root_logger(level=logging.INFO, format_string=fmt, handler=handler)

    logger = get_logger("fiberfailure.test.format")
    logger.info("hello")
    out = capture.getvalue()
    assert "LEVEL:INFO" in out
    assert "NAME:fiberfailure.test.format" in out
    assert "MSG:hello" in out


def test_adapter_debug_output_reaches_package_handler():
    """Adapter debug records flow through the package handler once enabled."""
    from fiberfailure.cause import Both, Fail
    from fiberfailure.failure import FiberFailure

    capture = StringIO()
    setup_root_logger(level=logging.DEBUG, handler=logging.StreamHandler(capture))

    FiberFailure(Both(Fail("a"), Fail("b"))).fill_suppressed()
    assert "Attached 1 suppressed failure(s)" in capture.getvalue()
