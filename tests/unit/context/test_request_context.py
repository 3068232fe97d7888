"""Tests for request cancellation and deadlines."""

import threading
import time

import pytest

from credential_lease_core.context.request_context import RequestContext
from credential_lease_core.exceptions import OperationCancelledError


class TestRequestContext:
    """Cancellation signal plus optional deadline."""

    def test_background_never_expires(self):
        ctx = RequestContext.background()
        assert ctx.remaining() is None
        assert ctx.expired is False
        assert ctx.cancelled is False
        ctx.check()

    def test_cancel(self):
        ctx = RequestContext()
        ctx.cancel()
        assert ctx.cancelled is True
        with pytest.raises(OperationCancelledError, match="create_key cancelled"):
            ctx.check("create_key")

    def test_deadline_expires(self):
        ctx = RequestContext(timeout=0)
        assert ctx.expired is True
        with pytest.raises(OperationCancelledError, match="deadline exceeded"):
            ctx.check("delete_key")

    def test_remaining_counts_down(self):
        ctx = RequestContext(timeout=30)
        remaining = ctx.remaining()
        assert 0 < remaining <= 30

    def test_wait_completes_without_cancel(self):
        ctx = RequestContext()
        started = time.monotonic()
        ctx.wait(0.01)
        assert time.monotonic() - started >= 0.01

    def test_cancel_wakes_wait_promptly(self):
        ctx = RequestContext()
        timer = threading.Timer(0.05, ctx.cancel)
        timer.start()

        started = time.monotonic()
        with pytest.raises(OperationCancelledError):
            ctx.wait(10, "retry wait")
        timer.join()

        assert time.monotonic() - started < 5

    def test_wait_past_deadline_raises(self):
        ctx = RequestContext(timeout=0.05)
        started = time.monotonic()
        with pytest.raises(OperationCancelledError, match="deadline exceeded"):
            ctx.wait(10)
        assert time.monotonic() - started < 5
