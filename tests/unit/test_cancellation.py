"""
tests/unit/test_cancellation.py

Verifies:
✔ A token fires exactly once
✔ Callbacks run once; late subscribers run immediately
✔ linked(): first source to fire wins, merged token fires once
✔ linked(): already-fired source fires the merged token immediately
✔ after(): timer-backed token fires, dispose() releases the timer
✔ wait() resumes when the token fires
"""

import asyncio

import pytest

from api.cancellation import CancellationToken


class TestCancellationToken:
    def test_cancel_fires_once(self):
        token = CancellationToken()
        assert token.cancel("first") is True
        assert token.cancel("second") is False
        assert token.cancelled
        assert token.reason == "first"

    def test_callbacks_run_once(self):
        token = CancellationToken()
        calls = []
        token.add_callback(lambda t: calls.append(t.reason))

        token.cancel("stop")
        token.cancel("stop again")

        assert calls == ["stop"]

    def test_late_subscriber_runs_immediately(self):
        token = CancellationToken()
        token.cancel("done")
        calls = []
        token.add_callback(lambda t: calls.append(t.reason))
        assert calls == ["done"]

    def test_removed_callback_not_called(self):
        token = CancellationToken()
        calls = []
        remove = token.add_callback(lambda t: calls.append(1))
        remove()
        remove()  # idempotent
        token.cancel()
        assert calls == []

    def test_failing_callback_does_not_block_others(self):
        token = CancellationToken()
        calls = []

        def boom(_t):
            raise RuntimeError("listener bug")

        token.add_callback(boom)
        token.add_callback(lambda t: calls.append("ok"))
        token.cancel()

        assert calls == ["ok"]


class TestLinkedTokens:
    def test_first_source_wins(self):
        user = CancellationToken()
        timeout = CancellationToken()
        merged = CancellationToken.linked(user, timeout)
        fired = []
        merged.add_callback(lambda t: fired.append(t.reason))

        timeout.cancel("timeout")
        user.cancel("user")

        assert merged.cancelled
        assert fired == ["timeout"]

    def test_either_source_triggers(self):
        user = CancellationToken()
        timeout = CancellationToken()
        merged = CancellationToken.linked(user, timeout)

        user.cancel("user")

        assert merged.cancelled
        assert merged.reason == "user"

    def test_none_sources_skipped(self):
        only = CancellationToken()
        merged = CancellationToken.linked(None, only)
        assert not merged.cancelled
        only.cancel()
        assert merged.cancelled

    def test_already_cancelled_source(self):
        source = CancellationToken()
        source.cancel("early")
        merged = CancellationToken.linked(source, CancellationToken())
        assert merged.cancelled
        assert merged.reason == "early"

    def test_dispose_detaches_from_sources(self):
        source = CancellationToken()
        merged = CancellationToken.linked(source)
        merged.dispose()

        source.cancel()

        assert not merged.cancelled


class TestTimedTokens:
    @pytest.mark.asyncio
    async def test_after_fires(self):
        token = CancellationToken.after(0.01)
        await asyncio.wait_for(token.wait(), timeout=1.0)
        assert token.cancelled
        assert token.reason == "timeout"
        assert not token.has_pending_timer

    @pytest.mark.asyncio
    async def test_dispose_clears_timer(self):
        token = CancellationToken.after(0.01)
        assert token.has_pending_timer
        token.dispose()
        assert not token.has_pending_timer

        await asyncio.sleep(0.03)
        assert not token.cancelled

    @pytest.mark.asyncio
    async def test_wait_resumes_on_cancel(self):
        token = CancellationToken()
        waiter = asyncio.ensure_future(token.wait())
        await asyncio.sleep(0)
        assert not waiter.done()

        token.cancel()
        await asyncio.wait_for(waiter, timeout=1.0)
        assert waiter.done()
