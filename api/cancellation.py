"""
Cooperative cancellation tokens.

A token fires at most once. ``CancellationToken.linked(...)`` merges several
upstream tokens into one that fires when the first of them fires
(first-to-fire wins). ``CancellationToken.after(...)`` arms a timer-backed
token whose timer must be released with ``dispose()``.

Tokens are loop-agnostic: callbacks run synchronously inside ``cancel()``.
Only ``wait()`` touches the running event loop.
"""

import asyncio
import logging
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)

CancelCallback = Callable[["CancellationToken"], None]


class CancellationToken:
    """
    Single-shot cancellation signal.

    Usage:
        token = CancellationToken()
        remove = token.add_callback(lambda t: print(t.reason))
        token.cancel("superseded")   # runs the callback once
        token.cancel("again")        # no-op, returns False
    """

    def __init__(self):
        self._cancelled = False
        self._reason: Optional[str] = None
        self._callbacks: List[CancelCallback] = []
        self._upstream: List[Callable[[], None]] = []
        self._timer: Optional[asyncio.TimerHandle] = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def cancel(self, reason: str = "cancelled") -> bool:
        """
        Fire the token.

        Returns:
            True if this call fired it, False if it had already fired.
        """
        if self._cancelled:
            return False
        self._cancelled = True
        self._reason = reason

        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            try:
                callback(self)
            except Exception:
                logger.exception("Cancellation callback failed")

        self._release_timer()
        self._detach_upstream()
        return True

    def add_callback(self, callback: CancelCallback) -> Callable[[], None]:
        """
        Register ``callback`` to run when the token fires.

        If the token already fired, the callback runs immediately.

        Returns:
            A function that unregisters the callback.
        """
        if self._cancelled:
            callback(self)
            return lambda: None

        self._callbacks.append(callback)

        def remove() -> None:
            try:
                self._callbacks.remove(callback)
            except ValueError:
                pass

        return remove

    async def wait(self) -> None:
        """Suspend until the token fires."""
        if self._cancelled:
            return
        future = asyncio.get_running_loop().create_future()

        def resolve(_token: "CancellationToken") -> None:
            if not future.done():
                future.set_result(None)

        remove = self.add_callback(resolve)
        try:
            await future
        finally:
            remove()

    def dispose(self) -> None:
        """Release the timer and upstream subscriptions without firing."""
        self._release_timer()
        self._detach_upstream()
        self._callbacks.clear()

    # ── Constructors ──────────────────────────────────────────

    @classmethod
    def linked(cls, *sources: Optional["CancellationToken"]) -> "CancellationToken":
        """
        Merge ``sources`` into one token that fires when the first source fires.

        ``None`` entries are skipped. An already-fired source fires the merged
        token immediately. The merged token unsubscribes from every source
        once it fires or is disposed.
        """
        merged = cls()
        for source in sources:
            if source is None:
                continue
            if source.cancelled:
                merged.cancel(source.reason or "cancelled")
                break
            remove = source.add_callback(
                lambda fired: merged.cancel(fired.reason or "cancelled")
            )
            merged._upstream.append(remove)
        return merged

    @classmethod
    def after(cls, delay_s: float, reason: str = "timeout") -> "CancellationToken":
        """Token that fires after ``delay_s`` seconds on the running loop."""
        token = cls()
        loop = asyncio.get_running_loop()
        token._timer = loop.call_later(delay_s, token.cancel, reason)
        return token

    # ── Internals ─────────────────────────────────────────────

    def _release_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _detach_upstream(self) -> None:
        removers, self._upstream = self._upstream, []
        for remove in removers:
            remove()

    @property
    def has_pending_timer(self) -> bool:
        return self._timer is not None

    def __repr__(self) -> str:
        state = f"cancelled, reason={self._reason!r}" if self._cancelled else "active"
        return f"CancellationToken({state})"
