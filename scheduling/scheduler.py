"""
Per-key debounce / single-flight scheduler.

Turns bursty triggers (saves, edits) into at most one effective operation per
quiet period for each key (one key per open document).

  State       Meaning
  ──────────  ─────────────────────────────────────────────────────
  IDLE        no entry in the table
  SCHEDULED   quiet-period timer armed, nothing in flight
  RUNNING     an operation is in flight (a follow-up timer may be armed)

Invariants:
- At most one armed timer per key
- At most one outstanding cancellation token per key
- Only the payload of the LAST trigger in a quiet window is dispatched
- A trigger while RUNNING cancels the run cooperatively and schedules a
  follow-up that starts only after the run resolves
- Teardown removes the entry; repeated teardown is a no-op

All state is owned by the scheduler and mutated on the event loop thread only.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Hashable, List, Optional

from api.cancellation import CancellationToken

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_MS = 500

# dispatch(payload, token) -> awaitable result
DispatchFn = Callable[[Any, CancellationToken], Awaitable[Any]]


class OperationState(str, Enum):
    IDLE = "idle"
    SCHEDULED = "scheduled"
    RUNNING = "running"


@dataclass
class PendingOperation:
    """Bookkeeping for one key."""

    timer_handle: Optional[asyncio.TimerHandle] = None
    cancellation_handle: Optional[CancellationToken] = None
    latest_payload: Any = None
    dispatch: Optional[DispatchFn] = None
    task: Optional[asyncio.Task] = None
    due: bool = False  # quiet period elapsed while a run was still in flight


class KeyedOperationScheduler:
    """
    Debounces triggers per key and supersedes in-flight work.

    Usage:
        scheduler = KeyedOperationScheduler(debounce_ms=500)
        scheduler.schedule(uri, document, lint)          # debounced
        task = scheduler.execute_immediately(uri, document, lint)
        scheduler.teardown(uri)                          # document closed

    ``dispatch`` receives the payload and a CancellationToken that fires when
    the run is superseded or torn down. Cancellation is cooperative: the
    dispatched coroutine keeps running until it notices the token.
    """

    def __init__(self, debounce_ms: int = DEFAULT_DEBOUNCE_MS):
        self.debounce_ms = debounce_ms
        self._pending: Dict[Hashable, PendingOperation] = {}

    # ──────────────────────────────────────────────────────────
    # TRIGGERS
    # ──────────────────────────────────────────────────────────

    def schedule(self, key: Hashable, payload: Any, dispatch: DispatchFn) -> None:
        """Debounced trigger: (re)arm the quiet-period timer for ``key``."""
        loop = asyncio.get_running_loop()
        entry = self._entry(key)

        self._disarm(entry)
        if entry.task is not None:
            self._request_cancel(entry, "superseded")

        entry.latest_payload = payload
        entry.dispatch = dispatch
        entry.due = False
        entry.timer_handle = loop.call_later(
            self.debounce_ms / 1000.0, self._on_quiet_period, key, entry
        )
        logger.debug(f"Scheduled {key!r} in {self.debounce_ms}ms")

    def execute_immediately(
        self,
        key: Hashable,
        payload: Any,
        dispatch: DispatchFn,
    ) -> "asyncio.Task[Any]":
        """
        Dispatch now, bypassing the quiet period.

        Any armed timer is cancelled and any in-flight run is asked to stop.
        The superseded run may still resolve later; its token is cancelled so
        consumers can drop its result.

        Returns:
            The task running ``dispatch``.
        """
        entry = self._entry(key)
        self._disarm(entry)
        entry.due = False
        if entry.task is not None:
            self._request_cancel(entry, "superseded")

        entry.latest_payload = payload
        entry.dispatch = dispatch
        return self._dispatch(key, entry)

    def teardown(self, key: Hashable) -> None:
        """Cancel everything for ``key`` and forget it. Idempotent."""
        entry = self._pending.pop(key, None)
        if entry is None:
            return
        self._disarm(entry)
        self._request_cancel(entry, "teardown")
        entry.latest_payload = None
        entry.dispatch = None
        entry.due = False
        logger.debug(f"Tore down {key!r}")

    def dispose(self) -> None:
        """Tear down every key."""
        for key in list(self._pending):
            self.teardown(key)

    # ──────────────────────────────────────────────────────────
    # INSPECTION
    # ──────────────────────────────────────────────────────────

    def state(self, key: Hashable) -> OperationState:
        entry = self._pending.get(key)
        if entry is None:
            return OperationState.IDLE
        if entry.task is not None:
            return OperationState.RUNNING
        if entry.timer_handle is not None:
            return OperationState.SCHEDULED
        return OperationState.IDLE

    def pending_keys(self) -> List[Hashable]:
        return list(self._pending)

    def __len__(self) -> int:
        return len(self._pending)

    # ──────────────────────────────────────────────────────────
    # TRANSITIONS
    # ──────────────────────────────────────────────────────────

    def _entry(self, key: Hashable) -> PendingOperation:
        entry = self._pending.get(key)
        if entry is None:
            entry = PendingOperation()
            self._pending[key] = entry
        return entry

    def _on_quiet_period(self, key: Hashable, entry: PendingOperation) -> None:
        if self._pending.get(key) is not entry:
            return
        entry.timer_handle = None
        if entry.task is not None:
            entry.due = True
            return
        self._dispatch(key, entry)

    def _dispatch(self, key: Hashable, entry: PendingOperation) -> "asyncio.Task[Any]":
        payload, dispatch = entry.latest_payload, entry.dispatch
        entry.latest_payload = None
        entry.dispatch = None
        entry.due = False

        token = CancellationToken()
        entry.cancellation_handle = token

        async def run() -> Any:
            return await dispatch(payload, token)

        task = asyncio.get_running_loop().create_task(run())
        entry.task = task
        task.add_done_callback(lambda done: self._on_resolved(key, entry, done, token))
        logger.debug(f"Dispatched {key!r}")
        return task

    def _on_resolved(
        self,
        key: Hashable,
        entry: PendingOperation,
        task: "asyncio.Task[Any]",
        token: CancellationToken,
    ) -> None:
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Operation for {key!r} failed", exc_info=task.exception())

        if entry.task is task:
            entry.task = None
        if entry.cancellation_handle is token:
            entry.cancellation_handle = None
        token.dispose()

        if self._pending.get(key) is not entry or entry.task is not None:
            return
        if entry.due:
            self._dispatch(key, entry)
        elif entry.timer_handle is None:
            del self._pending[key]

    @staticmethod
    def _disarm(entry: PendingOperation) -> None:
        if entry.timer_handle is not None:
            entry.timer_handle.cancel()
            entry.timer_handle = None

    @staticmethod
    def _request_cancel(entry: PendingOperation, reason: str) -> None:
        if entry.cancellation_handle is not None:
            entry.cancellation_handle.cancel(reason)
