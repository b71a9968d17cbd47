"""
Scheduling layer: keyed debounce with supersede, and stale-result detection.
"""

from scheduling.scheduler import (
    DEFAULT_DEBOUNCE_MS,
    DispatchFn,
    KeyedOperationScheduler,
    OperationState,
    PendingOperation,
)
from scheduling.staleness import StalenessGuard

__all__ = [
    "DEFAULT_DEBOUNCE_MS",
    "DispatchFn",
    "KeyedOperationScheduler",
    "OperationState",
    "PendingOperation",
    "StalenessGuard",
]
