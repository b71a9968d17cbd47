"""
Version-stamped staleness detection.

The resource (an open document) owns a monotonically increasing version.
The guard only reads it: capture before dispatch, compare when the result
arrives, and drop the result if the resource moved on in between.
"""

import logging
from typing import Callable

logger = logging.getLogger(__name__)


class StalenessGuard:
    """
    Gate for applying async results to a mutable resource.

    Usage:
        guard = StalenessGuard(lambda: document.version, label=document.uri)
        stamp = guard.capture()
        result = await client.lint(document.text)
        guard.apply_if_current(stamp, lambda: sink.set(document.uri, result))
    """

    def __init__(self, read_version: Callable[[], int], label: str = ""):
        self._read_version = read_version
        self.label = label

    def capture(self) -> int:
        """Current version, to be compared when the result arrives."""
        return self._read_version()

    def is_current(self, captured: int) -> bool:
        return self._read_version() == captured

    def apply_if_current(
        self,
        captured: int,
        apply: Callable[[], None],
    ) -> bool:
        """
        Run ``apply`` only if the version has not changed since ``captured``.

        Returns:
            True if applied, False if the result was discarded.
        """
        current = self._read_version()
        if current != captured:
            logger.debug(
                f"Discarding stale result for {self.label or 'resource'} "
                f"(captured v{captured}, now v{current})"
            )
            return False
        apply()
        return True
