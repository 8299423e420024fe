"""
Duplicate-scan suppression.

A camera often decodes one physical barcode several times in a row.  A scan
of the same barcode within the cooldown after the previous accepted scan is
ignored.  State is local and never persisted; time comes from the injected
Clock.  Entries whose window has closed are dropped on the next scan, so
the table only holds barcodes seen within the last cooldown.
"""

from __future__ import annotations

import threading

from inventory_kernel.domain.clock import Clock


class ScanDebouncer:
    def __init__(self, clock: Clock, cooldown_seconds: float = 2.0):
        if cooldown_seconds < 0:
            raise ValueError("cooldown_seconds must be >= 0")
        self._clock = clock
        self._cooldown = cooldown_seconds
        self._last_seen: dict[tuple[str, str], float] = {}
        self._lock = threading.Lock()

    @property
    def cooldown_seconds(self) -> float:
        return self._cooldown

    def _prune(self, now: float) -> None:
        expired = [key for key, seen in self._last_seen.items() if now - seen >= self._cooldown]
        for key in expired:
            del self._last_seen[key]

    def should_accept(self, barcode: str, scope: str = "") -> bool:
        """
        True if this scan should be processed.

        Accepted scans restart the window for ``(scope, barcode)``; ignored
        scans do not extend it.
        """
        key = (scope, barcode)
        now = self._clock.monotonic()
        with self._lock:
            self._prune(now)
            if key in self._last_seen:
                return False
            self._last_seen[key] = now
            return True

    def forget(self, barcode: str, scope: str = "") -> None:
        """Let the next scan of ``barcode`` through immediately."""
        with self._lock:
            self._last_seen.pop((scope, barcode), None)

    def reset(self) -> None:
        with self._lock:
            self._last_seen.clear()

    def __len__(self) -> int:
        """Number of (scope, barcode) windows still open."""
        with self._lock:
            return len(self._last_seen)
