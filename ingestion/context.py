"""
Run-scoped mutable state threaded through every engine component.
"""

from typing import Dict, Any
from models.base import RunMode
import logging

logger = logging.getLogger(__name__)


class RunStats:
    """Counters reported at the end of a run"""

    def __init__(self, mode: str):
        self.mode = mode
        self.contents = 0
        self.extra_items = 0
        self.items_failed = 0
        self.api_failures = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mode": self.mode,
            "contents": self.contents,
            "extra_items": self.extra_items,
            "items_failed": self.items_failed,
            "api_failures": self.api_failures,
        }


class RunContext:
    """
    Acquisition mode, global budget and statistics for one run.

    Invariants:
    - mode only ever moves from API to WEB
    - remaining never drops below zero and only decreases by stored items
    """

    def __init__(self, max_results: int, api_available: bool):
        self.max_results = max_results
        self.remaining = max_results
        self._mode = RunMode.API if api_available else RunMode.WEB
        self.stats = RunStats("api-first" if api_available else "web-only")

    @property
    def mode(self) -> RunMode:
        return self._mode

    @property
    def api_available(self) -> bool:
        return self._mode == RunMode.API

    def fail_over(self, reason: str = "") -> None:
        """Permanently switch to web scraping"""
        self.stats.api_failures += 1
        if self._mode == RunMode.WEB:
            return
        self._mode = RunMode.WEB
        logger.warning(f"TMDb API failed, switching to website scraping for remaining work. {reason}".rstrip())

    def record_stored(self, count: int) -> None:
        """Consume budget for content items actually stored"""
        if count <= 0:
            return
        self.stats.contents += count
        self.remaining = max(0, self.remaining - count)

    def restore_consumed(self, consumed: int) -> None:
        """Apply budget already consumed by an interrupted run"""
        self.remaining = max(0, self.max_results - max(0, consumed))

    @property
    def budget_exhausted(self) -> bool:
        return self.remaining <= 0
