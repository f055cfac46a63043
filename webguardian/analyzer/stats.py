"""Running protection counters.

The accumulator is the only writer of :class:`Stats`. It is shared by
every target key, so updates are serialized with a lock.
"""

import logging
import threading
from dataclasses import asdict, dataclass
from typing import Optional

from ..constants import ThreatKind
from .models import AnalysisResult, Threat

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Stats:
    """Snapshot of the five monotonically increasing counters."""

    sites_scanned: int = 0
    threats_blocked: int = 0
    trackers_blocked: int = 0
    malware_detected: int = 0
    phishing_blocked: int = 0

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "Stats":
        data = data or {}

        def pick(snake: str, camel: str) -> int:
            try:
                return max(0, int(data.get(snake, data.get(camel, 0)) or 0))
            except (TypeError, ValueError):
                return 0

        return cls(
            sites_scanned=pick("sites_scanned", "sitesScanned"),
            threats_blocked=pick("threats_blocked", "threatsBlocked"),
            trackers_blocked=pick("trackers_blocked", "trackersBlocked"),
            malware_detected=pick("malware_detected", "malwareDetected"),
            phishing_blocked=pick("phishing_blocked", "phishingBlocked"),
        )

    def to_dict(self) -> dict:
        return {
            "sitesScanned": self.sites_scanned,
            "threatsBlocked": self.threats_blocked,
            "trackersBlocked": self.trackers_blocked,
            "malwareDetected": self.malware_detected,
            "phishingBlocked": self.phishing_blocked,
        }


class StatsAccumulator:
    """Thread-safe counter updates with the documented rules."""

    def __init__(self, initial: Optional[Stats] = None):
        self._lock = threading.Lock()
        self._counts = asdict(initial or Stats())

    def record_result(self, result: AnalysisResult) -> Stats:
        """Count a completed navigation evaluation."""
        with self._lock:
            self._counts["sites_scanned"] += 1
            self._apply_threats(result.threats, previous=())
            return Stats(**self._counts)

    def record_additional_threats(
        self,
        new_threats: tuple[Threat, ...] | list[Threat],
        previous: tuple[Threat, ...] | list[Threat],
    ) -> Stats:
        """Count threats appended to an already-counted result."""
        with self._lock:
            self._apply_threats(new_threats, previous=previous)
            return Stats(**self._counts)

    def _apply_threats(self, threats, previous) -> None:
        self._counts["threats_blocked"] += len(threats)
        kinds_before = {t.kind for t in previous}
        kinds_now = {t.kind for t in threats}
        if ThreatKind.MALICIOUS_DOMAIN in kinds_now - kinds_before:
            self._counts["malware_detected"] += 1
        if ThreatKind.PHISHING in kinds_now - kinds_before:
            self._counts["phishing_blocked"] += 1

    def record_tracker_block(self) -> Stats:
        with self._lock:
            self._counts["trackers_blocked"] += 1
            return Stats(**self._counts)

    def snapshot(self) -> Stats:
        with self._lock:
            return Stats(**self._counts)

    def reset(self) -> Stats:
        """Explicit external reset; the only way counters go down."""
        with self._lock:
            self._counts = asdict(Stats())
            logger.info("Statistics reset")
            return Stats(**self._counts)
