"""Risk aggregation: threats in, one AnalysisResult out."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Iterable, Optional

from ..config import Settings
from ..constants import MAX_RISK_SCORE, RiskLevel, is_secure_score
from .models import AnalysisResult, Threat

BADGE_COLORS = {
    RiskLevel.CRITICAL: "#dc2626",
    RiskLevel.HIGH: "#ea580c",
}
DEFAULT_BADGE_COLOR = "#f59e0b"


@dataclass(frozen=True)
class Badge:
    text: str
    color: str


class RiskAggregator:
    """Combines detector output into a clamped score and a verdict.

    Threats are kept in detection order and never deduplicated. A threat
    whose category is disabled in the settings is dropped from both the
    list and the sum.
    """

    @staticmethod
    def filter_enabled(threats: Iterable[Threat], settings: Settings) -> list[Threat]:
        return [t for t in threats if settings.is_enabled(t.kind.category)]

    @staticmethod
    def score(threats: Iterable[Threat]) -> int:
        total = sum(t.score_contribution for t in threats)
        return max(0, min(total, MAX_RISK_SCORE))

    def aggregate(
        self,
        url: str,
        domain: str,
        threats: Iterable[Threat],
        settings: Settings,
        trackers_blocked: int = 0,
        evaluation_id: int = 0,
        timestamp: Optional[float] = None,
    ) -> AnalysisResult:
        kept = self.filter_enabled(threats, settings)
        risk_score = self.score(kept)
        return AnalysisResult(
            url=url,
            domain=domain,
            threats=tuple(kept),
            risk_score=risk_score,
            is_secure=is_secure_score(risk_score),
            trackers_blocked=trackers_blocked,
            timestamp=time.time() if timestamp is None else timestamp,
            evaluation_id=evaluation_id,
        )


def should_warn(result: AnalysisResult, settings: Settings) -> bool:
    """Whether the full-page security warning should be shown for a result."""
    return settings.show_warnings and result.risk_score >= settings.warning_threshold


def badge_for(result: Optional[AnalysisResult]) -> Badge:
    """Badge text (threat count) and colour for a result."""
    if result is None or not result.threats:
        return Badge(text="", color=DEFAULT_BADGE_COLOR)
    level = RiskLevel.from_score(result.risk_score)
    return Badge(
        text=str(len(result.threats)),
        color=BADGE_COLORS.get(level, DEFAULT_BADGE_COLOR),
    )
