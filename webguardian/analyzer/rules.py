"""Rule-based building blocks for threat detection."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Protocol

from ..config import Settings
from ..constants import Category
from .models import PageContent, Threat, Url
from .patterns import PatternSet


@dataclass
class DetectionContext:
    """Shared context passed to each detection rule."""

    url: Url
    settings: Settings
    patterns: PatternSet
    content: Optional[PageContent] = None


@dataclass
class RuleResult:
    """Outcome of a single detection rule."""

    name: str
    threats: list[Threat] = field(default_factory=list)
    # Standalone real-time warnings; never aggregated into the score.
    warnings: list[str] = field(default_factory=list)


class DetectionRule(Protocol):
    """Interface for detection rules."""

    name: str
    category: Category

    def apply(self, detector, context: DetectionContext) -> RuleResult:  # pragma: no cover - interface
        ...
