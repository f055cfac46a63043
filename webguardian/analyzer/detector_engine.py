"""Threat detector engine."""

from __future__ import annotations

import logging
from typing import Optional

from ..config import DEFAULT_SCORING, Settings
from .detector_content import DetectorContentMixin
from .detector_rules import (
    ClickjackingRule,
    ExternalLoginFormRule,
    FakeSecurityBadgeRule,
    HiddenElementRule,
    HiddenInputRule,
    InsecurePasswordFormRule,
    MaliciousDomainRule,
    MinerMarkupRule,
    PhishingLanguageRule,
    PhishingRule,
    ScriptRule,
    SuspiciousUrlRule,
)
from .detector_url import DetectorUrlMixin
from .models import ContentFindings, FormSubmission, PageContent, Threat, Url
from .patterns import PatternSet
from .rules import DetectionContext, DetectionRule, RuleResult

logger = logging.getLogger(__name__)


class ThreatDetector(DetectorUrlMixin, DetectorContentMixin):
    """Runs the URL and content rule chains for one evaluation.

    The detector holds no per-evaluation state: settings and the pattern
    snapshot are passed in on every call, so one instance can serve any
    number of concurrent target keys.
    """

    def __init__(self, scoring_weights: Optional[dict] = None):
        self.scoring = dict(DEFAULT_SCORING)
        if scoring_weights:
            self.scoring.update(scoring_weights)

        self._url_rules: list[DetectionRule] = [
            MaliciousDomainRule(),
            PhishingRule(),
            SuspiciousUrlRule(),
        ]
        self._content_rules: list[DetectionRule] = [
            PhishingLanguageRule(),
            ExternalLoginFormRule(),
            FakeSecurityBadgeRule(),
            InsecurePasswordFormRule(),
            HiddenInputRule(),
            ScriptRule(),
            HiddenElementRule(),
            ClickjackingRule(),
            MinerMarkupRule(),
        ]

    def _run(self, rules: list[DetectionRule], context: DetectionContext) -> ContentFindings:
        findings = ContentFindings()
        for rule in rules:
            if not context.settings.is_enabled(rule.category):
                continue
            try:
                result: RuleResult = rule.apply(self, context)
            except Exception as exc:
                logger.warning(
                    "Rule %s failed for %s: %s",
                    getattr(rule, "name", "unknown"),
                    context.url.host,
                    exc,
                )
                continue
            findings.threats.extend(result.threats)
            findings.warnings.extend(result.warnings)
        return findings

    def evaluate_url(self, url: Url, settings: Settings, patterns: PatternSet) -> list[Threat]:
        """URL-level threats in detection order (blocklist, phishing, structure)."""
        context = DetectionContext(url=url, settings=settings, patterns=patterns)
        return self._run(self._url_rules, context).threats

    def scan_content(
        self,
        url: Url,
        content: Optional[PageContent],
        settings: Settings,
        patterns: PatternSet,
    ) -> ContentFindings:
        """Content-level threats plus standalone warnings for one submission."""
        if content is None:
            return ContentFindings()
        context = DetectionContext(url=url, settings=settings, patterns=patterns, content=content)
        return self._run(self._content_rules, context)

    def check_form_submission(
        self,
        submission: FormSubmission,
        settings: Settings,
        patterns: PatternSet,
    ) -> list[str]:
        """Immediate warnings for a form being submitted with sensitive fields."""
        if not settings.real_time_protection:
            return []
        try:
            return self._form_submission_warnings(submission, patterns)
        except Exception as exc:
            logger.warning("Form submission check failed for %s: %s", submission.page_url, exc)
            return []
