"""Detector rule implementations."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..constants import Category, Severity, ThreatKind
from .models import Threat
from .rules import DetectionContext, RuleResult

if TYPE_CHECKING:
    from .detector_engine import ThreatDetector


# ---------------------------------------------------------------------------
# URL rules
# ---------------------------------------------------------------------------


class MaliciousDomainRule:
    name = "malicious_domain"
    category = Category.MALICIOUS

    def apply(self, detector: "ThreatDetector", context: DetectionContext) -> RuleResult:
        threat = detector._lookup_malicious_domain(context.url, context.patterns)
        return RuleResult(self.name, threats=[threat] if threat else [])


class PhishingRule:
    name = "phishing"
    category = Category.PHISHING

    def apply(self, detector: "ThreatDetector", context: DetectionContext) -> RuleResult:
        reason = detector._detect_phishing(context.url, context.patterns)
        if not reason:
            return RuleResult(self.name)
        threat = Threat(
            kind=ThreatKind.PHISHING,
            severity=Severity.HIGH,
            description=reason,
            score_contribution=detector.scoring["phishing"],
        )
        return RuleResult(self.name, threats=[threat])


class SuspiciousUrlRule:
    name = "suspicious_url"
    category = Category.MALICIOUS

    def apply(self, detector: "ThreatDetector", context: DetectionContext) -> RuleResult:
        score, reason = detector._analyze_url_structure(context.url, context.patterns)
        if score <= 0:
            return RuleResult(self.name)
        threat = Threat(
            kind=ThreatKind.SUSPICIOUS_URL,
            severity=Severity.MEDIUM,
            description=reason or "Suspicious URL structure",
            score_contribution=score,
        )
        return RuleResult(self.name, threats=[threat])


# ---------------------------------------------------------------------------
# Content rules
# ---------------------------------------------------------------------------


class PhishingLanguageRule:
    name = "phishing_language"
    category = Category.PHISHING

    def apply(self, detector: "ThreatDetector", context: DetectionContext) -> RuleResult:
        threats = detector._detect_phishing_language(context.content.text, context.patterns)
        return RuleResult(self.name, threats=threats)


class ExternalLoginFormRule:
    name = "external_login_form"
    category = Category.PHISHING

    def apply(self, detector: "ThreatDetector", context: DetectionContext) -> RuleResult:
        threats = []
        for form in context.content.forms:
            threat = detector._detect_external_login(form, context.url)
            if threat:
                threats.append(threat)
        return RuleResult(self.name, threats=threats)


class FakeSecurityBadgeRule:
    name = "fake_security_badge"
    category = Category.PHISHING

    def apply(self, detector: "ThreatDetector", context: DetectionContext) -> RuleResult:
        threats = []
        for image in context.content.images:
            threat = detector._detect_fake_badge(image, context.url, context.patterns)
            if threat:
                threats.append(threat)
        return RuleResult(self.name, threats=threats)


class InsecurePasswordFormRule:
    """Surfaces warnings only; nothing here is scored."""

    name = "insecure_password_form"
    category = Category.PHISHING

    def apply(self, detector: "ThreatDetector", context: DetectionContext) -> RuleResult:
        warnings: list[str] = []
        for form in context.content.forms:
            warnings.extend(detector._insecure_password_warnings(form, context.url))
        return RuleResult(self.name, warnings=warnings)


class HiddenInputRule:
    name = "suspicious_hidden_input"
    category = Category.MALICIOUS

    def apply(self, detector: "ThreatDetector", context: DetectionContext) -> RuleResult:
        threats = []
        for form in context.content.forms:
            threats.extend(detector._detect_hidden_inputs(form))
        return RuleResult(self.name, threats=threats)


class ScriptRule:
    name = "scripts"
    category = Category.MALICIOUS

    def apply(self, detector: "ThreatDetector", context: DetectionContext) -> RuleResult:
        threats = detector._detect_scripts(context.content, context.url, context.patterns)
        return RuleResult(self.name, threats=threats)


class HiddenElementRule:
    name = "hidden_elements"
    category = Category.MALICIOUS

    def apply(self, detector: "ThreatDetector", context: DetectionContext) -> RuleResult:
        threats = []
        for element in context.content.elements:
            threat = detector._detect_hidden_element(element, dynamic=context.content.dynamic)
            if threat:
                threats.append(threat)
        return RuleResult(self.name, threats=threats)


class ClickjackingRule:
    name = "clickjacking"
    category = Category.MALICIOUS

    def apply(self, detector: "ThreatDetector", context: DetectionContext) -> RuleResult:
        threat = detector._detect_clickjacking(context.content, context.url)
        return RuleResult(self.name, threats=[threat] if threat else [])


class MinerMarkupRule:
    name = "cryptomining_markup"
    category = Category.CRYPTOMINING

    def apply(self, detector: "ThreatDetector", context: DetectionContext) -> RuleResult:
        threats = detector._detect_miner_markup(context.content.markup, context.patterns)
        return RuleResult(self.name, threats=threats)


__all__ = [
    "MaliciousDomainRule",
    "PhishingRule",
    "SuspiciousUrlRule",
    "PhishingLanguageRule",
    "ExternalLoginFormRule",
    "FakeSecurityBadgeRule",
    "InsecurePasswordFormRule",
    "HiddenInputRule",
    "ScriptRule",
    "HiddenElementRule",
    "ClickjackingRule",
    "MinerMarkupRule",
]
