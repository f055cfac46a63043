"""Content analysis helpers."""

from __future__ import annotations

import re
from typing import Optional

from ..constants import Severity, ThreatKind
from ..utils.domains import host_matches
from .models import (
    ElementInfo,
    FormInfo,
    FormSubmission,
    ImageInfo,
    PageContent,
    Threat,
    Url,
    UrlParseError,
)
from .patterns import PatternSet

SCRIPT_TAG = re.compile(r"<script", re.I)

HIDDEN_ELEMENT_TAGS = ("iframe", "div", "embed", "object")


class DetectorContentMixin:
    """Page-level heuristics over a content descriptor."""

    def _content_threat(self, kind: ThreatKind, severity: Severity, description: str) -> Threat:
        return Threat(
            kind=kind,
            severity=severity,
            description=description,
            score_contribution=self.scoring.get("content_" + str(severity), 0),
        )

    def _detect_phishing_language(self, text: str, patterns: PatternSet) -> list[Threat]:
        """One threat per phishing phrase present in the page text."""
        text_lower = (text or "").lower()
        return [
            self._content_threat(
                ThreatKind.PHISHING_LANGUAGE,
                Severity.LOW,
                f'Suspicious phishing language detected: "{keyword}"',
            )
            for keyword in patterns.phishing_keywords
            if keyword in text_lower
        ]

    @staticmethod
    def _form_action_url(form: FormInfo, page: Url) -> Optional[Url]:
        """Resolve a form action against the page. None when unparsable."""
        try:
            return Url.parse(form.action or page.raw, base=page.raw)
        except UrlParseError:
            return None

    def _detect_external_login(self, form: FormInfo, page: Url) -> Optional[Threat]:
        if not form.has_password or not form.action.strip():
            return None
        action = self._form_action_url(form, page)
        if action is None or not action.host or action.host == page.host:
            return None
        return self._content_threat(
            ThreatKind.EXTERNAL_LOGIN_FORM,
            Severity.HIGH,
            f"Login form submits to external domain: {action.host}",
        )

    @staticmethod
    def _insecure_password_warnings(form: FormInfo, page: Url) -> list[str]:
        if not form.has_password:
            return []
        warnings: list[str] = []
        if not page.is_https:
            warnings.append("Password form on insecure connection!")
        if (form.method or "").strip().lower() == "get":
            warnings.append("Password form using insecure GET method!")
        return warnings

    def _detect_hidden_inputs(self, form: FormInfo) -> list[Threat]:
        limit = self.scoring["hidden_input_max_length"]
        return [
            self._content_threat(
                ThreatKind.SUSPICIOUS_HIDDEN_INPUT,
                Severity.MEDIUM,
                "Hidden form input with unusually large value",
            )
            for hidden in form.hidden_inputs
            if len(hidden.value or "") > limit
        ]

    def _detect_fake_badge(self, image: ImageInfo, page: Url, patterns: PatternSet) -> Optional[Threat]:
        alt = (image.alt or "").lower()
        src = (image.src or "").lower()
        if not any(k in alt or k in src for k in patterns.security_badge_keywords):
            return None
        if self._is_legitimate_badge(image.src, page, patterns):
            return None
        return self._content_threat(
            ThreatKind.FAKE_SECURITY_BADGE,
            Severity.MEDIUM,
            "Potentially fake security badge detected",
        )

    @staticmethod
    def _is_legitimate_badge(src: str, page: Url, patterns: PatternSet) -> bool:
        try:
            badge = Url.parse(src, base=page.raw)
        except UrlParseError:
            return False
        return any(host_matches(badge.host, vendor) for vendor in patterns.security_vendors)

    @staticmethod
    def _is_suspicious_script_source(host: str, patterns: PatternSet) -> bool:
        return any(p.search(host) for p in patterns.script_source_patterns)

    @staticmethod
    def _is_suspicious_script_content(text: str, patterns: PatternSet) -> bool:
        return any(p.search(text) for p in patterns.script_content_patterns)

    def _detect_scripts(self, content: PageContent, page: Url, patterns: PatternSet) -> list[Threat]:
        threats: list[Threat] = []
        for script in content.scripts:
            if script.src:
                try:
                    src = Url.parse(script.src, base=page.raw)
                except UrlParseError:
                    threats.append(
                        self._content_threat(
                            ThreatKind.INVALID_SCRIPT_URL,
                            Severity.LOW,
                            "Script with invalid URL",
                        )
                    )
                    continue
                if self._is_suspicious_script_source(src.host, patterns):
                    if content.dynamic:
                        threats.append(
                            self._content_threat(
                                ThreatKind.DYNAMIC_MALICIOUS_SCRIPT,
                                Severity.MEDIUM,
                                f"Suspicious script loaded dynamically: {src.host}",
                            )
                        )
                    else:
                        threats.append(
                            self._content_threat(
                                ThreatKind.SUSPICIOUS_EXTERNAL_SCRIPT,
                                Severity.MEDIUM,
                                f"Suspicious external script: {src.host}",
                            )
                        )
            elif script.text and self._is_suspicious_script_content(script.text, patterns):
                threats.append(
                    self._content_threat(
                        ThreatKind.SUSPICIOUS_INLINE_SCRIPT,
                        Severity.MEDIUM,
                        "Inline script with suspicious content",
                    )
                )
        return threats

    def _detect_hidden_element(self, element: ElementInfo, dynamic: bool = False) -> Optional[Threat]:
        tag = (element.tag or "").lower()
        if tag not in HIDDEN_ELEMENT_TAGS:
            return None

        if dynamic and tag == "iframe":
            min_px = self.scoring["dynamic_iframe_min_px"]
            if element.is_invisible or element.smaller_than(min_px):
                return self._content_threat(
                    ThreatKind.HIDDEN_IFRAME,
                    Severity.MEDIUM,
                    "Hidden iframe loaded dynamically",
                )
            return None

        min_px = self.scoring["hidden_element_min_px"]
        hidden = element.is_invisible or element.smaller_than(min_px)
        if not hidden:
            return None
        if tag != "iframe" and not SCRIPT_TAG.search(element.inner_html or ""):
            return None
        return self._content_threat(
            ThreatKind.HIDDEN_MALICIOUS_ELEMENT,
            Severity.MEDIUM,
            f"Hidden {tag} element detected",
        )

    def _detect_clickjacking(self, content: PageContent, page: Url) -> Optional[Threat]:
        frame = content.frame
        if frame is None or not frame.is_framed:
            return None

        if not frame.parent_origin:
            return self._content_threat(
                ThreatKind.CROSS_ORIGIN_FRAMING,
                Severity.MEDIUM,
                "Page framed by unknown origin - potential clickjacking",
            )

        parent = frame.parent_origin.strip()
        try:
            if "://" in parent:
                same_origin = Url.parse(parent).origin == page.origin
            else:
                same_origin = parent.lower().strip(".") == page.host
        except UrlParseError:
            same_origin = False

        if same_origin:
            return None
        return self._content_threat(
            ThreatKind.POTENTIAL_CLICKJACKING,
            Severity.MEDIUM,
            "Page loaded in iframe from different domain",
        )

    def _detect_miner_markup(self, markup: str, patterns: PatternSet) -> list[Threat]:
        markup_lower = (markup or "").lower()
        return [
            self._content_threat(
                ThreatKind.CRYPTOMINING_SCRIPT,
                Severity.MEDIUM,
                f"Potential cryptomining script detected: {indicator}",
            )
            for indicator in patterns.miner_indicators
            if indicator in markup_lower
        ]

    @staticmethod
    def _form_submission_warnings(submission: FormSubmission, patterns: PatternSet) -> list[str]:
        """Warnings for sensitive data leaving the page right now."""
        names = [(n or "").lower() for n in submission.field_names]
        if not any(f in name for name in names for f in patterns.sensitive_fields):
            return []

        try:
            page = Url.parse(submission.page_url)
            action = Url.parse(submission.action or page.raw, base=page.raw)
        except UrlParseError:
            return ["Form submitting to invalid URL!"]

        warnings: list[str] = []
        if not action.is_https:
            warnings.append("Sensitive data being sent over insecure connection!")
        if action.host != page.host:
            warnings.append("Sensitive data being sent to external domain!")
        return warnings
