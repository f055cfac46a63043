"""Tests for brand impersonation, suspicious TLD and shortener checks."""

import idna
import pytest

from webguardian.analyzer.models import Url
from webguardian.config import Settings
from webguardian.constants import Severity, ThreatKind
from webguardian.utils.domains import lookalike_host, normalize_homoglyphs


def phishing_threats(detector, url, patterns, settings=None):
    threats = detector.evaluate_url(Url.parse(url), settings or Settings(), patterns)
    return [t for t in threats if t.kind == ThreatKind.PHISHING]


class TestBrandImpersonation:
    """Character-substitution brand checks."""

    def test_digit_substitution_is_flagged(self, detector, patterns):
        threats = phishing_threats(detector, "https://paypa1-login.com/", patterns)
        assert len(threats) == 1
        assert threats[0].severity == Severity.HIGH
        assert threats[0].score_contribution == 70
        assert threats[0].description == "Possible phishing attempt targeting paypal"

    @pytest.mark.parametrize("host", ["paypal.com", "accounts.paypal.com", "www.microsoft.com"])
    def test_canonical_brand_domain_is_not_flagged(self, detector, patterns, host):
        assert phishing_threats(detector, f"https://{host}/", patterns) == []

    def test_cumulative_substitution(self, detector, patterns):
        threats = phishing_threats(detector, "https://g00gle-support.net/", patterns)
        assert len(threats) == 1
        assert "google" in threats[0].description

    @pytest.mark.parametrize(
        "host",
        [
            "login.microsoftonline.com",
            "www.google.de",
            "www.amazon.co.uk",
            "fonts.googleapis.com",
            "www.apple.co.uk",
            "www.paypal.de",
        ],
    )
    def test_brand_owned_hosts_are_not_flagged(self, detector, patterns, host):
        assert phishing_threats(detector, f"https://{host}/", patterns) == []

    def test_unrelated_host_is_not_flagged(self, detector, patterns):
        assert phishing_threats(detector, "https://example.com/", patterns) == []

    def test_first_brand_wins(self, detector, patterns):
        threats = phishing_threats(detector, "https://paypa1-and-amaz0n.net/", patterns)
        assert len(threats) == 1
        assert threats[0].description.endswith("paypal")


class TestSuspiciousTldAndShorteners:
    """Later checks replace the reason of earlier ones."""

    def test_suspicious_tld(self, detector, patterns):
        threats = phishing_threats(detector, "https://free-gift.tk/", patterns)
        assert len(threats) == 1
        assert "suspicious top-level domain" in threats[0].description

    def test_tld_reason_replaces_brand_reason(self, detector, patterns):
        threats = phishing_threats(detector, "https://paypa1.tk/", patterns)
        assert len(threats) == 1
        assert "suspicious top-level domain" in threats[0].description

    def test_url_shortener(self, detector, patterns):
        threats = phishing_threats(detector, "https://bit.ly/3xYz", patterns)
        assert len(threats) == 1
        assert "URL shortener" in threats[0].description

    def test_shortener_matches_on_domain_boundary(self, detector, patterns):
        """microsoft.com must not match the t.co shortener."""
        assert phishing_threats(detector, "https://microsoft.com/", patterns) == []

    def test_phishing_category_disabled(self, detector, patterns):
        settings = Settings(block_phishing=False)
        assert phishing_threats(detector, "https://paypa1-login.com/", patterns, settings) == []


class TestInternationalizedHosts:
    """Punycode hosts are decoded and homoglyphs normalized."""

    def test_normalize_homoglyphs(self):
        assert normalize_homoglyphs("pаypаl") == "paypal"

    def test_ascii_host_has_no_lookalike(self):
        assert lookalike_host("paypal-secure.net") == ""

    def test_cyrillic_lookalike_is_flagged(self, detector, patterns):
        host = idna.encode("pаypal-secure.net").decode("ascii")
        assert host.startswith("xn--")
        threats = phishing_threats(detector, f"https://{host}/", patterns)
        assert len(threats) == 1
        assert threats[0].description == "Possible phishing attempt targeting paypal"

    def test_homograph_of_canonical_domain_is_flagged(self, detector, patterns):
        """A Cyrillic "pаypal.com" reads as the real domain but is not it."""
        host = idna.encode("pаypal.com").decode("ascii")
        assert host.startswith("xn--")
        threats = phishing_threats(detector, f"https://{host}/", patterns)
        assert len(threats) == 1
        assert threats[0].description == "Possible phishing attempt targeting paypal"

    def test_real_canonical_domain_still_exempt(self, detector, patterns):
        assert phishing_threats(detector, "https://paypal.com/", patterns) == []
