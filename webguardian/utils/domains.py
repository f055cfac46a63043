"""Host normalization utilities."""

from __future__ import annotations

import re

import idna
import tldextract

# Bundled public-suffix snapshot only; host evaluation never touches the network.
_extract = tldextract.TLDExtract(suffix_list_urls=())

IPV4_LITERAL = re.compile(r"^\d+\.\d+\.\d+\.\d+$")

# Cyrillic/Armenian characters that render like Latin ones.
HOMOGLYPHS = {
    "а": "a",  # Cyrillic а
    "е": "e",  # Cyrillic е
    "о": "o",  # Cyrillic о
    "р": "p",  # Cyrillic р
    "с": "c",  # Cyrillic с
    "у": "y",  # Cyrillic у
    "х": "x",  # Cyrillic х
    "ѕ": "s",  # Cyrillic ѕ
    "і": "i",  # Cyrillic і
    "ј": "j",  # Cyrillic ј
    "ԁ": "d",  # Cyrillic ԁ
    "ɡ": "g",  # Latin script g
    "ո": "n",  # Armenian ո
    "ս": "u",  # Armenian ս
}


def is_ipv4_literal(host: str) -> bool:
    return bool(IPV4_LITERAL.match(host or ""))


def host_matches(host: str, domain: str) -> bool:
    """True when ``host`` is ``domain`` or one of its subdomains."""
    host = (host or "").lower().strip(".")
    domain = (domain or "").lower().strip(".")
    if not host or not domain:
        return False
    return host == domain or host.endswith(f".{domain}")


def registered_domain(host: str) -> str:
    """Return the registrable domain for a host (best-effort)."""
    host = (host or "").lower().strip(".")
    if not host:
        return ""
    extracted = _extract(host)
    if extracted.domain and extracted.suffix:
        return f"{extracted.domain}.{extracted.suffix}"
    return host


def allowlist_contains(host: str, allowlist: frozenset[str] | set[str]) -> bool:
    """Check if a host matches the allowlist (registrable domain + subdomains)."""
    if not allowlist or not host:
        return False
    host = host.lower()
    if host in allowlist:
        return True
    return registered_domain(host) in allowlist


def unicode_host(host: str) -> str:
    """Decode punycode labels to Unicode when possible."""
    if "xn--" not in (host or ""):
        return host
    try:
        return idna.decode(host)
    except (idna.IDNAError, UnicodeError):
        return host


def normalize_homoglyphs(text: str) -> str:
    """Replace homoglyphs with their Latin equivalents."""
    return "".join(HOMOGLYPHS.get(ch, ch) for ch in text)


def lookalike_host(host: str) -> str:
    """ASCII rendering of an IDN host as a reader would see it.

    Returns an empty string for hosts that are plain ASCII already.
    """
    decoded = unicode_host(host)
    if decoded.isascii():
        return ""
    return normalize_homoglyphs(decoded).lower()
