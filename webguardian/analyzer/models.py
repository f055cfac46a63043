"""Analyzer data models."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Optional
from urllib.parse import urljoin, urlsplit

from ..constants import Severity, ThreatKind, is_secure_score


class UrlParseError(ValueError):
    """Raised when an input cannot be parsed as an absolute URL."""


@dataclass(frozen=True)
class Url:
    """Normalized, immutable view of a navigated or requested URL."""

    raw: str
    scheme: str
    host: str
    path: str
    query: str
    port: Optional[int] = None

    @classmethod
    def parse(cls, value: str, base: Optional[str] = None) -> "Url":
        """Parse an absolute URL (or a reference resolved against ``base``)."""
        raw = (value or "").strip()
        if not raw:
            raise UrlParseError("empty URL")
        if base:
            try:
                raw = urljoin(base, raw)
            except ValueError as exc:
                raise UrlParseError(str(exc)) from exc
        try:
            parts = urlsplit(raw)
            port = parts.port
        except ValueError as exc:
            raise UrlParseError(f"malformed URL: {raw!r}") from exc

        scheme = (parts.scheme or "").lower()
        host = (parts.hostname or "").lower().strip(".")
        if not scheme or (not host and scheme in ("http", "https")):
            raise UrlParseError(f"not an absolute URL: {raw!r}")

        return cls(
            raw=raw,
            scheme=scheme,
            host=host,
            path=parts.path or "/",
            query=parts.query,
            port=port,
        )

    @property
    def length(self) -> int:
        return len(self.raw)

    @property
    def origin(self) -> str:
        if self.port:
            return f"{self.scheme}://{self.host}:{self.port}"
        return f"{self.scheme}://{self.host}"

    @property
    def is_https(self) -> bool:
        return self.scheme == "https"


@dataclass(frozen=True)
class Threat:
    """One detected security-relevant condition."""

    kind: ThreatKind
    severity: Severity
    description: str
    score_contribution: int = 0

    def to_dict(self) -> dict:
        return {
            "type": str(self.kind),
            "severity": str(self.severity),
            "description": self.description,
            "score": self.score_contribution,
        }


@dataclass(frozen=True)
class AnalysisResult:
    """Aggregated verdict for one navigation of one target key."""

    url: str
    domain: str
    threats: tuple[Threat, ...] = ()
    risk_score: int = 0
    is_secure: bool = True
    trackers_blocked: int = 0
    timestamp: float = field(default_factory=time.time)
    evaluation_id: int = 0

    def __post_init__(self):
        if self.is_secure != is_secure_score(self.risk_score):
            raise ValueError("is_secure must equal risk_score < SECURE_THRESHOLD")

    @property
    def threat_kinds(self) -> list[ThreatKind]:
        return [t.kind for t in self.threats]

    def has_kind(self, kind: ThreatKind) -> bool:
        return any(t.kind == kind for t in self.threats)

    def to_dict(self) -> dict:
        return {
            "url": self.url,
            "domain": self.domain,
            "threats": [t.to_dict() for t in self.threats],
            "riskScore": self.risk_score,
            "isSecure": self.is_secure,
            "trackersBlocked": self.trackers_blocked,
            "timestamp": int(self.timestamp * 1000),
            "evaluationId": self.evaluation_id,
        }


@dataclass(frozen=True)
class TrackerEvent:
    """Emitted for every blocked tracker request."""

    domain: str
    request_url: str
    target_key: Optional[str] = None


@dataclass(frozen=True)
class TrackerDecision:
    """Allow/block outcome for one outbound request."""

    block: bool
    event: Optional[TrackerEvent] = None


@dataclass(frozen=True)
class ImmediateWarning:
    """Time-sensitive finding surfaced before the aggregated result."""

    message: str
    target_key: Optional[str] = None


# ---------------------------------------------------------------------------
# Page content descriptors (supplied by the DOM-observing host collaborator)
# ---------------------------------------------------------------------------


@dataclass
class InputInfo:
    type: str = "text"
    name: str = ""
    value: str = ""


@dataclass
class FormInfo:
    action: str = ""
    method: str = "get"
    inputs: list[InputInfo] = field(default_factory=list)

    @property
    def has_password(self) -> bool:
        return any((i.type or "").lower() == "password" for i in self.inputs)

    @property
    def hidden_inputs(self) -> list[InputInfo]:
        return [i for i in self.inputs if (i.type or "").lower() == "hidden"]


@dataclass
class ScriptInfo:
    src: str = ""
    text: str = ""


@dataclass
class ImageInfo:
    src: str = ""
    alt: str = ""


@dataclass
class ElementInfo:
    """Computed-style snapshot of an iframe/div/embed/object element."""

    tag: str = "div"
    display: str = ""
    visibility: str = ""
    opacity: str = "1"
    # None when the host did not report a bounding box.
    width: Optional[float] = None
    height: Optional[float] = None
    inner_html: str = ""

    @property
    def is_invisible(self) -> bool:
        return (
            self.display == "none"
            or self.visibility == "hidden"
            or str(self.opacity).strip() in ("0", "0.0")
        )

    def smaller_than(self, min_px: float) -> bool:
        """True when a reported dimension is under ``min_px``; unknown sizes never are."""
        return any(size is not None and size < min_px for size in (self.width, self.height))



def _optional_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    return float(value)


@dataclass
class FrameInfo:
    is_framed: bool = False
    # None when the parent origin could not be read (cross-origin access denied).
    parent_origin: Optional[str] = None


@dataclass
class PageContent:
    """One incremental submission of page content for a target key."""

    url: str = ""
    text: str = ""
    markup: str = ""
    forms: list[FormInfo] = field(default_factory=list)
    scripts: list[ScriptInfo] = field(default_factory=list)
    images: list[ImageInfo] = field(default_factory=list)
    elements: list[ElementInfo] = field(default_factory=list)
    frame: Optional[FrameInfo] = None
    # True when these nodes were added by a DOM mutation after initial load.
    dynamic: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "PageContent":
        data = data or {}
        frame_data = data.get("frame")
        return cls(
            url=str(data.get("url") or ""),
            text=str(data.get("text") or ""),
            markup=str(data.get("markup") or ""),
            forms=[
                FormInfo(
                    action=str(f.get("action") or ""),
                    method=str(f.get("method") or "get"),
                    inputs=[
                        InputInfo(
                            type=str(i.get("type") or "text"),
                            name=str(i.get("name") or ""),
                            value=str(i.get("value") or ""),
                        )
                        for i in f.get("inputs") or []
                    ],
                )
                for f in data.get("forms") or []
            ],
            scripts=[
                ScriptInfo(src=str(s.get("src") or ""), text=str(s.get("text") or ""))
                for s in data.get("scripts") or []
            ],
            images=[
                ImageInfo(src=str(i.get("src") or ""), alt=str(i.get("alt") or ""))
                for i in data.get("images") or []
            ],
            elements=[
                ElementInfo(
                    tag=str(e.get("tag") or "div").lower(),
                    display=str(e.get("display") or ""),
                    visibility=str(e.get("visibility") or ""),
                    opacity=str(e.get("opacity", "1")),
                    width=_optional_float(e.get("width")),
                    height=_optional_float(e.get("height")),
                    inner_html=str(e.get("inner_html") or e.get("innerHTML") or ""),
                )
                for e in data.get("elements") or []
            ],
            frame=(
                FrameInfo(
                    is_framed=bool(frame_data.get("is_framed")),
                    parent_origin=frame_data.get("parent_origin"),
                )
                if isinstance(frame_data, dict)
                else None
            ),
            dynamic=bool(data.get("dynamic", False)),
        )


@dataclass
class FormSubmission:
    """A form the user is submitting right now."""

    page_url: str
    action: str = ""
    field_names: list[str] = field(default_factory=list)


@dataclass
class ContentFindings:
    """Output of one content scan: aggregated threats plus standalone warnings."""

    threats: list[Threat] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
