"""Outbound request tracker classification."""

from __future__ import annotations

import logging
from typing import Optional

from ..config import Settings
from .models import TrackerDecision, TrackerEvent, Url, UrlParseError
from .patterns import PatternSet

logger = logging.getLogger(__name__)

ALLOW = TrackerDecision(block=False)


class TrackerClassifier:
    """Decides, synchronously, whether an outbound request is a tracker.

    Only set membership and regex evaluation happen here: this sits on the
    request path and must never wait on I/O.
    """

    def is_tracker(self, host: str, patterns: PatternSet) -> bool:
        host = (host or "").lower()
        if not host:
            return False
        return patterns.is_tracker_domain(host) or patterns.matches_tracker_pattern(host)

    def classify(
        self,
        request_url: str,
        settings: Settings,
        patterns: PatternSet,
        target_key: Optional[str] = None,
    ) -> TrackerDecision:
        if not settings.block_trackers:
            return ALLOW
        try:
            url = Url.parse(request_url)
        except UrlParseError:
            logger.debug("Skipping unparsable request URL: %r", request_url)
            return ALLOW

        if not self.is_tracker(url.host, patterns):
            return ALLOW

        logger.debug("Blocking tracker request to %s", url.host)
        return TrackerDecision(
            block=True,
            event=TrackerEvent(domain=url.host, request_url=url.raw, target_key=target_key),
        )
