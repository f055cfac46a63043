"""HTTP event bridge between a browser host and the GuardianEngine.

The host (an extension's native-messaging helper) posts navigation,
request and content events as JSON and reads results back.
"""

from __future__ import annotations

import logging
from typing import Optional

from aiohttp import web

from ..analyzer.aggregator import badge_for
from ..analyzer.models import FormSubmission, PageContent
from ..config import Settings
from .engine import GuardianEngine

logger = logging.getLogger(__name__)


class BadPayload(Exception):
    """Request body is not usable; reported to the caller as HTTP 400."""


class EventBridgeServer:
    """aiohttp JSON endpoints over a GuardianEngine."""

    def __init__(self, engine: GuardianEngine, host: str = "127.0.0.1", port: int = 8765):
        self.engine = engine
        self.host = host
        self.port = port
        self._app = web.Application()
        self._runner: web.AppRunner | None = None
        self._site: web.TCPSite | None = None
        self._register_routes()

    @property
    def app(self) -> web.Application:
        return self._app

    def _register_routes(self) -> None:
        self._app.router.add_post("/navigation", self._navigation)
        self._app.router.add_post("/scan", self._force_scan)
        self._app.router.add_post("/request", self._request)
        self._app.router.add_post("/content", self._content)
        self._app.router.add_post("/cpu-sample", self._cpu_sample)
        self._app.router.add_post("/form-submit", self._form_submit)
        self._app.router.add_post("/tracker-count", self._tracker_count)
        self._app.router.add_post("/close", self._close)
        self._app.router.add_get("/analysis/{target_key}", self._analysis)
        self._app.router.add_get("/warning/{target_key}", self._warning)
        self._app.router.add_get("/settings", self._get_settings)
        self._app.router.add_post("/settings", self._update_settings)
        self._app.router.add_get("/stats", self._stats)
        self._app.router.add_post("/stats/reset", self._reset_stats)
        self._app.router.add_post("/patterns/reload", self._reload_patterns)

    async def start(self):
        """Start the bridge server."""
        self._runner = web.AppRunner(self._app)
        await self._runner.setup()
        self._site = web.TCPSite(self._runner, self.host, self.port)
        await self._site.start()
        logger.info("Event bridge listening on %s:%s", self.host, self.port)

    async def stop(self):
        """Stop the bridge server."""
        if self._site:
            await self._site.stop()
        if self._runner:
            await self._runner.cleanup()
        self._runner = None
        self._site = None

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    async def _json(request: web.Request) -> dict:
        try:
            data = await request.json()
        except Exception:
            raise BadPayload("Invalid JSON payload")
        if not isinstance(data, dict):
            raise BadPayload("JSON object expected")
        return data

    @staticmethod
    def _require(data: dict, *keys: str) -> None:
        for key in keys:
            value = data.get(key)
            if value is None or (isinstance(value, str) and not value.strip()):
                raise BadPayload(f"{key} is required")

    @staticmethod
    def _evaluation_id(data: dict) -> Optional[int]:
        raw = data.get("evaluation_id")
        if raw is None:
            return None
        try:
            return int(raw)
        except (TypeError, ValueError):
            raise BadPayload("evaluation_id must be an integer")

    def _settings(self, data: dict) -> Optional[Settings]:
        raw = data.get("settings")
        if not raw:
            return None
        if not isinstance(raw, dict):
            raise BadPayload("settings must be an object")
        return self.engine.settings.merged(raw)

    @staticmethod
    def _error(message: str, status: int = 400) -> web.Response:
        return web.json_response({"error": message}, status=status)

    @staticmethod
    def _result_payload(result) -> dict:  # noqa: ANN001
        if result is None:
            return {"evaluated": False}
        badge = badge_for(result)
        payload = result.to_dict()
        payload["evaluated"] = True
        payload["badge"] = {"text": badge.text, "color": badge.color}
        return payload

    # ------------------------------------------------------------------
    # Input ports
    # ------------------------------------------------------------------

    async def _navigation(self, request: web.Request) -> web.Response:
        try:
            data = await self._json(request)
            self._require(data, "target_key", "url")
            settings = self._settings(data)
        except BadPayload as exc:
            return self._error(str(exc))
        result = self.engine.on_navigation(str(data["target_key"]), str(data["url"]), settings)
        return web.json_response(self._result_payload(result))

    async def _force_scan(self, request: web.Request) -> web.Response:
        try:
            data = await self._json(request)
            self._require(data, "target_key", "url")
            settings = self._settings(data)
        except BadPayload as exc:
            return self._error(str(exc))
        result = self.engine.force_scan(str(data["target_key"]), str(data["url"]), settings)
        return web.json_response(self._result_payload(result))

    async def _request(self, request: web.Request) -> web.Response:
        try:
            data = await self._json(request)
            self._require(data, "url")
            settings = self._settings(data)
        except BadPayload as exc:
            return self._error(str(exc))
        target_key = data.get("target_key")
        decision = self.engine.on_request(
            str(target_key) if target_key is not None else None,
            str(data["url"]),
            settings,
        )
        payload = {"block": decision.block}
        if decision.event:
            payload["domain"] = decision.event.domain
        return web.json_response(payload)

    async def _content(self, request: web.Request) -> web.Response:
        try:
            data = await self._json(request)
            self._require(data, "target_key")
            evaluation_id = self._evaluation_id(data)
            content = PageContent.from_dict(data.get("content") or {})
        except BadPayload as exc:
            return self._error(str(exc))
        except (AttributeError, TypeError, ValueError) as exc:
            return self._error(f"Invalid content descriptor: {exc}")

        update = self.engine.on_content(str(data["target_key"]), content, evaluation_id)
        if update is None:
            return web.json_response({"accepted": False})
        payload = self._result_payload(update.result)
        payload["accepted"] = True
        payload["warnings"] = [w.message for w in update.warnings]
        return web.json_response(payload)

    async def _cpu_sample(self, request: web.Request) -> web.Response:
        try:
            data = await self._json(request)
            self._require(data, "target_key", "iterations")
            evaluation_id = self._evaluation_id(data)
            iterations = int(data["iterations"])
        except BadPayload as exc:
            return self._error(str(exc))
        except (TypeError, ValueError):
            return self._error("iterations must be an integer")
        result = self.engine.on_cpu_sample(str(data["target_key"]), iterations, evaluation_id)
        return web.json_response(self._result_payload(result))

    async def _form_submit(self, request: web.Request) -> web.Response:
        try:
            data = await self._json(request)
            self._require(data, "target_key", "page_url")
        except BadPayload as exc:
            return self._error(str(exc))
        fields = data.get("field_names") or []
        if not isinstance(fields, list):
            return self._error("field_names must be a list")
        submission = FormSubmission(
            page_url=str(data["page_url"]),
            action=str(data.get("action") or ""),
            field_names=[str(f) for f in fields],
        )
        warnings = self.engine.on_form_submit(str(data["target_key"]), submission)
        return web.json_response({"warnings": [w.message for w in warnings]})

    async def _tracker_count(self, request: web.Request) -> web.Response:
        try:
            data = await self._json(request)
            self._require(data, "target_key", "count")
            count = int(data["count"])
        except BadPayload as exc:
            return self._error(str(exc))
        except (TypeError, ValueError):
            return self._error("count must be an integer")
        result = self.engine.update_tracker_count(str(data["target_key"]), count)
        if result is None:
            return self._error("Unknown target key", status=404)
        return web.json_response(self._result_payload(result))

    async def _close(self, request: web.Request) -> web.Response:
        try:
            data = await self._json(request)
            self._require(data, "target_key")
        except BadPayload as exc:
            return self._error(str(exc))
        self.engine.invalidate(str(data["target_key"]))
        return web.json_response({"status": "closed"})

    # ------------------------------------------------------------------
    # Reads and admin
    # ------------------------------------------------------------------

    async def _analysis(self, request: web.Request) -> web.Response:
        target_key = request.match_info["target_key"]
        if not self.engine.has_session(target_key):
            return self._error("Unknown target key", status=404)
        return web.json_response(self._result_payload(self.engine.get_analysis(target_key)))

    async def _warning(self, request: web.Request) -> web.Response:
        target_key = request.match_info["target_key"]
        if not self.engine.has_session(target_key):
            return self._error("Unknown target key", status=404)
        result = self.engine.security_warning(target_key)
        if result is None:
            return web.json_response({"warn": False})
        payload = self._result_payload(result)
        payload["warn"] = True
        return web.json_response(payload)

    async def _get_settings(self, request: web.Request) -> web.Response:
        return web.json_response(self.engine.settings.to_dict())

    async def _update_settings(self, request: web.Request) -> web.Response:
        try:
            data = await self._json(request)
        except BadPayload as exc:
            return self._error(str(exc))
        settings = self.engine.update_settings(data)
        return web.json_response(settings.to_dict())

    async def _stats(self, request: web.Request) -> web.Response:
        return web.json_response(self.engine.get_stats().to_dict())

    async def _reset_stats(self, request: web.Request) -> web.Response:
        return web.json_response(self.engine.reset_stats().to_dict())

    async def _reload_patterns(self, request: web.Request) -> web.Response:
        version = self.engine.reload_patterns()
        return web.json_response({
            "version": version,
            "generation": self.engine.patterns.generation,
            "summary": self.engine.patterns.snapshot().summary(),
        })
