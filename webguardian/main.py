"""Main entry point for the WebGuardian threat analysis service."""

import asyncio
import logging
import signal
import sys
from datetime import datetime, timezone

from .analyzer import PatternSetLoader, PatternStore, ThreatDetector
from .config import AppConfig, load_config, validate_config
from .monitoring.health import HealthServer
from .pipeline.engine import GuardianEngine
from .pipeline.server import EventBridgeServer

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout),
        ],
    )


class WebGuardianService:
    """Owns the engine and the servers that expose it."""

    def __init__(self, config: AppConfig):
        self.config = config
        self._running = False
        self._tasks: list[asyncio.Task] = []
        self._stop_lock = asyncio.Lock()
        self._stop_task: asyncio.Task | None = None
        self._stopped = asyncio.Event()
        self._started_at = datetime.now(timezone.utc)

        self.patterns = PatternStore(loader=PatternSetLoader(config.patterns_file))
        self.engine = GuardianEngine(
            patterns=self.patterns,
            detector=ThreatDetector(scoring_weights=config.scoring),
        )
        self.bridge = EventBridgeServer(
            self.engine,
            host=config.bridge_host,
            port=config.bridge_port,
        )
        self.health_server = HealthServer(
            host=config.health_host,
            port=config.health_port,
            status_provider=self._health_snapshot,
            enabled=config.health_enabled,
        )

    def _health_snapshot(self) -> dict:
        """Provide a lightweight status dict for health endpoints."""
        uptime = (datetime.now(timezone.utc) - self._started_at).total_seconds()
        payload = self.engine.status()
        payload["status"] = "ok" if self._running else "stopped"
        payload["uptime_seconds"] = round(uptime, 1)
        return payload

    async def _pattern_reload_worker(self):
        """Periodically re-read the pattern file."""
        interval = self.config.pattern_reload_seconds
        logger.info("Pattern reload worker started (every %ss)", interval)
        while self._running:
            try:
                await asyncio.sleep(interval)
                self.engine.reload_patterns()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Pattern reload failed: {e}")
        logger.info("Pattern reload worker stopped")

    async def start(self):
        """Start the bridge, health server and background workers."""
        logger.info("Starting WebGuardian...")
        self._running = True

        await self.bridge.start()
        await self.health_server.start()

        if self.config.pattern_reload_seconds > 0:
            self._tasks.append(asyncio.create_task(self._pattern_reload_worker()))

        logger.info("WebGuardian running")
        await self._stopped.wait()

    async def stop(self):
        """Stop all components."""
        async with self._stop_lock:
            if self._stop_task is None:
                self._stop_task = asyncio.create_task(self._stop_impl())
            stop_task = self._stop_task
        await stop_task

    async def _stop_impl(self):
        """One-shot shutdown implementation (idempotent via stop())."""
        logger.info("Stopping WebGuardian...")
        self._running = False

        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []

        await self.health_server.stop()
        await self.bridge.stop()
        self._stopped.set()
        logger.info("WebGuardian stopped")


async def run_service():
    """Run the WebGuardian service."""
    config = load_config()
    configure_logging(config.log_level)

    validation_errors = validate_config(config)
    if validation_errors:
        for err in validation_errors:
            logger.error(err)
        sys.exit(1)

    service = WebGuardianService(config)

    # Handle shutdown signals
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, lambda: asyncio.create_task(service.stop()))

    try:
        await service.start()
    except KeyboardInterrupt:
        pass
    finally:
        await service.stop()


def main():
    """Entry point."""
    asyncio.run(run_service())


if __name__ == "__main__":
    main()
