"""
Service Cache

This module keeps an in-memory snapshot of the webhook-enabled services and
refreshes it periodically so that listing does not query Swarm per request.
"""

import threading
import time
from typing import Any, Dict, Optional, Tuple

from services.common.logging_config import get_logger
from .models import SwarmService


class ServiceCache:
    """Holds the latest immutable snapshot of enabled services."""

    def __init__(self, docker_adapter: Any, refresh_interval_sec: float = 2.0):
        self.logger = get_logger("webhook", name="service-cache")
        self.docker_adapter = docker_adapter
        self.refresh_interval_sec = refresh_interval_sec

        # Snapshot state, replaced as a whole under the lock
        self._cache_lock = threading.Lock()
        self._snapshot: Tuple[SwarmService, ...] = ()
        self._last_refresh = 0.0
        self._cache_version = 0
        self._last_error: Optional[str] = None

        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

        self.logger.info(f"initialized service cache with refresh_interval={refresh_interval_sec}s")

    def snapshot(self) -> Tuple[SwarmService, ...]:
        """Current snapshot; never waits for a refresh in progress."""
        return self._snapshot

    def refresh(self) -> Tuple[SwarmService, ...]:
        """Fetch enabled services from Swarm and swap in a new snapshot."""
        services = tuple(self.docker_adapter.list_enabled_services())
        with self._cache_lock:
            self._snapshot = services
            self._cache_version += 1
            self._last_refresh = time.time()
            self._last_error = None
        self.logger.debug(f"services cache refreshed: {len(services)} services, version={self._cache_version}")
        return services

    def get_cache_stats(self) -> Dict[str, Any]:
        with self._cache_lock:
            return {
                "services_count": len(self._snapshot),
                "last_refresh": self._last_refresh,
                "cache_version": self._cache_version,
                "refresh_interval_sec": self.refresh_interval_sec,
                "last_error": self._last_error,
            }

    def _tick(self) -> None:
        try:
            self.refresh()
        except Exception as e:
            with self._cache_lock:
                self._last_error = str(e)
            self.logger.error(f"failed to refresh services cache: {e}")

    def _refresh_loop(self) -> None:
        self.logger.info("starting background cache refresh loop")
        next_run = time.monotonic() + self.refresh_interval_sec
        while not self._stop_event.wait(max(0.0, next_run - time.monotonic())):
            self._tick()
            next_run += self.refresh_interval_sec
            # Skip ticks missed while a slow refresh was running
            now = time.monotonic()
            if next_run < now:
                next_run = now
        self.logger.info("background cache refresh stopped")

    def start_background_refresh(self) -> None:
        """Start the periodic refresh thread; a failed tick never stops it."""
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._refresh_loop, daemon=True, name="cache-refresh")
        self._thread.start()
        self.logger.info("background cache refresh started")

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
