"""
Replica Scaler

Mutates the desired replica count of Swarm services while keeping the rest of
their spec intact, and implements the start, stop and restart protocols used by
the HTTP endpoints.
"""

import atexit
import copy
import threading
import time
from dataclasses import dataclass, field
from multiprocessing.dummy import Pool as ThreadPool
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from services.common.logging_config import get_logger
from .constants import DEFAULT_REPLICAS, POLICY_STRICT, RESTART_REPLICAS, STRATEGY_REDEPLOY
from .errors import ConflictError, ServiceModeError
from .labels import desired_replicas, filter_by_name
from .models import SwarmService
from .settings import Settings


@dataclass
class ScaleResult:
    """Outcome of one replica mutation."""

    service_id: str
    name: Optional[str]
    replicas: int
    warnings: List[str] = field(default_factory=list)
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def conflict(self) -> bool:
        return isinstance(self.error, ConflictError)

    def to_dict(self) -> Dict[str, Any]:
        entry: Dict[str, Any] = {
            "id": self.service_id,
            "name": self.name,
            "replicas": self.replicas,
        }
        if self.ok:
            entry["warnings"] = self.warnings
        else:
            entry["error"] = str(self.error)
        return entry


def build_update_spec(spec: Dict[str, Any], replicas: int, force_update: Optional[int] = None) -> Dict[str, Any]:
    """Copy a service spec with a new replica count.

    Only Mode.Replicated.Replicas changes, plus TaskTemplate.ForceUpdate when
    force_update is given. Global services cannot be scaled.
    """
    updated = copy.deepcopy(spec)
    mode = updated.get("Mode") or {}
    if "Global" in mode or "GlobalJob" in mode:
        raise ServiceModeError(f"service {spec.get('Name')} is not in replicated mode")

    replicated = dict(mode.get("Replicated") or {})
    replicated["Replicas"] = int(replicas)
    mode["Replicated"] = replicated
    updated["Mode"] = mode

    if force_update is not None:
        task_template = updated.get("TaskTemplate") or {}
        task_template["ForceUpdate"] = force_update
        updated["TaskTemplate"] = task_template

    return updated


class ReplicaScaler:
    """Applies replica mutations to the services addressed by a logical name."""

    def __init__(
        self,
        docker_adapter: Any,
        settings: Settings,
        cache: Optional[Any] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.logger = get_logger("webhook", name="scaler")
        self.docker_adapter = docker_adapter
        self.settings = settings
        self.cache = cache
        self._sleep = sleep
        self._pool: Optional[ThreadPool] = None
        self._pool_lock = threading.Lock()

    def _get_pool(self) -> ThreadPool:
        """Worker pool for fan-out, started on first use."""
        with self._pool_lock:
            if self._pool is None:
                self._pool = ThreadPool(self.settings.scale_workers)
                atexit.register(self.close)
            return self._pool

    def close(self) -> None:
        with self._pool_lock:
            pool, self._pool = self._pool, None
        if pool is None:
            return
        atexit.unregister(self.close)
        pool.terminate()
        pool.join()

    def resolve_targets(self, name: str, live: bool = False) -> List[SwarmService]:
        """Enabled services whose name label equals name.

        Reads the cache snapshot when configured to, unless live is set.
        """
        if not live and self.settings.resolve_from_cache and self.cache is not None:
            services = self.cache.snapshot()
        else:
            services = self.docker_adapter.list_enabled_services()
        return filter_by_name(services, name)

    def set_replicas(self, service: SwarmService, count: int, force_redeploy: bool = False) -> ScaleResult:
        """Scale one service, using its version index as the concurrency token."""
        force_update = service.version if force_redeploy else None
        spec = build_update_spec(service.spec, count, force_update)
        self.logger.info(
            f"scale service={service.name} id={service.id} to={count} "
            f"version={service.version} force={force_redeploy}"
        )
        ack = self.docker_adapter.update_service(service.id, service.version, spec)
        return ScaleResult(service.id, service.name, count, warnings=list(ack.get("Warnings") or []))

    def scale_all(self, targets: Sequence[Tuple[SwarmService, int]], force_redeploy: bool = False) -> List[ScaleResult]:
        """Scale every target concurrently and wait for all of them.

        Results keep the order of targets. A failed mutation does not cancel or
        roll back its siblings; its error is reported in its result.
        """
        def scale_one(target: Tuple[SwarmService, int]) -> ScaleResult:
            service, count = target
            try:
                return self.set_replicas(service, count, force_redeploy)
            except Exception as e:
                self.logger.error(f"failed to scale service={service.name} id={service.id} to={count}: {e}")
                return ScaleResult(service.id, service.name, count, error=e)

        return self._get_pool().map(scale_one, list(targets))

    def redeploy_start(self, service: SwarmService, count: int) -> ScaleResult:
        """Bring a running service down with a forced redeploy, then back up.

        The service comes back at count, which start takes from the replicas
        label (default 1).
        """
        if (service.replicas or 0) > 0:
            self.set_replicas(service, 0, force_redeploy=True)
            service = self.docker_adapter.inspect_service(service.id)
        return self.set_replicas(service, count)

    def start(self, name: str) -> List[ScaleResult]:
        targets = self.resolve_targets(name)
        strict = self.settings.replicas_label_policy == POLICY_STRICT
        # Label errors reject the request before anything is mutated
        counts = [desired_replicas(service, DEFAULT_REPLICAS, strict) for service in targets]

        if self.settings.start_strategy == STRATEGY_REDEPLOY:
            def start_one(target: Tuple[SwarmService, int]) -> ScaleResult:
                service, count = target
                try:
                    return self.redeploy_start(service, count)
                except Exception as e:
                    self.logger.error(f"failed to redeploy service={service.name} id={service.id}: {e}")
                    return ScaleResult(service.id, service.name, count, error=e)

            return self._get_pool().map(start_one, list(zip(targets, counts)))

        return self.scale_all(list(zip(targets, counts)), force_redeploy=self.settings.force_update_on_start)

    def stop(self, name: str) -> List[ScaleResult]:
        targets = self.resolve_targets(name)
        return self.scale_all([(service, 0) for service in targets])

    def restart(self, name: str) -> List[ScaleResult]:
        """Stop the targets, wait for the restart delay, then start them again.

        Targets are looked up again after the delay because stopping them
        bumped their version index.
        """
        targets = self.resolve_targets(name)
        if not targets:
            return []

        stopped = self.scale_all([(service, 0) for service in targets])
        if not all(result.ok for result in stopped):
            self.logger.warning(f"restart of '{name}' aborted, stop failed")
            return stopped

        self.logger.info(f"waiting {self.settings.restart_delay_sec}s before starting '{name}'")
        self._sleep(self.settings.restart_delay_sec)

        refreshed = self.resolve_targets(name, live=True)
        return self.scale_all([(service, RESTART_REPLICAS) for service in refreshed])
