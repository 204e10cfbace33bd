"""
Docker Swarm Adapter

This module handles all interactions with Docker Swarm:
- Service listing and lookup
- Service inspection (fresh version index)
- Versioned service updates
"""

from typing import Any, Dict, List, Optional

import docker
from docker.errors import APIError

from services.common.logging_config import get_logger
from .errors import ConflictError
from .labels import filter_enabled
from .models import SwarmService
from .settings import DEFAULT_DOCKER_BASE_URL

# Messages the Swarm manager uses when the version token is stale
_CONFLICT_MESSAGES = ("update out of sequence", "version is out of date")


def is_conflict(error: APIError) -> bool:
    """Whether an API error was caused by a stale version token."""
    if getattr(error, "status_code", None) == 409:
        return True
    message = str(error).lower()
    return any(m in message for m in _CONFLICT_MESSAGES)


class DockerSwarmAdapter:
    """Adapter for Docker Swarm service operations."""

    def __init__(self, base_url: str = DEFAULT_DOCKER_BASE_URL, client: Optional[Any] = None):
        self.logger = get_logger("webhook", name="docker-adapter")
        self.docker_base_url = base_url

        if client is not None:
            self.client = client
        elif self.docker_base_url.startswith("unix"):
            self.client = docker.from_env()
        else:
            self.client = docker.DockerClient(base_url=self.docker_base_url)
        self.logger.info(f"using Docker API at {self.docker_base_url}")

    def list_services(self) -> List[SwarmService]:
        """List every service known to the swarm."""
        try:
            services = self.client.services.list()
        except Exception as e:
            self.logger.error(f"failed to list services: {e}")
            raise
        return [SwarmService.from_attrs(service.attrs) for service in services]

    def list_enabled_services(self) -> List[SwarmService]:
        """List the services that opted in to the webhook."""
        enabled = filter_enabled(self.list_services())
        self.logger.debug(f"discovered {len(enabled)} webhook-enabled services")
        return enabled

    def get_service(self, service_id: str) -> SwarmService:
        """Get a service by id through the high-level client."""
        return SwarmService.from_attrs(self.client.services.get(service_id).attrs)

    def inspect_service(self, service_id: str) -> SwarmService:
        """Inspect a service by id, returning its current version index."""
        return SwarmService.from_attrs(self.client.api.inspect_service(service_id))

    def update_service(self, service_id: str, version: int, spec: Dict[str, Any]) -> Dict[str, Any]:
        """Replace the spec of a service, guarded by its version index.

        Returns the update acknowledgement as sent by the Docker API. Raises
        ConflictError when the version index is no longer current.
        """
        kwargs: Dict[str, Any] = {
            "name": spec.get("Name"),
            "labels": spec.get("Labels"),
            "mode": spec.get("Mode"),
            "task_template": spec.get("TaskTemplate"),
            "update_config": spec.get("UpdateConfig"),
            "rollback_config": spec.get("RollbackConfig"),
            "endpoint_spec": spec.get("EndpointSpec"),
        }
        # Pre-1.25 specs keep networks at the top level
        if spec.get("Networks") is not None:
            kwargs["networks"] = spec["Networks"]

        try:
            result = self.client.api.update_service(service_id, version, **kwargs)
        except APIError as e:
            if is_conflict(e):
                raise ConflictError(service_id, version, str(e)) from e
            raise

        if isinstance(result, dict):
            return result
        return {"Warnings": None}
