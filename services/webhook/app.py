"""
Swarm Webhook Flask App

Wires the Docker adapter, service cache, replica scaler and HTTP API together.
"""

import time
from typing import Any, Callable, Optional

from flask import Flask

from services.common.logging_config import configure_logging, get_logger
from .api import create_api_app
from .cache_manager import ServiceCache
from .docker_adapter import DockerSwarmAdapter
from .scaler import ReplicaScaler
from .settings import Settings, load_settings


def create_app(
    settings: Optional[Settings] = None,
    docker_adapter: Optional[Any] = None,
    start_background: bool = True,
    sleep: Callable[[float], None] = time.sleep,
) -> Flask:
    """Create the webhook application.

    The service cache is filled once before the app is returned, so the first
    request never sees an empty cache. A failure of that first refresh is
    raised to the caller.
    """
    configure_logging()
    logger = get_logger("webhook", name="app")

    settings = settings or load_settings()
    docker_adapter = docker_adapter or DockerSwarmAdapter(settings.docker_base_url)

    cache = ServiceCache(docker_adapter, settings.refresh_interval_sec)
    if settings.polling_enabled:
        logger.info("performing initial cache refresh")
        cache.refresh()
        if start_background:
            cache.start_background_refresh()
    else:
        logger.info("polling disabled, services are listed live")

    scaler = ReplicaScaler(docker_adapter, settings, cache=cache, sleep=sleep)

    app = create_api_app(docker_adapter, cache, scaler, settings)
    app.extensions["swarm_webhook"] = {
        "settings": settings,
        "docker_adapter": docker_adapter,
        "cache": cache,
        "scaler": scaler,
    }
    return app
