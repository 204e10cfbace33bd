"""
REST API

HTTP endpoints of the webhook: list the enabled services and start, stop or
restart the services addressed by a logical name.
"""

import time
from typing import Any, Callable, List

import requests
from docker.errors import DockerException
from flask import Flask, jsonify

from services.common.logging_config import get_logger
from .errors import InvalidReplicasLabelError
from .scaler import ScaleResult
from .settings import Settings


def scale_response(action: str, name: str, results: List[ScaleResult]) -> Any:
    """JSON response for a batch of replica mutations."""
    body = [result.to_dict() for result in results]
    failed = [result for result in results if not result.ok]
    if not failed:
        return jsonify(body)

    status = 409 if all(result.conflict for result in failed) else 502
    return jsonify({
        "error": f"{action} '{name}' failed for {len(failed)} of {len(results)} services",
        "results": body,
    }), status


def create_api_app(docker_adapter: Any, cache: Any, scaler: Any, settings: Settings) -> Flask:
    """Create and configure the Flask API application."""
    app = Flask(__name__)

    logger = get_logger("webhook", name="api")

    def run_action(action: str, name: str, handler: Callable[[str], List[ScaleResult]]) -> Any:
        logger.info(f"{action} '{name}'")
        try:
            results = handler(name)
        except InvalidReplicasLabelError as e:
            logger.warning(f"{action} '{name}' rejected: {e}")
            return jsonify({"error": str(e)}), 400
        except (DockerException, requests.exceptions.RequestException) as e:
            logger.error(f"{action} '{name}' failed: {e}")
            return jsonify({"error": f"docker api error: {e}"}), 502
        except Exception as e:
            logger.error(f"error during {action} '{name}': {e}")
            return jsonify({"error": "internal server error"}), 500
        return scale_response(action, name, results)

    @app.route("/", methods=["GET"])
    def list_services() -> Any:
        """List the enabled services."""
        logger.info("list enabled services")
        try:
            if settings.polling_enabled:
                services = cache.snapshot()
            else:
                services = docker_adapter.list_enabled_services()
            return jsonify([service.summary() for service in services])
        except (DockerException, requests.exceptions.RequestException) as e:
            logger.error(f"error listing services: {e}")
            return jsonify({"error": f"docker api error: {e}"}), 502
        except Exception as e:
            logger.error(f"error listing services: {e}")
            return jsonify({"error": "internal server error"}), 500

    @app.route("/start/<name>", methods=["GET"])
    def start(name: str) -> Any:
        return run_action("start", name, scaler.start)

    @app.route("/stop/<name>", methods=["GET"])
    def stop(name: str) -> Any:
        return run_action("stop", name, scaler.stop)

    @app.route("/restart/<name>", methods=["GET"])
    def restart(name: str) -> Any:
        return run_action("restart", name, scaler.restart)

    @app.route("/health", methods=["GET"])
    def health() -> Any:
        """Health check endpoint."""
        health_status = {
            "status": "healthy",
            "timestamp": int(time.time()),
            "service": "swarm-webhook",
        }
        if settings.polling_enabled:
            cache_stats = cache.get_cache_stats()
            health_status["cache"] = cache_stats
            if cache_stats["last_refresh"] == 0:
                health_status["status"] = "degraded"
                health_status["warnings"] = ["no services discovered yet"]
            elif cache_stats["last_error"]:
                health_status["status"] = "degraded"
                health_status["warnings"] = [f"last refresh failed: {cache_stats['last_error']}"]
        return jsonify(health_status)

    return app
