import os
from dataclasses import dataclass
from typing import Mapping, Optional, Sequence

from services.common.logging_config import get_logger
from .constants import (
    POLICY_FALLBACK,
    REPLICAS_LABEL_POLICIES,
    STRATEGY_SCALE,
    START_STRATEGIES,
)

# Defaults
DEFAULT_SERVER_PORT = 3000
DEFAULT_SERVER_HOST = "::"
DEFAULT_REFRESH_INTERVAL_MS = 2000
DEFAULT_RESTART_DELAY_MS = 8000
DEFAULT_DOCKER_BASE_URL = "unix:///var/run/docker.sock"
DEFAULT_SCALE_WORKERS = 8

logger = get_logger("webhook", name="settings")


@dataclass(frozen=True)
class Settings:
    server_port: int = DEFAULT_SERVER_PORT
    server_host: str = DEFAULT_SERVER_HOST
    refresh_interval_ms: int = DEFAULT_REFRESH_INTERVAL_MS
    restart_delay_ms: int = DEFAULT_RESTART_DELAY_MS
    docker_base_url: str = DEFAULT_DOCKER_BASE_URL
    replicas_label_policy: str = POLICY_FALLBACK
    # "redeploy" brings running targets back to their replicas label, not to 1
    start_strategy: str = STRATEGY_SCALE
    force_update_on_start: bool = True
    resolve_from_cache: bool = False
    scale_workers: int = DEFAULT_SCALE_WORKERS

    @property
    def refresh_interval_sec(self) -> float:
        return self.refresh_interval_ms / 1000.0

    @property
    def restart_delay_sec(self) -> float:
        return self.restart_delay_ms / 1000.0

    @property
    def polling_enabled(self) -> bool:
        return self.refresh_interval_ms > 0


def _env_bool(env: Mapping[str, str], name: str, default: bool = False) -> bool:
    val = env.get(name)
    if val is None:
        return default
    s = str(val).strip().lower()
    if s in ("1", "true", "yes", "on"):  # truthy
        return True
    if s in ("0", "false", "no", "off", ""):  # falsy
        return False
    return default


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    val = env.get(name)
    if val is None or str(val).strip() == "":
        return default
    try:
        return int(str(val).strip())
    except ValueError:
        logger.warning(f"invalid {name}={val!r}, using default {default}")
        return default


def _env_choice(env: Mapping[str, str], name: str, choices: Sequence[str], default: str) -> str:
    val = env.get(name)
    if val is None:
        return default
    s = str(val).strip().lower()
    if s not in choices:
        logger.warning(f"invalid {name}={val!r}, expected one of {', '.join(choices)}; using {default}")
        return default
    return s


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """Build settings from the environment (or the given mapping)."""
    env = os.environ if env is None else env
    return Settings(
        server_port=_env_int(env, "SERVER_PORT", DEFAULT_SERVER_PORT),
        server_host=env.get("SERVER_HOST") or DEFAULT_SERVER_HOST,
        refresh_interval_ms=_env_int(env, "REFRESH_INTERVAL", DEFAULT_REFRESH_INTERVAL_MS),
        restart_delay_ms=max(0, _env_int(env, "RESTART_DELAY", DEFAULT_RESTART_DELAY_MS)),
        docker_base_url=env.get("DOCKER_BASE_URL") or DEFAULT_DOCKER_BASE_URL,
        replicas_label_policy=_env_choice(
            env, "REPLICAS_LABEL_POLICY", REPLICAS_LABEL_POLICIES, POLICY_FALLBACK
        ),
        start_strategy=_env_choice(env, "START_STRATEGY", START_STRATEGIES, STRATEGY_SCALE),
        force_update_on_start=_env_bool(env, "FORCE_UPDATE_ON_START", True),
        resolve_from_cache=_env_bool(env, "RESOLVE_FROM_CACHE", False),
        scale_workers=max(1, _env_int(env, "SCALE_WORKERS", DEFAULT_SCALE_WORKERS)),
    )
