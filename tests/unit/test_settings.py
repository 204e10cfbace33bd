"""
Unit tests for environment configuration
"""

import pytest

from services.webhook.settings import Settings, load_settings


@pytest.mark.unit
class TestLoadSettings:
    """Test cases for load_settings"""

    def test_defaults(self):
        settings = load_settings({})
        assert settings == Settings()
        assert settings.server_port == 3000
        assert settings.server_host == "::"
        assert settings.refresh_interval_sec == 2.0
        assert settings.restart_delay_sec == 8.0
        assert settings.polling_enabled is True
        assert settings.force_update_on_start is True
        assert settings.resolve_from_cache is False

    def test_values_from_env(self):
        settings = load_settings({
            "SERVER_PORT": "8080",
            "SERVER_HOST": "0.0.0.0",
            "REFRESH_INTERVAL": "1000",
            "RESTART_DELAY": "2500",
            "DOCKER_BASE_URL": "tcp://manager:2375",
            "REPLICAS_LABEL_POLICY": "Strict",
            "START_STRATEGY": "redeploy",
            "FORCE_UPDATE_ON_START": "no",
            "RESOLVE_FROM_CACHE": "1",
            "SCALE_WORKERS": "2",
        })
        assert settings.server_port == 8080
        assert settings.server_host == "0.0.0.0"
        assert settings.refresh_interval_sec == 1.0
        assert settings.restart_delay_sec == 2.5
        assert settings.docker_base_url == "tcp://manager:2375"
        assert settings.replicas_label_policy == "strict"
        assert settings.start_strategy == "redeploy"
        assert settings.force_update_on_start is False
        assert settings.resolve_from_cache is True
        assert settings.scale_workers == 2

    def test_invalid_values_fall_back(self):
        settings = load_settings({
            "SERVER_PORT": "http",
            "REPLICAS_LABEL_POLICY": "panic",
            "START_STRATEGY": "teleport",
            "FORCE_UPDATE_ON_START": "maybe",
            "SCALE_WORKERS": "0",
            "RESTART_DELAY": "-5",
        })
        assert settings.server_port == 3000
        assert settings.replicas_label_policy == "fallback"
        assert settings.start_strategy == "scale"
        assert settings.force_update_on_start is True
        assert settings.scale_workers == 1
        assert settings.restart_delay_ms == 0

    def test_polling_disabled(self):
        assert load_settings({"REFRESH_INTERVAL": "0"}).polling_enabled is False
