"""
Swarm Webhook Main Application

Entry point of the webhook: builds the app and serves it with Hypercorn until
SIGINT or SIGTERM.
"""

import asyncio
import signal
import sys
from typing import Optional

from hypercorn.asyncio import serve
from hypercorn.config import Config

from services.common.logging_config import configure_logging, get_logger, server_loggers
from .app import create_app
from .settings import Settings, load_settings


def bind_address(host: str, port: int) -> str:
    """Hypercorn bind string; IPv6 hosts are bracketed."""
    if ":" in host and not host.startswith("["):
        return f"[{host}]:{port}"
    return f"{host}:{port}"


class WebhookServer:
    """Main webhook application."""

    def __init__(self, settings: Optional[Settings] = None):
        configure_logging()
        self.logger = get_logger("webhook", name="main")
        self.settings = settings or load_settings()
        self.app = create_app(self.settings)
        self._shutdown_event: Optional[asyncio.Event] = None
        self.logger.info("swarm webhook initialized")

    def build_config(self) -> Config:
        config = Config()
        config.bind = [bind_address(self.settings.server_host, self.settings.server_port)]
        config.workers = 1
        config.accesslog, config.errorlog = server_loggers("webhook")
        config.access_log_format = '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s "%(f)s" "%(a)s"'
        return config

    def setup_signal_handlers(self, loop: asyncio.AbstractEventLoop) -> None:
        """Setup signal handlers for graceful shutdown."""
        def signal_handler(signum: int) -> None:
            self.logger.info(f"received signal {signum}, shutting down gracefully")
            if self._shutdown_event is not None:
                self._shutdown_event.set()

        for signum in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(signum, signal_handler, signum)

    def stop_server(self) -> None:
        """Stop background work."""
        self.logger.info("stopping swarm webhook")
        components = self.app.extensions["swarm_webhook"]
        components["cache"].stop(timeout=5)
        components["scaler"].close()
        self.logger.info("swarm webhook stopped")

    async def run(self) -> None:
        self._shutdown_event = asyncio.Event()
        self.setup_signal_handlers(asyncio.get_running_loop())
        config = self.build_config()
        self.logger.info(f"server listening at {', '.join(config.bind)}")
        try:
            await serve(self.app, config, shutdown_trigger=self._shutdown_event.wait)
        finally:
            self.stop_server()


def main() -> None:
    """Main entry point."""
    try:
        server = WebhookServer()
        asyncio.run(server.run())
    except KeyboardInterrupt:
        print("\nShutting down gracefully...")
    except Exception as e:
        print(f"Fatal error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
