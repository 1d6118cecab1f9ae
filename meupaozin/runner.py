"""Entry point for the API process: settings, logging, container, uvicorn."""

import asyncio
import logging

import uvicorn
from dotenv import load_dotenv

from meupaozin.api import create_app
from meupaozin.container import PROJECT_ROOT, build_container
from meupaozin.logging_config import setup_logging
from meupaozin.settings import get_setting, load_settings

logger = logging.getLogger(__name__)


async def main_async() -> None:
    """Bootstrap: settings -> logging -> container -> serve until interrupted."""
    settings = load_settings()
    setup_logging(PROJECT_ROOT, settings)
    container = build_container(settings)
    app = create_app(container)
    host = get_setting(settings, "http.host", "0.0.0.0")
    port = int(get_setting(settings, "http.port", 3000))
    logger.info(
        "Serving on %s:%d (kafka: %s)",
        host,
        port,
        ",".join(container.connections.bootstrap_servers),
    )
    config = uvicorn.Config(app, host=host, port=port, log_config=None)
    server = uvicorn.Server(config)
    await server.serve()


def main() -> None:
    """Synchronous entry for the API process."""
    load_dotenv(PROJECT_ROOT / ".env")
    try:
        asyncio.run(main_async())
    except KeyboardInterrupt:
        pass


__all__ = ["main"]
