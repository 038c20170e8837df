"""Launch the Aisle API under uvicorn using the configured host and port."""

from __future__ import annotations

import logging
import os

import uvicorn

from aisle.config import get_settings
from aisle.logging_utils import configure_from_settings

logger = logging.getLogger(__name__)

APP_PATH = "aisle.server.app:app"


def main() -> None:
    """Entry point for the `aisle-server` script.

    ``RELOAD=1`` enables uvicorn's autoreloader for local development. uvicorn's
    own log config is disabled so its records go through the redacting handler.
    """

    settings = get_settings()
    configure_from_settings(settings)
    reload_enabled = os.environ.get("RELOAD") == "1"

    logger.info(
        "Starting Aisle API on %s:%s database=%s reload=%s",
        settings.server_host,
        settings.server_port,
        settings.database_path,
        reload_enabled,
    )
    uvicorn.run(
        APP_PATH,
        host=settings.server_host,
        port=settings.server_port,
        reload=reload_enabled,
        log_config=None,
    )


if __name__ == "__main__":
    main()
