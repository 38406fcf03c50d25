from __future__ import annotations

import logging

import uvicorn

from roomchat.core.config import settings
from roomchat.core.logging_config import setup_logging

logger = logging.getLogger(__name__)


def main() -> None:
    setup_logging(settings.log_level, settings.log_file)
    logger.info("Starting %s on %s:%s", settings.app_name, settings.host, settings.port)
    uvicorn.run("roomchat.main:asgi_app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
