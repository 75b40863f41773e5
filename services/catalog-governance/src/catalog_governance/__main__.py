"""Run the REST server: ``python -m catalog_governance``."""

from __future__ import annotations

import logging

import uvicorn
from catalog_core.settings import ServerSettings

from catalog_governance.main import app

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def main() -> None:
    settings = ServerSettings()
    logger.info("Starting catalog-governance on %s:%d", settings.host, settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level)


if __name__ == "__main__":
    main()
