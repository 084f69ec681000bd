"""Run the listing tracker with uvicorn: ``python -m listing_tracker``."""

import logging
import sys

import uvicorn

from listing_tracker.core.config import load_store_config, settings
from listing_tracker.core.errors import ConfigurationError
from listing_tracker.core.logging_config import setup_logging

logger = logging.getLogger("listing_tracker")


def main() -> None:
    setup_logging(settings.log_level, service=settings.app_name)
    try:
        load_store_config(settings)
    except ConfigurationError as exc:
        logger.error("Refusing to start: %s", exc, extra={"missing": exc.missing})
        sys.exit(1)

    uvicorn.run(
        "listing_tracker.main:app",
        host=settings.host,
        port=settings.port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
