"""
Run the catalog API.

Usage:
    uv run python serve.py
    uv run python serve.py --environment Development --port 8080
"""

import logging
import sys
from collections.abc import Sequence

import uvicorn

from catalog.api import create_app
from catalog.settings import AppSettings, load_settings

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(settings: AppSettings) -> None:
    logging.basicConfig(level=settings.log_level, format=LOG_FORMAT, force=True)
    if not settings.is_development:
        # Per-request lines are emitted by RequestLoggingMiddleware instead.
        logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def main(argv: Sequence[str] | None = None) -> int:
    settings = load_settings(sys.argv[1:] if argv is None else argv)
    configure_logging(settings)

    try:
        app = create_app(settings)
        logger.info(
            "Started %s in %s mode.", settings.application_name, settings.environment
        )
        uvicorn.run(
            app,
            host=settings.host,
            port=settings.port,
            server_header=False,
            # Forwarded headers are handled in the app against its own trusted list.
            proxy_headers=False,
            log_config=None,
        )
        logger.info(
            "Stopped %s in %s mode.", settings.application_name, settings.environment
        )
        return 0
    except Exception:
        logger.critical(
            "%s terminated unexpectedly in %s mode.",
            settings.application_name,
            settings.environment,
            exc_info=True,
        )
        return 1
    finally:
        logging.shutdown()


if __name__ == "__main__":
    sys.exit(main())
