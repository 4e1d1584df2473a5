"""Process entry point: configure logging and serve the app with uvicorn.

    python -m telemetry.server
"""
import logging

import uvicorn

from telemetry.config import get_settings
from telemetry.main import create_app

logger = logging.getLogger(__name__)


def main() -> None:
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
    )

    application = create_app(settings)

    base_url = f"http://localhost:{settings.port}"
    logger.info("Telemetry analytics server running on port %d", settings.port)
    logger.info("Admin dashboard: %s/admin", base_url)
    logger.info("API endpoint: %s/api", base_url)

    uvicorn.run(application, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
