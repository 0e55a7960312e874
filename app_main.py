"""Application entry point for the AnswerThem server."""

from __future__ import annotations

from answerthem.server.api_server import create_api_app, run_api_server
from answerthem.utils.logging_config import configure_logging
from answerthem.utils.settings import load_settings


def main() -> None:
    """Load settings, initialize logging and serve the API."""
    settings = load_settings()
    logger = configure_logging(settings.log_level)
    logger.info("Starting AnswerThem on %s:%d", settings.host, settings.port)
    if not settings.enable_poller:
        logger.info("Mention poller disabled")

    app = create_api_app(settings=settings)
    run_api_server(app, host=settings.host, port=settings.port, log_level=settings.log_level)


if __name__ == "__main__":
    main()
