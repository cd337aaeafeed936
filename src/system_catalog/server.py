"""Entrypoint for the System Catalog API server."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

if __package__ in (None, ""):
    sys.path.insert(0, str(Path(__file__).resolve().parents[1]))  # pragma: no cover

from system_catalog import __version__
from system_catalog.config import load_settings
from system_catalog.logging_utils import configure_logging


def run_entrypoint() -> None:
    """Configure logging and serve the HTTP application with uvicorn."""
    settings = load_settings()
    configure_logging(settings.logging)
    from system_catalog.transport.http_server import create_http_app

    try:
        import uvicorn
    except ImportError as exc:
        raise RuntimeError("uvicorn is required to run the HTTP server") from exc

    logging.info("Initializing System Catalog API v%s", __version__)
    if settings.logging.file:
        logging.info("Log file configured at: %s", settings.logging.file)

    app = create_http_app()
    uvicorn.run(
        app,
        host=settings.server.host,
        port=settings.server.port,
        ws="none",
        log_config=None,
    )


if __name__ == "__main__":  # pragma: no cover
    run_entrypoint()
