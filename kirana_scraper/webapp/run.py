"""Run the API server."""

import argparse
import logging

from ..config import load_settings


def main():
    """Run the API with uvicorn."""
    settings = load_settings()

    parser = argparse.ArgumentParser(description="Run the Kirana scraper API")
    parser.add_argument("--host", default=settings.host, help="Host to bind to")
    parser.add_argument("--port", type=int, default=settings.port, help="Port to bind to")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload")
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    import uvicorn

    uvicorn.run(
        "kirana_scraper.webapp.app:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
    )


if __name__ == "__main__":
    main()
