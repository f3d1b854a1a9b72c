# aptora_extensions/main.py
"""Main entry point for the aptora-extensions server."""

import argparse
import logging
import sys
from typing import Optional

import uvicorn
from pydantic import ValidationError

from aptora_extensions.api.app import create_app
from aptora_extensions.config import Settings, missing_settings


logger = logging.getLogger("aptora_extensions")


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Aptora Extensions server")
    parser.add_argument(
        "--dev",
        action="store_true",
        help="Enable development mode (proxy to Vite dev server)"
    )
    parser.add_argument(
        "--host",
        type=str,
        default=None,
        help="Bind address (default: 0.0.0.0, or localhost with --dev)"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Bind port (default: 80, or 8080 with --dev)"
    )
    args = parser.parse_args(argv)
    if args.host is None:
        args.host = "localhost" if args.dev else "0.0.0.0"
    if args.port is None:
        args.port = 8080 if args.dev else 80
    return args


def load_settings() -> Settings:
    """Load settings, exiting with a readable message when any are missing."""
    try:
        return Settings()
    except ValidationError as e:
        missing = missing_settings(e)
        if missing:
            logger.error("Failed to load config: missing required env vars: %s", ", ".join(missing))
        else:
            logger.error("Failed to load config: %s", e)
        sys.exit(1)


def main(argv: Optional[list[str]] = None) -> None:
    """Main entry point for the server."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
    )

    args = parse_args(argv)
    settings = load_settings()

    logger.info(
        "Starting aptora-extensions (dev_mode=%s, db_host=%s, aptora_db=%s, extensions_db=%s)",
        args.dev, settings.db_host, settings.aptora_db_name, settings.extensions_db_name
    )

    app = create_app(settings, dev_mode=args.dev)
    uvicorn.run(app, host=args.host, port=args.port, log_config=None)


if __name__ == "__main__":
    main()
