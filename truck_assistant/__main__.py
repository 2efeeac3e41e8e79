"""CLI entry point: ``python -m truck_assistant [--host H] [--port P] [--reload]``."""

from __future__ import annotations

import argparse

import structlog


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="truck_assistant",
        description="Truck Repair Assistant HTTP API",
    )
    parser.add_argument("--host", default="0.0.0.0", help="Interface to bind")
    parser.add_argument("--port", type=int, default=8000, help="Port to listen on")
    parser.add_argument(
        "--reload",
        action="store_true",
        default=False,
        help="Restart on code changes (development only)",
    )
    args = parser.parse_args()

    # Settings come from env / .env; logging is configured before the app imports.
    from truck_assistant.config import settings
    from truck_assistant.log_setup import configure_logging

    configure_logging(settings.log_level, settings.log_format)

    logger = structlog.get_logger("truck_assistant")
    logger.info(
        "server_starting",
        version=settings.app_version,
        host=args.host,
        port=args.port,
        storage_backend=settings.resolved_storage_backend,
    )

    import uvicorn

    uvicorn.run(
        "truck_assistant.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
