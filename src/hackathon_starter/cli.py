"""Command-line interface for the Hackathon Starter server."""

import argparse
import asyncio
import logging
import sys

from hackathon_starter import __version__

logger = logging.getLogger(__name__)


def configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def check_database(create_tables: bool = False) -> bool:
    """Connect to the database once; log and return False if it is unreachable."""
    from hackathon_starter.database import connection

    async def run() -> None:
        await connection.init_db()
        try:
            await connection.verify_connection()
            if create_tables:
                await connection.create_tables()
        finally:
            await connection.close_db()

    try:
        asyncio.run(run())
    except connection.DatabaseConnectionError as e:
        logger.error(f"Database connection error: {e}")
        logger.error("Please make sure the database is running.")
        return False
    return True


def serve(args: argparse.Namespace) -> int:
    import uvicorn

    from hackathon_starter.config import get_settings

    if not check_database():
        return 1

    settings = get_settings()
    uvicorn.run(
        "hackathon_starter.api:create_app",
        factory=True,
        host=args.host or settings.host,
        port=args.port or settings.port,
        reload=args.reload,
        log_level="debug" if settings.debug else "info",
    )
    return 0


def init_db(args: argparse.Namespace) -> int:
    if not check_database(create_tables=True):
        return 1
    print("Tables created.")
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="Hackathon Starter - web application boilerplate"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument("--debug", action="store_true", help="Verbose logging")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Run the web server")
    serve_parser.add_argument("--host", help="Bind address (default: HOST)")
    serve_parser.add_argument("--port", type=int, help="Listen port (default: PORT)")
    serve_parser.add_argument(
        "--reload", action="store_true", help="Restart on source changes"
    )
    serve_parser.set_defaults(handler=serve)

    # Init-db command
    initdb_parser = subparsers.add_parser(
        "init-db", help="Create database tables"
    )
    initdb_parser.set_defaults(handler=init_db)

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    configure_logging(args.debug)
    return args.handler(args)


if __name__ == "__main__":
    sys.exit(main())
