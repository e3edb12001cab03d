"""Command line launcher for the Chatline server."""

import argparse
from collections.abc import Sequence

import uvicorn

from .config import get_config

APP_MODULE = "chatline.main:app"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="chatline-server", description="Run the Chatline API server.")
    parser.add_argument("--host", help="Bind address (default: SERVER_HOST)")
    parser.add_argument("--port", type=int, help="Bind port (default: SERVER_PORT)")
    parser.add_argument("--reload", action="store_true", help="Restart on code changes (development only)")
    return parser


def main(argv: Sequence[str] | None = None) -> None:
    """Start the server with uvicorn."""
    args = build_parser().parse_args(argv)
    server = get_config().server

    uvicorn.run(
        APP_MODULE,
        host=args.host or server.host,
        port=args.port or server.port,
        reload=args.reload,
        # structlog owns log formatting
        access_log=True,
        use_colors=False,
    )


if __name__ == "__main__":
    main()
