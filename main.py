"""Main entry point for the Xiangqi AI server."""

import argparse
import os

import uvicorn

from xiangqi.config import CONFIG, configure_logging

if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Xiangqi AI Server")
    parser.add_argument(
        "--host",
        type=str,
        default=CONFIG.server.host,
        help=f"Host to bind to (default: {CONFIG.server.host})",
    )
    parser.add_argument(
        "--port",
        "-p",
        type=int,
        default=CONFIG.server.port,
        help=f"Port to bind to (default: {CONFIG.server.port})",
    )
    parser.add_argument(
        "--depth",
        "-d",
        type=int,
        default=None,
        help="Force one search depth for every difficulty",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        help="Logging level (default: from config)",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload for development",
    )

    args = parser.parse_args()

    # Passed through the environment so reloaded workers see it too
    if args.depth:
        os.environ["XIANGQI_SEARCH_DEPTH"] = str(args.depth)
        print(f"Using search depth: {args.depth}")
    if args.log_level:
        os.environ["XIANGQI_LOG_LEVEL"] = args.log_level

    configure_logging(args.log_level)
    uvicorn.run("api:app", host=args.host, port=args.port, reload=args.reload)
