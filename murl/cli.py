"""
Command line interface.

``murl serve`` compiles the configured routes and starts the HTTP server.
``murl validate`` compiles the routes and runs every declared self-test,
exiting non-zero on the first failure.
"""

import argparse
import sys
from typing import List, Optional

import uvicorn

from murl.config import setup_logging
from murl.core.exceptions import MurlError
from murl.main import create_app, load_routes
from murl.routing import run_tests


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="murl",
        description="Template driven HTTP redirect service"
    )
    parser.add_argument(
        "--config",
        default="config.json",
        help="Path to the configuration file (.yaml, .yml or .json)"
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Override the configured log level"
    )
    parser.add_argument(
        "command",
        nargs="?",
        choices=["serve", "validate"],
        default="serve",
        help="Serve the routes or validate them against their tests"
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = create_parser().parse_args(argv)

    # Default logging until the configuration is loaded
    setup_logging(log_level=args.log_level or "INFO")

    try:
        config, routes = load_routes(args.config)
    except MurlError as e:
        print(e, file=sys.stderr)
        return 1

    setup_logging(
        log_level=args.log_level or config.logging.level,
        log_format=config.logging.format,
        enable_access_log=config.logging.access_log
    )

    if args.command == "validate":
        try:
            passed = run_tests(routes)
        except MurlError as e:
            print(e, file=sys.stderr)
            return 1
        print(f"{len(routes)} routes valid, {passed} tests passed")
        return 0

    server = config.server
    app = create_app(routes, server, access_log=config.logging.access_log)
    uvicorn.run(
        app,
        host=server.host,
        port=server.port,
        ssl_certfile=server.tls.cert or None,
        ssl_keyfile=server.tls.key or None,
        log_config=None,
        access_log=False
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
