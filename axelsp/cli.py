#!/usr/bin/env python3
"""Command-line interface for the Axe language server manager."""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from axelsp import __version__
from axelsp.config import load_settings
from axelsp.errors import AxeLspError
from axelsp.service import AxeLanguageService


def parse_args(args: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Args:
        args: Command-line arguments. If None, sys.argv is used.

    Returns:
        Parsed arguments namespace.
    """
    parser = argparse.ArgumentParser(
        description="Axe language server manager"
    )

    parser.add_argument(
        "--settings",
        "-s",
        default=None,
        help="Path to the settings file"
    )
    parser.add_argument(
        "--storage",
        default=None,
        help="Directory the downloaded server is cached in"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )

    subparsers = parser.add_subparsers(dest="action", help="Action to perform")
    subparsers.add_parser("resolve", help="Find or download the server and print its path")
    subparsers.add_parser("update", help="Download the latest server release")
    subparsers.add_parser("debug-info", help="Print debug information")
    subparsers.add_parser("serve", help="Run the server under supervision")

    return parser.parse_args(args)


def main(args: Optional[List[str]] = None) -> int:
    """Run the CLI application.

    Args:
        args: Command-line arguments. If None, sys.argv is used.

    Returns:
        Exit code (0 for success, non-zero for error).
    """
    parsed_args = parse_args(args)

    # Configure logging
    log_level = logging.DEBUG if parsed_args.debug else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    try:
        settings = load_settings(parsed_args.settings)
        if parsed_args.storage:
            settings = settings.model_copy(update={"storage_path": parsed_args.storage})

        service = AxeLanguageService(settings)

        if parsed_args.action == "resolve":
            print(asyncio.run(service.locator.resolve()))
            return 0

        if parsed_args.action == "update":
            print(asyncio.run(service.locator.download_latest()))
            return 0

        if parsed_args.action == "debug-info":
            print(service.show_debug_info())
            return 0

        if parsed_args.action == "serve":
            print("Axe LSP service started")
            print("Press Ctrl+C to stop the service")
            try:
                asyncio.run(service.serve())
            except KeyboardInterrupt:
                print("Stopping service...")
            return 0 if service.server_path else 1

        print("Please specify an action. Use --help for available commands.")
        return 1

    except AxeLspError as e:
        logging.error(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
