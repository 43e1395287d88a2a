"""
Main CLI entry point for devtools-sniffer.

Usage:
    python -m devtools_sniffer.cli.main <subcommand> [options]

Subcommands:
    run      - Run the inspector panel's audit against a URL and save the report
    targets  - List debuggable targets (diagnostics)
"""

import argparse
import sys
from typing import List, Optional

from devtools_sniffer.config import Configuration
from devtools_sniffer.logging_setup import setup_logging


def create_parent_parser() -> argparse.ArgumentParser:
    """
    Create parent parser with global options shared across all subcommands.

    Options default to None so that environment variables and the config
    file still apply when a flag is omitted.

    Returns:
        ArgumentParser with global options
    """
    parent = argparse.ArgumentParser(add_help=False)

    parent.add_argument(
        "--chrome-host",
        help="Chrome host (default: localhost)",
    )
    parent.add_argument(
        "--chrome-port",
        type=int,
        help="Chrome debugging port (default: 9222)",
    )
    parent.add_argument(
        "--timeout",
        type=float,
        help="Command timeout in seconds (default: 30.0)",
    )

    parent.add_argument(
        "--format",
        choices=["json", "text"],
        help="Output and log format (default: text)",
    )

    parent.add_argument(
        "--log-level",
        choices=["debug", "info", "warning", "error"],
        help="Log level (default: info)",
    )

    verbosity_group = parent.add_mutually_exclusive_group()
    verbosity_group.add_argument(
        "--quiet",
        action="store_true",
        help="Only log errors",
    )
    verbosity_group.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug output, including every trigger attempt",
    )

    return parent


def create_main_parser(parent: argparse.ArgumentParser) -> argparse.ArgumentParser:
    """
    Create main parser with all subcommands.

    Args:
        parent: Parent parser with global options

    Returns:
        Main ArgumentParser with subcommands configured
    """
    parser = argparse.ArgumentParser(
        prog="devtools-sniffer",
        description="Run an inspector panel audit over CDP and capture its report",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Launch Chrome, audit a page, write latest-run/lhr.json
  devtools-sniffer run https://example.com

  # Write the report elsewhere
  devtools-sniffer run https://example.com --output /tmp/report.json

  # Use an already running Chrome on port 9333
  devtools-sniffer run https://example.com --attach --chrome-port 9333

  # List inspector targets of a running Chrome
  devtools-sniffer targets --inspector

For more information on subcommands, run: devtools-sniffer <subcommand> --help
        """,
    )

    subparsers = parser.add_subparsers(
        dest="subcommand",
        title="subcommands",
        required=True,
    )

    from . import run_cmd, targets_cmd

    run_cmd.register_subcommand(subparsers, parent)
    targets_cmd.register_subcommand(subparsers, parent)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for CLI.

    Precedence: CLI flags > env vars > config file > defaults

    Args:
        argv: Command-line arguments (default: sys.argv[1:])

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    parent = create_parent_parser()
    parser = create_main_parser(parent)

    args = parser.parse_args(argv)

    config = Configuration()
    config.load_from_file("~/.snifferrc")
    config.load_from_env()

    config.merge(
        chrome_host=getattr(args, "chrome_host", None),
        chrome_port=getattr(args, "chrome_port", None),
        timeout=getattr(args, "timeout", None),
        log_level=getattr(args, "log_level", None),
        log_format=getattr(args, "format", None),
    )

    if getattr(args, "quiet", False):
        config.log_level = "ERROR"
    elif getattr(args, "verbose", False):
        config.log_level = "DEBUG"

    setup_logging(
        format_type=config.log_format,
        level=config.log_level.upper() if isinstance(config.log_level, str) else "INFO",
        quiet=getattr(args, "quiet", False),
        verbose=getattr(args, "verbose", False),
    )

    args.config = config

    if hasattr(args, "func"):
        try:
            return args.func(args)
        except KeyboardInterrupt:
            print("\nInterrupted by user", file=sys.stderr)
            return 130
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
