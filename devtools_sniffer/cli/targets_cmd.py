"""
Targets subcommand for listing debuggable targets of a running Chrome.

Useful for choosing --inspector-index when attaching to an existing browser.
"""

import argparse
import json
import sys

from ..session import CDPSession
from ..exceptions import CDPError


def targets_handler(args: argparse.Namespace) -> int:
    """
    Handle 'targets' command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    config = args.config
    try:
        session = CDPSession(
            chrome_host=config.chrome_host,
            chrome_port=config.chrome_port,
        )

        url_pattern = config.inspector_marker if args.inspector else None
        targets = session.list_targets(target_type=args.type, url_pattern=url_pattern)

        if config.log_format == "json":
            print(json.dumps([target.to_dict() for target in targets], indent=2))
        else:
            for index, target in enumerate(targets):
                print(f"{index}\t{target.id}\t{target.type}\t{target.url}")

        return 0

    except CDPError as e:
        if config.log_level.upper() == "DEBUG":
            raise
        print(f"Error: {e}", file=sys.stderr)
        if e.details.get("recovery"):
            print(f"Recovery hint: {e.details['recovery']}", file=sys.stderr)
        return 1


def register_subcommand(
    subparsers: argparse._SubParsersAction, parent: argparse.ArgumentParser
) -> None:
    """
    Register 'targets' subcommand.

    Args:
        subparsers: Subparsers from main parser
        parent: Parent parser with global options
    """
    targets_parser = subparsers.add_parser(
        "targets",
        parents=[parent],
        help="List debuggable targets",
        description="List targets via the Chrome HTTP debugging endpoint",
        epilog="""
Examples:
  # All targets
  devtools-sniffer targets

  # Only inspector frontends, indexed for --inspector-index
  devtools-sniffer targets --inspector

  # Only pages, as JSON
  devtools-sniffer targets --type page --format json
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    targets_parser.add_argument(
        "--type",
        choices=["page", "other", "iframe", "worker", "service_worker", "browser"],
        help="Filter targets by type",
    )
    targets_parser.add_argument(
        "--inspector",
        action="store_true",
        help="Only targets whose URL contains the inspector marker",
    )

    targets_parser.set_defaults(func=targets_handler)
