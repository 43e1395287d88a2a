"""
Run subcommand: audit a URL from the inspector and save the captured report.
"""

import argparse
import asyncio
import json
import sys

from ..exceptions import CDPError
from ..runner import AuditRunner


async def run_handler_async(args: argparse.Namespace) -> int:
    """
    Handle 'run' command (async implementation).

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    config = args.config
    config.merge(
        output_path=args.output,
        chrome_path=args.chrome_path,
        launch=False if args.attach else None,
        arm_first=True if args.arm_first else None,
        max_attempts=args.max_attempts,
        trigger_deadline=args.trigger_deadline,
        receiver_path=args.receiver,
        method_name=args.method,
        inspector_index=args.inspector_index,
    )

    try:
        output_path = await AuditRunner(config).run(args.url)

        if config.log_format == "json":
            print(json.dumps({"url": args.url, "report": str(output_path)}))
        else:
            print(output_path)
        return 0

    except CDPError as e:
        if config.log_level.upper() == "DEBUG":
            raise
        print(f"Error: {type(e).__name__}: {e}", file=sys.stderr)
        if e.details.get("recovery"):
            print(f"Recovery hint: {e.details['recovery']}", file=sys.stderr)
        return 1
    except ValueError as e:
        # Invalid locators (receiver path, method name) from config or flags.
        print(f"Error: {e}", file=sys.stderr)
        return 2


def run_handler(args: argparse.Namespace) -> int:
    """Synchronous wrapper for run_handler_async."""
    return asyncio.run(run_handler_async(args))


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be >= 1, got {value}")
    return number


def register_subcommand(
    subparsers: argparse._SubParsersAction, parent: argparse.ArgumentParser
) -> None:
    """
    Register 'run' subcommand.

    Args:
        subparsers: Subparsers from main parser
        parent: Parent parser with global options
    """
    run_parser = subparsers.add_parser(
        "run",
        parents=[parent],
        help="Audit a URL and capture the report",
        description="Start the inspector panel's audit and capture the report it builds",
        epilog="""
Examples:
  # Launch Chrome and audit a page
  devtools-sniffer run https://example.com

  # Give up when the start control is not clickable within 60 seconds
  devtools-sniffer run https://example.com --trigger-deadline 60

  # Install the interception before the first click
  devtools-sniffer run https://example.com --arm-first

  # Intercept a different method
  devtools-sniffer run https://example.com \\
      --receiver UI.panels.lighthouse.__proto__ --method _buildReportUI
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    run_parser.add_argument("url", help="URL to audit")

    run_parser.add_argument(
        "--output",
        help="Report output path (default: latest-run/lhr.json)",
    )
    run_parser.add_argument(
        "--chrome-path",
        help="Chrome executable (default: $CHROME_PATH or discovered)",
    )
    run_parser.add_argument(
        "--attach",
        action="store_true",
        help="Use an already running Chrome instead of launching one",
    )
    run_parser.add_argument(
        "--arm-first",
        action="store_true",
        help="Install the method interception before triggering",
    )
    run_parser.add_argument(
        "--max-attempts",
        type=_positive_int,
        help="Fail after this many trigger attempts (default: unbounded)",
    )
    run_parser.add_argument(
        "--trigger-deadline",
        type=float,
        help="Fail when triggering takes longer than this many seconds (default: unbounded)",
    )
    run_parser.add_argument(
        "--receiver",
        help="Dotted path of the object whose method is intercepted",
    )
    run_parser.add_argument(
        "--method",
        help="Name of the method to intercept",
    )
    run_parser.add_argument(
        "--inspector-index",
        type=int,
        help="Which matching inspector target to use (default: 1)",
    )

    run_parser.set_defaults(func=run_handler)
