"""Command line parsing for the plugstart launcher."""

import logging
from argparse import ArgumentParser, BooleanOptionalAction, RawDescriptionHelpFormatter
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from base_plugin import UsageError
from launch_settings import ENV_VARS, Settings

logger = logging.getLogger("plugstart.cli")

EPILOG = "Environment variables:\n" + "\n".join(
    f"  {name:<22} --{key.replace('_', '-')}" for key, name in ENV_VARS.items()
) + "\n\nCLI flags take precedence over environment variables."


class LauncherArgumentParser(ArgumentParser):
    """ArgumentParser that reports bad input as UsageError instead of exiting"""

    def error(self, message: str):
        raise UsageError(message)


@dataclass
class ParsedArgs:
    options: Dict[str, Any] = field(default_factory=dict)
    files: List[str] = field(default_factory=list)
    unknown: List[str] = field(default_factory=list)
    help: bool = False


def build_parser() -> ArgumentParser:
    """Build the CLI argument parser."""
    parser = LauncherArgumentParser(
        prog="plugstart",
        usage="%(prog)s <file> [options]",
        description="Start an aiohttp application from a plugin file.",
        epilog=EPILOG,
        formatter_class=RawDescriptionHelpFormatter,
        add_help=False,
        allow_abbrev=False,
    )
    parser.add_argument(
        "files",
        nargs="*",
        metavar="file",
        help="Plugin file to load, optionally as path.py:attribute",
    )
    parser.add_argument(
        "-p", "--port",
        type=int,
        help=f"Port to listen on (default: {Settings.port})",
    )
    parser.add_argument(
        "-s", "--socket",
        help="Unix socket path to listen on",
    )
    parser.add_argument(
        "-a", "--address",
        help="Address to listen on",
    )
    parser.add_argument(
        "-r", "--prefix",
        help="URL prefix the plugin is mounted under",
    )
    parser.add_argument(
        "-l", "--log-level",
        dest="log_level",
        help=f"Log level: trace, debug, info, warn, error, fatal, silent (default: {Settings.log_level})",
    )
    parser.add_argument(
        "-P", "--pretty-logs",
        dest="pretty_logs",
        action=BooleanOptionalAction,
        help="Print human readable logs instead of JSON",
    )
    parser.add_argument(
        "-o", "--options",
        action=BooleanOptionalAction,
        help="Merge the plugin module's `options` into the application settings",
    )
    parser.add_argument(
        "--body-limit",
        dest="body_limit",
        type=int,
        help="Maximum request body size in bytes",
    )
    parser.add_argument(
        "-h", "--help",
        action="store_true",
        help="Show this help message",
    )
    return parser


def parse_args(argv: Optional[Sequence[str]]) -> ParsedArgs:
    """
    Parse raw arguments without rejecting unknown flags.

    Only options present on the command line end up in ParsedArgs.options,
    so that environment values can fill the gaps afterwards.
    """
    namespace, unknown = build_parser().parse_known_intermixed_args(list(argv or []))
    values = vars(namespace)

    if unknown:
        logger.debug(f"Ignoring unknown arguments: {unknown}")

    files = values.pop("files") or []
    show_help = bool(values.pop("help"))
    options = {key: value for key, value in values.items() if value is not None}
    return ParsedArgs(options=options, files=list(files), unknown=unknown, help=show_help)
