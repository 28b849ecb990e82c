#!/usr/bin/env python3
"""
plugstart - Launch an aiohttp application from a plugin file

Usage:
    plugstart app.py --port 8080 --log-level info --pretty-logs

Every failure is fatal: the error is printed and the process exits with 1.
"""
import asyncio
import sys
import traceback
from typing import NoReturn, Optional, Sequence, TextIO

from base_plugin import LauncherError, UsageError
from cli_args import ParsedArgs, build_parser, parse_args
from http_bootstrap import ServerBootstrap
from launch_settings import Settings, load_settings
from plugin_loader import load_plugin, resolve_framework, resolve_plugin_path


def stop(error: Optional[BaseException] = None) -> NoReturn:
    """Terminate the launcher, with exit status 1 when an error is given"""
    if error is None:
        raise SystemExit(0)

    if isinstance(error, LauncherError):
        print(f"Error: {error.message}", file=sys.stderr)
        if error.__cause__ is not None and not isinstance(error.__cause__, LauncherError):
            print(f"  caused by {type(error.__cause__).__name__}: {error.__cause__}", file=sys.stderr)
    else:
        traceback.print_exception(type(error), error, error.__traceback__, file=sys.stderr)
    raise SystemExit(1)


def show_help() -> NoReturn:
    print(build_parser().format_help())
    stop()


async def run(
    settings: Settings,
    stream: Optional[TextIO] = None,
    on_fatal=stop,
) -> ServerBootstrap:
    """Resolve the framework and plugin, then start listening"""
    path, _ = resolve_plugin_path(settings.file)
    framework = resolve_framework(path.parent)
    handle = load_plugin(settings.file)

    bootstrap = ServerBootstrap(framework, settings, handle, stream=stream, on_fatal=on_fatal)
    await bootstrap.start()
    return bootstrap


async def _serve(settings: Settings) -> None:
    bootstrap = await run(settings)
    await bootstrap.serve_forever()


def start(args: ParsedArgs) -> None:
    if args.help:
        show_help()

    if not args.files:
        print("Error: Missing the required file parameter\n", file=sys.stderr)
        show_help()
    if len(args.files) > 1:
        print(f"Error: Expected exactly one file parameter, got {len(args.files)}\n", file=sys.stderr)
        show_help()

    settings = load_settings(args.files[0], args.options)
    try:
        asyncio.run(_serve(settings))
    except KeyboardInterrupt:
        stop()
    except Exception as e:
        stop(e)


def cli(argv: Optional[Sequence[str]] = None) -> None:
    try:
        args = parse_args(argv)
    except UsageError as e:
        print(f"Error: {e.message}\n", file=sys.stderr)
        show_help()
    start(args)


def main() -> None:
    cli(sys.argv[1:])


if __name__ == "__main__":
    main()
