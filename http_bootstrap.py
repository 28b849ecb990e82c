#!/usr/bin/env python3
"""
HTTP Bootstrap - Builds the aiohttp application around a plugin and listens

Steps, each fatal on failure:
1. Configure logging (level, JSON or pretty output)
2. Build Application settings (logger, body limit, plugin module options)
3. Register the plugin, mounted under a prefix when one is configured
4. Listen on address+port, a Unix socket, or the port alone
"""
import asyncio
import logging
import os
from typing import Any, Callable, Dict, NamedTuple, Optional, TextIO

from base_plugin import ContractError, PluginHandle, PluginKind, ServerRuntimeError, if_error
from launch_settings import Settings
from plugin_loader import Framework
from pretty_logs import configure_logging

DEFAULT_HOST = "127.0.0.1"

logger = logging.getLogger("plugstart.bootstrap")


class ListenTarget(NamedTuple):
    mode: str  # "address", "socket" or "port"
    host: Optional[str] = None
    port: Optional[int] = None
    path: Optional[str] = None


def listen_target(settings: Settings) -> ListenTarget:
    """Pick the listen mode: address wins over socket, socket over the bare port"""
    if settings.address:
        return ListenTarget("address", host=settings.address, port=settings.port)
    if settings.socket:
        return ListenTarget("socket", path=settings.socket)
    return ListenTarget("port", host=DEFAULT_HOST, port=settings.port)


def normalize_prefix(prefix: Optional[str]) -> Optional[str]:
    if not prefix:
        return None
    prefix = "/" + prefix.strip("/")
    return None if prefix == "/" else prefix


def build_app_options(settings: Settings, handle: PluginHandle, app_logger: logging.Logger) -> Dict[str, Any]:
    """Keyword arguments for web.Application"""
    options: Dict[str, Any] = {"logger": app_logger}

    if settings.body_limit:
        options["client_max_size"] = settings.body_limit

    if settings.options and handle.options is not None:
        if not hasattr(handle.options, "keys"):
            raise ContractError(
                f"`options` exported by {handle.path.name} must be a mapping, "
                f"got {type(handle.options).__name__}"
            )
        options.update(handle.options)

    return options


async def invoke_plugin(handle: PluginHandle, app: Any, plugin_options: Dict[str, Any]) -> None:
    """Run the plugin against app and wait until it reports completion"""
    if handle.kind is PluginKind.ASYNC:
        await handle.func(app, plugin_options)
        return

    completed = asyncio.get_running_loop().create_future()

    def done(err: Any = None) -> None:
        if not completed.done():
            completed.set_result(err)

    handle.func(app, plugin_options, done)
    if_error(await completed)


async def register_plugin(web: Any, app: Any, handle: PluginHandle, prefix: Optional[str] = None) -> Any:
    """
    Register the plugin on app, or on a sub-application mounted at prefix.

    Returns the application the plugin was registered on.
    """
    prefix = normalize_prefix(prefix)
    if prefix is None:
        await invoke_plugin(handle, app, {})
        return app

    subapp = web.Application(logger=app.logger)
    await invoke_plugin(handle, subapp, {"prefix": prefix})
    app.add_subapp(prefix, subapp)
    return subapp


class ServerBootstrap:
    """
    Owns the application, runner and site for one launched plugin.

    The framework is injected so the plugin runs against the aiohttp copy
    resolved for its project.
    """

    def __init__(
        self,
        framework: Framework,
        settings: Settings,
        handle: PluginHandle,
        stream: Optional[TextIO] = None,
        on_fatal: Optional[Callable[[BaseException], None]] = None,
    ):
        self.framework = framework
        self.web = framework.web
        self.settings = settings
        self.handle = handle
        self.stream = stream
        self.on_fatal = on_fatal
        self.app = None
        self.runner = None
        self.site = None

    def create_app(self) -> Any:
        app_logger = configure_logging(
            self.settings.log_level,
            pretty=self.settings.pretty_logs,
            stream=self.stream,
            on_fatal=self.on_fatal,
        )
        options = build_app_options(self.settings, self.handle, app_logger)
        try:
            return self.web.Application(**options)
        except TypeError as e:
            raise ServerRuntimeError(f"Invalid application options: {e}") from e

    async def start(self) -> None:
        """Configure, register and listen"""
        self.app = self.create_app()

        try:
            await register_plugin(self.web, self.app, self.handle, self.settings.prefix)
        except Exception as e:
            raise ServerRuntimeError(f"Plugin registration failed: {e}") from e
        logger.info(f"🔧 Registered plugin {self.handle.name}")

        self.runner = self.web.AppRunner(self.app)
        await self.runner.setup()

        target = listen_target(self.settings)
        if target.mode == "socket":
            self.site = self.web.UnixSite(self.runner, target.path)
        else:
            self.site = self.web.TCPSite(self.runner, target.host, target.port)

        try:
            await self.site.start()
        except OSError as e:
            await self.runner.cleanup()
            raise ServerRuntimeError(f"Cannot listen on {self.site.name}: {e}") from e

        self.app.logger.info(f"Server listening at {self.site.name}")
        logger.info(f"🎯 Server listening at {self.site.name}")

    async def serve_forever(self) -> None:
        try:
            await asyncio.Event().wait()
        finally:
            await self.close()

    async def close(self) -> None:
        if self.runner is None:
            return
        runner, self.runner = self.runner, None
        await runner.cleanup()

        target = listen_target(self.settings)
        if target.mode == "socket" and os.path.exists(target.path):
            os.unlink(target.path)
        logger.info("👋 Server stopped")
