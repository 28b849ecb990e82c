#!/usr/bin/env python3
"""
Base Plugin - Shared plugin types and the launcher error taxonomy

A plugin is a callable exported from a Python file. Two shapes are accepted:

1. Callback plugins:  def plugin(app, options, done) -> None
2. Async plugins:     async def plugin(app, options) -> None

Callback plugins report completion by calling done(), passing an error
when registration failed.
"""
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import ModuleType
from typing import Any, Callable, Optional


class PluginKind(Enum):
    """How a plugin signals that registration finished"""

    CALLBACK = "callback"
    ASYNC = "async"

    @property
    def arity(self) -> int:
        return 3 if self is PluginKind.CALLBACK else 2


@dataclass(frozen=True)
class PluginHandle:
    """A loaded plugin that passed contract validation"""

    func: Callable[..., Any]
    kind: PluginKind
    module: ModuleType
    path: Path
    # module-level `options` export, merged into the app settings with --options
    options: Optional[Any] = field(default=None)

    @property
    def name(self) -> str:
        return getattr(self.func, "__name__", type(self.func).__name__)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}: {self.name} ({self.kind.value}) from {self.path}>"


class LauncherError(Exception):
    """Base class for every error the launcher reports to the user"""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class UsageError(LauncherError):
    """Bad command line; reported together with the help text"""


class ResolutionError(LauncherError):
    """Plugin file or framework could not be located or imported"""


class ContractError(LauncherError):
    """Plugin does not match one of the accepted shapes"""


class ServerRuntimeError(LauncherError):
    """Registration, listen or log stream failure"""


def if_error(err: Any) -> None:
    """Fail-fast completion callback: raise whatever error is handed in"""
    if err is None:
        return
    if isinstance(err, BaseException):
        raise err
    raise ServerRuntimeError(str(err))
