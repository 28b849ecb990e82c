#!/usr/bin/env python3
"""
Plugin Loader - Resolves, imports and validates the plugin to launch

Responsibilities:
- Resolve the plugin target relative to the working directory
- Import the plugin file (or package directory) with importlib
- Resolve aiohttp from the plugin project's own virtualenv, falling back
  to the globally importable copy
- Validate the exported callable against the accepted plugin shapes
"""
import importlib
import importlib.util
import inspect
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from types import ModuleType
from typing import Any, Callable, Optional, Tuple

from base_plugin import ContractError, PluginHandle, PluginKind, ResolutionError

FRAMEWORK = "aiohttp"
DEFAULT_PLUGIN_ATTRIBUTE = "plugin"
VENV_NAMES = (".venv", "venv", "env")

# Plugins are imported under this prefix so a file named json.py or http.py
# never replaces the standard library module of the same name.
PLUGIN_NAMESPACE = "plugstart_plugins"

logger = logging.getLogger("plugstart.loader")


@dataclass(frozen=True)
class Framework:
    """The aiohttp copy the plugin runs against"""

    web: ModuleType
    version: str
    location: Optional[Path] = None

    @property
    def is_local(self) -> bool:
        return self.location is not None


def resolve_plugin_path(target: str, cwd: Optional[Path] = None) -> Tuple[Path, str]:
    """
    Resolve a plugin target to a file path and the attribute to export.

    Accepts "path/to/app.py", "path/to/app" (".py" is appended when the bare
    name does not exist), a package directory, and any of these followed by
    ":attribute".
    """
    attribute = DEFAULT_PLUGIN_ATTRIBUTE
    path_part, sep, attr_part = target.rpartition(":")
    if sep and path_part and attr_part.isidentifier():
        target, attribute = path_part, attr_part

    base = Path(cwd) if cwd is not None else Path.cwd()
    path = (base / target).resolve()

    if path.is_dir():
        init = path / "__init__.py"
        if init.is_file():
            return init, attribute
    elif not path.exists() and path.suffix != ".py":
        candidate = path.with_name(path.name + ".py")
        if candidate.is_file():
            return candidate, attribute

    if not path.is_file():
        raise ResolutionError(f"Cannot find module '{path}'")
    return path, attribute


def _module_name(path: Path) -> str:
    if path.name == "__init__.py":
        return f"{PLUGIN_NAMESPACE}.{path.parent.name}"
    return f"{PLUGIN_NAMESPACE}.{path.stem}"


def load_plugin_module(path: Path) -> ModuleType:
    """Import a plugin file, making its directory importable for sibling modules"""
    is_package = path.name == "__init__.py"
    module_name = _module_name(path)
    search_root = path.parent.parent if is_package else path.parent

    if str(search_root) not in sys.path:
        sys.path.insert(0, str(search_root))

    spec = importlib.util.spec_from_file_location(
        module_name,
        path,
        submodule_search_locations=[str(path.parent)] if is_package else None,
    )
    if not spec or not spec.loader:
        raise ResolutionError(f"Could not load spec for {path}")

    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except FileNotFoundError as e:
        sys.modules.pop(module_name, None)
        raise ResolutionError(f"Cannot find module '{path}'") from e
    except Exception as e:
        sys.modules.pop(module_name, None)
        raise ResolutionError(f"Failed to load plugin {path.name}: {e}") from e

    logger.debug(f"  ✓ Imported plugin module {module_name} from {path}")
    return module


def find_local_site_packages(basedir: Path) -> Optional[Path]:
    """
    Find a virtualenv site-packages holding aiohttp, walking up from basedir.

    Only site-packages built for the running interpreter's X.Y version are
    considered.
    """
    python_dir = f"python{sys.version_info.major}.{sys.version_info.minor}"
    for directory in (basedir, *basedir.parents):
        for venv_name in VENV_NAMES:
            venv = directory / venv_name
            if not venv.is_dir():
                continue
            for site in (venv / "lib" / python_dir / "site-packages", venv / "Lib" / "site-packages"):
                if (site / FRAMEWORK).is_dir():
                    return site
    return None


def resolve_framework(basedir: Path) -> Framework:
    """Import aiohttp.web, preferring the plugin project's own virtualenv"""
    site = find_local_site_packages(basedir)

    if site is not None:
        if FRAMEWORK in sys.modules:
            loaded = Path(sys.modules[FRAMEWORK].__file__).resolve().parent.parent
            if loaded != site.resolve():
                logger.warning(
                    f"⚠️  {FRAMEWORK} already imported from {loaded}, ignoring local copy in {site}"
                )
        elif str(site) not in sys.path:
            sys.path.insert(0, str(site))

    try:
        package = importlib.import_module(FRAMEWORK)
        web = importlib.import_module(f"{FRAMEWORK}.web")
    except ImportError as e:
        raise ResolutionError(f"Cannot find module '{FRAMEWORK}': {e}") from e

    version = getattr(package, "__version__", "unknown")
    location = Path(package.__file__).resolve().parent.parent
    is_local = site is not None and location == site.resolve()

    logger.info(f"🔍 Using {FRAMEWORK} {version} from {location}")
    return Framework(web=web, version=version, location=location if is_local else None)


def _is_async(func: Callable[..., Any]) -> bool:
    if inspect.iscoroutinefunction(func):
        return True
    call = getattr(func, "__call__", None)
    return call is not None and inspect.iscoroutinefunction(call)


def _required_positional(func: Callable[..., Any]) -> int:
    try:
        signature = inspect.signature(func)
    except (TypeError, ValueError) as e:
        raise ContractError(f"Cannot inspect plugin signature: {e}") from e

    positional = (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)
    return sum(
        1 for param in signature.parameters.values()
        if param.kind in positional and param.default is inspect.Parameter.empty
    )


def validate_plugin(func: Any) -> PluginKind:
    """Check the plugin callable against the accepted shapes"""
    if not callable(func):
        raise ContractError(
            f"Plugin must be a function, got {type(func).__name__}. "
            "Refer to documentation for more information."
        )

    arity = _required_positional(func)
    if _is_async(func):
        if arity != PluginKind.ASYNC.arity:
            raise ContractError(
                "Async/Await plugin function should contain 2 arguments. "
                "Refer to documentation for more information."
            )
        return PluginKind.ASYNC

    if arity != PluginKind.CALLBACK.arity:
        raise ContractError(
            "Plugin function should contain 3 arguments. "
            "Refer to documentation for more information."
        )
    return PluginKind.CALLBACK


def load_plugin(target: str, cwd: Optional[Path] = None) -> PluginHandle:
    """Resolve, import and validate a plugin target"""
    path, attribute = resolve_plugin_path(target, cwd)
    module = load_plugin_module(path)

    if not hasattr(module, attribute):
        raise ContractError(
            f"Plugin module {path.name} must export a function named '{attribute}'. "
            "Refer to documentation for more information."
        )

    func = getattr(module, attribute)
    kind = validate_plugin(func)

    handle = PluginHandle(
        func=func,
        kind=kind,
        module=module,
        path=path,
        options=getattr(module, "options", None),
    )
    logger.info(f"✅ Loaded {kind.value} plugin {handle.name} from {path}")
    return handle
