"""Shared fixtures for the plugstart tests."""
import logging
import sys
import textwrap
from pathlib import Path

import pytest

from plugin_loader import PLUGIN_NAMESPACE
from pretty_logs import LOGGER_NAMES

PLUGINS_DIR = Path(__file__).parent / "plugins"


@pytest.fixture(autouse=True)
def reset_loggers():
    yield
    for name in LOGGER_NAMES:
        target = logging.getLogger(name)
        for handler in [h for h in target.handlers if getattr(h, "_plugstart", False)]:
            target.removeHandler(handler)
        target.setLevel(logging.NOTSET)
        target.propagate = True


@pytest.fixture
def write_plugin(tmp_path):
    """Write a plugin module into tmp_path and return its path"""
    written = []

    def _write(name: str, source: str) -> Path:
        path = tmp_path.resolve() / f"{name}.py"
        path.write_text(textwrap.dedent(source))
        written.append(path.stem)
        return path

    yield _write
    for stem in written:
        sys.modules.pop(f"{PLUGIN_NAMESPACE}.{stem}", None)
        # Siblings imported by a plugin land under their bare name.
        module = sys.modules.get(stem)
        if module is not None and Path(getattr(module, "__file__", None) or "").parent == tmp_path.resolve():
            del sys.modules[stem]


@pytest.fixture
def plugins_dir() -> Path:
    return PLUGINS_DIR


class BrokenStream:
    """Text stream whose writes fail like a closed pipe"""

    def write(self, data):
        raise BrokenPipeError(32, "Broken pipe")

    def flush(self):
        pass

    def isatty(self):
        return False


@pytest.fixture
def broken_stream():
    return BrokenStream()
