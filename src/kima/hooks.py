"""Bootstrap and predispatcher hooks.

A hook is a class whose public methods are all called, with no arguments,
in declaration order::

    class Bootstrap:
        def connect_cache(self) -> None: ...
        async def warm_settings(self) -> None: ...

The bootstrap runs before routing; the predispatcher runs after the
controller has been resolved and before it is invoked.
"""

from __future__ import annotations

import importlib
import importlib.util
import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

from kima._internal.invoke import invoke
from kima.config import Folders
from kima.errors import BootstrapError, ConfigurationError, PredispatcherError

logger = logging.getLogger("kima.action")

BOOTSTRAP_FILE = "bootstrap.py"
BOOTSTRAP_CLASS = "Bootstrap"

type HookSource = type | str | None


def public_methods(cls: type) -> list[str]:
    """Public method names of *cls* in declaration order, base classes first."""
    names: list[str] = []
    for klass in reversed(cls.__mro__):
        if klass is object:
            continue
        for name, value in klass.__dict__.items():
            if name.startswith("_") or name in names or isinstance(value, type):
                continue
            if isinstance(value, (staticmethod, classmethod)) or callable(value):
                names.append(name)
    return names


async def run_hook(cls: type) -> None:
    """Instantiate *cls* and call each of its public methods."""
    instance = cls()
    for name in public_methods(cls):
        logger.debug("hook %s.%s", cls.__name__, name)
        await invoke(getattr(instance, name))


def bootstrap_path(folders: Folders, module: str) -> Path:
    """Where the bootstrap file for *module* (or the whole app) lives."""
    base = folders.module_path(module) if module else folders.application
    return base / BOOTSTRAP_FILE


def load_bootstrap(folders: Folders, module: str) -> type | None:
    """Load the ``Bootstrap`` class from the conventional file, if present.

    Returns ``None`` when no bootstrap file exists.
    Raises ``BootstrapError`` if the file declares no ``Bootstrap`` class.
    """
    path = bootstrap_path(folders, module)
    if not path.is_file():
        return None

    module_obj = load_source(f"kima_bootstrap_{module or 'app'}", path)
    cls = getattr(module_obj, BOOTSTRAP_CLASS, None)
    if not isinstance(cls, type):
        raise BootstrapError(str(path))
    return cls


def resolve_hook(source: HookSource, error: Callable[[str], ConfigurationError]) -> type | None:
    """Resolve a hook given as a class or a ``"package.module:Class"`` string."""
    if source is None or isinstance(source, type):
        return source

    module_path, _, attr = source.partition(":")
    if not attr:
        module_path, _, attr = source.rpartition(".")
    try:
        cls = getattr(importlib.import_module(module_path), attr)
    except (ImportError, AttributeError, ValueError) as exc:
        raise error(source) from exc
    if not isinstance(cls, type):
        raise error(source)
    return cls


def resolve_predispatcher(source: HookSource) -> type | None:
    return resolve_hook(source, PredispatcherError)


def load_source(name: str, path: Path) -> Any:
    """Execute a Python file as a fresh module and return it."""
    spec = importlib.util.spec_from_file_location(name, path)
    if spec is None or spec.loader is None:
        msg = f"Cannot load Python source from {str(path)!r}"
        raise ConfigurationError(msg)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module
