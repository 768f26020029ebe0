"""Controller registry — maps controller identifiers to factories.

Controllers can be registered explicitly::

    registry.register("User", User)
    registry.register("Cart", Cart, module="shop")

Anything not registered is loaded from the folder convention the first time
it is needed and cached for the life of the process:

- ``application/controller/<Name>.py``
- ``application/module/<module>/controller/<Name>.py``

Identifiers may contain ``/`` to address sub-folders (``"Admin/User"``
loads class ``User`` from ``controller/Admin/User.py``).
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from pathlib import Path

from kima.config import Folders
from kima.controller import Controller
from kima.errors import ControllerClassError, ControllerFileError, ControllerTypeError
from kima.hooks import load_source

logger = logging.getLogger("kima.action")

type ControllerFactory = Callable[[], Controller]


class ControllerRegistry:
    """Resolves controller identifiers to zero-argument factories.

    Thread safety:
        File-based lookups populate a cache under a lock, so two workers
        resolving the same controller for the first time load it once.
    """

    __slots__ = ("_factories", "_folders", "_lock")

    def __init__(self, folders: Folders) -> None:
        self._folders = folders
        self._factories: dict[tuple[str, str], ControllerFactory] = {}
        self._lock = threading.Lock()

    def register(self, name: str, factory: ControllerFactory, *, module: str = "") -> None:
        """Register *factory* (usually the controller class) under *name*."""
        self._factories[(module, name)] = factory

    def __contains__(self, key: tuple[str, str]) -> bool:
        return key in self._factories

    def controller_path(self, name: str, module: str = "") -> Path:
        """The conventional source file for controller *name*."""
        folder = (
            self._folders.module_path(module) / "controller"
            if module
            else self._folders.controller
        )
        return folder / f"{name}.py"

    def resolve(self, name: str, module: str = "") -> ControllerFactory:
        """Return the factory for *name*, loading it from disk if needed.

        Raises:
            ControllerFileError: No registration and no readable source file.
            ControllerClassError: The file does not declare the class.
        """
        key = (module, name)
        factory = self._factories.get(key)
        if factory is not None:
            return factory
        with self._lock:
            factory = self._factories.get(key)
            if factory is None:
                factory = self._load(name, module)
                self._factories[key] = factory
        return factory

    def find(self, name: str, module: str = "") -> ControllerFactory | None:
        """Like ``resolve`` but returns ``None`` when nothing provides *name*."""
        if (module, name) in self._factories or self.controller_path(name, module).is_file():
            return self.resolve(name, module)
        return None

    def create(self, name: str, module: str = "") -> Controller:
        """Instantiate controller *name* and check it is a ``Controller``.

        Raises ``ControllerTypeError`` if the factory produced anything else.
        """
        instance = self.resolve(name, module)()
        if not isinstance(instance, Controller):
            raise ControllerTypeError(name)
        return instance

    def _load(self, name: str, module: str) -> ControllerFactory:
        path = self.controller_path(name, module)
        if not path.is_file():
            raise ControllerFileError(name, str(path))

        module_name = "kima_controller_" + "_".join(filter(None, (module, *name.split("/"))))
        try:
            source = load_source(module_name, path)
        except OSError as exc:
            raise ControllerFileError(name, str(path)) from exc

        class_name = name.rsplit("/", 1)[-1]
        cls = getattr(source, class_name, None)
        if not isinstance(cls, type):
            raise ControllerClassError(class_name, str(path))
        logger.debug("loaded controller %s from %s", name, path)
        return cls
