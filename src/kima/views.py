"""Kida view rendering.

Templates live in the application's view folder. When a request runs in a
module, ``application/module/<module>/view/`` is searched first, so a
module can override any shared view. One kida ``Environment`` is built per
module on first use and reused afterwards.
"""

from __future__ import annotations

import threading
from typing import Any

from kida import ChoiceLoader, Environment, FileSystemLoader

from kima.config import AppConfig
from kima.context import get_context


class ViewRenderer:
    """Per-module kida environments for one application."""

    __slots__ = ("_config", "_environments", "_lock")

    def __init__(self, config: AppConfig) -> None:
        self._config = config
        self._environments: dict[str, Environment] = {}
        self._lock = threading.Lock()

    def view_dirs(self, module: str = "") -> list[str]:
        """Template directories for *module*, most specific first."""
        folders = self._config.folders
        dirs = [str(folders.view)]
        if module:
            dirs.insert(0, str(folders.module_path(module) / "view"))
        return dirs

    def environment(self, module: str = "") -> Environment:
        env = self._environments.get(module)
        if env is not None:
            return env
        with self._lock:
            env = self._environments.get(module)
            if env is None:
                loader = ChoiceLoader([FileSystemLoader(d) for d in self.view_dirs(module)])
                env = Environment(loader=loader, autoescape=True, auto_reload=self._config.debug)
                self._environments[module] = env
            return env

    def render(self, template: str, context: dict[str, Any], *, module: str = "") -> str:
        return self.environment(module).get_template(template).render(context)


def render_view(template: str, context: dict[str, Any]) -> str:
    """Render *template* for the current request.

    ``language`` is always available to the template, alongside *context*.
    """
    ctx = get_context()
    values = {"language": ctx.language, **context}
    return ctx.app.views.render(template, values, module=ctx.module)
