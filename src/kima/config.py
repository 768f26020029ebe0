"""Application configuration.

AppConfig is a frozen dataclass — immutable after creation, IDE-autocompletable.
``load_config()`` builds one from a TOML file so deployments can keep
settings out of code::

    [application]
    root = "/srv/site"

    [language]
    default = "en"
    available = ["en", "es"]

    [https]
    enforced = false
    controllers = ["Checkout"]

    [environments.production.https]
    enforced = true
"""

from __future__ import annotations

import os
import re
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from kima.errors import ConfigurationError, ModuleNameError

ENVIRONMENT_VAR = "KIMA_ENV"

MODULE_NAME = re.compile(r"[A-Za-z0-9_-]+")


def check_module_name(module: str) -> str:
    """Return *module* unchanged, or raise ``ModuleNameError``.

    Module names become folder names, so only letters, digits, ``_`` and
    ``-`` are accepted.
    """
    if not MODULE_NAME.fullmatch(module):
        raise ModuleNameError(module)
    return module


@dataclass(frozen=True, slots=True)
class Folders:
    """Conventional folder layout, derived from the application root."""

    application: Path
    controller: Path
    module: Path
    view: Path
    l10n: Path

    @classmethod
    def from_root(cls, root: str | Path) -> Folders:
        base = Path(root)
        application = base / "application"
        return cls(
            application=application,
            controller=application / "controller",
            module=application / "module",
            view=application / "view",
            l10n=base / "resource" / "l10n",
        )

    def module_path(self, module: str) -> Path:
        """Root folder of a single module."""
        return self.module / check_module_name(module)


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Application configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = AppConfig(root="site", default_language="en", languages=("en", "es"))
    """

    # Layout
    root: str | Path = "."
    debug: bool = False

    # Language
    default_language: str | None = None
    languages: tuple[str, ...] = ()

    # HTTPS policy
    enforce_https: bool = False
    https_controllers: tuple[str, ...] = ()
    https_redirect_status: int = 302

    # Hooks: "package.module:Class" import strings
    predispatcher: str | None = None

    # Module selection: environment variable first, then the request header
    # when one is named. Only name a header a trusted proxy sets.
    module_env: str = "MODULE"
    module_header: str | None = None

    # Database
    database_url: str | None = None
    database_echo: bool = False

    time_zone: str | None = None

    # Tracing (OpenTelemetry, optional)
    tracing_enabled: bool = False
    web_operation: str = "web.request"
    web_service: str = "kima"
    db_operation: str = "db.query"
    db_service: str = "kima-db"

    # Every table from the config file, for application-specific settings
    sections: Mapping[str, Any] = field(default_factory=dict, hash=False, compare=False)

    @property
    def folders(self) -> Folders:
        return Folders.from_root(self.root)

    def get(self, name: str, default: Any = None) -> Any:
        """Return a raw config table by name (e.g. ``config.get("mail")``)."""
        return self.sections.get(name, default)


def load_config(path: str | Path, *, environment: str | None = None) -> AppConfig:
    """Load an ``AppConfig`` from a TOML file.

    When the file declares ``[environments.<name>]`` tables, the one named by
    *environment* (or the ``KIMA_ENV`` environment variable) is merged over
    the base settings.

    Raises:
        ConfigurationError: If the file is unreadable, not valid TOML, or
            names an environment it does not declare.
    """
    config_path = Path(path)
    try:
        with config_path.open("rb") as fh:
            data = tomllib.load(fh)
    except OSError as exc:
        msg = f"Config file {str(config_path)!r} is not readable: {exc}"
        raise ConfigurationError(msg) from exc
    except tomllib.TOMLDecodeError as exc:
        msg = f"Config file {str(config_path)!r} is not valid TOML: {exc}"
        raise ConfigurationError(msg) from exc

    environments = data.pop("environments", {})
    env_name = environment or os.environ.get(ENVIRONMENT_VAR)
    if env_name:
        if env_name not in environments:
            msg = f"Environment {env_name!r} is not declared in {str(config_path)!r}"
            raise ConfigurationError(msg)
        data = _merge(data, environments[env_name])

    return config_from_mapping(data, base=config_path.parent)


def config_from_mapping(data: Mapping[str, Any], *, base: Path | None = None) -> AppConfig:
    """Build an ``AppConfig`` from already-parsed config tables."""
    application = data.get("application", {})
    language = data.get("language", {})
    https = data.get("https", {})
    database = data.get("database", {})
    tracing = data.get("tracing", {})

    root = Path(application.get("root", "."))
    if base is not None and not root.is_absolute():
        root = base / root

    defaults = AppConfig()
    return AppConfig(
        root=root,
        debug=bool(application.get("debug", False)),
        default_language=language.get("default"),
        languages=tuple(language.get("available", ())),
        enforce_https=bool(https.get("enforced", False)),
        https_controllers=tuple(https.get("controllers", ())),
        https_redirect_status=int(https.get("redirect_status", 302)),
        predispatcher=application.get("predispatcher"),
        module_env=application.get("module_env", defaults.module_env),
        module_header=application.get("module_header", defaults.module_header),
        database_url=database.get("url"),
        database_echo=bool(database.get("echo", False)),
        time_zone=application.get("time_zone"),
        tracing_enabled=bool(tracing.get("enabled", False)),
        web_operation=_name(tracing, "weboperation", defaults.web_operation),
        web_service=_name(tracing, "webservice", defaults.web_service),
        db_operation=_name(tracing, "dboperation", defaults.db_operation),
        db_service=_name(tracing, "dbservice", defaults.db_service),
        sections=dict(data),
    )


def _name(tracing: Mapping[str, Any], key: str, default: str) -> str:
    table = tracing.get(key)
    if isinstance(table, Mapping) and "name" in table:
        return str(table["name"])
    return default


def _merge(base: Mapping[str, Any], overlay: Mapping[str, Any]) -> dict[str, Any]:
    """Deep-merge *overlay* into a copy of *base* (tables merge, values replace)."""
    merged = dict(base)
    for key, value in overlay.items():
        current = merged.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = _merge(current, value)
        else:
            merged[key] = value
    return merged
