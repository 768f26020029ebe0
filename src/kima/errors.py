"""Kima exception hierarchy.

Shared across Action, App, the registry and the request handler so every
module raises and catches the same types. Anything that is not an
``HTTPError`` is fatal: the top-level handler logs it and answers 500.
"""

from dataclasses import dataclass


class KimaError(Exception):
    """Base for all kima-specific errors."""


class ConfigurationError(KimaError):
    """Raised when app configuration is invalid."""


class ModuleRoutesError(ConfigurationError):
    """The active module has no sub-table in the route table."""

    def __init__(self, module: str) -> None:
        super().__init__(f'Routes for module "{module}" are not set')
        self.module = module


class ModuleNameError(ConfigurationError):
    """A module name that is not a plain identifier."""

    def __init__(self, module: str) -> None:
        super().__init__(f"Invalid module name {module!r}")
        self.module = module


class BootstrapError(ConfigurationError):
    """A bootstrap file exists but declares no ``Bootstrap`` class."""

    def __init__(self, path: str) -> None:
        super().__init__(f"Class Bootstrap not defined in {path}")
        self.path = path


class PredispatcherError(ConfigurationError):
    """The registered predispatcher cannot be resolved."""

    def __init__(self, predispatcher: str) -> None:
        super().__init__(f"Registered Predispatcher class {predispatcher} is not accessible")
        self.predispatcher = predispatcher


class ControllerError(KimaError):
    """Base for controller resolution failures."""


class ControllerFileError(ControllerError):
    """The controller file is missing or unreadable."""

    def __init__(self, controller: str, path: str) -> None:
        super().__init__(f'Class file for "{controller}" is not accessible on "{path}"')
        self.controller = controller
        self.path = path


class ControllerClassError(ControllerError):
    """The controller file loaded but does not declare the class."""

    def __init__(self, controller: str, path: str) -> None:
        super().__init__(f'Class "{controller}" not declared on "{path}"')
        self.controller = controller
        self.path = path


class ControllerTypeError(ControllerError):
    """The resolved object is not a ``kima.Controller``."""

    def __init__(self, controller: str) -> None:
        super().__init__(f'Object for "{controller}" is not an instance of kima.Controller')
        self.controller = controller


@dataclass(frozen=True, slots=True)
class HTTPError(KimaError):
    """An error that maps directly to an HTTP status code.

    Raised by Action for the expected request-resolution outcomes.
    ``App.run`` catches these and renders them through the Error controller.
    """

    status: int
    detail: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class NotFound(HTTPError):  # noqa: N818
    """404 — no route matched the request path."""

    def __init__(self, detail: str = "Not Found") -> None:
        super().__init__(status=404, detail=detail)


class MethodNotAllowed(HTTPError):  # noqa: N818
    """405 — the controller has no handler for this HTTP method.

    Includes an ``Allow`` header listing the handlers the controller declares.
    """

    def __init__(self, allowed: frozenset[str], detail: str = "") -> None:
        allow_value = ", ".join(sorted(m.upper() for m in allowed))
        default_detail = f"Method not allowed. Allowed methods: {allow_value}"
        super().__init__(
            status=405,
            detail=detail or default_detail,
            headers=(("Allow", allow_value),),
        )
