"""Data layer error hierarchy."""

from kima.errors import KimaError


class DataError(KimaError):
    """Base for all kima.data errors."""


class DriverNotInstalledError(DataError):
    """Raised when the required database driver is not installed."""


class QueryError(DataError):
    """Raised when a SQL statement is empty or fails."""


class BindValueError(QueryError):
    """Raised when a bound parameter is not a scalar value."""

    def __init__(self, position: int, value: object) -> None:
        self.position = position
        self.value = value
        super().__init__(
            f"Cannot bind parameter {position} of type {type(value).__name__!r}. "
            "Bind values must be str, int, float, bool, bytes or None."
        )
