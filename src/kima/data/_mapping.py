"""Row-to-model mapping with type coercion.

Rows arrive from the drivers as dicts. A model is either ``dict`` (rows are
returned as they are) or a dataclass, whose fields pick the columns to keep.
Fields annotated ``int``, ``float``, ``bool`` or ``str`` are coerced, since
SQLite hands back strings for loosely typed columns; empty strings become
``0`` / ``0.0`` in numeric fields.
"""

import dataclasses
import types
from typing import Any, get_args, get_origin

_COERCIBLE: dict[type, Any] = {
    int: lambda v: int(v) if v != "" else 0,
    float: lambda v: float(v) if v != "" else 0.0,
    bool: lambda v: bool(int(v)) if isinstance(v, str) else bool(v),
    str: str,
}


def _coercion_map(cls: type) -> dict[str, type | None]:
    """``{field: target type}``, with ``None`` for fields left untouched."""
    result: dict[str, type | None] = {}
    for f in dataclasses.fields(cls):
        annotation = f.type
        if get_origin(annotation) is types.UnionType:
            args = [a for a in get_args(annotation) if a is not type(None)]
            annotation = args[0] if len(args) == 1 else None
        result[f.name] = annotation if annotation in _COERCIBLE else None
    return result


def _coerce(value: Any, target: type | None) -> Any:
    if target is None or value is None or isinstance(value, target):
        return value
    return _COERCIBLE[target](value)


def map_rows[T](model: type[T], rows: list[dict[str, Any]]) -> list[T]:
    """Map dict rows onto *model* instances.

    Columns without a matching field are ignored, so ``SELECT *`` works
    against a narrower dataclass. Raises ``TypeError`` when *model* is
    neither ``dict`` nor a dataclass, or a required field is missing.
    """
    if model is dict:
        return rows  # type: ignore[return-value]
    if not dataclasses.is_dataclass(model):
        msg = f"{model.__name__} is not a dataclass; pass a dataclass or dict as the model"
        raise TypeError(msg)

    coercion = _coercion_map(model)
    return [
        model(**{k: _coerce(v, coercion[k]) for k, v in row.items() if k in coercion})
        for row in rows
    ]


def map_row[T](model: type[T], row: dict[str, Any]) -> T:
    """Map a single dict row onto a *model* instance."""
    return map_rows(model, [row])[0]
