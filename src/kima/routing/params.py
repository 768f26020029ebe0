"""URL parameter parsing and language resolution.

URL parameters are the non-empty ``/``-separated segments of the request
path, in order. They are both the unit of route matching and the sole
argument every controller handler receives.
"""

from collections.abc import Collection, Sequence


def split_path(path: str) -> list[str]:
    """Split a path into its non-empty segments.

    The query string, if any, is discarded::

        split_path("/users//42/?tab=1")  -> ["users", "42"]
        split_path("/")                   -> []
    """
    path = path.split("?", 1)[0]
    return [segment for segment in path.split("/") if segment]


def resolve_language(
    parameters: Sequence[str],
    languages: Collection[str],
    default: str | None,
) -> tuple[str, list[str]]:
    """Pick the request language from the first URL parameter.

    A leading segment naming a supported language other than the default is
    consumed. The default language is never stripped: ``/en/users`` with
    default ``en`` keeps ``["en", "users"]``.

    Returns ``(language, remaining_parameters)``.
    """
    remaining = list(parameters)
    if remaining and remaining[0] in languages and remaining[0] != default:
        return remaining.pop(0), remaining
    return default or "", remaining
