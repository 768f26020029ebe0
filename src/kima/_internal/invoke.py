"""Call sync or async user code uniformly.

Controller handlers, bootstrap methods and predispatcher methods may be
``def`` or ``async def``. The awaitable check lives here and nowhere else.
"""

import inspect
from typing import Any


async def invoke(func: Any, *args: Any, **kwargs: Any) -> Any:
    """Call *func* and await the result if it is awaitable."""
    result = func(*args, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result
