"""Small helpers shared across resthat."""

from __future__ import annotations

import inspect
from typing import Any, Callable


async def call(func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
    """Safely call function (sync or async)."""
    result = func(*args, **kwargs)
    if inspect.isawaitable(result):
        return await result
    return result
