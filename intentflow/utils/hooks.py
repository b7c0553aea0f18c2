from __future__ import annotations

import inspect
from typing import Any


async def maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


async def call_optional(target: Any, name: str, *args: Any) -> Any:
    """Call ``target.<name>(*args)`` if it exists, awaiting coroutine results."""
    hook = getattr(target, name, None)
    if hook is None:
        return None
    return await maybe_await(hook(*args))
