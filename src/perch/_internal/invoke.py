"""Invoke helpers — call sync or async callables uniformly.

Pipeline stages, route handlers, deferred bodies, and error handlers can be
``def`` or ``async def``. This module keeps the sync/async check in exactly
one place.

Usage::

    from perch._internal.invoke import invoke

    partial = await invoke(stage, props)
"""

import inspect
from typing import Any


async def invoke(func: Any, *args: Any, **kwargs: Any) -> Any:
    """Call *func* and await the result if it is awaitable.

    Works with both sync and async callables::

        def add_user(props):
            return {"user": lookup(props["params"]["id"])}

        async def add_user(props):
            return {"user": await fetch(props["params"]["id"])}
    """
    result = func(*args, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result
