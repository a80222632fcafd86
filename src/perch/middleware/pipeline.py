"""Functional stage composition.

``compose(stage_1, ..., stage_n)`` returns one async handler. Props flow
through the stages by non-destructive merge; the last stage's result is the
reply. Any stage may end the chain early by returning ``Terminal``::

    handler = compose(load_user, require_admin, show_dashboard)
    reply = await handler(make_props({"params": {"id": "7"}}))
"""

import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from perch._internal.invoke import invoke
from perch.http.reply import Reply, resolve_reply
from perch.middleware.protocol import Continue, Props, Terminal, make_props, merge_props

logger = logging.getLogger("perch.pipeline")


def _final_reply(result: Any, stage: Callable[..., Any]) -> Reply:
    """Coerce the last stage's result into a ``Reply``."""
    match result:
        case Reply():
            return result
        case Terminal(reply=reply):
            return reply
        case Mapping() if "resp" in result:
            return Reply.from_mapping(result)
        case _:
            name = getattr(stage, "__qualname__", repr(stage))
            msg = (
                f"Final stage {name} returned {type(result).__name__}; "
                "expected a Reply, a Terminal, or a mapping with a 'resp' key."
            )
            raise TypeError(msg)


def compose(*stages: Callable[..., Any]) -> Callable[[Props], Awaitable[Reply]]:
    """Compose *stages* into a single async handler.

    Non-final stages return a mapping (merged into props), ``Continue``
    (its props merged), or ``Terminal`` / ``Reply`` (chain stops, that reply
    is the result). The final stage must produce a reply. Deferred bodies
    are resolved against the props the answering stage received.

    Exceptions raised by a stage propagate unchanged.
    """
    if not stages:
        msg = "compose() needs at least one stage."
        raise ValueError(msg)

    *leading, final = stages

    async def handler(props: Props | None = None) -> Reply:
        current = make_props(props)

        for stage in leading:
            result = await invoke(stage, current)
            match result:
                case Terminal(reply=reply):
                    logger.debug("Stage %s ended the chain", getattr(stage, "__qualname__", stage))
                    return await resolve_reply(reply, current)
                case Reply():
                    return await resolve_reply(result, current)
                case Continue(props=partial):
                    current = merge_props(current, partial)
                case Mapping():
                    current = merge_props(current, result)
                case None:
                    pass
                case _:
                    name = getattr(stage, "__qualname__", repr(stage))
                    msg = f"Stage {name} returned {type(result).__name__}; expected a mapping."
                    raise TypeError(msg)

        reply = _final_reply(await invoke(final, current), final)
        return await resolve_reply(reply, current)

    return handler
