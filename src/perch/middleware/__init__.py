"""Middleware — prop-producing stages composed into handlers.

A stage is any callable matching:
    def stage(props: Props) -> Mapping | Continue | Terminal

Stages run in order; each one's mapping is merged into the props bag the
next one receives. ``Terminal`` short-circuits the chain.
"""

from perch.middleware.pipeline import compose
from perch.middleware.protocol import (
    Continue,
    Props,
    Stage,
    Terminal,
    make_props,
    merge_props,
)

__all__ = [
    "Continue",
    "Props",
    "Stage",
    "Terminal",
    "compose",
    "make_props",
    "merge_props",
]
