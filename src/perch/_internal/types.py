"""Shared type aliases used across perch modules."""

from collections.abc import Callable
from typing import Any, TypeAlias

# Route handler: receives the props bag, returns a Reply (sync or async)
Handler: TypeAlias = Callable[..., Any]

# Pipeline stage: receives props, returns partial props / Continue / Terminal
Stage: TypeAlias = Callable[..., Any]

# Error handler: receives (request, error?) and returns a response value
ErrorHandler: TypeAlias = Callable[..., Any]
