"""
Custom effect registry.

``DefineEffect`` adds vocabulary at runtime: the handler body is compiled with
the restricted expression language and stored under a name. Python callables
may be registered directly when embedding the interpreter. Entries are never
removed; defining a name again replaces its handler.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import TYPE_CHECKING, Any, TypeAlias

from tyeff.errors import ExpressionError
from tyeff.expr import compile_expression

if TYPE_CHECKING:
    from tyeff.context import EvaluationContext

logger = logging.getLogger(__name__)

CustomHandler: TypeAlias = Callable[
    [Sequence[Any], "EvaluationContext"], "Awaitable[Any] | Any"
]


class CustomEffectRegistry:
    """Name to handler table populated while a program runs."""

    def __init__(self) -> None:
        self._handlers: dict[str, CustomHandler] = {}

    def define(self, name: str, source: str) -> None:
        """Compile ``source`` and register it under ``name``."""
        if not isinstance(name, str) or not name:
            raise ExpressionError(f"Effect name must be a non-empty string, got {name!r}")
        self.register(name, compile_expression(source))
        logger.debug("Defined custom effect %s: %s", name, source)

    def register(self, name: str, handler: CustomHandler) -> None:
        if not callable(handler):
            raise TypeError(f"Handler for {name!r} must be callable")
        if name in self._handlers:
            logger.info("Redefining custom effect %s", name)
        self._handlers[name] = handler

    def has(self, name: str | None) -> bool:
        return name is not None and name in self._handlers

    async def invoke(
        self, name: str, arguments: Sequence[Any], context: EvaluationContext | None = None
    ) -> Any:
        """Run the handler for ``name``; awaits the result when it is awaitable."""
        handler = self._handlers[name]
        output = handler(list(arguments), context)
        if inspect.isawaitable(output):
            output = await output
        return output

    def __contains__(self, name: object) -> bool:
        return name in self._handlers

    def __len__(self) -> int:
        return len(self._handlers)


__all__ = ["CustomEffectRegistry", "CustomHandler"]
