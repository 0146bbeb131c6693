"""
Effect interpreter for tyeff programs.

This module contains the EffectInterpreter that walks a descriptor tree,
dispatches on each node's tag and threads results into continuations.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, TypeAlias

from tyeff.context import EvaluationContext
from tyeff.descriptors import Descriptor
from tyeff.errors import EvaluationDepthError, ProgramExit, UnhandledEffectError
from tyeff.handlers import (
    ControlEffectHandler,
    DynamicEffectHandler,
    IOEffectHandler,
    ProcessEffectHandler,
    RefEffectHandler,
    describe_value,
)

logger = logging.getLogger(__name__)

OpcodeHandler: TypeAlias = Callable[
    [Sequence[Descriptor], EvaluationContext], Awaitable[list[str]]
]


@dataclass
class RunResult:
    """Outcome of one evaluation of a root node."""

    context: EvaluationContext
    keys: list[str] = field(default_factory=list)
    error: Exception | None = None
    exit_code: int | None = None

    @property
    def is_ok(self) -> bool:
        return self.error is None

    @property
    def is_err(self) -> bool:
        return self.error is not None

    @property
    def output(self) -> Descriptor | None:
        """Output descriptor of the root's result, if it produced one."""
        if not self.keys:
            return None
        return self.context.results.get(self.keys[0])

    @property
    def value(self) -> Any:
        """Decoded output of the root's result (None when absent or not literal)."""
        output = self.output
        if output is None:
            return None
        return self.context.analyzer.literal_value(output)

    @property
    def status(self) -> int:
        if self.exit_code is not None:
            return self.exit_code
        return 1 if self.error is not None else 0


class EffectInterpreter:
    """
    Recursive dispatcher over effect nodes.

    Built-in opcodes are looked up in a tag table first, then the context's
    custom effect registry. Anything else is logged and produces no result,
    or raises ``UnhandledEffectError`` when the context is configured strict.

    Handler categories can be replaced by passing ``custom_handlers``; keys are
    ``'control'``, ``'ref'``, ``'io'``, ``'process'`` and ``'dynamic'``.
    """

    def __init__(self, custom_handlers: dict[str, Any] | None = None) -> None:
        handlers: dict[str, Any] = {
            "control": ControlEffectHandler(self),
            "ref": RefEffectHandler(),
            "io": IOEffectHandler(),
            "process": ProcessEffectHandler(),
            "dynamic": DynamicEffectHandler(),
        }
        if custom_handlers:
            handlers.update(custom_handlers)

        self.control_handler = handlers["control"]
        self.ref_handler = handlers["ref"]
        self.io_handler = handlers["io"]
        self.process_handler = handlers["process"]
        self.dynamic_handler = handlers["dynamic"]

        self._opcodes: dict[str, OpcodeHandler] = {
            "Pure": self.control_handler.handle_pure,
            "Bind": self.control_handler.handle_bind,
            "Try": self.control_handler.handle_try,
            "Throw": self.control_handler.handle_throw,
            "Seq": self.control_handler.handle_seq,
            "Do": self.control_handler.handle_do,
            "CreateRef": self.ref_handler.handle_create,
            "GetRef": self.ref_handler.handle_get,
            "SetRef": self.ref_handler.handle_set,
            "DeleteRef": self.ref_handler.handle_delete,
            "Print": self.io_handler.handle_print,
            "PutString": self.io_handler.handle_put_string,
            "Debug": self.io_handler.handle_debug,
            "ReadFile": self.io_handler.handle_read_file,
            "WriteFile": self.io_handler.handle_write_file,
            "ReadLine": self.io_handler.handle_read_line,
            "GetEnv": self.process_handler.handle_get_env,
            "GetArgs": self.process_handler.handle_get_args,
            "Exit": self.process_handler.handle_exit,
            "DefineEffect": self.dynamic_handler.handle_define,
            "JsExpr": self.dynamic_handler.handle_expr,
            "Expr": self.dynamic_handler.handle_expr,
        }

    @property
    def opcodes(self) -> list[str]:
        return sorted(self._opcodes)

    def run(self, node: Descriptor, context: EvaluationContext | None = None) -> RunResult:
        """
        Evaluate ``node`` to completion (synchronous interface).

        Uses asyncio.run() internally; from async code call run_async() instead.
        """
        return asyncio.run(self.run_async(node, context))

    async def run_async(
        self, node: Descriptor, context: EvaluationContext | None = None
    ) -> RunResult:
        """
        Evaluate ``node`` and capture the outcome instead of raising.

        ``ProgramExit`` becomes ``exit_code``; any other exception becomes
        ``error``. The context is not closed here.
        """
        ctx = context or EvaluationContext()
        if ctx.entry_point is None:
            ctx.entry_point = node
        try:
            keys = await self.evaluate(node, ctx)
        except ProgramExit as exit_:
            logger.debug("Program exited with code %s", exit_.exit_code)
            return RunResult(ctx, exit_code=exit_.exit_code)
        except Exception as exc:
            logger.debug("Uncaught fault", exc_info=exc)
            return RunResult(ctx, error=exc)
        return RunResult(ctx, keys=keys)

    async def evaluate(self, node: Descriptor, ctx: EvaluationContext) -> list[str]:
        """Evaluate one node, returning at most one result key."""
        if ctx.depth >= ctx.config.max_depth:
            raise EvaluationDepthError(
                f"Effect nesting exceeded max_depth={ctx.config.max_depth}"
            )

        tag = ctx.analyzer.tag_of(node)
        args = ctx.analyzer.arguments_of(node)
        logger.debug("effect: %s (%d args)", tag, len(args))

        ctx.depth += 1
        try:
            handler = self._opcodes.get(tag) if tag is not None else None
            if handler is not None:
                return await handler(args, ctx)
            if ctx.registry.has(tag):
                return await self._run_custom(tag, args, ctx)
            return self._unhandled(node, tag, ctx)
        finally:
            ctx.depth -= 1

    async def evaluate_all(
        self, nodes: Sequence[Descriptor], ctx: EvaluationContext
    ) -> list[str]:
        """Evaluate ``nodes`` strictly in order, collecting every produced key."""
        keys: list[str] = []
        for node in nodes:
            keys.extend(await self.evaluate(node, ctx))
        return keys

    async def continue_with(
        self, continuation: Descriptor, input_desc: Descriptor, ctx: EvaluationContext
    ) -> list[str]:
        """Specialize ``continuation`` with ``input`` and evaluate its ``return``."""
        resolved = ctx.analyzer.specialize(continuation, {"input": input_desc})
        ctx.results.create(resolved)
        next_node = ctx.analyzer.project_field(resolved, "return", ctx.entry_point)
        if next_node is None:
            logger.debug("Continuation has no return: %s", ctx.analyzer.stringify(resolved))
            return []
        return await self.evaluate(next_node, ctx)

    async def _run_custom(
        self, tag: str, args: Sequence[Descriptor], ctx: EvaluationContext
    ) -> list[str]:
        arguments = [self._decode(arg, ctx) for arg in args]
        output = await ctx.registry.invoke(tag, arguments, ctx)
        if output is None:
            return []
        return [ctx.results.create(describe_value(output))]

    def _decode(self, desc: Descriptor, ctx: EvaluationContext) -> Any:
        value = ctx.analyzer.literal_value(desc)
        if value is not None:
            return value
        rendered = ctx.analyzer.stringify(desc)
        return None if rendered == "null" else rendered

    def _unhandled(self, node: Descriptor, tag: str | None, ctx: EvaluationContext) -> list[str]:
        rendered = ctx.analyzer.stringify(node)
        if ctx.config.strict:
            raise UnhandledEffectError(tag, rendered)
        logger.warning("%s effect is not handled: %s", tag, rendered)
        return []


__all__ = ["EffectInterpreter", "RunResult"]
