"""
Effect handlers for the built-in tyeff opcodes.

Each handler class covers one category of effects. Every ``handle_*`` method
receives the positional argument descriptors of the node and the evaluation
context, and returns the list of result keys it produced (empty or one key).
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING, Any

from tyeff.descriptors import NULL, Descriptor, Literal, TupleDesc, from_python
from tyeff.errors import EffectFault, ProgramExit, TyeffError
from tyeff.expr import evaluate_source

if TYPE_CHECKING:
    from tyeff.context import EvaluationContext
    from tyeff.interpreter import EffectInterpreter

logger = logging.getLogger(__name__)


def _arg(args: Sequence[Descriptor], index: int) -> Descriptor | None:
    return args[index] if index < len(args) else None


def describe_value(value: Any) -> Descriptor:
    """Describe a handler's Python return value, the way JSON would encode it."""
    try:
        return from_python(value)
    except TypeError:
        if isinstance(value, (set, frozenset)):
            return from_python(sorted(value, key=repr))
        return Literal(str(value))


def exit_code_of(value: Any) -> int:
    if value is None:
        return 0
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value)
    return 1


class ControlEffectHandler:
    """Handles sequencing and fault effects: Pure, Bind, Try, Throw, Seq, Do."""

    def __init__(self, interpreter: EffectInterpreter) -> None:
        self._interpreter = interpreter

    async def handle_pure(self, args: Sequence[Descriptor], ctx: EvaluationContext) -> list[str]:
        value = _arg(args, 0)
        return [ctx.results.create(NULL if value is None else value)]

    async def handle_bind(self, args: Sequence[Descriptor], ctx: EvaluationContext) -> list[str]:
        input_node, continuation = _arg(args, 0), _arg(args, 1)
        keys = await self._interpreter.evaluate(input_node, ctx) if input_node is not None else []
        if continuation is None:
            return []
        input_desc = ctx.results.project(keys[0]) if keys else NULL
        return await self._interpreter.continue_with(continuation, input_desc, ctx)

    async def handle_try(self, args: Sequence[Descriptor], ctx: EvaluationContext) -> list[str]:
        body, catch = _arg(args, 0), _arg(args, 1)
        try:
            if body is None:
                raise TyeffError("Try has no body")
            return await self._interpreter.evaluate(body, ctx)
        except Exception as exc:
            message = str(exc)
            logger.debug("Try caught %s: %s", type(exc).__name__, message)
            if catch is None:
                return []
            return await self._interpreter.continue_with(catch, Literal(message), ctx)

    async def handle_throw(self, args: Sequence[Descriptor], ctx: EvaluationContext) -> list[str]:
        value = _arg(args, 0)
        if value is None:
            raise EffectFault(None)
        raise EffectFault(ctx.analyzer.literal_value(value), ctx.analyzer.stringify(value))

    async def handle_seq(self, args: Sequence[Descriptor], ctx: EvaluationContext) -> list[str]:
        keys = await self._interpreter.evaluate_all(self._elements(args, ctx), ctx)
        composite = TupleDesc(tuple(ctx.results.project(key) for key in keys))
        return [ctx.results.create(composite)]

    async def handle_do(self, args: Sequence[Descriptor], ctx: EvaluationContext) -> list[str]:
        keys = await self._interpreter.evaluate_all(self._elements(args, ctx), ctx)
        if not keys:
            return []
        return [ctx.results.create(ctx.results.project(keys[-1]))]

    def _elements(self, args: Sequence[Descriptor], ctx: EvaluationContext) -> Sequence[Descriptor]:
        nodes = _arg(args, 0)
        if nodes is None:
            return ()
        elements = ctx.analyzer.elements_of(nodes)
        return (nodes,) if elements is None else elements


class RefEffectHandler:
    """Handles mutable reference cells."""

    async def handle_create(self, args: Sequence[Descriptor], ctx: EvaluationContext) -> list[str]:
        value = _arg(args, 0)
        ref_key = ctx.refs.create(NULL if value is None else value)
        return [ctx.results.create(Literal(ref_key))]

    async def handle_get(self, args: Sequence[Descriptor], ctx: EvaluationContext) -> list[str]:
        value = ctx.refs.get(self._key(args, ctx))
        return [ctx.results.create(value)]

    async def handle_set(self, args: Sequence[Descriptor], ctx: EvaluationContext) -> list[str]:
        value = _arg(args, 1)
        ctx.refs.set(self._key(args, ctx), NULL if value is None else value)
        return []

    async def handle_delete(self, args: Sequence[Descriptor], ctx: EvaluationContext) -> list[str]:
        ctx.refs.delete(self._key(args, ctx))
        return []

    def _key(self, args: Sequence[Descriptor], ctx: EvaluationContext) -> Any:
        key_desc = _arg(args, 0)
        return ctx.analyzer.literal_value(key_desc) if key_desc is not None else None


class IOEffectHandler:
    """Handles console and filesystem effects."""

    async def handle_print(self, args: Sequence[Descriptor], ctx: EvaluationContext) -> list[str]:
        ctx.write_diagnostic(*(ctx.analyzer.stringify(arg) for arg in args))
        return []

    async def handle_put_string(
        self, args: Sequence[Descriptor], ctx: EvaluationContext
    ) -> list[str]:
        value = _arg(args, 0)
        if value is not None:
            ctx.write_output(self._text(value, ctx))
        return []

    async def handle_debug(self, args: Sequence[Descriptor], ctx: EvaluationContext) -> list[str]:
        label_desc, value_desc = _arg(args, 0), _arg(args, 1)
        label = self._text(label_desc, ctx) if label_desc is not None else ""
        rendered = ctx.analyzer.stringify(value_desc) if value_desc is not None else "undefined"
        ctx.write_diagnostic(label, rendered)
        return [ctx.results.create(Literal(rendered))]

    async def handle_read_file(
        self, args: Sequence[Descriptor], ctx: EvaluationContext
    ) -> list[str]:
        path = self._path(args, ctx, "ReadFile")
        contents = await asyncio.to_thread(path.read_text, encoding="utf-8")
        return [ctx.results.create(Literal(contents))]

    async def handle_write_file(
        self, args: Sequence[Descriptor], ctx: EvaluationContext
    ) -> list[str]:
        path = self._path(args, ctx, "WriteFile")
        contents_desc = _arg(args, 1)
        contents = self._text(contents_desc, ctx) if contents_desc is not None else ""
        await asyncio.to_thread(path.write_text, contents, encoding="utf-8")
        return []

    async def handle_read_line(
        self, args: Sequence[Descriptor], ctx: EvaluationContext
    ) -> list[str]:
        line = await ctx.input.readline(ctx.config.readline_timeout)
        return [ctx.results.create(Literal(line))]

    def _text(self, desc: Descriptor, ctx: EvaluationContext) -> str:
        value = ctx.analyzer.literal_value(desc)
        return value if isinstance(value, str) else ctx.analyzer.stringify(desc)

    def _path(self, args: Sequence[Descriptor], ctx: EvaluationContext, opcode: str) -> Path:
        desc = _arg(args, 0)
        value = ctx.analyzer.literal_value(desc) if desc is not None else None
        if not isinstance(value, str):
            rendered = ctx.analyzer.stringify(desc) if desc is not None else "nothing"
            raise TyeffError(f"{opcode} expects a literal path, got {rendered}")
        return Path(value)


class ProcessEffectHandler:
    """Handles environment, arguments and process exit."""

    async def handle_get_env(self, args: Sequence[Descriptor], ctx: EvaluationContext) -> list[str]:
        name_desc = _arg(args, 0)
        name = ctx.analyzer.literal_value(name_desc) if name_desc is not None else None
        value = ctx.environ.get(str(name), "") if name is not None else ""
        return [ctx.results.create(Literal(value))]

    async def handle_get_args(
        self, args: Sequence[Descriptor], ctx: EvaluationContext
    ) -> list[str]:
        return [ctx.results.create(TupleDesc(tuple(Literal(str(a)) for a in ctx.argv)))]

    async def handle_exit(self, args: Sequence[Descriptor], ctx: EvaluationContext) -> list[str]:
        code_desc = _arg(args, 0)
        code = ctx.analyzer.literal_value(code_desc) if code_desc is not None else None
        raise ProgramExit(exit_code_of(code))


class DynamicEffectHandler:
    """Handles effects that extend the program at runtime."""

    async def handle_define(self, args: Sequence[Descriptor], ctx: EvaluationContext) -> list[str]:
        name_desc, source_desc = _arg(args, 0), _arg(args, 1)
        name = ctx.analyzer.literal_value(name_desc) if name_desc is not None else None
        source = ctx.analyzer.literal_value(source_desc) if source_desc is not None else None
        ctx.registry.define(name, source)
        return []

    async def handle_expr(self, args: Sequence[Descriptor], ctx: EvaluationContext) -> list[str]:
        source_desc = _arg(args, 0)
        source = ctx.analyzer.literal_value(source_desc) if source_desc is not None else None
        value = evaluate_source(source)
        return [ctx.results.create(describe_value(value))]


__all__ = [
    "ControlEffectHandler",
    "DynamicEffectHandler",
    "IOEffectHandler",
    "ProcessEffectHandler",
    "RefEffectHandler",
    "describe_value",
    "exit_code_of",
]
