"""
Restricted expression language for custom effect handlers and ``JsExpr``.

Handler sources look like ``"(args, ctx) => args[0] + 1"``. The body is parsed
with :mod:`ast` in ``eval`` mode and interpreted by walking a whitelist of
node types; nothing is ever passed to ``eval`` or ``exec``. A few JavaScript
spellings (``===``, ``!==``, ``&&``, ``||``, ``!``, ``true``, ``false``,
``null``, ``undefined``, ``.length``) are accepted so handler bodies written in
that style keep working.
"""

from __future__ import annotations

import ast
import operator
import re
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from tyeff.errors import ExpressionError

DEFAULT_PARAMS = ("args", "ctx")
MAX_STEPS = 100_000
MAX_RANGE = 10_000
MAX_SEQUENCE = 1_000_000

_ARROW = re.compile(
    r"^\s*(?:\(\s*(?P<params>[A-Za-z_][\w\s,]*|)\s*\)|(?P<single>[A-Za-z_]\w*))\s*=>\s*(?P<body>.*)$",
    re.DOTALL,
)

_CONSTANTS: dict[str, Any] = {
    "true": True,
    "false": False,
    "null": None,
    "undefined": None,
    "True": True,
    "False": False,
    "None": None,
}


def _bounded_range(*args: int) -> list[int]:
    values = range(*args)
    if len(values) > MAX_RANGE:
        raise ExpressionError(f"range() limited to {MAX_RANGE} items")
    return list(values)


SAFE_BUILTINS: dict[str, Callable[..., Any]] = {
    "abs": abs,
    "all": all,
    "any": any,
    "bool": bool,
    "dict": dict,
    "enumerate": lambda iterable, start=0: list(enumerate(iterable, start)),
    "float": float,
    "int": int,
    "len": len,
    "list": list,
    "max": max,
    "min": min,
    "range": _bounded_range,
    "reversed": lambda seq: list(reversed(seq)),
    "round": round,
    "sorted": sorted,
    "str": str,
    "sum": sum,
    "tuple": tuple,
    "zip": lambda *seqs: list(zip(*seqs)),
}

SAFE_METHODS: dict[type, frozenset[str]] = {
    str: frozenset(
        {
            "capitalize",
            "count",
            "endswith",
            "find",
            "isdigit",
            "join",
            "lower",
            "lstrip",
            "replace",
            "rstrip",
            "split",
            "splitlines",
            "startswith",
            "strip",
            "title",
            "upper",
            "zfill",
        }
    ),
    list: frozenset({"count", "index"}),
    tuple: frozenset({"count", "index"}),
    dict: frozenset({"get", "items", "keys", "values"}),
}

_BINARY_OPS: dict[type, Callable[[Any, Any], Any]] = {
    ast.Sub: operator.sub,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
    ast.BitAnd: operator.and_,
    ast.BitOr: operator.or_,
    ast.BitXor: operator.xor,
}

_COMPARE_OPS: dict[type, Callable[[Any, Any], bool]] = {
    ast.Eq: operator.eq,
    ast.NotEq: operator.ne,
    ast.Lt: operator.lt,
    ast.LtE: operator.le,
    ast.Gt: operator.gt,
    ast.GtE: operator.ge,
    ast.In: lambda a, b: a in b,
    ast.NotIn: lambda a, b: a not in b,
    ast.Is: operator.is_,
    ast.IsNot: operator.is_not,
}


def translate_js_operators(source: str) -> str:
    """Rewrite JavaScript operator spellings outside string literals."""
    out: list[str] = []
    i = 0
    quote: str | None = None
    while i < len(source):
        ch = source[i]
        if quote:
            out.append(ch)
            if ch == "\\" and i + 1 < len(source):
                out.append(source[i + 1])
                i += 2
                continue
            if ch == quote:
                quote = None
            i += 1
            continue
        if ch in "\"'":
            quote = ch
            out.append(ch)
            i += 1
            continue
        three = source[i : i + 3]
        two = source[i : i + 2]
        if three in ("===", "!=="):
            out.append(three[:2])
            i += 3
        elif two == "&&":
            out.append(" and ")
            i += 2
        elif two == "||":
            out.append(" or ")
            i += 2
        elif ch == "!" and source[i + 1 : i + 2] != "=":
            out.append(" not ")
            i += 1
        else:
            out.append(ch)
            i += 1
    return "".join(out)


def split_arrow(source: str) -> tuple[tuple[str, ...], str]:
    match = _ARROW.match(source)
    if match is None:
        return DEFAULT_PARAMS, source.strip()
    if match.group("single"):
        params: tuple[str, ...] = (match.group("single"),)
    else:
        raw = match.group("params") or ""
        params = tuple(p.strip() for p in raw.split(",") if p.strip())
    body = match.group("body").strip()
    if body.startswith("{"):
        # JS block bodies have no expression form.
        inner = body[1:-1].strip() if body.endswith("}") else body
        if inner.startswith("return "):
            body = inner[len("return ") :].rstrip("; \n")
    return params, body


@dataclass(frozen=True)
class CompiledExpression:
    """A parsed handler, callable with positional arguments for its params."""

    source: str
    params: tuple[str, ...]
    tree: ast.Expression = field(repr=False, compare=False)

    def __call__(self, *args: Any) -> Any:
        bindings = {name: args[i] if i < len(args) else None for i, name in enumerate(self.params)}
        return evaluate_tree(self.tree, bindings)

    def evaluate(self, bindings: Mapping[str, Any] | None = None) -> Any:
        return evaluate_tree(self.tree, dict(bindings or {}))


def compile_expression(source: str) -> CompiledExpression:
    """Compile an arrow-style handler or a bare expression."""
    if not isinstance(source, str):
        raise ExpressionError(f"Expression source must be a string, got {type(source).__name__}")
    params, body = split_arrow(source)
    if not body:
        raise ExpressionError(f"Empty expression body: {source!r}")
    try:
        tree = ast.parse(translate_js_operators(body).strip(), mode="eval")
    except SyntaxError as exc:
        raise ExpressionError(f"Invalid expression {body!r}: {exc.msg}") from exc
    _check_tree(tree)
    return CompiledExpression(source=source, params=params, tree=tree)


_ALLOWED_NODES: tuple[type, ...] = (
    ast.Expression,
    ast.Constant,
    ast.Name,
    ast.Load,
    ast.Store,
    ast.BinOp,
    ast.UnaryOp,
    ast.BoolOp,
    ast.Compare,
    ast.IfExp,
    ast.Subscript,
    ast.Slice,
    ast.Attribute,
    ast.Call,
    ast.keyword,
    ast.List,
    ast.Tuple,
    ast.Set,
    ast.Dict,
    ast.JoinedStr,
    ast.FormattedValue,
    ast.ListComp,
    ast.GeneratorExp,
    ast.comprehension,
    ast.operator,
    ast.unaryop,
    ast.boolop,
    ast.cmpop,
    ast.expr_context,
)


def _check_tree(tree: ast.AST) -> None:
    for node in ast.walk(tree):
        if not isinstance(node, _ALLOWED_NODES):
            raise ExpressionError(f"Unsupported syntax: {type(node).__name__}")
        if isinstance(node, ast.Attribute) and node.attr.startswith("_"):
            raise ExpressionError(f"Access to {node.attr!r} is not allowed")
        if isinstance(node, ast.Name) and node.id.startswith("__"):
            raise ExpressionError(f"Access to {node.id!r} is not allowed")


def evaluate_tree(tree: ast.Expression, bindings: dict[str, Any]) -> Any:
    return _Walker(bindings).walk(tree.body)


def evaluate_source(source: str, bindings: Mapping[str, Any] | None = None) -> Any:
    """Evaluate a bare expression, as ``JsExpr`` does."""
    return compile_expression(source).evaluate(bindings)


class _Walker:
    def __init__(self, bindings: dict[str, Any]) -> None:
        self._scopes: list[dict[str, Any]] = [bindings]
        self._steps = 0

    def walk(self, node: ast.AST) -> Any:  # noqa: PLR0911, PLR0912
        self._steps += 1
        if self._steps > MAX_STEPS:
            raise ExpressionError("Expression exceeded evaluation step limit")

        if isinstance(node, ast.Constant):
            return node.value
        if isinstance(node, ast.Name):
            return self._lookup(node.id)
        if isinstance(node, ast.BinOp):
            return self._binary(node.op, self.walk(node.left), self.walk(node.right))
        if isinstance(node, ast.UnaryOp):
            value = self.walk(node.operand)
            if isinstance(node.op, ast.Not):
                return not value
            if isinstance(node.op, ast.USub):
                return -value
            if isinstance(node.op, ast.UAdd):
                return +value
            return ~value
        if isinstance(node, ast.BoolOp):
            is_and = isinstance(node.op, ast.And)
            result: Any = None
            for operand in node.values:
                result = self.walk(operand)
                if bool(result) != is_and:
                    return result
            return result
        if isinstance(node, ast.Compare):
            left = self.walk(node.left)
            for op, comparator in zip(node.ops, node.comparators):
                right = self.walk(comparator)
                if not _COMPARE_OPS[type(op)](left, right):
                    return False
                left = right
            return True
        if isinstance(node, ast.IfExp):
            return self.walk(node.body) if self.walk(node.test) else self.walk(node.orelse)
        if isinstance(node, ast.Subscript):
            return self._subscript(node)
        if isinstance(node, ast.Attribute):
            target = self.walk(node.value)
            if node.attr == "length" and isinstance(target, (str, list, tuple, dict)):
                return len(target)
            raise ExpressionError(f"Attribute access {node.attr!r} is not allowed")
        if isinstance(node, ast.Call):
            return self._call(node)
        if isinstance(node, ast.List):
            return [self.walk(item) for item in node.elts]
        if isinstance(node, ast.Tuple):
            return tuple(self.walk(item) for item in node.elts)
        if isinstance(node, ast.Set):
            return {self.walk(item) for item in node.elts}
        if isinstance(node, ast.Dict):
            if any(key is None for key in node.keys):
                raise ExpressionError("Dict unpacking is not supported")
            return {self.walk(k): self.walk(v) for k, v in zip(node.keys, node.values)}
        if isinstance(node, ast.JoinedStr):
            return "".join(self._format_part(part) for part in node.values)
        if isinstance(node, (ast.ListComp, ast.GeneratorExp)):
            return self._comprehension(node.elt, node.generators)
        raise ExpressionError(f"Unsupported syntax: {type(node).__name__}")

    def _lookup(self, name: str) -> Any:
        for scope in reversed(self._scopes):
            if name in scope:
                return scope[name]
        if name in _CONSTANTS:
            return _CONSTANTS[name]
        if name in SAFE_BUILTINS:
            return SAFE_BUILTINS[name]
        raise ExpressionError(f"Name {name!r} is not defined")

    def _binary(self, op: ast.operator, left: Any, right: Any) -> Any:
        try:
            if isinstance(op, ast.Add):
                if isinstance(left, str) != isinstance(right, str):
                    return _js_string(left) + _js_string(right)
                return left + right
            if isinstance(op, ast.Mult):
                for seq, count in ((left, right), (right, left)):
                    if isinstance(seq, (str, list, tuple)) and isinstance(count, int):
                        if len(seq) * count > MAX_SEQUENCE:
                            raise ExpressionError("Sequence repetition too large")
                return left * right
            if isinstance(op, ast.Pow):
                if isinstance(right, (int, float)) and abs(right) > 1000:
                    raise ExpressionError("Exponent too large")
                return left**right
            func = _BINARY_OPS.get(type(op))
            if func is None:
                raise ExpressionError(f"Unsupported operator: {type(op).__name__}")
            return func(left, right)
        except (TypeError, ArithmeticError) as exc:
            raise ExpressionError(str(exc)) from exc

    def _subscript(self, node: ast.Subscript) -> Any:
        target = self.walk(node.value)
        if isinstance(node.slice, ast.Slice):
            lower = self.walk(node.slice.lower) if node.slice.lower else None
            upper = self.walk(node.slice.upper) if node.slice.upper else None
            step = self.walk(node.slice.step) if node.slice.step else None
            try:
                return target[lower:upper:step]
            except TypeError as exc:
                raise ExpressionError(str(exc)) from exc
        key = self.walk(node.slice)
        try:
            return target[key]
        except (IndexError, KeyError):
            return None
        except TypeError as exc:
            raise ExpressionError(str(exc)) from exc

    def _call(self, node: ast.Call) -> Any:
        args = [self.walk(arg) for arg in node.args]
        kwargs = {kw.arg: self.walk(kw.value) for kw in node.keywords if kw.arg}
        if len(kwargs) != len(node.keywords):
            raise ExpressionError("Keyword unpacking is not supported")

        if isinstance(node.func, ast.Attribute):
            target = self.walk(node.func.value)
            allowed = SAFE_METHODS.get(type(target), frozenset())
            if node.func.attr not in allowed:
                raise ExpressionError(
                    f"Method {node.func.attr!r} is not allowed on {type(target).__name__}"
                )
            func = getattr(target, node.func.attr)
        elif isinstance(node.func, ast.Name) and node.func.id in SAFE_BUILTINS:
            func = SAFE_BUILTINS[node.func.id]
        else:
            raise ExpressionError(f"Call to {ast.unparse(node.func)!r} is not allowed")

        try:
            result = func(*args, **kwargs)
        except ExpressionError:
            raise
        except (TypeError, ValueError, ArithmeticError) as exc:
            raise ExpressionError(str(exc)) from exc
        if not isinstance(result, (str, bytes, list, tuple, dict, set)) and hasattr(
            result, "__iter__"
        ):
            return list(result)
        return result

    def _format_part(self, part: ast.AST) -> str:
        if isinstance(part, ast.Constant):
            return str(part.value)
        if not isinstance(part, ast.FormattedValue):
            raise ExpressionError(f"Unsupported f-string part: {type(part).__name__}")
        value = self.walk(part.value)
        if part.conversion == ord("r"):
            value = repr(value)
        elif part.conversion == ord("s"):
            value = str(value)
        spec = self.walk(part.format_spec) if part.format_spec is not None else ""
        return format(value, spec)

    def _comprehension(self, elt: ast.AST, generators: Sequence[ast.comprehension]) -> list[Any]:
        results: list[Any] = []
        scope: dict[str, Any] = {}
        self._scopes.append(scope)
        try:
            self._run_generators(elt, list(generators), scope, results)
        finally:
            self._scopes.pop()
        return results

    def _run_generators(
        self,
        elt: ast.AST,
        generators: list[ast.comprehension],
        scope: dict[str, Any],
        results: list[Any],
    ) -> None:
        if not generators:
            results.append(self.walk(elt))
            if len(results) > MAX_RANGE:
                raise ExpressionError(f"Comprehension limited to {MAX_RANGE} items")
            return
        first, rest = generators[0], generators[1:]
        if first.is_async:
            raise ExpressionError("Async comprehensions are not supported")
        iterable = self.walk(first.iter)
        if not hasattr(iterable, "__iter__"):
            raise ExpressionError(f"{type(iterable).__name__} is not iterable")
        for item in iterable:
            _bind_target(first.target, item, scope)
            if all(self.walk(cond) for cond in first.ifs):
                self._run_generators(elt, rest, scope, results)


def _bind_target(target: ast.AST, value: Any, scope: dict[str, Any]) -> None:
    if isinstance(target, ast.Name):
        scope[target.id] = value
        return
    if isinstance(target, ast.Tuple):
        values = list(value)
        if len(values) != len(target.elts):
            raise ExpressionError("Cannot unpack value in comprehension")
        for sub_target, sub_value in zip(target.elts, values):
            _bind_target(sub_target, sub_value, scope)
        return
    raise ExpressionError(f"Unsupported comprehension target: {type(target).__name__}")


def _js_string(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


__all__ = [
    "DEFAULT_PARAMS",
    "SAFE_BUILTINS",
    "CompiledExpression",
    "compile_expression",
    "evaluate_source",
    "split_arrow",
    "translate_js_operators",
]
