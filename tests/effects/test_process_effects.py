"""Tests for environment, argument and exit effects."""

from __future__ import annotations

import pytest

from tyeff.dsl import eff
from tyeff.errors import ProgramExit
from tyeff.handlers import exit_code_of


@pytest.mark.asyncio
async def test_get_env_unset_is_empty_string(interpreter, ctx) -> None:
    result = await interpreter.run_async(eff.GetEnv("UNSET_VAR"), ctx)

    assert result.value == ""


@pytest.mark.asyncio
async def test_get_env_reads_context_environment(interpreter, make_context) -> None:
    ctx = make_context(environ={"GREETING": "hello"})

    result = await interpreter.run_async(eff.GetEnv("GREETING"), ctx)

    assert result.value == "hello"


@pytest.mark.asyncio
async def test_get_args(interpreter, make_context) -> None:
    ctx = make_context(argv=["one", "two"])

    result = await interpreter.run_async(eff.GetArgs(), ctx)

    assert result.value == ["one", "two"]


@pytest.mark.asyncio
async def test_get_args_empty(interpreter, ctx) -> None:
    result = await interpreter.run_async(eff.GetArgs(), ctx)

    assert result.value == []


@pytest.mark.asyncio
async def test_exit_stops_the_program(interpreter, ctx, streams) -> None:
    program = eff.Do([eff.Print("before"), eff.Exit(7), eff.Print("after")])

    result = await interpreter.run_async(program, ctx)

    assert result.exit_code == 7
    assert result.status == 7
    assert result.error is None
    assert streams.stderr.getvalue().splitlines() == ['"before"']


@pytest.mark.asyncio
async def test_exit_without_code_is_zero(interpreter, ctx) -> None:
    result = await interpreter.run_async(eff.Exit(), ctx)

    assert result.exit_code == 0
    assert result.status == 0


@pytest.mark.asyncio
async def test_exit_raises_program_exit_from_evaluate(interpreter, ctx) -> None:
    with pytest.raises(ProgramExit) as excinfo:
        await interpreter.evaluate(eff.Exit(4), ctx)

    assert excinfo.value.exit_code == 4
    assert isinstance(excinfo.value, SystemExit)


@pytest.mark.parametrize(
    "value, expected",
    [
        (None, 0),
        (3, 3),
        (2.0, 2),
        ("5", 5),
        (True, 1),
        ("not a number", 1),
    ],
)
def test_exit_code_of(value, expected) -> None:
    assert exit_code_of(value) == expected
