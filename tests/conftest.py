"""
Shared fixtures for tyeff tests.

Contexts are built on in-memory streams so tests can assert on what the
program printed, and on an empty environment so ``GetEnv`` is deterministic.
"""

from __future__ import annotations

import io
from collections.abc import Callable, Mapping, Sequence
from pathlib import Path
from types import SimpleNamespace
from typing import Any

import pytest

from tyeff.analysis import DescriptorAnalyzer
from tyeff.config import EvaluatorConfig
from tyeff.context import EvaluationContext, LineReader
from tyeff.interpreter import EffectInterpreter

ASSETS = Path(__file__).resolve().parent / "assets"


@pytest.fixture
def assets() -> Path:
    return ASSETS


@pytest.fixture
def streams() -> SimpleNamespace:
    return SimpleNamespace(stdout=io.StringIO(), stderr=io.StringIO())


@pytest.fixture
def make_context(streams: SimpleNamespace) -> Callable[..., EvaluationContext]:
    def factory(
        *,
        stdin: str = "",
        argv: Sequence[str] = (),
        environ: Mapping[str, str] | None = None,
        config: EvaluatorConfig | None = None,
        definitions: Mapping[str, Any] | None = None,
    ) -> EvaluationContext:
        return EvaluationContext(
            analyzer=DescriptorAnalyzer(definitions),
            config=config or EvaluatorConfig(),
            argv=list(argv),
            environ=environ if environ is not None else {},
            stdout=streams.stdout,
            stderr=streams.stderr,
            input=LineReader(io.StringIO(stdin)),
        )

    return factory


@pytest.fixture
def ctx(make_context: Callable[..., EvaluationContext]) -> EvaluationContext:
    return make_context()


@pytest.fixture
def interpreter() -> EffectInterpreter:
    return EffectInterpreter()
