"""
Driver: load an artifact, evaluate its entry construct, report the outcome.

Exit status is 0 on normal completion, the code given to ``Exit`` when the
program exits explicitly, and 1 when a fault escapes the program. A missing
entry construct is raised before any effect runs.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Any

from tyeff.analysis import DescriptorAnalyzer
from tyeff.config import EvaluatorConfig
from tyeff.context import EvaluationContext, LineReader
from tyeff.interpreter import EffectInterpreter, RunResult

logger = logging.getLogger(__name__)


@dataclass
class RunOptions:
    argv: Sequence[str] = ()
    config: EvaluatorConfig | None = None
    environ: Mapping[str, str] | None = None
    stdin: IO[str] | None = None
    stdout: IO[str] | None = None
    stderr: IO[str] | None = None
    dump_results: bool = False


def build_context(analyzer: DescriptorAnalyzer, options: RunOptions) -> EvaluationContext:
    ctx = EvaluationContext(
        analyzer=analyzer,
        config=options.config or EvaluatorConfig.from_env(),
        argv=list(options.argv),
        stdout=options.stdout,
        stderr=options.stderr,
        input=LineReader(options.stdin),
        entry_point=analyzer.entry_point,
    )
    if options.environ is not None:
        ctx.environ = options.environ
    return ctx


async def run_path_async(path: str | Path, **options: Any) -> RunResult:
    """Load ``path`` and evaluate its entry construct; the context is closed afterwards.

    Keyword arguments are the fields of ``RunOptions``.
    """
    opts = RunOptions(**options)
    analyzer = DescriptorAnalyzer()
    root = analyzer.parse_entry_point(path)
    logger.debug("Entry point: %s", analyzer.stringify(root))

    with build_context(analyzer, opts) as ctx:
        result = await EffectInterpreter().run_async(root, ctx)
        if result.error is not None:
            logger.debug("Run of %s failed: %s", path, result.error)
            ctx.write_diagnostic(f"Error: {result.error}")
        if opts.dump_results:
            ctx.write_diagnostic(analyzer.render_results())
    return result


async def run_file_async(path: str | Path, **options: Any) -> int:
    result = await run_path_async(path, **options)
    return result.status


def run_file(path: str | Path, **options: Any) -> int:
    """Run an artifact to completion and return its exit status."""
    return asyncio.run(run_file_async(path, **options))


__all__ = [
    "RunOptions",
    "build_context",
    "run_file",
    "run_file_async",
    "run_path_async",
]
