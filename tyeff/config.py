"""
Evaluator configuration.

Settings come from keyword arguments, the CLI, or the environment:

- ``TYEFF_STRICT``: raise ``UnhandledEffectError`` for unknown tags instead of
  logging them.
- ``TYEFF_MAX_DEPTH``: maximum nesting of effect evaluation.
- ``TYEFF_READLINE_TIMEOUT``: seconds ``ReadLine`` waits before failing.
- ``TYEFF_LOG_LEVEL``: logging level used by the CLI.
- ``TYEFF_DEBUG``: shorthand for ``TYEFF_LOG_LEVEL=DEBUG``.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

_TRUTHY = ("1", "true", "yes", "on")

DEFAULT_MAX_DEPTH = 200


def _flag(environ: Mapping[str, str], name: str) -> bool:
    return environ.get(name, "").lower() in _TRUTHY


@dataclass(frozen=True)
class EvaluatorConfig:
    strict: bool = False
    max_depth: int = DEFAULT_MAX_DEPTH
    readline_timeout: float | None = None

    def __post_init__(self) -> None:
        if self.max_depth < 1:
            raise ValueError("max_depth must be >= 1")
        if self.readline_timeout is not None and self.readline_timeout <= 0:
            raise ValueError("readline_timeout must be > 0 or None")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> EvaluatorConfig:
        environ = os.environ if environ is None else environ
        max_depth = environ.get("TYEFF_MAX_DEPTH")
        timeout = environ.get("TYEFF_READLINE_TIMEOUT")
        return cls(
            strict=_flag(environ, "TYEFF_STRICT"),
            max_depth=int(max_depth) if max_depth else DEFAULT_MAX_DEPTH,
            readline_timeout=float(timeout) if timeout else None,
        )


def log_level_from_env(environ: Mapping[str, str] | None = None) -> str:
    environ = os.environ if environ is None else environ
    if _flag(environ, "TYEFF_DEBUG"):
        return "DEBUG"
    return environ.get("TYEFF_LOG_LEVEL", "WARNING").upper()


__all__ = ["DEFAULT_MAX_DEPTH", "EvaluatorConfig", "log_level_from_env"]
