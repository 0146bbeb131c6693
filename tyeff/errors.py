"""Exception types raised while loading and evaluating tyeff programs."""

from __future__ import annotations

import json
from typing import Any


class TyeffError(Exception):
    """Base class for tyeff faults."""


class ArtifactError(TyeffError):
    """Raised when a source artifact cannot be read or decoded."""


class MissingEntryPointError(ArtifactError):
    """Raised when the artifact does not export a ``main`` entry construct."""

    def __init__(self, path: Any, entry: str = "main") -> None:
        self.path = path
        self.entry = entry
        super().__init__(f'No "{entry}" entrypoint defined in source file: {path}')


class SpecializationError(TyeffError):
    """Raised when the analyzer cannot resolve a descriptor."""


class RefDeletedError(TyeffError, KeyError):
    """Raised when reading a reference cell that was deleted or never existed."""

    def __init__(self, key: Any) -> None:
        self.key = key
        super().__init__("Ref has been deleted")

    def __str__(self) -> str:
        return "Ref has been deleted"


class EffectFault(TyeffError):
    """Fault raised by the ``Throw`` effect.

    Attributes:
        payload: Decoded literal value thrown by the program (may be None).
        text: Stringified descriptor, used when the payload is not a string.
    """

    def __init__(self, payload: Any = None, text: str | None = None) -> None:
        self.payload = payload
        self.text = text
        super().__init__(self._message())

    def _message(self) -> str:
        if isinstance(self.payload, str):
            return self.payload
        if self.payload is None and self.text is not None:
            return self.text
        try:
            return json.dumps(self.payload)
        except (TypeError, ValueError):
            return repr(self.payload)


class EndOfInputError(TyeffError, EOFError):
    """Raised by ``ReadLine`` when the input stream is exhausted."""

    def __init__(self) -> None:
        super().__init__("End of input")


class InputTimeoutError(TyeffError, TimeoutError):
    """Raised by ``ReadLine`` when no line arrives within ``readline_timeout``."""

    def __init__(self, timeout: float | None) -> None:
        self.timeout = timeout
        super().__init__(f"No input within {timeout}s")


class UnhandledEffectError(TyeffError):
    """Raised in strict mode when no handler exists for an effect tag."""

    def __init__(self, tag: str | None, rendered: str) -> None:
        self.tag = tag
        self.rendered = rendered
        super().__init__(f"{tag} effect is not handled: {rendered}")


class EvaluationDepthError(TyeffError, RecursionError):
    """Raised when nested evaluation exceeds the configured depth."""


class ExpressionError(TyeffError):
    """Raised when a restricted expression fails to compile or evaluate."""


class ProgramExit(SystemExit):
    """Raised by the ``Exit`` effect.

    Derives from ``SystemExit`` so ``Try`` (which catches ``Exception``) never
    intercepts it and an embedding process terminates with ``code`` when it is
    left uncaught.
    """

    def __init__(self, code: int = 0) -> None:
        super().__init__(code)
        self.exit_code = code


__all__ = [
    "ArtifactError",
    "EffectFault",
    "EndOfInputError",
    "EvaluationDepthError",
    "ExpressionError",
    "InputTimeoutError",
    "MissingEntryPointError",
    "ProgramExit",
    "RefDeletedError",
    "SpecializationError",
    "TyeffError",
    "UnhandledEffectError",
]
