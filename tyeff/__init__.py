"""
tyeff - an interpreter for effect programs described as descriptor trees.

A program is a tree of tagged effect nodes. Sequencing nodes (``Bind``,
``Try``) carry continuations: records whose ``return`` field is specialized
with the result of the previous step before it is evaluated.

Example:
    >>> from tyeff import EffectInterpreter
    >>> from tyeff.dsl import eff, kind, op, var
    >>> Double = kind(return_=eff.Pure(op.mul(var("input"), 2)))
    >>> EffectInterpreter().run(eff.Bind(eff.Pure(5), Double)).value
    10
"""

from tyeff.analysis import Analyzer, DescriptorAnalyzer, load_artifact
from tyeff.config import EvaluatorConfig
from tyeff.context import EvaluationContext, LineReader
from tyeff.descriptors import (
    NULL,
    UNKNOWN,
    Descriptor,
    EffectNode,
    Index,
    Intersection,
    Literal,
    Op,
    Record,
    Ref,
    ResultRef,
    TupleDesc,
    Unknown,
    Var,
    from_python,
)
from tyeff.errors import (
    ArtifactError,
    EffectFault,
    EndOfInputError,
    EvaluationDepthError,
    ExpressionError,
    InputTimeoutError,
    MissingEntryPointError,
    ProgramExit,
    RefDeletedError,
    SpecializationError,
    TyeffError,
    UnhandledEffectError,
)
from tyeff.interpreter import EffectInterpreter, RunResult
from tyeff.registry import CustomEffectRegistry
from tyeff.run import run_file, run_file_async
from tyeff.storage import ReferenceStore, ResultStore

__version__ = "0.1.0"

__all__ = [
    "NULL",
    "UNKNOWN",
    "Analyzer",
    "ArtifactError",
    "CustomEffectRegistry",
    "Descriptor",
    "DescriptorAnalyzer",
    "EffectFault",
    "EffectInterpreter",
    "EffectNode",
    "EndOfInputError",
    "EvaluationContext",
    "EvaluationDepthError",
    "EvaluatorConfig",
    "ExpressionError",
    "InputTimeoutError",
    "Index",
    "Intersection",
    "LineReader",
    "Literal",
    "MissingEntryPointError",
    "Op",
    "ProgramExit",
    "Record",
    "Ref",
    "RefDeletedError",
    "ResultRef",
    "ResultStore",
    "ReferenceStore",
    "RunResult",
    "SpecializationError",
    "TupleDesc",
    "TyeffError",
    "Unknown",
    "Var",
    "from_python",
    "load_artifact",
    "run_file",
    "run_file_async",
]
