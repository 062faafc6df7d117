"""Chalk: a small teaching language transpiled to C#.

Each call runs the whole pipeline (lex, parse, check, generate) on fresh
objects; nothing is shared between compilations.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .ast import Program
from .check import Analysis, check
from .csharp import generate, reserved_names
from .errors import CompileError, ParseError, SemanticError
from .parse import parse
from .tokens import Token, tokenize

__all__ = [
    "Analysis",
    "CompileError",
    "CompileResult",
    "ParseError",
    "Program",
    "SemanticError",
    "Token",
    "analyze",
    "compile_source",
    "parse",
    "tokenize",
    "transpile",
]

logger = logging.getLogger(__name__)


def analyze(source: str, class_name: str = "Program") -> tuple[Program, Analysis]:
    """Parse and check `source`. Raises ParseError or SemanticError."""
    program = parse(source)
    logger.debug("parsed %d functions", len(program.functions))
    return program, check(program, reserved_names(class_name))


def transpile(source: str, namespace: str = "ChalkProgram", class_name: str = "Program") -> str:
    """Translate `source` to C#. Raises CompileError on the first problem."""
    program, analysis = analyze(source, class_name)
    return generate(program, analysis, namespace, class_name)


@dataclass(frozen=True)
class CompileResult:
    """Outcome of one compilation: C# text, or the single diagnostic."""

    output: str | None = None
    error: CompileError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def compile_source(
    source: str, namespace: str = "ChalkProgram", class_name: str = "Program"
) -> CompileResult:
    """Like `transpile`, but returns compile errors instead of raising them."""
    try:
        return CompileResult(output=transpile(source, namespace, class_name))
    except CompileError as e:
        logger.debug("compilation failed: %s", e)
        return CompileResult(error=e)
