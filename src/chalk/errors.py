"""Chalk compile errors — one diagnostic per failed compilation."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .tokens import Token


class CompileError(Exception):
    """Error raised by a compiler stage, positioned at the offending token."""

    phase: str = "compile"

    def __init__(self, msg: str, token: Token | None = None):
        self.msg: str = msg
        self.token: Token | None = token
        self.line: int = token.line if token is not None else 0
        self.col: int = token.col if token is not None else 0
        super().__init__(self.render())

    def render(self) -> str:
        text = self.phase + " error: " + self.msg
        if self.token is not None:
            text += " at line " + str(self.line) + " col " + str(self.col)
            text += " (" + self.token.kind + " " + repr(self.token.lexeme) + ")"
        return text


class ParseError(CompileError):
    """Grammar violation; the token is always known."""

    phase = "parse"

    def __init__(self, msg: str, token: Token):
        super().__init__(msg, token)


class SemanticError(CompileError):
    """Scope or type rule violation."""

    phase = "semantic"
