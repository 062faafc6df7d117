"""Chalk AST — parse-time node definitions.

Nodes are frozen and compare by identity, so the checker can key its
annotation map on them. Every node keeps the token it was parsed from.
"""

from __future__ import annotations

from dataclasses import dataclass

from .tokens import Token


# ============================================================
# TYPES
# ============================================================

PRIMITIVES: tuple[str, ...] = ("int", "float", "char", "bool", "string")


@dataclass(frozen=True, eq=False)
class TypeRef:
    """int, float, char, bool, string."""

    tok: Token
    name: str


# ============================================================
# EXPRESSIONS
# ============================================================


@dataclass(frozen=True, eq=False)
class Literal:
    """Literal value; kind is one of PRIMITIVES."""

    tok: Token
    kind: str
    value: int | float | str | bool


@dataclass(frozen=True, eq=False)
class Ident:
    tok: Token
    name: str


@dataclass(frozen=True, eq=False)
class Call:
    """name(args...)."""

    tok: Token
    name: str
    args: list[Expr]


@dataclass(frozen=True, eq=False)
class Unary:
    """-x, !x. tok is the operator."""

    tok: Token
    op: str
    operand: Expr


@dataclass(frozen=True, eq=False)
class Binary:
    """left op right. tok is the operator."""

    tok: Token
    op: str
    left: Expr
    right: Expr


Expr = Literal | Ident | Call | Unary | Binary


# ============================================================
# STATEMENTS
# ============================================================


@dataclass(frozen=True, eq=False)
class Block:
    """{ stmts }. tok is the opening brace."""

    tok: Token
    stmts: list[Stmt]


@dataclass(frozen=True, eq=False)
class VarDecl:
    """var name: typ (= value)?"""

    tok: Token
    name: str
    typ: TypeRef
    value: Expr | None


@dataclass(frozen=True, eq=False)
class Assign:
    """name = value. tok is the target identifier."""

    tok: Token
    name: str
    value: Expr


@dataclass(frozen=True, eq=False)
class Print:
    tok: Token
    value: Expr


@dataclass(frozen=True, eq=False)
class Input:
    """input(name). The target's type is recorded by the checker."""

    tok: Token
    name: str


@dataclass(frozen=True, eq=False)
class Return:
    tok: Token
    value: Expr


@dataclass(frozen=True, eq=False)
class If:
    tok: Token
    cond: Expr
    then_block: Block
    else_block: Block | None


@dataclass(frozen=True, eq=False)
class While:
    tok: Token
    cond: Expr
    body: Block


@dataclass(frozen=True, eq=False)
class ExprStmt:
    """Bare call used as a statement."""

    tok: Token
    expr: Call


@dataclass(frozen=True, eq=False)
class For:
    """for (init; cond; step) body. Every header clause is optional."""

    tok: Token
    init: VarDecl | Assign | ExprStmt | None
    cond: Expr | None
    step: Assign | ExprStmt | None
    body: Block


Stmt = VarDecl | Assign | Print | Input | Return | If | While | For | ExprStmt


# ============================================================
# DECLARATIONS
# ============================================================


@dataclass(frozen=True, eq=False)
class Param:
    tok: Token
    name: str
    typ: TypeRef


@dataclass(frozen=True, eq=False)
class Function:
    """func name(params): ret body."""

    tok: Token
    name: str
    params: list[Param]
    ret: TypeRef
    body: Block


@dataclass(frozen=True, eq=False)
class Program:
    """Functions in source order. tok is the first token, EOF for an empty program."""

    tok: Token
    functions: list[Function]
