"""Chalk emitter — converts AST back into canonical Chalk source text.

Covers every node in `chalk/ast.py`; parsing the output yields an
equivalent tree.
"""

from __future__ import annotations

from .ast import (
    Assign,
    Binary,
    Block,
    Call,
    Expr,
    ExprStmt,
    For,
    Function,
    Ident,
    If,
    Input,
    Literal,
    Print,
    Program,
    Return,
    Stmt,
    Unary,
    VarDecl,
    While,
)

_ESCAPES: dict[str, str] = {
    "\\": "\\\\",
    "\n": "\\n",
    "\t": "\\t",
    "\r": "\\r",
    "\0": "\\0",
}


def _quote(value: str, quote: str) -> str:
    out: list[str] = [quote]
    for c in value:
        if c in _ESCAPES:
            out.append(_ESCAPES[c])
        elif c == quote:
            out.append("\\" + c)
        else:
            out.append(c)
    out.append(quote)
    return "".join(out)


def to_source(program: Program) -> str:
    """Render a `Program` back into Chalk source text."""
    return _Emitter().emit_program(program)


class _Emitter:
    _INDENT: str = "    "

    # Expression precedence (higher binds tighter)
    _PREC_OR: int = 1
    _PREC_AND: int = 2
    _PREC_EQUALITY: int = 3
    _PREC_COMPARE: int = 4
    _PREC_SUM: int = 5
    _PREC_PRODUCT: int = 6
    _PREC_UNARY: int = 7

    _BIN_PREC: dict[str, int] = {
        "||": _PREC_OR,
        "&&": _PREC_AND,
        "==": _PREC_EQUALITY,
        "!=": _PREC_EQUALITY,
        "<": _PREC_COMPARE,
        "<=": _PREC_COMPARE,
        ">": _PREC_COMPARE,
        ">=": _PREC_COMPARE,
        "+": _PREC_SUM,
        "-": _PREC_SUM,
        "*": _PREC_PRODUCT,
        "/": _PREC_PRODUCT,
        "%": _PREC_PRODUCT,
    }

    def __init__(self) -> None:
        self._lines: list[str] = []
        self._indent_level: int = 0

    # ── Public ──────────────────────────────────────────────

    def emit_program(self, program: Program) -> str:
        self._lines = []
        self._indent_level = 0
        for i, fn in enumerate(program.functions):
            if i > 0:
                self._lines.append("")
            self._emit_function(fn)
        if not self._lines:
            return ""
        return "\n".join(self._lines) + "\n"

    # ── Lines / Blocks ──────────────────────────────────────

    def _emit_line(self, line: str) -> None:
        self._lines.append(self._INDENT * self._indent_level + line)

    def _emit_block_body(self, block: Block) -> None:
        self._indent_level += 1
        for stmt in block.stmts:
            self._emit_stmt(stmt)
        self._indent_level -= 1

    def _emit_function(self, fn: Function) -> None:
        params = ", ".join(p.name + ": " + p.typ.name for p in fn.params)
        self._emit_line("func " + fn.name + "(" + params + "): " + fn.ret.name + " {")
        self._emit_block_body(fn.body)
        self._emit_line("}")

    # ── Stmts ───────────────────────────────────────────────

    def _emit_stmt(self, stmt: Stmt) -> None:
        if isinstance(stmt, (VarDecl, Assign, ExprStmt)):
            self._emit_line(self._render_simple(stmt) + ";")
            return
        if isinstance(stmt, Print):
            self._emit_line("print(" + self._render_expr(stmt.value) + ");")
            return
        if isinstance(stmt, Input):
            self._emit_line("input(" + stmt.name + ");")
            return
        if isinstance(stmt, Return):
            self._emit_line("return " + self._render_expr(stmt.value) + ";")
            return
        if isinstance(stmt, If):
            self._emit_line("if (" + self._render_expr(stmt.cond) + ") {")
            self._emit_block_body(stmt.then_block)
            if stmt.else_block is not None:
                self._emit_line("} else {")
                self._emit_block_body(stmt.else_block)
            self._emit_line("}")
            return
        if isinstance(stmt, While):
            self._emit_line("while (" + self._render_expr(stmt.cond) + ") {")
            self._emit_block_body(stmt.body)
            self._emit_line("}")
            return
        if isinstance(stmt, For):
            init = self._render_simple(stmt.init) if stmt.init is not None else ""
            cond = self._render_expr(stmt.cond) if stmt.cond is not None else ""
            step = self._render_simple(stmt.step) if stmt.step is not None else ""
            self._emit_line(f"for ({init}; {cond}; {step}) {{")
            self._emit_block_body(stmt.body)
            self._emit_line("}")
            return
        raise TypeError("unhandled stmt type")

    def _render_simple(self, stmt: VarDecl | Assign | ExprStmt) -> str:
        if isinstance(stmt, VarDecl):
            text = "var " + stmt.name + ": " + stmt.typ.name
            if stmt.value is not None:
                text += " = " + self._render_expr(stmt.value)
            return text
        if isinstance(stmt, Assign):
            return stmt.name + " = " + self._render_expr(stmt.value)
        return self._render_expr(stmt.expr)

    # ── Exprs ───────────────────────────────────────────────

    def _render_expr(self, expr: Expr, parent_prec: int = 0) -> str:
        text, prec = self._render_expr_prec(expr)
        if prec < parent_prec:
            return "(" + text + ")"
        return text

    def _render_expr_prec(self, expr: Expr) -> tuple[str, int]:
        if isinstance(expr, Literal):
            return self._render_literal(expr), self._PREC_UNARY + 1
        if isinstance(expr, Ident):
            return expr.name, self._PREC_UNARY + 1
        if isinstance(expr, Call):
            args = ", ".join(self._render_expr(a) for a in expr.args)
            return expr.name + "(" + args + ")", self._PREC_UNARY + 1
        if isinstance(expr, Unary):
            return expr.op + self._render_expr(expr.operand, self._PREC_UNARY), self._PREC_UNARY
        if isinstance(expr, Binary):
            prec = self._BIN_PREC[expr.op]
            left = self._render_expr(expr.left, prec)
            # Left-associative: an equal-rank right operand was parenthesized in the source
            right = self._render_expr(expr.right, prec + 1)
            return left + " " + expr.op + " " + right, prec
        raise TypeError("unhandled expr type")

    def _render_literal(self, lit: Literal) -> str:
        if lit.kind == "string":
            return _quote(str(lit.value), '"')
        if lit.kind == "char":
            return _quote(str(lit.value), "'")
        if lit.kind == "bool":
            return "true" if lit.value else "false"
        return lit.tok.lexeme
