"""Chalk type checker — scopes, symbol resolution, expression typing."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

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
    Param,
    Print,
    Program,
    Return,
    Stmt,
    Unary,
    VarDecl,
    While,
)
from .errors import SemanticError
from .tokens import Token

logger = logging.getLogger(__name__)


# ============================================================
# TYPES
# ============================================================

INT_T = "int"
FLOAT_T = "float"
CHAR_T = "char"
BOOL_T = "bool"
STRING_T = "string"

NUMERIC: frozenset[str] = frozenset({INT_T, FLOAT_T})

ARITH_OPS: frozenset[str] = frozenset({"-", "*", "/", "%"})
ORDER_OPS: frozenset[str] = frozenset({"<", ">", "<=", ">="})
EQUALITY_OPS: frozenset[str] = frozenset({"==", "!="})
LOGIC_OPS: frozenset[str] = frozenset({"&&", "||"})


def is_assignable(source: str, target: str) -> bool:
    """Can a value of type `source` be stored in a slot of type `target`?"""
    if source == target:
        return True
    return target == FLOAT_T and source == INT_T


def numeric_result(left: str, right: str) -> str:
    if left == FLOAT_T or right == FLOAT_T:
        return FLOAT_T
    return INT_T


def binary_result(op: str, left: str, right: str) -> str | None:
    """Result type of `left op right`, or None when the operands are invalid."""
    if op == "+":
        if left == STRING_T or right == STRING_T:
            return STRING_T
        if left in NUMERIC and right in NUMERIC:
            return numeric_result(left, right)
        return None
    if op in ARITH_OPS:
        if left in NUMERIC and right in NUMERIC:
            return numeric_result(left, right)
        return None
    if op in EQUALITY_OPS:
        if left in NUMERIC and right in NUMERIC:
            return BOOL_T
        if left == right and left in (BOOL_T, STRING_T, CHAR_T):
            return BOOL_T
        return None
    if op in ORDER_OPS:
        if left in NUMERIC and right in NUMERIC:
            return BOOL_T
        return None
    if op in LOGIC_OPS:
        if left == BOOL_T and right == BOOL_T:
            return BOOL_T
        return None
    return None


# ============================================================
# SYMBOLS & SCOPES
# ============================================================


@dataclass(frozen=True)
class VariableSymbol:
    """A local variable or parameter. `lowered` is its unique name in the function."""

    name: str
    typ: str
    lowered: str


@dataclass(frozen=True)
class FunctionSymbol:
    name: str
    param_types: tuple[str, ...]
    ret: str
    lowered: str


Symbol = VariableSymbol | FunctionSymbol


class Scope:
    """Name table chained to an enclosing scope."""

    def __init__(self, parent: Scope | None = None):
        self.symbols: dict[str, Symbol] = {}
        self.parent: Scope | None = parent

    def define(self, sym: Symbol) -> bool:
        """Add a symbol. Returns False if the name is already taken here."""
        if sym.name in self.symbols:
            return False
        self.symbols[sym.name] = sym
        return True

    def lookup_local(self, name: str) -> Symbol | None:
        return self.symbols.get(name)

    def resolve(self, name: str) -> Symbol | None:
        scope: Scope | None = self
        while scope is not None:
            sym = scope.symbols.get(name)
            if sym is not None:
                return sym
            scope = scope.parent
        return None


@dataclass(frozen=True)
class Context:
    """Where the checker is: the innermost scope and the enclosing function."""

    scope: Scope
    function: FunctionSymbol | None = None

    def enter(self) -> Context:
        return Context(Scope(self.scope), self.function)


# ============================================================
# ANALYSIS RESULT
# ============================================================


@dataclass
class Analysis:
    """Annotations for one checked program, keyed by node identity."""

    types: dict[Expr, str] = field(default_factory=dict)
    input_types: dict[Input, str] = field(default_factory=dict)
    names: dict[object, str] = field(default_factory=dict)
    functions: dict[str, FunctionSymbol] = field(default_factory=dict)

    def type_of(self, node: Expr | Input) -> str:
        if isinstance(node, Input):
            return self.input_types[node]
        return self.types[node]

    def name_of(self, node: VarDecl | Param | Ident | Assign | Input | Function | Call) -> str:
        """Unique output name for a declaration or a reference to one.

        Variables are unique within their function, functions within the program.
        """
        return self.names[node]


# ============================================================
# CHECKER
# ============================================================


class Checker:
    """Two-phase checker: signatures first, then bodies."""

    def __init__(self, reserved: frozenset[str] = frozenset()) -> None:
        self.globals: Scope = Scope()
        self.analysis: Analysis = Analysis()
        self.reserved: frozenset[str] = reserved
        self._used_names: set[str] = set()

    def error(self, msg: str, tok: Token | None) -> SemanticError:
        return SemanticError(msg, tok)

    def analyze(self, program: Program) -> Analysis:
        self._used_names = {fn.name for fn in program.functions} | self.reserved
        for fn in program.functions:
            self.register_function(fn)
        for fn in program.functions:
            self.check_function(fn)
        logger.debug(
            "checked %d functions, %d typed expressions",
            len(program.functions),
            len(self.analysis.types),
        )
        return self.analysis

    # ── Declarations ────────────────────────────────────────

    def register_function(self, fn: Function) -> None:
        param_types = tuple(p.typ.name for p in fn.params)
        lowered = self.fresh_name(fn.name) if fn.name in self.reserved else fn.name
        sym = FunctionSymbol(fn.name, param_types, fn.ret.name, lowered)
        if not self.globals.define(sym):
            raise self.error("function '" + fn.name + "' is already defined", fn.tok)
        self.analysis.functions[fn.name] = sym
        self.analysis.names[fn] = lowered

    def check_function(self, fn: Function) -> None:
        sym = self.globals.lookup_local(fn.name)
        assert isinstance(sym, FunctionSymbol)
        # Function names stay reserved so locals never hide a callee in the output
        lowered_functions = {f.lowered for f in self.analysis.functions.values()}
        self._used_names = lowered_functions | self.reserved
        ctx = Context(Scope(self.globals), sym)
        for param in fn.params:
            if ctx.scope.lookup_local(param.name) is not None:
                raise self.error(
                    "duplicate parameter '" + param.name + "' in function '" + fn.name + "'",
                    param.tok,
                )
            self.declare_variable(ctx, param, param.name, param.typ.name)
        # The parameter scope doubles as the body scope
        self.check_stmts(fn.body.stmts, ctx)

    def fresh_name(self, name: str) -> str:
        """First of name, name_1, name_2, ... not yet taken; marks it taken."""
        lowered = name
        n = 0
        while lowered in self._used_names:
            n += 1
            lowered = name + "_" + str(n)
        self._used_names.add(lowered)
        return lowered

    def declare_variable(self, ctx: Context, node: VarDecl | Param, name: str, typ: str) -> None:
        lowered = self.fresh_name(name)
        ctx.scope.define(VariableSymbol(name, typ, lowered))
        self.analysis.names[node] = lowered

    def resolve_variable(self, ctx: Context, name: str, tok: Token) -> VariableSymbol:
        sym = ctx.scope.resolve(name)
        if sym is None:
            raise self.error("undeclared variable '" + name + "'", tok)
        if not isinstance(sym, VariableSymbol):
            raise self.error("'" + name + "' is a function, not a variable", tok)
        return sym

    # ── Statements ──────────────────────────────────────────

    def check_block(self, block: Block, ctx: Context) -> None:
        self.check_stmts(block.stmts, ctx.enter())

    def check_stmts(self, stmts: list[Stmt], ctx: Context) -> None:
        for stmt in stmts:
            self.check_stmt(stmt, ctx)

    def check_stmt(self, stmt: Stmt, ctx: Context) -> None:
        match stmt:
            case VarDecl(name=name, typ=typ, value=value):
                if value is not None:
                    value_t = self.check_expr(value, ctx)
                    if not is_assignable(value_t, typ.name):
                        raise self.error(
                            "cannot initialize variable '"
                            + name
                            + "' of type "
                            + typ.name
                            + " with a value of type "
                            + value_t,
                            value.tok,
                        )
                if ctx.scope.lookup_local(name) is not None:
                    raise self.error(
                        "variable '" + name + "' is already declared in this scope", stmt.tok
                    )
                self.declare_variable(ctx, stmt, name, typ.name)
            case Assign(name=name, value=value):
                sym = self.resolve_variable(ctx, name, stmt.tok)
                value_t = self.check_expr(value, ctx)
                if not is_assignable(value_t, sym.typ):
                    raise self.error(
                        "cannot assign a value of type "
                        + value_t
                        + " to variable '"
                        + name
                        + "' of type "
                        + sym.typ,
                        value.tok,
                    )
                self.analysis.names[stmt] = sym.lowered
            case Print(value=value):
                self.check_expr(value, ctx)
            case Input(name=name):
                sym = self.resolve_variable(ctx, name, stmt.tok)
                self.analysis.input_types[stmt] = sym.typ
                self.analysis.names[stmt] = sym.lowered
            case Return(value=value):
                if ctx.function is None:
                    raise self.error("return outside of a function", stmt.tok)
                value_t = self.check_expr(value, ctx)
                if not is_assignable(value_t, ctx.function.ret):
                    raise self.error(
                        "cannot return a value of type "
                        + value_t
                        + " from function '"
                        + ctx.function.name
                        + "' declared to return "
                        + ctx.function.ret,
                        value.tok,
                    )
            case If(cond=cond, then_block=then_block, else_block=else_block):
                self.check_condition(cond, ctx, "if")
                self.check_block(then_block, ctx)
                if else_block is not None:
                    self.check_block(else_block, ctx)
            case While(cond=cond, body=body):
                self.check_condition(cond, ctx, "while")
                self.check_block(body, ctx)
            case For(init=init, cond=cond, step=step, body=body):
                # One scope covers the header and the body
                inner = ctx.enter()
                if init is not None:
                    self.check_stmt(init, inner)
                if cond is not None:
                    self.check_condition(cond, inner, "for")
                self.check_stmts(body.stmts, inner)
                if step is not None:
                    self.check_stmt(step, inner)
            case ExprStmt(expr=expr):
                self.check_expr(expr, ctx)
            case _:
                raise TypeError("unhandled statement " + type(stmt).__name__)

    def check_condition(self, cond: Expr, ctx: Context, what: str) -> None:
        cond_t = self.check_expr(cond, ctx)
        if cond_t != BOOL_T:
            raise self.error(what + " condition must be bool, found " + cond_t, cond.tok)

    # ── Expressions ─────────────────────────────────────────

    def check_expr(self, expr: Expr, ctx: Context) -> str:
        typ = self._expr_type(expr, ctx)
        self.analysis.types[expr] = typ
        return typ

    def _expr_type(self, expr: Expr, ctx: Context) -> str:
        match expr:
            case Literal(kind=kind):
                return kind
            case Ident(name=name):
                sym = self.resolve_variable(ctx, name, expr.tok)
                self.analysis.names[expr] = sym.lowered
                return sym.typ
            case Call():
                return self.check_call(expr, ctx)
            case Unary(op=op, operand=operand):
                operand_t = self.check_expr(operand, ctx)
                if op == "-":
                    if operand_t not in NUMERIC:
                        raise self.error(
                            "operator '-' requires a numeric operand, found " + operand_t,
                            expr.tok,
                        )
                    return operand_t
                if operand_t != BOOL_T:
                    raise self.error(
                        "operator '!' requires a bool operand, found " + operand_t, expr.tok
                    )
                return BOOL_T
            case Binary(op=op, left=left, right=right):
                left_t = self.check_expr(left, ctx)
                right_t = self.check_expr(right, ctx)
                result = binary_result(op, left_t, right_t)
                if result is None:
                    raise self.error(
                        "operator '"
                        + op
                        + "' cannot be applied to operands of type "
                        + left_t
                        + " and "
                        + right_t,
                        expr.tok,
                    )
                return result
            case _:
                raise TypeError("unhandled expression " + type(expr).__name__)

    def check_call(self, call: Call, ctx: Context) -> str:
        sym = ctx.scope.resolve(call.name)
        if sym is None:
            raise self.error("undefined function '" + call.name + "'", call.tok)
        if not isinstance(sym, FunctionSymbol):
            raise self.error("'" + call.name + "' is a variable, not a function", call.tok)
        expected = len(sym.param_types)
        found = len(call.args)
        if expected != found:
            raise self.error(
                "function '"
                + call.name
                + "' expects "
                + str(expected)
                + " argument"
                + ("" if expected == 1 else "s")
                + ", found "
                + str(found),
                call.tok,
            )
        for i, (arg, param_t) in enumerate(zip(call.args, sym.param_types)):
            arg_t = self.check_expr(arg, ctx)
            if not is_assignable(arg_t, param_t):
                raise self.error(
                    "argument "
                    + str(i + 1)
                    + " of '"
                    + call.name
                    + "' expects "
                    + param_t
                    + ", found "
                    + arg_t,
                    arg.tok,
                )
        self.analysis.names[call] = sym.lowered
        return sym.ret


def check(program: Program, reserved: frozenset[str] = frozenset()) -> Analysis:
    """Type-check a parsed program, raising SemanticError on the first violation.

    Functions and locals whose names appear in `reserved` are given a
    suffixed name.
    """
    return Checker(reserved).analyze(program)
