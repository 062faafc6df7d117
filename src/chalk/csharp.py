"""C# backend: checked Chalk AST → C# source text."""

from __future__ import annotations

import logging

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
from .check import BOOL_T, FLOAT_T, STRING_T, Analysis

logger = logging.getLogger(__name__)

# C# reserved words that need escaping with @
_CSHARP_RESERVED = frozenset(
    {
        "abstract",
        "as",
        "base",
        "bool",
        "break",
        "byte",
        "case",
        "catch",
        "char",
        "checked",
        "class",
        "const",
        "continue",
        "decimal",
        "default",
        "delegate",
        "do",
        "double",
        "else",
        "enum",
        "event",
        "explicit",
        "extern",
        "false",
        "finally",
        "fixed",
        "float",
        "for",
        "foreach",
        "goto",
        "if",
        "implicit",
        "in",
        "int",
        "interface",
        "internal",
        "is",
        "lock",
        "long",
        "namespace",
        "new",
        "null",
        "object",
        "operator",
        "out",
        "override",
        "params",
        "private",
        "protected",
        "public",
        "readonly",
        "ref",
        "return",
        "sbyte",
        "sealed",
        "short",
        "sizeof",
        "stackalloc",
        "static",
        "string",
        "struct",
        "switch",
        "this",
        "throw",
        "true",
        "try",
        "typeof",
        "uint",
        "ulong",
        "unchecked",
        "unsafe",
        "ushort",
        "using",
        "virtual",
        "void",
        "volatile",
        "while",
    }
)

# Names the generated code refers to; functions and locals must not hide them
RUNTIME_NAMES = frozenset({"args", "Console", "CultureInfo", "Main", "StreamWriter", "System"})

_TYPES: dict[str, str] = {
    "int": "int",
    "float": "float",
    "char": "char",
    "bool": "bool",
    "string": "string",
}

_DEFAULTS: dict[str, str] = {
    "int": "0",
    "float": "0.0f",
    "char": "'\\0'",
    "bool": "false",
    "string": "string.Empty",
}

_READERS: dict[str, str] = {
    "int": "int.Parse(Console.ReadLine()!, CultureInfo.InvariantCulture)",
    "float": "float.Parse(Console.ReadLine()!, CultureInfo.InvariantCulture)",
    "bool": "bool.Parse(Console.ReadLine()!)",
    "char": "Console.ReadLine()![0]",
    "string": "Console.ReadLine() ?? string.Empty",
}

_AUTOFLUSH = "Console.SetOut(new StreamWriter(Console.OpenStandardOutput()) { AutoFlush = true });"


def reserved_names(class_name: str = "Program") -> frozenset[str]:
    """Names no Chalk function or local may take inside class `class_name`."""
    return RUNTIME_NAMES | {class_name}


def _safe_name(name: str) -> str:
    """Escape C# reserved words with @ prefix."""
    if name in _CSHARP_RESERVED:
        return "@" + name
    return name


def escape_string(value: str) -> str:
    """Escape a string for use in a C# string literal (without quotes)."""
    return (
        value.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("\t", "\\t")
        .replace("\r", "\\r")
        .replace("\0", "\\0")
    )


def escape_char(value: str) -> str:
    """Escape a single character for use in a C# char literal (without quotes)."""
    if value == "'":
        return "\\'"
    if value == '"':
        return '"'
    return escape_string(value)


class CSharpBackend:
    """Emit C# code from a checked Chalk program."""

    def __init__(self, namespace: str = "ChalkProgram", class_name: str = "Program") -> None:
        self.namespace: str = namespace
        self.class_name: str = class_name
        self.indent = 0
        self.lines: list[str] = []
        self.analysis: Analysis = Analysis()
        # main(): int is emitted as Main itself; any other main gets a Main wrapper
        self._main_is_entry = False

    def emit(self, program: Program, analysis: Analysis) -> str:
        """Emit a C# translation unit.

        `analysis` must come from `check(program, reserved_names(class_name))`,
        so no function or local hides a name the generated code uses.
        """
        self.indent = 0
        self.lines = []
        self.analysis = analysis
        entry = next((fn for fn in program.functions if fn.name == "main"), None)
        if entry is None:
            logger.warning("no 'main' function; generated program has no entry point")
        self._main_is_entry = entry is not None and not entry.params and entry.ret.name == "int"
        self._emit_program(program)
        logger.debug("emitted %d lines of C#", len(self.lines))
        return "\n".join(self.lines) + "\n"

    def _line(self, text: str = "") -> None:
        if text:
            self.lines.append("    " * self.indent + text)
        else:
            self.lines.append("")

    def _open(self, header: str) -> None:
        self._line(header)
        self._line("{")
        self.indent += 1

    def _close(self) -> None:
        self.indent -= 1
        self._line("}")

    # ── Declarations ────────────────────────────────────────

    def _emit_program(self, program: Program) -> None:
        self._line("using System;")
        self._line("using System.Globalization;")
        self._line("using System.IO;")
        self._line("")
        self._open("namespace " + self.namespace)
        self._open("public static class " + self.class_name)
        for i, fn in enumerate(program.functions):
            if i > 0:
                self._line("")
            self._emit_function(fn)
        self._close()
        self._close()

    def _function_name(self, node: Function | Call) -> str:
        if node.name == "main" and self._main_is_entry:
            return "Main"
        return _safe_name(self.analysis.name_of(node))

    def _emit_function(self, fn: Function) -> None:
        ret = _TYPES[fn.ret.name]
        params = [
            _TYPES[p.typ.name] + " " + _safe_name(self.analysis.name_of(p)) for p in fn.params
        ]
        is_entry = fn.name == "main" and self._main_is_entry
        if is_entry:
            params = ["string[] args"]
        self._open(f"public static {ret} {self._function_name(fn)}({', '.join(params)})")
        if is_entry:
            self._line(_AUTOFLUSH)
        for stmt in fn.body.stmts:
            self._emit_stmt(stmt)
        if not _always_returns(fn.body.stmts):
            self._line(f"return {_DEFAULTS[fn.ret.name]};")
        self._close()
        if fn.name == "main" and not is_entry:
            self._line("")
            self._emit_entry_wrapper(fn)

    def _emit_entry_wrapper(self, fn: Function) -> None:
        """Main for a main that takes parameters or does not return int.

        Parameters receive their type's default value; a non-int result is
        discarded and the process exits with 0.
        """
        args = ", ".join(_DEFAULTS[p.typ.name] for p in fn.params)
        call = f"{self._function_name(fn)}({args})"
        self._open("public static int Main(string[] args)")
        self._line(_AUTOFLUSH)
        if fn.ret.name == "int":
            self._line(f"return {call};")
        else:
            self._line(call + ";")
            self._line("return 0;")
        self._close()

    # ── Statements ──────────────────────────────────────────

    def _emit_block(self, header: str, block: Block) -> None:
        self._open(header)
        for stmt in block.stmts:
            self._emit_stmt(stmt)
        self._close()

    def _emit_stmt(self, stmt: Stmt) -> None:
        match stmt:
            case VarDecl() | Assign() | ExprStmt():
                self._line(self._stmt_inline(stmt) + ";")
            case Print(value=value):
                self._line(f"Console.WriteLine({self._text(value)});")
            case Input():
                name = _safe_name(self.analysis.name_of(stmt))
                self._line("Console.Out.Flush();")
                self._line(f"{name} = {_READERS[self.analysis.type_of(stmt)]};")
            case Return(value=value):
                self._line(f"return {self._expr(value)};")
            case If(cond=cond, then_block=then_block, else_block=else_block):
                self._emit_block(f"if ({self._expr(cond)})", then_block)
                if else_block is not None:
                    self._emit_block("else", else_block)
            case While(cond=cond, body=body):
                self._emit_block(f"while ({self._expr(cond)})", body)
            case For(step=step, body=body) if step is not None and self._step_reads_body(
                step, body
            ):
                self._emit_for_as_while(stmt)
            case For(init=init, cond=cond, step=step, body=body):
                init_str = self._stmt_inline(init) if init is not None else ""
                cond_str = self._expr(cond) if cond is not None else ""
                step_str = self._stmt_inline(step) if step is not None else ""
                self._emit_block(f"for ({init_str}; {cond_str}; {step_str})", body)
            case _:
                raise TypeError("unhandled statement " + type(stmt).__name__)

    def _step_reads_body(self, step: Assign | ExprStmt, body: Block) -> bool:
        declared = {self.analysis.name_of(s) for s in body.stmts if isinstance(s, VarDecl)}
        return not declared.isdisjoint(self._variables_in(step))

    def _variables_in(self, node: Stmt | Expr) -> set[str]:
        """Lowered names of the variables a simple statement or expression touches."""
        match node:
            case Assign(value=value):
                return {self.analysis.name_of(node)} | self._variables_in(value)
            case ExprStmt(expr=expr):
                return self._variables_in(expr)
            case Ident():
                return {self.analysis.name_of(node)}
            case Call(args=args):
                names: set[str] = set()
                for arg in args:
                    names |= self._variables_in(arg)
                return names
            case Unary(operand=operand):
                return self._variables_in(operand)
            case Binary(left=left, right=right):
                return self._variables_in(left) | self._variables_in(right)
            case _:
                return set()

    def _emit_for_as_while(self, stmt: For) -> None:
        """{ init; while (cond) { body; step; } } for a step that reads a body local.

        A C# for-iterator cannot see locals of the loop body. Chalk has no
        continue, so running the step after the body is equivalent.
        """
        assert stmt.step is not None
        self._line("{")
        self.indent += 1
        if stmt.init is not None:
            self._line(self._stmt_inline(stmt.init) + ";")
        cond = self._expr(stmt.cond) if stmt.cond is not None else "true"
        self._open(f"while ({cond})")
        for s in stmt.body.stmts:
            self._emit_stmt(s)
        self._line(self._stmt_inline(stmt.step) + ";")
        self._close()
        self._close()

    def _stmt_inline(self, stmt: VarDecl | Assign | ExprStmt) -> str:
        """Render a simple statement without its terminator."""
        match stmt:
            case VarDecl(typ=typ, value=value):
                name = _safe_name(self.analysis.name_of(stmt))
                val = self._expr(value) if value is not None else _DEFAULTS[typ.name]
                return f"{_TYPES[typ.name]} {name} = {val}"
            case Assign(value=value):
                return f"{_safe_name(self.analysis.name_of(stmt))} = {self._expr(value)}"
            case ExprStmt(expr=expr):
                return self._expr(expr)
            case _:
                raise TypeError("unhandled statement " + type(stmt).__name__)

    # ── Expressions ─────────────────────────────────────────

    def _expr(self, expr: Expr) -> str:
        match expr:
            case Literal(kind="string", value=value):
                return '"' + escape_string(str(value)) + '"'
            case Literal(kind="char", value=value):
                return "'" + escape_char(str(value)) + "'"
            case Literal(kind="bool", value=value):
                return "true" if value else "false"
            case Literal(kind="float"):
                return expr.tok.lexeme + "f"
            case Literal():
                return expr.tok.lexeme
            case Ident():
                return _safe_name(self.analysis.name_of(expr))
            case Call(name=name, args=args):
                arg_strs = [self._expr(a) for a in args]
                if name == "main" and self._main_is_entry:
                    arg_strs = ["new string[0]"]
                return f"{self._function_name(expr)}({', '.join(arg_strs)})"
            case Unary(op=op, operand=operand):
                inner = self._expr(operand)
                if isinstance(operand, (Unary, Binary)):
                    inner = f"({inner})"
                return f"{op}{inner}"
            case Binary(op="+", left=left, right=right) if self.analysis.type_of(expr) == STRING_T:
                left_str = self._concat_operand(left, is_left=True)
                right_str = self._concat_operand(right, is_left=False)
                return f"{left_str} + {right_str}"
            case Binary(op=op, left=left, right=right):
                left_str = self._operand(left, op, is_left=True)
                right_str = self._operand(right, op, is_left=False)
                return f"{left_str} {op} {right_str}"
            case _:
                raise TypeError("unhandled expression " + type(expr).__name__)

    def _operand(self, expr: Expr, parent_op: str, is_left: bool) -> str:
        text = self._expr(expr)
        if isinstance(expr, Binary) and _needs_parens(expr.op, parent_op, is_left):
            return f"({text})"
        return text

    def _concat_operand(self, expr: Expr, is_left: bool) -> str:
        typ = self.analysis.type_of(expr)
        if typ in (FLOAT_T, BOOL_T):
            return self._text(expr)
        return self._operand(expr, "+", is_left)

    def _text(self, expr: Expr) -> str:
        """Render `expr` for output as text, pinning float and bool formatting."""
        typ = self.analysis.type_of(expr)
        text = self._expr(expr)
        if typ == FLOAT_T:
            if not isinstance(expr, (Literal, Ident, Call)):
                text = f"({text})"
            return f"{text}.ToString(CultureInfo.InvariantCulture)"
        if typ == BOOL_T:
            return f'({text} ? "true" : "false")'
        return text


# Operator precedence (higher = binds tighter)
_PRECEDENCE = {
    "||": 1,
    "&&": 2,
    "==": 3,
    "!=": 3,
    "<": 4,
    "<=": 4,
    ">": 4,
    ">=": 4,
    "+": 5,
    "-": 5,
    "*": 6,
    "/": 6,
    "%": 6,
}


def _prec(op: str) -> int:
    return _PRECEDENCE.get(op, 0)


def _needs_parens(child_op: str, parent_op: str, is_left: bool) -> bool:
    """Check if child binary op needs parens when used as operand of parent op."""
    child_prec = _prec(child_op)
    parent_prec = _prec(parent_op)
    if child_prec < parent_prec:
        return True
    # Operators are left-associative, so a right child of equal rank was grouped explicitly
    return child_prec == parent_prec and not is_left


def _always_returns(stmts: list[Stmt]) -> bool:
    if not stmts:
        return False
    last = stmts[-1]
    if isinstance(last, Return):
        return True
    if isinstance(last, If) and last.else_block is not None:
        return _always_returns(last.then_block.stmts) and _always_returns(last.else_block.stmts)
    return False


def generate(
    program: Program,
    analysis: Analysis,
    namespace: str = "ChalkProgram",
    class_name: str = "Program",
) -> str:
    """Lower a checked program to one C# translation unit."""
    return CSharpBackend(namespace, class_name).emit(program, analysis)
