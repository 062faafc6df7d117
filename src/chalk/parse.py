"""Chalk parser — recursive descent, one method per grammar production."""

from __future__ import annotations

from collections.abc import Callable

from .ast import (
    PRIMITIVES,
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
    TypeRef,
    Unary,
    VarDecl,
    While,
)
from .errors import ParseError
from .tokens import (
    TK_AND,
    TK_ASSIGN,
    TK_BOOL_KEYWORD,
    TK_CHAR_KEYWORD,
    TK_CHAR_LITERAL,
    TK_COLON,
    TK_COMMA,
    TK_ELSE,
    TK_EOF,
    TK_EQUALS,
    TK_FALSE,
    TK_FLOAT_KEYWORD,
    TK_FLOAT_LITERAL,
    TK_FOR,
    TK_FUNC,
    TK_GREATER,
    TK_GREATER_EQUAL,
    TK_IDENTIFIER,
    TK_IF,
    TK_INPUT,
    TK_INT_KEYWORD,
    TK_INT_LITERAL,
    TK_LBRACE,
    TK_LESS,
    TK_LESS_EQUAL,
    TK_LPAREN,
    TK_MINUS,
    TK_NOT,
    TK_NOT_EQUALS,
    TK_OR,
    TK_PERCENT,
    TK_PLUS,
    TK_PRINT,
    TK_RBRACE,
    TK_RETURN,
    TK_RPAREN,
    TK_SEMICOLON,
    TK_SLASH,
    TK_STAR,
    TK_STRING_KEYWORD,
    TK_STRING_LITERAL,
    TK_TRUE,
    TK_UNKNOWN,
    TK_VAR,
    TK_WHILE,
    Lexer,
    Token,
)

TYPE_KEYWORDS: dict[str, str] = dict(
    zip(
        (TK_INT_KEYWORD, TK_FLOAT_KEYWORD, TK_CHAR_KEYWORD, TK_BOOL_KEYWORD, TK_STRING_KEYWORD),
        PRIMITIVES,
    )
)

INT_MAX = 2147483647
# Smallest magnitude that rounds past float.MaxValue
FLOAT_LIMIT = 2.0**128 - 2.0**103

EQUALITY_OPS: set[str] = {TK_EQUALS, TK_NOT_EQUALS}
COMPARE_OPS: set[str] = {TK_LESS, TK_GREATER, TK_LESS_EQUAL, TK_GREATER_EQUAL}
SUM_OPS: set[str] = {TK_PLUS, TK_MINUS}
PRODUCT_OPS: set[str] = {TK_STAR, TK_SLASH, TK_PERCENT}

# Human-readable spelling of token kinds for error messages
KIND_NAMES: dict[str, str] = {
    TK_LPAREN: "'('",
    TK_RPAREN: "')'",
    TK_LBRACE: "'{'",
    TK_RBRACE: "'}'",
    TK_SEMICOLON: "';'",
    TK_COLON: "':'",
    TK_COMMA: "','",
    TK_ASSIGN: "'='",
    TK_IDENTIFIER: "identifier",
    TK_FUNC: "'func'",
    TK_EOF: "end of input",
}


class Parser:
    """Recursive descent parser for Chalk, pulling tokens from a Lexer."""

    def __init__(self, lexer: Lexer):
        self.lexer: Lexer = lexer
        self.buffer: list[Token] = []

    # ── Helpers ──────────────────────────────────────────────

    def _fill(self, count: int) -> None:
        while len(self.buffer) < count:
            self.buffer.append(self.lexer.next_token())

    def current(self) -> Token:
        self._fill(1)
        return self.buffer[0]

    def peek(self, offset: int) -> Token:
        """Token `offset` places after the current one."""
        self._fill(offset + 1)
        return self.buffer[offset]

    def advance(self) -> Token:
        self._fill(1)
        return self.buffer.pop(0)

    def at(self, kind: str) -> bool:
        return self.current().kind == kind

    def expect(self, kind: str, context: str) -> Token:
        if not self.at(kind):
            raise self.error("expected " + KIND_NAMES.get(kind, kind) + " " + context)
        return self.advance()

    def error(self, msg: str) -> ParseError:
        tok = self.current()
        if tok.kind == TK_UNKNOWN:
            msg = "invalid token " + repr(tok.lexeme) + ", " + msg
        return ParseError(msg, tok)

    # ── Top Level ────────────────────────────────────────────

    def parse_program(self) -> Program:
        """Program = Function*"""
        tok = self.current()
        functions: list[Function] = []
        while not self.at(TK_EOF):
            if not self.at(TK_FUNC):
                raise self.error("expected function declaration")
            functions.append(self.parse_function())
        return Program(tok, functions)

    def parse_function(self) -> Function:
        """Function = 'func' IDENT '(' Params? ')' ':' Type Block"""
        tok = self.expect(TK_FUNC, "to start function declaration")
        name_tok = self.expect(TK_IDENTIFIER, "after 'func'")
        self.expect(TK_LPAREN, "after function name")
        params: list[Param] = []
        if not self.at(TK_RPAREN):
            params.append(self.parse_param())
            while self.at(TK_COMMA):
                self.advance()
                params.append(self.parse_param())
        self.expect(TK_RPAREN, "after parameters")
        self.expect(TK_COLON, "before return type")
        ret = self.parse_type()
        body = self.parse_block()
        return Function(tok, name_tok.lexeme, params, ret, body)

    def parse_param(self) -> Param:
        name_tok = self.expect(TK_IDENTIFIER, "for parameter name")
        self.expect(TK_COLON, "after parameter name")
        return Param(name_tok, name_tok.lexeme, self.parse_type())

    def parse_type(self) -> TypeRef:
        tok = self.current()
        if tok.kind not in TYPE_KEYWORDS:
            raise self.error("expected type (" + ", ".join(PRIMITIVES) + ")")
        self.advance()
        return TypeRef(tok, TYPE_KEYWORDS[tok.kind])

    def parse_block(self) -> Block:
        """Block = '{' Stmt* '}'"""
        tok = self.expect(TK_LBRACE, "to open block")
        stmts: list[Stmt] = []
        while not self.at(TK_RBRACE):
            if self.at(TK_EOF):
                raise self.error("expected '}' to close block")
            stmts.append(self.parse_stmt())
        self.advance()
        return Block(tok, stmts)

    # ── Statements ───────────────────────────────────────────

    def parse_stmt(self) -> Stmt:
        kind = self.current().kind
        if kind == TK_VAR:
            return self.parse_var_decl()
        if kind == TK_RETURN:
            return self.parse_return()
        if kind == TK_PRINT:
            return self.parse_print()
        if kind == TK_INPUT:
            return self.parse_input()
        if kind == TK_IF:
            return self.parse_if()
        if kind == TK_WHILE:
            return self.parse_while()
        if kind == TK_FOR:
            return self.parse_for()
        if kind == TK_IDENTIFIER:
            if self.peek(1).kind == TK_ASSIGN:
                return self.parse_assign()
            if self.peek(1).kind == TK_LPAREN:
                return self.parse_expr_stmt()
        raise self.error("expected statement")

    def parse_var_decl(self, terminated: bool = True) -> VarDecl:
        """VarDecl = 'var' IDENT ':' Type ( '=' Expr )? ';'"""
        self.advance()
        name_tok = self.expect(TK_IDENTIFIER, "after 'var'")
        self.expect(TK_COLON, "after variable name")
        typ = self.parse_type()
        value: Expr | None = None
        if self.at(TK_ASSIGN):
            self.advance()
            value = self.parse_expr()
        if terminated:
            self.expect(TK_SEMICOLON, "after variable declaration")
        return VarDecl(name_tok, name_tok.lexeme, typ, value)

    def parse_assign(self, terminated: bool = True) -> Assign:
        """Assign = IDENT '=' Expr ';'"""
        name_tok = self.expect(TK_IDENTIFIER, "as assignment target")
        self.expect(TK_ASSIGN, "in assignment")
        value = self.parse_expr()
        if terminated:
            self.expect(TK_SEMICOLON, "after assignment")
        return Assign(name_tok, name_tok.lexeme, value)

    def parse_expr_stmt(self, terminated: bool = True) -> ExprStmt:
        """ExprStmt = Call ';'"""
        start = self.current()
        expr = self.parse_expr()
        if not isinstance(expr, Call):
            raise ParseError("only a function call can be used as a statement", start)
        if terminated:
            self.expect(TK_SEMICOLON, "after call statement")
        return ExprStmt(start, expr)

    def parse_return(self) -> Return:
        tok = self.advance()
        if self.at(TK_SEMICOLON):
            raise self.error("expected expression after 'return'")
        value = self.parse_expr()
        self.expect(TK_SEMICOLON, "after return value")
        return Return(tok, value)

    def parse_print(self) -> Print:
        tok = self.advance()
        self.expect(TK_LPAREN, "after 'print'")
        value = self.parse_expr()
        self.expect(TK_RPAREN, "after print argument")
        self.expect(TK_SEMICOLON, "after print statement")
        return Print(tok, value)

    def parse_input(self) -> Input:
        tok = self.advance()
        self.expect(TK_LPAREN, "after 'input'")
        name_tok = self.expect(TK_IDENTIFIER, "as input target")
        self.expect(TK_RPAREN, "after input target")
        self.expect(TK_SEMICOLON, "after input statement")
        return Input(tok, name_tok.lexeme)

    def parse_if(self) -> If:
        """If = 'if' '(' Expr ')' Block ( 'else' Block )?"""
        tok = self.advance()
        self.expect(TK_LPAREN, "after 'if'")
        cond = self.parse_expr()
        self.expect(TK_RPAREN, "after if condition")
        then_block = self.parse_block()
        else_block: Block | None = None
        if self.at(TK_ELSE):
            self.advance()
            else_block = self.parse_block()
        return If(tok, cond, then_block, else_block)

    def parse_while(self) -> While:
        tok = self.advance()
        self.expect(TK_LPAREN, "after 'while'")
        cond = self.parse_expr()
        self.expect(TK_RPAREN, "after while condition")
        return While(tok, cond, self.parse_block())

    def parse_for(self) -> For:
        """For = 'for' '(' ForInit? ';' Expr? ';' ForStep? ')' Block"""
        tok = self.advance()
        self.expect(TK_LPAREN, "after 'for'")
        init: VarDecl | Assign | ExprStmt | None = None
        if not self.at(TK_SEMICOLON):
            if self.at(TK_VAR):
                init = self.parse_var_decl(terminated=False)
            else:
                init = self._parse_for_clause()
        self.expect(TK_SEMICOLON, "after for initializer")
        cond: Expr | None = None
        if not self.at(TK_SEMICOLON):
            cond = self.parse_expr()
        self.expect(TK_SEMICOLON, "after for condition")
        step: Assign | ExprStmt | None = None
        if not self.at(TK_RPAREN):
            step = self._parse_for_clause()
        self.expect(TK_RPAREN, "after for clauses")
        return For(tok, init, cond, step, self.parse_block())

    def _parse_for_clause(self) -> Assign | ExprStmt:
        if self.at(TK_IDENTIFIER) and self.peek(1).kind == TK_ASSIGN:
            return self.parse_assign(terminated=False)
        if self.at(TK_IDENTIFIER) and self.peek(1).kind == TK_LPAREN:
            return self.parse_expr_stmt(terminated=False)
        raise self.error("expected assignment or call in for header")

    # ── Expressions ──────────────────────────────────────────

    def parse_expr(self) -> Expr:
        return self.parse_or()

    def _binary_loop(self, ops: set[str], operand: Callable[[], Expr]) -> Expr:
        left = operand()
        while self.current().kind in ops:
            op_tok = self.advance()
            right = operand()
            left = Binary(op_tok, op_tok.lexeme, left, right)
        return left

    def parse_or(self) -> Expr:
        """Or = And ( '||' And )*"""
        return self._binary_loop({TK_OR}, self.parse_and)

    def parse_and(self) -> Expr:
        """And = Equality ( '&&' Equality )*"""
        return self._binary_loop({TK_AND}, self.parse_equality)

    def parse_equality(self) -> Expr:
        """Equality = Comparison ( ( '==' | '!=' ) Comparison )*"""
        return self._binary_loop(EQUALITY_OPS, self.parse_comparison)

    def parse_comparison(self) -> Expr:
        """Comparison = Sum ( ( '<' | '>' | '<=' | '>=' ) Sum )*"""
        return self._binary_loop(COMPARE_OPS, self.parse_sum)

    def parse_sum(self) -> Expr:
        """Sum = Product ( ( '+' | '-' ) Product )*"""
        return self._binary_loop(SUM_OPS, self.parse_product)

    def parse_product(self) -> Expr:
        """Product = Unary ( ( '*' | '/' | '%' ) Unary )*"""
        return self._binary_loop(PRODUCT_OPS, self.parse_unary)

    def parse_unary(self) -> Expr:
        """Unary = ( '!' | '-' ) Unary | Primary"""
        if self.at(TK_NOT) or self.at(TK_MINUS):
            op_tok = self.advance()
            if op_tok.kind == TK_MINUS and self.at(TK_INT_LITERAL):
                return Unary(op_tok, op_tok.lexeme, self.parse_primary(negated=True))
            return Unary(op_tok, op_tok.lexeme, self.parse_unary())
        return self.parse_primary()

    def parse_primary(self, negated: bool = False) -> Expr:
        """`negated` admits 2147483648, which is in range only after a '-'."""
        tok = self.current()
        kind = tok.kind
        if kind == TK_INT_LITERAL:
            value = int(tok.lexeme)
            if value > INT_MAX + (1 if negated else 0):
                raise self.error("integer literal out of range")
            self.advance()
            return Literal(tok, "int", value)
        if kind == TK_FLOAT_LITERAL:
            value = float(tok.lexeme)
            if value >= FLOAT_LIMIT:
                raise self.error("float literal out of range")
            self.advance()
            return Literal(tok, "float", value)
        if kind == TK_CHAR_LITERAL:
            self.advance()
            return Literal(tok, "char", tok.lexeme)
        if kind == TK_STRING_LITERAL:
            self.advance()
            return Literal(tok, "string", tok.lexeme)
        if kind == TK_TRUE or kind == TK_FALSE:
            self.advance()
            return Literal(tok, "bool", kind == TK_TRUE)
        if kind == TK_IDENTIFIER:
            self.advance()
            if self.at(TK_LPAREN):
                return self._parse_call(tok)
            return Ident(tok, tok.lexeme)
        if kind == TK_LPAREN:
            self.advance()
            expr = self.parse_expr()
            self.expect(TK_RPAREN, "to close parenthesized expression")
            return expr
        raise self.error("expected expression")

    def _parse_call(self, name_tok: Token) -> Call:
        self.advance()
        args: list[Expr] = []
        if not self.at(TK_RPAREN):
            args.append(self.parse_expr())
            while self.at(TK_COMMA):
                self.advance()
                args.append(self.parse_expr())
        self.expect(TK_RPAREN, "after call arguments")
        return Call(name_tok, name_tok.lexeme, args)


def parse(source: str) -> Program:
    """Parse Chalk source into a Program, raising ParseError on failure."""
    return Parser(Lexer(source)).parse_program()
