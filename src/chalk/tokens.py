"""Chalk lexer — pulls tokens from source text one at a time."""

from __future__ import annotations

from dataclasses import dataclass


# Token kind constants
TK_VAR = "VAR"
TK_FUNC = "FUNC"
TK_INT_KEYWORD = "INT_KEYWORD"
TK_FLOAT_KEYWORD = "FLOAT_KEYWORD"
TK_CHAR_KEYWORD = "CHAR_KEYWORD"
TK_BOOL_KEYWORD = "BOOL_KEYWORD"
TK_STRING_KEYWORD = "STRING_KEYWORD"
TK_IF = "IF"
TK_ELSE = "ELSE"
TK_WHILE = "WHILE"
TK_FOR = "FOR"
TK_RETURN = "RETURN"
TK_PRINT = "PRINT"
TK_INPUT = "INPUT"
TK_TRUE = "TRUE"
TK_FALSE = "FALSE"

TK_ASSIGN = "ASSIGN"
TK_PLUS = "PLUS"
TK_MINUS = "MINUS"
TK_STAR = "STAR"
TK_SLASH = "SLASH"
TK_PERCENT = "PERCENT"
TK_EQUALS = "EQUALS"
TK_NOT_EQUALS = "NOT_EQUALS"
TK_LESS = "LESS"
TK_GREATER = "GREATER"
TK_LESS_EQUAL = "LESS_EQUAL"
TK_GREATER_EQUAL = "GREATER_EQUAL"
TK_AND = "AND"
TK_OR = "OR"
TK_NOT = "NOT"

TK_LPAREN = "LPAREN"
TK_RPAREN = "RPAREN"
TK_LBRACE = "LBRACE"
TK_RBRACE = "RBRACE"
TK_SEMICOLON = "SEMICOLON"
TK_COLON = "COLON"
TK_COMMA = "COMMA"

TK_INT_LITERAL = "INT_LITERAL"
TK_FLOAT_LITERAL = "FLOAT_LITERAL"
TK_CHAR_LITERAL = "CHAR_LITERAL"
TK_STRING_LITERAL = "STRING_LITERAL"
TK_IDENTIFIER = "IDENTIFIER"
TK_EOF = "EOF"
TK_UNKNOWN = "UNKNOWN"

KEYWORDS: dict[str, str] = {
    "var": TK_VAR,
    "func": TK_FUNC,
    "int": TK_INT_KEYWORD,
    "float": TK_FLOAT_KEYWORD,
    "char": TK_CHAR_KEYWORD,
    "bool": TK_BOOL_KEYWORD,
    "string": TK_STRING_KEYWORD,
    "if": TK_IF,
    "else": TK_ELSE,
    "while": TK_WHILE,
    "for": TK_FOR,
    "return": TK_RETURN,
    "print": TK_PRINT,
    "input": TK_INPUT,
    "true": TK_TRUE,
    "false": TK_FALSE,
}

# Two-character operators; each must match exactly
DOUBLE_OPS: dict[str, str] = {
    "==": TK_EQUALS,
    "!=": TK_NOT_EQUALS,
    "<=": TK_LESS_EQUAL,
    ">=": TK_GREATER_EQUAL,
    "&&": TK_AND,
    "||": TK_OR,
}

SINGLE_OPS: dict[str, str] = {
    "=": TK_ASSIGN,
    "+": TK_PLUS,
    "-": TK_MINUS,
    "*": TK_STAR,
    "/": TK_SLASH,
    "%": TK_PERCENT,
    "<": TK_LESS,
    ">": TK_GREATER,
    "!": TK_NOT,
    "(": TK_LPAREN,
    ")": TK_RPAREN,
    "{": TK_LBRACE,
    "}": TK_RBRACE,
    ";": TK_SEMICOLON,
    ":": TK_COLON,
    ",": TK_COMMA,
}

ESCAPE_MAP: dict[str, str] = {
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "\\": "\\",
    '"': '"',
    "'": "'",
    "0": "\0",
}


@dataclass(frozen=True)
class Token:
    """A token with kind, lexeme, and 1-indexed position.

    For string and char literals the lexeme is the decoded contents,
    without quotes and with escapes resolved.
    """

    kind: str
    lexeme: str
    line: int
    col: int

    def __str__(self) -> str:
        return self.kind + " " + repr(self.lexeme) + " " + str(self.line) + ":" + str(self.col)


def _is_digit(c: str) -> bool:
    return c >= "0" and c <= "9"


def _is_alpha(c: str) -> bool:
    return (c >= "a" and c <= "z") or (c >= "A" and c <= "Z") or c == "_"


def _is_alnum(c: str) -> bool:
    return _is_alpha(c) or _is_digit(c)


class Lexer:
    """Pull-based scanner: each next_token() call yields exactly one token."""

    def __init__(self, source: str):
        self.source: str = source
        self.pos: int = 0
        self.line: int = 1
        self.col: int = 1

    # ── Cursor ───────────────────────────────────────────────

    def _peek(self, offset: int = 0) -> str:
        idx = self.pos + offset
        if idx >= len(self.source):
            return ""
        return self.source[idx]

    def _advance(self) -> str:
        c = self.source[self.pos]
        self.pos += 1
        if c == "\n":
            self.line += 1
            self.col = 1
        else:
            self.col += 1
        return c

    def _at_end(self) -> bool:
        return self.pos >= len(self.source)

    # ── Trivia ───────────────────────────────────────────────

    def _skip_trivia(self) -> Token | None:
        """Skip whitespace and comments.

        Returns an UNKNOWN token when a block comment runs off the end of
        the input, otherwise None.
        """
        while not self._at_end():
            c = self._peek()
            if c in " \t\r\n":
                self._advance()
            elif c == "/" and self._peek(1) == "/":
                while not self._at_end() and self._peek() != "\n":
                    self._advance()
            elif c == "/" and self._peek(1) == "*":
                line, col = self.line, self.col
                self._advance()
                self._advance()
                while not (self._peek() == "*" and self._peek(1) == "/"):
                    if self._at_end():
                        return Token(TK_UNKNOWN, "/*", line, col)
                    self._advance()
                self._advance()
                self._advance()
            else:
                break
        return None

    # ── Tokens ───────────────────────────────────────────────

    def next_token(self) -> Token:
        bad_comment = self._skip_trivia()
        if bad_comment is not None:
            return bad_comment
        if self._at_end():
            return Token(TK_EOF, "", self.line, self.col)
        line, col = self.line, self.col
        c = self._peek()
        if c == '"':
            return self._scan_string(line, col)
        if c == "'":
            return self._scan_char(line, col)
        if _is_digit(c):
            return self._scan_number(line, col)
        if _is_alpha(c):
            return self._scan_word(line, col)
        pair = c + self._peek(1)
        if pair in DOUBLE_OPS:
            self._advance()
            self._advance()
            return Token(DOUBLE_OPS[pair], pair, line, col)
        self._advance()
        if c in SINGLE_OPS:
            return Token(SINGLE_OPS[c], c, line, col)
        return Token(TK_UNKNOWN, c, line, col)

    def _scan_quoted(self, quote: str) -> tuple[str, bool]:
        """Scan body after an opening quote. Returns (decoded, ok)."""
        chars: list[str] = []
        ok = True
        while True:
            if self._at_end():
                return "".join(chars), False
            c = self._advance()
            if c == quote:
                return "".join(chars), ok
            if quote == "'" and c == "\n":
                return "".join(chars), False
            if c == "\\":
                if self._at_end():
                    return "".join(chars), False
                esc = self._advance()
                if esc in ESCAPE_MAP:
                    chars.append(ESCAPE_MAP[esc])
                else:
                    chars.append("\\" + esc)
                    ok = False
                continue
            chars.append(c)

    def _scan_string(self, line: int, col: int) -> Token:
        self._advance()
        text, ok = self._scan_quoted('"')
        if not ok:
            return Token(TK_UNKNOWN, text, line, col)
        return Token(TK_STRING_LITERAL, text, line, col)

    def _scan_char(self, line: int, col: int) -> Token:
        self._advance()
        text, ok = self._scan_quoted("'")
        if not ok or len(text) != 1:
            return Token(TK_UNKNOWN, text, line, col)
        return Token(TK_CHAR_LITERAL, text, line, col)

    def _scan_number(self, line: int, col: int) -> Token:
        start = self.pos
        while _is_digit(self._peek()):
            self._advance()
        if self._peek() != ".":
            return Token(TK_INT_LITERAL, self.source[start : self.pos], line, col)
        self._advance()
        if not _is_digit(self._peek()):
            return Token(TK_UNKNOWN, self.source[start : self.pos], line, col)
        while _is_digit(self._peek()):
            self._advance()
        return Token(TK_FLOAT_LITERAL, self.source[start : self.pos], line, col)

    def _scan_word(self, line: int, col: int) -> Token:
        start = self.pos
        while _is_alnum(self._peek()):
            self._advance()
        word = self.source[start : self.pos]
        return Token(KEYWORDS.get(word, TK_IDENTIFIER), word, line, col)


def tokenize(source: str) -> list[Token]:
    """Drain a lexer into a list ending with the EOF token."""
    lexer = Lexer(source)
    tokens: list[Token] = []
    while True:
        tok = lexer.next_token()
        tokens.append(tok)
        if tok.kind == TK_EOF:
            return tokens
