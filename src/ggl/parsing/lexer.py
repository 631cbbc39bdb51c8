"""Lexer for GGL (Graph Generation Language) programs."""

import re

import ply.lex as lex


_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", '"': '"', "\\": "\\"}
_ESCAPE_RE = re.compile(r"\\(.)")


def unescape(text: str) -> str:
    """Resolve backslash escapes in a string literal body."""
    return _ESCAPE_RE.sub(lambda m: _ESCAPES.get(m.group(1), m.group(0)), text)


class GGLLexer:
    """Lexer for tokenizing GGL source."""

    reserved = {
        "graph": "GRAPH",
        "let": "LET",
        "for": "FOR",
        "in": "IN",
        "if": "IF",
        "else": "ELSE",
        "node": "NODE",
        "edge": "EDGE",
        "generate": "GENERATE",
        "rule": "RULE",
        "lhs": "LHS",
        "rhs": "RHS",
        "apply": "APPLY",
        "times": "TIMES",
        "true": "TRUE",
        "false": "FALSE",
    }

    tokens = [
        "IDENTIFIER",
        "STRING",
        "INTEGER",
        "FLOAT",
        "LBRACE",
        "RBRACE",
        "LBRACKET",
        "RBRACKET",
        "LPAREN",
        "RPAREN",
        "COLON",
        "SEMICOLON",
        "COMMA",
        "ARROW",
        "DASHDASH",
        "DOTDOT",
        "EQUALS",
        "EQEQ",
        "NEQ",
        "LT",
        "LE",
        "GT",
        "GE",
        "PLUS",
        "MINUS",
        "STAR",
        "SLASH",
        "PERCENT",
    ] + list(reserved.values())

    # PLY sorts string-defined tokens longest-first, so -> and -- win over -
    t_LBRACE = r"\{"
    t_RBRACE = r"\}"
    t_LBRACKET = r"\["
    t_RBRACKET = r"\]"
    t_LPAREN = r"\("
    t_RPAREN = r"\)"
    t_COLON = r":"
    t_SEMICOLON = r";"
    t_COMMA = r","
    t_ARROW = r"->"
    t_DASHDASH = r"--"
    t_DOTDOT = r"\.\."
    t_EQEQ = r"=="
    t_NEQ = r"!="
    t_LE = r"<="
    t_GE = r">="
    t_LT = r"<"
    t_GT = r">"
    t_EQUALS = r"="
    t_PLUS = r"\+"
    t_MINUS = r"-"
    t_STAR = r"\*"
    t_PERCENT = r"%"

    t_ignore = " \t\r"

    def __init__(self) -> None:
        self.lexer: lex.LexToken = None  # type: ignore

    def t_BLOCK_COMMENT(self, t: lex.LexToken) -> None:
        r"/\*(.|\n)*?\*/"
        t.lexer.lineno += t.value.count("\n")

    def t_LINE_COMMENT(self, t: lex.LexToken) -> None:
        r"//[^\n]*"
        pass

    def t_SLASH(self, t: lex.LexToken) -> lex.LexToken:
        r"/"
        return t

    def t_FLOAT(self, t: lex.LexToken) -> lex.LexToken:
        r"\d+\.\d+(?:[eE][+-]?\d+)?"
        t.value = float(t.value)
        return t

    def t_INTEGER(self, t: lex.LexToken) -> lex.LexToken:
        r"\d+"
        t.value = int(t.value)
        return t

    def t_STRING(self, t: lex.LexToken) -> lex.LexToken:
        r'"([^"\\\n]|\\.)*"'
        # Escapes are resolved by the parser, which also splits out {placeholders}
        t.value = t.value[1:-1]
        return t

    def t_IDENTIFIER(self, t: lex.LexToken) -> lex.LexToken:
        r"[a-zA-Z_][a-zA-Z0-9_]*"
        t.type = self.reserved.get(t.value, "IDENTIFIER")
        return t

    def t_NEWLINE(self, t: lex.LexToken) -> None:
        r"\n+"
        t.lexer.lineno += len(t.value)

    def t_error(self, t: lex.LexToken) -> None:
        raise SyntaxError(
            f"Illegal character '{t.value[0]}' on line {t.lexer.lineno} at position {t.lexpos}"
        )

    # --- Lexer methods ---

    def build(self, **kwargs) -> None:  # type: ignore
        """Build the lexer."""
        self.lexer = lex.lex(module=self, **kwargs)

    def input(self, data: str) -> None:
        """Set the input string to tokenize."""
        self.lexer.lineno = 1
        self.lexer.input(data)

    def token(self) -> lex.LexToken | None:
        """Return the next token."""
        return self.lexer.token()

    def tokenize(self, data: str) -> list[lex.LexToken]:
        """Tokenize the input and return all tokens."""
        self.input(data)
        tokens = []
        while True:
            tok = self.token()
            if tok is None:
                break
            tokens.append(tok)
        return tokens


# Module-level set of reserved keywords for use by other modules
RESERVED_KEYWORDS: frozenset[str] = frozenset(GGLLexer.reserved.keys())


def is_plain_name(name: str) -> bool:
    """True if ``name`` can be written as a bare identifier."""
    return bool(re.fullmatch(r"[a-zA-Z_][a-zA-Z0-9_]*", name)) and name not in RESERVED_KEYWORDS
