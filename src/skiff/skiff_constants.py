"""
Token vocabulary shared by the SKIFF lexer and parser.

Exports:
    keyword_tokens: Reserved words mapped to their canonical token type.
    operator_tokens: Punctuation, operators and brackets mapped to their token type.
    token_hashmap: Union of the two, used to spell token types in messages.
    OPENING_BRACKETS / CLOSING_BRACKETS: Bracket token types; line breaks inside them are ignored.
"""

keyword_tokens: dict[str, str] = {
    "and": "AND",
    "else": "ELSE",
    "load": "LOAD",
    "break": "BREAK",
    "for": "FOR",
    "not": "NOT",
    "continue": "CONTINUE",
    "if": "IF",
    "or": "OR",
    "def": "DEF",
    "in": "IN",
    "pass": "PASS",
    "elif": "ELIF",
    "return": "RETURN",
    "lambda": "LAMBDA",
}

operator_tokens: dict[str, str] = {
    ",": "COMMA",
    ";": "SEMICOLON",
    ":": "COLON",
    "+=": "PLUS_EQ",
    "-=": "MINUS_EQ",
    "*=": "STAR_EQ",
    "//=": "SLASHSLASH_EQ",
    "%=": "PERCENT_EQ",
    "==": "EQEQ",
    "!=": "NE",
    "<=": "LE",
    ">=": "GE",
    "**": "STARSTAR",
    "->": "ARROW",
    "=": "ASSIGN",
    "<": "LT",
    ">": "GT",
    "-": "MINUS",
    "+": "PLUS",
    "*": "STAR",
    "%": "PERCENT",
    "//": "SLASHSLASH",
    ".": "DOT",
    "&": "AMP",
    "|": "PIPE",
    "^": "CARET",
    "<<": "LSHIFT",
    ">>": "RSHIFT",
    "~": "TILDE",
    "&=": "AMP_EQ",
    "|=": "PIPE_EQ",
    "^=": "CARET_EQ",
    "<<=": "LSHIFT_EQ",
    ">>=": "RSHIFT_EQ",
    "[": "LBRACK",
    "{": "LBRACE",
    "(": "LPAREN",
    "]": "RBRACK",
    "}": "RBRACE",
    ")": "RPAREN",
}

token_hashmap: dict[str, str] = {**keyword_tokens, **operator_tokens}

OPENING_BRACKETS = frozenset({"LBRACK", "LBRACE", "LPAREN"})
CLOSING_BRACKETS = frozenset({"RBRACK", "RBRACE", "RPAREN"})
