"""
Tokenizer for rule expressions.

Turns rule text into a flat list of tokens. Only the fixed operator
set is recognised; anything else is a syntax error.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class ExpressionEvaluationError(Exception):
    """Raised when an expression cannot be parsed or evaluated."""
    pass


class ExpressionSyntaxError(ExpressionEvaluationError):
    """Raised when rule text does not match the grammar."""

    def __init__(self, message: str, text: str, position: Optional[int] = None):
        self.text = text
        self.position = position
        where = f" at position {position}" if position is not None else ""
        super().__init__(f"{message}{where} in expression: {text!r}")


class TokenKind(Enum):
    NUMBER = "number"
    STRING = "string"
    BOOLEAN = "boolean"
    IDENT = "ident"
    OPERATOR = "operator"
    LPAREN = "("
    RPAREN = ")"
    END = "end"


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    value: Any
    position: int


# Longest operators first so "===" wins over "==" and "<=" over "<"
OPERATORS = (
    "===", "!==",
    "==", "!=", "<=", ">=", "&&", "||",
    "<", ">", "!", "+", "-", "*", "/", "%",
)

# Word operators are normalised to their symbolic spelling
WORD_OPERATORS = {
    "and": "&&",
    "or": "||",
    "not": "!",
}

BOOLEAN_LITERALS = {
    "true": True,
    "false": False,
}

RESERVED_WORDS = frozenset(WORD_OPERATORS) | frozenset(BOOLEAN_LITERALS)

STRING_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "\\": "\\",
    "'": "'",
    '"': '"',
}


def tokenize(text: str) -> list[Token]:
    """
    Split expression text into tokens.

    The returned list always ends with an END token.

    Raises:
        ExpressionSyntaxError: On unterminated strings, malformed numbers
            or characters outside the operator set.
    """
    if not isinstance(text, str):
        raise ExpressionSyntaxError("expression must be text", repr(text))

    tokens: list[Token] = []
    i = 0
    length = len(text)

    while i < length:
        char = text[i]

        if char.isspace():
            i += 1
            continue

        if char.isdigit() or (char == "." and i + 1 < length and text[i + 1].isdigit()):
            start = i
            while i < length and (text[i].isdigit() or text[i] == "."):
                i += 1
            literal = text[start:i]
            if literal.count(".") > 1:
                raise ExpressionSyntaxError(f"malformed number '{literal}'", text, start)
            if i < length and (text[i].isalpha() or text[i] == "_"):
                raise ExpressionSyntaxError(f"malformed number '{text[start:i + 1]}'", text, start)
            value: Any = float(literal) if "." in literal else int(literal)
            tokens.append(Token(TokenKind.NUMBER, value, start))
            continue

        if char.isalpha() or char == "_":
            start = i
            while i < length and (text[i].isalnum() or text[i] == "_"):
                i += 1
            word = text[start:i]
            if word in BOOLEAN_LITERALS:
                tokens.append(Token(TokenKind.BOOLEAN, BOOLEAN_LITERALS[word], start))
            elif word in WORD_OPERATORS:
                tokens.append(Token(TokenKind.OPERATOR, WORD_OPERATORS[word], start))
            else:
                tokens.append(Token(TokenKind.IDENT, word, start))
            continue

        if char in ("'", '"'):
            start = i
            value, i = _read_string(text, i)
            tokens.append(Token(TokenKind.STRING, value, start))
            continue

        if char == "(":
            tokens.append(Token(TokenKind.LPAREN, char, i))
            i += 1
            continue

        if char == ")":
            tokens.append(Token(TokenKind.RPAREN, char, i))
            i += 1
            continue

        for operator in OPERATORS:
            if text.startswith(operator, i):
                tokens.append(Token(TokenKind.OPERATOR, operator, i))
                i += len(operator)
                break
        else:
            raise ExpressionSyntaxError(f"unexpected character {char!r}", text, i)

    tokens.append(Token(TokenKind.END, None, length))
    return tokens


def _read_string(text: str, start: int) -> tuple[str, int]:
    """Read a quoted literal starting at ``start``. Returns (value, next index)."""
    quote = text[start]
    chars: list[str] = []
    i = start + 1

    while i < len(text):
        char = text[i]
        if char == "\\":
            if i + 1 >= len(text):
                break
            escaped = text[i + 1]
            chars.append(STRING_ESCAPES.get(escaped, escaped))
            i += 2
            continue
        if char == quote:
            return "".join(chars), i + 1
        chars.append(char)
        i += 1

    raise ExpressionSyntaxError("unterminated string literal", text, start)


def identifiers(text: str) -> list[str]:
    """
    Return the free identifiers of an expression, in order of first use.

    Works on whole tokens, so a name that only appears inside a string
    literal or as part of a longer identifier is never reported.
    """
    seen: list[str] = []
    for token in tokenize(text):
        if token.kind is TokenKind.IDENT and token.value not in seen:
            seen.append(token.value)
    return seen
