"""
Recursive-descent parser for rule expressions.

Grammar (lowest precedence first):

    expr        := or_expr
    or_expr     := and_expr ("||" and_expr)*
    and_expr    := not_expr ("&&" not_expr)*
    not_expr    := "!" not_expr | comparison
    comparison  := additive (COMPARE additive)*
    additive    := term (("+" | "-") term)*
    term        := unary (("*" | "/" | "%") unary)*
    unary       := ("-" | "+") unary | primary
    primary     := NUMBER | STRING | BOOLEAN | IDENT | "(" expr ")"

The parser builds an immutable tree; it never executes anything.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Union

from .tokenizer import (
    ExpressionSyntaxError,
    Token,
    TokenKind,
    tokenize,
)


# =============================================================================
# SYNTAX TREE
# =============================================================================

@dataclass(frozen=True)
class Literal:
    value: Any


@dataclass(frozen=True)
class Name:
    identifier: str


@dataclass(frozen=True)
class UnaryOp:
    operator: str
    operand: "Node"


@dataclass(frozen=True)
class BinaryOp:
    operator: str
    left: "Node"
    right: "Node"


@dataclass(frozen=True)
class LogicalOp:
    """Short-circuit ``&&`` / ``||``."""
    operator: str
    left: "Node"
    right: "Node"


Node = Union[Literal, Name, UnaryOp, BinaryOp, LogicalOp]


# Strict spellings are accepted and folded into the plain ones
COMPARISON_ALIASES = {
    "===": "==",
    "!==": "!=",
}

# Bounds keep parsing and tree evaluation well inside the interpreter's
# recursion limit
MAX_NESTING_DEPTH = 32
MAX_EXPRESSION_TOKENS = 512

COMPARISON_OPERATORS = frozenset({"==", "!=", "<", "<=", ">", ">=", "===", "!=="})
ADDITIVE_OPERATORS = frozenset({"+", "-"})
MULTIPLICATIVE_OPERATORS = frozenset({"*", "/", "%"})


# =============================================================================
# PARSER
# =============================================================================

class Parser:
    """Single-use parser over one expression's token stream."""

    def __init__(self, text: str):
        self.text = text
        self.tokens = tokenize(text)
        self.index = 0
        self.depth = 0
        if len(self.tokens) > MAX_EXPRESSION_TOKENS:
            raise ExpressionSyntaxError(
                f"expression is longer than {MAX_EXPRESSION_TOKENS} tokens", text
            )

    def parse(self) -> Node:
        if self._peek().kind is TokenKind.END:
            raise ExpressionSyntaxError("empty expression", self.text, 0)
        node = self._or_expr()
        token = self._peek()
        if token.kind is not TokenKind.END:
            raise ExpressionSyntaxError(
                f"unexpected token {token.value!r}", self.text, token.position
            )
        return node

    # -- token helpers -------------------------------------------------------

    def _peek(self) -> Token:
        return self.tokens[self.index]

    def _advance(self) -> Token:
        token = self.tokens[self.index]
        if token.kind is not TokenKind.END:
            self.index += 1
        return token

    def _match_operator(self, operators: frozenset) -> Optional[str]:
        token = self._peek()
        if token.kind is TokenKind.OPERATOR and token.value in operators:
            self._advance()
            return token.value
        return None

    def _descend(self) -> None:
        self.depth += 1
        if self.depth > MAX_NESTING_DEPTH:
            raise ExpressionSyntaxError(
                f"expression is nested deeper than {MAX_NESTING_DEPTH} levels",
                self.text,
                self._peek().position,
            )

    def _ascend(self) -> None:
        self.depth -= 1

    # -- grammar rules -------------------------------------------------------

    def _or_expr(self) -> Node:
        node = self._and_expr()
        while self._match_operator(frozenset({"||"})):
            node = LogicalOp("||", node, self._and_expr())
        return node

    def _and_expr(self) -> Node:
        node = self._not_expr()
        while self._match_operator(frozenset({"&&"})):
            node = LogicalOp("&&", node, self._not_expr())
        return node

    def _not_expr(self) -> Node:
        if self._match_operator(frozenset({"!"})):
            self._descend()
            node = UnaryOp("!", self._not_expr())
            self._ascend()
            return node
        return self._comparison()

    def _comparison(self) -> Node:
        node = self._additive()
        while True:
            operator = self._match_operator(COMPARISON_OPERATORS)
            if operator is None:
                return node
            operator = COMPARISON_ALIASES.get(operator, operator)
            node = BinaryOp(operator, node, self._additive())

    def _additive(self) -> Node:
        node = self._term()
        while True:
            operator = self._match_operator(ADDITIVE_OPERATORS)
            if operator is None:
                return node
            node = BinaryOp(operator, node, self._term())

    def _term(self) -> Node:
        node = self._unary()
        while True:
            operator = self._match_operator(MULTIPLICATIVE_OPERATORS)
            if operator is None:
                return node
            node = BinaryOp(operator, node, self._unary())

    def _unary(self) -> Node:
        operator = self._match_operator(ADDITIVE_OPERATORS)
        if operator is not None:
            self._descend()
            node = UnaryOp(operator, self._unary())
            self._ascend()
            return node
        return self._primary()

    def _primary(self) -> Node:
        token = self._advance()

        if token.kind in (TokenKind.NUMBER, TokenKind.STRING, TokenKind.BOOLEAN):
            return Literal(token.value)

        if token.kind is TokenKind.IDENT:
            return Name(token.value)

        if token.kind is TokenKind.LPAREN:
            self._descend()
            node = self._or_expr()
            self._ascend()
            closing = self._advance()
            if closing.kind is not TokenKind.RPAREN:
                raise ExpressionSyntaxError("expected ')'", self.text, closing.position)
            return node

        if token.kind is TokenKind.END:
            raise ExpressionSyntaxError("unexpected end of expression", self.text, token.position)

        raise ExpressionSyntaxError(
            f"unexpected token {token.value!r}", self.text, token.position
        )


def parse(text: str) -> Node:
    """
    Parse expression text into a syntax tree.

    Raises:
        ExpressionSyntaxError: If the text does not match the grammar
    """
    return Parser(text).parse()
