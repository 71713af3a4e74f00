"""
Three-valued evaluation of rule expressions.

Core principle:
    An expression whose variables are not all assigned yet is
    INDETERMINATE, never FALSE. That is what keeps an output possible
    while the user is still filling in the form.

Failure policy:
    Any parse, type or runtime fault yields FALSE (fail closed) and is
    logged. Faults never reach the caller of ``evaluate``.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import Any, Iterable, Mapping

from .parser import BinaryOp, Literal, LogicalOp, Name, Node, UnaryOp, parse
from .tokenizer import ExpressionEvaluationError, identifiers

logger = logging.getLogger(__name__)


class Truth(Enum):
    """Outcome of evaluating a boolean rule against a partial assignment."""
    TRUE = "definite_true"
    FALSE = "definite_false"
    INDETERMINATE = "indeterminate"

    @classmethod
    def of(cls, value: bool) -> Truth:
        return cls.TRUE if value else cls.FALSE


# =============================================================================
# COMPILATION (parse once, evaluate many)
# =============================================================================

@dataclass(frozen=True)
class CompiledExpression:
    """A parsed rule with its free identifiers, in order of first use."""
    text: str
    tree: Node
    identifiers: tuple[str, ...]

    def dependencies(self, declared: Iterable[str]) -> list[str]:
        """Identifiers of this expression that are declared variables."""
        declared = set(declared)
        return [name for name in self.identifiers if name in declared]


@lru_cache(maxsize=1024)
def compile_expression(text: str) -> CompiledExpression:
    """
    Parse rule text into a reusable CompiledExpression.

    Results are cached per text.

    Raises:
        ExpressionSyntaxError: If the text does not match the grammar
    """
    tree = parse(text)
    return CompiledExpression(text=text, tree=tree, identifiers=tuple(identifiers(text)))


def extract_dependencies(text: str, declared: Iterable[str]) -> list[str]:
    """
    Return the declared variables referenced by an expression.

    Matching is by whole token, so ``potencia`` is not found inside
    ``potencia_total`` or inside a string literal. Identifiers that are
    not declared are left out.

    Raises:
        ExpressionSyntaxError: If the text does not match the grammar
    """
    return compile_expression(text).dependencies(declared)


# =============================================================================
# EVALUATION
# =============================================================================

def evaluate(
    text: str,
    assignment: Mapping[str, Any],
    declared: Iterable[str],
) -> Truth:
    """
    Evaluate a rule against a partial assignment.

    Args:
        text: Rule expression
        assignment: Current variable values (missing or None = unassigned)
        declared: Names of all declared variables

    Returns:
        Truth.INDETERMINATE if any referenced variable is unassigned,
        otherwise TRUE or FALSE. Faults yield FALSE.
    """
    declared = frozenset(declared)
    try:
        compiled = compile_expression(text)
    except ExpressionEvaluationError as e:
        logger.warning("Rule %r could not be parsed, treating as false: %s", text, e)
        return Truth.FALSE

    for name in compiled.dependencies(declared):
        if assignment.get(name) is None:
            return Truth.INDETERMINATE

    try:
        result = evaluate_tree(compiled.tree, assignment, declared)
    except ExpressionEvaluationError as e:
        logger.warning("Rule %r failed to evaluate, treating as false: %s", text, e)
        return Truth.FALSE

    if not isinstance(result, bool):
        logger.warning(
            "Rule %r produced non-boolean %r, treating as false", text, result
        )
        return Truth.FALSE

    return Truth.of(result)


def evaluate_tree(node: Node, assignment: Mapping[str, Any], declared: frozenset) -> Any:
    """
    Walk a syntax tree and compute its value.

    Raises:
        ExpressionEvaluationError: On unknown identifiers, type mismatches
            or arithmetic faults
    """
    if isinstance(node, Literal):
        return node.value

    if isinstance(node, Name):
        if node.identifier not in declared:
            raise ExpressionEvaluationError(f"unknown identifier '{node.identifier}'")
        value = assignment.get(node.identifier)
        if value is None:
            raise ExpressionEvaluationError(f"variable '{node.identifier}' has no value")
        return value

    if isinstance(node, LogicalOp):
        left = _require_bool(evaluate_tree(node.left, assignment, declared), node.operator)
        if node.operator == "&&" and not left:
            return False
        if node.operator == "||" and left:
            return True
        return _require_bool(evaluate_tree(node.right, assignment, declared), node.operator)

    if isinstance(node, UnaryOp):
        operand = evaluate_tree(node.operand, assignment, declared)
        if node.operator == "!":
            return not _require_bool(operand, "!")
        number = _require_number(operand, node.operator)
        return -number if node.operator == "-" else number

    if isinstance(node, BinaryOp):
        left = evaluate_tree(node.left, assignment, declared)
        right = evaluate_tree(node.right, assignment, declared)
        return _apply_binary(node.operator, left, right)

    raise ExpressionEvaluationError(f"unsupported node {node!r}")


# =============================================================================
# OPERATOR SEMANTICS
# =============================================================================

def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _require_bool(value: Any, operator: str) -> bool:
    if not isinstance(value, bool):
        raise ExpressionEvaluationError(f"'{operator}' expects a boolean, got {value!r}")
    return value


def _require_number(value: Any, operator: str) -> float:
    if not _is_number(value):
        raise ExpressionEvaluationError(f"'{operator}' expects a number, got {value!r}")
    return value


def _values_equal(left: Any, right: Any) -> bool:
    # No coercion across types: 1 == "1" and true == 1 are both false
    if _is_number(left) and _is_number(right):
        return left == right
    if type(left) is not type(right):
        return False
    return left == right


def _apply_binary(operator: str, left: Any, right: Any) -> Any:
    if operator == "==":
        return _values_equal(left, right)
    if operator == "!=":
        return not _values_equal(left, right)

    if operator in ("<", "<=", ">", ">="):
        comparable = (
            (_is_number(left) and _is_number(right))
            or (isinstance(left, str) and isinstance(right, str))
        )
        if not comparable:
            raise ExpressionEvaluationError(
                f"cannot order {left!r} and {right!r} with '{operator}'"
            )
        if operator == "<":
            return left < right
        if operator == "<=":
            return left <= right
        if operator == ">":
            return left > right
        return left >= right

    if operator == "+" and isinstance(left, str) and isinstance(right, str):
        return left + right

    left = _require_number(left, operator)
    right = _require_number(right, operator)

    if operator in ("/", "%") and right == 0:
        raise ExpressionEvaluationError(f"division by zero in '{operator}'")

    try:
        if operator == "+":
            result = left + right
        elif operator == "-":
            result = left - right
        elif operator == "*":
            result = left * right
        elif operator == "/":
            result = left / right
        elif operator == "%":
            result = math.fmod(left, right)
        else:
            raise ExpressionEvaluationError(f"unsupported operator '{operator}'")
    except (ArithmeticError, ValueError) as e:
        # Overflow converting huge ints to float, or fmod of an infinity
        raise ExpressionEvaluationError(f"arithmetic fault in '{operator}': {e}")

    if isinstance(result, float) and not math.isfinite(result):
        raise ExpressionEvaluationError(f"non-finite result from '{operator}'")
    return result
