# Expression package for the DecisionBox engine
"""
Small-grammar rule expressions: tokenizer, recursive-descent parser
and three-valued tree-walking evaluator.

Rule text is never executed as code.
"""

from .evaluator import (
    CompiledExpression,
    Truth,
    compile_expression,
    evaluate,
    extract_dependencies,
)
from .tokenizer import ExpressionEvaluationError, ExpressionSyntaxError

__all__ = [
    "CompiledExpression",
    "ExpressionEvaluationError",
    "ExpressionSyntaxError",
    "Truth",
    "compile_expression",
    "evaluate",
    "extract_dependencies",
]
