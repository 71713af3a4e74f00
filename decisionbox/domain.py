"""
Core Domain Objects for the DecisionBox engine.

All domain objects are immutable once the catalog has been loaded.
Only the Assignment (owned by the session) ever changes.

Domain Objects:
    Variable         — A declared, typed input field
    OutputCandidate  — A candidate solution that can be recommended
    SoftRule         — A weighted, non-disqualifying heuristic
    RuleBundle       — The complete rule set attached to one output
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union


# =============================================================================
# ERRORS
# =============================================================================

class ConfigurationError(Exception):
    """
    Raised when the loaded catalog is malformed.

    Fatal at load time: no evaluation proceeds until it is resolved.
    Carries every problem found, not just the first one.
    """

    def __init__(self, problems: Union[str, list[str]]):
        if isinstance(problems, str):
            problems = [problems]
        self.problems = list(problems)
        if len(self.problems) == 1:
            message = self.problems[0]
        else:
            message = f"{len(self.problems)} configuration problems: " + "; ".join(self.problems)
        super().__init__(message)


class ValidationError(Exception):
    """Raised when an assigned value violates its variable's type or domain."""

    def __init__(self, variable: str, value: Any, reason: str):
        self.variable = variable
        self.value = value
        self.reason = reason
        super().__init__(f"[{variable}] {reason}")


# =============================================================================
# VARIABLES
# =============================================================================

class VariableType(Enum):
    """The three supported input types."""
    BOOLEAN = "boolean"
    NUMBER = "number"
    ENUM = "enum"


@dataclass(frozen=True)
class Variable:
    """
    A declared input variable.

    Enumerated variables carry their finite allowed-value set in
    ``domain``; other types leave it empty.
    """
    name: str
    type: VariableType
    domain: tuple[str, ...] = ()

    def __post_init__(self):
        if not self.name:
            raise ConfigurationError("variable name is required")
        if self.type is VariableType.ENUM and not self.domain:
            raise ConfigurationError(
                f"variable '{self.name}' is enumerated but declares no domain"
            )


# =============================================================================
# OUTPUTS
# =============================================================================

@dataclass(frozen=True)
class OutputCandidate:
    """A candidate solution. Declared once, never modified."""
    name: str
    description: str = ""

    def __post_init__(self):
        if not self.name:
            raise ConfigurationError("output name is required")


# =============================================================================
# RULES
# =============================================================================

# Expected value of a mandatory condition: a single value or an allowed set
ExpectedValue = Union[str, float, bool, frozenset]


@dataclass(frozen=True)
class SoftRule:
    """
    A weighted heuristic that only ever adjusts an output's score.

    ``variable`` optionally names the subject field the rule is about,
    which keeps that field visible even when the condition text does not
    mention it. A missing weight counts as 0 when scoring.
    """
    condition: str
    weight: Optional[float] = None
    variable: Optional[str] = None


@dataclass(frozen=True)
class RuleBundle:
    """
    All rules attached to one output.

    mandatory_conditions: variable -> required value (or set of values)
    inclusion_rules:      disqualify when any is definitely false
    exclusion_rules:      disqualify when any is definitely true
    soft_rules:           score-only adjustments
    """
    output: str
    mandatory_conditions: dict[str, ExpectedValue] = field(default_factory=dict)
    inclusion_rules: tuple[str, ...] = ()
    exclusion_rules: tuple[str, ...] = ()
    soft_rules: tuple[SoftRule, ...] = ()

    def hard_rule_texts(self) -> list[str]:
        """Inclusion and exclusion expressions, in declaration order."""
        return list(self.inclusion_rules) + list(self.exclusion_rules)

    def all_rule_texts(self) -> list[str]:
        """Every expression in the bundle, soft conditions included."""
        return self.hard_rule_texts() + [rule.condition for rule in self.soft_rules]


def condition_matches(expected: ExpectedValue, actual: Any) -> bool:
    """
    Check an assigned value against a mandatory condition.

    A set of expected values means membership; anything else is equality.
    Booleans never match numbers (``True == 1`` is not accepted).
    """
    if isinstance(expected, frozenset):
        return any(_strict_equals(candidate, actual) for candidate in expected)
    return _strict_equals(expected, actual)


def _strict_equals(left: Any, right: Any) -> bool:
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right
    return left == right
