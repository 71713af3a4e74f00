"""
Scoring Components for the DecisionBox engine.

Each soft rule of a feasible output is one component. A component
only contributes when its condition is definitely true; indeterminate
and false conditions add nothing.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional

from ..domain import RuleBundle, SoftRule
from ..expression import Truth, evaluate


# =============================================================================
# CONFIGURATION CONSTANTS
# =============================================================================

# Weight used by soft rules that do not declare one
DEFAULT_SOFT_RULE_WEIGHT = 0.0


# =============================================================================
# COMPONENT SCORES
# =============================================================================

@dataclass(frozen=True)
class SoftRuleContribution:
    """
    One soft rule's effect on an output's score.

    Exposes:
    - condition: The rule text
    - weight: Points the rule is worth when it holds
    - truth: How the condition evaluated
    - contribution: Points actually added (weight or 0)
    - variable: Subject field, when the rule names one
    """
    condition: str
    weight: float
    truth: Truth
    contribution: float
    variable: Optional[str] = None

    @property
    def applied(self) -> bool:
        return self.truth is Truth.TRUE

    @property
    def reason(self) -> str:
        if self.truth is Truth.TRUE:
            sign = "+" if self.contribution >= 0 else ""
            return f"{self.condition} holds ({sign}{self.contribution:g})"
        if self.truth is Truth.INDETERMINATE:
            return f"{self.condition} cannot be decided yet (+0)"
        return f"{self.condition} does not hold (+0)"


def compute_soft_rule_contribution(
    rule: SoftRule,
    assignment: Mapping[str, Any],
    declared: Iterable[str],
) -> SoftRuleContribution:
    """Evaluate one soft rule and work out what it adds."""
    weight = DEFAULT_SOFT_RULE_WEIGHT if rule.weight is None else float(rule.weight)
    truth = evaluate(rule.condition, assignment, declared)

    return SoftRuleContribution(
        condition=rule.condition,
        weight=weight,
        truth=truth,
        contribution=weight if truth is Truth.TRUE else 0.0,
        variable=rule.variable,
    )


def compute_soft_rule_contributions(
    bundle: RuleBundle,
    assignment: Mapping[str, Any],
    declared: Iterable[str],
) -> list[SoftRuleContribution]:
    """All soft rule components of a bundle, in declaration order."""
    declared = frozenset(declared)
    return [
        compute_soft_rule_contribution(rule, assignment, declared)
        for rule in bundle.soft_rules
    ]
