"""
Feasibility Filter for the DecisionBox engine.

An output stays feasible unless the current assignment definitely
rules it out:

    1. an assigned variable violates one of its mandatory conditions
    2. an inclusion rule is definitely false
    3. an exclusion rule is definitely true

Unassigned variables never disqualify anything. An output without a
rule bundle is never feasible. Declaration order is preserved.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping, Optional

from ..domain import OutputCandidate, RuleBundle, condition_matches
from ..expression import Truth, evaluate
from .catalog import RuleCatalog

logger = logging.getLogger(__name__)


# =============================================================================
# PER-RULE CHECKS
# =============================================================================

def satisfies_mandatory_conditions(bundle: RuleBundle, assignment: Mapping[str, Any]) -> bool:
    """True unless an assigned variable fails its required value(s)."""
    return not violated_mandatory_conditions(bundle, assignment)


def violated_mandatory_conditions(
    bundle: RuleBundle,
    assignment: Mapping[str, Any],
) -> list[str]:
    """Names of assigned variables that fail their mandatory condition."""
    violated = []
    for name, expected in bundle.mandatory_conditions.items():
        actual = assignment.get(name)
        if actual is None:
            continue
        if not condition_matches(expected, actual):
            violated.append(name)
    return violated


def failed_inclusion_rules(
    bundle: RuleBundle,
    assignment: Mapping[str, Any],
    declared: Iterable[str],
) -> list[str]:
    """Inclusion rules that are definitely false."""
    declared = frozenset(declared)
    return [
        text for text in bundle.inclusion_rules
        if evaluate(text, assignment, declared) is Truth.FALSE
    ]


def triggered_exclusion_rules(
    bundle: RuleBundle,
    assignment: Mapping[str, Any],
    declared: Iterable[str],
) -> list[str]:
    """Exclusion rules that are definitely true."""
    declared = frozenset(declared)
    return [
        text for text in bundle.exclusion_rules
        if evaluate(text, assignment, declared) is Truth.TRUE
    ]


def is_feasible(
    bundle: Optional[RuleBundle],
    assignment: Mapping[str, Any],
    declared: Iterable[str],
) -> bool:
    """Check one output's bundle against the assignment."""
    if bundle is None:
        return False

    declared = frozenset(declared)

    if not satisfies_mandatory_conditions(bundle, assignment):
        return False

    for text in bundle.inclusion_rules:
        if evaluate(text, assignment, declared) is Truth.FALSE:
            return False

    for text in bundle.exclusion_rules:
        if evaluate(text, assignment, declared) is Truth.TRUE:
            return False

    return True


# =============================================================================
# FILTER
# =============================================================================

def feasible_outputs(
    catalog: RuleCatalog,
    assignment: Mapping[str, Any],
    outputs: Optional[Iterable[OutputCandidate]] = None,
) -> list[OutputCandidate]:
    """
    Filter outputs down to those still possible.

    Args:
        catalog: Loaded rule catalog
        assignment: Current (possibly partial) variable values
        outputs: Candidates to filter, defaults to every catalog output

    Returns:
        Feasible outputs in declaration order
    """
    candidates = catalog.outputs if outputs is None else tuple(outputs)
    feasible = [
        output for output in candidates
        if is_feasible(catalog.bundle_for(output.name), assignment, catalog.declared)
    ]

    logger.debug("Feasible outputs: %s", [output.name for output in feasible])
    return feasible


def explain_infeasibility(
    catalog: RuleCatalog,
    output_name: str,
    assignment: Mapping[str, Any],
) -> list[str]:
    """
    List every reason an output is currently ruled out.

    Returns an empty list when the output is feasible.
    """
    bundle = catalog.bundle_for(output_name)
    if bundle is None:
        return [f"{output_name} has no rule bundle"]

    reasons = []
    for name in violated_mandatory_conditions(bundle, assignment):
        expected = bundle.mandatory_conditions[name]
        if isinstance(expected, frozenset):
            allowed = ", ".join(sorted(map(str, expected)))
            reasons.append(f"{name} = {assignment[name]!r} is not one of: {allowed}")
        else:
            reasons.append(f"{name} = {assignment[name]!r} but {expected!r} is required")

    for text in failed_inclusion_rules(bundle, assignment, catalog.declared):
        reasons.append(f"inclusion rule is false: {text}")

    for text in triggered_exclusion_rules(bundle, assignment, catalog.declared):
        reasons.append(f"exclusion rule is true: {text}")

    return reasons
