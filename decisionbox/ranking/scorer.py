"""
Output Scorer for the DecisionBox engine.

Core principle:
    Every probability must be decomposable into the soft rules that
    produced it.

Score composition:
    score       = BASE_SCORE + sum of applied soft rule weights
    probability = softmax(score) over the feasible outputs

Ranking is by probability, highest first. Ties keep declaration order.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Sequence

from ..domain import OutputCandidate
from ..rules.catalog import RuleCatalog
from .components import SoftRuleContribution, compute_soft_rule_contributions

logger = logging.getLogger(__name__)


# =============================================================================
# CONFIGURATION CONSTANTS
# =============================================================================

# Every feasible output starts from the same score
BASE_SCORE = 1.0


# =============================================================================
# SCORE RESULT
# =============================================================================

@dataclass
class ScoreResult:
    """
    A feasible output with its ranking information.

    Contains:
    - Output name and description
    - Accumulated score and normalized probability
    - Soft rule breakdown (fully transparent)
    """
    name: str
    description: str
    score: float
    probability: float = 0.0
    contributions: list[SoftRuleContribution] = field(default_factory=list)

    def get_applied_contributions(self) -> list[SoftRuleContribution]:
        """Soft rules that changed the score."""
        return [c for c in self.contributions if c.applied]

    def get_explanation(self) -> str:
        return generate_explanation(self)


# =============================================================================
# SOFTMAX
# =============================================================================

def softmax(scores: Sequence[float]) -> list[float]:
    """
    Normalize scores into probabilities that sum to 1.

    The maximum is subtracted first so large weights cannot overflow.
    """
    if not scores:
        return []
    peak = max(scores)
    exponentials = [math.exp(score - peak) for score in scores]
    total = math.fsum(exponentials)
    return [value / total for value in exponentials]


# =============================================================================
# SCORER
# =============================================================================

def score_output(
    catalog: RuleCatalog,
    output: OutputCandidate,
    assignment: Mapping[str, Any],
) -> ScoreResult:
    """Accumulate one output's score. Probability is filled in by score_outputs."""
    bundle = catalog.bundle_for(output.name)
    contributions = (
        compute_soft_rule_contributions(bundle, assignment, catalog.declared)
        if bundle is not None else []
    )
    score = BASE_SCORE + math.fsum(c.contribution for c in contributions)

    return ScoreResult(
        name=output.name,
        description=output.description,
        score=score,
        contributions=contributions,
    )


def score_outputs(
    catalog: RuleCatalog,
    feasible: Iterable[OutputCandidate],
    assignment: Mapping[str, Any],
) -> list[ScoreResult]:
    """
    Score and rank feasible outputs.

    Args:
        catalog: Loaded rule catalog
        feasible: Output candidates that passed the feasibility filter
        assignment: Current variable values

    Returns:
        ScoreResults sorted by probability (highest first); index 0 is
        the recommended output. Empty when there is nothing to rank.
    """
    results = [score_output(catalog, output, assignment) for output in feasible]
    if not results:
        return []

    probabilities = softmax([result.score for result in results])
    for result, probability in zip(results, probabilities):
        result.probability = probability

    # Stable sort: equal probabilities keep declaration order
    results.sort(key=lambda r: r.probability, reverse=True)

    logger.debug(
        "Ranked outputs: %s",
        [(r.name, round(r.probability, 4)) for r in results],
    )
    return results


# =============================================================================
# EXPLANATION GENERATION
# =============================================================================

def generate_explanation(result: ScoreResult) -> str:
    """
    Generate a plain-text explanation of one output's ranking.

    This answers: "Why does this output have this probability?"
    """
    lines = [
        f"{result.name}: probability {result.probability:.1%} (score {result.score:g})",
    ]
    if result.description:
        lines.append(f"  {result.description}")

    lines.append("")
    lines.append("Score breakdown:")
    lines.append(f"- base score (+{BASE_SCORE:g})")
    for contribution in result.contributions:
        lines.append(f"- {contribution.reason}")

    if not result.contributions:
        lines.append("- no soft rules defined")

    return "\n".join(lines)


def generate_short_explanation(result: ScoreResult) -> str:
    """One-line summary for quick scanning."""
    applied = result.get_applied_contributions()
    if applied:
        strongest = max(applied, key=lambda c: c.contribution)
        return f"{result.name} ({result.probability:.0%}) - {strongest.reason}"
    return f"{result.name} ({result.probability:.0%}) - base score only"
