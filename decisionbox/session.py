"""
Decision Session for the DecisionBox engine.

The session is the explicit context object the UI talks to. It owns
the Assignment and recomputes everything synchronously after each
mutation:

    set/unset value -> feasibility -> relevance -> pending check -> ranking

State machine:
    LOADED -> (mutation) -> AWAITING_MANDATORY_INPUT | RANKED | NO_FEASIBLE_OUTPUTS
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional

from .domain import OutputCandidate
from .ranking.scorer import ScoreResult, score_outputs
from .rules.catalog import RuleCatalog
from .rules.feasibility import explain_infeasibility, feasible_outputs
from .rules.relevance import mandatory_fields, pending_mandatory_fields, relevant_fields
from .validation import is_empty_value

logger = logging.getLogger(__name__)


class SessionState(Enum):
    """Where the session stands after the latest recomputation."""
    LOADED = "loaded"
    AWAITING_MANDATORY_INPUT = "awaiting_mandatory_input"
    RANKED = "ranked"
    NO_FEASIBLE_OUTPUTS = "no_feasible_outputs"


@dataclass(frozen=True)
class Evaluation:
    """
    Everything derived from one assignment.

    ``ranked`` is empty unless the state is RANKED.
    """
    state: SessionState
    assignment: Mapping[str, Any]
    feasible: tuple[OutputCandidate, ...]
    relevant: frozenset
    mandatory: frozenset
    pending: tuple[str, ...]
    ranked: tuple[ScoreResult, ...]

    @property
    def recommended(self) -> Optional[ScoreResult]:
        return self.ranked[0] if self.ranked else None


class DecisionSession:
    """
    One user's evaluation session over a loaded catalog.

    The catalog is shared and immutable; the assignment belongs to this
    session alone and only changes through set/unset/reset.
    """

    def __init__(self, catalog: RuleCatalog):
        self.catalog = catalog
        self._assignment: dict[str, Any] = {}
        self._mandatory = mandatory_fields(catalog)
        self._mutated = False
        self._evaluation = self._compute(self._assignment)

    # -- mutations -----------------------------------------------------------

    def set_value(self, name: str, raw: Any) -> Evaluation:
        """
        Validate and assign one value. An empty raw value unsets the variable.

        Raises:
            ValidationError: If the name is unknown or the value is invalid;
                the assignment is left unchanged
        """
        if is_empty_value(raw):
            return self.unset_value(name)

        value = self.catalog.registry.coerce(name, raw)
        assignment = dict(self._assignment)
        assignment[name] = value
        logger.debug("Set %s = %r", name, value)
        return self._commit(assignment)

    def set_values(self, values: Mapping[str, Any]) -> Evaluation:
        """
        Assign several values at once.

        All values are validated before any is stored, so a rejected
        value leaves the whole assignment unchanged.
        """
        staged: dict[str, Any] = {}
        cleared: list[str] = []
        for name, raw in values.items():
            if is_empty_value(raw):
                self.catalog.registry.require(name)
                cleared.append(name)
            else:
                staged[name] = self.catalog.registry.coerce(name, raw)

        assignment = dict(self._assignment)
        for name in cleared:
            assignment.pop(name, None)
        assignment.update(staged)
        logger.debug("Set %d values, cleared %d", len(staged), len(cleared))
        return self._commit(assignment)

    def unset_value(self, name: str) -> Evaluation:
        """Remove a variable's value. Unknown names raise ValidationError."""
        self.catalog.registry.require(name)
        assignment = dict(self._assignment)
        assignment.pop(name, None)
        logger.debug("Unset %s", name)
        return self._commit(assignment)

    def reset(self) -> Evaluation:
        """Clear the whole assignment."""
        logger.debug("Session reset")
        return self._commit({})

    # -- queries -------------------------------------------------------------

    @property
    def assignment(self) -> Mapping[str, Any]:
        return MappingProxyType(self._assignment)

    @property
    def state(self) -> SessionState:
        """LOADED until the first mutation, then the latest evaluation's state."""
        if not self._mutated:
            return SessionState.LOADED
        return self._evaluation.state

    def evaluate(self) -> Evaluation:
        return self._evaluation

    def get_feasible_outputs(self) -> list[OutputCandidate]:
        return list(self._evaluation.feasible)

    def get_relevant_fields(self) -> frozenset:
        return self._evaluation.relevant

    def get_mandatory_fields(self) -> frozenset:
        return self._mandatory

    def get_pending_mandatory_fields(self) -> list[str]:
        return list(self._evaluation.pending)

    def get_ranked_results(self) -> list[ScoreResult]:
        """Ranked feasible outputs; empty while mandatory input is pending."""
        return list(self._evaluation.ranked)

    def explain(self, output_name: str) -> list[str]:
        """Reasons an output is not feasible right now (empty if it is)."""
        return explain_infeasibility(self.catalog, output_name, self._assignment)

    def snapshot(self) -> dict:
        """Plain copy of the assignment and derived sets."""
        evaluation = self._evaluation
        return {
            "state": self.state.value,
            "assignment": dict(self._assignment),
            "mandatory_fields": sorted(self._mandatory),
            "relevant_fields": sorted(evaluation.relevant),
            "pending_mandatory_fields": list(evaluation.pending),
            "feasible_outputs": [output.name for output in evaluation.feasible],
            "ranked": [
                {"name": r.name, "score": r.score, "probability": r.probability}
                for r in evaluation.ranked
            ],
        }

    # -- recomputation -------------------------------------------------------

    def _commit(self, assignment: dict[str, Any]) -> Evaluation:
        """
        Evaluate a staged assignment, then adopt both together.

        If evaluation raises, the session keeps its previous assignment
        and evaluation.
        """
        evaluation = self._compute(assignment)
        self._assignment = assignment
        self._evaluation = evaluation
        self._mutated = True
        logger.debug("Session state: %s", evaluation.state.value)
        return evaluation

    def _compute(self, assignment: Mapping[str, Any]) -> Evaluation:
        assignment = dict(assignment)
        feasible = feasible_outputs(self.catalog, assignment)
        relevant = relevant_fields(self.catalog, feasible, assignment)
        pending = pending_mandatory_fields(self.catalog, self._mandatory, relevant, assignment)

        ranked: list[ScoreResult] = []
        if pending:
            state = SessionState.AWAITING_MANDATORY_INPUT
        elif not feasible:
            state = SessionState.NO_FEASIBLE_OUTPUTS
        else:
            ranked = score_outputs(self.catalog, feasible, assignment)
            state = SessionState.RANKED

        return Evaluation(
            state=state,
            assignment=MappingProxyType(assignment),
            feasible=tuple(feasible),
            relevant=relevant,
            mandatory=self._mandatory,
            pending=tuple(pending),
            ranked=tuple(ranked),
        )
