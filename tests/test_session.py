"""
Tests for the decision session.

These tests verify:
1. The end-to-end residential/industrial scenario
2. Invalid values are rejected and leave the assignment unchanged
3. Ranking is withheld while mandatory fields are pending
4. State transitions (LOADED, AWAITING_MANDATORY_INPUT, RANKED, NO_FEASIBLE_OUTPUTS)
"""

import itertools
import math

import pytest

from decisionbox.domain import ValidationError
from decisionbox.session import DecisionSession, SessionState


@pytest.fixture
def sample_session(sample_catalog):
    return DecisionSession(sample_catalog)


@pytest.fixture
def rich_session(rich_catalog):
    return DecisionSession(rich_catalog)


# =============================================================================
# SCENARIO TESTS
# =============================================================================

class TestSampleScenario:
    """Walk through the two-output scenario step by step."""

    def test_initial_state(self, sample_session):
        assert sample_session.state is SessionState.LOADED
        assert sample_session.get_mandatory_fields() == {"tipo"}
        assert sample_session.get_pending_mandatory_fields() == ["tipo"]
        assert sample_session.get_ranked_results() == []

    def test_initial_evaluation_is_awaiting_input(self, sample_session):
        evaluation = sample_session.evaluate()
        assert evaluation.state is SessionState.AWAITING_MANDATORY_INPUT
        assert [o.name for o in evaluation.feasible] == ["A", "B"]
        assert evaluation.recommended is None

    def test_setting_tipo_ranks_single_output(self, sample_session):
        evaluation = sample_session.set_value("tipo", "Residencial")

        assert sample_session.state is SessionState.RANKED
        assert [o.name for o in evaluation.feasible] == ["A"]
        assert evaluation.pending == ()
        assert evaluation.recommended.name == "A"
        assert evaluation.recommended.probability == 1.0

    def test_soft_rule_raises_score(self, sample_session):
        sample_session.set_value("tipo", "Residencial")
        evaluation = sample_session.set_value("potencia", "10")

        assert sample_session.assignment["potencia"] == 10
        assert evaluation.recommended.score == 2.0
        assert evaluation.recommended.probability == 1.0

    def test_switching_tipo_switches_output(self, sample_session):
        sample_session.set_value("tipo", "Residencial")
        evaluation = sample_session.set_value("tipo", "Industrial")

        assert [r.name for r in evaluation.ranked] == ["B"]

    def test_value_outside_domain_rejected(self, sample_session):
        sample_session.set_value("tipo", "Residencial")

        with pytest.raises(ValidationError) as exc_info:
            sample_session.set_value("tipo", "Comercial")

        assert exc_info.value.variable == "tipo"
        assert sample_session.assignment == {"tipo": "Residencial"}
        assert sample_session.state is SessionState.RANKED


# =============================================================================
# MUTATION TESTS
# =============================================================================

class TestMutations:
    """Test set, unset and reset."""

    def test_setting_same_value_is_idempotent(self, sample_session):
        first = sample_session.set_value("tipo", "Residencial")
        second = sample_session.set_value("tipo", "Residencial")
        assert first == second

    def test_unset_returns_to_pending(self, sample_session):
        sample_session.set_value("tipo", "Residencial")
        evaluation = sample_session.unset_value("tipo")

        assert evaluation.state is SessionState.AWAITING_MANDATORY_INPUT
        assert evaluation.pending == ("tipo",)
        assert "tipo" not in sample_session.assignment

    @pytest.mark.parametrize("empty", ["", "   ", None])
    def test_empty_value_unsets(self, sample_session, empty):
        sample_session.set_value("tipo", "Residencial")
        sample_session.set_value("tipo", empty)
        assert "tipo" not in sample_session.assignment

    def test_unknown_variable_rejected(self, sample_session):
        with pytest.raises(ValidationError):
            sample_session.set_value("voltaje", "230")
        with pytest.raises(ValidationError):
            sample_session.unset_value("voltaje")
        with pytest.raises(ValidationError):
            sample_session.set_value("voltaje", "")

    def test_set_values_is_atomic(self, sample_session):
        with pytest.raises(ValidationError):
            sample_session.set_values({"tipo": "Residencial", "potencia": "abc"})

        assert sample_session.assignment == {}
        assert sample_session.state is SessionState.LOADED

    def test_set_values_applies_all(self, sample_session):
        evaluation = sample_session.set_values({"tipo": "Residencial", "potencia": "3.5"})

        assert dict(evaluation.assignment) == {"tipo": "Residencial", "potencia": 3.5}
        assert evaluation.recommended.score == 1.0

    def test_reset_clears_assignment(self, sample_session):
        sample_session.set_values({"tipo": "Residencial", "potencia": "10"})
        evaluation = sample_session.reset()

        assert sample_session.assignment == {}
        assert evaluation.state is SessionState.AWAITING_MANDATORY_INPUT

    def test_assignment_view_is_read_only(self, sample_session):
        with pytest.raises(TypeError):
            sample_session.assignment["tipo"] = "Residencial"

    def test_number_too_large_leaves_assignment_unchanged(self, sample_session):
        sample_session.set_value("tipo", "Residencial")

        with pytest.raises(ValidationError):
            sample_session.set_value("potencia", "1" + "0" * 400)

        assert sample_session.assignment == {"tipo": "Residencial"}
        assert sample_session.state is SessionState.RANKED

    def test_failed_evaluation_keeps_previous_state(self, sample_session, monkeypatch):
        before = sample_session.evaluate()

        def broken_scorer(*args, **kwargs):
            raise RuntimeError("scorer unavailable")

        monkeypatch.setattr("decisionbox.session.score_outputs", broken_scorer)

        with pytest.raises(RuntimeError):
            sample_session.set_value("tipo", "Residencial")
        with pytest.raises(RuntimeError):
            sample_session.set_values({"tipo": "Industrial", "potencia": "3"})

        assert sample_session.assignment == {}
        assert sample_session.evaluate() is before
        assert sample_session.state is SessionState.LOADED


# =============================================================================
# STATE TESTS
# =============================================================================

class TestStates:
    """Test the derived session states on the richer catalog."""

    def test_no_feasible_outputs(self, rich_session):
        evaluation = rich_session.set_values({
            "trifasico": "true",
            "distancia": "150",
            "tipo": "Residencial",
            "zona": "Sur",
        })

        assert evaluation.state is SessionState.NO_FEASIBLE_OUTPUTS
        assert evaluation.feasible == ()
        assert evaluation.ranked == ()

    def test_hidden_mandatory_field_not_required(self, rich_session):
        """distancia only matters to B, which tipo has ruled out."""
        evaluation = rich_session.set_values({
            "zona": "Norte",
            "tipo": "Residencial",
            "trifasico": "false",
        })

        assert evaluation.state is SessionState.RANKED
        assert "distancia" not in evaluation.relevant
        assert [r.name for r in evaluation.ranked] == ["A", "C"]

    def test_pending_blocks_ranking(self, rich_session):
        evaluation = rich_session.set_value("zona", "Norte")

        assert evaluation.state is SessionState.AWAITING_MANDATORY_INPUT
        assert evaluation.pending == ("tipo", "trifasico", "distancia")
        assert evaluation.ranked == ()

    def test_probabilities_always_sum_to_one(self, rich_session):
        grid = itertools.product(
            ["Residencial", "Industrial", "Comercial"],
            ["true", "false"],
            ["0", "30"],
            ["5", "150"],
        )
        for tipo, trifasico, potencia, distancia in grid:
            evaluation = rich_session.set_values({
                "zona": "Norte",
                "tipo": tipo,
                "trifasico": trifasico,
                "potencia": potencia,
                "distancia": distancia,
            })
            if evaluation.state is SessionState.RANKED:
                total = sum(r.probability for r in evaluation.ranked)
                assert math.isclose(total, 1.0, abs_tol=1e-9)
                probabilities = [r.probability for r in evaluation.ranked]
                assert probabilities == sorted(probabilities, reverse=True)

    def test_explain_ruled_out_output(self, rich_session):
        rich_session.set_value("trifasico", True)
        assert rich_session.explain("C") == ["exclusion rule is true: trifasico == true"]
        assert rich_session.explain("A") == []


# =============================================================================
# SNAPSHOT TESTS
# =============================================================================

class TestSnapshot:
    """Test the plain-data snapshot."""

    def test_snapshot_contents(self, sample_session):
        sample_session.set_values({"tipo": "Residencial", "potencia": "10"})
        snapshot = sample_session.snapshot()

        assert snapshot == {
            "state": "ranked",
            "assignment": {"tipo": "Residencial", "potencia": 10},
            "mandatory_fields": ["tipo"],
            "relevant_fields": ["potencia", "tipo"],
            "pending_mandatory_fields": [],
            "feasible_outputs": ["A"],
            "ranked": [{"name": "A", "score": 2.0, "probability": 1.0}],
        }

    def test_snapshot_before_any_value(self, sample_session):
        assert sample_session.snapshot()["state"] == "loaded"
