"""
Tests for value coercion and catalog validation.

These tests verify:
1. Raw UI values are converted to the declared type or rejected
2. Every catalog problem is reported, not just the first
3. Rules may only reference declared variables
"""

import math

import pytest

from decisionbox.domain import (
    ConfigurationError,
    ValidationError,
    Variable,
    VariableType,
    condition_matches,
)
from decisionbox.registry import VariableRegistry

from .conftest import make_config
from decisionbox.validation import (
    MAX_SOFT_RULE_WEIGHT,
    coerce_value,
    describe_invalid_value,
    is_empty_value,
    is_valid_value,
    validate_configuration,
    validate_outputs,
    validate_rules,
    validate_variables,
    weight_problem,
)


TIPO = Variable("tipo", VariableType.ENUM, ("Residencial", "Industrial"))
POTENCIA = Variable("potencia", VariableType.NUMBER)
TRIFASICO = Variable("trifasico", VariableType.BOOLEAN)

VARIABLES = {v.name: v for v in (TIPO, POTENCIA, TRIFASICO)}


# =============================================================================
# VALUE COERCION TESTS
# =============================================================================

class TestBooleanCoercion:
    """Test conversion of boolean field values."""

    def test_native_booleans(self):
        assert coerce_value(TRIFASICO, True) is True
        assert coerce_value(TRIFASICO, False) is False

    def test_string_booleans_case_insensitive(self):
        assert coerce_value(TRIFASICO, "true") is True
        assert coerce_value(TRIFASICO, "FALSE") is False

    @pytest.mark.parametrize("raw", ["maybe", 1, 0, "yes"])
    def test_other_values_rejected(self, raw):
        with pytest.raises(ValidationError) as exc_info:
            coerce_value(TRIFASICO, raw)
        assert exc_info.value.variable == "trifasico"


class TestNumberCoercion:
    """Test conversion of numeric field values."""

    def test_numbers_and_numeric_strings(self):
        assert coerce_value(POTENCIA, 3) == 3
        assert coerce_value(POTENCIA, 2.5) == 2.5
        assert coerce_value(POTENCIA, "5.5") == 5.5
        assert coerce_value(POTENCIA, " 10 ") == 10

    @pytest.mark.parametrize("raw", ["abc", True, "nan", "inf", math.inf, [1]])
    def test_non_numbers_rejected(self, raw):
        with pytest.raises(ValidationError):
            coerce_value(POTENCIA, raw)

    @pytest.mark.parametrize("raw", [10 ** 400, "1" + "0" * 400])
    def test_numbers_too_large_for_a_float_rejected(self, raw):
        with pytest.raises(ValidationError) as exc_info:
            coerce_value(POTENCIA, raw)
        assert "too large" in exc_info.value.reason


class TestEnumCoercion:
    """Test conversion of enumerated field values."""

    def test_domain_member_accepted(self):
        assert coerce_value(TIPO, "Residencial") == "Residencial"

    def test_value_outside_domain_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            coerce_value(TIPO, "Comercial")
        assert "Residencial, Industrial" in exc_info.value.reason

    def test_empty_values(self):
        assert is_empty_value(None)
        assert is_empty_value("  ")
        assert not is_empty_value(0)
        with pytest.raises(ValidationError):
            coerce_value(TIPO, "")

    def test_is_valid_value_does_not_raise(self):
        assert is_valid_value(TIPO, "Industrial")
        assert not is_valid_value(TIPO, "Comercial")

    def test_describe_invalid_value(self):
        assert "number" in describe_invalid_value(POTENCIA, "x")
        assert "true or false" in describe_invalid_value(TRIFASICO, "x")


# =============================================================================
# DOMAIN TESTS
# =============================================================================

class TestDomain:
    """Test domain object invariants."""

    def test_enum_requires_domain(self):
        with pytest.raises(ConfigurationError):
            Variable("tipo", VariableType.ENUM)

    def test_registry_rejects_duplicates(self):
        with pytest.raises(ConfigurationError):
            VariableRegistry([POTENCIA, POTENCIA])

    def test_registry_lookup(self):
        registry = VariableRegistry([TIPO, POTENCIA])
        assert registry.ordered_names() == ["tipo", "potencia"]
        assert "tipo" in registry
        assert registry.coerce("potencia", "4") == 4
        with pytest.raises(ValidationError):
            registry.require("missing")

    def test_condition_matches_equality_and_membership(self):
        assert condition_matches("Norte", "Norte")
        assert not condition_matches("Norte", "Sur")
        assert condition_matches(frozenset({"Norte", "Sur"}), "Sur")
        assert not condition_matches(frozenset({"Norte"}), "Sur")

    def test_condition_matches_never_mixes_booleans_and_numbers(self):
        assert not condition_matches(True, 1)
        assert not condition_matches(1, True)
        assert condition_matches(True, True)

    def test_configuration_error_collects_problems(self):
        error = ConfigurationError(["first", "second"])
        assert error.problems == ["first", "second"]
        assert "2 configuration problems" in str(error)


# =============================================================================
# CATALOG VALIDATION TESTS
# =============================================================================

class TestVariableValidation:
    """Test validation of declared variables."""

    def test_valid_variables(self):
        problems = validate_variables([
            {"name": "tipo", "type": "enum", "domain": ["a", "b"]},
            {"name": "potencia", "type": "number"},
        ])
        assert problems == []

    def test_all_problems_reported(self):
        problems = validate_variables([
            {"name": "tipo", "type": "enum"},
            {"name": "tipo", "type": "number"},
            {"name": "x", "type": "texto"},
            {"name": "and", "type": "boolean"},
            {"type": "number"},
        ])
        assert len(problems) == 5
        assert any("duplicate name 'tipo'" in p for p in problems)
        assert any("invalid type 'texto'" in p for p in problems)
        assert any("not a valid identifier" in p for p in problems)

    def test_empty_list_rejected(self):
        assert validate_variables([]) == ["variables must be a non-empty list"]

    def test_domain_values_must_be_text(self):
        problems = validate_variables([{"name": "nivel", "type": "enum", "domain": [1, 2]}])
        assert problems == ["variable 0: domain values must be text"]

    def test_unhashable_type_reported(self):
        problems = validate_variables([{"name": "nivel", "type": ["enum"]}])
        assert problems == ["variable 0: invalid type ['enum']"]


class TestOutputValidation:
    """Test validation of the output catalog."""

    def test_duplicate_output_rejected(self):
        problems = validate_outputs([{"name": "A"}, {"name": "A"}])
        assert problems == ["output 1: duplicate name 'A'"]

    def test_missing_name_rejected(self):
        assert validate_outputs([{"description": "x"}]) == ["output 0: missing name"]


class TestRuleValidation:
    """Test validation of rule bundles."""

    def test_valid_bundle(self):
        rules = {
            "A": {
                "mandatory_conditions": {"tipo": ["Residencial"]},
                "inclusion_rules": ["potencia > 5"],
                "exclusion_rules": ["trifasico"],
                "soft_rules": [{"condition": "potencia > 10", "weight": 1.5, "variable": "potencia"}],
            }
        }
        assert validate_rules(rules, VARIABLES, ["A"]) == []

    def test_unknown_variable_in_expression(self):
        rules = {"A": {"inclusion_rules": ["voltaje > 5"]}}
        problems = validate_rules(rules, VARIABLES, ["A"])
        assert problems == ["rules 'A' inclusion_rules[0]: unknown variable 'voltaje'"]

    def test_unparsable_expression(self):
        problems = validate_rules({"A": {"exclusion_rules": ["potencia >"]}}, VARIABLES, ["A"])
        assert len(problems) == 1
        assert "exclusion_rules[0]" in problems[0]

    def test_rules_for_unknown_output(self):
        problems = validate_rules({"Z": {}}, VARIABLES, ["A"])
        assert problems == ["rules 'Z': output not declared"]

    def test_mandatory_condition_problems(self):
        rules = {
            "A": {
                "mandatory_conditions": {
                    "zona": "Norte",
                    "tipo": "Comercial",
                    "potencia": "5",
                    "trifasico": [],
                },
            }
        }
        problems = validate_rules(rules, VARIABLES, ["A"])
        assert len(problems) == 4

    def test_soft_rule_problems(self):
        rules = {
            "A": {
                "soft_rules": [
                    {"condition": "potencia > 5", "weight": "high"},
                    {"condition": "potencia > 5", "variable": "voltaje"},
                    {"weight": 1.0},
                    {"condition": "potencia > 5", "apoyo": 1.0},
                ],
            }
        }
        problems = validate_rules(rules, VARIABLES, ["A"])
        assert len(problems) == 4

    def test_missing_weight_is_allowed(self):
        rules = {"A": {"soft_rules": [{"condition": "potencia > 5"}]}}
        assert validate_rules(rules, VARIABLES, ["A"]) == []

    def test_unknown_bundle_key(self):
        problems = validate_rules({"A": {"reglas_inclusion": []}}, VARIABLES, ["A"])
        assert problems == ["rules 'A': unknown key 'reglas_inclusion'"]


class TestSoftRuleWeights:
    """Test the bounds on soft rule weights."""

    @pytest.mark.parametrize("weight", [None, 0, -2.5, MAX_SOFT_RULE_WEIGHT, -MAX_SOFT_RULE_WEIGHT])
    def test_usable_weights(self, weight):
        assert weight_problem(weight) is None

    @pytest.mark.parametrize("weight", ["high", True, [1.0]])
    def test_non_numbers(self, weight):
        assert weight_problem(weight).startswith("weight must be a number")

    @pytest.mark.parametrize("weight", [math.inf, -math.inf, math.nan])
    def test_non_finite(self, weight):
        assert weight_problem(weight) == "weight must be a finite number"

    @pytest.mark.parametrize("weight", [1e308, -1e7, 10 ** 400])
    def test_out_of_range(self, weight):
        assert weight_problem(weight) == "weight must be between -1e+06 and 1e+06"

    def test_huge_weights_rejected_in_rules(self):
        rules = {
            "A": {
                "soft_rules": [
                    {"condition": "potencia > 5", "weight": 1e308},
                    {"condition": "potencia > 6", "weight": 1e308},
                ],
            }
        }
        problems = validate_rules(rules, VARIABLES, ["A"])
        assert len(problems) == 2
        assert all("weight must be between" in p for p in problems)


class TestConfigurationValidation:
    """Test validation of a whole canonical document."""

    def test_valid_document(self):
        assert validate_configuration(make_config()) == []

    def test_variable_problems_stop_rule_checks(self):
        config = make_config()
        config["variables"][0]["domain"] = []
        config["rules"]["Z"] = {"inclusion_rules": ["voltaje > 1"]}

        problems = validate_configuration(config)

        assert problems == ["variable 0: enum type requires a non-empty domain"]

    def test_rule_problems_reported(self):
        config = make_config()
        config["rules"]["A"]["inclusion_rules"].append("voltaje > 1")
        config["rules"]["Z"] = {}

        assert len(validate_configuration(config)) == 2

    def test_missing_sections(self):
        problems = validate_configuration({})
        assert problems == [
            "variables must be a non-empty list",
            "outputs must be a non-empty list",
        ]

    def test_missing_rules_section_is_allowed(self):
        config = make_config()
        del config["rules"]
        assert validate_configuration(config) == []
