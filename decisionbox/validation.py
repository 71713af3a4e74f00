"""
Validation Logic for the DecisionBox engine.

Two gates live here:

1. Value gate: a raw value coming from the UI is converted to its
   variable's declared type or rejected with a ValidationError. The
   assignment is never touched by a rejected value.

2. Catalog gate: a configuration document (canonical schema) is
   checked as a whole. Every problem is collected so the author can
   fix them in one pass; the loader turns a non-empty list into a
   ConfigurationError.
"""

from __future__ import annotations

import math
from typing import Any, Iterable, Mapping, Optional

from .domain import ValidationError, Variable, VariableType
from .expression import ExpressionEvaluationError, compile_expression
from .expression.tokenizer import RESERVED_WORDS


# =============================================================================
# CONFIGURATION CONSTANTS
# =============================================================================

TRUE_STRINGS = frozenset({"true"})
FALSE_STRINGS = frozenset({"false"})

RULE_BUNDLE_KEYS = frozenset({
    "mandatory_conditions",
    "inclusion_rules",
    "exclusion_rules",
    "soft_rules",
})

SOFT_RULE_KEYS = frozenset({"condition", "weight", "variable"})

# Soft rule weights are bounded so any sum of them stays finite
MAX_SOFT_RULE_WEIGHT = 1e6


# =============================================================================
# VALUE COERCION
# =============================================================================

def is_empty_value(raw: Any) -> bool:
    """An empty form value means 'no value', not an invalid one."""
    return raw is None or (isinstance(raw, str) and raw.strip() == "")


def coerce_value(variable: Variable, raw: Any) -> Any:
    """
    Convert a raw value to the variable's declared type.

    Returns:
        bool for boolean variables, int/float for numbers, str for enums

    Raises:
        ValidationError: If the value cannot represent the declared type
            or lies outside the enumerated domain
    """
    if is_empty_value(raw):
        raise ValidationError(variable.name, raw, f"{variable.name} requires a value")

    if variable.type is VariableType.BOOLEAN:
        return _coerce_boolean(variable, raw)
    if variable.type is VariableType.NUMBER:
        return _coerce_number(variable, raw)
    return _coerce_enum(variable, raw)


def _coerce_boolean(variable: Variable, raw: Any) -> bool:
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, str):
        lowered = raw.strip().lower()
        if lowered in TRUE_STRINGS:
            return True
        if lowered in FALSE_STRINGS:
            return False
    raise ValidationError(variable.name, raw, describe_invalid_value(variable, raw))


def _coerce_number(variable: Variable, raw: Any) -> float:
    if isinstance(raw, bool):
        raise ValidationError(variable.name, raw, describe_invalid_value(variable, raw))

    if isinstance(raw, (int, float)):
        number = raw
    elif isinstance(raw, str):
        text = raw.strip()
        try:
            number = int(text)
        except ValueError:
            try:
                number = float(text)
            except ValueError:
                raise ValidationError(
                    variable.name, raw, describe_invalid_value(variable, raw)
                )
    else:
        raise ValidationError(variable.name, raw, describe_invalid_value(variable, raw))

    if isinstance(number, int):
        try:
            float(number)
        except OverflowError:
            raise ValidationError(variable.name, raw, f"{variable.name} is too large")

    if isinstance(number, float) and not math.isfinite(number):
        raise ValidationError(variable.name, raw, f"{variable.name} must be a finite number")
    return number


def _coerce_enum(variable: Variable, raw: Any) -> str:
    if isinstance(raw, bool) or not isinstance(raw, (str, int, float)):
        raise ValidationError(variable.name, raw, describe_invalid_value(variable, raw))
    text = str(raw)
    if text not in variable.domain:
        raise ValidationError(variable.name, raw, describe_invalid_value(variable, raw))
    return text


def is_valid_value(variable: Variable, raw: Any) -> bool:
    """Check a raw value without raising."""
    try:
        coerce_value(variable, raw)
    except ValidationError:
        return False
    return True


def describe_invalid_value(variable: Variable, raw: Any) -> str:
    """Human-readable reason a raw value is rejected."""
    if is_empty_value(raw):
        return f"{variable.name} requires a value"
    if variable.type is VariableType.BOOLEAN:
        return f"{variable.name} must be true or false, got {raw!r}"
    if variable.type is VariableType.NUMBER:
        return f"{variable.name} must be a valid number, got {raw!r}"
    return f"{variable.name} must be one of: {', '.join(variable.domain)} (got {raw!r})"


# =============================================================================
# CATALOG VALIDATION
# =============================================================================

def validate_variables(variables: Any) -> list[str]:
    """Check declared variables: unique names, known types, enum domains."""
    if not isinstance(variables, list) or not variables:
        return ["variables must be a non-empty list"]

    problems: list[str] = []
    seen: set[str] = set()
    known_types = {t.value for t in VariableType}

    for index, entry in enumerate(variables):
        if not isinstance(entry, dict):
            problems.append(f"variable {index}: must be an object")
            continue

        name = entry.get("name")
        var_type = entry.get("type")

        if not name or not isinstance(name, str):
            problems.append(f"variable {index}: missing name")
        elif not name.isidentifier() or name in RESERVED_WORDS:
            problems.append(f"variable {index}: '{name}' is not a valid identifier")
        elif name in seen:
            problems.append(f"variable {index}: duplicate name '{name}'")
        else:
            seen.add(name)

        if not isinstance(var_type, str) or var_type not in known_types:
            problems.append(f"variable {index}: invalid type {var_type!r}")
        elif var_type == VariableType.ENUM.value:
            domain = entry.get("domain")
            if not isinstance(domain, list) or not domain:
                problems.append(f"variable {index}: enum type requires a non-empty domain")
            elif not all(isinstance(value, str) for value in domain):
                problems.append(f"variable {index}: domain values must be text")
            elif len(set(domain)) != len(domain):
                problems.append(f"variable {index}: domain contains duplicates")

    return problems


def validate_outputs(outputs: Any) -> list[str]:
    """Check the output catalog: unique, non-empty names."""
    if not isinstance(outputs, list) or not outputs:
        return ["outputs must be a non-empty list"]

    problems: list[str] = []
    seen: set[str] = set()

    for index, entry in enumerate(outputs):
        if not isinstance(entry, dict):
            problems.append(f"output {index}: must be an object")
            continue
        name = entry.get("name")
        if not name or not isinstance(name, str):
            problems.append(f"output {index}: missing name")
        elif name in seen:
            problems.append(f"output {index}: duplicate name '{name}'")
        else:
            seen.add(name)
        description = entry.get("description", "")
        if not isinstance(description, str):
            problems.append(f"output {index}: description must be text")

    return problems


def validate_expression(
    text: Any,
    declared: Iterable[str],
    where: str,
) -> list[str]:
    """Check that rule text parses and only names declared variables."""
    if not isinstance(text, str) or not text.strip():
        return [f"{where}: expression must be non-empty text"]
    try:
        compiled = compile_expression(text)
    except ExpressionEvaluationError as e:
        return [f"{where}: {e}"]

    declared = set(declared)
    return [
        f"{where}: unknown variable '{name}'"
        for name in compiled.identifiers
        if name not in declared
    ]


def validate_rules(
    rules: Any,
    variables: dict[str, Variable],
    output_names: Iterable[str],
) -> list[str]:
    """
    Check every rule bundle against the declared variables and outputs.

    Args:
        rules: Mapping output name -> bundle (canonical keys)
        variables: Declared variables by name
        output_names: Declared output names
    """
    if not isinstance(rules, dict):
        return ["rules must be an object keyed by output name"]

    problems: list[str] = []
    outputs = set(output_names)

    for output_name, bundle in rules.items():
        where = f"rules '{output_name}'"
        if output_name not in outputs:
            problems.append(f"{where}: output not declared")
        if not isinstance(bundle, dict):
            problems.append(f"{where}: bundle must be an object")
            continue

        for key in sorted(set(bundle) - RULE_BUNDLE_KEYS):
            problems.append(f"{where}: unknown key '{key}'")

        problems.extend(_validate_mandatory_conditions(
            bundle.get("mandatory_conditions", {}), variables, where
        ))

        for key in ("inclusion_rules", "exclusion_rules"):
            expressions = bundle.get(key, [])
            if not isinstance(expressions, list):
                problems.append(f"{where}: {key} must be a list")
                continue
            for index, text in enumerate(expressions):
                problems.extend(validate_expression(text, variables, f"{where} {key}[{index}]"))

        problems.extend(_validate_soft_rules(bundle.get("soft_rules", []), variables, where))

    return problems


def _validate_mandatory_conditions(
    conditions: Any,
    variables: dict[str, Variable],
    where: str,
) -> list[str]:
    if not isinstance(conditions, dict):
        return [f"{where}: mandatory_conditions must be an object"]

    problems: list[str] = []
    for name, expected in conditions.items():
        variable = variables.get(name)
        if variable is None:
            problems.append(f"{where}: unknown variable '{name}' in mandatory_conditions")
            continue

        values = expected if isinstance(expected, list) else [expected]
        if not values:
            problems.append(f"{where}: mandatory condition on '{name}' allows no values")
        for value in values:
            reason = _expected_value_problem(variable, value)
            if reason:
                problems.append(f"{where}: mandatory condition on '{name}': {reason}")

    return problems


def _expected_value_problem(variable: Variable, value: Any) -> Optional[str]:
    if variable.type is VariableType.BOOLEAN and not isinstance(value, bool):
        return f"expected a boolean, got {value!r}"
    if variable.type is VariableType.NUMBER and (
        isinstance(value, bool)
        or not isinstance(value, (int, float))
        or (isinstance(value, float) and not math.isfinite(value))
    ):
        return f"expected a number, got {value!r}"
    if variable.type is VariableType.ENUM and value not in variable.domain:
        return f"{value!r} is not in the domain"
    return None


def _validate_soft_rules(
    soft_rules: Any,
    variables: dict[str, Variable],
    where: str,
) -> list[str]:
    if not isinstance(soft_rules, list):
        return [f"{where}: soft_rules must be a list"]

    problems: list[str] = []
    for index, rule in enumerate(soft_rules):
        rule_where = f"{where} soft_rules[{index}]"
        if not isinstance(rule, dict):
            problems.append(f"{rule_where}: must be an object")
            continue

        for key in sorted(set(rule) - SOFT_RULE_KEYS):
            problems.append(f"{rule_where}: unknown key '{key}'")

        problems.extend(validate_expression(rule.get("condition"), variables, rule_where))

        reason = weight_problem(rule.get("weight"))
        if reason:
            problems.append(f"{rule_where}: {reason}")

        subject = rule.get("variable")
        if subject is not None and (not isinstance(subject, str) or subject not in variables):
            problems.append(f"{rule_where}: unknown variable '{subject}'")

    return problems


def weight_problem(weight: Any) -> Optional[str]:
    """Reason a soft rule weight is unusable, or None. A missing weight is fine."""
    if weight is None:
        return None
    if isinstance(weight, bool) or not isinstance(weight, (int, float)):
        return f"weight must be a number, got {weight!r}"
    if isinstance(weight, float) and not math.isfinite(weight):
        return "weight must be a finite number"
    if abs(weight) > MAX_SOFT_RULE_WEIGHT:
        return f"weight must be between -{MAX_SOFT_RULE_WEIGHT:g} and {MAX_SOFT_RULE_WEIGHT:g}"
    return None


# =============================================================================
# WHOLE-DOCUMENT VALIDATION
# =============================================================================

def variable_from_entry(entry: Mapping[str, Any]) -> Variable:
    """Build a Variable from an already validated declaration."""
    var_type = VariableType(entry["type"])
    return Variable(
        name=entry["name"],
        type=var_type,
        domain=tuple(entry.get("domain") or ()) if var_type is VariableType.ENUM else (),
    )


def validate_configuration(document: Mapping[str, Any]) -> list[str]:
    """
    Check a canonical configuration document as a whole.

    Variables and outputs are checked first; rules are only checked
    once those are sound, since every rule is read against them.

    Returns:
        Every problem found (empty when the document is valid)
    """
    variables_doc = document.get("variables")
    outputs_doc = document.get("outputs")

    problems = validate_variables(variables_doc)
    problems.extend(validate_outputs(outputs_doc))
    if problems:
        return problems

    variables = {
        entry["name"]: variable_from_entry(entry) for entry in variables_doc
    }
    output_names = [entry["name"] for entry in outputs_doc]
    return validate_rules(document.get("rules", {}), variables, output_names)
