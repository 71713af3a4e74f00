"""
Catalog Loader for the DecisionBox engine.

Builds a RuleCatalog from a configuration document. Loading is the
only step that touches files; everything after it is pure.

Schema versions:
    1 — canonical: variables / outputs / rules with English keys
    0 — legacy files of the original form application
        (entradas / salidas / reglas), migrated to version 1 on load
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Mapping, Union

from .domain import (
    ConfigurationError,
    OutputCandidate,
    RuleBundle,
    SoftRule,
    VariableType,
)
from .registry import VariableRegistry
from .rules.catalog import RuleCatalog
from .validation import validate_configuration, variable_from_entry

logger = logging.getLogger(__name__)


# =============================================================================
# CONFIGURATION CONSTANTS
# =============================================================================

CURRENT_SCHEMA_VERSION = 1
SUPPORTED_SCHEMA_VERSIONS = (0, 1)

LEGACY_TYPES = {
    "booleano": VariableType.BOOLEAN.value,
    "numero": VariableType.NUMBER.value,
    "texto": VariableType.ENUM.value,
}

LEGACY_BUNDLE_KEYS = {
    "condiciones_obligatorias": "mandatory_conditions",
    "reglas_inclusion": "inclusion_rules",
    "reglas_exclusion": "exclusion_rules",
    "reglas_blandas": "soft_rules",
}

LEGACY_SOFT_RULE_KEYS = {
    "condicion": "condition",
    "apoyo": "weight",
    "variable": "variable",
}


# =============================================================================
# SCHEMA MIGRATION
# =============================================================================

def detect_schema_version(document: Mapping[str, Any]) -> int:
    """Explicit ``schema_version`` wins; legacy keys imply version 0."""
    if "schema_version" in document:
        version = document["schema_version"]
        if version not in SUPPORTED_SCHEMA_VERSIONS or isinstance(version, bool):
            raise ConfigurationError(f"unsupported schema_version {version!r}")
        return version
    if "entradas" in document:
        return 0
    return CURRENT_SCHEMA_VERSION


def migrate_legacy_document(document: Mapping[str, Any]) -> dict:
    """
    Translate a version 0 document into the canonical schema.

    Unknown keys, and sections of the wrong shape, are carried over
    untouched so validation can report them.
    """
    entradas = document.get("entradas")
    salidas = document.get("salidas")
    reglas = document.get("reglas", {})

    return {
        "schema_version": CURRENT_SCHEMA_VERSION,
        "variables": _migrate_variables(entradas) if isinstance(entradas, list) else entradas,
        "outputs": _migrate_outputs(salidas) if isinstance(salidas, list) else salidas,
        "rules": _migrate_rules(reglas) if isinstance(reglas, dict) else reglas,
    }


def _migrate_variables(entradas: list) -> list:
    variables = []
    for entry in entradas:
        if not isinstance(entry, dict):
            variables.append(entry)
            continue
        legacy_type = entry.get("tipo")
        variable = {
            "name": entry.get("nombre"),
            "type": LEGACY_TYPES.get(legacy_type, legacy_type)
            if isinstance(legacy_type, str) else legacy_type,
        }
        if entry.get("opciones"):
            variable["domain"] = entry["opciones"]
        variables.append(variable)
    return variables


def _migrate_outputs(salidas: list) -> list:
    outputs = []
    for entry in salidas:
        if not isinstance(entry, dict):
            outputs.append(entry)
            continue
        outputs.append({
            "name": entry.get("nombre"),
            "description": entry.get("descripcion", ""),
        })
    return outputs


def _migrate_rules(reglas: dict) -> dict:
    rules = {}
    for output_name, bundle in reglas.items():
        if not isinstance(bundle, dict):
            rules[output_name] = bundle
            continue
        migrated = {LEGACY_BUNDLE_KEYS.get(key, key): value for key, value in bundle.items()}
        soft_rules = migrated.get("soft_rules")
        if isinstance(soft_rules, list):
            migrated["soft_rules"] = [
                {LEGACY_SOFT_RULE_KEYS.get(k, k): v for k, v in rule.items()}
                if isinstance(rule, dict) else rule
                for rule in soft_rules
            ]
        rules[output_name] = migrated
    return rules


# =============================================================================
# CATALOG CONSTRUCTION
# =============================================================================

def load_catalog(document: Mapping[str, Any]) -> RuleCatalog:
    """
    Validate a configuration document and build the catalog.

    Raises:
        ConfigurationError: With every problem found in the document
    """
    if not isinstance(document, Mapping):
        raise ConfigurationError("configuration must be an object")

    version = detect_schema_version(document)
    if version == 0:
        logger.info("Migrating legacy configuration (schema version 0)")
        document = migrate_legacy_document(document)

    problems = validate_configuration(document)
    if problems:
        raise ConfigurationError(problems)

    outputs_doc = document["outputs"]
    rules_doc = document.get("rules", {})
    output_names = [entry["name"] for entry in outputs_doc]

    catalog = RuleCatalog(
        registry=VariableRegistry(variable_from_entry(entry) for entry in document["variables"]),
        outputs=[_build_output(entry) for entry in outputs_doc],
        bundles=[_build_bundle(name, bundle) for name, bundle in rules_doc.items()],
    )

    missing = [name for name in output_names if catalog.bundle_for(name) is None]
    if missing:
        logger.warning("Outputs without rules can never be feasible: %s", missing)

    logger.info("Loaded %r", catalog)
    return catalog


def _build_output(entry: Mapping[str, Any]) -> OutputCandidate:
    return OutputCandidate(name=entry["name"], description=entry.get("description", ""))


def _build_bundle(output_name: str, bundle: Mapping[str, Any]) -> RuleBundle:
    conditions = {
        name: frozenset(expected) if isinstance(expected, list) else expected
        for name, expected in bundle.get("mandatory_conditions", {}).items()
    }
    soft_rules = tuple(
        SoftRule(
            condition=rule["condition"],
            weight=rule.get("weight"),
            variable=rule.get("variable"),
        )
        for rule in bundle.get("soft_rules", [])
    )
    return RuleBundle(
        output=output_name,
        mandatory_conditions=conditions,
        inclusion_rules=tuple(bundle.get("inclusion_rules", [])),
        exclusion_rules=tuple(bundle.get("exclusion_rules", [])),
        soft_rules=soft_rules,
    )


# =============================================================================
# FILE LOADING
# =============================================================================

def _read_json(path: Union[str, Path]) -> Any:
    path = Path(path)
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        raise ConfigurationError(f"configuration file not found: {path}")
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"{path}: invalid JSON ({e})")


def load_catalog_file(path: Union[str, Path]) -> RuleCatalog:
    """Load a catalog from a single JSON document."""
    return load_catalog(_read_json(path))


def load_catalog_files(
    variables_path: Union[str, Path],
    outputs_path: Union[str, Path],
    rules_path: Union[str, Path],
) -> RuleCatalog:
    """
    Load a catalog split over three JSON files.

    The three-file layout is the original application's; the key
    names inside the files decide the schema version.
    """
    variables = _read_json(variables_path)
    outputs = _read_json(outputs_path)
    rules = _read_json(rules_path)

    if _looks_legacy(variables):
        document = {"entradas": variables, "salidas": outputs, "reglas": rules}
    else:
        document = {
            "schema_version": CURRENT_SCHEMA_VERSION,
            "variables": variables,
            "outputs": outputs,
            "rules": rules,
        }
    return load_catalog(document)


def _looks_legacy(variables: Any) -> bool:
    return (
        isinstance(variables, list)
        and bool(variables)
        and isinstance(variables[0], dict)
        and "nombre" in variables[0]
    )
