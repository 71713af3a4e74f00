"""
Session runner for the DecisionBox CLI.

Loads a catalog (or the built-in sample), opens a session and applies
``name=value`` assignments given on the command line.

The runner is read-only with respect to the catalog: it can only set
values, never change rules.
"""

from __future__ import annotations

from typing import Optional

from ..loader import load_catalog, load_catalog_file
from ..rules.catalog import RuleCatalog
from ..session import DecisionSession, Evaluation


# =============================================================================
# SAMPLE DATA (For Demo Purposes)
# =============================================================================

SAMPLE_CONFIG = {
    "schema_version": 1,
    "variables": [
        {"name": "tipo", "type": "enum", "domain": ["Residencial", "Industrial"]},
        {"name": "potencia", "type": "number"},
    ],
    "outputs": [
        {"name": "A", "description": "Residential connection"},
        {"name": "B", "description": "Industrial connection"},
    ],
    "rules": {
        "A": {
            "inclusion_rules": ['tipo == "Residencial"'],
            "soft_rules": [{"condition": "potencia > 5", "weight": 1.0}],
        },
        "B": {
            "inclusion_rules": ['tipo == "Industrial"'],
        },
    },
}


# =============================================================================
# ASSIGNMENT PARSING
# =============================================================================

class AssignmentSyntaxError(ValueError):
    """Raised when a --set argument is not of the form name=value."""
    pass


def parse_assignments(pairs: Optional[list[str]]) -> dict[str, str]:
    """
    Parse ``name=value`` strings into a raw assignment.

    Values stay raw strings; the session converts them to each
    variable's declared type. Later pairs override earlier ones.
    """
    values: dict[str, str] = {}
    for pair in pairs or []:
        name, sep, value = pair.partition("=")
        name = name.strip()
        if not sep or not name:
            raise AssignmentSyntaxError(f"expected name=value, got {pair!r}")
        values[name] = value.strip()
    return values


# =============================================================================
# SESSION EXECUTION
# =============================================================================

def open_catalog(config_path: Optional[str] = None) -> RuleCatalog:
    """Load the catalog at ``config_path``, or the sample when None."""
    if config_path is None:
        return load_catalog(SAMPLE_CONFIG)
    return load_catalog_file(config_path)


def run_session(
    config_path: Optional[str] = None,
    assignments: Optional[list[str]] = None,
) -> tuple[DecisionSession, Evaluation]:
    """
    Load a catalog, apply assignments and evaluate.

    Raises:
        ConfigurationError: If the catalog is invalid
        ValidationError: If an assigned value is invalid
        AssignmentSyntaxError: If an assignment is malformed
    """
    session = DecisionSession(open_catalog(config_path))
    values = parse_assignments(assignments)
    if values:
        session.set_values(values)
    return session, session.evaluate()
