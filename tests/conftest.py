"""
Shared catalogs for the DecisionBox test suite.

SAMPLE_CONFIG is the two-output residential/industrial scenario.
RICH_CONFIG exercises every rule kind:

    A: zona must be Norte, tipo must be Residencial, soft bonus on potencia
    B: zona Norte or Sur, tipo Industrial or Comercial, excluded when
       distancia > 100, soft bonus when trifasico
    C: excluded when trifasico, soft rule about presupuesto with no weight
    D: declared but has no rule bundle
"""

import copy

import pytest

from decisionbox.cli.runner import SAMPLE_CONFIG
from decisionbox.loader import load_catalog


RICH_CONFIG = {
    "schema_version": 1,
    "variables": [
        {"name": "tipo", "type": "enum", "domain": ["Residencial", "Industrial", "Comercial"]},
        {"name": "potencia", "type": "number"},
        {"name": "trifasico", "type": "boolean"},
        {"name": "distancia", "type": "number"},
        {"name": "zona", "type": "enum", "domain": ["Norte", "Sur"]},
        {"name": "presupuesto", "type": "number"},
    ],
    "outputs": [
        {"name": "A", "description": "Overhead residential supply"},
        {"name": "B", "description": "Underground commercial supply"},
        {"name": "C", "description": "Single-phase extension"},
        {"name": "D", "description": "Unconfigured option"},
    ],
    "rules": {
        "A": {
            "mandatory_conditions": {"zona": "Norte"},
            "inclusion_rules": ['tipo == "Residencial"'],
            "soft_rules": [{"condition": "potencia > 5", "weight": 1.0}],
        },
        "B": {
            "mandatory_conditions": {"zona": ["Norte", "Sur"]},
            "inclusion_rules": ['tipo == "Industrial" || tipo == "Comercial"'],
            "exclusion_rules": ["distancia > 100"],
            "soft_rules": [{"condition": "trifasico", "weight": 2.0}],
        },
        "C": {
            "exclusion_rules": ["trifasico == true"],
            "soft_rules": [{"condition": "potencia > 20", "variable": "presupuesto"}],
        },
    },
}


def make_config(base: dict = RICH_CONFIG) -> dict:
    """Deep copy of a config so tests can mutate it freely."""
    return copy.deepcopy(base)


@pytest.fixture
def sample_catalog():
    return load_catalog(make_config(SAMPLE_CONFIG))


@pytest.fixture
def rich_catalog():
    return load_catalog(make_config())
