"""
Relevance Resolver for the DecisionBox engine.

Mandatory fields are static: any variable named by a mandatory
condition, inclusion rule or exclusion rule of any output. Soft rules
never make a field mandatory.

Relevant fields are dynamic: everything already assigned, plus every
variable any rule of a still-feasible output refers to.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

from ..domain import OutputCandidate, RuleBundle
from ..validation import is_empty_value
from .catalog import RuleCatalog

logger = logging.getLogger(__name__)


def hard_rule_fields(catalog: RuleCatalog, bundle: RuleBundle) -> set[str]:
    """Variables referenced by a bundle's mandatory/inclusion/exclusion rules."""
    fields = set(bundle.mandatory_conditions)
    for text in bundle.hard_rule_texts():
        fields.update(catalog.dependencies(text))
    return fields


def bundle_fields(catalog: RuleCatalog, bundle: RuleBundle) -> set[str]:
    """Variables referenced by any rule of a bundle, soft rules included."""
    fields = hard_rule_fields(catalog, bundle)
    for rule in bundle.soft_rules:
        if rule.variable:
            fields.add(rule.variable)
        fields.update(catalog.dependencies(rule.condition))
    return fields


def mandatory_fields(catalog: RuleCatalog) -> frozenset:
    """Union of hard-rule references across every output."""
    fields: set[str] = set()
    for bundle in catalog.bundles.values():
        fields.update(hard_rule_fields(catalog, bundle))

    logger.debug("Mandatory fields: %s", sorted(fields))
    return frozenset(fields)


def relevant_fields(
    catalog: RuleCatalog,
    feasible: Iterable[OutputCandidate],
    assignment: Mapping[str, Any],
) -> frozenset:
    """Assigned variables plus every variable a feasible output depends on."""
    fields = {name for name, value in assignment.items() if value is not None}

    for output in feasible:
        bundle = catalog.bundle_for(output.name)
        if bundle is None:
            continue
        fields.update(bundle_fields(catalog, bundle))

    logger.debug("Relevant fields: %s", sorted(fields))
    return frozenset(fields)


def pending_mandatory_fields(
    catalog: RuleCatalog,
    mandatory: Iterable[str],
    relevant: Iterable[str],
    assignment: Mapping[str, Any],
) -> list[str]:
    """
    Mandatory fields that are visible but still have no value.

    Returned in variable declaration order so the UI can list them
    the way the form shows them.
    """
    mandatory = set(mandatory)
    relevant = set(relevant)
    return [
        name for name in catalog.registry.ordered_names()
        if name in mandatory
        and name in relevant
        and is_empty_value(assignment.get(name))
    ]
