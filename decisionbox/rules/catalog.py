"""
Rule Catalog for the DecisionBox engine.

The catalog is the loaded, validated configuration: the variable
registry, the ordered output candidates and one rule bundle per output.
It is immutable and shared by every evaluation in a session.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Iterable, Mapping, Optional

from ..domain import ConfigurationError, OutputCandidate, RuleBundle
from ..expression import extract_dependencies
from ..registry import VariableRegistry
from ..validation import validate_expression, weight_problem


class RuleCatalog:
    """
    Variables, outputs and rule bundles, checked for consistency.

    Raises ConfigurationError on construction when an output name is
    duplicated, a bundle names an unknown output, or any rule refers to
    an undeclared variable or does not parse.
    """

    def __init__(
        self,
        registry: VariableRegistry,
        outputs: Iterable[OutputCandidate],
        bundles: Iterable[RuleBundle],
    ):
        self.registry = registry
        self.outputs: tuple[OutputCandidate, ...] = tuple(outputs)

        problems: list[str] = []
        output_names: set[str] = set()
        for output in self.outputs:
            if output.name in output_names:
                problems.append(f"duplicate output name '{output.name}'")
            output_names.add(output.name)

        by_output: dict[str, RuleBundle] = {}
        for bundle in bundles:
            if bundle.output not in output_names:
                problems.append(f"rules '{bundle.output}': output not declared")
            if bundle.output in by_output:
                problems.append(f"rules '{bundle.output}': declared twice")
            by_output[bundle.output] = bundle
            problems.extend(self._check_bundle(bundle))

        if problems:
            raise ConfigurationError(problems)

        self._bundles: Mapping[str, RuleBundle] = MappingProxyType(by_output)

    def _check_bundle(self, bundle: RuleBundle) -> list[str]:
        where = f"rules '{bundle.output}'"
        problems: list[str] = []

        for name in bundle.mandatory_conditions:
            if name not in self.registry:
                problems.append(f"{where}: unknown variable '{name}' in mandatory_conditions")

        for text in bundle.all_rule_texts():
            problems.extend(validate_expression(text, self.registry.names, where))

        for rule in bundle.soft_rules:
            if rule.variable is not None and rule.variable not in self.registry:
                problems.append(f"{where}: unknown soft rule variable '{rule.variable}'")
            reason = weight_problem(rule.weight)
            if reason:
                problems.append(f"{where}: soft rule {rule.condition!r}: {reason}")

        return problems

    def __repr__(self) -> str:
        return (
            f"RuleCatalog(variables={len(self.registry)}, "
            f"outputs={len(self.outputs)}, bundles={len(self._bundles)})"
        )

    @property
    def declared(self) -> frozenset:
        return self.registry.names

    @property
    def bundles(self) -> Mapping[str, RuleBundle]:
        return self._bundles

    def bundle_for(self, output_name: str) -> Optional[RuleBundle]:
        """The output's rule bundle, or None when it has none."""
        return self._bundles.get(output_name)

    def get_output(self, name: str) -> Optional[OutputCandidate]:
        for output in self.outputs:
            if output.name == name:
                return output
        return None

    def dependencies(self, text: str) -> list[str]:
        """Declared variables referenced by one rule expression."""
        return extract_dependencies(text, self.registry.names)
