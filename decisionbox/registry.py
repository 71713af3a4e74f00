"""
Variable Registry for the DecisionBox engine.

Holds the declared input variables in declaration order.
Immutable after load.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Iterable, Iterator, Mapping, Optional

from .domain import ConfigurationError, ValidationError, Variable
from .validation import coerce_value


class VariableRegistry:
    """Ordered, read-only collection of declared variables."""

    def __init__(self, variables: Iterable[Variable]):
        by_name: dict[str, Variable] = {}
        duplicates: list[str] = []

        for variable in variables:
            if variable.name in by_name:
                duplicates.append(f"duplicate variable name '{variable.name}'")
            by_name[variable.name] = variable

        if duplicates:
            raise ConfigurationError(duplicates)

        self._variables: Mapping[str, Variable] = MappingProxyType(by_name)
        self._names = frozenset(by_name)

    def __contains__(self, name: object) -> bool:
        return name in self._variables

    def __iter__(self) -> Iterator[Variable]:
        return iter(self._variables.values())

    def __len__(self) -> int:
        return len(self._variables)

    def __repr__(self) -> str:
        return f"VariableRegistry({list(self._variables)})"

    @property
    def names(self) -> frozenset:
        """All declared names, for expression dependency matching."""
        return self._names

    def ordered_names(self) -> list[str]:
        return list(self._variables)

    def get(self, name: str) -> Optional[Variable]:
        return self._variables.get(name)

    def require(self, name: str) -> Variable:
        """
        Look up a variable that must exist.

        Raises:
            ValidationError: If the name is not declared
        """
        variable = self._variables.get(name)
        if variable is None:
            raise ValidationError(name, None, f"unknown variable '{name}'")
        return variable

    def coerce(self, name: str, raw: Any) -> Any:
        """Validate and convert a raw value for the named variable."""
        return coerce_value(self.require(name), raw)
