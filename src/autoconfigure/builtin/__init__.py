"""
Built-in module families.

Importing this package registers every built-in named condition in
``builtin_registry``.

Usage:
    from src.autoconfigure.builtin import builtin_modules, builtin_conditions

    resolver = ActivationResolver(builtin_modules(), provider, builtin_conditions())
"""

from typing import List

from src.autoconfigure.modules import ModuleDescriptor
from src.autoconfigure.registry import ConditionRegistry
from src.autoconfigure.builtin.registry import (
    builtin_registry,
    builtin_condition,
    get_builtin_registry,
)
from src.autoconfigure.builtin import cache, datasource, dispatch, jms


FAMILIES = (dispatch, datasource, cache, jms)


def builtin_modules() -> List[ModuleDescriptor]:
    """Fresh descriptors for every built-in module, family by family."""
    result: List[ModuleDescriptor] = []
    for family in FAMILIES:
        result.extend(family.modules())
    return result


def builtin_conditions() -> ConditionRegistry:
    return builtin_registry


__all__ = [
    "builtin_registry",
    "builtin_condition",
    "get_builtin_registry",
    "builtin_modules",
    "builtin_conditions",
    "FAMILIES",
]
