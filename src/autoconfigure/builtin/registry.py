"""
Condition registry shared by the built-in module families.

Families register their named conditions here at import time.
"""

from typing import Callable, Set

from src.autoconfigure.registry import ConditionFunc, ConditionRegistry


builtin_registry = ConditionRegistry("builtin")


def builtin_condition(
    name: str,
    description: str = "",
    queries: Set[str] = None,
    category: str = "general"
) -> Callable[[ConditionFunc], ConditionFunc]:
    """
    Decorator for registering a built-in condition.

    Example:
        @builtin_condition("default_dispatcher_servlet", category="dispatch")
        def default_dispatcher_servlet(view: SnapshotView) -> Outcome:
            ...
    """
    return builtin_registry.condition(
        name=name,
        description=description,
        queries=queries,
        category=category
    )


def get_builtin_registry() -> ConditionRegistry:
    return builtin_registry


__all__ = [
    "builtin_registry",
    "builtin_condition",
    "get_builtin_registry",
]
