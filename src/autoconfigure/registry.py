"""
Registry of named conditions.

Conditions whose logic does not fit an atomic fact query (for example the
dispatcher or embedded-database checks) are plain functions registered
here and referenced from condition trees by name.

A condition function takes a SnapshotView and returns an Outcome or a bool.
"""

from typing import Callable, Dict, List, Optional, Set, Union, Any
from dataclasses import dataclass, field
from functools import wraps
import inspect
import logging

from src.autoconfigure.errors import (
    ConditionAlreadyRegisteredError,
    ConditionEvaluationError,
    ConditionNotFoundError,
    InvalidConditionSignatureError,
)
from src.autoconfigure.messages import ConditionMessage, Outcome
from src.autoconfigure.snapshot import SnapshotView

logger = logging.getLogger(__name__)

ConditionFunc = Callable[[SnapshotView], Union[Outcome, bool]]


@dataclass
class ConditionMetadata:
    """
    Metadata for a registered condition.

    Attributes:
        name: Unique name of the condition
        description: Human-readable description
        func: The condition function
        queries: Fact kinds the condition reads (documentation only)
        category: Category for grouping related conditions
    """
    name: str
    description: str
    func: ConditionFunc
    queries: Set[str] = field(default_factory=set)
    category: str = "general"


class ConditionRegistry:
    """
    Registry of named conditions.

    Example:
        registry = ConditionRegistry("builtin")

        @registry.condition("jndi_reachable", category="external")
        def jndi_reachable(view: SnapshotView) -> bool:
            return view.external_capability("jndi")

        outcome = registry.evaluate("jndi_reachable", view)
    """

    def __init__(self, name: str, allow_overwrite: bool = False):
        self.name = name
        self.allow_overwrite = allow_overwrite
        self._conditions: Dict[str, ConditionMetadata] = {}
        self._categories: Dict[str, List[str]] = {}

    def condition(
        self,
        name: str,
        description: str = "",
        queries: Set[str] = None,
        category: str = "general"
    ) -> Callable[[ConditionFunc], ConditionFunc]:
        """
        Decorator for registering a condition.

        Raises:
            ConditionAlreadyRegisteredError: If condition already exists
            InvalidConditionSignatureError: If function signature is invalid
        """
        def decorator(func: ConditionFunc) -> ConditionFunc:
            self._validate_signature(name, func)

            if name in self._conditions and not self.allow_overwrite:
                raise ConditionAlreadyRegisteredError(name, self.name)

            metadata = ConditionMetadata(
                name=name,
                description=description or inspect.getdoc(func) or "",
                func=func,
                queries=set(queries or ()),
                category=category
            )
            self._conditions[name] = metadata

            if category not in self._categories:
                self._categories[category] = []
            if name not in self._categories[category]:
                self._categories[category].append(name)

            @wraps(func)
            def wrapper(view: SnapshotView) -> Union[Outcome, bool]:
                return func(view)

            wrapper._condition_name = name  # type: ignore
            wrapper._registry = self.name  # type: ignore
            wrapper._metadata = metadata  # type: ignore

            return wrapper

        return decorator

    def _validate_signature(self, name: str, func: ConditionFunc) -> None:
        if not callable(func):
            raise InvalidConditionSignatureError(name, "condition must be callable")
        params = list(inspect.signature(func).parameters.values())
        if len(params) != 1:
            raise InvalidConditionSignatureError(
                name,
                f"must accept exactly one parameter, got {len(params)}"
            )

    def register(
        self,
        name: str,
        func: ConditionFunc,
        description: str = "",
        queries: Set[str] = None,
        category: str = "general"
    ) -> None:
        """Register a condition programmatically (non-decorator style)."""
        self.condition(name, description, queries, category)(func)

    def unregister(self, name: str) -> bool:
        """
        Remove a condition from the registry.

        Returns:
            True if condition was removed, False if it didn't exist
        """
        if name not in self._conditions:
            return False

        metadata = self._conditions.pop(name)
        names = self._categories.get(metadata.category, [])
        if name in names:
            names.remove(name)
            if not names:
                del self._categories[metadata.category]
        return True

    def evaluate(self, name: str, view: SnapshotView) -> Outcome:
        """
        Evaluate a named condition.

        Raises:
            ConditionNotFoundError: If condition doesn't exist
            ConditionEvaluationError: If the condition function raises
        """
        metadata = self._conditions.get(name)
        if metadata is None:
            raise ConditionNotFoundError(name, self.name)

        try:
            result = metadata.func(view)
        except Exception as e:
            raise ConditionEvaluationError(name, e, self.name) from e

        if isinstance(result, Outcome):
            return result
        message = ConditionMessage.for_condition(name)
        if result:
            return Outcome.match(message.because("matched"))
        return Outcome.no_match(message.because("did not match"))

    def get(self, name: str) -> Optional[ConditionMetadata]:
        """Get metadata for a condition."""
        return self._conditions.get(name)

    def has(self, name: str) -> bool:
        return name in self._conditions

    def list_all(self) -> List[str]:
        return list(self._conditions.keys())

    def list_by_category(self, category: str) -> List[str]:
        return list(self._categories.get(category, []))

    def get_categories(self) -> List[str]:
        return list(self._categories.keys())

    def get_documentation(self) -> str:
        """
        Generate documentation for all conditions in the registry.

        Returns:
            Markdown-formatted documentation string
        """
        lines = [f"# {self.name.replace('_', ' ').title()} Conditions\n"]
        lines.append(f"Total conditions: {len(self._conditions)}\n")

        for category in sorted(self._categories.keys()):
            lines.append(f"\n## {category.title()}\n")
            for name in sorted(self._categories[category]):
                meta = self._conditions[name]
                lines.append(f"### `{name}`")
                if meta.description:
                    lines.append(f"\n{meta.description}")
                if meta.queries:
                    lines.append(f"\n**Queries:** {', '.join(sorted(meta.queries))}")
                lines.append("")

        return "\n".join(lines)

    def get_stats(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "total_conditions": len(self._conditions),
            "total_categories": len(self._categories),
            "conditions_by_category": {
                cat: len(names) for cat, names in self._categories.items()
            }
        }

    def __len__(self) -> int:
        return len(self._conditions)

    def __contains__(self, name: str) -> bool:
        return name in self._conditions

    def __repr__(self) -> str:
        return (
            f"ConditionRegistry(name={self.name!r}, "
            f"conditions={len(self._conditions)})"
        )
