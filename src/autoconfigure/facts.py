"""
Facts about the runtime environment.

This module defines the contract (port) the activation engine consumes
and an in-memory implementation used by tests, the YAML loader and the CLI:

- FactKind / FactQuery: immutable description of a point query
- ComponentDescriptor: metadata of a registered component (never a live object)
- FactProvider: protocol answering point queries
- StaticFactProvider: dict-backed provider with ${placeholder} property resolution
"""

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
import logging
import re
from typing import (
    Any, Dict, FrozenSet, Iterable, Mapping, Optional, Protocol, Tuple,
    runtime_checkable,
)

logger = logging.getLogger(__name__)


class FactKind(str, Enum):
    """Kinds of point queries the engine can issue."""
    TYPE_AVAILABLE = "type_available"
    PROPERTY_VALUE = "property_value"
    COMPONENT_PRESENT = "component_present"
    EXTERNAL_CAPABILITY = "external_capability"


@dataclass(frozen=True)
class FactQuery:
    """
    A pure lookup against the environment.

    Used as the cache key for memoized queries, so parameters must be
    hashable.

    Attributes:
        kind: What is being asked
        parameters: Positional query parameters (e.g. the type name)
    """
    kind: FactKind
    parameters: Tuple[Any, ...] = ()

    def __str__(self) -> str:
        params = ", ".join(str(p) for p in self.parameters)
        return f"{self.kind.value}({params})"


@dataclass(frozen=True)
class ComponentDescriptor:
    """
    Metadata for a component known to the environment.

    Attributes:
        name: Unique component name
        type_name: The component's declared type
        extra_types: Further types the component is assignable to
        primary: Whether the component is marked primary among its type
        declared: Has definition metadata (visible during the definition phase)
        instantiated: A constructed singleton exists for it
        origin: Module id that contributed it, None for pre-existing components
    """
    name: str
    type_name: str
    extra_types: Tuple[str, ...] = ()
    primary: bool = False
    declared: bool = True
    instantiated: bool = False
    origin: Optional[str] = None

    @property
    def types(self) -> Tuple[str, ...]:
        return (self.type_name,) + tuple(self.extra_types)

    def is_type(self, type_name: str) -> bool:
        """Check whether the component is assignable to ``type_name``."""
        return type_name in self.types


@runtime_checkable
class FactProvider(Protocol):
    """
    Port: answers point queries about the environment.

    Implementations must be side-effect free. ``property_value`` fails soft,
    returning None when the value cannot be resolved.
    """

    def type_available(self, name: str) -> bool:
        ...

    def component_named(self, name: str) -> Optional[ComponentDescriptor]:
        ...

    def components_of_type(
        self,
        type_name: str,
        include_non_primary: bool = True,
        force_instantiate: bool = False,
    ) -> FrozenSet[str]:
        ...

    def property_value(self, key: str) -> Optional[str]:
        ...

    def external_capability(self, name: str) -> bool:
        ...


class PropertyResolutionError(Exception):
    """Raised internally when a ${placeholder} cannot be resolved."""

    def __init__(self, key: str, placeholder: str):
        self.key = key
        self.placeholder = placeholder
        super().__init__(
            f"Could not resolve placeholder '{placeholder}' in value of '{key}'"
        )


_PLACEHOLDER = re.compile(r"\$\{([^}]*)\}")


class StaticFactProvider:
    """
    In-memory FactProvider.

    Property values may contain ``${other.key}`` or ``${other.key:default}``
    placeholders. A value with an unresolvable placeholder is reported as
    present by ``has_property`` but ``property_value`` returns None.

    Example:
        provider = StaticFactProvider(
            types={"org.h2.Driver"},
            properties={"datasource.url": "${db.url:}"},
            components=[ComponentDescriptor("dataSource", "javax.sql.DataSource")],
            capabilities={"jndi"},
        )
    """

    def __init__(
        self,
        types: Iterable[str] = (),
        properties: Optional[Mapping[str, Any]] = None,
        components: Iterable[ComponentDescriptor] = (),
        capabilities: Iterable[str] = (),
    ):
        self._types = frozenset(types)
        self._properties: Dict[str, str] = {
            key: "" if value is None else str(value)
            for key, value in (properties or {}).items()
        }
        self._components: Dict[str, ComponentDescriptor] = {}
        for component in components:
            self._components[component.name] = component
        self._capabilities = frozenset(capabilities)
        self.lookup_counts: Counter = Counter()

    def type_available(self, name: str) -> bool:
        self.lookup_counts[FactKind.TYPE_AVAILABLE] += 1
        return name in self._types

    def component_named(self, name: str) -> Optional[ComponentDescriptor]:
        self.lookup_counts[FactKind.COMPONENT_PRESENT] += 1
        return self._components.get(name)

    def components_of_type(
        self,
        type_name: str,
        include_non_primary: bool = True,
        force_instantiate: bool = False,
    ) -> FrozenSet[str]:
        # Static components are metadata only; force_instantiate has nothing to construct.
        self.lookup_counts[FactKind.COMPONENT_PRESENT] += 1
        return frozenset(
            c.name for c in self._components.values()
            if c.is_type(type_name) and (include_non_primary or c.primary)
        )

    def has_property(self, key: str) -> bool:
        return key in self._properties

    def property_value(self, key: str) -> Optional[str]:
        self.lookup_counts[FactKind.PROPERTY_VALUE] += 1
        if key not in self._properties:
            return None
        try:
            return self._resolve(key, self._properties[key], (key,))
        except PropertyResolutionError as exc:
            logger.debug("Property '%s' failed soft: %s", key, exc)
            return None

    def external_capability(self, name: str) -> bool:
        self.lookup_counts[FactKind.EXTERNAL_CAPABILITY] += 1
        return name in self._capabilities

    def _resolve(self, key: str, value: str, visiting: Tuple[str, ...]) -> str:
        def replace(match: "re.Match") -> str:
            placeholder = match.group(1)
            ref, sep, default = placeholder.partition(":")
            if ref in visiting:
                raise PropertyResolutionError(key, placeholder)
            if ref in self._properties:
                return self._resolve(key, self._properties[ref], visiting + (ref,))
            if sep:
                return default
            raise PropertyResolutionError(key, placeholder)

        return _PLACEHOLDER.sub(replace, value)

    def __repr__(self) -> str:
        return (
            f"StaticFactProvider(types={len(self._types)}, "
            f"properties={len(self._properties)}, "
            f"components={len(self._components)}, "
            f"capabilities={len(self._capabilities)})"
        )
