"""
Fact snapshot accumulated during one resolution run.

FactSnapshot is owned and mutated only by the resolver. It is append-only:
components contributed by activated modules and recorded selections are
never retracted within a run. Conditions receive a SnapshotView, a
read-only window bound to the evaluating module's phase.
"""

import logging
from typing import Any, Dict, Optional, Tuple

from src.autoconfigure.facts import ComponentDescriptor, FactKind, FactProvider, FactQuery
from src.autoconfigure.modules import Phase

logger = logging.getLogger(__name__)


class FactSnapshot:
    """
    Mutable, append-only view of the environment for one run.

    Type availability answers are cached per query signature: the type
    universe does not change during a run.
    """

    def __init__(self, provider: FactProvider, cache_type_lookups: bool = True):
        self._provider = provider
        self._cache_type_lookups = cache_type_lookups
        self._type_cache: Dict[FactQuery, bool] = {}
        self._added: Dict[str, ComponentDescriptor] = {}
        self._selections: Dict[str, str] = {}

    @property
    def provider(self) -> FactProvider:
        return self._provider

    @property
    def added_components(self) -> Tuple[ComponentDescriptor, ...]:
        return tuple(self._added.values())

    @property
    def selections(self) -> Dict[str, str]:
        return dict(self._selections)

    def view(self, phase: Phase) -> "SnapshotView":
        return SnapshotView(self, phase)

    # --- resolver-only mutation ------------------------------------------

    def add_component(self, descriptor: ComponentDescriptor) -> None:
        """Record that a component now exists. Names are never replaced."""
        if descriptor.name in self._added:
            raise ValueError(f"Component '{descriptor.name}' already added to snapshot")
        self._added[descriptor.name] = descriptor
        logger.debug("Snapshot gained component %s (%s)", descriptor.name, descriptor.type_name)

    def record_selection(self, key: str, value: str) -> None:
        """Record a choice made by an activated module."""
        current = self._selections.get(key)
        if current is not None and current != value:
            raise ValueError(f"Selection '{key}' already recorded as '{current}'")
        self._selections[key] = value

    # --- lookups ----------------------------------------------------------

    def type_available(self, name: str) -> bool:
        query = FactQuery(FactKind.TYPE_AVAILABLE, (name,))
        if self._cache_type_lookups and query in self._type_cache:
            return self._type_cache[query]
        result = bool(self._provider.type_available(name))
        if self._cache_type_lookups:
            self._type_cache[query] = result
        return result

    def added_component(self, name: str) -> Optional[ComponentDescriptor]:
        return self._added.get(name)

    def selection(self, key: str) -> Optional[str]:
        return self._selections.get(key)


class SnapshotView:
    """
    Read-only, phase-bound window on a FactSnapshot.

    During the DEFINITION phase only declared component metadata is
    visible; the INSTANTIATION phase also observes constructed singletons.
    No lookup ever forces construction of a component.
    """

    def __init__(self, snapshot: FactSnapshot, phase: Phase):
        self._snapshot = snapshot
        self._phase = phase

    @property
    def phase(self) -> Phase:
        return self._phase

    def _visible(self, descriptor: Optional[ComponentDescriptor]) -> bool:
        if descriptor is None:
            return False
        if self._phase is Phase.INSTANTIATION:
            return descriptor.declared or descriptor.instantiated
        return descriptor.declared

    def type_available(self, name: str) -> bool:
        return self._snapshot.type_available(name)

    def component_named(self, name: str) -> Optional[ComponentDescriptor]:
        descriptor = self._snapshot.added_component(name)
        if descriptor is None:
            descriptor = self._snapshot.provider.component_named(name)
        return descriptor if self._visible(descriptor) else None

    def contains_component(self, name: str) -> bool:
        return self.component_named(name) is not None

    def components_of_type(self, type_name: str, include_non_primary: bool = True) -> Tuple[str, ...]:
        """Names of visible components assignable to ``type_name``, sorted."""
        names = set()
        provided = self._snapshot.provider.components_of_type(
            type_name, include_non_primary, False
        )
        for name in provided:
            if self._visible(self._snapshot.provider.component_named(name)):
                names.add(name)
        for descriptor in self._snapshot.added_components:
            if descriptor.is_type(type_name) and (include_non_primary or descriptor.primary):
                names.add(descriptor.name)
        return tuple(sorted(names))

    def property_defined(self, key: str) -> bool:
        """Whether the key is set at all, resolvable or not."""
        provider = self._snapshot.provider
        has_property = getattr(provider, "has_property", None)
        if callable(has_property):
            return bool(has_property(key))
        return provider.property_value(key) is not None

    def property_value(self, key: str) -> Optional[str]:
        return self._snapshot.provider.property_value(key)

    def external_capability(self, name: str) -> bool:
        return bool(self._snapshot.provider.external_capability(name))

    def selection(self, key: str) -> Optional[str]:
        return self._snapshot.selection(key)

    def query(self, query: FactQuery) -> Any:
        """Answer a FactQuery by kind."""
        if query.kind is FactKind.TYPE_AVAILABLE:
            return self.type_available(*query.parameters)
        if query.kind is FactKind.PROPERTY_VALUE:
            return self.property_value(*query.parameters)
        if query.kind is FactKind.COMPONENT_PRESENT:
            return self.component_named(*query.parameters)
        if query.kind is FactKind.EXTERNAL_CAPABILITY:
            return self.external_capability(*query.parameters)
        raise ValueError(f"Unsupported fact query: {query}")

    def __repr__(self) -> str:
        return f"SnapshotView(phase={self._phase.value})"
