"""
Module Registry for the activation engine.

Holds the candidate ModuleDescriptors supplied by a loader and computes
their evaluation order:

1. DEFINITION-phase modules before INSTANTIATION-phase modules
2. within a phase, a stable topological sort over runs-after / runs-before
   edges, picking the lowest (precedence, registration index) among the
   modules whose predecessors are already placed

The result is a strict total order that depends only on the registered set.
"""

import heapq
import logging
from threading import RLock
from typing import Dict, Iterable, Iterator, List, Optional, Set, Tuple

from src.autoconfigure.errors import ModuleOrderingError, ModuleRegistrationError
from src.autoconfigure.modules import ModuleDescriptor, Phase

logger = logging.getLogger(__name__)


class ModuleRegistry:
    """
    Registry of module descriptors.

    Descriptors are immutable once registered: registering an id twice is
    an error. ``freeze()`` rejects any further change.
    """

    def __init__(self, modules: Iterable[ModuleDescriptor] = ()):
        self._modules: Dict[str, ModuleDescriptor] = {}
        self._frozen = False
        self._lock = RLock()
        self.register_all(modules)

    def register(self, descriptor: ModuleDescriptor) -> None:
        """Register a module descriptor."""
        if not isinstance(descriptor, ModuleDescriptor):
            raise TypeError(f"{descriptor!r} must be a ModuleDescriptor")

        errors = descriptor.validate()
        if errors:
            raise ModuleRegistrationError(descriptor.id, "; ".join(errors))

        with self._lock:
            if self._frozen:
                raise ModuleRegistrationError(descriptor.id, "registry is frozen")
            if descriptor.id in self._modules:
                raise ModuleRegistrationError(descriptor.id, "id already registered")
            self._modules[descriptor.id] = descriptor

        logger.debug(
            "Registered module: %s (precedence=%s, phase=%s)",
            descriptor.id, descriptor.precedence, descriptor.phase.value,
        )

    def register_all(self, descriptors: Iterable[ModuleDescriptor]) -> None:
        for descriptor in descriptors:
            self.register(descriptor)

    def unregister(self, module_id: str) -> bool:
        """Unregister a module. Returns False if it was not registered."""
        with self._lock:
            if self._frozen:
                raise RuntimeError("Cannot unregister from frozen registry")
            if module_id in self._modules:
                del self._modules[module_id]
                logger.debug("Unregistered module: %s", module_id)
                return True
            return False

    def get(self, module_id: str) -> Optional[ModuleDescriptor]:
        with self._lock:
            return self._modules.get(module_id)

    def groups(self) -> Dict[str, List[str]]:
        """Exclusivity groups and their member ids in registration order."""
        result: Dict[str, List[str]] = {}
        with self._lock:
            for descriptor in self._modules.values():
                if descriptor.group is not None:
                    result.setdefault(descriptor.group, []).append(descriptor.id)
        return result

    def freeze(self) -> None:
        """Freeze registry to prevent further modifications."""
        with self._lock:
            self._frozen = True
        logger.info("ModuleRegistry frozen with %s modules", len(self._modules))

    @property
    def frozen(self) -> bool:
        return self._frozen

    def reset(self) -> None:
        """Reset registry (mainly for testing)."""
        with self._lock:
            self._modules.clear()
            self._frozen = False

    def list_registered(self) -> List[str]:
        """Module ids in evaluation order."""
        return [m.id for m in self.sorted_modules()]

    def sorted_modules(self) -> List[ModuleDescriptor]:
        """
        Compute the evaluation order.

        Raises:
            ModuleOrderingError: On a runs-after cycle, or when a
                DEFINITION-phase module must follow an INSTANTIATION-phase one
        """
        with self._lock:
            registered = list(self._modules.values())

        index = {m.id: i for i, m in enumerate(registered)}
        by_id = {m.id: m for m in registered}
        edges = self._collect_edges(registered, by_id)

        ordered: List[ModuleDescriptor] = []
        for phase in (Phase.DEFINITION, Phase.INSTANTIATION):
            members = [m for m in registered if m.phase is phase]
            ordered.extend(self._topological(members, edges, index))
        return ordered

    def _collect_edges(
        self,
        registered: List[ModuleDescriptor],
        by_id: Dict[str, ModuleDescriptor],
    ) -> Set[Tuple[str, str]]:
        """Edges (before, after) between modules of the same phase."""
        edges: Set[Tuple[str, str]] = set()

        def add(before: str, after: str) -> None:
            if before not in by_id or after not in by_id:
                missing = before if before not in by_id else after
                logger.debug("Ignoring ordering reference to unknown module '%s'", missing)
                return
            first, second = by_id[before], by_id[after]
            if first.phase.rank > second.phase.rank:
                raise ModuleOrderingError(
                    [before, after],
                    f"'{after}' ({second.phase.value}) cannot run after "
                    f"'{before}' ({first.phase.value})",
                )
            if first.phase is second.phase:
                edges.add((before, after))

        for descriptor in registered:
            for predecessor in sorted(descriptor.runs_after):
                add(predecessor, descriptor.id)
            for successor in sorted(descriptor.runs_before):
                add(descriptor.id, successor)
        return edges

    @staticmethod
    def _topological(
        members: List[ModuleDescriptor],
        edges: Set[Tuple[str, str]],
        index: Dict[str, int],
    ) -> List[ModuleDescriptor]:
        ids = {m.id for m in members}
        by_id = {m.id: m for m in members}
        incoming: Dict[str, int] = {m.id: 0 for m in members}
        successors: Dict[str, List[str]] = {m.id: [] for m in members}
        for before, after in edges:
            if before in ids and after in ids:
                incoming[after] += 1
                successors[before].append(after)

        def key(module_id: str) -> Tuple[int, int, str]:
            return (by_id[module_id].precedence, index[module_id], module_id)

        ready = [key(mid) for mid, count in incoming.items() if count == 0]
        heapq.heapify(ready)
        result: List[ModuleDescriptor] = []
        while ready:
            _, _, module_id = heapq.heappop(ready)
            result.append(by_id[module_id])
            for successor in successors[module_id]:
                incoming[successor] -= 1
                if incoming[successor] == 0:
                    heapq.heappush(ready, key(successor))

        if len(result) != len(members):
            stuck = [mid for mid, count in incoming.items() if count > 0]
            raise ModuleOrderingError(stuck, "runs-after/runs-before cycle")
        return result

    def __len__(self) -> int:
        return len(self._modules)

    def __contains__(self, module_id: str) -> bool:
        return module_id in self._modules

    def __iter__(self) -> Iterator[ModuleDescriptor]:
        """Iterate in registration order."""
        with self._lock:
            return iter(list(self._modules.values()))

    def __repr__(self) -> str:
        return f"ModuleRegistry(modules={len(self._modules)}, frozen={self._frozen})"
