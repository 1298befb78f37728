"""
Module descriptors: the candidate units the resolver decides about.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Tuple, TYPE_CHECKING

if TYPE_CHECKING:
    from src.autoconfigure.conditions import Condition


HIGHEST_PRECEDENCE = -(2 ** 31)
LOWEST_PRECEDENCE = 2 ** 31 - 1


class Phase(str, Enum):
    """
    Evaluation stage of a module.

    DEFINITION - sees declared component metadata only; evaluated first
    INSTANTIATION - may also observe already-constructed singletons
    """
    DEFINITION = "definition"
    INSTANTIATION = "instantiation"

    @property
    def rank(self) -> int:
        return 0 if self is Phase.DEFINITION else 1


@dataclass(frozen=True)
class ModuleDescriptor:
    """
    A candidate configuration module.

    Attributes:
        id: Unique module id
        conditions: Condition list, combined with implicit AllOf
        precedence: Lower = evaluated earlier
        phase: Which facts the module's conditions may observe
        group: Exclusivity group id; at most one member activates
        provided_names: Component names the module would contribute
        provided_type: Type of the contributed components
        required: Its group (or the module alone) must end with an activation
        runs_after: Module ids that must be evaluated before this one
        runs_before: Module ids that must be evaluated after this one
        description: Human-readable description
    """
    id: str
    conditions: Tuple["Condition", ...] = ()
    precedence: int = 0
    phase: Phase = Phase.DEFINITION
    group: Optional[str] = None
    provided_names: FrozenSet[str] = frozenset()
    provided_type: Optional[str] = None
    required: bool = False
    runs_after: FrozenSet[str] = frozenset()
    runs_before: FrozenSet[str] = frozenset()
    description: str = ""

    def __post_init__(self) -> None:
        # Accept any iterable from callers; store immutable forms
        object.__setattr__(self, "conditions", tuple(self.conditions))
        object.__setattr__(self, "provided_names", frozenset(self.provided_names))
        object.__setattr__(self, "runs_after", frozenset(self.runs_after))
        object.__setattr__(self, "runs_before", frozenset(self.runs_before))
        if not isinstance(self.phase, Phase):
            object.__setattr__(self, "phase", Phase(self.phase))

    def validate(self) -> List[str]:
        """
        Validate the descriptor.

        Returns:
            List of validation error messages (empty if valid)
        """
        errors = []

        if not self.id or not self.id.strip():
            errors.append("Module must have a non-empty id.")

        if isinstance(self.precedence, bool) or not isinstance(self.precedence, int):
            errors.append(f"precedence must be int, got {type(self.precedence).__name__}")

        if self.id in self.runs_after or self.id in self.runs_before:
            errors.append("Module cannot be ordered relative to itself.")

        overlap = self.runs_after & self.runs_before
        if overlap:
            errors.append(f"Modules both before and after: {sorted(overlap)}")

        if self.provided_names and not self.provided_type:
            errors.append("provided_names requires provided_type.")

        if self.group is not None and not str(self.group).strip():
            errors.append("group must be non-empty when given.")

        return errors

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "precedence": self.precedence,
            "phase": self.phase.value,
            "group": self.group,
            "provided_names": sorted(self.provided_names),
            "provided_type": self.provided_type,
            "required": self.required,
            "runs_after": sorted(self.runs_after),
            "runs_before": sorted(self.runs_before),
            "conditions": [str(c) for c in self.conditions],
        }

    def __repr__(self) -> str:
        group_str = f", group={self.group!r}" if self.group else ""
        return (
            f"ModuleDescriptor({self.id!r}, precedence={self.precedence}, "
            f"phase={self.phase.value}{group_str})"
        )
