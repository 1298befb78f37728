"""
Activation Report: the ordered record of every module's decision.

The report is the only output of a resolution run. It is consumed by the
wiring layer (which instantiates every matched module) and by diagnostics.
It carries no timestamps or run ids, so identical inputs always render
byte-identical reports.
"""

from dataclasses import dataclass, field
from enum import Enum
import json
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple


class DecisionStatus(str, Enum):
    """
    Why a module ended the way it did.

    - ACTIVATED: conditions matched and the module activated
    - NOT_MATCHED: a condition did not match
    - NAME_CONFLICT: conditions matched but a provided name is taken
    - GROUP_SATISFIED: skipped, another group member already activated
    """
    ACTIVATED = "activated"
    NOT_MATCHED = "not_matched"
    NAME_CONFLICT = "name_conflict"
    GROUP_SATISFIED = "group_satisfied"


@dataclass(frozen=True)
class ActivationDecision:
    """
    Decision for a single module, produced exactly once per run.

    Attributes:
        module_id: Id of the evaluated module
        matched: Whether the module activates
        reason_trail: Ordered reasons leading to the decision
        status: Decision category
        group: Exclusivity group of the module, if any
        selections: Choices recorded on activation (e.g. selected vendor)
    """
    module_id: str
    matched: bool
    reason_trail: Tuple[str, ...]
    status: DecisionStatus = DecisionStatus.NOT_MATCHED
    group: Optional[str] = None
    selections: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "reason_trail", tuple(self.reason_trail))
        object.__setattr__(self, "selections", MappingProxyType(dict(self.selections)))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "module_id": self.module_id,
            "matched": self.matched,
            "status": self.status.value,
            "group": self.group,
            "reason_trail": list(self.reason_trail),
            "selections": dict(sorted(self.selections.items())),
        }

    def to_compact_string(self) -> str:
        """
        Format:
        [+] module_id (group)
          reason 1
          reason 2
        """
        marker = "+" if self.matched else "-"
        group_str = f" ({self.group})" if self.group else ""
        lines = [f"[{marker}] {self.module_id}{group_str}: {self.status.value}"]
        lines.extend(f"  {reason}" for reason in self.reason_trail)
        for key, value in sorted(self.selections.items()):
            lines.append(f"  selected {key}={value}")
        return "\n".join(lines)


@dataclass
class ReportSummary:
    """
    Summary statistics for a report.

    Attributes:
        total: Number of decisions
        by_status: Count per DecisionStatus value
        group_winners: Group id -> activated module id (None if nothing activated)
    """
    total: int = 0
    by_status: Dict[str, int] = field(default_factory=dict)
    group_winners: Dict[str, Optional[str]] = field(default_factory=dict)

    @property
    def matched(self) -> int:
        return self.by_status.get(DecisionStatus.ACTIVATED.value, 0)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "matched": self.matched,
            "by_status": dict(sorted(self.by_status.items())),
            "group_winners": dict(sorted(self.group_winners.items())),
        }


class ActivationReport:
    """
    Ordered sequence of ActivationDecisions in evaluation order.

    Example:
        report = resolver.resolve()
        for decision in report:
            print(decision.to_compact_string())
        report.matched_ids()
    """

    def __init__(self, decisions: Optional[List[ActivationDecision]] = None):
        self._decisions: List[ActivationDecision] = []
        self._by_id: Dict[str, ActivationDecision] = {}
        for decision in decisions or ():
            self.add(decision)

    def add(self, decision: ActivationDecision) -> None:
        """Append a decision. A module may be decided only once."""
        if decision.module_id in self._by_id:
            raise ValueError(f"Module '{decision.module_id}' already has a decision")
        self._decisions.append(decision)
        self._by_id[decision.module_id] = decision

    @property
    def decisions(self) -> Tuple[ActivationDecision, ...]:
        return tuple(self._decisions)

    def decision_for(self, module_id: str) -> Optional[ActivationDecision]:
        return self._by_id.get(module_id)

    def matched_ids(self) -> List[str]:
        return [d.module_id for d in self._decisions if d.matched]

    def unmatched_ids(self) -> List[str]:
        return [d.module_id for d in self._decisions if not d.matched]

    def group_winner(self, group: str) -> Optional[str]:
        for decision in self._decisions:
            if decision.group == group and decision.matched:
                return decision.module_id
        return None

    def summary(self) -> ReportSummary:
        summary = ReportSummary(total=len(self._decisions))
        for decision in self._decisions:
            key = decision.status.value
            summary.by_status[key] = summary.by_status.get(key, 0) + 1
            if decision.group is not None:
                if decision.matched:
                    summary.group_winners[decision.group] = decision.module_id
                else:
                    summary.group_winners.setdefault(decision.group, None)
        return summary

    def to_dict(self) -> Dict[str, Any]:
        return {
            "decisions": [d.to_dict() for d in self._decisions],
            "summary": self.summary().to_dict(),
        }

    def to_json(self, indent: Optional[int] = 2) -> str:
        """Deterministic JSON rendering."""
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)

    def to_compact_string(self) -> str:
        summary = self.summary()
        lines = [f"[REPORT] {summary.matched}/{summary.total} modules activated"]
        for decision in self._decisions:
            lines.append(decision.to_compact_string())
        return "\n".join(lines)

    def __len__(self) -> int:
        return len(self._decisions)

    def __iter__(self) -> Iterator[ActivationDecision]:
        return iter(self._decisions)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ActivationReport):
            return self._decisions == other._decisions
        return NotImplemented

    def __repr__(self) -> str:
        return (
            f"ActivationReport(decisions={len(self._decisions)}, "
            f"matched={len(self.matched_ids())})"
        )
