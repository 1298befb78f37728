"""
Condition values and their evaluation.

Conditions are plain immutable values (a tagged union) evaluated through
one function, ``evaluate(condition, view, registry)``:

- TypeAvailable(name)
- PropertyValue(key, expected=None, match_if_missing=False, ignore_case=False)
- ComponentPresent(name_or_type, scope) / ComponentAbsent(name_or_type, scope)
- SingleCandidate(type_name)
- ExternalCapability(name)
- Named(name)  -> function in a ConditionRegistry
- AllOf(...)   -> short-circuits on the first failure
- AnyOf(...)   -> short-circuits on the first match

``evaluate`` never raises: errors from providers or named conditions are
reported as a non-matching Outcome.
"""

from dataclasses import dataclass
from enum import Enum
import logging
from typing import Callable, Dict, Optional, Tuple, Union, TYPE_CHECKING

from src.autoconfigure.messages import ConditionMessage, Outcome
from src.autoconfigure.snapshot import SnapshotView

if TYPE_CHECKING:
    from src.autoconfigure.registry import ConditionRegistry

logger = logging.getLogger(__name__)


class Scope(str, Enum):
    """How ComponentPresent/ComponentAbsent interpret their target."""
    BY_NAME = "by_name"
    BY_TYPE = "by_type"


@dataclass(frozen=True)
class TypeAvailable:
    name: str

    def __str__(self) -> str:
        return f"TypeAvailable({self.name})"


@dataclass(frozen=True)
class PropertyValue:
    key: str
    expected: Optional[str] = None
    match_if_missing: bool = False
    ignore_case: bool = False

    def __str__(self) -> str:
        if self.expected is None:
            return f"PropertyValue({self.key})"
        return f"PropertyValue({self.key}={self.expected})"


@dataclass(frozen=True)
class ComponentPresent:
    name_or_type: str
    scope: Scope = Scope.BY_NAME

    def __str__(self) -> str:
        return f"ComponentPresent({self.scope.value}: {self.name_or_type})"


@dataclass(frozen=True)
class ComponentAbsent:
    name_or_type: str
    scope: Scope = Scope.BY_NAME

    def __str__(self) -> str:
        return f"ComponentAbsent({self.scope.value}: {self.name_or_type})"


@dataclass(frozen=True)
class SingleCandidate:
    type_name: str

    def __str__(self) -> str:
        return f"SingleCandidate({self.type_name})"


@dataclass(frozen=True)
class ExternalCapability:
    name: str

    def __str__(self) -> str:
        return f"ExternalCapability({self.name})"


@dataclass(frozen=True)
class Named:
    name: str

    def __str__(self) -> str:
        return f"Named({self.name})"


@dataclass(frozen=True)
class AllOf:
    conditions: Tuple["Condition", ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "conditions", tuple(self.conditions))

    def __str__(self) -> str:
        return "AllOf(" + ", ".join(str(c) for c in self.conditions) + ")"


@dataclass(frozen=True)
class AnyOf:
    conditions: Tuple["Condition", ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "conditions", tuple(self.conditions))

    def __str__(self) -> str:
        return "AnyOf(" + ", ".join(str(c) for c in self.conditions) + ")"


Condition = Union[
    TypeAvailable, PropertyValue, ComponentPresent, ComponentAbsent,
    SingleCandidate, ExternalCapability, Named, AllOf, AnyOf,
]

MATCHED_TAG = "matched"
NOT_FOUND_TAG = "did not find"


def evaluate(
    condition: Condition,
    view: SnapshotView,
    registry: Optional["ConditionRegistry"] = None,
) -> Outcome:
    """
    Evaluate a condition against a snapshot view.

    Args:
        condition: Any condition value
        view: Read-only, phase-bound facts
        registry: Registry used to resolve Named conditions

    Returns:
        Outcome, always
    """
    evaluator = _EVALUATORS.get(type(condition))
    if evaluator is None:
        return Outcome.no_match(
            ConditionMessage.for_condition(type(condition).__name__).because("is not a known condition kind")
        )
    try:
        return evaluator(condition, view, registry)
    except Exception as exc:
        logger.warning("Condition %s raised during evaluation: %s", condition, exc)
        return Outcome.no_match(
            ConditionMessage.for_condition(str(condition)).because(f"error during evaluation: {exc}")
        )


def _type_available(cond: TypeAvailable, view: SnapshotView, registry) -> Outcome:
    message = ConditionMessage.for_condition("TypeAvailable")
    if view.type_available(cond.name):
        return Outcome.match(message.found("required type").items(cond.name, quote=True))
    return Outcome.no_match(message.did_not_find("required type").items(cond.name, quote=True))


def _property_value(cond: PropertyValue, view: SnapshotView, registry) -> Outcome:
    message = ConditionMessage.for_condition("PropertyValue", cond.key)
    if not view.property_defined(cond.key):
        result = message.did_not_find("property").items(cond.key, quote=True)
        return Outcome.match(result) if cond.match_if_missing else Outcome.no_match(result)

    value = view.property_value(cond.key)
    if value is None:
        return Outcome.no_match(message.because(f"could not resolve property '{cond.key}'"))

    if cond.expected is None:
        return Outcome.match(message.found("property").items(cond.key, quote=True))

    if cond.ignore_case:
        equal = value.lower() == cond.expected.lower()
    else:
        equal = value == cond.expected
    if equal:
        return Outcome.match(message.because(f"property '{cond.key}' has expected value '{cond.expected}'"))
    return Outcome.no_match(message.found("different value in property").items(cond.key, quote=True))


def _component_lookup(label: str, name_or_type: str, scope: Scope, view: SnapshotView) -> Outcome:
    """Outcome for presence; callers negate it for absence."""
    message = ConditionMessage.for_condition(label)
    if scope is Scope.BY_NAME:
        descriptor = view.component_named(name_or_type)
        if descriptor is not None:
            return Outcome.match(message.found("component named").items(name_or_type, quote=True))
        return Outcome.no_match(message.did_not_find("component named").items(name_or_type, quote=True))

    names = view.components_of_type(name_or_type)
    if names:
        return Outcome.match(
            message.found(f"component of type '{name_or_type}'", f"components of type '{name_or_type}'")
            .item_list(names, quote=True)
        )
    return Outcome.no_match(message.did_not_find("component of type").items(name_or_type, quote=True))


def _component_present(cond: ComponentPresent, view: SnapshotView, registry) -> Outcome:
    return _component_lookup("ComponentPresent", cond.name_or_type, cond.scope, view)


def _component_absent(cond: ComponentAbsent, view: SnapshotView, registry) -> Outcome:
    present = _component_lookup("ComponentAbsent", cond.name_or_type, cond.scope, view)
    return Outcome(not present.matched, present.reason)


def _single_candidate(cond: SingleCandidate, view: SnapshotView, registry) -> Outcome:
    message = ConditionMessage.for_condition("SingleCandidate", cond.type_name)
    names = view.components_of_type(cond.type_name)
    if not names:
        return Outcome.no_match(message.did_not_find("component of type").items(cond.type_name, quote=True))
    if len(names) == 1:
        return Outcome.match(message.found("a single component").items(names[0], quote=True))
    primaries = view.components_of_type(cond.type_name, include_non_primary=False)
    if len(primaries) == 1:
        return Outcome.match(message.found("a single primary component").items(primaries[0], quote=True))
    return Outcome.no_match(message.found("multiple components").item_list(names, quote=True))


def _external_capability(cond: ExternalCapability, view: SnapshotView, registry) -> Outcome:
    message = ConditionMessage.for_condition("ExternalCapability")
    if view.external_capability(cond.name):
        return Outcome.match(message.available(cond.name))
    return Outcome.no_match(message.not_available(cond.name))


def _named(cond: Named, view: SnapshotView, registry) -> Outcome:
    if registry is None or not registry.has(cond.name):
        return Outcome.no_match(
            ConditionMessage.for_condition("Named", cond.name).because("is not registered")
        )
    return registry.evaluate(cond.name, view)


def _all_of(cond: AllOf, view: SnapshotView, registry) -> Outcome:
    trail = []
    selections: Dict[str, str] = {}
    for child in cond.conditions:
        outcome = evaluate(child, view, registry)
        if not outcome.matched:
            # Only the failing condition is reported
            return Outcome(False, outcome.reason, outcome.trail)
        trail.extend(outcome.trail)
        selections.update(outcome.selections)
    if not trail:
        reason = str(ConditionMessage.for_condition("AllOf").because("has no conditions"))
        return Outcome(True, reason, selections=selections)
    reason = str(ConditionMessage.for_condition("AllOf").because(f"all {len(cond.conditions)} conditions matched"))
    return Outcome(True, reason, tuple(trail), selections)


def _any_of(cond: AnyOf, view: SnapshotView, registry) -> Outcome:
    trail = []
    for child in cond.conditions:
        outcome = evaluate(child, view, registry)
        if outcome.matched:
            trail.append(f"{MATCHED_TAG}: {outcome.reason}")
            return Outcome(True, outcome.reason, tuple(trail), outcome.selections)
        trail.append(f"{NOT_FOUND_TAG}: {outcome.reason}")
    reason = str(
        ConditionMessage.for_condition("AnyOf").did_not_find("matching condition").at_all()
    )
    return Outcome(False, reason, tuple(trail) or (reason,))


_EVALUATORS: Dict[type, Callable[..., Outcome]] = {
    TypeAvailable: _type_available,
    PropertyValue: _property_value,
    ComponentPresent: _component_present,
    ComponentAbsent: _component_absent,
    SingleCandidate: _single_candidate,
    ExternalCapability: _external_capability,
    Named: _named,
    AllOf: _all_of,
    AnyOf: _any_of,
}


def evaluate_all(
    conditions: Tuple[Condition, ...],
    view: SnapshotView,
    registry: Optional["ConditionRegistry"] = None,
) -> Outcome:
    """Evaluate a module's condition list with implicit AllOf semantics."""
    return evaluate(AllOf(tuple(conditions)), view, registry)
