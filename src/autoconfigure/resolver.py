"""
ActivationResolver: decides which modules activate.

Core Algorithm:
    1. Order modules once (ModuleRegistry.sorted_modules)
    2. For each module, in order:
       - group already satisfied -> not matched, "group already satisfied"
       - evaluate its conditions (implicit AllOf) against a phase-bound view
       - not matched -> record, continue
       - matched but a provided name is taken -> not matched, continue
       - otherwise activate: add provided names to the snapshot, record
         selections, mark the group satisfied
    3. After the full pass, raise MissingRequiredActivationError if a
       required group (or required ungrouped module) activated nothing

Evaluation is single-threaded: later modules observe earlier activations.
"""

import logging
import uuid
from typing import Dict, Iterable, List, Optional, Tuple, Union

from src.autoconfigure.conditions import evaluate_all
from src.autoconfigure.errors import MissingRequiredActivationError
from src.autoconfigure.facts import ComponentDescriptor, FactProvider
from src.autoconfigure.messages import ConditionMessage
from src.autoconfigure.module_registry import ModuleRegistry
from src.autoconfigure.modules import ModuleDescriptor
from src.autoconfigure.registry import ConditionRegistry
from src.autoconfigure.report import ActivationDecision, ActivationReport, DecisionStatus
from src.autoconfigure.snapshot import FactSnapshot
from src.logger import logger as structured_logger
from src.settings import settings

logger = logging.getLogger(__name__)

GROUP_SATISFIED_REASON = "group already satisfied"
NON_DEFAULT_COMPONENT_REASON = "non-default component found with that name"


class ActivationResolver:
    """
    Resolves a set of candidate modules against a fact provider.

    Example:
        resolver = ActivationResolver(registry, provider, conditions=builtin_conditions())
        report = resolver.resolve()
        report.matched_ids()
    """

    def __init__(
        self,
        modules: Union[ModuleRegistry, Iterable[ModuleDescriptor]],
        provider: FactProvider,
        conditions: Optional[ConditionRegistry] = None,
        raise_on_missing_required: Optional[bool] = None,
        cache_type_lookups: Optional[bool] = None,
        log_each_decision: Optional[bool] = None,
    ):
        """
        Args:
            modules: A ModuleRegistry or descriptors to register into a new one
            provider: Fact provider answering environment queries
            conditions: Registry resolving Named conditions
            raise_on_missing_required: Defaults to activation.raise_on_missing_required
            cache_type_lookups: Defaults to activation.cache_type_lookups
            log_each_decision: Defaults to activation.log_each_decision
        """
        if isinstance(modules, ModuleRegistry):
            self._registry = modules
        else:
            self._registry = ModuleRegistry(modules)
        self._provider = provider
        self._conditions = conditions

        activation = settings.get_nested("activation", {})
        self._raise_on_missing = (
            raise_on_missing_required if raise_on_missing_required is not None
            else activation.get("raise_on_missing_required", True)
        )
        self._cache_type_lookups = (
            cache_type_lookups if cache_type_lookups is not None
            else activation.get("cache_type_lookups", True)
        )
        self._log_each_decision = (
            log_each_decision if log_each_decision is not None
            else activation.get("log_each_decision", False)
        )

    @property
    def registry(self) -> ModuleRegistry:
        return self._registry

    def resolve(self) -> ActivationReport:
        """
        Run one resolution pass.

        Returns:
            ActivationReport with one decision per module, in evaluation order

        Raises:
            ModuleOrderingError: If the modules cannot be ordered
            MissingRequiredActivationError: After the pass, if a required
                group ended with no activation
        """
        ordered = self._registry.sorted_modules()
        snapshot = FactSnapshot(self._provider, cache_type_lookups=self._cache_type_lookups)
        report = ActivationReport()
        satisfied: Dict[str, str] = {}

        structured_logger.set_run(uuid.uuid4().hex[:12])
        try:
            structured_logger.event("activation_run_started", modules=len(ordered))

            for module in ordered:
                decision = self._decide(module, snapshot, satisfied)
                report.add(decision)
                self._log_decision(decision)

            missing = self._missing_required(ordered, report)
            structured_logger.metric(
                "activation_run_modules",
                len(report),
                matched=len(report.matched_ids()),
                missing_required=len(missing),
            )
        finally:
            structured_logger.clear_run()

        if missing:
            if self._raise_on_missing:
                raise MissingRequiredActivationError(report, missing)
            logger.warning("Required activation missing for: %s", ", ".join(missing))

        return report

    def _decide(
        self,
        module: ModuleDescriptor,
        snapshot: FactSnapshot,
        satisfied: Dict[str, str],
    ) -> ActivationDecision:
        if module.group is not None and module.group in satisfied:
            reason = (
                f"{GROUP_SATISFIED_REASON}: '{module.group}' activated "
                f"'{satisfied[module.group]}'"
            )
            return ActivationDecision(
                module_id=module.id,
                matched=False,
                reason_trail=(reason,),
                status=DecisionStatus.GROUP_SATISFIED,
                group=module.group,
            )

        view = snapshot.view(module.phase)
        outcome = evaluate_all(module.conditions, view, self._conditions)
        if not outcome.matched:
            return ActivationDecision(
                module_id=module.id,
                matched=False,
                reason_trail=outcome.trail,
                status=DecisionStatus.NOT_MATCHED,
                group=module.group,
            )

        conflict = self._name_conflict(module, view)
        if conflict is not None:
            status, reason = conflict
            return ActivationDecision(
                module_id=module.id,
                matched=False,
                reason_trail=outcome.trail + (reason,),
                status=status,
                group=module.group,
            )

        self._activate(module, snapshot, outcome.selections)
        if module.group is not None:
            satisfied[module.group] = module.id

        return ActivationDecision(
            module_id=module.id,
            matched=True,
            reason_trail=outcome.trail,
            status=DecisionStatus.ACTIVATED,
            group=module.group,
            selections=outcome.selections,
        )

    @staticmethod
    def _name_conflict(
        module: ModuleDescriptor,
        view,
    ) -> Optional[Tuple[DecisionStatus, str]]:
        for name in sorted(module.provided_names):
            message = ConditionMessage.for_condition(module.id)
            try:
                existing = view.component_named(name)
            except Exception as exc:
                logger.warning("Provided name check for %s raised: %s", module.id, exc)
                return DecisionStatus.NOT_MATCHED, str(
                    message.because(f"error checking provided name '{name}': {exc}")
                )
            if existing is None:
                continue
            if existing.is_type(module.provided_type):
                return DecisionStatus.NAME_CONFLICT, str(
                    message.because(f"found component '{name}' already present")
                )
            return DecisionStatus.NAME_CONFLICT, str(message.because(
                f"{NON_DEFAULT_COMPONENT_REASON}: '{name}' of type '{existing.type_name}'"
            ))
        return None

    @staticmethod
    def _activate(
        module: ModuleDescriptor,
        snapshot: FactSnapshot,
        selections,
    ) -> None:
        for name in sorted(module.provided_names):
            snapshot.add_component(
                ComponentDescriptor(
                    name=name,
                    type_name=module.provided_type,
                    declared=True,
                    origin=module.id,
                )
            )
        for key, value in selections.items():
            if snapshot.selection(key) is None:
                snapshot.record_selection(key, value)
            else:
                logger.debug(
                    "Selection %s already recorded; %s keeps its own value %s",
                    key, module.id, value,
                )
        structured_logger.event("module_activated", module_id=module.id, group=module.group)

    @staticmethod
    def _missing_required(
        ordered: List[ModuleDescriptor],
        report: ActivationReport,
    ) -> List[str]:
        missing: List[str] = []
        seen_groups = set()
        for module in ordered:
            if module.group is None:
                if module.required and not report.decision_for(module.id).matched:
                    missing.append(module.id)
                continue
            if module.group in seen_groups:
                continue
            members: Tuple[ModuleDescriptor, ...] = tuple(
                m for m in ordered if m.group == module.group
            )
            seen_groups.add(module.group)
            if any(m.required for m in members) and report.group_winner(module.group) is None:
                missing.append(module.group)
        return missing

    def _log_decision(self, decision: ActivationDecision) -> None:
        level = logging.INFO if self._log_each_decision else logging.DEBUG
        logger.log(
            level,
            "Module %s: %s (%s)",
            decision.module_id,
            decision.status.value,
            "; ".join(decision.reason_trail),
        )

    def __repr__(self) -> str:
        return f"ActivationResolver(modules={len(self._registry)})"
