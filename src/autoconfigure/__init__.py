"""
Conditional Activation Engine.

Decides, for a set of candidate configuration modules, which ones activate
given the current environment facts. Each decision carries a human-readable
reason trail.

Main components:
- Condition values and ``evaluate``: the condition algebra
- FactProvider / StaticFactProvider: environment facts
- FactSnapshot / SnapshotView: per-run, append-only view of facts
- ModuleDescriptor / ModuleRegistry: candidates and their evaluation order
- ActivationResolver: runs one resolution pass
- ActivationReport: ordered decisions, rendering and summary
- ConditionRegistry: named conditions referenced from condition trees

Usage:
    from src.autoconfigure import ActivationResolver, StaticFactProvider
    from src.autoconfigure.builtin import builtin_modules, builtin_conditions

    provider = StaticFactProvider(types={"javax.sql.DataSource", "org.h2.Driver"})
    report = ActivationResolver(builtin_modules(), provider, builtin_conditions()).resolve()
    print(report.to_compact_string())
"""

from src.autoconfigure.errors import (
    ActivationError,
    ModuleRegistrationError,
    ModuleOrderingError,
    MissingRequiredActivationError,
    ConditionNotFoundError,
    ConditionEvaluationError,
    ConditionAlreadyRegisteredError,
    InvalidConditionSignatureError,
    ExpressionParseError,
    UnknownConditionError,
    CatalogLoadError,
    CatalogValidationError,
)
from src.autoconfigure.facts import (
    FactKind,
    FactQuery,
    ComponentDescriptor,
    FactProvider,
    StaticFactProvider,
)
from src.autoconfigure.messages import ConditionMessage, Outcome
from src.autoconfigure.snapshot import FactSnapshot, SnapshotView
from src.autoconfigure.conditions import (
    Scope,
    TypeAvailable,
    PropertyValue,
    ComponentPresent,
    ComponentAbsent,
    SingleCandidate,
    ExternalCapability,
    Named,
    AllOf,
    AnyOf,
    Condition,
    evaluate,
    evaluate_all,
)
from src.autoconfigure.registry import ConditionRegistry, ConditionMetadata
from src.autoconfigure.modules import (
    HIGHEST_PRECEDENCE,
    LOWEST_PRECEDENCE,
    Phase,
    ModuleDescriptor,
)
from src.autoconfigure.module_registry import ModuleRegistry
from src.autoconfigure.report import (
    DecisionStatus,
    ActivationDecision,
    ActivationReport,
    ReportSummary,
)
from src.autoconfigure.resolver import ActivationResolver


def resolve(modules, provider, conditions=None, **options) -> ActivationReport:
    """Shortcut for ``ActivationResolver(modules, provider, conditions, **options).resolve()``."""
    return ActivationResolver(modules, provider, conditions, **options).resolve()


__all__ = [
    # Errors
    "ActivationError",
    "ModuleRegistrationError",
    "ModuleOrderingError",
    "MissingRequiredActivationError",
    "ConditionNotFoundError",
    "ConditionEvaluationError",
    "ConditionAlreadyRegisteredError",
    "InvalidConditionSignatureError",
    "ExpressionParseError",
    "UnknownConditionError",
    "CatalogLoadError",
    "CatalogValidationError",
    # Facts
    "FactKind",
    "FactQuery",
    "ComponentDescriptor",
    "FactProvider",
    "StaticFactProvider",
    "FactSnapshot",
    "SnapshotView",
    # Conditions
    "ConditionMessage",
    "Outcome",
    "Scope",
    "TypeAvailable",
    "PropertyValue",
    "ComponentPresent",
    "ComponentAbsent",
    "SingleCandidate",
    "ExternalCapability",
    "Named",
    "AllOf",
    "AnyOf",
    "Condition",
    "evaluate",
    "evaluate_all",
    "ConditionRegistry",
    "ConditionMetadata",
    # Modules
    "HIGHEST_PRECEDENCE",
    "LOWEST_PRECEDENCE",
    "Phase",
    "ModuleDescriptor",
    "ModuleRegistry",
    # Resolution
    "DecisionStatus",
    "ActivationDecision",
    "ActivationReport",
    "ReportSummary",
    "ActivationResolver",
    "resolve",
]
