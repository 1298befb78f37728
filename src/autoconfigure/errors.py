"""
Exceptions raised by the activation engine.

Condition evaluation never raises (every condition yields an Outcome);
these errors cover registration, ordering, catalog loading and the
post-pass missing-activation check.
"""

from typing import Any, Iterable, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from src.autoconfigure.report import ActivationReport


class ActivationError(Exception):
    """Base class for activation engine errors."""


class ModuleRegistrationError(ActivationError):
    """Raised when a module descriptor cannot be registered."""

    def __init__(self, module_id: str, reason: str):
        self.module_id = module_id
        self.reason = reason
        super().__init__(f"Cannot register module '{module_id}': {reason}")


class ModuleOrderingError(ActivationError):
    """Raised when the registered modules admit no valid evaluation order."""

    def __init__(self, module_ids: Iterable[str], reason: str):
        self.module_ids = sorted(module_ids)
        self.reason = reason
        ids = ", ".join(self.module_ids)
        super().__init__(f"Cannot order modules [{ids}]: {reason}")


class MissingRequiredActivationError(ActivationError):
    """
    Raised after a full resolution pass when a group (or ungrouped module)
    containing a required module ended with no activation.

    Carries the complete report so every candidate's diagnostics are
    available to the caller.
    """

    def __init__(self, report: "ActivationReport", missing: List[str]):
        self.report = report
        self.missing = list(missing)
        super().__init__(
            "No module activated for required "
            + ", ".join(f"'{m}'" for m in self.missing)
        )


class ConditionNotFoundError(ActivationError):
    """Raised when a named condition is not found in the registry."""

    def __init__(self, condition_name: str, registry_name: str = ""):
        self.condition_name = condition_name
        self.registry_name = registry_name
        message = f"Condition '{condition_name}' not found"
        if registry_name:
            message += f" in registry '{registry_name}'"
        super().__init__(message)


class ConditionEvaluationError(ActivationError):
    """Raised when a named condition function raises."""

    def __init__(
        self,
        condition_name: str,
        original_error: Exception,
        registry_name: str = ""
    ):
        self.condition_name = condition_name
        self.original_error = original_error
        self.registry_name = registry_name
        message = f"Error evaluating condition '{condition_name}'"
        if registry_name:
            message += f" in registry '{registry_name}'"
        message += f": {original_error}"
        super().__init__(message)


class ConditionAlreadyRegisteredError(ActivationError):
    """Raised when trying to register a condition that already exists."""

    def __init__(self, condition_name: str, registry_name: str = ""):
        self.condition_name = condition_name
        self.registry_name = registry_name
        message = f"Condition '{condition_name}' already registered"
        if registry_name:
            message += f" in registry '{registry_name}'"
        super().__init__(message)


class InvalidConditionSignatureError(ActivationError):
    """Raised when a condition function has an invalid signature."""

    def __init__(self, condition_name: str, reason: str):
        self.condition_name = condition_name
        self.reason = reason
        super().__init__(f"Invalid signature for condition '{condition_name}': {reason}")


class ExpressionParseError(ActivationError):
    """Raised when a condition expression cannot be parsed."""

    def __init__(self, expression: Any, reason: str):
        self.expression = expression
        self.reason = reason
        super().__init__(f"Invalid expression {expression!r}: {reason}")


class UnknownConditionError(ActivationError):
    """Raised when an expression references a named condition that does not exist."""

    def __init__(self, condition_name: str, source: str = ""):
        self.condition_name = condition_name
        self.source = source
        message = f"Unknown condition '{condition_name}'"
        if source:
            message += f" in {source}"
        super().__init__(message)


class CatalogLoadError(ActivationError):
    """Raised when a catalog or facts file cannot be read."""

    def __init__(self, file_path: str, reason: str):
        self.file_path = file_path
        self.reason = reason
        super().__init__(f"Failed to load '{file_path}': {reason}")


class CatalogValidationError(ActivationError):
    """Raised when a catalog or facts document fails validation."""

    def __init__(self, errors: List[str], source: Optional[str] = None):
        self.errors = list(errors)
        self.source = source
        where = f" in '{source}'" if source else ""
        message = f"Catalog validation failed{where} with {len(self.errors)} error(s):\n"
        message += "\n".join(f"  - {e}" for e in self.errors)
        super().__init__(message)
