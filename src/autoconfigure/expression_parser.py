"""
Condition Expression Parser for catalog documents.

Turns the condition expressions written in YAML catalogs into condition
values (see ``src.autoconfigure.conditions``). Parsed expressions are cached.

Formats supported:
- Named condition: "condition_name" or {"condition": "condition_name"}
- Custom reference: "custom:name" (expression defined in the catalog)
- Type: {"type_available": "javax.sql.DataSource"}
- Property: {"property": "cache.type"} or
            {"property": {"key": "cache.type", "value": "redis",
                          "match_if_missing": true, "ignore_case": true}}
- Component: {"component_present": "dataSource"},
             {"component_absent": {"type": "javax.sql.DataSource"}}
- Single candidate: {"single_candidate": "javax.jms.ConnectionFactory"}
- Capability: {"capability": "jndi"}
- ALL: {"all_of": [...]} (alias "and")
- ANY: {"any_of": [...]} (alias "or")
"""

from typing import Any, Dict, List, Optional, Set, Union, TYPE_CHECKING
from dataclasses import dataclass, field
import logging

from src.autoconfigure.conditions import (
    AllOf, AnyOf, ComponentAbsent, ComponentPresent, Condition, ExternalCapability,
    Named, PropertyValue, Scope, SingleCandidate, TypeAvailable,
)
from src.autoconfigure.errors import ExpressionParseError, UnknownConditionError

if TYPE_CHECKING:
    from src.autoconfigure.registry import ConditionRegistry

logger = logging.getLogger(__name__)

# Type alias for condition expressions from YAML
ConditionExpression = Union[str, Dict[str, Any]]

CUSTOM_PREFIX = "custom:"

ALL_KEYS = ("all_of", "and")
ANY_KEYS = ("any_of", "or")
PROPERTY_FIELDS = {"key", "value", "expected", "match_if_missing", "ignore_case"}


def scalar_text(value: Any) -> str:
    """Render a YAML scalar the way it was written (true, not True)."""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


@dataclass
class ParsedExpression:
    """
    A parsed condition expression.

    Attributes:
        condition: The condition value to evaluate
        source: Original expression (for debugging)
        is_composite: Whether this is an all_of / any_of expression
        referenced_conditions: Named conditions referenced anywhere in the tree
    """
    condition: Condition
    source: Any
    is_composite: bool = False
    referenced_conditions: Set[str] = field(default_factory=set)


class ConditionExpressionParser:
    """
    Parses condition expressions from catalog documents.

    Example:
        parser = ConditionExpressionParser(builtin_conditions())

        parsed = parser.parse({
            "all_of": [
                {"type_available": "javax.sql.DataSource"},
                {"any_of": [
                    {"property": "datasource.type"},
                    "pooled_datasource_available",
                ]},
                {"component_absent": {"type": "javax.sql.DataSource"}},
            ]
        })
        outcome = evaluate(parsed.condition, view, registry)
    """

    def __init__(
        self,
        registry: Optional["ConditionRegistry"] = None,
        custom_conditions: Optional[Dict[str, Dict[str, Any]]] = None
    ):
        """
        Args:
            registry: Registry that Named references are checked against.
                Without one, named references are accepted unchecked.
            custom_conditions: Custom expressions from the catalog
                Format: {"name": {"description": "...", "expression": {...}}}
        """
        self.registry = registry
        self.custom_conditions = custom_conditions or {}
        self._cache: Dict[str, ParsedExpression] = {}

    def parse(
        self,
        expression: ConditionExpression,
        source_name: str = ""
    ) -> ParsedExpression:
        """
        Parse a condition expression.

        Raises:
            ExpressionParseError: If the expression format is invalid
            UnknownConditionError: If a referenced condition doesn't exist
        """
        cache_key = self._make_cache_key(expression)
        if cache_key in self._cache:
            return self._cache[cache_key]

        parsed = self._parse_internal(expression, source_name, ())
        self._cache[cache_key] = parsed
        return parsed

    def parse_all(
        self,
        expressions: List[ConditionExpression],
        source_name: str = ""
    ) -> List[Condition]:
        """Parse a module's condition list."""
        return [self.parse(expr, source_name).condition for expr in expressions]

    def _make_cache_key(self, expression: ConditionExpression) -> str:
        if isinstance(expression, str):
            return expression
        return repr(self._normalize_expression(expression))

    def _normalize_expression(self, expression: Any) -> Any:
        if isinstance(expression, dict):
            return {k: self._normalize_expression(v) for k, v in sorted(expression.items())}
        if isinstance(expression, list):
            return [self._normalize_expression(item) for item in expression]
        return expression

    def _parse_internal(
        self,
        expression: ConditionExpression,
        source_name: str,
        custom_chain: tuple,
    ) -> ParsedExpression:
        if isinstance(expression, str):
            if expression.startswith(CUSTOM_PREFIX):
                return self._parse_custom(expression[len(CUSTOM_PREFIX):], custom_chain)
            return self._parse_named(expression, source_name)

        if not isinstance(expression, dict):
            raise ExpressionParseError(
                expression,
                f"expected string or dict, got {type(expression).__name__}"
            )
        if len(expression) != 1:
            raise ExpressionParseError(expression, "dict must contain exactly one key")

        (key, value), = expression.items()
        if key in ALL_KEYS:
            return self._parse_group(AllOf, key, value, source_name, custom_chain)
        if key in ANY_KEYS:
            return self._parse_group(AnyOf, key, value, source_name, custom_chain)
        if key == "condition":
            return self._parse_named(self._require_text(key, value), source_name)
        if key == "type_available":
            return ParsedExpression(TypeAvailable(self._require_text(key, value)), expression)
        if key == "property":
            return ParsedExpression(self._parse_property(value), expression)
        if key in ("component_present", "component_absent"):
            name_or_type, scope = self._parse_component_target(key, value)
            kind = ComponentPresent if key == "component_present" else ComponentAbsent
            return ParsedExpression(kind(name_or_type, scope), expression)
        if key == "single_candidate":
            return ParsedExpression(SingleCandidate(self._require_text(key, value)), expression)
        if key == "capability":
            return ParsedExpression(ExternalCapability(self._require_text(key, value)), expression)

        raise ExpressionParseError(expression, f"unknown condition kind '{key}'")

    def _parse_named(self, name: str, source_name: str) -> ParsedExpression:
        if self.registry is not None and not self.registry.has(name):
            raise UnknownConditionError(name, source_name or "expression")
        return ParsedExpression(Named(name), name, referenced_conditions={name})

    def _parse_custom(self, custom_name: str, custom_chain: tuple) -> ParsedExpression:
        source = f"{CUSTOM_PREFIX}{custom_name}"
        if custom_name not in self.custom_conditions:
            raise UnknownConditionError(source)
        if custom_name in custom_chain:
            raise ExpressionParseError(source, "custom condition references itself")

        definition = self.custom_conditions[custom_name]
        if not isinstance(definition, dict) or "expression" not in definition:
            raise ExpressionParseError(source, "custom condition must have 'expression' field")

        return self._parse_internal(
            definition["expression"],
            source_name=source,
            custom_chain=custom_chain + (custom_name,),
        )

    def _parse_group(
        self,
        kind: type,
        key: str,
        operands: Any,
        source_name: str,
        custom_chain: tuple,
    ) -> ParsedExpression:
        if not isinstance(operands, list):
            raise ExpressionParseError({key: operands}, f"'{key}' value must be a list")
        if not operands:
            raise ExpressionParseError({key: operands}, f"'{key}' requires at least 1 operand")

        parsed_operands = [
            self._parse_internal(op, source_name, custom_chain) for op in operands
        ]
        refs: Set[str] = set()
        for parsed in parsed_operands:
            refs.update(parsed.referenced_conditions)

        return ParsedExpression(
            condition=kind(tuple(p.condition for p in parsed_operands)),
            source={key: operands},
            is_composite=True,
            referenced_conditions=refs,
        )

    def _parse_property(self, value: Any) -> PropertyValue:
        if isinstance(value, str):
            return PropertyValue(self._require_text("property", value))
        if not isinstance(value, dict):
            raise ExpressionParseError({"property": value}, "expected a key or a mapping")

        unknown = set(value) - PROPERTY_FIELDS
        if unknown:
            raise ExpressionParseError(
                {"property": value}, f"unknown fields: {', '.join(sorted(unknown))}"
            )
        if "value" in value and "expected" in value:
            raise ExpressionParseError({"property": value}, "use either 'value' or 'expected'")

        for flag in ("match_if_missing", "ignore_case"):
            if not isinstance(value.get(flag, False), bool):
                raise ExpressionParseError({"property": value}, f"'{flag}' must be a boolean")

        expected = value.get("value", value.get("expected"))
        return PropertyValue(
            key=self._require_text("property.key", value.get("key")),
            expected=None if expected is None else scalar_text(expected),
            match_if_missing=value.get("match_if_missing", False),
            ignore_case=value.get("ignore_case", False),
        )

    def _parse_component_target(self, key: str, value: Any):
        if isinstance(value, str):
            return self._require_text(key, value), Scope.BY_NAME
        if isinstance(value, dict) and len(value) == 1:
            (target_kind, target), = value.items()
            if target_kind == "name":
                return self._require_text(key, target), Scope.BY_NAME
            if target_kind == "type":
                return self._require_text(key, target), Scope.BY_TYPE
        raise ExpressionParseError({key: value}, "expected a name or {name: ...} / {type: ...}")

    @staticmethod
    def _require_text(key: str, value: Any) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ExpressionParseError({key: value}, f"'{key}' must be a non-empty string")
        return value.strip()

    def validate_expression(
        self,
        expression: ConditionExpression,
        source_name: str = ""
    ) -> List[str]:
        """
        Validate an expression without evaluating it.

        Returns:
            List of error messages (empty if valid)
        """
        try:
            self.parse(expression, source_name)
        except (ExpressionParseError, UnknownConditionError) as e:
            return [str(e)]
        return []

    def validate_custom_conditions(self) -> Dict[str, List[str]]:
        """
        Validate all custom conditions.

        Returns:
            Dict mapping condition name to list of errors (only invalid ones)
        """
        results = {}
        for name, definition in self.custom_conditions.items():
            if not isinstance(definition, dict) or "expression" not in definition:
                results[name] = ["Missing 'expression' field"]
                continue
            errors = self.validate_expression(f"{CUSTOM_PREFIX}{name}", f"{CUSTOM_PREFIX}{name}")
            if errors:
                results[name] = errors
        return results

    def clear_cache(self) -> None:
        self._cache.clear()

    def get_cache_stats(self) -> Dict[str, Any]:
        return {
            "cache_size": len(self._cache),
            "cached_expressions": list(self._cache.keys())
        }

    def __repr__(self) -> str:
        registry_name = self.registry.name if self.registry is not None else None
        return (
            f"ConditionExpressionParser("
            f"registry={registry_name!r}, "
            f"custom_count={len(self.custom_conditions)}, "
            f"cached={len(self._cache)})"
        )


__all__ = [
    "ConditionExpressionParser",
    "ParsedExpression",
    "ConditionExpression",
    "ExpressionParseError",
    "UnknownConditionError",
]
