"""
Outcomes and human-readable condition messages.

Every condition and condition tree produces an Outcome. Reasons are built
with ConditionMessage so that reports read uniformly:

    ConditionMessage.for_condition("EmbeddedDataSource").because("datasource.url is set")
    -> "EmbeddedDataSource datasource.url is set"

    ConditionMessage.for_condition("PooledDataSource").did_not_find("supported DataSource").at_all()
    -> "PooledDataSource did not find any supported DataSource"
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Iterable, Mapping, Optional, Tuple


@dataclass(frozen=True)
class Outcome:
    """
    Result of evaluating a condition or condition tree.

    Attributes:
        matched: Whether the condition holds
        reason: Human-readable explanation
        trail: Ordered reasons contributing to the result (leaf: just ``reason``)
        selections: Choices made while matching (e.g. the selected pooled vendor)
    """
    matched: bool
    reason: str
    trail: Tuple[str, ...] = ()
    selections: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.trail:
            object.__setattr__(self, "trail", (self.reason,))
        object.__setattr__(self, "selections", MappingProxyType(dict(self.selections)))

    @classmethod
    def match(cls, reason: object = "", selections: Optional[Dict[str, str]] = None) -> "Outcome":
        return cls(True, str(reason), selections=dict(selections or {}))

    @classmethod
    def no_match(cls, reason: object) -> "Outcome":
        return cls(False, str(reason))

    def __bool__(self) -> bool:
        return self.matched


class ConditionMessage:
    """An immutable, appendable condition message."""

    def __init__(self, message: str = ""):
        self._message = message.strip()

    @classmethod
    def empty(cls) -> "ConditionMessage":
        return cls()

    @classmethod
    def of(cls, message: str) -> "ConditionMessage":
        return cls(message)

    @classmethod
    def for_condition(cls, condition: str, details: str = "") -> "MessageBuilder":
        """Start a message for the named condition."""
        return MessageBuilder(cls(), condition, details)

    def append(self, text: str) -> "ConditionMessage":
        if not text:
            return self
        if not self._message:
            return ConditionMessage(text)
        return ConditionMessage(f"{self._message} {text}")

    def and_condition(self, condition: str, details: str = "") -> "MessageBuilder":
        """Continue this message with another condition."""
        return MessageBuilder(self, condition, details)

    def is_empty(self) -> bool:
        return not self._message

    def __str__(self) -> str:
        return self._message

    def __repr__(self) -> str:
        return f"ConditionMessage({self._message!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ConditionMessage):
            return self._message == other._message
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._message)


class MessageBuilder:
    """Builds the part of a message that follows a condition name."""

    def __init__(self, base: ConditionMessage, condition: str, details: str = ""):
        self._base = base
        self._condition = f"{condition} ({details})" if details else condition

    def found_exactly(self, result: object) -> ConditionMessage:
        return self.found("").items(result)

    def found(self, singular: str, plural: Optional[str] = None) -> "ItemsBuilder":
        return ItemsBuilder(self, "found", singular, plural or singular)

    def did_not_find(self, singular: str, plural: Optional[str] = None) -> "ItemsBuilder":
        return ItemsBuilder(self, "did not find", singular, plural or singular)

    def result_for(self, item: str) -> "ItemsBuilder":
        return ItemsBuilder(self, "", item, item)

    def because(self, reason: str) -> ConditionMessage:
        if not reason:
            return self._base.append(self._condition)
        return self._base.append(f"{self._condition} {reason}")

    def available(self, item: str) -> ConditionMessage:
        return self.because(f"{item} is available")

    def not_available(self, item: str) -> ConditionMessage:
        return self.because(f"{item} is not available")


class ItemsBuilder:
    """Completes a found / did not find message with the items concerned."""

    def __init__(self, condition: MessageBuilder, reason: str, singular: str, plural: str):
        self._condition = condition
        self._reason = reason
        self._singular = singular
        self._plural = plural

    def at_all(self) -> ConditionMessage:
        """Used when no items are available ("did not find any beans")."""
        return self._compose(f"any {self._singular}".strip(), ())

    def items(self, *items: object, quote: bool = False) -> ConditionMessage:
        return self._compose(None, items, quote)

    def item_list(self, items: Iterable[object], quote: bool = False) -> ConditionMessage:
        return self._compose(None, tuple(items), quote)

    def _compose(self, noun: Optional[str], items: Tuple[object, ...], quote: bool = False) -> ConditionMessage:
        parts = []
        if self._reason:
            parts.append(self._reason)
        if noun is None:
            noun = self._plural if len(items) > 1 else self._singular
        if noun:
            parts.append(noun)
        if items:
            rendered = [f"'{item}'" if quote else str(item) for item in items]
            parts.append(", ".join(rendered))
        return self._condition.because(" ".join(parts))
