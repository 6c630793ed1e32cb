"""Requirement variants and the requirement evaluator.

Requirements are read-only predicates over a :class:`~story_rules.world.state.PlayerState`
snapshot. A requirement that is not met evaluates to ``False``; so does a
malformed one (unknown kind, missing target). Nothing in this module raises for
content problems or mutates the state it reads.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, ClassVar, Dict, Iterable, Mapping, Optional, Union

if TYPE_CHECKING:
    from ..world.state import PlayerState

logger = logging.getLogger(__name__)


class Operator(str, Enum):
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    GREATER = "greater"
    LESS = "less"
    CONTAINS = "contains"


def parse_operator(raw: Any) -> Optional[Operator]:
    """Parse an operator name; unknown names fall back to ``equals``."""
    if raw is None or isinstance(raw, Operator):
        return raw
    try:
        return Operator(str(raw))
    except ValueError:
        logger.warning("Unknown requirement operator %r; falling back to 'equals'", raw)
        return Operator.EQUALS


# Value coercion

def to_number(value: Any) -> float:
    """Coerce a value to a number. Anything non-numeric becomes 0."""
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, (int, float)):
        number = float(value)
        return 0.0 if math.isnan(number) else number
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0.0
        try:
            number = float(text)
        except ValueError:
            return 0.0
        return 0.0 if math.isnan(number) else number
    return 0.0


def to_text(value: Any) -> str:
    """Coerce a value to text the way content authors write it."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def strict_equals(actual: Any, expected: Any) -> bool:
    """Exact equality: booleans never equal numbers, strings never equal numbers."""
    if isinstance(actual, bool) or isinstance(expected, bool):
        return isinstance(actual, bool) and isinstance(expected, bool) and actual == expected
    if isinstance(actual, (int, float)) and isinstance(expected, (int, float)):
        return actual == expected
    return type(actual) is type(expected) and actual == expected


def compare_values(actual: Any, expected: Any, operator: Union[Operator, str, None]) -> bool:
    op = parse_operator(operator) or Operator.EQUALS
    if op is Operator.EQUALS:
        return strict_equals(actual, expected)
    if op is Operator.NOT_EQUALS:
        return not strict_equals(actual, expected)
    if op is Operator.GREATER:
        return to_number(actual) > to_number(expected)
    if op is Operator.LESS:
        return to_number(actual) < to_number(expected)
    return to_text(expected) in to_text(actual)


def _membership(members: Iterable[str], value: Any, op: Operator) -> bool:
    if not isinstance(value, str) or not value:
        return False
    if op is Operator.NOT_EQUALS:
        return value not in members
    if op is Operator.CONTAINS:
        return any(value in member for member in members)
    return value in members


# Variants

@dataclass(frozen=True)
class Requirement:
    """Base requirement. Subclasses implement ``evaluate`` for one kind."""

    value: Any = None
    operator: Optional[Operator] = None
    target: Optional[str] = None

    kind: ClassVar[str] = ""
    default_operator: ClassVar[Operator] = Operator.EQUALS

    @property
    def effective_operator(self) -> Operator:
        return self.operator or self.default_operator

    def evaluate(self, state: "PlayerState") -> bool:
        raise NotImplementedError

    def describe(self) -> str:
        subject = f"{self.kind}[{self.target}]" if self.target else self.kind
        return f"{subject} {self.effective_operator.value} {self.value!r}"

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"type": self.kind, "value": self.value}
        if self.operator is not None:
            data["operator"] = self.operator.value
        if self.target is not None:
            data["target"] = self.target
        return data


@dataclass(frozen=True)
class TraitRequirement(Requirement):
    kind: ClassVar[str] = "trait"

    def evaluate(self, state: "PlayerState") -> bool:
        return _membership(state.traits, self.value, self.effective_operator)


@dataclass(frozen=True)
class ItemRequirement(Requirement):
    kind: ClassVar[str] = "item"

    def evaluate(self, state: "PlayerState") -> bool:
        return _membership(state.inventory, self.value, self.effective_operator)


@dataclass(frozen=True)
class FlagRequirement(Requirement):
    kind: ClassVar[str] = "flag"

    def evaluate(self, state: "PlayerState") -> bool:
        if not self.target:
            return False
        return compare_values(state.flags.get(self.target), self.value, self.effective_operator)


@dataclass(frozen=True)
class HealthRequirement(Requirement):
    kind: ClassVar[str] = "health"
    default_operator: ClassVar[Operator] = Operator.GREATER

    def evaluate(self, state: "PlayerState") -> bool:
        return compare_values(state.health or 0, self.value, self.effective_operator)


@dataclass(frozen=True)
class RoomRequirement(Requirement):
    kind: ClassVar[str] = "room"

    def evaluate(self, state: "PlayerState") -> bool:
        return compare_values(state.current_room, self.value, self.effective_operator)


@dataclass(frozen=True)
class NpcTrustRequirement(Requirement):
    kind: ClassVar[str] = "npc_trust"
    default_operator: ClassVar[Operator] = Operator.GREATER

    def evaluate(self, state: "PlayerState") -> bool:
        if not self.target:
            return False
        trust = state.npc_trust.get(self.target, 0)
        return compare_values(trust, self.value, self.effective_operator)


@dataclass(frozen=True)
class UnknownRequirement(Requirement):
    """Placeholder for content that names a kind the engine does not know. Always denies."""

    raw_kind: str = ""
    kind: ClassVar[str] = "unknown"

    def evaluate(self, state: "PlayerState") -> bool:
        return False

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["type"] = self.raw_kind
        return data


REQUIREMENT_TYPES: Dict[str, type] = {
    cls.kind: cls
    for cls in (
        TraitRequirement,
        FlagRequirement,
        ItemRequirement,
        HealthRequirement,
        RoomRequirement,
        NpcTrustRequirement,
    )
}


def requirement_from_dict(raw: Union[str, Mapping[str, Any], Requirement]) -> Requirement:
    """Build a requirement from content.

    A bare string means "the player holds this item", which is how room
    interactables list what they need.
    """
    if isinstance(raw, Requirement):
        return raw
    if isinstance(raw, str):
        return ItemRequirement(value=raw)
    if not isinstance(raw, Mapping):
        logger.warning("Malformed requirement %r; it will always deny", raw)
        return UnknownRequirement(value=raw, raw_kind=type(raw).__name__)
    kind = str(raw.get("type", ""))
    target = raw.get("target")
    cls = REQUIREMENT_TYPES.get(kind)
    if cls is None:
        logger.warning("Unknown requirement type %r; it will always deny", kind)
        return UnknownRequirement(
            value=raw.get("value"),
            operator=parse_operator(raw.get("operator")),
            target=None if target is None else str(target),
            raw_kind=kind,
        )
    return cls(
        value=raw.get("value"),
        operator=parse_operator(raw.get("operator")),
        target=None if target is None else str(target),
    )


# Evaluator

def evaluate(requirement: Union[Requirement, Mapping[str, Any], str], state: "PlayerState") -> bool:
    """Evaluate one requirement against a player state snapshot."""
    if not isinstance(requirement, Requirement):
        requirement = requirement_from_dict(requirement)
    result = requirement.evaluate(state)
    logger.debug("Requirement %s -> %s", requirement.describe(), result)
    return result


def evaluate_all(requirements: Iterable[Union[Requirement, Mapping[str, Any], str]], state: "PlayerState") -> bool:
    """True only if every requirement holds (an empty list holds)."""
    return all(evaluate(req, state) for req in requirements)


def first_unmet(
    requirements: Iterable[Union[Requirement, Mapping[str, Any], str]], state: "PlayerState"
) -> Optional[Requirement]:
    """Return the first requirement that does not hold, or None."""
    for req in requirements:
        parsed = req if isinstance(req, Requirement) else requirement_from_dict(req)
        if not evaluate(parsed, state):
            return parsed
    return None


__all__ = [
    "Operator",
    "Requirement",
    "TraitRequirement",
    "FlagRequirement",
    "ItemRequirement",
    "HealthRequirement",
    "RoomRequirement",
    "NpcTrustRequirement",
    "UnknownRequirement",
    "compare_values",
    "evaluate",
    "evaluate_all",
    "first_unmet",
    "requirement_from_dict",
    "to_number",
    "to_text",
]
