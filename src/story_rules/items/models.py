from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple

from ..exceptions import ContentError
from ..rules.effects import Effect, effect_from_dict
from ..rules.requirements import Requirement, requirement_from_dict

logger = logging.getLogger(__name__)


class ItemCategory(str, Enum):
    FUNCTIONAL = "functional"
    VALUABLE = "valuable"
    JUNK = "junk"
    PUZZLE = "puzzle"
    QUEST = "quest"
    EASTEREGG = "easteregg"
    KNOWLEDGE = "knowledge"
    HEALING = "healing"
    ACCESS = "access"
    TOOL = "tool"
    CONSUMABLE = "consumable"
    KEY = "key"
    DOCUMENT = "document"
    ARTIFACT = "artifact"
    PET = "pet"
    MISC = "misc"


class ItemRarity(str, Enum):
    COMMON = "common"
    UNCOMMON = "uncommon"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"
    UNIQUE = "unique"


class TransformTrigger(str, Enum):
    USE = "use"
    TIME = "time"
    LOCATION = "location"
    INTERACTION = "interaction"


def _enum_or_none(enum_cls, raw: Any, item_id: str):  # noqa: ANN001
    if raw is None:
        return None
    try:
        return enum_cls(raw)
    except ValueError:
        logger.warning("Item %s: unknown %s %r", item_id, enum_cls.__name__, raw)
        return None


@dataclass(frozen=True)
class Item:
    """
    Immutable catalog entry. Inventories and rooms refer to items by id only.
    """

    id: str
    name: str
    description: str = ""
    traits: FrozenSet[str] = frozenset()
    portable: bool = True
    category: Optional[ItemCategory] = None
    rarity: Optional[ItemRarity] = None
    value: Optional[float] = None
    weight: Optional[float] = None
    durability: Optional[int] = None
    max_durability: Optional[int] = None
    usable: bool = False
    consumable: bool = False
    throwable: bool = False
    readable: bool = False
    stackable: bool = False
    max_stack: Optional[int] = None
    effects: Tuple[Effect, ...] = ()
    requirements: Tuple[Requirement, ...] = ()
    transform_into: Optional[str] = None
    spawn_rooms: Tuple[str, ...] = ()
    exclude_rooms: Tuple[str, ...] = ()
    conflict_items: Tuple[str, ...] = ()
    content: Optional[str] = None

    def has_effect(self, kind: str) -> bool:
        return any(e.kind == kind for e in self.effects)

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "Item":
        item_id = raw.get("id")
        if not item_id or not isinstance(item_id, str):
            raise ContentError(f"Item definition without a valid id: {raw!r}")

        def pick(*keys: str, default: Any = None) -> Any:
            for key in keys:
                if key in raw:
                    return raw[key]
            return default

        return cls(
            id=item_id,
            name=str(raw.get("name", item_id)),
            description=str(raw.get("description", "")),
            traits=frozenset(raw.get("traits") or ()),
            portable=bool(raw.get("portable", True)),
            category=_enum_or_none(ItemCategory, raw.get("category"), item_id),
            rarity=_enum_or_none(ItemRarity, raw.get("rarity"), item_id),
            value=raw.get("value"),
            weight=raw.get("weight"),
            durability=raw.get("durability"),
            max_durability=pick("max_durability", "maxDurability"),
            usable=bool(raw.get("usable", False)),
            consumable=bool(raw.get("consumable", False)),
            throwable=bool(raw.get("throwable", False)),
            readable=bool(raw.get("readable", False)),
            stackable=bool(raw.get("stackable", False)),
            max_stack=pick("max_stack", "maxStack"),
            effects=tuple(effect_from_dict(e) for e in raw.get("effects") or ()),
            requirements=tuple(requirement_from_dict(r) for r in raw.get("requirements") or ()),
            transform_into=pick("transform_into", "transformInto"),
            spawn_rooms=tuple(pick("spawn_rooms", "spawnRooms", default=()) or ()),
            exclude_rooms=tuple(pick("exclude_rooms", "excludeRooms", default=()) or ()),
            conflict_items=tuple(pick("conflict_items", "conflictItems", default=()) or ()),
            content=raw.get("content"),
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "traits": sorted(self.traits),
            "portable": self.portable,
            "usable": self.usable,
            "consumable": self.consumable,
            "throwable": self.throwable,
            "readable": self.readable,
            "stackable": self.stackable,
        }
        if self.category is not None:
            data["category"] = self.category.value
        if self.rarity is not None:
            data["rarity"] = self.rarity.value
        for key in ("value", "weight", "durability", "max_durability", "max_stack", "transform_into", "content"):
            val = getattr(self, key)
            if val is not None:
                data[key] = val
        if self.effects:
            data["effects"] = [e.to_dict() for e in self.effects]
        if self.requirements:
            data["requirements"] = [r.to_dict() for r in self.requirements]
        for key in ("spawn_rooms", "exclude_rooms", "conflict_items"):
            if getattr(self, key):
                data[key] = list(getattr(self, key))
        return data


@dataclass(frozen=True)
class ItemTransformation:
    """A declared source -> target change and the trigger that drives it."""

    source_id: str
    target_id: str
    trigger: TransformTrigger = TransformTrigger.USE
    condition: Optional[str] = None
    reversible: bool = False
    meta: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "ItemTransformation":
        source = raw.get("source_id", raw.get("sourceId"))
        target = raw.get("target_id", raw.get("targetId"))
        if not source or not target:
            raise ContentError(f"Transformation needs a source and a target: {raw!r}")
        try:
            trigger = TransformTrigger(raw.get("trigger", "use"))
        except ValueError as exc:
            raise ContentError(f"Unknown transformation trigger {raw.get('trigger')!r} for {source}") from exc
        return cls(
            source_id=str(source),
            target_id=str(target),
            trigger=trigger,
            condition=raw.get("condition"),
            reversible=bool(raw.get("reversible", False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "source_id": self.source_id,
            "target_id": self.target_id,
            "trigger": self.trigger.value,
            "reversible": self.reversible,
        }
        if self.condition is not None:
            data["condition"] = self.condition
        return data


__all__ = ["Item", "ItemCategory", "ItemRarity", "ItemTransformation", "TransformTrigger"]
