"""Static room content: traps, interactables, event tables and secrets.

Definitions are immutable and shared by every room instance. Content accepts
camelCase keys (``onEnter``, ``teleportTo``, ``disarmSkill``) as well as
snake_case ones.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple

from ..exceptions import ContentError
from ..rules.requirements import Requirement, requirement_from_dict

logger = logging.getLogger(__name__)


class TriggerKind(str, Enum):
    ENTER = "enter"
    EXIT = "exit"
    LOOK = "look"
    SEARCH = "search"
    INTERACT = "interact"
    ITEM_USE = "item_use"
    COMMAND = "command"


class TrapSeverity(str, Enum):
    MINOR = "minor"
    MAJOR = "major"
    FATAL = "fatal"


def _get(raw: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in raw:
            return raw[key]
    return default


def parse_trigger(raw: Any) -> TriggerKind:
    if isinstance(raw, TriggerKind):
        return raw
    name = str(raw)
    if name == "use":
        name = TriggerKind.ITEM_USE.value
    try:
        return TriggerKind(name)
    except ValueError as exc:
        raise ContentError(f"Unknown trigger kind: {raw!r}") from exc


@dataclass(frozen=True)
class TrapEffect:
    damage: int = 0
    teleport_to: Optional[str] = None
    items_lost: Tuple[str, ...] = ()
    flags_set: Tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "TrapEffect":
        damage = raw.get("damage", 0) or 0
        if isinstance(damage, bool) or not isinstance(damage, (int, float)):
            raise ContentError(f"Trap damage must be a number, got {damage!r}")
        return cls(
            damage=int(damage),
            teleport_to=_get(raw, "teleport_to", "teleportTo"),
            items_lost=tuple(_get(raw, "items_lost", "itemsLost", default=()) or ()),
            flags_set=tuple(_get(raw, "flags_set", "flagsSet", default=()) or ()),
        )


@dataclass(frozen=True)
class Trap:
    """One-shot room hazard. Whether it has fired lives in RoomState."""

    id: str
    kind: str = "damage"
    severity: TrapSeverity = TrapSeverity.MINOR
    trigger: TriggerKind = TriggerKind.ENTER
    description: str = ""
    effect: TrapEffect = field(default_factory=TrapEffect)
    disarmable: bool = False
    disarm_skill: Optional[str] = None
    disarm_item: Optional[str] = None
    hidden: bool = False

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "Trap":
        trap_id = raw.get("id")
        if not trap_id:
            raise ContentError(f"Trap without an id: {raw!r}")
        try:
            severity = TrapSeverity(raw.get("severity", "minor"))
        except ValueError as exc:
            raise ContentError(f"Trap {trap_id}: unknown severity {raw.get('severity')!r}") from exc
        return cls(
            id=str(trap_id),
            kind=str(raw.get("type", raw.get("kind", "damage"))),
            severity=severity,
            trigger=parse_trigger(raw.get("trigger", "enter")),
            description=str(raw.get("description", "")),
            effect=TrapEffect.from_dict(raw.get("effect") or {}),
            disarmable=bool(raw.get("disarmable", False)),
            disarm_skill=_get(raw, "disarm_skill", "disarmSkill"),
            disarm_item=_get(raw, "disarm_item", "disarmItem"),
            hidden=bool(raw.get("hidden", False)),
        )


@dataclass(frozen=True)
class Interactable:
    id: str
    description: str = ""
    actions: Tuple[str, ...] = ()
    requires: Tuple[Requirement, ...] = ()

    @classmethod
    def from_dict(cls, element_id: str, raw: Mapping[str, Any]) -> "Interactable":
        return cls(
            id=element_id,
            description=str(raw.get("description", "")),
            actions=tuple(raw.get("actions") or ()),
            requires=tuple(requirement_from_dict(r) for r in raw.get("requires") or ()),
        )


_EVENT_KEYS = {
    "onEnter": TriggerKind.ENTER,
    "on_enter": TriggerKind.ENTER,
    "onExit": TriggerKind.EXIT,
    "on_exit": TriggerKind.EXIT,
    "onLook": TriggerKind.LOOK,
    "on_look": TriggerKind.LOOK,
    "onSearch": TriggerKind.SEARCH,
    "on_search": TriggerKind.SEARCH,
    "onItemUse": TriggerKind.ITEM_USE,
    "on_item_use": TriggerKind.ITEM_USE,
    "onCommand": TriggerKind.COMMAND,
    "on_command": TriggerKind.COMMAND,
}


@dataclass(frozen=True)
class RoomEvents:
    """Trigger kind -> ordered action ids; ``interact`` is keyed by element id."""

    by_trigger: Mapping[TriggerKind, Tuple[str, ...]] = field(default_factory=dict)
    on_interact: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)

    def actions_for(self, trigger: TriggerKind, target: Optional[str] = None) -> Tuple[str, ...]:
        if trigger is TriggerKind.INTERACT:
            if target is None:
                return ()
            return tuple(self.on_interact.get(target, ()))
        return tuple(self.by_trigger.get(trigger, ()))

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "RoomEvents":
        by_trigger: Dict[TriggerKind, Tuple[str, ...]] = {}
        on_interact: Dict[str, Tuple[str, ...]] = {}
        for key, value in raw.items():
            if key in ("onInteract", "on_interact"):
                on_interact = {str(el): tuple(ids or ()) for el, ids in (value or {}).items()}
            elif key in _EVENT_KEYS:
                by_trigger[_EVENT_KEYS[key]] = tuple(value or ())
            else:
                logger.warning("Ignoring unknown room event key %r", key)
        return cls(by_trigger=by_trigger, on_interact=on_interact)


@dataclass(frozen=True)
class Secret:
    id: str
    description: str = ""
    requirements: Tuple[str, ...] = ()
    rewards: Tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, secret_id: str, raw: Mapping[str, Any]) -> "Secret":
        return cls(
            id=secret_id,
            description=str(raw.get("description", "")),
            requirements=tuple(str(r) for r in raw.get("requirements") or ()),
            rewards=tuple(str(r) for r in raw.get("rewards") or ()),
        )


@dataclass(frozen=True)
class RoomDefinition:
    id: str
    title: str = ""
    zone: str = ""
    description: str = ""
    exits: Mapping[str, str] = field(default_factory=dict)
    items: Tuple[str, ...] = ()
    traps: Tuple[Trap, ...] = ()
    interactables: Mapping[str, Interactable] = field(default_factory=dict)
    events: RoomEvents = field(default_factory=RoomEvents)
    secrets: Mapping[str, Secret] = field(default_factory=dict)

    def trap(self, trap_id: str) -> Optional[Trap]:
        for trap in self.traps:
            if trap.id == trap_id:
                return trap
        return None

    def traps_for(self, trigger: TriggerKind) -> Tuple[Trap, ...]:
        return tuple(t for t in self.traps if t.trigger is trigger)

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "RoomDefinition":
        room_id = raw.get("id")
        if not room_id:
            raise ContentError(f"Room without an id: {raw!r}")
        description = raw.get("description", "")
        if isinstance(description, (list, tuple)):
            description = "\n".join(str(p) for p in description)
        traps = tuple(Trap.from_dict(t) for t in raw.get("traps") or ())
        seen = set()
        for trap in traps:
            if trap.id in seen:
                raise ContentError(f"Room {room_id}: duplicate trap id {trap.id}")
            seen.add(trap.id)
        return cls(
            id=str(room_id),
            title=str(raw.get("title", "")),
            zone=str(raw.get("zone", "")),
            description=str(description),
            exits={str(k): str(v) for k, v in (raw.get("exits") or {}).items()},
            items=tuple(raw.get("items") or ()),
            traps=traps,
            interactables={
                str(el): Interactable.from_dict(str(el), spec)
                for el, spec in (raw.get("interactables") or {}).items()
            },
            events=RoomEvents.from_dict(raw.get("events") or {}),
            secrets={str(sid): Secret.from_dict(str(sid), spec) for sid, spec in (raw.get("secrets") or {}).items()},
        )


__all__ = [
    "Interactable",
    "RoomDefinition",
    "RoomEvents",
    "Secret",
    "Trap",
    "TrapEffect",
    "TrapSeverity",
    "TriggerKind",
    "parse_trigger",
]
