from __future__ import annotations

import json
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Iterable, Iterator, List, Mapping, Optional, Set, Tuple

from ..utils.jsonutil import canonical_dumps


@dataclass(frozen=True)
class PlayerState:
    """Read-only view of the player handed to requirements and effects."""

    inventory: FrozenSet[str] = frozenset()
    inventory_counts: Mapping[str, int] = field(default_factory=lambda: MappingProxyType({}))
    traits: FrozenSet[str] = frozenset()
    flags: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    health: float = 100
    current_room: Optional[str] = None
    npc_trust: Mapping[str, float] = field(default_factory=lambda: MappingProxyType({}))
    score: float = 0
    difficulty: Optional[str] = None
    level: int = 1

    @classmethod
    def build(
        cls,
        inventory: Iterable[str] = (),
        traits: Iterable[str] = (),
        flags: Optional[Mapping[str, Any]] = None,
        health: float = 100,
        current_room: Optional[str] = None,
        npc_trust: Optional[Mapping[str, float]] = None,
        score: float = 0,
        difficulty: Optional[str] = None,
        level: int = 1,
    ) -> "PlayerState":
        """Convenience constructor from plain collections."""
        counts: Dict[str, int] = {}
        for item_id in inventory:
            counts[item_id] = counts.get(item_id, 0) + 1
        return cls(
            inventory=frozenset(counts),
            inventory_counts=MappingProxyType(counts),
            traits=frozenset(traits),
            flags=MappingProxyType(dict(flags or {})),
            health=health,
            current_room=current_room,
            npc_trust=MappingProxyType(dict(npc_trust or {})),
            score=score,
            difficulty=difficulty,
            level=level,
        )


@dataclass
class PlayerRecord:
    """Mutable player data owned by the world store."""

    inventory: Dict[str, int] = field(default_factory=dict)
    traits: Set[str] = field(default_factory=set)
    flags: Dict[str, Any] = field(default_factory=dict)
    health: float = 100
    current_room: Optional[str] = None
    npc_trust: Dict[str, float] = field(default_factory=dict)
    score: float = 0
    difficulty: Optional[str] = None
    level: int = 1

    def add_item(self, item_id: str, count: int = 1) -> None:
        self.inventory[item_id] = self.inventory.get(item_id, 0) + count

    def remove_item(self, item_id: str, count: int = 1) -> bool:
        have = self.inventory.get(item_id, 0)
        if have <= 0:
            return False
        left = have - count
        if left > 0:
            self.inventory[item_id] = left
        else:
            self.inventory.pop(item_id, None)
        return True

    def snapshot(self) -> PlayerState:
        counts = {k: v for k, v in self.inventory.items() if v > 0}
        return PlayerState(
            inventory=frozenset(counts),
            inventory_counts=MappingProxyType(counts),
            traits=frozenset(self.traits),
            flags=MappingProxyType(dict(self.flags)),
            health=self.health,
            current_room=self.current_room,
            npc_trust=MappingProxyType(dict(self.npc_trust)),
            score=self.score,
            difficulty=self.difficulty,
            level=self.level,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "inventory": dict(self.inventory),
            "traits": sorted(self.traits),
            "flags": dict(self.flags),
            "health": self.health,
            "current_room": self.current_room,
            "npc_trust": dict(self.npc_trust),
            "score": self.score,
            "difficulty": self.difficulty,
            "level": self.level,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PlayerRecord":
        raw_inventory = data.get("inventory") or {}
        if isinstance(raw_inventory, Mapping):
            inventory = {str(k): int(v) for k, v in raw_inventory.items() if int(v) > 0}
        else:
            inventory = {}
            for item_id in raw_inventory:
                inventory[str(item_id)] = inventory.get(str(item_id), 0) + 1
        return cls(
            inventory=inventory,
            traits=set(data.get("traits") or ()),
            flags=dict(data.get("flags") or {}),
            health=data.get("health", 100),
            current_room=data.get("current_room"),
            npc_trust=dict(data.get("npc_trust") or {}),
            score=data.get("score", 0),
            difficulty=data.get("difficulty"),
            level=int(data.get("level", 1)),
        )


@dataclass
class RoomState:
    """Per-room-instance mutable data. Trap bits only ever get set here."""

    triggered_traps: Set[str] = field(default_factory=set)
    disarmed_traps: Set[str] = field(default_factory=set)
    flags: Dict[str, Any] = field(default_factory=dict)

    def is_spent(self, trap_id: str) -> bool:
        return trap_id in self.triggered_traps

    def to_dict(self) -> Dict[str, Any]:
        return {
            "triggered_traps": sorted(self.triggered_traps),
            "disarmed_traps": sorted(self.disarmed_traps),
            "flags": dict(self.flags),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RoomState":
        return cls(
            triggered_traps=set(data.get("triggered_traps") or ()),
            disarmed_traps=set(data.get("disarmed_traps") or ()),
            flags=dict(data.get("flags") or {}),
        )


class ActionHistory:
    """Ordered log of ``(verb, target)`` pairs the player has performed."""

    def __init__(self, entries: Iterable[Tuple[str, str]] = ()) -> None:
        self._entries: List[Tuple[str, str]] = [(str(v), str(t)) for v, t in entries]

    def record(self, verb: str, target: str) -> None:
        self._entries.append((verb, target))

    def extend(self, entries: Iterable[Tuple[str, str]]) -> None:
        for verb, target in entries:
            self.record(verb, target)

    def contains(self, verb: str, target: str) -> bool:
        return (verb, target) in self._entries

    def copy(self) -> "ActionHistory":
        return ActionHistory(self._entries)

    def __iter__(self) -> Iterator[Tuple[str, str]]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ActionHistory):
            return NotImplemented
        return self._entries == other._entries

    def to_list(self) -> List[List[str]]:
        return [[verb, target] for verb, target in self._entries]

    @classmethod
    def from_list(cls, data: Iterable[Iterable[str]]) -> "ActionHistory":
        return cls((verb, target) for verb, target in data)


@dataclass
class WorldState:
    player: PlayerRecord = field(default_factory=PlayerRecord)
    rooms: Dict[str, RoomState] = field(default_factory=dict)
    history: ActionHistory = field(default_factory=ActionHistory)
    transformations: List[Dict[str, Any]] = field(default_factory=list)
    timed_flags: Dict[str, int] = field(default_factory=dict)
    turn: int = 0

    def room(self, room_id: str) -> RoomState:
        """Return the state for a room instance, creating it on first visit."""
        state = self.rooms.get(room_id)
        if state is None:
            state = self.rooms[room_id] = RoomState()
        return state

    def to_dict(self) -> Dict[str, Any]:
        return {
            "player": self.player.to_dict(),
            "rooms": {rid: rs.to_dict() for rid, rs in sorted(self.rooms.items())},
            "history": self.history.to_list(),
            "transformations": [dict(t) for t in self.transformations],
            "timed_flags": dict(self.timed_flags),
            "turn": self.turn,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "WorldState":
        return cls(
            player=PlayerRecord.from_dict(data.get("player") or {}),
            rooms={str(rid): RoomState.from_dict(rs) for rid, rs in (data.get("rooms") or {}).items()},
            history=ActionHistory.from_list(data.get("history") or ()),
            transformations=[dict(t) for t in data.get("transformations") or ()],
            timed_flags={str(k): int(v) for k, v in (data.get("timed_flags") or {}).items()},
            turn=int(data.get("turn", 0)),
        )

    def to_json(self) -> str:
        return canonical_dumps(self.to_dict())

    @classmethod
    def from_json(cls, text: str) -> "WorldState":
        return cls.from_dict(json.loads(text))
