"""World state store: the only writer of world state.

Deltas are merged transactionally. The merge works on a copy of the state and
swaps it in only when every step succeeded, so a rejected delta leaves no trace
(trap bits and secret latches included). Events are published after commit.
"""
from __future__ import annotations

import copy
import logging
from contextlib import contextmanager
from threading import RLock
from typing import Any, Dict, Iterator, List, Optional, Tuple

from ..config import EngineConfig
from ..events import EventBus, EventType
from ..exceptions import MergeError
from ..rules.delta import ItemLookup, StateDelta
from .state import ActionHistory, PlayerState, RoomState, WorldState

logger = logging.getLogger(__name__)


def clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


class WorldStore:
    def __init__(
        self,
        state: Optional[WorldState] = None,
        catalog: Optional[ItemLookup] = None,
        config: Optional[EngineConfig] = None,
        bus: Optional[EventBus] = None,
    ) -> None:
        self._state = state or WorldState()
        self.catalog = catalog
        self.config = config or EngineConfig()
        self.bus = bus
        self._lock = RLock()

    # Reads

    def snapshot(self) -> PlayerState:
        with self._lock:
            return self._state.player.snapshot()

    def room_state(self, room_id: str) -> RoomState:
        """Copy of a room instance's mutable state (empty if never visited)."""
        with self._lock:
            rs = self._state.rooms.get(room_id)
            return copy.deepcopy(rs) if rs is not None else RoomState()

    def is_trap_spent(self, room_id: str, trap_id: str) -> bool:
        with self._lock:
            rs = self._state.rooms.get(room_id)
            return rs is not None and rs.is_spent(trap_id)

    def is_secret_unlocked(self, secret_id: str) -> bool:
        with self._lock:
            return bool(self._state.player.flags.get(self.config.secret_flag(secret_id)))

    def history(self) -> ActionHistory:
        with self._lock:
            return self._state.history.copy()

    def export(self) -> WorldState:
        """Deep copy of the whole world state, e.g. for persistence."""
        with self._lock:
            return copy.deepcopy(self._state)

    @property
    def turn(self) -> int:
        return self._state.turn

    # Writes

    @contextmanager
    def transaction(self) -> Iterator["WorldStore"]:
        """Hold the writer lock across several reads and merges."""
        with self._lock:
            yield self

    def merge(self, delta: StateDelta) -> PlayerState:
        """Apply ``delta`` atomically and return the new player snapshot.

        Raises MergeError (with nothing applied) when the delta would overflow
        the inventory capacity.
        """
        with self._lock:
            work = copy.deepcopy(self._state)
            before_room = work.player.current_room
            fired, disarmed, secrets = self._apply(work, delta)
            self._state = work
            after = work.player.snapshot()

        logger.info(
            "Committed delta: health=%+g score=%+g flags=%d +items=%d -items=%d room=%s",
            delta.health,
            delta.score,
            len(delta.flags),
            len(delta.inventory_add),
            len(delta.inventory_remove),
            after.current_room,
        )
        self._publish(EventType.DELTA_MERGED, {"delta": delta.to_dict()})
        for room_id, trap_id in fired:
            self._publish(EventType.TRAP_TRIGGERED, {"room": room_id, "trap": trap_id})
        for room_id, trap_id in disarmed:
            self._publish(EventType.TRAP_DISARMED, {"room": room_id, "trap": trap_id})
        for secret_id in secrets:
            self._publish(EventType.SECRET_UNLOCKED, {"secret": secret_id})
        if after.current_room != before_room:
            self._publish(EventType.ROOM_CHANGED, {"from": before_room, "to": after.current_room})
        return after

    def _apply(self, work: WorldState, delta: StateDelta) -> Tuple[List[Tuple[str, str]], List[Tuple[str, str]], List[str]]:
        cfg = self.config
        player = work.player

        player.health = clamp(player.health + delta.health, cfg.min_health, cfg.max_health)
        player.score += delta.score
        distinct_before = len(player.inventory)

        for key, value in delta.flags.items():
            player.flags[key] = value
            duration = delta.flag_durations.get(key)
            if duration:
                work.timed_flags[key] = work.turn + duration
            else:
                work.timed_flags.pop(key, None)

        for trait in delta.traits_remove:
            player.traits.discard(trait)
        for trait in delta.traits_add:
            player.traits.add(trait)

        for item_id in delta.inventory_remove:
            if not player.remove_item(item_id):
                logger.debug("Cannot remove %s: not in inventory", item_id)
        for item_id in delta.inventory_add:
            self._add_item(player.inventory, item_id)

        capacity = cfg.inventory_capacity
        # A state already over capacity may still shrink or stay level.
        if capacity is not None and len(player.inventory) > max(capacity, distinct_before):
            raise MergeError(
                f"Inventory capacity {capacity} exceeded ({len(player.inventory)} distinct items); delta rejected"
            )

        fired: List[Tuple[str, str]] = []
        for room_id, trap_ids in delta.triggered_traps.items():
            rs = work.room(room_id)
            for trap_id in trap_ids:
                if trap_id in rs.triggered_traps:
                    logger.warning("Trap %s in %s already spent; not firing again", trap_id, room_id)
                    continue
                rs.triggered_traps.add(trap_id)
                fired.append((room_id, trap_id))

        disarmed: List[Tuple[str, str]] = []
        for room_id, trap_ids in delta.disarmed_traps.items():
            rs = work.room(room_id)
            for trap_id in trap_ids:
                if trap_id in rs.triggered_traps:
                    continue
                rs.triggered_traps.add(trap_id)
                rs.disarmed_traps.add(trap_id)
                disarmed.append((room_id, trap_id))

        secrets: List[str] = []
        for secret_id in delta.unlocked_secrets:
            latch = cfg.secret_flag(secret_id)
            if player.flags.get(latch):
                logger.warning("Secret %s already unlocked; ignoring repeat grant", secret_id)
                continue
            player.flags[latch] = True
            secrets.append(secret_id)

        for source_id, target_id in delta.transformations:
            work.transformations.append(
                {"source": source_id, "target": target_id, "turn": work.turn, "room": player.current_room}
            )

        work.history.extend(delta.actions)

        # Teleport after everything else so room-scoped bits above use the old room.
        if delta.teleport_to:
            player.current_room = delta.teleport_to

        return fired, disarmed, secrets

    def _add_item(self, inventory: Dict[str, int], item_id: str) -> None:
        have = inventory.get(item_id, 0)
        item = self.catalog.get(item_id) if self.catalog is not None else None
        if self.catalog is not None and item is None:
            logger.warning("Unknown item id %r in delta; not added", item_id)
            return
        if item is None or not item.stackable:
            if have >= 1:
                logger.debug("Item %s is not stackable and already held", item_id)
                return
        elif item.max_stack is not None and have >= item.max_stack:
            logger.debug("Item %s already at max stack %s", item_id, item.max_stack)
            return
        inventory[item_id] = have + 1

    def advance_turn(self, turns: int = 1) -> List[str]:
        """Advance the turn counter and expire time-boxed flags. Returns expired flag names."""
        expired: List[str] = []
        with self._lock:
            self._state.turn += max(0, turns)
            for key, until in list(self._state.timed_flags.items()):
                if until <= self._state.turn:
                    self._state.timed_flags.pop(key)
                    self._state.player.flags.pop(key, None)
                    expired.append(key)
        for key in expired:
            logger.debug("Flag %s expired", key)
            self._publish(EventType.FLAG_EXPIRED, {"flag": key})
        return expired

    def reset_trap(self, room_id: str, trap_id: str) -> bool:
        """Re-arm a trap. This is the only way a triggered bit is cleared."""
        with self._lock:
            rs = self._state.rooms.get(room_id)
            if rs is None or trap_id not in rs.triggered_traps:
                return False
            rs.triggered_traps.discard(trap_id)
            rs.disarmed_traps.discard(trap_id)
        logger.info("Trap %s in %s reset", trap_id, room_id)
        self._publish(EventType.TRAP_RESET, {"room": room_id, "trap": trap_id})
        return True

    def _publish(self, name: str, payload: Dict[str, Any]) -> None:
        if self.bus is not None:
            self.bus.publish(name, payload)


__all__ = ["WorldStore", "clamp"]
