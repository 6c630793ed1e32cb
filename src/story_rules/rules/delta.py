from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, FrozenSet, Iterable, List, Optional, Protocol, Tuple

if TYPE_CHECKING:
    from ..items.models import Item

logger = logging.getLogger(__name__)


class ItemLookup(Protocol):
    """Anything that can resolve an item id to its catalog entry."""

    def get(self, item_id: str) -> Optional["Item"]:
        ...


@dataclass
class StateDelta:
    """The additive/overwrite state change produced by one resolution.

    Numeric fields are deltas, not absolute values. Flags overwrite by key.
    Add/remove lists never share an id. Trap bits, secret latches and the
    action log travel in the same delta so they commit together with the
    effects that caused them.
    """

    health: float = 0
    score: float = 0
    flags: Dict[str, Any] = field(default_factory=dict)
    flag_durations: Dict[str, int] = field(default_factory=dict)
    traits_add: List[str] = field(default_factory=list)
    traits_remove: List[str] = field(default_factory=list)
    inventory_add: List[str] = field(default_factory=list)
    inventory_remove: List[str] = field(default_factory=list)
    unlocks: List[str] = field(default_factory=list)
    boosts: List[Dict[str, Any]] = field(default_factory=list)
    teleport_to: Optional[str] = None
    triggered_traps: Dict[str, List[str]] = field(default_factory=dict)
    disarmed_traps: Dict[str, List[str]] = field(default_factory=dict)
    unlocked_secrets: List[str] = field(default_factory=list)
    transformations: List[Tuple[str, str]] = field(default_factory=list)
    actions: List[Tuple[str, str]] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not (
            self.health
            or self.score
            or self.flags
            or self.traits_add
            or self.traits_remove
            or self.inventory_add
            or self.inventory_remove
            or self.unlocks
            or self.boosts
            or self.teleport_to
            or self.triggered_traps
            or self.disarmed_traps
            or self.unlocked_secrets
            or self.transformations
            or self.actions
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "health": self.health,
            "score": self.score,
            "flags": dict(self.flags),
            "flag_durations": dict(self.flag_durations),
            "traits_add": list(self.traits_add),
            "traits_remove": list(self.traits_remove),
            "inventory_add": list(self.inventory_add),
            "inventory_remove": list(self.inventory_remove),
            "unlocks": list(self.unlocks),
            "boosts": [dict(b) for b in self.boosts],
            "teleport_to": self.teleport_to,
            "triggered_traps": {k: list(v) for k, v in self.triggered_traps.items()},
            "disarmed_traps": {k: list(v) for k, v in self.disarmed_traps.items()},
            "unlocked_secrets": list(self.unlocked_secrets),
            "transformations": [list(t) for t in self.transformations],
            "actions": [list(a) for a in self.actions],
        }


def _numeric(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        if value is not None:
            logger.debug("Ignoring non-numeric amount %r", value)
        return 0
    return value


class DeltaBuilder:
    """Accumulates effects into a single :class:`StateDelta`.

    ``held`` is the set of item ids the player holds when the resolution
    starts; together with the optional catalog it keeps non-stackable items
    from being added twice and items listed in each other's
    ``conflict_items`` out of the same inventory.
    """

    def __init__(self, catalog: Optional[ItemLookup] = None, held: Iterable[str] = ()) -> None:
        self._catalog = catalog
        self._held: FrozenSet[str] = frozenset(held)
        self._delta = StateDelta()

    @property
    def delta(self) -> StateDelta:
        return self._delta

    def add_health(self, amount: Any) -> None:
        self._delta.health += _numeric(amount)

    def add_score(self, amount: Any) -> None:
        self._delta.score += _numeric(amount)

    def set_flag(self, key: str, value: Any, duration: Optional[int] = None) -> None:
        self._delta.flags[key] = value
        if duration is not None and not isinstance(duration, bool) and duration > 0:
            self._delta.flag_durations[key] = int(duration)
        else:
            self._delta.flag_durations.pop(key, None)

    def add_trait(self, trait: str) -> None:
        if trait in self._delta.traits_remove:
            self._delta.traits_remove.remove(trait)
        if trait not in self._delta.traits_add:
            self._delta.traits_add.append(trait)

    def remove_trait(self, trait: str) -> None:
        if trait in self._delta.traits_add:
            self._delta.traits_add.remove(trait)
        if trait not in self._delta.traits_remove:
            self._delta.traits_remove.append(trait)

    def _is_stackable(self, item_id: str) -> Optional[bool]:
        """True/False from the catalog, None when the id is unknown to it."""
        if self._catalog is None:
            return False
        item = self._catalog.get(item_id)
        if item is None:
            return None
        return bool(item.stackable)

    def _conflict_for(self, item_id: str) -> Optional[str]:
        """An item the player would end up holding that ``item_id`` conflicts with."""
        if self._catalog is None:
            return None
        item = self._catalog.get(item_id)
        removing = set(self._delta.inventory_remove)
        present = [i for i in self._held if i not in removing] + self._delta.inventory_add
        for other_id in present:
            if other_id == item_id:
                continue
            if other_id in item.conflict_items:
                return other_id
            other = self._catalog.get(other_id)
            if other is not None and item_id in other.conflict_items:
                return other_id
        return None

    def add_item(self, item_id: str) -> bool:
        """Queue an item for the inventory. Returns False when the add is a no-op."""
        stackable = self._is_stackable(item_id)
        if stackable is None:
            logger.warning("Unknown item id %r in inventory effect; skipping", item_id)
            return False
        conflict = self._conflict_for(item_id)
        if conflict is not None:
            logger.warning("Item %s conflicts with %s; not added", item_id, conflict)
            return False
        if item_id in self._delta.inventory_remove:
            self._delta.inventory_remove.remove(item_id)
        if not stackable:
            if item_id in self._delta.inventory_add:
                logger.debug("Item %s already queued and not stackable; skipping duplicate", item_id)
                return False
            if item_id in self._held:
                logger.debug("Item %s already held and not stackable; skipping", item_id)
                return False
        self._delta.inventory_add.append(item_id)
        return True

    def remove_item(self, item_id: str) -> None:
        if item_id in self._delta.inventory_add:
            self._delta.inventory_add.remove(item_id)
            return
        if item_id not in self._delta.inventory_remove:
            self._delta.inventory_remove.append(item_id)

    def transform(self, source_id: str, target_id: str) -> bool:
        """Swap one item for another as a single unit.

        Either both halves land in the delta or neither does.
        """
        if not source_id or not target_id or source_id == target_id:
            logger.warning("Malformed transform %r -> %r; skipping", source_id, target_id)
            return False
        if self._is_stackable(target_id) is None:
            logger.warning("Transform target %r is not in the catalog; skipping", target_id)
            return False
        self.remove_item(source_id)
        if target_id in self._delta.inventory_remove:
            # Pending removal of an already-held target: cancel it instead of adding.
            self._delta.inventory_remove.remove(target_id)
        elif target_id not in self._delta.inventory_add:
            self._delta.inventory_add.append(target_id)
        self._delta.transformations.append((source_id, target_id))
        return True

    def unlock(self, marker: str) -> None:
        self._delta.unlocks.append(marker)

    def boost(self, payload: Dict[str, Any]) -> None:
        self._delta.boosts.append(payload)

    def teleport(self, room_id: str) -> None:
        # Last teleport wins; the store applies it after every other field.
        self._delta.teleport_to = room_id

    def mark_trap(self, room_id: str, trap_id: str, *, disarmed: bool = False) -> None:
        bucket = self._delta.disarmed_traps if disarmed else self._delta.triggered_traps
        ids = bucket.setdefault(room_id, [])
        if trap_id not in ids:
            ids.append(trap_id)

    def unlock_secret(self, secret_id: str) -> None:
        if secret_id not in self._delta.unlocked_secrets:
            self._delta.unlocked_secrets.append(secret_id)

    def record_action(self, verb: str, target: str) -> None:
        self._delta.actions.append((verb, target))

    def build(self) -> StateDelta:
        return self._delta
