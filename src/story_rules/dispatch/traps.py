"""Trap selection, disarming and firing.

A trap is considered only while its triggered bit is clear in the room
instance. Firing or disarming it sets the bit through the delta, so the bit
commits (or rolls back) together with the trap's damage.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from ..config import EngineConfig
from ..rules.delta import DeltaBuilder
from ..world.rooms import RoomDefinition, Trap, TriggerKind
from ..world.state import PlayerState, RoomState

logger = logging.getLogger(__name__)


@dataclass
class TrapOutcome:
    trap: Trap
    fired: bool = False
    disarmed: bool = False
    damage: int = 0
    messages: List[str] = field(default_factory=list)


class TrapResolver:
    def __init__(self, config: Optional[EngineConfig] = None) -> None:
        self.config = config or EngineConfig()

    def select(self, room: RoomDefinition, trigger: TriggerKind, room_state: RoomState) -> List[Trap]:
        return [t for t in room.traps_for(trigger) if not room_state.is_spent(t.id)]

    def armed(self, room: RoomDefinition, room_state: RoomState) -> List[Trap]:
        """Traps in ``room`` whose bit is still clear, whatever their trigger."""
        return [t for t in room.traps if not room_state.is_spent(t.id)]

    def detection_method(self, trap: Trap, state: PlayerState) -> Optional[str]:
        """How the player notices ``trap`` before it goes off, or None.

        Visible traps are always noticed. Hidden ones need a detector trait
        (``perception``) or a detector item (``technology``).
        """
        if not trap.hidden:
            return "visual"
        if any(t in state.traits for t in self.config.detector_traits):
            return "perception"
        if any(i in state.inventory for i in self.config.detector_items):
            return "technology"
        return None

    def warning(self, trap: Trap, state: PlayerState) -> Optional[str]:
        method = self.detection_method(trap, state)
        severity = trap.severity.value
        if method == "visual":
            return f"Careful: you sense a {severity} trap here." if self.config.warn_visible_traps else None
        if method == "perception":
            return f"Your keen senses reveal a hidden {severity} trap."
        if method == "technology":
            return f"Your detector beeps: a hidden {severity} trap is here."
        return None

    def search(
        self,
        room: RoomDefinition,
        room_state: RoomState,
        state: PlayerState,
        exclude: Iterable[str] = (),
    ) -> List[str]:
        """Report every armed trap in ``room`` not listed in ``exclude``."""
        skip = set(exclude)
        found = [t for t in self.armed(room, room_state) if t.id not in skip]
        if not found:
            return ["You search carefully but find no traps here."]
        messages = []
        for trap in found:
            text = f"Searching carefully, you discover a {trap.severity.value} trap."
            if self.disarm_method(trap, state) is not None:
                text += " You could disarm it."
            messages.append(text)
        logger.debug("Search in %s found traps %s", room.id, [t.id for t in found])
        return messages

    def disarm_method(self, trap: Trap, state: PlayerState) -> Optional[str]:
        """Return a message describing how the player disarms ``trap``, or None."""
        if not trap.disarmable:
            return None
        skill = trap.disarm_skill
        if skill and skill in state.traits:
            return f"Your {skill.replace('_', ' ')} lets you disarm the trap."
        if skill and skill in state.inventory:
            return f"You use your {skill.replace('_', ' ')} to disarm the trap."
        if trap.disarm_item and trap.disarm_item in state.inventory:
            return f"You use your {trap.disarm_item.replace('_', ' ')} to disarm the trap."
        if any(t in state.traits for t in self.config.expert_traits):
            return f"Your expertise lets you disarm the {trap.severity.value} trap before it can harm you."
        for kit in self.config.disarm_kit_items:
            if kit in state.inventory:
                return f"You quickly deploy your {kit.replace('_', ' ')} to neutralize the trap."
        return None

    def scaled_damage(self, base: int, state: PlayerState) -> int:
        """Scale raw trap damage by difficulty, then resistance/fragility, rounding up each step."""
        cfg = self.config
        damage = base
        mult = cfg.damage_multiplier(state.difficulty)
        if mult != 1.0:
            damage = math.ceil(damage * mult)
        if any(t in state.traits for t in cfg.resistant_traits):
            damage = math.ceil(damage * cfg.resistance_multiplier)
        if any(t in state.traits for t in cfg.fragile_traits):
            damage = math.ceil(damage * cfg.fragility_multiplier)
        return max(0, int(damage))

    def resolve(
        self,
        room: RoomDefinition,
        traps: Iterable[Trap],
        state: PlayerState,
        builder: DeltaBuilder,
    ) -> List[TrapOutcome]:
        outcomes: List[TrapOutcome] = []
        for trap in traps:
            outcome = TrapOutcome(trap=trap)
            warning = self.warning(trap, state)
            if warning:
                outcome.messages.append(warning)

            method = self.disarm_method(trap, state)
            if method is not None:
                builder.mark_trap(room.id, trap.id, disarmed=True)
                outcome.disarmed = True
                outcome.messages.append(method)
                logger.info("Trap %s in %s disarmed", trap.id, room.id)
                outcomes.append(outcome)
                continue

            outcome.damage = self._fire(room, trap, state, builder)
            outcome.fired = True
            if trap.description:
                outcome.messages.append(trap.description)
            logger.info("Trap %s in %s fired (%s, damage=%d)", trap.id, room.id, trap.severity.value, outcome.damage)
            outcomes.append(outcome)
        return outcomes

    def _fire(self, room: RoomDefinition, trap: Trap, state: PlayerState, builder: DeltaBuilder) -> int:
        effect = trap.effect
        damage = self.scaled_damage(effect.damage, state) if effect.damage else 0
        if damage:
            builder.add_health(-damage)
        for flag in effect.flags_set:
            builder.set_flag(flag, True)
        for item_id in effect.items_lost:
            if item_id in state.inventory:
                builder.remove_item(item_id)
        if effect.teleport_to:
            builder.teleport(effect.teleport_to)
        builder.mark_trap(room.id, trap.id)
        return damage


__all__ = ["TrapOutcome", "TrapResolver"]
