"""Trigger dispatcher: one player action in, one committed delta out.

Resolution order is fixed: traps, then the action's own target (interactable
or item), then generic room actions, then secrets. All stages fold into one
delta which is merged in a single store transaction.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Set, Tuple, Union

from ..config import EngineConfig
from ..exceptions import ContentError, MergeError
from ..items.models import TransformTrigger
from ..items.registry import ItemCatalog
from ..items.transform import TransformationResolver, TransformContext
from ..items.use import use_item
from ..rules.delta import DeltaBuilder, StateDelta
from ..rules.effects import EffectProcessor
from ..rules.requirements import first_unmet
from ..world.registry import RoomRegistry
from ..world.rooms import RoomDefinition, Trap, TriggerKind, parse_trigger
from ..world.state import PlayerState
from ..world.store import WorldStore
from .handlers import ActionHandlerRegistry, HandlerContext
from .secrets import SecretChecker
from .traps import TrapResolver

logger = logging.getLogger(__name__)


@dataclass
class ResolutionResult:
    delta: StateDelta
    messages: List[str] = field(default_factory=list)
    unlocked_secrets: List[str] = field(default_factory=list)
    fired_traps: List[str] = field(default_factory=list)
    disarmed_traps: List[str] = field(default_factory=list)
    skipped_actions: List[str] = field(default_factory=list)
    committed: bool = False

    @property
    def message(self) -> str:
        return "\n".join(self.messages)


class TriggerDispatcher:
    def __init__(
        self,
        rooms: RoomRegistry,
        store: WorldStore,
        handlers: Optional[ActionHandlerRegistry] = None,
        catalog: Optional[ItemCatalog] = None,
        config: Optional[EngineConfig] = None,
        transformer: Optional[TransformationResolver] = None,
        secrets: Optional[SecretChecker] = None,
    ) -> None:
        self.rooms = rooms
        self.store = store
        self.handlers = handlers or ActionHandlerRegistry()
        self.catalog = catalog
        self.config = config or store.config
        if transformer is None and catalog is not None:
            transformer = TransformationResolver(catalog, strict=self.config.strict_transform_requirements)
        self.transformer = transformer
        self.secrets = secrets or SecretChecker(rooms, catalog=catalog, config=self.config)
        self.processor = EffectProcessor(catalog=catalog, config=self.config)
        self.traps = TrapResolver(self.config)
        self._in_flight: Set[Tuple[str, str]] = set()

    def resolve(
        self,
        room_id: str,
        trigger: Union[TriggerKind, str],
        target: Optional[str] = None,
        *,
        verb: Optional[str] = None,
        commit: bool = True,
    ) -> ResolutionResult:
        try:
            kind = parse_trigger(trigger)
        except ContentError:
            logger.warning("Unknown trigger %r for room %s; nothing to resolve", trigger, room_id)
            return ResolutionResult(delta=StateDelta())
        room = self.rooms.get(room_id)
        if room is None:
            logger.warning("Unknown room %r; nothing to resolve", room_id)
            return ResolutionResult(delta=StateDelta())

        with self.store.transaction():
            state = self.store.snapshot()
            room_state = self.store.room_state(room_id)
            builder = DeltaBuilder(self.catalog, held=state.inventory)
            result = ResolutionResult(delta=builder.delta)

            traps = [t for t in self.traps.select(room, kind, room_state) if (room_id, t.id) not in self._in_flight]
            claimed = {(room_id, t.id) for t in traps}
            self._in_flight |= claimed
            try:
                # 1. traps
                for outcome in self.traps.resolve(room, traps, state, builder):
                    result.messages.extend(outcome.messages)
                    if outcome.fired:
                        result.fired_traps.append(outcome.trap.id)
                    if outcome.disarmed:
                        result.disarmed_traps.append(outcome.trap.id)
                if kind is TriggerKind.SEARCH:
                    in_flight = [trap_id for rid, trap_id in self._in_flight if rid == room_id]
                    result.messages.extend(self.traps.search(room, room_state, state, exclude=in_flight))

                # 2. the action's own target
                performed = True
                if kind is TriggerKind.INTERACT:
                    performed = self._interact(room, state, target, verb, builder, result)
                elif kind is TriggerKind.ITEM_USE:
                    performed = self._use_item(state, target, builder, result)
                elif kind is TriggerKind.ENTER:
                    self._location_transforms(state, builder, result)

                # 3. generic room actions
                if kind is not TriggerKind.INTERACT:
                    self._run_actions(room, room.events.actions_for(kind), state, kind, target, verb, builder, result)

                # 4. secrets, with the current action counted
                history = self.store.history()
                if performed:
                    action = ((verb or kind.value).lower(), target or room_id)
                    builder.record_action(*action)
                    history.record(*action)
                for secret_id in room.secrets:
                    check = self.secrets.check(secret_id, history, state)
                    if check.unlocked:
                        self.secrets.grant(secret_id, check.rewards, builder)
                        result.unlocked_secrets.append(secret_id)
                        secret = room.secrets[secret_id]
                        if secret.description:
                            result.messages.append(secret.description)

                if commit:
                    try:
                        self.store.merge(builder.build())
                        result.committed = True
                    except MergeError as exc:
                        logger.warning("Resolution of %s/%s rolled back: %s", room_id, kind.value, exc)
                        result.messages.append("You can't carry any more.")
            finally:
                self._in_flight -= claimed

        logger.debug(
            "Resolved %s in %s (target=%s): %d messages, traps fired=%s",
            kind.value,
            room_id,
            target,
            len(result.messages),
            result.fired_traps,
        )
        return result

    def armed_traps(self, room_id: str) -> List[Trap]:
        """Traps in ``room_id`` that have neither fired nor been disarmed."""
        room = self.rooms.get(room_id)
        if room is None:
            return []
        return self.traps.armed(room, self.store.room_state(room_id))

    def _interact(
        self,
        room: RoomDefinition,
        state: PlayerState,
        target: Optional[str],
        verb: Optional[str],
        builder: DeltaBuilder,
        result: ResolutionResult,
    ) -> bool:
        """Run an interactable's actions. Returns False when the interaction is refused."""
        if not target:
            logger.debug("Interact in %s without a target", room.id)
            return False
        element = room.interactables.get(target)
        if element is None and target not in room.events.on_interact:
            logger.info("Room %s has no interactable %r", room.id, target)
            result.messages.append(f"You don't see any {target.replace('_', ' ')} here.")
            return False
        if element is not None:
            unmet = first_unmet(element.requires, state)
            if unmet is not None:
                logger.debug("Interaction with %s gated by %s", target, unmet.describe())
                result.messages.append(f"You can't do that with the {target.replace('_', ' ')} yet.")
                return False
            if verb and element.actions and verb not in element.actions:
                result.messages.append(f"You can't {verb} the {target.replace('_', ' ')}.")
                return False
            if element.description and (verb is None or verb in ("examine", "look")):
                result.messages.append(element.description)
        actions = room.events.actions_for(TriggerKind.INTERACT, target)
        self._run_actions(room, actions, state, TriggerKind.INTERACT, target, verb, builder, result)
        return True

    def _use_item(
        self,
        state: PlayerState,
        target: Optional[str],
        builder: DeltaBuilder,
        result: ResolutionResult,
    ) -> bool:
        if not target:
            return False
        item = self.catalog.get(target) if self.catalog is not None else None
        if item is None:
            logger.warning("Item use of unknown item %r", target)
            result.messages.append("Nothing happens.")
            return False
        if target not in state.inventory:
            result.messages.append(f"You don't have the {item.name}.")
            return False
        used = use_item(item, state, self.processor, builder)
        result.messages.append(used.message)
        if used.success and self.transformer is not None:
            effect = self.transformer.to_effect(target, TransformContext.from_state(TransformTrigger.USE, state))
            if effect is not None:
                self.processor.apply([effect], state, builder=builder)
        return used.success

    def _location_transforms(self, state: PlayerState, builder: DeltaBuilder, result: ResolutionResult) -> None:
        if self.transformer is None:
            return
        context = TransformContext.from_state(TransformTrigger.LOCATION, state)
        for item_id in sorted(state.inventory):
            if item_id in builder.delta.inventory_remove:
                continue
            effect = self.transformer.to_effect(item_id, context)
            if effect is None:
                continue
            if builder.transform(effect.target, effect.value):
                result.messages.append(f"Your {item_id.replace('_', ' ')} changes.")

    def _run_actions(
        self,
        room: RoomDefinition,
        action_ids: Iterable[str],
        state: PlayerState,
        kind: TriggerKind,
        target: Optional[str],
        verb: Optional[str],
        builder: DeltaBuilder,
        result: ResolutionResult,
    ) -> None:
        ctx = HandlerContext(room=room, state=state, trigger=kind, target=target, verb=verb)
        for action_id in action_ids:
            handler = self.handlers.get(action_id)
            if handler is None:
                logger.warning("No handler registered for action %r in room %s; skipping", action_id, room.id)
                result.skipped_actions.append(action_id)
                continue
            effects = list(handler(ctx) or ())
            applied = self.processor.apply(effects, state, builder=builder)
            result.messages.extend(applied.messages)


__all__ = ["ResolutionResult", "TriggerDispatcher"]
