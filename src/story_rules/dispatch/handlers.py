from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Union

from ..rules.effects import Effect
from ..world.rooms import RoomDefinition, TriggerKind
from ..world.state import PlayerState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HandlerContext:
    """What an action handler gets to see. Handlers must not write state."""

    room: RoomDefinition
    state: PlayerState
    trigger: TriggerKind
    target: Optional[str] = None
    verb: Optional[str] = None


EffectLike = Union[Effect, Mapping[str, object]]
ActionHandler = Callable[[HandlerContext], Iterable[EffectLike]]


class ActionHandlerRegistry:
    """Maps opaque action ids from room event tables to effect-returning handlers."""

    def __init__(self) -> None:
        self._handlers: Dict[str, ActionHandler] = {}

    def register(self, action_id: str, handler: ActionHandler) -> None:
        if not callable(handler):
            raise TypeError("handler must be callable")
        if action_id in self._handlers:
            logger.debug("Replacing handler for action %s", action_id)
        self._handlers[action_id] = handler

    def handler(self, action_id: str) -> Callable[[ActionHandler], ActionHandler]:
        """Decorator form of :meth:`register`."""

        def deco(fn: ActionHandler) -> ActionHandler:
            self.register(action_id, fn)
            return fn

        return deco

    def get(self, action_id: str) -> Optional[ActionHandler]:
        return self._handlers.get(action_id)

    def ids(self) -> List[str]:
        return sorted(self._handlers)

    def __contains__(self, action_id: object) -> bool:
        return action_id in self._handlers


__all__ = ["ActionHandler", "ActionHandlerRegistry", "HandlerContext"]
