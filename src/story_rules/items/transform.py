"""Item transformation resolver.

An item changes into another only when it declares ``transform_into``. The
governing condition is the ``target`` of the item's first requirement, looked
up as a truthy value in the player's flags. Strict mode evaluates the whole
requirement list instead; it needs a full player state.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Mapping, Optional, Union

from ..rules.effects import TransformEffect
from ..rules.requirements import evaluate_all
from ..world.state import PlayerState
from .models import ItemTransformation, TransformTrigger
from .registry import ItemCatalog

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransformContext:
    trigger: TransformTrigger = TransformTrigger.USE
    player_flags: Mapping[str, Any] = field(default_factory=dict)
    current_room: Optional[str] = None
    state: Optional[PlayerState] = None

    @classmethod
    def from_state(cls, trigger: Union[TransformTrigger, str], state: PlayerState) -> "TransformContext":
        return cls(
            trigger=TransformTrigger(trigger),
            player_flags=state.flags,
            current_room=state.current_room,
            state=state,
        )


class TransformationResolver:
    def __init__(
        self,
        catalog: ItemCatalog,
        transformations: Iterable[ItemTransformation] = (),
        strict: bool = False,
    ) -> None:
        self.catalog = catalog
        self.strict = strict
        self._records: Dict[str, ItemTransformation] = {}
        for record in transformations:
            self.add_record(record)

    def add_record(self, record: ItemTransformation) -> None:
        if record.source_id in self._records:
            logger.warning("Replacing transformation record for %s", record.source_id)
        self._records[record.source_id] = record

    def record_for(self, source_id: str) -> Optional[ItemTransformation]:
        return self._records.get(source_id)

    def is_reversible(self, source_id: str) -> bool:
        """Whether a declared record marks this transformation reversible.

        Nothing is reversed automatically; reversal needs its own record.
        """
        record = self._records.get(source_id)
        return bool(record and record.reversible)

    def resolve(self, source_id: str, context: TransformContext) -> Optional[str]:
        item = self.catalog.get(source_id)
        if item is None or not item.transform_into:
            return None

        record = self._records.get(source_id)
        if record is not None and record.trigger != context.trigger:
            logger.debug(
                "Transformation of %s is driven by %s, not %s", source_id, record.trigger.value, context.trigger.value
            )
            return None

        if self.strict:
            if context.state is None:
                logger.warning("Strict transformation of %s needs a player state; refusing", source_id)
                return None
            if not evaluate_all(item.requirements, context.state):
                return None
        else:
            condition = item.requirements[0].target if item.requirements else None
            if condition is None and record is not None:
                condition = record.condition
            if condition and not context.player_flags.get(condition):
                logger.debug("Transformation of %s blocked: flag %s not set", source_id, condition)
                return None

        logger.info("Item %s transforms into %s (%s)", source_id, item.transform_into, context.trigger.value)
        return item.transform_into

    def to_effect(self, source_id: str, context: TransformContext) -> Optional[TransformEffect]:
        target_id = self.resolve(source_id, context)
        if target_id is None:
            return None
        return TransformEffect(target=source_id, value=target_id)


__all__ = ["TransformContext", "TransformationResolver"]
