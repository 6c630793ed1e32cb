from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from ..rules.delta import DeltaBuilder, StateDelta
from ..rules.effects import EffectProcessor
from ..rules.requirements import first_unmet
from ..world.state import PlayerState
from .models import Item

logger = logging.getLogger(__name__)


@dataclass
class ItemUseResult:
    success: bool
    message: str
    delta: StateDelta
    consumed: bool = False


def use_item(
    item: Item,
    state: PlayerState,
    processor: EffectProcessor,
    builder: Optional[DeltaBuilder] = None,
) -> ItemUseResult:
    """Resolve the player using ``item``.

    Requirements gate the use; effects are folded into a delta and consumable
    items are removed from the inventory in the same delta.
    """
    builder = builder or processor.builder_for(state)
    if not item.usable:
        return ItemUseResult(False, f"You can't use the {item.name}.", builder.delta)

    unmet = first_unmet(item.requirements, state)
    if unmet is not None:
        logger.debug("Use of %s blocked by %s", item.id, unmet.describe())
        return ItemUseResult(False, f"You don't meet the requirements to use the {item.name}.", builder.delta)

    result = processor.apply(item.effects, state, default_message=f"You use the {item.name}.", builder=builder)
    if item.consumable:
        builder.remove_item(item.id)
    return ItemUseResult(True, result.message, result.delta, consumed=item.consumable)


__all__ = ["ItemUseResult", "use_item"]
