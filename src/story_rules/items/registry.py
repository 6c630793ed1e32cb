from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from ..exceptions import ContentError
from .models import Item, ItemCategory, ItemRarity

logger = logging.getLogger(__name__)


class ItemCatalog:
    """
    In-memory catalog of item definitions keyed by id.

    Lookups of unknown ids return None so callers can fail closed; registering
    the same id twice is a content error.
    """

    def __init__(self, items: Iterable[Item] = ()) -> None:
        self._items: Dict[str, Item] = {}
        for item in items:
            self.register(item)

    def register(self, item: Item) -> None:
        if item.id in self._items:
            raise ContentError(f"Duplicate item id: {item.id}")
        self._items[item.id] = item

    def get(self, item_id: str) -> Optional[Item]:
        item = self._items.get(item_id)
        if item is None:
            logger.debug("Unknown item id: %s", item_id)
        return item

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._items

    def __len__(self) -> int:
        return len(self._items)

    def all(self) -> List[Item]:
        return list(self._items.values())

    def by_category(self, category: Union[ItemCategory, str]) -> List[Item]:
        return [i for i in self._items.values() if i.category is not None and i.category == category]

    def by_rarity(self, rarity: Union[ItemRarity, str]) -> List[Item]:
        return [i for i in self._items.values() if (i.rarity or ItemRarity.COMMON) == rarity]

    def by_trait(self, trait: str) -> List[Item]:
        return [i for i in self._items.values() if trait in i.traits]

    def usable(self) -> List[Item]:
        return [i for i in self._items.values() if i.usable]

    def readable(self) -> List[Item]:
        return [i for i in self._items.values() if i.readable]

    def throwable(self) -> List[Item]:
        return [i for i in self._items.values() if i.throwable]

    def search(self, criteria: Union[str, Mapping[str, Any]]) -> List[Item]:
        """Free-text search over name/description/traits, or filter by criteria.

        Supported criteria keys: name, category, rarity, trait, usable,
        readable, throwable, portable, min_value, max_value, has_effect.
        """
        if isinstance(criteria, str):
            if not criteria:
                return []
            query = criteria.lower()
            return [
                i
                for i in self._items.values()
                if query in i.name.lower()
                or query in i.description.lower()
                or any(query in t.lower() for t in i.traits)
            ]
        return [i for i in self._items.values() if _matches(i, criteria)]


def _matches(item: Item, criteria: Mapping[str, Any]) -> bool:
    name = criteria.get("name")
    if name and name.lower() not in item.name.lower():
        return False
    if criteria.get("category") and item.category != criteria["category"]:
        return False
    if criteria.get("rarity") and item.rarity != criteria["rarity"]:
        return False
    if criteria.get("trait") and criteria["trait"] not in item.traits:
        return False
    for flag in ("usable", "readable", "throwable", "portable"):
        if criteria.get(flag) is not None and bool(getattr(item, flag)) != bool(criteria[flag]):
            return False
    value = item.value or 0
    if criteria.get("min_value") is not None and value < criteria["min_value"]:
        return False
    if criteria.get("max_value") is not None and value > criteria["max_value"]:
        return False
    if criteria.get("has_effect") and not item.has_effect(criteria["has_effect"]):
        return False
    return True


__all__ = ["ItemCatalog"]
