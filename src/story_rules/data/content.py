from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Mapping, Optional, Union

from ..exceptions import ContentError
from ..items.models import Item, ItemTransformation
from ..items.registry import ItemCatalog
from ..world.registry import RoomRegistry
from ..world.rooms import RoomDefinition
from .loader import DataLoader, default_loader

logger = logging.getLogger(__name__)


@dataclass
class Content:
    catalog: ItemCatalog = field(default_factory=ItemCatalog)
    rooms: RoomRegistry = field(default_factory=RoomRegistry)
    transformations: List[ItemTransformation] = field(default_factory=list)

    def add_document(self, doc: Mapping[str, Any], source: str = "<memory>") -> None:
        """Register everything a loaded document declares."""
        if not isinstance(doc, Mapping):
            raise ContentError(f"{source}: content root must be a mapping")
        for raw in doc.get("items") or ():
            self.catalog.register(Item.from_dict(raw))
        for raw in doc.get("transformations") or ():
            self.transformations.append(ItemTransformation.from_dict(raw))
        for raw in doc.get("rooms") or ():
            self.rooms.register(RoomDefinition.from_dict(raw))


def load_content(
    paths: Iterable[Union[str, os.PathLike]],
    *,
    loader: Optional[DataLoader] = None,
    validate: bool = True,
) -> Content:
    """Load item and room documents into one catalog and one room registry."""
    loader = loader or default_loader()
    content = Content()
    for path in paths:
        doc = loader.load(path, validate=validate)
        content.add_document(doc, source=str(path))
    logger.info(
        "Loaded content: %d items, %d rooms, %d transformations",
        len(content.catalog),
        len(content.rooms),
        len(content.transformations),
    )
    return content


__all__ = ["Content", "load_content"]
