from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Tuple

from ..exceptions import ContentError
from .rooms import RoomDefinition, Secret

logger = logging.getLogger(__name__)


class RoomRegistry:
    """Room definitions by id, plus an index of secrets by secret id."""

    def __init__(self, rooms: Iterable[RoomDefinition] = ()) -> None:
        self._rooms: Dict[str, RoomDefinition] = {}
        self._secrets: Dict[str, Tuple[str, Secret]] = {}
        for room in rooms:
            self.register(room)

    def register(self, room: RoomDefinition) -> None:
        if room.id in self._rooms:
            raise ContentError(f"Duplicate room id: {room.id}")
        for secret_id, secret in room.secrets.items():
            if secret_id in self._secrets:
                raise ContentError(
                    f"Secret {secret_id} declared in both {self._secrets[secret_id][0]} and {room.id}"
                )
            self._secrets[secret_id] = (room.id, secret)
        self._rooms[room.id] = room

    def get(self, room_id: str) -> Optional[RoomDefinition]:
        room = self._rooms.get(room_id)
        if room is None:
            logger.debug("Unknown room id: %s", room_id)
        return room

    def secret(self, secret_id: str) -> Optional[Secret]:
        entry = self._secrets.get(secret_id)
        return entry[1] if entry else None

    def secret_room(self, secret_id: str) -> Optional[str]:
        entry = self._secrets.get(secret_id)
        return entry[0] if entry else None

    def all(self) -> List[RoomDefinition]:
        return list(self._rooms.values())

    def __contains__(self, room_id: object) -> bool:
        return room_id in self._rooms

    def __len__(self) -> int:
        return len(self._rooms)


__all__ = ["RoomRegistry"]
