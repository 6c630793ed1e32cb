"""Secret / quest unlock checker.

A secret lists free-form ``"verb target"`` strings. It unlocks once every pair
appears in the player's action history. Unlocking latches a
``secret:<id>`` flag; a latched secret never grants its rewards again.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from ..config import EngineConfig
from ..rules.delta import DeltaBuilder, ItemLookup
from ..world.registry import RoomRegistry
from ..world.state import ActionHistory, PlayerState

logger = logging.getLogger(__name__)


def tokenize(requirement: str) -> Tuple[str, str]:
    """Split ``"verb target words"`` into ``("verb", "target words")``."""
    parts = requirement.strip().split(None, 1)
    if not parts:
        return "", ""
    verb = parts[0].lower()
    target = parts[1].strip() if len(parts) > 1 else ""
    return verb, target


@dataclass
class SecretCheck:
    unlocked: bool
    rewards: List[str] = field(default_factory=list)
    already_granted: bool = False


class SecretChecker:
    def __init__(
        self,
        rooms: RoomRegistry,
        catalog: Optional[ItemLookup] = None,
        config: Optional[EngineConfig] = None,
    ) -> None:
        self.rooms = rooms
        self.catalog = catalog
        self.config = config or EngineConfig()

    def check(self, secret_id: str, history: ActionHistory, state: PlayerState) -> SecretCheck:
        secret = self.rooms.secret(secret_id)
        if secret is None:
            logger.warning("Unknown secret id: %s", secret_id)
            return SecretCheck(unlocked=False)
        if state.flags.get(self.config.secret_flag(secret_id)):
            return SecretCheck(unlocked=False, already_granted=True)
        if not secret.requirements:
            logger.warning("Secret %s has no requirements; refusing to unlock it", secret_id)
            return SecretCheck(unlocked=False)
        for requirement in secret.requirements:
            verb, target = tokenize(requirement)
            if not history.contains(verb, target):
                return SecretCheck(unlocked=False)
        return SecretCheck(unlocked=True, rewards=list(secret.rewards))

    def grant(self, secret_id: str, rewards: List[str], builder: DeltaBuilder) -> None:
        """Fold a secret's rewards and its latch into ``builder``.

        Item ids known to the catalog go to the inventory; any other reward is
        set as a flag.
        """
        builder.unlock_secret(secret_id)
        for reward in rewards:
            if self.catalog is not None and self.catalog.get(reward) is not None:
                builder.add_item(reward)
            else:
                builder.set_flag(reward, True)
        logger.info("Secret %s unlocked (%d rewards)", secret_id, len(rewards))


__all__ = ["ActionHistory", "SecretCheck", "SecretChecker", "tokenize"]
