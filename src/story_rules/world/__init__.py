from .registry import RoomRegistry
from .rooms import Interactable, RoomDefinition, RoomEvents, Secret, Trap, TrapEffect, TrapSeverity, TriggerKind
from .state import ActionHistory, PlayerRecord, PlayerState, RoomState, WorldState
from .store import WorldStore

__all__ = [
    "ActionHistory",
    "Interactable",
    "PlayerRecord",
    "PlayerState",
    "RoomDefinition",
    "RoomEvents",
    "RoomRegistry",
    "RoomState",
    "Secret",
    "Trap",
    "TrapEffect",
    "TrapSeverity",
    "TriggerKind",
    "WorldState",
    "WorldStore",
]
