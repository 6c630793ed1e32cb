import sys
from pathlib import Path

import pytest

# Ensure 'src' is on sys.path for test imports without installing the package
ROOT = Path(__file__).resolve().parents[1]
src = ROOT / "src"
if str(src) not in sys.path:
    sys.path.insert(0, str(src))

from story_rules.config import EngineConfig  # noqa: E402
from story_rules.data.content import Content  # noqa: E402
from story_rules.dispatch.dispatcher import TriggerDispatcher  # noqa: E402
from story_rules.dispatch.handlers import ActionHandlerRegistry  # noqa: E402
from story_rules.events import EventBus  # noqa: E402
from story_rules.items.transform import TransformationResolver  # noqa: E402
from story_rules.world.state import PlayerRecord, WorldState  # noqa: E402
from story_rules.world.store import WorldStore  # noqa: E402


ITEMS_DOC = {
    "items": [
        {
            "id": "medallion",
            "name": "Medallion",
            "description": "A worn bronze medallion.",
            "traits": ["mystical"],
            "category": "artifact",
            "rarity": "rare",
            "transformInto": "ancient_key",
            "requirements": [{"type": "flag", "target": "mystical_energy_activated", "value": True}],
        },
        {"id": "ancient_key", "name": "Ancient Key", "category": "key", "rarity": "rare"},
        {
            "id": "coffee",
            "name": "Coffee",
            "description": "Hot and bitter.",
            "category": "consumable",
            "usable": True,
            "consumable": True,
            "transformInto": "empty_cup",
            "effects": [
                {"type": "health", "value": 5},
                {"type": "message", "value": "The coffee warms you."},
            ],
        },
        {"id": "empty_cup", "name": "Empty Cup", "category": "junk"},
        {"id": "trapkit", "name": "Trap Kit", "category": "tool", "traits": ["tool"]},
        {"id": "rope", "name": "Rope", "category": "tool", "value": 3},
        {"id": "lantern", "name": "Lantern", "category": "tool", "value": 12, "throwable": True},
        {
            "id": "healing_herb",
            "name": "Healing Herb",
            "category": "healing",
            "usable": True,
            "consumable": True,
            "stackable": True,
            "maxStack": 3,
            "effects": [{"type": "health", "value": 10}],
        },
        {
            "id": "old_map",
            "name": "Old Map",
            "category": "document",
            "readable": True,
            "content": "X marks the spot.",
        },
        {"id": "memory_shard", "name": "Memory Shard", "category": "quest", "rarity": "unique"},
    ],
    "transformations": [
        {
            "sourceId": "medallion",
            "targetId": "ancient_key",
            "condition": "mystical_energy_activated",
            "trigger": "location",
            "reversible": False,
        },
        {"sourceId": "coffee", "targetId": "empty_cup", "trigger": "use", "reversible": False},
    ],
}

ROOMS_DOC = {
    "rooms": [
        {
            "id": "faelake",
            "title": "The Fae Lake",
            "zone": "elfhameZone",
            "exits": {"west": "datavoid"},
            "traps": [
                {
                    "id": "drowning_current",
                    "type": "damage",
                    "severity": "minor",
                    "description": "Magical currents pull you in!",
                    "trigger": "enter",
                    "effect": {"damage": 12},
                    "triggered": False,
                    "disarmable": False,
                    "hidden": True,
                }
            ],
            "interactables": {
                "crystal_lake": {
                    "description": "A lake of impossible clarity.",
                    "actions": ["examine", "touch", "scry"],
                    "requires": [],
                }
            },
            "events": {"onInteract": {"crystal_lake": ["scryLake"]}},
        },
        {
            "id": "datavoid",
            "title": "The Data Void",
            "zone": "glitchZone",
            "traps": [
                {
                    "id": "void_collapse",
                    "type": "damage",
                    "severity": "fatal",
                    "description": "The ground dissolves into raw data!",
                    "trigger": "enter",
                    "effect": {"damage": 80, "flagsSet": ["void_survivor"]},
                    "disarmable": True,
                    "disarmSkill": "mental_shield",
                    "hidden": False,
                }
            ],
            "interactables": {
                "binary_river": {"description": "A river of ones and zeros.", "actions": ["decode", "examine"]},
                "corrupted_fragments": {
                    "description": "Shards of broken code.",
                    "actions": ["analyze", "collect"],
                    "requires": ["lantern"],
                },
            },
            "events": {
                "onEnter": ["showVoidWarning", "missingHandler"],
                "onExit": ["recordDataLoss"],
                "onInteract": {
                    "binary_river": ["decodeStream"],
                    "corrupted_fragments": ["analyzeFragment"],
                },
            },
            "secrets": {
                "hidden_backup": {
                    "description": "A hidden backup sector flickers into view.",
                    "requirements": ["analyze corrupted_fragments", "decode binary_river"],
                    "rewards": ["memory_shard", "unlock_safe_exit"],
                }
            },
        },
        {
            "id": "mazeecho",
            "title": "Echo Maze",
            "zone": "mazeZone",
            "traps": [
                {
                    "id": "echo_displacement",
                    "type": "teleport",
                    "severity": "major",
                    "description": "The echoes fold space around you.",
                    "trigger": "look",
                    "effect": {"damage": 5, "teleportTo": "faelake"},
                    "disarmable": True,
                    "disarmItem": "rope",
                    "hidden": True,
                },
                {
                    "id": "pickpocket_echo",
                    "type": "item_loss",
                    "severity": "minor",
                    "description": "Something tugs at your pack.",
                    "trigger": "search",
                    "effect": {"itemsLost": ["lantern", "old_map"]},
                    "hidden": True,
                },
            ],
        },
    ]
}


def build_content() -> Content:
    content = Content()
    content.add_document(ITEMS_DOC)
    content.add_document(ROOMS_DOC)
    return content


def default_handlers() -> ActionHandlerRegistry:
    handlers = ActionHandlerRegistry()
    handlers.register("showVoidWarning", lambda ctx: [{"type": "message", "value": "The void hums around you."}])
    handlers.register("recordDataLoss", lambda ctx: [{"type": "flag", "target": "data_lost", "value": True}])
    handlers.register(
        "decodeStream",
        lambda ctx: [{"type": "score", "value": 10}, {"type": "flag", "target": "stream_decoded", "value": True}],
    )
    handlers.register("analyzeFragment", lambda ctx: [{"type": "score", "value": 5}])
    handlers.register(
        "scryLake",
        lambda ctx: [
            {"type": "flag", "target": "scried", "value": True, "duration": 2},
            {"type": "message", "value": "Distant realms shimmer in the water."},
        ],
    )
    return handlers


@pytest.fixture
def content() -> Content:
    return build_content()


@pytest.fixture
def config() -> EngineConfig:
    return EngineConfig()


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


def make_store(content: Content, config: EngineConfig, bus=None, **player) -> WorldStore:
    inventory = player.pop("inventory", [])
    record = PlayerRecord(**player)
    for item_id in inventory:
        record.add_item(item_id)
    return WorldStore(WorldState(player=record), catalog=content.catalog, config=config, bus=bus)


def make_dispatcher(content: Content, store: WorldStore, handlers=None) -> TriggerDispatcher:
    transformer = TransformationResolver(content.catalog, content.transformations)
    return TriggerDispatcher(
        content.rooms,
        store,
        handlers if handlers is not None else default_handlers(),
        catalog=content.catalog,
        config=store.config,
        transformer=transformer,
    )
