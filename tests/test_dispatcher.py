import logging

from story_rules.config import EngineConfig
from story_rules.dispatch.handlers import ActionHandlerRegistry
from story_rules.rules.effects import HealthEffect
from story_rules.world.rooms import RoomDefinition

from conftest import default_handlers, make_dispatcher, make_store


def test_traps_resolve_before_room_actions(content, config):
    store = make_store(content, config)
    result = make_dispatcher(content, store).resolve("datavoid", "enter")
    assert result.messages == [
        "Careful: you sense a fatal trap here.",
        "The ground dissolves into raw data!",
        "The void hums around you.",
    ]


def test_unknown_action_is_logged_and_skipped(content, config, caplog):
    store = make_store(content, config, traits={"mental_shield"})
    with caplog.at_level(logging.WARNING):
        result = make_dispatcher(content, store).resolve("datavoid", "enter")
    assert result.skipped_actions == ["missingHandler"]
    assert result.committed
    assert "missingHandler" in caplog.text


def test_unknown_room_resolves_to_nothing(content, config):
    store = make_store(content, config)
    result = make_dispatcher(content, store).resolve("atlantis", "enter")
    assert result.delta.is_empty()
    assert not result.committed
    assert len(store.history()) == 0


def test_unknown_trigger_resolves_to_nothing(content, config):
    store = make_store(content, config)
    result = make_dispatcher(content, store).resolve("faelake", "dance")
    assert result.delta.is_empty()
    assert not store.is_trap_spent("faelake", "drowning_current")


def test_interactable_requirements_gate_its_actions(content, config):
    store = make_store(content, config)
    dispatcher = make_dispatcher(content, store)

    blocked = dispatcher.resolve("datavoid", "interact", "corrupted_fragments", verb="analyze")
    assert blocked.delta.score == 0
    assert "yet" in blocked.messages[-1]

    store = make_store(content, config, inventory=["lantern"])
    dispatcher = make_dispatcher(content, store)
    allowed = dispatcher.resolve("datavoid", "interact", "corrupted_fragments", verb="analyze")
    assert allowed.delta.score == 5
    assert store.snapshot().score == 5


def test_interact_with_unlisted_verb_does_nothing(content, config):
    store = make_store(content, config)
    result = make_dispatcher(content, store).resolve("faelake", "interact", "crystal_lake", verb="drink")
    assert result.messages == ["You can't drink the crystal lake."]
    assert "scried" not in store.snapshot().flags


def test_interact_with_missing_element(content, config):
    store = make_store(content, config)
    result = make_dispatcher(content, store).resolve("faelake", "interact", "piano")
    assert result.messages == ["You don't see any piano here."]


def test_interact_runs_element_actions(content, config):
    store = make_store(content, config)
    result = make_dispatcher(content, store).resolve("faelake", "interact", "crystal_lake", verb="scry")
    assert result.delta.flags == {"scried": True}
    assert result.delta.flag_durations == {"scried": 2}
    assert "Distant realms shimmer in the water." in result.messages


def test_exit_runs_generic_room_actions(content, config):
    store = make_store(content, config)
    make_dispatcher(content, store).resolve("datavoid", "exit")
    assert store.snapshot().flags["data_lost"] is True


def test_secret_unlocks_once_and_grants_rewards(content, config):
    store = make_store(content, config, inventory=["lantern"])
    dispatcher = make_dispatcher(content, store)

    first = dispatcher.resolve("datavoid", "interact", "corrupted_fragments", verb="analyze")
    assert first.unlocked_secrets == []

    second = dispatcher.resolve("datavoid", "interact", "binary_river", verb="decode")
    assert second.unlocked_secrets == ["hidden_backup"]
    assert "A hidden backup sector flickers into view." in second.messages
    snap = store.snapshot()
    assert "memory_shard" in snap.inventory
    assert snap.flags["unlock_safe_exit"] is True
    assert store.is_secret_unlocked("hidden_backup")

    third = dispatcher.resolve("datavoid", "interact", "binary_river", verb="decode")
    assert third.unlocked_secrets == []
    assert store.snapshot().inventory_counts["memory_shard"] == 1


def test_actions_are_recorded_in_history(content, config):
    store = make_store(content, config)
    dispatcher = make_dispatcher(content, store)
    dispatcher.resolve("faelake", "enter")
    dispatcher.resolve("faelake", "interact", "crystal_lake", verb="touch")
    assert list(store.history()) == [("enter", "faelake"), ("touch", "crystal_lake")]


def test_dry_run_does_not_commit(content, config):
    store = make_store(content, config)
    result = make_dispatcher(content, store).resolve("faelake", "enter", commit=False)
    assert result.delta.health == -12
    assert not result.committed
    assert store.snapshot().health == 100
    assert not store.is_trap_spent("faelake", "drowning_current")


def test_failed_merge_rolls_back_trap_bits(content):
    cfg = EngineConfig(inventory_capacity=1)
    handlers = ActionHandlerRegistry()
    handlers.register("showVoidWarning", lambda ctx: [{"type": "inventory", "value": "memory_shard"}])
    store = make_store(content, cfg, inventory=["lantern"])
    result = make_dispatcher(content, store, handlers).resolve("datavoid", "enter")
    assert not result.committed
    assert result.fired_traps == ["void_collapse"]
    assert not store.is_trap_spent("datavoid", "void_collapse")
    assert store.snapshot().health == 100
    assert len(store.history()) == 0


def test_reentrant_resolution_does_not_refire_in_flight_trap(content, config):
    content.rooms.register(
        RoomDefinition.from_dict(
            {
                "id": "echo_lake",
                "traps": [{"id": "undertow", "trigger": "enter", "effect": {"damage": 12}}],
                "events": {"onEnter": ["echo"]},
            }
        )
    )
    store = make_store(content, config, health=50)
    handlers = default_handlers()
    dispatcher = make_dispatcher(content, store, handlers)
    nested = []
    calls = []

    def echo(ctx):
        calls.append(ctx.target)
        if len(calls) == 1:
            nested.append(dispatcher.resolve("echo_lake", "enter"))
        return [HealthEffect(value=1)]

    handlers.register("echo", echo)

    outer = dispatcher.resolve("echo_lake", "enter")
    assert outer.fired_traps == ["undertow"]
    assert nested[0].fired_traps == []
    assert nested[0].committed
    assert store.snapshot().health == 40
    assert store.is_trap_spent("echo_lake", "undertow")


def test_item_use_applies_effects_and_transformation(content, config):
    store = make_store(content, config, inventory=["coffee"], health=50)
    result = make_dispatcher(content, store).resolve("faelake", "item_use", "coffee")
    assert result.messages == ["The coffee warms you."]
    snap = store.snapshot()
    assert snap.health == 55
    assert snap.inventory == frozenset({"empty_cup"})
    assert store.export().transformations[0]["source"] == "coffee"


def test_item_use_of_item_not_held(content, config):
    store = make_store(content, config)
    result = make_dispatcher(content, store).resolve("faelake", "item_use", "coffee")
    assert result.messages == ["You don't have the Coffee."]
    assert store.snapshot().health == 100


def test_entering_with_energised_medallion_transforms_it(content, config):
    store = make_store(
        content, config, inventory=["medallion"], flags={"mystical_energy_activated": True}
    )
    dispatcher = make_dispatcher(content, store)
    result = dispatcher.resolve("mazeecho", "enter")
    assert "Your medallion changes." in result.messages
    assert store.snapshot().inventory == frozenset({"ancient_key"})

    store = make_store(content, config, inventory=["medallion"])
    make_dispatcher(content, store).resolve("mazeecho", "enter")
    assert store.snapshot().inventory == frozenset({"medallion"})


def test_item_taken_by_a_trap_does_not_transform(content, config):
    content.rooms.register(
        RoomDefinition.from_dict(
            {
                "id": "pit",
                "traps": [
                    {
                        "id": "thief",
                        "type": "item_loss",
                        "trigger": "enter",
                        "effect": {"itemsLost": ["medallion"]},
                        "hidden": True,
                    }
                ],
            }
        )
    )
    store = make_store(content, config, inventory=["medallion"], flags={"mystical_energy_activated": True})
    result = make_dispatcher(content, store).resolve("pit", "enter")
    assert result.fired_traps == ["thief"]
    assert "Your medallion changes." not in result.messages
    assert result.delta.transformations == []
    assert store.snapshot().inventory == frozenset()


def test_search_reports_armed_traps(content, config):
    store = make_store(content, config, inventory=["rope"])
    dispatcher = make_dispatcher(content, store)
    result = dispatcher.resolve("mazeecho", "search")
    assert result.fired_traps == ["pickpocket_echo"]
    assert "Searching carefully, you discover a major trap. You could disarm it." in result.messages

    assert [t.id for t in dispatcher.armed_traps("mazeecho")] == ["echo_displacement"]


def test_search_after_every_trap_is_spent(content, config):
    store = make_store(content, config, traits={"mental_shield"})
    dispatcher = make_dispatcher(content, store)
    assert [t.id for t in dispatcher.armed_traps("datavoid")] == ["void_collapse"]
    dispatcher.resolve("datavoid", "enter")
    assert dispatcher.armed_traps("datavoid") == []
    result = dispatcher.resolve("datavoid", "search")
    assert result.messages == ["You search carefully but find no traps here."]
    assert dispatcher.armed_traps("atlantis") == []
