import pytest

from story_rules.config import EngineConfig
from story_rules.dispatch.traps import TrapResolver
from story_rules.rules.delta import DeltaBuilder
from story_rules.world.rooms import RoomDefinition, Trap, TrapEffect, TriggerKind
from story_rules.world.state import PlayerState, RoomState

from conftest import make_dispatcher, make_store


def test_entering_faelake_costs_12_health_once(content, config):
    store = make_store(content, config, health=100)
    dispatcher = make_dispatcher(content, store)

    first = dispatcher.resolve("faelake", "enter")
    assert first.committed
    assert first.delta.health == -12
    assert first.fired_traps == ["drowning_current"]
    assert store.snapshot().health == 88
    assert store.is_trap_spent("faelake", "drowning_current")

    second = dispatcher.resolve("faelake", "enter")
    assert second.fired_traps == []
    assert second.delta.health == 0
    assert store.snapshot().health == 88


def test_hidden_trap_gives_no_warning(content, config):
    store = make_store(content, config)
    result = make_dispatcher(content, store).resolve("faelake", "enter")
    assert result.messages[0] == "Magical currents pull you in!"


def test_visible_trap_warns_before_its_outcome(content, config):
    store = make_store(content, config)
    result = make_dispatcher(content, store).resolve("datavoid", "enter")
    assert result.messages[0].startswith("Careful")
    assert result.messages[1] == "The ground dissolves into raw data!"
    snap = store.snapshot()
    assert snap.health == 20
    assert snap.flags["void_survivor"] is True


@pytest.mark.parametrize(
    "difficulty,traits,expected",
    [
        ("normal", [], 12),
        ("easy", [], 6),
        ("hard", [], 18),
        ("normal", ["resistant"], 9),
        ("normal", ["fragile"], 16),
        ("hard", ["trap_resistant"], 13),
    ],
)
def test_damage_scaling_rounds_up(difficulty, traits, expected):
    resolver = TrapResolver(EngineConfig())
    state = PlayerState.build(traits=traits, difficulty=difficulty)
    assert resolver.scaled_damage(12, state) == expected


def test_engine_difficulty_applies_when_player_has_none():
    resolver = TrapResolver(EngineConfig(difficulty="hard"))
    assert resolver.scaled_damage(10, PlayerState.build()) == 15


def test_disarm_by_skill_trait(content, config):
    store = make_store(content, config, traits={"mental_shield"})
    result = make_dispatcher(content, store).resolve("datavoid", "enter")
    assert result.disarmed_traps == ["void_collapse"]
    assert result.fired_traps == []
    assert store.snapshot().health == 100
    rs = store.room_state("datavoid")
    assert "void_collapse" in rs.triggered_traps
    assert "void_collapse" in rs.disarmed_traps


def test_disarm_by_item_and_kit(content, config):
    store = make_store(content, config, inventory=["rope"], current_room="mazeecho")
    result = make_dispatcher(content, store).resolve("mazeecho", "look")
    assert result.disarmed_traps == ["echo_displacement"]
    assert store.snapshot().current_room == "mazeecho"

    store = make_store(content, config, inventory=["trapkit"])
    result = make_dispatcher(content, store).resolve("datavoid", "enter")
    assert result.disarmed_traps == ["void_collapse"]


def test_expert_cannot_disarm_a_non_disarmable_trap(content, config):
    store = make_store(content, config, traits={"trap_expert"})
    result = make_dispatcher(content, store).resolve("faelake", "enter")
    assert result.fired_traps == ["drowning_current"]
    assert store.snapshot().health == 88


def test_teleport_trap_moves_player_last(content, config):
    store = make_store(content, config, current_room="mazeecho")
    result = make_dispatcher(content, store).resolve("mazeecho", "look")
    assert result.fired_traps == ["echo_displacement"]
    assert result.delta.teleport_to == "faelake"
    snap = store.snapshot()
    assert snap.current_room == "faelake"
    assert snap.health == 95
    assert store.is_trap_spent("mazeecho", "echo_displacement")
    assert not store.is_trap_spent("faelake", "echo_displacement")


def test_item_loss_only_removes_held_items(content, config):
    store = make_store(content, config, inventory=["lantern", "rope"])
    result = make_dispatcher(content, store).resolve("mazeecho", "search")
    assert result.delta.inventory_remove == ["lantern"]
    assert store.snapshot().inventory == frozenset({"rope"})


def test_trap_trigger_must_match(content, config):
    store = make_store(content, config)
    result = make_dispatcher(content, store).resolve("faelake", "look")
    assert result.fired_traps == []
    assert not store.is_trap_spent("faelake", "drowning_current")


def test_resolver_skips_spent_traps():
    trap = Trap(id="t1", trigger=TriggerKind.ENTER, effect=TrapEffect(damage=3))
    resolver = TrapResolver()

    room = RoomDefinition(id="r", traps=(trap,))
    assert resolver.select(room, TriggerKind.ENTER, RoomState()) == [trap]
    assert resolver.select(room, TriggerKind.ENTER, RoomState(triggered_traps={"t1"})) == []

    builder = DeltaBuilder()
    outcomes = resolver.resolve(room, [trap], PlayerState.build(), builder)
    assert outcomes[0].fired and outcomes[0].damage == 3
    assert builder.delta.triggered_traps == {"r": ["t1"]}


@pytest.mark.parametrize(
    "traits,inventory,expected",
    [
        ([], [], None),
        (["perceptive"], [], "Your keen senses reveal a hidden minor trap."),
        (["alert"], [], "Your keen senses reveal a hidden minor trap."),
        ([], ["scanner"], "Your detector beeps: a hidden minor trap is here."),
        ([], ["trap_detector"], "Your detector beeps: a hidden minor trap is here."),
    ],
)
def test_hidden_traps_need_a_detector(traits, inventory, expected):
    trap = Trap(id="t1", hidden=True, effect=TrapEffect(damage=3))
    resolver = TrapResolver()
    assert resolver.warning(trap, PlayerState.build(traits=traits, inventory=inventory)) == expected


def test_detection_reveals_but_does_not_prevent(content, config):
    store = make_store(content, config, traits={"perceptive"})
    result = make_dispatcher(content, store).resolve("faelake", "enter")
    assert result.messages[:2] == ["Your keen senses reveal a hidden minor trap.", "Magical currents pull you in!"]
    assert store.snapshot().health == 88


def test_visible_warning_can_be_switched_off():
    trap = Trap(id="t1", hidden=False)
    assert TrapResolver(EngineConfig(warn_visible_traps=False)).warning(trap, PlayerState.build()) is None
    assert TrapResolver().detection_method(trap, PlayerState.build()) == "visual"


def test_search_skips_traps_already_resolved():
    room = RoomDefinition(
        id="r",
        traps=(
            Trap(id="a", trigger=TriggerKind.SEARCH),
            Trap(id="b", trigger=TriggerKind.ENTER, disarmable=True),
            Trap(id="c", trigger=TriggerKind.LOOK),
        ),
    )
    resolver = TrapResolver()
    spent = RoomState(triggered_traps={"c"})
    assert [t.id for t in resolver.armed(room, spent)] == ["a", "b"]
    messages = resolver.search(room, spent, PlayerState.build(traits=["trap_expert"]), exclude=["a"])
    assert messages == ["Searching carefully, you discover a minor trap. You could disarm it."]
