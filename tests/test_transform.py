from story_rules.items.models import Item, ItemTransformation, TransformTrigger
from story_rules.items.registry import ItemCatalog
from story_rules.items.transform import TransformationResolver, TransformContext
from story_rules.rules.effects import TransformEffect
from story_rules.world.state import PlayerState


def location(flags=None, state=None):
    return TransformContext(trigger=TransformTrigger.LOCATION, player_flags=flags or {}, state=state)


def test_medallion_needs_mystical_energy(content):
    resolver = TransformationResolver(content.catalog, content.transformations)
    assert resolver.resolve("medallion", location({"mystical_energy_activated": True})) == "ancient_key"
    assert resolver.resolve("medallion", location({"mystical_energy_activated": False})) is None
    assert resolver.resolve("medallion", location()) is None


def test_items_without_transform_into_never_change(content):
    resolver = TransformationResolver(content.catalog, content.transformations)
    assert resolver.resolve("rope", location({"mystical_energy_activated": True})) is None
    assert resolver.resolve("no_such_item", location()) is None


def test_declared_trigger_must_match(content):
    resolver = TransformationResolver(content.catalog, content.transformations)
    use = TransformContext(trigger=TransformTrigger.USE, player_flags={"mystical_energy_activated": True})
    assert resolver.resolve("medallion", use) is None
    assert resolver.resolve("coffee", use) == "empty_cup"
    assert resolver.resolve("coffee", location()) is None


def test_undeclared_transformation_accepts_any_trigger():
    seed = Item.from_dict(
        {
            "id": "seed",
            "name": "Seed",
            "transformInto": "flower",
            "requirements": [{"type": "flag", "target": "watered", "value": True}],
        }
    )
    resolver = TransformationResolver(ItemCatalog([seed]))
    ctx = TransformContext(trigger=TransformTrigger.TIME, player_flags={"watered": 1})
    assert resolver.resolve("seed", ctx) == "flower"


def test_strict_mode_evaluates_full_requirements(content):
    resolver = TransformationResolver(content.catalog, content.transformations, strict=True)
    assert resolver.resolve("medallion", location({"mystical_energy_activated": True})) is None

    charged = PlayerState.build(flags={"mystical_energy_activated": True})
    ctx = TransformContext.from_state(TransformTrigger.LOCATION, charged)
    assert resolver.resolve("medallion", ctx) == "ancient_key"

    # strict equality: 1 is not True
    numeric = PlayerState.build(flags={"mystical_energy_activated": 1})
    ctx = TransformContext.from_state(TransformTrigger.LOCATION, numeric)
    assert resolver.resolve("medallion", ctx) is None


def test_reversibility_comes_from_records(content):
    resolver = TransformationResolver(content.catalog, content.transformations)
    assert resolver.is_reversible("medallion") is False
    assert resolver.is_reversible("rope") is False
    resolver.add_record(ItemTransformation(source_id="ancient_key", target_id="medallion", reversible=True))
    assert resolver.is_reversible("ancient_key") is True
    assert resolver.record_for("ancient_key").target_id == "medallion"


def test_to_effect_builds_a_transform_pair(content):
    resolver = TransformationResolver(content.catalog, content.transformations)
    effect = resolver.to_effect("medallion", location({"mystical_energy_activated": True}))
    assert isinstance(effect, TransformEffect)
    assert (effect.target, effect.value) == ("medallion", "ancient_key")
    assert resolver.to_effect("medallion", location()) is None
