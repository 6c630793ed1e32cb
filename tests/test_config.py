import json
import logging
from pathlib import Path

import pytest

from story_rules.config import EngineConfig, load_config
from story_rules.exceptions import ConfigError


def test_embedded_defaults_match_dataclass_defaults():
    cfg = load_config()
    assert cfg.to_dict() == EngineConfig().to_dict()


def test_yaml_override(tmp_path: Path):
    p = tmp_path / "engine.yaml"
    p.write_text("difficulty: hard\ninventory_capacity: 4\nexpert_traits: [locksmith]\n", encoding="utf-8")
    cfg = load_config(str(p))
    assert cfg.difficulty == "hard"
    assert cfg.inventory_capacity == 4
    assert cfg.expert_traits == ("locksmith",)
    assert cfg.damage_multiplier() == 1.5


def test_json_round_trip(tmp_path: Path):
    p = tmp_path / "engine.json"
    EngineConfig(max_health=150, warn_visible_traps=False).to_json(p)
    assert json.loads(p.read_text(encoding="utf-8"))["max_health"] == 150
    cfg = load_config(str(p))
    assert cfg.max_health == 150
    assert cfg.warn_visible_traps is False


def test_invalid_yaml_raises_config_error(tmp_path: Path):
    p = tmp_path / "broken.yaml"
    p.write_text("difficulty: [unterminated\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(str(p))


def test_non_mapping_root_is_rejected(tmp_path: Path):
    p = tmp_path / "list.yaml"
    p.write_text("- 1\n- 2\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(str(p))


def test_health_bounds_must_be_ordered():
    with pytest.raises(ConfigError):
        EngineConfig.from_dict({"max_health": 10, "min_health": 10})


def test_negative_multiplier_is_clamped():
    cfg = EngineConfig.from_dict({"difficulty_multipliers": {"easy": -1, "normal": 1}})
    assert cfg.difficulty_multipliers["easy"] == 0.0


def test_unknown_difficulty_falls_back_to_one(caplog):
    cfg = EngineConfig()
    with caplog.at_level(logging.WARNING):
        assert cfg.damage_multiplier("nightmare") == 1.0
    assert "nightmare" in caplog.text


def test_secret_flag_prefix():
    assert EngineConfig().secret_flag("vault") == "secret:vault"
    assert EngineConfig.from_dict({"secret_flag_prefix": "found."}).secret_flag("vault") == "found.vault"
