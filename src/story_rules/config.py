from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field
from importlib.resources import files as resource_files
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

from .exceptions import ConfigError

logger = logging.getLogger(__name__)

_NAME_LISTS = (
    "resistant_traits",
    "fragile_traits",
    "expert_traits",
    "disarm_kit_items",
    "detector_traits",
    "detector_items",
)


@dataclass
class EngineConfig:
    """Central engine configuration and helpers.

    - max_health/min_health: bounds applied when a health delta is merged.
    - inventory_capacity: maximum number of distinct item ids a player may hold
      (None = unbounded). Exceeding it rejects the whole delta.
    - difficulty_multipliers: trap damage scaling by difficulty name.
    - resistant_traits/fragile_traits: traits that scale trap damage down/up.
    - expert_traits/disarm_kit_items: let the player disarm any disarmable trap.
    - detector_traits/detector_items: reveal hidden traps before they go off.
    """

    max_health: int = 100
    min_health: int = 0
    inventory_capacity: Optional[int] = None
    difficulty: str = "normal"
    difficulty_multipliers: Dict[str, float] = field(default_factory=lambda: {
        "easy": 0.5,
        "normal": 1.0,
        "hard": 1.5,
    })
    resistant_traits: Tuple[str, ...] = ("resistant", "trap_resistant")
    resistance_multiplier: float = 0.7
    fragile_traits: Tuple[str, ...] = ("fragile",)
    fragility_multiplier: float = 1.3
    expert_traits: Tuple[str, ...] = ("trap_expert", "master_thief")
    disarm_kit_items: Tuple[str, ...] = ("trapkit",)
    detector_traits: Tuple[str, ...] = ("perceptive", "alert", "trap_expert", "master_thief")
    detector_items: Tuple[str, ...] = ("trap_detector", "scanner")
    unlock_fallback_message: str = "Something unlocks."
    secret_flag_prefix: str = "secret:"
    warn_visible_traps: bool = True
    strict_transform_requirements: bool = False

    def damage_multiplier(self, difficulty: Optional[str] = None) -> float:
        """Return the trap damage multiplier for a difficulty.

        Unknown difficulty names fall back to 1.0 and log a warning.
        """
        name = difficulty or self.difficulty
        if name not in self.difficulty_multipliers:
            logger.warning("No damage multiplier configured for difficulty %r; using 1.0", name)
            return 1.0
        return self.difficulty_multipliers[name]

    def secret_flag(self, secret_id: str) -> str:
        return f"{self.secret_flag_prefix}{secret_id}"

    def validate(self) -> None:
        if self.max_health <= self.min_health:
            raise ConfigError(
                f"max_health ({self.max_health}) must be greater than min_health ({self.min_health})"
            )
        if self.inventory_capacity is not None and self.inventory_capacity < 0:
            logger.error("Negative inventory capacity %s; treating as 0", self.inventory_capacity)
            self.inventory_capacity = 0
        for name, mult in list(self.difficulty_multipliers.items()):
            if mult < 0.0:
                logger.error("Damage multiplier out of bounds for %s: %s. Clamping to 0.", name, mult)
                self.difficulty_multipliers[name] = 0.0

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "EngineConfig":
        """Create a config from a dict. Missing fields fall back to defaults."""
        cfg = cls()
        if "max_health" in raw:
            cfg.max_health = int(raw["max_health"])
        if "min_health" in raw:
            cfg.min_health = int(raw["min_health"])
        if raw.get("inventory_capacity") is not None:
            cfg.inventory_capacity = int(raw["inventory_capacity"])
        if "difficulty" in raw:
            cfg.difficulty = str(raw["difficulty"])
        if "difficulty_multipliers" in raw:
            cfg.difficulty_multipliers = {
                str(k): float(v) for k, v in raw["difficulty_multipliers"].items()
            }
        for key in _NAME_LISTS:
            if key in raw:
                setattr(cfg, key, tuple(str(v) for v in raw[key] or ()))
        if "resistance_multiplier" in raw:
            cfg.resistance_multiplier = float(raw["resistance_multiplier"])
        if "fragility_multiplier" in raw:
            cfg.fragility_multiplier = float(raw["fragility_multiplier"])
        if "unlock_fallback_message" in raw:
            cfg.unlock_fallback_message = str(raw["unlock_fallback_message"])
        if "secret_flag_prefix" in raw:
            cfg.secret_flag_prefix = str(raw["secret_flag_prefix"])
        if "warn_visible_traps" in raw:
            cfg.warn_visible_traps = bool(raw["warn_visible_traps"])
        if "strict_transform_requirements" in raw:
            cfg.strict_transform_requirements = bool(raw["strict_transform_requirements"])
        cfg.validate()
        return cfg

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        for key in _NAME_LISTS:
            data[key] = list(data[key])
        return data

    @classmethod
    def from_json(cls, path: Path) -> "EngineConfig":
        """Load configuration from a JSON file."""
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with path.open("r", encoding="utf-8") as f:
            raw = json.load(f)
        return cls.from_dict(raw or {})

    def to_json(self, path: Path) -> None:
        """Persist configuration to a JSON file."""
        with path.open("w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2, sort_keys=True)


def load_config(path: Optional[str] = None) -> EngineConfig:
    """Load engine configuration from YAML or JSON.

    If path is None, loads the embedded default resource at
    story_rules/data/engine.yaml.
    """
    if path is None:
        text = resource_files("story_rules.data").joinpath("engine.yaml").read_text(encoding="utf-8")
        logger.debug("Loaded embedded engine config resource")
    else:
        p = Path(path)
        if p.suffix.lower() == ".json":
            return EngineConfig.from_json(p)
        try:
            text = p.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigError(f"Cannot read config file {p}: {e}") from e
        logger.debug("Loaded engine config from path: %s", p)

    try:
        raw = yaml.safe_load(text) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in engine config: {e}") from e
    if not isinstance(raw, dict):
        raise ConfigError("Engine config root must be a mapping")
    cfg = EngineConfig.from_dict(raw)
    logger.info(
        "Engine config: difficulty=%s | max_health=%s | capacity=%s",
        cfg.difficulty,
        cfg.max_health,
        cfg.inventory_capacity,
    )
    return cfg
