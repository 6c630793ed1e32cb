"""Effect variants and the effect processor.

Effects never touch the store. Each variant folds itself into a
:class:`~story_rules.rules.delta.DeltaBuilder`; the caller decides when (and
whether) the resulting delta is merged.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, ClassVar, Dict, Iterable, List, Mapping, Optional, Union

from ..config import EngineConfig
from .delta import DeltaBuilder, ItemLookup, StateDelta
from .requirements import to_text

if TYPE_CHECKING:
    from ..world.state import PlayerState

logger = logging.getLogger(__name__)

# Inventory/trait effects with this target take the value away instead of adding it.
REMOVE_TARGET = "remove"


@dataclass(frozen=True)
class Effect:
    """Base effect. ``accumulate`` returns the (possibly updated) current message."""

    target: Optional[str] = None
    value: Any = None
    duration: Optional[int] = None
    intensity: Optional[float] = None
    description: Optional[str] = None

    kind: ClassVar[str] = ""

    def accumulate(self, builder: DeltaBuilder, message: str, config: EngineConfig) -> str:
        raise NotImplementedError

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"type": self.kind}
        for key in ("target", "value", "duration", "intensity", "description"):
            val = getattr(self, key)
            if val is not None:
                data[key] = val
        return data


@dataclass(frozen=True)
class HealthEffect(Effect):
    kind: ClassVar[str] = "health"

    def accumulate(self, builder: DeltaBuilder, message: str, config: EngineConfig) -> str:
        builder.add_health(self.value)
        return message


@dataclass(frozen=True)
class ScoreEffect(Effect):
    kind: ClassVar[str] = "score"

    def accumulate(self, builder: DeltaBuilder, message: str, config: EngineConfig) -> str:
        builder.add_score(self.value)
        return message


@dataclass(frozen=True)
class FlagEffect(Effect):
    kind: ClassVar[str] = "flag"

    def accumulate(self, builder: DeltaBuilder, message: str, config: EngineConfig) -> str:
        if not self.target:
            logger.warning("Flag effect without a target; skipping")
            return message
        builder.set_flag(self.target, self.value, self.duration)
        return message


@dataclass(frozen=True)
class TraitEffect(Effect):
    kind: ClassVar[str] = "trait"

    def accumulate(self, builder: DeltaBuilder, message: str, config: EngineConfig) -> str:
        if not isinstance(self.value, str) or not self.value:
            logger.warning("Trait effect with non-text value %r; skipping", self.value)
            return message
        if self.target == REMOVE_TARGET:
            builder.remove_trait(self.value)
        else:
            builder.add_trait(self.value)
        return message


@dataclass(frozen=True)
class InventoryEffect(Effect):
    kind: ClassVar[str] = "inventory"

    def accumulate(self, builder: DeltaBuilder, message: str, config: EngineConfig) -> str:
        if not isinstance(self.value, str) or not self.value:
            logger.warning("Inventory effect with non-text value %r; skipping", self.value)
            return message
        if self.target == REMOVE_TARGET:
            builder.remove_item(self.value)
        else:
            builder.add_item(self.value)
        return message


@dataclass(frozen=True)
class MessageEffect(Effect):
    kind: ClassVar[str] = "message"

    def accumulate(self, builder: DeltaBuilder, message: str, config: EngineConfig) -> str:
        text = to_text(self.value) if self.value is not None else (self.description or "")
        return text


@dataclass(frozen=True)
class TransformEffect(Effect):
    """Replace ``target`` with ``value`` in the inventory."""

    kind: ClassVar[str] = "transform"

    def accumulate(self, builder: DeltaBuilder, message: str, config: EngineConfig) -> str:
        if not isinstance(self.target, str) or not isinstance(self.value, str):
            logger.warning("Transform effect needs text target and value, got %r -> %r", self.target, self.value)
            return message
        builder.transform(self.target, self.value)
        return message


@dataclass(frozen=True)
class UnlockEffect(Effect):
    kind: ClassVar[str] = "unlock"

    def accumulate(self, builder: DeltaBuilder, message: str, config: EngineConfig) -> str:
        suffix = self.description or config.unlock_fallback_message
        builder.unlock(self.target or to_text(self.value) or suffix)
        return f"{message} {suffix}".strip()


@dataclass(frozen=True)
class BoostEffect(Effect):
    kind: ClassVar[str] = "boost"

    def accumulate(self, builder: DeltaBuilder, message: str, config: EngineConfig) -> str:
        payload = {k: v for k, v in self.to_dict().items() if k != "type"}
        builder.boost(payload)
        return message


@dataclass(frozen=True)
class UnknownEffect(Effect):
    raw_kind: str = ""
    kind: ClassVar[str] = "unknown"

    def accumulate(self, builder: DeltaBuilder, message: str, config: EngineConfig) -> str:
        logger.warning("Unknown effect type %r; ignoring", self.raw_kind)
        return message

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["type"] = self.raw_kind
        return data


EFFECT_TYPES: Dict[str, type] = {
    cls.kind: cls
    for cls in (
        HealthEffect,
        ScoreEffect,
        FlagEffect,
        TraitEffect,
        InventoryEffect,
        MessageEffect,
        TransformEffect,
        UnlockEffect,
        BoostEffect,
    )
}


def _optional_int(raw: Any) -> Optional[int]:
    if raw is None or isinstance(raw, bool):
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        logger.warning("Ignoring non-integer duration %r", raw)
        return None


def _optional_float(raw: Any) -> Optional[float]:
    if raw is None or isinstance(raw, bool):
        return None
    try:
        return float(raw)
    except (TypeError, ValueError):
        return None


def effect_from_dict(raw: Union[Mapping[str, Any], Effect]) -> Effect:
    if isinstance(raw, Effect):
        return raw
    if not isinstance(raw, Mapping):
        return UnknownEffect(value=raw, raw_kind=type(raw).__name__)
    kind = str(raw.get("type", ""))
    target = raw.get("target")
    kwargs = dict(
        target=None if target is None else str(target),
        value=raw.get("value"),
        duration=_optional_int(raw.get("duration")),
        intensity=_optional_float(raw.get("intensity")),
        description=raw.get("description"),
    )
    cls = EFFECT_TYPES.get(kind)
    if cls is None:
        return UnknownEffect(raw_kind=kind, **kwargs)
    return cls(**kwargs)


@dataclass
class EffectResult:
    delta: StateDelta
    messages: List[str] = field(default_factory=list)

    @property
    def message(self) -> str:
        return " ".join(self.messages)


class EffectProcessor:
    """Folds an ordered effect list into one delta plus the resulting message."""

    def __init__(self, catalog: Optional[ItemLookup] = None, config: Optional[EngineConfig] = None) -> None:
        self.catalog = catalog
        self.config = config or EngineConfig()

    def builder_for(self, state: "PlayerState") -> DeltaBuilder:
        return DeltaBuilder(self.catalog, held=state.inventory)

    def apply(
        self,
        effects: Iterable[Union[Effect, Mapping[str, Any]]],
        state: "PlayerState",
        default_message: str = "",
        builder: Optional[DeltaBuilder] = None,
    ) -> EffectResult:
        """Accumulate ``effects`` in order.

        Pass ``builder`` to accumulate into a delta that other stages share.
        """
        builder = builder or self.builder_for(state)
        message = default_message
        for raw in effects:
            effect = effect_from_dict(raw)
            message = effect.accumulate(builder, message, self.config)
            logger.debug("Applied %s effect (target=%s, value=%r)", effect.kind, effect.target, effect.value)
        return EffectResult(delta=builder.delta, messages=[message] if message else [])


__all__ = [
    "Effect",
    "HealthEffect",
    "ScoreEffect",
    "FlagEffect",
    "TraitEffect",
    "InventoryEffect",
    "MessageEffect",
    "TransformEffect",
    "UnlockEffect",
    "BoostEffect",
    "UnknownEffect",
    "EffectProcessor",
    "EffectResult",
    "effect_from_dict",
]
