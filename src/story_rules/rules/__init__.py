"""Requirement evaluation, effect accumulation and state deltas."""

from .delta import DeltaBuilder, StateDelta
from .effects import Effect, EffectProcessor, EffectResult, effect_from_dict
from .requirements import Operator, Requirement, compare_values, evaluate, evaluate_all, requirement_from_dict

__all__ = [
    "DeltaBuilder",
    "Effect",
    "EffectProcessor",
    "EffectResult",
    "Operator",
    "Requirement",
    "StateDelta",
    "compare_values",
    "effect_from_dict",
    "evaluate",
    "evaluate_all",
    "requirement_from_dict",
]
