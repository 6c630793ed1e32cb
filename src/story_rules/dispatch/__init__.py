from .dispatcher import ResolutionResult, TriggerDispatcher
from .handlers import ActionHandlerRegistry, HandlerContext
from .secrets import SecretCheck, SecretChecker
from .traps import TrapOutcome, TrapResolver

__all__ = [
    "ActionHandlerRegistry",
    "HandlerContext",
    "ResolutionResult",
    "SecretCheck",
    "SecretChecker",
    "TrapOutcome",
    "TrapResolver",
    "TriggerDispatcher",
]
