class StoryRulesError(Exception):
    """Base exception for the story-rules engine."""


class ContentError(StoryRulesError):
    """Raised when static content (items, rooms, traps) is malformed at load time."""


class ConfigError(StoryRulesError):
    """Raised when engine configuration cannot be read."""


class MergeError(StoryRulesError):
    """Raised when a state delta cannot be merged (e.g., inventory capacity exceeded).

    The store rolls back the whole delta before raising.
    """
