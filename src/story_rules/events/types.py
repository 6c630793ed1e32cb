class EventType:
    """Centralized event type names published by the world store."""

    # Emitted once per committed delta
    DELTA_MERGED = "state.delta.merged"

    # Emitted when a trap fires or is disarmed in a room instance
    TRAP_TRIGGERED = "trap.triggered"
    TRAP_DISARMED = "trap.disarmed"
    TRAP_RESET = "trap.reset"

    # Emitted when a secret's latch flag is first set
    SECRET_UNLOCKED = "secret.unlocked"

    # Emitted when the player changes room through a delta
    ROOM_CHANGED = "player.room.changed"

    # Emitted when a time-boxed flag runs out
    FLAG_EXPIRED = "flag.expired"
