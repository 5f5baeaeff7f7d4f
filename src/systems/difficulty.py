"""
Difficulty Level Table
Tuning constants for the impostor and the move animations, indexed by the
player's progression level. Each win moves the player one row down the table.
"""

from dataclasses import dataclass, asdict


@dataclass(frozen=True)
class LevelSettings:
    """Resolved tuning for one level."""
    level: int
    player_move_ms: int          # player slide duration per tile
    impostor_move_ms: int        # impostor slide duration on normal ticks
    flee_move_ms: int            # impostor slide duration while fleeing
    tick_ms: int                 # AI tick interval on normal ticks
    flee_tick_ms: int            # AI tick interval while fleeing
    teleport_delay_ms: int       # time spent hidden inside a vent
    flee_distance: int           # player this close (Manhattan) triggers fleeing
    avoid_distance: int          # path finder exclusion radius around the player
    hunt_chance: float           # hunt vs patrol split on non-fleeing ticks

    def to_dict(self) -> dict:
        return asdict(self)


class DifficultySettings:
    """Configuration for each level."""

    MIN_LEVEL = 1

    LEVELS = {
        1: {
            "player_move_ms": 90,
            "impostor_move_ms": 90,
            "flee_move_ms": 65,
            "tick_ms": 200,
            "flee_tick_ms": 150,
            "teleport_delay_ms": 1500,
            "flee_distance": 7,
            "avoid_distance": 3,
            "hunt_chance": 0.7,
        },
        2: {
            "player_move_ms": 90,
            "impostor_move_ms": 85,
            "flee_move_ms": 60,
            "tick_ms": 190,
            "flee_tick_ms": 140,
            "teleport_delay_ms": 1350,
            "flee_distance": 7,
            "avoid_distance": 3,
            "hunt_chance": 0.75,
        },
        3: {
            "player_move_ms": 90,
            "impostor_move_ms": 80,
            "flee_move_ms": 55,
            "tick_ms": 175,
            "flee_tick_ms": 125,
            "teleport_delay_ms": 1200,
            "flee_distance": 8,
            "avoid_distance": 3,
            "hunt_chance": 0.8,
        },
        4: {
            "player_move_ms": 90,
            "impostor_move_ms": 75,
            "flee_move_ms": 50,
            "tick_ms": 160,
            "flee_tick_ms": 110,
            "teleport_delay_ms": 1000,
            "flee_distance": 8,
            "avoid_distance": 4,
            "hunt_chance": 0.85,
        },
        5: {
            "player_move_ms": 90,
            "impostor_move_ms": 70,
            "flee_move_ms": 45,
            "tick_ms": 150,
            "flee_tick_ms": 100,
            "teleport_delay_ms": 800,
            "flee_distance": 9,
            "avoid_distance": 4,
            "hunt_chance": 0.9,
        },
    }

    @classmethod
    def max_level(cls) -> int:
        return max(cls.LEVELS)

    @classmethod
    def clamp_level(cls, level) -> int:
        try:
            level = int(level)
        except (TypeError, ValueError):
            return cls.MIN_LEVEL
        return max(cls.MIN_LEVEL, min(level, cls.max_level()))

    @classmethod
    def get(cls, level: int, key: str):
        """Get a single value for the given level."""
        return cls.LEVELS[cls.clamp_level(level)].get(key)

    @classmethod
    def for_level(cls, level: int) -> LevelSettings:
        """Resolve a level to its settings. Out-of-range levels clamp to the table."""
        clamped = cls.clamp_level(level)
        return LevelSettings(level=clamped, **cls.LEVELS[clamped])
