"""Actor entity: the player and the impostor share one shape."""

from enum import Enum
from typing import Dict, Optional, Tuple

Coord = Tuple[int, int]


class ActorState(Enum):
    ACTIVE = "active"
    IN_TRANSIT = "in_transit"   # inside the vent network, not drawn, not capturable


class Actor:
    """A grid position plus the bookkeeping for the move in flight.

    The grid position changes as soon as a move starts; ``interpolation``
    tells the renderer how far along the slide from ``move_from`` it is.
    """

    def __init__(self, name: str, position: Coord):
        self.name = name
        self.position = position
        self.state = ActorState.ACTIVE
        self.is_moving = False
        self.move_from: Coord = position
        self.move_started_at = 0.0
        self.move_duration = 0.0

    @property
    def is_hidden(self) -> bool:
        return self.state is ActorState.IN_TRANSIT

    def begin_move(self, target: Coord, now: float, duration: float):
        self.move_from = self.position
        self.position = target
        self.move_started_at = now
        self.move_duration = duration
        self.is_moving = True

    def finish_move(self):
        self.move_from = self.position
        self.is_moving = False

    def place(self, target: Coord):
        """Jump without animating (vent teleport)."""
        self.position = target
        self.move_from = target
        self.is_moving = False

    def enter_transit(self):
        self.state = ActorState.IN_TRANSIT

    def exit_transit(self):
        self.state = ActorState.ACTIVE

    def interpolation(self, now: float) -> float:
        if not self.is_moving or self.move_duration <= 0:
            return 1.0
        return max(0.0, min(1.0, (now - self.move_started_at) / self.move_duration))

    def to_dict(self, now: Optional[float] = None) -> Dict:
        return {
            "name": self.name,
            "position": list(self.position),
            "from": list(self.move_from),
            "interpolation": self.interpolation(now if now is not None else self.move_started_at),
            "hidden": self.is_hidden,
            "state": self.state.value,
            "moving": self.is_moving,
        }

    def __repr__(self):
        return f"Actor({self.name!r}, {self.position}, {self.state.value})"
