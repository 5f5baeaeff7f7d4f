import math
from enum import Enum
from typing import Tuple

from core.event_system import EventBus, EventType, GameEvent
from core.logger import hidden_logger
from entities.grid_map import GridMap, Tile

Coord = Tuple[int, int]


class LandingOutcome(Enum):
    NOTHING = "nothing"
    ESCAPE = "escape"
    TELEPORT = "teleport"


class SabotageManager:
    """
    Tile effects of an actor finishing a move.
    The impostor sabotages tasks and dives into vents; the player restores
    sabotaged tasks and seals vents. Emits the audio/UX event stream.
    """

    def __init__(self, grid: GridMap, events: EventBus):
        self.grid = grid
        self.events = events
        self.vents_sealed = 0
        self.tasks_restored = 0
        self.tasks_sabotaged = 0
        self.half_warning_sent = False

    def on_impostor_landing(self, position: Coord) -> LandingOutcome:
        """Apply the impostor's effects and report what the session must do next.

        Escape is decided before any teleport starts.
        """
        tile = self.grid.tile_at(position)
        if tile is Tile.TASK:
            self.grid.mutate(position, Tile.SABOTAGED_TASK)
            self.tasks_sabotaged += 1
            self.events.emit(GameEvent(EventType.TASK_SABOTAGED, {"position": list(position)}))

        counts = self.grid.counts()
        self._maybe_warn(counts)

        if tile is not Tile.VENT:
            return LandingOutcome.NOTHING
        if counts.tasks == 0 and counts.sabotaged > 0:
            return LandingOutcome.ESCAPE
        return LandingOutcome.TELEPORT

    def _maybe_warn(self, counts):
        total = counts.tasks + counts.sabotaged
        if self.half_warning_sent or total == 0:
            return
        if counts.sabotaged >= math.ceil(total / 2):
            self.half_warning_sent = True
            hidden_logger.info("Half of the tasks sabotaged (%d/%d)", counts.sabotaged, total)
            self.events.emit(GameEvent(EventType.HALF_SABOTAGED_WARNING, {
                "sabotaged": counts.sabotaged,
                "total": total,
            }))

    def on_player_landing(self, position: Coord):
        tile = self.grid.tile_at(position)
        if tile is Tile.SABOTAGED_TASK:
            self.grid.mutate(position, Tile.TASK)
            self.tasks_restored += 1
            self.events.emit(GameEvent(EventType.TASK_RESTORED, {"position": list(position)}))
        elif tile is Tile.VENT:
            self.grid.mutate(position, Tile.OPEN)
            self.vents_sealed += 1
            self.events.emit(GameEvent(EventType.VENT_SEALED, {
                "position": list(position),
                "vents_sealed": self.vents_sealed,
            }))
        # Clean tasks and open floor do nothing for the player.

    def get_status(self) -> dict:
        counts = self.grid.counts()
        return {
            "tasks": counts.tasks,
            "sabotaged": counts.sabotaged,
            "vents": counts.vents,
            "vents_sealed": self.vents_sealed,
            "tasks_restored": self.tasks_restored,
            "tasks_sabotaged": self.tasks_sabotaged,
        }
