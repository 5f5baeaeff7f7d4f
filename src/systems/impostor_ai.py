from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

from core.logger import hidden_logger
from entities.grid_map import GridMap, Tile, ORTHOGONAL_NEIGHBORS, manhattan
from systems.architect import RandomnessEngine
from systems.difficulty import LevelSettings
from systems.pathfinding import AvoidZone, PathfindingSystem

Coord = Tuple[int, int]


class ImpostorMode(Enum):
    FLEEING = "fleeing"
    HUNTING = "hunting"
    PATROLLING = "patrolling"
    PANICKING = "panicking"

    @property
    def is_urgent(self) -> bool:
        return self in (ImpostorMode.FLEEING, ImpostorMode.PANICKING)


@dataclass
class Decision:
    """Outcome of one AI tick. The engine keeps none of this between ticks."""
    mode: ImpostorMode
    target: Optional[Coord]
    animation_ms: int
    next_tick_ms: int
    goal: Optional[Coord] = None
    path: Optional[List[Coord]] = None
    skipped: bool = False
    used_fallback: bool = False

    @property
    def should_move(self) -> bool:
        return self.target is not None and not self.skipped


class ImpostorAI:
    """
    Picks the impostor's next tile each tick.
    Decoupled from timers and rendering: give it the map and both positions,
    get back a Decision.
    """

    # How much a vent's distance from the player outweighs its distance from us.
    PLAYER_VENT_WEIGHT = 1.5

    def __init__(self, settings: LevelSettings, rng: RandomnessEngine,
                 pathfinder: Optional[PathfindingSystem] = None):
        self.settings = settings
        self.rng = rng
        self.pathfinder = pathfinder or PathfindingSystem()

    def decide(self, grid: GridMap, impostor: Coord, player: Coord) -> Decision:
        self.pathfinder.reset_stats()
        tasks = grid.find_all(Tile.TASK)
        distance = manhattan(impostor, player)
        avoid = AvoidZone(player, self.settings.avoid_distance)

        if distance <= self.settings.flee_distance or not tasks:
            decision = self._decide_flee(grid, impostor, player, avoid)
        else:
            decision = self._decide_roam(grid, impostor, tasks, avoid)

        # Never step onto the player deliberately along a path.
        if decision.path and decision.target == player:
            decision.skipped = True

        hidden_logger.info(
            "impostor at %s player at %s dist=%d mode=%s goal=%s target=%s skipped=%s fallback=%s searches=%d",
            impostor, player, distance, decision.mode.value, decision.goal,
            decision.target, decision.skipped, decision.used_fallback,
            self.pathfinder.searches,
        )
        return decision

    def _timing(self, mode: ImpostorMode) -> Tuple[int, int]:
        if mode.is_urgent:
            return self.settings.flee_move_ms, self.settings.flee_tick_ms
        return self.settings.impostor_move_ms, self.settings.tick_ms

    def _decision(self, mode: ImpostorMode, path: Optional[List[Coord]],
                  goal: Optional[Coord], used_fallback: bool = False) -> Decision:
        animation_ms, next_tick_ms = self._timing(mode)
        return Decision(
            mode=mode,
            target=path[0] if path else None,
            animation_ms=animation_ms,
            next_tick_ms=next_tick_ms,
            goal=goal,
            path=path,
            used_fallback=used_fallback,
        )

    # --- Fleeing -----------------------------------------------------------

    def score_vent(self, impostor: Coord, player: Coord, vent: Coord) -> float:
        """Lower is better: close to us, far from the player."""
        return manhattan(impostor, vent) - self.PLAYER_VENT_WEIGHT * manhattan(player, vent)

    def best_vent(self, grid: GridMap, impostor: Coord, player: Coord) -> Optional[Coord]:
        vents = grid.find_all(Tile.VENT)
        if not vents:
            return None
        # min() keeps the first vent on ties, i.e. row-major order.
        return min(vents, key=lambda vent: self.score_vent(impostor, player, vent))

    def _decide_flee(self, grid, impostor, player, avoid) -> Decision:
        vent = self.best_vent(grid, impostor, player)
        path = None
        if vent is not None:
            path = self.pathfinder.find_path(grid, impostor, vent, avoid)
        # An empty path means we are already on the vent: hold still.
        if path is not None:
            return self._decision(ImpostorMode.FLEEING, path, vent)

        panic = self.panic_move(grid, impostor, player)
        decision = self._decision(ImpostorMode.PANICKING, None, panic, used_fallback=True)
        decision.target = panic
        return decision

    def panic_move(self, grid: GridMap, impostor: Coord, player: Coord) -> Optional[Coord]:
        """Walkable neighbour farthest from the player; first wins ties."""
        best = None
        best_distance = -1
        row, col = impostor
        for dr, dc in ORTHOGONAL_NEIGHBORS:
            candidate = (row + dr, col + dc)
            if not grid.is_walkable(candidate):
                continue
            d = manhattan(candidate, player)
            if d > best_distance:
                best_distance = d
                best = candidate
        return best

    # --- Hunting / patrolling ----------------------------------------------

    def _decide_roam(self, grid, impostor, tasks, avoid) -> Decision:
        if self.rng.chance(self.settings.hunt_chance):
            goal, path = self.hunt(grid, impostor, tasks, avoid)
            if path is not None:
                return self._decision(ImpostorMode.HUNTING, path, goal)
        else:
            goal, path = self.patrol(grid, impostor, avoid)
            if path is not None:
                return self._decision(ImpostorMode.PATROLLING, path, goal)
            goal, path = self.hunt(grid, impostor, tasks, avoid)
            if path is not None:
                return self._decision(ImpostorMode.HUNTING, path, goal, used_fallback=True)

        # Last resort: ignore the player entirely.
        goal, path = self.hunt(grid, impostor, tasks, None)
        return self._decision(ImpostorMode.HUNTING, path, goal, used_fallback=True)

    def hunt(self, grid, impostor: Coord, tasks: List[Coord],
             avoid: Optional[AvoidZone]) -> Tuple[Optional[Coord], Optional[List[Coord]]]:
        """Shortest path to any task; ties go to the earlier task."""
        best_goal = None
        best_path = None
        for task in tasks:
            path = self.pathfinder.find_path(grid, impostor, task, avoid)
            if path is not None and (best_path is None or len(path) < len(best_path)):
                best_goal, best_path = task, path
        return best_goal, best_path

    def patrol(self, grid, impostor: Coord,
               avoid: Optional[AvoidZone]) -> Tuple[Optional[Coord], Optional[List[Coord]]]:
        point = self.rng.choose(grid.find_patrol_points())
        if point is None:
            return None, None
        return point, self.pathfinder.find_path(grid, impostor, point, avoid)
