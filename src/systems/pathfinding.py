"""Breadth-first pathfinding over the station grid."""

from collections import deque
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from entities.grid_map import ORTHOGONAL_NEIGHBORS, manhattan

Coord = Tuple[int, int]


@dataclass(frozen=True)
class AvoidZone:
    """Cells within ``radius`` (Manhattan) of ``center`` are never expanded."""
    center: Coord
    radius: int

    def blocks(self, coord: Coord) -> bool:
        return self.radius > 0 and manhattan(coord, self.center) <= self.radius


def find_path(grid, start: Coord, goal: Coord,
              avoid: Optional[AvoidZone] = None) -> Optional[List[Coord]]:
    """Shortest 4-directional path from start to goal.

    Args:
        grid: GridMap (anything with ``is_walkable``)
        start: Starting (row, col); never filtered by ``avoid``
        goal: Target (row, col)
        avoid: Optional exclusion zone around the player

    Returns:
        Steps after ``start`` through ``goal`` inclusive, ``[]`` if already
        there, or None if the goal cannot be reached under the constraints.
    """
    if start == goal:
        return []

    came_from: Dict[Coord, Coord] = {}
    visited = {start}
    frontier = deque([start])

    while frontier:
        current = frontier.popleft()
        if current == goal:
            return _reconstruct_path(came_from, start, current)

        row, col = current
        for dr, dc in ORTHOGONAL_NEIGHBORS:
            neighbor = (row + dr, col + dc)
            if avoid is not None and avoid.blocks(neighbor):
                continue
            if neighbor in visited or not grid.is_walkable(neighbor):
                continue
            visited.add(neighbor)
            came_from[neighbor] = current
            frontier.append(neighbor)

    return None


def _reconstruct_path(came_from: Dict[Coord, Coord], start: Coord, current: Coord) -> List[Coord]:
    path = [current]
    while came_from[current] != start:
        current = came_from[current]
        path.append(current)
    path.reverse()
    return path


class PathfindingSystem:
    """Object wrapper used by the session and the AI.

    Counts searches per AI tick so the decision log can report how much
    work a tick did.
    """

    def __init__(self):
        self.searches = 0

    def reset_stats(self):
        self.searches = 0

    def find_path(self, grid, start: Coord, goal: Coord,
                  avoid: Optional[AvoidZone] = None) -> Optional[List[Coord]]:
        self.searches += 1
        return find_path(grid, start, goal, avoid)

    def get_next_step(self, grid, start: Coord, goal: Coord,
                      avoid: Optional[AvoidZone] = None) -> Optional[Coord]:
        """First step toward ``goal``, or None if already there or unreachable."""
        path = self.find_path(grid, start, goal, avoid)
        if path:
            return path[0]
        return None
