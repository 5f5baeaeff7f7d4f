"""GridMap entity class for Vent Chase."""

from enum import Enum
from typing import Dict, List, NamedTuple, Optional, Sequence, Tuple

Coord = Tuple[int, int]

# Up, right, down, left. This order breaks ties everywhere a neighbour is picked.
ORTHOGONAL_NEIGHBORS = ((-1, 0), (0, 1), (1, 0), (0, -1))

# The shipped map. Every row is padded to full width with walls.
DEFAULT_LAYOUT = (
    "XXXXXXXXXXXXXXXXXXXXXXXXX",
    "X   T    V              X",
    "X XXXXXXXX XXX XXXVXXX XX",
    "X V   X     T   X  PX   X",
    "X   XXX X XXXXXXX X XXX X",
    "X X   X X   V   X X   X X",
    "X X X X XXXXXXX X XXX X X",
    "X X X   X  T  X     X X X",
    "X XXXXX X XXX X XXXXX X X",
    "X   V     V I X     V   X",
    "XXXX XX X XXX X XXXXXXX X",
    "X       X     X         X",
    "X XXXXX X XXX XXXXXXX XXX",
    "X   T     X V         X X",
    "XXXXXXXXXXXXXXXXXXXXXXXXX",
)


class Tile(Enum):
    WALL = "X"
    OPEN = " "
    TASK = "T"
    SABOTAGED_TASK = "R"
    VENT = "V"


PLAYER_MARKER = "P"
IMPOSTOR_MARKER = "I"

LEGAL_TRANSITIONS = {
    (Tile.TASK, Tile.SABOTAGED_TASK),
    (Tile.SABOTAGED_TASK, Tile.TASK),
    (Tile.VENT, Tile.OPEN),
}


class MapFormatError(ValueError):
    """Raised when an authored layout cannot be turned into a playable grid."""


class IllegalTileTransition(ValueError):
    """Raised when a caller tries a tile change the game never makes."""


class TileCounts(NamedTuple):
    tasks: int
    sabotaged: int
    vents: int


def manhattan(a: Coord, b: Coord) -> int:
    return abs(a[0] - b[0]) + abs(a[1] - b[1])


class GridMap:
    """The station floor: a fixed rectangle of tiles addressed by (row, col).

    Only the session's landing handlers mutate it, and only through
    ``mutate``. Counts are always derived by scanning, never cached.
    """

    def __init__(self, tiles: List[List[Tile]]):
        self.height = len(tiles)
        self.width = len(tiles[0]) if tiles else 0
        self._tiles = tiles

    @classmethod
    def from_layout(cls, layout: Sequence[str]) -> Tuple["GridMap", Coord, Coord]:
        """Parse an authored layout.

        Args:
            layout: Equal-length strings using X, space, T, V, P and I.

        Returns:
            (grid, player_start, impostor_start). Both start cells become OPEN.

        Raises:
            MapFormatError: ragged rows, unknown characters, an authored R,
                or not exactly one P and one I.
        """
        if not layout:
            raise MapFormatError("Map layout is empty")

        width = len(layout[0])
        if width == 0:
            raise MapFormatError("Map rows must not be empty")

        tiles: List[List[Tile]] = []
        players: List[Coord] = []
        impostors: List[Coord] = []
        valid = {t.value for t in Tile if t is not Tile.SABOTAGED_TASK}

        for row, line in enumerate(layout):
            if len(line) != width:
                raise MapFormatError(
                    f"Row {row} has width {len(line)}, expected {width}"
                )
            parsed = []
            for col, char in enumerate(line):
                if char == PLAYER_MARKER:
                    players.append((row, col))
                    parsed.append(Tile.OPEN)
                elif char == IMPOSTOR_MARKER:
                    impostors.append((row, col))
                    parsed.append(Tile.OPEN)
                elif char == Tile.SABOTAGED_TASK.value:
                    raise MapFormatError(
                        f"Sabotaged task marker at {(row, col)} is runtime-only"
                    )
                elif char in valid:
                    parsed.append(Tile(char))
                else:
                    raise MapFormatError(f"Unknown map character {char!r} at {(row, col)}")
            tiles.append(parsed)

        if len(players) != 1:
            raise MapFormatError(f"Expected exactly one player start, found {len(players)}")
        if len(impostors) != 1:
            raise MapFormatError(f"Expected exactly one impostor start, found {len(impostors)}")

        return cls(tiles), players[0], impostors[0]

    def in_bounds(self, coord: Coord) -> bool:
        row, col = coord
        return 0 <= row < self.height and 0 <= col < self.width

    def tile_at(self, coord: Coord) -> Optional[Tile]:
        if not self.in_bounds(coord):
            return None
        return self._tiles[coord[0]][coord[1]]

    def is_walkable(self, coord: Coord) -> bool:
        """False out of bounds or on a wall; every other tile can be walked."""
        if not self.in_bounds(coord):
            return False
        return self._tiles[coord[0]][coord[1]] is not Tile.WALL

    def neighbors(self, coord: Coord) -> List[Coord]:
        """Walkable orthogonal neighbours in up/right/down/left order."""
        row, col = coord
        result = []
        for dr, dc in ORTHOGONAL_NEIGHBORS:
            nxt = (row + dr, col + dc)
            if self.is_walkable(nxt):
                result.append(nxt)
        return result

    def find_all(self, kind: Tile) -> List[Coord]:
        """Every cell currently holding ``kind``, row-major."""
        return [
            (row, col)
            for row in range(self.height)
            for col in range(self.width)
            if self._tiles[row][col] is kind
        ]

    def mutate(self, coord: Coord, new_kind: Tile):
        current = self.tile_at(coord)
        if (current, new_kind) not in LEGAL_TRANSITIONS:
            raise IllegalTileTransition(
                f"Cannot change {coord} from {current} to {new_kind}"
            )
        self._tiles[coord[0]][coord[1]] = new_kind

    def find_patrol_points(self) -> List[Coord]:
        """Junction-like interior OPEN cells (3+ walkable neighbours).

        Recomputed on every call since sealing vents opens new junctions.
        """
        points = []
        for row in range(1, self.height - 1):
            for col in range(1, self.width - 1):
                if self._tiles[row][col] is Tile.OPEN and len(self.neighbors((row, col))) >= 3:
                    points.append((row, col))
        return points

    def counts(self) -> TileCounts:
        tasks = sabotaged = vents = 0
        for line in self._tiles:
            for tile in line:
                if tile is Tile.TASK:
                    tasks += 1
                elif tile is Tile.SABOTAGED_TASK:
                    sabotaged += 1
                elif tile is Tile.VENT:
                    vents += 1
        return TileCounts(tasks, sabotaged, vents)

    def rows(self) -> List[str]:
        return ["".join(tile.value for tile in line) for line in self._tiles]

    def render(self, player: Optional[Coord] = None, impostor: Optional[Coord] = None) -> str:
        """Plain-text view with P and I overlaid."""
        display = [list(line) for line in self.rows()]
        if impostor is not None and self.in_bounds(impostor):
            display[impostor[0]][impostor[1]] = IMPOSTOR_MARKER
        if player is not None and self.in_bounds(player):
            display[player[0]][player[1]] = PLAYER_MARKER
        return "\n".join("".join(line) for line in display)

    def to_dict(self) -> Dict:
        return {
            "width": self.width,
            "height": self.height,
            "rows": self.rows(),
        }
