"""Entity classes for Vent Chase."""

from entities.actor import Actor, ActorState
from entities.grid_map import GridMap, Tile, MapFormatError, DEFAULT_LAYOUT

__all__ = ['Actor', 'ActorState', 'GridMap', 'Tile', 'MapFormatError', 'DEFAULT_LAYOUT']
