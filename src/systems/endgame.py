from enum import Enum
from typing import Optional

from core.event_system import EventBus, EventType, GameEvent
from core.logger import hidden_logger
from entities.actor import Actor
from entities.grid_map import TileCounts


class TerminalState(Enum):
    CAUGHT = "caught"
    IMPOSTOR_ESCAPED = "impostor_escaped"
    TRAPPED = "trapped"

    @property
    def player_won(self) -> bool:
        return self is not TerminalState.IMPOSTOR_ESCAPED


ENDING_MESSAGES = {
    TerminalState.CAUGHT: "You Caught the Impostor!",
    TerminalState.IMPOSTOR_ESCAPED: "Impostor Escaped!",
    TerminalState.TRAPPED: "The Impostor is trapped!",
}


class EndgameSystem:
    """
    Owns the terminal state and the rules that reach it.
    Emits ENDING_REPORT exactly once, when the first ending resolves.

    Rules:
    - Capture: player and impostor share a cell and the impostor is not in
      the vents.
    - Escape: the impostor stands on a vent with no clean task left and at
      least one sabotaged task.
    - Trap: every vent is sealed while the impostor is out in the open.
    """

    def __init__(self, events: EventBus):
        self.events = events
        self.state: Optional[TerminalState] = None

    @property
    def resolved(self) -> bool:
        return self.state is not None

    def is_capture(self, player: Actor, impostor: Optional[Actor]) -> bool:
        if impostor is None or impostor.is_hidden:
            return False
        return player.position == impostor.position

    @staticmethod
    def is_escape(counts: TileCounts, on_vent: bool) -> bool:
        return on_vent and counts.tasks == 0 and counts.sabotaged > 0

    @staticmethod
    def is_trap(counts: TileCounts, impostor: Optional[Actor]) -> bool:
        return impostor is not None and not impostor.is_hidden and counts.vents == 0

    def check_end_conditions(self, player: Actor, impostor: Optional[Actor],
                             counts: TileCounts) -> Optional[TerminalState]:
        """Run after every move of either actor and after a teleport reveal."""
        if self.resolved:
            return self.state
        if self.is_capture(player, impostor):
            return self.resolve(TerminalState.CAUGHT, position=player.position)
        if self.is_trap(counts, impostor):
            return self.resolve(TerminalState.TRAPPED, position=impostor.position)
        return None

    def resolve(self, state: TerminalState, **details) -> TerminalState:
        if self.resolved:
            return self.state

        self.state = state
        hidden_logger.info("ENDING %s %s", state.name, details)
        payload = {
            "ending_type": state.name,
            "result": "win" if state.player_won else "loss",
            "message": ENDING_MESSAGES[state],
        }
        payload.update({k: list(v) if isinstance(v, tuple) else v for k, v in details.items()})
        self.events.emit(GameEvent(EventType.ENDING_REPORT, payload))
        return state
