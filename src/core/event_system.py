from enum import Enum, auto
from dataclasses import dataclass, field
from typing import Dict, List, Callable, Any
import logging
import time

logger = logging.getLogger(__name__)


class EventType(Enum):
    # Movement
    PLAYER_MOVED = auto()
    IMPOSTOR_MOVED = auto()
    MOVE_REJECTED = auto()

    # Tile effects (the audio/UX stream)
    TASK_SABOTAGED = auto()
    TASK_RESTORED = auto()
    VENT_SEALED = auto()
    IMPOSTOR_TELEPORTED = auto()
    IMPOSTOR_HIDDEN = auto()
    HALF_SABOTAGED_WARNING = auto()

    # Lifecycle
    AI_DECISION = auto()
    ENDING_REPORT = auto()
    PAUSED = auto()
    RESUMED = auto()
    TUTORIAL_TIP = auto()     # First-play hints; skipped once the player has finished a game


# Wire names used by the client event stream.
STREAM_NAMES = {
    EventType.TASK_RESTORED: "taskRestored",
    EventType.VENT_SEALED: "ventSealed",
    EventType.TASK_SABOTAGED: "taskSabotaged",
    EventType.IMPOSTOR_TELEPORTED: "impostorTeleported",
    EventType.HALF_SABOTAGED_WARNING: "halfSabotagedWarning",
    EventType.TUTORIAL_TIP: "tutorialTip",
    EventType.ENDING_REPORT: "gameOver",
}


@dataclass
class GameEvent:
    type: EventType
    payload: Dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)


class EventBus:
    """Per-session publish/subscribe hub.

    Each GameSession owns one bus so that concurrent sessions on the web
    server never see each other's events.
    """

    def __init__(self):
        self._subscribers: Dict[EventType, List[Callable[[GameEvent], None]]] = {}

    def subscribe(self, event_type: EventType, callback: Callable[[GameEvent], None]):
        if event_type not in self._subscribers:
            self._subscribers[event_type] = []
        self._subscribers[event_type].append(callback)

    def unsubscribe(self, event_type: EventType, callback: Callable[[GameEvent], None]):
        if event_type in self._subscribers:
            if callback in self._subscribers[event_type]:
                self._subscribers[event_type].remove(callback)

    def emit(self, event: GameEvent):
        """
        Pushes an event to all subscribers.
        """
        for callback in list(self._subscribers.get(event.type, [])):
            try:
                callback(event)
            except Exception:
                logger.exception("Error processing event %s", event.type.name)

    def clear(self):
        self._subscribers = {}
