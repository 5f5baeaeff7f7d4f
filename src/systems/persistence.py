import json
import os
import hashlib
import logging
from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Optional

from core.event_system import EventBus, EventType, GameEvent
from systems.difficulty import DifficultySettings

logger = logging.getLogger(__name__)

# Current progress file version - increment when the format changes
CURRENT_SAVE_VERSION = 1

PROGRESS_FILE = os.environ.get("VENT_CHASE_PROGRESS_FILE", "data/saves/progress.json")

REQUIRED_FIELDS = [
    "level",
    "attempts",
    "save_version",
    "checksum",
]


def compute_checksum(data: dict) -> str:
    """
    Compute a SHA-256 checksum for save data integrity verification.
    Excludes the checksum field itself from computation.
    """
    data_copy = {k: v for k, v in data.items() if k != 'checksum'}
    json_str = json.dumps(data_copy, sort_keys=True, separators=(',', ':'))
    return hashlib.sha256(json_str.encode('utf-8')).hexdigest()[:16]


def validate_save_data(data: dict, required_fields=None) -> tuple:
    """
    Validate save data structure and checksum.

    Returns:
        (is_valid: bool, error_message: str or None)
    """
    if not isinstance(data, dict):
        return False, "Save data is not a valid dictionary"

    required = required_fields if required_fields is not None else REQUIRED_FIELDS
    missing = [field for field in required if field not in data]
    if missing:
        return False, f"Missing required fields: {', '.join(missing)}"

    if data.get('checksum') != compute_checksum(data):
        return False, "Save file checksum mismatch - file may be corrupted"

    return True, None


@dataclass
class Progress:
    """Meta-state carried between sessions. Drives the level table only."""
    level: int = DifficultySettings.MIN_LEVEL
    attempts: int = 0
    wins: int = 0
    won_last: bool = False
    once_played: bool = False
    last_played: str = ""


class ProgressStore:
    """
    Loads and saves Progress as checksummed JSON.
    A missing, unreadable or tampered file falls back to a fresh Progress.
    """

    def __init__(self, path: Optional[str] = None):
        self.path = path or PROGRESS_FILE
        self.progress = self.load()
        self._events: Optional[EventBus] = None

    def load(self) -> Progress:
        if not os.path.exists(self.path):
            return Progress()
        try:
            with open(self.path, 'r') as f:
                data = json.load(f)
        except (IOError, OSError, json.JSONDecodeError) as e:
            logger.warning("Could not read progress file %s: %s", self.path, e)
            return Progress()

        is_valid, error = validate_save_data(data)
        if not is_valid:
            logger.warning("Ignoring progress file %s: %s", self.path, error)
            return Progress()

        if data.get("save_version", 0) > CURRENT_SAVE_VERSION:
            logger.warning("Progress file %s is from a newer version; using defaults", self.path)
            return Progress()

        return Progress(
            level=DifficultySettings.clamp_level(data.get("level")),
            attempts=max(0, int(data.get("attempts", 0))),
            wins=max(0, int(data.get("wins", 0))),
            won_last=bool(data.get("won_last", False)),
            once_played=bool(data.get("once_played", False)),
            last_played=str(data.get("last_played", "")),
        )

    def save(self) -> bool:
        data = asdict(self.progress)
        data["save_version"] = CURRENT_SAVE_VERSION
        data["checksum"] = compute_checksum(data)
        try:
            directory = os.path.dirname(self.path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            with open(self.path, 'w') as f:
                json.dump(data, f, indent=2)
        except (IOError, OSError) as e:
            logger.warning("Could not write progress file %s: %s", self.path, e)
            return False
        return True

    def record_result(self, player_won: bool):
        """Count the attempt; a win also moves up one level."""
        p = self.progress
        p.attempts += 1
        p.once_played = True
        p.won_last = player_won
        p.last_played = datetime.now().isoformat(timespec="seconds")
        if player_won:
            p.wins += 1
            p.level = DifficultySettings.clamp_level(p.level + 1)
        self.save()

    # --- Event wiring ---------------------------------------------------------

    def bind(self, events: EventBus):
        """Record the result of the session that owns ``events``."""
        self.unbind()
        self._events = events
        events.subscribe(EventType.ENDING_REPORT, self._on_ending)

    def unbind(self):
        if self._events is not None:
            self._events.unsubscribe(EventType.ENDING_REPORT, self._on_ending)
            self._events = None

    def _on_ending(self, event: GameEvent):
        self.record_result(event.payload.get("result") == "win")
