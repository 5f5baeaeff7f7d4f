from typing import Optional, List, Dict, Any, Sequence, Tuple

import argparse
import logging

from core.event_system import EventBus, EventType, GameEvent, STREAM_NAMES
from core.logger import hidden_logger, configure_console_logging
from core.scheduler import TickScheduler

from entities.actor import Actor
from entities.grid_map import GridMap, Tile, DEFAULT_LAYOUT

from systems.architect import RandomnessEngine
from systems.difficulty import DifficultySettings, LevelSettings
from systems.endgame import EndgameSystem, TerminalState
from systems.impostor_ai import ImpostorAI, Decision
from systems.pathfinding import PathfindingSystem, find_path
from systems.persistence import ProgressStore
from systems.sabotage import SabotageManager, LandingOutcome

logger = logging.getLogger(__name__)

Coord = Tuple[int, int]

CLOCK_INTERVAL_MS = 1000

# (delay from start, text, how long the client should show it), in ms.
TUTORIAL_TIPS = (
    (7000, "Restore green tasks (T) that have been sabotaged and turned red.", 2500),
    (15000, "Move through vents (V) to seal them and prevent the Saboteur from escaping.", 3000),
    (50000, "Seal all vents to trap the Saboteur (red ball) and secure victory.", 3000),
)


class GameSession:
    """One game: the grid, both actors, the AI and the timers that drive them.

    Nothing lives at module scope; the web server keeps one of these per
    client. All state changes happen synchronously inside scheduler
    callbacks or input calls.
    """

    def __init__(self, layout: Sequence[str] = DEFAULT_LAYOUT, level: int = 1,
                 seed=None, rng: Optional[RandomnessEngine] = None,
                 settings: Optional[LevelSettings] = None,
                 scheduler: Optional[TickScheduler] = None, show_tips: bool = False):
        self.grid, player_start, impostor_start = GridMap.from_layout(layout)
        self.show_tips = show_tips
        self.settings = settings or DifficultySettings.for_level(level)
        self.rng = rng or RandomnessEngine(seed)
        self.events = EventBus()
        self.scheduler = scheduler or TickScheduler()

        self.player = Actor("player", player_start)
        self.impostor: Optional[Actor] = Actor("impostor", impostor_start)

        self.ai = ImpostorAI(self.settings, self.rng, PathfindingSystem())
        self.sabotage = SabotageManager(self.grid, self.events)
        self.endgame = EndgameSystem(self.events)

        self.player_target: Optional[Coord] = None
        self.last_decision: Optional[Decision] = None
        self.elapsed_seconds = 0
        self.started = False
        self._pending_events: List[Dict[str, Any]] = []

        for event_type in STREAM_NAMES:
            self.events.subscribe(event_type, self._record_stream_event)
        self.events.subscribe(EventType.ENDING_REPORT, self._on_ending)

    # --- Lifecycle ------------------------------------------------------------

    @property
    def terminal_state(self) -> Optional[TerminalState]:
        return self.endgame.state

    @property
    def is_over(self) -> bool:
        return self.endgame.resolved

    @property
    def now(self) -> float:
        return self.scheduler.now

    def start(self):
        """Arm the AI tick, the elapsed-time clock and, on a first play, the tips."""
        if self.started or self.is_over:
            return
        self.started = True
        self.scheduler.run_periodic("impostor_ai", self.ai_tick, self.settings.tick_ms)
        self.scheduler.run_periodic("clock", self._clock_tick, CLOCK_INTERVAL_MS)
        if self.show_tips:
            for delay_ms, text, duration_ms in TUTORIAL_TIPS:
                self.scheduler.call_later(
                    delay_ms,
                    lambda text=text, duration_ms=duration_ms: self._show_tip(text, duration_ms),
                    "tutorial_tip",
                )
        hidden_logger.info("Session started at level %d, player %s impostor %s",
                           self.settings.level, self.player.position, self.impostor.position)

    def advance(self, ms: float) -> int:
        return self.scheduler.advance(ms)

    def pause(self):
        if self.is_over or self.scheduler.paused:
            return
        self.scheduler.pause()
        self.events.emit(GameEvent(EventType.PAUSED, {"at": self.now}))

    def resume(self):
        if not self.scheduler.paused:
            return
        self.scheduler.resume()
        self.events.emit(GameEvent(EventType.RESUMED, {"at": self.now}))

    def _clock_tick(self) -> Optional[float]:
        if self.is_over:
            return None
        self.elapsed_seconds += 1
        return CLOCK_INTERVAL_MS

    def _show_tip(self, text: str, duration_ms: int):
        if self.is_over:
            return
        self.events.emit(GameEvent(EventType.TUTORIAL_TIP, {"message": text, "duration_ms": duration_ms}))

    def _on_ending(self, event: GameEvent):
        if self.endgame.state is TerminalState.CAUGHT:
            self.impostor = None
        self.player_target = None
        self.scheduler.cancel_all()
        logger.info("Game over: %s", event.payload.get("message"))

    # --- Impostor -------------------------------------------------------------

    def ai_tick(self) -> Optional[float]:
        """One decision. Returns the delay until the next tick, or None to stop."""
        if self.is_over or self.impostor is None:
            return None
        if self.impostor.is_moving or self.impostor.is_hidden:
            return self.settings.tick_ms

        decision = self.ai.decide(self.grid, self.impostor.position, self.player.position)
        self.last_decision = decision
        self.events.emit(GameEvent(EventType.AI_DECISION, {
            "mode": decision.mode.value,
            "goal": decision.goal,
            "target": decision.target,
            "skipped": decision.skipped,
        }))
        if decision.should_move:
            self._start_impostor_move(decision.target, decision.animation_ms)
        return decision.next_tick_ms

    def _start_impostor_move(self, target: Coord, duration: float):
        self.impostor.begin_move(target, self.now, duration)
        self.events.emit(GameEvent(EventType.IMPOSTOR_MOVED, {
            "from": list(self.impostor.move_from),
            "to": list(target),
            "duration": duration,
        }))
        self.scheduler.call_later(duration, self._finish_impostor_move, "impostor_move")

    def _finish_impostor_move(self):
        if self.is_over or self.impostor is None:
            return
        self.impostor.finish_move()
        self.handle_landing()
        self.check_end_conditions()

    def handle_landing(self):
        """Impostor effects on the cell it now occupies."""
        if self.is_over or self.impostor is None:
            return
        outcome = self.sabotage.on_impostor_landing(self.impostor.position)
        if outcome is LandingOutcome.ESCAPE:
            self.endgame.resolve(TerminalState.IMPOSTOR_ESCAPED, position=self.impostor.position)
        elif outcome is LandingOutcome.TELEPORT:
            self._begin_teleport()

    def _begin_teleport(self):
        origin = self.impostor.position
        self.impostor.enter_transit()
        hidden_logger.info("Impostor entered vent at %s", origin)
        self.events.emit(GameEvent(EventType.IMPOSTOR_HIDDEN, {"position": list(origin)}))
        self.scheduler.call_later(
            self.settings.teleport_delay_ms,
            lambda: self._complete_teleport(origin),
            "teleport",
        )

    def _complete_teleport(self, origin: Coord):
        if self.is_over or self.impostor is None:
            return
        others = [vent for vent in self.grid.find_all(Tile.VENT) if vent != origin]
        destination = self.rng.choose(others)
        if destination is not None:
            self.impostor.place(destination)
            hidden_logger.info("Impostor teleported %s -> %s", origin, destination)
            self.events.emit(GameEvent(EventType.IMPOSTOR_TELEPORTED, {
                "from": list(origin),
                "to": list(destination),
            }))
        else:
            hidden_logger.info("No other vent open; impostor resurfaces at %s", origin)
        self.impostor.exit_transit()
        self.check_end_conditions()

    # --- Player ---------------------------------------------------------------

    def submit_directional_move(self, dx: int, dy: int) -> bool:
        """Keyboard-style step. ``dx`` is the column delta, ``dy`` the row delta."""
        if self.is_over or self.player.is_moving:
            return False
        if abs(dx) + abs(dy) != 1:
            logger.debug("Ignoring non-orthogonal step (%s, %s)", dx, dy)
            return False
        self.player_target = None
        row, col = self.player.position
        return self._move_player((row + dy, col + dx))

    def submit_target_tile(self, coord: Coord) -> bool:
        """Tap-to-move: walk toward ``coord`` one step per move cycle."""
        if self.is_over:
            return False
        coord = tuple(coord)
        if not self.grid.is_walkable(coord):
            logger.debug("Dropping unwalkable target %s", coord)
            return False
        self.player_target = coord
        if not self.player.is_moving:
            self._process_path_movement()
        return True

    def _process_path_movement(self):
        if self.is_over or self.player.is_moving or self.player_target is None:
            return
        if self.player.position == self.player_target:
            self.player_target = None
            return
        path = find_path(self.grid, self.player.position, self.player_target)
        if not path:
            self.player_target = None
            return
        self._move_player(path[0])

    def _move_player(self, target: Coord) -> bool:
        if not self.grid.is_walkable(target):
            self.player_target = None
            self.events.emit(GameEvent(EventType.MOVE_REJECTED, {"target": list(target)}))
            return False
        self.player.begin_move(target, self.now, self.settings.player_move_ms)
        self.events.emit(GameEvent(EventType.PLAYER_MOVED, {
            "from": list(self.player.move_from),
            "to": list(target),
        }))
        self.scheduler.call_later(self.settings.player_move_ms, self._finish_player_move, "player_move")
        return True

    def _finish_player_move(self):
        self.player.finish_move()
        if self.is_over:
            return
        self.sabotage.on_player_landing(self.player.position)
        self.check_end_conditions()
        self._process_path_movement()

    # --- End conditions -------------------------------------------------------

    def check_end_conditions(self) -> Optional[TerminalState]:
        return self.endgame.check_end_conditions(self.player, self.impostor, self.grid.counts())

    # --- Query surface --------------------------------------------------------

    def _record_stream_event(self, event: GameEvent):
        self._pending_events.append({
            "type": STREAM_NAMES[event.type],
            "payload": event.payload,
            "at": self.now,
        })

    @property
    def has_pending_events(self) -> bool:
        return bool(self._pending_events)

    def drain_events(self) -> List[Dict[str, Any]]:
        events, self._pending_events = self._pending_events, []
        return events

    def snapshot(self) -> Dict[str, Any]:
        counts = self.grid.counts()
        state = self.terminal_state
        return {
            "level": self.settings.level,
            "grid": self.grid.rows(),
            "player": self.player.to_dict(self.now),
            "impostor": self.impostor.to_dict(self.now) if self.impostor else None,
            "mode": self.last_decision.mode.value if self.last_decision else None,
            "terminal_state": state.value if state else None,
            "game_over": self.is_over,
            "paused": self.scheduler.paused,
            "tasks": counts.tasks,
            "sabotaged": counts.sabotaged,
            "vents": counts.vents,
            "vents_sealed": self.sabotage.vents_sealed,
            "elapsed_seconds": self.elapsed_seconds,
        }

    def render(self) -> str:
        impostor = None
        if self.impostor is not None and not self.impostor.is_hidden:
            impostor = self.impostor.position
        return self.grid.render(self.player.position, impostor)


def _autopilot_target(session: GameSession, rng: RandomnessEngine) -> Optional[Coord]:
    """Headless stand-in for a human: chase when close, otherwise tidy up.

    ``rng`` belongs to the autopilot so the impostor's random stream is
    the same whether or not a scripted player is attached.
    """
    sabotaged = session.grid.find_all(Tile.SABOTAGED_TASK)
    if session.impostor is not None and not session.impostor.is_hidden:
        if not sabotaged or rng.chance(0.5):
            return session.impostor.position
    if sabotaged:
        return sabotaged[0]
    vents = session.grid.find_all(Tile.VENT)
    return vents[0] if vents else None


def main(argv=None):
    parser = argparse.ArgumentParser(description="Run a headless Vent Chase session.")
    parser.add_argument("--level", type=int, default=None, help="difficulty level (defaults to saved progress)")
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--seconds", type=int, default=120, help="simulated time limit")
    parser.add_argument("--progress-file", default=None)
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args(argv)

    configure_console_logging(logging.DEBUG if args.verbose else logging.INFO)

    store = ProgressStore(args.progress_file)
    level = args.level if args.level is not None else store.progress.level
    session = GameSession(level=level, seed=args.seed, show_tips=not store.progress.once_played)
    pilot_rng = RandomnessEngine(None if args.seed is None else args.seed + 1)
    store.bind(session.events)
    session.start()

    frame_ms = 16
    limit_ms = args.seconds * 1000
    while not session.is_over and session.now < limit_ms:
        if not session.player.is_moving:
            target = _autopilot_target(session, pilot_rng)
            if target is not None and target != session.player_target:
                session.submit_target_tile(target)
        session.advance(frame_ms)

    print(session.render())
    state = session.terminal_state
    print(f"Result: {state.value if state else 'time limit reached'} after {session.elapsed_seconds}s")
    print(f"Attempts: {store.progress.attempts}  Level: {store.progress.level}")
    store.unbind()
    return state


if __name__ == "__main__":
    main()
