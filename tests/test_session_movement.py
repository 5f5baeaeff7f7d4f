"""Player input, AI tick scheduling, pause and the query surface of GameSession."""

import pytest

from conftest import MockRng
from core.event_system import EventType
from engine import GameSession
from systems.impostor_ai import ImpostorMode

# Player (1,1), vent (3,1), impostor (3,5); no tasks.
MOVE_BOX = [
    "XXXXXXX",
    "XP    X",
    "X     X",
    "XV   IX",
    "XXXXXXX",
]

# The impostor is walled in, so the session can only end by player action.
BOXED = [
    "XXXXXXX",
    "XP  VXX",
    "XXXXXIX",
    "XXXXXXX",
]


@pytest.fixture
def session():
    return GameSession(MOVE_BOX, rng=MockRng())


class TestDirectionalInput:
    def test_wall_is_rejected(self, session):
        rejected = []
        session.events.subscribe(EventType.MOVE_REJECTED, rejected.append)

        assert not session.submit_directional_move(0, -1)
        assert session.player.position == (1, 1)
        assert not session.player.is_moving
        assert rejected[0].payload == {"target": [0, 1]}

    @pytest.mark.parametrize("dx, dy", [(1, 1), (0, 0), (2, 0), (-1, 1)])
    def test_non_orthogonal_steps_rejected(self, session, dx, dy):
        assert not session.submit_directional_move(dx, dy)
        assert session.player.position == (1, 1)

    def test_dx_is_column_delta(self, session):
        assert session.submit_directional_move(1, 0)
        assert session.player.position == (1, 2)
        session.advance(session.settings.player_move_ms)
        assert session.submit_directional_move(0, 1)
        assert session.player.position == (2, 2)

    def test_input_locked_while_moving(self, session):
        assert session.submit_directional_move(1, 0)
        assert not session.submit_directional_move(1, 0)
        session.advance(session.settings.player_move_ms)
        assert not session.player.is_moving
        assert session.submit_directional_move(1, 0)
        assert session.player.position == (1, 3)

    def test_position_updates_immediately_and_interpolates(self, session):
        session.submit_directional_move(1, 0)
        state = session.snapshot()["player"]
        assert state["position"] == [1, 2]
        assert state["from"] == [1, 1]
        assert state["interpolation"] == 0.0

        session.advance(session.settings.player_move_ms / 2)
        assert session.snapshot()["player"]["interpolation"] == pytest.approx(0.5)

        session.advance(session.settings.player_move_ms / 2)
        assert session.snapshot()["player"]["interpolation"] == 1.0


class TestTapToMove:
    def test_walks_to_target_one_step_per_move(self, session):
        assert session.submit_target_tile((1, 4))
        assert session.player.position == (1, 2)

        session.advance(session.settings.player_move_ms)
        assert session.player.position == (1, 3)

        session.advance(2 * session.settings.player_move_ms)
        assert session.player.position == (1, 4)
        assert not session.player.is_moving
        assert session.player_target is None

    def test_unwalkable_target_dropped(self, session):
        assert not session.submit_target_tile((0, 0))
        assert session.player_target is None
        assert not session.player.is_moving

    def test_retarget_mid_move(self, session):
        session.submit_target_tile((1, 4))
        session.submit_target_tile((2, 2))
        # The first step is still in flight; the new target applies from the next one.
        assert session.player.position == (1, 2)
        session.advance(session.settings.player_move_ms)
        assert session.player.position == (2, 2)

    def test_directional_move_cancels_target(self, session):
        session.player_target = (1, 5)
        assert session.submit_directional_move(0, 1)
        assert session.player_target is None

        session.advance(session.settings.player_move_ms)
        assert session.player.position == (2, 1)
        assert not session.player.is_moving


class TestAiTick:
    def test_decision_starts_move(self, session):
        delay = session.ai_tick()
        decision = session.last_decision

        assert decision.mode is ImpostorMode.PANICKING
        assert session.impostor.position == (2, 5)
        assert session.impostor.is_moving
        assert delay == session.settings.flee_tick_ms
        assert session.snapshot()["mode"] == "panicking"

    def test_tick_while_moving_only_reschedules(self, session):
        session.ai_tick()
        first = session.last_decision
        assert session.ai_tick() == session.settings.tick_ms
        assert session.last_decision is first

    def test_impostor_move_completes_after_animation(self, session):
        session.ai_tick()
        session.advance(session.settings.flee_move_ms)
        assert not session.impostor.is_moving

    def test_flee_tick_rearms_at_short_interval(self, session):
        session.start()
        session.advance(session.settings.tick_ms)
        ai_jobs = [job for job in session.scheduler.pending() if job.name == "impostor_ai"]
        assert len(ai_jobs) == 1
        assert ai_jobs[0].due == session.settings.tick_ms + session.settings.flee_tick_ms

    def test_start_is_idempotent(self, session):
        session.start()
        session.start()
        names = sorted(job.name for job in session.scheduler.pending())
        assert names == ["clock", "impostor_ai"]

    def test_fleeing_impostor_stays_on_its_vent(self):
        session = GameSession([
            "XXXXXXXXXX",
            "XVI   P VX",
            "XXXXXXXXXX",
        ], rng=MockRng())
        session.impostor.place((1, 1))
        hidden = []
        session.events.subscribe(EventType.IMPOSTOR_HIDDEN, hidden.append)

        for _ in range(5):
            session.ai_tick()
            session.advance(session.settings.flee_tick_ms)

        assert session.impostor.position == (1, 1)
        assert not session.impostor.is_moving
        assert session.last_decision.mode is ImpostorMode.FLEEING
        assert hidden == []

    def test_decisions_are_published(self, session):
        decisions = []
        session.events.subscribe(EventType.AI_DECISION, decisions.append)
        session.ai_tick()
        assert decisions[0].payload["mode"] == "panicking"
        assert decisions[0].payload["target"] == (2, 5)


class TestPauseAndClock:
    def test_clock_counts_seconds(self):
        session = GameSession(BOXED, rng=MockRng())
        session.start()
        session.advance(3500)
        assert session.elapsed_seconds == 3
        assert not session.is_over

    def test_pause_freezes_everything(self):
        session = GameSession(BOXED, rng=MockRng())
        paused = []
        session.events.subscribe(EventType.PAUSED, paused.append)
        session.start()
        session.advance(1000)

        session.pause()
        session.pause()
        assert len(paused) == 1
        assert session.advance(10000) == 0
        assert session.elapsed_seconds == 1
        assert session.snapshot()["paused"]

        session.resume()
        session.advance(1000)
        assert session.elapsed_seconds == 2

    def test_pause_keeps_moves_in_flight(self, session):
        session.submit_directional_move(1, 0)
        session.pause()
        session.advance(1000)
        assert session.player.is_moving
        session.resume()
        session.advance(session.settings.player_move_ms)
        assert not session.player.is_moving


class TestQuerySurface:
    def test_snapshot_shape(self, session):
        snap = session.snapshot()
        assert snap["level"] == 1
        assert snap["grid"] == [
            "XXXXXXX",
            "X     X",
            "X     X",
            "XV    X",
            "XXXXXXX",
        ]
        assert snap["player"]["position"] == [1, 1]
        assert snap["impostor"]["position"] == [3, 5]
        assert snap["terminal_state"] is None
        assert snap["game_over"] is False
        assert (snap["tasks"], snap["sabotaged"], snap["vents"]) == (0, 0, 1)
        assert snap["elapsed_seconds"] == 0

    def test_drain_events_empties_queue(self, session):
        session.submit_directional_move(0, 1)
        session.advance(session.settings.player_move_ms)
        session.submit_directional_move(0, 1)
        session.advance(session.settings.player_move_ms)

        events = session.drain_events()
        assert [event["type"] for event in events] == ["ventSealed", "gameOver"]
        assert events[0]["payload"]["position"] == [3, 1]
        assert events[0]["at"] == 2 * session.settings.player_move_ms
        assert session.drain_events() == []
        assert not session.has_pending_events

    def test_render(self, session):
        assert session.render().splitlines()[1] == "XP    X"
        assert session.render().splitlines()[3] == "XV   IX"

    def test_level_clamps(self):
        assert GameSession(MOVE_BOX, level=99).settings.level == 5
        assert GameSession(MOVE_BOX, level=0).settings.level == 1


class TestTutorialTips:
    def test_first_play_schedules_tips(self):
        session = GameSession(BOXED, rng=MockRng(), show_tips=True)
        session.start()
        tips = [job for job in session.scheduler.pending() if job.name == "tutorial_tip"]
        assert [job.due for job in tips] == [7000, 15000, 50000]

        session.advance(15000)
        events = [event for event in session.drain_events() if event["type"] == "tutorialTip"]
        assert [event["at"] for event in events] == [7000, 15000]
        assert events[0]["payload"]["duration_ms"] == 2500
        assert "Restore" in events[0]["payload"]["message"]

    def test_returning_player_gets_no_tips(self):
        session = GameSession(BOXED, rng=MockRng(), show_tips=False)
        session.start()
        assert all(job.name != "tutorial_tip" for job in session.scheduler.pending())
        session.advance(60000)
        assert all(event["type"] != "tutorialTip" for event in session.drain_events())

    def test_tips_stop_when_game_ends(self):
        session = GameSession(BOXED, rng=MockRng(), show_tips=True)
        session.start()
        session.advance(7000)
        session.drain_events()

        # Walk onto the only vent: trapped.
        for _ in range(3):
            session.submit_directional_move(1, 0)
            session.advance(session.settings.player_move_ms)
        assert session.is_over

        session._show_tip("late", 100)
        assert all(event["type"] != "tutorialTip" for event in session.drain_events())
