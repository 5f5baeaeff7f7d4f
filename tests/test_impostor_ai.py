"""Tests for the impostor decision engine.

Covers mode selection, vent scoring, hunting/patrolling goal choice, the
fallback chain (panic move, avoidance-free retry) and the timing hints.
"""

import logging

import pytest

from conftest import MockRng
from core.logger import hidden_logger
from entities.grid_map import GridMap, DEFAULT_LAYOUT, manhattan
from systems.architect import RandomnessEngine
from systems.difficulty import DifficultySettings, LevelSettings
from systems.impostor_ai import ImpostorAI, ImpostorMode


def make_settings(**overrides):
    values = DifficultySettings.for_level(1).to_dict()
    values.update(overrides)
    return LevelSettings(**values)


def decide(layout, rng=None, **overrides):
    grid, player, impostor = GridMap.from_layout(layout)
    ai = ImpostorAI(make_settings(**overrides), rng or MockRng())
    return ai, ai.decide(grid, impostor, player)


FLEE_FIELD = [
    "XXXXXXXXXXX",
    "XV   I   VX",
    "X         X",
    "XP       TX",
    "XXXXXXXXXXX",
]

NO_TASKS_FAR = [
    "XXXXXXXXXXXXXXX",
    "XP           VX",
    "X             X",
    "X            IX",
    "XXXXXXXXXXXXXXX",
]

HUNT_FIELD = [
    "XXXXXXXXXXXXX",
    "XT    I    TX",
    "X           X",
    "XP          X",
    "XXXXXXXXXXXXX",
]

CORRIDORS = [
    "XXXXXXXXXXX",
    "XT   I    X",
    "XXXXXXXXX X",
    "XP        X",
    "XXXXXXXXXXX",
]

PLAYER_BLOCKS_CORRIDOR = [
    "XXXXXXXXXXX",
    "XT  P    IX",
    "XXXXXXXXXXX",
]


class TestFleeing:
    def test_flees_when_player_close(self):
        _, decision = decide(FLEE_FIELD)
        assert decision.mode is ImpostorMode.FLEEING
        assert decision.goal == (1, 9)
        assert decision.path == [(1, 6), (1, 7), (1, 8), (1, 9)]
        assert decision.target == (1, 6)
        assert decision.should_move

    def test_vent_score_prefers_vents_far_from_player(self):
        ai = ImpostorAI(make_settings(), MockRng())
        assert ai.score_vent((1, 5), (3, 1), (1, 1)) == pytest.approx(1.0)
        assert ai.score_vent((1, 5), (3, 1), (1, 9)) == pytest.approx(-11.0)

    def test_flees_when_no_tasks_remain(self):
        _, decision = decide(NO_TASKS_FAR)
        assert decision.mode is ImpostorMode.FLEEING
        assert decision.goal == (1, 13)
        assert decision.target == (2, 13)

    def test_already_on_best_vent_holds_still(self):
        grid, player, _ = GridMap.from_layout([
            "XXXXXXXX",
            "XVI  P X",
            "XXXXXXXX",
        ])
        ai = ImpostorAI(make_settings(), MockRng())
        decision = ai.decide(grid, (1, 1), player)

        assert decision.mode is ImpostorMode.FLEEING
        assert decision.goal == (1, 1)
        assert decision.path == []
        assert decision.target is None
        assert not decision.used_fallback
        assert not decision.should_move

    def test_flee_timing_is_urgent(self):
        settings = make_settings()
        _, decision = decide(FLEE_FIELD)
        assert decision.animation_ms == settings.flee_move_ms
        assert decision.next_tick_ms == settings.flee_tick_ms
        assert decision.next_tick_ms < settings.tick_ms
        assert decision.animation_ms < settings.impostor_move_ms


class TestPanicMove:
    def test_no_vents_triggers_panic(self):
        _, decision = decide([
            "XXXXXXX",
            "X  I  X",
            "X P   X",
            "XXXXXXX",
        ])
        assert decision.mode is ImpostorMode.PANICKING
        assert decision.target == (1, 4)
        assert decision.path is None
        assert decision.used_fallback
        assert decision.should_move

    def test_vent_behind_avoid_zone_triggers_panic(self):
        _, decision = decide([
            "XXXXXXX",
            "XV I  X",
            "X P   X",
            "XXXXXXX",
        ])
        assert decision.mode is ImpostorMode.PANICKING
        assert decision.target == (1, 4)

    def test_panic_maximises_distance_first_wins_ties(self):
        layout = [
            "XXXXX",
            "X I X",
            "X   X",
            "X P X",
            "XXXXX",
        ]
        grid, player, impostor = GridMap.from_layout(layout)
        ai = ImpostorAI(make_settings(), MockRng())
        move = ai.panic_move(grid, impostor, player)
        # Right and left both reach distance 3; right comes first.
        assert move == (1, 3)
        best = max(manhattan(n, player) for n in grid.neighbors(impostor))
        assert manhattan(move, player) == best

    def test_boxed_in_impostor_does_not_move(self):
        _, decision = decide([
            "XXXXX",
            "XXIXX",
            "XXXXX",
            "XP  X",
            "XXXXX",
        ])
        assert decision.mode is ImpostorMode.PANICKING
        assert decision.target is None
        assert not decision.should_move


class TestHuntingAndPatrolling:
    def test_hunts_nearest_task_ties_by_enumeration(self):
        _, decision = decide(HUNT_FIELD, flee_distance=3, avoid_distance=1)
        assert decision.mode is ImpostorMode.HUNTING
        assert decision.goal == (1, 1)
        assert decision.target == (1, 5)
        assert len(decision.path) == 5

    def test_hunts_nearest_task(self):
        layout = list(HUNT_FIELD)
        layout[1] = "XT    I  T  X"
        _, decision = decide(layout, flee_distance=3, avoid_distance=1)
        assert decision.goal == (1, 9)
        assert decision.path == [(1, 7), (1, 8), (1, 9)]

    def test_normal_timing(self):
        settings = make_settings(flee_distance=3, avoid_distance=1)
        _, decision = decide(HUNT_FIELD, flee_distance=3, avoid_distance=1)
        assert decision.animation_ms == settings.impostor_move_ms
        assert decision.next_tick_ms == settings.tick_ms

    def test_patrols_to_chosen_point(self):
        rng = MockRng(hunt=False)
        _, decision = decide(HUNT_FIELD, rng=rng, flee_distance=3, avoid_distance=1)
        assert decision.mode is ImpostorMode.PATROLLING
        assert decision.goal == (1, 2)
        assert decision.path == [(1, 5), (1, 4), (1, 3), (1, 2)]
        assert rng.choices and rng.choices[0][0] == (1, 2)

    def test_patrol_without_points_falls_back_to_hunting(self):
        _, decision = decide(CORRIDORS, rng=MockRng(hunt=False), flee_distance=2, avoid_distance=1)
        assert decision.mode is ImpostorMode.HUNTING
        assert decision.used_fallback
        assert decision.path == [(1, 4), (1, 3), (1, 2), (1, 1)]

    @pytest.mark.parametrize("hunt", [True, False])
    def test_retries_without_avoidance(self, hunt):
        _, decision = decide(PLAYER_BLOCKS_CORRIDOR, rng=MockRng(hunt=hunt),
                             flee_distance=2, avoid_distance=1)
        assert decision.mode is ImpostorMode.HUNTING
        assert decision.used_fallback
        assert decision.goal == (1, 1)
        assert decision.target == (1, 8)
        assert len(decision.path) == 8

    def test_never_steps_onto_player(self):
        _, decision = decide([
            "XXXXXXXXXXX",
            "XT  PI    X",
            "XXXXXXXXXXX",
        ], flee_distance=0, avoid_distance=1)
        assert decision.target == (1, 4)
        assert decision.skipped
        assert not decision.should_move


class TestDeterminism:
    def test_seeded_engines_agree(self):
        grid, player, impostor = GridMap.from_layout(DEFAULT_LAYOUT)
        settings = DifficultySettings.for_level(1)
        ai_one = ImpostorAI(settings, RandomnessEngine(seed=1234))
        ai_two = ImpostorAI(settings, RandomnessEngine(seed=1234))

        positions = [(9, 12), (7, 11), (11, 3), (1, 20), (5, 14)]
        for position in positions:
            first = ai_one.decide(grid, position, player)
            second = ai_two.decide(grid, position, player)
            assert (first.mode, first.goal, first.target) == (second.mode, second.goal, second.target)


def test_decisions_go_to_hidden_log():
    records = []

    class Collector(logging.Handler):
        def emit(self, record):
            records.append(record.getMessage())

    handler = Collector()
    hidden_logger.addHandler(handler)
    try:
        decide(FLEE_FIELD)
    finally:
        hidden_logger.removeHandler(handler)

    assert any("mode=fleeing" in message for message in records)
