"""Pytest configuration for Vent Chase tests."""

import sys
import os

import pytest

# Add src directory to path for imports
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
sys.path.insert(0, PROJECT_ROOT)
sys.path.insert(0, os.path.join(PROJECT_ROOT, "src"))


class MockRng:
    """Deterministic stand-in for RandomnessEngine.

    ``hunt`` answers every Bernoulli draw; ``pick`` indexes into whatever
    ``choose`` is handed (0 = first, -1 = last).
    """

    def __init__(self, hunt=True, pick=0):
        self.hunt = hunt
        self.pick = pick
        self.choices = []

    def chance(self, probability):
        return self.hunt

    def random_float(self):
        return 0.0 if self.hunt else 0.99

    def choose(self, items):
        items = list(items)
        self.choices.append(items)
        if not items:
            return None
        return items[self.pick]


@pytest.fixture
def mock_rng():
    return MockRng()
