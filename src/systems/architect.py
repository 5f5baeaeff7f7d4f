"""Randomness source shared by the impostor AI.

Every random choice in a session goes through one seedable engine so a
seeded game replays identically.
"""

import logging
import random

logger = logging.getLogger(__name__)


class RandomnessEngine:
    def __init__(self, seed=None):
        self.seed = seed
        self._random = random.Random(self.seed)

    def randint(self, a, b):
        return self._random.randint(a, b)

    def choose(self, collection):
        if not collection:
            return None
        return self._random.choice(list(collection))

    def random_float(self):
        return self._random.random()

    def chance(self, probability: float) -> bool:
        """Bernoulli draw: True with the given probability."""
        return self._random.random() < probability

    def to_dict(self):
        # random.getstate() returns (version, internal_state_tuple, gaussian_state)
        state = self._random.getstate()
        serializable_state = [state[0], list(state[1]), state[2]]

        return {
            "seed": self.seed,
            "rng_state": serializable_state
        }

    def from_dict(self, data):
        self.seed = data.get("seed")
        rng_state = data.get("rng_state")

        if rng_state:
            try:
                state = (
                    rng_state[0],
                    tuple(rng_state[1]),
                    rng_state[2]
                )
                self._random.setstate(state)
            except (TypeError, ValueError, IndexError) as e:
                logger.warning("Failed to restore RNG state: %s", e)
                self._random.seed(self.seed)
