"""Shot resolution: turns a committed kick and dive into goal, save or miss.

The physics model is deliberately small:

- the ball leaves at the aimed angle plus a uniform error whose width grows
  with power (``spread = 6 * (0.2 + power)`` degrees either side);
- the goal is split into three zones at -15 and +15 degrees;
- power above 0.9 risks an outright miss (``(power - 0.9) * 2``);
- a keeper diving to the ball's zone saves with probability
  ``0.6 - 0.25 * power``, otherwise it is a goal.

All randomness comes from ``rng``, any object with ``uniform(a, b)`` and
``random()`` such as ``random.Random``. Tests pass a seeded or scripted one.
"""
import random
from typing import Dict, NamedTuple

from kickoff.messages import ANGLE_LIMIT_DEG, clamp
from kickoff.models import DIRECTIONS, Dive, Kick

RESULT_GOAL = 'goal'
RESULT_SAVE = 'save'
RESULT_MISS = 'miss'

ZONE_EDGE_DEG = 15.0


class ShotOutcome(NamedTuple):
    result: str
    zone: str
    actual_angle: float


def zone_for(angle: float) -> str:
    if angle < -ZONE_EDGE_DEG:
        return 'left'
    if angle > ZONE_EDGE_DEG:
        return 'right'
    return 'center'


def spread_for(power: float) -> float:
    return 6 * (0.2 + power)


def miss_probability(power: float) -> float:
    return max(0.0, power - 0.9) * 2


def save_probability(power: float) -> float:
    return 0.6 - 0.25 * power


class ShotResolver:
    def __init__(self, rng=None):
        self.rng = rng if rng is not None else random.Random()

    def resolve(self, kick: Kick, dive: Dive) -> ShotOutcome:
        angle = clamp(kick.angle_deg, -ANGLE_LIMIT_DEG, ANGLE_LIMIT_DEG)
        power = clamp(kick.power, 0.0, 1.0)
        direction = dive.direction if dive.direction in DIRECTIONS else 'center'

        spread = spread_for(power)
        actual_angle = angle + self.rng.uniform(-spread, spread)
        zone = zone_for(actual_angle)

        # Draw order: angle error, miss, then save only on a matching dive
        if self.rng.random() < miss_probability(power):
            return ShotOutcome(RESULT_MISS, zone, actual_angle)
        if direction == zone and self.rng.random() < save_probability(power):
            return ShotOutcome(RESULT_SAVE, zone, actual_angle)
        return ShotOutcome(RESULT_GOAL, zone, actual_angle)


def apply_outcome(score: Dict[str, int], shooter: str, outcome: ShotOutcome) -> None:
    """The only place a score changes."""
    if outcome.result == RESULT_GOAL:
        score[shooter] += 1
