"""Tests for the relationship model: buckets, tone choice, and deltas."""

import random
from collections import Counter

import pytest

from agentroom.relationships import (
    RELATIONSHIP_SCORE_BOUND,
    RelationshipBucket,
    apply_delta,
    choose_response_tone,
    choose_tone,
    classify,
    delta,
    response_delta,
)
from agentroom.schemas import Tone, TraitVector


class FixedRandom(random.Random):
    """Random source whose ``random()`` always returns the same roll."""

    def __init__(self, roll: float):
        super().__init__(0)
        self.roll = roll

    def random(self) -> float:
        return self.roll


KIND = TraitVector(friendliness=0.9, aggression=0.1)
MEAN = TraitVector(friendliness=0.2, aggression=0.9)


@pytest.mark.parametrize(
    "score,bucket",
    [
        (76, RelationshipBucket.VERY_POSITIVE),
        (75, RelationshipBucket.POSITIVE),
        (51, RelationshipBucket.POSITIVE),
        (50, RelationshipBucket.SOMEWHAT_POSITIVE),
        (25, RelationshipBucket.NEUTRAL),
        (0, RelationshipBucket.NEUTRAL),
        (-25, RelationshipBucket.SOMEWHAT_NEGATIVE),
        (-50, RelationshipBucket.NEGATIVE),
        (-75, RelationshipBucket.VERY_NEGATIVE),
        (-5000, RelationshipBucket.VERY_NEGATIVE),
    ],
)
def test_classify_thresholds_belong_to_lower_bucket(score, bucket):
    assert classify(score) is bucket


def test_bucket_labels():
    assert classify(90).label == "Very Close Friends"
    assert classify(0).label == "Neutral"
    assert classify(-90).label == "Bitter Enemies"


def test_hostile_band_uses_initiator_aggression():
    # aggression 0.9 -> hostile window is [0, 0.72)
    assert choose_tone(-60, MEAN, KIND, FixedRandom(0.7)) is Tone.HOSTILE
    assert choose_tone(-60, MEAN, KIND, FixedRandom(0.8)) is Tone.NEUTRAL
    assert choose_tone(-60, MEAN, KIND, FixedRandom(0.95)) is Tone.FRIENDLY


def test_friendly_band_uses_responder_friendliness():
    # responder friendliness 0.9 -> friendly window is [0, 0.72)
    assert choose_tone(60, MEAN, KIND, FixedRandom(0.5)) is Tone.FRIENDLY
    assert choose_tone(60, MEAN, KIND, FixedRandom(0.85)) is Tone.NEUTRAL
    assert choose_tone(60, MEAN, KIND, FixedRandom(0.95)) is Tone.HOSTILE


def test_middle_band_ignores_traits():
    assert choose_tone(-50, MEAN, KIND, FixedRandom(0.29)) is Tone.HOSTILE
    assert choose_tone(50, MEAN, KIND, FixedRandom(0.5)) is Tone.NEUTRAL
    assert choose_tone(0, MEAN, KIND, FixedRandom(0.7)) is Tone.FRIENDLY


@pytest.mark.parametrize("score", [-200, -60, 0, 60, 200])
def test_all_tones_reachable_from_every_band(score):
    rng = random.Random(1234)
    traits = TraitVector()
    tones = Counter(choose_tone(score, traits, traits, rng) for _ in range(1000))
    assert set(tones) == set(Tone)


def test_zero_aggression_suppresses_hostile_in_hostile_band():
    rng = random.Random(99)
    pacifist = TraitVector(aggression=0.0)
    tones = Counter(choose_tone(-80, pacifist, KIND, rng) for _ in range(1000))
    assert tones[Tone.HOSTILE] == 0
    assert tones[Tone.NEUTRAL] > 0 and tones[Tone.FRIENDLY] > 0


def test_aggressive_initiator_skews_hostile_under_negative_relationship():
    rng = random.Random(5)
    tones = Counter(choose_tone(-60, MEAN, KIND, rng) for _ in range(1000))
    assert tones[Tone.HOSTILE] > tones[Tone.NEUTRAL] > tones[Tone.FRIENDLY]


def test_response_tone_keys_on_initial_tone():
    assert choose_response_tone(Tone.HOSTILE, MEAN, FixedRandom(0.5)) is Tone.HOSTILE
    assert choose_response_tone(Tone.HOSTILE, KIND, FixedRandom(0.5)) is Tone.NEUTRAL
    assert choose_response_tone(Tone.FRIENDLY, KIND, FixedRandom(0.5)) is Tone.FRIENDLY
    assert choose_response_tone(Tone.FRIENDLY, MEAN, FixedRandom(0.95)) is Tone.HOSTILE
    assert choose_response_tone(Tone.NEUTRAL, MEAN, FixedRandom(0.1)) is Tone.HOSTILE


def test_delta_ranges_are_inclusive():
    rng = random.Random(42)
    friendly = {delta(Tone.FRIENDLY, rng) for _ in range(2000)}
    hostile = {delta(Tone.HOSTILE, rng) for _ in range(2000)}
    neutral = {delta(Tone.NEUTRAL, rng) for _ in range(2000)}

    assert friendly == set(range(5, 16))
    assert hostile == set(range(-15, -4))
    assert neutral == set(range(-2, 4))


def test_response_delta_ranges_are_tighter():
    rng = random.Random(42)
    assert {response_delta(Tone.FRIENDLY, rng) for _ in range(2000)} == set(range(3, 11))
    assert {response_delta(Tone.HOSTILE, rng) for _ in range(2000)} == set(range(-10, -2))
    assert {response_delta(Tone.NEUTRAL, rng) for _ in range(2000)} == set(range(-1, 3))


def test_apply_delta_clamps_to_bound():
    assert apply_delta(10, 5) == 15
    assert apply_delta(RELATIONSHIP_SCORE_BOUND - 3, 15) == RELATIONSHIP_SCORE_BOUND
    assert apply_delta(-RELATIONSHIP_SCORE_BOUND, -7) == -RELATIONSHIP_SCORE_BOUND
