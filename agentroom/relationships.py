"""Relationship model: pure functions over scores, traits, and randomness.

Nothing here touches the store. Callers pass a ``random.Random`` so a seeded
generator reproduces tone choices and deltas exactly.

Tone selection mirrors the interaction rules of the room:

- Hostile band (score < -50): hostile with probability aggression x 0.8,
  otherwise neutral up to 0.9, otherwise friendly.
- Friendly band (score > 50): friendly with probability responder
  friendliness x 0.8, otherwise neutral up to 0.9, otherwise hostile.
- Anything in between: hostile below 0.3, neutral below 0.7, else friendly.

Trait values are used as given. An initiator with aggression exactly 0 can
never produce a hostile initiation in the hostile band (the hostile window
has zero width); neutral and friendly remain reachable.
"""

from __future__ import annotations

import random
from enum import Enum
from typing import Tuple

from .schemas import Tone, TraitVector

HOSTILE_BAND_THRESHOLD = -50
FRIENDLY_BAND_THRESHOLD = 50
TRAIT_WEIGHT = 0.8
NEUTRAL_CEILING = 0.9
UNBIASED_HOSTILE_CUT = 0.3
UNBIASED_NEUTRAL_CUT = 0.7

# Stored scores are clamped to +/- this bound; buckets saturate long before.
RELATIONSHIP_SCORE_BOUND = 1000

INITIATION_DELTA_RANGES = {
    Tone.FRIENDLY: (5, 15),
    Tone.HOSTILE: (-15, -5),
    Tone.NEUTRAL: (-2, 3),
}

RESPONSE_DELTA_RANGES = {
    Tone.FRIENDLY: (3, 10),
    Tone.HOSTILE: (-10, -3),
    Tone.NEUTRAL: (-1, 2),
}


class RelationshipBucket(Enum):
    """Qualitative reading of a relationship score."""

    VERY_POSITIVE = (75, "Very Close Friends")
    POSITIVE = (50, "Friends")
    SOMEWHAT_POSITIVE = (25, "Friendly")
    NEUTRAL = (-25, "Neutral")
    SOMEWHAT_NEGATIVE = (-50, "Dislike")
    NEGATIVE = (-75, "Enemies")
    VERY_NEGATIVE = (None, "Bitter Enemies")

    def __init__(self, threshold, label):
        self.threshold = threshold
        self.label = label


def classify(score: int) -> RelationshipBucket:
    """Map a score to its bucket; a score equal to a threshold falls below it."""
    for bucket in RelationshipBucket:
        if bucket.threshold is None or score > bucket.threshold:
            return bucket
    return RelationshipBucket.VERY_NEGATIVE  # pragma: no cover - loop always returns


def relationship_label(score: int) -> str:
    return classify(score).label


def _weighted_tone(
    roll: float, favoured: Tone, weight: float, opposite: Tone
) -> Tone:
    if roll < weight * TRAIT_WEIGHT:
        return favoured
    if roll < NEUTRAL_CEILING:
        return Tone.NEUTRAL
    return opposite


def _unbiased_tone(roll: float) -> Tone:
    if roll < UNBIASED_HOSTILE_CUT:
        return Tone.HOSTILE
    if roll < UNBIASED_NEUTRAL_CUT:
        return Tone.NEUTRAL
    return Tone.FRIENDLY


def choose_tone(
    score: int,
    initiator_traits: TraitVector,
    responder_traits: TraitVector,
    rng: random.Random,
) -> Tone:
    """Pick the initiation tone from the initiator->responder score."""
    roll = rng.random()
    if score < HOSTILE_BAND_THRESHOLD:
        return _weighted_tone(roll, Tone.HOSTILE, initiator_traits.aggression, Tone.FRIENDLY)
    if score > FRIENDLY_BAND_THRESHOLD:
        return _weighted_tone(roll, Tone.FRIENDLY, responder_traits.friendliness, Tone.HOSTILE)
    return _unbiased_tone(roll)


def choose_response_tone(
    initial_tone: Tone,
    responder_traits: TraitVector,
    rng: random.Random,
) -> Tone:
    """Pick the response tone, keyed on the tone the responder was addressed with."""
    roll = rng.random()
    initial_tone = Tone(initial_tone)
    if initial_tone is Tone.FRIENDLY:
        return _weighted_tone(roll, Tone.FRIENDLY, responder_traits.friendliness, Tone.HOSTILE)
    if initial_tone is Tone.HOSTILE:
        return _weighted_tone(roll, Tone.HOSTILE, responder_traits.aggression, Tone.FRIENDLY)
    return _unbiased_tone(roll)


def _draw(ranges: dict, tone: Tone, rng: random.Random) -> int:
    low, high = ranges[Tone(tone)]
    return rng.randint(low, high)


def delta(tone: Tone, rng: random.Random) -> int:
    """Score change for an initiation turn of the given tone (inclusive ranges)."""
    return _draw(INITIATION_DELTA_RANGES, tone, rng)


def response_delta(tone: Tone, rng: random.Random) -> int:
    """Score change for a response turn; tighter than the initiation ranges."""
    return _draw(RESPONSE_DELTA_RANGES, tone, rng)


def apply_delta(score: int, change: int) -> int:
    """Return ``score + change`` clamped to the stored score bound."""
    return max(-RELATIONSHIP_SCORE_BOUND, min(RELATIONSHIP_SCORE_BOUND, score + change))


def delta_range(tone: Tone, *, response: bool = False) -> Tuple[int, int]:
    ranges = RESPONSE_DELTA_RANGES if response else INITIATION_DELTA_RANGES
    return ranges[Tone(tone)]


__all__ = [
    "RELATIONSHIP_SCORE_BOUND",
    "RelationshipBucket",
    "classify",
    "relationship_label",
    "choose_tone",
    "choose_response_tone",
    "delta",
    "response_delta",
    "apply_delta",
    "delta_range",
]
