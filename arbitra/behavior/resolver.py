"""Winner selection for one agent's tick.

``resolve_candidates`` is the core of arbitration: given the previous active
behavior and this tick's suggestions, it decides the next active behavior.
It performs no I/O and publishes nothing; the owning ``Advisor`` handles
buffering, locking, logging and events around it.

It is not side-effect free: on a continuation the previous instance is kept
and its input fields are overwritten in place with the winner's. Callers
that need the old inputs must read them before resolving.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any

from arbitra.types import BehaviorKey, EmptyPolicy, Score

from .schema import BehaviorSet


class ResolutionOutcome(Enum):
    SWITCH = auto()  # New identity; state initialized fresh
    CONTINUATION = auto()  # Same identity; state carried, inputs replaced
    KEPT = auto()  # No candidates; previous behavior retained as-is
    CLEARED = auto()  # No candidates; previous behavior dropped
    NONE = auto()  # No candidates and nothing was active


@dataclass(frozen=True, slots=True)
class Suggestion:
    """A scored proposal collected in an advisor's candidate buffer."""

    score: Score
    behavior: Any

    @property
    def tag(self) -> type:
        return type(self.behavior)


@dataclass(frozen=True, slots=True)
class ScoredSuggestion:
    """Debug snapshot of one candidate's scoring during resolve."""

    display_name: str
    key: BehaviorKey
    base_score: Score
    consistency_bonus: Score
    final_score: Score
    won: bool = False


@dataclass(frozen=True, slots=True)
class Resolution:
    outcome: ResolutionOutcome
    active: Any | None
    previous: Any | None
    scored: tuple[ScoredSuggestion, ...] = ()

    @property
    def switched(self) -> bool:
        return self.outcome is ResolutionOutcome.SWITCH


def identity_of(behaviors: BehaviorSet, behavior: Any) -> tuple[type, BehaviorKey]:
    """Return the (tag, key) identity of a behavior instance."""
    tag = type(behavior)
    return tag, behaviors.spec_for(tag).key_of(behavior)


def resolve_candidates(
    behaviors: BehaviorSet,
    previous: Any | None,
    candidates: Sequence[Suggestion],
    *,
    consistency_bonus: Score = 0.0,
    empty_policy: EmptyPolicy = EmptyPolicy.KEEP,
) -> Resolution:
    """Pick the next active behavior, updating ``previous`` on continuation.

    Args:
        behaviors: The behavior set every candidate belongs to.
        previous: The active behavior from the previous tick, or None.
        candidates: This tick's suggestions in submission order. Scores are
            assumed finite (the advisor rejects the rest at propose time).
        consistency_bonus: Added to candidates whose identity equals the
            previous identity before the maximum is taken.
        empty_policy: Applied when ``candidates`` is empty.

    Returns:
        A Resolution. On CONTINUATION ``active is previous`` and its input
        fields have been overwritten in place with the winner's. On SWITCH
        ``active`` is a fresh copy of the winning suggestion, so its state
        fields hold the suggestion's initializer or the declared defaults.
    """
    if not candidates:
        if previous is None:
            return Resolution(ResolutionOutcome.NONE, None, None)
        if empty_policy is EmptyPolicy.CLEAR:
            return Resolution(ResolutionOutcome.CLEARED, None, previous)
        return Resolution(ResolutionOutcome.KEPT, previous, previous)

    previous_identity = (
        identity_of(behaviors, previous) if previous is not None else None
    )

    identities: list[tuple[type, BehaviorKey]] = []
    finals: list[Score] = []
    bonuses: list[Score] = []
    for suggestion in candidates:
        identity = identity_of(behaviors, suggestion.behavior)
        bonus = consistency_bonus if identity == previous_identity else 0.0
        identities.append(identity)
        bonuses.append(bonus)
        finals.append(suggestion.score + bonus)

    max_score = max(finals)
    tied = [i for i, final in enumerate(finals) if final == max_score]

    # Prefer continuing the current behavior over an equally scored
    # alternative; otherwise first submitted wins.
    winner_index = next(
        (i for i in tied if identities[i] == previous_identity), tied[0]
    )
    winner = candidates[winner_index].behavior
    spec = behaviors.spec_for(type(winner))

    scored = tuple(
        ScoredSuggestion(
            display_name=identities[i][0].__name__,
            key=identities[i][1],
            base_score=candidates[i].score,
            consistency_bonus=bonuses[i],
            final_score=finals[i],
            won=i == winner_index,
        )
        for i in range(len(candidates))
    )

    if identities[winner_index] == previous_identity:
        spec.replace_inputs(previous, winner)
        return Resolution(ResolutionOutcome.CONTINUATION, previous, previous, scored)

    return Resolution(ResolutionOutcome.SWITCH, spec.adopt(winner), previous, scored)
