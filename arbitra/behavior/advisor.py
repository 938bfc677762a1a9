"""
Advisor: one agent's arbitration record.

An Advisor owns everything arbitration keeps per agent:

    candidate buffer  - suggestions collected during the propose phase
    active slot       - at most one resolved behavior instance
    last scores       - debug snapshot of the most recent resolve

Evaluators call ``suggest``/``propose`` during the propose phase, the tick
driver calls ``resolve`` once per tick, and act-phase consumers read the
result with ``get``/``is_active``. A per-advisor lock serializes all of
this, so independent evaluators may target the same agent from different
threads while different agents never contend.

Consumers may mutate the *state* fields of the instance returned by
``get``; those writes persist for as long as resolve keeps continuing the
same identity and are discarded on the next switch.
"""

from __future__ import annotations

import copy
import logging
import math
import threading
from collections.abc import Sequence
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from arbitra import config
from arbitra.events import (
    BehaviorClearedEvent,
    BehaviorSwitchedEvent,
    SuggestionRejectedEvent,
    publish_event,
)
from arbitra.types import BehaviorKey, EmptyPolicy, Score

from .resolver import (
    Resolution,
    ResolutionOutcome,
    ScoredSuggestion,
    Suggestion,
    resolve_candidates,
)
from .schema import BehaviorSet

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class BehaviorSnapshot:
    """Read-only copy of an agent's active behavior for diagnostics."""

    tag_name: str
    key: MappingProxyType
    inputs: MappingProxyType
    state: MappingProxyType

    def __str__(self) -> str:
        def fmt(values: MappingProxyType) -> str:
            return ", ".join(f"{name}={value!r}" for name, value in values.items())

        parts = [f"key({fmt(self.key)})"] if self.key else []
        if self.inputs:
            parts.append(f"inputs({fmt(self.inputs)})")
        if self.state:
            parts.append(f"state({fmt(self.state)})")
        return f"{self.tag_name} {' '.join(parts)}".rstrip()


class Advisor:
    """Per-agent candidate buffer, resolver front-end and active slot."""

    def __init__(
        self,
        behaviors: BehaviorSet,
        consistency_bonus: Score = config.DEFAULT_CONSISTENCY_BONUS,
        *,
        empty_policy: EmptyPolicy = config.DEFAULT_EMPTY_POLICY,
        label: str | None = None,
    ) -> None:
        if not math.isfinite(consistency_bonus) or consistency_bonus < 0:
            raise ValueError(
                f"consistency_bonus must be finite and >= 0, got {consistency_bonus}"
            )
        self.behaviors = behaviors
        self.consistency_bonus = consistency_bonus
        self.empty_policy = empty_policy
        self.label = label or f"{behaviors.name}@{id(self):x}"
        self._lock = threading.Lock()
        self._candidates: list[Suggestion] = []
        self._active: Any | None = None
        self._last_scores: tuple[ScoredSuggestion, ...] = ()

    def __repr__(self) -> str:
        active = type(self._active).__name__ if self._active is not None else None
        return f"Advisor({self.label!r}, active={active})"

    # ------------------------------------------------------------------
    # Propose phase
    # ------------------------------------------------------------------

    def suggest(self, score: Score, behavior: Any) -> bool:
        """Add a scored behavior instance to this tick's candidates.

        State fields set on ``behavior`` act as its initializer: they are
        only used if this suggestion wins with a new identity.

        Returns:
            True if queued, False if the score was not finite and the
            suggestion was discarded.

        Raises:
            TypeError: If ``behavior``'s variant is not in this advisor's set.
        """
        spec = self.behaviors.spec_for(type(behavior))
        if not math.isfinite(score):
            logger.warning(
                "%s: rejected %s suggestion with non-finite score %r",
                self.label,
                spec.name,
                score,
            )
            publish_event(
                SuggestionRejectedEvent(
                    agent=self.label, tag_name=spec.name, score=score
                )
            )
            return False
        with self._lock:
            self._candidates.append(Suggestion(score, behavior))
        return True

    def propose(
        self,
        score: Score,
        tag: type,
        key: Sequence[Any] = (),
        inputs: Sequence[Any] = (),
        state: Sequence[Any] | None = None,
    ) -> bool:
        """Tuple-based form of ``suggest``.

        ``state`` is the optional initializer; None means declared defaults.
        """
        return self.suggest(score, self.behaviors.build(tag, key, inputs, state))

    @property
    def candidates(self) -> tuple[Suggestion, ...]:
        """This tick's buffered suggestions, in submission order."""
        with self._lock:
            return tuple(self._candidates)

    @property
    def pending_count(self) -> int:
        return len(self._candidates)

    # ------------------------------------------------------------------
    # Resolve phase
    # ------------------------------------------------------------------

    def resolve(self) -> Resolution:
        """Pick this tick's winner and empty the candidate buffer."""
        with self._lock:
            candidates, self._candidates = self._candidates, []
            resolution = resolve_candidates(
                self.behaviors,
                self._active,
                candidates,
                consistency_bonus=self.consistency_bonus,
                empty_policy=self.empty_policy,
            )
            # Single assignment: the previous variant stops being visible at
            # the same moment the new one becomes visible.
            self._active = resolution.active
            self._last_scores = resolution.scored

        match resolution.outcome:
            case ResolutionOutcome.SWITCH:
                logger.debug(
                    "%s: switch %s -> %s",
                    self.label,
                    _describe_identity(resolution.previous, self.behaviors),
                    _describe_identity(resolution.active, self.behaviors),
                )
                publish_event(
                    BehaviorSwitchedEvent(
                        agent=self.label,
                        previous=resolution.previous,
                        current=resolution.active,
                    )
                )
            case ResolutionOutcome.CLEARED:
                logger.debug("%s: no suggestions, active behavior cleared", self.label)
                publish_event(
                    BehaviorClearedEvent(agent=self.label, previous=resolution.previous)
                )
        return resolution

    def discard_pending(self) -> int:
        """Drop buffered suggestions, leaving the active behavior alone.

        Returns the number of suggestions dropped.
        """
        with self._lock:
            dropped = len(self._candidates)
            self._candidates.clear()
        if dropped:
            logger.debug("%s: discarded %d pending suggestion(s)", self.label, dropped)
        return dropped

    def clear(self) -> None:
        """Drop the active behavior and any pending candidates."""
        with self._lock:
            self._candidates.clear()
            self._active = None
            self._last_scores = ()

    # ------------------------------------------------------------------
    # Publication / act phase
    # ------------------------------------------------------------------

    @property
    def active(self) -> Any | None:
        """The live active behavior instance, or None."""
        return self._active

    @property
    def active_tag(self) -> type | None:
        active = self._active
        return type(active) if active is not None else None

    def active_key(self) -> tuple[type, BehaviorKey] | None:
        """The active (tag, key) identity, or None when nothing is active."""
        active = self._active
        if active is None:
            return None
        return type(active), self.behaviors.spec_for(type(active)).key_of(active)

    def is_active(self, tag: type) -> bool:
        return type(self._active) is tag

    def get[V](self, tag: type[V]) -> V | None:
        """Return the live instance if ``tag`` is the present variant, else None.

        Raises:
            TypeError: If ``tag`` is not in this advisor's behavior set.
        """
        self.behaviors.spec_for(tag)
        active = self._active
        if type(active) is tag:
            return active
        return None

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def last_scores(self) -> tuple[ScoredSuggestion, ...]:
        """Scoring breakdown of the most recent resolve, for debug display."""
        return self._last_scores

    def snapshot(self) -> BehaviorSnapshot | None:
        """Copy the active behavior's fields, grouped by role."""
        with self._lock:
            active = self._active
            if active is None:
                return None
            spec = self.behaviors.spec_for(type(active))

            def group(names: tuple[str, ...]) -> MappingProxyType:
                return MappingProxyType(
                    {name: copy.deepcopy(getattr(active, name)) for name in names}
                )

            return BehaviorSnapshot(
                tag_name=spec.name,
                key=group(spec.key_fields),
                inputs=group(spec.input_fields),
                state=group(spec.state_fields),
            )

    def describe(self) -> str:
        """Multi-line debug text: identity line, then the active instance."""
        active = self._active
        if active is None:
            return f"{self.behaviors.name}: <none>"
        return f"{_describe_identity(active, self.behaviors)}\n{active!r}"


def _describe_identity(behavior: Any | None, behaviors: BehaviorSet) -> str:
    if behavior is None:
        return "<none>"
    spec = behaviors.spec_for(type(behavior))
    key = ", ".join(repr(value) for value in spec.key_of(behavior))
    return f"{spec.name}({key})" if spec.key_fields else spec.name
