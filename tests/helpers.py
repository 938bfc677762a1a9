from __future__ import annotations

from dataclasses import dataclass, field

from arbitra.behavior import (
    Advisor,
    BehaviorSet,
    input_field,
    key_field,
    state_field,
    variant,
)
from arbitra.events import subscribe_to_event


@variant
class Idle:
    pass


@variant
class Chase:
    target: str = key_field()
    distance: float = input_field()
    ticks_chasing: int = state_field(default=0)


@variant
class Circle:
    target: str = key_field()
    distance: float = input_field()
    counter_clockwise: bool = state_field(default=False)
    laps: list[int] = state_field(default_factory=list)


ENEMY_BEHAVIOR = BehaviorSet("TestEnemy", [Idle, Chase, Circle])


@variant
class Flee:
    threat: str = key_field()


CRITTER_BEHAVIOR = BehaviorSet("TestCritter", [Flee])


def make_advisor(**kwargs) -> Advisor:
    kwargs.setdefault("label", "test-agent")
    return Advisor(ENEMY_BEHAVIOR, **kwargs)


@dataclass(eq=False)
class DummyAgent:
    """Minimal pipeline agent: a name and an advisor."""

    name: str
    advisor: Advisor = field(default_factory=make_advisor)


@dataclass
class EventRecorder:
    """Collects every published event of the given types."""

    events: list = field(default_factory=list)

    def listen(self, *event_types: type) -> EventRecorder:
        for event_type in event_types:
            subscribe_to_event(event_type, self.events.append)
        return self
