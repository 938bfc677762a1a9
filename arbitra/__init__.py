"""Per-tick behavior arbitration for many independent agents."""

from arbitra.behavior import (
    Advisor,
    BehaviorSet,
    BehaviorSnapshot,
    EmptyPolicy,
    Resolution,
    ResolutionOutcome,
    SchemaError,
    input_field,
    key_field,
    state_field,
    variant,
)
from arbitra.pipeline import BehaviorPipeline, TickPhase, TickReport

__all__ = [
    "Advisor",
    "BehaviorPipeline",
    "BehaviorSet",
    "BehaviorSnapshot",
    "EmptyPolicy",
    "Resolution",
    "ResolutionOutcome",
    "SchemaError",
    "TickPhase",
    "TickReport",
    "input_field",
    "key_field",
    "state_field",
    "variant",
]
