"""
Behavior arbitration: choosing exactly one behavior per agent per tick.

Package structure:
    schema    - Variant declarations: @variant, key_field/input_field/
                state_field, BehaviorSet, VariantSpec.
    resolver  - Pure winner selection: resolve_candidates, Resolution.
    advisor   - Advisor: per-agent candidate buffer, active slot and
                publication queries.
"""

from arbitra.types import EmptyPolicy

from .advisor import Advisor, BehaviorSnapshot
from .resolver import (
    Resolution,
    ResolutionOutcome,
    ScoredSuggestion,
    Suggestion,
    identity_of,
    resolve_candidates,
)
from .schema import (
    BehaviorSet,
    FieldRole,
    SchemaError,
    VariantSpec,
    input_field,
    is_variant,
    key_field,
    spec_of,
    state_field,
    variant,
)

__all__ = [
    "Advisor",
    "BehaviorSet",
    "BehaviorSnapshot",
    "EmptyPolicy",
    "FieldRole",
    "Resolution",
    "ResolutionOutcome",
    "SchemaError",
    "ScoredSuggestion",
    "Suggestion",
    "VariantSpec",
    "identity_of",
    "input_field",
    "is_variant",
    "key_field",
    "resolve_candidates",
    "spec_of",
    "state_field",
    "variant",
]
