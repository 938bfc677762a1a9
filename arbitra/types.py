from __future__ import annotations

from collections.abc import Hashable
from enum import Enum, auto
from typing import Any, NewType

# =============================================================================
# SCORING TYPES
# =============================================================================

# Desirability of a suggestion. Must be finite; higher wins.
type Score = float

# =============================================================================
# IDENTITY TYPES
# =============================================================================

# Ordered key-field values of a behavior variant. Together with the variant
# class it forms the identity that decides continuation vs. switch.
type BehaviorKey = tuple[Hashable, ...]

# Tick-local input values and persisted state values, in declaration order.
type BehaviorInputs = tuple[Any, ...]
type BehaviorState = tuple[Any, ...]

# Handle for an agent in the demo world. Key fields commonly hold these.
AgentId = NewType("AgentId", int)

# =============================================================================
# TIME-RELATED TYPES
# =============================================================================

# Monotonic tick counter maintained by the pipeline.
TickNumber = NewType("TickNumber", int)

# Fixed duration of one simulated tick in seconds.
FixedTimestep = NewType("FixedTimestep", float)

# =============================================================================
# RANDOMNESS
# =============================================================================

RandomSeed = int | str | None

# =============================================================================
# ARBITRATION POLICIES
# =============================================================================


class EmptyPolicy(Enum):
    """What resolve does when an agent's candidate buffer is empty."""

    KEEP = auto()  # Retain the previous active behavior, state included
    CLEAR = auto()  # Drop to "no active behavior"
