"""
Configuration constants.

Centralizes the tunable defaults used throughout the arbitration engine and
its demo. Organized by functional area for easy maintenance.
"""

import sys

from arbitra.types import EmptyPolicy, FixedTimestep, RandomSeed

# =============================================================================
# GENERAL
# =============================================================================

# RANDOM_SEED = None
RANDOM_SEED: RandomSeed = "arbitra"

# Test environment detection
IS_TEST_ENVIRONMENT = "pytest" in sys.modules

# =============================================================================
# ARBITRATION
# =============================================================================

# What an advisor does when a tick ends with no suggestions at all.
# KEEP retains the previous active behavior (and its state) unchanged.
DEFAULT_EMPTY_POLICY = EmptyPolicy.KEEP

# Added to the score of suggestions matching the currently active identity.
# 0.0 means only exact ties are biased toward the current behavior.
DEFAULT_CONSISTENCY_BONUS = 0.0

# =============================================================================
# PIPELINE
# =============================================================================

# None runs every phase sequentially on the calling thread. An integer runs
# propose systems, per-agent resolves and act systems on a thread pool.
PIPELINE_MAX_WORKERS: int | None = None

# Samples kept per pipeline timing metric.
METRIC_SAMPLES = 256

# =============================================================================
# DEMO
# =============================================================================

DEMO_TIMESTEP = FixedTimestep(1 / 30)
DEMO_TICKS = 120
DEMO_ENEMIES = 3

# Chase/circle demo tuning.
DEMO_IDLE_SCORE = 5.0
DEMO_CHASE_RANGE = 12.0
DEMO_CIRCLE_SCORE = 100.0
DEMO_CIRCLE_DISTANCE = 4.0

DEMO_PLAYER_SPEED = 10.0
DEMO_ENEMY_SPEED = 5.0
