"""Headless chase/circle demo built on the arbitration engine."""

from .chase import (
    ENEMY_BEHAVIOR,
    Chase,
    ChaseWorld,
    Circle,
    Enemy,
    Idle,
    Player,
    format_debug_text,
)

__all__ = [
    "ENEMY_BEHAVIOR",
    "Chase",
    "ChaseWorld",
    "Circle",
    "Enemy",
    "Idle",
    "Player",
    "format_debug_text",
]
