"""
Enemies that idle, chase the player, or circle around them.

Three evaluators feed every enemy's advisor each tick:

    enemies_idle                      Idle at a flat 5.0
    enemies_detect_player             Chase at 12 - distance
    enemies_in_distance_for_circling  Circle at 100.0 when closer than 4

Circle carries one piece of state, the direction to circle in. Each Circle
suggestion proposes a random direction, but that proposal only matters when
an enemy *starts* circling; while it keeps circling the same player the
stored direction is kept, so enemies do not jitter back and forth.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass, field

import numpy as np

from arbitra import config
from arbitra.behavior import (
    Advisor,
    BehaviorSet,
    input_field,
    key_field,
    state_field,
    variant,
)
from arbitra.pipeline import BehaviorPipeline, TickReport
from arbitra.types import AgentId, FixedTimestep
from arbitra.util import rng

_rng = rng.get("demo.chase")

_EPSILON = 1e-6

# Radius of the scripted loop the player walks around the origin.
_PLAYER_ORBIT_RADIUS = 6.0


@variant
class Idle:
    pass


@variant
class Chase:
    target: AgentId = key_field()
    vec_to_target: np.ndarray = input_field()


@variant
class Circle:
    target: AgentId = key_field()
    vec_to_target: np.ndarray = input_field()
    go_counter_clockwise: bool = state_field(default=False)


ENEMY_BEHAVIOR = BehaviorSet("EnemyBehavior", [Idle, Chase, Circle])


@dataclass(eq=False)
class Player:
    id: AgentId
    position: np.ndarray


@dataclass(eq=False)
class Enemy:
    id: AgentId
    position: np.ndarray
    advisor: Advisor
    debug_text: str = field(default="")


def try_normalize(vec: np.ndarray) -> np.ndarray | None:
    length = float(np.linalg.norm(vec))
    if length < _EPSILON or not math.isfinite(length):
        return None
    return vec / length


def perp(vec: np.ndarray) -> np.ndarray:
    """Rotate a 2D vector by 90 degrees counter-clockwise."""
    return np.array([-vec[1], vec[0]])


def format_debug_text(enemy: Enemy) -> str:
    """Active identity on the first line, then the present variant."""
    lines = []
    active_key = enemy.advisor.active_key()
    if active_key is not None:
        tag, key = active_key
        lines.append(f"{tag.__name__}{key!r}")
    for tag in ENEMY_BEHAVIOR:
        behavior = enemy.advisor.get(tag)
        if behavior is not None:
            lines.append(repr(behavior))
    return "\n".join(lines)


class ChaseWorld:
    """A player walking a loop and a handful of enemies reacting to them."""

    def __init__(
        self,
        enemies: int = config.DEMO_ENEMIES,
        *,
        timestep: FixedTimestep = config.DEMO_TIMESTEP,
        consistency_bonus: float = 2.0,
        max_workers: int | None = config.PIPELINE_MAX_WORKERS,
    ) -> None:
        self.timestep = timestep
        self.elapsed = 0.0
        self.players = [Player(AgentId(0), np.zeros(2))]
        self.enemies = [
            Enemy(
                AgentId(index + 1),
                self._spawn_position(index),
                Advisor(ENEMY_BEHAVIOR, consistency_bonus, label=f"enemy-{index + 1}"),
            )
            for index in range(enemies)
        ]

        self.pipeline: BehaviorPipeline[Enemy] = BehaviorPipeline(
            self.enemies, max_workers=max_workers
        )
        self.pipeline.add_propose_system(self.enemies_idle)
        self.pipeline.add_propose_system(self.enemies_detect_player)
        self.pipeline.add_propose_system(self.enemies_in_distance_for_circling)
        self.pipeline.add_act_system(self.enemies_follow_player)
        self.pipeline.add_act_system(self.enemies_circle_player)
        self.pipeline.add_act_system(self.update_enemies_debug_text)

    @staticmethod
    def _spawn_position(index: int) -> np.ndarray:
        # First enemy always spawns at a fixed point.
        if index == 0:
            return np.array([-5.0, 5.0])
        return np.array([_rng.uniform(-10.0, 10.0), _rng.uniform(-10.0, 10.0)])

    def step(self) -> TickReport:
        self.move_player()
        return self.pipeline.run_tick()

    def run(self, ticks: int) -> list[TickReport]:
        return [self.step() for _ in range(ticks)]

    def close(self) -> None:
        self.pipeline.close()

    def move_player(self) -> None:
        self.elapsed += self.timestep
        angle = self.elapsed * config.DEMO_PLAYER_SPEED / _PLAYER_ORBIT_RADIUS
        for player in self.players:
            player.position = _PLAYER_ORBIT_RADIUS * np.array(
                [math.cos(angle), math.sin(angle)]
            )

    # ------------------------------------------------------------------
    # Propose systems
    # ------------------------------------------------------------------

    def enemies_idle(self, enemies: Sequence[Enemy]) -> None:
        for enemy in enemies:
            enemy.advisor.suggest(config.DEMO_IDLE_SCORE, Idle())

    def enemies_detect_player(self, enemies: Sequence[Enemy]) -> None:
        for enemy in enemies:
            for player in self.players:
                vec_to_player = player.position - enemy.position
                enemy.advisor.suggest(
                    config.DEMO_CHASE_RANGE - float(np.linalg.norm(vec_to_player)),
                    Chase(target=player.id, vec_to_target=vec_to_player),
                )

    def enemies_in_distance_for_circling(self, enemies: Sequence[Enemy]) -> None:
        for enemy in enemies:
            for player in self.players:
                vec_to_player = player.position - enemy.position
                if np.linalg.norm(vec_to_player) < config.DEMO_CIRCLE_DISTANCE:
                    enemy.advisor.suggest(
                        config.DEMO_CIRCLE_SCORE,
                        Circle(
                            target=player.id,
                            vec_to_target=vec_to_player,
                            go_counter_clockwise=_rng.coin(),
                        ),
                    )

    # ------------------------------------------------------------------
    # Act systems
    # ------------------------------------------------------------------

    def enemies_follow_player(self, enemies: Sequence[Enemy]) -> None:
        for enemy in enemies:
            chase = enemy.advisor.get(Chase)
            if chase is None:
                continue
            direction = try_normalize(chase.vec_to_target)
            if direction is None:
                continue
            enemy.position = (
                enemy.position + config.DEMO_ENEMY_SPEED * self.timestep * direction
            )

    def enemies_circle_player(self, enemies: Sequence[Enemy]) -> None:
        for enemy in enemies:
            circle = enemy.advisor.get(Circle)
            if circle is None:
                continue
            direction = try_normalize(circle.vec_to_target)
            if direction is None:
                continue
            if circle.go_counter_clockwise:
                direction = perp(direction)
            else:
                direction = -perp(direction)
            enemy.position = (
                enemy.position - config.DEMO_ENEMY_SPEED * self.timestep * direction
            )

    def update_enemies_debug_text(self, enemies: Sequence[Enemy]) -> None:
        for enemy in enemies:
            enemy.debug_text = format_debug_text(enemy)
