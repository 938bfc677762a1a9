"""Tests for the headless chase/circle demo and its CLI."""

from __future__ import annotations

import numpy as np
import pytest

from arbitra.__main__ import main
from arbitra.demo import Chase, ChaseWorld, Circle, Idle, format_debug_text
from arbitra.demo.chase import perp, try_normalize


@pytest.fixture
def world():
    world = ChaseWorld(enemies=1, consistency_bonus=0.0)
    world.players[0].position = np.zeros(2)
    yield world
    world.close()


def place_enemy(world: ChaseWorld, x: float, y: float) -> None:
    world.enemies[0].position = np.array([x, y])


@pytest.mark.parametrize(
    ("x", "expected"),
    [
        (3.0, Circle),  # inside circling distance
        (6.0, Chase),  # 12 - 6 beats idle's 5
        (8.0, Idle),  # 12 - 8 loses to idle's 5
    ],
)
def test_enemy_behavior_depends_on_distance(world, x: float, expected: type) -> None:
    place_enemy(world, x, 0.0)
    world.pipeline.run_tick()
    assert world.enemies[0].advisor.active_tag is expected


def test_chasing_enemy_moves_toward_player(world) -> None:
    place_enemy(world, 6.0, 0.0)
    world.pipeline.run_tick()
    assert world.enemies[0].position[0] < 6.0
    assert world.enemies[0].position[1] == pytest.approx(0.0)


def test_circling_direction_is_kept_while_circling(world) -> None:
    place_enemy(world, 3.0, 0.0)
    world.pipeline.run_tick()
    enemy = world.enemies[0]
    circle = enemy.advisor.get(Circle)
    assert circle is not None
    direction = circle.go_counter_clockwise

    for _ in range(20):
        world.pipeline.run_tick()
        assert enemy.advisor.get(Circle) is circle
        assert circle.go_counter_clockwise == direction

    # Circling keeps the enemy at roughly the same distance.
    assert float(np.linalg.norm(enemy.position)) == pytest.approx(3.0, abs=0.5)


def test_circle_key_is_the_player_and_input_tracks_it(world) -> None:
    place_enemy(world, 3.0, 0.0)
    world.pipeline.run_tick()
    circle = world.enemies[0].advisor.get(Circle)
    np.testing.assert_allclose(circle.vec_to_target, [-3.0, 0.0])
    assert world.enemies[0].advisor.active_key() == (Circle, (world.players[0].id,))


def test_debug_text_shows_identity_and_variant(world) -> None:
    place_enemy(world, 6.0, 0.0)
    world.pipeline.run_tick()
    text = world.enemies[0].debug_text
    assert text == format_debug_text(world.enemies[0])
    first, second = text.splitlines()
    assert first == "Chase(0,)"
    assert second.startswith("Chase(target=0")


def test_world_step_moves_player_and_runs_a_tick() -> None:
    world = ChaseWorld(enemies=3)
    try:
        reports = world.run(5)
    finally:
        world.close()
    assert [report.tick for report in reports] == [1, 2, 3, 4, 5]
    assert all(report.agents == 3 for report in reports)
    # Idle and Chase are always suggested, Circle only up close.
    assert all(report.candidates >= 6 for report in reports)
    assert not np.allclose(world.players[0].position, np.zeros(2))


def test_try_normalize_and_perp() -> None:
    assert try_normalize(np.zeros(2)) is None
    np.testing.assert_allclose(try_normalize(np.array([3.0, 4.0])), [0.6, 0.8])
    np.testing.assert_allclose(perp(np.array([1.0, 0.0])), [0.0, 1.0])


def test_cli_prints_debug_text_and_metrics(capsys: pytest.CaptureFixture) -> None:
    main(["--ticks", "4", "--every", "2", "--enemies", "2", "--seed", "7"])
    out = capsys.readouterr().out
    assert "--- tick 2" in out
    assert "--- tick 4" in out
    assert "[enemy-1]" in out
    assert "[enemy-2]" in out
    assert "arbitra.resolve_ms" in out


def test_cli_runs_with_thread_pool(capsys: pytest.CaptureFixture) -> None:
    main(["--ticks", "3", "--every", "3", "--workers", "2"])
    assert "--- tick 3" in capsys.readouterr().out
