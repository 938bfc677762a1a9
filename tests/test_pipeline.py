"""Tests for the propose/resolve/act tick pipeline."""

from __future__ import annotations

from collections.abc import Sequence

import pytest

from arbitra.pipeline import BehaviorPipeline, TickPhase
from arbitra.util.live_vars import live_variable_registry
from tests.helpers import Chase, Circle, DummyAgent, Idle


def make_agents(*names: str) -> list[DummyAgent]:
    return [DummyAgent(name) for name in names]


def test_phases_run_in_order_with_resolve_between() -> None:
    agents = make_agents("a", "b")
    pipeline = BehaviorPipeline(agents)
    log: list[tuple[str, TickPhase, int]] = []

    def propose(batch: Sequence[DummyAgent]) -> None:
        for agent in batch:
            log.append(("propose", pipeline.current_phase, agent.advisor.pending_count))
            agent.advisor.suggest(1.0, Idle())

    def act(batch: Sequence[DummyAgent]) -> None:
        for agent in batch:
            log.append(("act", pipeline.current_phase, agent.advisor.pending_count))
            assert agent.advisor.is_active(Idle)

    pipeline.add_propose_system(propose)
    pipeline.add_act_system(act)
    pipeline.run_tick()

    assert log == [
        ("propose", TickPhase.PROPOSE, 0),
        ("propose", TickPhase.PROPOSE, 0),
        ("act", TickPhase.ACT, 0),
        ("act", TickPhase.ACT, 0),
    ]
    assert pipeline.current_phase is TickPhase.IDLE


def test_every_propose_system_finishes_before_any_resolve() -> None:
    agent = DummyAgent("a")
    pipeline = BehaviorPipeline([agent])

    @pipeline.add_propose_system
    def idle(batch: Sequence[DummyAgent]) -> None:
        for a in batch:
            a.advisor.suggest(5.0, Idle())

    @pipeline.add_propose_system
    def chase(batch: Sequence[DummyAgent]) -> None:
        for a in batch:
            a.advisor.suggest(9.0, Chase(target="E7", distance=1.0))

    report = pipeline.run_tick()

    assert agent.advisor.is_active(Chase)
    assert report.candidates == 2
    assert report.switches == 1


def test_tick_report_counts_outcomes() -> None:
    agents = make_agents("steady", "fickle", "silent")
    pipeline = BehaviorPipeline(agents)
    targets = iter(["A", "B"])

    @pipeline.add_propose_system
    def propose(batch: Sequence[DummyAgent]) -> None:
        steady, fickle, _silent = batch
        steady.advisor.suggest(1.0, Idle())
        fickle.advisor.suggest(1.0, Chase(target=next(targets), distance=1.0))

    first = pipeline.run_tick()
    second = pipeline.run_tick()

    assert (first.tick, first.switches, first.continuations) == (1, 2, 0)
    assert (second.tick, second.switches, second.continuations) == (2, 1, 1)
    assert second.agents == 3
    assert second.candidates == 2
    assert pipeline.tick_count == 2


def test_query_yields_agents_with_tag_present() -> None:
    agents = make_agents("a", "b", "c")
    pipeline = BehaviorPipeline(agents)

    @pipeline.add_propose_system
    def propose(batch: Sequence[DummyAgent]) -> None:
        for index, agent in enumerate(batch):
            if index == 1:
                agent.advisor.suggest(100.0, Circle(target="E7", distance=3.0))
            agent.advisor.suggest(5.0, Idle())

    pipeline.run_tick()

    circling = list(pipeline.query(Circle))
    assert [(agent.name, circle.target) for agent, circle in circling] == [("b", "E7")]
    assert [agent.name for agent, _ in pipeline.query(Idle)] == ["a", "c"]
    assert list(pipeline.query(Chase)) == []


def test_registration_during_a_tick_is_rejected() -> None:
    pipeline = BehaviorPipeline(make_agents("a"))

    @pipeline.add_propose_system
    def sneaky(batch: Sequence[DummyAgent]) -> None:
        pipeline.add_act_system(lambda _batch: None)

    with pytest.raises(RuntimeError, match="PROPOSE"):
        pipeline.run_tick()
    assert pipeline.current_phase is TickPhase.IDLE


def test_failing_system_propagates_and_resets_phase() -> None:
    pipeline = BehaviorPipeline(make_agents("a"))

    @pipeline.add_act_system
    def broken(batch: Sequence[DummyAgent]) -> None:
        raise ZeroDivisionError

    with pytest.raises(ZeroDivisionError):
        pipeline.run_tick()
    assert pipeline.current_phase is TickPhase.IDLE
    assert pipeline.agents[0].advisor.pending_count == 0


def test_failed_propose_pass_does_not_leak_into_next_tick() -> None:
    agent = DummyAgent("a")
    pipeline = BehaviorPipeline([agent])
    ticks = iter([1, 2])

    @pipeline.add_propose_system
    def flaky(batch: Sequence[DummyAgent]) -> None:
        for a in batch:
            if next(ticks) == 1:
                a.advisor.suggest(50.0, Circle(target="stale", distance=1.0))
                raise ZeroDivisionError
            a.advisor.suggest(1.0, Idle())

    with pytest.raises(ZeroDivisionError):
        pipeline.run_tick()
    assert agent.advisor.pending_count == 0
    assert agent.advisor.active is None

    report = pipeline.run_tick()
    assert report.candidates == 1
    assert agent.advisor.is_active(Idle)


def test_discarding_after_failure_keeps_active_behavior() -> None:
    agent = DummyAgent("a")
    pipeline = BehaviorPipeline([agent])
    fail = False

    @pipeline.add_propose_system
    def propose(batch: Sequence[DummyAgent]) -> None:
        for a in batch:
            a.advisor.suggest(1.0, Chase(target="E7", distance=1.0))
            if fail:
                raise ZeroDivisionError

    pipeline.run_tick()
    fail = True
    with pytest.raises(ZeroDivisionError):
        pipeline.run_tick()

    assert agent.advisor.pending_count == 0
    assert agent.advisor.active_key() == (Chase, ("E7",))


def test_add_and_remove_agents_between_ticks() -> None:
    first, second = make_agents("a", "b")
    pipeline = BehaviorPipeline([first])
    pipeline.add_agent(second)
    assert pipeline.agents == (first, second)
    pipeline.remove_agent(first)
    assert pipeline.agents == (second,)


def _scripted_world(max_workers: int | None) -> list[tuple[type | None, tuple]]:
    agents = make_agents(*(f"agent-{n}" for n in range(12)))

    def idle(batch: Sequence[DummyAgent]) -> None:
        for agent in batch:
            agent.advisor.suggest(5.0, Idle())

    def chase(batch: Sequence[DummyAgent]) -> None:
        for index, agent in enumerate(batch):
            agent.advisor.suggest(
                index % 7 + 0.5, Chase(target=f"T{index % 3}", distance=1.0)
            )

    def circle(batch: Sequence[DummyAgent]) -> None:
        for index, agent in enumerate(batch):
            if index % 4 == 0:
                agent.advisor.suggest(
                    100.0, Circle(target="T0", distance=1.0, counter_clockwise=True)
                )

    with BehaviorPipeline(agents, max_workers=max_workers) as pipeline:
        for system in (idle, chase, circle):
            pipeline.add_propose_system(system)
        pipeline.run(3)

    results = []
    for agent in agents:
        active_key = agent.advisor.active_key()
        results.append(active_key if active_key is not None else (None, ()))
    return results


def test_thread_pool_matches_sequential_results() -> None:
    assert _scripted_world(max_workers=4) == _scripted_world(max_workers=None)


def test_pipeline_registers_and_records_metrics() -> None:
    pipeline = BehaviorPipeline(make_agents("a", "b"))

    @pipeline.add_propose_system
    def propose(batch: Sequence[DummyAgent]) -> None:
        for agent in batch:
            agent.advisor.suggest(1.0, Idle())

    pipeline.run(3)

    resolve_ms = live_variable_registry.get_variable("arbitra.resolve_ms")
    candidates = live_variable_registry.get_variable("arbitra.candidates_per_agent")
    switches = live_variable_registry.get_variable("arbitra.switches_per_tick")
    assert resolve_ms is not None
    assert resolve_ms.stats.sample_count == 3
    assert candidates.stats.sample_count == 6
    assert switches.stats.mean == pytest.approx(2 / 3)


def test_second_pipeline_reuses_registered_metrics() -> None:
    BehaviorPipeline()
    BehaviorPipeline()
    names = [var.name for var in live_variable_registry.get_all_variables()]
    assert names.count("arbitra.act_ms") == 1
