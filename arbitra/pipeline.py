"""
Reference tick driver: the propose → resolve → act barrier pipeline.

Every tick runs three passes in strict order:

1. PROPOSE - every registered propose system runs. Systems receive the
   full agent list and call ``agent.advisor.suggest(...)``.
2. RESOLVE - every agent's advisor resolves exactly once.
3. ACT     - every registered act system runs and reads the published
   behaviors (``agent.advisor.get(Tag)`` or ``pipeline.query(Tag)``).

Each pass finishes completely before the next one starts. With
``max_workers`` set, the work inside a pass is spread over a thread pool and
the pass waits for every future before moving on; per-advisor locks make
concurrent suggestions to the same agent safe.
"""

from __future__ import annotations

import concurrent.futures
import logging
from collections.abc import Callable, Iterable, Iterator, Sequence
from dataclasses import dataclass
from enum import Enum, auto
from typing import Protocol

from arbitra import config
from arbitra.behavior.advisor import Advisor
from arbitra.behavior.resolver import Resolution, ResolutionOutcome
from arbitra.types import TickNumber
from arbitra.util.live_vars import (
    MetricSpec,
    live_variable_registry,
    record_time_live_variable,
)

logger = logging.getLogger(__name__)


class HasAdvisor(Protocol):
    """Anything the pipeline can drive: it just needs an advisor."""

    @property
    def advisor(self) -> Advisor: ...


type System[A] = Callable[[Sequence[A]], None]


class TickPhase(Enum):
    IDLE = auto()
    PROPOSE = auto()
    RESOLVE = auto()
    ACT = auto()


METRIC_SPECS = [
    MetricSpec(
        "arbitra.propose_ms", "Wall time of the propose pass", config.METRIC_SAMPLES
    ),
    MetricSpec(
        "arbitra.resolve_ms", "Wall time of the resolve pass", config.METRIC_SAMPLES
    ),
    MetricSpec("arbitra.act_ms", "Wall time of the act pass", config.METRIC_SAMPLES),
    MetricSpec(
        "arbitra.candidates_per_agent",
        "Suggestions buffered per agent at resolve time",
        config.METRIC_SAMPLES,
    ),
    MetricSpec(
        "arbitra.switches_per_tick",
        "Agents whose identity changed this tick",
        config.METRIC_SAMPLES,
    ),
]


@dataclass(slots=True)
class TickReport:
    """Summary of one completed tick."""

    tick: TickNumber
    agents: int = 0
    candidates: int = 0
    switches: int = 0
    continuations: int = 0
    kept: int = 0
    cleared: int = 0

    def tally(self, resolution: Resolution) -> None:
        match resolution.outcome:
            case ResolutionOutcome.SWITCH:
                self.switches += 1
            case ResolutionOutcome.CONTINUATION:
                self.continuations += 1
            case ResolutionOutcome.KEPT:
                self.kept += 1
            case ResolutionOutcome.CLEARED:
                self.cleared += 1


class BehaviorPipeline[A: HasAdvisor]:
    """Runs propose systems, resolves, then act systems, once per tick."""

    def __init__(
        self,
        agents: Iterable[A] = (),
        *,
        max_workers: int | None = config.PIPELINE_MAX_WORKERS,
    ) -> None:
        self._agents: list[A] = list(agents)
        self._propose_systems: list[System[A]] = []
        self._act_systems: list[System[A]] = []
        self._phase = TickPhase.IDLE
        self._tick = TickNumber(0)
        self._executor: concurrent.futures.ThreadPoolExecutor | None = None
        if max_workers is not None:
            self._executor = concurrent.futures.ThreadPoolExecutor(
                max_workers=max_workers, thread_name_prefix="arbitra"
            )
        live_variable_registry.register_metrics(METRIC_SPECS)

    def __enter__(self) -> BehaviorPipeline[A]:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        """Shut down the worker pool, if any."""
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    @property
    def agents(self) -> tuple[A, ...]:
        return tuple(self._agents)

    @property
    def current_phase(self) -> TickPhase:
        return self._phase

    @property
    def tick_count(self) -> TickNumber:
        return self._tick

    def add_agent(self, agent: A) -> None:
        self._require_idle("add an agent")
        self._agents.append(agent)

    def remove_agent(self, agent: A) -> None:
        self._require_idle("remove an agent")
        self._agents.remove(agent)

    def add_propose_system(self, system: System[A]) -> System[A]:
        """Register a propose-phase system. Usable as a decorator."""
        self._require_idle("add a propose system")
        self._propose_systems.append(system)
        return system

    def add_act_system(self, system: System[A]) -> System[A]:
        """Register an act-phase system. Usable as a decorator."""
        self._require_idle("add an act system")
        self._act_systems.append(system)
        return system

    def _require_idle(self, what: str) -> None:
        if self._phase is not TickPhase.IDLE:
            raise RuntimeError(f"Cannot {what} during the {self._phase.name} phase")

    # ------------------------------------------------------------------
    # Ticking
    # ------------------------------------------------------------------

    def run_tick(self) -> TickReport:
        """Run one full propose/resolve/act tick and return its summary."""
        self._require_idle("start a tick")
        self._tick = TickNumber(self._tick + 1)
        agents: Sequence[A] = tuple(self._agents)
        report = TickReport(tick=self._tick, agents=len(agents))
        logger.debug("tick %d: %d agents", self._tick, len(agents))

        try:
            self._phase = TickPhase.PROPOSE
            with record_time_live_variable("arbitra.propose_ms"):
                self._run_pass(
                    [_bind(system, agents) for system in self._propose_systems]
                )

            self._phase = TickPhase.RESOLVE
            with record_time_live_variable("arbitra.resolve_ms"):
                for agent in agents:
                    pending = agent.advisor.pending_count
                    report.candidates += pending
                    live_variable_registry.record_metric_lenient(
                        "arbitra.candidates_per_agent", pending
                    )
                resolutions = self._run_pass(
                    [agent.advisor.resolve for agent in agents]
                )
            for resolution in resolutions:
                report.tally(resolution)
            live_variable_registry.record_metric_lenient(
                "arbitra.switches_per_tick", report.switches
            )

            self._phase = TickPhase.ACT
            with record_time_live_variable("arbitra.act_ms"):
                self._run_pass([_bind(system, agents) for system in self._act_systems])
        except BaseException:
            # A failed propose or resolve pass can leave suggestions behind;
            # the next tick must start with every buffer empty.
            if self._phase in (TickPhase.PROPOSE, TickPhase.RESOLVE):
                logger.warning(
                    "tick %d aborted during %s; discarding pending suggestions",
                    self._tick,
                    self._phase.name,
                )
                for agent in agents:
                    agent.advisor.discard_pending()
            raise
        finally:
            self._phase = TickPhase.IDLE

        return report

    def run(self, ticks: int) -> list[TickReport]:
        return [self.run_tick() for _ in range(ticks)]

    def _run_pass[T](self, calls: Sequence[Callable[[], T]]) -> list[T]:
        """Run ``calls`` and return their results once every one has finished.

        Raises the first failure (in submission order) only after the whole
        pass has completed.
        """
        if self._executor is None:
            return [call() for call in calls]
        futures = [self._executor.submit(call) for call in calls]
        concurrent.futures.wait(futures)
        return [future.result() for future in futures]

    # ------------------------------------------------------------------
    # Publication queries
    # ------------------------------------------------------------------

    def query[V](self, tag: type[V]) -> Iterator[tuple[A, V]]:
        """Yield ``(agent, behavior)`` for every agent where ``tag`` is present."""
        for agent in self._agents:
            behavior = agent.advisor.get(tag)
            if behavior is not None:
                yield agent, behavior


def _bind[A](system: System[A], agents: Sequence[A]) -> Callable[[], None]:
    return lambda: system(agents)
