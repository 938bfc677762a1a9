#!/usr/bin/env python3
"""Benchmark propose + resolve throughput for many agents.

Each simulated tick every agent receives a fixed number of random
suggestions spread over a few variants and keys, then resolves. Reports the
per-tick wall time and how often agents switched identity.

Usage:
    python scripts/benchmark_resolve.py
    python scripts/benchmark_resolve.py --agents 5000 --suggestions 8
    python scripts/benchmark_resolve.py --workers 4
"""

# ruff: noqa: E402  # Allow path setup before importing project modules

from __future__ import annotations

import argparse
import sys
import time
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

import numpy as np

# Add the project root to Python path so running as a script works.
project_root = Path(__file__).resolve().parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from arbitra.behavior import (
    Advisor,
    BehaviorSet,
    input_field,
    key_field,
    state_field,
    variant,
)
from arbitra.pipeline import BehaviorPipeline


@variant
class Wait:
    pass


@variant
class Follow:
    target: int = key_field()
    distance: float = input_field()


@variant
class Guard:
    post: int = key_field()
    turns_on_post: int = state_field(default=0)


BENCH_BEHAVIOR = BehaviorSet("BenchBehavior", [Wait, Follow, Guard])


@dataclass(eq=False)
class BenchAgent:
    advisor: Advisor


def run_benchmark(
    *, num_agents: int, num_ticks: int, suggestions: int, workers: int | None, seed: int
) -> dict[str, float]:
    rng = np.random.default_rng(seed)
    agents = [
        BenchAgent(Advisor(BENCH_BEHAVIOR, label=f"bench-{i}"))
        for i in range(num_agents)
    ]

    def propose(batch: Sequence[BenchAgent]) -> None:
        scores = rng.random((len(batch), suggestions)) * 10.0
        keys = rng.integers(0, 4, size=(len(batch), suggestions))
        for agent, row, key_row in zip(batch, scores, keys, strict=True):
            agent.advisor.suggest(1.0, Wait())
            for i, (score, key) in enumerate(zip(row, key_row, strict=True)):
                if i % 2:
                    agent.advisor.suggest(float(score), Guard(post=int(key)))
                else:
                    agent.advisor.suggest(
                        float(score), Follow(target=int(key), distance=float(score))
                    )

    def guard(batch: Sequence[BenchAgent]) -> None:
        for agent in batch:
            post = agent.advisor.get(Guard)
            if post is not None:
                post.turns_on_post += 1

    with BehaviorPipeline(agents, max_workers=workers) as pipeline:
        pipeline.add_propose_system(propose)
        pipeline.add_act_system(guard)

        start = time.perf_counter()
        reports = pipeline.run(num_ticks)
        elapsed = time.perf_counter() - start

    switches = sum(report.switches for report in reports)
    return {
        "avg_tick_ms": elapsed / num_ticks * 1000,
        "resolves_per_second": num_agents * num_ticks / elapsed,
        "switch_rate": switches / (num_agents * num_ticks),
    }


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Arbitration throughput benchmark")
    parser.add_argument("--agents", type=int, default=1000, help="Number of agents")
    parser.add_argument("--ticks", type=int, default=200, help="Ticks to simulate")
    parser.add_argument(
        "--suggestions", type=int, default=4, help="Random suggestions per agent"
    )
    parser.add_argument(
        "--workers", type=int, default=None, help="Thread pool size (default: none)"
    )
    parser.add_argument("--seed", type=int, default=1, help="numpy RNG seed")
    args = parser.parse_args(argv)

    print("Arbitration Benchmark")
    print("=" * 40)
    print(
        f"{args.agents} agents, {args.ticks} ticks, "
        f"{args.suggestions + 1} suggestions/agent/tick"
    )
    results = run_benchmark(
        num_agents=args.agents,
        num_ticks=args.ticks,
        suggestions=args.suggestions,
        workers=args.workers,
        seed=args.seed,
    )
    print(f"  Tick time: {results['avg_tick_ms']:.3f}ms")
    print(f"  Resolves per second: {results['resolves_per_second']:.0f}")
    print(f"  Switch rate: {results['switch_rate'] * 100:.1f}%")


if __name__ == "__main__":
    main()
