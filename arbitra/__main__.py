"""Run the headless chase/circle demo and print each enemy's debug text."""

from __future__ import annotations

import argparse
import logging

from . import config
from .demo import ChaseWorld
from .util import rng
from .util.live_vars import live_variable_registry


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="arbitra", description="Headless behavior arbitration demo"
    )
    parser.add_argument(
        "--ticks", type=int, default=config.DEMO_TICKS, help="Ticks to simulate"
    )
    parser.add_argument(
        "--enemies", type=int, default=config.DEMO_ENEMIES, help="Number of enemies"
    )
    parser.add_argument(
        "--seed", type=str, default=config.RANDOM_SEED, help="Master RNG seed"
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=config.PIPELINE_MAX_WORKERS,
        help="Thread pool size for each pass (default: sequential)",
    )
    parser.add_argument(
        "--every", type=int, default=10, help="Print debug text every N ticks"
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(levelname)s %(name)s: %(message)s",
    )
    rng.init(args.seed)

    world = ChaseWorld(args.enemies, max_workers=args.workers)
    try:
        for _ in range(args.ticks):
            report = world.step()
            if args.every > 0 and report.tick % args.every == 0:
                print(
                    f"--- tick {report.tick}: {report.switches} switch(es), "
                    f"{report.continuations} continuation(s)"
                )
                for enemy in world.enemies:
                    print(f"[{enemy.advisor.label}]")
                    print(enemy.debug_text)
    finally:
        world.close()

    print("--- metrics")
    for var in live_variable_registry.get_all_variables():
        print(f"{var.name}: {var.summary()}")


if __name__ == "__main__":
    main()
