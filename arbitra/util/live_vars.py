from __future__ import annotations

from collections.abc import Sequence
from contextlib import contextmanager, nullcontext, suppress
from dataclasses import dataclass
from time import perf_counter
from typing import NamedTuple

from .metrics import RollingStats


class MetricSpec(NamedTuple):
    """Definition for a metric to register in batch."""

    name: str
    description: str
    window: int = 100


@dataclass
class LiveVariable:
    """A named metric exposed for live inspection (CLI output, logs, tests)."""

    name: str
    description: str
    stats: RollingStats

    def record_value(self, value: float) -> None:
        self.stats.record(value)

    def summary(self) -> str:
        return self.stats.summary()


class LiveVariableRegistry:
    """Registry for every metric the engine records.

    When ``strict`` is ``True`` (the default), recording a metric that has not
    been registered raises immediately. Test fixtures that clear the registry
    set ``strict = False`` so timing helpers in engine code stay harmless.
    """

    def __init__(self) -> None:
        self._variables: dict[str, LiveVariable] = {}
        self.strict: bool = True

    def register_metric(
        self, name: str, description: str = "", window: int = 1000
    ) -> LiveVariable:
        if name in self._variables:
            raise ValueError(f"Live variable '{name}' already registered")
        live_var = LiveVariable(name, description, RollingStats(window))
        self._variables[name] = live_var
        return live_var

    def register_metrics(self, specs: Sequence[MetricSpec]) -> None:
        """Register every metric in ``specs`` that is not registered yet."""
        for spec in specs:
            if spec.name not in self._variables:
                self.register_metric(spec.name, spec.description, spec.window)

    def get_variable(self, name: str) -> LiveVariable | None:
        return self._variables.get(name)

    def get_all_variables(self) -> list[LiveVariable]:
        return sorted(self._variables.values(), key=lambda v: v.name)

    def record_metric(self, name: str, value: float) -> None:
        """Record a value to a registered metric.

        Raises:
            KeyError: If the metric name is not registered.
        """
        var = self._variables.get(name)
        if var is None:
            raise KeyError(f"Metric '{name}' is not registered")
        var.record_value(value)

    def record_metric_lenient(self, name: str, value: float) -> None:
        """Like ``record_metric`` but skips unknown names when not strict."""
        ctx = nullcontext() if self.strict else suppress(KeyError)
        with ctx:
            self.record_metric(name, value)


# Global registry instance used throughout the engine
live_variable_registry = LiveVariableRegistry()


# Works as both a context manager and a decorator:
#   with record_time_live_variable("arbitra.resolve_ms"): ...
#   @record_time_live_variable("arbitra.resolve_ms")
@contextmanager
def record_time_live_variable(metric_name: str):
    """Record elapsed wall-clock time (ms) to the named metric.

    In strict mode, raises ``KeyError`` if the metric is not registered. With
    ``strict`` off, unregistered metrics are silently skipped.
    """
    start = perf_counter()
    try:
        yield
    finally:
        elapsed_ms = (perf_counter() - start) * 1000
        live_variable_registry.record_metric_lenient(metric_name, elapsed_ms)
