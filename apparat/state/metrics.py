"""
The one place metric values are written.

Every delta from every subsystem goes through MetricLedger.apply(), which
clamps the result into [0, 100] and records what was asked for against
what actually happened. The record feeds the per-turn metric summary
event so changes stay auditable.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from .schema import MetricName, MetricSet, clamp


@dataclass
class MetricChange:
    """One clamped write."""
    metric: MetricName
    requested: int
    applied: int
    before: int
    after: int
    source: str

    @property
    def was_clamped(self) -> bool:
        return self.requested != self.applied


def quantize(delta: float, min_magnitude: float = 1.0) -> int:
    """
    Round a fractional drift to an integer step.

    Magnitudes below min_magnitude round to zero; everything else rounds
    half away from zero so small drifts do not all collapse to 0.
    """
    if abs(delta) < min_magnitude:
        return 0
    step = int(abs(delta) + 0.5)
    return step if delta > 0 else -step


@dataclass
class MetricLedger:
    """Clamp-and-record writer for a MetricSet."""
    metrics: MetricSet
    changes: list[MetricChange] = field(default_factory=list)

    def apply(self, metric: MetricName, delta: int, source: str) -> int:
        """
        Apply a delta, clamped to [0, 100].

        Returns the delta actually applied.
        """
        before = self.metrics.get(metric)
        after = clamp(before + delta)
        self.metrics.set(metric, after)
        applied = after - before
        if delta != 0:
            self.changes.append(MetricChange(
                metric=metric,
                requested=delta,
                applied=applied,
                before=before,
                after=after,
                source=source,
            ))
        return applied

    def apply_many(self, deltas: dict[MetricName, int], source: str) -> dict[MetricName, int]:
        """Apply several deltas in metric order. Returns applied deltas."""
        applied = {}
        for metric in MetricName:
            if metric in deltas:
                applied[metric] = self.apply(metric, deltas[metric], source)
        return applied

    def net_changes(self) -> dict[MetricName, int]:
        """Sum of applied deltas per metric, omitting metrics that net to zero."""
        totals: dict[MetricName, int] = {}
        for change in self.changes:
            totals[change.metric] = totals.get(change.metric, 0) + change.applied
        return {m: d for m, d in totals.items() if d != 0}

    def changes_from(self, source: str) -> list[MetricChange]:
        return [c for c in self.changes if c.source == source]
