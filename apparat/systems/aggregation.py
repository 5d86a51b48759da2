"""
Aggregation (phase 9): turn the raw outbox into what the caller sees.

Steps, in order:
1. Queued content candidates become events
2. Open, unpresented offers are presented once
3. Net metric movement becomes one summary event
4. Events sharing a dedup key collapse to the most severe one
5. Events are ordered by severity, then by emission
6. Events are grouped into notices per category

Subsystems never decide presentation order; this is the only place the
order is set.
"""

from __future__ import annotations

import logging

from ..state.schemas.event import Event, EventCategory, Severity
from ..state.schemas.turn_result import Notice
from .base import TurnContext
from .career import present_offers

logger = logging.getLogger(__name__)

NOTICE_HEADLINES: dict[EventCategory, str] = {
    EventCategory.METRIC: "The Nation",
    EventCategory.NPC: "People",
    EventCategory.AMBIENT: "Around the Country",
    EventCategory.POLITICAL: "Factions",
    EventCategory.INTERNATIONAL: "Abroad",
    EventCategory.REGIONAL: "The Regions",
    EventCategory.CAREER: "Your Career",
    EventCategory.ECONOMIC: "The Economy",
    EventCategory.CONTENT: "Developments",
}


def deduplicate(events: list[Event]) -> list[Event]:
    """
    Collapse events that share a dedup key.

    The most severe event of each key survives, in the position of the
    key's first event. Events without a key are never merged.
    """
    kept: list[Event] = []
    index_of: dict[str, int] = {}
    for event in events:
        if event.dedup_key is None:
            kept.append(event)
            continue
        if event.dedup_key not in index_of:
            index_of[event.dedup_key] = len(kept)
            kept.append(event)
            continue
        i = index_of[event.dedup_key]
        if event.severity.rank > kept[i].severity.rank:
            kept[i] = event
    return kept


def order_events(events: list[Event]) -> list[Event]:
    """Most severe first; emission order within a severity."""
    return [
        event for _, event in sorted(
            enumerate(events),
            key=lambda pair: (-pair[1].severity.rank, pair[0]),
        )
    ]


def build_notices(events: list[Event]) -> list[Notice]:
    """Group event summaries by category, keeping category order."""
    notices: dict[EventCategory, Notice] = {}
    for event in events:
        if not event.summary:
            continue
        notice = notices.get(event.category)
        if notice is None:
            notice = notices[event.category] = Notice(headline=NOTICE_HEADLINES[event.category])
        notice.details.append(event.summary)
        if event.severity.rank > notice.severity.rank:
            notice.severity = event.severity
    return [notices[c] for c in EventCategory if c in notices]


class AggregationSystem:
    """Phase 9: content intake, offer presentation, de-duplication, notices."""
    name = "aggregation"

    def run(self, ctx: TurnContext) -> None:
        self._drain_content(ctx)
        present_offers(ctx.world, ctx.outbox)
        self._summarize_metrics(ctx)

        raw = ctx.outbox.events
        events = order_events(deduplicate(raw))
        if len(events) < len(raw):
            logger.debug(f"Turn {ctx.turn}: merged {len(raw) - len(events)} duplicate events")
        ctx.outbox.replace(events)
        ctx.notices = build_notices(events)

        log = ctx.world.event_log
        log.extend(events)
        limit = ctx.config.event_log_limit
        if len(log) > limit:
            del log[: len(log) - limit]

    def _drain_content(self, ctx: TurnContext) -> None:
        pending = ctx.world.pending_content
        for candidate in pending:
            ctx.outbox.emit(
                candidate.category,
                candidate.event_type,
                candidate.summary,
                severity=candidate.severity,
                consequences=candidate.consequences,
                dedup_key=candidate.dedup_key,
                source="content",
            )
        if pending:
            logger.debug(f"Turn {ctx.turn}: drained {len(pending)} content candidates")
        ctx.world.pending_content = []

    def _summarize_metrics(self, ctx: TurnContext) -> None:
        net = ctx.ledger.net_changes()
        if not net:
            return
        clamped = sorted({c.metric.value for c in ctx.ledger.changes if c.was_clamped})
        ctx.outbox.emit(
            EventCategory.METRIC,
            "metric.summary",
            "",
            severity=Severity.MINOR,
            consequences={
                "net": {m.value: d for m, d in net.items()},
                "clamped": clamped,
            },
            dedup_key="metric.summary",
            source=self.name,
        )
