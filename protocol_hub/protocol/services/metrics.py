from __future__ import annotations

import logging
from typing import Any

from django.conf import settings
from django.db import transaction

from protocol.models import AgentTimelineProgress, Timeline

logger = logging.getLogger(__name__)


def compute_activity_metrics(timeline: Timeline) -> dict[str, Any]:
    participants = list(timeline.participants.all())
    progress_rows = list(AgentTimelineProgress.objects.filter(timeline_id=timeline.timeline_id))
    completed_rows = [row for row in progress_rows if row.completed and row.completed_at]

    durations = [
        (row.completed_at - row.accessed_at).total_seconds()
        for row in completed_rows
        if row.accessed_at and row.completed_at >= row.accessed_at
    ]
    last_activity = max((p.last_activity_at for p in participants if p.last_activity_at), default=None)
    last_completed = max((row.completed_at for row in completed_rows), default=None)

    return {
        "participants": len(participants),
        "completed": len(completed_rows),
        "entries_resolved": sum(len(row.entries_resolved or []) for row in progress_rows),
        "last_activity_at": last_activity.isoformat() if last_activity else None,
        "last_completed_at": last_completed.isoformat() if last_completed else None,
        "avg_completion_seconds": round(sum(durations) / len(durations), 1) if durations else 0,
    }


def refresh_activity_metrics(timeline_pk: int) -> dict[str, Any] | None:
    timeline = Timeline.objects.filter(pk=timeline_pk).first()
    if timeline is None:
        logger.info("Timeline %s vanished before metrics refresh", timeline_pk)
        return None
    metrics = compute_activity_metrics(timeline)
    Timeline.objects.filter(pk=timeline_pk).update(activity_metrics=metrics)
    return metrics


def schedule_refresh(timeline: Timeline) -> None:
    """Recompute the timeline's activity metrics once the current transaction commits."""
    if not getattr(settings, "PROTOCOL_METRICS_ASYNC", True):
        transaction.on_commit(lambda: refresh_activity_metrics(timeline.pk))
        return

    from protocol.tasks import refresh_activity_metrics as refresh_task

    transaction.on_commit(lambda: refresh_task.delay(timeline.pk))
