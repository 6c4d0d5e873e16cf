from __future__ import annotations

from typing import Any, Dict

from celery import shared_task
from celery.utils.log import get_task_logger

from protocol.services import metrics as metrics_service

logger = get_task_logger(__name__)


@shared_task(name="protocol.tasks.refresh_activity_metrics", ignore_result=True)
def refresh_activity_metrics(timeline_pk: int) -> Dict[str, Any]:
    metrics = metrics_service.refresh_activity_metrics(timeline_pk)
    if metrics is None:
        return {"status": "missing", "timeline": timeline_pk}
    logger.info(
        "Refreshed metrics for timeline %s: %s participants, %s completed",
        timeline_pk,
        metrics["participants"],
        metrics["completed"],
    )
    return {"status": "ok", "timeline": timeline_pk, "metrics": metrics}
