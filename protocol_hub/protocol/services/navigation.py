"""Breadcrumb tracking for where an agent currently is (root, timeline, entry)."""
from __future__ import annotations

from typing import Any, Mapping

from django.utils import timezone

from protocol.models import Agent

NAVIGATION = "NAVIGATION"

ACTION_ROOT = "ROOT"
ACTION_BACK_TO_TIMELINE = "BACK_TO_TIMELINE"
ACTION_BACK_TO_ROOT = "BACK_TO_ROOT"
ACTION_ALREADY_AT_ROOT = "ALREADY_AT_ROOT"


def update_localization(agent_id: int, timeline_id: str | None, entry_id: str | None) -> None:
    now = timezone.now()
    Agent.objects.filter(pk=agent_id).update(
        current_timeline_id=timeline_id,
        current_timeline_entry_id=entry_id,
        localization_synced_at=now,
        last_activity_at=now,
    )


def _result(action: str, message: str, success: bool = True) -> dict[str, Any]:
    return {"success": success, "type": NAVIGATION, "action": action, "message": message}


def go_home(agent_id: int) -> dict[str, Any]:
    update_localization(agent_id, None, None)
    return _result(ACTION_ROOT, "Back to dashboard")


def go_back(agent_id: int, context: Mapping[str, Any] | None = None) -> dict[str, Any]:
    context = context or {}
    if context.get("entry_id"):
        Agent.objects.filter(pk=agent_id).update(
            current_timeline_entry_id=None,
            localization_synced_at=timezone.now(),
        )
        return _result(ACTION_BACK_TO_TIMELINE, "Back to timeline")
    if context.get("timeline_id"):
        update_localization(agent_id, None, None)
        return _result(ACTION_BACK_TO_ROOT, "Back to dashboard")
    return _result(ACTION_ALREADY_AT_ROOT, "You are already at the dashboard", success=False)
