"""Free-text interaction routing for agents exploring timelines.

A single input box serves three actions. With both a timeline and an entry in
context the input is a solution attempt for that entry. With only a timeline
the input is first tried as an entry access code inside that timeline, and on
a miss it is retried as a timeline access code. Without context it is always a
timeline access code.
"""
from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

from django.db import transaction
from django.utils import timezone

from protocol.models import Agent, AgentTimelineProgress, Timeline, TimelineParticipant
from protocol.services import metrics as metrics_service
from protocol.services.completion import check_and_apply_completion
from protocol.services.entries import find_by_access_code, find_by_id, parse_entries
from protocol.services.lore import unlock_linked_lore
from protocol.services.navigation import update_localization
from protocol.services.timelines import timeline_summary

logger = logging.getLogger(__name__)

TIMELINE_ACCESS = "TIMELINE_ACCESS"
ENTRY_ACCESS = "ENTRY_ACCESS"
ENTRY_SOLVED = "ENTRY_SOLVED"

COMPLETION_MESSAGE = "TIMELINE COMPLETED! Congratulations Agent."


def _failure(message: str) -> dict[str, Any]:
    return {"success": False, "message": message}


def _merge(existing: list[str] | None, incoming: Iterable[str]) -> list[str]:
    merged = list(existing or [])
    for item in incoming:
        if item not in merged:
            merged.append(item)
    return merged


def process_interaction(agent_id: int, input: str, context: Mapping[str, Any] | None = None) -> dict[str, Any]:
    text = (input or "").strip()
    context = context or {}
    timeline_id = context.get("timeline_id")
    entry_id = context.get("entry_id")

    if timeline_id and entry_id:
        return handle_entry_solution(agent_id, timeline_id, entry_id, text)

    if timeline_id:
        result = handle_entry_access(agent_id, timeline_id, text)
        if result["success"]:
            return result

    return handle_timeline_access(agent_id, text)


def handle_timeline_access(agent_id: int, access_code: str) -> dict[str, Any]:
    timeline = None
    if access_code:
        timeline = Timeline.objects.filter(status=Timeline.STATUS_OPEN, access_code=access_code).first()
    if timeline is None:
        return _failure("Invalid code or unknown command")

    agent = Agent.objects.filter(pk=agent_id).first()
    if agent is None:
        return _failure("Agent not found")

    with transaction.atomic():
        progress, created = AgentTimelineProgress.objects.get_or_create(
            agent=agent,
            timeline=timeline,
            defaults={"title": timeline.name},
        )
        if created:
            TimelineParticipant.objects.get_or_create(timeline=timeline, agent=agent)
            metrics_service.schedule_refresh(timeline)
        update_localization(agent.pk, timeline.timeline_id, None)

    if created:
        logger.info("Agent %s joined timeline %s", agent.bungie_id, timeline.timeline_id)
        message = "Access granted. Welcome to the timeline."
    else:
        message = "Connection to the timeline established"
    return {
        "success": True,
        "type": TIMELINE_ACCESS,
        "message": message,
        "data": {
            "timeline": timeline_summary(timeline),
            "progress": progress.as_dict(),
        },
    }


def handle_entry_access(agent_id: int, timeline_id: str, access_code: str) -> dict[str, Any]:
    timeline = Timeline.objects.filter(timeline_id=timeline_id, status=Timeline.STATUS_OPEN).first()
    if timeline is None:
        return _failure("Timeline not found or locked")

    entry = find_by_access_code(parse_entries(timeline.entries), access_code)
    if entry is None:
        return _failure("Entry not found")

    update_localization(agent_id, timeline_id, entry.entry_id)
    return {
        "success": True,
        "type": ENTRY_ACCESS,
        "message": "Entry located",
        "data": {"entry": entry.summary()},
    }


def handle_entry_solution(agent_id: int, timeline_id: str, entry_id: str, attempt: str) -> dict[str, Any]:
    # Lock order: timeline row, then agent, then progress.
    with transaction.atomic():
        timeline = (
            Timeline.objects.select_for_update()
            .filter(timeline_id=timeline_id, status=Timeline.STATUS_OPEN)
            .first()
        )
        if timeline is None:
            return _failure("Timeline not found or locked")

        entry = find_by_id(parse_entries(timeline.entries), entry_id)
        if entry is None:
            return _failure("Entry not found")
        if not entry.accepts(attempt):
            return _failure("Incorrect solution")

        agent = Agent.objects.select_for_update().filter(pk=agent_id).first()
        if agent is None:
            return _failure("Agent not found")

        progress = (
            AgentTimelineProgress.objects.select_for_update()
            .filter(agent=agent, timeline_id=timeline_id)
            .first()
        )
        if progress is None:
            return _failure("Access to timeline not authorized")
        if entry.entry_id in (progress.entries_resolved or []):
            return _failure("Already solved")

        now = timezone.now()
        progress.fragments_found = _merge(progress.fragments_found, entry.linked_fragment)
        progress.keys_found = _merge(progress.keys_found, entry.grant_keys)
        lore_unlocked = unlock_linked_lore(entry.linked_lore, agent) if entry.linked_lore else []
        progress.entries_resolved = _merge(progress.entries_resolved, [entry.entry_id])
        progress.last_updated_at = now

        completion = check_and_apply_completion(agent, timeline, progress)
        progress.save()
        Agent.objects.filter(pk=agent.pk).update(last_activity_at=now)

        TimelineParticipant.objects.filter(timeline_id=timeline_id, agent=agent).update(
            progress=completion["progress"],
            fragments_found=list(progress.fragments_found),
            keys_found=list(progress.keys_found),
            last_activity_at=now,
            completed=progress.completed,
        )
        metrics_service.schedule_refresh(timeline)

    logger.info(
        "Agent %s resolved %s in %s (%s%%)",
        agent.bungie_id,
        entry.entry_id,
        timeline_id,
        completion["progress"],
    )
    return {
        "success": True,
        "type": ENTRY_SOLVED,
        "message": "Entry validated!",
        "data": {
            "reward": {
                "fragments": list(entry.linked_fragment),
                "keys": list(entry.grant_keys),
                "lore_unlocked": lore_unlocked,
            },
            "progress": completion["progress"],
            "completion": {
                "message": COMPLETION_MESSAGE,
                "rewards": completion["rewards_given"],
            }
            if completion["just_completed"]
            else None,
        },
    }
