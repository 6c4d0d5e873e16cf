"""Completion checks and the rewards handed out when a timeline is stabilized."""
from __future__ import annotations

import logging
from typing import Any

from django.utils import timezone

from protocol.models import Agent, AgentBadge, AgentTimelineProgress, Badge, Timeline
from protocol.services import codes

logger = logging.getLogger(__name__)


def grant_role(agent: Agent, role_id: str) -> str | None:
    """Add ``role_id`` (upper-cased) to the agent's roles; None when already held."""
    role = (role_id or "").strip().upper()
    if not role:
        return None
    roles = list(agent.roles or [])
    if role in roles:
        return None
    roles.append(role)
    agent.roles = roles
    agent.save(update_fields=["roles", "updated_at"])
    return role


def grant_badge(agent: Agent, badge_id: str) -> Badge | None:
    """Grant the badge with business id ``badge_id``; None when unknown or already held."""
    badge = Badge.objects.filter(badge_id=badge_id).first()
    if badge is None:
        logger.warning("Reward badge %s not found; nothing granted to %s", badge_id, agent.bungie_id)
        return None
    _, created = AgentBadge.objects.get_or_create(agent=agent, badge=badge)
    return badge if created else None


def _grant_rewards(agent: Agent, timeline: Timeline) -> dict[str, list[str]]:
    rewards = timeline.rewards or {}
    given: dict[str, list[str]] = {"roles": [], "badges": [], "emblems": []}
    if rewards.get("discord_role_id"):
        role = grant_role(agent, rewards["discord_role_id"])
        if role:
            given["roles"].append(role)
    if rewards.get("badge"):
        badge = grant_badge(agent, rewards["badge"])
        if badge is not None:
            given["badges"].append(badge.name)
    if rewards.get("emblem"):
        given["emblems"] = list(rewards["emblem"])
    return given


def _stabilize(timeline: Timeline, agent: Agent, when) -> None:
    if timeline.stabilized_at is not None:
        return
    timeline.status = Timeline.STATUS_STABILIZED
    timeline.winner_type = Timeline.WINNER_AGENT
    timeline.winner_agent_id = agent.bungie_id
    timeline.winner_team_id = ""
    timeline.stabilized_at = when
    timeline.save(
        update_fields=["status", "winner_type", "winner_agent_id", "winner_team_id", "stabilized_at", "updated_at"]
    )
    logger.info("Timeline %s stabilized by agent %s", timeline.timeline_id, agent.bungie_id)


def check_and_apply_completion(
    agent: Agent,
    timeline: Timeline,
    progress: AgentTimelineProgress,
) -> dict[str, Any]:
    """Evaluate ``progress`` against the timeline's pattern.

    Marks ``progress`` completed in memory (the caller persists it), grants the
    timeline rewards and stabilizes the timeline the first time every fragment
    is held. Progress that is already completed returns without touching
    anything, so replayed requests never grant rewards twice.
    """
    total = codes.count_fragments(timeline.pattern)
    found = codes.count_collected(timeline.pattern, progress.fragments_found)
    percent = codes.completion_percent(found, total)

    if progress.completed:
        return {"completed": True, "just_completed": False, "progress": 100}

    if total > 0 and found >= total:
        now = timezone.now()
        progress.completed = True
        progress.completed_at = now
        rewards_given = _grant_rewards(agent, timeline)
        _stabilize(timeline, agent, now)
        logger.info(
            "Agent %s completed %s; rewards %s",
            agent.bungie_id,
            timeline.timeline_id,
            rewards_given,
        )
        return {"completed": True, "just_completed": True, "progress": 100, "rewards_given": rewards_given}

    return {"completed": False, "just_completed": False, "progress": percent}
