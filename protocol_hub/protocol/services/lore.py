from __future__ import annotations

import logging
from typing import Iterable

from protocol.models import Agent, Lore, LoreUnlock

logger = logging.getLogger(__name__)


def unlock_lore_for_agent(lore_id: str, agent: Agent) -> bool:
    """Record that ``agent`` unlocked ``lore_id``; True only on the first unlock."""
    lore = Lore.objects.filter(lore_id=lore_id).first()
    if lore is None:
        logger.info("Lore %s not found, skipping unlock for agent %s", lore_id, agent.bungie_id)
        return False
    _, created = LoreUnlock.objects.get_or_create(lore=lore, agent=agent)
    if created:
        logger.info("Lore %s unlocked for agent %s", lore_id, agent.bungie_id)
    return created


def unlock_linked_lore(lore_ids: Iterable[str], agent: Agent) -> list[str]:
    unlocked: list[str] = []
    for lore_id in lore_ids:
        if lore_id in unlocked:
            continue
        if unlock_lore_for_agent(lore_id, agent):
            unlocked.append(lore_id)
    return unlocked
