from __future__ import annotations

from typing import Any

from protocol.models import Agent, Badge, Emblem, Lore, Timeline
from protocol.services import timelines as timeline_service

ACCESS_CODE = "OPEN-SESAME"


def sample_entries() -> list[dict[str, Any]]:
    return [
        {
            "entry_id": "E1",
            "name": "Relay",
            "type": "data_node",
            "access_code": "RELAY",
            "content": "Three glyphs flicker.",
            "linked_fragment": ["A1", "A2", "A3"],
            "sub_entries": [
                {
                    "entry_id": "E1A",
                    "name": "Relay Core",
                    "type": "enigma",
                    "access_code": "CORE",
                    "solution": "hope",
                    "linked_fragment": ["B1", "B2", "B3"],
                    "linked_lore": ["LORE-1"],
                    "grant_keys": ["KEY-1"],
                },
            ],
        },
        {
            "entry_id": "E2",
            "name": "Firewall",
            "type": "FIREWALL",
            "access_code": "BREACH",
            "solution": "EYES UP",
            "linked_fragment": ["C1", "C2", "C3"],
            "required_keys": ["KEY-1"],
        },
    ]


def make_agent(bungie_id: str = "4611686018467000001", **extra: Any) -> Agent:
    extra.setdefault("agent_name", f"Agent {bungie_id[-3:]}")
    return Agent.objects.create(bungie_id=bungie_id, **extra)


def make_timeline(**overrides: Any) -> Timeline:
    Emblem.objects.get_or_create(emblem_id="EMB-1", defaults={"name": "Echo", "code": "ABC-DEF-GHI"})
    Badge.objects.get_or_create(badge_id="BDG-1", defaults={"name": "Stabilizer"})
    Lore.objects.get_or_create(lore_id="LORE-1", defaults={"title": "First Signal"})
    payload: dict[str, Any] = {
        "timeline_id": "TL-TEST-1",
        "name": "Echoes",
        "description": "Test chain",
        "tier": 2,
        "status": "OPEN",
        "emblem_ids": ["EMB-1"],
        "access_code": ACCESS_CODE,
        "entries": sample_entries(),
        "rewards": {"discord_role_id": "warden", "badge": "BDG-1", "emblem": ["EMB-1"]},
    }
    payload.update(overrides)
    result = timeline_service.create_timeline(payload)
    assert result["success"], result
    return Timeline.objects.get(timeline_id=result["timeline"]["timeline_id"])
