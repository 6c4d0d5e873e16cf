from __future__ import annotations

from django.core.management.base import BaseCommand, CommandError

from protocol.models import Agent, Badge, Emblem, Lore, Timeline
from protocol.services import timelines as timeline_service

DEMO_TIMELINE_ID = "TL-DEMO-0001"
DEMO_ACCESS_CODE = "ECHO-ALPHA"
DEMO_EMBLEM = {"emblem_id": "EMB-DEMO-001", "name": "Vanguard Echo", "code": "NXS7QKR4D", "rarity": "RARE"}
DEMO_BADGE = {"badge_id": "BDG-DEMO-STABILIZER", "name": "Stabilizer", "rarity": "EPIC"}
DEMO_LORE = {"lore_id": "LORE-DEMO-ORIGIN", "title": "The First Signal", "category": "EVENT", "status": "PUBLISHED"}


def demo_entries() -> list[dict]:
    return [
        {
            "entry_id": "ENT-DEMO-1",
            "name": "Relay Station",
            "type": "DATA_NODE",
            "access_code": "RELAY",
            "content": "A dusty relay hums. Three glyphs flicker on the console.",
            "linked_fragment": ["A1", "A2", "A3"],
            "reward": "FRAGMENT",
            "dialogs": {"intro": ["Signal acquired."]},
            "sub_entries": [
                {
                    "entry_id": "ENT-DEMO-1A",
                    "name": "Relay Core",
                    "type": "ENIGMA",
                    "access_code": "CORE",
                    "content": "What keeps the Traveler's light burning?",
                    "solution": "HOPE",
                    "linked_fragment": ["B1", "B2", "B3"],
                    "linked_lore": [DEMO_LORE["lore_id"]],
                    "grant_keys": ["KEY-CORE"],
                    "reward": "FRAGMENT",
                },
            ],
        },
        {
            "entry_id": "ENT-DEMO-2",
            "name": "Firewall",
            "type": "FIREWALL",
            "access_code": "BREACH",
            "content": "Enter the override phrase.",
            "solution": "EYES UP",
            "linked_fragment": ["C1", "C2", "C3"],
            "required_keys": ["KEY-CORE"],
            "reward": "FRAGMENT",
        },
    ]


class Command(BaseCommand):
    help = "Create a demo emblem, badge, lore record and an OPEN timeline to play against."

    def add_arguments(self, parser) -> None:  # pragma: no cover - CLI wiring
        parser.add_argument("--founder", help="Bungie id of a founder agent to create alongside the demo data.")
        parser.add_argument("--agent", help="Bungie id of a regular agent to create alongside the demo data.")

    def handle(self, *args, **options) -> None:
        Emblem.objects.get_or_create(emblem_id=DEMO_EMBLEM["emblem_id"], defaults=DEMO_EMBLEM)
        Badge.objects.get_or_create(badge_id=DEMO_BADGE["badge_id"], defaults=DEMO_BADGE)
        Lore.objects.get_or_create(lore_id=DEMO_LORE["lore_id"], defaults=DEMO_LORE)

        for option, role in (("founder", Agent.ROLE_FOUNDER), ("agent", Agent.ROLE_AGENT)):
            bungie_id = options.get(option)
            if not bungie_id:
                continue
            agent, created = Agent.objects.get_or_create(
                bungie_id=bungie_id,
                defaults={"agent_name": f"{option.title()} {bungie_id}", "role": role},
            )
            verb = "Created" if created else "Found"
            self.stdout.write(self.style.SUCCESS(f"{verb} {agent.role.lower()} {agent.bungie_id}"))

        if Timeline.objects.filter(timeline_id=DEMO_TIMELINE_ID).exists():
            self.stdout.write(self.style.WARNING(f"{DEMO_TIMELINE_ID} already seeded"))
            return

        result = timeline_service.create_timeline(
            {
                "timeline_id": DEMO_TIMELINE_ID,
                "name": "Echoes of the Relay",
                "description": "A short demo chain: three sections, one nested enigma, one firewall.",
                "tier": 2,
                "status": Timeline.STATUS_OPEN,
                "emblem_ids": [DEMO_EMBLEM["emblem_id"]],
                "access_code": DEMO_ACCESS_CODE,
                "entries": demo_entries(),
                "rewards": {
                    "discord_role_id": "relay-warden",
                    "badge": DEMO_BADGE["badge_id"],
                    "emblem": [DEMO_EMBLEM["emblem_id"]],
                },
            }
        )
        if not result["success"]:
            raise CommandError(f"{result['message']}: {'; '.join(result.get('errors') or [])}")
        timeline = result["timeline"]
        self.stdout.write(
            self.style.SUCCESS(
                f"Seeded {timeline['timeline_id']} ({timeline['code']['format']}) with access code {DEMO_ACCESS_CODE}"
            )
        )
