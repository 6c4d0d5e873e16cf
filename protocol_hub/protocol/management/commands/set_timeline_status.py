from __future__ import annotations

from django.core.management.base import BaseCommand, CommandError

from protocol.models import Timeline
from protocol.services import timelines as timeline_service


class Command(BaseCommand):
    help = "Move a timeline to another status (for example DRAFT -> OPEN)."

    def add_arguments(self, parser) -> None:  # pragma: no cover - CLI wiring
        parser.add_argument("timeline_id", help="Business id of the timeline.")
        parser.add_argument(
            "status",
            type=str.upper,
            choices=[value for value, _ in Timeline.STATUS_CHOICES],
            help="Target status.",
        )

    def handle(self, *args, **options) -> None:
        timeline_id = options["timeline_id"]
        result = timeline_service.set_status(timeline_id, options["status"])
        if not result["success"]:
            details = "; ".join(result.get("errors") or [])
            raise CommandError(f"{result['message']}{f': {details}' if details else ''}")
        self.stdout.write(self.style.SUCCESS(f"{timeline_id} is now {result['timeline']['status']}"))
