from __future__ import annotations

import re

from django.test import TestCase, override_settings

from protocol.models import AgentTimelineProgress, Emblem, Timeline, TimelineParticipant
from protocol.services import interaction
from protocol.services import timelines as timeline_service
from protocol.tests.helpers import ACCESS_CODE, make_agent, make_timeline


class CreateTimelineTests(TestCase):
    def setUp(self) -> None:
        Emblem.objects.create(emblem_id="EMB-1", name="Echo", code="ABC-DEF-GHI")
        Emblem.objects.create(emblem_id="EMB-2", name="Long", code="JKLMNOPQRSTU")

    def _payload(self, **overrides):
        payload = {"name": "Signal", "access_code": "SIG", "emblem_ids": ["EMB-1"]}
        payload.update(overrides)
        return payload

    def test_code_is_seeded_from_the_first_emblem_only(self) -> None:
        result = timeline_service.create_timeline(self._payload(emblem_ids=["EMB-1", "EMB-2"]))
        self.assertTrue(result["success"])
        code = result["timeline"]["code"]
        self.assertEqual(code["target_code"], ["ABC", "DEF", "GHI"])
        self.assertEqual(code["format"], "AAA-BBB-CCC")
        self.assertEqual(code["pattern"]["CCC"], {"C1": "G", "C2": "H", "C3": "I"})

    def test_dash_free_four_group_emblem_uses_extended_format(self) -> None:
        result = timeline_service.create_timeline(self._payload(emblem_ids=["EMB-2"]))
        self.assertEqual(result["timeline"]["code"]["format"], "AAA-BBB-CCC-DDD")
        self.assertEqual(result["timeline"]["code"]["target_code"], ["JKL", "MNO", "PQR", "STU"])

    def test_missing_emblems_are_listed(self) -> None:
        result = timeline_service.create_timeline(self._payload(emblem_ids=["EMB-1", "EMB-X", "EMB-Y"]))
        self.assertFalse(result["success"])
        self.assertEqual(result["message"], "Emblems not found: EMB-X, EMB-Y")
        self.assertEqual(result["missing"], ["EMB-X", "EMB-Y"])
        self.assertFalse(Timeline.objects.exists())

    def test_generated_id_uses_configured_prefix(self) -> None:
        with override_settings(PROTOCOL_TIMELINE_ID_PREFIX="TL"):
            result = timeline_service.create_timeline(self._payload())
        self.assertRegex(result["timeline"]["timeline_id"], re.compile(r"^TL-\d{8}-[0-9a-f]{6}$"))

    def test_new_timelines_start_as_draft(self) -> None:
        result = timeline_service.create_timeline(self._payload())
        flags = result["timeline"]["state_flags"]
        self.assertEqual(result["timeline"]["status"], "DRAFT")
        self.assertTrue(flags["is_draft"])
        self.assertEqual(sum(flags.values()), 1)
        self.assertIsNone(result["timeline"]["stabilization"])
        self.assertEqual(result["timeline"]["security_protocol"]["max_attempts"], 3)

    def test_validation_failures_collect_every_error(self) -> None:
        result = timeline_service.create_timeline({"name": "", "tier": 7, "status": "paused"})
        self.assertFalse(result["success"])
        self.assertEqual(result["message"], "Invalid timeline data")
        self.assertIn("Name is required", result["errors"])
        self.assertIn("tier must be an integer between 1 and 5", result["errors"])
        self.assertIn("access_code is required", result["errors"])
        self.assertTrue(any(error.startswith("status must be one of") for error in result["errors"]))

    def test_status_is_upper_cased(self) -> None:
        result = timeline_service.create_timeline(self._payload(status="open"))
        self.assertEqual(result["timeline"]["status"], "OPEN")

    def test_duplicate_timeline_id_is_rejected(self) -> None:
        timeline_service.create_timeline(self._payload(timeline_id="TL-DUP"))
        result = timeline_service.create_timeline(self._payload(timeline_id="TL-DUP"))
        self.assertFalse(result["success"])
        self.assertEqual(Timeline.objects.filter(timeline_id="TL-DUP").count(), 1)


class TimelineLifecycleTests(TestCase):
    def setUp(self) -> None:
        self.timeline = make_timeline(status="DRAFT")

    def test_status_change_keeps_flags_in_step(self) -> None:
        result = timeline_service.set_status(self.timeline.timeline_id, "open")
        self.assertTrue(result["success"])
        self.timeline.refresh_from_db()
        flags = self.timeline.state_flags
        self.assertTrue(flags["is_open"])
        self.assertEqual([name for name, value in flags.items() if value], ["is_open"])

    def test_code_and_id_cannot_be_changed(self) -> None:
        result = timeline_service.update_timeline(
            self.timeline.timeline_id,
            {"timeline_id": "TL-OTHER", "code": {"target_code": ["XYZ"]}},
        )
        self.assertFalse(result["success"])
        self.assertIn("timeline_id cannot be changed", result["errors"])
        self.assertIn("code cannot be changed", result["errors"])
        self.timeline.refresh_from_db()
        self.assertEqual(self.timeline.target_code, ["ABC", "DEF", "GHI"])

    def test_partial_update_leaves_other_fields(self) -> None:
        result = timeline_service.update_timeline(self.timeline.timeline_id, {"name": "Renamed", "tier": 4})
        self.assertTrue(result["success"])
        self.timeline.refresh_from_db()
        self.assertEqual(self.timeline.name, "Renamed")
        self.assertEqual(self.timeline.tier, 4)
        self.assertEqual(self.timeline.access_code, ACCESS_CODE)
        self.assertEqual(len(self.timeline.entries), 2)

    def test_security_update_keeps_stored_keys(self) -> None:
        guarded = make_timeline(
            timeline_id="TL-GUARDED",
            access_code="GUARD",
            security_protocol={"max_attempts": 7, "access_mode": "restricted"},
        )
        result = timeline_service.update_timeline(guarded.timeline_id, {"security_protocol": {"lock_duration": 120}})
        self.assertTrue(result["success"])
        guarded.refresh_from_db()
        self.assertEqual(guarded.security_protocol["max_attempts"], 7)
        self.assertEqual(guarded.security_protocol["access_mode"], "RESTRICTED")
        self.assertEqual(guarded.security_protocol["lock_duration"], 120)
        self.assertEqual(guarded.security_protocol["clearance_level"], "1")
        self.assertEqual(guarded.access_code, "GUARD")

    def test_update_rejects_invalid_entries(self) -> None:
        result = timeline_service.update_timeline(
            self.timeline.timeline_id,
            {"entries": [{"entry_id": "A", "name": "A"}, {"entry_id": "A", "name": "B"}]},
        )
        self.assertFalse(result["success"])
        self.assertIn("Duplicate entry_id: A", result["errors"])

    def test_missing_timeline_reports_not_found(self) -> None:
        self.assertEqual(timeline_service.get_timeline("TL-NOPE")["message"], "Timeline not found")
        self.assertEqual(timeline_service.update_timeline("TL-NOPE", {"name": "x"})["message"], "Timeline not found")
        self.assertEqual(timeline_service.delete_timeline("TL-NOPE")["message"], "Timeline not found")

    def test_list_timelines_counts_everything(self) -> None:
        make_timeline(timeline_id="TL-TEST-2", access_code="OTHER")
        result = timeline_service.list_timelines()
        self.assertEqual(result["count"], 2)

    def test_hard_delete_removes_progress_and_participants(self) -> None:
        timeline_service.set_status(self.timeline.timeline_id, "OPEN")
        agent = make_agent()
        interaction.process_interaction(agent.pk, ACCESS_CODE)
        self.assertEqual(TimelineParticipant.objects.count(), 1)

        result = timeline_service.delete_timeline(self.timeline.timeline_id)
        self.assertEqual(result, {"success": True, "message": "Timeline successfully deleted"})
        self.assertFalse(Timeline.objects.exists())
        self.assertFalse(AgentTimelineProgress.objects.exists())
        self.assertFalse(TimelineParticipant.objects.exists())


class OpenTimelineListingTests(TestCase):
    def test_only_open_timelines_are_listed_without_secrets(self) -> None:
        make_timeline()
        make_timeline(timeline_id="TL-TEST-2", access_code="DRAFTY", status="DRAFT")
        make_timeline(timeline_id="TL-TEST-3", access_code="GONE", status="DELETED")

        result = timeline_service.list_open_timelines()
        self.assertEqual(result["count"], 1)
        summary = result["timelines"][0]
        self.assertEqual(set(summary), {"timeline_id", "name", "description", "tier", "code_format"})
        self.assertEqual(summary["timeline_id"], "TL-TEST-1")
        self.assertEqual(summary["code_format"], "AAA-BBB-CCC")


class AgentProgressTests(TestCase):
    def setUp(self) -> None:
        self.timeline = make_timeline()
        self.agent = make_agent()

    def test_failures_are_reported_in_order(self) -> None:
        self.assertEqual(
            timeline_service.get_agent_progress(self.agent.pk, "TL-NOPE")["message"], "Timeline not found"
        )
        self.assertEqual(
            timeline_service.get_agent_progress(999999, self.timeline.timeline_id)["message"], "Agent not found"
        )
        self.assertEqual(
            timeline_service.get_agent_progress(self.agent.pk, self.timeline.timeline_id)["message"],
            "You do not have access to this timeline",
        )

    def test_progress_includes_revealed_code(self) -> None:
        interaction.process_interaction(self.agent.pk, ACCESS_CODE)
        interaction.process_interaction(
            self.agent.pk, "anything", {"timeline_id": self.timeline.timeline_id, "entry_id": "E1"}
        )
        result = timeline_service.get_agent_progress(self.agent.pk, self.timeline.timeline_id)
        self.assertTrue(result["success"])
        self.assertEqual(result["progress"]["fragments_collected"], 3)
        self.assertEqual(result["progress"]["entries_resolved"], ["E1"])
        self.assertEqual(result["emblem_progress"]["display_code"], "A-B-C | ?-?-? | ?-?-?")
        self.assertEqual(result["emblem_progress"]["progress"], 33)
        self.assertEqual(result["timeline"]["status"], "OPEN")
