from __future__ import annotations

from unittest import mock

from django.test import TestCase

from protocol.models import Agent, AgentTimelineProgress, LoreUnlock, Timeline, TimelineParticipant
from protocol.services.interaction import process_interaction
from protocol.tests.helpers import ACCESS_CODE, make_agent, make_timeline


class TimelineAccessTests(TestCase):
    def setUp(self) -> None:
        self.timeline = make_timeline()
        self.agent = make_agent()

    def test_first_access_creates_progress_and_participant(self) -> None:
        result = process_interaction(self.agent.pk, f"  {ACCESS_CODE} ")
        self.assertTrue(result["success"])
        self.assertEqual(result["type"], "TIMELINE_ACCESS")
        self.assertEqual(result["message"], "Access granted. Welcome to the timeline.")
        self.assertEqual(result["data"]["timeline"]["timeline_id"], "TL-TEST-1")
        self.assertEqual(result["data"]["progress"]["fragments_found"], [])

        progress = AgentTimelineProgress.objects.get(agent=self.agent)
        self.assertEqual(progress.timeline_id, "TL-TEST-1")
        self.assertEqual(progress.title, "Echoes")
        self.assertTrue(TimelineParticipant.objects.filter(agent=self.agent, timeline=self.timeline).exists())

        self.agent.refresh_from_db()
        self.assertEqual(self.agent.current_timeline_id, "TL-TEST-1")
        self.assertIsNone(self.agent.current_timeline_entry_id)
        self.assertIsNotNone(self.agent.localization_synced_at)

    def test_repeat_access_is_idempotent(self) -> None:
        process_interaction(self.agent.pk, ACCESS_CODE)
        Agent.objects.filter(pk=self.agent.pk).update(current_timeline_id=None)

        result = process_interaction(self.agent.pk, ACCESS_CODE)
        self.assertTrue(result["success"])
        self.assertEqual(result["message"], "Connection to the timeline established")
        self.assertEqual(AgentTimelineProgress.objects.filter(agent=self.agent).count(), 1)
        self.assertEqual(TimelineParticipant.objects.filter(agent=self.agent).count(), 1)
        self.agent.refresh_from_db()
        self.assertEqual(self.agent.current_timeline_id, "TL-TEST-1")

    def test_unknown_or_closed_codes_share_one_message(self) -> None:
        make_timeline(timeline_id="TL-DRAFT", access_code="HIDDEN", status="DRAFT")
        for code in ("NOPE", "HIDDEN", ACCESS_CODE.lower(), ""):
            result = process_interaction(self.agent.pk, code)
            self.assertEqual(result, {"success": False, "message": "Invalid code or unknown command"})
        self.assertFalse(AgentTimelineProgress.objects.exists())

    def test_unknown_agent(self) -> None:
        result = process_interaction(999999, ACCESS_CODE)
        self.assertEqual(result["message"], "Agent not found")


class EntryAccessTests(TestCase):
    def setUp(self) -> None:
        self.timeline = make_timeline()
        self.agent = make_agent()
        process_interaction(self.agent.pk, ACCESS_CODE)
        self.context = {"timeline_id": self.timeline.timeline_id}

    def test_entry_is_located_by_code_and_breadcrumb_moves(self) -> None:
        result = process_interaction(self.agent.pk, " core ", self.context)
        self.assertTrue(result["success"])
        self.assertEqual(result["type"], "ENTRY_ACCESS")
        self.assertEqual(result["message"], "Entry located")
        entry = result["data"]["entry"]
        self.assertEqual(entry["entry_id"], "E1A")
        self.assertTrue(entry["requires_solution"])
        self.assertNotIn("solution", entry)

        self.agent.refresh_from_db()
        self.assertEqual(self.agent.current_timeline_entry_id, "E1A")

    def test_entry_miss_falls_back_to_timeline_access(self) -> None:
        result = process_interaction(self.agent.pk, ACCESS_CODE, self.context)
        self.assertTrue(result["success"])
        self.assertEqual(result["type"], "TIMELINE_ACCESS")

    def test_entry_miss_can_open_another_timeline(self) -> None:
        make_timeline(timeline_id="TL-TEST-2", access_code="SECOND")
        result = process_interaction(self.agent.pk, "SECOND", self.context)
        self.assertEqual(result["type"], "TIMELINE_ACCESS")
        self.assertEqual(result["data"]["timeline"]["timeline_id"], "TL-TEST-2")

    def test_entry_miss_without_timeline_match_fails_generically(self) -> None:
        result = process_interaction(self.agent.pk, "NOTHING", self.context)
        self.assertEqual(result["message"], "Invalid code or unknown command")


class EntrySolutionTests(TestCase):
    def setUp(self) -> None:
        self.timeline = make_timeline()
        self.agent = make_agent()
        process_interaction(self.agent.pk, ACCESS_CODE)

    def _solve(self, entry_id: str, attempt: str = "x", agent: Agent | None = None):
        agent = agent or self.agent
        return process_interaction(
            agent.pk, attempt, {"timeline_id": self.timeline.timeline_id, "entry_id": entry_id}
        )

    def _progress(self) -> AgentTimelineProgress:
        return AgentTimelineProgress.objects.get(agent=self.agent, timeline=self.timeline)

    def test_wrong_solution_changes_nothing(self) -> None:
        result = self._solve("E1A", "despair")
        self.assertEqual(result, {"success": False, "message": "Incorrect solution"})
        self.assertEqual(self._progress().entries_resolved, [])

    def test_unknown_entry(self) -> None:
        self.assertEqual(self._solve("E404")["message"], "Entry not found")

    def test_agent_without_access_is_refused(self) -> None:
        stranger = make_agent("4611686018467000999")
        result = self._solve("E1", agent=stranger)
        self.assertEqual(result["message"], "Access to timeline not authorized")

    def test_solution_merges_rewards_and_mirrors_participant(self) -> None:
        result = self._solve("E1A", "  Hope ")
        self.assertTrue(result["success"])
        self.assertEqual(result["type"], "ENTRY_SOLVED")
        self.assertEqual(result["message"], "Entry validated!")
        self.assertEqual(result["data"]["reward"], {
            "fragments": ["B1", "B2", "B3"],
            "keys": ["KEY-1"],
            "lore_unlocked": ["LORE-1"],
        })
        self.assertIsNone(result["data"]["completion"])

        progress = self._progress()
        self.assertEqual(progress.fragments_found, ["B1", "B2", "B3"])
        self.assertEqual(progress.fragments_collected, 3)
        self.assertEqual(progress.keys_found, ["KEY-1"])
        self.assertEqual(progress.entries_resolved, ["E1A"])
        self.assertTrue(LoreUnlock.objects.filter(agent=self.agent, lore__lore_id="LORE-1").exists())

        participant = TimelineParticipant.objects.get(agent=self.agent)
        self.assertEqual(participant.progress, 33)
        self.assertEqual(participant.fragments_found, ["B1", "B2", "B3"])
        self.assertEqual(participant.keys_found, ["KEY-1"])
        self.assertFalse(participant.completed)

    def test_same_entry_cannot_be_solved_twice(self) -> None:
        self.assertTrue(self._solve("E1")["success"])
        before = self._progress()

        result = self._solve("E1")
        self.assertEqual(result, {"success": False, "message": "Already solved"})
        after = self._progress()
        self.assertEqual(after.fragments_found, before.fragments_found)
        self.assertEqual(after.entries_resolved, ["E1"])

    def test_required_keys_are_not_enforced(self) -> None:
        result = self._solve("E2", "eyes up")
        self.assertTrue(result["success"])

    def test_full_collection_stabilizes_and_rewards_once(self) -> None:
        self._solve("E1")
        self._solve("E1A", "hope")
        with self.captureOnCommitCallbacks(execute=True):
            result = self._solve("E2", "EYES UP")

        completion = result["data"]["completion"]
        self.assertEqual(completion["message"], "TIMELINE COMPLETED! Congratulations Agent.")
        self.assertEqual(completion["rewards"], {"roles": ["WARDEN"], "badges": ["Stabilizer"], "emblems": ["EMB-1"]})
        self.assertEqual(result["data"]["progress"], 100)

        self.timeline.refresh_from_db()
        self.assertEqual(self.timeline.status, Timeline.STATUS_STABILIZED)
        self.assertTrue(self.timeline.state_flags["is_stabilized"])
        self.assertEqual(self.timeline.stabilization["winner_type"], "AGENT")
        self.assertEqual(self.timeline.stabilization["winner_agent_id"], self.agent.bungie_id)
        self.assertEqual(self.timeline.activity_metrics["completed"], 1)

        progress = self._progress()
        self.assertTrue(progress.completed)
        self.assertIsNotNone(progress.completed_at)
        participant = TimelineParticipant.objects.get(agent=self.agent)
        self.assertEqual(participant.progress, 100)
        self.assertTrue(participant.completed)

        self.agent.refresh_from_db()
        self.assertEqual(self.agent.roles, ["WARDEN"])
        self.assertEqual(self.agent.badges.count(), 1)

        replay = self._solve("E2", "EYES UP")
        self.assertEqual(replay["message"], "Timeline not found or locked")
        self.agent.refresh_from_db()
        self.assertEqual(self.agent.roles, ["WARDEN"])
        self.assertEqual(self.agent.badges.count(), 1)

    def test_metrics_refresh_is_queued_after_commit(self) -> None:
        with mock.patch("protocol.tasks.refresh_activity_metrics.delay") as delay_mock:
            with self.captureOnCommitCallbacks(execute=True):
                self._solve("E1")
        delay_mock.assert_called_once_with(self.timeline.pk)

    def test_failed_attempt_queues_nothing(self) -> None:
        with mock.patch("protocol.tasks.refresh_activity_metrics.delay") as delay_mock:
            with self.captureOnCommitCallbacks(execute=True) as callbacks:
                self._solve("E1A", "wrong")
        self.assertEqual(callbacks, [])
        delay_mock.assert_not_called()
