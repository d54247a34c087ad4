import unittest
from datetime import datetime, timezone

from surrogateagent.errors import ArtifactNotFoundError, ArtifactTransitionError
from surrogateagent.records import ChatSession, Turn
from surrogateagent.services.artifacts import ArtifactLifecycleManager, TranscriptIndex
from surrogateagent.services.session_store import InMemorySessionStore
from surrogateagent.tools.schedule import ScheduleTool


def _clock():
    return datetime(2026, 5, 1, 9, 0, tzinfo=timezone.utc)


def _agent_turn(turn_id, result):
    return Turn(
        id=turn_id,
        sender="agent",
        text=result.message,
        timestamp=_clock(),
        payload=result.data,
        payload_type=result.payload_type.value,
    )


class ArtifactLifecycleTests(unittest.TestCase):
    def setUp(self):
        self.store = InMemorySessionStore()
        self.schedule = ScheduleTool(self.store, clock=_clock)
        self.manager = ArtifactLifecycleManager(self.store)
        self.session = ChatSession(id="chat-1")
        self.index = TranscriptIndex(self.session)

        created = self.schedule.run("create_event", {"title": "Standup", "time": "10:00"})
        self.event_id = created.data["id"]
        self.index.append(_agent_turn("t1", created))
        self.index.append(Turn(id="t2", sender="user", text="what's on?", timestamp=_clock()))
        self.index.append(_agent_turn("t3", self.schedule.run("list_events", {})))

    def _stored(self):
        return {event.id: event for event in self.store.get_events()}

    def test_index_tracks_scalar_and_list_payloads(self):
        self.assertEqual(self.index.positions(self.event_id), [0, 2])
        self.assertEqual(len(list(self.index.embedded_copies(self.event_id))), 2)

    def test_confirm_updates_store_and_every_embedded_copy(self):
        change = self.manager.confirm(self.event_id, self.index)
        self.assertEqual(change.status, "confirmed")
        self.assertEqual(change.patched_copies, 2)
        self.assertEqual(self._stored()[self.event_id].status, "confirmed")
        self.assertEqual(self.session.turns[0].payload["status"], "confirmed")
        self.assertEqual(self.session.turns[2].payload[0]["status"], "confirmed")

    def test_cancel_deletes_from_store_and_relabels_copies(self):
        self.manager.cancel(self.event_id, self.index)
        self.assertNotIn(self.event_id, self._stored())
        self.assertEqual(len(self.session.turns), 3)
        self.assertEqual(self.session.turns[0].payload["status"], "cancelled")
        self.assertEqual(self.session.turns[2].payload[0]["status"], "cancelled")

    def test_terminal_states_cannot_change(self):
        self.manager.confirm(self.event_id, self.index)
        with self.assertRaises(ArtifactTransitionError):
            self.manager.cancel(self.event_id, self.index)
        with self.assertRaises(ArtifactTransitionError):
            self.manager.confirm(self.event_id, self.index)

    def test_cancelled_event_reads_status_from_embedded_copy(self):
        self.manager.cancel(self.event_id, self.index)
        with self.assertRaises(ArtifactTransitionError) as ctx:
            self.manager.confirm(self.event_id, self.index)
        self.assertEqual(ctx.exception.current, "cancelled")

    def test_unknown_event_raises_not_found(self):
        with self.assertRaises(ArtifactNotFoundError):
            self.manager.confirm("missing", self.index)

    def test_rebuilt_index_sees_existing_turns(self):
        rebuilt = TranscriptIndex(self.session)
        self.assertEqual(rebuilt.positions(self.event_id), [0, 2])

    def test_appended_turns_are_tracked_without_rebuilding(self):
        created = self.schedule.run("create_event", {"title": "Retro", "time": "16:00"})
        self.index.append(_agent_turn("t4", created))
        self.assertEqual(self.index.positions(created.data["id"]), [3])
        self.index.clear()
        self.assertEqual(self.index.positions(self.event_id), [])
        self.assertEqual(self.session.turns, [])

    def test_patch_recomputes_session_summary(self):
        self.manager.confirm(self.event_id, self.index)
        self.assertEqual(self.session.last_message, self.session.turns[-1].text)
        self.assertEqual(self.session.updated_at, self.session.turns[-1].timestamp)


if __name__ == "__main__":
    unittest.main()
