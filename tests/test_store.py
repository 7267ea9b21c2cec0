import os
import sys
import json
import datetime
import tempfile
import unittest

from pydantic import ValidationError

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from db import LogStore, DocumentRepository
from stats_service import StatisticsService


class LogStoreTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.db_path = os.path.join(self.tmp.name, "store.db")
        self.store = LogStore(self.db_path)

    def tearDown(self) -> None:
        self.tmp.cleanup()

    def test_program_crud(self) -> None:
        program = self.store.add_program(
            "Push Day",
            [{"name": "Développé Couché", "series": [{"weight": "", "reps": 8}], "restSeconds": 120}],
        )
        self.assertIsNotNone(program.created_at)
        self.assertEqual(program.exercises[0].rest_seconds, 120)
        self.assertEqual(program.exercises[0].series[0].weight, 0)

        updated = self.store.update_program(program.id, name="Push A")
        self.assertEqual(updated.name, "Push A")
        self.assertEqual(updated.id, program.id)
        self.assertEqual(updated.created_at, program.created_at)
        self.assertEqual(len(updated.exercises), 1)

        with self.assertRaises(ValueError):
            self.store.update_program("missing", name="x")

        self.assertTrue(self.store.delete_program(program.id))
        self.assertFalse(self.store.delete_program(program.id))
        self.assertEqual(self.store.get_programs(), [])

    def test_deleting_program_keeps_sessions(self) -> None:
        program = self.store.add_program("Leg Day")
        session = self.store.add_session(
            [{"name": "Squat", "series": [{"weight": 100, "reps": 5}]}],
            program_id=program.id,
        )
        self.assertEqual(session.program_name, "Leg Day")
        self.store.delete_program(program.id)
        kept = self.store.get_session(session.id)
        self.assertEqual(kept.program_name, "Leg Day")
        self.assertEqual(kept.program_id, program.id)

    def test_sessions_snapshot_and_immutability(self) -> None:
        session = self.store.add_session([{"name": "Squat", "series": []}])
        snapshot = self.store.get_sessions()
        snapshot.clear()
        self.assertEqual(len(self.store.get_sessions()), 1)
        with self.assertRaises(ValidationError):
            session.program_name = "changed"

    def test_persistence_across_instances(self) -> None:
        program = self.store.add_program("Pull Day")
        self.store.add_session(
            [{"name": "Rowing Barre", "series": [{"weight": 50, "reps": 8}]}],
            program_id=program.id,
        )
        other = LogStore(self.db_path)
        self.assertEqual(len(other.get_sessions()), 1)
        self.assertEqual(other.get_programs()[0].name, "Pull Day")

    def test_last_session_for_program(self) -> None:
        program = self.store.add_program("Leg Day")
        newer = datetime.datetime(2024, 3, 10)
        older = datetime.datetime(2024, 3, 3)
        s1 = self.store.add_session([], program_id=program.id, date=newer)
        self.store.add_session([], program_id=program.id, date=older)
        self.assertEqual(self.store.last_session_for_program(program.id).id, s1.id)
        self.assertIsNone(self.store.last_session_for_program("missing"))

    def test_active_session_lifecycle(self) -> None:
        program = self.store.add_program(
            "Leg Day",
            [{"name": "Squat", "series": [{"weight": "", "reps": 8}, {"weight": "", "reps": 8}]}],
        )
        active = self.store.start_active_session(program.id)
        self.assertEqual(active.program_name, "Leg Day")
        self.assertEqual(len(active.exercises[0].series), 2)

        self.store.capture_active_session(
            [
                {"name": "Squat", "series": [{"weight": 100, "reps": 8}, {"weight": "", "reps": ""}]},
                {"name": "", "series": [{"weight": 20, "reps": 10}]},
            ]
        )
        reloaded = LogStore(self.db_path).get_active_session()
        self.assertEqual(reloaded.exercises[0].series[0].weight, 100)
        self.assertEqual(self.store.get_sessions(), [])

        session = self.store.finish_active_session()
        self.assertIsNone(self.store.get_active_session())
        self.assertEqual(len(session.exercises), 1)
        self.assertEqual(len(session.exercises[0].series), 1)
        self.assertEqual(session.program_id, program.id)
        self.assertEqual(len(self.store.get_sessions()), 1)

    def test_active_session_errors(self) -> None:
        with self.assertRaises(ValueError):
            self.store.start_active_session("missing")
        with self.assertRaises(ValueError):
            self.store.capture_active_session([])
        with self.assertRaises(ValueError):
            self.store.finish_active_session()
        self.assertFalse(self.store.discard_active_session())

    def test_discard_active_session(self) -> None:
        program = self.store.add_program("Leg Day")
        self.store.start_active_session(program.id)
        self.assertTrue(self.store.discard_active_session())
        self.assertIsNone(self.store.get_active_session())
        self.assertEqual(self.store.get_sessions(), [])

    def test_import_rejects_foreign_documents(self) -> None:
        with self.assertRaises(ValueError):
            self.store.import_document({"foo": 1})
        with self.assertRaises(ValueError):
            self.store.import_document("not json")
        with self.assertRaises(ValueError):
            self.store.import_document([1, 2])

    def test_import_discards_achievement_cache(self) -> None:
        doc = {
            "sessions": [
                {
                    "id": "1",
                    "date": "2024-03-01T10:00:00",
                    "exercises": [{"name": "Squat", "series": [{"weight": 100, "reps": 5}]}],
                }
            ],
            "recentAchievements": ["legend"],
            "seenAchievements": ["legend"],
        }
        self.store.import_document(json.dumps(doc))
        self.assertEqual(self.store.get_recent_achievements(), [])
        self.assertEqual(self.store.get_seen_achievements(), [])
        self.assertEqual(self.store.get_programs(), [])
        self.assertEqual(len(self.store.get_sessions()), 1)

    def test_import_legacy_french_document(self) -> None:
        legacy = {
            "programs": [{"id": "p1", "nom": "Push Day", "exercices": [{"nom": "Dips", "series": [{"poids": "", "reps": 12}]}]}],
            "sessions": [
                {
                    "id": "s1",
                    "date": "2024-03-01T10:00:00.000Z",
                    "programId": "p1",
                    "programName": "Push Day",
                    "exercices": [{"nom": "Dips", "series": [{"poids": "10", "reps": "12"}]}],
                }
            ],
            "user": {"name": ""},
        }
        self.store.import_document(legacy)
        session = self.store.get_sessions()[0]
        self.assertEqual(session.exercises[0].name, "Dips")
        self.assertEqual(session.exercises[0].series[0].weight, 10.0)
        self.assertEqual(session.exercises[0].series[0].reps, 12)
        exported = json.loads(self.store.export_document())
        self.assertIn("exercises", exported["sessions"][0])
        self.assertEqual(exported["programs"][0]["name"], "Push Day")

    def test_corrupt_document_is_set_aside(self) -> None:
        repo = DocumentRepository(self.db_path)
        repo.save(LogStore.STORAGE_KEY, "{broken")
        store = LogStore(self.db_path)
        self.assertEqual(store.get_sessions(), [])
        self.assertEqual(repo.load(f"{LogStore.STORAGE_KEY}.corrupt"), "{broken")

    def _store_raw(self, doc: dict) -> LogStore:
        DocumentRepository(self.db_path).save(LogStore.STORAGE_KEY, json.dumps(doc))
        return LogStore(self.db_path)

    def test_unreadable_active_session_keeps_log(self) -> None:
        store = self._store_raw(
            {
                "sessions": [
                    {"id": "s1", "date": "2024-03-01T10:00:00", "exercises": [{"name": "Squat", "series": [{"weight": 100, "reps": 5}]}]}
                ],
                "activeSession": {"startTime": "not-a-date"},
            }
        )
        self.assertEqual(len(store.get_sessions()), 1)
        self.assertIsNone(store.get_active_session())
        self.assertIsNone(DocumentRepository(self.db_path).load(f"{LogStore.STORAGE_KEY}.corrupt"))

    def test_unreadable_program_timestamp_keeps_program(self) -> None:
        store = self._store_raw({"programs": [{"id": "p1", "name": "Leg Day", "createdAt": "garbage"}]})
        self.assertEqual(len(store.get_programs()), 1)
        self.assertIsNone(store.get_program("p1").created_at)

    def test_undated_session_is_not_counted(self) -> None:
        store = self._store_raw(
            {"sessions": [{"id": "old", "exercises": [{"name": "Squat", "series": [{"weight": 100, "reps": 5}]}]}]}
        )
        self.assertEqual(store.get_sessions(), [])
        self.assertEqual(StatisticsService(store).daily_streak(), 0)

    def test_import_infinite_numbers(self) -> None:
        doc = self.store.import_document(
            '{"sessions": [{"id": "1", "date": "2024-03-01T10:00:00", '
            '"exercises": [{"name": "Squat", "series": [{"weight": Infinity, "reps": "Infinity"}]}]}]}'
        )
        series = doc.sessions[0].exercises[0].series[0]
        self.assertEqual((series.weight, series.reps), (0.0, 0))
        self.assertEqual(StatisticsService(self.store).average_volume_per_session(), 0)

    def test_user_and_reset(self) -> None:
        self.store.set_user_name("Alex")
        self.store.add_session([])
        self.assertEqual(LogStore(self.db_path).get_user().name, "Alex")
        self.store.reset()
        self.assertEqual(self.store.get_sessions(), [])
        self.assertEqual(LogStore(self.db_path).get_sessions(), [])


if __name__ == "__main__":
    unittest.main()
