import os
import sys
import json
import datetime
import unittest
from zoneinfo import ZoneInfo

import yaml

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from cli import (
    export_document,
    import_document,
    backup_db,
    restore_db,
    demo_data,
    reset_data,
    print_stats,
    build_services,
)
from db import LogStore
from seed_sample_data import generate_sample_data


class CLIToolsTest(unittest.TestCase):
    def setUp(self) -> None:
        self.db_path = "test_cli.db"
        self.export_path = "test_cli_export.json"
        self.yaml_path = "test_cli.yaml"
        for path in [self.db_path, self.export_path, self.yaml_path, "backup.db"]:
            if os.path.exists(path):
                os.remove(path)

    def tearDown(self) -> None:
        for path in [self.db_path, self.export_path, self.yaml_path, "backup.db"]:
            if os.path.exists(path):
                os.remove(path)

    def test_export_and_import(self) -> None:
        store = LogStore(self.db_path)
        store.add_program("Leg Day", [{"name": "Squat"}])
        store.add_session([{"name": "Squat", "series": [{"weight": 100, "reps": 5}]}])

        path = export_document(self.db_path, self.export_path)
        self.assertEqual(path, self.export_path)
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        self.assertEqual(len(data["sessions"]), 1)
        self.assertEqual(data["programs"][0]["name"], "Leg Day")

        reset_data(self.db_path)
        self.assertEqual(LogStore(self.db_path).get_sessions(), [])

        result = import_document(self.db_path, self.export_path)
        self.assertEqual(result, {"programs": 1, "sessions": 1})
        self.assertEqual(len(LogStore(self.db_path).get_sessions()), 1)

    def test_import_rejects_invalid_file(self) -> None:
        with open(self.export_path, "w", encoding="utf-8") as f:
            json.dump({"workouts": []}, f)
        with self.assertRaises(ValueError):
            import_document(self.db_path, self.export_path)

    def test_backup_restore(self) -> None:
        store = LogStore(self.db_path)
        store.add_session([{"name": "Squat", "series": [{"weight": 100, "reps": 5}]}])
        backup_db(self.db_path, "backup.db")
        self.assertTrue(os.path.exists("backup.db"))
        reset_data(self.db_path)
        restore_db("backup.db", self.db_path)
        self.assertEqual(len(LogStore(self.db_path).get_sessions()), 1)

    def test_demo_and_stats(self) -> None:
        result = demo_data(self.db_path, seed=7)
        self.assertEqual(result["programs"], 3)
        self.assertGreater(result["sessions"], 0)
        summary = print_stats(self.db_path, self.yaml_path)
        self.assertEqual(summary["total_sessions"], result["sessions"])
        self.assertIn("first_session", summary["recent_achievements"])

    def write_settings(self, **values) -> None:
        with open(self.yaml_path, "w", encoding="utf-8") as f:
            yaml.safe_dump(values, f)

    def test_stats_use_stored_settings(self) -> None:
        self.write_settings(timezone="Europe/Paris", recent_achievements_limit=5)
        statistics, gamification = build_services(self.db_path, self.yaml_path)
        self.assertEqual(statistics.tz, ZoneInfo("Europe/Paris"))
        self.assertEqual(gamification.recent_limit, 5)

        store = LogStore(self.db_path)
        store.add_session(
            [{"name": f"Exercise {i}", "series": [{"weight": 100, "reps": 100}]} for i in range(10)]
        )
        summary = print_stats(self.db_path, self.yaml_path)
        self.assertEqual(len(summary["recent_achievements"]), 5)

    def test_unknown_timezone_falls_back_to_local(self) -> None:
        self.write_settings(timezone="Mars/Olympus")
        statistics, _ = build_services(self.db_path, self.yaml_path)
        self.assertIsNone(statistics.tz)


class SampleDataTest(unittest.TestCase):
    def setUp(self) -> None:
        self.db_path = "test_seed.db"
        if os.path.exists(self.db_path):
            os.remove(self.db_path)

    def tearDown(self) -> None:
        if os.path.exists(self.db_path):
            os.remove(self.db_path)

    def test_sessions_stay_in_the_past(self) -> None:
        now = datetime.datetime(2024, 3, 31, 12, 0)
        store = LogStore(self.db_path)
        result = generate_sample_data(store, seed=1, now=now)
        sessions = store.get_sessions()
        self.assertEqual(len(sessions), result["sessions"])
        self.assertTrue(all(s.date <= now for s in sessions))
        self.assertTrue(all(s.program_name for s in sessions))
        self.assertEqual(min(s.date for s in sessions), datetime.datetime(2023, 12, 31, 12, 0))

    def test_seeded_generation_is_reproducible(self) -> None:
        now = datetime.datetime(2024, 3, 31, 12, 0)
        store = LogStore(self.db_path)
        generate_sample_data(store, seed=3, now=now)
        first = [s.volume for s in store.get_sessions()]
        generate_sample_data(store, seed=3, now=now)
        second = [s.volume for s in store.get_sessions()]
        self.assertEqual(first, second)


if __name__ == '__main__':
    unittest.main()
