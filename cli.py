import argparse
import datetime
import json
import logging
import shutil

from db import LogStore, SettingsRepository
from gamification_service import GamificationService
from seed_sample_data import generate_sample_data
from stats_service import StatisticsService

logger = logging.getLogger(__name__)


def export_document(db_path: str, output: str | None = None) -> str:
    """Write the whole log as JSON and return the file path."""
    store = LogStore(db_path)
    if output is None:
        output = f"replift_backup_{datetime.date.today().isoformat()}.json"
    with open(output, "w", encoding="utf-8") as f:
        f.write(store.export_document())
    logger.info("Exported log to %s", output)
    return output


def import_document(db_path: str, source: str) -> dict:
    store = LogStore(db_path)
    with open(source, "r", encoding="utf-8") as f:
        doc = store.import_document(f.read())
    return {"programs": len(doc.programs), "sessions": len(doc.sessions)}


def reset_data(db_path: str) -> None:
    LogStore(db_path).reset()


def backup_db(db_path: str, backup_path: str) -> None:
    shutil.copy(db_path, backup_path)


def restore_db(backup_path: str, db_path: str) -> None:
    shutil.copy(backup_path, db_path)


def demo_data(db_path: str, seed: int | None = None) -> dict:
    """Replace the log with generated demo sessions."""
    return generate_sample_data(LogStore(db_path), seed=seed)


def build_services(
    db_path: str, yaml_path: str = "settings.yaml"
) -> tuple[StatisticsService, GamificationService]:
    """Metric services configured from the stored settings."""
    settings = SettingsRepository(db_path, yaml_path)
    store = LogStore(db_path)
    statistics = StatisticsService(store, tz=settings.get_timezone())
    gamification = GamificationService(
        store,
        statistics,
        recent_limit=settings.get_int("recent_achievements_limit", 3),
    )
    return statistics, gamification


def print_stats(db_path: str, yaml_path: str = "settings.yaml") -> dict:
    statistics, gamification = build_services(db_path, yaml_path)
    summary = statistics.overview()
    summary["records"] = statistics.personal_records()
    summary["favorites"] = statistics.favorite_exercises()
    summary["recent_achievements"] = gamification.update_recent()
    print(json.dumps(summary, ensure_ascii=False, indent=2))
    return summary


def main() -> None:
    parser = argparse.ArgumentParser(description="Utility commands")
    parser.add_argument("--yaml", default="settings.yaml")
    sub = parser.add_subparsers(dest="cmd", required=True)

    exp = sub.add_parser("export")
    exp.add_argument("--db", default="replift.db")
    exp.add_argument("--out", default=None)

    imp = sub.add_parser("import")
    imp.add_argument("--db", default="replift.db")
    imp.add_argument("--in", dest="src", required=True)

    rst = sub.add_parser("reset")
    rst.add_argument("--db", default="replift.db")
    rst.add_argument("--yes", action="store_true")

    bkp = sub.add_parser("backup")
    bkp.add_argument("--db", default="replift.db")
    bkp.add_argument("--out", default="backup.db")

    res = sub.add_parser("restore")
    res.add_argument("--in", dest="src", default="backup.db")
    res.add_argument("--db", default="replift.db")

    demo = sub.add_parser("demo")
    demo.add_argument("--db", default="replift.db")
    demo.add_argument("--seed", type=int, default=None)

    stats = sub.add_parser("stats")
    stats.add_argument("--db", default="replift.db")

    args = parser.parse_args()

    settings = SettingsRepository(args.db, args.yaml)
    logging.basicConfig(
        level=settings.get_text("log_level", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.cmd == "export":
        print(export_document(args.db, args.out))
    elif args.cmd == "import":
        result = import_document(args.db, args.src)
        print(f"Imported {result['programs']} programs and {result['sessions']} sessions")
    elif args.cmd == "reset":
        if not args.yes:
            parser.error("reset deletes every session; pass --yes to confirm")
        reset_data(args.db)
        print("Data reset")
    elif args.cmd == "backup":
        backup_db(args.db, args.out)
    elif args.cmd == "restore":
        restore_db(args.src, args.db)
    elif args.cmd == "demo":
        result = demo_data(args.db, args.seed)
        print(f"Demo data inserted: {result['programs']} programs, {result['sessions']} sessions")
    elif args.cmd == "stats":
        print_stats(args.db, args.yaml)


if __name__ == "__main__":
    main()
