import datetime
import random
import sys

from algorithms.dates import add_months
from db import LogStore

PROGRAMS = [
    (
        "Push Day",
        [("Développé Couché", 8, 3), ("Développé Incliné", 10, 3), ("Dips", 12, 2)],
    ),
    (
        "Pull Day",
        [("Tractions", 6, 3), ("Rowing Barre", 8, 3), ("Curl Biceps", 10, 2)],
    ),
    (
        "Leg Day",
        [("Squat", 8, 3), ("Soulevé de Terre", 5, 2), ("Leg Press", 12, 2)],
    ),
]

# name -> (start weight, weekly kg increase); bodyweight moves use
# (start reps, weekly reps increase) with no load.
WEIGHTED = {
    "Développé Couché": (60, 1.0),
    "Développé Incliné": (45, 0.8),
    "Rowing Barre": (50, 0.7),
    "Curl Biceps": (15, 0.4),
    "Squat": (80, 1.2),
    "Soulevé de Terre": (100, 1.5),
    "Leg Press": (120, 2.0),
}
BODYWEIGHT = {
    "Dips": (8, 0.2),
    "Tractions": (4, 0.15),
}


def _series(name: str, reps: int, week: int, rng: random.Random) -> dict:
    if name in WEIGHTED:
        start, step = WEIGHTED[name]
        variation = (rng.random() - 0.5) * 5
        weight = max(5.0, round((start + week * step + variation) * 2) / 2)
        return {"weight": weight, "reps": max(1, reps + rng.randint(-1, 1))}
    start, step = BODYWEIGHT[name]
    return {"weight": 0, "reps": max(1, int(start + week * step + rng.randint(0, 1)))}


def generate_sample_data(
    store: LogStore,
    weeks: int = 12,
    seed: int | None = None,
    now: datetime.datetime | None = None,
) -> dict:
    """Replace the log with three programs and three sessions a week.

    Sessions start three months before ``now`` with a realistic linear
    progression plus noise.
    """
    rng = random.Random(seed)
    now = now or datetime.datetime.now()
    store.reset()
    programs = [
        store.add_program(
            name,
            [
                {"name": ex, "series": [{"weight": "", "reps": reps}] * sets}
                for ex, reps, sets in exercises
            ],
        )
        for name, exercises in PROGRAMS
    ]
    start = add_months(now, -3)
    count = 0
    for week in range(weeks):
        for day_idx, program in enumerate(programs):
            date = start + datetime.timedelta(days=week * 7 + day_idx * 2)
            if date > now:
                continue
            exercises = [
                {
                    "name": ex.name,
                    "series": [_series(ex.name, s.reps, week, rng) for s in ex.series],
                }
                for ex in program.exercises
            ]
            store.add_session(exercises, program_id=program.id, date=date)
            count += 1
    return {"programs": len(programs), "sessions": count}


def seed(db_path: str = "replift.db") -> None:
    store = LogStore(db_path)
    if store.get_sessions():
        print("Database already contains sessions")
        return
    result = generate_sample_data(store)
    print(f"Seed data inserted: {result['programs']} programs, {result['sessions']} sessions")


if __name__ == "__main__":
    seed(sys.argv[1] if len(sys.argv) > 1 else "replift.db")
