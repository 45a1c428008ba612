import argparse
import csv
import json
import os
import shutil
import time
from typing import List, Optional

import requests

from config import YamlConfig, configure_logging
from db import SqliteRecordStore
from progress_service import ProgressService
from seed_sample_data import seed


def export_workouts(db_path: str, fmt: str, output_dir: str = ".") -> str:
    """Write every workout with its exercises to ``output_dir``.

    JSON keeps the nested structure; CSV has one row per set.
    """
    store = SqliteRecordStore(db_path)
    items = [store.get_workout_with_exercises(w.id) for w in store.list_workouts()]
    if fmt == "json":
        out_path = os.path.join(output_dir, "workouts.json")
        with open(out_path, "w", encoding="utf-8") as f:
            json.dump([item.to_json() for item in items], f, indent=2)
        return out_path
    out_path = os.path.join(output_dir, "workouts.csv")
    with open(out_path, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(
            ["workout_id", "workout", "date", "exercise", "set", "weight", "reps"]
        )
        for item in items:
            w = item.workout
            for ex in item.exercises:
                for idx, s in enumerate(ex.sets, start=1):
                    writer.writerow(
                        [w.id, w.name, w.date.isoformat(), ex.name, idx, s.weight, s.reps]
                    )
    return out_path


def backup_db(db_path: str, backup_path: str) -> None:
    shutil.copy(db_path, backup_path)


def restore_db(backup_path: str, db_path: str) -> None:
    shutil.copy(backup_path, db_path)


def demo_data(db_path: str) -> None:
    """Populate the database with demo records if empty."""
    if seed(SqliteRecordStore(db_path)):
        print("Demo data inserted")
    else:
        print("Database already contains data")


def print_history(db_path: str, exercise: str) -> None:
    history = ProgressService(SqliteRecordStore(db_path)).exercise_history(exercise)
    if not history:
        print(f"No history for {exercise}")
        return
    for point in history:
        print(f"{point.date.date().isoformat()}  {point.weight:g} x {point.reps}")


def benchmark(url: str, runs: int = 10) -> None:
    times: list[float] = []
    for _ in range(runs):
        t0 = time.time()
        requests.get(f"{url}/api/health", timeout=5)
        times.append(time.time() - t0)
    avg = sum(times) / len(times)
    print(f"Average /api/health response time over {runs} runs: {avg:.4f}s")


def serve(host: str, port: int) -> None:
    import uvicorn

    uvicorn.run("rest_api:app", host=host, port=port)


def main(argv: Optional[List[str]] = None) -> None:
    settings = YamlConfig().settings()
    parser = argparse.ArgumentParser(description="Fitness tracker utilities")
    parser.add_argument("--log-level", default=settings.log_level)
    sub = parser.add_subparsers(dest="cmd", required=True)

    srv = sub.add_parser("serve")
    srv.add_argument("--host", default="127.0.0.1")
    srv.add_argument("--port", type=int, default=8000)

    exp = sub.add_parser("export")
    exp.add_argument("--db", default=settings.db_path)
    exp.add_argument("--fmt", choices=["csv", "json"], default="csv")
    exp.add_argument("--out", default=".")

    bkp = sub.add_parser("backup")
    bkp.add_argument("--db", default=settings.db_path)
    bkp.add_argument("--out", default="backup.db")

    rst = sub.add_parser("restore")
    rst.add_argument("--in", dest="src", default="backup.db")
    rst.add_argument("--db", default=settings.db_path)

    demo = sub.add_parser("demo")
    demo.add_argument("--db", default=settings.db_path)

    hist = sub.add_parser("history")
    hist.add_argument("exercise")
    hist.add_argument("--db", default=settings.db_path)

    bench = sub.add_parser("benchmark")
    bench.add_argument("--url", default="http://localhost:8000")
    bench.add_argument("--runs", type=int, default=10)

    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    if args.cmd == "serve":
        serve(args.host, args.port)
    elif args.cmd == "export":
        print(export_workouts(args.db, args.fmt, args.out))
    elif args.cmd == "backup":
        backup_db(args.db, args.out)
    elif args.cmd == "restore":
        restore_db(args.src, args.db)
    elif args.cmd == "demo":
        demo_data(args.db)
    elif args.cmd == "history":
        print_history(args.db, args.exercise)
    elif args.cmd == "benchmark":
        benchmark(args.url, args.runs)


if __name__ == "__main__":
    main()
