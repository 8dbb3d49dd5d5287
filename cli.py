import argparse
import datetime
import logging
import shutil
from typing import Optional, Sequence

from config import DEFAULT_YAML_PATH, default_db_path
from models import UnitSystem
from service_locator import ServiceContainer
from unit_service import UnitService

logger = logging.getLogger(__name__)


def backup_db(db_path: str, backup_path: str) -> None:
    shutil.copy(db_path, backup_path)
    logger.info("Backed up %s to %s", db_path, backup_path)


def restore_db(backup_path: str, db_path: str) -> None:
    shutil.copy(backup_path, db_path)
    logger.info("Restored %s from %s", db_path, backup_path)


def demo_data(db_path: str, yaml_path: str) -> bool:
    """Populate the database with a demo user and workout if it has none."""
    services = ServiceContainer(db_path, yaml_path)
    try:
        if services.workouts.get_all():
            print("Database already contains workouts")
            return False
        user = services.users.get_current_user() or services.users.create_user(
            "John Doe", weight=81.6, height=175.0, age=30
        )
        bench = services.exercises.get_by_name("Bench Press") or services.exercises.create_exercise(
            "Bench Press", "Strength", "Chest", "Lie on bench and press weight upward"
        )
        squat = services.exercises.get_by_name("Squat") or services.exercises.create_exercise(
            "Squat", "Strength", "Legs", "Bend knees with weight on shoulders"
        )
        workout = services.workouts.create_workout(
            user, datetime.datetime.now(), "Monday Strength Session"
        )
        services.sets.add_set(workout, bench, reps=10, weight=61.2)
        services.sets.add_set(workout, bench, reps=8, weight=70.3)
        services.sets.add_set(workout, squat, reps=8, weight=102.1)
        services.workouts.complete_workout(workout, 3600)
        print("Demo data inserted")
        return True
    finally:
        services.close()


def print_stats(db_path: str, yaml_path: str) -> None:
    services = ServiceContainer(db_path, yaml_path)
    try:
        user = services.users.get_current_user()
        if user is None:
            print("No user profile found")
            return
        workouts = services.workouts.get_for_user(user)
        stats = services.statistics.calculate_workout_stats(user, workouts)
        streak = services.statistics.calculate_streak(user, workouts)
        volume = services.statistics.get_total_volume_lifted(user)
        print(f"Workouts: {stats.total_workouts} ({stats.workouts_this_week} this week)")
        print(f"Sets: {stats.total_sets} across {stats.unique_exercises} exercises")
        print(f"Volume: {services.units.format_weight(volume)}")
        print(f"Streak: {streak.current} days (longest {streak.longest})")
        print(f"Consistency: {stats.consistency:.0%}")
        for record in services.statistics.get_recent_personal_records(
            user, services.workouts.get_recent(user)
        ):
            print(
                f"PR {record.exercise_name}: "
                f"{services.units.format_weight(record.weight)} x {record.reps}"
            )
    finally:
        services.close()


def seed(db_path: str, yaml_path: str, force: bool = False) -> bool:
    services = ServiceContainer(db_path, yaml_path, seed=False)
    try:
        if force:
            services.seeding.force_seed_default_data()
            return True
        return services.seeding.seed_default_data_if_needed()
    finally:
        services.close()


def convert_weight(weight: float, unit: str) -> str:
    units = UnitService()
    if unit == "kg":
        result = units.convert_weight(weight, UnitSystem.METRIC, UnitSystem.IMPERIAL)
        return f"{weight} kg = {result:.2f} lb"
    result = units.convert_weight(weight, UnitSystem.IMPERIAL, UnitSystem.METRIC)
    return f"{weight} lb = {result:.2f} kg"


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Workout tracker utility commands")
    parser.add_argument("-v", "--verbose", action="store_true")
    sub = parser.add_subparsers(dest="cmd", required=True)

    bkp = sub.add_parser("backup")
    bkp.add_argument("--db", default=default_db_path())
    bkp.add_argument("--out", default="backup.db")

    rst = sub.add_parser("restore")
    rst.add_argument("--in", dest="src", default="backup.db")
    rst.add_argument("--db", default=default_db_path())

    demo = sub.add_parser("demo")
    demo.add_argument("--db", default=default_db_path())
    demo.add_argument("--yaml", default=DEFAULT_YAML_PATH)

    stats = sub.add_parser("stats")
    stats.add_argument("--db", default=default_db_path())
    stats.add_argument("--yaml", default=DEFAULT_YAML_PATH)

    sd = sub.add_parser("seed")
    sd.add_argument("--db", default=default_db_path())
    sd.add_argument("--yaml", default=DEFAULT_YAML_PATH)
    sd.add_argument("--force", action="store_true")

    conv = sub.add_parser("convert")
    conv.add_argument("--weight", type=float, required=True)
    conv.add_argument("--unit", choices=["kg", "lb"], required=True)

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.cmd == "backup":
        backup_db(args.db, args.out)
    elif args.cmd == "restore":
        restore_db(args.src, args.db)
    elif args.cmd == "demo":
        demo_data(args.db, args.yaml)
    elif args.cmd == "stats":
        print_stats(args.db, args.yaml)
    elif args.cmd == "seed":
        if seed(args.db, args.yaml, args.force):
            print("Default exercises seeded")
        else:
            print("Exercise catalog already present")
    elif args.cmd == "convert":
        print(convert_weight(args.weight, args.unit))


if __name__ == "__main__":
    main()
