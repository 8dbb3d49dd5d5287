import os
import sys
import datetime
import unittest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from db import (
    Database,
    ExerciseHistoryRepository,
    ExerciseRepository,
    PersistenceError,
    UserRepository,
    WorkoutRepository,
    WorkoutSetRepository,
)
from models import DateRange, Workout
from session_service import WorkoutSessionService


class RepositoryTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.db = Database(":memory:")
        self.users = UserRepository(self.db)
        self.exercises = ExerciseRepository(self.db)
        self.sets = WorkoutSetRepository(self.db)
        self.history = ExerciseHistoryRepository(self.db)
        self.sessions = WorkoutSessionService()
        self.workouts = WorkoutRepository(self.db, self.sessions)
        self.sessions.workouts = self.workouts
        self.user = self.users.create_user("Alex", weight=80.0, height=180.0, age=30)
        self.bench = self.exercises.create_exercise("Bench Press", "Strength", "Chest")
        self.squat = self.exercises.create_exercise("Squat", "Strength", "Legs")

    def tearDown(self) -> None:
        self.db.close()

    def _workout(self, day: datetime.date, hour: int = 10, name: str = "Session") -> Workout:
        return self.workouts.create_workout(
            self.user,
            datetime.datetime.combine(day, datetime.time(hour)),
            name,
        )


class UserRepositoryTest(RepositoryTestCase):
    def test_current_user_and_partial_update(self) -> None:
        current = self.users.get_current_user()
        self.assertEqual(current.id, self.user.id)
        self.users.update_user(current, weight=82.5)
        loaded = self.users.get_by_id(self.user.id)
        self.assertEqual(loaded.weight, 82.5)
        self.assertEqual(loaded.height, 180.0)
        self.assertEqual(loaded.name, "Alex")

    def test_current_user_is_earliest(self) -> None:
        self.users.create_user("Sam")
        self.assertEqual(self.users.get_current_user().name, "Alex")

    def test_no_user(self) -> None:
        db = Database(":memory:")
        self.assertIsNone(UserRepository(db).get_current_user())
        db.close()


class ExerciseRepositoryTest(RepositoryTestCase):
    def test_lookup_by_name_is_exact(self) -> None:
        self.assertEqual(self.exercises.get_by_name("Bench Press").id, self.bench.id)
        self.assertIsNone(self.exercises.get_by_name("bench press"))

    def test_duplicate_names_return_first(self) -> None:
        self.exercises.create_exercise("Bench Press", "Strength", "Chest")
        self.assertEqual(self.exercises.get_by_name("Bench Press").id, self.bench.id)

    def test_filters_and_count(self) -> None:
        self.assertEqual(
            [e.name for e in self.exercises.get_by_muscle_group("Legs")], ["Squat"]
        )
        self.assertEqual(len(self.exercises.get_by_category("Strength")), 2)
        self.assertEqual(self.exercises.get_by_category("Cardio"), [])
        self.assertEqual(self.exercises.get_count(), 2)


class WorkoutSetRepositoryTest(RepositoryTestCase):
    def test_set_numbers_increase_per_workout(self) -> None:
        workout = self._workout(datetime.date(2024, 1, 1))
        other = self._workout(datetime.date(2024, 1, 2))
        numbers = [
            self.sets.add_set(workout, self.bench, 5, 100.0).set_number,
            self.sets.add_set(workout, self.squat, 5, 120.0).set_number,
            self.sets.add_set(workout, self.bench, 3, 105.0).set_number,
        ]
        self.assertEqual(numbers, [1, 2, 3])
        self.assertEqual(self.sets.add_set(other, self.bench).set_number, 1)

    def test_missing_values_are_zero(self) -> None:
        workout = self._workout(datetime.date(2024, 1, 1))
        workout_set = self.sets.add_set(workout, self.bench)
        loaded = self.sets.get_by_id(workout_set.id)
        self.assertEqual((loaded.reps, loaded.weight, loaded.time_seconds), (0, 0.0, 0.0))
        self.assertFalse(loaded.completed)

    def test_update_set_is_partial(self) -> None:
        workout = self._workout(datetime.date(2024, 1, 1))
        workout_set = self.sets.add_set(workout, self.bench, 8, 60.0, 45.0)
        self.sets.update_set(workout_set, reps=10)
        loaded = self.sets.get_by_id(workout_set.id)
        self.assertEqual(loaded.reps, 10)
        self.assertEqual(loaded.weight, 60.0)
        self.assertEqual(loaded.time_seconds, 45.0)

    def test_sets_for_exercise(self) -> None:
        first = self._workout(datetime.date(2024, 1, 1))
        second = self._workout(datetime.date(2024, 1, 2))
        self.sets.add_set(first, self.bench, 5, 100.0)
        self.sets.add_set(first, self.squat, 5, 120.0)
        self.sets.add_set(second, self.bench, 5, 102.5)
        self.assertEqual(len(self.sets.get_for_exercise(self.bench)), 2)
        self.assertEqual(len(self.sets.get_for_exercise(self.bench, first)), 1)

    def test_sets_for_exercise_by_user(self) -> None:
        other_user = self.users.create_user("Sam")
        mine = self._workout(datetime.date(2024, 1, 1))
        theirs = self.workouts.create_workout(other_user, datetime.datetime(2024, 1, 1))
        self.sets.add_set(mine, self.bench, 5, 100.0)
        self.sets.add_set(theirs, self.bench, 5, 140.0)
        self.assertEqual(
            [s.weight for s in self.sets.get_for_exercise_by_user(self.bench, self.user)],
            [100.0],
        )

    def test_history_is_ordered_by_date_then_set(self) -> None:
        later = self._workout(datetime.date(2024, 1, 3))
        earlier = self._workout(datetime.date(2024, 1, 1))
        self.sets.add_set(later, self.bench, 5, 110.0)
        self.sets.add_set(earlier, self.bench, 5, 100.0)
        self.sets.add_set(earlier, self.bench, 5, 105.0)
        weights = [s.weight for s, _date in self.sets.fetch_history(self.user, self.bench)]
        self.assertEqual(weights, [100.0, 105.0, 110.0])


class WorkoutRepositoryTest(RepositoryTestCase):
    def test_date_range_is_inclusive(self) -> None:
        for day in (1, 2, 3, 4):
            self._workout(datetime.date(2024, 1, day), hour=23)
        found = self.workouts.get_in_date_range(
            DateRange.for_days(datetime.date(2024, 1, 2), datetime.date(2024, 1, 3))
        )
        self.assertEqual(
            sorted(w.date.day for w in found),
            [2, 3],
        )

    def test_date_range_user_filter(self) -> None:
        other_user = self.users.create_user("Sam")
        self._workout(datetime.date(2024, 1, 2))
        self.workouts.create_workout(other_user, datetime.datetime(2024, 1, 2, 9))
        window = DateRange.for_days(datetime.date(2024, 1, 1), datetime.date(2024, 1, 31))
        self.assertEqual(len(self.workouts.get_in_date_range(window)), 2)
        self.assertEqual(len(self.workouts.get_in_date_range(window, self.user)), 1)

    def test_invalid_range(self) -> None:
        with self.assertRaises(ValueError):
            DateRange.for_days(datetime.date(2024, 1, 2), datetime.date(2024, 1, 1))

    def test_get_for_user_newest_first(self) -> None:
        self._workout(datetime.date(2024, 1, 1), name="old")
        self._workout(datetime.date(2024, 1, 5), name="new")
        self.assertEqual(
            [w.name for w in self.workouts.get_for_user(self.user)], ["new", "old"]
        )
        self.assertEqual([w.name for w in self.workouts.get_recent(self.user, 1)], ["new"])

    def test_complete_workout_persists_duration(self) -> None:
        workout = self._workout(datetime.date(2024, 1, 1))
        self.workouts.complete_workout(workout, 3600)
        self.assertEqual(self.workouts.get_by_id(workout.id).duration, 3600.0)
        self.assertIsNotNone(self.sessions.end_time(workout))

    def test_create_from_template_copies_sets(self) -> None:
        template = self._workout(datetime.date(2024, 1, 1), name="Push Day")
        self.sets.add_set(template, self.bench, 5, 100.0)
        self.sets.add_set(template, self.squat, 8, 80.0, 30.0)
        other_user = self.users.create_user("Sam")
        copy = self.workouts.create_from_template(template, other_user)
        self.assertNotEqual(copy.id, template.id)
        self.assertEqual(copy.user_id, other_user.id)
        self.assertEqual(copy.name, "Push Day")
        original = self.sets.get_for_workout(template)
        copied = self.sets.get_for_workout(copy)
        self.assertEqual(
            [(s.set_number, s.exercise_id, s.reps, s.weight, s.time_seconds) for s in copied],
            [(s.set_number, s.exercise_id, s.reps, s.weight, s.time_seconds) for s in original],
        )
        self.assertTrue({s.id for s in copied}.isdisjoint({s.id for s in original}))

    def test_delete_keeps_history_summary(self) -> None:
        workout = self._workout(datetime.date(2024, 1, 1))
        self.sets.add_set(workout, self.bench, 5, 100.0)
        self.sets.add_set(workout, self.bench, 3, 110.0)
        self.sets.add_set(workout, self.squat, 5, 120.0)
        self.sessions.start_workout(workout)
        self.workouts.delete(workout)

        self.assertIsNone(self.workouts.get_by_id(workout.id))
        self.assertEqual(self.sets.get_for_workout(workout), [])
        self.assertIsNone(self.sessions.start_time(workout))
        entries = {e.exercise_id: e for e in self.history.get_for_workout_id(workout.id)}
        self.assertEqual(set(entries), {self.bench.id, self.squat.id})
        bench = entries[self.bench.id]
        self.assertEqual(bench.max_weight, 110.0)
        self.assertEqual(bench.reps_at_max_weight, 3)
        self.assertEqual(bench.max_reps, 5)
        self.assertEqual(bench.total_sets, 2)
        self.assertAlmostEqual(bench.total_volume, 830.0)

    def test_delete_without_sets_writes_no_history(self) -> None:
        workout = self._workout(datetime.date(2024, 1, 1))
        self.workouts.delete(workout)
        self.assertEqual(self.history.get_for_user(self.user), [])


class PersistenceFailureTest(RepositoryTestCase):
    def test_failed_statement_rolls_back(self) -> None:
        workout = self._workout(datetime.date(2024, 1, 1))
        self.sets.add_set(workout, self.bench, 5, 100.0)
        with self.assertRaises(PersistenceError):
            self.exercises.delete(self.bench)
        self.assertIsNotNone(self.exercises.get_by_id(self.bench.id))
        self.assertFalse(self.db.has_changes())

    def test_pending_changes_discarded_on_failure(self) -> None:
        workout = self._workout(datetime.date(2024, 1, 1))
        self.sets.add_set(workout, self.bench, 5, 100.0)
        self.workouts._write(
            Workout(user_id=self.user.id, date=datetime.datetime(2024, 2, 1), name="pending")
        )
        with self.assertRaises(PersistenceError):
            self.exercises.delete(self.bench)
        names = [w.name for w in self.workouts.get_for_user(self.user)]
        self.assertNotIn("pending", names)

    def test_commit_without_changes_is_noop(self) -> None:
        self.assertFalse(self.db.has_changes())
        self.db.commit()


if __name__ == "__main__":
    unittest.main()
