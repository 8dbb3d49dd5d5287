import os
import sys
import datetime

import pytest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from db import Database, ExerciseRepository, UserRepository, WorkoutRepository, WorkoutSetRepository
from models import WorkoutStatus
from session_service import WorkoutSessionService


class FakeClock:
    def __init__(self, start: datetime.datetime) -> None:
        self.now = start

    def __call__(self) -> datetime.datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += datetime.timedelta(seconds=seconds)


@pytest.fixture
def env():
    db = Database(":memory:")
    clock = FakeClock(datetime.datetime(2024, 1, 1, 9, 0))
    sessions = WorkoutSessionService(clock=clock)
    workouts = WorkoutRepository(db, sessions)
    sessions.workouts = workouts
    user = UserRepository(db).create_user("Alex")
    workout = workouts.create_workout(user, datetime.datetime(2024, 1, 1, 9, 0))
    yield sessions, workouts, clock, workout, db
    db.close()


def test_new_workout_is_planned(env):
    sessions, _workouts, _clock, workout, _db = env
    assert sessions.status(workout) == WorkoutStatus.PLANNED
    assert sessions.elapsed(workout) == 0.0


def test_start_then_end_records_duration(env):
    sessions, workouts, clock, workout, _db = env
    sessions.start_workout(workout)
    assert sessions.status(workout) == WorkoutStatus.IN_PROGRESS
    assert workout.start_time == clock.now
    clock.advance(90)
    assert sessions.elapsed(workout) == 90.0
    sessions.end_workout(workout)
    assert sessions.status(workout) == WorkoutStatus.COMPLETED
    assert workout.duration == 90.0
    assert workouts.get_by_id(workout.id).duration == 90.0


def test_end_without_start_keeps_duration(env):
    sessions, workouts, _clock, workout, _db = env
    sessions.end_workout(workout)
    assert workout.duration == 0.0
    assert sessions.status(workout) == WorkoutStatus.PLANNED
    assert workouts.get_by_id(workout.id).duration == 0.0


def test_restart_overwrites_start_and_clears_end(env):
    sessions, _workouts, clock, workout, _db = env
    sessions.start_workout(workout)
    clock.advance(60)
    sessions.end_workout(workout)
    clock.advance(30)
    restarted = sessions.start_workout(workout)
    assert sessions.start_time(workout) == restarted
    assert sessions.end_time(workout) is None
    assert sessions.status(workout) == WorkoutStatus.IN_PROGRESS


def test_state_is_not_persisted(env):
    sessions, workouts, _clock, workout, _db = env
    sessions.start_workout(workout)
    loaded = workouts.get_by_id(workout.id)
    assert loaded.start_time is None
    assert sessions.attach(loaded).start_time is not None
    fresh = WorkoutSessionService()
    assert fresh.status(loaded) == WorkoutStatus.PLANNED


def test_set_completion_is_session_only(env):
    sessions, _workouts, _clock, workout, db = env
    exercise = ExerciseRepository(db).create_exercise("Squat")
    sets = WorkoutSetRepository(db)
    workout_set = sets.add_set(workout, exercise, 5, 100.0)
    sessions.mark_set_completed(workout_set)
    assert workout_set.completed
    loaded = sets.get_by_id(workout_set.id)
    assert not loaded.completed
    assert sessions.attach_set(loaded).completed
    sessions.reset()
    assert not sessions.is_set_completed(loaded)


def test_deleting_forgets_set_completion(env):
    sessions, workouts, _clock, workout, db = env
    exercise = ExerciseRepository(db).create_exercise("Squat")
    sets = WorkoutSetRepository(db)
    kept = sets.add_set(workout, exercise, 5, 100.0)
    dropped = sets.add_set(workout, exercise, 5, 100.0)
    sessions.mark_set_completed(kept)
    sessions.mark_set_completed(dropped)
    sets.delete(dropped)
    sessions.forget_set(dropped)
    assert not sessions.is_set_completed(dropped)
    assert sessions.is_set_completed(kept)
    workouts.delete(workout)
    assert not sessions.is_set_completed(kept)
    assert sessions._completed_sets == {}
