from __future__ import annotations
import datetime
from collections import Counter
from typing import Callable, Dict, Iterator, List, Optional, Tuple

from db import (
    ExerciseHistoryRepository,
    ExerciseRepository,
    SettingsRepository,
    WorkoutRepository,
    WorkoutSetRepository,
)
from models import (
    DateRange,
    Exercise,
    PersonalRecord,
    PersonalRecordPair,
    ProgressPoint,
    Streak,
    UnitSystem,
    User,
    Workout,
    WorkoutSet,
    WorkoutStats,
)
from tools import MathTools


class ProgressSeries:
    """Time-ordered ``ProgressPoint`` sequence that re-reads the store on each pass."""

    def __init__(
        self, loader: Callable[[], List[Tuple[WorkoutSet, datetime.datetime]]]
    ) -> None:
        self._loader = loader

    def __iter__(self) -> Iterator[ProgressPoint]:
        for workout_set, date in self._loader():
            yield ProgressPoint(date, workout_set.weight, workout_set.reps)


class StatisticsService:
    """Compute workout statistics for analysis.

    Every method is read-only. Empty histories produce zero-valued results
    rather than errors.
    """

    DEFAULT_WEEKLY_TARGET = 3

    def __init__(
        self,
        workout_repo: WorkoutRepository,
        set_repo: WorkoutSetRepository,
        exercise_repo: ExerciseRepository,
        history_repo: ExerciseHistoryRepository | None = None,
        settings_repo: SettingsRepository | None = None,
        clock: Callable[[], datetime.date] = datetime.date.today,
    ) -> None:
        self.workouts = workout_repo
        self.sets = set_repo
        self.exercises = exercise_repo
        self.history = history_repo
        self.settings = settings_repo
        self.clock = clock

    def _workouts(self, user: User, time_range: Optional[DateRange]) -> List[Workout]:
        if time_range is None:
            return self.workouts.get_for_user(user)
        return self.workouts.get_in_date_range(time_range, user)

    def _weekly_target(self) -> int:
        if self.settings is None:
            return self.DEFAULT_WEEKLY_TARGET
        return self.settings.get_int("weekly_workout_target", self.DEFAULT_WEEKLY_TARGET)

    def get_personal_records(self, user: User, exercise: Exercise) -> PersonalRecordPair:
        """Return the heaviest weight and highest reps ever logged for ``exercise``.

        The two maxima are independent and may come from different sets.
        Summaries kept for deleted workouts are included.
        """
        max_weight = 0.0
        max_reps = 0
        for workout_set, _date in self.sets.fetch_history(user, exercise):
            if workout_set.weight > max_weight:
                max_weight = workout_set.weight
            if workout_set.reps > max_reps:
                max_reps = workout_set.reps
        if self.history is not None:
            for entry in self.history.get_for_exercise(user, exercise):
                if entry.max_weight > max_weight:
                    max_weight = entry.max_weight
                entry_reps = max(entry.max_reps, entry.reps_at_max_weight)
                if entry_reps > max_reps:
                    max_reps = entry_reps
        return PersonalRecordPair(max_weight, max_reps)

    def get_total_volume_lifted(
        self, user: User, time_range: Optional[DateRange] = None
    ) -> float:
        volume = 0.0
        for workout in self._workouts(user, time_range):
            sets = self.sets.get_for_workout(workout)
            volume += MathTools.volume((s.reps, s.weight) for s in sets)
        return volume

    def get_workout_frequency(
        self, user: User, time_range: Optional[DateRange] = None
    ) -> Dict[datetime.date, int]:
        """Return the number of workouts on each calendar day."""
        counts = Counter(w.date.date() for w in self._workouts(user, time_range))
        return dict(counts)

    def get_exercise_progress(
        self,
        user: User,
        exercise: Exercise,
        time_range: Optional[DateRange] = None,
    ) -> ProgressSeries:
        return ProgressSeries(
            lambda: self.sets.fetch_history(user, exercise, time_range)
        )

    def calculate_streak(
        self,
        user: User,
        workouts: List[Workout],
        today: Optional[datetime.date] = None,
    ) -> Streak:
        """Return current and longest runs of consecutive workout days.

        The current run stays alive while the latest workout day is today or
        yesterday. Days kept only in the exercise history of deleted workouts
        still count.
        """
        moments = [w.date for w in workouts]
        if self.history is not None:
            moments.extend(entry.date for entry in self.history.get_for_user(user))
        days = MathTools.distinct_days(moments)
        if not days:
            return Streak(0, 0)
        today = today or self.clock()
        return Streak(
            MathTools.run_ending_at(days, today),
            MathTools.longest_run(days),
        )

    def calculate_workout_stats(
        self,
        user: User,
        workouts: List[Workout],
        today: Optional[datetime.date] = None,
    ) -> WorkoutStats:
        today = today or self.clock()
        week_start = MathTools.week_start(today)
        stats = WorkoutStats()
        stats.total_workouts = len(workouts)
        stats.workouts_this_week = sum(1 for w in workouts if w.date.date() >= week_start)
        stats.total_duration = sum(w.duration for w in workouts)
        exercise_ids: set[str] = set()
        for workout in workouts:
            sets = self.sets.get_for_workout(workout)
            stats.total_sets += len(sets)
            exercise_ids.update(s.exercise_id for s in sets)
        stats.unique_exercises = len(exercise_ids)
        stats.current_streak = self.calculate_streak(user, workouts, today).current
        target = self._weekly_target()
        if target > 0:
            stats.consistency = MathTools.clamp(
                stats.workouts_this_week / target, 0.0, 1.0
            )
        return stats

    def get_recent_personal_records(
        self, user: User, workouts: List[Workout]
    ) -> List[PersonalRecord]:
        """Return the heaviest lift per exercise within ``workouts``, newest first.

        History summaries of deleted workouts dated on or after the earliest of
        ``workouts`` compete with the recorded sets. Ties keep the earliest lift.
        """
        if not workouts:
            return []
        # (date, exercise_id, weight, reps)
        lifts: List[Tuple[datetime.datetime, str, float, int]] = []
        for workout in workouts:
            for workout_set in self.sets.get_for_workout(workout):
                lifts.append(
                    (workout.date, workout_set.exercise_id, workout_set.weight, workout_set.reps)
                )
        if self.history is not None:
            since = min(w.date for w in workouts)
            for entry in self.history.get_for_user(user, since):
                lifts.append(
                    (entry.date, entry.exercise_id, entry.max_weight, entry.reps_at_max_weight)
                )
        best: Dict[str, Tuple[datetime.datetime, str, float, int]] = {}
        for lift in sorted(lifts, key=lambda lift: lift[0]):
            current = best.get(lift[1])
            if current is None or lift[2] > current[2]:
                best[lift[1]] = lift
        records: List[PersonalRecord] = []
        for date, exercise_id, weight, reps in best.values():
            exercise = self.exercises.get_by_id(exercise_id)
            records.append(
                PersonalRecord(
                    exercise_id=exercise_id,
                    exercise_name=exercise.name if exercise else "Unknown Exercise",
                    weight=weight,
                    reps=reps,
                    date=date,
                )
            )
        records.sort(key=lambda r: r.date, reverse=True)
        return records

    @staticmethod
    def format_weight(weight: float, unit_system: UnitSystem) -> str:
        unit = "kg" if unit_system == UnitSystem.METRIC else "lbs"
        return f"{weight:.1f} {unit}"
