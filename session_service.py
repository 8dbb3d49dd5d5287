from __future__ import annotations

import datetime
import logging
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Optional

from models import Workout, WorkoutSet, WorkoutStatus

if TYPE_CHECKING:
    from db import WorkoutRepository

logger = logging.getLogger(__name__)


@dataclass
class SessionState:
    start_time: Optional[datetime.datetime] = None
    end_time: Optional[datetime.datetime] = None


class WorkoutSessionService:
    """Track in-progress workouts and completed sets for this process only.

    State is kept in side tables keyed by entity id and is never written to
    the database, so every restart begins with all workouts ``PLANNED`` and
    all sets incomplete. The only value that reaches the store is the final
    workout duration, persisted through the workout repository.
    """

    def __init__(
        self,
        workouts: WorkoutRepository | None = None,
        clock: Callable[[], datetime.datetime] = datetime.datetime.now,
    ) -> None:
        self.workouts = workouts
        self.clock = clock
        self._sessions: dict[str, SessionState] = {}
        # workout id -> ids of its completed sets
        self._completed_sets: dict[str, set[str]] = {}
        self._lock = threading.Lock()

    def _state(self, workout: Workout) -> SessionState:
        return self._sessions.setdefault(workout.id, SessionState())

    def start_workout(self, workout: Workout) -> datetime.datetime:
        """Stamp the start time. Calling again restarts the session."""
        now = self.clock()
        with self._lock:
            state = self._state(workout)
            state.start_time = now
            state.end_time = None
        self.attach(workout)
        logger.debug("Workout %s started at %s", workout.id, now.isoformat())
        return now

    def end_workout(self, workout: Workout) -> datetime.datetime:
        """Stamp the end time and persist the elapsed duration if started."""
        now = self.clock()
        with self._lock:
            state = self._state(workout)
            state.end_time = now
            start = state.start_time
        self.attach(workout)
        if start is not None:
            workout.duration = (now - start).total_seconds()
            if self.workouts is not None:
                self.workouts.save(workout)
        logger.debug("Workout %s ended at %s", workout.id, now.isoformat())
        return now

    def mark_ended(self, workout: Workout) -> None:
        """Close the session without touching the duration."""
        with self._lock:
            state = self._state(workout)
            if state.end_time is None:
                state.end_time = self.clock()
        self.attach(workout)

    def start_time(self, workout: Workout) -> Optional[datetime.datetime]:
        state = self._sessions.get(workout.id)
        return state.start_time if state else None

    def end_time(self, workout: Workout) -> Optional[datetime.datetime]:
        state = self._sessions.get(workout.id)
        return state.end_time if state else None

    def status(self, workout: Workout) -> WorkoutStatus:
        start = self.start_time(workout)
        end = self.end_time(workout)
        if start is not None and end is None:
            return WorkoutStatus.IN_PROGRESS
        if start is not None and end is not None:
            return WorkoutStatus.COMPLETED
        return WorkoutStatus.PLANNED

    def elapsed(self, workout: Workout) -> float:
        """Seconds since start for a running session, 0.0 otherwise."""
        start = self.start_time(workout)
        if start is None:
            return 0.0
        end = self.end_time(workout) or self.clock()
        return (end - start).total_seconds()

    def mark_set_completed(self, workout_set: WorkoutSet, completed: bool = True) -> None:
        with self._lock:
            done = self._completed_sets.setdefault(workout_set.workout_id, set())
            if completed:
                done.add(workout_set.id)
            else:
                done.discard(workout_set.id)
                if not done:
                    del self._completed_sets[workout_set.workout_id]
        workout_set.completed = completed

    def is_set_completed(self, workout_set: WorkoutSet) -> bool:
        return workout_set.id in self._completed_sets.get(workout_set.workout_id, ())

    def attach(self, workout: Workout) -> Workout:
        """Copy the session timestamps onto ``workout``."""
        workout.start_time = self.start_time(workout)
        workout.end_time = self.end_time(workout)
        return workout

    def attach_set(self, workout_set: WorkoutSet) -> WorkoutSet:
        workout_set.completed = self.is_set_completed(workout_set)
        return workout_set

    def forget(self, workout: Workout) -> None:
        """Drop the session and set completion state of a deleted workout."""
        with self._lock:
            self._sessions.pop(workout.id, None)
            self._completed_sets.pop(workout.id, None)

    def forget_set(self, workout_set: WorkoutSet) -> None:
        self.mark_set_completed(workout_set, False)

    def reset(self) -> None:
        with self._lock:
            self._sessions.clear()
            self._completed_sets.clear()

