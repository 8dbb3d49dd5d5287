from __future__ import annotations

import datetime
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import NamedTuple, Optional


def new_id() -> str:
    return str(uuid.uuid4())


class UnitSystem(str, Enum):
    """Measurement system used when presenting weights and heights."""

    METRIC = "metric"
    IMPERIAL = "imperial"


class WorkoutStatus(str, Enum):
    PLANNED = "Planned"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"


@dataclass
class User:
    """Application user. ``weight`` is kg and ``height`` is cm."""

    name: str
    weight: Optional[float] = None
    height: Optional[float] = None
    age: Optional[int] = None
    birthdate: Optional[datetime.date] = None
    gender: Optional[str] = None
    id: str = field(default_factory=new_id)
    created_at: datetime.datetime = field(default_factory=datetime.datetime.now)


@dataclass
class Exercise:
    name: str
    category: Optional[str] = None
    target_muscle_group: Optional[str] = None
    description: Optional[str] = None
    id: str = field(default_factory=new_id)


@dataclass
class Workout:
    """A logged or planned workout.

    ``start_time`` and ``end_time`` are session attributes owned by
    :class:`session_service.WorkoutSessionService`; they are never written to
    the database and are ``None`` whenever a workout is loaded.
    """

    user_id: str
    date: datetime.datetime
    name: Optional[str] = None
    duration: float = 0.0
    notes: Optional[str] = None
    id: str = field(default_factory=new_id)
    start_time: Optional[datetime.datetime] = field(
        default=None, compare=False, repr=False
    )
    end_time: Optional[datetime.datetime] = field(
        default=None, compare=False, repr=False
    )

    @property
    def formatted_duration(self) -> str:
        total = int(self.duration)
        hours = total // 3600
        minutes = (total % 3600) // 60
        if hours > 0:
            return f"{hours}h {minutes}m"
        return f"{minutes} min"


@dataclass
class WorkoutSet:
    """One set of an exercise inside a workout. ``completed`` is session-only."""

    workout_id: str
    exercise_id: str
    set_number: int
    weight: float = 0.0
    reps: int = 0
    time_seconds: float = 0.0
    id: str = field(default_factory=new_id)
    completed: bool = field(default=False, compare=False, repr=False)

    @property
    def volume(self) -> float:
        return self.weight * self.reps

    @property
    def formatted_time(self) -> str:
        seconds = int(self.time_seconds)
        minutes, remaining = divmod(seconds, 60)
        if minutes > 0:
            return f"{minutes}m {remaining}s"
        return f"{seconds}s"

    @property
    def description(self) -> str:
        parts: list[str] = []
        if self.weight > 0:
            parts.append(f"{self.weight:.1f} kg")
        if self.reps > 0:
            parts.append(f"{self.reps} reps")
        if self.time_seconds > 0:
            parts.append(self.formatted_time)
        return " • ".join(parts)


@dataclass
class ExerciseHistory:
    """Per-exercise summary of a workout that outlives the workout itself.

    ``workout_id`` is only a correlation key: the workout it names may no
    longer exist.
    """

    user_id: str
    exercise_id: str
    date: datetime.datetime
    max_weight: float = 0.0
    reps_at_max_weight: int = 0
    max_reps: int = 0
    total_volume: float = 0.0
    total_sets: int = 0
    workout_id: Optional[str] = None
    id: str = field(default_factory=new_id)


@dataclass(frozen=True)
class DateRange:
    """Inclusive datetime interval."""

    start: datetime.datetime
    end: datetime.datetime

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise ValueError("start must not be after end")

    @classmethod
    def for_days(cls, first: datetime.date, last: datetime.date) -> "DateRange":
        """Return the range covering whole calendar days ``first`` to ``last``."""
        return cls(
            datetime.datetime.combine(first, datetime.time.min),
            datetime.datetime.combine(last, datetime.time.max),
        )

    def contains(self, moment: datetime.datetime) -> bool:
        return self.start <= moment <= self.end


class PersonalRecordPair(NamedTuple):
    max_weight: float
    max_reps: int


class Streak(NamedTuple):
    current: int
    longest: int


class ProgressPoint(NamedTuple):
    date: datetime.datetime
    weight: float
    reps: int


@dataclass
class PersonalRecord:
    exercise_id: str
    exercise_name: str
    weight: float
    reps: int
    date: datetime.datetime


@dataclass
class WorkoutStats:
    total_workouts: int = 0
    workouts_this_week: int = 0
    total_duration: float = 0.0
    total_sets: int = 0
    unique_exercises: int = 0
    current_streak: int = 0
    consistency: float = 0.0
