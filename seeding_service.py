import logging
import threading

from db import ExerciseRepository, SettingsRepository
from models import Exercise

logger = logging.getLogger(__name__)

DEFAULT_EXERCISES = [
    (
        "Bench Press",
        "Strength",
        "Chest",
        "A compound exercise that targets the chest, shoulders, and triceps.",
    ),
    (
        "Incline Bench Press",
        "Strength",
        "Chest",
        "Targets the upper chest muscles with an angled bench.",
    ),
    (
        "Decline Bench Press",
        "Strength",
        "Chest",
        "Targets the lower chest muscles with a declined bench.",
    ),
    (
        "Dumbbell Fly",
        "Strength",
        "Chest",
        "Isolation exercise that stretches and contracts the chest muscles.",
    ),
    (
        "Cable Crossover",
        "Strength",
        "Chest",
        "Isolation exercise for the chest using cable machines.",
    ),
    (
        "Deadlift",
        "Strength",
        "Back",
        "A compound exercise that targets the entire posterior chain.",
    ),
    (
        "Pull-up",
        "Strength",
        "Back",
        "Body weight exercise targeting the upper back and biceps.",
    ),
    (
        "Bent Over Row",
        "Strength",
        "Back",
        "Compound exercise targeting the middle back muscles.",
    ),
    (
        "Squat",
        "Strength",
        "Legs",
        "A compound exercise that targets the quadriceps, hamstrings, and glutes.",
    ),
    (
        "Leg Press",
        "Strength",
        "Legs",
        "Machine exercise targeting the quadriceps, hamstrings, and glutes.",
    ),
    (
        "Overhead Press",
        "Strength",
        "Shoulders",
        "Compound exercise targeting the deltoids and triceps.",
    ),
]


class DataSeedingService:
    """Seed the starter exercise catalog once per installation."""

    FIRST_LAUNCH_KEY = "has_launched_before"

    _lock = threading.Lock()

    def __init__(
        self, exercise_repo: ExerciseRepository, settings_repo: SettingsRepository
    ) -> None:
        self.exercises = exercise_repo
        self.settings = settings_repo

    def is_first_launch(self) -> bool:
        return not self.settings.get_bool(self.FIRST_LAUNCH_KEY, False)

    def complete_onboarding(self) -> None:
        self.settings.set_bool(self.FIRST_LAUNCH_KEY, True)

    def seed_default_data_if_needed(self) -> bool:
        """Seed only on first launch into an empty catalog; return whether it seeded."""
        with self._lock:
            count = self.exercises.get_count()
            if count == 0 and self.is_first_launch():
                self._seed_default_exercises()
                self.complete_onboarding()
                logger.info("Default exercises seeded")
                return True
            logger.info(
                "Skipping exercise seeding: %d exercises exist or not first launch",
                count,
            )
            return False

    def force_seed_default_data(self) -> None:
        with self._lock:
            self._seed_default_exercises()
        logger.info("Default exercises force-seeded")

    def _seed_default_exercises(self) -> None:
        for name, category, muscle_group, description in DEFAULT_EXERCISES:
            self.exercises._write(
                Exercise(
                    name=name,
                    category=category,
                    target_muscle_group=muscle_group,
                    description=description,
                )
            )
        self.exercises.save_context()
