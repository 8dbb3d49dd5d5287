import logging
import threading

from config import DEFAULT_YAML_PATH, default_db_path
from db import (
    Database,
    ExerciseHistoryRepository,
    ExerciseRepository,
    SettingsRepository,
    UserRepository,
    WorkoutRepository,
    WorkoutSetRepository,
)
from seeding_service import DataSeedingService
from session_service import WorkoutSessionService
from stats_service import StatisticsService
from unit_service import UnitService

logger = logging.getLogger(__name__)


class ServiceContainer:
    """Build every repository and service over one shared database.

    Construction order is fixed: storage, settings, repositories, session
    tracking, units, statistics, then seeding of the starter catalog.
    """

    def __init__(
        self,
        db_path: str | None = None,
        yaml_path: str = DEFAULT_YAML_PATH,
        *,
        seed: bool = True,
    ) -> None:
        self.db = Database(db_path or default_db_path())
        self.settings = SettingsRepository(self.db, yaml_path)
        self.users = UserRepository(self.db)
        self.exercises = ExerciseRepository(self.db)
        self.sets = WorkoutSetRepository(self.db)
        self.history = ExerciseHistoryRepository(self.db)
        self.sessions = WorkoutSessionService()
        self.workouts = WorkoutRepository(self.db, self.sessions)
        self.sessions.workouts = self.workouts
        self.units = UnitService(self.settings)
        self.statistics = StatisticsService(
            self.workouts,
            self.sets,
            self.exercises,
            self.history,
            self.settings,
        )
        self.seeding = DataSeedingService(self.exercises, self.settings)
        if seed:
            self.seeding.seed_default_data_if_needed()

    def use_remote_services(self) -> None:
        """Switch to a networked backend. No remote backend exists yet."""
        raise NotImplementedError("remote services are not implemented")

    def close(self) -> None:
        self.db.close()


class ServiceLocator:
    """Create the :class:`ServiceContainer` lazily, exactly once.

    Instantiate one locator at process start and hand it to whatever needs
    services; :meth:`get` is safe to call from several threads at once.
    """

    def __init__(self, db_path: str | None = None, yaml_path: str = DEFAULT_YAML_PATH) -> None:
        self.db_path = db_path
        self.yaml_path = yaml_path
        self._container: ServiceContainer | None = None
        self._lock = threading.Lock()

    def get(self) -> ServiceContainer:
        if self._container is None:
            with self._lock:
                if self._container is None:
                    logger.info("Building services for %s", self.db_path or default_db_path())
                    self._container = ServiceContainer(self.db_path, self.yaml_path)
        return self._container

    @property
    def is_built(self) -> bool:
        return self._container is not None

    def close(self) -> None:
        with self._lock:
            if self._container is not None:
                self._container.close()
                self._container = None
