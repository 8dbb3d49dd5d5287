import datetime
import logging
from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from config import APP_VERSION, DEFAULT_YAML_PATH
from db import PersistenceError
from models import DateRange, Exercise, UnitSystem, User, Workout, WorkoutSet
from service_locator import ServiceContainer

logger = logging.getLogger(__name__)


class GymAPI:
    """Provides REST endpoints for workout logging and statistics."""

    def __init__(
        self,
        db_path: str = "workout.db",
        yaml_path: str = "settings.yaml",
        *,
        services: ServiceContainer | None = None,
    ) -> None:
        self.services = services or ServiceContainer(db_path, yaml_path)
        self.users = self.services.users
        self.exercises = self.services.exercises
        self.workouts = self.services.workouts
        self.sets = self.services.sets
        self.sessions = self.services.sessions
        self.statistics = self.services.statistics
        self.units = self.services.units
        self.seeding = self.services.seeding
        self.app = FastAPI(
            title="Workout Tracker API",
            description="REST API for workout logging and analytics",
            version=APP_VERSION,
        )
        self._setup_routes()

    @staticmethod
    def _date_range(
        start_date: Optional[str], end_date: Optional[str]
    ) -> Optional[DateRange]:
        if not start_date and not end_date:
            return None
        try:
            start = datetime.date.fromisoformat(start_date) if start_date else datetime.date.min
            end = datetime.date.fromisoformat(end_date) if end_date else datetime.date.max
            return DateRange.for_days(start, end)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

    def _user(self, user_id: Optional[str]) -> User:
        user = (
            self.users.get_by_id(user_id)
            if user_id
            else self.users.get_current_user()
        )
        if user is None:
            raise HTTPException(status_code=404, detail="user not found")
        return user

    def _exercise(self, exercise_id: str) -> Exercise:
        exercise = self.exercises.get_by_id(exercise_id)
        if exercise is None:
            raise HTTPException(status_code=404, detail="exercise not found")
        return exercise

    def _workout(self, workout_id: str) -> Workout:
        workout = self.workouts.get_by_id(workout_id)
        if workout is None:
            raise HTTPException(status_code=404, detail="workout not found")
        return self.sessions.attach(workout)

    def _set(self, set_id: str) -> WorkoutSet:
        workout_set = self.sets.get_by_id(set_id)
        if workout_set is None:
            raise HTTPException(status_code=404, detail="set not found")
        return self.sessions.attach_set(workout_set)

    def _workout_json(self, workout: Workout) -> dict:
        data = asdict(workout)
        data["status"] = self.sessions.status(workout).value
        return data

    def _setup_routes(self) -> None:
        users_router = APIRouter(prefix="/users", tags=["Users"])
        exercises_router = APIRouter(prefix="/exercises", tags=["Exercises"])
        workouts_router = APIRouter(prefix="/workouts", tags=["Workouts"])
        sets_router = APIRouter(prefix="/sets", tags=["Sets"])
        stats_router = APIRouter(prefix="/stats", tags=["Statistics"])
        settings_router = APIRouter(prefix="/settings", tags=["Settings"])

        @self.app.exception_handler(PersistenceError)
        async def persistence_error(request: Request, exc: PersistenceError):
            logger.error("Request %s failed to persist: %s", request.url.path, exc)
            return JSONResponse(status_code=500, content={"detail": str(exc)})

        @self.app.get(
            "/health",
            summary="Health check",
            description="Verify API and database connectivity.",
        )
        def health():
            """Return API and database connection status."""
            self.exercises.get_count()
            return {"status": "ok"}

        @users_router.get("/current")
        def current_user():
            return asdict(self._user(None))

        @users_router.post("")
        def create_user(
            name: str,
            weight: float = None,
            height: float = None,
            age: int = None,
            gender: str = None,
        ):
            user = self.users.create_user(name, weight, height, age, gender=gender)
            return {"id": user.id}

        @users_router.put("/{user_id}")
        def update_user(
            user_id: str,
            name: str = None,
            weight: float = None,
            height: float = None,
            age: int = None,
            gender: str = None,
        ):
            user = self._user(user_id)
            self.users.update_user(user, name, weight, height, age, gender=gender)
            return asdict(user)

        @exercises_router.get("")
        def list_exercises(category: str = None, muscle_group: str = None):
            if category:
                items = self.exercises.get_by_category(category)
            elif muscle_group:
                items = self.exercises.get_by_muscle_group(muscle_group)
            else:
                items = self.exercises.get_all()
            return [asdict(e) for e in items]

        @exercises_router.get("/count")
        def exercise_count():
            return {"count": self.exercises.get_count()}

        @exercises_router.get("/by_name")
        def exercise_by_name(name: str):
            exercise = self.exercises.get_by_name(name)
            if exercise is None:
                raise HTTPException(status_code=404, detail="exercise not found")
            return asdict(exercise)

        @exercises_router.post("")
        def create_exercise(
            name: str,
            category: str = None,
            muscle_group: str = None,
            description: str = None,
        ):
            exercise = self.exercises.create_exercise(
                name, category, muscle_group, description
            )
            return {"id": exercise.id}

        @exercises_router.post("/seed")
        def seed_exercises(force: bool = False):
            if force:
                self.seeding.force_seed_default_data()
                return {"seeded": True}
            return {"seeded": self.seeding.seed_default_data_if_needed()}

        @workouts_router.get("")
        def list_workouts(
            user_id: str = None,
            start_date: str = None,
            end_date: str = None,
        ):
            user = self._user(user_id) if user_id else None
            date_range = self._date_range(start_date, end_date)
            if date_range is None:
                items = self.workouts.get_for_user(user)
            else:
                items = self.workouts.get_in_date_range(date_range, user)
            return [self._workout_json(self.sessions.attach(w)) for w in items]

        @workouts_router.post("")
        def create_workout(
            user_id: str = None,
            name: str = None,
            notes: str = None,
            date: str = None,
        ):
            user = self._user(user_id)
            try:
                when = datetime.datetime.fromisoformat(date) if date else None
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            workout = self.workouts.create_workout(user, when, name, notes)
            return {"id": workout.id}

        @workouts_router.get("/{workout_id}")
        def get_workout(workout_id: str):
            workout = self._workout(workout_id)
            data = self._workout_json(workout)
            data["sets"] = [
                asdict(self.sessions.attach_set(s))
                for s in self.sets.get_for_workout(workout)
            ]
            return data

        @workouts_router.delete("/{workout_id}")
        def delete_workout(workout_id: str):
            self.workouts.delete(self._workout(workout_id))
            return {"status": "deleted"}

        @workouts_router.post("/{workout_id}/start")
        def start_workout(workout_id: str):
            workout = self._workout(workout_id)
            self.sessions.start_workout(workout)
            return self._workout_json(workout)

        @workouts_router.post("/{workout_id}/finish")
        def finish_workout(workout_id: str):
            workout = self._workout(workout_id)
            self.sessions.end_workout(workout)
            return self._workout_json(workout)

        @workouts_router.post("/{workout_id}/complete")
        def complete_workout(workout_id: str, duration: float):
            workout = self._workout(workout_id)
            self.workouts.complete_workout(workout, duration)
            return self._workout_json(workout)

        @workouts_router.post("/{workout_id}/copy")
        def copy_workout(workout_id: str, user_id: str = None):
            template = self._workout(workout_id)
            workout = self.workouts.create_from_template(template, self._user(user_id))
            return {"id": workout.id}

        @workouts_router.get("/{workout_id}/sets")
        def list_sets(workout_id: str, exercise_id: str = None):
            workout = self._workout(workout_id)
            if exercise_id:
                items = self.sets.get_for_exercise(self._exercise(exercise_id), workout)
            else:
                items = self.sets.get_for_workout(workout)
            return [asdict(self.sessions.attach_set(s)) for s in items]

        @workouts_router.post("/{workout_id}/sets")
        def add_set(
            workout_id: str,
            exercise_id: str,
            reps: int = None,
            weight: float = None,
            time_seconds: float = None,
        ):
            workout = self._workout(workout_id)
            workout_set = self.sets.add_set(
                workout, self._exercise(exercise_id), reps, weight, time_seconds
            )
            return {"id": workout_set.id, "set_number": workout_set.set_number}

        @sets_router.put("/{set_id}")
        def update_set(
            set_id: str,
            reps: int = None,
            weight: float = None,
            time_seconds: float = None,
        ):
            workout_set = self._set(set_id)
            self.sets.update_set(workout_set, reps, weight, time_seconds)
            return asdict(workout_set)

        @sets_router.post("/{set_id}/complete")
        def complete_set(set_id: str, completed: bool = True):
            workout_set = self._set(set_id)
            self.sessions.mark_set_completed(workout_set, completed)
            return asdict(workout_set)

        @sets_router.delete("/{set_id}")
        def delete_set(set_id: str):
            workout_set = self._set(set_id)
            self.sets.delete(workout_set)
            self.sessions.forget_set(workout_set)
            return {"status": "deleted"}

        @stats_router.get("/personal_records")
        def personal_records(exercise_id: str, user_id: str = None):
            record = self.statistics.get_personal_records(
                self._user(user_id), self._exercise(exercise_id)
            )
            return record._asdict()

        @stats_router.get("/volume")
        def volume(user_id: str = None, start_date: str = None, end_date: str = None):
            total = self.statistics.get_total_volume_lifted(
                self._user(user_id), self._date_range(start_date, end_date)
            )
            return {"volume": total}

        @stats_router.get("/frequency")
        def frequency(user_id: str = None, start_date: str = None, end_date: str = None):
            counts = self.statistics.get_workout_frequency(
                self._user(user_id), self._date_range(start_date, end_date)
            )
            return {day.isoformat(): n for day, n in sorted(counts.items())}

        @stats_router.get("/progress")
        def progress(
            exercise_id: str,
            user_id: str = None,
            start_date: str = None,
            end_date: str = None,
        ):
            series = self.statistics.get_exercise_progress(
                self._user(user_id),
                self._exercise(exercise_id),
                self._date_range(start_date, end_date),
            )
            return [p._asdict() for p in series]

        @stats_router.get("/streak")
        def streak(user_id: str = None):
            user = self._user(user_id)
            result = self.statistics.calculate_streak(user, self.workouts.get_for_user(user))
            return result._asdict()

        @stats_router.get("/overview")
        def overview(user_id: str = None):
            user = self._user(user_id)
            stats = self.statistics.calculate_workout_stats(
                user, self.workouts.get_for_user(user)
            )
            return asdict(stats)

        @stats_router.get("/recent_records")
        def recent_records(user_id: str = None, limit: int = 10):
            user = self._user(user_id)
            records = self.statistics.get_recent_personal_records(
                user, self.workouts.get_recent(user, limit)
            )
            return [asdict(r) for r in records]

        @settings_router.get("/unit_system")
        def get_unit_system():
            return {"unit_system": self.units.current_unit_system.value}

        @settings_router.put("/unit_system")
        def set_unit_system(unit_system: UnitSystem):
            self.units.set_unit_system(unit_system)
            return {"unit_system": self.units.current_unit_system.value}

        @settings_router.get("/format")
        def format_values(weight: float = None, height: float = None):
            result = {}
            if weight is not None:
                result["weight"] = self.units.format_weight(weight)
            if height is not None:
                result["height"] = self.units.format_height(height)
            return result

        self.app.include_router(users_router)
        self.app.include_router(exercises_router)
        self.app.include_router(workouts_router)
        self.app.include_router(sets_router)
        self.app.include_router(stats_router)
        self.app.include_router(settings_router)


def create_app(db_path: str | None = None, yaml_path: str = DEFAULT_YAML_PATH) -> FastAPI:
    return GymAPI(services=ServiceContainer(db_path, yaml_path)).app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(create_app())
