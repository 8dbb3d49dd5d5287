import sqlite3
import datetime
import logging
import threading
from typing import TYPE_CHECKING, Generic, Iterable, List, Optional, Sequence, Tuple, TypeVar

from config import YamlConfig
from settings_schema import validate_settings
from models import (
    DateRange,
    Exercise,
    ExerciseHistory,
    User,
    Workout,
    WorkoutSet,
)

if TYPE_CHECKING:
    from session_service import WorkoutSessionService

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PersistenceError(Exception):
    """Raised when the entity store cannot apply or commit a change."""


def _to_text(value: datetime.date | None) -> str | None:
    return value.isoformat() if value is not None else None


def _parse_datetime(value: str | None) -> datetime.datetime | None:
    return datetime.datetime.fromisoformat(value) if value else None


def _parse_date(value: str | None) -> datetime.date | None:
    return datetime.date.fromisoformat(value) if value else None


class Database:
    """Owns the single SQLite connection shared by every repository.

    Statements run inside the connection's open transaction and only become
    durable when :meth:`commit` succeeds. A failed statement or commit rolls
    the whole pending transaction back and raises :class:`PersistenceError`.
    """

    _TABLE_DEFINITIONS = {
        "users": (
            """CREATE TABLE users (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    weight REAL,
                    height REAL,
                    age INTEGER,
                    birthdate TEXT,
                    gender TEXT,
                    created_at TEXT NOT NULL
                );""",
            ["id", "name", "weight", "height", "age", "birthdate", "gender", "created_at"],
        ),
        "exercises": (
            """CREATE TABLE exercises (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    category TEXT,
                    target_muscle_group TEXT,
                    description TEXT
                );""",
            ["id", "name", "category", "target_muscle_group", "description"],
        ),
        "workouts": (
            """CREATE TABLE workouts (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    name TEXT,
                    date TEXT NOT NULL,
                    duration REAL NOT NULL DEFAULT 0,
                    notes TEXT,
                    FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE
                );""",
            ["id", "user_id", "name", "date", "duration", "notes"],
        ),
        "workout_sets": (
            """CREATE TABLE workout_sets (
                    id TEXT PRIMARY KEY,
                    workout_id TEXT NOT NULL,
                    exercise_id TEXT NOT NULL,
                    set_number INTEGER NOT NULL,
                    weight REAL NOT NULL DEFAULT 0,
                    reps INTEGER NOT NULL DEFAULT 0,
                    time_seconds REAL NOT NULL DEFAULT 0,
                    FOREIGN KEY(workout_id) REFERENCES workouts(id) ON DELETE CASCADE,
                    FOREIGN KEY(exercise_id) REFERENCES exercises(id)
                );""",
            [
                "id",
                "workout_id",
                "exercise_id",
                "set_number",
                "weight",
                "reps",
                "time_seconds",
            ],
        ),
        "exercise_history": (
            """CREATE TABLE exercise_history (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    exercise_id TEXT NOT NULL,
                    date TEXT NOT NULL,
                    max_weight REAL NOT NULL DEFAULT 0,
                    reps_at_max_weight INTEGER NOT NULL DEFAULT 0,
                    max_reps INTEGER NOT NULL DEFAULT 0,
                    total_volume REAL NOT NULL DEFAULT 0,
                    total_sets INTEGER NOT NULL DEFAULT 0,
                    workout_id TEXT,
                    FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE,
                    FOREIGN KEY(exercise_id) REFERENCES exercises(id) ON DELETE CASCADE
                );""",
            [
                "id",
                "user_id",
                "exercise_id",
                "date",
                "max_weight",
                "reps_at_max_weight",
                "max_reps",
                "total_volume",
                "total_sets",
                "workout_id",
            ],
        ),
        "settings": (
            """CREATE TABLE settings (
                    key TEXT PRIMARY KEY,
                    value TEXT
                );""",
            ["key", "value"],
        ),
    }

    _INDEXES = (
        "CREATE INDEX IF NOT EXISTS idx_workouts_user_date ON workouts(user_id, date);",
        "CREATE INDEX IF NOT EXISTS idx_sets_workout ON workout_sets(workout_id);",
        "CREATE INDEX IF NOT EXISTS idx_sets_exercise ON workout_sets(exercise_id);",
        "CREATE INDEX IF NOT EXISTS idx_exercises_name ON exercises(name);",
        "CREATE INDEX IF NOT EXISTS idx_history_user ON exercise_history(user_id, exercise_id);",
    )

    def __init__(self, db_path: str = "workout.db") -> None:
        self._db_path = db_path
        self._lock = threading.RLock()
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._conn.execute("PRAGMA foreign_keys=on;")
        self._ensure_schema()

    @property
    def path(self) -> str:
        return self._db_path

    def _ensure_schema(self) -> None:
        with self._lock:
            for table, (sql, columns) in self._TABLE_DEFINITIONS.items():
                self._ensure_table(table, sql, columns)
            for sql in self._INDEXES:
                self._conn.execute(sql)
            self._conn.commit()

    def _ensure_table(self, table: str, sql: str, columns: List[str]) -> None:
        cur = self._conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name=?;", (table,)
        )
        if cur.fetchone() is None:
            self._conn.execute(sql)
            return
        cur = self._conn.execute(f"PRAGMA table_info({table});")
        existing_cols = {row[1] for row in cur.fetchall()}
        for col in columns:
            if col not in existing_cols:
                logger.info("Adding missing column %s.%s", table, col)
                self._conn.execute(f"ALTER TABLE {table} ADD COLUMN {col};")

    def execute(self, query: str, params: Tuple = ()) -> int:
        """Run a write statement inside the pending transaction."""
        with self._lock:
            try:
                cursor = self._conn.execute(query, params)
            except sqlite3.Error as e:
                self._conn.rollback()
                logger.error("Statement failed, pending changes rolled back: %s", e)
                raise PersistenceError(str(e)) from e
            return cursor.rowcount

    def fetch_all(self, query: str, params: Tuple = ()) -> List[Tuple]:
        with self._lock:
            try:
                return self._conn.execute(query, params).fetchall()
            except sqlite3.Error as e:
                raise PersistenceError(str(e)) from e

    def has_changes(self) -> bool:
        return self._conn.in_transaction

    def commit(self) -> None:
        """Make every pending change durable or none of them."""
        with self._lock:
            if not self._conn.in_transaction:
                return
            try:
                self._conn.commit()
            except sqlite3.Error as e:
                self._conn.rollback()
                logger.error("Commit failed for %s: %s", self._db_path, e)
                raise PersistenceError(str(e)) from e

    def rollback(self) -> None:
        with self._lock:
            self._conn.rollback()

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def vacuum(self) -> None:
        """Run SQLite VACUUM to reduce database size."""
        self.commit()
        with self._lock:
            self._conn.execute("VACUUM;")


class BaseRepository(Generic[T]):
    """CRUD over one table whose rows map to one dataclass."""

    table: str = ""
    columns: Tuple[str, ...] = ()
    order_by: str = "rowid"

    def __init__(self, db: Database) -> None:
        self.db = db

    def execute(self, query: str, params: Tuple = ()) -> int:
        return self.db.execute(query, params)

    def fetch_all(self, query: str, params: Tuple = ()) -> List[Tuple]:
        return self.db.fetch_all(query, params)

    def save_context(self) -> None:
        self.db.commit()

    def _to_row(self, entity: T) -> Tuple:
        raise NotImplementedError

    def _from_row(self, row: Sequence) -> T:
        raise NotImplementedError

    def _select(
        self,
        where: str = "",
        params: Tuple = (),
        order_by: str | None = None,
        limit: int | None = None,
    ) -> List[T]:
        query = f"SELECT {', '.join(self.columns)} FROM {self.table}"
        if where:
            query += f" WHERE {where}"
        query += f" ORDER BY {order_by or self.order_by}"
        if limit is not None:
            query += " LIMIT ?"
            params = tuple(params) + (limit,)
        query += ";"
        return [self._from_row(row) for row in self.fetch_all(query, params)]

    def _write(self, entity: T) -> None:
        """Insert or update ``entity`` without committing."""
        cols = ", ".join(self.columns)
        marks = ", ".join("?" for _ in self.columns)
        updates = ", ".join(f"{c}=excluded.{c}" for c in self.columns if c != "id")
        self.execute(
            f"INSERT INTO {self.table} ({cols}) VALUES ({marks}) "
            f"ON CONFLICT(id) DO UPDATE SET {updates};",
            self._to_row(entity),
        )

    def get_all(self) -> List[T]:
        return self._select()

    def get_by_id(self, entity_id: str) -> Optional[T]:
        rows = self._select("id = ?", (entity_id,), limit=1)
        return rows[0] if rows else None

    def save(self, entity: T) -> T:
        self._write(entity)
        self.save_context()
        return entity

    def delete(self, entity: T) -> None:
        self.execute(f"DELETE FROM {self.table} WHERE id = ?;", (entity.id,))
        self.save_context()


class UserRepository(BaseRepository[User]):
    """Repository for the users table. The application is single-user."""

    table = "users"
    columns = ("id", "name", "weight", "height", "age", "birthdate", "gender", "created_at")
    order_by = "created_at, rowid"

    def _to_row(self, user: User) -> Tuple:
        return (
            user.id,
            user.name,
            user.weight,
            user.height,
            user.age,
            _to_text(user.birthdate),
            user.gender,
            _to_text(user.created_at),
        )

    def _from_row(self, row: Sequence) -> User:
        uid, name, weight, height, age, birthdate, gender, created_at = row
        return User(
            id=uid,
            name=name,
            weight=weight,
            height=height,
            age=age,
            birthdate=_parse_date(birthdate),
            gender=gender,
            created_at=_parse_datetime(created_at),
        )

    def get_current_user(self) -> Optional[User]:
        rows = self._select(limit=1)
        return rows[0] if rows else None

    def create_user(
        self,
        name: str,
        weight: Optional[float] = None,
        height: Optional[float] = None,
        age: Optional[int] = None,
        birthdate: Optional[datetime.date] = None,
        gender: Optional[str] = None,
    ) -> User:
        user = User(
            name=name,
            weight=weight,
            height=height,
            age=age,
            birthdate=birthdate,
            gender=gender,
        )
        return self.save(user)

    def update_user(
        self,
        user: User,
        name: Optional[str] = None,
        weight: Optional[float] = None,
        height: Optional[float] = None,
        age: Optional[int] = None,
        birthdate: Optional[datetime.date] = None,
        gender: Optional[str] = None,
    ) -> User:
        """Overwrite only the fields passed as non-``None``."""
        if name is not None:
            user.name = name
        if weight is not None:
            user.weight = weight
        if height is not None:
            user.height = height
        if age is not None:
            user.age = age
        if birthdate is not None:
            user.birthdate = birthdate
        if gender is not None:
            user.gender = gender
        return self.save(user)


class ExerciseRepository(BaseRepository[Exercise]):
    """Repository for the exercise library."""

    table = "exercises"
    columns = ("id", "name", "category", "target_muscle_group", "description")
    order_by = "name, rowid"

    def _to_row(self, exercise: Exercise) -> Tuple:
        return (
            exercise.id,
            exercise.name,
            exercise.category,
            exercise.target_muscle_group,
            exercise.description,
        )

    def _from_row(self, row: Sequence) -> Exercise:
        eid, name, category, muscle_group, description = row
        return Exercise(
            id=eid,
            name=name,
            category=category,
            target_muscle_group=muscle_group,
            description=description,
        )

    def get_by_name(self, name: str) -> Optional[Exercise]:
        """Return the first exercise whose name matches exactly (case-sensitive)."""
        rows = self._select("name = ?", (name,), order_by="rowid", limit=1)
        return rows[0] if rows else None

    def get_by_category(self, category: str) -> List[Exercise]:
        return self._select("category = ?", (category,))

    def get_by_muscle_group(self, muscle_group: str) -> List[Exercise]:
        return self._select("target_muscle_group = ?", (muscle_group,))

    def create_exercise(
        self,
        name: str,
        category: Optional[str] = None,
        target_muscle_group: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Exercise:
        exercise = Exercise(
            name=name,
            category=category,
            target_muscle_group=target_muscle_group,
            description=description,
        )
        return self.save(exercise)

    def get_count(self) -> int:
        rows = self.fetch_all("SELECT COUNT(*) FROM exercises;")
        return int(rows[0][0]) if rows else 0


class WorkoutSetRepository(BaseRepository[WorkoutSet]):
    """Repository for the workout_sets table."""

    table = "workout_sets"
    columns = (
        "id",
        "workout_id",
        "exercise_id",
        "set_number",
        "weight",
        "reps",
        "time_seconds",
    )
    order_by = "set_number, rowid"

    def _to_row(self, workout_set: WorkoutSet) -> Tuple:
        return (
            workout_set.id,
            workout_set.workout_id,
            workout_set.exercise_id,
            workout_set.set_number,
            workout_set.weight,
            workout_set.reps,
            workout_set.time_seconds,
        )

    def _from_row(self, row: Sequence) -> WorkoutSet:
        sid, workout_id, exercise_id, set_number, weight, reps, time_seconds = row
        return WorkoutSet(
            id=sid,
            workout_id=workout_id,
            exercise_id=exercise_id,
            set_number=int(set_number),
            weight=float(weight),
            reps=int(reps),
            time_seconds=float(time_seconds),
        )

    def get_all(self) -> List[WorkoutSet]:
        cols = ", ".join(f"s.{c}" for c in self.columns)
        rows = self.fetch_all(
            f"SELECT {cols} FROM workout_sets s JOIN workouts w ON w.id = s.workout_id "
            "ORDER BY w.date DESC, s.set_number, s.rowid;"
        )
        return [self._from_row(r) for r in rows]

    def next_set_number(self, workout: Workout) -> int:
        rows = self.fetch_all(
            "SELECT COALESCE(MAX(set_number), 0) + 1 FROM workout_sets WHERE workout_id = ?;",
            (workout.id,),
        )
        return int(rows[0][0]) if rows else 1

    def add_set(
        self,
        workout: Workout,
        exercise: Exercise,
        reps: Optional[int] = None,
        weight: Optional[float] = None,
        time_seconds: Optional[float] = None,
    ) -> WorkoutSet:
        """Append a set to ``workout``; missing values are stored as zero."""
        workout_set = WorkoutSet(
            workout_id=workout.id,
            exercise_id=exercise.id,
            set_number=self.next_set_number(workout),
            weight=weight if weight is not None else 0.0,
            reps=reps if reps is not None else 0,
            time_seconds=time_seconds if time_seconds is not None else 0.0,
        )
        return self.save(workout_set)

    def update_set(
        self,
        workout_set: WorkoutSet,
        reps: Optional[int] = None,
        weight: Optional[float] = None,
        time_seconds: Optional[float] = None,
    ) -> WorkoutSet:
        if reps is not None:
            workout_set.reps = reps
        if weight is not None:
            workout_set.weight = weight
        if time_seconds is not None:
            workout_set.time_seconds = time_seconds
        return self.save(workout_set)

    def get_for_workout(self, workout: Workout) -> List[WorkoutSet]:
        return self._select("workout_id = ?", (workout.id,))

    def get_for_exercise(
        self, exercise: Exercise, workout: Optional[Workout] = None
    ) -> List[WorkoutSet]:
        if workout is None:
            return self._select("exercise_id = ?", (exercise.id,))
        return self._select(
            "exercise_id = ? AND workout_id = ?", (exercise.id, workout.id)
        )

    def get_for_exercise_by_user(self, exercise: Exercise, user: User) -> List[WorkoutSet]:
        return [s for s, _date in self.fetch_history(user, exercise)]

    def fetch_history(
        self,
        user: User,
        exercise: Exercise,
        date_range: Optional[DateRange] = None,
    ) -> List[Tuple[WorkoutSet, datetime.datetime]]:
        """Return ``(set, workout date)`` pairs for ``exercise`` done by ``user``.

        Rows are ordered by workout date, then by set order inside the workout.
        """
        cols = ", ".join(f"s.{c}" for c in self.columns)
        query = (
            f"SELECT {cols}, w.date FROM workout_sets s "
            "JOIN workouts w ON w.id = s.workout_id "
            "WHERE s.exercise_id = ? AND w.user_id = ?"
        )
        params: list = [exercise.id, user.id]
        if date_range is not None:
            query += " AND w.date >= ? AND w.date <= ?"
            params.extend([_to_text(date_range.start), _to_text(date_range.end)])
        query += " ORDER BY w.date ASC, w.rowid ASC, s.set_number ASC, s.rowid ASC;"
        rows = self.fetch_all(query, tuple(params))
        return [(self._from_row(r[:-1]), _parse_datetime(r[-1])) for r in rows]


class ExerciseHistoryRepository(BaseRepository[ExerciseHistory]):
    """Per-exercise summaries preserved when workouts are deleted."""

    table = "exercise_history"
    columns = (
        "id",
        "user_id",
        "exercise_id",
        "date",
        "max_weight",
        "reps_at_max_weight",
        "max_reps",
        "total_volume",
        "total_sets",
        "workout_id",
    )
    order_by = "date DESC, rowid"

    def _to_row(self, entry: ExerciseHistory) -> Tuple:
        return (
            entry.id,
            entry.user_id,
            entry.exercise_id,
            _to_text(entry.date),
            entry.max_weight,
            entry.reps_at_max_weight,
            entry.max_reps,
            entry.total_volume,
            entry.total_sets,
            entry.workout_id,
        )

    def _from_row(self, row: Sequence) -> ExerciseHistory:
        (
            hid,
            user_id,
            exercise_id,
            date,
            max_weight,
            reps,
            max_reps,
            volume,
            total_sets,
            workout_id,
        ) = row
        return ExerciseHistory(
            id=hid,
            user_id=user_id,
            exercise_id=exercise_id,
            date=_parse_datetime(date),
            max_weight=float(max_weight),
            reps_at_max_weight=int(reps),
            max_reps=int(max_reps or 0),
            total_volume=float(volume),
            total_sets=int(total_sets),
            workout_id=workout_id,
        )

    def get_for_user(
        self, user: User, since: Optional[datetime.datetime] = None
    ) -> List[ExerciseHistory]:
        if since is None:
            return self._select("user_id = ?", (user.id,))
        return self._select("user_id = ? AND date >= ?", (user.id, _to_text(since)))

    def get_for_exercise(self, user: User, exercise: Exercise) -> List[ExerciseHistory]:
        return self._select(
            "user_id = ? AND exercise_id = ?", (user.id, exercise.id)
        )

    def get_for_workout_id(self, workout_id: str) -> List[ExerciseHistory]:
        return self._select("workout_id = ?", (workout_id,))

    def find(
        self, user_id: str, exercise_id: str, date: datetime.datetime
    ) -> Optional[ExerciseHistory]:
        rows = self._select(
            "user_id = ? AND exercise_id = ? AND date = ?",
            (user_id, exercise_id, _to_text(date)),
            limit=1,
        )
        return rows[0] if rows else None

    def record_workout(self, workout: Workout, sets: Iterable[WorkoutSet]) -> None:
        """Fold ``sets`` into history rows for ``workout``'s date without committing."""
        entries: dict[str, ExerciseHistory] = {}
        for workout_set in sets:
            entry = entries.get(workout_set.exercise_id)
            if entry is None:
                entry = self.find(
                    workout.user_id, workout_set.exercise_id, workout.date
                ) or ExerciseHistory(
                    user_id=workout.user_id,
                    exercise_id=workout_set.exercise_id,
                    date=workout.date,
                    max_weight=workout_set.weight,
                    reps_at_max_weight=workout_set.reps,
                )
                entries[workout_set.exercise_id] = entry
            if workout_set.weight > entry.max_weight:
                entry.max_weight = workout_set.weight
                entry.reps_at_max_weight = workout_set.reps
            # heaviest set and most reps are tracked independently
            entry.max_reps = max(entry.max_reps, workout_set.reps)
            entry.total_volume += workout_set.volume
            entry.total_sets += 1
            entry.workout_id = workout.id
        for entry in entries.values():
            self._write(entry)


class WorkoutRepository(BaseRepository[Workout]):
    """Repository for workout table operations."""

    table = "workouts"
    columns = ("id", "user_id", "name", "date", "duration", "notes")
    order_by = "date DESC, rowid DESC"

    def __init__(self, db: Database, sessions: "WorkoutSessionService | None" = None) -> None:
        super().__init__(db)
        self.sets = WorkoutSetRepository(db)
        self.history = ExerciseHistoryRepository(db)
        self.sessions = sessions

    def _to_row(self, workout: Workout) -> Tuple:
        return (
            workout.id,
            workout.user_id,
            workout.name,
            _to_text(workout.date),
            float(workout.duration),
            workout.notes,
        )

    def _from_row(self, row: Sequence) -> Workout:
        wid, user_id, name, date, duration, notes = row
        return Workout(
            id=wid,
            user_id=user_id,
            name=name,
            date=_parse_datetime(date),
            duration=float(duration or 0.0),
            notes=notes,
        )

    def get_for_user(self, user: Optional[User]) -> List[Workout]:
        """Return workouts newest first; ``None`` means every user."""
        if user is None:
            return self._select()
        return self._select("user_id = ?", (user.id,))

    def get_in_date_range(
        self, date_range: DateRange, user: Optional[User] = None
    ) -> List[Workout]:
        where = "date >= ? AND date <= ?"
        params: list = [_to_text(date_range.start), _to_text(date_range.end)]
        if user is not None:
            where += " AND user_id = ?"
            params.append(user.id)
        return self._select(where, tuple(params))

    def get_recent(self, user: User, limit: int = 5) -> List[Workout]:
        return self._select("user_id = ?", (user.id,), limit=limit)

    def create_workout(
        self,
        user: User,
        date: Optional[datetime.datetime] = None,
        name: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Workout:
        workout = Workout(
            user_id=user.id,
            date=date or datetime.datetime.now(),
            name=name,
            notes=notes,
        )
        return self.save(workout)

    def complete_workout(self, workout: Workout, duration: float) -> Workout:
        """Persist the final ``duration`` in seconds and close the session."""
        workout.duration = float(duration)
        self.save(workout)
        if self.sessions is not None:
            self.sessions.mark_ended(workout)
        return workout

    def create_from_template(self, template: Workout, user: User) -> Workout:
        """Copy ``template`` and its sets for ``user`` in a single commit."""
        workout = Workout(
            user_id=user.id,
            date=datetime.datetime.now(),
            name=template.name,
            notes=template.notes,
        )
        self._write(workout)
        for template_set in self.sets.get_for_workout(template):
            self.sets._write(
                WorkoutSet(
                    workout_id=workout.id,
                    exercise_id=template_set.exercise_id,
                    set_number=template_set.set_number,
                    weight=template_set.weight,
                    reps=template_set.reps,
                    time_seconds=template_set.time_seconds,
                )
            )
        self.save_context()
        return workout

    def delete(self, workout: Workout) -> None:
        """Delete ``workout`` and its sets, keeping an exercise history summary."""
        sets = self.sets.get_for_workout(workout)
        if sets:
            self.history.record_workout(workout, sets)
        self.execute("DELETE FROM workouts WHERE id = ?;", (workout.id,))
        self.save_context()
        if self.sessions is not None:
            self.sessions.forget(workout)


class SettingsRepository(BaseRepository):
    """Repository for general application settings synchronized with YAML."""

    _DEFAULTS = {
        "unit_system": "metric",
        "weekly_workout_target": "3",
        "has_launched_before": "0",
        "remote_api_url": "",
    }
    _BOOL_KEYS = {"has_launched_before"}

    def __init__(self, db: Database, yaml_path: str = "settings.yaml") -> None:
        super().__init__(db)
        self._yaml = YamlConfig(yaml_path)
        self._init_settings()
        self._sync_from_yaml()
        self._sync_to_yaml()

    def _init_settings(self) -> None:
        for key, value in self._DEFAULTS.items():
            self.execute(
                "INSERT OR IGNORE INTO settings (key, value) VALUES (?, ?);",
                (key, value),
            )
        self.save_context()

    def _raw_all_settings(self) -> dict:
        rows = self.fetch_all("SELECT key, value FROM settings ORDER BY key;")
        result: dict[str, float | str | bool] = {}
        for k, v in rows:
            if k in self._BOOL_KEYS:
                result[k] = v in {"1", "1.0", "true", "True"}
                continue
            try:
                result[k] = float(v)
            except (TypeError, ValueError):
                result[k] = v
        return result

    def _sync_from_yaml(self) -> None:
        data = self._yaml.load()
        if not data:
            return
        validate_settings(data)
        stored = dict(self.fetch_all("SELECT key, value FROM settings;"))
        changed = False
        for key, value in data.items():
            val = str(value)
            if key in self._BOOL_KEYS:
                val = "1" if val in {"1", "1.0", "true", "True"} else "0"
            if self._same_value(stored.get(key), val):
                continue
            self.execute(
                "INSERT INTO settings (key, value) VALUES (?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value=excluded.value;",
                (key, val),
            )
            changed = True
        # reads must not commit unrelated pending writes
        if changed:
            self.save_context()

    @staticmethod
    def _same_value(current: Optional[str], new: str) -> bool:
        if current is None:
            return False
        if current == new:
            return True
        try:
            return float(current) == float(new)
        except ValueError:
            return False

    def _sync_to_yaml(self) -> None:
        self._yaml.save(self._raw_all_settings())

    def all_settings(self) -> dict:
        self._sync_from_yaml()
        return self._raw_all_settings()

    def get_text(self, key: str, default: str) -> str:
        self._sync_from_yaml()
        rows = self.fetch_all("SELECT value FROM settings WHERE key = ?;", (key,))
        return rows[0][0] if rows else default

    def set_text(self, key: str, value: str) -> None:
        self.execute(
            "INSERT INTO settings (key, value) VALUES (?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value=excluded.value;",
            (key, value),
        )
        self.save_context()
        self._sync_to_yaml()

    def get_float(self, key: str, default: float) -> float:
        try:
            return float(self.get_text(key, str(default)))
        except ValueError:
            return default

    def set_float(self, key: str, value: float) -> None:
        self.set_text(key, str(value))

    def get_int(self, key: str, default: int) -> int:
        try:
            return int(float(self.get_text(key, str(default))))
        except ValueError:
            return default

    def set_int(self, key: str, value: int) -> None:
        self.set_text(key, str(value))

    def get_bool(self, key: str, default: bool) -> bool:
        return self.get_text(key, "1" if default else "0") in {
            "1",
            "true",
            "True",
            "1.0",
        }

    def set_bool(self, key: str, value: bool) -> None:
        self.set_text(key, "1" if value else "0")
