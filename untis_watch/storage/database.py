"""SQLite snapshot store for the last known version of each lesson"""
import json
import sqlite3
from contextlib import contextmanager
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Optional

from ..errors import PersistenceError
from .models import Lesson


class Database:
    """Persistent mapping of lesson ID to the last stored lesson"""

    def __init__(self, db_path: str = "data/timetable.db"):
        """Initialize database connection"""
        self.db_path = Path(db_path)
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PersistenceError(f"Cannot create database directory {self.db_path.parent}: {e}") from e
        self._init_db()

    def _init_db(self):
        """Create tables if they don't exist"""
        with self._get_connection() as conn:
            cursor = conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS lessons (
                    id TEXT PRIMARY KEY,
                    lesson_date INTEGER NOT NULL,
                    payload TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)

            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_lessons_date
                ON lessons(lesson_date)
            """)

            conn.commit()

    @contextmanager
    def _get_connection(self):
        """Get database connection with context manager"""
        try:
            conn = sqlite3.connect(str(self.db_path))
        except sqlite3.Error as e:
            raise PersistenceError(f"Cannot open database {self.db_path}: {e}") from e
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        except sqlite3.Error as e:
            raise PersistenceError(f"Database error: {e}") from e
        finally:
            conn.close()

    def has(self, lesson_id: str) -> bool:
        """Check if a lesson has been stored before"""
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT 1 FROM lessons WHERE id = ?", (str(lesson_id),))
            return cursor.fetchone() is not None

    def get(self, lesson_id: str) -> Optional[Lesson]:
        """Get the stored version of a lesson by ID"""
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT payload FROM lessons WHERE id = ?", (str(lesson_id),))
            row = cursor.fetchone()
            if row:
                return self._row_to_lesson(row)
            return None

    def set(self, lesson_id: str, lesson: Lesson):
        """Insert or replace the stored version of a lesson"""
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("""
                INSERT OR REPLACE INTO lessons
                (id, lesson_date, payload, updated_at)
                VALUES (?, ?, ?, ?)
            """, (
                str(lesson_id),
                lesson.date,
                json.dumps(lesson.to_api()),
                datetime.utcnow().isoformat()
            ))
            conn.commit()

    def count(self) -> int:
        """Number of stored lessons"""
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT COUNT(*) FROM lessons")
            return cursor.fetchone()[0]

    def prune_old_data(self, days: int = 30) -> int:
        """
        Remove lessons dated more than ``days`` days in the past

        Returns:
            Number of removed lessons
        """
        cutoff = date.today() - timedelta(days=days)
        cutoff_num = int(cutoff.strftime("%Y%m%d"))
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("""
                DELETE FROM lessons
                WHERE lesson_date < ?
            """, (cutoff_num,))
            conn.commit()
            return cursor.rowcount

    def _row_to_lesson(self, row: sqlite3.Row) -> Lesson:
        """Convert database row to Lesson object"""
        try:
            return Lesson.from_api(json.loads(row['payload']))
        except (ValueError, KeyError, TypeError) as e:
            raise PersistenceError(f"Corrupt lesson payload: {e}") from e
