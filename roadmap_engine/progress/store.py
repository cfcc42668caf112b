"""
Key-value persistence for progress records.

Records are stored as JSON under keys of the form::

    lp_{user_id}_{path_id}          one LearningPath
    ach_{user_id}_{achievement_id}  one Achievement

``BaseProgressStore`` builds the state helpers on four key-value
primitives. ``InMemoryProgressStore`` implements them with a plain dict,
``ProgressStore`` with a single SQLite table.
"""

import json
import logging
import os
import sqlite3
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from roadmap_engine.models import Achievement, LearningPath, ProgressState

logger = logging.getLogger(__name__)

PATH_PREFIX = "lp"
ACHIEVEMENT_PREFIX = "ach"

_CREATE_PROGRESS_RECORDS = """\
CREATE TABLE IF NOT EXISTS ProgressRecords (
    key         TEXT PRIMARY KEY,
    value       TEXT NOT NULL,
    updated_at  TIMESTAMP
);
"""


def path_key(user_id: str, path_id: str) -> str:
    return f"{PATH_PREFIX}_{user_id}_{path_id}"


def achievement_key(user_id: str, achievement_id: str) -> str:
    return f"{ACHIEVEMENT_PREFIX}_{user_id}_{achievement_id}"


class BaseProgressStore:
    """Key-value primitives plus ``ProgressState`` helpers built on them.

    Subclasses implement ``get``, ``set``, ``delete`` and ``keys``.
    """

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    def set(self, key: str, value: Dict[str, Any]) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> bool:
        raise NotImplementedError

    def keys(self, prefix: str = "") -> List[str]:
        raise NotImplementedError

    # ---- state helpers ----

    def save_state(self, user_id: str, state: ProgressState) -> int:
        """Write every path and achievement of *state*; returns the record count."""
        written = 0
        for path in state.learning_paths.values():
            self.set(path_key(user_id, path.id), path.to_wire())
            written += 1
        for achievement in state.achievements:
            self.set(achievement_key(user_id, achievement.id), achievement.to_wire())
            written += 1
        logger.info("progress_saved | user=%s | records=%d", user_id, written)
        return written

    def load_state(self, user_id: str) -> ProgressState:
        """Assemble a ``ProgressState`` from the user's records.

        Records that fail validation are skipped with a warning.
        """
        paths: Dict[str, LearningPath] = {}
        for key in self.keys(f"{PATH_PREFIX}_{user_id}_"):
            try:
                path = LearningPath.model_validate(self.get(key))
            except ValidationError as exc:
                logger.warning("skipping_record | key=%s | errors=%d", key, exc.error_count())
                continue
            paths[path.id] = path

        achievements: List[Achievement] = []
        for key in self.keys(f"{ACHIEVEMENT_PREFIX}_{user_id}_"):
            try:
                achievements.append(Achievement.model_validate(self.get(key)))
            except ValidationError as exc:
                logger.warning("skipping_record | key=%s | errors=%d", key, exc.error_count())

        return ProgressState(learning_paths=paths, achievements=achievements)


class InMemoryProgressStore(BaseProgressStore):
    """Dict-backed store; values are JSON-compatible dicts."""

    def __init__(self) -> None:
        self._data: Dict[str, Dict[str, Any]] = {}

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        value = self._data.get(key)
        return json.loads(json.dumps(value)) if value is not None else None

    def set(self, key: str, value: Dict[str, Any]) -> None:
        self._data[key] = json.loads(json.dumps(value))

    def delete(self, key: str) -> bool:
        return self._data.pop(key, None) is not None

    def keys(self, prefix: str = "") -> List[str]:
        return sorted(k for k in self._data if k.startswith(prefix))


# =========================================================================
# SQLite-backed store
# =========================================================================

_SQLITE_LOCK_RETRIES = 5
_SQLITE_LOCK_BASE_DELAY = 0.1


def get_connection(db_path: str) -> sqlite3.Connection:
    """Return a new SQLite connection with WAL mode and row-factory enabled."""
    os.makedirs(os.path.dirname(os.path.abspath(db_path)), exist_ok=True)
    conn = sqlite3.connect(db_path, timeout=10)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL;")
    return conn


def _retry_on_lock(fn, *args, **kwargs):  # type: ignore[no-untyped-def]
    for attempt in range(1, _SQLITE_LOCK_RETRIES + 1):
        try:
            return fn(*args, **kwargs)
        except sqlite3.OperationalError as exc:
            if "locked" in str(exc).lower() and attempt < _SQLITE_LOCK_RETRIES:
                delay = _SQLITE_LOCK_BASE_DELAY * (2 ** (attempt - 1))
                logger.warning(
                    "SQLite locked (attempt %d/%d), retrying in %.2fs",
                    attempt, _SQLITE_LOCK_RETRIES, delay,
                )
                time.sleep(delay)
            else:
                raise


class ProgressStore(BaseProgressStore):
    """Records persisted in a single SQLite table."""

    def __init__(self, db_path: str) -> None:
        self.db_path = db_path
        conn = get_connection(db_path)
        try:
            conn.execute(_CREATE_PROGRESS_RECORDS)
            conn.commit()
        finally:
            conn.close()

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        conn = get_connection(self.db_path)
        try:
            row = conn.execute(
                "SELECT value FROM ProgressRecords WHERE key = ?", (key,)
            ).fetchone()
        finally:
            conn.close()
        return json.loads(row["value"]) if row else None

    def set(self, key: str, value: Dict[str, Any]) -> None:
        payload = json.dumps(value, sort_keys=True)
        now = datetime.now(timezone.utc).isoformat()

        def _do_upsert() -> None:
            conn = get_connection(self.db_path)
            try:
                conn.execute(
                    """
                    INSERT INTO ProgressRecords (key, value, updated_at)
                    VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET
                        value = excluded.value,
                        updated_at = excluded.updated_at
                    """,
                    (key, payload, now),
                )
                conn.commit()
            finally:
                conn.close()

        _retry_on_lock(_do_upsert)

    def delete(self, key: str) -> bool:
        def _do_delete() -> int:
            conn = get_connection(self.db_path)
            try:
                cursor = conn.execute("DELETE FROM ProgressRecords WHERE key = ?", (key,))
                conn.commit()
                return cursor.rowcount
            finally:
                conn.close()

        return _retry_on_lock(_do_delete) > 0

    def keys(self, prefix: str = "") -> List[str]:
        conn = get_connection(self.db_path)
        try:
            rows = conn.execute(
                "SELECT key FROM ProgressRecords WHERE substr(key, 1, ?) = ? ORDER BY key",
                (len(prefix), prefix),
            ).fetchall()
        finally:
            conn.close()
        return [r["key"] for r in rows]
