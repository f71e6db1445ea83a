# src/taskpulse/storage/task_store.py

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import sqlite3
import time
import uuid
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from ..core.errors import TransientFetchError
from ..core.models import CompletionLogEntry, LogAction, Task

logger = logging.getLogger(__name__)


def _ts_to_dt(raw: Any) -> datetime | None:
    if raw is None:
        return None
    return datetime.fromtimestamp(float(raw), tz=UTC)


class TaskStore:
    """
    SQLite task + task log store.

    The core only reads from it (due tasks, completion log). The write helpers exist
    for the CLI and tests; every write that changes a task appends a task_logs row.

    The schema is migration-safe:
    - create tables if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Thread-safety:
    - each method opens its own SQLite connection
    """

    def __init__(self, db_path: str | Path = "taskpulse.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        try:
            total = self.count_tasks()
        except Exception:
            total = -1
        logger.info("TaskStore ready db=%s total=%s", self._db_path, total)

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        with contextlib.suppress(Exception):
            conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()

            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    title TEXT NOT NULL,
                    description TEXT,
                    due_date REAL,
                    completed INTEGER NOT NULL DEFAULT 0,
                    priority INTEGER NOT NULL DEFAULT 3,
                    category_id TEXT,
                    tags TEXT NOT NULL DEFAULT '[]',
                    order_index INTEGER NOT NULL DEFAULT 0,
                    created_at REAL NOT NULL,
                    updated_at REAL NOT NULL
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS task_logs (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    task_id TEXT NOT NULL,
                    user_id TEXT NOT NULL,
                    action TEXT NOT NULL,
                    completed_at REAL NOT NULL
                )
                """
            )

            cur.execute("PRAGMA table_info(tasks)")
            cols = {row["name"] for row in cur.fetchall()}

            def add_col(name: str, decl: str) -> None:
                if name in cols:
                    return
                cur.execute(f"ALTER TABLE tasks ADD COLUMN {name} {decl}")
                logger.info("TaskStore migration: added column %s", name)

            add_col("category_id", "TEXT")
            add_col("tags", "TEXT NOT NULL DEFAULT '[]'")
            add_col("order_index", "INTEGER NOT NULL DEFAULT 0")

            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_user_due ON tasks(user_id, completed, due_date)")
            cur.execute(
                "CREATE INDEX IF NOT EXISTS idx_task_logs_user_action ON task_logs(user_id, action, completed_at)"
            )

            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _tags_to_str(tags: list[str] | None) -> str:
        return json.dumps(list(tags or []), ensure_ascii=False)

    @staticmethod
    def _str_to_tags(s: str | None) -> list[str]:
        if not s:
            return []
        try:
            val = json.loads(s)
        except ValueError:
            return []
        return [str(t) for t in val] if isinstance(val, list) else []

    def _row_to_task(self, row: sqlite3.Row) -> Task:
        created = _ts_to_dt(row["created_at"]) or datetime.fromtimestamp(0, tz=UTC)
        return Task(
            id=str(row["id"]),
            user_id=str(row["user_id"]),
            title=str(row["title"] or ""),
            description=row["description"],
            due_date=_ts_to_dt(row["due_date"]),
            completed=bool(row["completed"]),
            priority=int(row["priority"] or 3),
            category_id=row["category_id"],
            tags=self._str_to_tags(row["tags"]),
            order_index=int(row["order_index"] or 0),
            created_at=created,
            updated_at=_ts_to_dt(row["updated_at"]) or created,
        )

    @staticmethod
    def _append_log(cur: sqlite3.Cursor, task_id: str, user_id: str, action: LogAction, ts: float) -> None:
        cur.execute(
            "INSERT INTO task_logs(task_id, user_id, action, completed_at) VALUES (?, ?, ?, ?)",
            (task_id, user_id, action.value, ts),
        )

    # ---- write API (CLI / tests) ----

    def count_tasks(self) -> int:
        conn = self._get_conn()
        try:
            (n,) = conn.execute("SELECT COUNT(*) FROM tasks").fetchone()
            return int(n)
        finally:
            conn.close()

    def add_task(
        self,
        *,
        user_id: str,
        title: str,
        description: str | None = None,
        due_date: datetime | None = None,
        priority: int = 3,
        category_id: str | None = None,
        tags: list[str] | None = None,
    ) -> Task:
        if not title or not title.strip():
            raise ValueError("title is required")

        now = time.time()
        task_id = uuid.uuid4().hex
        due_ts = due_date.timestamp() if due_date is not None else None

        conn = self._get_conn()
        try:
            cur = conn.cursor()
            (max_order,) = cur.execute(
                "SELECT COALESCE(MAX(order_index), -1) FROM tasks WHERE user_id = ?", (user_id,)
            ).fetchone()
            cur.execute(
                """
                INSERT INTO tasks(
                    id, user_id, title, description, due_date, completed,
                    priority, category_id, tags, order_index, created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, 0, ?, ?, ?, ?, ?, ?)
                """,
                (
                    task_id,
                    user_id,
                    title.strip(),
                    description,
                    due_ts,
                    int(max(1, min(5, priority))),
                    category_id,
                    self._tags_to_str(tags),
                    int(max_order) + 1,
                    now,
                    now,
                ),
            )
            self._append_log(cur, task_id, user_id, LogAction.CREATED, now)
            conn.commit()
            logger.debug("Task added id=%s user=%s due=%s", task_id, user_id, due_ts)
        finally:
            conn.close()

        task = self.get_task(task_id)
        if task is None:
            raise RuntimeError(f"Task {task_id} vanished right after insert")
        return task

    def get_task(self, task_id: str) -> Task | None:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
            return self._row_to_task(row) if row else None
        finally:
            conn.close()

    def list_tasks(self, user_id: str) -> list[Task]:
        conn = self._get_conn()
        try:
            rows = conn.execute(
                "SELECT * FROM tasks WHERE user_id = ? ORDER BY completed ASC, order_index ASC",
                (user_id,),
            ).fetchall()
            return [self._row_to_task(r) for r in rows]
        finally:
            conn.close()

    def complete_task(self, task_id: str, *, completed_at: datetime | None = None) -> Task | None:
        """Mark a task completed and append a `completed` log entry."""
        ts = completed_at.timestamp() if completed_at is not None else time.time()
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            row = cur.execute("SELECT user_id FROM tasks WHERE id = ?", (task_id,)).fetchone()
            if row is None:
                return None
            cur.execute(
                "UPDATE tasks SET completed = 1, updated_at = ? WHERE id = ?",
                (time.time(), task_id),
            )
            self._append_log(cur, task_id, str(row["user_id"]), LogAction.COMPLETED, ts)
            conn.commit()
        finally:
            conn.close()
        return self.get_task(task_id)

    def delete_task(self, task_id: str) -> bool:
        conn = self._get_conn()
        try:
            cur = conn.execute("DELETE FROM tasks WHERE id = ?", (task_id,))
            conn.commit()
            return cur.rowcount == 1
        finally:
            conn.close()

    # ---- read API consumed by the core ----

    def _list_due_tasks(self, user_id: str) -> list[Task]:
        conn = self._get_conn()
        try:
            rows = conn.execute(
                """
                SELECT *
                FROM tasks
                WHERE user_id = ?
                  AND completed = 0
                  AND due_date IS NOT NULL
                ORDER BY due_date ASC
                """,
                (user_id,),
            ).fetchall()
            return [self._row_to_task(r) for r in rows]
        finally:
            conn.close()

    def _list_completions(self, user_id: str, since_ts: float) -> list[CompletionLogEntry]:
        conn = self._get_conn()
        try:
            rows = conn.execute(
                """
                SELECT l.task_id AS log_task_id,
                       l.user_id AS log_user_id,
                       l.action AS log_action,
                       l.completed_at AS log_completed_at,
                       t.*
                FROM task_logs l
                LEFT JOIN tasks t ON t.id = l.task_id
                WHERE l.user_id = ?
                  AND l.action = 'completed'
                  AND l.completed_at >= ?
                ORDER BY l.completed_at DESC
                """,
                (user_id, float(since_ts)),
            ).fetchall()
            out: list[CompletionLogEntry] = []
            for r in rows:
                completed_at = _ts_to_dt(r["log_completed_at"])
                if completed_at is None:
                    continue
                out.append(
                    CompletionLogEntry(
                        task_id=str(r["log_task_id"]),
                        user_id=str(r["log_user_id"]),
                        action=LogAction.from_db(r["log_action"]),
                        completed_at=completed_at,
                        task=self._row_to_task(r) if r["id"] is not None else None,
                    )
                )
            return out
        finally:
            conn.close()

    async def list_due_tasks(self, user_id: str) -> list[Task]:
        try:
            return await asyncio.to_thread(self._list_due_tasks, user_id)
        except sqlite3.Error as e:
            raise TransientFetchError(f"due task query failed: {e}") from e

    async def list_completions(self, user_id: str, *, since: datetime) -> list[CompletionLogEntry]:
        try:
            return await asyncio.to_thread(self._list_completions, user_id, since.timestamp())
        except sqlite3.Error as e:
            raise TransientFetchError(f"completion log query failed: {e}") from e
