"""Table storage for storefront.

Each table is one JSON file under the data directory. Writes take an exclusive
lock on the table and replace the file atomically; committed writes are
announced to in-process subscribers as change events.
"""

import fcntl
import json
import logging
import os
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Iterator

from . import config
from .errors import PersistenceError, SchemaVersionError
from .models import _generate_id

logger = logging.getLogger(__name__)

TABLES = (
    "products",
    "orders",
    "order_items",
    "addresses",
    "coupons",
    "expenses",
    "profiles",
)


@dataclass
class ChangeEvent:
    """A committed write to one table."""

    table: str
    event: str  # "INSERT" | "UPDATE" | "DELETE"
    row: dict[str, Any]


Subscriber = Callable[[ChangeEvent], None]


class DataStore:
    """Row-level CRUD, filtered queries and change notifications over JSON tables."""

    def __init__(self, config_dir: Path | None = None):
        """
        Initialize DataStore.

        Args:
            config_dir: Override data directory (for testing).
        """
        self.config_dir = config_dir or config.DATA_DIR
        self._subscribers: dict[str, list[Subscriber]] = {}

    def _ensure_dir(self) -> None:
        self.config_dir.mkdir(parents=True, exist_ok=True)

    def _table_path(self, table: str) -> Path:
        if table not in TABLES:
            raise PersistenceError(table, f"Unknown table: {table}")
        return self.config_dir / f"{table}.json"

    @contextmanager
    def _lock(self, table: str) -> Iterator[None]:
        """Acquire exclusive lock on a table for read-modify-write operations."""
        lock_path = self.config_dir / f".{table}.lock"
        try:
            self._ensure_dir()
            lock_file = open(lock_path, "w")
        except OSError as e:
            raise PersistenceError(table, f"Failed to lock table '{table}': {e}")

        with lock_file:
            try:
                fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX)
            except OSError as e:
                raise PersistenceError(table, f"Failed to lock table '{table}': {e}")
            try:
                yield
            finally:
                fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)

    def _load_rows(self, table: str) -> list[dict[str, Any]]:
        path = self._table_path(table)
        if not path.exists():
            return []

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise PersistenceError(table, f"Failed to read table '{table}': {e}")

        version = data.get("schema_version", 0)
        if version != config.SCHEMA_VERSION:
            raise SchemaVersionError(table, version, config.SCHEMA_VERSION)

        return data.get("rows", [])

    def _save_rows(self, table: str, rows: list[dict[str, Any]]) -> None:
        """Save a table to disk atomically."""
        path = self._table_path(table)
        data = {"schema_version": config.SCHEMA_VERSION, "rows": rows}

        try:
            self._ensure_dir()
            fd, temp_path = tempfile.mkstemp(
                dir=self.config_dir, prefix=f".{table}_", suffix=".tmp"
            )
        except OSError as e:
            raise PersistenceError(table, f"Failed to write table '{table}': {e}")

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
                f.write("\n")
            os.replace(temp_path, path)
        except Exception as e:
            try:
                os.unlink(temp_path)
            except OSError:
                pass
            raise PersistenceError(table, f"Failed to write table '{table}': {e}")

    # --- Queries ---

    def get(self, table: str, row_id: str) -> dict[str, Any] | None:
        """Get a row by id, or None."""
        for row in self._load_rows(table):
            if row.get("id") == row_id:
                return row
        return None

    def select(
        self,
        table: str,
        filters: dict[str, Any] | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """
        Select rows whose columns equal every value in `filters`.

        A filter value that is a tuple, list or set matches any of its members.
        """
        rows = self._load_rows(table)
        if filters:
            rows = [r for r in rows if _matches(r, filters)]
        if order_by:
            rows.sort(key=lambda r: (r.get(order_by) is None, r.get(order_by)), reverse=descending)
        if limit:
            rows = rows[:limit]
        return rows

    # --- Writes ---

    def insert(self, table: str, row: dict[str, Any]) -> dict[str, Any]:
        """Insert one row, assigning an id if it has none."""
        return self.insert_many(table, [row])[0]

    def insert_many(self, table: str, rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """Insert several rows in a single write; either all land or none do."""
        new_rows = []
        for row in rows:
            new_row = dict(row)
            new_row.setdefault("id", _generate_id())
            new_rows.append(new_row)

        with self._lock(table):
            existing = self._load_rows(table)
            taken = {r.get("id") for r in existing}
            for row in new_rows:
                if row["id"] in taken:
                    raise PersistenceError(table, f"Duplicate id in '{table}': {row['id']}")
                taken.add(row["id"])
            self._save_rows(table, existing + new_rows)

        for row in new_rows:
            self._notify(ChangeEvent(table=table, event="INSERT", row=dict(row)))
        return new_rows

    def update(self, table: str, row_id: str, changes: dict[str, Any]) -> dict[str, Any] | None:
        """Apply `changes` to one row. Returns the updated row, or None if missing."""
        with self._lock(table):
            rows = self._load_rows(table)
            for row in rows:
                if row.get("id") == row_id:
                    row.update(changes)
                    self._save_rows(table, rows)
                    updated = dict(row)
                    break
            else:
                return None

        self._notify(ChangeEvent(table=table, event="UPDATE", row=updated))
        return updated

    def delete(self, table: str, row_id: str) -> dict[str, Any] | None:
        """Delete one row. Returns the removed row, or None if missing."""
        with self._lock(table):
            rows = self._load_rows(table)
            for i, row in enumerate(rows):
                if row.get("id") == row_id:
                    removed = rows.pop(i)
                    self._save_rows(table, rows)
                    break
            else:
                return None

        self._notify(ChangeEvent(table=table, event="DELETE", row=removed))
        return removed

    def delete_where(self, table: str, filters: dict[str, Any]) -> int:
        """Delete every row matching `filters`. Returns the number removed."""
        with self._lock(table):
            rows = self._load_rows(table)
            kept = [r for r in rows if not _matches(r, filters)]
            removed = [r for r in rows if _matches(r, filters)]
            if removed:
                self._save_rows(table, kept)

        for row in removed:
            self._notify(ChangeEvent(table=table, event="DELETE", row=row))
        return len(removed)

    # --- Change notifications ---

    def subscribe(self, table: str, callback: Subscriber) -> Callable[[], None]:
        """
        Register a callback for committed writes to `table`.

        Returns a function that removes the subscription.
        """
        self._table_path(table)
        self._subscribers.setdefault(table, []).append(callback)

        def unsubscribe() -> None:
            callbacks = self._subscribers.get(table, [])
            if callback in callbacks:
                callbacks.remove(callback)

        return unsubscribe

    def _notify(self, event: ChangeEvent) -> None:
        for callback in list(self._subscribers.get(event.table, [])):
            try:
                callback(event)
            except Exception:
                # The write is already committed
                logger.exception("Change listener failed for %s %s", event.table, event.event)


def _matches(row: dict[str, Any], filters: dict[str, Any]) -> bool:
    for key, expected in filters.items():
        value = row.get(key)
        if isinstance(expected, (tuple, list, set, frozenset)):
            if value not in expected:
                return False
        elif value != expected:
            return False
    return True
