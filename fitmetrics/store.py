"""
FitMetrics — Row Store

The engine's only view of persistence: per-user row selection, upsert on a
conflict key and per-date delete. Anything that goes wrong underneath is a
StoreError; callers decide whether that is fatal.

MemoryStore keeps rows in process and answers selects with pandas. It backs
the test suite and local scripts; RestStore (rest_store.py) talks to a
PostgREST endpoint.
"""
from abc import ABC, abstractmethod

import pandas as pd


class StoreError(Exception):
    """A read or write against the row store failed."""


def conflict_columns(on_conflict) -> tuple[str, ...]:
    """Accept "user_id,log_date" or ("user_id", "log_date")."""
    if isinstance(on_conflict, str):
        return tuple(col.strip() for col in on_conflict.split(",") if col.strip())
    return tuple(on_conflict)


class Store(ABC):

    @abstractmethod
    def select(
        self,
        table: str,
        user_id: str,
        start: str | None = None,
        end: str | None = None,
        date_column: str | None = "log_date",
    ) -> pd.DataFrame:
        """
        Rows of `table` owned by `user_id`, ascending by `date_column`.

        `start` / `end` are inclusive ISO dates on `date_column`. Pass
        date_column=None for tables that are not date-keyed.
        """

    @abstractmethod
    def upsert(self, table: str, row: dict, on_conflict=("user_id", "log_date")) -> dict:
        """Insert `row`, or merge it into the row sharing its conflict key."""

    @abstractmethod
    def delete(self, table: str, user_id: str, log_date: str) -> int:
        """Delete the user's rows for one date; returns how many went away."""


class MemoryStore(Store):
    """In-process store. `tables` seeds it as {table: [row, ...]}."""

    def __init__(self, tables: dict[str, list[dict]] | None = None):
        self._rows: dict[str, list[dict]] = {
            name: [dict(row) for row in rows] for name, rows in (tables or {}).items()
        }

    def rows(self, table: str) -> list[dict]:
        return [dict(row) for row in self._rows.get(table, [])]

    def select(self, table, user_id, start=None, end=None, date_column="log_date"):
        df = pd.DataFrame(self.rows(table))
        if df.empty:
            return df

        if "user_id" not in df.columns:
            raise StoreError(f"Table {table!r} has no user_id column")
        df = df[df["user_id"] == user_id]

        if date_column is not None and date_column in df.columns:
            if start is not None:
                df = df[df[date_column] >= start]
            if end is not None:
                df = df[df[date_column] <= end]
            df = df.sort_values(date_column, kind="stable")
        elif date_column is not None and (start is not None or end is not None):
            raise StoreError(f"Table {table!r} has no {date_column!r} column")

        return df.reset_index(drop=True)

    def upsert(self, table, row, on_conflict=("user_id", "log_date")):
        keys = conflict_columns(on_conflict)
        missing = [key for key in keys if row.get(key) is None]
        if missing:
            raise StoreError(f"Upsert into {table!r} is missing conflict key(s) {missing}")

        rows = self._rows.setdefault(table, [])
        for existing in rows:
            if all(existing.get(key) == row[key] for key in keys):
                existing.update(row)
                return dict(existing)

        rows.append(dict(row))
        return dict(row)

    def delete(self, table, user_id, log_date):
        rows = self._rows.get(table, [])
        kept = [
            row for row in rows
            if not (row.get("user_id") == user_id and row.get("log_date") == log_date)
        ]
        self._rows[table] = kept
        return len(rows) - len(kept)
