# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Repository: Override data access.
Manages the in-memory store of on-call overrides.
"""

import itertools
import threading
from datetime import datetime
from typing import Optional

from oncall_engine.models.domain import Override


class OverrideRepository:
    """In-memory override storage."""

    def __init__(self, lock: Optional[threading.RLock] = None) -> None:
        self.lock = lock or threading.RLock()
        self._store: dict[int, Override] = {}
        self._ids = itertools.count(1)

    # ── Read ──

    def get(self, override_id: int) -> Optional[Override]:
        with self.lock:
            override = self._store.get(override_id)
            return override.model_copy() if override else None

    def get_by_schedule(self, schedule_id: int) -> list[Override]:
        with self.lock:
            result = [
                o.model_copy()
                for o in self._store.values()
                if o.schedule_id == schedule_id
            ]
        return sorted(result, key=lambda o: (o.start_time, o.id))

    def get_active_overrides(self, schedule_id: int, at: datetime) -> list[Override]:
        """Every override on the schedule whose window contains ``at``."""
        with self.lock:
            return [
                o.model_copy()
                for o in self._store.values()
                if o.schedule_id == schedule_id and o.covers(at)
            ]

    def find_overlapping(
        self,
        schedule_id: int,
        start_time: datetime,
        end_time: datetime,
        exclude_id: Optional[int] = None,
    ) -> list[Override]:
        with self.lock:
            return [
                o.model_copy()
                for o in self._store.values()
                if o.schedule_id == schedule_id
                and o.id != exclude_id
                and o.start_time <= end_time
                and o.end_time >= start_time
            ]

    def count(self) -> int:
        with self.lock:
            return len(self._store)

    # ── Write ──

    def add(self, **fields) -> Override:
        with self.lock:
            override = Override(id=next(self._ids), **fields)
            self._store[override.id] = override
            return override.model_copy()

    def save(self, override: Override) -> None:
        with self.lock:
            self._store[override.id] = override.model_copy()

    def delete(self, override_id: int) -> Optional[Override]:
        with self.lock:
            return self._store.pop(override_id, None)

    def delete_by_schedule(
        self, schedule_id: int, ended_before: Optional[datetime] = None
    ) -> int:
        """Drop a schedule's overrides, optionally only those already ended."""
        with self.lock:
            doomed = [
                o.id
                for o in self._store.values()
                if o.schedule_id == schedule_id
                and (ended_before is None or o.end_time <= ended_before)
            ]
            for oid in doomed:
                del self._store[oid]
            return len(doomed)

    # ── Bulk / internal ──

    def clear(self) -> None:
        with self.lock:
            self._store.clear()
            self._ids = itertools.count(1)
