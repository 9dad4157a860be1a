# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Repository: Schedule, rotation and user data access.
Encapsulates all read/write operations on the in-memory store.
NO business rules here, pure CRUD plus the read-side queries used by
the resolver. Every read returns a deep copy so callers never observe a
later write.
"""

import itertools
import threading
from datetime import datetime
from typing import Optional

from oncall_engine.models.domain import Member, Rotation, Schedule, User


class ScheduleRepository:
    """In-memory schedule storage."""

    def __init__(self, lock: Optional[threading.RLock] = None) -> None:
        self.lock = lock or threading.RLock()
        self._users: dict[int, User] = {}
        self._schedules: dict[int, Schedule] = {}
        self._rotations: dict[int, Rotation] = {}
        self._user_ids = itertools.count(1)
        self._schedule_ids = itertools.count(1)
        self._rotation_ids = itertools.count(1)

    # ── Read: users ──

    def get_user(self, user_id: int) -> Optional[User]:
        with self.lock:
            user = self._users.get(user_id)
            return user.model_copy() if user else None

    def get_users(self, user_ids: list[int]) -> dict[int, User]:
        with self.lock:
            return {
                uid: self._users[uid].model_copy()
                for uid in user_ids
                if uid in self._users
            }

    def get_all_users(self) -> list[User]:
        with self.lock:
            return [u.model_copy() for u in self._users.values()]

    # ── Read: schedules ──

    def get_schedule(self, schedule_id: int) -> Optional[Schedule]:
        with self.lock:
            schedule = self._schedules.get(schedule_id)
            return schedule.model_copy() if schedule else None

    def get_all(self, team_id: Optional[int] = None) -> list[Schedule]:
        with self.lock:
            return [
                s.model_copy()
                for s in self._schedules.values()
                if team_id is None or s.team_id == team_id
            ]

    def exists(self, schedule_id: int) -> bool:
        with self.lock:
            return schedule_id in self._schedules

    def count(self) -> int:
        with self.lock:
            return len(self._schedules)

    # ── Read: rotations ──

    def get_rotation(self, rotation_id: int) -> Optional[Rotation]:
        with self.lock:
            rotation = self._rotations.get(rotation_id)
            return rotation.model_copy(deep=True) if rotation else None

    def get_rotations(self, schedule_id: int) -> list[Rotation]:
        with self.lock:
            return sorted(
                (
                    r.model_copy(deep=True)
                    for r in self._rotations.values()
                    if r.schedule_id == schedule_id
                ),
                key=lambda r: r.id,
            )

    def get_active_rotations(self, schedule_id: int, at: datetime) -> list[Rotation]:
        """Rotations whose effective window contains ``at``, stable order."""
        with self.lock:
            active = [
                r.model_copy(deep=True)
                for r in self._rotations.values()
                if r.schedule_id == schedule_id and r.is_active(at)
            ]
        return sorted(active, key=lambda r: (r.effective_from, r.id))

    def rotation_count(self) -> int:
        with self.lock:
            return len(self._rotations)

    def member_count(self) -> int:
        with self.lock:
            return sum(len(r.members) for r in self._rotations.values())

    # ── Write ──

    def add_user(self, name: str, email: str, user_id: Optional[int] = None) -> User:
        """Insert a user, keeping ``user_id`` when the platform supplies one."""
        with self.lock:
            if user_id is None:
                user_id = next(self._user_ids)
                while user_id in self._users:
                    user_id = next(self._user_ids)
            user = User(id=user_id, name=name, email=email)
            self._users[user.id] = user
            return user.model_copy()

    def add_schedule(self, **fields) -> Schedule:
        with self.lock:
            schedule = Schedule(id=next(self._schedule_ids), **fields)
            self._schedules[schedule.id] = schedule
            return schedule.model_copy()

    def save_schedule(self, schedule: Schedule) -> None:
        with self.lock:
            self._schedules[schedule.id] = schedule.model_copy()

    def add_rotation(self, user_ids: list[int], **fields) -> Rotation:
        """Insert a rotation and its members in the given order."""
        with self.lock:
            rotation_id = next(self._rotation_ids)
            rotation = Rotation(
                id=rotation_id,
                members=self._pack_members(rotation_id, user_ids),
                **fields,
            )
            self._rotations[rotation_id] = rotation
            return rotation.model_copy(deep=True)

    def save_rotation(self, rotation: Rotation) -> None:
        with self.lock:
            self._rotations[rotation.id] = rotation.model_copy(deep=True)

    def set_members(self, rotation_id: int, user_ids: list[int]) -> Optional[Rotation]:
        """Replace the member list wholesale, positions rebuilt as 0..n-1."""
        with self.lock:
            rotation = self._rotations.get(rotation_id)
            if rotation is None:
                return None
            rotation.members = self._pack_members(rotation_id, user_ids)
            return rotation.model_copy(deep=True)

    def delete_rotation(self, rotation_id: int) -> Optional[Rotation]:
        with self.lock:
            return self._rotations.pop(rotation_id, None)

    def delete_schedule(self, schedule_id: int) -> Optional[Schedule]:
        """Remove a schedule and cascade to its rotations."""
        with self.lock:
            for rid in [
                r.id for r in self._rotations.values() if r.schedule_id == schedule_id
            ]:
                del self._rotations[rid]
            return self._schedules.pop(schedule_id, None)

    # ── Bulk / internal ──

    @staticmethod
    def _pack_members(rotation_id: int, user_ids: list[int]) -> list[Member]:
        return [
            Member(rotation_id=rotation_id, user_id=uid, position=index)
            for index, uid in enumerate(user_ids)
        ]

    def clear(self) -> None:
        with self.lock:
            self._users.clear()
            self._schedules.clear()
            self._rotations.clear()
            self._user_ids = itertools.count(1)
            self._schedule_ids = itertools.count(1)
            self._rotation_ids = itertools.count(1)
