# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
FastAPI dependency injection: wire repositories and services.
"""

import threading

from oncall_engine.repositories.schedule_repository import ScheduleRepository
from oncall_engine.repositories.override_repository import OverrideRepository
from oncall_engine.repositories.history_repository import HistoryRepository
from oncall_engine.services.timezone import TimeZoneConverter
from oncall_engine.services.rotation import RotationEngine
from oncall_engine.services.override_resolver import OverrideResolver
from oncall_engine.services.oncall_resolver import OnCallResolver
from oncall_engine.services.schedule_service import ScheduleService

# ── Singleton repository instances (in-memory stores, one shared lock) ──
_store_lock = threading.RLock()
_schedule_repo = ScheduleRepository(lock=_store_lock)
_override_repo = OverrideRepository(lock=_store_lock)
_history_repo = HistoryRepository()
_converter = TimeZoneConverter()

# ── Service instances (with injected dependencies) ──
_schedule_service = ScheduleService(
    schedule_repo=_schedule_repo,
    override_repo=_override_repo,
    history_repo=_history_repo,
    converter=_converter,
)
_override_resolver = OverrideResolver(override_repo=_override_repo)
_oncall_resolver = OnCallResolver(
    schedule_repo=_schedule_repo,
    override_repo=_override_repo,
    rotation_engine=RotationEngine(_converter),
)


# ── FastAPI dependency functions ──
def get_schedule_service() -> ScheduleService:
    return _schedule_service


def get_oncall_resolver() -> OnCallResolver:
    return _oncall_resolver


def get_override_resolver() -> OverrideResolver:
    return _override_resolver


def get_schedule_repo() -> ScheduleRepository:
    return _schedule_repo


def get_override_repo() -> OverrideRepository:
    return _override_repo


def get_history_repo() -> HistoryRepository:
    return _history_repo
