# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Override lookup.
Overrides may overlap; the most recently created one wins.
"""

from datetime import datetime
from typing import Iterable, Optional

from oncall_engine.core.logging import get_logger
from oncall_engine.models.domain import Override
from oncall_engine.repositories.override_repository import OverrideRepository

logger = get_logger(__name__)


def pick_override(candidates: Iterable[Override], at: datetime) -> Optional[Override]:
    """Choose the override in force at ``at`` among ``candidates``."""
    active = [o for o in candidates if o.covers(at)]
    if not active:
        return None
    if len(active) > 1:
        logger.debug(
            "Overlapping overrides %s at %s; newest wins",
            [o.id for o in active], at.isoformat(),
        )
    return max(active, key=lambda o: (o.created_at, o.id))


class OverrideResolver:
    """Finds the override active on a schedule at an instant."""

    def __init__(self, override_repo: OverrideRepository) -> None:
        self._overrides = override_repo

    def active_override(self, schedule_id: int, at: datetime) -> Optional[Override]:
        return pick_override(self._overrides.get_active_overrides(schedule_id, at), at)
