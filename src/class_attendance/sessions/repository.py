from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import SessionStatus
from .model import Session


class SessionRepository(Protocol):
    def get_by_id(self, session_id: int) -> Optional[Session]:
        raise NotImplementedError

    def get_for_slot_and_date(self, *, slot_id: int, session_date: date) -> Optional[Session]:
        raise NotImplementedError

    def create(
        self,
        *,
        slot_id: int,
        session_date: date,
        started_at: datetime,
        created_by: int,
        notes: Optional[str] = None,
    ) -> int:
        """Insert an ``ongoing`` session. Returns session_id.

        Raises ConflictError if (slot_id, session_date) already exists.
        """

        raise NotImplementedError

    def update_status(self, *, session_id: int, status: SessionStatus, ended_at: Optional[datetime]) -> bool:
        raise NotImplementedError

    def list_for_slot(self, slot_id: int) -> Sequence[Session]:
        """Newest first."""

        raise NotImplementedError

    def list_for_slots(self, *, slot_ids: Sequence[int], start_date: date, end_date: date) -> Sequence[Session]:
        raise NotImplementedError

    def list_matching(
        self,
        *,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        class_id: Optional[int] = None,
        teacher_id: Optional[int] = None,
    ) -> Sequence[Session]:
        """Sessions in the date range, of one class (via its slot) and/or created by one teacher."""

        raise NotImplementedError

    def list_ongoing_for_teacher(self, teacher_id: int) -> Sequence[Session]:
        raise NotImplementedError

    def count_for_slot(self, slot_id: int) -> int:
        raise NotImplementedError
