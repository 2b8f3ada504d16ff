from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import AcademicPeriod, TimeSlot, TimeSlotDraft


class TimeSlotRepository(Protocol):
    def get_by_id(self, slot_id: int) -> Optional[TimeSlot]:
        raise NotImplementedError

    def list_active_for_day(self, *, day_of_week: int, academic_period_id: int) -> Sequence[TimeSlot]:
        """Conflict-check scope: active slots of one weekday in one period."""

        raise NotImplementedError

    def list_for_teacher(
        self,
        *,
        teacher_id: int,
        academic_period_id: Optional[int] = None,
        is_active: Optional[bool] = None,
    ) -> Sequence[TimeSlot]:
        raise NotImplementedError

    def list_for_class(
        self,
        *,
        class_id: int,
        academic_period_id: Optional[int] = None,
        is_active: Optional[bool] = None,
    ) -> Sequence[TimeSlot]:
        raise NotImplementedError

    def create(self, draft: TimeSlotDraft) -> int:
        """Insert an active slot. Returns slot_id."""

        raise NotImplementedError

    def update(self, slot: TimeSlot) -> bool:
        raise NotImplementedError

    def set_active(self, *, slot_id: int, is_active: bool) -> bool:
        raise NotImplementedError

    def delete(self, *, slot_id: int) -> bool:
        raise NotImplementedError


class AcademicPeriodRepository(Protocol):
    def get_by_id(self, period_id: int) -> Optional[AcademicPeriod]:
        raise NotImplementedError
