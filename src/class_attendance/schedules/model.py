from __future__ import annotations

from dataclasses import dataclass
from datetime import date, time
from typing import Optional


@dataclass(frozen=True)
class TimeSlot:
    """Domain entity: a recurring weekly teaching assignment (the "schedule")."""

    slot_id: int
    teacher_id: int
    class_id: int
    subject_id: int
    academic_period_id: int
    day_of_week: int
    start_time: time
    end_time: time
    room: Optional[str] = None
    is_active: bool = True


@dataclass(frozen=True)
class TimeSlotDraft:
    """Candidate slot checked for conflicts before it is committed."""

    teacher_id: int
    class_id: int
    subject_id: int
    academic_period_id: int
    day_of_week: int
    start_time: time
    end_time: time
    room: Optional[str] = None


@dataclass(frozen=True)
class AcademicPeriod:
    period_id: int
    name: str
    start_date: date
    end_date: date
    is_active: bool = True
