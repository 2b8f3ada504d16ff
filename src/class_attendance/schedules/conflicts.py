"""Scheduling conflict detection.

A candidate slot conflicts with an existing one when both are active, share the
day of week and academic period, belong to the same teacher (or the same class)
and their half-open intervals overlap. Rooms are not compared.

The check is two linear scans over one day's slots of one period, so O(n) in a
number that stays small (a handful of slots per teacher or class per day).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import time
from typing import Iterable, Optional, Union

from ..common.datetime_utils import format_time
from .model import TimeSlot, TimeSlotDraft

Candidate = Union[TimeSlot, TimeSlotDraft]


@dataclass(frozen=True)
class ConflictResult:
    conflict: bool
    reason: Optional[str] = None


NO_CONFLICT = ConflictResult(conflict=False, reason=None)


def overlaps(a_start: time, a_end: time, b_start: time, b_end: time) -> bool:
    """Half-open overlap: touching endpoints do not overlap."""
    return a_start < b_end and b_start < a_end


class TimeConflictDetector:
    """Pure predicate over existing time slots; no side effects."""

    def check_conflict(
        self,
        candidate: Candidate,
        existing: Iterable[TimeSlot],
        *,
        exclude_slot_id: Optional[int] = None,
    ) -> ConflictResult:
        scope = [
            s
            for s in existing
            if s.is_active
            and s.day_of_week == candidate.day_of_week
            and s.academic_period_id == candidate.academic_period_id
            and (exclude_slot_id is None or s.slot_id != exclude_slot_id)
        ]

        # Teacher-side first: its message wins when both sides collide.
        for s in scope:
            if s.teacher_id == candidate.teacher_id and self._overlaps(candidate, s):
                return ConflictResult(conflict=True, reason=f"Teacher has conflicting schedule at {self._span(s)}")

        for s in scope:
            if s.class_id == candidate.class_id and self._overlaps(candidate, s):
                return ConflictResult(conflict=True, reason=f"Class has conflicting schedule at {self._span(s)}")

        return NO_CONFLICT

    @staticmethod
    def _overlaps(candidate: Candidate, existing: TimeSlot) -> bool:
        return overlaps(candidate.start_time, candidate.end_time, existing.start_time, existing.end_time)

    @staticmethod
    def _span(slot: TimeSlot) -> str:
        return f"{format_time(slot.start_time)}-{format_time(slot.end_time)}"
