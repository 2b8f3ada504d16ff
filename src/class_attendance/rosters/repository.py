from __future__ import annotations

from typing import Optional, Protocol, Sequence


class RosterProvider(Protocol):
    def get_enrolled_students(self, class_id: int) -> Sequence[int]:
        """Student ids enrolled in the class right now."""

        raise NotImplementedError

    def class_of(self, student_id: int) -> Optional[int]:
        """Class the student belongs to, or None for unknown students."""

        raise NotImplementedError

    def student_exists(self, student_id: int) -> bool:
        raise NotImplementedError
