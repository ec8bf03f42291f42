"""Timeline entity: the global submission window."""

from dataclasses import dataclass
from datetime import date


@dataclass(frozen=True)
class Timeline:
    """Submission window, inclusive on both ends."""

    start_date: date
    end_date: date

    def contains(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date
