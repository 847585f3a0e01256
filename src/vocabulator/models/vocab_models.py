"""Plain data structures shared by the stores and the session engine."""
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Optional


class Result(Enum):
    """Outcome of a single grading event."""
    CORRECT = "correct"
    WRONG = "wrong"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["Result"]:
        """Parse a stored value, mapping unknown values to None."""
        try:
            return cls(value) if value is not None else None
        except ValueError:
            return None


@dataclass(frozen=True)
class Word:
    """Immutable vocabulary entry."""
    id: int
    group: int
    sequence: int
    term: str
    definition: str


@dataclass
class WordStat:
    """Learning statistics for one word."""
    times_seen: int = 0
    times_correct: int = 0
    last_seen: Optional[datetime] = None
    last_result: Optional[Result] = None
    bookmarked: bool = False

    @property
    def accuracy(self) -> Optional[float]:
        """Share of correct grades, None while unseen."""
        if self.times_seen == 0:
            return None
        return self.times_correct / self.times_seen

    def is_valid(self) -> bool:
        return 0 <= self.times_correct <= self.times_seen

    def copy(self) -> "WordStat":
        return replace(self)
