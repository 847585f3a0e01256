"""In-memory progress store with write-through persistence."""
import logging
from datetime import datetime, UTC
from typing import Dict, Mapping, Optional, Protocol

from vocabulator import monitoring
from vocabulator.exceptions import VocabulatorError
from vocabulator.models.base import as_utc
from vocabulator.models.vocab_models import Result, WordStat

logger = logging.getLogger(__name__)


class StatWriter(Protocol):
    """Anything that can durably record a single word's stat."""

    def submit(self, word_id: int, stat: WordStat) -> None: ...

    def drain(self) -> None: ...


class ProgressStore:
    """Per-word statistics keyed by word id.

    ``record_grade`` and ``toggle_bookmark`` are the only mutators; each hands
    a snapshot of the changed stat to the bound writer before returning.
    """

    def __init__(self, stats: Optional[Mapping[int, WordStat]] = None, writer: Optional[StatWriter] = None):
        self._stats: Dict[int, WordStat] = {
            word_id: stat.copy() for word_id, stat in (stats or {}).items()
        }
        self._writer = writer

    def bind_writer(self, writer: Optional[StatWriter]) -> None:
        """Attach the writer that receives every change."""
        self._writer = writer

    def __len__(self) -> int:
        return len(self._stats)

    def __contains__(self, word_id: object) -> bool:
        return word_id in self._stats

    def get(self, word_id: int) -> WordStat:
        """Get a copy of the stat for a word; unseen words get a default stat."""
        stat = self._stats.get(word_id)
        return stat.copy() if stat is not None else WordStat()

    def record_grade(self, word_id: int, is_correct: bool, now: Optional[datetime] = None) -> WordStat:
        """Record one completed grading event."""
        stat = self.get(word_id)
        stat.times_seen += 1
        if is_correct:
            stat.times_correct += 1
        stat.last_seen = as_utc(now) if now is not None else datetime.now(UTC)
        stat.last_result = Result.CORRECT if is_correct else Result.WRONG
        if not stat.is_valid():
            raise VocabulatorError(
                f"Word {word_id} has {stat.times_correct} correct out of {stat.times_seen} seen"
            )
        self._stats[word_id] = stat

        monitoring.grades_recorded.labels(result=stat.last_result.value).inc()
        logger.debug(f"Graded word {word_id}: {stat.last_result.value} ({stat.times_correct}/{stat.times_seen})")
        self._write_through(word_id, stat)
        return stat.copy()

    def toggle_bookmark(self, word_id: int) -> bool:
        """Flip the bookmark flag and return its new value."""
        stat = self._stats.setdefault(word_id, WordStat())
        stat.bookmarked = not stat.bookmarked

        monitoring.bookmark_toggles.inc()
        logger.debug(f"Bookmark for word {word_id} set to {stat.bookmarked}")
        self._write_through(word_id, stat)
        return stat.bookmarked

    def _write_through(self, word_id: int, stat: WordStat) -> None:
        if self._writer is None:
            return
        self._writer.submit(word_id, stat.copy())

    def flush(self) -> None:
        """Block until every change handed to the writer is stored."""
        if self._writer is not None:
            self._writer.drain()

    def snapshot(self) -> Dict[int, WordStat]:
        """Deep copy of all stats, used for saving."""
        return {word_id: stat.copy() for word_id, stat in self._stats.items()}

    def bookmarked_ids(self) -> set:
        return {word_id for word_id, stat in self._stats.items() if stat.bookmarked}
