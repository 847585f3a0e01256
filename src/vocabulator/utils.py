"""Display helpers for word statistics."""
from dataclasses import dataclass
from datetime import datetime, UTC
from typing import List, Optional

from vocabulator.models.vocab_models import WordStat
from vocabulator.services.progress_store import ProgressStore
from vocabulator.services.queue_builder import is_weak
from vocabulator.services.vocabulary_store import VocabularyStore


@dataclass
class GroupSummary:
    """Aggregated stats of one vocabulary group."""
    group: int
    words: int = 0
    seen: int = 0
    times_seen: int = 0
    times_correct: int = 0
    weak: int = 0
    marked: int = 0

    @property
    def stat(self) -> WordStat:
        return WordStat(times_seen=self.times_seen, times_correct=self.times_correct)


def group_summaries(
    vocabulary: VocabularyStore,
    progress: ProgressStore,
    weak_threshold: Optional[float] = None,
) -> List[GroupSummary]:
    """Summarize progress per group, in group order."""
    summaries = []
    for group in vocabulary.groups():
        summary = GroupSummary(group=group)
        for word in vocabulary.words_in_group(group):
            stat = progress.get(word.id)
            summary.words += 1
            summary.seen += stat.times_seen > 0
            summary.times_seen += stat.times_seen
            summary.times_correct += stat.times_correct
            summary.weak += is_weak(stat, weak_threshold)
            summary.marked += stat.bookmarked
        summaries.append(summary)
    return summaries


def relative_time(ts: Optional[datetime], now: Optional[datetime] = None) -> str:
    """Format a timestamp as "just now", "5m ago", "3h ago" or "2d ago"."""
    if ts is None:
        return "-"
    now = now or datetime.now(UTC)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=UTC)

    minutes = int((now - ts).total_seconds() // 60)
    if minutes < 1:
        return "just now"
    if minutes < 60:
        return f"{minutes}m ago"

    hours = minutes // 60
    if hours < 24:
        return f"{hours}h ago"

    return f"{hours // 24}d ago"


def format_accuracy(stat: WordStat) -> str:
    accuracy = stat.accuracy
    if accuracy is None:
        return "—"
    return f"{round(accuracy * 100)}%"
