"""Selection of the words that make up a session."""
import logging
from typing import List, Optional, Sequence

from vocabulator.models.session_models import SessionKind
from vocabulator.models.vocab_models import Result, WordStat
from vocabulator.services.progress_store import ProgressStore
from vocabulator.services.vocabulary_store import VocabularyStore

logger = logging.getLogger(__name__)


class SessionQueue:
    """Ordered word ids with a cursor; rebuilt for every session."""

    def __init__(self, word_ids: Sequence[int]):
        self.word_ids: List[int] = list(word_ids)
        self.cursor = 0

    def __len__(self) -> int:
        return len(self.word_ids)

    @property
    def exhausted(self) -> bool:
        return self.cursor >= len(self.word_ids)

    def current(self) -> Optional[int]:
        return None if self.exhausted else self.word_ids[self.cursor]

    def advance(self) -> Optional[int]:
        """Move to the next word and return it, or None when exhausted."""
        if not self.exhausted:
            self.cursor += 1
        return self.current()


def is_weak(stat: WordStat, threshold: Optional[float] = None) -> bool:
    """Whether a word belongs in Revise Weak."""
    if stat.last_result is Result.WRONG:
        return True
    if threshold is not None and stat.times_seen > 0:
        return stat.accuracy < threshold
    return False


def build_queue(
    vocabulary: VocabularyStore,
    progress: ProgressStore,
    kind: SessionKind,
    group: Optional[int] = None,
    weak_threshold: Optional[float] = None,
) -> SessionQueue:
    """Build the queue for a session.

    All kinds share one order: group number, then the word's insertion
    sequence inside its group. ``group`` is required for ``SessionKind.GROUP``.
    """
    if kind is SessionKind.GROUP:
        if group is None:
            raise ValueError("group is required for a Continue Learning session")
        candidates = vocabulary.words_in_group(group)
    elif kind is SessionKind.MARKED:
        marked = progress.bookmarked_ids()
        candidates = [word for word in vocabulary if word.id in marked]
    elif kind is SessionKind.WEAK:
        candidates = [word for word in vocabulary if is_weak(progress.get(word.id), weak_threshold)]
    else:
        raise ValueError(f"Unknown session kind: {kind}")

    logger.debug(f"Built {kind.value} queue with {len(candidates)} words")
    return SessionQueue([word.id for word in candidates])
