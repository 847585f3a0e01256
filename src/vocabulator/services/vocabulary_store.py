"""Read-only catalog of seeded words."""
from collections import defaultdict
from typing import Dict, Iterable, Iterator, List, Optional

from vocabulator.models.vocab_models import Word


class VocabularyStore:
    """Immutable collection of words indexed by id and by group."""

    def __init__(self, words: Iterable[Word] = ()):
        ordered = sorted(words, key=lambda w: (w.group, w.sequence, w.id))
        self._words: Dict[int, Word] = {word.id: word for word in ordered}
        self._by_group: Dict[int, List[Word]] = defaultdict(list)
        for word in ordered:
            self._by_group[word.group].append(word)

    def __len__(self) -> int:
        return len(self._words)

    def __iter__(self) -> Iterator[Word]:
        """Iterate in stable order: group, then sequence inside the group."""
        return iter(self._words.values())

    def __contains__(self, word_id: object) -> bool:
        return word_id in self._words

    def get(self, word_id: int) -> Optional[Word]:
        return self._words.get(word_id)

    def __getitem__(self, word_id: int) -> Word:
        return self._words[word_id]

    def groups(self) -> List[int]:
        """Group numbers in ascending order."""
        return sorted(self._by_group)

    def words_in_group(self, group: int) -> List[Word]:
        return list(self._by_group.get(group, ()))

    def find_by_term(self, term: str) -> Optional[Word]:
        for word in self._words.values():
            if word.term == term:
                return word
        return None
