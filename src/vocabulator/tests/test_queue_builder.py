"""Tests for session queue selection."""
import pytest

from vocabulator.models.session_models import SessionKind
from vocabulator.models.vocab_models import Result, WordStat
from vocabulator.services.queue_builder import SessionQueue, build_queue, is_weak


def test_group_queue_follows_sequence(vocabulary, progress):
    """Test that a group queue lists the group's words in insertion order."""
    queue = build_queue(vocabulary, progress, SessionKind.GROUP, group=1)

    assert queue.word_ids == [1, 2, 3]


def test_group_queue_requires_group(vocabulary, progress):
    """Test that Continue Learning needs a group number."""
    with pytest.raises(ValueError):
        build_queue(vocabulary, progress, SessionKind.GROUP)


def test_unknown_group_is_empty(vocabulary, progress):
    """Test that a group without words gives an empty queue."""
    queue = build_queue(vocabulary, progress, SessionKind.GROUP, group=99)

    assert len(queue) == 0
    assert queue.exhausted
    assert queue.current() is None


def test_marked_queue(vocabulary, progress):
    """Test that only bookmarked words are selected, in stable order."""
    progress.toggle_bookmark(5)
    progress.toggle_bookmark(2)
    progress.toggle_bookmark(4)
    progress.toggle_bookmark(4)

    queue = build_queue(vocabulary, progress, SessionKind.MARKED)

    assert queue.word_ids == [2, 5]


def test_marked_queue_empty(vocabulary, progress):
    """Test that no bookmarks means an empty queue."""
    assert len(build_queue(vocabulary, progress, SessionKind.MARKED)) == 0


def test_weak_queue_uses_last_result(vocabulary, progress):
    """Test that a word is weak while its last grade was wrong."""
    progress.record_grade(4, False)
    progress.record_grade(1, False)
    progress.record_grade(2, False)
    progress.record_grade(2, True)

    queue = build_queue(vocabulary, progress, SessionKind.WEAK)

    assert queue.word_ids == [1, 4]


def test_weak_queue_skips_stats_of_unknown_words(vocabulary, progress):
    """Test that stats of words missing from the vocabulary are skipped."""
    progress.record_grade(100, False)

    assert len(build_queue(vocabulary, progress, SessionKind.WEAK)) == 0


def test_weak_threshold(vocabulary, progress):
    """Test that a threshold also selects low-accuracy words."""
    for grade in (False, False, True):
        progress.record_grade(3, grade)

    assert build_queue(vocabulary, progress, SessionKind.WEAK).word_ids == []
    assert build_queue(vocabulary, progress, SessionKind.WEAK, weak_threshold=0.5).word_ids == [3]


def test_is_weak():
    """Test the weak-word rule directly."""
    assert not is_weak(WordStat())
    assert is_weak(WordStat(times_seen=1, times_correct=0, last_result=Result.WRONG))
    assert not is_weak(WordStat(times_seen=4, times_correct=1, last_result=Result.CORRECT))
    assert is_weak(WordStat(times_seen=4, times_correct=1, last_result=Result.CORRECT), threshold=0.5)
    assert not is_weak(WordStat(), threshold=0.5)


def test_session_queue_cursor():
    """Test advancing through a queue."""
    queue = SessionQueue([10, 20])

    assert queue.current() == 10
    assert queue.advance() == 20
    assert queue.advance() is None
    assert queue.exhausted
    assert queue.advance() is None
    assert queue.cursor == 2


if __name__ == "__main__":
    pytest.main([__file__])
