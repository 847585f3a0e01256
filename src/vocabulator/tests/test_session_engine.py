"""Tests for the practice and test session state machines."""
import pytest

from vocabulator.exceptions import InvalidTransition
from vocabulator.models.session_models import (
    BookmarkNotice,
    GradedNotice,
    PracticeState,
    SessionAction,
    SessionInput,
    SessionKind,
    SessionMode,
    TestState,
)
from vocabulator.models.vocab_models import Result
from vocabulator.services.session_engine import (
    PracticeSession,
    TestSession,
    answers_match,
    start_session,
)


@pytest.fixture
def practice(vocabulary, progress, fixed_clock):
    """Practice session over group 1."""
    return start_session(vocabulary, progress, SessionKind.GROUP, SessionMode.PRACTICE, group=1, clock=fixed_clock)


@pytest.fixture
def quiz(vocabulary, progress, fixed_clock):
    """Test session over group 1."""
    return start_session(vocabulary, progress, SessionKind.GROUP, SessionMode.TEST, group=1, clock=fixed_clock)


def type_answer(session, text):
    """Type an answer through the event interface."""
    session.handle(SessionInput(SessionAction.BEGIN_INSERT))
    for char in text:
        session.handle(SessionInput(SessionAction.APPEND_CHAR, char))


@pytest.mark.parametrize("answer,term,expected", [
    ("Serendipity", "serendipity", True),
    ("serendipity", "serendipity", True),
    ("SERENDIPITY", "serendipity", True),
    ("  serendipity ", "serendipity", True),
    ("serendipty", "serendipity", False),
    ("", "serendipity", False),
])
def test_answers_match(answer, term, expected):
    """Test case-insensitive answer comparison."""
    assert answers_match(answer, term) is expected


def test_start_session_classes(practice, quiz):
    """Test that the mode selects the session class."""
    assert isinstance(practice, PracticeSession)
    assert isinstance(quiz, TestSession)
    assert practice.state is PracticeState.PRESENTING
    assert quiz.state is TestState.PRESENTING
    assert practice.current_word.term == "serendipity"


def test_practice_full_flow(practice, progress, fixed_clock):
    """Test show, grade and advance through a whole group."""
    assert practice.show_definition()
    assert practice.state is PracticeState.REVEALED
    assert practice.definition_visible

    assert practice.grade(True)
    assert practice.state is PracticeState.GRADED
    assert practice.advance()

    assert practice.state is PracticeState.PRESENTING
    assert not practice.definition_visible
    assert practice.current_word.term == "ephemeral"

    practice.grade(False)
    practice.advance()
    practice.grade(True)
    practice.advance()

    assert practice.is_complete
    assert practice.current_word is None
    summary = practice.summary()
    assert summary.total == 3
    assert summary.seen == 3
    assert summary.correct == 2
    assert summary.wrong == 1

    stat = progress.get(1)
    assert stat.times_seen == 1
    assert stat.last_seen == fixed_clock()
    assert progress.get(2).last_result is Result.WRONG


def test_practice_grade_without_reveal(practice, progress):
    """Test that grading straight from presenting is accepted."""
    assert practice.grade(False)

    assert practice.state is PracticeState.GRADED
    assert practice.definition_visible
    assert progress.get(1).times_seen == 1


def test_practice_second_grade_ignored(practice, progress):
    """Test that a word can only be graded once per presentation."""
    practice.grade(True)

    assert not practice.grade(False)
    assert not practice.show_definition()
    stat = progress.get(1)
    assert stat.times_seen == 1
    assert stat.last_result is Result.CORRECT


def test_practice_advance_requires_grade(practice):
    """Test that Enter does nothing before grading."""
    assert not practice.advance()
    practice.show_definition()
    assert not practice.advance()
    assert practice.current_word.id == 1


def test_practice_bookmark_in_any_state(practice, progress):
    """Test bookmarking in presenting, revealed and graded states."""
    assert practice.toggle_bookmark()
    practice.show_definition()
    assert practice.toggle_bookmark()
    practice.grade(True)
    assert practice.toggle_bookmark()

    stat = progress.get(1)
    assert stat.bookmarked
    assert stat.times_seen == 1


def test_test_session_correct_answer(quiz, progress):
    """Test typing the term with different case."""
    assert not quiz.term_visible
    type_answer(quiz, "SERENdipity")
    assert quiz.buffer == "SERENdipity"

    assert quiz.submit()

    assert quiz.state is TestState.SUBMITTED
    assert quiz.term_visible
    assert quiz.last_correct is True
    assert quiz.last_answer == "SERENdipity"
    assert progress.get(1).last_result is Result.CORRECT


def test_test_session_wrong_answer(quiz, progress):
    """Test that a misspelling is graded wrong."""
    type_answer(quiz, "serendipty")
    quiz.handle(SessionInput(SessionAction.SUBMIT))

    assert quiz.last_correct is False
    stat = progress.get(1)
    assert stat.times_seen == 1
    assert stat.times_correct == 0


def test_test_session_delete_char(quiz):
    """Test backspace while typing."""
    type_answer(quiz, "lucidd")
    quiz.handle(SessionInput(SessionAction.DELETE_CHAR))

    assert quiz.buffer == "lucid"


def test_exit_insert_discards_buffer(quiz, progress):
    """Test that leaving insert mode grades nothing and clears the buffer."""
    type_answer(quiz, "seren")

    assert quiz.exit_insert()

    assert quiz.state is TestState.PRESENTING
    assert quiz.buffer == ""
    assert 1 not in progress
    assert quiz.begin_insert()
    assert quiz.buffer == ""


def test_submit_requires_insert(quiz, progress):
    """Test that submit outside insert mode is ignored."""
    assert not quiz.submit()
    assert not quiz.append_char("x")
    assert 1 not in progress


def test_bookmark_ignored_while_inserting(quiz, progress):
    """Test that the bookmark key is not handled during typing."""
    quiz.begin_insert()

    assert not quiz.toggle_bookmark()
    assert not progress.get(1).bookmarked

    quiz.exit_insert()
    assert quiz.toggle_bookmark()
    assert progress.get(1).bookmarked


def test_test_session_advance(quiz):
    """Test that advancing needs a submitted answer."""
    assert not quiz.advance()
    type_answer(quiz, "serendipity")
    quiz.submit()

    assert quiz.advance()
    assert quiz.current_word.term == "ephemeral"
    assert quiz.buffer == ""
    assert quiz.last_correct is None


def test_empty_group_completes_immediately(vocabulary, progress):
    """Test that a session with no words is complete from the start."""
    session = start_session(vocabulary, progress, SessionKind.GROUP, SessionMode.PRACTICE, group=99)

    assert session.is_complete
    assert session.current_word is None
    assert not session.handle(SessionInput(SessionAction.GRADE_CORRECT))
    assert session.summary().total == 0


def test_empty_marked_session(vocabulary, progress):
    """Test that Review Marks without bookmarks is complete."""
    session = start_session(vocabulary, progress, SessionKind.MARKED, SessionMode.PRACTICE)

    assert session.is_complete


def test_return_to_menu(practice, progress, mocker):
    """Test that returning flushes writes and closes the session."""
    flush = mocker.spy(progress, "flush")
    practice.grade(True)

    summary = practice.return_to_menu()

    flush.assert_called()
    assert practice.closed
    assert summary.seen == 1
    assert not practice.handle(SessionInput(SessionAction.ADVANCE))
    assert practice.return_to_menu() is None


def test_handle_ignores_foreign_actions(practice, quiz):
    """Test that each mode ignores the other mode's actions."""
    assert not practice.handle(SessionInput(SessionAction.BEGIN_INSERT))
    assert not quiz.handle(SessionInput(SessionAction.SHOW_DEFINITION))
    assert practice.state is PracticeState.PRESENTING
    assert quiz.state is TestState.PRESENTING


def test_listeners_receive_notices(practice):
    """Test that listeners see grades and bookmarks."""
    notices = []
    practice.subscribe(notices.append)

    practice.handle(SessionInput(SessionAction.TOGGLE_BOOKMARK))
    practice.handle(SessionInput(SessionAction.GRADE_WRONG))

    assert notices == [BookmarkNotice(1, True), GradedNotice(1, False)]


def test_failing_listener_does_not_break_session(practice, progress):
    """Test that listener errors are logged and swallowed."""
    def broken(notice):
        raise RuntimeError("speaker unplugged")

    practice.subscribe(broken)

    assert practice.grade(True)
    assert progress.get(1).times_correct == 1


def test_invalid_transition_raises(practice):
    """Test that the transition table rejects moves it does not list."""
    with pytest.raises(InvalidTransition):
        practice._move_to(PracticeState.PRESENTING)


def test_wrong_answer_moves_word_through_weak_review(vocabulary, progress):
    """Test a word missed in a test, then fixed in Revise Weak."""
    session = start_session(vocabulary, progress, SessionKind.GROUP, SessionMode.TEST, group=1)
    type_answer(session, "serendipty")
    session.submit()
    session.return_to_menu()

    weak = start_session(vocabulary, progress, SessionKind.WEAK, SessionMode.PRACTICE)
    assert weak.queue.word_ids == [1]
    weak.grade(True)
    weak.advance()
    assert weak.is_complete

    stat = progress.get(1)
    assert stat.times_seen == 2
    assert stat.times_correct == 1
    assert start_session(vocabulary, progress, SessionKind.WEAK, SessionMode.PRACTICE).is_complete


if __name__ == "__main__":
    pytest.main([__file__])
