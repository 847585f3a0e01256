"""Tests for the guided tutorial engine."""
import pytest

from vocabulator.models.session_models import PracticeState
from vocabulator.services.tutorial import (
    SAMPLE_WORDS,
    TUTORIAL_GROUP,
    TUTORIAL_STEPS,
    StepCheck,
    Tutorial,
    ValidationResult,
    sample_vocabulary,
)

WALKTHROUGH = ["enter", "j", "k", "enter", "x", "s", "y", "m", "m", "enter", "enter", "n", "enter", "q", "enter"]


@pytest.fixture
def tutorial():
    """Fresh tutorial over a five-entry menu."""
    return Tutorial(menu_size=5)


def at_step(tutorial, index):
    tutorial.step_index = index
    return tutorial


def test_full_walkthrough(tutorial):
    """Test that the scripted keys complete every step."""
    results = [tutorial.handle(key) for key in WALKTHROUGH]

    assert results[-1] is ValidationResult.COMPLETE
    # Grading the second word does not yet reach the third one
    assert results[11] is ValidationResult.INVALID
    assert results.count(ValidationResult.INVALID) == 1
    assert tutorial.is_complete
    assert tutorial.session.closed
    assert tutorial.progress.get(-1).times_correct == 1
    assert tutorial.progress.get(-2).times_seen == 1
    assert not tutorial.progress.get(-1).bookmarked


def test_wrong_key_shows_hint_and_keeps_step(tutorial):
    """Test that an unexpected key leaves the step unchanged."""
    assert tutorial.handle("x") is ValidationResult.INVALID
    assert tutorial.step_index == 0
    assert tutorial.hint == TUTORIAL_STEPS[0].hint

    assert tutorial.handle("enter") is ValidationResult.VALID
    assert tutorial.hint is None
    assert tutorial.step_index == 1


def test_arrow_names_and_letters_both_move(tutorial):
    """Test that Down/j and Up/k complete the navigation steps."""
    at_step(tutorial, 1)
    assert tutorial.handle("down") is ValidationResult.VALID
    assert tutorial.selected == 1
    assert tutorial.handle("up") is ValidationResult.VALID
    assert tutorial.selected == 0


def test_menu_step_requires_first_entry(tutorial):
    """Test that Enter only counts with Continue Learning highlighted."""
    at_step(tutorial, 3)
    assert TUTORIAL_STEPS[3].check is StepCheck.MENU

    assert tutorial.handle("j") is ValidationResult.INVALID
    assert tutorial.handle("enter") is ValidationResult.INVALID
    assert tutorial.handle("k") is ValidationResult.INVALID
    assert tutorial.handle("enter") is ValidationResult.VALID


def test_menu_cursor_wraps(tutorial):
    """Test that moving up from the first entry wraps to the last."""
    at_step(tutorial, 1)
    tutorial.handle("k")

    assert tutorial.selected == 4


def test_grading_accepts_yes_or_no(tutorial):
    """Test that both grades complete the grading step."""
    at_step(tutorial, 6)

    assert tutorial.handle("n") is ValidationResult.VALID
    assert tutorial.session.state is PracticeState.GRADED
    assert tutorial.session.last_correct is False


def test_bookmark_steps_follow_the_flag(tutorial):
    """Test the bookmark and unbookmark steps."""
    at_step(tutorial, 7)
    assert tutorial.handle("m") is ValidationResult.VALID
    assert tutorial.current_word_bookmarked()

    assert tutorial.handle("x") is ValidationResult.INVALID
    assert tutorial.handle("m") is ValidationResult.VALID
    assert not tutorial.current_word_bookmarked()


def test_keys_outside_the_step_do_not_touch_the_session(tutorial):
    """Test that only the step's own keys act on the sample session."""
    at_step(tutorial, 5)
    assert tutorial.handle("y") is ValidationResult.INVALID

    assert tutorial.session.state is PracticeState.PRESENTING
    assert tutorial.progress.get(-1).times_seen == 0


def test_escape_leaves_practice(tutorial):
    """Test that Escape is accepted where 'q' is expected."""
    at_step(tutorial, 12)

    assert tutorial.accepts("escape")
    assert tutorial.handle("escape") is ValidationResult.VALID
    assert tutorial.session.closed


def test_accepts_only_expected_keys(tutorial):
    """Test which keys the current step expects."""
    assert tutorial.accepts("enter")
    assert not tutorial.accepts("q")


def test_handle_after_completion(tutorial):
    """Test that a finished tutorial stays complete."""
    at_step(tutorial, len(TUTORIAL_STEPS))

    assert tutorial.is_complete
    assert tutorial.handle("enter") is ValidationResult.COMPLETE
    assert tutorial.current_step is TUTORIAL_STEPS[-1]
    assert not tutorial.accepts("enter")


def test_sample_words_are_isolated():
    """Test that tutorial words cannot clash with seeded ones."""
    vocabulary = sample_vocabulary()

    assert len(vocabulary) == len(SAMPLE_WORDS)
    assert all(word.id < 0 for word in vocabulary)
    assert vocabulary.groups() == [TUTORIAL_GROUP]
    assert [word.term for word in vocabulary] == [term for term, _ in SAMPLE_WORDS]


def test_sample_progress_has_no_writer(tutorial):
    """Test that tutorial grades stay in the private store."""
    at_step(tutorial, 6)
    tutorial.handle("y")

    assert len(tutorial.progress) == 1
    tutorial.progress.flush()


if __name__ == "__main__":
    pytest.main([__file__])
