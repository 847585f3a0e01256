"""Guided tutorial: a scripted walk through the menu and a practice session."""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, FrozenSet, List, Optional, Tuple

from vocabulator.models.session_models import SessionAction, SessionInput, SessionKind, SessionMode
from vocabulator.models.vocab_models import Word
from vocabulator.services.progress_store import ProgressStore
from vocabulator.services.session_engine import PracticeSession, start_session
from vocabulator.services.vocabulary_store import VocabularyStore

logger = logging.getLogger(__name__)

TUTORIAL_GROUP = -1

# Sample words get negative ids so they can never collide with seeded words
SAMPLE_WORDS: Tuple[Tuple[str, str], ...] = (
    ("ephemeral", "lasting for a very short time"),
    ("ubiquitous", "present, appearing, or found everywhere"),
    ("serendipity", "the occurrence of events by chance in a happy way"),
    ("eloquent", "fluent or persuasive in speaking or writing"),
    ("pragmatic", "dealing with things sensibly and realistically"),
)

MENU_KEYS = frozenset({"down", "j", "up", "k"})
PRACTICE_KEYS = frozenset({"s", "y", "n", "m", "enter"})

SESSION_ACTIONS = {
    "s": SessionAction.SHOW_DEFINITION,
    "y": SessionAction.GRADE_CORRECT,
    "n": SessionAction.GRADE_WRONG,
    "m": SessionAction.TOGGLE_BOOKMARK,
    "enter": SessionAction.ADVANCE,
    "q": SessionAction.RETURN_TO_MENU,
    "escape": SessionAction.RETURN_TO_MENU,
}


class StepCheck(Enum):
    """How a tutorial step decides it is done."""
    KEY = "key"
    ANY_KEY = "any_key"
    MENU = "menu"
    STATE = "state"


class TutorialScreen(Enum):
    MENU = "menu"
    SESSION = "session"


class ValidationResult(Enum):
    VALID = "valid"
    INVALID = "invalid"
    COMPLETE = "complete"


@dataclass(frozen=True)
class TutorialStep:
    """One instruction and the check that completes it.

    ``controls`` are the keys that act on the menu or the sample session
    while the step is shown; any other key is only checked.
    """
    instruction: str
    hint: str
    check: StepCheck
    screen: TutorialScreen
    keys: Tuple[str, ...] = ()
    menu_index: Optional[int] = None
    condition: Optional[Callable[["Tutorial"], bool]] = None
    controls: FrozenSet[str] = frozenset()


TUTORIAL_STEPS: List[TutorialStep] = [
    TutorialStep(
        "Welcome to Vocabulator! This tutorial shows you how to use the app. Press Enter to continue.",
        "Press Enter to proceed.",
        StepCheck.KEY, TutorialScreen.MENU, keys=("enter",),
    ),
    TutorialStep(
        "Use the Down arrow or 'j' to move down in the menu. Try it now.",
        "Press Down or 'j' to move the selection down.",
        StepCheck.KEY, TutorialScreen.MENU, keys=("down", "j"), controls=MENU_KEYS,
    ),
    TutorialStep(
        "Use the Up arrow or 'k' to move back up.",
        "Press Up or 'k' to move the selection up.",
        StepCheck.KEY, TutorialScreen.MENU, keys=("up", "k"), controls=MENU_KEYS,
    ),
    TutorialStep(
        "Press Enter on 'Continue Learning' to start a practice session.",
        "Highlight 'Continue Learning' with j/k, then press Enter.",
        StepCheck.MENU, TutorialScreen.MENU, menu_index=0, controls=MENU_KEYS,
    ),
    TutorialStep(
        "This is a vocabulary word. Try to recall its definition before revealing it. Press any key.",
        "Press any key to continue.",
        StepCheck.ANY_KEY, TutorialScreen.SESSION,
    ),
    TutorialStep(
        "Press 's' to show the definition.",
        "Press 's' to reveal the definition.",
        StepCheck.KEY, TutorialScreen.SESSION, keys=("s",), controls=frozenset({"s"}),
    ),
    TutorialStep(
        "Grade yourself honestly: 'y' if you knew it, 'n' if you didn't.",
        "Press 'y' for correct or 'n' for incorrect.",
        StepCheck.KEY, TutorialScreen.SESSION, keys=("y", "n"), controls=frozenset({"y", "n"}),
    ),
    TutorialStep(
        "Press 'm' to bookmark this word.",
        "Press 'm' to toggle the bookmark.",
        StepCheck.STATE, TutorialScreen.SESSION,
        condition=lambda tutorial: tutorial.current_word_bookmarked(),
        controls=frozenset({"m"}),
    ),
    TutorialStep(
        "Press 'm' again to remove the bookmark.",
        "Press 'm' to toggle the bookmark off.",
        StepCheck.STATE, TutorialScreen.SESSION,
        condition=lambda tutorial: not tutorial.current_word_bookmarked(),
        controls=frozenset({"m"}),
    ),
    TutorialStep(
        "Bookmarked words can be reviewed later with 'Review Marks' from the main menu. Press Enter to continue.",
        "Press Enter to continue.",
        StepCheck.KEY, TutorialScreen.SESSION, keys=("enter",),
    ),
    TutorialStep(
        "Press Enter to move to the next word.",
        "Press Enter to advance to the next word.",
        StepCheck.STATE, TutorialScreen.SESSION,
        condition=lambda tutorial: tutorial.session.queue.cursor >= 1,
        controls=frozenset({"enter"}),
    ),
    TutorialStep(
        "Practice a few more words with 's', 'y'/'n', 'm' and Enter.",
        "Grade this word and press Enter to reach the next one.",
        StepCheck.STATE, TutorialScreen.SESSION,
        condition=lambda tutorial: tutorial.session.queue.cursor >= 2,
        controls=PRACTICE_KEYS,
    ),
    TutorialStep(
        "Press 'q' or Escape to return to the main menu.",
        "Press 'q' or Escape to leave the practice session.",
        StepCheck.KEY, TutorialScreen.SESSION, keys=("q", "escape"), controls=frozenset({"q", "escape"}),
    ),
    TutorialStep(
        "Well done! Test mode works the same way, except you type the word for the definition. "
        "Your progress is saved as you go. Press Enter to finish.",
        "Press Enter to complete the tutorial.",
        StepCheck.KEY, TutorialScreen.MENU, keys=("enter",),
    ),
]


def sample_vocabulary() -> VocabularyStore:
    """Tutorial words, kept apart from the seeded vocabulary."""
    return VocabularyStore(
        Word(-(index + 1), TUTORIAL_GROUP, index + 1, term, definition)
        for index, (term, definition) in enumerate(SAMPLE_WORDS)
    )


class Tutorial:
    """Step engine over a sample practice session.

    Grades and bookmarks made here land in a private progress store without a
    writer, so the learner's real progress is never touched.
    """

    def __init__(self, menu_size: int = 5, steps: Optional[List[TutorialStep]] = None):
        self.steps = steps or TUTORIAL_STEPS
        self.menu_size = menu_size
        self.step_index = 0
        self.selected = 0
        self.hint: Optional[str] = None
        self.vocabulary = sample_vocabulary()
        self.progress = ProgressStore()
        self.session: PracticeSession = start_session(
            self.vocabulary, self.progress, SessionKind.GROUP, SessionMode.PRACTICE, group=TUTORIAL_GROUP
        )
        logger.info(f"Tutorial started with {len(self.steps)} steps")

    @property
    def total_steps(self) -> int:
        return len(self.steps)

    @property
    def is_complete(self) -> bool:
        return self.step_index >= len(self.steps)

    @property
    def current_step(self) -> TutorialStep:
        return self.steps[min(self.step_index, len(self.steps) - 1)]

    def accepts(self, key: str) -> bool:
        """Whether the current step expects this key."""
        return not self.is_complete and key in self.current_step.keys

    def current_word_bookmarked(self) -> bool:
        word = self.session.current_word
        return word is not None and self.progress.get(word.id).bookmarked

    def handle(self, key: str) -> ValidationResult:
        """Apply a key to the current step and check whether the step is done."""
        if self.is_complete:
            return ValidationResult.COMPLETE

        step = self.current_step
        if key in step.controls:
            self._apply(step, key)

        if not self._satisfied(step, key):
            self.hint = step.hint
            return ValidationResult.INVALID

        self.hint = None
        self.step_index += 1
        if self.is_complete:
            logger.info("Tutorial completed")
            return ValidationResult.COMPLETE
        logger.debug(f"Tutorial moved to step {self.step_index + 1}/{self.total_steps}")
        return ValidationResult.VALID

    def _apply(self, step: TutorialStep, key: str) -> None:
        if step.screen is TutorialScreen.MENU:
            if key in ("down", "j"):
                self.selected = (self.selected + 1) % self.menu_size
            elif key in ("up", "k"):
                self.selected = (self.selected - 1) % self.menu_size
            return
        action = SESSION_ACTIONS.get(key)
        if action is not None:
            self.session.handle(SessionInput(action))

    def _satisfied(self, step: TutorialStep, key: str) -> bool:
        if step.check is StepCheck.ANY_KEY:
            return True
        if step.check is StepCheck.KEY:
            return key in step.keys
        if step.check is StepCheck.MENU:
            return key == "enter" and self.selected == step.menu_index
        return step.condition(self)
