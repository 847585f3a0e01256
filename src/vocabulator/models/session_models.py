"""Models for session-related data structures."""
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class SessionKind(Enum):
    """How the words of a session are selected."""
    GROUP = "group"  # Continue Learning
    MARKED = "marked"  # Review Marks
    WEAK = "weak"  # Revise Weak

    @property
    def label(self) -> str:
        return {
            SessionKind.GROUP: "Continue Learning",
            SessionKind.MARKED: "Review Marks",
            SessionKind.WEAK: "Revise Weak",
        }[self]


class SessionMode(Enum):
    """Interaction style of a session."""
    PRACTICE = "practice"  # Learner reveals the definition and self-grades
    TEST = "test"  # Learner types the term for a shown definition


class SessionAction(Enum):
    """Abstract input events understood by the session engine."""
    SHOW_DEFINITION = "show_definition"
    GRADE_CORRECT = "grade_correct"
    GRADE_WRONG = "grade_wrong"
    TOGGLE_BOOKMARK = "toggle_bookmark"
    ADVANCE = "advance"
    BEGIN_INSERT = "begin_insert"
    APPEND_CHAR = "append_char"
    DELETE_CHAR = "delete_char"
    SUBMIT = "submit"
    EXIT_INSERT = "exit_insert"
    RETURN_TO_MENU = "return_to_menu"


class PracticeState(Enum):
    """Positions of the practice state machine."""
    PRESENTING = "presenting"  # Term shown, definition hidden
    REVEALED = "revealed"  # Definition shown
    GRADED = "graded"  # Grade recorded, waiting to advance
    COMPLETE = "complete"


class TestState(Enum):
    """Positions of the test state machine."""
    __test__ = False  # not a pytest test class

    PRESENTING = "presenting"  # Definition shown, buffer empty
    INSERTING = "inserting"  # Learner is typing
    SUBMITTED = "submitted"  # Answer graded, term revealed
    COMPLETE = "complete"


@dataclass(frozen=True)
class SessionInput:
    """One input event, with the typed character for APPEND_CHAR."""
    action: SessionAction
    char: Optional[str] = None


@dataclass(frozen=True)
class GradedNotice:
    """Emitted after a grade has been written through."""
    word_id: int
    correct: bool


@dataclass(frozen=True)
class BookmarkNotice:
    """Emitted after a bookmark has been toggled."""
    word_id: int
    bookmarked: bool


@dataclass(frozen=True)
class SessionSummary:
    """Per-session counters shown when a session ends."""
    kind: SessionKind
    mode: SessionMode
    total: int
    seen: int
    correct: int

    @property
    def wrong(self) -> int:
        return self.seen - self.correct
