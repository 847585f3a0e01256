"""Session engine: the Practice and Test interaction state machines."""
import logging
from abc import ABC, abstractmethod
from datetime import datetime, UTC
from typing import Callable, ClassVar, Dict, FrozenSet, List, Optional, Union, final

from vocabulator import monitoring
from vocabulator.exceptions import InvalidTransition
from vocabulator.models.session_models import (
    BookmarkNotice,
    GradedNotice,
    PracticeState,
    SessionAction,
    SessionInput,
    SessionKind,
    SessionMode,
    SessionSummary,
    TestState,
)
from vocabulator.models.vocab_models import Word
from vocabulator.services.progress_store import ProgressStore
from vocabulator.services.queue_builder import SessionQueue, build_queue
from vocabulator.services.vocabulary_store import VocabularyStore

logger = logging.getLogger(__name__)

Notice = Union[GradedNotice, BookmarkNotice]
Listener = Callable[[Notice], None]
Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(UTC)


def answers_match(answer: str, term: str) -> bool:
    """Case-insensitive exact comparison of a typed answer with the term."""
    return answer.strip().casefold() == term.casefold()


class BaseSession(ABC):
    """Common machinery for both session modes.

    A session owns its queue, the current word's state and the per-session
    counters. Grades and bookmark toggles go straight to the progress store,
    which writes them through before the next event is handled.
    """

    """Fields and methods that must be implemented by subclasses."""
    mode: ClassVar[SessionMode]
    state_type: ClassVar[type]
    transitions: ClassVar[Dict[object, FrozenSet[object]]]

    @abstractmethod
    def _handlers(self) -> Dict[SessionAction, Callable[[SessionInput], bool]]:
        """Map the actions this mode understands to their handlers."""
        raise NotImplementedError("Subclasses must implement this method")

    @abstractmethod
    def _reset_word_state(self) -> None:
        """Clear per-word state before the next word is presented."""
        raise NotImplementedError("Subclasses must implement this method")

    @abstractmethod
    def _bookmark_allowed(self) -> bool:
        raise NotImplementedError("Subclasses must implement this method")

    @abstractmethod
    def _advance_allowed(self) -> bool:
        raise NotImplementedError("Subclasses must implement this method")

    """Fields and methods that must not be overridden by subclasses."""

    @final
    def __init__(
        self,
        vocabulary: VocabularyStore,
        progress: ProgressStore,
        queue: SessionQueue,
        kind: SessionKind,
        clock: Optional[Clock] = None,
    ):
        self.vocabulary = vocabulary
        self.progress = progress
        self.queue = queue
        self.kind = kind
        self.clock = clock or utc_now
        self.seen = 0
        self.correct = 0
        self.closed = False
        self._listeners: List[Listener] = []
        self._reset_word_state()
        self._state = self.state_type.PRESENTING
        monitoring.sessions_started.labels(kind=kind.value, mode=self.mode.value).inc()
        logger.info(f"Started {self.mode.value} session '{kind.label}' with {len(queue)} words")
        if queue.exhausted:
            self._complete()

    @property
    def state(self):
        return self._state

    @property
    def is_complete(self) -> bool:
        return self._state is self.state_type.COMPLETE

    @property
    def current_word(self) -> Optional[Word]:
        if self.is_complete:
            return None
        word_id = self.queue.current()
        return self.vocabulary.get(word_id) if word_id is not None else None

    def subscribe(self, listener: Listener) -> None:
        """Register a callable that receives grade and bookmark notices."""
        self._listeners.append(listener)

    @final
    def handle(self, event: SessionInput) -> bool:
        """Apply one input event. Returns False when it does not apply now."""
        if self.closed:
            return False
        common = {
            SessionAction.TOGGLE_BOOKMARK: lambda _: self.toggle_bookmark(),
            SessionAction.ADVANCE: lambda _: self.advance(),
            SessionAction.RETURN_TO_MENU: lambda _: self.return_to_menu() is not None,
        }
        handler = common.get(event.action) or self._handlers().get(event.action)
        if handler is None:
            logger.debug(f"{self.mode.value} session ignores {event.action.value}")
            return False
        return handler(event)

    @final
    def toggle_bookmark(self) -> bool:
        if self.closed or self.is_complete or not self._bookmark_allowed():
            return False
        word = self.current_word
        bookmarked = self.progress.toggle_bookmark(word.id)
        self._notify(BookmarkNotice(word.id, bookmarked))
        return True

    @final
    def advance(self) -> bool:
        if self.closed or self.is_complete or not self._advance_allowed():
            return False
        self.queue.advance()
        self._reset_word_state()
        if self.queue.exhausted:
            self._complete()
        else:
            self._move_to(self.state_type.PRESENTING)
        return True

    @final
    def return_to_menu(self) -> Optional[SessionSummary]:
        """Close the session, wait for pending writes and return its summary."""
        if self.closed:
            return None
        self.progress.flush()
        self.closed = True
        logger.info(f"Closed {self.mode.value} session: {self.seen} seen, {self.correct} correct")
        return self.summary()

    def summary(self) -> SessionSummary:
        return SessionSummary(
            kind=self.kind,
            mode=self.mode,
            total=len(self.queue),
            seen=self.seen,
            correct=self.correct,
        )

    @final
    def _grade(self, is_correct: bool) -> None:
        word = self.current_word
        self.progress.record_grade(word.id, is_correct, self.clock())
        self.seen += 1
        if is_correct:
            self.correct += 1
        self._notify(GradedNotice(word.id, is_correct))

    @final
    def _complete(self) -> None:
        self._move_to(self.state_type.COMPLETE)
        self.progress.flush()
        monitoring.sessions_completed.labels(kind=self.kind.value, mode=self.mode.value).inc()
        logger.info(f"{self.mode.value.capitalize()} session '{self.kind.label}' complete")

    @final
    def _move_to(self, new_state) -> None:
        if new_state not in self.transitions[self._state]:
            raise InvalidTransition(f"{self.mode.value}: {self._state.value} -> {new_state.value}")
        self._state = new_state

    def _notify(self, notice: Notice) -> None:
        for listener in self._listeners:
            try:
                listener(notice)
            except Exception as e:
                logger.error(f"Session listener failed on {notice}: {e}")


class PracticeSession(BaseSession):
    """Term shown first; the learner reveals the definition and self-grades."""
    mode = SessionMode.PRACTICE
    state_type = PracticeState
    transitions = {
        PracticeState.PRESENTING: frozenset({PracticeState.REVEALED, PracticeState.GRADED, PracticeState.COMPLETE}),
        PracticeState.REVEALED: frozenset({PracticeState.GRADED}),
        PracticeState.GRADED: frozenset({PracticeState.PRESENTING, PracticeState.COMPLETE}),
        PracticeState.COMPLETE: frozenset(),
    }

    def _handlers(self):
        return {
            SessionAction.SHOW_DEFINITION: lambda _: self.show_definition(),
            SessionAction.GRADE_CORRECT: lambda _: self.grade(True),
            SessionAction.GRADE_WRONG: lambda _: self.grade(False),
        }

    def _reset_word_state(self) -> None:
        self.definition_visible = False
        self.last_correct: Optional[bool] = None

    def _bookmark_allowed(self) -> bool:
        return True

    def _advance_allowed(self) -> bool:
        return self._state is PracticeState.GRADED

    def show_definition(self) -> bool:
        if self.closed or self._state is not PracticeState.PRESENTING:
            return False
        self.definition_visible = True
        self._move_to(PracticeState.REVEALED)
        return True

    def grade(self, is_correct: bool) -> bool:
        """Self-grade the current word; presenting and revealed both accept it."""
        if self.closed or self._state not in (PracticeState.PRESENTING, PracticeState.REVEALED):
            return False
        self.definition_visible = True
        self.last_correct = is_correct
        self._grade(is_correct)
        self._move_to(PracticeState.GRADED)
        return True


class TestSession(BaseSession):
    """Definition shown first; the learner types the term."""
    __test__ = False  # not a pytest test class

    mode = SessionMode.TEST
    state_type = TestState
    transitions = {
        TestState.PRESENTING: frozenset({TestState.INSERTING, TestState.COMPLETE}),
        TestState.INSERTING: frozenset({TestState.PRESENTING, TestState.SUBMITTED}),
        TestState.SUBMITTED: frozenset({TestState.PRESENTING, TestState.COMPLETE}),
        TestState.COMPLETE: frozenset(),
    }

    def _handlers(self):
        return {
            SessionAction.BEGIN_INSERT: lambda _: self.begin_insert(),
            SessionAction.APPEND_CHAR: lambda event: self.append_char(event.char or ""),
            SessionAction.DELETE_CHAR: lambda _: self.delete_char(),
            SessionAction.SUBMIT: lambda _: self.submit(),
            SessionAction.EXIT_INSERT: lambda _: self.exit_insert(),
        }

    def _reset_word_state(self) -> None:
        self.buffer = ""
        self.last_answer: Optional[str] = None
        self.last_correct: Optional[bool] = None

    def _bookmark_allowed(self) -> bool:
        # Typing must not be disturbed
        return self._state is not TestState.INSERTING

    def _advance_allowed(self) -> bool:
        return self._state is TestState.SUBMITTED

    @property
    def term_visible(self) -> bool:
        return self._state is TestState.SUBMITTED

    def begin_insert(self) -> bool:
        if self.closed or self._state is not TestState.PRESENTING:
            return False
        self.buffer = ""
        self._move_to(TestState.INSERTING)
        return True

    def append_char(self, char: str) -> bool:
        if self.closed or self._state is not TestState.INSERTING or not char:
            return False
        self.buffer += char
        return True

    def delete_char(self) -> bool:
        if self.closed or self._state is not TestState.INSERTING:
            return False
        self.buffer = self.buffer[:-1]
        return True

    def exit_insert(self) -> bool:
        """Leave typing without grading; the typed text is discarded."""
        if self.closed or self._state is not TestState.INSERTING:
            return False
        self.buffer = ""
        self._move_to(TestState.PRESENTING)
        return True

    def submit(self) -> bool:
        if self.closed or self._state is not TestState.INSERTING:
            return False
        word = self.current_word
        self.last_answer = self.buffer
        self.last_correct = answers_match(self.buffer, word.term)
        self._grade(self.last_correct)
        self._move_to(TestState.SUBMITTED)
        return True


SESSION_CLASSES = {
    SessionMode.PRACTICE: PracticeSession,
    SessionMode.TEST: TestSession,
}


def start_session(
    vocabulary: VocabularyStore,
    progress: ProgressStore,
    kind: SessionKind,
    mode: SessionMode,
    group: Optional[int] = None,
    weak_threshold: Optional[float] = None,
    clock: Optional[Clock] = None,
) -> BaseSession:
    """Build a fresh queue and start a session over it."""
    queue = build_queue(vocabulary, progress, kind, group=group, weak_threshold=weak_threshold)
    return SESSION_CLASSES[mode](vocabulary, progress, queue, kind, clock=clock)
