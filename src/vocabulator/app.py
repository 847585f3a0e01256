"""Interactive terminal application."""
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

import click

from vocabulator.config import settings
from vocabulator.exceptions import IoFailure, VocabulatorError
from vocabulator.models.session_models import (
    GradedNotice,
    SessionAction,
    SessionInput,
    SessionKind,
    SessionMode,
    SessionSummary,
    TestState,
)
from vocabulator.services.background_writer import BackgroundWriter
from vocabulator.services.persistence import PersistenceGateway
from vocabulator.services.progress_store import ProgressStore
from vocabulator.services.session_engine import BaseSession, PracticeSession, TestSession, start_session
from vocabulator.services.tutorial import Tutorial, TutorialScreen, ValidationResult
from vocabulator.services.vocabulary_store import VocabularyStore
from vocabulator.utils import format_accuracy, relative_time

logger = logging.getLogger(__name__)

ENTER_KEYS = ("\r", "\n")
ESCAPE = "\x1b"
BACKSPACE_KEYS = ("\x7f", "\x08")
UP_KEYS = ("k", "\x1b[A")
DOWN_KEYS = ("j", "\x1b[B")

KEY_NAMES = {
    "\r": "enter",
    "\n": "enter",
    ESCAPE: "escape",
    "\x1b[A": "up",
    "\x1b[B": "down",
}

TUTORIAL_PROMPT = ("Start Tutorial", "Skip to Main Menu")

PRACTICE_KEYS = {
    "s": SessionAction.SHOW_DEFINITION,
    "y": SessionAction.GRADE_CORRECT,
    "n": SessionAction.GRADE_WRONG,
    "m": SessionAction.TOGGLE_BOOKMARK,
    "q": SessionAction.RETURN_TO_MENU,
}

TEST_KEYS = {
    "i": SessionAction.BEGIN_INSERT,
    "m": SessionAction.TOGGLE_BOOKMARK,
    "q": SessionAction.RETURN_TO_MENU,
}


def translate_key(session: BaseSession, key: str) -> Optional[SessionInput]:
    """Map a raw key to the session input it stands for, if any."""
    if isinstance(session, TestSession) and session.state is TestState.INSERTING:
        if key == ESCAPE:
            return SessionInput(SessionAction.EXIT_INSERT)
        if key in ENTER_KEYS:
            return SessionInput(SessionAction.SUBMIT)
        if key in BACKSPACE_KEYS:
            return SessionInput(SessionAction.DELETE_CHAR)
        if len(key) == 1 and key.isprintable():
            return SessionInput(SessionAction.APPEND_CHAR, key)
        return None

    if key in ENTER_KEYS:
        return SessionInput(SessionAction.ADVANCE)
    if key == ESCAPE:
        return SessionInput(SessionAction.RETURN_TO_MENU)
    keymap = PRACTICE_KEYS if isinstance(session, PracticeSession) else TEST_KEYS
    action = keymap.get(key)
    return SessionInput(action) if action else None


def key_name(key: str) -> str:
    """Name of a special key; printable keys stand for themselves."""
    return KEY_NAMES.get(key, key)


def terminal_bell(notice) -> None:
    """Audio cue for a wrong answer."""
    if isinstance(notice, GradedNotice) and not notice.correct:
        click.echo("\a", nl=False)


@dataclass(frozen=True)
class MenuItem:
    label: str
    kind: Optional[SessionKind] = None
    tutorial: bool = False


class VocabulatorApp:
    """Main application class: menu, sessions and shutdown."""

    def __init__(
        self,
        gateway: PersistenceGateway,
        vocabulary: VocabularyStore,
        progress: ProgressStore,
        read_key: Optional[Callable[[], str]] = None,
        weak_threshold: Optional[float] = None,
        sound: Optional[bool] = None,
    ):
        """Initialize the application with loaded stores."""
        self.gateway = gateway
        self.vocabulary = vocabulary
        self.progress = progress
        self.read_key = read_key or click.getchar
        self.weak_threshold = (
            settings.learning.weak_accuracy_threshold if weak_threshold is None else weak_threshold
        )
        self.sound = settings.interface.sound_enabled if sound is None else sound
        self.writer: Optional[BackgroundWriter] = None
        self.selected = 0
        self.error: Optional[str] = None
        self.running = False

    @property
    def menu_items(self) -> List[MenuItem]:
        group = self.current_group()
        label = SessionKind.GROUP.label if group is None else f"{SessionKind.GROUP.label} (group {group})"
        return [
            MenuItem(label, SessionKind.GROUP),
            MenuItem(SessionKind.MARKED.label, SessionKind.MARKED),
            MenuItem(SessionKind.WEAK.label, SessionKind.WEAK),
            MenuItem("Restart Tutorial", tutorial=True),
            MenuItem("Exit"),
        ]

    def start(self) -> None:
        """Start the background writer."""
        if self.running:
            return
        self.writer = BackgroundWriter(self.gateway)
        self.progress.bind_writer(self.writer)
        self.running = True
        logger.info("Application started")

    def stop(self) -> None:
        """Drain pending writes before the process exits."""
        if not self.running:
            return
        self.writer.close()
        if self.writer.pending_failures:
            logger.warning("Some progress writes failed; saving the whole store once more")
            try:
                self.gateway.save(self.progress)
            except VocabulatorError as e:
                logger.error(f"Final save failed: {e}")
                click.echo(f"Warning: progress could not be saved: {e}", err=True)
        self.progress.bind_writer(None)
        self.writer = None
        self.running = False
        logger.info("Application stopped")

    def run(self) -> int:
        """Run the menu loop until the learner quits."""
        self.start()
        try:
            if not self.gateway.load_tutorial_completed():
                self.prompt_tutorial()
            while True:
                self.render_menu()
                key = self.read_key()
                self.error = None
                if key in ("q", ESCAPE):
                    break
                if key in DOWN_KEYS:
                    self.selected = (self.selected + 1) % len(self.menu_items)
                elif key in UP_KEYS:
                    self.selected = (self.selected - 1) % len(self.menu_items)
                elif key in ENTER_KEYS:
                    item = self.menu_items[self.selected]
                    if item.tutorial:
                        self.restart_tutorial()
                    elif item.kind is None:
                        break
                    else:
                        self.open(item.kind)
        finally:
            self.stop()
        return 0

    def current_group(self) -> Optional[int]:
        """Group Continue Learning works on; wraps to the first group."""
        groups = self.vocabulary.groups()
        if not groups:
            return None
        group = self.gateway.load_current_group()
        return group if group in groups else groups[0]

    def advance_group(self, group: int) -> int:
        groups = self.vocabulary.groups()
        later = [g for g in groups if g > group]
        next_group = later[0] if later else groups[0]
        self.gateway.save_current_group(next_group)
        logger.info(f"Continue Learning moves from group {group} to group {next_group}")
        return next_group

    def open(self, kind: SessionKind) -> None:
        """Run the sessions behind a menu entry."""
        if kind is SessionKind.GROUP:
            group = self.current_group()
            if group is None:
                self.error = "Word list is empty. Run 'vocabulator seed <path>' first."
                return
            # The group moves on only after both modes ran to completion
            if self.play(kind, SessionMode.PRACTICE, group) and self.play(kind, SessionMode.TEST, group):
                try:
                    self.advance_group(group)
                except IoFailure as e:
                    logger.error(f"Could not move to the next group: {e}")
                    self.error = str(e)
            return
        self.play(kind, SessionMode.PRACTICE)

    def play(self, kind: SessionKind, mode: SessionMode, group: Optional[int] = None) -> bool:
        """Drive one session; True when the learner went through every word."""
        session = start_session(
            self.vocabulary,
            self.progress,
            kind,
            mode,
            group=group,
            weak_threshold=self.weak_threshold,
        )
        if self.sound:
            session.subscribe(terminal_bell)

        while not session.is_complete and not session.closed:
            self.render_session(session)
            event = translate_key(session, self.read_key())
            if event is not None:
                session.handle(event)

        completed = session.is_complete
        summary = session.return_to_menu()
        if summary is not None and completed:
            self.render_summary(summary)
            self.read_key()
        return completed

    def prompt_tutorial(self) -> None:
        """First-launch choice between the tutorial and the main menu."""
        selected = 0
        while True:
            self.render_prompt(selected)
            key = key_name(self.read_key())
            if key in ("down", "j"):
                selected = (selected + 1) % len(TUTORIAL_PROMPT)
            elif key in ("up", "k"):
                selected = (selected - 1) % len(TUTORIAL_PROMPT)
            elif key == "enter":
                if selected == 0:
                    self.run_tutorial()
                return
            elif key in ("q", "escape"):
                return

    def restart_tutorial(self) -> None:
        try:
            self.gateway.save_tutorial_completed(False)
        except IoFailure as e:
            logger.error(f"Could not reset the tutorial: {e}")
            self.error = f"Failed to restart tutorial: {e}"
            return
        self.run_tutorial()

    def run_tutorial(self) -> bool:
        """Walk through the tutorial; True when every step was completed.

        'q' and Escape ask for confirmation unless the current step expects
        them. Leaving early does not record the tutorial as completed.
        """
        tutorial = Tutorial(menu_size=len(self.menu_items))
        if self.sound:
            tutorial.session.subscribe(terminal_bell)
        confirm_exit = False
        while True:
            self.render_tutorial(tutorial, confirm_exit)
            key = key_name(self.read_key())
            if confirm_exit:
                if key in ("y", "Y"):
                    logger.info(f"Tutorial left at step {tutorial.step_index + 1}/{tutorial.total_steps}")
                    return False
                if key in ("n", "N", "escape"):
                    confirm_exit = False
                continue
            if key in ("q", "escape") and not tutorial.accepts(key):
                confirm_exit = True
                continue
            if tutorial.handle(key) is ValidationResult.COMPLETE:
                break

        try:
            self.gateway.save_tutorial_completed(True)
        except IoFailure as e:
            logger.error(f"Could not record tutorial completion: {e}")
        self.render_tutorial_done()
        self.read_key()
        return True

    def render_menu(self) -> None:
        click.clear()
        click.secho("Vocabulator", bold=True)
        click.echo()
        for index, item in enumerate(self.menu_items):
            marker = "> " if index == self.selected else "  "
            click.echo(f"{marker}{item.label}")
        click.echo()
        click.echo("j/k move  Enter select  q quit")
        if self.error:
            click.secho(self.error, fg="red")

    def render_session(self, session: BaseSession, progress: Optional[ProgressStore] = None) -> None:
        word = session.current_word
        stat = (progress if progress is not None else self.progress).get(word.id)
        click.clear()
        position = f"{session.queue.cursor + 1}/{len(session.queue)}"
        click.secho(f"{session.kind.label} - {session.mode.value} {position}", bold=True)
        click.echo(
            f"seen {stat.times_seen}  accuracy {format_accuracy(stat)}  "
            f"last {relative_time(stat.last_seen)}{'  [marked]' if stat.bookmarked else ''}"
        )
        click.echo()

        if isinstance(session, PracticeSession):
            click.secho(word.term, bold=True)
            if session.definition_visible:
                click.echo(word.definition)
            if session.last_correct is not None:
                click.secho("correct" if session.last_correct else "wrong",
                            fg="green" if session.last_correct else "red")
            click.echo()
            click.echo("s show  y knew it  n didn't  m mark  Enter next  q menu")
            return

        click.echo(word.definition)
        click.echo()
        if session.state is TestState.INSERTING:
            click.echo(f"> {session.buffer}_")
            click.echo()
            click.echo("Enter submit  Backspace delete  Esc stop typing")
            return
        if session.term_visible:
            click.echo(f"> {session.last_answer}")
            colour = "green" if session.last_correct else "red"
            click.secho(f"{'correct' if session.last_correct else 'wrong'}: {word.term}", fg=colour)
        click.echo()
        click.echo("i type answer  m mark  Enter next  q menu")

    def render_summary(self, summary: SessionSummary) -> None:
        click.clear()
        click.secho(f"{summary.kind.label} - {summary.mode.value} complete", bold=True)
        if summary.total == 0:
            click.echo("Nothing to review.")
        else:
            click.echo(f"{summary.seen} seen, {summary.correct} correct, {summary.wrong} wrong")
        click.echo()
        click.echo("Press any key")

    def render_prompt(self, selected: int) -> None:
        click.clear()
        click.secho("Welcome to Vocabulator", bold=True)
        click.echo()
        for index, label in enumerate(TUTORIAL_PROMPT):
            marker = "> " if index == selected else "  "
            click.echo(f"{marker}{label}")
        click.echo()
        click.echo("j/k move  Enter select")

    def render_tutorial(self, tutorial: Tutorial, confirm_exit: bool = False) -> None:
        step = tutorial.current_step
        session = tutorial.session
        if step.screen is TutorialScreen.SESSION and not session.closed and not session.is_complete:
            self.render_session(session, tutorial.progress)
        else:
            click.clear()
            click.secho("Vocabulator", bold=True)
            click.echo()
            for index, item in enumerate(self.menu_items):
                marker = "> " if index == tutorial.selected else "  "
                click.echo(f"{marker}{item.label}")
        click.echo()
        click.secho(f"Tutorial {tutorial.step_index + 1}/{tutorial.total_steps}", bold=True)
        click.echo(step.instruction)
        if tutorial.hint:
            click.secho(tutorial.hint, fg="yellow")
        if confirm_exit:
            click.secho("Leave the tutorial? y/n", fg="red")

    def render_tutorial_done(self) -> None:
        click.clear()
        click.secho("Tutorial complete", bold=True)
        click.echo("You can run it again with 'Restart Tutorial' from the menu.")
        click.echo()
        click.echo("Press any key")
