"""Loading, saving and seeding of the vocabulary and progress stores."""
import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, UTC
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from sqlalchemy import func, inspect, text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import DatabaseError, OperationalError, SQLAlchemyError

from vocabulator import monitoring
from vocabulator.exceptions import CorruptData, IoFailure, SeedParseWarning
from vocabulator.models.base import Base, as_utc, create_db_engine, init_db, make_session_factory
from vocabulator.models.models import LearningState, VocabWord, WordStatistic
from vocabulator.models.vocab_models import Result, Word, WordStat
from vocabulator.services.progress_store import ProgressStore
from vocabulator.services.seed_service import SeedParser, read_seed_file
from vocabulator.services.vocabulary_store import VocabularyStore

logger = logging.getLogger(__name__)

CURRENT_GROUP_KEY = "current_group"
TUTORIAL_COMPLETED_KEY = "tutorial_completed"

# Values used for columns added to stores written by older versions
_COLUMN_DEFAULTS = {
    "times_seen": "0",
    "times_correct": "0",
    "bookmarked": "0",
}


@dataclass
class SeedReport:
    """Outcome of merging a seed source into the vocabulary."""
    vocabulary: VocabularyStore
    added: int = 0
    duplicates: int = 0
    warnings: List[SeedParseWarning] = field(default_factory=list)

    @property
    def skipped(self) -> int:
        """Malformed lines that were skipped."""
        return len(self.warnings)


class PersistenceGateway(ABC):
    """Durable storage for the vocabulary and the learner's progress."""

    @abstractmethod
    def load(self) -> Tuple[VocabularyStore, ProgressStore]:
        """Load both stores; a missing store yields empty ones."""
        raise NotImplementedError("Subclasses must implement this method")

    @abstractmethod
    def save(self, progress: ProgressStore) -> None:
        """Atomically replace the stored progress with the store's contents."""
        raise NotImplementedError("Subclasses must implement this method")

    @abstractmethod
    def save_stat(self, word_id: int, stat: WordStat) -> None:
        """Store a single word's stat."""
        raise NotImplementedError("Subclasses must implement this method")

    @abstractmethod
    def seed(self, path: Union[str, Path], parser: Optional[SeedParser] = None) -> SeedReport:
        """Merge a seed source into the vocabulary."""
        raise NotImplementedError("Subclasses must implement this method")

    @abstractmethod
    def load_current_group(self) -> Optional[int]:
        """Get the group Continue Learning resumes from."""
        raise NotImplementedError("Subclasses must implement this method")

    @abstractmethod
    def save_current_group(self, group: int) -> None:
        """Remember the group Continue Learning resumes from."""
        raise NotImplementedError("Subclasses must implement this method")

    @abstractmethod
    def load_tutorial_completed(self) -> bool:
        """Whether the guided tutorial was finished; False when never recorded."""
        raise NotImplementedError("Subclasses must implement this method")

    @abstractmethod
    def save_tutorial_completed(self, completed: bool) -> None:
        raise NotImplementedError("Subclasses must implement this method")

    def close(self) -> None:
        """Release resources held by the gateway."""


def _row_to_stat(row: WordStatistic) -> WordStat:
    return WordStat(
        times_seen=row.times_seen or 0,
        times_correct=row.times_correct or 0,
        last_seen=as_utc(row.last_seen),
        last_result=Result.parse(row.last_result),
        bookmarked=bool(row.bookmarked),
    )


def _stat_to_row(word_id: int, stat: WordStat) -> WordStatistic:
    return WordStatistic(
        word_id=word_id,
        times_seen=stat.times_seen,
        times_correct=stat.times_correct,
        last_seen=as_utc(stat.last_seen),
        last_result=stat.last_result.value if stat.last_result else None,
        bookmarked=stat.bookmarked,
    )


def _row_to_word(row: VocabWord) -> Word:
    return Word(
        id=row.id,
        group=row.group_id,
        sequence=row.sequence or 0,
        term=row.term,
        definition=row.definition,
    )


class SqlPersistenceGateway(PersistenceGateway):
    """Gateway backed by a SQLAlchemy database (SQLite by default).

    Each save runs in one transaction, so the stored progress is always either
    the previous or the new state, never a mix.
    """

    def __init__(self, url: Optional[str] = None, echo: Optional[bool] = None):
        self.engine = create_db_engine(url, echo)
        self.url = str(self.engine.url)
        self.SessionLocal = make_session_factory(self.engine)
        self._ready = False

    @property
    def database_path(self) -> Optional[Path]:
        """File backing the store, or None for non-file databases."""
        url = make_url(self.url)
        if not url.drivername.startswith("sqlite") or url.database in (None, "", ":memory:"):
            return None
        return Path(url.database)

    def _open(self) -> None:
        """Create missing tables and columns, detecting unreadable stores."""
        if self._ready:
            return
        try:
            init_db(self.engine)
            self._add_missing_columns()
        except OperationalError as e:
            raise IoFailure(f"Cannot open progress store {self.url}: {e.orig}") from e
        except DatabaseError as e:
            raise CorruptData(
                f"Progress store {self.url} is not readable: {e.orig}",
                path=str(self.database_path) if self.database_path else None,
            ) from e
        self._ready = True
        logger.info(f"Progress store ready at {self.url}")

    def _add_missing_columns(self) -> None:
        inspector = inspect(self.engine)
        with self.engine.begin() as conn:
            for table in Base.metadata.sorted_tables:
                existing = {column["name"] for column in inspector.get_columns(table.name)}
                for column in table.columns:
                    if column.name in existing or column.primary_key:
                        continue
                    ddl = f"ALTER TABLE {table.name} ADD COLUMN {column.name} {column.type.compile(dialect=self.engine.dialect)}"
                    default = _COLUMN_DEFAULTS.get(column.name)
                    if default is not None:
                        ddl += f" DEFAULT {default}"
                    conn.execute(text(ddl))
                    logger.warning(f"Added missing column {table.name}.{column.name}")

    def _read_stats(self, db) -> Dict[int, WordStat]:
        """Read every stored stat, raising CorruptData on counters that cannot be trusted."""
        stats: Dict[int, WordStat] = {}
        for row in db.query(WordStatistic).all():
            stat = _row_to_stat(row)
            if not stat.is_valid():
                raise CorruptData(
                    f"Word {row.word_id} has {stat.times_correct} correct out of {stat.times_seen} seen",
                    path=str(self.database_path) if self.database_path else None,
                )
            stats[row.word_id] = stat
        return stats

    def load(self) -> Tuple[VocabularyStore, ProgressStore]:
        """Load both stores, raising CorruptData on stats that cannot be trusted."""
        self._open()
        db = self.SessionLocal()
        try:
            words = [_row_to_word(row) for row in db.query(VocabWord).all()]
            stats = self._read_stats(db)
        except (DatabaseError, ValueError, TypeError) as e:
            raise CorruptData(f"Progress store {self.url} is not readable: {e}") from e
        finally:
            db.close()

        logger.info(f"Loaded {len(words)} words and {len(stats)} word stats")
        return VocabularyStore(words), ProgressStore(stats)

    def load_vocabulary(self) -> VocabularyStore:
        self._open()
        db = self.SessionLocal()
        try:
            return VocabularyStore(_row_to_word(row) for row in db.query(VocabWord).all())
        finally:
            db.close()

    def save(self, progress: ProgressStore) -> None:
        """Replace all stored stats in a single transaction."""
        self._open()
        snapshot = progress.snapshot()
        db = self.SessionLocal()
        try:
            db.query(WordStatistic).delete()
            db.add_all(_stat_to_row(word_id, stat) for word_id, stat in snapshot.items())
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise IoFailure(f"Cannot save progress to {self.url}: {e}") from e
        finally:
            db.close()
        logger.info(f"Saved {len(snapshot)} word stats")

    def save_stat(self, word_id: int, stat: WordStat) -> None:
        self._open()
        db = self.SessionLocal()
        try:
            db.merge(_stat_to_row(word_id, stat))
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise IoFailure(f"Cannot save progress for word {word_id}: {e}") from e
        finally:
            db.close()

    def seed(self, path: Union[str, Path], parser: Optional[SeedParser] = None) -> SeedReport:
        """Merge new terms from a seed file; known terms and stats stay untouched."""
        self._open()
        parsed = read_seed_file(path, parser)

        added = duplicates = 0
        db = self.SessionLocal()
        try:
            self._read_stats(db)
            known_terms = {term for (term,) in db.query(VocabWord.term).all()}
            next_sequence = dict(
                db.query(VocabWord.group_id, func.max(VocabWord.sequence))
                .group_by(VocabWord.group_id)
                .all()
            )
            for entry in parsed.entries:
                if entry.term in known_terms:
                    duplicates += 1
                    continue
                sequence = (next_sequence.get(entry.group) or 0) + 1
                next_sequence[entry.group] = sequence
                db.add(VocabWord(
                    term=entry.term,
                    definition=entry.definition,
                    group_id=entry.group,
                    sequence=sequence,
                ))
                known_terms.add(entry.term)
                added += 1
            db.commit()
        except (ValueError, TypeError) as e:
            db.rollback()
            raise CorruptData(f"Progress store {self.url} is not readable: {e}") from e
        except SQLAlchemyError as e:
            db.rollback()
            raise IoFailure(f"Cannot store seeded words in {self.url}: {e}") from e
        finally:
            db.close()

        monitoring.words_seeded.inc(added)
        monitoring.seed_lines_skipped.inc(len(parsed.warnings))
        logger.info(f"Seeded {path}: {added} added, {duplicates} already known, {len(parsed.warnings)} skipped")
        return SeedReport(
            vocabulary=self.load_vocabulary(),
            added=added,
            duplicates=duplicates,
            warnings=parsed.warnings,
        )

    def _load_state(self, key: str) -> Optional[str]:
        self._open()
        db = self.SessionLocal()
        try:
            row = db.get(LearningState, key)
        finally:
            db.close()
        return None if row is None else row.value

    def _save_state(self, key: str, value: str) -> None:
        self._open()
        db = self.SessionLocal()
        try:
            db.merge(LearningState(key=key, value=value))
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise IoFailure(f"Cannot save {key.replace('_', ' ')}: {e}") from e
        finally:
            db.close()

    def load_current_group(self) -> Optional[int]:
        value = self._load_state(CURRENT_GROUP_KEY)
        if value is None:
            return None
        try:
            return int(value)
        except ValueError:
            logger.warning(f"Ignoring unreadable current group {value!r}")
            return None

    def save_current_group(self, group: int) -> None:
        self._save_state(CURRENT_GROUP_KEY, str(group))

    def load_tutorial_completed(self) -> bool:
        return self._load_state(TUTORIAL_COMPLETED_KEY) == "1"

    def save_tutorial_completed(self, completed: bool) -> None:
        self._save_state(TUTORIAL_COMPLETED_KEY, "1" if completed else "0")
        logger.info(f"Tutorial marked as {'completed' if completed else 'not completed'}")

    def backup_corrupt_store(self) -> Optional[Path]:
        """Move an unreadable store aside so a fresh one can be created."""
        path = self.database_path
        if path is None or not path.exists():
            return None
        self.engine.dispose()
        stamp = datetime.now(UTC).strftime("%Y%m%dT%H%M%SZ")
        target = path.with_name(f"{path.name}.corrupt-{stamp}")
        try:
            os.replace(path, target)
        except OSError as e:
            raise IoFailure(f"Cannot back up {path}: {e}") from e
        self._ready = False
        logger.warning(f"Moved unreadable progress store {path} to {target}")
        return target

    def close(self) -> None:
        self.engine.dispose()
