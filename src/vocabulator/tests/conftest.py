"""Test configuration."""
import os
import tempfile
from datetime import datetime, UTC
from pathlib import Path
from typing import Dict, List, Optional

import pytest
from dotenv import load_dotenv

# Set test environment before any imports
os.environ["ENV"] = "test"
os.environ.setdefault("DATA_DIR", str(Path(tempfile.gettempdir()) / "vocabulator-test-data"))

# Load test environment variables
test_env_path = Path(__file__).parent.parent.parent.parent / ".env.test"
load_dotenv(test_env_path)

# Import after environment setup
from vocabulator.config import ensure_directories
from vocabulator.exceptions import IoFailure
from vocabulator.models.vocab_models import Word, WordStat
from vocabulator.services.persistence import PersistenceGateway, SeedReport, SqlPersistenceGateway
from vocabulator.services.progress_store import ProgressStore
from vocabulator.services.seed_service import read_seed_file
from vocabulator.services.vocabulary_store import VocabularyStore

SAMPLE_SEED = """\
Group 1
serendipity the occurrence of events by chance in a happy way
ephemeral lasting for a very short time
lucid 1. clear and easy to understand 2. showing the ability to think clearly

Group 2
austere severe or strict in manner
abound exist in large numbers
"""


class InMemoryGateway(PersistenceGateway):
    """Gateway fake that keeps everything in dictionaries.

    ``fail_writes`` makes the next N ``save_stat`` calls raise IoFailure.
    The tutorial counts as completed unless ``tutorial_completed=False``.
    """

    def __init__(
        self,
        words: Optional[List[Word]] = None,
        stats: Optional[Dict[int, WordStat]] = None,
        tutorial_completed: bool = True,
    ):
        self.words: List[Word] = list(words or [])
        self.stats: Dict[int, WordStat] = {k: v.copy() for k, v in (stats or {}).items()}
        self.current_group: Optional[int] = None
        self.tutorial_completed = tutorial_completed
        self.saved_stats: List[tuple] = []
        self.full_saves = 0
        self.fail_writes = 0
        self.closed = False

    def load(self):
        return VocabularyStore(self.words), ProgressStore(self.stats)

    def save(self, progress: ProgressStore) -> None:
        self.full_saves += 1
        self.stats = progress.snapshot()

    def save_stat(self, word_id: int, stat: WordStat) -> None:
        if self.fail_writes > 0:
            self.fail_writes -= 1
            raise IoFailure(f"disk full while writing word {word_id}")
        self.saved_stats.append((word_id, stat.copy()))
        self.stats[word_id] = stat.copy()

    def seed(self, path, parser=None) -> SeedReport:
        parsed = read_seed_file(path, parser)
        known = {word.term for word in self.words}
        added = duplicates = 0
        for entry in parsed.entries:
            if entry.term in known:
                duplicates += 1
                continue
            sequence = sum(1 for word in self.words if word.group == entry.group) + 1
            self.words.append(Word(len(self.words) + 1, entry.group, sequence, entry.term, entry.definition))
            known.add(entry.term)
            added += 1
        return SeedReport(VocabularyStore(self.words), added, duplicates, parsed.warnings)

    def load_current_group(self) -> Optional[int]:
        return self.current_group

    def save_current_group(self, group: int) -> None:
        self.current_group = group

    def load_tutorial_completed(self) -> bool:
        return self.tutorial_completed

    def save_tutorial_completed(self, completed: bool) -> None:
        self.tutorial_completed = completed

    def close(self) -> None:
        self.closed = True


@pytest.fixture(autouse=True)
def setup_test_environment():
    """Set up test environment before each test."""
    # Ensure test directories exist
    ensure_directories()
    yield


@pytest.fixture
def words() -> List[Word]:
    """Two groups of words, listed out of order on purpose."""
    return [
        Word(4, 2, 1, "austere", "severe or strict in manner"),
        Word(1, 1, 1, "serendipity", "the occurrence of events by chance in a happy way"),
        Word(5, 2, 2, "abound", "exist in large numbers"),
        Word(3, 1, 3, "lucid", "clear and easy to understand"),
        Word(2, 1, 2, "ephemeral", "lasting for a very short time"),
    ]


@pytest.fixture
def vocabulary(words) -> VocabularyStore:
    """Create a vocabulary store over the sample words."""
    return VocabularyStore(words)


@pytest.fixture
def progress() -> ProgressStore:
    """Create an empty progress store without a writer."""
    return ProgressStore()


@pytest.fixture
def gateway(words) -> InMemoryGateway:
    """Create an in-memory gateway holding the sample words."""
    return InMemoryGateway(words)


@pytest.fixture
def fixed_clock():
    """Clock that always returns the same instant."""
    instant = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)
    return lambda: instant


@pytest.fixture
def db_url(tmp_path) -> str:
    """SQLite URL of a fresh database file."""
    return f"sqlite:///{tmp_path / 'vocab.db'}"


@pytest.fixture
def sql_gateway(db_url):
    """Create a SQL gateway over a fresh database file."""
    gateway = SqlPersistenceGateway(db_url)
    yield gateway
    gateway.close()


@pytest.fixture
def seed_file(tmp_path) -> Path:
    """Write the sample grouped seed file."""
    path = tmp_path / "words.txt"
    path.write_text(SAMPLE_SEED, encoding="utf-8")
    return path
