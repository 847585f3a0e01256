"""Database models for the vocabulary and progress store."""
from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Integer,
    String,
    Text,
    UniqueConstraint,
)

from vocabulator.models.base import Base, TimestampMixin


class VocabWord(Base, TimestampMixin):
    """Seeded vocabulary entry."""

    __tablename__ = "words"
    __table_args__ = (UniqueConstraint("group_id", "sequence", name="uq_words_group_sequence"),)

    id = Column(Integer, primary_key=True)
    term = Column(String, unique=True, nullable=False)
    definition = Column(Text, nullable=False)
    group_id = Column(Integer, nullable=False, index=True)
    sequence = Column(Integer, nullable=False)  # insertion order inside the group


class WordStatistic(Base, TimestampMixin):
    """Per-word learning statistics.

    ``word_id`` has no foreign key; stats may outlive their word.
    """

    __tablename__ = "word_stats"

    word_id = Column(Integer, primary_key=True)
    times_seen = Column(Integer, nullable=False, default=0)
    times_correct = Column(Integer, nullable=False, default=0)
    last_seen = Column(DateTime(timezone=True), nullable=True)
    last_result = Column(String, nullable=True)  # "correct" / "wrong"
    bookmarked = Column(Boolean, nullable=False, default=False)


class LearningState(Base, TimestampMixin):
    """Key/value rows for learner-wide state such as the current group."""

    __tablename__ = "learning_state"

    key = Column(String, primary_key=True)
    value = Column(String, nullable=True)
