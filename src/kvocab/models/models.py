"""Database models for stored vocabulary and statistics."""
import uuid

from sqlalchemy import (
    Column,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from kvocab.models.base import Base, TimestampMixin


def _new_package_id() -> str:
    return str(uuid.uuid4())


class WordPackage(Base, TimestampMixin):
    """A batch of word pairs uploaded together by one owner."""

    __tablename__ = "word_packages"

    id = Column(String(36), primary_key=True, default=_new_package_id)
    owner_id = Column(String, nullable=False, index=True)
    custom_identifier = Column(String, nullable=True)

    # Relationships
    items = relationship(
        "VocabularyEntry",
        back_populates="package",
        order_by="VocabularyEntry.position",
        cascade="all, delete-orphan",
    )


class VocabularyEntry(Base, TimestampMixin):
    """A stored Korean/English pair inside a package."""

    __tablename__ = "vocabulary_entries"

    id = Column(Integer, primary_key=True)
    package_id = Column(String(36), ForeignKey("word_packages.id"), nullable=False)
    position = Column(Integer, nullable=False, default=0)
    korean = Column(String, nullable=False, index=True)
    english = Column(String, nullable=False)  # comma-separated, first is canonical
    example = Column(Text, nullable=True)

    # Relationships
    package = relationship("WordPackage", back_populates="items")


class WordStatsRecord(Base, TimestampMixin):
    """Per-owner statistics for one word, keyed by its Korean text."""

    __tablename__ = "word_stats"
    __table_args__ = (UniqueConstraint("owner_id", "korean", name="uq_word_stats_owner_korean"),)

    id = Column(Integer, primary_key=True)
    owner_id = Column(String, nullable=False, index=True)
    korean = Column(String, nullable=False)

    # Last reported session counters
    attempts = Column(Integer, default=0)
    successes = Column(Integer, default=0)
    recent_success_rate = Column(Float, default=1.0)

    # Lifetime counters
    total_attempts = Column(Integer, default=0)
    total_successes = Column(Integer, default=0)
    smoothed_success_rate = Column(Float, default=1.0)
