"""Service for storing vocabulary and word statistics."""
import logging
from typing import Dict, Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from kvocab import monitoring
from kvocab.exceptions import PersistenceError
from kvocab.models.models import VocabularyEntry, WordPackage, WordStatsRecord
from kvocab.models.quiz_models import VocabularyItem, WordStats

logger = logging.getLogger(__name__)

# Weight of the newest outcome in the lifetime smoothed success rate
SMOOTHING_ALPHA = 0.4


class VocabularyService:
    """Vocabulary source and outcome sink backed by the database."""

    def __init__(self, db: Session):
        """Initialize the service with a database session."""
        self.db = db

    def upload_words(
        self,
        owner_id: str,
        pairs: Iterable[VocabularyItem],
        custom_identifier: Optional[str] = None,
    ) -> WordPackage:
        """Store a new package of word pairs and seed their stats rows."""
        pairs = list(pairs)
        if not owner_id or not pairs:
            raise ValueError("owner_id and at least one word pair are required")

        package = WordPackage(owner_id=owner_id, custom_identifier=custom_identifier)
        package.items = [
            VocabularyEntry(position=position, korean=pair.korean, english=pair.english, example=pair.example)
            for position, pair in enumerate(pairs)
        ]
        try:
            self.db.add(package)
            for pair in pairs:
                self._get_or_create_stats(owner_id, pair.korean)
            self.db.commit()
            self.db.refresh(package)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error uploading words for owner {owner_id}: {e}")
            raise PersistenceError(f"Could not upload words: {e}") from e

        monitoring.words_uploaded.inc(len(pairs))
        logger.info(f"Uploaded {len(pairs)} words for owner {owner_id} as package {package.id}")
        return package

    def list_packages(self, owner_id: str) -> List[WordPackage]:
        """Get an owner's packages, newest first."""
        try:
            return (
                self.db.query(WordPackage)
                .filter(WordPackage.owner_id == owner_id)
                .order_by(WordPackage.created_at.desc())
                .all()
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error listing packages for owner {owner_id}: {e}")
            raise PersistenceError(f"Could not list packages: {e}") from e

    def load_vocabulary(self, owner_id: str, package_id: Optional[str] = None) -> List[VocabularyItem]:
        """Get an owner's words, one item per Korean spelling.

        When the same word appears in several packages the oldest copy wins.
        """
        query = (
            self.db.query(VocabularyEntry)
            .join(WordPackage)
            .filter(WordPackage.owner_id == owner_id)
        )
        if package_id is not None:
            query = query.filter(WordPackage.id == package_id)
        try:
            entries = query.order_by(WordPackage.created_at, VocabularyEntry.position).all()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error loading vocabulary for owner {owner_id}: {e}")
            raise PersistenceError(f"Could not load vocabulary: {e}") from e

        items: Dict[str, VocabularyItem] = {}
        for entry in entries:
            if entry.korean not in items:
                items[entry.korean] = VocabularyItem(
                    korean=entry.korean, english=entry.english, example=entry.example
                )
        logger.debug(f"Loaded {len(items)} words for owner {owner_id}")
        return list(items.values())

    def update_word(
        self,
        owner_id: str,
        old_korean: str,
        korean: str,
        english: str,
        example: Optional[str] = None,
    ) -> int:
        """Edit a word in every package of the owner; returns rows changed."""
        try:
            entries = (
                self.db.query(VocabularyEntry)
                .join(WordPackage)
                .filter(WordPackage.owner_id == owner_id, VocabularyEntry.korean == old_korean)
                .all()
            )
            if not entries:
                return 0

            for entry in entries:
                entry.korean = korean
                entry.english = english
                if example is not None:
                    entry.example = example

            if korean != old_korean:
                record = self._find_stats(owner_id, old_korean)
                if record is not None and self._find_stats(owner_id, korean) is None:
                    record.korean = korean
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error updating word {old_korean} for owner {owner_id}: {e}")
            raise PersistenceError(f"Could not update word: {e}") from e

        logger.info(f"Updated {len(entries)} copies of {old_korean} -> {korean} for owner {owner_id}")
        return len(entries)

    def get_stats(self, owner_id: str, korean: str) -> Optional[WordStatsRecord]:
        try:
            return self._find_stats(owner_id, korean)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error reading stats for {korean} (owner {owner_id}): {e}")
            raise PersistenceError(f"Could not read stats for {korean}: {e}") from e

    def _find_stats(self, owner_id: str, korean: str) -> Optional[WordStatsRecord]:
        return (
            self.db.query(WordStatsRecord)
            .filter(WordStatsRecord.owner_id == owner_id, WordStatsRecord.korean == korean)
            .first()
        )

    def persist_outcome(
        self, owner_id: str, korean: str, stats: WordStats, succeeded: bool
    ) -> WordStatsRecord:
        """Store the session counters and fold the outcome into lifetime stats."""
        try:
            record = self._get_or_create_stats(owner_id, korean)
            record.attempts = stats.session_attempts
            record.successes = stats.session_successes
            record.recent_success_rate = stats.recent_success_rate

            outcome = 1.0 if succeeded else 0.0
            record.total_attempts = (record.total_attempts or 0) + 1
            record.total_successes = (record.total_successes or 0) + int(succeeded)
            previous = record.smoothed_success_rate if record.smoothed_success_rate is not None else 1.0
            record.smoothed_success_rate = previous * (1 - SMOOTHING_ALPHA) + outcome * SMOOTHING_ALPHA
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error saving stats for {korean} (owner {owner_id}): {e}")
            raise PersistenceError(f"Could not save stats for {korean}: {e}") from e
        return record

    def _get_or_create_stats(self, owner_id: str, korean: str) -> WordStatsRecord:
        record = self._find_stats(owner_id, korean)
        if record is None:
            record = WordStatsRecord(
                owner_id=owner_id,
                korean=korean,
                attempts=0,
                successes=0,
                recent_success_rate=1.0,
                total_attempts=0,
                total_successes=0,
                smoothed_success_rate=1.0,
            )
            self.db.add(record)
            self.db.flush()
        return record
