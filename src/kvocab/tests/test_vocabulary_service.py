"""Tests for vocabulary storage."""
from datetime import UTC, datetime, timedelta

import pytest
from faker import Faker
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from kvocab.exceptions import PersistenceError
from kvocab.models.models import VocabularyEntry, WordStatsRecord
from kvocab.models.quiz_models import VocabularyItem
from kvocab.services.outcome_tracker import OutcomeTracker
from kvocab.services.vocabulary_service import SMOOTHING_ALPHA, VocabularyService

fake = Faker()


def test_upload_words_creates_package(vocabulary_service: VocabularyService, db: Session, owner_id, vocabulary):
    name = fake.word()

    package = vocabulary_service.upload_words(owner_id, vocabulary[:3], custom_identifier=name)

    assert package.id
    assert package.owner_id == owner_id
    assert package.custom_identifier == name
    assert [item.korean for item in package.items] == [item.korean for item in vocabulary[:3]]
    assert package.items[0].example == vocabulary[0].example
    assert db.query(VocabularyEntry).count() == 3


def test_upload_seeds_stats_rows(vocabulary_service, owner_id, vocabulary):
    vocabulary_service.upload_words(owner_id, vocabulary[:2])

    record = vocabulary_service.get_stats(owner_id, vocabulary[0].korean)
    assert record.attempts == 0
    assert record.recent_success_rate == 1.0
    assert record.smoothed_success_rate == 1.0


def test_reupload_keeps_existing_stats(vocabulary_service, db, owner_id, vocabulary):
    vocabulary_service.upload_words(owner_id, vocabulary[:1])
    vocabulary_service.upload_words(owner_id, vocabulary[:1])

    assert db.query(WordStatsRecord).filter(WordStatsRecord.owner_id == owner_id).count() == 1


def test_upload_without_words_is_rejected(vocabulary_service, owner_id):
    with pytest.raises(ValueError):
        vocabulary_service.upload_words(owner_id, [])


def test_load_vocabulary_deduplicates_oldest_first(vocabulary_service, db, owner_id):
    old = vocabulary_service.upload_words(owner_id, [VocabularyItem("사과", "apple"), VocabularyItem("물", "water")])
    old.created_at = datetime.now(UTC) - timedelta(days=1)
    db.commit()
    vocabulary_service.upload_words(owner_id, [VocabularyItem("사과", "apology"), VocabularyItem("책", "book")])

    items = vocabulary_service.load_vocabulary(owner_id)

    assert [item.korean for item in items] == ["사과", "물", "책"]
    assert items[0].english == "apple"


def test_load_vocabulary_for_one_package(vocabulary_service, owner_id, vocabulary):
    vocabulary_service.upload_words(owner_id, vocabulary[:2])
    package = vocabulary_service.upload_words(owner_id, vocabulary[5:7])

    items = vocabulary_service.load_vocabulary(owner_id, package.id)

    assert [item.korean for item in items] == [item.korean for item in vocabulary[5:7]]


def test_owners_do_not_share_words(vocabulary_service, owner_id, vocabulary):
    vocabulary_service.upload_words(owner_id, vocabulary[:2])

    assert vocabulary_service.load_vocabulary(fake.uuid4()) == []


def test_list_packages_newest_first(vocabulary_service, db, owner_id, vocabulary):
    first = vocabulary_service.upload_words(owner_id, vocabulary[:1])
    first.created_at = datetime.now(UTC) - timedelta(hours=1)
    db.commit()
    second = vocabulary_service.upload_words(owner_id, vocabulary[1:2])

    assert [p.id for p in vocabulary_service.list_packages(owner_id)] == [second.id, first.id]


def test_update_word_edits_every_package_and_rekeys_stats(vocabulary_service, db, owner_id):
    vocabulary_service.upload_words(owner_id, [VocabularyItem("사가", "apple")])
    vocabulary_service.upload_words(owner_id, [VocabularyItem("사가", "apple")])

    rows = vocabulary_service.update_word(owner_id, "사가", "사과", "apple, fruit", "사과를 먹어요.")

    assert rows == 2
    entries = db.query(VocabularyEntry).all()
    assert {entry.korean for entry in entries} == {"사과"}
    assert {entry.english for entry in entries} == {"apple, fruit"}
    assert vocabulary_service.get_stats(owner_id, "사가") is None
    assert vocabulary_service.get_stats(owner_id, "사과") is not None


def test_update_unknown_word_changes_nothing(vocabulary_service, owner_id):
    assert vocabulary_service.update_word(owner_id, "없다", "있다", "exist") == 0


def test_persist_outcome_updates_session_and_lifetime_stats(vocabulary_service, owner_id):
    tracker = OutcomeTracker()

    stats = tracker.record_outcome("물", True)
    vocabulary_service.persist_outcome(owner_id, "물", stats, True)
    stats = tracker.record_outcome("물", False)
    record = vocabulary_service.persist_outcome(owner_id, "물", stats, False)

    assert record.attempts == 2
    assert record.successes == 1
    assert record.recent_success_rate == 0.5
    assert record.total_attempts == 2
    assert record.total_successes == 1
    assert record.smoothed_success_rate == pytest.approx(1 - SMOOTHING_ALPHA)


@pytest.fixture
def broken_store():
    # a database without tables fails every query
    return VocabularyService(sessionmaker(bind=create_engine("sqlite://"))())


def test_persist_outcome_failure_raises_persistence_error(broken_store, owner_id):
    with pytest.raises(PersistenceError):
        broken_store.persist_outcome(owner_id, "물", OutcomeTracker().record_outcome("물", True), True)



def test_read_failures_raise_persistence_error(broken_store, owner_id):
    with pytest.raises(PersistenceError):
        broken_store.load_vocabulary(owner_id)
    with pytest.raises(PersistenceError):
        broken_store.list_packages(owner_id)
    with pytest.raises(PersistenceError):
        broken_store.get_stats(owner_id, "물")


def test_update_word_failure_raises_persistence_error(broken_store, owner_id):
    with pytest.raises(PersistenceError):
        broken_store.update_word(owner_id, "물", "물", "water")

if __name__ == "__main__":
    pytest.main([__file__])
