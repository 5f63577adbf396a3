"""Tests for the caller-facing quiz service."""
from unittest.mock import Mock

import pytest

from kvocab.exceptions import PersistenceError
from kvocab.models.quiz_models import QuizConfig, QuizMode, SessionState, VocabularyItem
from kvocab.services.quiz_service import QuizService, SessionHandle
from kvocab.services.retry import NO_RETRY
from kvocab.services.vocabulary_service import VocabularyService


def guess_current(service, handle, correct=True):
    presentation = service.current_presentation(handle)
    guess = presentation.word.korean if correct else "틀림"
    return service.submit_guess(handle, korean_guess=guess)


def test_start_session_accepts_dicts_and_config_overrides():
    service = QuizService(retry_policy=NO_RETRY)

    handle = service.start_session(
        [{"korean": "가다", "english": "go"}, {"korean": "오다", "english": "come"}],
        {"active_window_size": 1, "mode": "korean-to-english"},
        seed=1,
    )

    assert isinstance(handle, SessionHandle)
    session = service.get_session(handle)
    assert session.config.active_window_size == 1
    assert session.config.mode is QuizMode.KOREAN_TO_ENGLISH
    assert service.get_snapshot(handle.id).active_words == ["가다"]


def test_start_session_with_config_object():
    service = QuizService(retry_policy=NO_RETRY)

    handle = service.start_session([VocabularyItem("가다", "go")], QuizConfig(active_window_size=99))

    assert service.get_session(handle).config.active_window_size == 10


def test_sessions_are_isolated(vocabulary):
    service = QuizService(retry_policy=NO_RETRY)
    first = service.start_session(vocabulary, seed=1)
    second = service.start_session(vocabulary, seed=1)

    guess_current(service, first)

    assert service.get_snapshot(first).stats
    assert service.get_snapshot(second).stats == {}
    assert service.get_session(second).state is SessionState.PRESENTING


def test_unknown_session_is_ignored():
    service = QuizService(retry_policy=NO_RETRY)

    assert service.current_presentation("missing") is None
    assert not service.submit_guess("missing", korean_guess="가다").accepted
    assert not service.flip("missing")
    assert not service.advance("missing")
    assert service.get_snapshot("missing") is None
    assert service.end_session("missing") is None


def test_outcomes_are_persisted_for_owner(quiz_service, vocabulary_service, owner_id, vocabulary):
    vocabulary_service.upload_words(owner_id, vocabulary[:3])
    handle = quiz_service.start_session_for_owner(owner_id, seed=2)
    korean = quiz_service.current_presentation(handle).word.korean

    result = guess_current(quiz_service, handle, correct=False)

    assert result.warning is None
    record = vocabulary_service.get_stats(owner_id, korean)
    assert record.attempts == 1
    assert record.successes == 0
    assert record.recent_success_rate == 0.0
    assert record.total_attempts == 1
    assert record.smoothed_success_rate == pytest.approx(0.6)


def test_retry_after_wrong_guess_is_not_persisted(quiz_service, vocabulary_service, owner_id, vocabulary):
    vocabulary_service.upload_words(owner_id, vocabulary[:2])
    handle = quiz_service.start_session_for_owner(owner_id, seed=2)
    korean = quiz_service.current_presentation(handle).word.korean

    guess_current(quiz_service, handle, correct=False)
    guess_current(quiz_service, handle)

    assert vocabulary_service.get_stats(owner_id, korean).total_attempts == 1


def test_failed_write_returns_warning_and_keeps_progress(no_wait_retry):
    store = Mock()
    store.persist_outcome.side_effect = PersistenceError("disk full")
    service = QuizService(store, retry_policy=no_wait_retry)
    handle = service.start_session([VocabularyItem("가다", "go")], owner_id="learner")

    result = service.submit_guess(handle, korean_guess="가다")

    assert result.is_correct
    assert result.warning == "Progress for '가다' could not be saved"
    assert store.persist_outcome.call_count == no_wait_retry.max_attempts
    assert service.get_snapshot(handle).stats["가다"].session_successes == 1


def test_anonymous_session_is_not_persisted():
    store = Mock()
    service = QuizService(store, retry_policy=NO_RETRY)
    handle = service.start_session([VocabularyItem("가다", "go")])

    service.submit_guess(handle, korean_guess="가다")

    store.persist_outcome.assert_not_called()


def test_start_for_owner_requires_store():
    with pytest.raises(PersistenceError):
        QuizService(retry_policy=NO_RETRY).start_session_for_owner("learner")


def test_force_graduate_and_remove(vocabulary):
    service = QuizService(retry_policy=NO_RETRY)
    handle = service.start_session(vocabulary[:2], {"graduated_word_recurrence_rate": 0})

    assert service.force_graduate(handle, "사과")
    assert service.remove_from_session(handle, "학교")

    assert service.get_session(handle).state is SessionState.COMPLETE
    summary = service.get_summary(handle)
    assert summary.total_attempts == 0
    assert set(summary.success_rates) == {"사과"}


def test_update_word_edits_session_and_store(quiz_service, vocabulary_service, owner_id):
    vocabulary_service.upload_words(owner_id, [VocabularyItem("사가", "apple")])
    handle = quiz_service.start_session_for_owner(owner_id)

    assert quiz_service.update_word(handle, "사가", VocabularyItem("사과", "apple"))

    assert quiz_service.current_presentation(handle).word.korean == "사과"
    assert [item.korean for item in vocabulary_service.load_vocabulary(owner_id)] == ["사과"]


def test_update_word_keeps_session_edit_when_store_fails():
    store = Mock(spec=VocabularyService)
    store.update_word.side_effect = PersistenceError("locked")
    service = QuizService(store, retry_policy=NO_RETRY)
    handle = service.start_session([VocabularyItem("사가", "apple")], owner_id="learner")

    assert service.update_word(handle, "사가", VocabularyItem("사과", "apple"))
    assert service.current_presentation(handle).word.korean == "사과"


def test_end_session_returns_summary_and_forgets(vocabulary):
    service = QuizService(retry_policy=NO_RETRY)
    handle = service.start_session(vocabulary)
    guess_current(service, handle)

    summary = service.end_session(handle)

    assert summary.total_attempts == 1
    assert service.get_session(handle) is None


if __name__ == "__main__":
    pytest.main([__file__])
