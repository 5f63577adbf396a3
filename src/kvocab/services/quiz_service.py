"""Caller-facing API over independent quiz sessions."""
import logging
import random
import uuid
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional, Union

from kvocab import monitoring
from kvocab.config import settings
from kvocab.exceptions import PersistenceError, RetryExhaustedError
from kvocab.models.quiz_models import (
    GuessResult,
    Presentation,
    QuizConfig,
    SessionSnapshot,
    SessionState,
    SessionSummary,
    VocabularyItem,
)
from kvocab.services.quiz_session import QuizSession
from kvocab.services.retry import RetryPolicy
from kvocab.services.vocabulary_service import VocabularyService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionHandle:
    """Opaque reference to a running session."""
    id: str
    owner_id: Optional[str] = None


HandleLike = Union[SessionHandle, str]


class QuizService:
    """Runs quiz sessions and forwards their outcomes to storage.

    Each service instance owns its own session registry; sessions never share
    state. Storage writes happen after the in-memory update and their failures
    come back as a warning on the result instead of an exception.
    """

    def __init__(
        self,
        vocabulary_service: Optional[VocabularyService] = None,
        retry_policy: Optional[RetryPolicy] = None,
    ):
        self.vocabulary_service = vocabulary_service
        self.retry_policy = retry_policy or RetryPolicy.from_settings(settings.retry)
        self.sessions: Dict[str, QuizSession] = {}
        self.handles: Dict[str, SessionHandle] = {}

    def start_session(
        self,
        vocabulary: Iterable[Union[VocabularyItem, Dict[str, Any]]],
        config: Optional[Union[QuizConfig, Dict[str, Any]]] = None,
        owner_id: Optional[str] = None,
        seed: Optional[int] = None,
    ) -> SessionHandle:
        """Build a fresh pool from the vocabulary and present the first word."""
        items = [
            item if isinstance(item, VocabularyItem) else VocabularyItem.from_dict(item)
            for item in vocabulary
        ]
        if isinstance(config, QuizConfig):
            config = config.clamped()
        else:
            config = QuizConfig.from_settings(settings.quiz, **(config or {}))

        session = QuizSession(items, config, random.Random(seed))
        handle = SessionHandle(id=str(uuid.uuid4()), owner_id=owner_id)
        self.sessions[handle.id] = session
        self.handles[handle.id] = handle

        monitoring.sessions_started.inc()
        if session.is_complete:
            monitoring.sessions_completed.inc()
        logger.info(f"Session {handle.id} started with {len(items)} words for owner {owner_id}")
        return handle

    def start_session_for_owner(
        self,
        owner_id: str,
        config: Optional[Union[QuizConfig, Dict[str, Any]]] = None,
        package_id: Optional[str] = None,
        seed: Optional[int] = None,
    ) -> SessionHandle:
        """Start a session on the owner's stored vocabulary."""
        if self.vocabulary_service is None:
            raise PersistenceError("No vocabulary store configured")
        vocabulary = self.vocabulary_service.load_vocabulary(owner_id, package_id)
        return self.start_session(vocabulary, config, owner_id=owner_id, seed=seed)

    def get_session(self, handle: HandleLike) -> Optional[QuizSession]:
        session = self.sessions.get(self._handle_id(handle))
        if session is None:
            logger.warning(f"Unknown session {self._handle_id(handle)}")
        return session

    def current_presentation(self, handle: HandleLike) -> Optional[Presentation]:
        session = self.get_session(handle)
        return session.current_presentation() if session else None

    def flip(self, handle: HandleLike) -> bool:
        session = self.get_session(handle)
        return session.flip() if session else False

    def submit_guess(
        self,
        handle: HandleLike,
        korean_guess: Optional[str] = None,
        english_guess: Optional[str] = None,
        was_flipped: bool = False,
    ) -> GuessResult:
        session = self.get_session(handle)
        if session is None:
            return GuessResult.ignored()

        presentation = session.current_presentation()
        graduated_before = len(session.pool.graduated_entries())
        result = session.submit_guess(korean_guess, english_guess, was_flipped)
        if not result.recorded:
            return result

        korean = presentation.word.korean
        succeeded = result.is_correct and not presentation.was_flipped
        if succeeded:
            monitoring.guesses.labels(result="correct").inc()
        elif result.is_correct:
            monitoring.guesses.labels(result="peeked").inc()
        else:
            monitoring.guesses.labels(result="incorrect").inc()
        graduated = len(session.pool.graduated_entries()) - graduated_before
        if graduated > 0:
            monitoring.words_graduated.inc(graduated)

        result.warning = self._persist_outcome(handle, korean, session, succeeded)
        return result

    def advance(self, handle: HandleLike) -> bool:
        session = self.get_session(handle)
        if session is None:
            return False
        was_complete = session.state is SessionState.COMPLETE
        advanced = session.advance()
        self._note_completion(handle, session, was_complete)
        return advanced

    def force_graduate(self, handle: HandleLike, korean: str) -> bool:
        session = self.get_session(handle)
        if session is None:
            return False
        was_complete = session.state is SessionState.COMPLETE
        graduated = session.force_graduate(korean)
        if graduated:
            monitoring.words_graduated.inc()
        self._note_completion(handle, session, was_complete)
        return graduated

    def remove_from_session(self, handle: HandleLike, korean: str) -> bool:
        session = self.get_session(handle)
        if session is None:
            return False
        was_complete = session.state is SessionState.COMPLETE
        removed = session.remove_from_session(korean)
        self._note_completion(handle, session, was_complete)
        return removed

    def update_word(self, handle: HandleLike, old_korean: str, item: VocabularyItem) -> bool:
        """Edit a word in the live session and, when possible, in storage."""
        session = self.get_session(handle)
        if session is None or not session.update_word(old_korean, item):
            return False

        owner_id = self._owner_id(handle)
        if self.vocabulary_service is not None and owner_id:
            try:
                self.vocabulary_service.update_word(owner_id, old_korean, item.korean, item.english, item.example)
            except PersistenceError as e:
                monitoring.persistence_errors.inc()
                logger.warning(f"Edit of {old_korean} kept in session only: {e}")
        return True

    def get_snapshot(self, handle: HandleLike) -> Optional[SessionSnapshot]:
        session = self.get_session(handle)
        return session.snapshot() if session else None

    def get_summary(self, handle: HandleLike) -> Optional[SessionSummary]:
        session = self.get_session(handle)
        if session is None:
            return None
        return session.summary or session.build_summary()

    def end_session(self, handle: HandleLike) -> Optional[SessionSummary]:
        """Forget a session and return its summary so far."""
        handle_id = self._handle_id(handle)
        session = self.sessions.pop(handle_id, None)
        self.handles.pop(handle_id, None)
        if session is None:
            return None
        return session.summary or session.build_summary()

    def _persist_outcome(
        self, handle: HandleLike, korean: str, session: QuizSession, succeeded: bool
    ) -> Optional[str]:
        owner_id = self._owner_id(handle)
        if self.vocabulary_service is None or not owner_id:
            return None
        stats = session.pool.tracker.get(korean)
        try:
            self.retry_policy.call(
                "persist_outcome",
                self.vocabulary_service.persist_outcome,
                owner_id,
                korean,
                stats,
                succeeded,
            )
        except RetryExhaustedError as e:
            monitoring.persistence_errors.inc()
            logger.warning(f"Outcome for {korean} not saved: {e}")
            return f"Progress for '{korean}' could not be saved"
        return None

    def _note_completion(self, handle: HandleLike, session: QuizSession, was_complete: bool) -> None:
        if was_complete or session.state is not SessionState.COMPLETE:
            return
        monitoring.sessions_completed.inc()
        logger.info(f"Session {self._handle_id(handle)} complete: {session.summary.to_dict()}")

    def _owner_id(self, handle: HandleLike) -> Optional[str]:
        if isinstance(handle, SessionHandle) and handle.owner_id:
            return handle.owner_id
        stored = self.handles.get(self._handle_id(handle))
        return stored.owner_id if stored else None

    @staticmethod
    def _handle_id(handle: HandleLike) -> str:
        return handle.id if isinstance(handle, SessionHandle) else str(handle)
