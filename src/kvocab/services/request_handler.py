"""Transport-agnostic request handling for the quiz API."""
import logging
from typing import Any, Callable, Dict, Optional, Union

from kvocab.exceptions import PersistenceError, RequestValidationError
from kvocab.models.quiz_models import GuessResult, Presentation, VocabularyItem
from kvocab.models.requests import (
    AdvanceRequest,
    FlipRequest,
    ForceGraduateRequest,
    LoadVocabularyRequest,
    RemoveWordRequest,
    SnapshotRequest,
    StartSessionRequest,
    SubmitGuessRequest,
    UpdateWordRequest,
    UploadWordsRequest,
    WordPair,
    parse_request,
)
from kvocab.services.quiz_service import QuizService
from kvocab.services.vocabulary_service import VocabularyService

logger = logging.getLogger(__name__)

Response = Dict[str, Any]


def _response(status: int, body: Dict[str, Any]) -> Response:
    return {"status": status, "body": body}


def _not_found(message: str) -> Response:
    return _response(404, {"message": message})


def _item(pair: WordPair) -> VocabularyItem:
    return VocabularyItem(korean=pair.korean, english=pair.english, example=pair.example)


def serialize_presentation(presentation: Optional[Presentation]) -> Optional[Dict[str, Any]]:
    if presentation is None:
        return None
    return {
        "word": presentation.word.to_dict(),
        "mode": presentation.mode.value,
        "prompt": presentation.prompt,
        "answer_revealed": presentation.answer_revealed,
        "was_flipped": presentation.was_flipped,
    }


def serialize_guess(result: GuessResult) -> Dict[str, Any]:
    return {
        "is_correct": result.is_correct,
        "is_session_complete": result.is_session_complete,
        "accepted": result.accepted,
        "recorded": result.recorded,
        "correct_answer": result.correct_answer,
        "warning": result.warning,
        "diff": [
            {"type": op.type, "guess": op.guess_char, "answer": op.answer_char}
            for op in result.diff
        ],
    }


class RequestHandler:
    """Validates payloads and routes them to the quiz and vocabulary services.

    Responses are plain dicts ``{"status": int, "body": dict}`` so any
    transport can wrap them.
    """

    def __init__(self, quiz_service: QuizService, vocabulary_service: Optional[VocabularyService] = None):
        self.quiz_service = quiz_service
        self.vocabulary_service = vocabulary_service or quiz_service.vocabulary_service
        self._routes: Dict[type, Callable[[Any], Response]] = {
            StartSessionRequest: self._start_session,
            SubmitGuessRequest: self._submit_guess,
            FlipRequest: self._flip,
            AdvanceRequest: self._advance,
            SnapshotRequest: self._snapshot,
            ForceGraduateRequest: self._force_graduate,
            RemoveWordRequest: self._remove_word,
            UpdateWordRequest: self._update_word,
            UploadWordsRequest: self._upload_words,
            LoadVocabularyRequest: self._load_vocabulary,
        }

    def handle(self, payload: Union[str, bytes, Dict[str, Any]]) -> Response:
        try:
            request = parse_request(payload)
        except RequestValidationError as e:
            logger.info(f"Rejected request: {e}")
            return _response(400, {"message": "Invalid request", "errors": e.errors})

        try:
            return self._routes[type(request)](request)
        except PersistenceError as e:
            logger.error(f"Storage error while handling {request.action}: {e}")
            return _response(500, {"message": "Storage error"})

    def _session_exists(self, session_id: str) -> bool:
        return self.quiz_service.get_session(session_id) is not None

    def _state_body(self, session_id: str) -> Dict[str, Any]:
        session = self.quiz_service.get_session(session_id)
        body = {
            "session_id": session_id,
            "state": session.state.value,
            "is_session_complete": session.is_complete,
            "presentation": serialize_presentation(session.current_presentation()),
        }
        if session.summary is not None:
            body["summary"] = session.summary.to_dict()
        return body

    def _require_store(self) -> VocabularyService:
        if self.vocabulary_service is None:
            raise PersistenceError("No vocabulary store configured")
        return self.vocabulary_service

    def _start_session(self, request: StartSessionRequest) -> Response:
        config = request.config.model_dump(exclude_none=True)
        if request.words is not None:
            handle = self.quiz_service.start_session(
                [_item(pair) for pair in request.words], config, owner_id=request.owner_id, seed=request.seed
            )
        else:
            handle = self.quiz_service.start_session_for_owner(
                request.owner_id, config, package_id=request.package_id, seed=request.seed
            )
        return _response(200, self._state_body(handle.id))

    def _submit_guess(self, request: SubmitGuessRequest) -> Response:
        if not self._session_exists(request.session_id):
            return _not_found("Session not found")
        result = self.quiz_service.submit_guess(
            request.session_id,
            korean_guess=request.korean_guess,
            english_guess=request.english_guess,
            was_flipped=request.was_flipped,
        )
        body = self._state_body(request.session_id)
        body["result"] = serialize_guess(result)
        return _response(200, body)

    def _flip(self, request: FlipRequest) -> Response:
        if not self._session_exists(request.session_id):
            return _not_found("Session not found")
        flipped = self.quiz_service.flip(request.session_id)
        body = self._state_body(request.session_id)
        body["flipped"] = flipped
        return _response(200, body)

    def _advance(self, request: AdvanceRequest) -> Response:
        if not self._session_exists(request.session_id):
            return _not_found("Session not found")
        advanced = self.quiz_service.advance(request.session_id)
        body = self._state_body(request.session_id)
        body["advanced"] = advanced
        return _response(200, body)

    def _snapshot(self, request: SnapshotRequest) -> Response:
        snapshot = self.quiz_service.get_snapshot(request.session_id)
        if snapshot is None:
            return _not_found("Session not found")
        return _response(200, snapshot.to_dict())

    def _force_graduate(self, request: ForceGraduateRequest) -> Response:
        if not self._session_exists(request.session_id):
            return _not_found("Session not found")
        changed = self.quiz_service.force_graduate(request.session_id, request.korean)
        body = self._state_body(request.session_id)
        body["changed"] = changed
        return _response(200, body)

    def _remove_word(self, request: RemoveWordRequest) -> Response:
        if not self._session_exists(request.session_id):
            return _not_found("Session not found")
        changed = self.quiz_service.remove_from_session(request.session_id, request.korean)
        body = self._state_body(request.session_id)
        body["changed"] = changed
        return _response(200, body)

    def _update_word(self, request: UpdateWordRequest) -> Response:
        item = _item(request.word)
        if request.session_id:
            if not self._session_exists(request.session_id):
                return _not_found("Session not found")
            changed = self.quiz_service.update_word(request.session_id, request.old_korean, item)
            body = self._state_body(request.session_id)
            body["changed"] = changed
            return _response(200, body)

        rows = self._require_store().update_word(
            request.owner_id, request.old_korean, item.korean, item.english, item.example
        )
        if rows == 0:
            return _not_found("Word not found")
        return _response(200, {"updated": rows})

    def _upload_words(self, request: UploadWordsRequest) -> Response:
        package = self._require_store().upload_words(
            request.owner_id, [_item(pair) for pair in request.words], request.custom_identifier
        )
        return _response(200, {"package_id": package.id, "count": len(request.words)})

    def _load_vocabulary(self, request: LoadVocabularyRequest) -> Response:
        words = self._require_store().load_vocabulary(request.owner_id, request.package_id)
        return _response(200, {"words": [word.to_dict() for word in words]})
