"""Request schemas accepted at the service boundary.

Every request is one variant of a union tagged by ``action``. Field names are
snake_case; the camelCase spellings used by browser clients (``sessionId``,
``koreanGuess``, ``wasFlipped``...) are accepted as aliases.
"""
from __future__ import annotations

from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, model_validator
from pydantic.alias_generators import to_camel

from kvocab.exceptions import RequestValidationError


class RequestModel(BaseModel):
    """Base for request payloads."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


class WordPair(RequestModel):
    """A Korean/English pair as uploaded or edited."""
    korean: str = Field(..., min_length=1)
    english: str = Field(..., min_length=1, description="Comma-separated accepted spellings")
    example: Optional[str] = None


class QuizConfigPayload(RequestModel):
    """Optional session tuning; out-of-range values are clamped later."""
    active_window_size: Optional[int] = None
    consecutive_successes_required: Optional[int] = None
    graduated_word_recurrence_rate: Optional[float] = None
    temperature: Optional[float] = Field(default=None, gt=0)
    mode: Optional[
        Literal["english-to-korean", "korean-to-english", "audio-to-english", "bulk-korean-to-english"]
    ] = None


class StartSessionRequest(RequestModel):
    action: Literal["start_session"]
    owner_id: Optional[str] = None
    words: Optional[List[WordPair]] = None
    package_id: Optional[str] = None
    config: QuizConfigPayload = Field(default_factory=QuizConfigPayload)
    seed: Optional[int] = None

    @model_validator(mode="after")
    def words_or_owner(self) -> "StartSessionRequest":
        if self.words is None and not self.owner_id:
            raise ValueError("either words or owner_id is required")
        return self


class SessionRequest(RequestModel):
    session_id: str = Field(..., min_length=1)


class SubmitGuessRequest(SessionRequest):
    action: Literal["submit_guess"]
    korean_guess: Optional[str] = None
    english_guess: Optional[str] = None
    was_flipped: bool = False

    @model_validator(mode="after")
    def has_guess(self) -> "SubmitGuessRequest":
        if self.korean_guess is None and self.english_guess is None:
            raise ValueError("korean_guess or english_guess is required")
        return self


class FlipRequest(SessionRequest):
    action: Literal["flip"]


class AdvanceRequest(SessionRequest):
    action: Literal["advance"]


class SnapshotRequest(SessionRequest):
    action: Literal["snapshot"]


class ForceGraduateRequest(SessionRequest):
    action: Literal["force_graduate"]
    korean: str = Field(..., min_length=1)


class RemoveWordRequest(SessionRequest):
    action: Literal["remove_word"]
    korean: str = Field(..., min_length=1)


class UpdateWordRequest(RequestModel):
    action: Literal["update_word"]
    old_korean: str = Field(..., min_length=1)
    word: WordPair
    session_id: Optional[str] = None
    owner_id: Optional[str] = None

    @model_validator(mode="after")
    def has_target(self) -> "UpdateWordRequest":
        if not self.session_id and not self.owner_id:
            raise ValueError("session_id or owner_id is required")
        return self


class UploadWordsRequest(RequestModel):
    action: Literal["upload_words"]
    owner_id: str = Field(..., min_length=1)
    words: List[WordPair] = Field(..., min_length=1)
    custom_identifier: Optional[str] = None


class LoadVocabularyRequest(RequestModel):
    action: Literal["load_vocabulary"]
    owner_id: str = Field(..., min_length=1)
    package_id: Optional[str] = None


QuizRequest = Annotated[
    Union[
        StartSessionRequest,
        SubmitGuessRequest,
        FlipRequest,
        AdvanceRequest,
        SnapshotRequest,
        ForceGraduateRequest,
        RemoveWordRequest,
        UpdateWordRequest,
        UploadWordsRequest,
        LoadVocabularyRequest,
    ],
    Field(discriminator="action"),
]

_request_adapter = TypeAdapter(QuizRequest)


def parse_request(payload: Union[str, bytes, dict[str, Any]]) -> QuizRequest:
    """Validate a raw payload into one request variant.

    Raises RequestValidationError listing every problem found.
    """
    try:
        if isinstance(payload, (str, bytes)):
            return _request_adapter.validate_json(payload)
        return _request_adapter.validate_python(payload)
    except ValidationError as e:
        errors = [
            {"loc": list(error["loc"]), "msg": error["msg"], "type": error["type"]}
            for error in e.errors()
        ]
        raise RequestValidationError(errors) from e
