"""Models for quiz-related data structures."""
import logging
from collections import deque
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Deque, Dict, List, Optional

logger = logging.getLogger(__name__)

RECENT_OUTCOMES_CAPACITY = 10


class Tier(Enum):
    """Tier of a word inside a session pool."""
    PENDING = "pending"  # Enrolled, waiting for a free slot
    ACTIVE = "active"  # In the rotation
    GRADUATED = "graduated"  # Mastered, only recurs occasionally


class QuizMode(Enum):
    """How a word is presented and which answer is expected."""
    ENGLISH_TO_KOREAN = "english-to-korean"  # Learner types Korean
    KOREAN_TO_ENGLISH = "korean-to-english"  # Learner types English
    AUDIO_TO_ENGLISH = "audio-to-english"  # Learner hears Korean, types English
    BULK_KOREAN_TO_ENGLISH = "bulk-korean-to-english"

    @property
    def expects_korean(self) -> bool:
        """Whether the answer to this mode is the Korean word."""
        return self is QuizMode.ENGLISH_TO_KOREAN


class SessionState(Enum):
    """States of the quiz session state machine."""
    AWAITING_WORD = "awaiting_word"
    PRESENTING = "presenting"
    AWAITING_GUESS = "awaiting_guess"
    RESOLVED = "resolved"
    COMPLETE = "complete"


@dataclass
class VocabularyItem:
    """A single Korean/English translation pair."""
    korean: str
    english: str  # comma-separated accepted spellings, first is canonical
    example: Optional[str] = None

    @property
    def accepted_english(self) -> List[str]:
        """All accepted English spellings, in stored order."""
        return [spelling.strip() for spelling in self.english.split(",") if spelling.strip()]

    @property
    def canonical_english(self) -> str:
        spellings = self.accepted_english
        return spellings[0] if spellings else ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VocabularyItem":
        return cls(korean=data["korean"], english=data["english"], example=data.get("example"))

    def to_dict(self) -> Dict[str, Any]:
        return {"korean": self.korean, "english": self.english, "example": self.example}


@dataclass
class WordStats:
    """Session-scoped statistics for one word."""
    session_attempts: int = 0
    session_successes: int = 0
    recent_outcomes: Deque[int] = field(
        default_factory=lambda: deque(maxlen=RECENT_OUTCOMES_CAPACITY)
    )
    recent_success_rate: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "attempts": self.session_attempts,
            "successes": self.session_successes,
            "recent_outcomes": list(self.recent_outcomes),
            "recent_success_rate": self.recent_success_rate,
        }


@dataclass
class PoolEntry:
    """A vocabulary item together with its tier inside a session."""
    item: VocabularyItem
    order: int  # insertion order in the pool
    tier: Tier = Tier.PENDING
    consecutive_successes: int = 0

    @property
    def korean(self) -> str:
        return self.item.korean


@dataclass
class SelectionWeight:
    """Derived sampling weight of one candidate for one selection round."""
    entry: PoolEntry
    score: float
    probability: float


def _clamp(value, lower, upper):
    return max(lower, min(upper, value))


@dataclass
class QuizConfig:
    """Tuning of one quiz session."""
    active_window_size: int = 5
    consecutive_successes_required: int = 5
    graduated_word_recurrence_rate: float = 0.2
    temperature: float = 0.75
    session_weight: float = 0.4
    success_weight: float = 0.6
    success_rate_ceiling: float = 0.95
    mode: QuizMode = QuizMode.ENGLISH_TO_KOREAN

    def clamped(self) -> "QuizConfig":
        """Return a copy with every option pulled into its valid range."""
        mode = self.mode
        if not isinstance(mode, QuizMode):
            try:
                mode = QuizMode(mode)
            except ValueError:
                logger.warning(f"Unknown quiz mode {mode!r}, using {QuizMode.ENGLISH_TO_KOREAN.value}")
                mode = QuizMode.ENGLISH_TO_KOREAN

        config = replace(
            self,
            active_window_size=_clamp(int(self.active_window_size), 1, 10),
            consecutive_successes_required=_clamp(int(self.consecutive_successes_required), 1, 10),
            graduated_word_recurrence_rate=_clamp(float(self.graduated_word_recurrence_rate), 0.0, 0.5),
            temperature=max(float(self.temperature), 0.01),
            session_weight=_clamp(float(self.session_weight), 0.0, 1.0),
            success_weight=_clamp(float(self.success_weight), 0.0, 1.0),
            success_rate_ceiling=_clamp(float(self.success_rate_ceiling), 0.0, 1.0),
            mode=mode,
        )
        if config != self:
            logger.debug(f"Quiz config clamped from {self} to {config}")
        return config

    @classmethod
    def from_settings(cls, quiz_settings, **overrides) -> "QuizConfig":
        """Build a clamped config from QuizSettings, applying overrides."""
        values = {
            "active_window_size": quiz_settings.active_window_size,
            "consecutive_successes_required": quiz_settings.consecutive_successes_required,
            "graduated_word_recurrence_rate": quiz_settings.graduated_word_recurrence_rate,
            "temperature": quiz_settings.temperature,
            "session_weight": quiz_settings.session_weight,
            "success_weight": quiz_settings.success_weight,
            "success_rate_ceiling": quiz_settings.success_rate_ceiling,
            "mode": quiz_settings.mode,
        }
        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**values).clamped()


@dataclass
class Presentation:
    """The word currently shown to the learner."""
    word: VocabularyItem
    mode: QuizMode
    answer_revealed: bool = False
    was_flipped: bool = False

    @property
    def prompt(self) -> str:
        """Text shown to the learner for this mode."""
        if self.mode.expects_korean:
            return self.word.canonical_english
        if self.mode is QuizMode.AUDIO_TO_ENGLISH:
            return ""
        return self.word.korean

    @property
    def answer(self) -> str:
        """Canonical answer for this mode."""
        return self.word.korean if self.mode.expects_korean else self.word.english


@dataclass(frozen=True)
class EditOp:
    """One step of the edit trace turning a guess into the answer."""
    type: str  # equal, substitute, insert, delete
    guess_char: Optional[str]
    answer_char: Optional[str]


@dataclass
class GuessResult:
    """Outcome of a guess submission as seen by the caller."""
    is_correct: bool
    is_session_complete: bool
    accepted: bool = True
    recorded: bool = False
    correct_answer: Optional[str] = None
    warning: Optional[str] = None
    diff: List[EditOp] = field(default_factory=list)

    @classmethod
    def ignored(cls, is_session_complete: bool = False) -> "GuessResult":
        return cls(is_correct=False, is_session_complete=is_session_complete, accepted=False)


@dataclass
class SessionSummary:
    """Aggregate statistics emitted when a session completes."""
    total_attempts: int
    total_successes: int
    success_rates: Dict[str, float]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_attempts": self.total_attempts,
            "total_successes": self.total_successes,
            "success_rates": dict(self.success_rates),
        }


@dataclass
class SessionSnapshot:
    """Read-only view of a session for rendering and tests."""
    state: SessionState
    active_words: List[str]
    graduated_words: List[str]
    pending_words: List[str]
    stats: Dict[str, WordStats]
    probabilities: Dict[str, float] = field(default_factory=dict)
    streak_history: List[bool] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "active_words": list(self.active_words),
            "graduated_words": list(self.graduated_words),
            "pending_words": list(self.pending_words),
            "stats": {korean: stats.to_dict() for korean, stats in self.stats.items()},
            "probabilities": dict(self.probabilities),
            "streak_history": list(self.streak_history),
        }
