"""State machine driving a single quiz session."""
import logging
import random
from collections import deque
from typing import Deque, Iterable, Optional

from kvocab.models.quiz_models import (
    GuessResult,
    Presentation,
    QuizConfig,
    SessionSnapshot,
    SessionState,
    SessionSummary,
    Tier,
    VocabularyItem,
)
from kvocab.services.answer_checker import (
    diff_trace,
    is_english_answer_correct,
    is_korean_answer_correct,
    normalize,
)
from kvocab.services.word_pool import WordPool

logger = logging.getLogger(__name__)

STREAK_HISTORY_SIZE = 10


class QuizSession:
    """One learner working through one pool of words.

    The session moves through AWAITING_WORD -> PRESENTING -> AWAITING_GUESS ->
    RESOLVED and back, until every word graduated or was removed (COMPLETE).
    Only the first submission for a presentation is scored; a flip before that
    submission turns a correct answer into a recorded failure while the caller
    is still told the answer was correct.

    Actions that do not fit the current state are logged and ignored.
    """

    def __init__(
        self,
        vocabulary: Iterable[VocabularyItem],
        config: Optional[QuizConfig] = None,
        rng: Optional[random.Random] = None,
    ):
        self.config = (config or QuizConfig()).clamped()
        self.pool = WordPool(vocabulary, self.config, rng)
        self.state = SessionState.AWAITING_WORD
        self.presentation: Optional[Presentation] = None
        self.summary: Optional[SessionSummary] = None
        self.total_attempts = 0
        self.total_successes = 0
        self.streak_history: Deque[bool] = deque(maxlen=STREAK_HISTORY_SIZE)
        self._present_next_word()

    @property
    def is_complete(self) -> bool:
        return self.state is SessionState.COMPLETE or self.pool.is_complete()

    def current_presentation(self) -> Optional[Presentation]:
        if self.state is SessionState.COMPLETE:
            return None
        return self.presentation

    def flip(self) -> bool:
        """Reveal the answer card; taints the presentation's outcome."""
        if self.state not in (SessionState.PRESENTING, SessionState.AWAITING_GUESS):
            logger.warning(f"Flip ignored in state {self.state.value}")
            return False
        self.presentation.was_flipped = True
        return True

    def submit_guess(
        self,
        korean_guess: Optional[str] = None,
        english_guess: Optional[str] = None,
        was_flipped: bool = False,
    ) -> GuessResult:
        """Compare a guess with the current word and score the first one."""
        if self.state not in (SessionState.PRESENTING, SessionState.AWAITING_GUESS):
            logger.warning(f"Guess ignored in state {self.state.value}")
            return GuessResult.ignored(self.is_complete)

        presentation = self.presentation
        word = presentation.word
        if presentation.mode.expects_korean:
            guess = korean_guess
            is_correct = is_korean_answer_correct(guess, word)
        else:
            guess = english_guess
            is_correct = is_english_answer_correct(guess, word)

        if guess is None:
            logger.warning(f"Guess ignored: no answer given for mode {presentation.mode.value}")
            return GuessResult.ignored(self.is_complete)

        if was_flipped:
            presentation.was_flipped = True

        result = GuessResult(
            is_correct=is_correct,
            is_session_complete=False,
            correct_answer=presentation.answer,
        )

        if self.state is SessionState.PRESENTING:
            succeeded = is_correct and not presentation.was_flipped
            self.pool.on_outcome(word.korean, succeeded)
            self.total_attempts += 1
            if succeeded:
                self.total_successes += 1
            self.streak_history.append(succeeded)
            result.recorded = True
            self.state = SessionState.AWAITING_GUESS
            logger.debug(
                f"First guess for {word.korean}: correct={is_correct}, "
                f"flipped={presentation.was_flipped}, counted={succeeded}"
            )
        else:
            logger.debug(f"Retry for {word.korean}: correct={is_correct}, not scored")

        if is_correct:
            self.state = SessionState.RESOLVED
        else:
            presentation.answer_revealed = True
            canonical = word.korean if presentation.mode.expects_korean else word.canonical_english
            result.diff = diff_trace(normalize(guess), normalize(canonical))

        result.is_session_complete = self.pool.is_complete()
        return result

    def advance(self) -> bool:
        """Move on to the next word once the current one has been scored."""
        if self.state not in (SessionState.RESOLVED, SessionState.AWAITING_GUESS):
            logger.warning(f"Advance ignored in state {self.state.value}")
            return False
        self._present_next_word()
        return True

    def force_graduate(self, korean: str) -> bool:
        if self.state is SessionState.COMPLETE:
            return False
        graduated = self.pool.force_graduate(korean)
        if graduated:
            self._skip_if_current(korean)
        return graduated

    def remove_from_session(self, korean: str) -> bool:
        if self.state is SessionState.COMPLETE:
            return False
        removed = self.pool.remove_from_session(korean)
        if removed:
            self._skip_if_current(korean)
        return removed

    def update_word(self, old_korean: str, item: VocabularyItem) -> bool:
        """Apply a spelling edit to the pool and the current presentation."""
        if not self.pool.rename(old_korean, item):
            return False
        if self.presentation is not None and self.presentation.word.korean == old_korean:
            self.presentation.word = item
        return True

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            state=self.state,
            active_words=[entry.korean for entry in self.pool.active_entries()],
            graduated_words=[entry.korean for entry in self.pool.graduated_entries()],
            pending_words=[entry.korean for entry in self.pool.pending_entries()],
            stats=self.pool.tracker.as_dict(),
            probabilities={weight.entry.korean: weight.probability for weight in self.pool.weights()},
            streak_history=list(self.streak_history),
        )

    def build_summary(self) -> SessionSummary:
        rates = {korean: 0.0 for korean in self.pool.entries}
        rates.update(
            {korean: stats.recent_success_rate for korean, stats in self.pool.tracker.as_dict().items()}
        )
        return SessionSummary(
            total_attempts=self.total_attempts,
            total_successes=self.total_successes,
            success_rates=rates,
        )

    def _skip_if_current(self, korean: str) -> None:
        """Replace the presented word if it just left the rotation."""
        if self.pool.is_complete():
            # a recurring graduated word may still be on screen
            self._present_next_word()
            return
        if self.presentation is None or self.presentation.word.korean != korean:
            return
        entry = self.pool.get(korean)
        if entry is None or entry.tier is Tier.GRADUATED:
            self._present_next_word()

    def _present_next_word(self) -> None:
        self.state = SessionState.AWAITING_WORD
        self.presentation = None

        entry = self.pool.select_next()
        if entry is None:
            self.state = SessionState.COMPLETE
            self.summary = self.build_summary()
            logger.info(
                f"Session complete: {self.summary.total_successes}/{self.summary.total_attempts} "
                f"unpenalised successes"
            )
            return

        self.presentation = Presentation(word=entry.item, mode=self.config.mode)
        self.state = SessionState.PRESENTING
        logger.debug(f"Presenting {entry.korean} ({self.config.mode.value})")
