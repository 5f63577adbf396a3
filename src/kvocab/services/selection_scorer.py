"""Softmax selection of the next word to present."""
import logging
import math
import random
from collections import deque
from typing import Deque, List, Mapping, Optional, Sequence

from kvocab.models.quiz_models import PoolEntry, QuizConfig, SelectionWeight, Tier, WordStats

logger = logging.getLogger(__name__)

REPEAT_HISTORY_SIZE = 4
MAX_RESAMPLE_ATTEMPTS = 10

_DEFAULT_STATS = WordStats()


class SelectionScorer:
    """Scores candidate words and samples one of them.

    Words attempted more often in the session and succeeding less recently get
    higher scores. Scores become probabilities through a softmax whose
    temperature (below 1) sharpens the distribution toward harder words while
    keeping every candidate possible.
    """

    def __init__(self, config: QuizConfig, rng: Optional[random.Random] = None):
        self.config = config
        self.rng = rng or random.Random()
        self.history: Deque[str] = deque(maxlen=REPEAT_HISTORY_SIZE)

    def score_all(
        self, entries: Sequence[PoolEntry], stats: Mapping[str, WordStats]
    ) -> List[SelectionWeight]:
        """Compute selection weights, ordered by descending probability.

        Attempts and rates are normalised against the non-graduated entries, so
        a recurring Graduated word is scored on their scale without shifting
        their scores.
        """
        if not entries:
            return []

        entry_stats = [stats.get(entry.korean, _DEFAULT_STATS) for entry in entries]
        rates = [min(s.recent_success_rate, self.config.success_rate_ceiling) for s in entry_stats]
        reference = [i for i, entry in enumerate(entries) if entry.tier is not Tier.GRADUATED]
        if not reference:
            reference = list(range(len(entries)))

        max_attempts = max(max(entry_stats[i].session_attempts for i in reference), 1)
        min_rate = min(rates[i] for i in reference)
        max_rate = max(rates[i] for i in reference)
        rate_range = max_rate - min_rate

        scores = []
        for word_stats, rate in zip(entry_stats, rates):
            session_score = min(word_stats.session_attempts / max_attempts, 1.0)
            if rate_range > 0:
                normalized_rate = (rate - min_rate) / rate_range
            elif max_rate > 0:
                normalized_rate = rate / max_rate
            else:
                normalized_rate = 0.0
            success_score = 1 - min(max(normalized_rate, 0.0), 1.0)
            scores.append(
                self.config.session_weight * session_score
                + self.config.success_weight * success_score
            )

        exponents = [math.exp(score / self.config.temperature) for score in scores]
        total = sum(exponents)
        weights = [
            SelectionWeight(entry=entry, score=score, probability=exponent / total)
            for entry, score, exponent in zip(entries, scores, exponents)
        ]
        # sorted() is stable, so ties keep insertion order
        return sorted(weights, key=lambda weight: -weight.probability)

    def sample(self, weights: Sequence[SelectionWeight]) -> Optional[PoolEntry]:
        """Draw one entry by walking the cumulative probabilities."""
        if not weights:
            return None
        remaining = self.rng.random()
        for weight in weights:
            remaining -= weight.probability
            if remaining <= 0:
                return weight.entry
        # Rounding left a sliver above zero
        return weights[-1].entry

    def select(
        self, entries: Sequence[PoolEntry], stats: Mapping[str, WordStats]
    ) -> Optional[PoolEntry]:
        """Score, sample, apply the anti-repetition rule and remember the pick."""
        weights = self.score_all(entries, stats)
        if not weights:
            return None

        choice = self.sample(weights)
        streak_word = self._streak_word()
        distinct = {weight.entry.korean for weight in weights}

        if streak_word is not None and choice.korean == streak_word and len(distinct) > 1:
            logger.debug(f"{streak_word} drawn {REPEAT_HISTORY_SIZE} times in a row, resampling")
            for _ in range(MAX_RESAMPLE_ATTEMPTS):
                choice = self.sample(weights)
                if choice.korean != streak_word:
                    break
            else:
                choice = next(w.entry for w in weights if w.entry.korean != streak_word)
                logger.debug(f"Resampling kept returning {streak_word}, falling back to {choice.korean}")

        self.history.append(choice.korean)
        return choice

    def _streak_word(self) -> Optional[str]:
        """The word filling the whole repeat history, if any."""
        if len(self.history) < REPEAT_HISTORY_SIZE:
            return None
        first = self.history[0]
        if all(korean == first for korean in self.history):
            return first
        return None

    def rekey(self, old_korean: str, new_korean: str) -> None:
        """Rewrite the repeat history after a spelling edit."""
        renamed = [new_korean if korean == old_korean else korean for korean in self.history]
        self.history.clear()
        self.history.extend(renamed)

    def forget(self, korean: str) -> None:
        """Drop a removed word from the repeat history."""
        kept = [k for k in self.history if k != korean]
        self.history.clear()
        self.history.extend(kept)
