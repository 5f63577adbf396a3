"""Per-word outcome bookkeeping for a quiz session."""
import logging
from typing import Dict

from kvocab.models.quiz_models import WordStats

logger = logging.getLogger(__name__)


class OutcomeTracker:
    """Keeps attempt/success counters and a bounded window of recent outcomes.

    A flipped (peeked) guess must be reported here as a failure even when the
    typed answer matched; callers decide that before calling record_outcome.
    """

    def __init__(self):
        self._stats: Dict[str, WordStats] = {}

    def record_outcome(self, korean: str, succeeded: bool) -> WordStats:
        """Record one resolved guess and return the updated stats."""
        stats = self._stats.get(korean)
        if stats is None:
            stats = WordStats()
            self._stats[korean] = stats

        stats.session_attempts += 1
        if succeeded:
            stats.session_successes += 1
        # deque(maxlen=10) evicts the oldest outcome
        stats.recent_outcomes.append(1 if succeeded else 0)
        stats.recent_success_rate = sum(stats.recent_outcomes) / len(stats.recent_outcomes)

        logger.debug(
            f"Outcome for {korean}: succeeded={succeeded}, attempts={stats.session_attempts}, "
            f"rate={stats.recent_success_rate:.2f}"
        )
        return stats

    def get(self, korean: str) -> WordStats:
        """Stats for a word; zero stats if it was never attempted."""
        return self._stats.get(korean) or WordStats()

    def rekey(self, old_korean: str, new_korean: str) -> None:
        """Move stats to a new key after a spelling edit."""
        if old_korean == new_korean or old_korean not in self._stats:
            return
        self._stats[new_korean] = self._stats.pop(old_korean)

    def as_dict(self) -> Dict[str, WordStats]:
        return dict(self._stats)

    def __contains__(self, korean: str) -> bool:
        return korean in self._stats
