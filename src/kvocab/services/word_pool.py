"""Tiered word pool with sliding-window admission and graduation."""
import logging
import random
from typing import Dict, Iterable, List, Optional

from kvocab.models.quiz_models import (
    PoolEntry,
    QuizConfig,
    SelectionWeight,
    Tier,
    VocabularyItem,
    WordStats,
)
from kvocab.services.outcome_tracker import OutcomeTracker
from kvocab.services.selection_scorer import SelectionScorer

logger = logging.getLogger(__name__)


class WordPool:
    """Partitions a session's vocabulary into Pending, Active and Graduated tiers.

    Only the first active_window_size words (in insertion order) are Active at
    once. A word graduates after consecutive_successes_required unpenalised
    successes in a row and its slot is backfilled from Pending. Graduated words
    stay out of the rotation except for an occasional recurrence draw.
    """

    def __init__(
        self,
        vocabulary: Iterable[VocabularyItem],
        config: QuizConfig,
        rng: Optional[random.Random] = None,
    ):
        self.config = config
        self.rng = rng or random.Random()
        self.tracker = OutcomeTracker()
        self.scorer = SelectionScorer(config, self.rng)
        self.entries: Dict[str, PoolEntry] = {}
        self.removed: List[str] = []

        for order, item in enumerate(vocabulary):
            if item.korean in self.entries:
                logger.warning(f"Duplicate word {item.korean!r} skipped when building the pool")
                continue
            self.entries[item.korean] = PoolEntry(item=item, order=order)

        self.admit()
        logger.debug(
            f"Pool built with {len(self.entries)} words, "
            f"{len(self.active_entries())} active (window {config.active_window_size})"
        )

    def _by_tier(self, tier: Tier) -> List[PoolEntry]:
        return sorted(
            (entry for entry in self.entries.values() if entry.tier is tier),
            key=lambda entry: entry.order,
        )

    def active_entries(self) -> List[PoolEntry]:
        return self._by_tier(Tier.ACTIVE)

    def pending_entries(self) -> List[PoolEntry]:
        return self._by_tier(Tier.PENDING)

    def graduated_entries(self) -> List[PoolEntry]:
        return self._by_tier(Tier.GRADUATED)

    def get(self, korean: str) -> Optional[PoolEntry]:
        return self.entries.get(korean)

    def admit(self) -> None:
        """Promote the earliest Pending words until the Active window is full."""
        active_count = len(self.active_entries())
        for entry in self.pending_entries():
            if active_count >= self.config.active_window_size:
                break
            entry.tier = Tier.ACTIVE
            active_count += 1
            logger.debug(f"Admitted {entry.korean} to the active tier")

    def candidates(self) -> List[PoolEntry]:
        """Active words plus, sometimes, one Graduated word for review."""
        candidates = self.active_entries()
        graduated = self.graduated_entries()
        if graduated and self.rng.random() < self.config.graduated_word_recurrence_rate:
            recurring = self.rng.choice(graduated)
            logger.debug(f"Graduated word {recurring.korean} recurs this round")
            candidates.append(recurring)
        return candidates

    def select_next(self) -> Optional[PoolEntry]:
        """Pick the next word to present, or None when nothing is left."""
        if self.is_complete():
            return None
        return self.scorer.select(self.candidates(), self.tracker.as_dict())

    def weights(self) -> List[SelectionWeight]:
        """Current weights of the Active words, without sampling."""
        return self.scorer.score_all(self.active_entries(), self.tracker.as_dict())

    def on_outcome(self, korean: str, succeeded: bool) -> Optional[WordStats]:
        """Record an outcome and move the word between tiers if needed.

        succeeded must already be False for peeked guesses.
        """
        entry = self.entries.get(korean)
        if entry is None:
            logger.warning(f"Outcome for unknown word {korean!r} ignored")
            return None

        stats = self.tracker.record_outcome(korean, succeeded)
        if entry.tier is not Tier.ACTIVE:
            # Recurring graduated words keep their tier
            return stats

        if succeeded:
            entry.consecutive_successes += 1
        else:
            entry.consecutive_successes = 0

        if entry.consecutive_successes >= self.config.consecutive_successes_required:
            self._graduate(entry)
        return stats

    def force_graduate(self, korean: str) -> bool:
        """Graduate a word immediately regardless of its streak."""
        entry = self.entries.get(korean)
        if entry is None:
            logger.warning(f"Cannot graduate unknown word {korean!r}")
            return False
        if entry.tier is Tier.GRADUATED:
            return False
        self._graduate(entry)
        return True

    def remove_from_session(self, korean: str) -> bool:
        """Drop a word from every tier for the rest of the session."""
        entry = self.entries.pop(korean, None)
        if entry is None:
            logger.warning(f"Cannot remove unknown word {korean!r}")
            return False
        self.removed.append(korean)
        self.scorer.forget(korean)
        logger.info(f"Removed {korean} from the session")
        self.admit()
        return True

    def rename(self, old_korean: str, item: VocabularyItem) -> bool:
        """Apply a spelling edit to an enrolled word, keeping its state."""
        entry = self.entries.get(old_korean)
        if entry is None:
            logger.warning(f"Cannot edit unknown word {old_korean!r}")
            return False
        if item.korean != old_korean and item.korean in self.entries:
            logger.warning(f"Cannot rename {old_korean!r} to {item.korean!r}: word already enrolled")
            return False

        entry.item = item
        if item.korean != old_korean:
            # Rebuild the dict so the new key keeps the same position
            self.entries = {
                (item.korean if key == old_korean else key): value
                for key, value in self.entries.items()
            }
            self.tracker.rekey(old_korean, item.korean)
            self.scorer.rekey(old_korean, item.korean)
        return True

    def is_complete(self) -> bool:
        """True once every enrolled word graduated or was removed."""
        return all(entry.tier is Tier.GRADUATED for entry in self.entries.values())

    def _graduate(self, entry: PoolEntry) -> None:
        entry.tier = Tier.GRADUATED
        logger.info(f"Word {entry.korean} graduated")
        self.admit()
