"""Pronunciation audio for Korean words using gTTS."""
import logging
import re
import time
from pathlib import Path
from typing import Optional

from gtts import gTTS

from kvocab import monitoring
from kvocab.config import settings
from kvocab.exceptions import PronunciationError, RetryExhaustedError
from kvocab.services.retry import RetryPolicy

logger = logging.getLogger(__name__)


class PronunciationService:
    """Synthesises and caches one mp3 file per Korean word."""

    def __init__(
        self,
        pronunciations_dir: Optional[Path] = None,
        retry_policy: Optional[RetryPolicy] = None,
        language: Optional[str] = None,
        slow: Optional[bool] = None,
    ):
        self.pronunciations_dir = Path(pronunciations_dir or settings.paths.pronunciations_dir)
        self.retry_policy = retry_policy or RetryPolicy.from_settings(settings.retry)
        self.language = language or settings.audio.language
        self.slow = settings.audio.slow if slow is None else slow

    def path_for(self, korean: str) -> Path:
        return self.pronunciations_dir / f"{self._sanitize_filename(korean)}.mp3"

    def get_pronunciation(self, korean: str, overwrite: bool = False) -> Path:
        """Return the audio file for a word, synthesising it when missing."""
        path = self.path_for(korean)
        if path.exists() and not overwrite:
            monitoring.pronunciation_requests.labels(source="cache").inc()
            return path

        self.pronunciations_dir.mkdir(parents=True, exist_ok=True)
        started = time.monotonic()
        try:
            self.retry_policy.call(f"tts:{korean}", self._synthesise, korean, path)
        except RetryExhaustedError as e:
            monitoring.pronunciation_requests.labels(source="error").inc()
            raise PronunciationError(korean, e.cause) from e
        monitoring.pronunciation_duration.observe(time.monotonic() - started)
        monitoring.pronunciation_requests.labels(source="synthesised").inc()
        logger.info(f"Pronunciation generated for word: {korean}, file: {path}")
        return path

    def _synthesise(self, korean: str, path: Path) -> None:
        tts = gTTS(text=korean, lang=self.language, slow=self.slow)
        tts.save(str(path))

    @staticmethod
    def _sanitize_filename(word: str) -> str:
        """Sanitize word for use in filename."""
        # \w keeps Hangul syllables; everything else becomes an underscore
        return re.sub(r"[^\w]", "_", word.strip().lower()) or "_"
