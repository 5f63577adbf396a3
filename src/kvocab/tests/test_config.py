"""Tests for configuration settings."""
import os
from pathlib import Path

import pytest

from kvocab.config import settings


def test_base_directories_exist():
    """Test that all required directories exist."""
    from kvocab.config import DATA_DIR, MEDIA_DIR, PRONUNCIATIONS_DIR

    assert DATA_DIR.exists()
    assert MEDIA_DIR.exists()
    assert PRONUNCIATIONS_DIR.exists()


def test_quiz_defaults():
    """Test default quiz tuning values."""
    assert settings.quiz.active_window_size == 5
    assert settings.quiz.consecutive_successes_required == 5
    assert settings.quiz.graduated_word_recurrence_rate == 0.2
    assert settings.quiz.temperature == 0.75
    assert settings.quiz.session_weight == 0.4
    assert settings.quiz.success_weight == 0.6
    assert settings.quiz.success_rate_ceiling == 0.95
    assert settings.quiz.mode == "english-to-korean"


def test_settings_from_env():
    """Test that settings are read from environment variables."""
    assert settings.database.url == os.environ["DATABASE_URL"]
    assert str(settings.paths.data_dir) == str(Path(os.environ["DATA_DIR"]))


def test_validate_rejects_unknown_mode():
    from kvocab.config import QuizSettings, Settings

    with pytest.raises(ValueError):
        Settings(quiz=QuizSettings(mode="klingon")).validate()


def test_validate_rejects_bad_retry_settings():
    from kvocab.config import RetrySettings, Settings

    with pytest.raises(ValueError):
        Settings(retry=RetrySettings(max_attempts=0)).validate()
    with pytest.raises(ValueError):
        Settings(retry=RetrySettings(backoff_seconds=-1)).validate()


def test_test_environment_is_active():
    assert os.getenv("ENV") == "test"


if __name__ == "__main__":
    pytest.main([__file__])
