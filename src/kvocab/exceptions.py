"""Exceptions raised at the edges of the quiz engine.

The engine itself never raises for bad input: invalid transitions and unknown
words are logged and ignored. These errors belong to the collaborators around
it (storage, text-to-speech, request validation).
"""
from typing import Any, Optional


class KvocabError(Exception):
    """Base error for kvocab."""
    pass


class RequestValidationError(KvocabError):
    """Request payload did not match any known request variant."""

    def __init__(self, errors: list[dict[str, Any]]):
        self.errors = errors
        summary = "; ".join(
            f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg')}"
            for error in errors
        )
        super().__init__(f"Invalid request: {summary}")


class PersistenceError(KvocabError):
    """Reading or writing the vocabulary store failed."""
    pass


class PronunciationError(KvocabError):
    """Speech synthesis failed."""

    def __init__(self, korean: str, cause: Optional[Exception] = None):
        self.korean = korean
        self.cause = cause
        message = f"Could not synthesise pronunciation for '{korean}'"
        if cause:
            message += f": {cause}"
        super().__init__(message)


class RetryExhaustedError(KvocabError):
    """All attempts of a retried call failed."""

    def __init__(self, operation: str, attempts: int, cause: Optional[Exception] = None):
        self.operation = operation
        self.attempts = attempts
        self.cause = cause
        message = f"'{operation}' failed after {attempts} attempts"
        if cause:
            message += f": {cause}"
        super().__init__(message)
