"""Answer normalisation and comparison."""
import difflib
import re
import unicodedata
from typing import List, Optional

from kvocab.models.quiz_models import EditOp, VocabularyItem

# Everything except Latin letters, the Hangul blocks and whitespace
_DISALLOWED_CHARACTERS = re.compile(
    r"[^a-zA-Z\u1100-\u11FF\u3130-\u318F\uA960-\uA97F\uAC00-\uD7AF\s]"
)
_WHITESPACE = re.compile(r"\s+")


def normalize(text: Optional[str]) -> str:
    """Normalise an answer for comparison.

    NFC-normalises, strips punctuation and any other character outside the
    allowed set, collapses whitespace and case-folds. Applying it twice gives
    the same result as applying it once.
    """
    if not isinstance(text, str):
        return ""
    text = unicodedata.normalize("NFC", text)
    text = _DISALLOWED_CHARACTERS.sub("", text)
    # stripping can leave conjoining jamo side by side
    text = unicodedata.normalize("NFC", text)
    text = _WHITESPACE.sub(" ", text.strip())
    return text.casefold()


def is_korean_answer_correct(guess: Optional[str], word: VocabularyItem) -> bool:
    """Korean answers must match the single canonical spelling."""
    if not word.korean:
        return False
    return normalize(guess) == normalize(word.korean)


def is_english_answer_correct(guess: Optional[str], word: VocabularyItem) -> bool:
    """English answers may match any of the accepted spellings."""
    accepted = {normalize(spelling) for spelling in word.english.split(",")}
    accepted.discard("")
    return normalize(guess) in accepted


def diff_trace(guess: str, answer: str) -> List[EditOp]:
    """Character edit trace from guess to answer, used to highlight mistakes."""
    matcher = difflib.SequenceMatcher(None, guess, answer, autojunk=False)
    trace: List[EditOp] = []
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == "equal":
            trace.extend(EditOp("equal", g, a) for g, a in zip(guess[i1:i2], answer[j1:j2]))
        elif tag == "replace":
            paired = min(i2 - i1, j2 - j1)
            trace.extend(
                EditOp("substitute", g, a)
                for g, a in zip(guess[i1:i1 + paired], answer[j1:j1 + paired])
            )
            trace.extend(EditOp("delete", g, None) for g in guess[i1 + paired:i2])
            trace.extend(EditOp("insert", None, a) for a in answer[j1 + paired:j2])
        elif tag == "insert":
            # missing from the guess
            trace.extend(EditOp("insert", None, a) for a in answer[j1:j2])
        else:
            # extra in the guess
            trace.extend(EditOp("delete", g, None) for g in guess[i1:i2])
    return trace
