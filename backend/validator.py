# Length-based answer validation (advisory; never touches storage)
from __future__ import annotations
import os
from typing import Optional
from dotenv import load_dotenv

from schemas import AnswerEvaluation, VALID, REJECTED

load_dotenv()

# Config. Deployments have run with 20 and with 40 as the minimum length;
# 40 is the default here, override through the environment.
MIN_LENGTH = int(os.getenv("VALIDATOR_MIN_LENGTH", "40"))
LENGTH_DIVISOR = int(os.getenv("VALIDATOR_LENGTH_DIVISOR", "20"))
MAX_SCORE = int(os.getenv("VALIDATOR_MAX_SCORE", "5"))

VALID_MSG = "Answer is long enough to be considered genuine and not spam."
REJECTED_MSG = "Answer is too short. Likely spam or low effort."


def evaluate(
    text: Optional[str],
    *,
    min_length: Optional[int] = None,
    length_divisor: Optional[int] = None,
    max_score: Optional[int] = None,
) -> AnswerEvaluation:
    """Classify a free-text answer by its trimmed length.

    Args:
        text (str|None): Raw answer; None counts as empty.
        min_length (int|None): Override for MIN_LENGTH.
        length_divisor (int|None): Override for LENGTH_DIVISOR.
        max_score (int|None): Override for MAX_SCORE.

    Returns:
        AnswerEvaluation: verdict (VALID if length >= min_length), score
        (length // divisor, capped at max_score), length and a fixed explanation.
    """
    min_length = MIN_LENGTH if min_length is None else min_length
    length_divisor = LENGTH_DIVISOR if length_divisor is None else length_divisor
    max_score = MAX_SCORE if max_score is None else max_score
    if length_divisor <= 0:
        raise ValueError("length_divisor must be positive")

    length = len((text or "").strip())
    is_valid = length >= min_length
    score = max(0, min(max_score, length // length_divisor))

    return AnswerEvaluation(
        verdict=VALID if is_valid else REJECTED,
        score=score,
        length=length,
        explanation=VALID_MSG if is_valid else REJECTED_MSG,
    )
