import pytest

import validator
from validator import evaluate

def test_empty_answer_rejected():
    r = evaluate("")
    assert (r.verdict, r.score, r.length) == ("REJECTED", 0, 0)
    assert r.explanation == validator.REJECTED_MSG

def test_none_counts_as_empty():
    assert evaluate(None).length == 0

def test_boundary_is_inclusive():
    r = evaluate("x" * 40)
    assert r.verdict == "VALID"
    assert r.score == 2
    assert r.explanation == validator.VALID_MSG
    assert evaluate("x" * 39).verdict == "REJECTED"

def test_length_is_measured_after_trimming():
    r = evaluate("   " + "y" * 39 + "\n\t ")
    assert r.length == 39
    assert r.verdict == "REJECTED"
    assert r.score == 1

def test_score_is_capped():
    assert evaluate("z" * 1000).score == validator.MAX_SCORE

def test_deterministic():
    text = "The wallet connect step failed twice during onboarding."
    assert evaluate(text) == evaluate(text)

def test_overrides():
    r = evaluate("a" * 25, min_length=20, max_score=10)
    assert r.verdict == "VALID"
    assert r.score == 1

def test_bad_divisor():
    with pytest.raises(ValueError):
        evaluate("abc", length_divisor=0)
