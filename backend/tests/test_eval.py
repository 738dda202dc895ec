import importlib.util
import json
from pathlib import Path

import pytest

_module_path = Path(__file__).resolve().parents[1] / "eval" / "run_eval.py"
_spec = importlib.util.spec_from_file_location("run_eval", _module_path)
_mod = importlib.util.module_from_spec(_spec)
_spec.loader.exec_module(_mod)


def test_spearman_perfect_and_degenerate():
    assert _mod.spearman([1, 2, 3], [10, 20, 30]) == pytest.approx(1.0)
    assert _mod.spearman([1, 2, 3], [3, 2, 1]) == pytest.approx(-1.0)
    assert _mod.spearman([1], [1]) is None
    assert _mod.spearman([1, 1], [2, 3]) is None


def test_rankdata_ties():
    assert _mod._rankdata([5, 1, 5]) == [1.5, 0.0, 1.5]


def test_bundled_evalset_loads():
    rows = _mod.load_eval()
    assert rows and all("answer" in r and "gold_label" in r for r in rows)


def test_threshold_candidates_disagree_on_short_answers():
    rows = [
        {"answer": "x" * 25, "gold_label": "REJECTED", "gold_score": 0.2},
        {"answer": "y" * 60, "gold_label": "VALID", "gold_score": 0.8},
    ]
    strict = _mod.eval_one("min40", {"min_length": 40, "length_divisor": 20, "max_score": 5}, rows)
    loose = _mod.eval_one("min20", {"min_length": 20, "length_divisor": 20, "max_score": 5}, rows)
    assert strict["accuracy"] == 1.0
    assert loose["accuracy"] == 0.5
    assert strict["spearman"] == pytest.approx(1.0)


def test_save_report(tmp_path):
    rows = [{"answer": "z" * 45, "gold_label": "VALID", "gold_score": 1.0}]
    res = _mod.eval_one("min40", {"min_length": 40, "length_divisor": 20, "max_score": 5}, rows)
    summary = _mod.save_report([res], out_dir=tmp_path)
    assert summary.read_text(encoding="utf-8").splitlines()[0] == "candidate,accuracy,spearman"
    raw = (tmp_path / "raw_min40.jsonl").read_text(encoding="utf-8").splitlines()
    assert json.loads(raw[0])["verdict_pred"] == "VALID"

def test_spearman_with_ties_and_missing_gold():
    # ranks: gold [0, 1.5, 1.5, 3], pred [0, 1, 2, 3]
    assert _mod.spearman([0.1, 0.5, 0.5, 0.9, None], [1, 2, 3, 4, 5]) == pytest.approx(0.9486832980505138)
    assert _mod._rankdata([2.0, 2.0, 2.0]) == [1.0, 1.0, 1.0]
