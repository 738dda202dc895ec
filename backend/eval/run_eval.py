"""Calibrate the answer validator against a labelled evalset.

Deployments have disagreed on the minimum answer length (20 vs 40 characters),
so this compares candidate threshold sets on `evalset.jsonl` rows of the form
{"answer": str, "gold_label": "VALID"|"REJECTED", "gold_score": 0..1}.

Run from backend/:  python -m eval.run_eval
"""
import json, csv
from itertools import groupby
from statistics import StatisticsError, correlation
from pathlib import Path
from typing import Dict, List, Optional

from validator import evaluate, LENGTH_DIVISOR, MAX_SCORE

ROOT = Path(__file__).parent
EVAL_PATH = ROOT / "evalset.jsonl"
OUT_DIR = ROOT / "out"

CANDIDATES = [
    ("min40", {"min_length": 40, "length_divisor": LENGTH_DIVISOR, "max_score": MAX_SCORE}),
    ("min20", {"min_length": 20, "length_divisor": LENGTH_DIVISOR, "max_score": MAX_SCORE}),
    ("min20_max10", {"min_length": 20, "length_divisor": 20, "max_score": 10}),
]


def load_eval(path: Path = EVAL_PATH) -> List[dict]:
    rows = []
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if line:
                rows.append(json.loads(line))
    return rows

def _rankdata(values: List[float]) -> List[float]:
    """0-based ranks; tied values share the mean of the positions they span."""
    order = sorted(range(len(values)), key=values.__getitem__)
    ranks = [0.0] * len(values)
    start = 0
    for _, group in groupby(order, key=values.__getitem__):
        members = list(group)
        shared = start + (len(members) - 1) / 2
        for idx in members:
            ranks[idx] = shared
        start += len(members)
    return ranks

def spearman(xs, ys) -> Optional[float]:
    """Rank correlation over the rows where both sides are present; None if undefined."""
    pairs = [(float(x), float(y)) for x, y in zip(xs, ys) if x is not None and y is not None]
    if len(pairs) < 2:
        return None
    gold, pred = zip(*pairs)
    try:
        return correlation(_rankdata(list(gold)), _rankdata(list(pred)))
    except StatisticsError:
        # one side is constant
        return None


def eval_one(name: str, params: Dict[str, int], eval_rows: List[dict]) -> dict:
    """Score every row with one threshold set and summarise agreement with the labels."""
    outs = []
    for r in eval_rows:
        result = evaluate(r.get("answer", ""), **params)
        outs.append({**r, "candidate": name, "verdict_pred": result.verdict,
                     "score_pred": result.score / params["max_score"]})

    labelled = [o for o in outs if o.get("gold_label")]
    accuracy = (sum(o["verdict_pred"] == o["gold_label"] for o in labelled) / len(labelled)) if labelled else None
    corr = spearman([o.get("gold_score") for o in outs], [o["score_pred"] for o in outs])
    return {"candidate": name, "accuracy": accuracy, "spearman": corr, "rows": outs}

def save_report(results: List[dict], out_dir: Path = OUT_DIR) -> Path:
    out_dir.mkdir(exist_ok=True, parents=True)
    for res in results:
        with open(out_dir / f"raw_{res['candidate']}.jsonl", "w", encoding="utf-8") as f:
            for o in res["rows"]:
                f.write(json.dumps(o, ensure_ascii=False) + "\n")
    summary = out_dir / "summary.csv"
    with open(summary, "w", newline="", encoding="utf-8") as f:
        csv.writer(f).writerows([["candidate", "accuracy", "spearman"],
                                 *[[r["candidate"], r["accuracy"], r["spearman"]] for r in results]])
    return summary

def main():
    eval_rows = load_eval()
    results = [eval_one(name, params, eval_rows) for name, params in CANDIDATES]
    for r in results:
        print(f"[{r['candidate']}] accuracy={r['accuracy']}  spearman={r['spearman']}")
    print(f"\nReports saved to: {save_report(results).parent.resolve()}")

if __name__ == "__main__":
    main()
