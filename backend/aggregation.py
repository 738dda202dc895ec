"""Scan-and-reduce statistics over a survey's responses.

`reduce_responses` is the reference implementation: it folds raw stored
response records into a `SurveyStats`. The running counters kept next to each
survey (see `fold_into_counters`) must always agree with it.
"""

from __future__ import annotations

import bisect
import logging
import math
import os
from typing import Any, Iterable, Optional

from dotenv import load_dotenv

from keys import counters_key, response_prefix
from schemas import SurveyStats, SurveyWithStats, WalletList, VALID

load_dotenv()

logger = logging.getLogger(__name__)

STATS_FROM_COUNTERS = os.getenv("STATS_FROM_COUNTERS", "false").lower() in ("1", "true", "yes")


def usable_score(value: Any) -> Optional[float]:
    """Return the score as a float, or None if it cannot take part in an average."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value):
        return None
    return float(value)


def normalize_wallet(value: Any) -> Optional[str]:
    if not isinstance(value, str) or not value.strip():
        return None
    return value.lower()


def reduce_responses(survey_id: str, records: Iterable[dict[str, Any]]) -> SurveyStats:
    """Fold stored response records into summary statistics.

    Every record counts towards `total_responses`. Only VALID records add their
    wallet (lower-cased, deduplicated) and their score; unusable scores are
    left out of the average without dropping the record.
    """
    total = 0
    wallets: set[str] = set()
    score_sum = 0.0
    score_count = 0

    for record in records:
        total += 1
        if record.get("status") != VALID:
            continue
        wallet = normalize_wallet(record.get("wallet"))
        if wallet is not None:
            wallets.add(wallet)
        score = usable_score(record.get("score"))
        if score is not None:
            score_sum += score
            score_count += 1

    return SurveyStats(
        survey_id=survey_id,
        total_responses=total,
        total_valid_wallets=len(wallets),
        avg_score=score_sum / score_count if score_count else None,
        wallets=sorted(wallets),
    )

# ------------------------
# Running counters
# ------------------------
def _contains_sorted(items: list[str], value: str) -> bool:
    i = bisect.bisect_left(items, value)
    return i < len(items) and items[i] == value


# valid_wallets is kept sorted so each fold is a binary search, not a list scan
def empty_counters(survey_id: str) -> dict[str, Any]:
    return {"survey_id": survey_id, "total_responses": 0, "valid_wallets": [], "score_sum": 0.0, "score_count": 0}


def fold_into_counters(counters: dict[str, Any], record: dict[str, Any]) -> dict[str, Any]:
    """Return a new counters document with one more response applied."""
    out = dict(counters)
    out["total_responses"] = int(counters.get("total_responses", 0)) + 1
    out["valid_wallets"] = list(counters.get("valid_wallets", []))
    if record.get("status") == VALID:
        wallet = normalize_wallet(record.get("wallet"))
        if wallet is not None and not _contains_sorted(out["valid_wallets"], wallet):
            bisect.insort(out["valid_wallets"], wallet)
        score = usable_score(record.get("score"))
        if score is not None:
            out["score_sum"] = float(counters.get("score_sum", 0.0)) + score
            out["score_count"] = int(counters.get("score_count", 0)) + 1
    return out


def stats_from_counters(survey_id: str, counters: dict[str, Any]) -> SurveyStats:
    wallets = sorted(set(counters.get("valid_wallets", [])))
    score_count = int(counters.get("score_count", 0))
    return SurveyStats(
        survey_id=survey_id,
        total_responses=int(counters.get("total_responses", 0)),
        total_valid_wallets=len(wallets),
        avg_score=float(counters.get("score_sum", 0.0)) / score_count if score_count else None,
        wallets=wallets,
    )


class AggregationEngine:
    """Read-side queries over one store instance.

    Args:
        store (KeyValueStore): Store holding the surveys and their responses.
        surveys (SurveyRepository): Used for existence checks and creator scans.
        use_counters (bool): Serve `stats_for_survey` from the running counters
            record instead of a full scan.
    """

    def __init__(self, store, surveys, use_counters: bool = STATS_FROM_COUNTERS):
        self.store = store
        self.surveys = surveys
        self.use_counters = use_counters

    def scan_stats(self, survey_id: str) -> SurveyStats:
        """Full prefix scan of the survey's responses (no existence check)."""
        records = (value for _, value in self.store.list(response_prefix(survey_id)))
        return reduce_responses(survey_id, records)

    def stats_for_survey(self, survey_id: str, use_counters: Optional[bool] = None) -> SurveyStats:
        """Summary statistics for one survey.

        Raises:
            SurveyNotFound: If the survey does not exist.
        """
        self.surveys.get_by_id(survey_id)
        if self.use_counters if use_counters is None else use_counters:
            counters = self.store.get(counters_key(survey_id))
            if counters is not None:
                return stats_from_counters(survey_id, counters)
        return self.scan_stats(survey_id)

    def list_valid_wallets(self, survey_id: str) -> WalletList:
        stats = self.stats_for_survey(survey_id)
        return WalletList(
            survey_id=survey_id,
            total_responses=stats.total_responses,
            total_valid_wallets=stats.total_valid_wallets,
            wallets=stats.wallets,
        )

    def list_surveys_by_creator_with_stats(self, creator_wallet: str) -> list[SurveyWithStats]:
        """Every survey of a creator with its statistics; one scan per survey."""
        # finish the creator scan before starting the per-survey scans
        surveys = list(self.surveys.list_by_creator(creator_wallet))
        out = [SurveyWithStats(survey=s, stats=self.stats_for_survey(s.id)) for s in surveys]
        logger.debug("creator_stats_listed", extra={"creator_wallet": creator_wallet, "surveys": len(out)})
        return out
