"""Survey and response repositories on top of a key-value store.

Both are handed their store explicitly; nothing here keeps state between
calls, the store is the only owner of the records.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Iterator, List, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from aggregation import empty_counters, fold_into_counters
from errors import StorageFailure, SurveyNotFound
from keys import SURVEY_PREFIX, counters_key, is_valid_id, response_key, response_prefix, survey_key
from schemas import PENDING, ResponseSubmit, Survey, SurveyCreate, SurveyResponse, parse
from store import KeyValueStore

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


def _now_utc() -> datetime:
    """Return the current UTC time as an aware datetime."""
    return datetime.now(timezone.utc)


def _load(model_cls: Type[M], key: str, raw: dict[str, Any]) -> M:
    try:
        return model_cls.model_validate(raw)
    except ValidationError as e:
        raise StorageFailure(f"Stored record at {key!r} is malformed") from e


class SurveyRepository:
    def __init__(self, store: KeyValueStore):
        self.store = store

    def create(self, data) -> Survey:
        """Validate and persist a new survey.

        Args:
            data (SurveyCreate|dict): title, description, questions, creator
                wallet, total reward and target response count.

        Returns:
            Survey: The stored record, with its generated id and timestamp.

        Raises:
            InputValidationError: If the input is malformed (nothing is written).
        """
        payload = parse(SurveyCreate, data)
        survey = Survey(id=str(uuid.uuid4()), created_at=_now_utc(), **payload.model_dump())
        self.store.put(survey_key(survey.id), survey.model_dump(mode="json"))
        logger.info("survey_created", extra={"survey_id": survey.id, "creator_wallet": survey.creator_wallet})
        return survey

    def get_by_id(self, survey_id: str) -> Survey:
        """Point lookup.

        Raises:
            SurveyNotFound: If no survey was ever created under this id.
        """
        if not is_valid_id(survey_id):
            raise SurveyNotFound(survey_id)
        key = survey_key(survey_id)
        raw = self.store.get(key)
        if raw is None:
            raise SurveyNotFound(survey_id)
        return _load(Survey, key, raw)

    def list_by_creator(self, creator_wallet: str) -> Iterator[Survey]:
        """Lazily yield the creator's surveys (exact, case-sensitive match), in key order."""
        for key, raw in self.store.list(SURVEY_PREFIX):
            if raw.get("creator_wallet") == creator_wallet:
                yield _load(Survey, key, raw)


class ResponseRepository:
    """Append-only store of submissions, each scoped to an existing survey."""

    def __init__(self, store: KeyValueStore, surveys: SurveyRepository):
        self.store = store
        self.surveys = surveys

    def submit(
        self,
        survey_id: str,
        wallet: str,
        answers: List[str],
        status: str = PENDING,
        score: Optional[float] = None,
        explanation: str = "",
    ) -> SurveyResponse:
        """Record one submission.

        The status, score and explanation are stored as given; run
        `validator.evaluate` beforehand to derive them from the answer text.

        Returns:
            SurveyResponse: The stored record.

        Raises:
            InputValidationError: Malformed input (checked before any read).
            SurveyNotFound: The survey does not exist; nothing is written.
        """
        data = parse(ResponseSubmit, {
            "survey_id": survey_id, "wallet": wallet, "answers": answers,
            "status": status, "score": score, "explanation": explanation,
        })
        self.surveys.get_by_id(data.survey_id)

        response = SurveyResponse(id=str(uuid.uuid4()), created_at=_now_utc(), **data.model_dump())
        record = response.model_dump(mode="json")
        counters = self.store.get(counters_key(data.survey_id)) or empty_counters(data.survey_id)
        self.store.put_many([
            (response_key(data.survey_id, response.id), record),
            (counters_key(data.survey_id), fold_into_counters(counters, record)),
        ])
        logger.info(
            "response_submitted",
            extra={"survey_id": data.survey_id, "response_id": response.id, "status": response.status},
        )
        return response

    def list_for_survey(self, survey_id: str) -> Iterator[SurveyResponse]:
        """Lazily yield every response of an existing survey, in key order.

        Raises:
            SurveyNotFound: Checked eagerly, before the scan starts.
        """
        self.surveys.get_by_id(survey_id)
        return self._scan(survey_id)

    def _scan(self, survey_id: str) -> Iterator[SurveyResponse]:
        for key, raw in self.store.list(response_prefix(survey_id)):
            yield _load(SurveyResponse, key, raw)
