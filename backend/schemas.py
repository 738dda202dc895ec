# schemas.py
from datetime import datetime
from typing import Any, List, Literal, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, FiniteFloat, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from errors import InputValidationError

PENDING = "PENDING"
VALID = "VALID"
REJECTED = "REJECTED"

ResponseStatus = Literal["PENDING", "VALID", "REJECTED"]
Verdict = Literal["VALID", "REJECTED"]


class CamelModel(BaseModel):
    """snake_case in Python, camelCase on the wire (tool arguments and results)."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


def _require_text(value: str, field: str) -> str:
    if not value or not value.strip():
        raise ValueError(f"{field} must not be empty")
    return value

# ------------------------
# Surveys
# ------------------------
class SurveyCreate(CamelModel):
    title: str
    description: Optional[str] = None
    questions: List[str]
    creator_wallet: str
    total_reward: float = Field(gt=0, allow_inf_nan=False)
    target_responses: int = Field(gt=0, strict=True)

    @field_validator("title")
    @classmethod
    def _title(cls, v: str) -> str:
        return _require_text(v, "title").strip()

    @field_validator("description")
    @classmethod
    def _description(cls, v: Optional[str]) -> Optional[str]:
        return (v or "").strip() or None

    @field_validator("questions")
    @classmethod
    def _questions(cls, v: List[str]) -> List[str]:
        kept = [q.strip() for q in v if q and q.strip()]
        if not kept:
            raise ValueError("at least one question is required")
        return kept

    @field_validator("creator_wallet")
    @classmethod
    def _creator(cls, v: str) -> str:
        return _require_text(v, "creator wallet")


class Survey(SurveyCreate):
    id: str
    created_at: datetime

# ------------------------
# Responses
# ------------------------
class ResponseSubmit(CamelModel):
    survey_id: str
    wallet: str
    answers: List[str]
    status: ResponseStatus = PENDING
    score: Optional[FiniteFloat] = None
    explanation: str = ""

    @field_validator("survey_id")
    @classmethod
    def _survey_id(cls, v: str) -> str:
        return _require_text(v, "survey id")

    @field_validator("wallet")
    @classmethod
    def _wallet(cls, v: str) -> str:
        return _require_text(v, "wallet")

    @field_validator("answers")
    @classmethod
    def _answers(cls, v: List[str]) -> List[str]:
        if not v:
            raise ValueError("at least one answer is required")
        return v


class SurveyResponse(CamelModel):
    id: str
    survey_id: str
    wallet: str
    answers: List[str]
    status: ResponseStatus
    score: Optional[float] = None
    explanation: str = ""
    created_at: datetime

# ------------------------
# Validator / aggregation results
# ------------------------
class AnswerEvaluation(CamelModel):
    verdict: Verdict
    score: int
    length: int
    explanation: str


class SurveyStats(CamelModel):
    survey_id: str
    total_responses: int
    total_valid_wallets: int
    avg_score: Optional[float] = None
    wallets: List[str] = []


class WalletList(CamelModel):
    survey_id: str
    total_responses: int
    total_valid_wallets: int
    wallets: List[str]


class SurveyWithStats(CamelModel):
    survey: Survey
    stats: SurveyStats

# ------------------------
# Tool arguments
# ------------------------
class NoArgs(CamelModel):
    pass


class ScoreAnswerArgs(CamelModel):
    answer: str = Field(description="Free-text answer from a respondent")


class SurveyIdArgs(CamelModel):
    survey_id: str = Field(description="Id returned by createSurveyMeta")


class CreatorArgs(CamelModel):
    creator_wallet: str = Field(description="Wallet address of the survey creator (exact match)")


M = TypeVar("M", bound=BaseModel)


def describe_validation_error(exc: ValidationError) -> str:
    """Flatten a pydantic error into one line: `field: message; field: message`."""
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "input"
        parts.append(f"{loc}: {err.get('msg', 'invalid value')}")
    return "; ".join(parts)


def parse(model_cls: Type[M], data: Any) -> M:
    """Validate `data` into `model_cls`, raising InputValidationError on failure."""
    if isinstance(data, model_cls):
        return data
    try:
        return model_cls.model_validate(data if data is not None else {})
    except ValidationError as e:
        raise InputValidationError(describe_validation_error(e)) from e
