"""Named tools exposed to agents.

Each tool has a pydantic argument model and a handler that runs against one
store instance. Results are flat JSON objects: `{"ok": true, ...payload}` on
success, `{"ok": false, "error": "..."}` otherwise.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Type

from pydantic import BaseModel

from errors import SurveySenseiError
from instances import SurveyInstance
from schemas import (
    CreatorArgs, NoArgs, ResponseSubmit, ScoreAnswerArgs, SurveyCreate, SurveyIdArgs, parse,
)
from validator import evaluate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolSpec:
    name: str
    description: str
    args_model: Type[BaseModel]
    handler: Callable[[SurveyInstance, Any], dict]

    def describe(self) -> dict:
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": self.args_model.model_json_schema(by_alias=True),
        }


TOOLS: dict[str, ToolSpec] = {}


def tool(name: str, description: str, args_model: Type[BaseModel] = NoArgs):
    def register(fn):
        TOOLS[name] = ToolSpec(name, description, args_model, fn)
        return fn
    return register


def _dump(model: BaseModel) -> dict:
    return model.model_dump(mode="json", by_alias=True)


def call_tool(instance: SurveyInstance, name: str, raw_args: Any) -> dict:
    """Validate arguments and run a tool while holding the instance lock.

    Raises:
        KeyError: If no tool is registered under `name`.
    """
    spec = TOOLS[name]
    try:
        args = parse(spec.args_model, raw_args)
        with instance.lock:
            payload = spec.handler(instance, args)
    except SurveySenseiError as e:
        logger.warning("tool_failed", extra={"tool": name, "session_id": instance.id, "error": str(e)})
        return {"ok": False, "error": str(e)}
    return {"ok": True, **payload}

# ------------------------
# Tools
# ------------------------
@tool("ping", "Check that the survey tool server is responding")
def ping(instance: SurveyInstance, args: NoArgs) -> dict:
    return {"message": "pong", "sessionId": instance.id}


@tool("scoreSurveyAnswer", "Score and validate a survey answer with a length heuristic", ScoreAnswerArgs)
def score_survey_answer(instance: SurveyInstance, args: ScoreAnswerArgs) -> dict:
    return _dump(evaluate(args.answer))


@tool("createSurveyMeta", "Create a survey: title, questions, creator wallet, reward budget and target responses", SurveyCreate)
def create_survey_meta(instance: SurveyInstance, args: SurveyCreate) -> dict:
    return {"survey": _dump(instance.surveys.create(args))}


@tool("getSurveyMeta", "Fetch one survey by id", SurveyIdArgs)
def get_survey_meta(instance: SurveyInstance, args: SurveyIdArgs) -> dict:
    return {"survey": _dump(instance.surveys.get_by_id(args.survey_id))}


@tool("submitSurveyResponse", "Store a respondent's answers with a status, score and explanation", ResponseSubmit)
def submit_survey_response(instance: SurveyInstance, args: ResponseSubmit) -> dict:
    response = instance.responses.submit(
        args.survey_id, args.wallet, args.answers,
        status=args.status, score=args.score, explanation=args.explanation,
    )
    return {"response": _dump(response)}


@tool("listSurveyResponses", "List every stored response of a survey", SurveyIdArgs)
def list_survey_responses(instance: SurveyInstance, args: SurveyIdArgs) -> dict:
    responses = [_dump(r) for r in instance.responses.list_for_survey(args.survey_id)]
    return {"surveyId": args.survey_id, "count": len(responses), "responses": responses}


@tool("getSurveyStats", "Response count, distinct valid wallets and average valid score of a survey", SurveyIdArgs)
def get_survey_stats(instance: SurveyInstance, args: SurveyIdArgs) -> dict:
    return _dump(instance.stats.stats_for_survey(args.survey_id))


@tool("listValidWallets", "Distinct wallets (lower-cased) with at least one VALID response", SurveyIdArgs)
def list_valid_wallets(instance: SurveyInstance, args: SurveyIdArgs) -> dict:
    return _dump(instance.stats.list_valid_wallets(args.survey_id))


@tool("listSurveysByCreator", "List the surveys created by a wallet", CreatorArgs)
def list_surveys_by_creator(instance: SurveyInstance, args: CreatorArgs) -> dict:
    surveys = [_dump(s) for s in instance.surveys.list_by_creator(args.creator_wallet)]
    return {"creatorWallet": args.creator_wallet, "count": len(surveys), "surveys": surveys}


@tool("listSurveysByCreatorWithStats", "List a creator's surveys together with their statistics", CreatorArgs)
def list_surveys_by_creator_with_stats(instance: SurveyInstance, args: CreatorArgs) -> dict:
    rows = [_dump(r) for r in instance.stats.list_surveys_by_creator_with_stats(args.creator_wallet)]
    return {"creatorWallet": args.creator_wallet, "count": len(rows), "surveys": rows}
