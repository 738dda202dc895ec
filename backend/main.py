import os, logging
from typing import Any, Optional
from dotenv import load_dotenv
from fastapi import FastAPI, Depends, HTTPException, Body, Query, Response
from fastapi.middleware.cors import CORSMiddleware

import pandas as pd

from db import SessionLocal, init_db
from errors import InputValidationError, SurveyNotFound
from instances import InstanceRegistry, SurveyInstance
from tools import TOOLS, call_tool

load_dotenv()
logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())
logger = logging.getLogger(__name__)

app = FastAPI(title="SurveySensei API")

origins = os.getenv("ORIGINS", "http://localhost:5173").split(",")
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Session-Id"],
)

init_db()
registry = InstanceRegistry(SessionLocal)

EXPORT_COLUMNS = ["response_id", "wallet", "status", "score", "explanation", "created_at",
                  "order_index", "question", "answer_text"]


def get_registry() -> InstanceRegistry:
    """Dependency returning the process-wide instance registry (overridden in tests)."""
    return registry


def resolve_instance(
    response: Response,
    sessionId: Optional[str] = Query(default=None),
    reg: InstanceRegistry = Depends(get_registry),
) -> SurveyInstance:
    """Route the request to the store instance named by `sessionId`.

    A request without a session id gets a fresh instance; its id is returned in
    the `X-Session-Id` header so the caller can keep using it.

    Raises:
        HTTPException: 400 if the session id is malformed.
    """
    try:
        instance = reg.resolve(sessionId)
    except InputValidationError as e:
        raise HTTPException(400, str(e))
    response.headers["X-Session-Id"] = instance.id
    return instance


@app.get("/health")
def health():
    """Basic readiness probe.

    Returns:
        dict: {"ok": True}
    """
    return {"ok": True}

# ------------------------
# Tools
# ------------------------
@app.get("/tools")
def list_tools():
    """List the registered tools with their argument schemas.

    Returns:
        list[dict]: [{name, description, input_schema}]
    """
    return [spec.describe() for spec in TOOLS.values()]


@app.post("/tools/{name}")
def invoke_tool(name: str, args: Any = Body(default=None),
                instance: SurveyInstance = Depends(resolve_instance)):
    """Invoke one tool against the caller's store instance.

    Args:
        name (str): Registered tool name, e.g. `createSurveyMeta`.
        args (Any): Tool arguments (camelCase keys); anything but an object is rejected by the tool.
        instance (SurveyInstance): Resolved from the `sessionId` query parameter.

    Returns:
        dict: {"ok": True, ...payload} or {"ok": False, "error": str}

    Raises:
        HTTPException: 404 if the tool name is unknown.
    """
    if name not in TOOLS:
        raise HTTPException(404, f"Unknown tool: {name}")
    return call_tool(instance, name, args)

# ------------------------
# Export
# ------------------------
def build_export_frame(instance: SurveyInstance, survey_id: str) -> pd.DataFrame:
    """Flatten a survey's responses to one row per (response, answer).

    Raises:
        SurveyNotFound: If the survey does not exist in this instance.
    """
    with instance.lock:
        survey = instance.surveys.get_by_id(survey_id)
        responses = list(instance.responses.list_for_survey(survey_id))

    rows = []
    for r in responses:
        for idx, answer in enumerate(r.answers):
            rows.append({
                "response_id": r.id, "wallet": r.wallet, "status": r.status, "score": r.score,
                "explanation": r.explanation, "created_at": r.created_at.isoformat(),
                "order_index": idx,
                "question": survey.questions[idx] if idx < len(survey.questions) else None,
                "answer_text": answer,
            })
    df = pd.DataFrame(rows, columns=EXPORT_COLUMNS)
    return df.sort_values(["created_at", "response_id", "order_index"], kind="stable")


@app.get("/surveys/{survey_id}/export.csv")
def export_csv(survey_id: str, instance: SurveyInstance = Depends(resolve_instance)):
    """Export a survey's responses as CSV (ordered by submission time, then answer order).

    Args:
        survey_id (str): Survey id.
        instance (SurveyInstance): Resolved from the `sessionId` query parameter.

    Returns:
        Response: text/csv attachment `survey_<id>_responses.csv`.

    Raises:
        HTTPException: 404 if the survey is not found.
    """
    try:
        df = build_export_frame(instance, survey_id)
    except SurveyNotFound as e:
        raise HTTPException(404, str(e))
    csv_bytes = df.to_csv(index=False).encode("utf-8")
    return Response(content=csv_bytes, media_type="text/csv",
                    headers={"Content-Disposition": f"attachment; filename=survey_{survey_id}_responses.csv",
                             "X-Session-Id": instance.id})
