import gc
import threading
import uuid

import pytest

from aggregation import AggregationEngine
from errors import InputValidationError
from instances import InstanceRegistry
from main import app, get_registry
from tools import call_tool

def test_named_instance_is_reused_while_held(TestingSessionLocal):
    registry = InstanceRegistry(TestingSessionLocal)
    sid = uuid.uuid4().hex
    first = registry.resolve(sid)
    assert registry.resolve(sid) is first
    assert len(registry) == 1

def test_anonymous_instances_are_not_retained(TestingSessionLocal):
    registry = InstanceRegistry(TestingSessionLocal)
    for _ in range(200):
        registry.resolve()
    gc.collect()
    assert len(registry) == 0

def test_dropped_instance_keeps_its_data(TestingSessionLocal, survey_input):
    registry = InstanceRegistry(TestingSessionLocal)
    sid = uuid.uuid4().hex
    survey_id = registry.resolve(sid).surveys.create(survey_input).id
    gc.collect()
    assert len(registry) == 0
    assert registry.resolve(sid).surveys.get_by_id(survey_id).title == survey_input["title"]

def test_invalid_session_id_rejected(TestingSessionLocal):
    with pytest.raises(InputValidationError):
        InstanceRegistry(TestingSessionLocal).resolve("../etc")

def test_anonymous_requests_do_not_grow_registry(client, TestingSessionLocal):
    registry = InstanceRegistry(TestingSessionLocal)
    previous = app.dependency_overrides[get_registry]
    app.dependency_overrides[get_registry] = lambda: registry
    try:
        for _ in range(200):
            assert client.post("/tools/ping").json()["ok"] is True
    finally:
        app.dependency_overrides[get_registry] = previous
    gc.collect()
    assert len(registry) < 10

def test_concurrent_submits_on_one_instance(TestingSessionLocal):
    instance = InstanceRegistry(TestingSessionLocal).resolve(uuid.uuid4().hex)
    created = call_tool(instance, "createSurveyMeta", {
        "title": "Race", "questions": ["q?"], "creatorWallet": "0xC",
        "totalReward": 10, "targetResponses": 5,
    })
    survey_id = created["survey"]["id"]

    n = 20
    results = [None] * n
    start = threading.Barrier(n)

    def submit(i):
        start.wait()
        results[i] = call_tool(instance, "submitSurveyResponse", {
            "surveyId": survey_id, "wallet": f"0xW{i % 5}", "answers": ["a"],
            "status": "VALID", "score": i,
        })

    threads = [threading.Thread(target=submit, args=(i,)) for i in range(n)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert all(r["ok"] for r in results), results
    scanned = AggregationEngine(instance.store, instance.surveys, use_counters=False).stats_for_survey(survey_id)
    counted = AggregationEngine(instance.store, instance.surveys, use_counters=True).stats_for_survey(survey_id)
    assert scanned.total_responses == n
    assert counted == scanned
    assert counted.total_valid_wallets == 5
    assert counted.avg_score == pytest.approx(sum(range(n)) / n)
