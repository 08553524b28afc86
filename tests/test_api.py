"""HTTP surface against a throwaway SQLite database (see conftest)."""
import uuid

import pytest

from caresim.services.store import SqlProgressStore

from progress_factory import game_lesson_doc, lesson_doc, snapshot


def _uid(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:8]}"


def _import(client, users):
    response = client.post("/api/admin/progress/import", json=snapshot(users))
    assert response.status_code == 200
    return response.json()


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_dashboard_for_complete_lms_learner(client):
    uid = _uid("student")
    body = _import(client, {uid: {"lms": [lesson_doc()] * 6, "game": [game_lesson_doc(quiz_score=7)] * 3}})
    assert body["lessons_written"] == 9

    response = client.get(f"/api/learners/{uid}/dashboard")
    assert response.status_code == 200
    data = response.json()
    assert data["learner_id"] == uid
    assert data["lms"]["verdict"] == {
        "certificate_kind": "lms_full",
        "eligible": True,
        "reasons_if_ineligible": [],
    }
    assert data["lms"]["report"]["aggregate"]["lessons_completed"] == 6
    assert data["game"]["verdict"]["eligible"] is False
    assert data["game"]["verdict"]["reasons_if_ineligible"] == [4, 5, 6]
    assert data["game"]["report"]["lessons"][3]["status"] == "not_started"


def test_eligibility_matches_dashboard(client):
    uid = _uid("student")
    docs = [lesson_doc()] * 6
    docs[2] = lesson_doc(quiz_score=6)
    _import(client, {uid: {"lms": docs}})

    verdict = client.get(f"/api/learners/{uid}/eligibility/lms_full").json()
    dashboard = client.get(f"/api/learners/{uid}/dashboard").json()
    assert verdict == dashboard["lms"]["verdict"]
    assert verdict["reasons_if_ineligible"] == [3]


def test_lesson_report(client):
    uid = _uid("student")
    _import(client, {uid: {"lms": [lesson_doc(quiz_score=6)]}})
    response = client.get(f"/api/learners/{uid}/tracks/lms/lessons/1")
    assert response.status_code == 200
    lesson = response.json()
    assert lesson["status"] == "in_progress"
    assert lesson["gates"]["quiz_passed"] is False
    assert lesson["quiz"]["highest_score"] == 6.0


def test_lesson_key_out_of_range_is_rejected(client):
    response = client.get("/api/learners/anyone/tracks/lms/lessons/7")
    assert response.status_code == 422
    assert response.json()["error"]["code"] == "curriculum_error"


def test_unknown_certificate_kind_is_validation_error(client):
    response = client.get("/api/learners/anyone/eligibility/lms_partial")
    assert response.status_code == 422
    assert response.json()["error"]["code"] == "validation_error"


def test_issue_and_verify_certificate(client):
    uid = _uid("student")
    _import(client, {uid: {"lms": [lesson_doc()] * 6}})

    issued = client.post(f"/api/learners/{uid}/certificates/lms_full", json={"full_name": "Ana Cruz"})
    assert issued.status_code == 200
    certificate = issued.json()
    assert certificate["certificate_id"].startswith("LMS-")
    assert certificate["kind"] == "lms_full"

    again = client.post(f"/api/learners/{uid}/certificates/lms_full")
    assert again.json()["certificate_id"] == certificate["certificate_id"]

    public = client.get(f"/api/public/certificates/{certificate['certificate_id']}")
    assert public.status_code == 200
    assert public.json()["full_name"] == "Ana Cruz"
    assert "learner_id" not in public.json()


def test_issue_refused_when_not_eligible(client):
    uid = _uid("student")
    _import(client, {uid: {"lms": [lesson_doc()] * 5}})
    response = client.post(f"/api/learners/{uid}/certificates/lms_full")
    assert response.status_code == 409
    error = response.json()["error"]
    assert error["code"] == "not_eligible"
    assert error["details"] == {"reasons_if_ineligible": [6]}


def test_verify_unknown_certificate(client):
    response = client.get("/api/public/certificates/LMS-000000-0")
    assert response.status_code == 404


def test_instructor_overview_for_selected_learners(client):
    done, partial = _uid("student"), _uid("student")
    _import(client, {done: {"lms": [lesson_doc()] * 6}, partial: {"lms": [lesson_doc(quiz_score=5)] * 6}})
    response = client.get("/api/instructor/overview", params={"kind": "lms_full", "learner_id": [done, partial]})
    assert response.status_code == 200
    overview = response.json()
    assert overview["total_learners"] == 2
    assert overview["eligible_learners"] == 1
    assert overview["lesson_performance"][0]["completion_rate"] == 50.0
    assert overview["lesson_performance"][0]["avg_quiz_score"] == 6.5


def test_admin_pending_lists_eligible_game_players(client):
    player = _uid("player")
    _import(client, {player: {"game": [game_lesson_doc()] * 6}})
    pending = client.get("/api/admin/certificates/pending", params={"kind": "game_generic"}).json()
    assert {"learner_id": player, "certificate_kind": "game_generic"} in pending

    client.post(f"/api/learners/{player}/certificates/game_generic")
    pending = client.get("/api/admin/certificates/pending", params={"kind": "game_generic"}).json()
    assert all(row["learner_id"] != player for row in pending)


def test_request_id_is_echoed(client):
    response = client.get("/health", headers={"x-request-id": "abc-123"})
    assert response.headers["x-request-id"] == "abc-123"


def test_store_failure_is_not_turned_into_a_verdict(client, monkeypatch):
    async def broken(self, learner_id, track, lesson_keys):
        raise ConnectionError("store unavailable")

    monkeypatch.setattr(SqlProgressStore, "read_track", broken)
    with pytest.raises(ConnectionError):
        client.get("/api/learners/anyone/eligibility/lms_full")


def test_import_ignores_malformed_lesson_nodes(client):
    uid = _uid("student")
    document = snapshot({uid: {"lms": [lesson_doc()]}})
    document["users"][uid]["lmsProgress"].update({"lesson²": lesson_doc(), "lesson99": lesson_doc()})
    response = client.post("/api/admin/progress/import", json=document)
    assert response.status_code == 200
    assert response.json()["lessons_written"] == 1


def test_dashboard_counts_game_attempt_history(client):
    player = _uid("player")
    document = snapshot({player: {"game": [game_lesson_doc()]}})
    document["users"][player]["history"] = {
        "quizzes": {"-Nq1": {"lesson": 2, "score": 5, "timestamp": "2025-05-01T10:00:00Z"}},
        "simulations": {},
    }
    client.post("/api/admin/progress/import", json=document)

    game = client.get(f"/api/learners/{player}/dashboard").json()["game"]
    assert game["report"]["lessons"][1]["status"] == "in_progress"
    assert game["report"]["lessons"][1]["quiz"]["attempts"] == 1
    assert game["report"]["aggregate"]["total_quiz_attempts"] == 3
