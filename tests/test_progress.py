"""Tests for blueprints/progress.py — progress mutation and read routes."""

import pytest


def _data(resp):
    body = resp.get_json()
    assert body["success"] is True, body
    return body["data"]


class TestAuthRequired:
    @pytest.mark.parametrize("method,path", [
        ("get", "/api/progress/1"),
        ("post", "/api/progress/day01/activity"),
        ("post", "/api/progress/day01/quiz"),
        ("get", "/api/progress/day01/submissions"),
        ("post", "/api/progress/day01/code"),
        ("post", "/api/progress/day01/video"),
        ("put", "/api/progress/day01/complete"),
        ("get", "/api/analytics/1/overview"),
    ])
    def test_unauthenticated_gets_401(self, client, method, path):
        resp = getattr(client, method)(path, json={})
        assert resp.status_code == 401
        assert resp.get_json() == {"success": False, "error": "Not authenticated"}


class TestLessonIdValidation:
    @pytest.mark.parametrize("method,suffix,body", [
        ("post", "activity", {"activityId": "a"}),
        ("post", "quiz", {"answers": [{"questionId": "q1", "correct": True}]}),
        ("get", "submissions", None),
        ("post", "code", {"code": "x"}),
        ("post", "video", {"videoUrl": "https://example.com/v"}),
        ("put", "complete", None),
    ])
    @pytest.mark.parametrize("lesson_id", ["lesson1", "day31", "day00", "day1"])
    def test_invalid_lesson_id_gets_400(self, auth_client, method, suffix, body, lesson_id):
        resp = getattr(auth_client, method)(f"/api/progress/{lesson_id}/{suffix}", json=body)
        assert resp.status_code == 400
        assert resp.get_json() == {
            "success": False,
            "error": "Invalid lesson ID format. Expected format: dayXX (e.g., day01)",
        }

    def test_invalid_lesson_id_creates_nothing(self, app, auth_client):
        auth_client.post("/api/progress/day99/activity", json={"activityId": "a"})
        with app.app_context():
            from database import get_db
            count = get_db().execute("SELECT COUNT(*) FROM progress").fetchone()[0]
        assert count == 0


class TestReadProgress:
    def test_empty(self, auth_client):
        resp = auth_client.get("/api/progress/1")
        assert resp.status_code == 200
        assert _data(resp) == []

    def test_sorted_by_lesson(self, auth_client):
        for lesson in ("day03", "day01", "day02"):
            auth_client.post(f"/api/progress/{lesson}/activity", json={"activityId": "a"})
        records = _data(auth_client.get("/api/progress/1"))
        assert [r["lessonId"] for r in records] == ["day01", "day02", "day03"]

    def test_other_users_progress_forbidden(self, auth_client):
        resp = auth_client.get("/api/progress/2")
        assert resp.status_code == 403
        assert resp.get_json()["success"] is False


class TestActivity:
    def test_first_activity_creates_record(self, auth_client):
        resp = auth_client.post("/api/progress/day01/activity", json={"activityId": "blink"})
        assert resp.status_code == 200
        record = _data(resp)
        assert record["lessonId"] == "day01"
        assert record["completedActivities"] == ["blink"]
        assert record["completed"] is False
        assert record["lastAccessedAt"]

    def test_repeat_activity_is_idempotent(self, auth_client):
        auth_client.post("/api/progress/day01/activity", json={"activityId": "blink"})
        record = _data(auth_client.post("/api/progress/day01/activity", json={"activityId": "blink"}))
        assert record["completedActivities"] == ["blink"]

    def test_missing_activity_id(self, auth_client):
        resp = auth_client.post("/api/progress/day01/activity", json={})
        assert resp.status_code == 400
        assert "activityId" in resp.get_json()["error"]

    def test_malformed_json(self, auth_client):
        resp = auth_client.post(
            "/api/progress/day01/activity", data="{not json", content_type="application/json",
        )
        assert resp.status_code == 400
        assert resp.get_json()["success"] is False

    def test_non_object_body(self, auth_client):
        resp = auth_client.post("/api/progress/day01/activity", json=["blink"])
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Request body must be a JSON object"


class TestQuiz:
    def test_answers_merged_by_question(self, auth_client):
        auth_client.post("/api/progress/day02/quiz", json={"answers": [
            {"questionId": "q1", "answer": "A", "correct": False},
            {"questionId": "q2", "answer": "B", "correct": True},
        ]})
        record = _data(auth_client.post("/api/progress/day02/quiz", json={"answers": [
            {"questionId": "q1", "answer": "C", "correct": True},
        ]}))
        assert [s["questionId"] for s in record["quizScores"]] == ["q1", "q2"]
        assert record["quizScores"][0]["correct"] is True
        assert record["quizScores"][0]["answer"] == "C"
        assert record["quizScores"][0]["timestamp"]

    def test_without_quiz_id_no_submission(self, auth_client):
        data = _data(auth_client.post("/api/progress/day02/quiz", json={"answers": [
            {"questionId": "q1", "correct": True},
        ]}))
        assert "submission" not in data
        assert _data(auth_client.get("/api/progress/day02/submissions")) == []

    def test_quiz_id_records_one_submission_per_call(self, auth_client):
        body = {
            "quizId": "day02-quiz",
            "answers": [
                {"questionId": "q1", "correct": True},
                {"questionId": "q2", "correct": False},
            ],
        }
        first = _data(auth_client.post("/api/progress/day02/quiz", json=body))
        assert first["submission"]["totalScore"] == 1
        assert first["submission"]["maxScore"] == 2
        _data(auth_client.post("/api/progress/day02/quiz", json=body))

        history = _data(auth_client.get("/api/progress/day02/submissions"))
        assert len(history) == 2
        assert all(s["quizId"] == "day02-quiz" for s in history)

    def test_empty_answers_rejected(self, auth_client):
        resp = auth_client.post("/api/progress/day02/quiz", json={"answers": []})
        assert resp.status_code == 400

    def test_score_above_max_rejected_without_writes(self, auth_client):
        resp = auth_client.post("/api/progress/day02/quiz", json={
            "quizId": "day02-quiz",
            "maxScore": 1,
            "answers": [{"questionId": f"q{n}", "correct": True} for n in range(1, 4)],
        })
        assert resp.status_code == 400
        assert "maxScore" in resp.get_json()["error"]
        assert _data(auth_client.get("/api/progress/1")) == []
        view = _data(auth_client.get("/api/analytics/1/overview"))
        assert view["averageQuizScore"] == 0

    def test_failed_submission_leaves_no_answers(self, auth_client):
        import sqlite3
        from unittest.mock import patch
        with patch("db_stores.QuizSubmissionStoreDB.write",
                   side_effect=sqlite3.OperationalError("disk full")):
            resp = auth_client.post("/api/progress/day01/quiz", json={
                "quizId": "day01-quiz",
                "answers": [{"questionId": "q1", "correct": True}],
            })
        assert resp.status_code == 500
        assert _data(auth_client.get("/api/progress/1")) == []
        assert _data(auth_client.get("/api/progress/day01/submissions")) == []


class TestCode:
    def test_default_editor(self, auth_client):
        record = _data(auth_client.post("/api/progress/day03/code", json={"code": "void setup() {}"}))
        assert record["codeSnapshots"][0]["editorId"] == "default"
        assert record["codeSnapshots"][0]["code"] == "void setup() {}"

    def test_keeps_last_ten(self, auth_client):
        for i in range(11):
            resp = auth_client.post(
                "/api/progress/day03/code", json={"code": f"// v{i}", "editorId": "main"},
            )
        snapshots = _data(resp)["codeSnapshots"]
        assert len(snapshots) == 10
        assert snapshots[0]["code"] == "// v1"
        assert snapshots[-1]["code"] == "// v10"


class TestVideo:
    def test_same_video_kept_once(self, auth_client):
        url = "https://example.com/blink.mp4"
        auth_client.post("/api/progress/day04/video", json={"videoUrl": url})
        record = _data(auth_client.post("/api/progress/day04/video", json={"videoUrl": url}))
        assert [v["videoUrl"] for v in record["watchedVideos"]] == [url]


class TestComplete:
    def test_mark_complete(self, auth_client):
        resp = auth_client.put("/api/progress/day05/complete")
        record = _data(resp)
        assert record["completed"] is True
        assert record["completedAt"]

    def test_complete_keeps_existing_facts(self, auth_client):
        auth_client.post("/api/progress/day05/activity", json={"activityId": "a"})
        record = _data(auth_client.put("/api/progress/day05/complete"))
        assert record["completedActivities"] == ["a"]


class TestEnvelope:
    def test_unknown_route_enveloped(self, client):
        resp = client.get("/api/nope")
        assert resp.status_code == 404
        assert resp.get_json()["success"] is False

    def test_wrong_method_enveloped(self, auth_client):
        resp = auth_client.get("/api/progress/day01/complete")
        assert resp.status_code == 405
        assert resp.get_json()["success"] is False

    def test_store_failure_is_generic_500(self, auth_client):
        from unittest.mock import patch
        from db_stores import DuplicateProgressError
        with patch("blueprints.progress.ProgressStoreDB.complete_activity",
                   side_effect=DuplicateProgressError(1, "day01")):
            resp = auth_client.post("/api/progress/day01/activity", json={"activityId": "a"})
        assert resp.status_code == 500
        assert resp.get_json() == {"success": False, "error": "Server error"}

    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert _data(resp)["status"] == "ok"

    def test_request_id_echoed(self, client):
        resp = client.get("/health", headers={"X-Request-ID": "abc123"})
        assert resp.headers["X-Request-ID"] == "abc123"

    def test_cors_for_frontend(self, app, client):
        app.config["FRONTEND_URL"] = "http://localhost:3000"
        resp = client.get("/health", headers={"Origin": "http://localhost:3000"})
        assert resp.headers["Access-Control-Allow-Origin"] == "http://localhost:3000"

    def test_no_cors_for_other_origins(self, app, client):
        app.config["FRONTEND_URL"] = "http://localhost:3000"
        resp = client.get("/health", headers={"Origin": "http://evil.example"})
        assert "Access-Control-Allow-Origin" not in resp.headers
