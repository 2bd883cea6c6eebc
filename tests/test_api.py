"""
End-to-end tests through the HTTP API.
"""
import pytest
from sqlmodel import Session
from starlette.websockets import WebSocketDisconnect

from conftest import make_user
from lumi.core.config import settings
from lumi.core.database import engine
from lumi.core.security import create_access_token
from lumi.models.models import TogetherSession, User
from lumi.services import feedback_service, together_service
from lumi.services.realtime import hub, session_topic

API = settings.api_v1_prefix


# ──────────────────────────────────────────────
# AUTH
# ──────────────────────────────────────────────

class TestAuth:

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "healthy"}

    def test_register_then_login_and_fetch_me(self, client):
        response = client.post(f"{API}/auth/register", json={
            "username": "clara", "email": "clara@example.com", "password": "secret123",
        })
        assert response.status_code == 201
        assert response.json()["user"]["role"] == "student"

        login = client.post(f"{API}/auth/login", json={"username": "clara@example.com", "password": "secret123"})
        assert login.status_code == 200
        token = login.json()["access_token"]

        me = client.get(f"{API}/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert me.json()["username"] == "clara"

    def test_oauth2_token_form(self, client, student):
        response = client.post(f"{API}/auth/token", data={"username": "anna", "password": "secret123"})
        assert response.status_code == 200
        assert response.json()["token_type"] == "bearer"

    def test_wrong_password_is_unauthorized(self, client, student):
        response = client.post(f"{API}/auth/login", json={"username": "anna", "password": "nope"})
        assert response.status_code == 401

    def test_duplicate_username_is_rejected(self, client, student):
        response = client.post(f"{API}/auth/register", json={
            "username": "anna", "email": "other@example.com", "password": "secret123",
        })
        assert response.status_code == 400

    def test_developer_cannot_self_register(self, client):
        response = client.post(f"{API}/auth/register", json={
            "username": "root", "email": "root@example.com", "password": "secret123", "role": "developer",
        })
        assert response.status_code == 400

    def test_missing_or_bad_token_is_unauthorized(self, client):
        assert client.get(f"{API}/content/chapters").status_code == 401
        bad = client.get(f"{API}/content/chapters", headers={"Authorization": "Bearer not-a-token"})
        assert bad.status_code == 401
        assert bad.json()["type"] == "AuthenticationError"


class TestContent:

    def test_chapters_and_cases(self, client, student_headers, content):
        chapters = client.get(f"{API}/content/chapters", headers=student_headers).json()
        assert [c["title"] for c in chapters] == ["Introduction to Cases"]
        cases = client.get(f"{API}/content/grammatical-cases", headers=student_headers).json()
        assert [c["name"] for c in cases] == ["Accusative", "Dative", "Nominative"]


# ──────────────────────────────────────────────
# EXERCISES
# ──────────────────────────────────────────────

CORRECT = {
    0: [(1, "NOM"), (4, "ACC")],
    1: [(0, "NOM"), (3, "DAT"), (5, "ACC")],
}


def create_exercise(client, headers, content, exercise_type="practice"):
    response = client.post(f"{API}/exercises", headers=headers, json={
        "chapter_id": content.chapter_id,
        "exercise_type": exercise_type,
        "difficulty": "medium",
        "total_questions": 2,
    })
    assert response.status_code == 201
    return response.json()["id"]


def answer_sentence(client, headers, exercise_id, content, picks):
    for word_index, case in picks:
        client.post(f"{API}/exercises/{exercise_id}/select-word", headers=headers, json={"word_index": word_index})
        response = client.post(f"{API}/exercises/{exercise_id}/choose-case", headers=headers,
                               json={"case_id": content.cases[case]})
        assert response.status_code == 200
    return client.post(f"{API}/exercises/{exercise_id}/check", headers=headers)


@pytest.fixture
def stub_feedback(monkeypatch):
    def generate(self, analysis_data):
        return {
            "summary": "Well done.",
            "strengths": ["Subjects"],
            "weaknesses": [],
            "suggestions": "Keep going.",
            "suggested_topics": ["Dative"],
        }

    monkeypatch.setattr(feedback_service.FeedbackGenerator, "generate", generate)


class TestPracticeFlow:

    def test_teacher_cannot_start_exercise(self, client, teacher_headers, content):
        response = client.post(f"{API}/exercises", headers=teacher_headers, json={
            "chapter_id": content.chapter_id, "total_questions": 2,
        })
        assert response.status_code == 403

    def test_unknown_chapter_is_not_found(self, client, student_headers, content):
        response = client.post(f"{API}/exercises", headers=student_headers, json={
            "chapter_id": 999, "total_questions": 2,
        })
        assert response.status_code == 404

    def test_full_run_submits_and_reports(self, client, student, student_headers, teacher_headers, content,
                                          stub_feedback):
        exercise_id = create_exercise(client, student_headers, content)

        state = client.get(f"{API}/exercises/{exercise_id}", headers=student_headers).json()
        assert state["phase"] == "answering"
        assert state["words"] == ["Der", "Hund", "sieht", "den", "Ball"]
        assert [w["word_index"] for w in state["words_to_identify"]] == [1, 4]
        assert state["words_to_identify"][0]["correct_case_id"] is None

        checked = answer_sentence(client, student_headers, exercise_id, content, [(1, "NOM"), (4, "DAT")])
        feedback_screen = checked.json()
        assert feedback_screen["phase"] == "feedback"
        by_index = {w["word_index"]: w for w in feedback_screen["words_to_identify"]}
        assert by_index[1]["is_correct"] is True
        assert by_index[4]["is_correct"] is False
        assert by_index[4]["correct_case_id"] == content.cases["ACC"]

        moved = client.post(f"{API}/exercises/{exercise_id}/continue", headers=student_headers).json()
        assert moved["question_number"] == 2
        assert moved["submitted"] is None

        answer_sentence(client, student_headers, exercise_id, content, CORRECT[1])
        done = client.post(f"{API}/exercises/{exercise_id}/continue", headers=student_headers).json()
        assert done["phase"] == "completed"
        assert done["submitted"] == {"created_attempts_count": 5, "correct_count": 4}

        results = client.get(f"{API}/exercises/{exercise_id}/results", headers=student_headers).json()
        assert results["accuracy"] == 80
        assert results["message"] == "Great job!"

        # Feedback job ran as a background task after the response
        feedback = client.get(f"{API}/exercises/{exercise_id}/feedback", headers=student_headers).json()
        assert feedback["status"] == "completed"
        assert feedback["summary"] == "Well done."
        assert feedback["poll_interval_seconds"] == settings.feedback_poll_interval_seconds

        progress = client.get(f"{API}/progress/me", headers=student_headers).json()
        assert progress["total_completed"] == 1
        assert progress["overall_accuracy"] == 80

        teacher_view = client.get(f"{API}/progress/students/{student.id}", headers=teacher_headers)
        assert teacher_view.status_code == 200
        assert client.get(f"{API}/exercises/{exercise_id}/results", headers=teacher_headers).status_code == 200

        # Completed exercises have no running engine
        assert client.get(f"{API}/exercises/{exercise_id}", headers=student_headers).status_code == 409

    def test_feedback_failure_is_reported_not_raised(self, client, student_headers, content):
        exercise_id = create_exercise(client, student_headers, content)
        for position in (0, 1):
            answer_sentence(client, student_headers, exercise_id, content, CORRECT[position])
            client.post(f"{API}/exercises/{exercise_id}/continue", headers=student_headers)
        # No API key is configured in tests, so generation fails
        feedback = client.get(f"{API}/exercises/{exercise_id}/feedback", headers=student_headers).json()
        assert feedback["status"] == "failed"
        assert client.get(f"{API}/exercises/{exercise_id}/results", headers=student_headers).json()["accuracy"] == 100

    def test_incomplete_check_is_rejected(self, client, student_headers, content):
        exercise_id = create_exercise(client, student_headers, content)
        response = answer_sentence(client, student_headers, exercise_id, content, [(1, "NOM")])
        assert response.status_code == 400

    def test_unfinished_results_are_not_found(self, client, student_headers, content):
        exercise_id = create_exercise(client, student_headers, content)
        assert client.get(f"{API}/exercises/{exercise_id}/results", headers=student_headers).status_code == 404

    def test_other_student_cannot_touch_exercise(self, client, student_headers, other_student_headers, content):
        exercise_id = create_exercise(client, student_headers, content)
        assert client.get(f"{API}/exercises/{exercise_id}", headers=other_student_headers).status_code == 403
        assert client.get(f"{API}/exercises/{exercise_id}/results", headers=other_student_headers).status_code == 403

    def test_student_cannot_read_other_progress(self, client, student_headers, other_student):
        response = client.get(f"{API}/progress/students/{other_student.id}", headers=student_headers)
        assert response.status_code == 403


class TestLockedTest:

    def test_focus_lock_and_exit_code(self, client, student_headers, teacher_headers, content):
        client.put(f"{API}/settings/test_exit_code", headers=teacher_headers, json={"value": "4321"})
        exercise_id = create_exercise(client, student_headers, content, exercise_type="test")
        base = f"{API}/exercises/{exercise_id}"

        state = client.get(base, headers=student_headers).json()
        assert state["phase"] == "awaiting_start"
        assert state["focus_required"] is True
        assert client.post(f"{base}/select-word", headers=student_headers, json={"word_index": 1}).status_code == 409

        client.post(f"{base}/start", headers=student_headers)
        client.post(f"{base}/select-word", headers=student_headers, json={"word_index": 1})
        lost = client.post(f"{base}/focus-lost", headers=student_headers).json()
        assert lost["focus_lost"] is True
        blocked = client.post(f"{base}/choose-case", headers=student_headers, json={"case_id": content.cases["NOM"]})
        assert blocked.status_code == 409

        wrong = client.post(f"{base}/exit", headers=student_headers, json={"code": "0000"})
        assert wrong.status_code == 400
        assert client.get(base, headers=student_headers).json()["phase"] == "answering"

        resumed = client.post(f"{base}/resume-focus", headers=student_headers).json()
        assert resumed["focus_lost"] is False

        exited = client.post(f"{base}/exit", headers=student_headers, json={"code": "4321"}).json()
        assert exited["phase"] == "abandoned"
        assert client.get(f"{base}/results", headers=student_headers).status_code == 404

    def test_test_runs_unlocked_when_focus_mode_is_off(self, client, student_headers, teacher_headers, content):
        client.put(f"{API}/settings/enforce_test_focus_mode", headers=teacher_headers, json={"value": False})
        exercise_id = create_exercise(client, student_headers, content, exercise_type="test")
        state = client.get(f"{API}/exercises/{exercise_id}", headers=student_headers).json()
        assert state["phase"] == "answering"
        assert state["focus_required"] is False


class TestSettings:

    def test_student_cannot_read_exit_code(self, client, student_headers):
        assert client.get(f"{API}/settings/test_exit_code", headers=student_headers).status_code == 403

    def test_teacher_updates_and_reads_setting(self, client, teacher_headers):
        put = client.put(f"{API}/settings/enforce_test_focus_mode", headers=teacher_headers, json={"value": False})
        assert put.status_code == 200
        got = client.get(f"{API}/settings/enforce_test_focus_mode", headers=teacher_headers).json()
        assert got["value"] is False

    def test_wrong_value_type_is_rejected(self, client, teacher_headers):
        response = client.put(f"{API}/settings/enforce_test_focus_mode", headers=teacher_headers, json={"value": "yes"})
        assert response.status_code == 400

    def test_unknown_setting(self, client, teacher_headers):
        assert client.get(f"{API}/settings/dark_mode", headers=teacher_headers).status_code == 404
        assert client.put(f"{API}/settings/dark_mode", headers=teacher_headers, json={"value": 1}).status_code == 400


# ──────────────────────────────────────────────
# TOGETHER
# ──────────────────────────────────────────────

class TestTogether:

    def test_lobby_to_completion(self, client, student_headers, other_student_headers, content):
        created = client.post(f"{API}/together", headers=student_headers)
        assert created.status_code == 201
        lobby = created.json()
        session_id = lobby["session"]["id"]
        assert lobby["is_host"] is True
        assert lobby["total_assignments"] == 5

        joined = client.post(f"{API}/together/{session_id}/join", headers=other_student_headers,
                             json={"color": "#ef4444"})
        assert joined.status_code == 200
        assert joined.json()["color"] == "#ef4444"

        seen_by_guest = client.get(f"{API}/together/{session_id}", headers=other_student_headers).json()
        assert seen_by_guest["is_host"] is False
        assert "#ef4444" not in seen_by_guest["available_colors"]
        assert len(seen_by_guest["participants"]) == 2

        assert client.post(f"{API}/together/{session_id}/start", headers=other_student_headers).status_code == 403
        started = client.post(f"{API}/together/{session_id}/start", headers=student_headers).json()
        assert started["status"] == "in_progress"

        play = client.get(f"{API}/together/{session_id}/play", headers=other_student_headers).json()
        assert play["current_assignment_index"] == 1
        assert play["current_content"]["type"] in ("sentence", "flashcard")

        for _ in range(5):
            response = client.post(f"{API}/together/{session_id}/next", headers=student_headers)
            assert response.status_code == 200
        assert response.json()["status"] == "completed"
        assert client.post(f"{API}/together/{session_id}/next", headers=student_headers).status_code == 409

        final = client.get(f"{API}/together/{session_id}/play", headers=other_student_headers).json()
        assert final["status"] == "completed"
        assert final["current_assignment"] is None

    def test_taken_colour_conflicts(self, client, student_headers, other_student_headers, content):
        session_id = client.post(f"{API}/together", headers=student_headers).json()["session"]["id"]
        response = client.post(f"{API}/together/{session_id}/join", headers=other_student_headers,
                               json={"color": "#3b82f6"})
        assert response.status_code == 409

    def test_outsider_cannot_view_play_screen(self, client, student_headers, other_student_headers, content):
        session_id = client.post(f"{API}/together", headers=student_headers).json()["session"]["id"]
        assert client.get(f"{API}/together/{session_id}/play", headers=other_student_headers).status_code == 403

    def test_unknown_session_is_not_found(self, client, student_headers):
        assert client.get(f"{API}/together/404", headers=student_headers).status_code == 404

    def test_websocket_relays_session_events(self, client, student, student_headers, other_student_headers,
                                             content):

        session_id = client.post(f"{API}/together", headers=student_headers).json()["session"]["id"]
        token = create_access_token(student)
        with client.websocket_connect(f"{API}/together/{session_id}/ws?token={token}") as websocket:
            snapshot = websocket.receive_json()
            assert snapshot["type"] == "snapshot"
            assert snapshot["payload"]["new"]["status"] == "lobby"

            client.post(f"{API}/together/{session_id}/join", headers=other_student_headers)
            joined = websocket.receive_json()
            assert joined["topic"] == f"participants:{session_id}"
            assert joined["event"] == "INSERT"

            client.post(f"{API}/together/{session_id}/start", headers=student_headers)
            update = websocket.receive_json()
            assert update["event"] == "UPDATE"
            assert update["payload"]["new"]["status"] == "in_progress"
            assert websocket.receive_json()["event"] == "session_started"

    def test_websocket_without_token_is_refused(self, client, student_headers, content):

        session_id = client.post(f"{API}/together", headers=student_headers).json()["session"]["id"]
        with pytest.raises(WebSocketDisconnect):
            with client.websocket_connect(f"{API}/together/{session_id}/ws") as websocket:
                websocket.receive_json()

    def test_websocket_refuses_users_outside_the_session(self, client, session, student_headers, content):
        session_id = client.post(f"{API}/together", headers=student_headers).json()["session"]["id"]
        outsider = make_user(session, "carla")
        token = create_access_token(outsider)
        with pytest.raises(WebSocketDisconnect) as refused:
            with client.websocket_connect(f"{API}/together/{session_id}/ws?token={token}") as websocket:
                websocket.receive_json()
        assert refused.value.code == 1008


class TestTogetherRealtimeConvergence:

    @pytest.fixture
    def running(self, client, student_headers, other_student_headers, content):
        """A started session hosted by the student, with the other student joined."""
        session_id = client.post(f"{API}/together", headers=student_headers).json()["session"]["id"]
        client.post(f"{API}/together/{session_id}/join", headers=other_student_headers)
        client.post(f"{API}/together/{session_id}/start", headers=student_headers)
        return session_id

    def _connect(self, client, user, session_id):
        return client.websocket_connect(f"{API}/together/{session_id}/ws?token={create_access_token(user)}")

    def test_advance_during_connect_still_reaches_the_guest(self, client, student, other_student, running,
                                                           monkeypatch):
        original_row = together_service.session_row
        fired = []

        def row_then_host_advances(together):
            row = original_row(together)
            if not fired:
                fired.append(row["current_assignment_index"])
                with Session(engine) as other:
                    together_service.advance(other, other.get(TogetherSession, running), other.get(User, student.id))
            return row

        monkeypatch.setattr(together_service, "session_row", row_then_host_advances)
        with self._connect(client, other_student, running) as websocket:
            snapshot = websocket.receive_json()
            update = websocket.receive_json()

        assert fired == [1]
        assert snapshot["payload"]["new"]["current_assignment_index"] == 1
        assert update["event"] == "UPDATE"
        assert update["payload"]["new"]["current_assignment_index"] == 2

    def test_late_guest_starts_from_latest_index(self, client, other_student, student_headers, running):
        client.post(f"{API}/together/{running}/next", headers=student_headers)
        client.post(f"{API}/together/{running}/next", headers=student_headers)
        with self._connect(client, other_student, running) as websocket:
            snapshot = websocket.receive_json()["payload"]["new"]
            assert snapshot["status"] == "in_progress"
            assert snapshot["current_assignment_index"] == 3

            client.post(f"{API}/together/{running}/next", headers=student_headers)
            assert websocket.receive_json()["payload"]["new"]["current_assignment_index"] == 4

    def test_guest_connecting_after_the_last_advance_sees_completion(self, client, other_student,
                                                                     student_headers, running):
        for _ in range(5):
            client.post(f"{API}/together/{running}/next", headers=student_headers)
        with self._connect(client, other_student, running) as websocket:
            snapshot = websocket.receive_json()["payload"]["new"]
        assert snapshot["status"] == "completed"
        assert snapshot["completed_at"] is not None

    def test_stale_session_rows_are_not_relayed(self, client, other_student, student_headers, running):
        with self._connect(client, other_student, running) as websocket:
            websocket.receive_json()
            stale = {"id": running, "status": "in_progress", "current_assignment_index": 0}
            hub.publish_row_change(session_topic(running), "UPDATE", stale)
            client.post(f"{API}/together/{running}/next", headers=student_headers)
            update = websocket.receive_json()
        assert update["payload"]["new"]["current_assignment_index"] == 2
