import importlib

import pytest
from fastapi.testclient import TestClient

from api import state
from fakes import FakeRuntime, FakeSheet, FakeSheetsClient, make_http_error
from storage.google_auth import AuthSession
from storage.sheet_history import SheetHistoryStore

SHEET_URL = "https://docs.google.com/spreadsheets/d/sheet-123/edit"


def _client_for(runtime, tmp_path):
    mod = importlib.import_module("api.main")
    state.configure(
        runtime,
        AuthSession(cache_path=""),
        SheetHistoryStore(path=str(tmp_path / "history.json")),
    )
    return TestClient(mod.app)


@pytest.fixture
def api(fake_runtime, tmp_path):
    with _client_for(fake_runtime, tmp_path) as client:
        yield client


def _login_and_open(client):
    r = client.post("/auth/token", json={"access_token": "ya29.token"})
    assert r.status_code == 200
    r = client.post("/sheets/open", json={"source": SHEET_URL})
    assert r.status_code == 200
    return r.json()


def test_open_sheet_loads_workouts(api):
    body = _login_and_open(api)
    assert body["status"] == "ready"
    assert body["sheet_id"] == "sheet-123"
    assert body["record_count"] == 3
    assert body["title"] == "Spring Block"

    r = api.get("/workouts", params={"day": "2024-03-10"})
    assert r.status_code == 200
    day = r.json()
    assert day["has_workout"] is True
    assert [e["index"] for e in day["entries"]] == [0, 1]
    assert day["entries"][0]["video"] == "https://youtu.be/squat-new"
    assert day["entries"][1]["notes"] == "felt good"

    empty = api.get("/workouts", params={"day": "2024-03-11"}).json()
    assert empty["has_workout"] is False
    assert empty["entries"] == []


def test_workouts_before_loading(api):
    r = api.get("/workouts", params={"day": "2024-03-10"})
    assert r.status_code == 409


def test_open_without_login_stays_idle(api):
    r = api.post("/sheets/open", json={"source": "sheet-123"})
    assert r.status_code == 200
    assert r.json()["status"] == "idle"


def test_open_rejects_bad_source(api):
    r = api.post("/sheets/open", json={"source": "https://docs.google.com/spreadsheets/"})
    assert r.status_code == 400


def test_history_lists_title(api):
    _login_and_open(api)
    sheets = api.get("/sheets").json()
    assert sheets["current"] == "sheet-123"
    assert sheets["sheets"][0]["sheet_id"] == "sheet-123"
    assert sheets["sheets"][0]["title"] == "Spring Block"


def test_calendar_highlights_workout_days(api):
    _login_and_open(api)

    r = api.post("/calendar/select", json={"day": "2024-03-13"})
    view = r.json()
    assert view["view_mode"] == "week"
    assert [d["date"] for d in view["days"]][0] == "2024-03-10"
    flagged = {d["date"] for d in view["days"] if d["has_record"]}
    assert flagged == {"2024-03-10", "2024-03-12"}

    month = api.post("/calendar/toggle").json()
    assert month["view_mode"] == "month"
    assert len(month["days"]) == 42
    assert month["anchor_month"] == "2024-03-01"

    picked = api.post("/calendar/select", json={"day": "2024-03-12", "from_month_grid": True}).json()
    assert picked["view_mode"] == "week"
    assert picked["selected_date"] == "2024-03-12"

    moved = api.post("/calendar/month", json={"offset": -2}).json()
    assert moved["anchor_month"] == "2024-01-01"


def test_note_edit_and_save(api, fake_client):
    _login_and_open(api)

    r = api.post("/notes/edit", json={"record_index": 1})
    assert r.json()["draft"] == "felt good"
    assert r.json()["key"] == {
        "date": "2024-03-10",
        "section": "Main",
        "exercise": "Bench Press",
        "position": 1,
    }

    api.put("/notes/draft", json={"record_index": 1, "text": "add 2.5kg"})
    r = api.post("/notes/save", json={"record_index": 1})
    assert r.status_code == 200
    assert r.json()["record"]["Notes"] == "add 2.5kg"
    assert fake_client.sheet.tabs["WorkoutLog"][2][4] == "add 2.5kg"

    day = api.get("/workouts", params={"day": "2024-03-10"}).json()
    assert day["entries"][1]["notes"] == "add 2.5kg"
    assert day["entries"][1]["draft"] is None


def test_failed_save_keeps_draft(api, fake_client):
    _login_and_open(api)
    fake_client.failures["update_cell"] = make_http_error(500, "Backend error")

    api.post("/notes/edit", json={"record_index": 0})
    r = api.post("/notes/save", json={"record_index": 0, "text": "wobbly"})
    assert r.status_code == 502
    assert r.json()["detail"]["type"] == "WriteFailed"

    entry = api.get("/workouts", params={"day": "2024-03-10"}).json()["entries"][0]
    assert entry["draft"] == "wobbly"
    assert entry["notes"] == ""
    assert entry["error"]["type"] == "WriteFailed"


def test_cancel_edit(api):
    _login_and_open(api)
    api.post("/notes/edit", json={"record_index": 2, "text": "draft"})
    r = api.delete("/notes/draft/2")
    assert r.json()["draft"] is None
    assert api.delete("/notes/draft/99").status_code == 404


def test_schema_errors_surface_as_list(tmp_path):
    sheet = FakeSheet({"WorkoutLog": [["Date", "Exercise"], ["2024-03-10", "Squat"]]})
    with _client_for(FakeRuntime(client=FakeSheetsClient(sheet)), tmp_path) as client:
        body = _login_and_open(client)
        assert body["status"] == "error"
        assert body["error"]["type"] == "SchemaInvalid"
        assert body["error"]["errors"][0] == 'Missing required sheet: "Exercises"'

        r = client.get("/workouts", params={"day": "2024-03-10"})
        assert r.status_code == 422


def test_video_lookup(api):
    _login_and_open(api)
    assert api.get("/videos/Bench Press").json()["video"] == "https://youtu.be/bench"
    assert api.get("/videos/Deadlift").status_code == 404


def test_logout_returns_store_to_idle(api, monkeypatch):
    _login_and_open(api)
    monkeypatch.setattr(state.auth_session, "revoke", lambda: state.auth_session.clear() or True)

    r = api.post("/auth/logout")
    assert r.json()["status"] == "logged_out"
    assert api.get("/workouts/status").json()["status"] == "idle"
    assert api.get("/auth/status").json()["authenticated"] is False


def test_drafts_do_not_follow_into_sheet_opened_while_logged_out(api, monkeypatch):
    _login_and_open(api)
    api.put("/notes/draft", json={"record_index": 1, "text": "add 2.5kg"})
    assert api.get("/workouts", params={"day": "2024-03-10"}).json()["entries"][1]["draft"] == "add 2.5kg"

    monkeypatch.setattr(state.auth_session, "revoke", lambda: state.auth_session.clear() or True)
    api.post("/auth/logout")
    assert api.post("/sheets/open", json={"source": "sheet-456"}).json()["status"] == "idle"
    r = api.post("/auth/token", json={"access_token": "ya29.other"})
    assert r.json()["store_status"] == "ready"

    entry = api.get("/workouts", params={"day": "2024-03-10"}).json()["entries"][1]
    assert entry["draft"] is None
    assert api.post("/notes/save", json={"record_index": 1}).status_code == 400
