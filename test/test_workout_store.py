import asyncio

import pytest

from fakes import FakeRuntime, FakeSheet, FakeSheetsClient, auth_expired_error, make_http_error
from workout_planner.errors import AuthExpired, NoData, RemoteUnavailable, SchemaInvalid
from workouts.store import StoreStatus, WorkoutDataStore


@pytest.mark.asyncio
async def test_load_ready(fake_runtime):
    titles = []
    store = WorkoutDataStore(fake_runtime, on_title=lambda sid, t: titles.append((sid, t)))
    assert store.status == StoreStatus.IDLE

    status = await store.load("token-a", "sheet-a")

    assert status == StoreStatus.READY
    assert store.error is None
    assert len(store.records) == 3
    assert store.header == ["Date", "Section", "Section Prescription", "Exercise", "Notes"]
    assert store.records[0]["Notes"] == ""
    assert store.title == "Spring Block"
    assert titles == [("sheet-a", "Spring Block")]
    assert fake_runtime.bound_tokens == ["token-a"]


@pytest.mark.asyncio
async def test_read_operations(fake_runtime):
    store = WorkoutDataStore(fake_runtime)
    await store.load("token-a", "sheet-a")

    assert store.has_workout("2024-03-10")
    assert store.has_workout("2024-03-10T18:45:00")
    assert not store.has_workout("2024-03-11")

    day = store.records_on("2024-03-10")
    assert [r["Exercise"] for r in day] == ["Squat", "Bench Press"]
    assert [i for i, _ in store.entries_on("2024-03-12")] == [2]
    assert store.records_on("2024-03-11") == []

    assert store.video_for("Squat") == "https://youtu.be/squat-new"
    assert store.video_for("Plank") is None
    assert store.video_for("Deadlift") is None
    assert [d.isoformat() for d in store.workout_days()] == ["2024-03-10", "2024-03-12"]


@pytest.mark.asyncio
async def test_minimal_log_without_validation():
    sheet = FakeSheet(
        {
            "Exercises": [["Exercise", "VideoLink"]],
            "WorkoutLog": [["Date", "Section", "Exercise"], ["2024-03-10", "Warmup", "Squat"]],
        }
    )
    store = WorkoutDataStore(FakeRuntime(client=FakeSheetsClient(sheet)), validate_schema=False)
    await store.load("token", "sheet")

    expected = {"Date": "2024-03-10", "Section": "Warmup", "Exercise": "Squat"}
    assert store.records == [expected]
    assert store.records_on("2024-03-10") == [expected]
    assert store.records_on("2024-03-11") == []


@pytest.mark.asyncio
async def test_header_only_log_is_no_data():
    sheet = FakeSheet(
        {
            "Exercises": [["Exercise", "VideoLink"]],
            "WorkoutLog": [["Date", "Section", "Section Prescription", "Exercise", "Notes"]],
        }
    )
    store = WorkoutDataStore(FakeRuntime(client=FakeSheetsClient(sheet)))
    status = await store.load("token", "sheet")

    assert status == StoreStatus.ERROR
    assert isinstance(store.error, NoData)
    assert store.records == []


@pytest.mark.asyncio
async def test_schema_violation_reports_every_error():
    sheet = FakeSheet({"WorkoutLog": [["Date", "Exercise"], ["2024-03-10", "Squat"]]})
    store = WorkoutDataStore(FakeRuntime(client=FakeSheetsClient(sheet)))
    await store.load("token", "sheet")

    assert store.status == StoreStatus.ERROR
    assert isinstance(store.error, SchemaInvalid)
    assert store.error.errors[0] == 'Missing required sheet: "Exercises"'
    assert len(store.error.errors) == 4
    assert store.error.message.startswith("Spreadsheet validation failed:")


@pytest.mark.asyncio
async def test_runtime_unavailable(fake_client):
    store = WorkoutDataStore(FakeRuntime(client=fake_client, unavailable=True))
    await store.load("token", "sheet")
    assert isinstance(store.error, RemoteUnavailable)
    assert fake_client.calls == []


@pytest.mark.asyncio
async def test_api_surface_load_failure(workout_sheet):
    client = FakeSheetsClient(workout_sheet, failures={"load": RemoteUnavailable("blocked")})
    store = WorkoutDataStore(FakeRuntime(client=client))
    await store.load("token", "sheet")
    assert store.status == StoreStatus.ERROR
    assert store.error.message == "blocked"


@pytest.mark.asyncio
async def test_auth_expired_during_validation(workout_sheet):
    client = FakeSheetsClient(workout_sheet, failures={"get_sheet_names": auth_expired_error()})
    store = WorkoutDataStore(FakeRuntime(client=client))
    await store.load("token", "sheet")
    assert isinstance(store.error, AuthExpired)
    assert store.error.message == "Login expired. Login again"


@pytest.mark.asyncio
async def test_auth_expired_during_log_fetch(workout_sheet):
    client = FakeSheetsClient(
        workout_sheet, failures={"get_values:WorkoutLog!A:Z": auth_expired_error()}
    )
    store = WorkoutDataStore(FakeRuntime(client=client))
    await store.load("token", "sheet")
    assert isinstance(store.error, AuthExpired)


@pytest.mark.asyncio
async def test_title_failure_is_not_fatal(workout_sheet):
    client = FakeSheetsClient(workout_sheet, failures={"get_title": make_http_error(500)})
    store = WorkoutDataStore(FakeRuntime(client=client))
    status = await store.load("token", "sheet")
    assert status == StoreStatus.READY
    assert store.title is None


@pytest.mark.asyncio
async def test_stale_result_never_overwrites_newer_load():
    sheet_a = FakeSheet(
        {
            "Exercises": [["Exercise", "VideoLink"]],
            "WorkoutLog": [["Date", "Section", "Section Prescription", "Exercise", "Notes"], ["2024-01-01", "A", "", "Old", ""]],
        },
        title="Sheet A",
    )
    sheet_b = FakeSheet(
        {
            "Exercises": [["Exercise", "VideoLink"]],
            "WorkoutLog": [["Date", "Section", "Section Prescription", "Exercise", "Notes"], ["2024-02-02", "B", "", "New", ""]],
        },
        title="Sheet B",
    )
    gate = asyncio.Event()
    runtime = FakeRuntime(
        clients={
            "token-a": FakeSheetsClient(sheet_a, gate=gate),
            "token-b": FakeSheetsClient(sheet_b),
        }
    )
    store = WorkoutDataStore(runtime, validate_schema=False)

    slow = asyncio.create_task(store.load("token-a", "sheet-a"))
    await asyncio.sleep(0)
    assert store.status == StoreStatus.LOADING

    await store.load("token-b", "sheet-b")
    assert store.status == StoreStatus.READY

    gate.set()
    await slow

    assert store.sheet_id == "sheet-b"
    assert store.title == "Sheet B"
    assert [r["Exercise"] for r in store.records] == ["New"]


@pytest.mark.asyncio
async def test_stale_failure_is_discarded(workout_sheet):
    gate = asyncio.Event()
    failing = FakeSheetsClient(workout_sheet, failures={"get_values": make_http_error(500)}, gate=gate)
    runtime = FakeRuntime(clients={"old": failing, "new": FakeSheetsClient(workout_sheet)})
    store = WorkoutDataStore(runtime)

    slow = asyncio.create_task(store.load("old", "sheet"))
    await asyncio.sleep(0)
    await store.load("new", "sheet")
    gate.set()
    await slow

    assert store.status == StoreStatus.READY
    assert store.error is None


@pytest.mark.asyncio
async def test_update_inputs_only_reloads_on_change(fake_runtime):
    store = WorkoutDataStore(fake_runtime)
    await store.update_inputs("token", "sheet")
    await store.update_inputs("token", "sheet")
    assert fake_runtime.bound_tokens == ["token"]

    await store.update_inputs("token-2", "sheet")
    assert fake_runtime.bound_tokens == ["token", "token-2"]

    await store.update_inputs(None, "sheet")
    assert store.status == StoreStatus.IDLE
    assert store.records == []


@pytest.mark.asyncio
async def test_apply_note_locally(fake_runtime):
    store = WorkoutDataStore(fake_runtime)
    await store.load("token", "sheet")

    store.apply_note_locally(1, "moved up 5kg")
    assert store.records[1]["Notes"] == "moved up 5kg"
    assert store.records[0]["Notes"] == ""

    with pytest.raises(IndexError):
        store.apply_note_locally(10, "nope")


@pytest.mark.asyncio
async def test_apply_note_locally_adds_notes_key_everywhere():
    sheet = FakeSheet(
        {
            "Exercises": [["Exercise", "VideoLink"]],
            "WorkoutLog": [["Date", "Exercise"], ["2024-03-10", "Squat"], ["2024-03-11", "Row"]],
        }
    )
    store = WorkoutDataStore(FakeRuntime(client=FakeSheetsClient(sheet)), validate_schema=False)
    await store.load("token", "sheet")

    store.apply_note_locally(0, "easy")
    assert store.header == ["Date", "Exercise", "Notes"]
    assert store.records == [
        {"Date": "2024-03-10", "Exercise": "Squat", "Notes": "easy"},
        {"Date": "2024-03-11", "Exercise": "Row", "Notes": ""},
    ]
