import pytest

from fakes import EXERCISES_ROWS, LOG_ROWS, FakeRuntime, FakeSheet, FakeSheetsClient


@pytest.fixture
def workout_sheet() -> FakeSheet:
    return FakeSheet({"Exercises": EXERCISES_ROWS, "WorkoutLog": LOG_ROWS})


@pytest.fixture
def fake_client(workout_sheet) -> FakeSheetsClient:
    return FakeSheetsClient(workout_sheet)


@pytest.fixture
def fake_runtime(fake_client) -> FakeRuntime:
    return FakeRuntime(client=fake_client)
