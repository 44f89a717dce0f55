import pytest

from coursera_mcp.config import CourseraSettings
from tests.test_helpers import FakeBrowser, RecordingApi


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def settings() -> CourseraSettings:
    return CourseraSettings(cauth="test-cauth", _env_file=None)  # type: ignore[call-arg]


@pytest.fixture
def api() -> RecordingApi:
    return RecordingApi()


@pytest.fixture
def browser() -> FakeBrowser:
    return FakeBrowser()
