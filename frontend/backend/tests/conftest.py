import pytest
from ellen_web_backend.dependencies import get_completion_provider, get_deduplicator, get_storage
from ellen_web_backend.main import app
from ellen_web_backend.services.completion import ScriptedCompletionProvider
from ellen_web_backend.services.dedupe import RequestDeduplicator
from ellen_web_backend.settings import ServerSettings, get_settings
from ellen_web_backend.storage import Storage
from fastapi.testclient import TestClient


@pytest.fixture
def storage(tmp_path) -> Storage:
    return Storage(tmp_path / "test.db")


@pytest.fixture
def server_settings(tmp_path) -> ServerSettings:
    return ServerSettings(storage_dir=str(tmp_path), stream_format="ndjson")


@pytest.fixture
def provider() -> ScriptedCompletionProvider:
    return ScriptedCompletionProvider()


@pytest.fixture
def deduplicator(server_settings: ServerSettings) -> RequestDeduplicator:
    return RequestDeduplicator(server_settings.dedupe_window_seconds)


@pytest.fixture
def app_overrides(storage, server_settings, provider, deduplicator):
    """Route every backend dependency to isolated test instances."""
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_settings] = lambda: server_settings
    app.dependency_overrides[get_completion_provider] = lambda: provider
    app.dependency_overrides[get_deduplicator] = lambda: deduplicator

    yield app

    # Clean up overrides after test
    app.dependency_overrides.clear()


@pytest.fixture
def client(app_overrides) -> TestClient:
    """Create a test client with isolated storage."""
    return TestClient(app_overrides)
