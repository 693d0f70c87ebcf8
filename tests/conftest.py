import pytest
from httpx import ASGITransport, AsyncClient

from conceptrepo import api
from conceptrepo.api.auth import content_store
from conceptrepo.config import get_settings
from tests.tools import MemoryStore


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
async def client(store):
    """An API client whose repository routes work on the in-memory store"""
    api.app.dependency_overrides[content_store] = lambda: store
    async with AsyncClient(transport=ASGITransport(app=api.app), base_url="http://test", follow_redirects=False) as client:
        yield client
    api.app.dependency_overrides.clear()


@pytest.fixture
async def github_client():
    """An API client talking to (a mocked) GitHub"""
    async with AsyncClient(transport=ASGITransport(app=api.app), base_url="http://test", follow_redirects=False) as client:
        yield client


@pytest.fixture
def oauth_app():
    settings = get_settings()
    old = settings.github_client_id, settings.github_client_secret
    settings.github_client_id = "client-id"
    settings.github_client_secret = "client-secret"
    yield settings
    settings.github_client_id, settings.github_client_secret = old


@pytest.fixture
def settings():
    """The settings, restored after the test"""
    settings = get_settings()
    old = settings.model_dump()
    yield settings
    for k, v in old.items():
        setattr(settings, k, v)


CONCEPTS = {
    "concepts/animals/cat.json": {"key": "100000001", "object_type": "concept", "label": "Cat"},
    "concepts/animals/dog.json": {"key": "100000002", "object_type": "concept", "label": "Dog"},
    "concepts/animals/kat.json": {"key": "100000003", "object_type": "term", "value": "kat", "concept": "100000001"},
    "concepts/plants/oak.json": {"key": "100000004", "object_type": "concept", "label": "Oak"},
    "concepts/plants/.gitkeep": "",
}


@pytest.fixture
def concept_store():
    return MemoryStore(CONCEPTS)
