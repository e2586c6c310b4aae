"""Pytest configuration and fixtures."""

import pytest
from httpx import ASGITransport, AsyncClient

from tests.fakes import FakeOpenSearch
from todosearch.core.config import Settings
from todosearch.main import create_app, shutdown, startup


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        redis_dsn=None,
        search_index_name="todo-comments-test",
        log_level="WARNING",
    )


@pytest.fixture
def fake_search() -> FakeOpenSearch:
    return FakeOpenSearch()


@pytest.fixture
async def app(settings, fake_search):
    app = create_app(settings)
    await startup(app, settings, search_client=fake_search)
    yield app
    await shutdown(app)


@pytest.fixture
async def client(app) -> AsyncClient:
    """Async HTTP client against the FastAPI app (ASGI)."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def db(app):
    async with app.state.session_factory() as session:
        yield session


@pytest.fixture
async def user(client) -> dict:
    response = await client.post("/users/", json={"name": "ada", "email": "ada@example.com"})
    assert response.status_code == 201
    return response.json()
