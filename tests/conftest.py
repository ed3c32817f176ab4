import pytest
from fastapi.testclient import TestClient

from chatforge.db.sessions import Database
from chatforge.main import create_app
from chatforge.routes.chat import get_openai_service
from chatforge.services.openai_service import ProviderError, StreamChunk


class FakeOpenAIService:
    """Scripted stand-in for the provider: replays text chunks, optionally failing."""

    def __init__(self, chunks=None, usage=None, fail_on_start=False, fail_after=None):
        self.chunks = chunks if chunks is not None else ["Arr, ", "ahoy ", "matey!"]
        self.usage = usage
        self.fail_on_start = fail_on_start
        self.fail_after = fail_after
        self.calls = []

    def stream_chat(self, provider, model, system_prompt, messages, max_tokens=1024):
        self.calls.append({
            "provider": provider,
            "model": model,
            "system_prompt": system_prompt,
            "messages": messages,
            "max_tokens": max_tokens,
        })
        if self.fail_on_start:
            raise ProviderError("provider refused the request")
        return self._replay()

    def _replay(self):
        for index, text in enumerate(self.chunks):
            if self.fail_after is not None and index == self.fail_after:
                raise ProviderError("connection dropped")
            yield StreamChunk(text=text)
        if self.usage is not None:
            yield StreamChunk(usage=self.usage)


@pytest.fixture
def database(tmp_path):
    return Database(f"sqlite:///{tmp_path / 'test.db'}")


@pytest.fixture
def fake_llm():
    return FakeOpenAIService()


@pytest.fixture
def app(database, fake_llm):
    application = create_app(database=database)
    application.dependency_overrides[get_openai_service] = lambda: fake_llm
    return application


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def register(client):
    """Register a user on the shared client; the session cookie switches to them."""

    def _register(email="alice@example.com", password="secret123", name="Alice"):
        client.cookies.clear()
        response = client.post(
            "/auth/register",
            json={"email": email, "password": password, "name": name},
        )
        assert response.status_code == 201, response.text
        return response.json()["user"]

    return _register


@pytest.fixture
def create_project(client):
    def _create(name="Pirate", system_prompt="You are a pirate.", **extra):
        response = client.post(
            "/projects",
            json={"name": name, "system_prompt": system_prompt, **extra},
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _create


@pytest.fixture
def db_session(client, database):
    session = database.session()
    yield session
    session.close()
