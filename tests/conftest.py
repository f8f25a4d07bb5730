import os
import tempfile
from pathlib import Path
from typing import Callable, Optional
from uuid import uuid4

# Bind the engine to a throwaway SQLite file and drop AI credentials before app import.
_BOOTSTRAP_DIR = Path(tempfile.mkdtemp(prefix="healthhub-tests-"))
os.environ["DB_PATH"] = str(_BOOTSTRAP_DIR / "bootstrap.db")
os.environ.pop("GEMINI_API_KEY", None)
os.environ.pop("OPENAI_API_KEY", None)

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

from healthhub.core.profiles import register_user  # noqa: E402
from healthhub.db.models import User  # noqa: E402
from healthhub.db.session import SessionLocal, configure_database, create_tables  # noqa: E402
from healthhub.services.llm import LLMRequestError, get_text_generator  # noqa: E402

PASSWORD = "StrongPass123"


class FakeTextGenerator:
    def __init__(self, reply: str = "{}", error: Optional[Exception] = None) -> None:
        self.reply = reply
        self.error = error
        self.prompts: list[str] = []

    def generate_text(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture(scope="session")
def test_db_path(tmp_path_factory: pytest.TempPathFactory) -> Path:
    db_path = tmp_path_factory.mktemp("db") / "healthhub_test.db"
    configure_database(str(db_path))
    create_tables()
    return db_path


@pytest.fixture(scope="session")
def app(test_db_path: Path):
    from healthhub.main import app as fastapi_app

    return fastapi_app


@pytest.fixture
def client(app):
    app.dependency_overrides = {}
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides = {}


@pytest.fixture
def db_session(test_db_path: Path):
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def create_user(db_session: Session) -> Callable[..., User]:
    def _create_user(**profile) -> User:
        fields = {
            "name": "Test User",
            "email": f"user_{uuid4().hex[:10]}@test.com",
            "password": PASSWORD,
        }
        fields.update(profile)
        return register_user(db_session, fields)

    return _create_user


@pytest.fixture
def register_and_login(client: TestClient) -> Callable[..., dict[str, str]]:
    def _register(**profile) -> dict[str, str]:
        email = profile.pop("email", f"auth_{uuid4().hex[:10]}@test.com")
        body = {"name": "Api User", "email": email, "password": PASSWORD, **profile}
        signup = client.post("/auth/register", json=body)
        assert signup.status_code == 201
        login = client.post("/auth/login", data={"username": email, "password": PASSWORD})
        assert login.status_code == 200
        return {"Authorization": f"Bearer {login.json()['access_token']}"}

    return _register


@pytest.fixture
def auth_headers(register_and_login) -> dict[str, str]:
    return register_and_login(age=34, gender="female", height=180, weight=81, goals=["improve_fitness"])


@pytest.fixture
def fake_generator_factory() -> Callable[..., FakeTextGenerator]:
    def _factory(reply: str = "{}", error: Optional[Exception] = None) -> FakeTextGenerator:
        return FakeTextGenerator(reply=reply, error=error)

    return _factory


@pytest.fixture
def override_text_generator(app) -> Callable[[Optional[FakeTextGenerator]], Optional[FakeTextGenerator]]:
    def _override(generator: Optional[FakeTextGenerator]) -> Optional[FakeTextGenerator]:
        app.dependency_overrides[get_text_generator] = lambda: generator
        return generator

    return _override


@pytest.fixture
def provider_error() -> LLMRequestError:
    return LLMRequestError(provider="gemini", model="gemini-1.5-flash", message="boom", status_code=500)
