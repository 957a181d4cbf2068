"""
Pytest configuration and fixtures.

Every test gets its own temporary SQLite database and a scripted chat model
that records the prompts it receives.
"""

import sys
from pathlib import Path
from typing import Any, AsyncGenerator, Callable, Dict, List, Optional, Union

import pytest
from fastapi import WebSocketDisconnect
from httpx import ASGITransport, AsyncClient
from langchain_core.messages import AIMessage

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from devtutor.agents.base.llm import CompletionClient
from devtutor.core.security import create_access_token
from devtutor.db.base import Database
from devtutor.db.schemas import UserPreferences, UserRecord
from devtutor.db.store import SessionStore
from devtutor.main import create_app
from devtutor.services import TutorServices


QUIZ_JSON = """```json
[
  {"question": "What does map() return?", "options": {"a": "undefined", "b": "A new array", "c": "The same array", "d": "A number"}, "answer": "b", "explanation": "map() builds a new array."},
  {"question": "Which keyword declares a constant?", "options": {"a": "var", "b": "let", "c": "const", "d": "static"}, "answer": "c", "explanation": "const declares a block-scoped constant."},
  {"question": "What is typeof null?", "options": {"a": "null", "b": "undefined", "c": "number", "d": "object"}, "answer": "d", "explanation": "A historical quirk: typeof null is 'object'."}
]
```"""


class FakeChatModel:
    """
    Stand-in for the chat model used by ``CompletionClient``.

    ``reply`` is either a fixed string or a callable receiving the prompt.
    Set ``error`` to make every call raise.
    """

    def __init__(self, reply: Union[str, Callable[[str], str]] = "Here is what you asked for."):
        self.reply = reply
        self.error: Optional[Exception] = None
        self.calls: List[Dict[str, Any]] = []

    @property
    def call_count(self) -> int:
        return len(self.calls)

    async def ainvoke(self, prompt: str, **kwargs: Any) -> AIMessage:
        self.calls.append({"prompt": prompt, **kwargs})
        if self.error is not None:
            raise self.error
        text = self.reply(prompt) if callable(self.reply) else self.reply
        return AIMessage(content=text)


class MockWebSocket:
    """
    Mock WebSocket for testing.

    Frames queued in ``incoming`` are returned by ``receive_text``; once they
    run out the client disconnects.
    """

    def __init__(self, app=None):
        self.app = app
        self.accepted = False
        self.closed_code: Optional[int] = None
        self.messages: List[Dict[str, Any]] = []
        self.incoming: List[str] = []

    async def accept(self):
        self.accepted = True

    async def send_json(self, data: Dict[str, Any]):
        self.messages.append(data)

    async def receive_text(self) -> str:
        if not self.incoming:
            raise WebSocketDisconnect(code=1000)
        return self.incoming.pop(0)

    async def close(self, code: int = 1000):
        self.closed_code = code

    def events(self, name: str) -> List[Dict[str, Any]]:
        return [frame["data"] for frame in self.messages if frame["event"] == name]

    def event_names(self) -> List[str]:
        return [frame["event"] for frame in self.messages]


@pytest.fixture
async def database(tmp_path: Path) -> AsyncGenerator[Database, None]:
    """Temporary SQLite database with all tables created."""
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'devtutor_test.db'}")
    await db.create_all()
    yield db
    await db.close()


@pytest.fixture
def store(database: Database) -> SessionStore:
    return SessionStore(database, timeout=5.0)


@pytest.fixture
def fake_llm() -> FakeChatModel:
    return FakeChatModel()


@pytest.fixture
def completion(fake_llm: FakeChatModel) -> CompletionClient:
    return CompletionClient(chat_model=fake_llm, timeout=5.0)


@pytest.fixture
def services(store: SessionStore, completion: CompletionClient, database: Database) -> TutorServices:
    return TutorServices(store, completion, database=database)


@pytest.fixture
def app(services: TutorServices):
    return create_app(services=services)


@pytest.fixture
async def async_client(app) -> AsyncGenerator[AsyncClient, None]:
    """Create an async test client."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as client:
        yield client


@pytest.fixture
async def user(store: SessionStore) -> UserRecord:
    return await store.create_user(
        name="Test Learner",
        username="learner",
        email="learner@example.com",
        preferences=UserPreferences(
            difficulty="beginner",
            preferred_languages=["python", "javascript"],
            learning_style="visual",
        ),
    )


@pytest.fixture
async def other_user(store: SessionStore) -> UserRecord:
    return await store.create_user(
        name="Other Learner",
        username="other",
        email="other@example.com",
    )


@pytest.fixture
def auth_headers(user: UserRecord) -> Dict[str, str]:
    """Return headers with the test user's bearer token."""
    token = create_access_token({"sub": user.id})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def other_auth_headers(other_user: UserRecord) -> Dict[str, str]:
    token = create_access_token({"sub": other_user.id})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def mock_websocket(app) -> MockWebSocket:
    return MockWebSocket(app)
