"""Service container wiring the store, completion client and tutoring components."""

from typing import Optional

from fastapi import Request

from .agents.base.llm import CompletionClient
from .agents.quiz.engine import QuizEngine
from .agents.tutor.code_review import CodeReviewer
from .agents.tutor.graph import DialogueOrchestrator
from .agents.tutor.state import CODE_FEEDBACK
from .core.config import Settings
from .db.base import Database
from .db.store import SessionStore


class TutorServices:
    """Components shared by the HTTP and WebSocket adapters."""

    def __init__(
        self,
        store: SessionStore,
        completion: CompletionClient,
        database: Optional[Database] = None,
    ):
        self.database = database
        self.store = store
        self.completion = completion
        self.orchestrator = DialogueOrchestrator(store, completion)
        self.quiz_engine = QuizEngine(store, completion, self.orchestrator)
        self.code_reviewer = CodeReviewer(
            store,
            self.orchestrator.executors[CODE_FEEDBACK],
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "TutorServices":
        database = Database.from_settings(settings)
        return cls(
            SessionStore(database, timeout=settings.STORE_TIMEOUT_SECONDS),
            CompletionClient(timeout=settings.COMPLETION_TIMEOUT_SECONDS),
            database=database,
        )

    async def startup(self, create_tables: bool = True) -> None:
        if self.database is not None and create_tables:
            await self.database.create_all()

    async def shutdown(self) -> None:
        if self.database is not None:
            await self.database.close()


def get_services(request: Request) -> TutorServices:
    """FastAPI dependency returning the application's service container."""
    return request.app.state.services
