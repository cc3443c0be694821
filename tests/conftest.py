import asyncio
import os
import sys
from datetime import datetime, timedelta
from pathlib import Path
from typing import Dict, List, Optional

import pytest


ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("JWT_SECRET_KEY", "test-secret")
os.environ.setdefault("OPENAI_API_KEY", "test-key")

from interview_app.exceptions import EvaluationError, GenerationError, PersistenceConflict, SessionNotFoundError  # noqa: E402
from interview_app.models.session import Evaluation, InterviewSession, InterviewSetup, Question  # noqa: E402
from interview_app.services.interview_service import InterviewService  # noqa: E402
from interview_app.services.session_engine import SessionEngine  # noqa: E402


class FakeClock:
    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2024, 1, 15, 10, 30, 0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now = self.now + timedelta(seconds=seconds)
        return self.now


class InMemorySessionRepository:
    """Same contract as SessionRepository, including the version check."""

    def __init__(self):
        self.documents: Dict[str, dict] = {}

    async def insert(self, session: InterviewSession) -> InterviewSession:
        self.documents[session.session_id] = session.model_dump()
        return session

    async def load(self, session_id: str) -> InterviewSession:
        if session_id not in self.documents:
            raise SessionNotFoundError(session_id)
        return InterviewSession(**self.documents[session_id])

    async def save(self, session: InterviewSession) -> InterviewSession:
        stored = self.documents.get(session.session_id)
        if stored is None:
            raise SessionNotFoundError(session.session_id)
        if stored["version"] != session.version:
            raise PersistenceConflict(session.session_id, session.version)
        session.version += 1
        self.documents[session.session_id] = session.model_dump()
        return session

    async def list_for_user(self, user_id: str, page: int = 1, limit: int = 10):
        sessions = sorted(
            (InterviewSession(**doc) for doc in self.documents.values() if doc["user_id"] == user_id),
            key=lambda s: s.created_at,
            reverse=True,
        )
        start = (page - 1) * limit
        return sessions[start:start + limit], len(sessions)

    async def delete(self, session_id: str) -> None:
        if self.documents.pop(session_id, None) is None:
            raise SessionNotFoundError(session_id)


class FakeAIService:
    model = "fake-model"

    def __init__(self):
        self.fail_generation = False
        self.fail_evaluation = False
        self.delay = 0.0
        self.evaluation = Evaluation(
            score=80,
            feedback="Clear and well structured.",
            strengths=["Clear structure"],
            improvements=["Add metrics"],
        )
        self.follow_up = "How would you measure the impact?"
        self.calls: List[str] = []

    async def generate_questions(self, setup: InterviewSetup, count: int) -> List[Question]:
        self.calls.append("generate")
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_generation:
            raise GenerationError("model unavailable")
        return make_questions(count, skills=list(setup.skills))

    async def evaluate_answer(self, question_text: str, answer_text: str, context=None) -> Evaluation:
        self.calls.append("evaluate")
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_evaluation:
            raise EvaluationError("model unavailable")
        return self.evaluation

    async def generate_follow_up(self, original_question: str, previous_answer: str) -> Optional[str]:
        self.calls.append("follow_up")
        if self.fail_generation:
            raise GenerationError("model unavailable")
        return self.follow_up


def make_questions(count: int, difficulties=None, skills=None) -> List[Question]:
    difficulties = difficulties or ["Medium"] * count
    questions = []
    for i in range(count):
        tags = skills[i % len(skills):i % len(skills) + 1] if skills else []
        questions.append(Question(
            question_id=f"q{i + 1}",
            text=f"Question {i + 1}?",
            category=tags[0] if tags else "General",
            skills=tags,
            difficulty=difficulties[i],
        ))
    return questions


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def engine(clock) -> SessionEngine:
    return SessionEngine(clock=clock)


@pytest.fixture
def setup() -> InterviewSetup:
    return InterviewSetup(
        job_role="Backend Developer",
        skills=["Python", "MongoDB"],
        experience_level="Mid Level (2-5 years)",
        interview_type="mixed",
        difficulty="medium",
        duration=30,
    )


@pytest.fixture
def repository() -> InMemorySessionRepository:
    return InMemorySessionRepository()


@pytest.fixture
def ai_service() -> FakeAIService:
    return FakeAIService()


@pytest.fixture
def service(repository, ai_service, engine) -> InterviewService:
    return InterviewService(
        repository=repository,
        ai_service=ai_service,
        engine=engine,
        generation_timeout=1.0,
        evaluation_timeout=1.0,
    )
