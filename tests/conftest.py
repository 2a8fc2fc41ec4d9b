"""
Pytest configuration and fixtures for IndCric tests.
"""
import sys
import os

# Settings are read at import time; point them at throwaway backends first
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("AUTH_SECRET", "test-secret")
os.environ["GROQ_API_KEY"] = ""
os.environ["AI_RETRY_BACKOFF_SECONDS"] = "0"
os.environ.setdefault("LOG_JSON", "false")

# Add project root to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from models.base import Base
from models import ad, attempt, generation_log, quiz_slot, report  # noqa: F401
from schemas.quiz import QuestionRecord, QuizPayload


def make_question(n: int, correct: str = "A") -> QuestionRecord:
    return QuestionRecord(
        id=f"q{n}",
        question=f"Question number {n}?",
        options=["A", "B", "C", "D"],
        correct_answer=correct,
        explanation=f"Explanation {n}",
    )


@pytest.fixture
def sample_questions():
    """Five valid questions, every answer is A"""
    return [make_question(i) for i in range(1, 6)]


@pytest.fixture
def sample_quiz(sample_questions):
    return QuizPayload(questions=sample_questions, title="T20 Blast", description="Five quick ones", source="slot")


@pytest.fixture
def raw_questions():
    """Questions in the camelCase wire shape"""
    return [make_question(i).dump() for i in range(1, 6)]


@pytest_asyncio.fixture
async def db_session():
    """In-memory SQLite session with all tables created"""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session

    await engine.dispose()
