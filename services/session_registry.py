import time
from typing import Callable, Dict, Optional

from core.logger import logger
from db.session import session_scope
from schemas.ads import AdSlot
from schemas.quiz import QuizAttempt
from services.ad_service import AdService
from services.attempt_service import AttemptService
from services.quiz_service import QuizService
from services.session_service import QuizSession

SessionFactory = Callable[[str, str, str], QuizSession]


def build_session(user_id: str, brand: str, cricket_format: str) -> QuizSession:
    """QuizSession wired to the database-backed collaborators. Each call opens its own DB session."""

    async def fetch_quiz(brand: str, cricket_format: str):
        async with session_scope() as db:
            return await QuizService(db).load_quiz(brand, cricket_format, user_id)

    async def resolve_interstitial(slot: AdSlot):
        async with session_scope() as db:
            return await AdService(db).resolve_interstitial(slot)

    async def save_attempt(attempt: QuizAttempt) -> int:
        async with session_scope() as db:
            return await AttemptService(db).save_attempt(attempt)

    async def mark_reviewed(attempt_id: int) -> bool:
        async with session_scope() as db:
            return await AttemptService(db).mark_reviewed(attempt_id, user_id)

    return QuizSession(
        brand=brand,
        cricket_format=cricket_format,
        fetch_quiz=fetch_quiz,
        resolve_interstitial=resolve_interstitial,
        user_id=user_id,
        save_attempt=save_attempt,
        mark_reviewed=mark_reviewed,
    )


class SessionRegistry:
    """One live quiz session per user, held in process memory."""

    def __init__(self, factory: SessionFactory = build_session):
        self._factory = factory
        self._sessions: Dict[str, QuizSession] = {}

    async def start(self, user_id: str, brand: str, cricket_format: str) -> QuizSession:
        # A new quiz replaces whatever the user had running
        self.end(user_id)
        session = self._factory(user_id, brand, cricket_format)
        self._sessions[user_id] = session
        await session.start()
        return session

    def get(self, user_id: str) -> Optional[QuizSession]:
        session = self._sessions.get(user_id)
        if session is not None and not session.alive:
            del self._sessions[user_id]
            return None
        return session

    def end(self, user_id: str) -> bool:
        session = self._sessions.pop(user_id, None)
        if session is None:
            return False
        session.teardown()
        return True

    def sweep(self, idle_seconds: float) -> int:
        """Tear down sessions with no activity for idle_seconds."""
        threshold = time.monotonic() - idle_seconds
        stale = [uid for uid, s in self._sessions.items() if not s.alive or s.last_activity < threshold]
        for user_id in stale:
            self.end(user_id)
        if stale:
            logger.info("Idle quiz sessions swept", count=len(stale))
        return len(stale)

    def shutdown(self):
        for user_id in list(self._sessions):
            self.end(user_id)

    def __len__(self) -> int:
        return len(self._sessions)


registry = SessionRegistry()
