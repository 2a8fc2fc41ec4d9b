from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.logger import logger
from models.attempt import QuizAttemptRecord
from schemas.quiz import QuizAttempt


class AttemptService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def save_attempt(self, attempt: QuizAttempt) -> int:
        record = QuizAttemptRecord(
            user_id=attempt.user_id,
            slot_id=attempt.slot_id,
            format=attempt.format,
            brand=attempt.brand,
            questions_json=[q.dump() for q in attempt.questions],
            user_answers=list(attempt.user_answers),
            score=attempt.score,
            total_questions=attempt.total_questions,
            reviewed=attempt.reviewed,
            reason=attempt.reason,
        )
        self.db.add(record)
        await self.db.commit()
        await self.db.refresh(record)
        logger.info("Quiz attempt saved", user_id=attempt.user_id, attempt_id=record.id, score=attempt.score)
        return record.id

    async def get_recent_attempts(self, user_id: str, limit: Optional[int] = None) -> List[QuizAttemptRecord]:
        result = await self.db.execute(
            select(QuizAttemptRecord)
            .filter(QuizAttemptRecord.user_id == user_id)
            .order_by(QuizAttemptRecord.timestamp.desc(), QuizAttemptRecord.id.desc())
            .limit(limit or settings.RECENT_ATTEMPTS_LIMIT)
        )
        return list(result.scalars().all())

    async def get_recent_questions(self, user_id: str, limit: Optional[int] = None) -> List[str]:
        """Distinct question texts from the user's most recent attempts, newest first."""
        seen = []
        for attempt in await self.get_recent_attempts(user_id, limit):
            for q in attempt.questions_json or []:
                text = q.get("question") if isinstance(q, dict) else None
                if isinstance(text, str) and text not in seen:
                    seen.append(text)
        return seen

    async def mark_reviewed(self, attempt_id: int, user_id: str) -> bool:
        """Flip the reviewed flag. Returns False if it was already set or the attempt is not the user's."""
        result = await self.db.execute(
            update(QuizAttemptRecord)
            .where(
                QuizAttemptRecord.id == attempt_id,
                QuizAttemptRecord.user_id == user_id,
                QuizAttemptRecord.reviewed == False,
            )
            .values(reviewed=True)
        )
        await self.db.commit()
        flipped = result.rowcount > 0
        logger.info("Attempt review unlocked", attempt_id=attempt_id, user_id=user_id, flipped=flipped)
        return flipped

    async def get_attempt(self, attempt_id: int, user_id: str) -> Optional[QuizAttemptRecord]:
        result = await self.db.execute(
            select(QuizAttemptRecord)
            .filter(QuizAttemptRecord.id == attempt_id, QuizAttemptRecord.user_id == user_id)
        )
        return result.scalar_one_or_none()
