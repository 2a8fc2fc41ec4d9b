import time
from typing import List, Optional

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from constants.fallback import FALLBACK_QUESTIONS, FALLBACK_QUIZ_DESCRIPTION, FALLBACK_QUIZ_TITLE
from core.logger import logger
from models.generation_log import AIGenerationLog
from models.quiz_slot import QuizSlot
from schemas.quiz import QuestionRecord, QuizData, QuizPayload
from services.ai_service import AIService, QuizGenerationError
from services.attempt_service import AttemptService


def fallback_quiz(cricket_format: str) -> QuizPayload:
    return QuizPayload(
        questions=[QuestionRecord.model_validate(q) for q in FALLBACK_QUESTIONS],
        title=FALLBACK_QUIZ_TITLE.format(format=cricket_format),
        description=FALLBACK_QUIZ_DESCRIPTION,
        source="fallback",
    )


class QuizService:
    def __init__(self, db: AsyncSession, ai: Optional[AIService] = None):
        self.db = db
        self.ai = ai or AIService()

    async def get_live_slot(self, cricket_format: str) -> Optional[QuizSlot]:
        result = await self.db.execute(
            select(QuizSlot)
            .filter(QuizSlot.format == cricket_format, QuizSlot.status == "live")
            .order_by(QuizSlot.id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def generate_quiz(self, cricket_format: str, user_id: str) -> List[QuestionRecord]:
        """Generate a fresh quiz that avoids the user's recently seen questions."""
        try:
            seen_questions = await AttemptService(self.db).get_recent_questions(user_id)
        except SQLAlchemyError as e:
            logger.warning("Recent questions lookup failed", user_id=user_id, error=str(e))
            seen_questions = []

        return await self.ai.generate_quiz(cricket_format, seen_questions)

    async def load_quiz(self, brand: str, cricket_format: str, user_id: str) -> QuizPayload:
        """Live slot questions, else a generated quiz, else the static fallback set."""
        slot = await self.get_live_slot(cricket_format)
        if slot and slot.questions_json:
            try:
                quiz = QuizData.model_validate({"questions": slot.questions_json})
                questions = quiz.questions[:slot.questions_per_user or len(quiz.questions)]
                logger.info("Serving slot quiz", slot_id=slot.id, format=cricket_format, brand=brand)
                return QuizPayload(
                    questions=questions,
                    title=slot.title,
                    description=slot.description,
                    slot_id=slot.id,
                    source="slot",
                )
            except ValidationError as e:
                logger.error("Slot questions failed validation", slot_id=slot.id, errors=e.error_count())

        slot_id = slot.id if slot else None
        started = time.monotonic()
        try:
            questions = await self.generate_quiz(cricket_format, user_id)
        except QuizGenerationError as e:
            duration_ms = int((time.monotonic() - started) * 1000)
            logger.error("Quiz generation failed, serving fallback", format=cricket_format, user_id=user_id, error=str(e))
            await self._log_generation(slot_id, cricket_format, "fallback", duration_ms, str(e))
            payload = fallback_quiz(cricket_format)
            payload.slot_id = slot_id
            return payload

        duration_ms = int((time.monotonic() - started) * 1000)
        await self._log_generation(slot_id, cricket_format, "success", duration_ms)
        return QuizPayload(
            questions=questions,
            title=f"{cricket_format} Quiz",
            slot_id=slot_id,
            source="ai",
        )

    async def _log_generation(self, slot_id: Optional[int], cricket_format: str, status: str,
                              duration_ms: int, error: Optional[str] = None):
        try:
            self.db.add(AIGenerationLog(
                slot_id=slot_id,
                format=cricket_format,
                status=status,
                duration_ms=duration_ms,
                error_message=error,
            ))
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.warning("Failed to record generation status", error=str(e))
