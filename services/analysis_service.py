from typing import Any, List, Optional

from pydantic import ValidationError

from core.logger import logger
from schemas.analysis import AnalysisInput, AnalysisResult, AttemptIn, NormalizedQuestion
from schemas.quiz import NO_BALL
from services.ai_service import AIService


def fallback_analysis(attempt: Any) -> AnalysisResult:
    """Deterministic feedback built only from the attempt itself."""
    attempt = attempt if isinstance(attempt, dict) else {}
    cricket_format = attempt.get("format") or "cricket"
    score = attempt.get("score")
    total = attempt.get("totalQuestions")
    score = "a good" if score is None else score
    total = "your" if total is None else total

    return AnalysisResult(
        summary=(
            f"A solid effort on the {cricket_format} quiz! You scored {score} out of {total}. "
            "We're showing general feedback as the AI coach is unavailable."
        ),
        strengths=["Consistency in completing quizzes.", "Willingness to learn and improve."],
        weaknesses=["Potential gaps in specific eras or player stats.", "Time management on difficult questions."],
        recommendations=[
            "Review questions you were unsure about.",
            "Focus on one cricket format to build deep knowledge.",
            "Try to answer questions you're confident about more quickly.",
        ],
        source="fallback",
    )


def normalize_attempt(attempt: AttemptIn) -> AnalysisInput:
    """Merge questions with the index-aligned answers into the canonical per-question list."""
    questions: List[NormalizedQuestion] = []
    for idx, q in enumerate(attempt.questions):
        user_answer = attempt.user_answers[idx] if idx < len(attempt.user_answers) else None
        user_answer = user_answer or ""
        is_correct = user_answer != "" and user_answer != NO_BALL and user_answer == q.correct_answer
        questions.append(NormalizedQuestion(
            question=q.question,
            correct_answer=q.correct_answer,
            user_answer=user_answer,
            is_correct=is_correct,
        ))

    score = attempt.score
    if score is None:
        score = sum(1 for q in questions if q.is_correct)

    return AnalysisInput(
        user_id=attempt.user_id,
        format=attempt.format or "cricket",
        score=score,
        total_questions=attempt.total_questions if attempt.total_questions is not None else len(questions),
        questions=questions,
    )


class AnalysisService:
    def __init__(self, ai: Optional[AIService] = None):
        self.ai = ai or AIService()

    async def analyze(self, attempt: Any, request_id: Optional[str] = None) -> AnalysisResult:
        """AI performance summary; any failure yields the templated fallback instead of an error."""
        user_id = attempt.get("userId") if isinstance(attempt, dict) else None
        try:
            analysis_input = normalize_attempt(AttemptIn.model_validate(attempt))
            raw = await self.ai.generate_analysis(analysis_input)
            if isinstance(raw, dict):
                raw = {**raw, "source": "ai"}
            result = AnalysisResult.model_validate(raw)
            logger.info("Analysis generated", request_id=request_id, source=result.source, user_id=user_id)
            return result
        except ValidationError as e:
            logger.error("Analysis failed validation", request_id=request_id, user_id=user_id, errors=e.error_count())
        except Exception as e:
            logger.error("Analysis AI exception", request_id=request_id, user_id=user_id, error=str(e))

        logger.warning("Serving fallback analysis", request_id=request_id, user_id=user_id)
        return fallback_analysis(attempt)
