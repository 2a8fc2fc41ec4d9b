"""
Result summary renderers. The set is closed; `templated` is the default and
is used whenever the configured renderer fails.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from constants.messages import Messages
from core.logger import logger
from schemas.quiz import NO_BALL, QuestionRecord


@dataclass
class SummaryContext:
    brand: str
    format: str
    score: int
    total_questions: int
    questions: List[QuestionRecord] = field(default_factory=list)
    user_answers: List[Optional[str]] = field(default_factory=list)
    title: Optional[str] = None
    description: Optional[str] = None


def _is_correct(question: QuestionRecord, answer: Optional[str]) -> bool:
    return answer is not None and answer != NO_BALL and answer == question.correct_answer


class TemplatedSummaryRenderer:
    """Score, per-question correctness and brand/format, from local data only."""
    name = "templated"

    def render(self, ctx: SummaryContext) -> dict:
        rows = []
        for i, q in enumerate(ctx.questions):
            answer = ctx.user_answers[i] if i < len(ctx.user_answers) else None
            rows.append({
                "number": i + 1,
                "question": q.question,
                "yourAnswer": answer if answer is not None else Messages.get("NO_ANSWER"),
                "correctAnswer": q.correct_answer,
                "isCorrect": _is_correct(q, answer),
            })

        return {
            "renderer": self.name,
            "title": ctx.title or Messages.get("QUIZ_RESULTS_TITLE"),
            "description": ctx.description,
            "score": ctx.score,
            "totalQuestions": ctx.total_questions,
            "headline": f"Score: {ctx.score}/{ctx.total_questions}",
            "context": f"Brand: {ctx.brand} • Format: {ctx.format}",
            "questions": rows,
        }


class DetailedSummaryRenderer(TemplatedSummaryRenderer):
    """Templated summary plus explanations, accuracy and a verdict."""
    name = "detailed"

    def render(self, ctx: SummaryContext) -> dict:
        summary = super().render(ctx)
        for row, q in zip(summary["questions"], ctx.questions):
            row["explanation"] = q.explanation
            row["forfeited"] = row["yourAnswer"] == NO_BALL

        accuracy = round(100 * ctx.score / ctx.total_questions) if ctx.total_questions else 0
        summary["renderer"] = self.name
        summary["accuracy"] = accuracy
        summary["verdict"] = _verdict(accuracy)
        return summary


def _verdict(accuracy: int) -> str:
    if accuracy == 100:
        return "Century! A perfect innings."
    if accuracy >= 60:
        return "Well played, a solid half-century."
    if accuracy > 0:
        return "A few runs on the board. Keep practising."
    return "Out for a duck this time."


_RENDERERS: Dict[str, TemplatedSummaryRenderer] = {
    TemplatedSummaryRenderer.name: TemplatedSummaryRenderer(),
    DetailedSummaryRenderer.name: DetailedSummaryRenderer(),
}
DEFAULT_RENDERER = _RENDERERS[TemplatedSummaryRenderer.name]


def get_renderer(name: str) -> TemplatedSummaryRenderer:
    return _RENDERERS.get(name, DEFAULT_RENDERER)


def render_summary(ctx: SummaryContext, renderer_name: str) -> dict:
    renderer = get_renderer(renderer_name)
    try:
        return renderer.render(ctx)
    except Exception as e:
        if renderer is DEFAULT_RENDERER:
            raise
        logger.error("Summary renderer failed, using templated summary", renderer=renderer.name, error=str(e))
        return DEFAULT_RENDERER.render(ctx)
