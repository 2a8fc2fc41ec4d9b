"""Client payloads for each quiz session state. Views only read session state."""
from typing import Optional

from core.config import settings
from schemas.quiz import NO_BALL
from services.session_service import QuizSession, QuizState
from services.summary import SummaryContext, render_summary


def summary_context(session: QuizSession) -> SummaryContext:
    quiz = session.quiz
    return SummaryContext(
        brand=session.brand,
        format=session.format,
        score=session.score,
        total_questions=session.total_questions,
        questions=list(quiz.questions) if quiz else [],
        user_answers=list(session.user_answers),
        title=quiz.title if quiz else None,
        description=quiz.description if quiz else None,
    )


def _question_view(session: QuizSession, reveal: bool) -> Optional[dict]:
    question = session.current_question
    if question is None:
        return None
    view = {
        "id": question.id,
        "question": question.question,
        "options": list(question.options),
    }
    if reveal:
        answer = session.selected_option
        view["selected"] = answer
        view["correctAnswer"] = question.correct_answer
        view["explanation"] = question.explanation
        view["isCorrect"] = answer is not None and answer != NO_BALL and answer == question.correct_answer
    return view


def render_session(session: QuizSession, renderer_name: Optional[str] = None) -> dict:
    state = session.state
    view = {
        "state": state.value,
        "brand": session.brand,
        "format": session.format,
        "score": session.score,
        "questionNumber": session.current_index + 1,
        "totalQuestions": session.total_questions,
    }

    if state == QuizState.LOADING:
        return view

    if state in (QuizState.PLAYING, QuizState.ANSWERED):
        view["question"] = _question_view(session, reveal=state == QuizState.ANSWERED)
        view["quizSource"] = session.quiz.source if session.quiz else None
        return view

    if state == QuizState.LOADING_NEXT:
        view["interstitial"] = session.interstitial.dump() if session.interstitial else None
        return view

    # completed
    view["degraded"] = session.degraded
    view["reviewed"] = session.reviewed
    view["afterQuizAd"] = session.after_quiz_ad.dump() if session.after_quiz_ad else None
    view["summaryLocked"] = session.summary_locked
    view["summary"] = render_summary(summary_context(session), renderer_name or settings.SUMMARY_RENDERER)
    return view
