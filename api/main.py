import asyncio
from contextlib import asynccontextmanager
from typing import List, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import Field, TypeAdapter
from sqlalchemy.ext.asyncio import AsyncSession

from constants.messages import Messages
from core.config import settings
from core.logger import bind_request_id, logger, setup_logging
from core.security import AuthError, IdentityProvider, Principal, authenticate_bearer, get_identity_provider
from db.session import close_connections, get_db, get_redis
from schemas.ads import AdSlot
from schemas.base import CamelModel
from schemas.submissions import ContributionInput, ReportInput
from services.ad_service import AdService
from services.ai_service import AIService
from services.analysis_service import AnalysisService, fallback_analysis
from services.attempt_service import AttemptService
from services.facts_service import FactsService
from services.monitoring_service import monitor_sessions
from services.quiz_service import QuizService
from services.report_service import ReportService
from services.session_registry import SessionRegistry, registry
from services.session_service import QuizSession
from api.views import render_session

API_DESCRIPTION = """
## IndCric Trivia API

Backend for the cricket trivia quiz: quiz fetch, server-driven quiz sessions
with sponsored interstitials, post-quiz AI analysis, facts, reports and
contributions.

### Authentication

User endpoints take `Authorization: Bearer <token>` where the token is
`{user_id}:{timestamp}:{signature}` signed with the shared secret.

### Rate Limits

- Reports and contributions: `SUBMISSION_RATE_LIMIT` per user per minute.
"""

TAGS_METADATA = [
    {"name": "quiz", "description": "Quiz fetch and server-driven quiz sessions."},
    {"name": "analysis", "description": "Post-quiz performance analysis."},
    {"name": "community", "description": "Facts, question reports and contributions."},
    {"name": "info", "description": "Health and public information."},
]

_contribution_adapter = TypeAdapter(ContributionInput)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    scheduler = AsyncIOScheduler()
    scheduler.add_job(
        monitor_sessions,
        trigger="interval",
        seconds=settings.SESSION_SWEEP_INTERVAL_SECONDS,
        args=[registry],
        id="session_monitor",
        replace_existing=True,
    )
    scheduler.start()
    logger.info("Scheduler started (Session Monitor).", env=settings.ENV)
    try:
        yield
    finally:
        scheduler.shutdown(wait=False)
        registry.shutdown()
        await close_connections()
        logger.info("Application stopped.")


app = FastAPI(
    title=f"{settings.APP_NAME} API",
    description=API_DESCRIPTION,
    version="1.0.0",
    openapi_tags=TAGS_METADATA,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    request_id = bind_request_id(request.headers.get("X-Request-ID"))
    request.state.request_id = request_id
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# === Request bodies ===

class SessionStart(CamelModel):
    brand: str = Field(..., min_length=1, description="Sponsor brand shown during the quiz")
    format: str = Field(..., min_length=1, description="Cricket format, e.g. T20 or ODI")


class AnswerIn(CamelModel):
    answer: str = Field(..., min_length=1)


class DisqualifyIn(CamelModel):
    reason: str = Field(..., min_length=1, max_length=200)


# === Dependencies ===

def get_current_user(
    authorization: Optional[str] = Header(None),
    provider: IdentityProvider = Depends(get_identity_provider),
) -> Principal:
    try:
        return authenticate_bearer(provider, authorization)
    except AuthError as e:
        logger.warning("Auth failed", reason=str(e))
        raise HTTPException(status_code=401, detail=Messages.get("UNAUTHORIZED"))


def get_registry() -> SessionRegistry:
    return registry


def get_ai_service() -> AIService:
    return AIService()


def get_analysis_service(ai: AIService = Depends(get_ai_service)) -> AnalysisService:
    return AnalysisService(ai)


def get_facts_service(ai: AIService = Depends(get_ai_service)) -> FactsService:
    return FactsService(ai)


async def get_current_session(
    user: Principal = Depends(get_current_user),
    sessions: SessionRegistry = Depends(get_registry),
) -> QuizSession:
    session = sessions.get(user.user_id)
    if session is None:
        raise HTTPException(status_code=404, detail=Messages.get("NO_ACTIVE_SESSION"))
    session.touch()
    return session


async def enforce_rate_limit(redis, scope: str, user_id: str):
    """Fixed one-minute window per user and scope."""
    rate_key = f"rl:{scope}:{user_id}"
    current_count = await redis.get(rate_key)
    if current_count and int(current_count) >= settings.SUBMISSION_RATE_LIMIT:
        logger.warning("Rate limit hit", scope=scope, user_id=user_id)
        raise HTTPException(status_code=429, detail=Messages.get("RATE_LIMITED"))

    await redis.incr(rate_key)
    if not current_count:
        await redis.expire(rate_key, 60)


def _rejected(session: QuizSession, action: str):
    logger.info("Session action rejected", action=action, state=session.state.value, user_id=session.user_id)
    raise HTTPException(status_code=409, detail=f"Cannot {action} while quiz is {session.state.value}")


# === Quiz ===

@app.get("/api/quiz", tags=["quiz"], summary="Fetch a quiz for a brand and format")
async def get_quiz(
    brand: str = Query(..., min_length=1),
    cricket_format: str = Query(..., alias="format", min_length=1),
    user: Principal = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    ai: AIService = Depends(get_ai_service),
):
    """Live slot questions, then a fresh AI quiz, then the static fallback quiz."""
    quiz = await QuizService(db, ai=ai).load_quiz(brand, cricket_format, user.user_id)
    return quiz.dump()


@app.get("/api/attempts", tags=["quiz"], summary="Recent attempts of the caller")
async def list_attempts(
    limit: int = Query(settings.RECENT_ATTEMPTS_LIMIT, ge=1, le=50),
    user: Principal = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> List[dict]:
    attempts = await AttemptService(db).get_recent_attempts(user.user_id, limit)
    return [{
        "id": a.id,
        "slotId": a.slot_id,
        "format": a.format,
        "brand": a.brand,
        "questions": a.questions_json,
        "userAnswers": a.user_answers,
        "score": a.score,
        "totalQuestions": a.total_questions,
        "reviewed": a.reviewed,
        "reason": a.reason,
        "timestamp": a.timestamp.isoformat() if a.timestamp else None,
    } for a in attempts]


@app.post("/api/attempts/{attempt_id}/review", tags=["quiz"], summary="Unlock the review of a past attempt")
async def review_attempt(
    attempt_id: int,
    user: Principal = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Unlocks the answer review of one of the caller's attempts from history.
    The first unlock returns the after-quiz ad the client plays before showing the review.
    """
    service = AttemptService(db)
    attempt = await service.get_attempt(attempt_id, user.user_id)
    if attempt is None:
        raise HTTPException(status_code=404, detail=Messages.get("ATTEMPT_NOT_FOUND"))
    if attempt.reason:
        logger.info("Review refused for disqualified attempt", attempt_id=attempt_id, user_id=user.user_id)
        raise HTTPException(status_code=409, detail=Messages.get("REVIEW_DISQUALIFIED"))

    ad = None
    if not attempt.reviewed:
        ad = await AdService(db).resolve_interstitial(AdSlot.AFTER_QUIZ)
        await service.mark_reviewed(attempt_id, user.user_id)

    return {"attemptId": attempt_id, "reviewed": True, "afterQuizAd": ad.dump() if ad else None}


# === Sessions ===

@app.post("/api/sessions", tags=["quiz"], summary="Start a quiz session")
async def start_session(
    body: SessionStart,
    user: Principal = Depends(get_current_user),
    sessions: SessionRegistry = Depends(get_registry),
):
    session = await sessions.start(user.user_id, body.brand, body.format)
    return render_session(session)


@app.get("/api/sessions/current", tags=["quiz"], summary="Current session state")
async def current_session(
    wait: float = Query(0, ge=0, le=30, description="Long-poll up to this many seconds for a state change"),
    session: QuizSession = Depends(get_current_session),
):
    if wait > 0:
        try:
            await asyncio.wait_for(session.wait_for_change(), timeout=wait)
        except asyncio.TimeoutError:
            pass
    return render_session(session)


@app.post("/api/sessions/current/answer", tags=["quiz"])
async def submit_answer(body: AnswerIn, session: QuizSession = Depends(get_current_session)):
    if not session.submit_answer(body.answer):
        _rejected(session, "answer")
    return render_session(session)


@app.post("/api/sessions/current/no-ball", tags=["quiz"])
async def no_ball(session: QuizSession = Depends(get_current_session)):
    if not session.no_ball():
        _rejected(session, "forfeit")
    return render_session(session)


@app.post("/api/sessions/current/interstitial/finished", tags=["quiz"])
async def interstitial_finished(session: QuizSession = Depends(get_current_session)):
    if not session.finish_interstitial():
        _rejected(session, "finish interstitial")
    return render_session(session)


@app.post("/api/sessions/current/after-quiz-ad/finished", tags=["quiz"])
async def after_quiz_ad_finished(session: QuizSession = Depends(get_current_session)):
    if not session.finish_after_quiz_ad():
        _rejected(session, "finish after-quiz ad")
    return render_session(session)


@app.post("/api/sessions/current/review", tags=["quiz"], summary="Unlock the answer review")
async def unlock_review(session: QuizSession = Depends(get_current_session)):
    if not await session.unlock_review():
        _rejected(session, "unlock review")
    return render_session(session)


@app.post("/api/sessions/current/disqualify", tags=["quiz"])
async def disqualify(body: DisqualifyIn, session: QuizSession = Depends(get_current_session)):
    if not session.disqualify(body.reason):
        _rejected(session, "disqualify")
    return render_session(session)


@app.delete("/api/sessions/current", tags=["quiz"], summary="End the current session")
async def end_session(
    user: Principal = Depends(get_current_user),
    sessions: SessionRegistry = Depends(get_registry),
):
    if not sessions.end(user.user_id):
        raise HTTPException(status_code=404, detail=Messages.get("NO_ACTIVE_SESSION"))
    return {"status": "success"}


# === Analysis ===

@app.post("/api/analysis", tags=["analysis"], summary="AI performance analysis of an attempt")
async def analyze_attempt(request: Request, service: AnalysisService = Depends(get_analysis_service)):
    request_id = request.state.request_id
    try:
        body = await request.json()
    except ValueError:
        logger.warning("Analysis body is not valid JSON")
        return JSONResponse(
            status_code=400,
            content={"ok": False, "error": Messages.get("INVALID_BODY"), "requestId": request_id},
        )

    if not isinstance(body, dict) or not body.get("attempt"):
        logger.warning("Analysis request without attempt")
        return JSONResponse(
            status_code=400,
            content={"ok": False, "analysis": fallback_analysis({}).dump(), "requestId": request_id},
        )

    analysis = await service.analyze(body["attempt"], request_id=request_id)
    content = {"ok": True, "analysis": analysis.dump(), "requestId": request_id}
    if analysis.source == "fallback":
        content["fallback"] = True
    return content


# === Community ===

@app.get("/api/facts", tags=["community"], summary="Cricket facts for the loading screen")
async def get_facts(
    cricket_format: Optional[str] = Query(None, alias="format"),
    service: FactsService = Depends(get_facts_service),
):
    facts = await service.generate_facts(context=cricket_format)
    return {"facts": facts}


@app.post("/api/reports", tags=["community"], summary="Report a problem with a question")
async def submit_report(
    request: Request,
    user: Principal = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis),
):
    try:
        body = await request.json()
        report = ReportInput.model_validate({**body, "userId": user.user_id})
    except (ValueError, TypeError) as e:
        logger.warning("Invalid report body", user_id=user.user_id, error=str(e))
        return JSONResponse(status_code=400, content={"success": False, "message": Messages.get("INVALID_BODY")})

    await enforce_rate_limit(redis, "report", user.user_id)
    result = await ReportService(db).submit_report(report)
    return result.model_dump(by_alias=True, exclude_none=True)


@app.post("/api/contributions", tags=["community"], summary="Contribute a fact or a question")
async def submit_contribution(
    request: Request,
    user: Principal = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis),
):
    try:
        body = await request.json()
        contribution = _contribution_adapter.validate_python({**body, "userId": user.user_id})
    except (ValueError, TypeError) as e:
        logger.warning("Invalid contribution body", user_id=user.user_id, error=str(e))
        return JSONResponse(status_code=400, content={"success": False, "message": Messages.get("INVALID_BODY")})

    await enforce_rate_limit(redis, "contribution", user.user_id)
    result = await ReportService(db).submit_contribution(contribution)
    return result.dump()


# === Info ===

@app.get("/health", tags=["info"])
async def health(sessions: SessionRegistry = Depends(get_registry)):
    return {"status": "ok", "env": settings.ENV, "activeSessions": len(sessions)}


@app.get("/favicon.ico", include_in_schema=False)
async def favicon():
    return Response(status_code=204)
