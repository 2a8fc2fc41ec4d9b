"""
Quiz session orchestration.

A QuizSession drives one user's run through a quiz:

    loading -> playing -> answered -> (loading-next) -> playing -> ... -> completed

All timers go through a per-session TaskManager keyed by phase, so starting
a timer always supersedes the previous one of the same phase. After
teardown() every pending timer is cancelled and late callbacks are no-ops.
"""
import asyncio
import time
from datetime import datetime, timezone
from enum import Enum
from typing import Awaitable, Callable, List, Optional

from core.config import settings
from core.logger import logger
from schemas.ads import AdSlot, InterstitialAdConfig, slot_for_question_index
from schemas.quiz import NO_BALL, QuestionRecord, QuizAttempt, QuizPayload
from services.task_manager import TaskManager

FetchQuiz = Callable[[str, str], Awaitable[Optional[QuizPayload]]]
ResolveInterstitial = Callable[[AdSlot], Awaitable[Optional[InterstitialAdConfig]]]
SaveAttempt = Callable[[QuizAttempt], Awaitable[int]]
MarkReviewed = Callable[[int], Awaitable[bool]]

# Timer / task keys
PHASE_ANSWER = "answer-reveal"
PHASE_INTERSTITIAL = "interstitial"
TASK_PERSIST = "persist-attempt"
TASK_AFTER_QUIZ_AD = "after-quiz-ad"


class QuizState(str, Enum):
    LOADING = "loading"
    PLAYING = "playing"
    ANSWERED = "answered"
    LOADING_NEXT = "loading-next"
    COMPLETED = "completed"


class EmptyQuizError(Exception):
    """The quiz fetch returned no questions."""
    pass


class QuizSession:
    def __init__(
        self,
        brand: str,
        cricket_format: str,
        fetch_quiz: FetchQuiz,
        resolve_interstitial: ResolveInterstitial,
        user_id: Optional[str] = None,
        save_attempt: Optional[SaveAttempt] = None,
        mark_reviewed: Optional[MarkReviewed] = None,
        answer_delay_ms: Optional[int] = None,
    ):
        self.brand = brand
        self.format = cricket_format
        self.user_id = user_id
        self.answer_delay_ms = settings.ANSWER_REVEAL_DELAY_MS if answer_delay_ms is None else answer_delay_ms

        self._fetch_quiz = fetch_quiz
        self._resolve_interstitial = resolve_interstitial
        self._save_attempt = save_attempt
        self._mark_reviewed = mark_reviewed

        self.state = QuizState.LOADING
        self.quiz: Optional[QuizPayload] = None
        self.current_index = 0
        self.user_answers: List[Optional[str]] = []
        self.selected_option: Optional[str] = None
        self.score = 0
        self.degraded = False

        self.interstitial: Optional[InterstitialAdConfig] = None
        self.after_quiz_ad: Optional[InterstitialAdConfig] = None

        self.attempt: Optional[QuizAttempt] = None
        self.attempt_id: Optional[int] = None
        self.reviewed = False
        self._reason: Optional[str] = None

        self.last_activity = time.monotonic()
        self._alive = True
        self._ad_fetched_for_index: Optional[int] = None
        self._ad_fetch: Optional[asyncio.Future] = None
        self._timers = TaskManager(owner=f"session:{user_id}")
        self._changed = asyncio.Event()

    # ---------- Read-only views ----------

    @property
    def alive(self) -> bool:
        return self._alive

    @property
    def total_questions(self) -> int:
        return len(self.quiz.questions) if self.quiz else 0

    @property
    def current_question(self) -> Optional[QuestionRecord]:
        if not self.quiz or self.current_index >= self.total_questions:
            return None
        return self.quiz.questions[self.current_index]

    @property
    def summary_locked(self) -> bool:
        """The after-quiz ad gates the summary until it is finished."""
        return self.after_quiz_ad is not None

    # ---------- Lifecycle ----------

    async def start(self):
        """Fetch the quiz. Any failure degrades straight to a completed session."""
        if not self._alive or self.state != QuizState.LOADING:
            return

        try:
            quiz = await self._fetch_quiz(self.brand, self.format)
            if not quiz or not quiz.questions:
                raise EmptyQuizError("No questions")
        except Exception as e:
            logger.error("Quiz fetch failed, showing fallback summary", user_id=self.user_id,
                         brand=self.brand, format=self.format, error=str(e))
            if self._alive:
                self.degraded = True
                self._set_state(QuizState.COMPLETED)
            return

        if not self._alive:
            return

        self.quiz = quiz
        self.user_answers = [None] * len(quiz.questions)
        logger.info("Quiz session started", user_id=self.user_id, brand=self.brand,
                    format=self.format, questions=len(quiz.questions), source=quiz.source)
        self._set_state(QuizState.PLAYING)

    def teardown(self):
        """Cancel every timer and make all pending callbacks inert."""
        if not self._alive:
            return
        self._alive = False
        self._timers.cancel_all()
        if self._ad_fetch is not None and not self._ad_fetch.done():
            self._ad_fetch.cancel()
        self._notify()
        logger.info("Quiz session torn down", user_id=self.user_id, state=self.state.value)

    def touch(self):
        self.last_activity = time.monotonic()

    # ---------- User actions ----------

    def submit_answer(self, answer: str) -> bool:
        if not self._alive or self.state != QuizState.PLAYING or not self.quiz:
            return False

        self.touch()
        question = self.current_question
        self.selected_option = answer
        self.user_answers[self.current_index] = answer
        if answer != NO_BALL and answer == question.correct_answer:
            self.score += 1

        self._set_state(QuizState.ANSWERED)
        self._timers.schedule(PHASE_ANSWER, self.answer_delay_ms, self._proceed_after_answer)
        return True

    def no_ball(self) -> bool:
        return self.submit_answer(NO_BALL)

    def finish_interstitial(self) -> bool:
        """Playback UI reports the interstitial as finished (or skipped)."""
        if not self._alive or self.state != QuizState.LOADING_NEXT:
            return False
        self.touch()
        self._continue_to_next_question()
        return True

    def finish_after_quiz_ad(self) -> bool:
        if not self._alive or self.after_quiz_ad is None:
            return False
        self.touch()
        self.after_quiz_ad = None
        self._notify()
        return True

    def disqualify(self, reason: str) -> bool:
        """End a running attempt early, keeping unanswered questions empty."""
        if not self._alive or self.state in (QuizState.LOADING, QuizState.COMPLETED):
            return False
        logger.warning("Quiz attempt disqualified", user_id=self.user_id, reason=reason, index=self.current_index)
        self._reason = reason
        self._complete()
        return True

    async def unlock_review(self) -> bool:
        """Flip the attempt's reviewed flag once the after-quiz ad has been watched. Disqualified attempts stay locked."""
        if not self._alive or self.state != QuizState.COMPLETED or self.attempt is None or self.reviewed:
            return False
        if self._reason:
            logger.info("Review refused for disqualified attempt", user_id=self.user_id, reason=self._reason)
            return False

        await self._settle(TASK_AFTER_QUIZ_AD)
        if not self._alive or self.summary_locked:
            return False

        await self._settle(TASK_PERSIST)
        if not self._alive or self.attempt_id is None or self._mark_reviewed is None:
            return False

        flipped = await self._mark_reviewed(self.attempt_id)
        if flipped and self._alive:
            self.reviewed = True
            self.attempt.reviewed = True
            self._notify()
        return flipped

    # ---------- Waiting ----------

    async def wait_for_state(self, *states: QuizState) -> QuizState:
        while self._alive and self.state not in states:
            await self._changed.wait()
        return self.state

    async def wait_for_change(self):
        await self._changed.wait()

    # ---------- Transitions ----------

    async def request_interstitial(self, target_index: int) -> Optional[InterstitialAdConfig]:
        """
        Interstitial to show before arriving at target_index. One lookup per index:
        repeated calls share the first lookup and its result.
        """
        slot = slot_for_question_index(target_index)
        if slot is None:
            return None

        if self._ad_fetched_for_index != target_index or self._ad_fetch is None:
            # Guard is set before the first await so re-entrant calls reuse this lookup
            self._ad_fetched_for_index = target_index
            self._ad_fetch = asyncio.ensure_future(self._lookup_interstitial(slot))

        return await asyncio.shield(self._ad_fetch)

    async def _lookup_interstitial(self, slot: AdSlot) -> Optional[InterstitialAdConfig]:
        try:
            return await self._resolve_interstitial(slot)
        except Exception as e:
            logger.warning("Interstitial lookup failed, skipping ad", user_id=self.user_id, slot=slot.value, error=str(e))
            return None

    async def _proceed_after_answer(self):
        if not self._alive or self.state != QuizState.ANSWERED:
            return

        next_index = self.current_index + 1
        if next_index < self.total_questions and slot_for_question_index(next_index) is not None:
            config = await self.request_interstitial(next_index)
            if not self._alive or self.state != QuizState.ANSWERED:
                return
            if config:
                self.interstitial = config
                self._set_state(QuizState.LOADING_NEXT)
                self._timers.schedule(PHASE_INTERSTITIAL, config.duration_ms, self._continue_to_next_question)
                return

        self._continue_to_next_question()

    def _continue_to_next_question(self):
        if not self._alive or self.state not in (QuizState.ANSWERED, QuizState.LOADING_NEXT):
            return

        self._timers.cancel_task(PHASE_INTERSTITIAL)
        self._timers.cancel_task(PHASE_ANSWER)
        self.interstitial = None

        next_index = self.current_index + 1
        if next_index < self.total_questions:
            self.current_index = next_index
            self.selected_option = None
            self._set_state(QuizState.PLAYING)
        else:
            self._complete()

    def _complete(self):
        if self.state == QuizState.COMPLETED:
            return

        self._timers.cancel_task(PHASE_ANSWER)
        self._timers.cancel_task(PHASE_INTERSTITIAL)
        self.interstitial = None
        self.attempt = self._finalize_attempt()
        self._set_state(QuizState.COMPLETED)
        logger.info("Quiz completed", user_id=self.user_id, score=self.score,
                    total=self.total_questions, reason=self._reason)

        if self._save_attempt is not None and self.user_id:
            self._timers.spawn(TASK_PERSIST, self._persist_attempt())
        if self.user_id:
            self._timers.spawn(TASK_AFTER_QUIZ_AD, self._fetch_after_quiz_ad())

    def _finalize_attempt(self) -> QuizAttempt:
        return QuizAttempt(
            slot_id=self.quiz.slot_id if self.quiz else None,
            user_id=self.user_id,
            format=self.format,
            brand=self.brand,
            questions=list(self.quiz.questions) if self.quiz else [],
            user_answers=list(self.user_answers),
            score=self.score,
            total_questions=self.total_questions,
            timestamp=datetime.now(timezone.utc),
            reviewed=False,
            reason=self._reason,
        )

    async def _persist_attempt(self):
        try:
            self.attempt_id = await self._save_attempt(self.attempt)
        except Exception as e:
            logger.error("Failed to persist quiz attempt", user_id=self.user_id, error=str(e))

    async def _fetch_after_quiz_ad(self):
        try:
            ad = await self._resolve_interstitial(AdSlot.AFTER_QUIZ)
        except Exception as e:
            logger.warning("After-quiz ad lookup failed", user_id=self.user_id, error=str(e))
            return
        if ad and self._alive:
            self.after_quiz_ad = ad
            self._notify()

    async def _settle(self, key: str):
        task = self._timers.get(key)
        if task is not None and not task.done():
            await asyncio.shield(task)

    def _set_state(self, state: QuizState):
        self.state = state
        self._notify()

    def _notify(self):
        changed, self._changed = self._changed, asyncio.Event()
        changed.set()
