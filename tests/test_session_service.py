import asyncio
from unittest.mock import AsyncMock

import pytest

from conftest import make_question
from schemas.ads import AdSlot, InterstitialAdConfig
from schemas.quiz import NO_BALL, QuizPayload
from services.session_service import QuizSession, QuizState

SETTLED = (QuizState.PLAYING, QuizState.LOADING_NEXT, QuizState.COMPLETED)


def make_ad(duration_ms: int = 10000) -> InterstitialAdConfig:
    return InterstitialAdConfig(
        kind="static",
        media_url="https://cdn.example.com/banner.png",
        duration_ms=duration_ms,
        skippable_after_ms=5000,
        sponsor_label="Acme Bats",
    )


def make_session(quiz, resolver=None, **kwargs) -> QuizSession:
    fetch = quiz if callable(quiz) else AsyncMock(return_value=quiz)
    kwargs.setdefault("answer_delay_ms", 0)
    return QuizSession(
        brand="Acme",
        cricket_format="T20",
        fetch_quiz=fetch,
        resolve_interstitial=resolver or AsyncMock(return_value=None),
        **kwargs,
    )


async def wait_for(session, *states):
    return await asyncio.wait_for(session.wait_for_state(*states), timeout=2)


async def answer(session, value):
    assert session.submit_answer(value)
    assert session.state == QuizState.ANSWERED
    return await wait_for(session, *SETTLED)


@pytest.mark.asyncio
async def test_full_run_scores_correct_answers_and_requests_each_slot_once(sample_quiz):
    resolver = AsyncMock(return_value=None)
    session = make_session(sample_quiz, resolver)
    await session.start()
    assert session.state == QuizState.PLAYING

    for value in ["A", "B", "A", "A", "B"]:
        await answer(session, value)

    assert session.state == QuizState.COMPLETED
    assert session.score == 3
    assert session.attempt.score == 3
    assert session.attempt.compute_score() == 3
    assert session.attempt.user_answers == ["A", "B", "A", "A", "B"]
    slots = [call.args[0] for call in resolver.await_args_list]
    assert slots == [AdSlot.Q1_Q2, AdSlot.Q2_Q3, AdSlot.Q3_Q4, AdSlot.Q4_Q5]
    session.teardown()


@pytest.mark.asyncio
async def test_no_ball_never_scores():
    questions = [make_question(1, correct="A"), make_question(2, correct="A")]
    # Even an option spelled like the forfeit sentinel does not count
    questions[1] = questions[1].model_copy(update={"options": ["A", "B", "C", NO_BALL], "correct_answer": NO_BALL})
    session = make_session(QuizPayload(questions=questions))
    await session.start()

    assert session.no_ball()
    await wait_for(session, *SETTLED)
    await answer(session, NO_BALL)

    assert session.state == QuizState.COMPLETED
    assert session.score == 0
    assert session.user_answers == [NO_BALL, NO_BALL]
    session.teardown()


@pytest.mark.asyncio
async def test_answer_rejected_outside_playing(sample_quiz):
    session = make_session(sample_quiz)
    assert not session.submit_answer("A")  # still loading

    await session.start()
    assert session.submit_answer("A")
    assert not session.submit_answer("B")
    assert session.user_answers[0] == "A"
    session.teardown()


@pytest.mark.asyncio
async def test_interstitial_lookup_is_idempotent_per_index(sample_quiz):
    release = asyncio.Event()
    ad = make_ad()

    async def slow_resolver(slot):
        await release.wait()
        return ad

    resolver = AsyncMock(side_effect=slow_resolver)
    session = make_session(sample_quiz, resolver)
    await session.start()

    pending = asyncio.gather(session.request_interstitial(1), session.request_interstitial(1))
    await asyncio.sleep(0)
    release.set()
    first, second = await pending

    assert first is ad and second is ad
    assert await session.request_interstitial(1) is ad
    assert resolver.await_count == 1
    session.teardown()


@pytest.mark.asyncio
async def test_no_interstitial_before_first_question_or_past_the_end(sample_quiz):
    resolver = AsyncMock(return_value=make_ad())
    session = make_session(sample_quiz, resolver)

    assert await session.request_interstitial(0) is None
    assert await session.request_interstitial(5) is None
    resolver.assert_not_awaited()


@pytest.mark.asyncio
async def test_interstitial_shown_then_auto_advances(sample_quiz):
    resolver = AsyncMock(side_effect=lambda slot: make_ad(duration_ms=20) if slot == AdSlot.Q1_Q2 else None)
    session = make_session(sample_quiz, resolver)
    await session.start()

    assert await answer(session, "A") == QuizState.LOADING_NEXT
    assert session.interstitial.sponsor_label == "Acme Bats"
    assert session.current_index == 0

    await wait_for(session, QuizState.PLAYING)
    assert session.current_index == 1
    assert session.interstitial is None
    session.teardown()


@pytest.mark.asyncio
async def test_finish_interstitial_advances_immediately(sample_quiz):
    session = make_session(sample_quiz, AsyncMock(return_value=make_ad(duration_ms=60000)))
    await session.start()

    assert await answer(session, "A") == QuizState.LOADING_NEXT
    assert session.finish_interstitial()
    assert session.state == QuizState.PLAYING
    assert session.current_index == 1
    assert not session.finish_interstitial()
    session.teardown()


@pytest.mark.asyncio
async def test_ad_failure_on_q3_q4_still_reaches_fourth_question(sample_quiz):
    async def resolver(slot):
        if slot == AdSlot.Q3_Q4:
            raise RuntimeError("ad store down")
        return None

    session = make_session(sample_quiz, AsyncMock(side_effect=resolver))
    await session.start()
    for value in ["A", "A", "A"]:
        await answer(session, value)

    assert session.state == QuizState.PLAYING
    assert session.current_index == 3
    session.teardown()


@pytest.mark.asyncio
async def test_empty_quiz_completes_degraded():
    session = make_session(QuizPayload(questions=[]))
    await session.start()

    assert session.state == QuizState.COMPLETED
    assert session.degraded
    assert session.attempt is None
    assert session.total_questions == 0


@pytest.mark.asyncio
async def test_fetch_failure_completes_degraded():
    session = make_session(AsyncMock(side_effect=RuntimeError("network down")))
    await session.start()

    assert session.state == QuizState.COMPLETED
    assert session.degraded


@pytest.mark.asyncio
async def test_teardown_mid_interstitial_leaves_state_untouched(sample_quiz):
    session = make_session(sample_quiz, AsyncMock(return_value=make_ad(duration_ms=20)))
    await session.start()
    assert await answer(session, "A") == QuizState.LOADING_NEXT

    session.teardown()
    await asyncio.sleep(0.1)

    assert not session.alive
    assert session.state == QuizState.LOADING_NEXT
    assert session.current_index == 0
    assert not session.finish_interstitial()
    assert not session.submit_answer("A")


@pytest.mark.asyncio
async def test_teardown_while_answer_pending(sample_quiz):
    resolver = AsyncMock(return_value=None)
    session = make_session(sample_quiz, resolver, answer_delay_ms=50)
    await session.start()
    assert session.submit_answer("A")

    session.teardown()
    await asyncio.sleep(0.1)

    assert session.state == QuizState.ANSWERED
    resolver.assert_not_awaited()


@pytest.mark.asyncio
async def test_completion_persists_once_and_gates_review_on_after_quiz_ad():
    quiz = QuizPayload(questions=[make_question(1)], slot_id=7)
    resolver = AsyncMock(side_effect=lambda slot: make_ad() if slot == AdSlot.AFTER_QUIZ else None)
    save_attempt = AsyncMock(return_value=42)
    mark_reviewed = AsyncMock(return_value=True)
    session = make_session(quiz, resolver, user_id="u1", save_attempt=save_attempt, mark_reviewed=mark_reviewed)
    await session.start()

    await answer(session, "A")
    assert session.state == QuizState.COMPLETED

    # The after-quiz ad arrives and locks the summary
    assert not await session.unlock_review()
    assert session.summary_locked
    mark_reviewed.assert_not_awaited()

    assert session.finish_after_quiz_ad()
    assert not session.summary_locked
    assert await session.unlock_review()
    assert session.reviewed
    assert session.attempt.reviewed

    assert not await session.unlock_review()
    save_attempt.assert_awaited_once()
    mark_reviewed.assert_awaited_once_with(42)
    saved = save_attempt.await_args.args[0]
    assert saved.slot_id == 7
    assert saved.user_id == "u1"
    assert saved.score == 1
    session.teardown()


@pytest.mark.asyncio
async def test_review_unlocks_without_after_quiz_ad():
    save_attempt = AsyncMock(return_value=3)
    mark_reviewed = AsyncMock(return_value=True)
    session = make_session(QuizPayload(questions=[make_question(1)]), user_id="u1",
                           save_attempt=save_attempt, mark_reviewed=mark_reviewed)
    await session.start()
    await answer(session, "B")

    assert await session.unlock_review()
    assert session.after_quiz_ad is None
    mark_reviewed.assert_awaited_once_with(3)
    session.teardown()


@pytest.mark.asyncio
async def test_anonymous_session_skips_persistence_and_after_quiz_ad():
    resolver = AsyncMock(return_value=None)
    save_attempt = AsyncMock(return_value=1)
    session = make_session(QuizPayload(questions=[make_question(1)]), resolver, save_attempt=save_attempt)
    await session.start()
    await answer(session, "A")
    await asyncio.sleep(0.01)

    save_attempt.assert_not_awaited()
    resolver.assert_not_awaited()
    assert not await session.unlock_review()


@pytest.mark.asyncio
async def test_disqualify_finalizes_with_reason(sample_quiz):
    save_attempt = AsyncMock(return_value=9)
    session = make_session(sample_quiz, user_id="u1", save_attempt=save_attempt)
    await session.start()
    await answer(session, "A")

    assert session.disqualify("tab switched")
    assert session.state == QuizState.COMPLETED
    assert session.attempt.reason == "tab switched"
    assert session.attempt.user_answers == ["A", None, None, None, None]
    assert session.attempt.score == 1
    assert not session.disqualify("again")

    await asyncio.sleep(0.01)
    save_attempt.assert_awaited_once()
    session.teardown()


@pytest.mark.asyncio
async def test_disqualified_attempt_cannot_be_reviewed():
    mark_reviewed = AsyncMock(return_value=True)
    quiz = QuizPayload(questions=[make_question(1), make_question(2)])
    session = make_session(quiz, user_id="u1", save_attempt=AsyncMock(return_value=4), mark_reviewed=mark_reviewed)
    await session.start()

    assert session.disqualify("tab switched")
    assert not await session.unlock_review()
    assert not session.reviewed
    mark_reviewed.assert_not_awaited()
    session.teardown()


@pytest.mark.asyncio
async def test_wait_for_state_returns_after_teardown(sample_quiz):
    session = make_session(sample_quiz)
    await session.start()

    waiter = asyncio.ensure_future(session.wait_for_state(QuizState.COMPLETED))
    await asyncio.sleep(0)
    session.teardown()

    assert await asyncio.wait_for(waiter, timeout=1) == QuizState.PLAYING
