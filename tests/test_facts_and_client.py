from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from constants.fallback import FALLBACK_FACTS
from services.ai_service import AIService, AIServiceError
from services.facts_service import FactsService
from services.quiz_client import QuizApiClient, QuizFetchError


def make_ai(result=None, error=None):
    ai = MagicMock()
    ai.generate_facts = AsyncMock(return_value=result, side_effect=error)
    return ai


# === Facts ===

@pytest.mark.asyncio
async def test_facts_from_ai():
    ai = make_ai(result={"facts": [{"fact": "Fact one."}, "Fact two."]})

    facts = await FactsService(ai).generate_facts("T20", count=2)

    assert facts == ["Fact one.", "Fact two."]
    ai.generate_facts.assert_awaited_once_with("T20", 2)


@pytest.mark.asyncio
async def test_facts_trimmed_to_count():
    ai = make_ai(result={"facts": ["1", "2", "3"]})
    assert await FactsService(ai).generate_facts(count=2) == ["1", "2"]


@pytest.mark.asyncio
@pytest.mark.parametrize("result, error", [
    (None, AIServiceError("down")),
    ({"facts": []}, None),
    ({"nothing": True}, None),
])
async def test_facts_fallback(result, error):
    facts = await FactsService(make_ai(result=result, error=error)).generate_facts()

    assert facts == FALLBACK_FACTS
    assert len(facts) == 5


@pytest.mark.asyncio
async def test_facts_fallback_on_empty_model_reply():
    reply = httpx.Response(200, json={"choices": [{"message": {"content": None}}]})
    async with httpx.AsyncClient(transport=httpx.MockTransport(lambda request: reply)) as http:
        facts = await FactsService(AIService(api_key="fake_key", client=http)).generate_facts("T20")

    assert facts == FALLBACK_FACTS


# === Remote quiz client ===

def make_client(handler) -> QuizApiClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return QuizApiClient("https://api.example.com/", "tok", client=http)


@pytest.mark.asyncio
async def test_client_fetches_quiz(raw_questions):
    seen = {}

    def handler(request: httpx.Request):
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        return httpx.Response(200, json={"questions": raw_questions, "title": "T20 Blast", "source": "ai"})

    quiz = await make_client(handler).fetch_quiz("Acme", "T20")

    assert quiz.title == "T20 Blast"
    assert len(quiz.questions) == 5
    assert seen["url"] == "https://api.example.com/api/quiz?brand=Acme&format=T20"
    assert seen["auth"] == "Bearer tok"


@pytest.mark.asyncio
@pytest.mark.parametrize("response", [
    httpx.Response(500, text="boom"),
    httpx.Response(200, json={"questions": []}),
    httpx.Response(200, text="not json"),
])
async def test_client_raises_on_bad_responses(response):
    with pytest.raises(QuizFetchError):
        await make_client(lambda request: response).fetch_quiz("Acme", "T20")


@pytest.mark.asyncio
async def test_client_raises_on_transport_error():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(QuizFetchError):
        await make_client(handler).fetch_quiz("Acme", "T20")
