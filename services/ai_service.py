import asyncio
import json
import re
from contextlib import asynccontextmanager
from typing import Any, List, Optional

import httpx

from core.config import settings
from core.logger import logger
from schemas.analysis import AnalysisInput
from schemas.quiz import QuestionRecord
from utils.decoders import DecodeError, decode_quiz_output


RETRYABLE_STATUSES = {429, 500, 502, 503, 504}


class AIServiceError(Exception):
    """The AI backend could not be reached or returned an unusable response."""
    pass


class QuizGenerationError(Exception):
    """Quiz generation failed; callers serve static content instead."""
    pass


QUIZ_SYSTEM_PROMPT = """You are a world-class cricket expert and quizmaster. You write completely new and unique multiple-choice quizzes.

Rule 1: Progressive difficulty. The questions MUST escalate in this exact order:
- Question 1 (Easy): something a casual cricket fan would likely know.
- Question 2 (Medium): requires a bit more than surface-level knowledge.
- Question 3 (Difficult): a specific record, event or player stat.
- Question 4 (Very Hard): an obscure or less-known fact, rule or historical event.
- Question 5 (Expert): trivia only a cricket historian or statistician might know.

Rule 2: Balanced topics. Do not ask more than one question about the same player or team.

Rule 3: Output. Return ONLY the following JSON, nothing else:
{
  "questions": [
    {
      "id": "q1a2b",
      "question": "Question text",
      "options": ["Option 1", "Option 2", "Option 3", "Option 4"],
      "correctAnswer": "Option 1",
      "explanation": "Brief, engaging explanation"
    }
  ]
}
Each id is a short unique random string. Options are 4 distinct strings. correctAnswer must exactly match one option."""

ANALYSIS_SYSTEM_PROMPT = """You are a friendly cricket coach reviewing a quiz attempt.
Return ONLY the following JSON, nothing else:
{
  "summary": "Two or three sentences about the performance",
  "strengths": ["..."],
  "weaknesses": ["..."],
  "recommendations": ["..."]
}"""

FACTS_SYSTEM_PROMPT = """You share short, verifiable cricket facts.
Return ONLY the following JSON, nothing else:
{"facts": [{"fact": "One sentence fact"}]}"""

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$")


def build_quiz_prompt(cricket_format: str, seen_questions: List[str], count: int) -> str:
    lines = [f'Generate a {count}-question quiz about "{cricket_format}" cricket.']
    if seen_questions:
        lines.append("")
        lines.append("Do NOT generate questions similar in theme or answer to these recently seen questions:")
        lines.extend(f'- "{q}"' for q in seen_questions)
    return "\n".join(lines)


class AIService:
    """Service for AI-powered quiz generation and analysis using the Groq API."""

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None,
                 client: Optional[httpx.AsyncClient] = None):
        self.api_key = settings.GROQ_API_KEY if api_key is None else api_key
        self.model = model or settings.GROQ_MODEL
        self.base_url = settings.GROQ_BASE_URL
        self._client = client

    @asynccontextmanager
    async def _http(self):
        if self._client is not None:
            yield self._client
            return
        async with httpx.AsyncClient(timeout=settings.AI_TIMEOUT_SECONDS) as client:
            yield client

    def _log_rate_limits(self, headers: httpx.Headers):
        """Extract and log Groq rate limit information."""
        remaining_requests = headers.get("x-ratelimit-remaining-requests")
        remaining_tokens = headers.get("x-ratelimit-remaining-tokens")

        if remaining_requests or remaining_tokens:
            logger.info(
                "Groq rate limits",
                rem_req=remaining_requests,
                rem_tok=remaining_tokens,
                reset_req=headers.get("x-ratelimit-reset-requests"),
                reset_tok=headers.get("x-ratelimit-reset-tokens")
            )

    def _parse_response(self, content: str) -> Any:
        """Parse JSON from AI response, tolerating code fences and leading chatter."""
        content = _FENCE_RE.sub("", content.strip())
        try:
            return json.loads(content)
        except json.JSONDecodeError:
            start, end = content.find("{"), content.rfind("}")
            if start != -1 and end > start:
                return json.loads(content[start:end + 1])
            raise

    async def chat_json(self, system_prompt: str, user_prompt: str, temperature: float = 0.7) -> Any:
        """
        Single prompt call. Transport failures, 429 and 5xx are retried up to
        AI_PROMPT_RETRIES times with a growing pause; other errors fail at once.
        """
        if not self.api_key:
            raise AIServiceError("GROQ_API_KEY is not configured")

        attempts = 1 + max(0, settings.AI_PROMPT_RETRIES)
        last_error = "no attempt made"

        async with self._http() as client:
            for attempt in range(1, attempts + 1):
                if attempt > 1:
                    await asyncio.sleep(settings.AI_RETRY_BACKOFF_SECONDS * (attempt - 1))
                try:
                    response = await client.post(
                        self.base_url,
                        headers={
                            "Authorization": f"Bearer {self.api_key}",
                            "Content-Type": "application/json"
                        },
                        json={
                            "model": self.model,
                            "messages": [
                                {"role": "system", "content": system_prompt},
                                {"role": "user", "content": user_prompt}
                            ],
                            "response_format": {"type": "json_object"},
                            "temperature": temperature,
                            "max_completion_tokens": 4096
                        }
                    )

                    self._log_rate_limits(response.headers)

                    if response.status_code != 200:
                        last_error = f"API error: {response.status_code}"
                        logger.error("Groq API error", status=response.status_code, attempt=attempt, error=response.text[:500])
                        if response.status_code in RETRYABLE_STATUSES:
                            continue
                        raise AIServiceError(last_error)

                    data = response.json()
                    content = data["choices"][0]["message"]["content"]
                    if not isinstance(content, str):
                        raise AIServiceError("Groq returned no message content")
                    return self._parse_response(content)

                except (httpx.HTTPError, KeyError, IndexError, TypeError, ValueError) as e:
                    last_error = str(e) or type(e).__name__
                    logger.warning("Groq call failed", attempt=attempt, error=last_error)

        raise AIServiceError(last_error)

    async def generate_quiz(self, cricket_format: str, seen_questions: List[str],
                            count: Optional[int] = None) -> List[QuestionRecord]:
        """
        Generate a themed quiz of escalating difficulty.
        Never returns malformed data: any failure raises QuizGenerationError.
        """
        count = count or settings.QUIZ_QUESTION_COUNT
        user_prompt = build_quiz_prompt(cricket_format, seen_questions, count)

        try:
            raw = await self.chat_json(QUIZ_SYSTEM_PROMPT, user_prompt, temperature=0.8)
        except AIServiceError as e:
            raise QuizGenerationError(f"Generation error: {e}") from e

        try:
            quiz = decode_quiz_output(raw)
        except DecodeError as e:
            logger.error("AI returned invalid quiz structure", format=cricket_format, error=str(e))
            raise QuizGenerationError("AI returned incomplete or invalid quiz data.") from e

        if len(quiz.questions) != count:
            logger.error("AI returned wrong question count", expected=count, got=len(quiz.questions))
            raise QuizGenerationError("AI returned incomplete or invalid quiz data.")

        logger.info("AI quiz generated", format=cricket_format, total=len(quiz.questions))
        return quiz.questions

    async def generate_analysis(self, analysis_input: AnalysisInput) -> Any:
        """Raw analysis payload; the caller validates it."""
        user_prompt = "Quiz attempt:\n" + json.dumps(analysis_input.dump(), ensure_ascii=False)
        return await self.chat_json(ANALYSIS_SYSTEM_PROMPT, user_prompt, temperature=0.5)

    async def generate_facts(self, context: str, count: int) -> Any:
        user_prompt = f"Give {count} interesting facts about {context} cricket."
        return await self.chat_json(FACTS_SYSTEM_PROMPT, user_prompt, temperature=0.9)
