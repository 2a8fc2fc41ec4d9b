from typing import Optional

import httpx
from pydantic import ValidationError

from core.logger import logger
from schemas.quiz import QuizPayload


class QuizFetchError(Exception):
    """The remote quiz endpoint failed or returned no questions."""
    pass


class QuizApiClient:
    """
    Fetches quizzes from a remote IndCric API. `fetch_quiz` matches the
    QuizSession fetch collaborator, so a session can be driven remotely.
    """

    def __init__(self, base_url: str, token: str, client: Optional[httpx.AsyncClient] = None,
                 timeout: float = 15.0):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self._client = client

    async def fetch_quiz(self, brand: str, cricket_format: str) -> QuizPayload:
        client = self._client or httpx.AsyncClient(timeout=self.timeout)
        try:
            response = await client.get(
                f"{self.base_url}/api/quiz",
                params={"brand": brand, "format": cricket_format},
                headers={"Authorization": f"Bearer {self.token}"},
            )
        except httpx.HTTPError as e:
            logger.error("Quiz API request failed", brand=brand, format=cricket_format, error=str(e))
            raise QuizFetchError(str(e)) from e
        finally:
            if self._client is None:
                await client.aclose()

        if response.status_code != 200:
            logger.error("Quiz API error", status=response.status_code, body=response.text[:200])
            raise QuizFetchError(f"Quiz API returned {response.status_code}")

        try:
            quiz = QuizPayload.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise QuizFetchError(f"Malformed quiz payload: {e}") from e

        if not quiz.questions:
            raise QuizFetchError("No questions received from server")
        return quiz
