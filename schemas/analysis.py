from typing import List, Literal, Optional

from pydantic import AliasChoices, Field

from schemas.base import CamelModel


class AttemptQuestionIn(CamelModel):
    # Older attempts stored `text`/`answer`; that is the only alternate shape accepted
    question: str = Field("", validation_alias=AliasChoices("question", "text"))
    correct_answer: str = Field("", validation_alias=AliasChoices("correctAnswer", "correct_answer", "answer"))


class AttemptIn(CamelModel):
    user_id: Optional[str] = None
    format: Optional[str] = None
    brand: Optional[str] = None
    score: Optional[int] = None
    total_questions: Optional[int] = None
    questions: List[AttemptQuestionIn] = []
    user_answers: List[Optional[str]] = []


class NormalizedQuestion(CamelModel):
    question: str
    correct_answer: str
    user_answer: str
    is_correct: bool


class AnalysisInput(CamelModel):
    user_id: Optional[str] = None
    format: str = "cricket"
    score: int = 0
    total_questions: int = 0
    questions: List[NormalizedQuestion] = []


class AnalysisResult(CamelModel):
    summary: str = Field(..., min_length=1)
    strengths: List[str]
    weaknesses: List[str]
    recommendations: List[str]
    source: Literal["ai", "fallback"] = "ai"
