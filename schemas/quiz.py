from datetime import datetime
from typing import List, Optional

from pydantic import Field, field_validator, model_validator

from schemas.base import CamelModel

# Forfeit sentinel sent by the "no-ball" button; never scores
NO_BALL = "no-ball"


class QuestionRecord(CamelModel):
    """A single validated multiple-choice question."""
    id: str = Field(..., min_length=1)
    question: str = Field(..., min_length=1)
    options: List[str] = Field(..., min_length=4, max_length=4)
    correct_answer: str
    explanation: str = Field(..., min_length=1)

    @field_validator("options")
    @classmethod
    def options_distinct(cls, options: List[str]) -> List[str]:
        if any(not o.strip() for o in options):
            raise ValueError("options must not be empty")
        if len(set(options)) != len(options):
            raise ValueError("options must be distinct")
        return options

    @model_validator(mode="after")
    def answer_in_options(self):
        if self.correct_answer not in self.options:
            raise ValueError("correctAnswer must match one of the options")
        return self


class QuizData(CamelModel):
    """Strict shape of a generated quiz."""
    questions: List[QuestionRecord] = Field(..., min_length=1)

    @field_validator("questions")
    @classmethod
    def unique_ids(cls, questions: List[QuestionRecord]) -> List[QuestionRecord]:
        ids = [q.id for q in questions]
        if len(set(ids)) != len(ids):
            raise ValueError("question ids must be unique")
        return questions


class QuizPayload(CamelModel):
    """Response of the quiz fetch endpoint."""
    questions: List[QuestionRecord]
    title: Optional[str] = None
    description: Optional[str] = None
    slot_id: Optional[int] = None
    source: str = "slot"  # slot | ai | fallback


class QuizAttempt(CamelModel):
    slot_id: Optional[int] = None
    user_id: Optional[str] = None
    format: str
    brand: str
    questions: List[QuestionRecord]
    user_answers: List[Optional[str]]
    score: int = 0
    total_questions: int = 0
    timestamp: Optional[datetime] = None
    reviewed: bool = False
    reason: Optional[str] = None

    @model_validator(mode="after")
    def answers_aligned(self):
        if len(self.user_answers) != len(self.questions):
            raise ValueError("userAnswers must be index-aligned with questions")
        return self

    def compute_score(self) -> int:
        return sum(
            1 for q, a in zip(self.questions, self.user_answers)
            if a is not None and a != NO_BALL and a == q.correct_answer
        )
