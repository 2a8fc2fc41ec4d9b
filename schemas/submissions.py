from typing import Annotated, List, Literal, Optional, Union

from pydantic import Field, field_validator, model_validator

from schemas.base import CamelModel


class ReportInput(CamelModel):
    question_id: str = Field(..., min_length=1)
    question_text: str
    reason: str = Field(..., min_length=1, description="A reason is required.")
    comment: Optional[str] = None
    user_id: str = ""


class ReportResult(CamelModel):
    success: bool
    message: str
    report_id: Optional[str] = None


class FactContribution(CamelModel):
    type: Literal["fact"]
    user_id: str = ""
    content: str = Field(..., min_length=10, max_length=280)


class QuestionContribution(CamelModel):
    type: Literal["question"]
    user_id: str = ""
    question: str = Field(..., min_length=10, max_length=200)
    options: List[str] = Field(..., min_length=4, max_length=4)
    correct_answer: str = Field(..., min_length=1)
    explanation: Optional[str] = None

    @field_validator("options")
    @classmethod
    def options_not_empty(cls, options: List[str]) -> List[str]:
        if any(not o.strip() for o in options):
            raise ValueError("Option cannot be empty.")
        return options

    @model_validator(mode="after")
    def answer_in_options(self):
        if self.correct_answer not in self.options:
            raise ValueError("The correct answer must be one of the options.")
        return self


ContributionInput = Annotated[Union[FactContribution, QuestionContribution], Field(discriminator="type")]


class ContributionResult(CamelModel):
    success: bool
    message: str
