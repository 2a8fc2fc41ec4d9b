"""
Decoders for AI output. Each one tries the explicit schema first, applies a
single fixed normalization rule, and otherwise fails closed.
"""
from typing import Any, List, Union

from pydantic import BaseModel, TypeAdapter, ValidationError

from schemas.quiz import QuizData


class DecodeError(ValueError):
    """AI output did not match the expected schema."""
    pass


def decode_quiz_output(raw: Any) -> QuizData:
    try:
        return QuizData.model_validate(raw)
    except ValidationError as e:
        first_error = e

    # Normalization rule: a bare list of questions
    if isinstance(raw, list):
        try:
            return QuizData.model_validate({"questions": raw})
        except ValidationError as e:
            first_error = e

    raise DecodeError(f"Invalid quiz structure: {first_error.error_count()} validation error(s)") from first_error


class _FactItem(BaseModel):
    fact: str


class _FactsEnvelope(BaseModel):
    facts: List[Union[str, _FactItem]]


_facts_adapter = TypeAdapter(_FactsEnvelope)


def decode_facts(raw: Any) -> List[str]:
    try:
        envelope = _facts_adapter.validate_python(raw)
    except ValidationError as e:
        raise DecodeError("Invalid facts structure") from e

    facts = []
    for item in envelope.facts:
        text = item if isinstance(item, str) else item.fact
        text = text.strip()
        if text:
            facts.append(text)
    return facts
