import pytest

from utils.decoders import DecodeError, decode_facts, decode_quiz_output


def test_decode_quiz_schema_first(raw_questions):
    quiz = decode_quiz_output({"questions": raw_questions})
    assert len(quiz.questions) == 5


def test_decode_quiz_wraps_bare_list(raw_questions):
    quiz = decode_quiz_output(raw_questions)
    assert quiz.questions[0].id == "q1"


@pytest.mark.parametrize("raw", [
    None,
    "questions",
    {},
    {"questions": []},
    {"items": []},
    [{"question": "no options"}],
])
def test_decode_quiz_fails_closed(raw):
    with pytest.raises(DecodeError):
        decode_quiz_output(raw)


def test_decode_quiz_rejects_duplicate_options(raw_questions):
    raw_questions[0]["options"] = ["A", "A", "C", "D"]
    with pytest.raises(DecodeError):
        decode_quiz_output({"questions": raw_questions})


def test_decode_facts_accepts_strings_and_objects():
    facts = decode_facts({"facts": ["  Plain fact. ", {"fact": "Object fact."}, ""]})
    assert facts == ["Plain fact.", "Object fact."]


@pytest.mark.parametrize("raw", [None, [], {"facts": "nope"}, {"facts": [{"text": "wrong key"}]}])
def test_decode_facts_fails_closed(raw):
    with pytest.raises(DecodeError):
        decode_facts(raw)
