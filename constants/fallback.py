"""Canned content served when the AI backend is unavailable or returns junk."""

FALLBACK_QUIZ_TITLE = "{format} Cricket Classics"
FALLBACK_QUIZ_DESCRIPTION = "A hand-picked set of cricket questions while our quizmaster warms up."

# Escalating difficulty, one topic each
FALLBACK_QUESTIONS = [
    {
        "id": "fb-q1",
        "question": "How many players are on the field for one team in a cricket match?",
        "options": ["9", "10", "11", "12"],
        "correctAnswer": "11",
        "explanation": "Each side fields eleven players; substitutes may field but cannot bat or bowl.",
    },
    {
        "id": "fb-q2",
        "question": "Which country won the first men's Cricket World Cup in 1975?",
        "options": ["Australia", "West Indies", "England", "India"],
        "correctAnswer": "West Indies",
        "explanation": "Clive Lloyd's West Indies beat Australia in the final at Lord's.",
    },
    {
        "id": "fb-q3",
        "question": "What is Sir Don Bradman's career Test batting average?",
        "options": ["89.78", "94.12", "99.94", "101.30"],
        "correctAnswer": "99.94",
        "explanation": "Bradman needed four runs in his final innings to average 100 but was out for a duck.",
    },
    {
        "id": "fb-q4",
        "question": "Who took 19 wickets in a single Test match at Old Trafford in 1956?",
        "options": ["Jim Laker", "Tony Lock", "Fred Trueman", "Alec Bedser"],
        "correctAnswer": "Jim Laker",
        "explanation": "Laker's 19 for 90 against Australia remains the best match figures in Test history.",
    },
    {
        "id": "fb-q5",
        "question": "How many days did the 1939 'Timeless Test' between South Africa and England span?",
        "options": ["8", "10", "12", "14"],
        "correctAnswer": "12",
        "explanation": "The match in Durban was abandoned as a draw so England could catch their ship home.",
    },
]

FALLBACK_FACTS = [
    "Sir Don Bradman's Test batting average is an incredible 99.94.",
    "The first-ever cricket World Cup was held in 1975 in England.",
    "A 'hat-trick' is when a bowler takes three wickets on three consecutive deliveries.",
    "Jim Laker holds the record for taking 19 wickets in a single Test match.",
    "The longest Test match in history was played between England and South Africa in 1939, lasting 12 days.",
]
