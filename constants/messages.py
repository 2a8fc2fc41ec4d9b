class Messages:
    _TEXTS = {
        "EN": {
            "REPORT_SUBMITTED": "Your report has been submitted successfully. Thank you for helping us improve!",
            "REPORT_FAILED": "Failed to submit report: {error}",
            "FACT_SUBMITTED": "Thanks! Your fact has been submitted for review.",
            "QUESTION_SUBMITTED": "Thanks! Your question has been submitted for review.",
            "CONTRIBUTION_FAILED": "Failed to submit contribution: {error}",
            "RATE_LIMITED": "Too many submissions. Please wait a minute.",
            "INVALID_BODY": "Invalid request body.",
            "NO_ACTIVE_SESSION": "No active quiz session.",
            "ATTEMPT_NOT_FOUND": "Quiz attempt not found.",
            "REVIEW_DISQUALIFIED": "Review is not available for disqualified attempts.",
            "UNAUTHORIZED": "Unauthorized",
            "QUIZ_RESULTS_TITLE": "Quiz Results",
            "NO_ANSWER": "—",
        },
    }

    @classmethod
    def get(cls, key: str, lang: str = "EN") -> str:
        texts = cls._TEXTS.get(lang, cls._TEXTS["EN"])
        return texts.get(key, cls._TEXTS["EN"].get(key, key))
