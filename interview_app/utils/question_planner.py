"""How many questions an interview gets."""

# (upper bound in minutes, base question count); durations above the last bound get 18
DURATION_STEPS = [
    (15, 5),
    (30, 8),
    (60, 12),
]
LONG_INTERVIEW_QUESTIONS = 18

MIXED_MIN_QUESTIONS = 6  # mixed interviews need room for both question kinds
SINGLE_MODE_MIN_QUESTIONS = 3


def question_count(duration: int, interview_type: str) -> int:
    """Number of questions for an interview of `duration` minutes."""
    base = LONG_INTERVIEW_QUESTIONS
    for limit, count in DURATION_STEPS:
        if duration <= limit:
            base = count
            break

    if interview_type == "mixed":
        return max(MIXED_MIN_QUESTIONS, base)
    return max(SINGLE_MODE_MIN_QUESTIONS, base)
