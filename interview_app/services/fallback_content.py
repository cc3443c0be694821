"""Static content used when the AI service is unavailable."""
from typing import List

from interview_app.models.session import Evaluation, Question


FALLBACK_QUESTIONS: List[Question] = [
    Question(
        question_id="fallback-1",
        text="Tell me about yourself and your experience in software development.",
        category="Introduction",
        difficulty="Easy",
        time_limit=240,
        hints=["Focus on relevant experience", "Highlight key achievements"],
        evaluation_criteria=["Communication skills", "Relevant experience"],
    ),
    Question(
        question_id="fallback-2",
        text="Describe a challenging technical problem you solved recently.",
        category="Problem Solving",
        difficulty="Medium",
        time_limit=300,
        hints=["Explain your approach", "Mention tools and technologies used"],
        evaluation_criteria=["Problem-solving approach", "Technical depth"],
    ),
    Question(
        question_id="fallback-3",
        text="How do you handle disagreements with team members?",
        category="Teamwork",
        difficulty="Medium",
        time_limit=240,
        hints=["Give specific examples", "Focus on resolution strategies"],
        evaluation_criteria=["Communication skills", "Conflict resolution"],
    ),
]

FALLBACK_EVALUATION = Evaluation(
    score=60,
    feedback="Thank you for your response. Continue practicing to improve your interview skills.",
    strengths=["Attempted to answer the question"],
    improvements=["Could provide more specific examples", "Consider technical details"],
)


def fallback_questions() -> List[Question]:
    """Fresh copies of the fallback questions."""
    return [q.model_copy(deep=True) for q in FALLBACK_QUESTIONS]
