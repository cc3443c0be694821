import json
from typing import Any, Dict, Optional

from interview_app.models.session import InterviewSetup


def generate_question_prompt(setup: InterviewSetup, question_count: int) -> str:
    """
    Builds the prompt asking the model for `question_count` interview questions
    matching the candidate profile in `setup`.
    """
    skills = ", ".join(setup.skills)
    job_role = setup.effective_job_role

    categories = []
    if setup.interview_type in ("technical", "mixed"):
        categories.extend([
            f"- Technical/Coding questions related to: {skills}",
            "- Problem-solving scenarios",
            "- System design questions (for senior levels)",
            "- Code review and debugging questions",
        ])
    if setup.interview_type in ("behavioral", "mixed"):
        categories.extend([
            "- Leadership and teamwork scenarios",
            "- Problem-solving approaches",
            "- Communication and collaboration",
            "- Career motivation and goals",
        ])
    categories_text = "\n".join(categories)

    return f"""You are an expert technical interviewer. Generate {question_count} high-quality interview questions for the following candidate profile:

**Job Role:** {job_role}
**Experience Level:** {setup.experience_level}
**Skills:** {skills}
**Interview Type:** {setup.interview_type}
**Difficulty:** {setup.difficulty}

**Instructions:**
1. Generate exactly {question_count} questions
2. Each question should be relevant to the job role and skills
3. Adjust difficulty based on experience level ({setup.experience_level})
4. Include a mix of question types appropriate for {setup.interview_type} interviews
5. Tag each question with the skills it assesses, using only these names: {skills}

**Question Categories:**
{categories_text}

**Output Format:**
Return the questions in this exact JSON format:
{{
  "questions": [
    {{
      "category": "specific category like 'React', 'Leadership', etc.",
      "question": "The actual question text",
      "skills": ["skill1"],
      "difficulty": "easy|medium|hard",
      "timeLimit": 180,
      "hints": ["hint1", "hint2"],
      "evaluationCriteria": ["criteria1", "criteria2"]
    }}
  ]
}}

Generate diverse, engaging questions that will help assess the candidate's suitability for the {job_role} position."""


def generate_evaluation_prompt(
    question_text: str,
    answer_text: str,
    context: Optional[Dict[str, Any]] = None,
) -> str:
    """Prompt for scoring one answer."""
    return f"""Evaluate this interview answer:

**Question:** {question_text}
**Candidate's Answer:** {answer_text}
**Context:** {json.dumps(context or {}, default=str)}

Provide a comprehensive evaluation with:
- score: overall quality of the answer from 0 to 100
- technicalAccuracy: correctness of the technical content from 0 to 10
- communication: clarity and structure of the response from 0 to 10
- completeness: how fully the question was addressed from 0 to 10
- strengths: what the candidate did well
- improvements: what could be better
- feedback: comprehensive feedback text

Return the evaluation in this JSON format:
{{
  "score": 70,
  "technicalAccuracy": 7,
  "communication": 7,
  "completeness": 7,
  "strengths": ["strength1", "strength2"],
  "improvements": ["improvement1", "improvement2"],
  "feedback": "comprehensive feedback text"
}}"""


def generate_follow_up_prompt(original_question: str, previous_answer: str) -> str:
    return f"""Based on the candidate's previous answer: "{previous_answer}"

Original question was: "{original_question}"

Generate ONE thoughtful follow-up question that:
1. Digs deeper into their response
2. Clarifies any unclear points
3. Tests their deeper understanding

Return only the follow-up question text, no additional formatting."""
