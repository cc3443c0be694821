"""AI-backed question generation and answer evaluation."""
import json
import logging
import re
from typing import Any, Dict, List, Optional

from openai import AsyncOpenAI, OpenAIError

from interview_app.config import settings
from interview_app.exceptions import EvaluationError, GenerationError
from interview_app.models.session import Evaluation, InterviewSetup, Question
from interview_app.utils.prompt_generator import (
    generate_evaluation_prompt,
    generate_follow_up_prompt,
    generate_question_prompt,
)

logger = logging.getLogger(__name__)

DEFAULT_TIME_LIMIT = 240
_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")
_NUMBERED_LINE = re.compile(r"^\d+[.)]\s*")


def _extract_json(text: str) -> Optional[Dict[str, Any]]:
    match = _JSON_OBJECT.search(text or "")
    if not match:
        return None
    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, dict) else None


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(item).strip() for item in value if str(item).strip()]


def _clamp(value: Any, low: float, high: float) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(min(high, max(low, value)))


def parse_questions(text: str, expected_count: int, skills: Optional[List[str]] = None) -> List[Question]:
    """Turn a model response into at most `expected_count` questions."""
    data = _extract_json(text)
    if data is None or not isinstance(data.get("questions"), list):
        logger.warning("AI response had no questions JSON, parsing as plain text")
        return parse_text_questions(text, expected_count)

    known_skills = set(skills or [])
    questions = []
    for item in data["questions"]:
        if not isinstance(item, dict):
            continue
        question_text = str(item.get("question") or item.get("text") or "").strip()
        if not question_text:
            continue

        category = str(item.get("category") or "General")
        tags = _string_list(item.get("skills"))
        if not tags and category in known_skills:
            tags = [category]

        difficulty = str(item.get("difficulty") or "medium").strip().capitalize()
        if difficulty not in ("Easy", "Medium", "Hard"):
            difficulty = "Medium"

        time_limit = item.get("timeLimit")
        if isinstance(time_limit, bool) or not isinstance(time_limit, int) or time_limit <= 0:
            time_limit = DEFAULT_TIME_LIMIT

        questions.append(Question(
            order_index=len(questions),
            text=question_text,
            category=category,
            skills=tags,
            difficulty=difficulty,
            time_limit=time_limit,
            hints=_string_list(item.get("hints")),
            evaluation_criteria=_string_list(item.get("evaluationCriteria")),
        ))
        if len(questions) >= expected_count:
            break
    return questions


def parse_text_questions(text: str, expected_count: int) -> List[Question]:
    """Fallback parser: every numbered line is a question."""
    questions = []
    for line in (text or "").splitlines():
        line = line.strip()
        if not _NUMBERED_LINE.match(line):
            continue
        question_text = _NUMBERED_LINE.sub("", line)
        if not question_text:
            continue
        questions.append(Question(
            order_index=len(questions),
            text=question_text,
            evaluation_criteria=["Technical knowledge", "Problem-solving approach"],
        ))
        if len(questions) >= expected_count:
            break
    return questions


def parse_evaluation(text: str) -> Evaluation:
    data = _extract_json(text)
    if data is None:
        raise EvaluationError("No evaluation JSON found in AI response")

    score = _clamp(data.get("score"), 0, 100)
    technical = _clamp(data.get("technicalAccuracy"), 0, 10)
    communication = _clamp(data.get("communication"), 0, 10)
    completeness = _clamp(data.get("completeness"), 0, 10)
    if score is None and None in (technical, communication, completeness):
        raise EvaluationError("AI evaluation did not include a score")

    return Evaluation(
        score=score,
        feedback=str(data.get("feedback") or data.get("overallFeedback") or ""),
        strengths=_string_list(data.get("strengths")),
        improvements=_string_list(data.get("improvements")),
        technical_accuracy=technical,
        communication=communication,
        completeness=completeness,
    )


class AIService:
    """Question generation and answer evaluation through OpenAI chat completions."""

    def __init__(self, client: Optional[AsyncOpenAI] = None, model: Optional[str] = None):
        self.client = client or AsyncOpenAI(api_key=settings.openai_api_key)
        self.model = model or settings.openai_model

    async def _complete(self, prompt: str, json_mode: bool, temperature: float) -> str:
        kwargs = {}
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            temperature=temperature,
            **kwargs
        )
        return response.choices[0].message.content or ""

    async def generate_questions(self, setup: InterviewSetup, count: int) -> List[Question]:
        prompt = generate_question_prompt(setup, count)
        try:
            content = await self._complete(prompt, json_mode=True, temperature=0.7)
        except OpenAIError as e:
            logger.error(f"Question generation failed for {setup.effective_job_role}: {e}")
            raise GenerationError(f"Question generation failed: {e}") from e

        questions = parse_questions(content, count, list(setup.skills))
        if not questions:
            raise GenerationError("AI response contained no usable questions")
        logger.info(f"Generated {len(questions)} questions for {setup.effective_job_role} interview")
        return questions

    async def evaluate_answer(
        self,
        question_text: str,
        answer_text: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> Evaluation:
        prompt = generate_evaluation_prompt(question_text, answer_text, context)
        try:
            content = await self._complete(prompt, json_mode=True, temperature=0.0)
        except OpenAIError as e:
            logger.error(f"Answer evaluation failed: {e}")
            raise EvaluationError(f"Answer evaluation failed: {e}") from e
        return parse_evaluation(content)

    async def generate_follow_up(self, original_question: str, previous_answer: str) -> Optional[str]:
        prompt = generate_follow_up_prompt(original_question, previous_answer)
        try:
            content = await self._complete(prompt, json_mode=False, temperature=0.7)
        except OpenAIError as e:
            logger.error(f"Follow-up generation failed: {e}")
            raise GenerationError(f"Follow-up generation failed: {e}") from e
        return content.strip() or None
