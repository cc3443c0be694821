"""Service for running practice interviews.

Each public method is one read-modify-write of a stored session: load it,
check the caller owns it, apply engine operations, save it. Oracle calls are
bounded by a timeout and fall back to static content on failure so the
session can always progress.
"""
import asyncio
import logging
import time
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

from interview_app.config import settings
from interview_app.exceptions import (
    EvaluationError,
    GenerationError,
    InvalidSetupError,
    NoAnswerError,
)
from interview_app.models.session import InterviewSession, InterviewSetup, Question
from interview_app.services.ai_service import AIService
from interview_app.services.fallback_content import FALLBACK_EVALUATION, fallback_questions
from interview_app.services.session_engine import SessionEngine, to_naive_utc
from interview_app.services.session_repository import SessionRepository
from interview_app.utils.question_planner import question_count
from interview_app.utils.validation import validate_setup

logger = logging.getLogger(__name__)


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


class InterviewService:
    def __init__(
        self,
        repository: SessionRepository,
        ai_service: AIService,
        engine: Optional[SessionEngine] = None,
        generation_timeout: Optional[float] = None,
        evaluation_timeout: Optional[float] = None,
    ):
        self.repository = repository
        self.ai_service = ai_service
        self.engine = engine or SessionEngine()
        self.generation_timeout = generation_timeout or settings.question_generation_timeout_seconds
        self.evaluation_timeout = evaluation_timeout or settings.evaluation_timeout_seconds

    async def create_session(self, user_id: str, setup: InterviewSetup) -> InterviewSession:
        """Validate the setup, generate questions and store a new session."""
        errors = validate_setup(setup)
        if errors:
            raise InvalidSetupError(errors)

        if setup.duration is None:
            setup = setup.model_copy(update={"duration": settings.default_duration_minutes})
        count = question_count(setup.duration, setup.interview_type)

        logger.info(f"Generating {count} questions for user {user_id}, role: {setup.effective_job_role}")
        started = time.monotonic()
        questions, error = await self._generate_questions(setup, count)
        generation_ms = _elapsed_ms(started)

        session = self.engine.create(setup, questions, user_id)
        ai_metadata = session.ai_metadata
        ai_metadata.model_used = getattr(self.ai_service, "model", None)
        ai_metadata.api_calls += 1
        ai_metadata.question_generation_time = generation_ms
        if error:
            ai_metadata.used_fallback_questions = True
            ai_metadata.errors.append(error)

        return await self.repository.insert(session)

    async def _generate_questions(self, setup: InterviewSetup, count: int) -> Tuple[List[Question], Optional[str]]:
        try:
            questions = await asyncio.wait_for(
                self.ai_service.generate_questions(setup, count),
                timeout=self.generation_timeout
            )
            return questions, None
        except asyncio.TimeoutError:
            error = f"Question generation timed out after {self.generation_timeout}s"
        except GenerationError as e:
            error = str(e)
        logger.warning(f"Using fallback questions for {setup.effective_job_role} interview: {error}")
        return fallback_questions(), error

    async def get_session(self, user_id: str, session_id: str) -> InterviewSession:
        session = await self.repository.load(session_id)
        self.engine.assert_owner(session, user_id)
        return session

    async def start_session(self, user_id: str, session_id: str) -> InterviewSession:
        session = await self.get_session(user_id, session_id)
        self.engine.start(session)
        logger.info(f"Session {session_id} started by user {user_id}")
        return await self.repository.save(session)

    async def get_current_question(self, user_id: str, session_id: str) -> Tuple[InterviewSession, Optional[Question]]:
        session = await self.get_session(user_id, session_id)
        return session, self.engine.get_current_question(session)

    async def submit_answer(
        self,
        user_id: str,
        session_id: str,
        question_index: int,
        payload: Dict[str, Any],
        started_at: Optional[datetime] = None,
        ended_at: Optional[datetime] = None,
        time_spent: Optional[int] = None,
        auto_evaluate: bool = True,
    ) -> InterviewSession:
        """
        Record an answer and, unless disabled, evaluate it straight away.

        Timestamps are normalised to naive UTC. Missing ones are derived from
        the clock and `time_spent` seconds.
        """
        session = await self.get_session(user_id, session_id)

        started_at, ended_at = to_naive_utc(started_at), to_naive_utc(ended_at)
        ended_at = ended_at or self.engine.clock()
        if started_at is None:
            started_at = ended_at - timedelta(seconds=time_spent or 0)

        self.engine.record_answer(session, question_index, payload, started_at, ended_at)
        if auto_evaluate:
            await self._evaluate(session, question_index)
        return await self.repository.save(session)

    async def evaluate_answer(self, user_id: str, session_id: str, question_index: int) -> InterviewSession:
        """Evaluate (or re-evaluate) an already answered question."""
        session = await self.get_session(user_id, session_id)
        self.engine.require_in_progress(session, "evaluate an answer")
        question = self.engine.get_question(session, question_index)
        if question.answer is None:
            raise NoAnswerError(question_index)
        await self._evaluate(session, question_index)
        return await self.repository.save(session)

    async def _evaluate(self, session: InterviewSession, question_index: int) -> None:
        question = session.questions[question_index]
        answer = question.answer
        answer_text = answer.text or f"[{answer.type} answer: {answer.audio_url or answer.video_url}]"
        context = {
            "jobRole": session.metadata.custom_job_role or session.metadata.job_role,
            "experienceLevel": session.metadata.experience_level,
            "skills": question.skills,
            "difficulty": question.difficulty,
            "evaluationCriteria": question.evaluation_criteria,
            "timeTaken": answer.time_taken,
            "timeLimit": question.time_limit,
        }

        started = time.monotonic()
        try:
            evaluation = await asyncio.wait_for(
                self.ai_service.evaluate_answer(question.text, answer_text, context),
                timeout=self.evaluation_timeout
            )
        except (asyncio.TimeoutError, EvaluationError) as e:
            error = str(e) or f"Evaluation timed out after {self.evaluation_timeout}s"
            logger.warning(f"Using fallback evaluation for session {session.session_id}, question {question_index}: {error}")
            session.ai_metadata.errors.append(error)
            evaluation = FALLBACK_EVALUATION
        evaluation_ms = _elapsed_ms(started)

        session.ai_metadata.api_calls += 1
        session.ai_metadata.evaluation_time += evaluation_ms
        evaluation = evaluation.model_copy(update={"evaluation_time": evaluation_ms})
        self.engine.record_evaluation(session, question_index, evaluation)

    async def follow_up(self, user_id: str, session_id: str, question_index: int) -> Optional[str]:
        """A follow-up question for an answered question, or None if none could be generated."""
        session = await self.get_session(user_id, session_id)
        question = self.engine.get_question(session, question_index)
        if question.answer is None or not question.answer.text:
            raise NoAnswerError(question_index)

        session.ai_metadata.api_calls += 1
        try:
            follow_up = await asyncio.wait_for(
                self.ai_service.generate_follow_up(question.text, question.answer.text),
                timeout=self.generation_timeout
            )
        except (asyncio.TimeoutError, GenerationError) as e:
            error = str(e) or f"Follow-up generation timed out after {self.generation_timeout}s"
            logger.warning(f"No follow-up for session {session_id}, question {question_index}: {error}")
            session.ai_metadata.errors.append(error)
            follow_up = None

        await self.repository.save(session)
        return follow_up

    async def next_question(self, user_id: str, session_id: str) -> Tuple[InterviewSession, bool]:
        """Advance after the current question has been answered."""
        session = await self.get_session(user_id, session_id)
        current = self.engine.get_current_question(session)
        if current is not None and current.answer is None:
            raise NoAnswerError(session.metadata.current_question_index)
        moved = self.engine.advance(session)
        if moved:
            session = await self.repository.save(session)
        return session, moved

    async def skip_question(self, user_id: str, session_id: str) -> Tuple[InterviewSession, bool]:
        """Advance without answering the current question."""
        session = await self.get_session(user_id, session_id)
        moved = self.engine.advance(session)
        if moved:
            session = await self.repository.save(session)
        return session, moved

    async def pause_session(self, user_id: str, session_id: str) -> InterviewSession:
        session = await self.get_session(user_id, session_id)
        self.engine.pause(session)
        return await self.repository.save(session)

    async def resume_session(self, user_id: str, session_id: str) -> InterviewSession:
        session = await self.get_session(user_id, session_id)
        self.engine.resume(session)
        return await self.repository.save(session)

    async def complete_session(self, user_id: str, session_id: str) -> InterviewSession:
        session = await self.get_session(user_id, session_id)
        self.engine.complete(session)
        logger.info(f"Session {session_id} completed, average score: {session.overall_results.average_score}")
        return await self.repository.save(session)

    async def abandon_session(self, user_id: str, session_id: str) -> InterviewSession:
        session = await self.get_session(user_id, session_id)
        self.engine.abandon(session)
        logger.info(f"Session {session_id} abandoned by user {user_id}")
        return await self.repository.save(session)

    async def get_summary(self, user_id: str, session_id: str) -> InterviewSession:
        """Session with freshly computed overall results. Nothing is saved."""
        session = await self.get_session(user_id, session_id)
        session.overall_results = self.engine.compute_overall_results(session)
        return session

    async def list_history(self, user_id: str, page: int = 1, limit: int = 10) -> Tuple[List[InterviewSession], int]:
        page = max(1, page)
        limit = max(1, min(limit, settings.history_max_page_size))
        return await self.repository.list_for_user(user_id, page, limit)

    async def delete_session(self, user_id: str, session_id: str) -> None:
        await self.get_session(user_id, session_id)
        await self.repository.delete(session_id)
        logger.info(f"Deleted session {session_id} for user {user_id}")
