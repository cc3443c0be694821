"""Interview session state machine.

The engine never reads a wall clock directly: every instant comes from the
injected ``clock`` so durations are computed from recorded timestamps only.
Mutating operations change the session passed in and return it; the caller
is responsible for persisting the result.
"""
import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Iterable, List, Mapping, Optional, Sequence, Union

from pydantic import BaseModel, ValidationError

from interview_app.exceptions import (
    ForbiddenError,
    InvalidAnswerError,
    InvalidSetupError,
    InvalidStateError,
    NoAnswerError,
    QuestionNotFoundError,
)
from interview_app.models.session import (
    Answer,
    Evaluation,
    InterviewSession,
    InterviewSetup,
    OverallResults,
    Question,
    SessionMetadata,
    generate_id,
)
from interview_app.utils.validation import validate_setup

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

DIFFICULTY_BUCKETS = ("Easy", "Medium", "Hard")

# Sub-score weights in percent: technical accuracy, communication, completeness
TECHNICAL_WEIGHT = 40
COMMUNICATION_WEIGHT = 30
COMPLETENESS_WEIGHT = 30


def effective_score(evaluation: Optional[Evaluation]) -> float:
    """
    Score used for aggregation, on a 0-100 scale.

    When all three 0-10 sub-scores are present their weighted average is
    scaled by 10 and overrides the raw score; otherwise the raw score is used.
    """
    if evaluation is None:
        return 0
    parts = (evaluation.technical_accuracy, evaluation.communication, evaluation.completeness)
    if all(part is not None for part in parts):
        technical, communication, completeness = parts
        return (
            technical * TECHNICAL_WEIGHT
            + communication * COMMUNICATION_WEIGHT
            + completeness * COMPLETENESS_WEIGHT
        ) / 10
    if evaluation.score is not None:
        return evaluation.score
    return 0


def _average(values: Sequence[float]) -> Optional[float]:
    if not values:
        return None
    return sum(values) / len(values)


def _unique(items: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(items))


def _rounded_seconds(delta: timedelta) -> int:
    return int(math.floor(delta.total_seconds() + 0.5))


def _whole_seconds(delta: timedelta) -> int:
    return int(math.floor(delta.total_seconds()))


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Timestamps are stored as naive UTC; aware values are converted."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class SessionEngine:
    """Owns the lifecycle of one interview attempt."""

    def __init__(self, clock: Optional[Clock] = None):
        self.clock = clock or datetime.utcnow

    # Lifecycle

    def create(
        self,
        setup: InterviewSetup,
        questions: Sequence[Question],
        user_id: str,
        interview_id: Optional[str] = None,
    ) -> InterviewSession:
        """Build a new session in the `created` state."""
        errors = validate_setup(setup)
        if not questions:
            errors.append("At least one question is required")
        if errors:
            raise InvalidSetupError(errors)

        now = self.clock()
        ordered = [
            question.model_copy(update={
                "order_index": index,
                "answer": None,
                "evaluation": None,
                "is_completed": False,
                "is_evaluated": False,
            })
            for index, question in enumerate(questions)
        ]
        metadata = SessionMetadata(
            job_role=setup.job_role,
            custom_job_role=setup.custom_job_role,
            experience_level=setup.experience_level,
            selected_skills=list(setup.skills),
            interview_type=setup.interview_type,
            difficulty=setup.difficulty,
            duration=setup.duration,
            question_count=len(ordered),
        )
        session = InterviewSession(
            user_id=str(user_id),
            interview_id=interview_id or generate_id(),
            questions=ordered,
            metadata=metadata,
            created_at=now,
            updated_at=now,
        )
        logger.info(f"Created session {session.session_id} with {len(ordered)} questions for user {user_id}")
        return session

    def start(self, session: InterviewSession) -> InterviewSession:
        if session.status != "created":
            raise InvalidStateError(f"Cannot start a session that is {session.status}")
        now = self.clock()
        session.status = "in_progress"
        session.metadata.start_time = now
        session.updated_at = now
        logger.info(f"Session {session.session_id} started")
        return session

    def complete(self, session: InterviewSession) -> InterviewSession:
        if session.is_terminal:
            raise InvalidStateError(f"Session is already {session.status}")
        if session.status != "in_progress":
            raise InvalidStateError("Cannot complete a session that has not been started")

        now = self.clock()
        self._close_pause(session, now)
        session.status = "completed"
        session.completed_at = now
        session.metadata.end_time = now
        if session.metadata.start_time is not None:
            wall_time = _rounded_seconds(now - session.metadata.start_time)
            session.metadata.total_time_taken = max(0, wall_time - session.metadata.pause_duration)
        session.overall_results = self.compute_overall_results(session)
        session.updated_at = now
        logger.info(f"Session {session.session_id} completed")
        return session

    def abandon(self, session: InterviewSession) -> InterviewSession:
        if session.is_terminal:
            raise InvalidStateError(f"Session is already {session.status}")
        now = self.clock()
        self._close_pause(session, now)
        session.status = "abandoned"
        session.metadata.end_time = now
        session.updated_at = now
        logger.info(f"Session {session.session_id} abandoned")
        return session

    # Question progression

    def get_current_question(self, session: InterviewSession) -> Optional[Question]:
        index = session.metadata.current_question_index
        if 0 <= index < len(session.questions):
            return session.questions[index]
        return None

    def advance(self, session: InterviewSession) -> bool:
        """Move to the next question. Returns False, changing nothing, at the last one."""
        self.require_in_progress(session, "advance")
        if session.metadata.current_question_index < len(session.questions) - 1:
            session.metadata.current_question_index += 1
            session.updated_at = self.clock()
            return True
        return False

    def record_answer(
        self,
        session: InterviewSession,
        question_index: int,
        payload: Union[Mapping[str, Any], BaseModel],
        started_at: datetime,
        ended_at: datetime,
    ) -> InterviewSession:
        """
        Attach an answer to a question.

        Resubmitting replaces the previous answer and drops its evaluation,
        since that evaluation no longer describes the stored answer.
        """
        self.require_in_progress(session, "record an answer")
        started_at, ended_at = to_naive_utc(started_at), to_naive_utc(ended_at)
        question = self.get_question(session, question_index)
        if ended_at < started_at:
            raise InvalidAnswerError("Answer end time is before its start time")

        if isinstance(payload, BaseModel):
            payload = payload.model_dump(exclude_none=True)
        fields = {key: payload.get(key) for key in ("text", "audio_url", "video_url") if payload.get(key)}
        try:
            answer = Answer(
                type=payload.get("type") or "text",
                start_time=started_at,
                end_time=ended_at,
                time_taken=_rounded_seconds(ended_at - started_at),
                **fields,
            )
        except ValidationError as e:
            raise InvalidAnswerError(str(e)) from e
        if not answer.has_content:
            raise InvalidAnswerError("Answer must include text, audio or video")

        question.answer = answer
        question.is_completed = True
        question.evaluation = None
        question.is_evaluated = False
        session.updated_at = self.clock()
        return session

    def record_evaluation(
        self,
        session: InterviewSession,
        question_index: int,
        evaluation: Evaluation,
    ) -> InterviewSession:
        self.require_in_progress(session, "record an evaluation")
        question = self.get_question(session, question_index)
        if question.answer is None:
            raise NoAnswerError(question_index)

        now = self.clock()
        question.evaluation = evaluation.model_copy(update={"evaluated_at": now})
        question.is_evaluated = True
        session.updated_at = now
        return session

    # Timing

    def pause(self, session: InterviewSession) -> InterviewSession:
        if session.is_terminal:
            raise InvalidStateError(f"Cannot pause a session that is {session.status}")
        if session.metadata.is_paused:
            return session
        now = self.clock()
        session.metadata.is_paused = True
        session.metadata.paused_at = now
        session.updated_at = now
        return session

    def resume(self, session: InterviewSession) -> InterviewSession:
        if session.is_terminal:
            raise InvalidStateError(f"Cannot resume a session that is {session.status}")
        now = self.clock()
        if self._close_pause(session, now):
            session.metadata.resumed_at = now
            session.updated_at = now
        return session

    def elapsed_seconds(self, session: InterviewSession) -> int:
        """Seconds spent in the session so far, pauses excluded."""
        metadata = session.metadata
        if metadata.start_time is None:
            return 0
        now = self.clock()
        end = metadata.end_time or now
        elapsed = _whole_seconds(end - metadata.start_time) - metadata.pause_duration
        if metadata.is_paused and metadata.paused_at is not None:
            elapsed -= _whole_seconds(now - metadata.paused_at)
        return max(0, elapsed)

    # Results

    def compute_overall_results(self, session: InterviewSession) -> OverallResults:
        evaluated = [q for q in session.questions if q.is_evaluated and q.evaluation is not None]
        if not evaluated:
            return OverallResults(completion_percentage=0)

        scores = [effective_score(q.evaluation) for q in evaluated]
        total_score = sum(scores)

        score_by_difficulty = {
            bucket.lower(): _average([
                effective_score(q.evaluation) for q in evaluated if q.difficulty == bucket
            ])
            for bucket in DIFFICULTY_BUCKETS
        }
        score_by_skill = {
            skill: _average([
                effective_score(q.evaluation) for q in evaluated if skill in q.skills
            ])
            for skill in session.metadata.selected_skills
        }

        total_time_taken = sum(q.answer.time_taken for q in evaluated if q.answer is not None)

        return OverallResults(
            completion_percentage=100 * len(evaluated) / len(session.questions),
            total_score=total_score,
            average_score=total_score / len(evaluated),
            score_by_difficulty=score_by_difficulty,
            score_by_skill=score_by_skill,
            total_time_taken=total_time_taken,
            average_time_per_question=total_time_taken / len(evaluated),
            strengths=_unique(s for q in evaluated for s in q.evaluation.strengths),
            improvements=_unique(s for q in evaluated for s in q.evaluation.improvements),
        )

    # Guards

    def assert_owner(self, session: InterviewSession, user_id: str) -> None:
        if session.user_id != str(user_id):
            raise ForbiddenError("You do not have access to this interview session")

    def require_in_progress(self, session: InterviewSession, action: str) -> None:
        if session.status != "in_progress":
            raise InvalidStateError(f"Cannot {action} while the session is {session.status}")

    def get_question(self, session: InterviewSession, index: int) -> Question:
        if not 0 <= index < len(session.questions):
            raise QuestionNotFoundError(index)
        return session.questions[index]

    def _close_pause(self, session: InterviewSession, now: datetime) -> bool:
        """Accrue an open pause into pause_duration. Returns True if one was open."""
        metadata = session.metadata
        if not (metadata.is_paused and metadata.paused_at is not None):
            return False
        metadata.pause_duration += max(0, _whole_seconds(now - metadata.paused_at))
        metadata.is_paused = False
        metadata.paused_at = None
        return True
