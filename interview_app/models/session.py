"""Interview session models.

A session is stored as one document: the questions are embedded in order and
each carries at most one answer and one evaluation.
"""
from pydantic import BaseModel, Field, ConfigDict, field_validator
from typing import List, Dict, Optional, Literal
from datetime import datetime
from bson import ObjectId
import uuid

from interview_app.models.user import PyObjectId


JOB_ROLES = [
    "Full Stack Developer",
    "Frontend Developer",
    "Backend Developer",
    "Data Scientist",
    "DevOps Engineer",
    "Mobile Developer",
    "Software Engineer",
    "Product Manager",
    "UI/UX Designer",
    "Other",
]
CUSTOM_JOB_ROLE = "Other"

InterviewType = Literal["technical", "behavioral", "mixed"]
SetupDifficulty = Literal["easy", "medium", "hard"]
QuestionDifficulty = Literal["Easy", "Medium", "Hard"]
AnswerType = Literal["text", "voice", "video"]
SessionStatus = Literal["created", "in_progress", "completed", "abandoned"]

TERMINAL_STATUSES = ("completed", "abandoned")


def generate_id() -> str:
    return uuid.uuid4().hex


class InterviewSetup(BaseModel):
    """User-provided interview configuration. Never changes once a session exists."""

    model_config = ConfigDict(frozen=True)

    job_role: str
    custom_job_role: Optional[str] = None
    skills: List[str]
    experience_level: str
    interview_type: str
    difficulty: str = "medium"
    duration: Optional[int] = 30

    @property
    def effective_job_role(self) -> str:
        if self.job_role == CUSTOM_JOB_ROLE and self.custom_job_role:
            return self.custom_job_role
        return self.job_role


class Answer(BaseModel):
    """Submitted answer for one question."""

    model_config = ConfigDict(frozen=True)

    text: Optional[str] = None
    audio_url: Optional[str] = None
    video_url: Optional[str] = None
    type: AnswerType = "text"
    start_time: datetime
    end_time: datetime
    time_taken: int = Field(0, ge=0, description="Seconds between start and end")

    @property
    def has_content(self) -> bool:
        return bool(self.text or self.audio_url or self.video_url)


class Evaluation(BaseModel):
    """Scored feedback for an answer."""

    model_config = ConfigDict(frozen=True)

    score: Optional[float] = Field(None, ge=0, le=100)
    feedback: str = ""
    strengths: List[str] = Field(default_factory=list)
    improvements: List[str] = Field(default_factory=list)
    technical_accuracy: Optional[float] = Field(None, ge=0, le=10)
    communication: Optional[float] = Field(None, ge=0, le=10)
    completeness: Optional[float] = Field(None, ge=0, le=10)
    evaluated_at: Optional[datetime] = None
    evaluation_time: Optional[int] = Field(None, description="Milliseconds spent evaluating")


class Question(BaseModel):
    """A generated question and the user's progress on it."""

    question_id: str = Field(default_factory=generate_id)
    order_index: int = 0
    text: str
    category: str = "General"
    skills: List[str] = Field(default_factory=list)
    difficulty: QuestionDifficulty = "Medium"
    time_limit: int = Field(240, description="Seconds allowed for the answer")
    hints: List[str] = Field(default_factory=list)
    evaluation_criteria: List[str] = Field(default_factory=list)

    answer: Optional[Answer] = None
    evaluation: Optional[Evaluation] = None
    is_completed: bool = False
    is_evaluated: bool = False

    @field_validator("difficulty", mode="before")
    @classmethod
    def normalize_difficulty(cls, v):
        if isinstance(v, str):
            return v.strip().capitalize()
        return v


class SessionMetadata(BaseModel):
    """Denormalised setup plus the session's progress and pause state."""

    job_role: str
    custom_job_role: Optional[str] = None
    experience_level: str
    selected_skills: List[str] = Field(default_factory=list)
    interview_type: str
    difficulty: str = "medium"
    duration: Optional[int] = None
    question_count: int = 0

    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    total_time_taken: Optional[int] = None  # seconds, pauses excluded

    current_question_index: int = 0
    is_paused: bool = False
    paused_at: Optional[datetime] = None
    resumed_at: Optional[datetime] = None
    pause_duration: int = 0  # total pause time in seconds


class OverallResults(BaseModel):
    """Aggregated results. Only completion_percentage is set when nothing is evaluated."""

    completion_percentage: float = 0
    total_score: Optional[float] = None
    average_score: Optional[float] = None
    score_by_difficulty: Optional[Dict[str, Optional[float]]] = None
    score_by_skill: Optional[Dict[str, Optional[float]]] = None
    total_time_taken: Optional[int] = None
    average_time_per_question: Optional[float] = None
    strengths: Optional[List[str]] = None
    improvements: Optional[List[str]] = None


class AIMetadata(BaseModel):
    """Bookkeeping for oracle calls made on behalf of the session."""

    model_used: Optional[str] = None
    api_calls: int = 0
    question_generation_time: Optional[int] = None  # ms
    evaluation_time: int = 0  # ms, cumulative
    used_fallback_questions: bool = False
    errors: List[str] = Field(default_factory=list)


class InterviewSession(BaseModel):
    """One user's attempt at an interview."""

    model_config = ConfigDict(
        populate_by_name=True,
        arbitrary_types_allowed=True,
        json_encoders={ObjectId: str}
    )

    id: Optional[PyObjectId] = Field(default=None, alias="_id")
    session_id: str = Field(default_factory=generate_id)
    user_id: str = Field(..., description="Owner of the session")
    interview_id: str = Field(..., description="The originating setup")

    questions: List[Question] = Field(default_factory=list)
    metadata: SessionMetadata
    status: SessionStatus = "created"
    overall_results: OverallResults = Field(default_factory=OverallResults)
    ai_metadata: AIMetadata = Field(default_factory=AIMetadata)

    version: int = Field(0, description="Incremented on every save")
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
    completed_at: Optional[datetime] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES
