from pydantic import BaseModel, Field
from typing import List, Optional, Literal
from datetime import datetime

from interview_app.models.session import Question, SessionMetadata, OverallResults


class CreateInterviewRequest(BaseModel):
    """Interview setup as sent by the client. Checked by validate_setup, not by pydantic."""
    job_role: Optional[str] = None
    custom_job_role: Optional[str] = None
    skills: List[str] = Field(default_factory=list)
    experience_level: Optional[str] = None
    interview_type: Optional[str] = None
    difficulty: str = "medium"
    duration: Optional[int] = None


class ValidationReport(BaseModel):
    valid: bool
    errors: List[str]


class QuestionCountRequest(BaseModel):
    duration: int = Field(..., ge=5, le=120)
    interview_type: Literal["technical", "behavioral", "mixed"]


class QuestionCountResponse(BaseModel):
    question_count: int
    estimated_duration: str


class SubmitAnswerRequest(BaseModel):
    text: Optional[str] = None
    audio_url: Optional[str] = None
    video_url: Optional[str] = None
    type: Literal["text", "voice", "video"] = "text"
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    time_spent: Optional[int] = Field(None, ge=0, description="Seconds, used when started_at is missing")
    auto_evaluate: bool = True


class InterviewSessionResponse(BaseModel):
    session_id: str
    interview_id: str
    user_id: str
    status: str
    questions: List[Question]
    metadata: SessionMetadata
    overall_results: OverallResults
    elapsed_seconds: int
    created_at: datetime
    updated_at: datetime
    completed_at: Optional[datetime] = None


class CurrentQuestionResponse(BaseModel):
    session_id: str
    question_index: int
    total_questions: int
    is_last: bool
    question: Optional[Question] = None


class AdvanceResponse(BaseModel):
    moved: bool
    session: InterviewSessionResponse


class FollowUpResponse(BaseModel):
    has_follow_up: bool
    question: Optional[str] = None


class SummaryResponse(BaseModel):
    session_id: str
    status: str
    job_role: str
    total_questions: int
    answered_questions: int
    evaluated_questions: int
    results: OverallResults
    total_time_taken: Optional[int] = None
    pause_duration: int = 0
    completed_at: Optional[datetime] = None


class HistoryItem(BaseModel):
    session_id: str
    job_role: str
    skills: List[str]
    experience_level: str
    interview_type: str
    status: str
    question_count: int
    average_score: Optional[float] = None
    created_at: datetime
    completed_at: Optional[datetime] = None


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class HistoryResponse(BaseModel):
    sessions: List[HistoryItem]
    pagination: Pagination
