"""Interview router."""
import math
from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from interview_app.config import settings
from interview_app.exceptions import (
    ForbiddenError,
    InterviewError,
    InvalidAnswerError,
    InvalidSetupError,
    InvalidStateError,
    NoAnswerError,
    PersistenceConflict,
    QuestionNotFoundError,
    SessionNotFoundError,
)
from interview_app.models.session import InterviewSession, InterviewSetup
from interview_app.models.user import UserModel
from interview_app.schemas.interview import (
    AdvanceResponse,
    CreateInterviewRequest,
    CurrentQuestionResponse,
    FollowUpResponse,
    HistoryItem,
    HistoryResponse,
    InterviewSessionResponse,
    Pagination,
    QuestionCountRequest,
    QuestionCountResponse,
    SubmitAnswerRequest,
    SummaryResponse,
    ValidationReport,
)
from interview_app.services.interview_service import InterviewService
from interview_app.utils.dependencies import get_current_active_user, get_interview_service
from interview_app.utils.question_planner import question_count
from interview_app.utils.validation import validate_setup

router = APIRouter(prefix="/api/v1/interviews", tags=["Interviews"])

MINUTES_PER_QUESTION = 4


def _http_error(e: InterviewError) -> HTTPException:
    """Map a domain error to the HTTP response the client sees."""
    if isinstance(e, InvalidSetupError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail={"message": "Invalid interview setup", "errors": e.errors})
    if isinstance(e, InvalidAnswerError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    if isinstance(e, ForbiddenError):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    if isinstance(e, (SessionNotFoundError, QuestionNotFoundError)):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    if isinstance(e, (InvalidStateError, PersistenceConflict)):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    if isinstance(e, NoAnswerError):
        return HTTPException(status_code=422, detail=str(e))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


def _session_response(service: InterviewService, session: InterviewSession) -> InterviewSessionResponse:
    return InterviewSessionResponse(
        session_id=session.session_id,
        interview_id=session.interview_id,
        user_id=session.user_id,
        status=session.status,
        questions=session.questions,
        metadata=session.metadata,
        overall_results=session.overall_results,
        elapsed_seconds=service.engine.elapsed_seconds(session),
        created_at=session.created_at,
        updated_at=session.updated_at,
        completed_at=session.completed_at
    )


@router.post("/validate", response_model=ValidationReport)
async def validate_interview_setup(
    request: CreateInterviewRequest,
    current_user: UserModel = Depends(get_current_active_user)
):
    """Report every problem with an interview setup."""
    errors = validate_setup(request.model_dump())
    return ValidationReport(valid=not errors, errors=errors)


@router.post("/question-count", response_model=QuestionCountResponse)
async def preview_question_count(
    request: QuestionCountRequest,
    current_user: UserModel = Depends(get_current_active_user)
):
    """How many questions an interview of this length and type gets."""
    count = question_count(request.duration, request.interview_type)
    return QuestionCountResponse(
        question_count=count,
        estimated_duration=f"{count * MINUTES_PER_QUESTION} minutes"
    )


@router.post("/", response_model=InterviewSessionResponse, status_code=status.HTTP_201_CREATED)
async def create_interview(
    request: CreateInterviewRequest,
    current_user: UserModel = Depends(get_current_active_user),
    service: InterviewService = Depends(get_interview_service)
):
    """Create an interview session with generated questions."""
    errors = validate_setup(request.model_dump())
    if errors:
        raise _http_error(InvalidSetupError(errors))

    setup = InterviewSetup(**request.model_dump())
    try:
        session = await service.create_session(current_user.user_id, setup)
    except InterviewError as e:
        raise _http_error(e)
    return _session_response(service, session)


@router.get("/history", response_model=HistoryResponse)
async def get_history(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=settings.history_max_page_size),
    current_user: UserModel = Depends(get_current_active_user),
    service: InterviewService = Depends(get_interview_service)
):
    """Get the user's interview history, newest first."""
    sessions, total = await service.list_history(current_user.user_id, page, limit)
    return HistoryResponse(
        sessions=[
            HistoryItem(
                session_id=s.session_id,
                job_role=s.metadata.custom_job_role or s.metadata.job_role,
                skills=s.metadata.selected_skills,
                experience_level=s.metadata.experience_level,
                interview_type=s.metadata.interview_type,
                status=s.status,
                question_count=len(s.questions),
                average_score=s.overall_results.average_score,
                created_at=s.created_at,
                completed_at=s.completed_at
            ) for s in sessions
        ],
        pagination=Pagination(
            page=page,
            limit=limit,
            total=total,
            total_pages=math.ceil(total / limit)
        )
    )


@router.get("/{session_id}", response_model=InterviewSessionResponse)
async def get_interview(
    session_id: str,
    current_user: UserModel = Depends(get_current_active_user),
    service: InterviewService = Depends(get_interview_service)
):
    """Get session details."""
    try:
        session = await service.get_session(current_user.user_id, session_id)
    except InterviewError as e:
        raise _http_error(e)
    return _session_response(service, session)


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_interview(
    session_id: str,
    current_user: UserModel = Depends(get_current_active_user),
    service: InterviewService = Depends(get_interview_service)
):
    """Delete an interview session."""
    try:
        await service.delete_session(current_user.user_id, session_id)
    except InterviewError as e:
        raise _http_error(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{session_id}/start", response_model=InterviewSessionResponse)
async def start_interview(
    session_id: str,
    current_user: UserModel = Depends(get_current_active_user),
    service: InterviewService = Depends(get_interview_service)
):
    try:
        session = await service.start_session(current_user.user_id, session_id)
    except InterviewError as e:
        raise _http_error(e)
    return _session_response(service, session)


@router.get("/{session_id}/current", response_model=CurrentQuestionResponse)
async def get_current_question(
    session_id: str,
    current_user: UserModel = Depends(get_current_active_user),
    service: InterviewService = Depends(get_interview_service)
):
    """Get the question the user is on."""
    try:
        session, question = await service.get_current_question(current_user.user_id, session_id)
    except InterviewError as e:
        raise _http_error(e)
    index = session.metadata.current_question_index
    return CurrentQuestionResponse(
        session_id=session.session_id,
        question_index=index,
        total_questions=len(session.questions),
        is_last=index >= len(session.questions) - 1,
        question=question
    )


@router.post("/{session_id}/questions/{question_index}/answer", response_model=InterviewSessionResponse)
async def submit_answer(
    session_id: str,
    question_index: int,
    request: SubmitAnswerRequest,
    current_user: UserModel = Depends(get_current_active_user),
    service: InterviewService = Depends(get_interview_service)
):
    """Submit an answer; it is evaluated immediately unless auto_evaluate is false."""
    try:
        session = await service.submit_answer(
            current_user.user_id,
            session_id,
            question_index,
            request.model_dump(include={"text", "audio_url", "video_url", "type"}),
            started_at=request.started_at,
            ended_at=request.ended_at,
            time_spent=request.time_spent,
            auto_evaluate=request.auto_evaluate
        )
    except InterviewError as e:
        raise _http_error(e)
    return _session_response(service, session)


@router.post("/{session_id}/questions/{question_index}/evaluate", response_model=InterviewSessionResponse)
async def evaluate_answer(
    session_id: str,
    question_index: int,
    current_user: UserModel = Depends(get_current_active_user),
    service: InterviewService = Depends(get_interview_service)
):
    """Evaluate, or re-evaluate, a submitted answer."""
    try:
        session = await service.evaluate_answer(current_user.user_id, session_id, question_index)
    except InterviewError as e:
        raise _http_error(e)
    return _session_response(service, session)


@router.post("/{session_id}/questions/{question_index}/followup", response_model=FollowUpResponse)
async def follow_up_question(
    session_id: str,
    question_index: int,
    current_user: UserModel = Depends(get_current_active_user),
    service: InterviewService = Depends(get_interview_service)
):
    """Generate a follow-up question based on the submitted answer."""
    try:
        question = await service.follow_up(current_user.user_id, session_id, question_index)
    except InterviewError as e:
        raise _http_error(e)
    return FollowUpResponse(has_follow_up=question is not None, question=question)


@router.post("/{session_id}/next", response_model=AdvanceResponse)
async def next_question(
    session_id: str,
    current_user: UserModel = Depends(get_current_active_user),
    service: InterviewService = Depends(get_interview_service)
):
    try:
        session, moved = await service.next_question(current_user.user_id, session_id)
    except InterviewError as e:
        raise _http_error(e)
    return AdvanceResponse(moved=moved, session=_session_response(service, session))


@router.post("/{session_id}/skip", response_model=AdvanceResponse)
async def skip_question(
    session_id: str,
    current_user: UserModel = Depends(get_current_active_user),
    service: InterviewService = Depends(get_interview_service)
):
    try:
        session, moved = await service.skip_question(current_user.user_id, session_id)
    except InterviewError as e:
        raise _http_error(e)
    return AdvanceResponse(moved=moved, session=_session_response(service, session))


@router.post("/{session_id}/pause", response_model=InterviewSessionResponse)
async def pause_interview(
    session_id: str,
    current_user: UserModel = Depends(get_current_active_user),
    service: InterviewService = Depends(get_interview_service)
):
    try:
        session = await service.pause_session(current_user.user_id, session_id)
    except InterviewError as e:
        raise _http_error(e)
    return _session_response(service, session)


@router.post("/{session_id}/resume", response_model=InterviewSessionResponse)
async def resume_interview(
    session_id: str,
    current_user: UserModel = Depends(get_current_active_user),
    service: InterviewService = Depends(get_interview_service)
):
    try:
        session = await service.resume_session(current_user.user_id, session_id)
    except InterviewError as e:
        raise _http_error(e)
    return _session_response(service, session)


@router.post("/{session_id}/complete", response_model=InterviewSessionResponse)
async def complete_interview(
    session_id: str,
    current_user: UserModel = Depends(get_current_active_user),
    service: InterviewService = Depends(get_interview_service)
):
    try:
        session = await service.complete_session(current_user.user_id, session_id)
    except InterviewError as e:
        raise _http_error(e)
    return _session_response(service, session)


@router.post("/{session_id}/abandon", response_model=InterviewSessionResponse)
async def abandon_interview(
    session_id: str,
    current_user: UserModel = Depends(get_current_active_user),
    service: InterviewService = Depends(get_interview_service)
):
    try:
        session = await service.abandon_session(current_user.user_id, session_id)
    except InterviewError as e:
        raise _http_error(e)
    return _session_response(service, session)


@router.get("/{session_id}/summary", response_model=SummaryResponse)
async def get_summary(
    session_id: str,
    current_user: UserModel = Depends(get_current_active_user),
    service: InterviewService = Depends(get_interview_service)
):
    """Get the interview's overall results."""
    try:
        session = await service.get_summary(current_user.user_id, session_id)
    except InterviewError as e:
        raise _http_error(e)
    return SummaryResponse(
        session_id=session.session_id,
        status=session.status,
        job_role=session.metadata.custom_job_role or session.metadata.job_role,
        total_questions=len(session.questions),
        answered_questions=sum(1 for q in session.questions if q.is_completed),
        evaluated_questions=sum(1 for q in session.questions if q.is_evaluated),
        results=session.overall_results,
        total_time_taken=session.metadata.total_time_taken,
        pause_duration=session.metadata.pause_duration,
        completed_at=session.completed_at
    )
