from datetime import datetime, timedelta, timezone

import pytest

from interview_app.exceptions import (
    ForbiddenError,
    InvalidSetupError,
    InvalidStateError,
    NoAnswerError,
    PersistenceConflict,
    SessionNotFoundError,
)
from interview_app.services.fallback_content import FALLBACK_EVALUATION, FALLBACK_QUESTIONS
from interview_app.services.interview_service import InterviewService


async def _started_session(service, setup, user_id="user-1"):
    session = await service.create_session(user_id, setup)
    return await service.start_session(user_id, session.session_id)


@pytest.mark.asyncio
async def test_create_session_generates_questions(service, repository, setup):
    session = await service.create_session("user-1", setup)

    assert session.status == "created"
    assert len(session.questions) == 8
    assert session.ai_metadata.model_used == "fake-model"
    assert session.ai_metadata.api_calls == 1
    assert session.ai_metadata.used_fallback_questions is False
    assert session.session_id in repository.documents


@pytest.mark.asyncio
async def test_create_session_rejects_invalid_setup(service, ai_service, setup):
    bad_setup = setup.model_copy(update={"job_role": "", "skills": []})
    with pytest.raises(InvalidSetupError) as exc_info:
        await service.create_session("user-1", bad_setup)
    assert exc_info.value.errors == ["Job role is required", "Skills must be a non-empty list"]
    assert ai_service.calls == []


@pytest.mark.asyncio
async def test_create_session_uses_default_duration(service, setup):
    session = await service.create_session("user-1", setup.model_copy(update={"duration": None}))
    assert session.metadata.duration == 30
    assert len(session.questions) == 8


@pytest.mark.asyncio
async def test_generation_failure_uses_fallback_questions(service, ai_service, setup):
    ai_service.fail_generation = True

    session = await service.create_session("user-1", setup)

    assert [q.text for q in session.questions] == [q.text for q in FALLBACK_QUESTIONS]
    assert session.ai_metadata.used_fallback_questions is True
    assert session.ai_metadata.errors == ["model unavailable"]


@pytest.mark.asyncio
async def test_generation_timeout_uses_fallback_questions(repository, ai_service, engine, setup):
    ai_service.delay = 0.5
    service = InterviewService(repository, ai_service, engine, generation_timeout=0.01)

    session = await service.create_session("user-1", setup)

    assert len(session.questions) == len(FALLBACK_QUESTIONS)
    assert "timed out" in session.ai_metadata.errors[0]


@pytest.mark.asyncio
async def test_submit_answer_evaluates_and_saves(service, repository, clock, setup):
    session = await _started_session(service, setup)
    started_at = clock() - timedelta(seconds=90)

    session = await service.submit_answer(
        "user-1", session.session_id, 0, {"text": "I would use an index."}, started_at=started_at
    )

    question = session.questions[0]
    assert question.answer.time_taken == 90
    assert question.is_evaluated is True
    assert question.evaluation.score == 80
    assert question.evaluation.evaluated_at is not None
    assert session.ai_metadata.api_calls == 2

    stored = await repository.load(session.session_id)
    assert stored.questions[0].is_evaluated is True
    assert stored.version == session.version


@pytest.mark.asyncio
async def test_submit_answer_with_aware_start_time(service, setup):
    session = await _started_session(service, setup)
    started_at = datetime(2024, 1, 15, 10, 29, tzinfo=timezone.utc)

    session = await service.submit_answer("user-1", session.session_id, 0, {"text": "hi"}, started_at=started_at)

    answer = session.questions[0].answer
    assert answer.start_time == datetime(2024, 1, 15, 10, 29)
    assert answer.time_taken == 60
    assert service.engine.elapsed_seconds(session) == 0


@pytest.mark.asyncio
async def test_submit_answer_from_time_spent(service, ai_service, setup):
    session = await _started_session(service, setup)
    session = await service.submit_answer(
        "user-1", session.session_id, 1, {"text": "Answer"}, time_spent=45, auto_evaluate=False
    )
    assert session.questions[1].answer.time_taken == 45
    assert session.questions[1].is_evaluated is False
    assert "evaluate" not in ai_service.calls


@pytest.mark.asyncio
async def test_evaluation_failure_uses_fallback_evaluation(service, ai_service, setup):
    ai_service.fail_evaluation = True
    session = await _started_session(service, setup)

    session = await service.submit_answer("user-1", session.session_id, 0, {"text": "Answer"})

    evaluation = session.questions[0].evaluation
    assert session.questions[0].is_evaluated is True
    assert evaluation.score == FALLBACK_EVALUATION.score
    assert evaluation.feedback == FALLBACK_EVALUATION.feedback
    assert session.ai_metadata.errors == ["model unavailable"]


@pytest.mark.asyncio
async def test_evaluation_timeout_uses_fallback_evaluation(repository, ai_service, engine, setup):
    service = InterviewService(repository, ai_service, engine, evaluation_timeout=0.01)
    session = await _started_session(service, setup)
    ai_service.delay = 0.5

    session = await service.submit_answer("user-1", session.session_id, 0, {"text": "Answer"})

    assert session.questions[0].evaluation.score == FALLBACK_EVALUATION.score


@pytest.mark.asyncio
async def test_evaluate_without_answer_skips_oracle(service, ai_service, setup):
    session = await _started_session(service, setup)

    with pytest.raises(NoAnswerError):
        await service.evaluate_answer("user-1", session.session_id, 2)
    assert "evaluate" not in ai_service.calls


@pytest.mark.asyncio
async def test_evaluate_finished_session_skips_oracle(service, ai_service, setup):
    session = await _started_session(service, setup)
    await service.submit_answer("user-1", session.session_id, 0, {"text": "Answer"}, auto_evaluate=False)
    await service.complete_session("user-1", session.session_id)

    with pytest.raises(InvalidStateError):
        await service.evaluate_answer("user-1", session.session_id, 0)
    assert ai_service.calls == ["generate"]
    assert (await service.get_session("user-1", session.session_id)).ai_metadata.api_calls == 1


@pytest.mark.asyncio
async def test_reevaluate_answer(service, ai_service, setup):
    session = await _started_session(service, setup)
    await service.submit_answer("user-1", session.session_id, 0, {"text": "Answer"}, auto_evaluate=False)
    ai_service.evaluation = ai_service.evaluation.model_copy(update={"score": 55})

    session = await service.evaluate_answer("user-1", session.session_id, 0)

    assert session.questions[0].evaluation.score == 55


@pytest.mark.asyncio
async def test_other_users_cannot_touch_session(service, setup):
    session = await service.create_session("user-1", setup)

    with pytest.raises(ForbiddenError):
        await service.get_session("user-2", session.session_id)
    with pytest.raises(ForbiddenError):
        await service.start_session("user-2", session.session_id)
    with pytest.raises(ForbiddenError):
        await service.delete_session("user-2", session.session_id)


@pytest.mark.asyncio
async def test_next_requires_answer_but_skip_does_not(service, setup):
    session = await _started_session(service, setup)

    with pytest.raises(NoAnswerError):
        await service.next_question("user-1", session.session_id)

    session, moved = await service.skip_question("user-1", session.session_id)
    assert moved is True
    assert session.metadata.current_question_index == 1

    await service.submit_answer("user-1", session.session_id, 1, {"text": "Answer"})
    session, moved = await service.next_question("user-1", session.session_id)
    assert moved is True
    assert session.metadata.current_question_index == 2


@pytest.mark.asyncio
async def test_follow_up(service, ai_service, setup):
    session = await _started_session(service, setup)
    await service.submit_answer("user-1", session.session_id, 0, {"text": "Answer"})

    assert await service.follow_up("user-1", session.session_id, 0) == ai_service.follow_up

    ai_service.fail_generation = True
    assert await service.follow_up("user-1", session.session_id, 0) is None


@pytest.mark.asyncio
async def test_pause_resume_complete_flow(service, clock, setup):
    session = await _started_session(service, setup)
    await service.submit_answer("user-1", session.session_id, 0, {"text": "Answer"})

    await service.pause_session("user-1", session.session_id)
    clock.advance(10)
    session = await service.resume_session("user-1", session.session_id)
    assert session.metadata.pause_duration == 10

    session = await service.complete_session("user-1", session.session_id)
    assert session.status == "completed"
    assert session.overall_results.average_score == 80
    assert session.overall_results.completion_percentage == 12.5

    with pytest.raises(InvalidStateError):
        await service.abandon_session("user-1", session.session_id)


@pytest.mark.asyncio
async def test_summary_recomputes_results_without_saving(service, repository, setup):
    session = await _started_session(service, setup)
    await service.submit_answer("user-1", session.session_id, 0, {"text": "Answer"})
    version = repository.documents[session.session_id]["version"]

    summary = await service.get_summary("user-1", session.session_id)

    assert summary.overall_results.average_score == 80
    assert repository.documents[session.session_id]["version"] == version


@pytest.mark.asyncio
async def test_stale_save_is_a_conflict(service, repository, setup):
    session = await service.create_session("user-1", setup)
    first = await repository.load(session.session_id)
    second = await repository.load(session.session_id)

    service.engine.start(first)
    await repository.save(first)

    service.engine.abandon(second)
    with pytest.raises(PersistenceConflict):
        await repository.save(second)
    assert (await repository.load(session.session_id)).status == "in_progress"


@pytest.mark.asyncio
async def test_history_and_delete(service, clock, setup):
    ids = []
    for _ in range(3):
        session = await service.create_session("user-1", setup)
        ids.append(session.session_id)
        clock.advance(60)
    await service.create_session("user-2", setup)

    page, total = await service.list_history("user-1", page=1, limit=2)
    assert total == 3
    assert [s.session_id for s in page] == [ids[2], ids[1]]

    page, _ = await service.list_history("user-1", page=2, limit=2)
    assert [s.session_id for s in page] == [ids[0]]

    await service.delete_session("user-1", ids[0])
    with pytest.raises(SessionNotFoundError):
        await service.get_session("user-1", ids[0])
