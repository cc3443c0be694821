"""Interview setup validation."""
from typing import Any, List, Mapping, Union

from interview_app.models.session import CUSTOM_JOB_ROLE, InterviewSetup

INTERVIEW_TYPES = ("technical", "behavioral", "mixed")
DIFFICULTIES = ("easy", "medium", "hard")
MIN_DURATION = 5
MAX_DURATION = 120


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def validate_setup(setup: Union[InterviewSetup, Mapping[str, Any]]) -> List[str]:
    """
    Check an interview setup and return every violation found, in a stable order.

    An empty list means the setup is valid.
    """
    if isinstance(setup, InterviewSetup):
        data = setup.model_dump()
    else:
        data = dict(setup)

    errors: List[str] = []

    job_role = data.get("job_role")
    if _is_blank(job_role):
        errors.append("Job role is required")
    elif job_role == CUSTOM_JOB_ROLE and _is_blank(data.get("custom_job_role")):
        errors.append("Custom job role is required when job role is 'Other'")

    skills = data.get("skills")
    if not isinstance(skills, (list, tuple, set)) or not [s for s in skills if not _is_blank(s)]:
        errors.append("Skills must be a non-empty list")

    if _is_blank(data.get("experience_level")):
        errors.append("Experience level is required")

    interview_type = data.get("interview_type")
    if _is_blank(interview_type):
        errors.append("Interview type is required")
    elif interview_type not in INTERVIEW_TYPES:
        errors.append(f"Interview type must be one of: {', '.join(INTERVIEW_TYPES)}")

    difficulty = data.get("difficulty")
    if difficulty is not None and difficulty not in DIFFICULTIES:
        errors.append(f"Difficulty must be one of: {', '.join(DIFFICULTIES)}")

    duration = data.get("duration")
    if duration is not None:
        if isinstance(duration, bool) or not isinstance(duration, int) \
                or not MIN_DURATION <= duration <= MAX_DURATION:
            errors.append(f"Duration must be between {MIN_DURATION} and {MAX_DURATION} minutes")

    return errors
