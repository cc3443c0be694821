"""Domain errors raised by the interview session engine and its collaborators."""
from typing import List, Optional


class InterviewError(Exception):
    """Base class for interview errors."""


class InvalidSetupError(InterviewError):
    """The interview setup or the generated question list is unusable."""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors) or "Invalid interview setup")


class InvalidStateError(InterviewError):
    """Illegal status transition or operation for the session's current status."""


class QuestionNotFoundError(InterviewError):
    """Question index outside the session's question list."""

    def __init__(self, index: int):
        self.index = index
        super().__init__(f"Question {index} not found")


class NoAnswerError(InterviewError):
    """Evaluation requested for a question that has no answer yet."""

    def __init__(self, index: int):
        self.index = index
        super().__init__(f"Question {index} has not been answered")


class InvalidAnswerError(InterviewError):
    """Answer payload or timing is malformed."""


class ForbiddenError(InterviewError):
    """Caller does not own the session."""


class SessionNotFoundError(InterviewError):
    """No stored session with the requested id."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Session {session_id} not found")


class PersistenceConflict(InterviewError):
    """Stored session changed since it was loaded."""

    def __init__(self, session_id: str, expected_version: Optional[int] = None):
        self.session_id = session_id
        self.expected_version = expected_version
        super().__init__(f"Session {session_id} was modified concurrently")


class GenerationError(InterviewError):
    """Question generation oracle failed."""


class EvaluationError(InterviewError):
    """Answer evaluation oracle failed."""
