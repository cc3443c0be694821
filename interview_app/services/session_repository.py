"""MongoDB persistence for interview sessions."""
import logging
from typing import List, Tuple

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING

from interview_app.exceptions import PersistenceConflict, SessionNotFoundError
from interview_app.models.session import InterviewSession

logger = logging.getLogger(__name__)


class SessionRepository:
    """
    Stores one document per session in `interview_sessions`.

    Writes are guarded by the session's `version`: a save only succeeds if the
    stored document still has the version the caller loaded.
    """

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db

    @property
    def collection(self):
        return self.db.interview_sessions

    async def ensure_indexes(self):
        await self.collection.create_index("session_id", unique=True)
        await self.collection.create_index([("user_id", ASCENDING), ("created_at", DESCENDING)])
        await self.collection.create_index("interview_id")
        await self.collection.create_index("status")
        await self.collection.create_index("metadata.job_role")

    async def insert(self, session: InterviewSession) -> InterviewSession:
        result = await self.collection.insert_one(session.model_dump(by_alias=True, exclude={"id"}))
        session.id = result.inserted_id
        return session

    async def load(self, session_id: str) -> InterviewSession:
        data = await self.collection.find_one({"session_id": session_id})
        if not data:
            raise SessionNotFoundError(session_id)
        return InterviewSession(**data)

    async def save(self, session: InterviewSession) -> InterviewSession:
        expected_version = session.version
        document = session.model_dump(by_alias=True, exclude={"id"})
        document["version"] = expected_version + 1

        result = await self.collection.update_one(
            {"session_id": session.session_id, "version": expected_version},
            {"$set": document}
        )
        if result.matched_count == 0:
            exists = await self.collection.count_documents({"session_id": session.session_id}, limit=1)
            if not exists:
                raise SessionNotFoundError(session.session_id)
            logger.warning(f"Version conflict saving session {session.session_id} (expected v{expected_version})")
            raise PersistenceConflict(session.session_id, expected_version)

        session.version = expected_version + 1
        return session

    async def list_for_user(self, user_id: str, page: int = 1, limit: int = 10) -> Tuple[List[InterviewSession], int]:
        """One page of the user's sessions, newest first, plus the total count."""
        query = {"user_id": user_id}
        total = await self.collection.count_documents(query)
        cursor = (
            self.collection.find(query)
            .sort("created_at", DESCENDING)
            .skip((page - 1) * limit)
            .limit(limit)
        )
        documents = await cursor.to_list(length=limit)
        return [InterviewSession(**doc) for doc in documents], total

    async def delete(self, session_id: str) -> None:
        result = await self.collection.delete_one({"session_id": session_id})
        if result.deleted_count == 0:
            raise SessionNotFoundError(session_id)
