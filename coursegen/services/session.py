"""
Session management for course progress.
Uses Redis for fast state storage with automatic expiration.

A session is saved as one JSON value, so every write replaces the
whole snapshot at once.
"""

import json
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Dict, Optional

import redis
from redis.lock import Lock

from coursegen.config import Settings, get_settings
from coursegen.errors import CourseNotFound
from coursegen.schemas import Course, QuizAttempt


def session_key(session_id: str) -> str:
    return f"course:session:{session_id}"


def games_key(session_id: str) -> str:
    return f"course:games:{session_id}"


@lru_cache()
def get_redis() -> redis.Redis:
    """Shared Redis connection pool."""
    settings = get_settings()
    return redis.Redis(
        host=settings.redis_host,
        port=settings.redis_port,
        db=settings.redis_db,
        decode_responses=True,
    )


class SessionManager:
    """
    Manages per-session course state in Redis.

    Session structure:
    {
        "session_id": str,
        "topic": str,
        "course": {...} | None,     # Course snapshot (camelCase)
        "quiz_state": {...} | None, # QuizAttempt for the open quiz
        "created_at": str,
        "last_activity": str
    }
    """

    def __init__(self, client: Optional[redis.Redis] = None, settings: Optional[Settings] = None):
        settings = settings or get_settings()
        self.redis = client if client is not None else get_redis()
        self.timeout = settings.session_timeout
        self.lock_timeout = settings.session_lock_timeout

    def _key(self, session_id: str) -> str:
        return session_key(session_id)

    def lock(self, session_id: str) -> Lock:
        """
        Cross-process lock serializing writes to one session.

        Not thread-local: it is acquired and released from worker threads.
        """
        return self.redis.lock(
            f"course:lock:{session_id}",
            timeout=self.lock_timeout,
            blocking_timeout=self.lock_timeout,
            thread_local=False,
        )

    def get_session(self, session_id: str) -> Optional[Dict[str, Any]]:
        data = self.redis.get(self._key(session_id))
        if data:
            return json.loads(data)
        return None

    def create_session(self, session_id: str, topic: str) -> Dict[str, Any]:
        """Create (or overwrite) a session with no course yet."""
        now = datetime.now(timezone.utc).isoformat()
        session = {
            "session_id": session_id,
            "topic": topic,
            "course": None,
            "quiz_state": None,
            "created_at": now,
            "last_activity": now,
        }
        self.save_session(session_id, session)
        return session

    def save_session(self, session_id: str, data: Dict[str, Any]) -> None:
        """Save session to Redis with TTL."""
        data["last_activity"] = datetime.now(timezone.utc).isoformat()
        self.redis.setex(self._key(session_id), self.timeout, json.dumps(data))
        # Games live under their own key and expire with the session
        self.redis.expire(games_key(session_id), self.timeout)

    def delete_session(self, session_id: str) -> None:
        self.redis.delete(self._key(session_id))

    # =========================================================================
    # Course snapshots
    # =========================================================================

    def get_course(self, session_id: str) -> Course:
        """
        Load the current course snapshot.

        Raises:
            CourseNotFound: no session, or no course generated yet
        """
        session = self.get_session(session_id)
        if not session or not session.get("course"):
            raise CourseNotFound(f"No course for session {session_id}")
        return Course.model_validate(session["course"])

    def save_course(
        self,
        session_id: str,
        course: Course,
        quiz_state: Optional[QuizAttempt] = None,
        clear_quiz: bool = False,
    ) -> None:
        """Replace the course snapshot (and optionally the quiz attempt) in one write."""
        session = self.get_session(session_id)
        if session is None:
            raise CourseNotFound(f"Session {session_id} expired")
        session["course"] = course.model_dump(mode="json", by_alias=True)
        if quiz_state is not None:
            session["quiz_state"] = quiz_state.model_dump(mode="json", by_alias=True)
        elif clear_quiz:
            session["quiz_state"] = None
        self.save_session(session_id, session)

    # =========================================================================
    # Quiz attempts
    # =========================================================================

    def get_quiz_state(self, session_id: str) -> Optional[QuizAttempt]:
        session = self.get_session(session_id)
        if session and session.get("quiz_state"):
            return QuizAttempt.model_validate(session["quiz_state"])
        return None

    def save_quiz_state(self, session_id: str, attempt: QuizAttempt) -> None:
        session = self.get_session(session_id)
        if session is None:
            raise CourseNotFound(f"Session {session_id} expired")
        session["quiz_state"] = attempt.model_dump(mode="json", by_alias=True)
        self.save_session(session_id, session)
