"""
Course Service

Orchestrates one learner session: syllabus generation, lazy content
loading, quiz attempts and progression.

Every mutation follows the same discipline:
    read snapshot -> compute new snapshot -> save whole snapshot
under a per-session lock, held in-process and in Redis, so
interleaved requests for the same session can't lose each other's
updates, even across workers.
"""

import asyncio
import weakref
from contextlib import asynccontextmanager
from functools import lru_cache
from typing import AsyncIterator, List, Optional

from redis.exceptions import LockError

from coursegen.errors import CourseGenError, InvalidTransition
from coursegen.logging_config import get_logger
from coursegen.schemas import Course, Game, QuizAttempt, QuizResult, SubTopic
from coursegen.services.games import GameCollection, GameService
from coursegen.services.llm import ContentProvider, get_llm_service
from coursegen.services.loader import ContentLoader
from coursegen.services.progression import ProgressionEngine, ProgressionResult, bootstrap_course
from coursegen.services.quiz import QuizService, has_passed
from coursegen.services.session import SessionManager

logger = get_logger(__name__)


class CourseService:
    """
    Handles course orchestration for a session.

    Responsibilities:
    - Generate and bootstrap the course
    - Load sub-topic content on first open
    - Track quiz attempts and gate progression on a pass
    - Hand module completions to the game service
    """

    def __init__(
        self,
        provider: ContentProvider,
        sessions: SessionManager,
        games: GameCollection,
        engine: Optional[ProgressionEngine] = None,
    ):
        self.provider = provider
        self.sessions = sessions
        self.games = games
        self.engine = engine or ProgressionEngine()
        self.loader = ContentLoader(provider)
        self.quiz = QuizService(provider)
        self.game_service = GameService(provider, games)
        self._locks = weakref.WeakValueDictionary()

    def _lock(self, session_id: str) -> asyncio.Lock:
        lock = self._locks.get(session_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[session_id] = lock
        return lock

    @asynccontextmanager
    async def _locked(self, session_id: str) -> AsyncIterator[None]:
        """
        Hold the session for one read-compute-save step.

        The asyncio lock orders requests inside this process; the Redis
        lock orders them across workers. Redis calls block, so they run
        in a thread.
        """
        async with self._lock(session_id):
            lock = self.sessions.lock(session_id)
            if not await asyncio.to_thread(lock.acquire):
                raise InvalidTransition("Session is busy, please try again")
            try:
                yield
            finally:
                try:
                    await asyncio.to_thread(lock.release)
                except LockError:
                    logger.warning("Session lock for %s expired before release", session_id)

    # =========================================================================
    # Course lifecycle
    # =========================================================================

    async def start_course(self, session_id: str, topic: str) -> Course:
        """
        Generate a new course, replacing any previous one.

        On failure nothing is kept; the caller offers a retry from
        scratch.
        """
        async with self._locked(session_id):
            self.sessions.create_session(session_id, topic)
            self.games.clear(session_id)

            try:
                syllabus = await self.provider.generate_syllabus(topic)
            except CourseGenError:
                logger.warning("Syllabus generation failed for topic %r", topic)
                self.sessions.delete_session(session_id)
                raise

            course = bootstrap_course(syllabus)
            self.sessions.save_course(session_id, course)
            logger.info("Course %r started for topic %r", course.title, topic)
            return course

    def get_course(self, session_id: str) -> Course:
        return self.sessions.get_course(session_id)

    async def open_sub_topic(self, session_id: str, module_index: int, sub_topic_index: int) -> SubTopic:
        """Load content if needed and make this sub-topic's quiz the active attempt."""
        async with self._locked(session_id):
            course = self.sessions.get_course(session_id)
            updated = await self.loader.ensure_content(course, module_index, sub_topic_index)

            attempt = self.sessions.get_quiz_state(session_id)
            if not self._is_attempt_for(attempt, module_index, sub_topic_index):
                attempt = self.quiz.start_attempt(module_index, sub_topic_index)

            self.sessions.save_course(session_id, updated, quiz_state=attempt)
            return updated.sub_topic(module_index, sub_topic_index)

    # =========================================================================
    # Quiz attempts
    # =========================================================================

    @staticmethod
    def _is_attempt_for(attempt: Optional[QuizAttempt], module_index: int, sub_topic_index: int) -> bool:
        return (
            attempt is not None
            and attempt.module_index == module_index
            and attempt.sub_topic_index == sub_topic_index
        )

    def _load_attempt(self, session_id: str, module_index: int, sub_topic_index: int):
        course = self.sessions.get_course(session_id)
        sub_topic = course.sub_topic(module_index, sub_topic_index)
        attempt = self.sessions.get_quiz_state(session_id)
        if not sub_topic.quiz or not self._is_attempt_for(attempt, module_index, sub_topic_index):
            raise InvalidTransition(f"Open {sub_topic.title!r} before taking its quiz")
        return course, sub_topic, attempt

    async def select_answer(
        self,
        session_id: str,
        module_index: int,
        sub_topic_index: int,
        question_index: int,
        option: str,
    ) -> QuizAttempt:
        async with self._locked(session_id):
            _, sub_topic, attempt = self._load_attempt(session_id, module_index, sub_topic_index)
            attempt = self.quiz.select_answer(attempt, sub_topic.quiz, question_index, option)
            self.sessions.save_quiz_state(session_id, attempt)
            return attempt

    async def submit_quiz(self, session_id: str, module_index: int, sub_topic_index: int) -> QuizResult:
        async with self._locked(session_id):
            _, sub_topic, attempt = self._load_attempt(session_id, module_index, sub_topic_index)
            attempt, wrong = self.quiz.submit(attempt, sub_topic.quiz)
            self.sessions.save_quiz_state(session_id, attempt)

        advice = await self.quiz.get_advice(sub_topic.title, wrong)
        return QuizResult(
            score=attempt.score,
            total=len(sub_topic.quiz),
            passed=has_passed(attempt.score),
            wrong_answers=wrong,
            advice=advice,
        )

    async def retry_quiz(self, session_id: str, module_index: int, sub_topic_index: int) -> QuizAttempt:
        async with self._locked(session_id):
            _, _, attempt = self._load_attempt(session_id, module_index, sub_topic_index)
            attempt = self.quiz.retry(attempt)
            self.sessions.save_quiz_state(session_id, attempt)
            return attempt

    # =========================================================================
    # Progression
    # =========================================================================

    async def complete_sub_topic(
        self,
        session_id: str,
        module_index: int,
        sub_topic_index: int,
    ) -> ProgressionResult:
        """
        Record a quiz pass for the submitted, passing attempt.

        The caller dispatches game generation for
        result.completed_module after this returns.
        """
        async with self._locked(session_id):
            course, _, attempt = self._load_attempt(session_id, module_index, sub_topic_index)
            if not attempt.submitted or not has_passed(attempt.score):
                raise InvalidTransition("Pass the quiz before continuing")

            result = self.engine.record_quiz_pass(course, module_index, sub_topic_index)
            self.sessions.save_course(session_id, result.course, clear_quiz=True)
            return result

    # =========================================================================
    # Games
    # =========================================================================

    async def generate_game(self, session_id: str, module_title: str) -> Optional[Game]:
        return await self.game_service.generate_for_module(session_id, module_title)

    def list_games(self, session_id: str) -> List[Game]:
        return self.games.list(session_id)


@lru_cache()
def get_course_service() -> CourseService:
    return CourseService(
        provider=get_llm_service(),
        sessions=SessionManager(),
        games=GameCollection(),
    )
