"""
Pytest fixtures for coursegen tests.

The content provider and Redis are replaced by in-memory fakes so
tests run without network access or a Redis server.
"""

from typing import Dict, List, Optional

import pytest

from coursegen.config import Settings
from coursegen.errors import ProviderUnavailable
from coursegen.schemas import (
    CoreConcept,
    InteractiveCheck,
    MatchingGame,
    MatchingPair,
    QuizQuestion,
    Syllabus,
    SyllabusModule,
    SyllabusSubTopic,
    TutorialContent,
)
from coursegen.services.course import CourseService
from coursegen.services.games import GameCollection
from coursegen.services.session import SessionManager

OPTIONS = ["A", "B", "C", "D"]


def make_quiz(title: str = "Topic") -> List[QuizQuestion]:
    """Ten questions whose correct answer is always 'A'."""
    return [
        QuizQuestion(question=f"{title} question {i + 1}", options=OPTIONS, correct_answer="A")
        for i in range(10)
    ]


def make_tutorial(title: str = "Topic") -> TutorialContent:
    return TutorialContent(
        introduction=f"Welcome to **{title}**.",
        core_concepts=[CoreConcept(title="Concept", explanation="Details")],
        key_takeaway="Remember this.",
        interactive_check=InteractiveCheck(question="Check?", options=OPTIONS, correct_answer="B"),
    )


def make_game(module_title: str) -> MatchingGame:
    return MatchingGame(
        game_type="matching",
        title=f"{module_title} Match-up",
        instructions="Match each term to its definition.",
        data=[MatchingPair(term=f"term {i}", definition=f"definition {i}") for i in range(5)],
    )


def make_syllabus(*module_sizes: int) -> Syllabus:
    return Syllabus(
        title="Learning Python",
        modules=[
            SyllabusModule(
                title=f"Module {m + 1}",
                sub_topics=[
                    SyllabusSubTopic(title=f"Topic {m + 1}.{s + 1}", description="One sentence.")
                    for s in range(size)
                ],
            )
            for m, size in enumerate(module_sizes)
        ],
    )


class FakeProvider:
    """Records every request; any method can be told to fail."""

    def __init__(self, syllabus: Optional[Syllabus] = None):
        self.syllabus = syllabus or make_syllabus(2, 1)
        self.calls: Dict[str, list] = {
            "syllabus": [], "tutorial": [], "quiz": [], "game": [], "advice": [],
        }
        self.failing: set = set()
        self.advice = "Review the basics."

    def _record(self, kind: str, *args):
        self.calls[kind].append(args)
        if kind in self.failing:
            raise ProviderUnavailable(f"{kind} failed")

    async def generate_syllabus(self, topic):
        self._record("syllabus", topic)
        return self.syllabus

    async def generate_tutorial(self, sub_topic_title, description):
        self._record("tutorial", sub_topic_title, description)
        return make_tutorial(sub_topic_title)

    async def generate_quiz(self, sub_topic_title):
        self._record("quiz", sub_topic_title)
        return make_quiz(sub_topic_title)

    async def generate_game(self, module_title):
        self._record("game", module_title)
        return make_game(module_title)

    async def generate_quiz_advice(self, sub_topic_title, wrong_answers):
        self._record("advice", sub_topic_title, wrong_answers)
        return self.advice


class FakeLock:
    """Non-blocking stand-in for redis.lock.Lock."""

    def __init__(self, held: set, name: str):
        self.held = held
        self.name = name

    def acquire(self):
        if self.name in self.held:
            return False
        self.held.add(self.name)
        return True

    def release(self):
        self.held.discard(self.name)


class FakeRedis:
    """The handful of Redis commands the session and game stores use."""

    def __init__(self):
        self.values: Dict[str, str] = {}
        self.lists: Dict[str, List[str]] = {}
        self.ttls: Dict[str, int] = {}
        self.held_locks: set = set()

    def get(self, key):
        return self.values.get(key)

    def setex(self, key, ttl, value):
        self.values[key] = value
        self.ttls[key] = ttl

    def delete(self, *keys):
        for key in keys:
            self.values.pop(key, None)
            self.lists.pop(key, None)

    def rpush(self, key, *values):
        self.lists.setdefault(key, []).extend(values)
        return len(self.lists[key])

    def lrange(self, key, start, end):
        items = self.lists.get(key, [])
        return items[start:] if end == -1 else items[start:end + 1]

    def expire(self, key, ttl):
        if key not in self.values and key not in self.lists:
            return False
        self.ttls[key] = ttl
        return True

    def lock(self, name, timeout=None, blocking_timeout=None, thread_local=True):
        return FakeLock(self.held_locks, name)


@pytest.fixture
def settings() -> Settings:
    return Settings(groq_api_key="test-key", session_timeout=600, _env_file=None)


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def sessions(fake_redis, settings) -> SessionManager:
    return SessionManager(client=fake_redis, settings=settings)


@pytest.fixture
def games(fake_redis, settings) -> GameCollection:
    return GameCollection(client=fake_redis, settings=settings)


@pytest.fixture
def course_service(provider, sessions, games) -> CourseService:
    return CourseService(provider=provider, sessions=sessions, games=games)
