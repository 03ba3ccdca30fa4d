"""
LLM Service (Content Provider)

Uses the Groq API for fast inference. Every request is a prompt plus
a JSON schema; every response is parsed and validated against the
matching Pydantic model before it can reach the course model.

Key Design Decisions:
1. Async-first: tutorial and quiz requests are fanned out concurrently
2. Structured output: JSON mode + Pydantic validation
3. Fail loudly: transport problems raise ProviderUnavailable, schema
   violations raise MalformedResponse; callers decide the fallback
4. Timeout: hard per-call limit from settings
"""

import asyncio
import json
import time
from functools import lru_cache
from typing import List, Optional, Protocol, TypeVar

from groq import APIError, AsyncGroq
from pydantic import BaseModel, TypeAdapter, ValidationError

from coursegen.config import Settings, get_settings
from coursegen.data import prompts
from coursegen.data.prompts import ADVICE_FALLBACKS
from coursegen.errors import MalformedResponse, ProviderUnavailable
from coursegen.logging_config import get_logger
from coursegen.schemas import (
    Game,
    GameAdapter,
    GeneratedAdvice,
    GeneratedQuiz,
    QUIZ_LENGTH,
    QuizQuestion,
    Syllabus,
    TutorialContent,
    WrongAnswer,
)

logger = get_logger(__name__)

T = TypeVar("T")


class ContentProvider(Protocol):
    """Request/response contract the course engine depends on."""

    async def generate_syllabus(self, topic: str) -> Syllabus: ...

    async def generate_tutorial(self, sub_topic_title: str, description: str) -> TutorialContent: ...

    async def generate_quiz(self, sub_topic_title: str) -> List[QuizQuestion]: ...

    async def generate_game(self, module_title: str) -> Game: ...

    async def generate_quiz_advice(self, sub_topic_title: str, wrong_answers: List[WrongAnswer]) -> str: ...


def strip_code_fences(raw_response: str) -> str:
    """Remove ```json ... ``` wrappers some models add despite JSON mode."""
    cleaned = raw_response.strip()
    if cleaned.startswith("```"):
        lines = cleaned.split("\n")
        if lines[0].startswith("```"):
            lines = lines[1:]
        if lines and lines[-1].strip() == "```":
            lines = lines[:-1]
        cleaned = "\n".join(lines).strip()
    return cleaned


def parse_response(raw_response: str, schema) -> T:
    """
    Parse an LLM response and validate it against a model or TypeAdapter.

    Raises:
        MalformedResponse: not JSON, or JSON of the wrong shape
    """
    cleaned = strip_code_fences(raw_response or "")
    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.warning("JSON parse error: %s; raw response: %.200s", e, cleaned)
        raise MalformedResponse("Invalid JSON received from the content provider") from e

    try:
        if isinstance(schema, TypeAdapter):
            return schema.validate_python(parsed)
        if isinstance(schema, type) and issubclass(schema, BaseModel):
            return schema.model_validate(parsed)
    except ValidationError as e:
        logger.warning("Validation error: %s", e)
        raise MalformedResponse(f"Response does not match the expected schema: {e.error_count()} errors") from e
    raise TypeError(f"Unsupported schema {schema!r}")


class LLMService:
    """
    Handles all LLM interactions for the application.

    Supports:
    - Syllabus generation
    - Tutorial generation
    - Quiz generation
    - Game generation
    - Quiz advice
    """

    def __init__(self, settings: Optional[Settings] = None, client: Optional[AsyncGroq] = None):
        settings = settings or get_settings()
        self.client = client or AsyncGroq(api_key=settings.groq_api_key)
        self.model = settings.llm_model
        self.tutorial_model = settings.tutorial_model
        self.timeout = settings.llm_timeout
        self.max_tokens = settings.llm_max_tokens
        self.tutorial_max_tokens = settings.tutorial_max_tokens
        self.temperature = settings.llm_temperature

    async def _complete_json(
        self,
        prompt: str,
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
    ) -> str:
        """Send one JSON-mode completion request and return the raw text."""
        model = model or self.model
        start = time.monotonic()

        try:
            async with asyncio.timeout(self.timeout):
                response = await self.client.chat.completions.create(
                    model=model,
                    messages=[
                        {"role": "system", "content": prompts.SYSTEM_PROMPT},
                        {"role": "user", "content": prompt},
                    ],
                    max_tokens=max_tokens or self.max_tokens,
                    temperature=self.temperature,
                    response_format={"type": "json_object"},
                )
        except asyncio.TimeoutError as e:
            logger.warning("Timeout after %ss (model=%s)", self.timeout, model)
            raise ProviderUnavailable(f"Content provider timed out after {self.timeout}s") from e
        except APIError as e:
            logger.warning("Groq API error: %s: %s", type(e).__name__, e)
            raise ProviderUnavailable(f"Content provider error: {type(e).__name__}") from e

        elapsed_ms = round((time.monotonic() - start) * 1000)
        logger.debug("Completion from %s in %sms", model, elapsed_ms)

        if not response.choices or not response.choices[0].message.content:
            raise MalformedResponse("Content provider returned an empty response")
        return response.choices[0].message.content

    async def generate_syllabus(self, topic: str) -> Syllabus:
        raw = await self._complete_json(prompts.syllabus_prompt(topic))
        syllabus = parse_response(raw, Syllabus)
        logger.info("Generated syllabus %r with %d modules", syllabus.title, len(syllabus.modules))
        return syllabus

    async def generate_tutorial(self, sub_topic_title: str, description: str) -> TutorialContent:
        raw = await self._complete_json(
            prompts.tutorial_prompt(sub_topic_title, description),
            model=self.tutorial_model,
            max_tokens=self.tutorial_max_tokens,
        )
        return parse_response(raw, TutorialContent)

    async def generate_quiz(self, sub_topic_title: str) -> List[QuizQuestion]:
        """
        Generate a quiz for a sub-topic.

        Returns exactly QUIZ_LENGTH questions. Extra questions are
        dropped; fewer than QUIZ_LENGTH is a malformed response.
        """
        raw = await self._complete_json(prompts.quiz_prompt(sub_topic_title))
        quiz = parse_response(raw, GeneratedQuiz)

        if len(quiz.questions) < QUIZ_LENGTH:
            logger.warning(
                "Insufficient questions generated for %r: %d", sub_topic_title, len(quiz.questions)
            )
            raise MalformedResponse(
                f"Expected {QUIZ_LENGTH} questions, got {len(quiz.questions)}"
            )
        return quiz.questions[:QUIZ_LENGTH]

    async def generate_game(self, module_title: str) -> Game:
        raw = await self._complete_json(prompts.game_prompt(module_title))
        game = parse_response(raw, GameAdapter)
        logger.info("Generated %s game %r for module %r", game.game_type, game.title, module_title)
        return game

    async def generate_quiz_advice(self, sub_topic_title: str, wrong_answers: List[WrongAnswer]) -> str:
        """Short study advice for the questions a learner got wrong."""
        if not wrong_answers:
            return ADVICE_FALLBACKS["all_correct"]

        raw = await self._complete_json(prompts.advice_prompt(sub_topic_title, wrong_answers))
        return parse_response(raw, GeneratedAdvice).advice

    async def health_check(self) -> dict:
        """
        Test LLM connectivity and response time.
        Useful for debugging and monitoring.
        """
        start = time.monotonic()

        try:
            async with asyncio.timeout(5):
                await self.client.chat.completions.create(
                    model=self.model,
                    messages=[{"role": "user", "content": "Say 'OK' only."}],
                    max_tokens=5,
                )
        except (APIError, asyncio.TimeoutError) as e:
            return {"status": "error", "healthy": False, "error": str(e) or type(e).__name__}

        return {
            "status": "healthy",
            "healthy": True,
            "response_time_ms": round((time.monotonic() - start) * 1000),
            "model": self.model,
        }


@lru_cache()
def get_llm_service() -> LLMService:
    """Single instance to reuse the HTTP connection pool."""
    return LLMService()
