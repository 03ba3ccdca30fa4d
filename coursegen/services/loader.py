"""
Content Loader

Makes sure a sub-topic's tutorial and quiz are fetched at most once,
together, before the learner can open it.
"""

import asyncio

from coursegen.errors import ContentLoadFailed, CourseGenError, InvalidTransition
from coursegen.logging_config import get_logger
from coursegen.schemas import Course
from coursegen.services.llm import ContentProvider

logger = get_logger(__name__)


class ContentLoader:
    """Fetches tutorial + quiz for a sub-topic on first open."""

    def __init__(self, provider: ContentProvider):
        self.provider = provider

    async def ensure_content(self, course: Course, module_index: int, sub_topic_index: int) -> Course:
        """
        Return a course snapshot in which the sub-topic has content.

        Already loaded: the same course is returned and no request
        is made. Otherwise tutorial and quiz are requested
        concurrently and written as one pair into a copy.

        Raises:
            InvalidTransition: the sub-topic is still locked
            ContentLoadFailed: either request failed; course untouched
        """
        sub_topic = course.sub_topic(module_index, sub_topic_index)
        if not sub_topic.is_unlocked:
            raise InvalidTransition(f"Sub-topic {sub_topic.title!r} is locked")
        if sub_topic.has_content:
            return course

        logger.info("Loading content for %r", sub_topic.title)
        try:
            tutorial, quiz = await asyncio.gather(
                self.provider.generate_tutorial(sub_topic.title, sub_topic.description),
                self.provider.generate_quiz(sub_topic.title),
            )
        except CourseGenError as e:
            logger.warning("Content load failed for %r: %s", sub_topic.title, e)
            raise ContentLoadFailed(f"Failed to load content for {sub_topic.title!r}") from e

        updated = course.model_copy(deep=True)
        target = updated.modules[module_index].sub_topics[sub_topic_index]
        target.tutorial_content = tutorial
        target.quiz = list(quiz)
        return updated
