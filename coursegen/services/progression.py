"""
Progression Engine

Per sub-topic state machine:

    Locked -> Unlocked -> Completed (terminal)

Every operation takes a Course snapshot and returns a new one; the
input is never mutated, so a failed operation leaves nothing
half-written and readers never see a partially updated tree.
"""

from typing import NamedTuple, Optional, Tuple

from coursegen.errors import InvalidTransition
from coursegen.logging_config import get_logger
from coursegen.schemas import Course, Module, Syllabus, SubTopic

logger = get_logger(__name__)


class ProgressionResult(NamedTuple):
    course: Course
    completed_module: Optional[str]  # Title of a module that just completed


def bootstrap_course(syllabus: Syllabus) -> Course:
    """
    Build a fresh course from a syllabus.

    Nothing starts unlocked except the very first sub-topic of the
    very first module.
    """
    course = Course(
        title=syllabus.title,
        modules=[
            Module(
                title=m.title,
                sub_topics=[
                    SubTopic(title=s.title, description=s.description)
                    for s in m.sub_topics
                ],
            )
            for m in syllabus.modules
        ],
    )
    if course.modules and course.modules[0].sub_topics:
        course.modules[0].sub_topics[0].is_unlocked = True
    return course


def frontier(course: Course) -> Optional[Tuple[int, int]]:
    """Position of the unlocked-but-incomplete sub-topic, or None when finished."""
    for m, module in enumerate(course.modules):
        for s, sub_topic in enumerate(module.sub_topics):
            if sub_topic.is_unlocked and not sub_topic.is_completed:
                return m, s
    return None


def is_finished(course: Course) -> bool:
    return all(module.is_completed for module in course.modules)


class ProgressionEngine:
    """Applies quiz passes to a course snapshot."""

    def record_quiz_pass(
        self,
        course: Course,
        module_index: int,
        sub_topic_index: int,
    ) -> ProgressionResult:
        """
        Complete a sub-topic and advance the frontier.

        Steps, applied to a copy:
        1. Mark the sub-topic completed
        2. Unlock the next sub-topic, or the first one of the next module
        3. Recompute module completion

        Raises:
            InvalidTransition: sub-topic is still locked or already completed
            CourseNotFound: indices out of range
        """
        current = course.sub_topic(module_index, sub_topic_index)
        if not current.is_unlocked:
            raise InvalidTransition(f"Sub-topic {current.title!r} is locked")
        if current.is_completed:
            raise InvalidTransition(f"Sub-topic {current.title!r} is already completed")

        updated = course.model_copy(deep=True)
        module = updated.modules[module_index]

        module.sub_topics[sub_topic_index].is_completed = True

        next_index = sub_topic_index + 1
        if next_index < len(module.sub_topics):
            module.sub_topics[next_index].is_unlocked = True
        elif module_index + 1 < len(updated.modules):
            next_module = updated.modules[module_index + 1]
            if next_module.sub_topics:
                next_module.sub_topics[0].is_unlocked = True
        else:
            logger.info("Course %r finished", updated.title)

        completed_module = None
        if not module.is_completed and all(s.is_completed for s in module.sub_topics):
            module.is_completed = True
            completed_module = module.title
            logger.info("Module %r completed", module.title)

        return ProgressionResult(updated, completed_module)
