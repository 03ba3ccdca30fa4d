"""
Course Router - JSON API for the learning flow

Flow:
    POST /api/courses                                  → generate syllabus
    POST .../modules/{m}/subtopics/{s}/open            → load tutorial + quiz
    PUT  .../modules/{m}/subtopics/{s}/quiz/answers/{q} → select an option
    POST .../modules/{m}/subtopics/{s}/quiz/submit     → score + advice
    POST .../modules/{m}/subtopics/{s}/quiz/retry      → clear selections
    POST .../modules/{m}/subtopics/{s}/complete        → progress, maybe a game

Domain errors propagate to the exception handlers in main.py.
"""

import uuid

from fastapi import APIRouter, BackgroundTasks, Depends

from coursegen.logging_config import session_id_var
from coursegen.schemas import AnswerRequest, Course, GameAdapter, TopicRequest
from coursegen.services.course import CourseService, get_course_service
from coursegen.services.progression import frontier, is_finished

router = APIRouter(prefix="/api/courses")

SUBTOPIC_PATH = "/{session_id}/modules/{module_index}/subtopics/{sub_topic_index}"


async def bind_session(session_id: str) -> str:
    """Path dependency: tag log records with the session id."""
    session_id_var.set(session_id)
    return session_id


def course_view(session_id: str, course: Course) -> dict:
    position = frontier(course)
    return {
        "sessionId": session_id,
        "course": course.model_dump(mode="json", by_alias=True),
        "frontier": (
            {"moduleIndex": position[0], "subTopicIndex": position[1]}
            if position else None
        ),
        "finished": is_finished(course),
    }


# =============================================================================
# COURSE
# =============================================================================

@router.post("", status_code=201)
async def create_course(
    body: TopicRequest,
    service: CourseService = Depends(get_course_service),
):
    """Generate a syllabus for a topic and start a new session."""
    session_id = uuid.uuid4().hex
    session_id_var.set(session_id)
    course = await service.start_course(session_id, body.topic.strip())
    return course_view(session_id, course)


@router.get("/{session_id}")
async def get_course(
    session_id: str = Depends(bind_session),
    service: CourseService = Depends(get_course_service),
):
    return course_view(session_id, service.get_course(session_id))


@router.get("/{session_id}/games")
async def list_games(
    session_id: str = Depends(bind_session),
    service: CourseService = Depends(get_course_service),
):
    games = service.list_games(session_id)
    return {"games": [GameAdapter.dump_python(g, mode="json", by_alias=True) for g in games]}


# =============================================================================
# SUB-TOPICS
# =============================================================================

@router.post(SUBTOPIC_PATH + "/open")
async def open_sub_topic(
    module_index: int,
    sub_topic_index: int,
    session_id: str = Depends(bind_session),
    service: CourseService = Depends(get_course_service),
):
    """Load tutorial and quiz on first open; later opens are free."""
    sub_topic = await service.open_sub_topic(session_id, module_index, sub_topic_index)
    return {"subTopic": sub_topic.model_dump(mode="json", by_alias=True)}


@router.put(SUBTOPIC_PATH + "/quiz/answers/{question_index}")
async def select_answer(
    module_index: int,
    sub_topic_index: int,
    question_index: int,
    body: AnswerRequest,
    session_id: str = Depends(bind_session),
    service: CourseService = Depends(get_course_service),
):
    attempt = await service.select_answer(
        session_id, module_index, sub_topic_index, question_index, body.option
    )
    return {"attempt": attempt.model_dump(mode="json", by_alias=True)}


@router.post(SUBTOPIC_PATH + "/quiz/submit")
async def submit_quiz(
    module_index: int,
    sub_topic_index: int,
    session_id: str = Depends(bind_session),
    service: CourseService = Depends(get_course_service),
):
    result = await service.submit_quiz(session_id, module_index, sub_topic_index)
    return {"result": result.model_dump(mode="json", by_alias=True)}


@router.post(SUBTOPIC_PATH + "/quiz/retry")
async def retry_quiz(
    module_index: int,
    sub_topic_index: int,
    session_id: str = Depends(bind_session),
    service: CourseService = Depends(get_course_service),
):
    attempt = await service.retry_quiz(session_id, module_index, sub_topic_index)
    return {"attempt": attempt.model_dump(mode="json", by_alias=True)}


@router.post(SUBTOPIC_PATH + "/complete")
async def complete_sub_topic(
    module_index: int,
    sub_topic_index: int,
    background_tasks: BackgroundTasks,
    session_id: str = Depends(bind_session),
    service: CourseService = Depends(get_course_service),
):
    """
    Record a passed quiz and advance the learner.

    When a module completes, game generation is queued in the
    background; its outcome shows up in /games, never here.
    """
    result = await service.complete_sub_topic(session_id, module_index, sub_topic_index)

    if result.completed_module:
        background_tasks.add_task(
            service.generate_game,
            session_id,
            result.completed_module,
        )

    view = course_view(session_id, result.course)
    view["completedModule"] = result.completed_module
    return view
