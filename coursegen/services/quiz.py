"""
Quiz Service

Scores quiz attempts and fetches study advice with graceful fallback.

This separation of concerns means:
- LLM service handles API communication
- Quiz service handles scoring, attempt rules and fallback
- Router stays clean and simple
"""

from typing import Dict, List, Optional, Tuple

from coursegen.data.prompts import ADVICE_FALLBACKS
from coursegen.errors import CourseGenError, InvalidTransition
from coursegen.logging_config import get_logger
from coursegen.schemas import QuizAttempt, QuizQuestion, WrongAnswer
from coursegen.services.llm import ContentProvider

logger = get_logger(__name__)

PASS_THRESHOLD = 7  # correct answers out of QUIZ_LENGTH


def score_answers(
    quiz: List[QuizQuestion],
    answers: Dict[int, str],
) -> Tuple[int, List[WrongAnswer]]:
    """
    Count exact matches against each question's correct answer.

    Returns:
        (score, wrong_answers) where unanswered questions count as wrong
    """
    score = 0
    wrong = []
    for index, question in enumerate(quiz):
        selected = answers.get(index)
        if selected == question.correct_answer:
            score += 1
        else:
            wrong.append(WrongAnswer(
                question=question.question,
                wrong_answer=selected or "",
                correct_answer=question.correct_answer,
            ))
    return score, wrong


def has_passed(score: int) -> bool:
    return score >= PASS_THRESHOLD


class QuizService:
    """
    Manages quiz attempts and advice.

    Attempt rules:
    1. Selections can change until the quiz is submitted
    2. Submitting requires every question answered
    3. Retry clears selections; the same questions are reused
    """

    def __init__(self, provider: ContentProvider):
        self.provider = provider

    def start_attempt(self, module_index: int, sub_topic_index: int) -> QuizAttempt:
        return QuizAttempt(module_index=module_index, sub_topic_index=sub_topic_index)

    def select_answer(
        self,
        attempt: QuizAttempt,
        quiz: List[QuizQuestion],
        question_index: int,
        option: str,
    ) -> QuizAttempt:
        if attempt.submitted:
            raise InvalidTransition("Quiz already submitted; retry to change answers")
        if not 0 <= question_index < len(quiz):
            raise InvalidTransition(f"No question at index {question_index}")
        if option not in quiz[question_index].options:
            raise InvalidTransition(f"{option!r} is not an option for question {question_index + 1}")

        answers = dict(attempt.answers)
        answers[question_index] = option
        return attempt.model_copy(update={"answers": answers})

    def submit(self, attempt: QuizAttempt, quiz: List[QuizQuestion]) -> Tuple[QuizAttempt, List[WrongAnswer]]:
        if attempt.submitted:
            raise InvalidTransition("Quiz already submitted")
        if len(attempt.answers) != len(quiz):
            raise InvalidTransition(
                f"Answer all questions before submitting ({len(attempt.answers)}/{len(quiz)})"
            )

        score, wrong = score_answers(quiz, attempt.answers)
        submitted = attempt.model_copy(update={"submitted": True, "score": score})
        return submitted, wrong

    def retry(self, attempt: QuizAttempt) -> QuizAttempt:
        return self.start_attempt(attempt.module_index, attempt.sub_topic_index)

    async def get_advice(self, sub_topic_title: str, wrong_answers: List[WrongAnswer]) -> str:
        """
        Get study advice, with automatic fallback.

        Never raises: a failed request degrades to a static message
        so the retry flow is never blocked.
        """
        if not wrong_answers:
            return ADVICE_FALLBACKS["all_correct"]

        try:
            advice: Optional[str] = await self.provider.generate_quiz_advice(sub_topic_title, wrong_answers)
        except CourseGenError as e:
            logger.warning("Advice generation failed for %r: %s", sub_topic_title, e)
            advice = None

        return advice or ADVICE_FALLBACKS["error_generic"]
