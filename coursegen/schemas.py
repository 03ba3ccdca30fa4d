"""
Course data model (Pydantic).

Python attributes are snake_case; the wire format shared with the
LLM and the HTTP API is camelCase (subTopics, isUnlocked, ...).
"""

from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, model_validator
from pydantic.alias_generators import to_camel

from coursegen.errors import CourseNotFound

QUIZ_LENGTH = 10
OPTIONS_PER_QUESTION = 4
MIN_GAME_ITEMS = 5


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",  # LLMs add fields we don't use
    )


# =============================================================================
# QUESTIONS
# =============================================================================

class MultipleChoice(CamelModel):
    """A question with exactly four options, one of them correct."""

    question: str
    options: List[str] = Field(min_length=OPTIONS_PER_QUESTION, max_length=OPTIONS_PER_QUESTION)
    correct_answer: str

    @model_validator(mode="after")
    def correct_answer_is_an_option(self):
        if self.correct_answer not in self.options:
            raise ValueError(f"correctAnswer {self.correct_answer!r} is not one of the options")
        return self


class QuizQuestion(MultipleChoice):
    """Single quiz question."""


class InteractiveCheck(MultipleChoice):
    """Quick comprehension check embedded in a tutorial."""


# =============================================================================
# TUTORIAL
# =============================================================================

class CoreConcept(CamelModel):
    title: str
    explanation: str  # Markdown
    image_url: Optional[str] = None


class TutorialContent(CamelModel):
    """Generated tutorial. Immutable once fetched."""

    introduction: str  # Markdown
    intro_image_url: Optional[str] = None
    core_concepts: List[CoreConcept] = Field(min_length=1)
    key_takeaway: str  # Markdown
    interactive_check: InteractiveCheck


# =============================================================================
# COURSE
# =============================================================================

class SubTopic(CamelModel):
    title: str
    description: str
    tutorial_content: Optional[TutorialContent] = None
    quiz: Optional[List[QuizQuestion]] = None
    is_unlocked: bool = False
    is_completed: bool = False

    @property
    def has_content(self) -> bool:
        return self.tutorial_content is not None and self.quiz is not None


class Module(CamelModel):
    title: str
    sub_topics: List[SubTopic]
    is_completed: bool = False


class Course(CamelModel):
    title: str
    modules: List[Module]

    def module(self, module_index: int) -> Module:
        if not 0 <= module_index < len(self.modules):
            raise CourseNotFound(f"No module at index {module_index}")
        return self.modules[module_index]

    def sub_topic(self, module_index: int, sub_topic_index: int) -> SubTopic:
        module = self.module(module_index)
        if not 0 <= sub_topic_index < len(module.sub_topics):
            raise CourseNotFound(
                f"No sub-topic at index {sub_topic_index} in module {module_index}"
            )
        return module.sub_topics[sub_topic_index]


# =============================================================================
# SYLLABUS (provider response, before bootstrap)
# =============================================================================

class SyllabusSubTopic(CamelModel):
    title: str
    description: str


class SyllabusModule(CamelModel):
    title: str
    sub_topics: List[SyllabusSubTopic] = Field(min_length=1)


class Syllabus(CamelModel):
    title: str
    modules: List[SyllabusModule]


class GeneratedQuiz(CamelModel):
    questions: List[QuizQuestion]


class GeneratedAdvice(CamelModel):
    advice: str


# =============================================================================
# GAMES (tagged union on gameType)
# =============================================================================

class MatchingPair(CamelModel):
    term: str
    definition: str


class BlankSentence(CamelModel):
    sentence: str  # Contains "___" where the answer goes
    answer: str


class TrueFalseStatement(CamelModel):
    statement: str
    is_true: bool


class MatchingGame(CamelModel):
    game_type: Literal["matching"]
    title: str
    instructions: str
    data: List[MatchingPair] = Field(min_length=MIN_GAME_ITEMS)


class FillInTheBlanksGame(CamelModel):
    game_type: Literal["fill-in-the-blanks"]
    title: str
    instructions: str
    data: List[BlankSentence] = Field(min_length=MIN_GAME_ITEMS)


class TrueFalseGame(CamelModel):
    game_type: Literal["true-false"]
    title: str
    instructions: str
    data: List[TrueFalseStatement] = Field(min_length=MIN_GAME_ITEMS)


Game = Annotated[
    Union[MatchingGame, FillInTheBlanksGame, TrueFalseGame],
    Field(discriminator="game_type"),
]
GameAdapter: TypeAdapter = TypeAdapter(Game)


# =============================================================================
# QUIZ ATTEMPTS
# =============================================================================

class QuizAttempt(CamelModel):
    """Learner's selections for the quiz currently open."""

    module_index: int
    sub_topic_index: int
    answers: Dict[int, str] = Field(default_factory=dict)
    submitted: bool = False
    score: int = 0


class WrongAnswer(CamelModel):
    question: str
    wrong_answer: str
    correct_answer: str


class QuizResult(CamelModel):
    score: int
    total: int
    passed: bool
    wrong_answers: List[WrongAnswer]
    advice: str


# =============================================================================
# API BODIES
# =============================================================================

class TopicRequest(CamelModel):
    topic: str = Field(min_length=1, max_length=200)


class AnswerRequest(CamelModel):
    option: str
