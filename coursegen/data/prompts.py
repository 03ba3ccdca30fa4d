"""
Prompt templates and canned messages.

Each prompt embeds the JSON schema of the model its response is
validated against, so the LLM and the parser share one contract.

Structure:
- *_PROMPT builders: one per content request
- ADVICE_FALLBACKS: static messages when advice can't be generated
"""

import json
from typing import List

from pydantic import BaseModel, TypeAdapter

from coursegen.schemas import (
    GameAdapter,
    GeneratedAdvice,
    GeneratedQuiz,
    QUIZ_LENGTH,
    MIN_GAME_ITEMS,
    Syllabus,
    TutorialContent,
    WrongAnswer,
)


SYSTEM_PROMPT = (
    "You are an expert educator and curriculum designer. "
    "Always respond with a single valid JSON object only."
)


def _schema(model) -> str:
    """Render the JSON schema for a model or TypeAdapter."""
    if isinstance(model, TypeAdapter):
        schema = model.json_schema(by_alias=True)
    elif isinstance(model, type) and issubclass(model, BaseModel):
        schema = model.model_json_schema(by_alias=True)
    else:
        raise TypeError(f"Cannot build a schema for {model!r}")
    return json.dumps(schema, separators=(",", ":"))


def _output_format(model) -> str:
    return f"""OUTPUT FORMAT:
Return ONLY a valid JSON object matching this JSON schema:
{_schema(model)}

IMPORTANT:
- Output ONLY the JSON object
- No markdown fences, no explanation, no extra text"""


# =============================================================================
# CONTENT PROMPTS
# =============================================================================

def syllabus_prompt(topic: str) -> str:
    return f"""Given the topic "{topic}", create a comprehensive syllabus for an online course.

RULES:
- Structure the syllabus into logical modules, ordered from fundamentals to advanced
- Each module contains several specific sub-topics
- Each sub-topic has a title and a brief, one-sentence description

{_output_format(Syllabus)}"""


def tutorial_prompt(sub_topic_title: str, description: str) -> str:
    return f"""Create a detailed, engaging, structured tutorial for the sub-topic: "{sub_topic_title}".
The sub-topic is described as: "{description}".

SECTIONS:
1. introduction: a brief, engaging paragraph introducing the topic.
2. introImageUrl: a relevant image URL formatted as 'https://source.unsplash.com/1200x600/?<search-keywords>'.
3. coreConcepts: 2-4 core concepts, each with a clear 'title', a detailed 'explanation' and an 'imageUrl' formatted the same way.
4. keyTakeaway: a concise summary of the most important point.
5. interactiveCheck: one multiple-choice question with exactly 4 options; 'correctAnswer' must exactly match one option.

Use Markdown (**bold**, *italics*, '-' bullet lists, `code`) in introduction, explanation and keyTakeaway.
Write for a beginner.

{_output_format(TutorialContent)}"""


def quiz_prompt(sub_topic_title: str) -> str:
    return f"""Based on the topic "{sub_topic_title}", create a {QUIZ_LENGTH}-question multiple-choice quiz to test understanding.

RULES:
- Exactly {QUIZ_LENGTH} questions
- Each question has exactly 4 options and only one correct answer
- 'correctAnswer' must exactly match one of the strings in 'options'

{_output_format(GeneratedQuiz)}"""


def game_prompt(module_title: str) -> str:
    return f"""You are a creative educational game designer. Based on the learning module "{module_title}", design a simple, interactive learning game.

RULES:
- Randomly choose one gameType: "matching", "fill-in-the-blanks" or "true-false"
- Give the game a title and brief instructions
- Provide at least {MIN_GAME_ITEMS} data items
- "matching": data items are {{term, definition}}
- "fill-in-the-blanks": data items are {{sentence, answer}}; use '___' for the blank
- "true-false": data items are {{statement, isTrue}}

{_output_format(GameAdapter)}"""


def advice_prompt(sub_topic_title: str, wrong_answers: List[WrongAnswer]) -> str:
    mistakes = "\n".join(
        f'- Q: "{w.question}" | answered: "{w.wrong_answer}" | correct: "{w.correct_answer}"'
        for w in wrong_answers
    )
    return f"""A learner just took a quiz on "{sub_topic_title}" and got these questions wrong:
{mistakes}

Write short, encouraging study advice (2-4 sentences) that points at the concepts
they misunderstood. Don't just repeat the correct answers.

{_output_format(GeneratedAdvice)}"""


# =============================================================================
# FALLBACKS
# =============================================================================

ADVICE_FALLBACKS = {
    "all_correct": "Perfect score! You've mastered this topic. Keep up the great work!",
    "error_generic": "Review the tutorial sections for the questions you missed, then try the quiz again.",
}
