"""
Model request construction for each task kind.

Pure functions: no I/O, no settings lookups. The JSON keys spelled out in
the test and material prompts are the validation aliases of the models in
studybuddy.schemas.generation; keep the two in step.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum

from studybuddy.db.models import ChatMessage, ChatRole, Difficulty, Language, Subject
from studybuddy.schemas.generation import OPTION_LABELS

TRAILING_CONTEXT_WINDOW = 5
TRUNCATION_MARKER = "\n\n[... content truncated ...]"


class TaskKind(str, Enum):
    """Kind of generation task; fixes both prompt shape and output schema."""

    CHAT = "chat-turn"
    TEST = "test-generation"
    MATERIAL = "material-ingestion"


@dataclass(frozen=True)
class PromptPayload:
    """Everything the model gateway needs for one call."""

    task_kind: TaskKind
    system: str
    messages: list[dict[str, str]] = field(default_factory=list)
    max_tokens: int = 1500
    temperature: float = 0.7


_LANGUAGE_INSTRUCTIONS = {
    Language.ENGLISH: "Respond in English.",
    Language.HINDI: "Respond primarily in Hindi, keeping key technical terms in English.",
    Language.MIXED: (
        "Respond in a natural mix of Hindi and English; both languages may "
        "appear within the same answer."
    ),
}

_SUBJECT_GUIDELINES = """Subject-specific guidelines:
- Physics: Include numerical problems, concepts, laws
- Chemistry: Cover organic, inorganic, physical chemistry
- Mathematics: Include calculus, algebra, geometry, trigonometry"""


def _value(member: Enum | str | None) -> str | None:
    if member is None:
        return None
    return member.value if isinstance(member, Enum) else member


def build_tutor_prompt(
    subject: Subject | str | None,
    language: Language | str,
    trailing_messages: Sequence[ChatMessage],
) -> PromptPayload:
    """
    Tutor prompt for one chat turn.

    trailing_messages must end with the new user message. Everything before
    it is cut to the TRAILING_CONTEXT_WINDOW most recent messages; older ones
    are dropped without summarising.
    """
    if not trailing_messages:
        raise ValueError("trailing_messages must include the new user message")

    *history, latest = trailing_messages
    window = list(history[-TRAILING_CONTEXT_WINDOW:])
    # The Messages API expects the conversation to open with a user turn.
    while window and window[0].role != ChatRole.USER.value:
        window.pop(0)

    language = Language(_value(language))
    subject_value = _value(subject)
    subject_line = f"Focus on {subject_value}" if subject_value else "General JEE topics"

    system = f"""You are an expert AI tutor for JEE (Joint Entrance Examination) preparation in India. You specialize in Physics, Chemistry, and Mathematics.

Key guidelines:
1. Provide clear, step-by-step explanations for all problems
2. Use Indian educational context and examples
3. Include relevant formulas and concepts
4. Encourage problem-solving thinking
5. Be supportive and motivating

Language preference: {language.value}
{_LANGUAGE_INSTRUCTIONS[language]}

Subject context: {subject_line}

Always end responses with an encouraging note and ask if the student needs clarification on any part."""

    messages = [{"role": msg.role, "content": msg.content} for msg in window]
    messages.append({"role": ChatRole.USER.value, "content": latest.content})

    return PromptPayload(
        task_kind=TaskKind.CHAT,
        system=system,
        messages=messages,
        max_tokens=1500,
        temperature=0.7,
    )


def build_test_generation_prompt(
    subject: Subject | str,
    difficulty: Difficulty | str,
    question_count: int,
) -> PromptPayload:
    """Prompt asking for exactly question_count multiple-choice questions as JSON."""
    if question_count < 1:
        raise ValueError("question_count must be positive")

    subject_value = _value(subject)
    difficulty_value = _value(difficulty)
    labels = ", ".join(OPTION_LABELS)

    system = f"""You are an expert JEE question generator. Generate exactly {question_count} multiple choice questions for {subject_value} at {difficulty_value} level.

For each question, provide:
1. Question text
2. Exactly 4 options labeled {labels}
3. Correct answer (one of the option labels)
4. Detailed explanation
5. Topic/concept covered
6. Difficulty justification

Respond with a single JSON document and nothing else: no prose before or after it and no code fences. Use this structure:
{{
  "questions": [
    {{
      "question": "Question text here",
      "options": {{
        "A": "Option A text",
        "B": "Option B text",
        "C": "Option C text",
        "D": "Option D text"
      }},
      "correct_answer": "B",
      "explanation": "Detailed explanation of why B is correct",
      "topic": "Specific topic/concept",
      "difficulty_reason": "Why this is {difficulty_value} level"
    }}
  ]
}}

{_SUBJECT_GUIDELINES}

Ensure questions are:
- JEE Main/Advanced style
- Conceptually accurate
- Appropriately challenging for {difficulty_value} level
- Well-formatted with clear options"""

    return PromptPayload(
        task_kind=TaskKind.TEST,
        system=system,
        messages=[
            {
                "role": ChatRole.USER.value,
                "content": (
                    f"Generate {question_count} {difficulty_value} level {subject_value} "
                    "questions for JEE preparation."
                ),
            }
        ],
        max_tokens=4000,
        temperature=0.8,
    )


def build_material_prompt(
    extracted_text: str,
    subject: Subject | str | None = None,
    max_chars: int = 10000,
) -> PromptPayload:
    """Prompt asking for a summary, flashcards and key topics as JSON."""
    text = extracted_text[:max_chars]
    if len(extracted_text) > max_chars:
        text += TRUNCATION_MARKER

    subject_value = _value(subject)
    subject_line = (
        f"The material belongs to {subject_value}." if subject_value else "The subject is not specified."
    )

    system = f"""You are an AI study assistant that helps students create effective study materials from uploaded PDFs.

Your task is to:
1. Create a comprehensive summary of the content
2. Generate flashcards for key concepts
3. Identify important formulas and definitions

{subject_line}

Respond with a single JSON document and nothing else: no prose before or after it and no code fences. Use this structure:
{{
  "summary": "A comprehensive summary of the main concepts and topics covered",
  "flashcards": [
    {{
      "front": "Question or concept to remember",
      "back": "Answer or explanation",
      "topic": "Specific topic this relates to"
    }}
  ],
  "key_topics": ["List", "of", "main", "topics", "covered"]
}}

Focus on creating study materials that would be helpful for JEE preparation."""

    return PromptPayload(
        task_kind=TaskKind.MATERIAL,
        system=system,
        messages=[
            {
                "role": ChatRole.USER.value,
                "content": f"Please process this PDF content and create study materials:\n\n{text}",
            }
        ],
        max_tokens=2000,
        temperature=0.7,
    )
