"""
Shapes the generation model is asked to produce.

Each task kind decodes its raw model output into one of these models. The
validation aliases are the JSON keys named in the generation prompts; the
field names are what gets persisted.
"""

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    PrivateAttr,
    field_validator,
    model_validator,
)

OPTION_COUNT = 4
OPTION_LABELS = ("A", "B", "C", "D")

FALLBACK_MATERIAL_SUMMARY = (
    "Study material processed successfully. Please review the uploaded content."
)


class _GeneratedSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)


class GeneratedQuestion(_GeneratedSchema):
    """One multiple-choice question."""

    text: str = Field(..., min_length=1, validation_alias=AliasChoices("question", "text"))
    options: dict[str, str]
    correct_label: str = Field(
        ..., min_length=1, validation_alias=AliasChoices("correct_answer", "correct_label")
    )
    explanation: str = ""
    topic: str = ""
    difficulty_rationale: str = Field(
        "", validation_alias=AliasChoices("difficulty_reason", "difficulty_rationale")
    )

    @field_validator("options")
    @classmethod
    def _exactly_four_options(cls, options: dict[str, str]) -> dict[str, str]:
        if len(options) != OPTION_COUNT:
            raise ValueError(f"expected {OPTION_COUNT} options, got {len(options)}")
        return {label.strip(): text for label, text in options.items()}

    @model_validator(mode="after")
    def _correct_label_is_an_option(self) -> "GeneratedQuestion":
        if self.correct_label not in self.options:
            raise ValueError(
                f"correct answer {self.correct_label!r} is not one of {sorted(self.options)}"
            )
        return self


class GeneratedTest(_GeneratedSchema):
    """Decoded test-generation output."""

    questions: list[GeneratedQuestion] = Field(..., min_length=1)


class Flashcard(_GeneratedSchema):
    """Front/back study card."""

    front: str = Field(..., min_length=1)
    back: str = Field(..., min_length=1)
    topic: str = ""


class GeneratedMaterial(_GeneratedSchema):
    """Decoded material-ingestion output."""

    summary: str = Field(..., min_length=1)
    flashcards: list[Flashcard] = Field(default_factory=list)
    key_topics: list[str] = Field(
        default_factory=list, validation_alias=AliasChoices("key_topics", "keyTopics")
    )
    _is_fallback: bool = PrivateAttr(default=False)

    @property
    def is_fallback(self) -> bool:
        """True only for the placeholder built by fallback(); never set from model output."""
        return self._is_fallback

    @classmethod
    def fallback(cls) -> "GeneratedMaterial":
        """Result used when the model output could not be decoded."""
        material = cls(summary=FALLBACK_MATERIAL_SUMMARY, flashcards=[], key_topics=[])
        material._is_fallback = True
        return material
