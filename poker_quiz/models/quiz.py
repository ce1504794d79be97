"""Pydantic models for quiz definitions and results."""

import math
from enum import Enum
from typing import Annotated, Iterator, Literal, Union

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

# Quiz content is authored with camelCase keys (moduleInfo, correctAnswer, ...)
DEFINITION_CONFIG = {
    "alias_generator": to_camel,
    "populate_by_name": True,
    "frozen": True,
}

WEIGHT_TOLERANCE = 1e-6


class QuestionDifficulty(str, Enum):
    """Question difficulty levels."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class QuizMode(str, Enum):
    """The three ways a learner can take a quiz."""

    STANDARD = "standard"
    TIMED = "timed"
    SPEED = "speed"

    @property
    def is_timed(self) -> bool:
        """Whether this mode runs a countdown."""
        return self is not QuizMode.STANDARD

    @property
    def hints_visible(self) -> bool:
        """Speed mode suppresses hints and explanations entirely."""
        return self is not QuizMode.SPEED


class NextModule(BaseModel):
    """Pointer to the module a learner should take after passing."""

    model_config = DEFINITION_CONFIG

    id: str
    title: str


class ModuleInfo(BaseModel):
    """Metadata describing the module a quiz assesses."""

    model_config = DEFINITION_CONFIG

    id: str = Field(..., min_length=1, description="Module identifier, e.g. '1.1'")
    title: str = Field(..., min_length=1, description="Module title")
    category: str | None = Field(None, description="Curriculum category")
    phase: int | None = Field(None, ge=1, le=3, description="Curriculum phase")
    level: str | None = Field(None, description="Fundamental, Intermediate or Advanced")
    passing_score: float = Field(
        ...,
        ge=0,
        le=100,
        description="Minimum weighted percentage needed to pass",
    )
    estimated_time: str | None = Field(None, description="Human readable duration")
    timed_mode_minutes: float | None = Field(
        None, gt=0, description="Countdown for timed mode"
    )
    speed_mode_minutes: float | None = Field(
        None, gt=0, description="Countdown for speed mode"
    )
    prerequisites: list[str] = Field(default_factory=list)
    learning_outcomes: list[str] = Field(default_factory=list)
    next_module: NextModule | None = None


class BaseQuestion(BaseModel):
    """Fields shared by every question type."""

    model_config = DEFINITION_CONFIG

    id: str = Field(..., min_length=1, description="Unique question identifier")
    topic: str | None = Field(None, description="Curriculum topic")
    question: str = Field(..., min_length=1, description="The question text")
    explanation: str = Field("", description="Shown as a hint or after answering")
    difficulty: QuestionDifficulty = QuestionDifficulty.MEDIUM
    points: int | None = Field(None, ge=0)


class MultipleChoiceQuestion(BaseQuestion):
    """Pick one option; answered with the option index."""

    type: Literal["multiple-choice"] = "multiple-choice"
    options: list[str] = Field(..., min_length=2)
    correct_answer: int = Field(..., ge=0, strict=True)

    @model_validator(mode="after")
    def validate_correct_answer(self) -> "MultipleChoiceQuestion":
        """Ensure the correct answer indexes into the options."""
        if self.correct_answer >= len(self.options):
            raise ValueError(
                f"correctAnswer {self.correct_answer} is out of range for "
                f"{len(self.options)} options in question {self.id!r}"
            )
        return self


class ScenarioQuestion(MultipleChoiceQuestion):
    """A multiple-choice question framed by a hand narrative."""

    type: Literal["scenario"] = "scenario"
    scenario: str = Field(..., min_length=1)


class TrueFalseQuestion(BaseQuestion):
    """Answered with a boolean."""

    type: Literal["true-false"] = "true-false"
    correct_answer: bool = Field(..., strict=True)


class CalculationQuestion(BaseQuestion):
    """Numeric answer accepted anywhere inside an inclusive range."""

    type: Literal["calculation"] = "calculation"
    acceptable_range: tuple[float, float]
    correct_answer: float | None = None
    unit: str | None = None
    show_workspace: bool = False

    @field_validator("acceptable_range")
    @classmethod
    def validate_acceptable_range(cls, v: tuple[float, float]) -> tuple[float, float]:
        """Ensure the range is finite and ordered."""
        low, high = v
        if not (math.isfinite(low) and math.isfinite(high)):
            raise ValueError("acceptableRange bounds must be finite numbers")
        if low > high:
            raise ValueError(f"acceptableRange minimum {low} exceeds maximum {high}")
        return v


class QuickCalcQuestion(BaseQuestion):
    """Short free-text answer matched against a set of accepted strings."""

    type: Literal["quick-calc"] = "quick-calc"
    acceptable_answers: list[str] = Field(..., min_length=1)
    correct_answer: str | None = None
    time_limit: int | None = Field(None, gt=0)


Question = Annotated[
    Union[
        MultipleChoiceQuestion,
        ScenarioQuestion,
        TrueFalseQuestion,
        CalculationQuestion,
        QuickCalcQuestion,
    ],
    Field(discriminator="type"),
]


class QuizSection(BaseModel):
    """An ordered group of questions with a weight in the overall score."""

    model_config = {
        **DEFINITION_CONFIG,
        "json_schema_extra": {
            "example": {
                "id": "conceptual",
                "title": "Section A: Conceptual Understanding",
                "weight": 20,
                "questions": [
                    {
                        "id": "c1",
                        "type": "true-false",
                        "question": "Pot odds compare the pot to the cost of a call.",
                        "correctAnswer": True,
                    }
                ],
            }
        },
    }

    id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    description: str | None = None
    icon: str | None = None
    weight: float = Field(..., ge=0, description="Percentage contribution to the score")
    questions: list[Question]

    @field_validator("questions")
    @classmethod
    def validate_questions(cls, v: list) -> list:
        """A section without questions cannot be scored."""
        if not v:
            raise ValueError("Section must contain at least one question")
        return v

    @property
    def question_count(self) -> int:
        return len(self.questions)


class QuizDefinition(BaseModel):
    """A complete, validated quiz: module metadata plus ordered sections."""

    model_config = DEFINITION_CONFIG

    module_info: ModuleInfo
    sections: list[QuizSection] = Field(..., min_length=1)

    @model_validator(mode="after")
    def validate_structure(self) -> "QuizDefinition":
        """Check id uniqueness and that section weights add up to 100."""
        section_ids = [section.id for section in self.sections]
        duplicates = {sid for sid in section_ids if section_ids.count(sid) > 1}
        if duplicates:
            raise ValueError(f"Duplicate section ids: {sorted(duplicates)}")

        question_ids = [q.id for q in self.iter_questions()]
        duplicates = {qid for qid in question_ids if question_ids.count(qid) > 1}
        if duplicates:
            raise ValueError(f"Duplicate question ids: {sorted(duplicates)}")

        total_weight = sum(section.weight for section in self.sections)
        if abs(total_weight - 100) > WEIGHT_TOLERANCE:
            raise ValueError(f"Section weights must sum to 100, got {total_weight:g}")
        return self

    @property
    def total_questions(self) -> int:
        """Number of questions across all sections."""
        return sum(section.question_count for section in self.sections)

    def iter_questions(self) -> Iterator[BaseQuestion]:
        """Yield every question in traversal order."""
        for section in self.sections:
            yield from section.questions

    def get_section(self, section_id: str) -> QuizSection | None:
        return next((s for s in self.sections if s.id == section_id), None)

    def section_index(self, section_id: str) -> int:
        """Position of a section in traversal order, or -1."""
        for index, section in enumerate(self.sections):
            if section.id == section_id:
                return index
        return -1

    def get_question(self, question_id: str) -> BaseQuestion | None:
        return next((q for q in self.iter_questions() if q.id == question_id), None)


class SectionResult(BaseModel):
    """Score for one section."""

    model_config = {"alias_generator": to_camel, "populate_by_name": True}

    correct: int = Field(..., ge=0)
    total: int = Field(..., ge=1)
    percentage: int = Field(..., ge=0, le=100)
    weight: float = Field(..., ge=0)


class QuizResults(BaseModel):
    """Outcome of one attempt, derived from the definition and the answers."""

    model_config = {"alias_generator": to_camel, "populate_by_name": True}

    module_id: str
    mode: QuizMode | None = None
    total_correct: int = Field(..., ge=0)
    total_questions: int = Field(..., ge=0)
    percentage: int = Field(..., ge=0, le=100)
    weighted_score: int = Field(..., description="Rounded weighted score for display")
    raw_weighted_score: float = Field(
        ..., description="Unrounded weighted score used for pass/fail"
    )
    section_results: dict[str, SectionResult] = Field(default_factory=dict)
    question_results: dict[str, bool] = Field(default_factory=dict)
    passed: bool
    time_spent: int = Field(0, ge=0, description="Whole seconds from start to results")
