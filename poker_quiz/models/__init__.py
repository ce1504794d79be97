"""Data models for quiz definitions and results."""

from .quiz import (
    BaseQuestion,
    CalculationQuestion,
    ModuleInfo,
    MultipleChoiceQuestion,
    NextModule,
    Question,
    QuestionDifficulty,
    QuickCalcQuestion,
    QuizDefinition,
    QuizMode,
    QuizResults,
    QuizSection,
    ScenarioQuestion,
    SectionResult,
    TrueFalseQuestion,
)

__all__ = [
    "BaseQuestion",
    "CalculationQuestion",
    "ModuleInfo",
    "MultipleChoiceQuestion",
    "NextModule",
    "Question",
    "QuestionDifficulty",
    "QuickCalcQuestion",
    "QuizDefinition",
    "QuizMode",
    "QuizResults",
    "QuizSection",
    "ScenarioQuestion",
    "SectionResult",
    "TrueFalseQuestion",
]
