"""Quiz engine: session state machine, scoring and timing."""

from .errors import (
    InvalidModeError,
    InvalidTransitionError,
    QuizDefinitionError,
    QuizError,
    UnknownQuestionError,
)
from .loader import load_quiz_definition, load_quiz_file
from .scorer import calculate_results, is_correct, score_section
from .session import (
    Answer,
    Next,
    Previous,
    QuizSession,
    Restart,
    SessionPhase,
    SessionState,
    StartQuiz,
    Tick,
    ToggleExplanation,
    create_initial_state,
    parse_mode,
)
from .timer import CountdownTimer

__all__ = [
    "Answer",
    "CountdownTimer",
    "InvalidModeError",
    "InvalidTransitionError",
    "Next",
    "Previous",
    "QuizDefinitionError",
    "QuizError",
    "QuizSession",
    "Restart",
    "SessionPhase",
    "SessionState",
    "StartQuiz",
    "Tick",
    "ToggleExplanation",
    "UnknownQuestionError",
    "calculate_results",
    "create_initial_state",
    "is_correct",
    "load_quiz_definition",
    "load_quiz_file",
    "parse_mode",
    "score_section",
]
