"""Exceptions raised by the quiz engine."""

from pydantic import ValidationError


class QuizError(Exception):
    """Base class for quiz engine errors."""


class QuizDefinitionError(QuizError):
    """A quiz definition is malformed and cannot be used to start a session."""

    def __init__(self, message: str, errors: list[dict] | None = None):
        super().__init__(message)
        self.errors = errors or []

    @classmethod
    def from_validation_error(
        cls, exc: ValidationError, source: str | None = None
    ) -> "QuizDefinitionError":
        """Wrap a pydantic ValidationError with a readable summary."""
        lines = []
        for error in exc.errors():
            location = ".".join(str(part) for part in error["loc"]) or "<root>"
            lines.append(f"  {location}: {error['msg']}")
        prefix = f"Invalid quiz definition{f' in {source}' if source else ''}"
        return cls(f"{prefix}:\n" + "\n".join(lines), errors=exc.errors())


class InvalidModeError(QuizError, ValueError):
    """Raised for a mode other than standard, timed or speed."""


class InvalidTransitionError(QuizError):
    """Raised when an action is not valid in the current session phase."""


class UnknownQuestionError(QuizError, KeyError):
    """Raised when answering a question id that is not part of the quiz."""

    def __str__(self) -> str:
        return f"Unknown question id: {self.args[0]!r}"
