"""Load and validate quiz definitions."""

import json
import logging
from pathlib import Path
from typing import Any, Mapping

from pydantic import ValidationError

from poker_quiz.engine.errors import QuizDefinitionError
from poker_quiz.models.quiz import QuizDefinition

logger = logging.getLogger(__name__)


def load_quiz_definition(
    data: QuizDefinition | Mapping[str, Any], source: str | None = None
) -> QuizDefinition:
    """
    Validate raw quiz content into a QuizDefinition.

    Args:
        data: Parsed quiz content, or an already validated definition
        source: Where the content came from, used in error messages

    Returns:
        Validated QuizDefinition

    Raises:
        QuizDefinitionError: If the content is malformed
    """
    if isinstance(data, QuizDefinition):
        return data
    try:
        return QuizDefinition.model_validate(data)
    except ValidationError as exc:
        raise QuizDefinitionError.from_validation_error(exc, source) from exc


def load_quiz_file(path: str | Path) -> QuizDefinition:
    """
    Read and validate a JSON quiz definition file.

    Args:
        path: Path to the JSON file

    Returns:
        Validated QuizDefinition

    Raises:
        QuizDefinitionError: If the file is not valid JSON or not a valid quiz
    """
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise QuizDefinitionError(f"{path} is not valid JSON: {exc}") from exc

    quiz = load_quiz_definition(data, source=str(path))
    logger.debug("Loaded quiz %s from %s", quiz.module_info.id, path)
    return quiz
