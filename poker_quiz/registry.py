"""Registry of available quiz definitions."""

import logging
from pathlib import Path
from typing import Any, Iterable

from poker_quiz.engine.loader import load_quiz_file
from poker_quiz.models.quiz import QuizDefinition

logger = logging.getLogger(__name__)

BUNDLED_QUIZ_DIR = Path(__file__).parent / "data" / "quizzes"


class QuizRegistry:
    """Quiz definitions keyed by module id."""

    def __init__(self, quizzes: Iterable[QuizDefinition] = ()):
        self._quizzes: dict[str, QuizDefinition] = {}
        for quiz in quizzes:
            self.register(quiz)

    @classmethod
    def from_directory(cls, *directories: str | Path) -> "QuizRegistry":
        """
        Build a registry from every ``*.json`` file in the given directories.

        Later directories override earlier ones for the same module id.
        Malformed files raise QuizDefinitionError rather than being skipped.

        Args:
            directories: Directories to scan; missing ones are ignored

        Returns:
            Populated QuizRegistry
        """
        registry = cls()
        for directory in directories:
            path = Path(directory)
            if not path.is_dir():
                logger.warning("Quiz directory %s does not exist", path)
                continue
            for quiz_file in sorted(path.glob("*.json")):
                registry.register(load_quiz_file(quiz_file))
        return registry

    @classmethod
    def default(cls, extra_dir: str | Path | None = None) -> "QuizRegistry":
        """Registry with the bundled quizzes plus an optional extra directory."""
        directories = [BUNDLED_QUIZ_DIR]
        if extra_dir:
            directories.append(Path(extra_dir))
        return cls.from_directory(*directories)

    def register(self, quiz: QuizDefinition) -> None:
        module_id = quiz.module_info.id
        if module_id in self._quizzes:
            logger.info("Replacing quiz %s", module_id)
        self._quizzes[module_id] = quiz

    def get_quiz_by_id(self, module_id: str) -> QuizDefinition | None:
        return self._quizzes.get(module_id)

    def has_quiz(self, module_id: str) -> bool:
        return module_id in self._quizzes

    def available_ids(self) -> list[str]:
        return list(self._quizzes)

    def quiz_list(self) -> list[dict[str, Any]]:
        """
        Summaries of every quiz, for listing screens.

        Returns:
            One dict per quiz with id, title, category, level, phase,
            passing score, estimated time and question count
        """
        return [
            {
                "id": module_id,
                "title": quiz.module_info.title,
                "category": quiz.module_info.category,
                "level": quiz.module_info.level,
                "phase": quiz.module_info.phase,
                "passing_score": quiz.module_info.passing_score,
                "estimated_time": quiz.module_info.estimated_time,
                "question_count": quiz.total_questions,
            }
            for module_id, quiz in self._quizzes.items()
        ]

    def __len__(self) -> int:
        return len(self._quizzes)

    def __contains__(self, module_id: object) -> bool:
        return module_id in self._quizzes
