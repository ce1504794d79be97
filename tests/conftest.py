"""Shared test fixtures and configuration for pytest."""

import json
from pathlib import Path
from typing import Any

import pytest

from poker_quiz.engine.loader import load_quiz_definition
from poker_quiz.engine.session import QuizSession
from poker_quiz.models.quiz import QuizDefinition


class FakeClock:
    """Manually advanced clock for timer and elapsed-time tests."""

    def __init__(self, start: float = 1_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_true_false_quiz(
    section_sizes: list[int],
    weights: list[float],
    passing_score: float = 60,
) -> dict[str, Any]:
    """Build raw quiz content of true/false questions whose answer is always True."""
    sections = []
    for s, (size, weight) in enumerate(zip(section_sizes, weights)):
        sections.append(
            {
                "id": f"s{s}",
                "title": f"Section {s}",
                "weight": weight,
                "questions": [
                    {
                        "id": f"s{s}q{q}",
                        "type": "true-false",
                        "question": f"Statement {q} of section {s} is true.",
                        "correctAnswer": True,
                    }
                    for q in range(size)
                ],
            }
        )
    return {
        "moduleInfo": {"id": "tf", "title": "True or False", "passingScore": passing_score},
        "sections": sections,
    }


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sample_quiz_data() -> dict[str, Any]:
    """Raw quiz content covering every question type."""
    return {
        "moduleInfo": {
            "id": "9.9",
            "title": "Test Module",
            "category": "Mathematical Foundations",
            "phase": 1,
            "level": "Fundamental",
            "passingScore": 60,
            "estimatedTime": "5 minutes",
            "timedModeMinutes": 2,
            "speedModeMinutes": 1,
            "learningOutcomes": ["Count outs", "Convert odds"],
            "nextModule": {"id": "9.10", "title": "Next Module"},
        },
        "sections": [
            {
                "id": "basics",
                "title": "Section A: Basics",
                "weight": 50,
                "questions": [
                    {
                        "id": "q1",
                        "type": "multiple-choice",
                        "question": "What do pot odds compare?",
                        "options": ["Hands", "Pot to call", "Stacks", "Seats"],
                        "correctAnswer": 1,
                        "explanation": "The pot against the price of a call.",
                        "difficulty": "easy",
                    },
                    {
                        "id": "q2",
                        "type": "true-false",
                        "question": "3:1 pot odds need 33% equity.",
                        "correctAnswer": False,
                        "explanation": "1/(3+1) is 25%.",
                    },
                ],
            },
            {
                "id": "math",
                "title": "Section B: Math",
                "weight": 50,
                "questions": [
                    {
                        "id": "q3",
                        "type": "calculation",
                        "question": "Pot $75, bet $25. Break-even percentage?",
                        "correctAnswer": 20,
                        "acceptableRange": [19, 21],
                        "unit": "%",
                        "explanation": "25 / 125 = 20%.",
                    },
                    {
                        "id": "q4",
                        "type": "quick-calc",
                        "question": "Pot odds of a half-pot bet?",
                        "correctAnswer": "3:1",
                        "acceptableAnswers": ["3:1", "3 to 1"],
                        "explanation": "1.5 pots against half a pot.",
                    },
                    {
                        "id": "q5",
                        "type": "scenario",
                        "scenario": "Flush draw on the flop facing an all-in for half the pot.",
                        "question": "Call?",
                        "options": ["Yes", "No"],
                        "correctAnswer": 0,
                        "explanation": "36% equity against 25% needed.",
                    },
                ],
            },
        ],
    }


@pytest.fixture
def sample_quiz(sample_quiz_data: dict[str, Any]) -> QuizDefinition:
    return load_quiz_definition(sample_quiz_data)


@pytest.fixture
def correct_answers() -> dict[str, Any]:
    """An answer record that gets every question of sample_quiz right."""
    return {"q1": 1, "q2": False, "q3": "20", "q4": "3:1", "q5": 0}


@pytest.fixture
def completions() -> list:
    """Collects every results object handed to the completion callback."""
    return []


@pytest.fixture
def session(sample_quiz: QuizDefinition, clock: FakeClock, completions: list) -> QuizSession:
    return QuizSession(sample_quiz, on_complete=completions.append, clock=clock)


@pytest.fixture
def quiz_dir(tmp_path: Path, sample_quiz_data: dict[str, Any]) -> Path:
    """Directory holding the sample quiz as JSON."""
    directory = tmp_path / "quizzes"
    directory.mkdir()
    (directory / "sample.json").write_text(json.dumps(sample_quiz_data), encoding="utf-8")
    return directory


@pytest.fixture
def true_false_quiz():
    """Factory for validated quizzes of always-true statements."""

    def build(section_sizes, weights, passing_score=60) -> QuizDefinition:
        return load_quiz_definition(make_true_false_quiz(section_sizes, weights, passing_score))

    return build
