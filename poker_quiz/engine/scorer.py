"""Scoring rules for quiz answers.

Every function here is pure: results are recomputed from the definition and
the answer record whenever they are needed, so reading results repeatedly
never double counts.
"""

import math
import re
from fractions import Fraction
from typing import Any, Mapping

from poker_quiz.models.quiz import (
    BaseQuestion,
    CalculationQuestion,
    MultipleChoiceQuestion,
    QuickCalcQuestion,
    QuizDefinition,
    QuizMode,
    QuizResults,
    QuizSection,
    SectionResult,
    TrueFalseQuestion,
)

# Leading numeric prefix, so "20%" or "36 percent" read as numbers
_NUMBER_PREFIX = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


def round_half_up(value: float | Fraction) -> int:
    """Round to the nearest integer with .5 going up, as score displays expect."""
    return math.floor(value + Fraction(1, 2))


def exact(value: float) -> Fraction:
    """The decimal value a float was written as, e.g. 0.1 -> 1/10."""
    return Fraction(repr(value))


def parse_number(value: Any) -> float | None:
    """
    Parse a submitted calculation answer.

    Args:
        value: Raw answer, usually the text the learner typed

    Returns:
        The number, or None if the answer does not start with a finite number
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        match = _NUMBER_PREFIX.match(str(value).strip())
        if not match:
            return None
        number = float(match.group(0))
    return number if math.isfinite(number) else None


def normalize_quick_answer(value: Any) -> str:
    """Drop all whitespace and lower-case, so '  3 : 1 ' equals '3:1'."""
    return "".join(str(value).split()).lower()


def is_correct(question: BaseQuestion, answer: Any) -> bool:
    """
    Evaluate a single answer against its question.

    Malformed answers are simply wrong; this never raises for bad input.

    Args:
        question: Question being answered
        answer: Raw submitted value, or None when unanswered

    Returns:
        True if the answer is correct
    """
    if answer is None:
        return False

    # Covers ScenarioQuestion too
    if isinstance(question, MultipleChoiceQuestion):
        return (
            isinstance(answer, int)
            and not isinstance(answer, bool)
            and answer == question.correct_answer
        )

    if isinstance(question, TrueFalseQuestion):
        return isinstance(answer, bool) and answer is question.correct_answer

    if isinstance(question, CalculationQuestion):
        number = parse_number(answer)
        if number is None:
            return False
        low, high = question.acceptable_range
        return low <= number <= high

    if isinstance(question, QuickCalcQuestion):
        submitted = normalize_quick_answer(answer)
        accepted = {normalize_quick_answer(a) for a in question.acceptable_answers}
        return submitted in accepted

    raise TypeError(f"Unsupported question type: {type(question).__name__}")


def score_section(
    section: QuizSection, answers: Mapping[str, Any]
) -> tuple[SectionResult, dict[str, bool]]:
    """
    Score one section.

    Unanswered questions count as incorrect and stay in the denominator.

    Args:
        section: Section to score
        answers: Answer record keyed by question id

    Returns:
        Tuple of (section result, per-question correctness)
    """
    outcomes = {q.id: is_correct(q, answers.get(q.id)) for q in section.questions}
    correct = sum(outcomes.values())
    total = len(section.questions)

    result = SectionResult(
        correct=correct,
        total=total,
        percentage=round_half_up(Fraction(correct * 100, total)),
        weight=section.weight,
    )
    return result, outcomes


def calculate_results(
    quiz: QuizDefinition,
    answers: Mapping[str, Any],
    time_spent: int = 0,
    mode: QuizMode | None = None,
) -> QuizResults:
    """
    Compute the full results of an attempt.

    The pass/fail decision uses the unrounded weighted score, so a learner
    at 59.6 with a passing score of 60 fails even though the display shows 60.

    Args:
        quiz: Validated quiz definition
        answers: Answer record keyed by question id
        time_spent: Whole seconds from start to results
        mode: Mode the attempt was taken in

    Returns:
        QuizResults for the attempt
    """
    section_results: dict[str, SectionResult] = {}
    question_results: dict[str, bool] = {}

    for section in quiz.sections:
        result, outcomes = score_section(section, answers)
        section_results[section.id] = result
        question_results.update(outcomes)

    total_correct = sum(r.correct for r in section_results.values())
    total_questions = sum(r.total for r in section_results.values())
    # Exact arithmetic, so a score equal to the passing score passes
    weighted = sum(
        (r.percentage * exact(r.weight) / 100 for r in section_results.values()),
        Fraction(0),
    )

    return QuizResults(
        module_id=quiz.module_info.id,
        mode=mode,
        total_correct=total_correct,
        total_questions=total_questions,
        percentage=round_half_up(Fraction(total_correct * 100, total_questions)),
        weighted_score=round_half_up(weighted),
        raw_weighted_score=float(weighted),
        section_results=section_results,
        question_results=question_results,
        passed=weighted >= exact(quiz.module_info.passing_score),
        time_spent=time_spent,
    )
