"""Grading and score arithmetic for test attempts."""

import math
from collections import defaultdict
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from fractions import Fraction

from studybuddy.db.models import MockTest, TestAttempt


@dataclass(frozen=True)
class GradeResult:
    correct_answers: int
    total_questions: int

    @property
    def score(self) -> int:
        return score_percentage(self.correct_answers, self.total_questions)


def score_percentage(correct_answers: int, total_questions: int) -> int:
    """
    Percentage of correct answers, rounded half up.

    Integer arithmetic, so 1/8 gives 13 rather than the 12 that
    round-half-to-even would produce.
    """
    if total_questions <= 0:
        return 0
    if not 0 <= correct_answers <= total_questions:
        raise ValueError(
            f"correct_answers must be within 0..{total_questions}, got {correct_answers}"
        )
    return (200 * correct_answers + total_questions) // (2 * total_questions)


def grade_answers(questions: Sequence[dict], answers: Sequence[str | None]) -> GradeResult:
    """
    Compare submitted labels with each question's correct label.

    Missing trailing answers count as skipped; more answers than questions
    is rejected.
    """
    if len(answers) > len(questions):
        raise ValueError(
            f"Received {len(answers)} answers for a test with {len(questions)} questions"
        )
    correct = sum(
        1
        for question, answer in zip(questions, answers)
        if answer is not None and answer.strip() == question["correct_label"]
    )
    return GradeResult(correct_answers=correct, total_questions=len(questions))


def _exact_percentage(attempt: TestAttempt) -> Fraction:
    """Unrounded percentage of one attempt."""
    if attempt.total_questions <= 0:
        return Fraction(0)
    return Fraction(100 * attempt.correct_answers, attempt.total_questions)


def _round_half_up(value: Fraction) -> int:
    return math.floor(value + Fraction(1, 2))


def average_score(attempts: Iterable[TestAttempt]) -> int:
    """
    Mean percentage over attempts, rounded half up once.

    Averages exact per-attempt percentages, not the stored rounded scores:
    1/8 and 3/8 average to 25. 0 with no attempts.
    """
    percentages = [_exact_percentage(attempt) for attempt in attempts]
    if not percentages:
        return 0
    return _round_half_up(sum(percentages) / len(percentages))


def strongest_subject(pairs: Iterable[tuple[TestAttempt, MockTest | None]]) -> str | None:
    """Subject with the best mean percentage; attempts whose test is gone are ignored."""
    by_subject: dict[str, list[Fraction]] = defaultdict(list)
    for attempt, test in pairs:
        if test is not None:
            by_subject[test.subject].append(_exact_percentage(attempt))

    best_subject, best_average = None, Fraction(0)
    for subject, percentages in by_subject.items():
        mean = sum(percentages) / len(percentages)
        if mean > best_average:
            best_subject, best_average = subject, mean
    return best_subject
