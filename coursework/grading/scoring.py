"""Automatic scoring of submitted answers.

Only machine-checkable question kinds earn points here; short-answer and essay
questions always score zero and are left for an instructor to grade.
"""

from __future__ import annotations

import typing as t

from coursework.lib.util import round_half_up
from coursework.model import Answer, ChoiceKey, ChoiceResponse, MultiSelectKey, MultiSelectResponse, Question, \
    QuestionID, QuestionKind, ScoreResult


def award(question: Question, answer: Answer | None) -> float:
    """Points earned by one answer; never raises."""
    if answer is None:
        return 0.0

    key, response = question.answer_key, answer.response
    match question.kind:
        case QuestionKind.SingleChoice | QuestionKind.TrueFalse:
            if isinstance(key, ChoiceKey) and isinstance(response, ChoiceResponse) and response.value == key.correct:
                return question.points
        case QuestionKind.MultiSelect:
            # all or nothing
            if isinstance(key, MultiSelectKey) and isinstance(response, MultiSelectResponse) \
                    and response.values == key.correct:
                return question.points
        case QuestionKind.ShortAnswer | QuestionKind.Essay:
            pass
    return 0.0


def score(questions: t.Iterable[Question], answers: t.Iterable[Answer]) -> ScoreResult:
    """Score an answer set against the questions of one assessment.

    Questions without an answer contribute zero, answers to unknown questions are ignored.
    """
    by_id: dict[QuestionID, Answer] = {a.question_id: a for a in answers}
    by_question = {q.question_id: award(q, by_id.get(q.question_id)) for q in questions}
    return ScoreResult(total=sum(by_question.values()), by_question=by_question)


def percentage(points: float, total_points: float) -> float:
    """`points` as a percentage of `total_points`; zero when the assessment is worth nothing."""
    if total_points <= 0:
        return 0.0
    return round_half_up(points / total_points * 100, 2)


def clamp(points: float, total_points: float) -> float:
    return min(max(points, 0.0), total_points)


def passed(pct: float, passing_score: float) -> bool:
    return pct >= passing_score
