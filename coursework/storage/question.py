from __future__ import annotations

import typing as t

import pydantic as p
import sqlalchemy as sqla

from coursework.core import di
from coursework.model import AnswerKey, AssessmentID, Question, QuestionID, QuestionKind

from . import Session
from .table import questions

AnswerKeyAdapter: p.TypeAdapter[AnswerKey] = p.TypeAdapter(AnswerKey)


def find(
    *,
    assessment_id: AssessmentID | None = None,
    question_ids: t.Collection[QuestionID] | None = None,
    session: Session = di.Provide["storage.persistent.session"],
) -> tuple[Question, ...]:
    """Find questions, ordered by position."""
    stmt = sqla.select(questions.__table__).order_by(questions.position)
    if assessment_id is not None:
        stmt = stmt.where(questions.assessment_id == assessment_id)
    if question_ids is not None:
        stmt = stmt.where(questions.question_id.in_(question_ids))
    rows = session.execute(stmt).mappings().all()
    return tuple(Question(**row) for row in rows)


def create(
    *,
    assessment_id: AssessmentID,
    text: str,
    kind: QuestionKind,
    points: float,
    position: int,
    answer_key: AnswerKey,
    options: t.Sequence[str] = (),
    explanation: str | None = None,
    session: Session = di.Provide["storage.persistent.session"],
) -> Question:
    # validate before writing so a mismatched key never reaches the table
    question = Question(
        question_id=QuestionID(),
        assessment_id=assessment_id,
        text=text,
        kind=kind,
        points=points,
        position=position,
        answer_key=answer_key,
        options=list(options),
        explanation=explanation,
    )
    stmt = sqla.insert(questions).values(
        question_id=question.question_id,
        assessment_id=assessment_id,
        text=text,
        kind=kind,
        points=points,
        position=position,
        answer_key=AnswerKeyAdapter.dump_python(question.answer_key, mode="json"),
        options=question.options,
        explanation=explanation,
    )
    session.execute(stmt)
    session.flush()
    return question
