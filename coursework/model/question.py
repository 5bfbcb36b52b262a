from __future__ import annotations

import enum
import typing as t

import annotated_types as ant
import pydantic as p

from .base import BaseModel
from .id import AssessmentID, QuestionID


class QuestionKind(enum.Enum):
    SingleChoice = "single_choice"
    TrueFalse = "true_false"
    MultiSelect = "multi_select"
    ShortAnswer = "short_answer"
    Essay = "essay"

    @property
    def machine_checkable(self) -> bool:
        return self not in (QuestionKind.ShortAnswer, QuestionKind.Essay)


# answer keys


class ChoiceKey(BaseModel):
    """Single correct option value; used by single-choice and true/false questions."""

    kind: t.Literal["choice"] = "choice"
    correct: str


class MultiSelectKey(BaseModel):
    kind: t.Literal["multi_select"] = "multi_select"
    correct: frozenset[str]


class ManualKey(BaseModel):
    """No machine-checkable answer, an instructor grades the response."""

    kind: t.Literal["manual"] = "manual"


AnswerKey = t.Annotated[ChoiceKey | MultiSelectKey | ManualKey, p.Field(discriminator="kind")]

KeyKinds: dict[QuestionKind, type[ChoiceKey | MultiSelectKey | ManualKey]] = {
    QuestionKind.SingleChoice: ChoiceKey,
    QuestionKind.TrueFalse: ChoiceKey,
    QuestionKind.MultiSelect: MultiSelectKey,
    QuestionKind.ShortAnswer: ManualKey,
    QuestionKind.Essay: ManualKey,
}


# student responses


class ChoiceResponse(BaseModel):
    kind: t.Literal["choice"] = "choice"
    value: str


class MultiSelectResponse(BaseModel):
    kind: t.Literal["multi_select"] = "multi_select"
    values: frozenset[str]


class TextResponse(BaseModel):
    kind: t.Literal["text"] = "text"
    text: str


Response = t.Annotated[ChoiceResponse | MultiSelectResponse | TextResponse, p.Field(discriminator="kind")]

ResponseKinds: dict[QuestionKind, type[ChoiceResponse | MultiSelectResponse | TextResponse]] = {
    QuestionKind.SingleChoice: ChoiceResponse,
    QuestionKind.TrueFalse: ChoiceResponse,
    QuestionKind.MultiSelect: MultiSelectResponse,
    QuestionKind.ShortAnswer: TextResponse,
    QuestionKind.Essay: TextResponse,
}

TrueFalseValues = frozenset({"true", "false"})


class Question(BaseModel):
    question_id: QuestionID
    assessment_id: AssessmentID
    text: str
    kind: QuestionKind
    points: t.Annotated[float, ant.Ge(0)]
    position: int
    answer_key: AnswerKey
    options: list[str] = []
    explanation: str | None = None

    @p.model_validator(mode="after")
    def check_answer_key(self) -> t.Self:
        expected = KeyKinds[self.kind]
        if not isinstance(self.answer_key, expected):
            raise ValueError(f"{self.kind.value} question requires a {expected.__name__}")
        key = self.answer_key
        if self.kind is QuestionKind.TrueFalse and isinstance(key, ChoiceKey):
            if key.correct not in TrueFalseValues:
                raise ValueError("true/false answer key must be 'true' or 'false'")
        return self

    def read_response(self, raw: t.Any) -> ChoiceResponse | MultiSelectResponse | TextResponse:
        """Interpret a raw answer value (as it arrives on the wire) as this question's response kind.

        A bare string for a multi-select question is taken as a one-element selection and JSON booleans are
        accepted for true/false questions. Anything else that does not fit the question kind raises ValueError.
        """
        expected = ResponseKinds[self.kind]
        if isinstance(raw, expected):
            return raw
        if isinstance(raw, (ChoiceResponse, MultiSelectResponse, TextResponse)):
            raise ValueError(f"{raw.kind} response does not fit a {self.kind.value} question")

        match self.kind:
            case QuestionKind.TrueFalse if isinstance(raw, bool):
                return ChoiceResponse(value=str(raw).lower())
            case QuestionKind.SingleChoice | QuestionKind.TrueFalse if isinstance(raw, str):
                return ChoiceResponse(value=raw)
            case QuestionKind.MultiSelect if isinstance(raw, str):
                return MultiSelectResponse(values=frozenset({raw}))
            case QuestionKind.MultiSelect if isinstance(raw, (list, tuple, set, frozenset)):
                items = t.cast(t.Collection[t.Any], raw)
                if not all(isinstance(v, str) for v in items):
                    raise ValueError("multi-select answers must be option values")
                return MultiSelectResponse(values=frozenset(items))
            case QuestionKind.ShortAnswer | QuestionKind.Essay if isinstance(raw, str):
                return TextResponse(text=raw)
            case _:
                raise ValueError(f"{type(raw).__name__} answer does not fit a {self.kind.value} question")


class Answer(BaseModel):
    question_id: QuestionID
    response: Response
    time_spent: t.Annotated[int, ant.Ge(0)] | None = None
    awarded_points: float = 0.0


class QuestionDraft(BaseModel):
    """A question as an instructor writes it, before it belongs to an assessment."""

    text: str
    kind: QuestionKind
    points: t.Annotated[float, ant.Ge(0)]
    answer_key: AnswerKey
    options: list[str] = []
    explanation: str | None = None
