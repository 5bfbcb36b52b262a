"""JSON encoding shared by the HTTP layer, the JSON columns and structured log records.

Knows how to encode the values that appear in grading data: pydantic models, enums,
timestamps and the frozensets of selected options in multi-select answers.
"""

from __future__ import annotations

import datetime
import enum
import functools
import json as pyjson
import typing as t

import fastapi
import fastapi.encoders
import pydantic as p
import starlette.background

JSONPrimitive = str | int | float | bool | None
JSONValue = JSONPrimitive | list["JSONValue"] | dict[str, "JSONValue"]


def encode_options(obj: set[t.Any] | frozenset[t.Any]) -> list[t.Any]:
    # stable order, so stored selections and exported sheets compare equal
    return sorted(obj, key=str)


def encode_timestamp(obj: datetime.date) -> str:
    return obj.isoformat()


def encode_enum(obj: enum.Enum) -> JSONValue:
    return obj.value


def encode_model(obj: p.BaseModel) -> dict[str, JSONValue]:
    return obj.model_dump(mode="json")


@functools.cache
def encoders() -> dict[type, t.Callable[[t.Any], JSONValue]]:
    return {
        datetime.date: encode_timestamp,
        datetime.datetime: encode_timestamp,
        enum.Enum: encode_enum,
        frozenset: encode_options,
        set: encode_options,
    }


class JSONEncoder(pyjson.JSONEncoder):
    def default(self, o: t.Any) -> JSONValue:
        if isinstance(o, p.BaseModel):
            return encode_model(o)
        for tp, encode in encoders().items():
            if isinstance(o, tp):
                return encode(o)
        return super().default(o)


def dumps(obj: t.Any, *, cls: type[pyjson.JSONEncoder] = JSONEncoder, **kw: t.Any) -> str:
    return pyjson.dumps(obj, cls=cls, **kw)


def loads(s: str | bytes | bytearray, **kw: t.Any) -> t.Any:
    return pyjson.loads(s, **kw)


def jsonable_encoder(obj: t.Any) -> JSONValue:
    if isinstance(obj, p.BaseModel):
        return jsonable_encoder(encode_model(obj))
    return fastapi.encoders.jsonable_encoder(obj, custom_encoder=encoders())


class FastAPIJSONResponse(fastapi.responses.JSONResponse):
    """Default response class of the web app; route return values go through `jsonable_encoder`."""

    def __init__(
        self,
        content: t.Any,
        status_code: int = 200,
        headers: t.Mapping[str, str] | None = None,
        media_type: str | None = None,
        background: starlette.background.BackgroundTask | None = None,
    ):
        super().__init__(
            jsonable_encoder(content),
            status_code=status_code,
            headers=headers,
            media_type=media_type,
            background=background,
        )

    def render(self, content: t.Any) -> bytes:
        return dumps(content, ensure_ascii=False, allow_nan=False, separators=(",", ":")).encode("utf-8")
