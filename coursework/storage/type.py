import datetime
import enum
import typing as t

from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.engine import Dialect
from sqlalchemy.sql.type_api import TypeDecorator
from sqlalchemy.types import JSON, DateTime, Enum, String

from coursework.model.id import ShortUUIDKey


class ShortUUIDKeyType(TypeDecorator[ShortUUIDKey]):
    """Stores only the shortuuid part of a key; the prefix is implied by the column's key type."""

    impl = String
    cache_ok = True

    def __init__(self, key_type: type[ShortUUIDKey]):
        self.key_type = key_type
        super().__init__(22)  # length of shortuuid

    def process_bind_param(self, value: ShortUUIDKey | str | None, dialect: Dialect) -> str | None:
        if value is None:
            return value
        if not isinstance(value, self.key_type):
            value = self.key_type(value)
        return value.key

    def process_result_value(self, value: str | None, dialect: Dialect) -> ShortUUIDKey | None:
        if value is not None:
            value = self.key_type(key=value)
        return value


class UTCDateTime(TypeDecorator[datetime.datetime]):
    """Timezone-aware UTC datetimes on every backend.

    PostgreSQL keeps the offset in `timestamptz`; SQLite stores naive text, so values
    are normalized to UTC on the way in and tagged as UTC on the way out.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime.datetime | None, dialect: Dialect) -> datetime.datetime | None:
        if value is None:
            return value
        if value.tzinfo is None:
            raise ValueError(f"naive datetime not accepted: {value!r}")
        value = value.astimezone(datetime.UTC)
        if dialect.name == "sqlite":
            return value.replace(tzinfo=None)
        return value

    def process_result_value(self, value: datetime.datetime | None, dialect: Dialect) -> datetime.datetime | None:
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=datetime.UTC)
        return value


# JSONB where available
JSONDocument = JSON().with_variant(JSONB(), "postgresql")


class ValueEnumMapper(object):
    @staticmethod
    def values_callable(en: type[enum.Enum]) -> tuple[t.Any]:
        return tuple(e.value for e in en)

    def _resolve_for_python_type(
        self, python_type: type[t.Any], matched_on: t.Any, matched_on_flattened: t.Any
    ) -> Enum | None:
        return Enum(python_type, values_callable=self.values_callable, native_enum=False, length=32)
