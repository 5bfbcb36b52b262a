import datetime
import typing as t

import pydantic as p


class BaseModel(p.BaseModel):
    def model_dump(self, **kwargs: t.Any) -> dict[str, t.Any]:
        # settings models dump under their aliases ("()", "class") for logging.config
        kwargs.setdefault("by_alias", True)
        return super().model_dump(**kwargs)


class WithCtime(BaseModel):
    create_time: datetime.datetime


class WithMtime(BaseModel):
    update_time: datetime.datetime


class WithTimestamps(WithCtime, WithMtime): ...
