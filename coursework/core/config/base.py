import typing as t

from pydantic_settings import BaseSettings as PydanticBaseSettings

from coursework.model import BaseModel


# NOTE: BaseModel comes after pydantic-settings in the MRO so that its
#       model_dump(by_alias=True) default wins
class BaseSettings(PydanticBaseSettings, BaseModel):  # pyright: ignore [reportIncompatibleVariableOverride]
    def __init__(self, cf: dict[str, t.Any] | None = None, **kwargs: t.Any):
        # specifically allow initialization with a dict
        if cf is not None:
            kwargs = {**cf, **kwargs}
        super().__init__(**kwargs)


class BaseSecrets(BaseSettings): ...
