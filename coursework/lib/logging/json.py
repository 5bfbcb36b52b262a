import typing as t

from coursework.lib.json import JSONEncoder as BaseJSONEncoder
from coursework.lib.json import JSONValue


class JSONEncoder(BaseJSONEncoder):
    """Encoder for `extra` payloads on log records; anything unencodable is logged by repr()."""

    def default(self, o: t.Any) -> JSONValue:
        try:
            return super().default(o)
        except TypeError:
            return repr(o)
