import json
import logging
import string
import sys
import textwrap
import typing as t

import pygments
from pygments.formatters import Terminal256Formatter
from pygments.lexers.data import JsonLexer  # pyright: ignore [reportMissingTypeStubs]
from pygments.style import Style

from .json import JSONEncoder
from .style import LogStyle

# attributes every LogRecord carries; anything else on the record came in through `extra=`
ReservedKeys = frozenset({
    "args",
    "asctime",
    "color_message",
    "created",
    "exc_info",
    "exc_text",
    "exception",
    "filename",
    "funcName",
    "id",
    "levelname",
    "levelno",
    "lineno",
    "log_color",
    "message",
    "module",
    "msecs",
    "msg",
    "name",
    "pathname",
    "process",
    "processName",
    "relativeCreated",
    "stack_info",
    "taskName",
    "thread",
    "threadName",
})


def record_extra(record: logging.LogRecord) -> dict[str, t.Any]:
    return {k: v for k, v in record.__dict__.items() if k not in ReservedKeys}


class ExtraFormatter(logging.Formatter):
    """Wraps a base formatter and appends the record's `extra` fields as JSON.

    On a terminal the JSON is highlighted with pygments; multi-line messages are
    indented so continuation lines line up under the first.
    """

    def __init__(
        self,
        base: type[logging.Formatter],
        format: str | None,
        datefmt: str | None = None,
        indent: bool | None = True,
        no_color: bool = False,
        pyg_style: type[Style] = LogStyle,
        style: t.Literal["%", "{", "$"] = "%",
        validate: bool = True,
        *,
        defaults: t.Any = None,
        **kwargs: t.Any,
    ):
        super().__init__(format, datefmt=datefmt, style=style, validate=validate, defaults=defaults)
        self.base = base(format, datefmt=datefmt, style=style, validate=validate, defaults=defaults, **kwargs)
        self.pyg_style = pyg_style
        self.indent = bool(indent)
        self.no_color = no_color

    def format(self, record: logging.LogRecord) -> str:
        if "color_message" in record.__dict__:
            record.msg = record.__dict__.pop("color_message")

        msg = record.getMessage()
        if "\n" in msg:
            formatted = self.base.format(record)
            idx = formatted.find(msg)
            indent = " " * len([c for c in formatted[:idx] if c in string.printable])
            line, *lines = msg.splitlines()
            body = textwrap.indent("\n".join(lines), prefix=indent)
            record.msg = record.message = f"{line}\n{body}"
            record.args = None
        message = self.base.format(record)

        extra = record_extra(record)
        if not extra:
            return message

        js = json.dumps(extra, sort_keys=True, indent=(4 if self.indent else None), cls=JSONEncoder)
        if self.colorize:
            hl = pygments.highlight  # pyright: ignore [reportUnknownMemberType, reportUnknownVariableType]
            js = hl(js, JsonLexer(), Terminal256Formatter[str](style=self.pyg_style), None)
        return message + " " + js.strip()

    @property
    def colorize(self) -> bool:
        if self.no_color:
            return False
        return sys.stderr.isatty()

    def __getattr__(self, name: str) -> t.Any:
        return getattr(self.base, name)
