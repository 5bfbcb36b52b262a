import datetime
import inspect
import logging.config
import typing as t

from .logging import TraceLogLevelLogger

TimestampProvider = t.Callable[..., datetime.datetime]


def trace(msg: str, *args: t.Any, **kwargs: t.Any):
    if len(logging.root.handlers) == 0:
        logging.basicConfig()
    t.cast(TraceLogLevelLogger, logging.root).trace(msg, *args, **kwargs)


class LoggingProvider(object):
    Function: t.Final[t.Literal["fn"]] = "fn"
    Class: t.Final[t.Literal["cls"]] = "cls"
    Module: t.Final[t.Literal["mod"]] = "mod"

    def __init__(self, config: dict[str, t.Any], debug: bool):
        LoggingProvider.create_trace_loglevel()
        logging.config.dictConfig(config)
        if debug:
            self.capture_warnings(True)

    @staticmethod
    def create_trace_loglevel():
        """
        Create a log level TRACE = 5
        """
        logging.setLoggerClass(TraceLogLevelLogger)
        logging.addLevelName(5, "TRACE")
        logging.TRACE = 5  # pyright: ignore [reportAttributeAccessIssue]
        logging.trace = trace  # pyright: ignore [reportAttributeAccessIssue]

    @classmethod
    def get_logger(
        cls, scope: t.Literal["mod", "cls", "fn"] = "mod", name: str | None = None, n_frames: int = 1
    ) -> TraceLogLevelLogger:
        if name:
            return t.cast(TraceLogLevelLogger, logging.getLogger(name))

        frame = inspect.stack()[n_frames]
        mod = frame.frame.f_globals["__name__"]
        owner = frame.frame.f_locals.get("self", frame.frame.f_locals.get("cls"))
        if isinstance(owner, type):
            klass: type | None = owner
        elif owner is not None:
            klass = owner.__class__
        else:
            klass = None

        match scope:
            case cls.Module:
                name = mod
            case cls.Function:
                name = f"{mod}.{klass.__name__}.{frame.function}" if klass else f"{mod}.{frame.function}"
            case cls.Class:
                if klass is None:
                    raise RuntimeError("could not determine class")
                name = f"{klass.__module__}.{klass.__name__}"

        return t.cast(TraceLogLevelLogger, logging.getLogger(name))

    @staticmethod
    def capture_warnings(capture: bool):
        logging.captureWarnings(capture)
