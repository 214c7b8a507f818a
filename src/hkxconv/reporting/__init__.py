from .base import (
    Reporter,
    SilentReporter,
    TaskStatus,
    get_reporter,
    get_verbosity,
    set_reporter,
    set_verbosity,
    task,
)
from .jsonl import JsonLinesReporter
from .plain import PlainReporter
from .rich_reporter import RichReporter

__all__ = [
    "Reporter",
    "TaskStatus",
    "get_reporter",
    "set_reporter",
    "task",
    "set_verbosity",
    "get_verbosity",
    "PlainReporter",
    "JsonLinesReporter",
    "SilentReporter",
    "RichReporter",
    "make_reporter",
]


def make_reporter(name: str, *, isatty: bool = False) -> Reporter:
    """Build the reporter selected by ``--reporter``.

    ``rich`` degrades to ``plain`` when stderr is not a terminal.
    """
    if name == "json":
        return JsonLinesReporter()
    if name == "silent":
        return SilentReporter()
    if name == "rich" and isatty:
        return RichReporter()
    return PlainReporter()
