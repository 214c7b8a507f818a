import io
import json
import logging

import pytest
from rich.console import Console

from hkxconv.logging import configure_logging, get_logger
from hkxconv.reporting import (
    JsonLinesReporter,
    PlainReporter,
    RichReporter,
    SilentReporter,
    TaskStatus,
    make_reporter,
    set_reporter,
    task,
)


def test_make_reporter_selection():
    assert isinstance(make_reporter("json"), JsonLinesReporter)
    assert isinstance(make_reporter("silent"), SilentReporter)
    assert isinstance(make_reporter("plain"), PlainReporter)
    # rich needs a terminal
    assert isinstance(make_reporter("rich", isatty=False), PlainReporter)
    assert isinstance(make_reporter("rich", isatty=True), RichReporter)


def test_plain_task_lines():
    stream = io.StringIO()
    set_reporter(PlainReporter(stream=stream, use_color=False))
    with task("decode", "Decode a.hksc", total=2, kind="hksc") as rep:
        rep.advance("decode", current_item="StaticCompoundInfo@0")
        rep.advance("decode", current_item="hkRootLevelContainer@224")
    lines = stream.getvalue().splitlines()
    assert lines[0] == "   · Decode a.hksc: StaticCompoundInfo@0 (1/2)"
    assert lines[2].startswith(" ✔ Decode a.hksc 2/2 (")
    assert lines[2].endswith("[kind=hksc]")


def test_failed_task_reraises_and_marks_failure():
    stream = io.StringIO()
    set_reporter(PlainReporter(stream=stream, use_color=False))
    with pytest.raises(RuntimeError):
        with task("encode", "Encode hkrb", total=1):
            raise RuntimeError("boom")
    assert stream.getvalue().startswith(" ✖ Encode hkrb 0/1")


def test_jsonl_summary_event():
    stream = io.StringIO()
    rep = JsonLinesReporter(stream=stream)
    rep.status("Convert summary: kind=hkrb output=a.json bytes=10")
    events = [json.loads(line) for line in stream.getvalue().splitlines()]
    assert events[0]["event"] == "summary"
    assert events[0]["summary_type"] == "convert"
    assert events[0]["bytes"] == "10"
    assert events[1] == {
        "event": "status",
        "level": "info",
        "message": "Convert summary: kind=hkrb output=a.json bytes=10",
    }


def test_rich_reporter_renders_tasks():
    buf = io.StringIO()
    rep = RichReporter(console=Console(file=buf, width=100))
    set_reporter(rep)
    with task("decode", "Decode x.hkrb", total=1, kind="hkrb") as r:
        r.advance("decode", current_item="hkRootLevelContainer@0")
    rep.status("path [0].namedVariants")
    rep.flush()
    out = buf.getvalue()
    assert "Decode x.hkrb" in out
    assert "[0].namedVariants" in out


def test_logging_routes_into_reporter():
    stream = io.StringIO()
    set_reporter(PlainReporter(stream=stream, use_color=False))
    configure_logging(0)
    logger = get_logger()
    logger.info("hello")
    logger.debug("hidden")
    logger.warning("careful")
    assert stream.getvalue().splitlines() == ["INFO: hello", "WARN: careful"]
    assert logger.level == logging.INFO


def test_silent_reporter_keeps_task_records():
    rep = SilentReporter()
    rec = rep.start_task("decode", "Decode a.hkrb", total=2)
    rep.advance("decode", current_item="hkRootLevelContainer@0")
    assert rep.end_task("decode", TaskStatus.FAILED, kind="hkrb") is rec
    assert rec.status is TaskStatus.FAILED
    assert rec.counter == "1/2"
    assert rec.meta == {
        "current_item": "hkRootLevelContainer@0",
        "kind": "hkrb",
    }
    assert rep.end_task("decode") is None
    assert rep.advance("decode") is None


def test_jsonl_task_events():
    stream = io.StringIO()
    set_reporter(JsonLinesReporter(stream=stream))
    with task("encode", "Encode hkrb", total=1, kind="hkrb") as rep:
        rep.advance("encode", current_item="hkRootLevelContainer@0")
    events = [json.loads(line) for line in stream.getvalue().splitlines()]
    assert [e["event"] for e in events] == [
        "task_start",
        "task_progress",
        "task_end",
    ]
    end = events[2]
    assert end["status"] == "success"
    assert end["completed"] == 1
    assert end["kind"] == "hkrb"
