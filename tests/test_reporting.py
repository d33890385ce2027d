import io
import json

import pytest
from rich.console import Console

from meshbin.api import save_mesh
from meshbin.logging import configure_logging, get_logger
from meshbin.mesh import Mesh, Property
from meshbin.reporting import (
    JsonLinesReporter,
    PlainReporter,
    RichReporter,
    set_reporter,
    set_verbosity,
    task,
)
from meshbin.reporting.rich_reporter import TRANSIENT_ENV


@pytest.fixture(autouse=True)
def _reset_verbosity():
    set_verbosity(0)
    yield
    set_verbosity(0)


def test_plain_messages():
    buf = io.StringIO()
    rep = PlainReporter(stream=buf, use_color=False)
    rep.status("hello")
    rep.warning("careful")
    rep.error("broken")
    rep.verbose("hidden")
    assert buf.getvalue() == "INFO: hello\nWARN: careful\nERROR: broken\n"


def test_plain_task_completion_line():
    buf = io.StringIO()
    set_reporter(PlainReporter(stream=buf, use_color=False))
    with task("mesh.write", "Write x.bin", properties=2) as stats:
        stats["bytes"] = 64
    line = buf.getvalue().strip()
    assert line.startswith("✔ Write x.bin")
    assert line.endswith("[properties=2 bytes=64]")


def test_failed_task_is_reported_and_reraised():
    buf = io.StringIO()
    set_reporter(PlainReporter(stream=buf, use_color=False))
    with pytest.raises(ValueError):
        with task("mesh.read", "Read x.bin"):
            raise ValueError("boom")
    assert buf.getvalue().strip().startswith("✖ Read x.bin")


def test_jsonl_task_events():
    buf = io.StringIO()
    rep = JsonLinesReporter(stream=buf)
    rep.start_task("t", "Task", total=2)
    rep.advance("t", current_item="a")
    rep.end_task("t", bytes=3)
    events = [json.loads(line) for line in buf.getvalue().splitlines()]
    assert [e["event"] for e in events] == ["task_start", "task_progress", "task_end"]
    assert events[-1]["completed"] == 1
    assert events[-1]["bytes"] == 3


def test_rich_reporter_does_not_interpret_markup():
    buf = io.StringIO()
    rep = RichReporter(console=Console(file=buf, width=120, force_terminal=False))
    rep.status("name [bold]x[/bold]")
    rep.start_task("t", "Read", total=None)
    rep.end_task("t", bytes=8)
    rep.flush()
    out = buf.getvalue()
    assert "INFO: name [bold]x[/bold]" in out
    assert "[bytes=8]" in out


def test_save_mesh_reports_each_property(tmp_path):
    buf = io.StringIO()
    set_reporter(PlainReporter(stream=buf, use_color=False))
    set_verbosity(1)
    mesh = Mesh([("position", Property(V=[1.0], F=[0])), ("uv", Property())])
    save_mesh(mesh, tmp_path / "m.bin")
    lines = buf.getvalue().splitlines()
    assert lines[0] == "   · Write m.bin: position (1/2)"
    assert lines[1] == "   · Write m.bin: uv (2/2)"
    assert lines[2].startswith(" ✔ Write m.bin 2/2")
    assert "properties=2" in lines[2]


def test_progress_lines_need_verbosity(tmp_path):
    buf = io.StringIO()
    set_reporter(PlainReporter(stream=buf, use_color=False))
    save_mesh(Mesh([("p", Property())]), tmp_path / "m.bin")
    assert len(buf.getvalue().splitlines()) == 1


def test_rich_transient_progress_prints_completions_on_flush(monkeypatch):
    monkeypatch.setenv(TRANSIENT_ENV, "1")
    buf = io.StringIO()
    rep = RichReporter(console=Console(file=buf, width=120, force_terminal=False))
    rep.start_task("t", "Write m.bin", total=2)
    assert rep.progress is not None
    rep.advance("t", current_item="position")
    rep.advance("t", current_item="uv")
    rep.end_task("t", bytes=8)
    assert rep.progress is None
    assert "Write m.bin 2/2" in buf.getvalue()
    assert "[bytes=8]" in buf.getvalue()


def test_logging_routes_to_reporter():
    buf = io.StringIO()
    set_reporter(PlainReporter(stream=buf, use_color=False))
    configure_logging(0)
    logger = get_logger()
    logger.warning("%d trailing bytes", 4)
    logger.debug("not shown")
    assert buf.getvalue() == "WARN: 4 trailing bytes\n"


def test_debug_logging_needs_verbosity():
    buf = io.StringIO()
    set_reporter(PlainReporter(stream=buf, use_color=False))
    set_verbosity(2)
    configure_logging(2)
    get_logger().debug("mesh decode: START -> LEADING_GUARD")
    assert "VERB2: mesh decode: START -> LEADING_GUARD" in buf.getvalue()
