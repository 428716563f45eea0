import logging

import pytest

from ssgd.util import progress_display as UI
from ssgd.util.checkpointing import Checkpointer


@UI.display_wrap
def square_all(values, ui):
    return ui.map(lambda x: x * x, values, noun="value")


def test_display_wrap_map():
    assert square_all([1, 2, 3]) == [1, 4, 9]
    assert square_all([1, 2, 3], show_progress=False) == [1, 4, 9]
    assert square_all([]) == []


def test_null_context():
    ctx = UI.NullContext()
    assert ctx.subcontext() is ctx
    assert list(ctx.series([1, 2])) == [1, 2]


def test_series_labels():
    ctx = UI.ProgressContext()
    assert list(ctx.series("abc", labels=["x", "y", "z"])) == ["a", "b", "c"]


def test_checkpointer(tmp_dir, caplog):
    path = tmp_dir / "state.pickle"
    checkpointer = Checkpointer(str(path), interval=1000)
    assert not checkpointer.available()
    checkpointer.record({"x": 1})
    assert not checkpointer.available()
    with caplog.at_level(logging.INFO):
        checkpointer.record({"x": 2}, msg="saved", always=True)
    assert "CHECKPOINTING" in caplog.text
    assert checkpointer.available()
    assert checkpointer.load() == {"x": 2}
    assert not Checkpointer(None).available()


def test_display_logged_without_bar(caplog):
    ctx = UI.ProgressContext()
    with caplog.at_level(logging.DEBUG, logger="ssgd.util.progress_display"):
        ctx.display("fitting", 0.5)
    assert "fitting" in caplog.text
    assert "50%" in caplog.text


def test_series_label_count():
    ctx = UI.ProgressContext()
    with pytest.raises(ValueError):
        list(ctx.series("abc", labels=["x", "y"]))


def test_display_wrap_restores_context():
    @UI.display_wrap
    def inner(ui):
        return ui

    assert inner(show_progress=False) is UI.NULL_CONTEXT
    assert getattr(UI._CURRENT, "context", None) is None
