from __future__ import annotations

import pytest

from tealgen.options import RenderOptions, comment_lines


def test_defaults():
    opts = RenderOptions.from_env()
    assert opts == RenderOptions()
    assert opts.indent == "\t"
    assert opts.comment_marker == "--"


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("TEALGEN_INDENT", "4")
    monkeypatch.setenv("TEALGEN_COMMENT", "--- ")
    opts = RenderOptions.from_env()
    assert opts.indent == "    "
    assert opts.comment_marker == "--- "
    monkeypatch.setenv("TEALGEN_INDENT", "TAB")
    assert RenderOptions.from_env().indent == "\t"


@pytest.mark.parametrize("value", ["wide", "-1"])
def test_bad_indent_rejected(monkeypatch, value):
    monkeypatch.setenv("TEALGEN_INDENT", value)
    with pytest.raises(ValueError):
        RenderOptions.from_env()


def test_comment_lines():
    opts = RenderOptions()
    assert comment_lines(None, options=opts) == ""
    assert comment_lines("a\nb", options=opts, indent="\t") == "\t--a\n\t--b\n"
