import pytest


@pytest.fixture(autouse=True)
def _clear_tealgen_env(monkeypatch):
    # Render options read the environment; keep tests independent of the host shell.
    monkeypatch.delenv("TEALGEN_INDENT", raising=False)
    monkeypatch.delenv("TEALGEN_COMMENT", raising=False)
    yield


@pytest.fixture
def limited_union():
    from tealgen.types import BOOLEAN, NUMBER, STRING, union_of

    return union_of(STRING, NUMBER, BOOLEAN)
