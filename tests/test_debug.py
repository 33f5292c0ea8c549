import pytest

from minnow.debug import debug, debug_str, reset_debug_handler, set_debug_handler


@pytest.fixture(autouse=True)
def _restore_handler():
    yield
    reset_debug_handler()


def test_default_handler_writes_to_stderr(capsys):
    debug_str("hello")
    captured = capsys.readouterr()
    assert captured.err == "DEBUG: hello\n"
    assert captured.out == ""


def test_custom_handler_receives_messages(capsys):
    seen = []
    set_debug_handler(seen.append)
    debug_str("one")
    debug_str("two")
    assert seen == ["one", "two"]
    assert capsys.readouterr().err == ""


def test_debug_formats_arguments():
    seen = []
    set_debug_handler(seen.append)
    debug("a {} b {x}", 1, x=2)
    assert seen == ["a 1 b 2"]


def test_reset_restores_default(capsys):
    seen = []
    set_debug_handler(seen.append)
    reset_debug_handler()
    debug("value={}", 5)
    assert seen == []
    assert capsys.readouterr().err == "DEBUG: value=5\n"