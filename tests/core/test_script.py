from pathlib import Path

from loguru import logger

from evalexpr.core import Script


def test_lines_are_read_without_terminators(tmp_path: Path) -> None:
    path = tmp_path / "session.txt"
    path.write_text("def a 1\r\na+1\n", encoding="utf-8")
    with Script.from_file(path) as script:
        assert script.read_line() == "def a 1"
        assert script.read_line() == "a+1"
        assert script.read_line() is None


def test_close_stops_reading(tmp_path: Path) -> None:
    path = tmp_path / "session.txt"
    path.write_text("1\n2\n", encoding="utf-8")
    script = Script.from_file(path)
    assert script.read_line() == "1"
    script.close()
    assert script.read_line() is None


def test_missing_file_is_empty_script(tmp_path: Path) -> None:
    messages: list[str] = []
    logger.add(messages.append, level="WARNING", format="{message}")
    script = Script.from_file(tmp_path / "missing.txt")
    assert script.read_line() is None
    assert len(messages) == 1
    assert "could not read script: " in messages[0]


def test_in_memory_script() -> None:
    script = Script.from_lines(["exit"])
    assert script.script_only is False
    assert script.read_line() == "exit"
    assert Script.empty().read_line() is None
