from collections.abc import Iterator

import pytest

from evalexpr.cli.interactive import (
    AddComment,
    Evaluate,
    InteractiveDriver,
    LineReader,
    SetVerbose,
    Undef,
    list_commands,
    parse_command,
)
from evalexpr.core import Collector, Comment, Evaluator, Script
from evalexpr.eval import Value


def _driver(lines: list[str], *, collector: Collector | None = None) -> InteractiveDriver:
    script = Script.from_lines(lines)
    script.script_only = True
    return InteractiveDriver(Evaluator(), LineReader(script), collector or Collector())


def _live(lines: list[str]):
    pending: Iterator[str] = iter(lines)

    def read(prompt: str) -> str:
        line = next(pending, None)
        if line is None:
            raise EOFError
        if line == "^C":
            raise KeyboardInterrupt
        return line

    return read


def test_parse_command_forms() -> None:
    assert parse_command("#note") == AddComment("note")
    assert parse_command("verbose true") == SetVerbose("true")
    assert parse_command("undef x") == Undef("x")
    assert parse_command("def x 1 + 1") == Evaluate("x", "1 + 1")
    assert parse_command("x + 1") == Evaluate(None, "x + 1")
    assert parse_command("define") == Evaluate(None, "define")


def test_def_binds_and_prints(capsys: pytest.CaptureFixture[str]) -> None:
    driver = _driver(["def x 1+1", "x+x"])
    assert driver.run() == 0
    out = capsys.readouterr().out
    assert out == "> def x 1+1\nx: 2\n> x+x\n4\n"
    assert driver.evaluator.env.get("x") == Value.double(2)


def test_list_and_help(capsys: pytest.CaptureFixture[str]) -> None:
    _driver(["def t tensor(x[2]):[1,2]", "list", "help"]).run()
    out = capsys.readouterr().out
    assert "\n  t: tensor(x[2])\n" in out
    assert "\n".join(list_commands("  ")) in out
    assert "  'def <name> <expr>' -> evaluate expression, bind result to a name" in out


def test_exit_stops_session(capsys: pytest.CaptureFixture[str]) -> None:
    _driver(["exit", "1+1"]).run()
    assert capsys.readouterr().out == "> exit\n"


def test_verbose_toggle(capsys: pytest.CaptureFixture[str]) -> None:
    driver = _driver(["verbose true", "def y 1+1", "verbose maybe", "verbose false"])
    driver.run()
    captured = capsys.readouterr()
    assert "verbose set to true\n" in captured.out
    assert "verbose set to false\n" in captured.out
    assert "eval '1+1' -> 'y'\n" in captured.err
    assert "meta-data(y):\n  class: ConstValue\n    symbol: const(double)\n    count: 1\n" in captured.err
    assert "bad flag specifier: 'maybe', must be 'true' or 'false'\n" in captured.err
    assert driver.evaluator.verbose is False


def test_undef_is_not_convertible(capsys: pytest.CaptureFixture[str]) -> None:
    collector = Collector()
    _driver(["def x 1", "undef x", "undef x"], collector=collector).run()
    out = capsys.readouterr().out
    assert "removed value 'x'\n" in out
    assert "value not found: 'x'\n" in out
    assert collector.error == "undef operation not supported"


def test_redefinition_is_not_convertible() -> None:
    collector = Collector()
    driver = _driver(["def x 1", "def x 2"], collector=collector)
    driver.run()
    assert driver.evaluator.env.get("x") == Value.double(2)
    assert collector.error == "value redefinition not supported"


def test_failed_expression_keeps_session_running(capsys: pytest.CaptureFixture[str]) -> None:
    collector = Collector()
    _driver(["nope", "1+2"], collector=collector).run()
    captured = capsys.readouterr()
    assert "error: expression parsing failed: at column 1: unknown symbol: 'nope'\n" in captured.err
    assert captured.out.endswith("3\n")
    assert collector.error == "sub-expression evaluation failed"


def test_hash_bang_and_blank_lines_are_skipped(capsys: pytest.CaptureFixture[str]) -> None:
    collector = Collector()
    collector.enable()
    _driver(["#!/usr/bin/env evalexpr", "   ", "", "#!", "1"], collector=collector).run()
    assert capsys.readouterr().out == "> #!\n> 1\n1\n"
    assert collector.log.entries[0] == Comment("!")


def test_live_input_after_script(capsys: pytest.CaptureFixture[str]) -> None:
    reader = LineReader(Script.from_lines(["def a 2"]), read_live=_live(["^C", "a*3"]))
    driver = InteractiveDriver(Evaluator(), reader)
    assert driver.run() == 0
    assert capsys.readouterr().out == "> def a 2\na: 2\n6\n"
    assert reader.history.get_strings() == ["def a 2"]


def test_replayed_log_reproduces_bindings(capsys: pytest.CaptureFixture[str]) -> None:
    lines = ["# build a vector", "def v tensor(x[3]):[1,2,3]", "def s reduce(v, sum)", "s*2"]
    collector = Collector()
    collector.enable()
    first = _driver(lines, collector=collector)
    first.run()
    assert collector.error is None

    replay = _driver(collector.log.script_lines())
    replay.run()
    recorded = [(binding.name, binding.value) for binding in first.evaluator.env]
    replayed = [(binding.name, binding.value) for binding in replay.evaluator.env]
    assert replayed == recorded
