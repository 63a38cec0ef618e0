import json
from pathlib import Path

from typer.testing import CliRunner

from evalexpr.cli.app import app
from evalexpr.core import Comment, Expression, SessionLog

runner = CliRunner()


def test_batch_scenario() -> None:
    result = runner.invoke(app, ["2+2", "a+2", "a+b"])
    assert result.exit_code == 0
    assert result.output == "a: 4\nb: 6\nc: 10\n"


def test_single_double_uses_full_precision() -> None:
    result = runner.invoke(app, ["1/3"])
    assert result.exit_code == 0
    assert result.output == "0.33333333333333331482961625624739\n"


def test_tensor_uses_general_text() -> None:
    result = runner.invoke(app, ["tensor(x[2]):[1,2]"])
    assert result.exit_code == 0
    assert result.output == "spec(tensor(x[2])) {\n  {x:0}: 1\n  {x:1}: 2\n}\n"


def test_no_arguments_prints_usage() -> None:
    result = runner.invoke(app, [])
    assert result.exit_code == 1
    assert "usage: evalexpr [--verbose] <expr> [expr ...]" in result.output
    assert "advanced usage: evalexpr json-repl" in result.output


def test_too_many_expressions() -> None:
    result = runner.invoke(app, ["1"] * 27)
    assert result.exit_code == 2
    assert "error: too many expressions: 27 (max is 26)" in result.output


def test_evaluation_failure_exit_code() -> None:
    result = runner.invoke(app, ["1+"])
    assert result.exit_code == 3
    assert "error: expression parsing failed: " in result.output


def test_verbose_flag() -> None:
    result = runner.invoke(app, ["--verbose", "2+2"])
    assert result.exit_code == 0
    assert "meta-data:\n  class: ConstValue\n" in result.output
    assert result.output.endswith("4\n")


def test_json_repl() -> None:
    result = runner.invoke(app, ["json-repl"], input='{"expr": "2+2", "name": "a"}\n[{"expr": "a"}]\n')
    assert result.exit_code == 0
    assert result.output.splitlines() == ['{"result":"4"}', '[{"result":"4"}]']


def test_json_repl_malformed_input() -> None:
    result = runner.invoke(app, ["json-repl"], input='{"expr": "1"}\n{oops}\n')
    assert result.exit_code == 3
    assert result.output.splitlines()[0] == '{"result":"1"}'
    assert "error: malformed request" in result.output


def _session_json(output: str) -> str:
    return output[output.index("{\n") :]


def test_convert(tmp_path: Path) -> None:
    script = tmp_path / "session.txt"
    script.write_text("#!/usr/bin/env evalexpr\n#hello\ndef x 1+1\nx+x\n", encoding="utf-8")
    result = runner.invoke(app, ["interactive", str(script), "convert"])
    assert result.exit_code == 0
    assert "> def x 1+1\nx: 2\n> x+x\n4\n" in result.output
    log = SessionLog.from_json(_session_json(result.output))
    assert log.entries == [Comment("hello"), Expression("x", "1+1"), Expression(None, "x+x")]


def test_convert_rejects_undef(tmp_path: Path) -> None:
    script = tmp_path / "session.txt"
    script.write_text("def x 1\nundef x\n", encoding="utf-8")
    result = runner.invoke(app, ["interactive", str(script), "convert"])
    assert result.exit_code == 3
    assert "conversion failed: undef operation not supported" in result.output


def test_convert_missing_script(tmp_path: Path) -> None:
    result = runner.invoke(app, ["interactive", str(tmp_path / "missing.txt"), "convert"])
    assert result.exit_code == 0
    assert json.loads(result.output) == {"f": []}


def test_verbose_is_an_option_anywhere() -> None:
    result = runner.invoke(app, ["2", "--verbose"])
    assert result.exit_code == 0
    assert "meta-data:\n" in result.output

    usage = runner.invoke(app, []).output
    assert "--verbose is read as an option wherever it appears" in usage


def test_double_dash_passes_arguments_as_expressions() -> None:
    result = runner.invoke(app, ["--", "--verbose"])
    assert result.exit_code == 3
    assert "error: expression parsing failed: " in result.output
