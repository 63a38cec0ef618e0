import pytest

from evalexpr.cli.batch import MAX_EXPRESSIONS, run_batch
from evalexpr.core import Evaluator
from evalexpr.errors import ArityOverflow, EvaluationFailed, UsageError


def test_single_expression_is_unnamed(capsys: pytest.CaptureFixture[str]) -> None:
    evaluator = Evaluator()
    run_batch(evaluator, ["2+2"])
    assert capsys.readouterr().out == "4\n"
    assert len(evaluator.env) == 0


def test_results_are_named_in_order(capsys: pytest.CaptureFixture[str]) -> None:
    evaluator = Evaluator()
    run_batch(evaluator, ["2+2", "a+2", "a+b"])
    assert capsys.readouterr().out == "a: 4\nb: 6\nc: 10\n"
    assert evaluator.env.names() == ["a", "b", "c"]


def test_no_expressions() -> None:
    with pytest.raises(UsageError) as exc_info:
        run_batch(Evaluator(), [])
    assert exc_info.value.exit_code == 1


def test_too_many_expressions(capsys: pytest.CaptureFixture[str]) -> None:
    evaluator = Evaluator()
    with pytest.raises(ArityOverflow) as exc_info:
        run_batch(evaluator, ["1"] * (MAX_EXPRESSIONS + 1))
    assert str(exc_info.value) == "too many expressions: 27 (max is 26)"
    assert exc_info.value.exit_code == 2
    assert capsys.readouterr().out == ""
    assert len(evaluator.env) == 0


def test_first_failure_aborts(capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(EvaluationFailed, match="unknown symbol: 'b'"):
        run_batch(Evaluator(), ["1", "b", "3"])
    assert capsys.readouterr().out == "a: 1\n"


def test_verbose_prints_profile(capsys: pytest.CaptureFixture[str]) -> None:
    run_batch(Evaluator(verbose=True), ["1", "a+1"])
    captured = capsys.readouterr()
    assert captured.out == "a: 1\nb: 2\n"
    assert "meta-data(a):\n" in captured.err
    assert "meta-data(b):\n  class: Inject\n    symbol: param[0]\n" in captured.err
