import io
import json

import pytest

from evalexpr.cli.json_repl import MISSING_EXPRESSION, JsonRepl
from evalexpr.core import Evaluator
from evalexpr.errors import ProtocolDecodeError


def _run(text: str, evaluator: Evaluator | None = None) -> list:
    out = io.StringIO()
    repl = JsonRepl(evaluator or Evaluator(), io.StringIO(text), out)
    assert repl.run() == 0
    return [json.loads(line) for line in out.getvalue().splitlines()]


def test_missing_expression() -> None:
    assert _run('{"expr": ""}\n{"name": "x"}\n') == [{"error": MISSING_EXPRESSION}, {"error": MISSING_EXPRESSION}]


def test_named_results_are_bound() -> None:
    replies = _run('{"expr": "1+1", "name": "a"}\n{"expr": "a*tensor(x[2]):[1,2]"}\n')
    assert replies == [{"result": "2"}, {"result": "tensor(x[2]):{{x:0}:2,{x:1}:4}"}]


def test_array_requests_get_array_replies_in_order() -> None:
    replies = _run('[{"expr": "1"}, {"expr": "nope"}, {"expr": "3"}]\n')
    assert len(replies) == 1
    batch = replies[0]
    assert [reply.get("result") for reply in batch] == ["1", None, "3"]
    assert batch[1]["error"].startswith("expression parsing failed: ")


def test_verbose_adds_steps() -> None:
    replies = _run('{"expr": "2*3", "verbose": true}\n{"expr": "2*3"}\n')
    assert replies[0] == {"result": "6", "steps": [{"class": "ConstValue", "symbol": "const(double)"}]}
    assert replies[1] == {"result": "6"}


def test_invalid_requests_do_not_end_session() -> None:
    replies = _run('5\n{"expr": 5}\n{"expr": "4", "extra": true}\n')
    assert replies[0]["error"].startswith("invalid request: ")
    assert replies[1]["error"].startswith("invalid request: expr: ")
    assert replies[2] == {"result": "4"}


def test_requests_may_span_lines_or_share_one() -> None:
    replies = _run('{\n  "expr":\n  "1+2"\n}\n{"expr": "1"} {"expr": "2"}\n\n')
    assert replies == [{"result": "3"}, {"result": "1"}, {"result": "2"}]


def test_non_finite_results_are_reparseable() -> None:
    assert _run('{"expr": "-1/0"}\n') == [{"result": "(-1/0)"}]


@pytest.mark.parametrize("text", ['{"expr" "1"}\n', '{"expr": "1"', "]\n"])
def test_malformed_input_raises(text: str) -> None:
    repl = JsonRepl(Evaluator(), io.StringIO(text), io.StringIO())
    with pytest.raises(ProtocolDecodeError) as exc_info:
        repl.run()
    assert exc_info.value.exit_code == 3


def test_null_expression_is_missing() -> None:
    assert _run('{"expr": null}\n') == [{"error": MISSING_EXPRESSION}]


def test_negative_zero_result() -> None:
    assert _run('{"expr": "0*-1"}\n') == [{"result": "-0"}]
