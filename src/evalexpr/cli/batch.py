"""Batch evaluation of command line expressions."""

from __future__ import annotations

import string
from collections.abc import Sequence

from loguru import logger

from evalexpr.cli.render import print_value
from evalexpr.core import Evaluator, Failure, Success
from evalexpr.errors import ArityOverflow, EvaluationFailed, UsageError

BATCH_NAMES = string.ascii_lowercase
MAX_EXPRESSIONS = len(BATCH_NAMES)


def run_batch(evaluator: Evaluator, expressions: Sequence[str]) -> None:
    """Evaluate `expressions` in order.

    A single expression is printed unnamed. With several, each result is
    printed and then bound under the next letter, so later expressions can
    refer to earlier results.

    Raises:
        UsageError: if there are no expressions
        ArityOverflow: if there are more expressions than letters
        EvaluationFailed: on the first expression that fails
    """
    if not expressions:
        raise UsageError()
    if len(expressions) > MAX_EXPRESSIONS:
        raise ArityOverflow(len(expressions), MAX_EXPRESSIONS)

    logger.debug("batch.start count={} verbose={}", len(expressions), evaluator.verbose)
    single = len(expressions) == 1
    for name, expr in zip(BATCH_NAMES, expressions):
        match evaluator.evaluate(expr):
            case Failure(message):
                raise EvaluationFailed(message)
            case Success(value=value, profile=profile):
                print_value(value, None if single else name, profile)
                if not single:
                    evaluator.env.bind(name, value)
