"""Expression evaluation pipeline.

Runs parse → type resolution → graph build → optimize → execute for one
expression against the current environment.
"""

from __future__ import annotations

from dataclasses import dataclass

from loguru import logger

from evalexpr.core.environment import Environment
from evalexpr.errors import InvariantViolation
from evalexpr.eval import (
    ParseError,
    ProfileStep,
    Program,
    Value,
    ValueType,
    make_tensor_function,
    optimize_tensor_function,
    parse,
    resolve_types,
)


@dataclass(frozen=True)
class Success:
    value: Value
    resolved_type: ValueType
    profile: tuple[ProfileStep, ...] | None = None


@dataclass(frozen=True)
class Failure:
    message: str


EvaluationOutcome = Success | Failure


class Evaluator:
    """Evaluates expressions against an environment it owns.

    Evaluation never changes the environment; binding a result is up to
    the caller.
    """

    def __init__(self, env: Environment | None = None, *, verbose: bool = False) -> None:
        self.env = env if env is not None else Environment()
        self.verbose = verbose

    def evaluate(self, expr: str, profiling: bool | None = None) -> EvaluationOutcome:
        """Evaluate `expr`, profiling every step if requested.

        `profiling` defaults to the evaluator's `verbose` flag.

        Raises:
            InvariantViolation: if the executor breaks its contract
        """
        if profiling is None:
            profiling = self.verbose
        logger.debug("eval.start expr={!r} profiling={}", expr, profiling)

        try:
            function = parse(expr, self.env.names())
        except ParseError as exc:
            logger.debug("eval.parse_failed expr={!r} error={}", expr, exc)
            return Failure(f"expression parsing failed: {exc}")

        types = resolve_types(function, self.env.types())
        result_type = types.get_type(function.root)
        if result_type.is_error or types.errors:
            lines = [f"type resolving failed for expression: '{expr}'"]
            lines.extend(f"  type issue: {issue}" for issue in types.errors)
            logger.debug("eval.type_failed expr={!r} issues={}", expr, len(types.errors))
            return Failure("\n".join(lines))

        plain = make_tensor_function(function, types)
        optimized = optimize_tensor_function(plain)
        program = Program.compile(optimized)
        params = self.env.positional_values()

        profile: tuple[ProfileStep, ...] | None = None
        if profiling:
            result, steps = program.execute_profiled(params)
            if len(steps) != program.size:
                raise InvariantViolation(f"profiled {len(steps)} steps, program has {program.size}")
            profile = tuple(steps)
        else:
            result = program.execute(params)

        if result.type != result_type:
            raise InvariantViolation(f"result type {result.type} differs from resolved type {result_type}")
        logger.debug("eval.done expr={!r} type={} steps={}", expr, result_type, program.size)
        return Success(result, result_type, profile)
