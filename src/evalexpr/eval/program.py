"""Executable step programs compiled from tensor function graphs."""

from __future__ import annotations

import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass

import numpy as np
from loguru import logger

from evalexpr.eval.tensor_function import If, TensorFunction
from evalexpr.eval.value import Value


@dataclass(frozen=True)
class ProfileStep:
    """Execution statistics for one program step."""

    class_name: str
    symbol: str
    count: int
    elapsed_ns: int

    @property
    def time_us(self) -> float:
        return self.elapsed_ns / 1000.0


class _State:
    """Value stack, parameters and program counter of one execution."""

    def __init__(self, params: Sequence[Value]) -> None:
        self.params = params
        self.stack: list[Value] = []
        self.pc = 0


@dataclass(frozen=True)
class Step:
    class_name: str
    symbol: str
    run: Callable[[_State], None]


def _compute_step(node: TensorFunction) -> Callable[[_State], None]:
    arity = len(node.children())

    def run(state: _State) -> None:
        if arity:
            inputs = state.stack[-arity:]
            del state.stack[-arity:]
        else:
            inputs = []
        state.stack.append(node.compute(inputs, state.params))

    return run


def _skip_if_false(target: int) -> Callable[[_State], None]:
    def run(state: _State) -> None:
        if state.stack.pop().as_double() == 0.0:
            state.pc = target

    return run


def _skip(target: int) -> Callable[[_State], None]:
    def run(state: _State) -> None:
        state.pc = target

    return run


class Program:
    """A flat list of steps operating on a value stack.

    Conditionals are compiled into skip steps, so a step may run zero
    times. Every other step runs exactly once per execution.
    """

    def __init__(self, steps: list[Step]) -> None:
        self.steps = steps

    @classmethod
    def compile(cls, root: TensorFunction) -> Program:
        steps: list[Step] = []
        cls._emit(root, steps)
        logger.debug("program.compile steps={}", len(steps))
        return cls(steps)

    @classmethod
    def _emit(cls, node: TensorFunction, steps: list[Step]) -> None:
        if isinstance(node, If):
            cls._emit(node.cond, steps)
            branch_at = len(steps)
            steps.append(Step("If", "skip_if_false", _skip(0)))
            cls._emit(node.true_branch, steps)
            skip_at = len(steps)
            steps.append(Step("If", "skip", _skip(0)))
            cls._emit(node.false_branch, steps)
            steps[branch_at] = Step("If", "skip_if_false", _skip_if_false(skip_at + 1))
            steps[skip_at] = Step("If", "skip", _skip(len(steps)))
            return
        for child in node.children():
            cls._emit(child, steps)
        steps.append(Step(node.class_name, node.symbol, _compute_step(node)))

    @property
    def size(self) -> int:
        return len(self.steps)

    @staticmethod
    def _result(state: _State) -> Value:
        if len(state.stack) != 1:
            raise RuntimeError(f"program ended with {len(state.stack)} values on the stack")
        return state.stack[0]

    def execute(self, params: Sequence[Value]) -> Value:
        state = _State(params)
        with np.errstate(all="ignore"):
            while state.pc < len(self.steps):
                step = self.steps[state.pc]
                state.pc += 1
                step.run(state)
        return self._result(state)

    def execute_profiled(self, params: Sequence[Value]) -> tuple[Value, list[ProfileStep]]:
        """Execute while counting and timing every step.

        Returns one ProfileStep per program step, in program order.
        """
        counts = [0] * len(self.steps)
        elapsed = [0] * len(self.steps)
        state = _State(params)
        with np.errstate(all="ignore"):
            while state.pc < len(self.steps):
                idx = state.pc
                state.pc += 1
                start = time.perf_counter_ns()
                self.steps[idx].run(state)
                elapsed[idx] += time.perf_counter_ns() - start
                counts[idx] += 1
        profile = [
            ProfileStep(step.class_name, step.symbol, count, ns)
            for step, count, ns in zip(self.steps, counts, elapsed, strict=True)
        ]
        return self._result(state), profile
