"""JSON request/reply loop over a pair of text streams."""

from __future__ import annotations

import json
from typing import Any, TextIO

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from evalexpr.core import Evaluator, Failure, Success
from evalexpr.errors import ProtocolDecodeError

MISSING_EXPRESSION = "missing expression (field name: 'expr')"


class EvalRequest(BaseModel):
    """One evaluation request; unknown fields are ignored."""

    expr: str | None = None
    name: str | None = None
    verbose: bool = False

    model_config = ConfigDict(extra="ignore", strict=True)


class StepInfo(BaseModel):
    class_name: str = Field(serialization_alias="class")
    symbol: str


class EvalResponse(BaseModel):
    result: str | None = None
    steps: list[StepInfo] | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True, by_alias=True)


def _describe(exc: ValidationError) -> str:
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"]) or "request"
        problems.append(f"{location}: {error['msg']}")
    return "invalid request: " + "; ".join(problems)


class JsonRepl:
    """Reads one JSON value per cycle and writes one compact reply line.

    An object is answered with an object, an array of requests with an
    array of replies in the same order.
    """

    def __init__(self, evaluator: Evaluator, instream: TextIO, outstream: TextIO) -> None:
        self.evaluator = evaluator
        self.instream = instream
        self.outstream = outstream
        self._buffer = ""
        self._decoder = json.JSONDecoder()

    def handle(self, request: EvalRequest) -> EvalResponse:
        if not request.expr:
            return EvalResponse(error=MISSING_EXPRESSION)
        match self.evaluator.evaluate(request.expr, profiling=request.verbose):
            case Failure(message):
                return EvalResponse(error=message)
            case Success(value=value, profile=profile):
                if request.name:
                    self.evaluator.env.bind(request.name, value)
                steps = None
                if profile:
                    steps = [StepInfo(class_name=step.class_name, symbol=step.symbol) for step in profile]
                return EvalResponse(result=value.to_expr(), steps=steps)

    def handle_message(self, message: Any) -> dict[str, Any]:
        try:
            request = EvalRequest.model_validate(message)
        except ValidationError as exc:
            return EvalResponse(error=_describe(exc)).to_dict()
        return self.handle(request).to_dict()

    def reply_to(self, document: Any) -> Any:
        if isinstance(document, list):
            return [self.handle_message(message) for message in document]
        return self.handle_message(document)

    def read_request(self) -> Any | None:
        """Decode the next JSON value; None at a clean end of input.

        Raises:
            ProtocolDecodeError: on malformed or truncated input
        """
        while True:
            text = self._buffer.lstrip()
            if text:
                try:
                    document, end = self._decoder.raw_decode(text)
                except json.JSONDecodeError as exc:
                    if not self._incomplete(text, exc):
                        raise ProtocolDecodeError(f"malformed request: {exc}") from exc
                else:
                    self._buffer = text[end:]
                    return document
            line = self.instream.readline()
            if not line:
                if text:
                    raise ProtocolDecodeError("malformed request: unexpected end of input")
                return None
            self._buffer = text + line

    @staticmethod
    def _incomplete(text: str, exc: json.JSONDecodeError) -> bool:
        return exc.pos >= len(text.rstrip()) or exc.msg.startswith("Unterminated string")

    def run(self) -> int:
        """Serve requests until end of input.

        Raises:
            ProtocolDecodeError: when the input is not valid JSON
        """
        cycles = 0
        while (document := self.read_request()) is not None:
            reply = self.reply_to(document)
            self.outstream.write(json.dumps(reply, separators=(",", ":")) + "\n")
            self.outstream.flush()
            cycles += 1
        logger.debug("json_repl.stop cycles={}", cycles)
        return 0
