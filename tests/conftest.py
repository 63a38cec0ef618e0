import pytest
from loguru import logger

from evalexpr.core import Environment, Evaluator


@pytest.fixture(autouse=True)
def _quiet_logging(monkeypatch: pytest.MonkeyPatch) -> None:
    logger.remove()
    monkeypatch.setattr("evalexpr.cli.app.configure_logging", lambda **_: None)


@pytest.fixture
def env() -> Environment:
    return Environment()


@pytest.fixture
def evaluator(env: Environment) -> Evaluator:
    return Evaluator(env)
