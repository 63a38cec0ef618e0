from evalexpr.core import Environment
from evalexpr.eval import Value, ValueType


def test_bind_reports_replacement(env: Environment) -> None:
    assert env.bind("a", Value.double(1)) is False
    assert env.bind("a", Value.double(2)) is True
    assert len(env) == 1
    assert env.get("a") == Value.double(2)


def test_rebind_keeps_position_and_updates_type(env: Environment) -> None:
    env.bind("a", Value.double(1))
    env.bind("b", Value.double(2))
    tensor = Value.create(ValueType.from_spec("tensor(x[2])"), {})
    env.bind("a", tensor)
    assert env.names() == ["a", "b"]
    assert env.type_at(0) == tensor.type


def test_remove_shifts_later_bindings(env: Environment) -> None:
    for idx, name in enumerate("abc"):
        env.bind(name, Value.double(idx))
    assert env.remove("b") is True
    assert env.remove("b") is False
    assert env.names() == ["a", "c"]
    assert env.name_at(1) == "c"
    assert env.positional_values() == [Value.double(0), Value.double(2)]


def test_types_follow_binding_order(env: Environment) -> None:
    env.bind("t", Value.create(ValueType.from_spec("tensor(x{})"), {}))
    env.bind("d", Value.double(1))
    assert [str(value_type) for value_type in env.types()] == ["tensor(x{})", "double"]
    assert [binding.name for binding in env] == ["t", "d"]
