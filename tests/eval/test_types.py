from evalexpr.eval import CellType, Dimension, ValueType


def _t(spec: str) -> ValueType:
    return ValueType.from_spec(spec)


def test_join_merges_dimensions() -> None:
    assert ValueType.join(_t("tensor(x[2])"), _t("tensor(y{})")) == _t("tensor(x[2],y{})")


def test_join_rejects_size_mismatch() -> None:
    assert ValueType.join(_t("tensor(x[2])"), _t("tensor(x[3])")).is_error


def test_join_cell_type_rules() -> None:
    floats = _t("tensor<float>(x[2])")
    assert ValueType.join(floats, ValueType.double()).cell_type is CellType.FLOAT
    assert ValueType.join(floats, floats).cell_type is CellType.FLOAT
    assert ValueType.join(floats, _t("tensor(x[2])")).cell_type is CellType.DOUBLE


def test_reduce() -> None:
    value_type = _t("tensor(x[2],y[3])")
    assert value_type.reduce([]) == ValueType.double()
    assert value_type.reduce(["y"]) == _t("tensor(x[2])")
    assert value_type.reduce(["z"]).is_error


def test_rename() -> None:
    value_type = _t("tensor(x[2],y{})")
    assert value_type.rename(["x"], ["z"]) == ValueType.tensor([Dimension("y"), Dimension("z", 2)])
    assert value_type.rename(["x"], ["y"]).is_error
    assert value_type.rename(["w"], ["z"]).is_error


def test_either() -> None:
    assert ValueType.either(ValueType.double(), ValueType.double()) == ValueType.double()
    assert ValueType.either(ValueType.double(), _t("tensor(x[2])")).is_error


def test_spec_text() -> None:
    assert str(ValueType.error()) == "error"
    assert str(ValueType.double()) == "double"
    assert str(_t("tensor(x{},y[2])")) == "tensor(x{},y[2])"


def test_reduce_rejects_repeated_dimensions() -> None:
    assert _t("tensor(x[2],y[3])").reduce(["x", "x"]).is_error
