"""Value kinds used for attributes, generator parameters and loop bounds."""

from __future__ import annotations

from typing import Union

from ggl.errors import TypeMismatch

Value = Union[str, int, float, bool]

STRING = "string"
INTEGER = "integer"
FLOAT = "float"
BOOLEAN = "boolean"

# Annotation names accepted by `let name: <type> = ...`
TYPE_ANNOTATIONS: dict[str, str] = {
    "string": STRING,
    "str": STRING,
    "int": INTEGER,
    "integer": INTEGER,
    "float": FLOAT,
    "bool": BOOLEAN,
    "boolean": BOOLEAN,
}


def kind_of(value: Value) -> str:
    """Return the kind name of a value. bool is checked before int."""
    if isinstance(value, bool):
        return BOOLEAN
    if isinstance(value, int):
        return INTEGER
    if isinstance(value, float):
        return FLOAT
    if isinstance(value, str):
        return STRING
    raise TypeMismatch(f"Unsupported value {value!r} of type {type(value).__name__}")


def is_integer(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def values_equal(a: Value, b: Value) -> bool:
    """Kind-aware equality: 1 != 1.0 and 1 != true."""
    return kind_of(a) == kind_of(b) and a == b


def stringify(value: Value) -> str:
    """Render a value the way interpolation and node ids see it."""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def as_integer(value: Value, what: str) -> int:
    """Coerce a loop bound or count to int, widening integral floats."""
    if is_integer(value):
        return value  # type: ignore[return-value]
    if isinstance(value, float) and value.is_integer():
        return int(value)
    raise TypeMismatch(f"{what} must be an integer, got {kind_of(value)} {stringify(value)!r}")


def check_annotation(value: Value, annotation: str) -> Value:
    """Validate a `let` type annotation, widening int to float where asked."""
    expected = TYPE_ANNOTATIONS.get(annotation)
    if expected is None:
        raise TypeMismatch(f"Unknown type annotation '{annotation}'")
    actual = kind_of(value)
    if actual == expected:
        return value
    if expected == FLOAT and actual == INTEGER:
        return float(value)
    raise TypeMismatch(f"Expected {expected}, got {actual} {stringify(value)!r}")


# ---- Arithmetic ----


def _numeric_operands(op: str, left: Value, right: Value) -> None:
    if not (is_number(left) and is_number(right)):
        raise TypeMismatch(
            f"Operator '{op}' not supported between {kind_of(left)} and {kind_of(right)}"
        )


def binary_op(op: str, left: Value, right: Value) -> Value:
    """Apply an arithmetic or comparison operator."""
    if op == "==":
        return values_equal(left, right) or (is_number(left) and is_number(right) and left == right)
    if op == "!=":
        return not binary_op("==", left, right)

    if op == "+" and isinstance(left, str) and isinstance(right, str):
        return left + right

    if op in ("<", "<=", ">", ">="):
        if not (isinstance(left, str) and isinstance(right, str)):
            _numeric_operands(op, left, right)
        if op == "<":
            return left < right  # type: ignore[operator]
        if op == "<=":
            return left <= right  # type: ignore[operator]
        if op == ">":
            return left > right  # type: ignore[operator]
        return left >= right  # type: ignore[operator]

    _numeric_operands(op, left, right)
    if op == "+":
        return left + right  # type: ignore[operator]
    if op == "-":
        return left - right  # type: ignore[operator]
    if op == "*":
        return left * right  # type: ignore[operator]
    if op in ("/", "%"):
        if right == 0:
            raise TypeMismatch("Division by zero")
        if op == "%":
            return left % right  # type: ignore[operator]
        if is_integer(left) and is_integer(right):
            return left // right  # type: ignore[operator]
        return left / right  # type: ignore[operator]
    raise TypeMismatch(f"Unknown operator '{op}'")


def negate(value: Value) -> Value:
    if not is_number(value):
        raise TypeMismatch(f"Cannot negate {kind_of(value)} {stringify(value)!r}")
    return -value  # type: ignore[operator]
