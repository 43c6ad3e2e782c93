"""Bounded integer helpers; results must fit an unsigned 256-bit word."""

from proof_of_capital.engine.constants import UINT256_MAX
from proof_of_capital.engine.errors import ArithmeticOverflow


def _bounded(value: int, op: str) -> int:
    if value < 0:
        raise ArithmeticOverflow(f"{op} underflow: {value}")
    if value > UINT256_MAX:
        raise ArithmeticOverflow(f"{op} overflow")
    return value


def checked_add(a: int, b: int) -> int:
    return _bounded(a + b, "add")


def checked_sub(a: int, b: int) -> int:
    return _bounded(a - b, "sub")


def checked_mul(a: int, b: int) -> int:
    return _bounded(a * b, "mul")


def mul_div(a: int, b: int, denominator: int) -> int:
    """floor(a * b / denominator) with the product checked."""
    return checked_mul(a, b) // denominator


def mul_div_up(a: int, b: int, denominator: int) -> int:
    """ceil(a * b / denominator) with the product checked."""
    return -(-checked_mul(a, b) // denominator)
