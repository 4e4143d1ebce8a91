"""
Amount conversion helpers shared by every executor
"""

from decimal import Decimal, InvalidOperation, ROUND_DOWN, ROUND_HALF_UP, localcontext
from typing import Union

LAMPORTS_PER_SOL = 10 ** 9

_DISPLAY_QUANTUM = Decimal("0.000001")

Number = Union[str, int, float, Decimal]


def format_display_amount(raw_amount: Number, decimals: Union[str, int]) -> str:
    """
    Convert a raw integer token amount into a display string

    The amount is divided by 10**decimals and fixed to 6 decimal places.

    Example:
        format_display_amount("1234560", 6) -> "1.234560"
    """
    with localcontext() as ctx:
        ctx.prec = 80
        value = Decimal(str(raw_amount)) / (Decimal(10) ** int(decimals))
        return format(value.quantize(_DISPLAY_QUANTUM, rounding=ROUND_HALF_UP), "f")


def to_base_units(amount: Number, decimals: Union[str, int]) -> str:
    """
    Convert a human-readable amount into raw base units

    Digits beyond the token precision are truncated.

    Example:
        to_base_units("1.23456", 6) -> "1234560"
    """
    try:
        value = Decimal(str(amount))
    except InvalidOperation:
        raise ValueError(f"Invalid amount: {amount!r}")
    with localcontext() as ctx:
        ctx.prec = 80
        scaled = (value * (Decimal(10) ** int(decimals))).quantize(Decimal(1), rounding=ROUND_DOWN)
    return str(int(scaled))


def lamports_to_sol(lamports: Number) -> Decimal:
    """Convert lamports to SOL"""
    return Decimal(str(lamports)) / LAMPORTS_PER_SOL


def sol_to_lamports(sol: Number) -> str:
    """Convert SOL to lamports (integer string)"""
    return to_base_units(sol, 9)
