# glue_core/units.py
"""
@file units.py
@brief Decimal amount to integer base-unit conversion.
"""

from __future__ import annotations

import re
from decimal import Decimal, localcontext

_AMOUNT = re.compile(r"^-?(\d+)?(\.\d*)?$")


def parse_units(text: str, decimals: int) -> int:
    """
    Convert a human readable amount ("0.5") into integer base units.

    @param text Decimal string, optionally signed, no exponent
    @param decimals Number of fractional digits of the unit
    @throws ValueError on malformed input or excess precision
    """
    value = text.strip().replace(",", "")
    if not value or value in {"-", ".", "-."} or not _AMOUNT.match(value):
        raise ValueError(f"invalid decimal value: {text!r}")
    if decimals < 0:
        raise ValueError("decimals must be non-negative")

    if "." in value:
        fraction = value.split(".", 1)[1]
        if len(fraction.rstrip("0")) > decimals:
            raise ValueError(f"too many decimals for {decimals}-decimal unit: {text!r}")

    with localcontext() as ctx:
        ctx.prec = len(value) + decimals + 2
        return int(Decimal(value).scaleb(decimals))
