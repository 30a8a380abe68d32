"""
Parsing of currency-formatted text values.

Proposal values and reference prices are stored as text such as
``"R$ 1.234,56"``. Ordering and range filters work on the parsed Decimal.
"""
from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation
from typing import Optional

_STRIP = re.compile(r"[^0-9,.\-]")


def parse_currency(raw) -> Optional[Decimal]:
    """Return the numeric value of ``raw`` or None when it cannot be parsed.

    Accepts Brazilian ("R$ 1.234,56", "1.500,00"), plain ("1234.56") and
    integer ("2000") renderings.
    """
    if raw is None:
        return None
    if isinstance(raw, (int, float, Decimal)):
        return Decimal(str(raw))
    text = _STRIP.sub("", str(raw))
    if not text or text in {"-", ",", "."}:
        return None
    if "," in text:
        # comma is the decimal separator, dots group thousands
        text = text.replace(".", "").replace(",", ".")
    elif text.count(".") > 1:
        text = text.replace(".", "")
    elif "." in text:
        whole, frac = text.split(".")
        if len(frac) == 3 and whole not in {"", "-"}:
            # "1.500" is a thousands group, not a fraction
            text = whole + frac
    try:
        return Decimal(text)
    except InvalidOperation:
        return None


def format_brl(value: Decimal) -> str:
    """Render ``value`` as ``R$ 1.234,56``."""
    quantized = Decimal(value).quantize(Decimal("0.01"))
    sign = "-" if quantized < 0 else ""
    whole, frac = f"{abs(quantized):.2f}".split(".")
    groups = []
    while len(whole) > 3:
        groups.insert(0, whole[-3:])
        whole = whole[:-3]
    groups.insert(0, whole)
    return f"R$ {sign}{'.'.join(groups)},{frac}"
