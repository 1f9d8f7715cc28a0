"""
filename: types.py
author: Valentin Piombo
email: valenp97@gmail.com
description: Module for the custom column types shared by the models.
"""

from decimal import Decimal

from sqlalchemy import BigInteger
from sqlalchemy.types import TypeDecorator

from ledger.errors import MonetaryFormatError

CENT = Decimal("0.01")


def to_cents(value: str | int | Decimal) -> int:
    """
    Convert an amount with at most two fraction digits into an integer number of cents.

    :param value: (str | int | Decimal) amount, e.g. "-150.25".
    :returns: (int) e.g. -15025.
    :raises MonetaryFormatError: if the value is a float or has sub-cent digits.
    """
    if isinstance(value, float):
        raise MonetaryFormatError("Monetary amounts cannot be floats")
    amount = value if isinstance(value, Decimal) else Decimal(str(value))
    cents = amount.scaleb(2)
    if cents != cents.to_integral_value():
        raise MonetaryFormatError(f"Invalid monetary amount: {value!r}")
    return int(cents)


def from_cents(cents: int) -> Decimal:
    return (Decimal(cents) * CENT).quantize(CENT)


class Money(TypeDecorator):
    """
    Two-digit decimal amount stored as an integer number of cents. The application sees
    Decimal values; the database only ever stores and adds integers.
    """

    impl = BigInteger
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return to_cents(value)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return from_cents(value)
