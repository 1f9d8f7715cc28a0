"""
filename: monetary.py
author: Valentin Piombo
email: valenp97@gmail.com
description: Module for the exact handling of monetary amounts and balance deltas. Amounts are
    kept as decimal strings with two fraction digits and never go through a float; adding a
    delta to a balance is left to the database (see ledger.routers.balance).
"""

import re
from decimal import Decimal

from ledger.errors import MonetaryFormatError
from ledger.models.transaction import TransactionSource, TransactionType

ZERO = "0.00"
_UNSIGNED_PATTERN = re.compile(r"^(\d+)(?:\.(\d{1,2}))?$")


def to_unsigned_monetary(value: str | int | Decimal | None) -> str:
    """
    Normalize a monetary input into an unsigned decimal string with two fraction digits.

    :param value: (str | int | Decimal | None) amount; a leading sign is discarded.
    :returns: (str) e.g. "150.00".
    :raises MonetaryFormatError: if the value is a float or has more than two fraction digits.
    """
    if value is None:
        return ZERO
    if isinstance(value, float):
        raise MonetaryFormatError("Monetary amounts cannot be floats")
    text = format(value, "f") if isinstance(value, Decimal) else str(value).strip()
    if not text:
        return ZERO
    if text[0] in "+-":
        text = text[1:]
    match = _UNSIGNED_PATTERN.match(text)
    if not match:
        raise MonetaryFormatError(f"Invalid monetary amount: {value!r}")
    integer_part, fraction_part = match.group(1), match.group(2) or ""
    return f"{integer_part.lstrip('0') or '0'}.{fraction_part.ljust(2, '0')}"


def format_monetary(value: str | Decimal) -> str:
    """
    Render an amount read from the database as a signed string with two fraction digits.
    """
    amount = Decimal(str(value)).quantize(Decimal("0.01"))
    if amount == 0:
        return ZERO
    return format(amount, "f")


def is_zero_delta(delta: str) -> bool:
    """True when the delta is exactly 0.00, whatever its sign or padding."""
    unsigned = delta[1:] if delta[:1] in "+-" else delta
    return not unsigned.replace(".", "").strip("0")


def invert_delta(delta: str) -> str:
    """Flip the sign of a delta; zero maps to itself."""
    if is_zero_delta(delta):
        return ZERO
    if delta.startswith("-"):
        return delta[1:]
    return f"-{delta.lstrip('+')}"


def signed_delta(
    transaction_type: TransactionType,
    transaction_source: TransactionSource,
    value: str | int | Decimal | None,
) -> str:
    """
    Compute the change a transaction causes on its balance holder's running balance.

    Accounts hold money: income raises the balance and an expense lowers it. Credit cards hold
    debt: an expense raises the outstanding balance and an income (refund or payment) lowers
    it.

    :param transaction_type: (TransactionType) income or expense.
    :param transaction_source: (TransactionSource) account or credit card.
    :param value: amount of the transaction, its sign is ignored.
    :returns: (str) the signed delta, e.g. "-150.00".
    """
    amount = to_unsigned_monetary(value)
    if transaction_source == TransactionSource.ACCOUNT:
        increases = transaction_type == TransactionType.INCOME
    else:
        increases = transaction_type == TransactionType.EXPENSE
    if increases or is_zero_delta(amount):
        return amount
    return f"-{amount}"
