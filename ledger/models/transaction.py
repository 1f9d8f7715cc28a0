"""
filename: transaction.py
author: Valentin Piombo
email: valenp97@gmail.com
description: Module for the definition of the transaction model.
"""

from enum import Enum as PyEnum

from sqlalchemy import Boolean, Column, DateTime, Enum, ForeignKey, Integer, Text

from ledger.database import Base
from ledger.models.types import Money
from ledger.utils.tools import now_factory


class TransactionType(str, PyEnum):
    INCOME = "income"
    EXPENSE = "expense"


class TransactionSource(str, PyEnum):
    ACCOUNT = "account"
    CREDIT_CARD = "creditCard"


def _enum_values(enum_class) -> list[str]:
    return [member.value for member in enum_class]


class Transaction(Base):
    __tablename__ = "transaction"
    id = Column(
        Integer,
        primary_key=True,
        index=True,
        autoincrement=True,
        doc="Unique identifier of the transaction entry",
    )
    value = Column(
        Money(),
        nullable=False,
        doc="Unsigned transaction amount, with a precision of two decimal places, stored in cents",
    )
    date = Column(DateTime, nullable=False, doc="Date/time of the event the entry records")
    transaction_type = Column(
        Enum(TransactionType, values_callable=_enum_values),
        nullable=False,
        doc="Whether money came in (income) or went out (expense)",
    )
    transaction_source = Column(
        Enum(TransactionSource, values_callable=_enum_values),
        nullable=False,
        doc="Which balance holder the entry affects; exactly one of <account_id> and "
        "<credit_card_id> is set accordingly",
    )
    observation = Column(Text, nullable=True, doc="User defined notes of the transaction entry")
    is_installment = Column(Boolean, nullable=False, default=False)
    total_months = Column(Integer, nullable=True)
    is_recurring = Column(Boolean, nullable=False, default=False)
    payment_day = Column(Integer, nullable=True)
    active = Column(Boolean, nullable=False, default=True)
    account_id = Column(
        Integer,
        ForeignKey("account.id"),
        nullable=True,
        doc="Foreign key link to the account, when the source is an account",
    )
    credit_card_id = Column(
        Integer,
        ForeignKey("credit_card.id"),
        nullable=True,
        doc="Foreign key link to the credit card, when the source is a credit card",
    )
    category_id = Column(
        Integer,
        ForeignKey("category.id"),
        nullable=True,
        doc="Foreign key link to the category to which the transaction entry is bound to",
    )
    subcategory_id = Column(
        Integer,
        ForeignKey("subcategory.id"),
        nullable=True,
        doc="Foreign key link to the subcategory to which the transaction entry is bound to",
    )
    creation_datetime = Column(
        DateTime,
        default=now_factory,
        doc="Date/time of creation of the transaction entry in the database",
    )
    last_update_datetime = Column(
        DateTime,
        default=now_factory,
        doc="Date/time of the last update operation of the transaction entry",
    )
