"""
filename: credit_card.py
author: Valentin Piombo
email: valenp97@gmail.com
description: Module for the definition of the credit card model.
"""

from decimal import Decimal

from sqlalchemy import Boolean, Column, ForeignKey, Integer, String

from ledger.database import Base
from ledger.models.types import Money


class CreditCard(Base):
    __tablename__ = "credit_card"
    id = Column(
        Integer,
        primary_key=True,
        index=True,
        autoincrement=True,
        doc="Unique identifier of the credit card entry",
    )
    name = Column(String(255), doc="Name or alias of the credit card entry")
    user_id = Column(Integer, nullable=False, index=True, doc="Owner of the credit card entry")
    active = Column(Boolean, nullable=False, default=True, doc="Whether the card is in use")
    balance = Column(
        Money(),
        nullable=False,
        default=Decimal("0.00"),
        doc="Outstanding balance of the card; expenses increase it, incomes decrease it",
    )
    limit = Column(Money(), nullable=False, default=Decimal("0.00"), doc="Credit limit")
    account_id = Column(
        Integer,
        ForeignKey("account.id"),
        nullable=True,
        doc="(optional) Account that pays the card's bills",
    )
