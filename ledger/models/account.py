"""
filename: account.py
author: Valentin Piombo
email: valenp97@gmail.com
description: Module for the definition of the account model.
"""

from decimal import Decimal

from sqlalchemy import Boolean, Column, Integer, String

from ledger.database import Base
from ledger.models.types import Money


class Account(Base):
    __tablename__ = "account"
    id = Column(
        Integer,
        primary_key=True,
        index=True,
        autoincrement=True,
        doc="Unique identifier of the account entry",
    )
    name = Column(String(255), doc="Name or alias of the account entry")
    user_id = Column(Integer, nullable=False, index=True, doc="Owner of the account entry")
    active = Column(Boolean, nullable=False, default=True, doc="Whether the account is in use")
    balance = Column(
        Money(),
        nullable=False,
        default=Decimal("0.00"),
        doc=(
            "Running balance of the account; transactions only ever change it through an "
            "atomic delta (see ledger.routers.balance)"
        ),
    )
