"""
filename: balance.py
author: Valentin Piombo
email: valenp97@gmail.com
description: Module for the balance of accounts and credit cards, and the routes to read it.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal

from fastapi import APIRouter, Path
from pydantic import BaseModel
from sqlalchemy import literal, select, update
from sqlalchemy.orm import Session
from starlette import status

from ledger.database import db_dependency
from ledger.errors import AccountNotFound, BalanceInvariantViolation, CreditCardNotFound
from ledger.models import Account, CreditCard, TransactionSource
from ledger.models.types import Money
from ledger.utils.monetary import format_monetary
from ledger.utils.tools import validate_entries_in_db

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/balance", tags=["balance"])

BALANCE_MODELS = {
    TransactionSource.ACCOUNT: Account,
    TransactionSource.CREDIT_CARD: CreditCard,
}


@dataclass(frozen=True)
class BalanceHolder:
    """The account or credit card whose balance a transaction moves."""

    source: TransactionSource
    holder_id: int

    @classmethod
    def of(cls, transaction_source, account_id, credit_card_id) -> "BalanceHolder":
        if transaction_source == TransactionSource.ACCOUNT:
            return cls(TransactionSource.ACCOUNT, account_id)
        return cls(TransactionSource.CREDIT_CARD, credit_card_id)


class BalanceResponse(BaseModel):
    id: int
    balance: str


def apply_balance_delta(db: Session, holder: BalanceHolder, delta: str):
    """
    Auxiliary function to add a signed delta to the balance of an account or credit card. This
    is not an endpoint; a balance only changes when a transaction entry is created, updated or
    deleted.

    The sum is done by the database in a single statement, "balance = balance + :delta", with
    both sides in integer cents (see ledger.models.types.Money); the current balance is never
    read into the application.

    :param db: (Session) SQLAlchemy ORM session of the caller's unit of work.
    :param holder: (BalanceHolder) account or credit card to update.
    :param delta: (str) signed decimal amount, e.g. "-150.00".
    :returns: (Account | CreditCard) the holder with its updated balance.
    """
    model = BALANCE_MODELS[holder.source]
    result = db.execute(
        update(model)
        .where(model.id == holder.holder_id)
        .values(balance=model.balance + literal(Decimal(delta), Money()))
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise BalanceInvariantViolation(
            f"{model.__name__} {holder.holder_id} not found while applying delta {delta}"
        )
    logger.debug("Applied delta %s to %s %s", delta, model.__name__, holder.holder_id)
    return db.execute(
        select(model)
        .where(model.id == holder.holder_id)
        .execution_options(populate_existing=True)
    ).scalar_one()


@router.get("/account/{id}", status_code=status.HTTP_200_OK, response_model=BalanceResponse)
async def get_account_balance(db: db_dependency, id: int = Path(gt=0)):
    """
    Endpoint to get the running balance of an account entry.

    :param db: (db_dependency) SQLAlchemy ORM session.
    :param id: (int) ID of the account entry.
    """
    account_model = validate_entries_in_db(
        db=db,
        entries=[
            {"model": Account, "id_value": id, "return_model": True, "error": AccountNotFound}
        ],
    )["Account"]
    return {"id": account_model.id, "balance": format_monetary(account_model.balance)}


@router.get(
    "/credit-card/{id}", status_code=status.HTTP_200_OK, response_model=BalanceResponse
)
async def get_credit_card_balance(db: db_dependency, id: int = Path(gt=0)):
    """
    Endpoint to get the outstanding balance of a credit card entry.

    :param db: (db_dependency) SQLAlchemy ORM session.
    :param id: (int) ID of the credit card entry.
    """
    credit_card_model = validate_entries_in_db(
        db=db,
        entries=[
            {
                "model": CreditCard,
                "id_value": id,
                "return_model": True,
                "error": CreditCardNotFound,
            }
        ],
    )["CreditCard"]
    return {"id": credit_card_model.id, "balance": format_monetary(credit_card_model.balance)}
