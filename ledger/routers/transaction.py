"""
filename: transaction.py
author: Valentin Piombo
email: valenp97@gmail.com
description: Module for the definitions of routes related to the Transaction model, and the
    operations that create, update and delete transactions while keeping the balance of their
    account or credit card consistent.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Annotated, Literal

from fastapi import APIRouter, Depends, Path, Query
from pydantic import BaseModel, Field
from sqlalchemy import delete, insert, or_, select
from sqlalchemy.orm import Session
from starlette import status

from ledger.database import db_dependency, unit_of_work
from ledger.errors import AccountNotFound, InvalidSortField, TransactionNotFound
from ledger.models import (
    Account,
    Transaction,
    TransactionSource,
    TransactionType,
    transaction_tag,
)
from ledger.routers.balance import BalanceHolder, apply_balance_delta
from ledger.utils.monetary import (
    format_monetary,
    invert_delta,
    is_zero_delta,
    signed_delta,
    to_unsigned_monetary,
)
from ledger.utils.tools import now_factory
from ledger.utils.validation import (
    normalize_tag_ids,
    resolve_holder_owner,
    validate_classification,
    validate_tags_for_user,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/transaction", tags=["transaction"])

# Fields that, overlaid on the stored row, decide the holder, the delta and the classification
EFFECTIVE_FIELDS = (
    "value",
    "transaction_type",
    "transaction_source",
    "account_id",
    "credit_card_id",
    "category_id",
    "subcategory_id",
)

# Columns a patch cannot clear; an explicit null for them is ignored
NON_NULLABLE_FIELDS = (
    "value",
    "date",
    "transaction_type",
    "transaction_source",
    "is_installment",
    "is_recurring",
    "active",
)

SORTABLE_FIELDS = tuple(column.key for column in Transaction.__table__.columns)


class TransactionRequest(BaseModel):
    """
    Request model for data validation
    """

    value: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    date: datetime
    transaction_type: TransactionType
    transaction_source: TransactionSource
    observation: str | None = None
    is_installment: bool = False
    total_months: int | None = Field(default=None, gt=0)
    is_recurring: bool = False
    payment_day: int | None = Field(default=None, ge=1, le=31)
    active: bool = True
    account_id: int | None = Field(default=None, gt=0)
    credit_card_id: int | None = Field(default=None, gt=0)
    category_id: int | None = Field(default=None, gt=0)
    subcategory_id: int | None = Field(default=None, gt=0)
    tags: list[int] | None = None


class TransactionPartialRequest(TransactionRequest):
    """
    Separate request model for partial updates. This distinction is needed for assigning
    default values to all attributes, thus allowing only some attributes to be submitted.
    Furthermore, model inheritance will reuse the field constraints.
    """

    value: Decimal | None = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    date: datetime | None = None
    transaction_type: TransactionType | None = None
    transaction_source: TransactionSource | None = None
    is_installment: bool | None = None
    is_recurring: bool | None = None
    active: bool | None = None


class TransactionResponse(BaseModel):
    """
    Response model to validate the response data. Amounts are exact decimal strings.
    """

    id: int
    value: str
    date: datetime
    transaction_type: TransactionType
    transaction_source: TransactionSource
    observation: str | None
    is_installment: bool
    total_months: int | None
    is_recurring: bool
    payment_day: int | None
    active: bool
    account_id: int | None
    credit_card_id: int | None
    category_id: int | None
    subcategory_id: int | None
    creation_datetime: datetime | None
    last_update_datetime: datetime | None
    tags: list[int]


class AccountTransactionsResponse(BaseModel):
    account_id: int
    transactions: list[TransactionResponse]


class DeletedResponse(BaseModel):
    id: int


def find_transaction(db: Session, transaction_id: int) -> Transaction | None:
    return db.query(Transaction).filter(Transaction.id == transaction_id).first()


def find_transaction_for_update(db: Session, transaction_id: int) -> Transaction | None:
    """
    Fetch a transaction entry and lock its row until the caller's unit of work ends, so that
    concurrent updates or deletes of the same entry wait for this one to commit or roll back.
    SQLite ignores FOR UPDATE; there the lock is the database write lock that the session's
    "BEGIN IMMEDIATE" took (see ledger.database.build_engine).
    """
    return (
        db.query(Transaction)
        .filter(Transaction.id == transaction_id)
        .with_for_update()
        .populate_existing()
        .first()
    )


def insert_transaction_row(db: Session, transaction_data: dict) -> Transaction:
    transaction_model = Transaction(**transaction_data)
    db.add(transaction_model)
    # Flush the session so to get access to the id before the entry is committed
    db.flush()
    return transaction_model


def update_transaction_row(
    db: Session, transaction_model: Transaction, update_data: dict
) -> Transaction:
    for attribute, value in update_data.items():
        setattr(transaction_model, attribute, value)
    transaction_model.last_update_datetime = now_factory()
    db.add(transaction_model)
    db.flush()
    return transaction_model


def delete_transaction_row(db: Session, transaction_model: Transaction) -> None:
    db.delete(transaction_model)
    db.flush()


def delete_transaction_tags(db: Session, transaction_id: int) -> None:
    db.execute(delete(transaction_tag).where(transaction_tag.c.transaction_id == transaction_id))


def replace_transaction_tags(db: Session, transaction_id: int, tag_ids: list[int]) -> None:
    """
    Replace the tag links of a transaction entry with <tag_ids>. The existing links are always
    deleted first, so repeating the call with the same ids leaves the same set of links.

    :param db: (Session) SQLAlchemy ORM session.
    :param transaction_id: (int) ID of the transaction entry.
    :param tag_ids: (list[int]) deduplicated tag ids; an empty list removes every link.
    """
    delete_transaction_tags(db, transaction_id)
    if not tag_ids:
        return
    db.execute(
        insert(transaction_tag),
        [{"transaction_id": transaction_id, "tag_id": tag_id} for tag_id in tag_ids],
    )


def get_tag_ids_for_transactions(db: Session, transaction_ids: list[int]) -> dict[int, list[int]]:
    """Map each transaction id to its tag ids, with a single query."""
    tag_map = {transaction_id: [] for transaction_id in transaction_ids}
    if not transaction_ids:
        return tag_map
    rows = db.execute(
        select(transaction_tag.c.transaction_id, transaction_tag.c.tag_id)
        .where(transaction_tag.c.transaction_id.in_(transaction_ids))
        .order_by(transaction_tag.c.tag_id)
    ).all()
    for transaction_id, tag_id in rows:
        tag_map[transaction_id].append(tag_id)
    return tag_map


def serialize_transaction(transaction_model: Transaction, tag_ids: list[int]) -> dict:
    """
    Render a transaction entry for the callers: amounts as decimal strings and date-times as
    ISO-8601 strings.
    """

    def isoformat(value: datetime | None) -> str | None:
        return value.isoformat() if value is not None else None

    return {
        "id": transaction_model.id,
        "value": format_monetary(transaction_model.value),
        "date": isoformat(transaction_model.date),
        "transaction_type": TransactionType(transaction_model.transaction_type).value,
        "transaction_source": TransactionSource(transaction_model.transaction_source).value,
        "observation": transaction_model.observation,
        "is_installment": transaction_model.is_installment,
        "total_months": transaction_model.total_months,
        "is_recurring": transaction_model.is_recurring,
        "payment_day": transaction_model.payment_day,
        "active": transaction_model.active,
        "account_id": transaction_model.account_id,
        "credit_card_id": transaction_model.credit_card_id,
        "category_id": transaction_model.category_id,
        "subcategory_id": transaction_model.subcategory_id,
        "creation_datetime": isoformat(transaction_model.creation_datetime),
        "last_update_datetime": isoformat(transaction_model.last_update_datetime),
        "tags": tag_ids,
    }


def _with_tags(db: Session, transaction_models: list[Transaction]) -> list[dict]:
    tag_map = get_tag_ids_for_transactions(db, [model.id for model in transaction_models])
    return [serialize_transaction(model, tag_map[model.id]) for model in transaction_models]


def create_transaction_entry(db: Session, transaction_data: dict) -> dict:
    """
    Create a transaction entry and move the balance of its account or credit card by the
    transaction's signed amount. Validation runs first and writes nothing; the row, the
    balance delta and the tag links are then written in the same unit of work, so either all
    of them are committed or none is.

    :param db: (Session) SQLAlchemy ORM session.
    :param transaction_data: (dict) data for the new entry; optional key <tags> holds tag ids.
    :returns: (dict) the persisted entry, serialized, with its tag ids.
    """
    transaction_data = dict(transaction_data)
    tag_ids = normalize_tag_ids(transaction_data.pop("tags", None))
    source = TransactionSource(transaction_data["transaction_source"])
    # A transaction references exactly one balance holder
    if source == TransactionSource.ACCOUNT:
        transaction_data["credit_card_id"] = None
    else:
        transaction_data["account_id"] = None
    # Discard microseconds from the time data
    datetime_now = now_factory()
    transaction_data["creation_datetime"] = datetime_now
    transaction_data["last_update_datetime"] = datetime_now

    with unit_of_work(db):
        transaction_data["value"] = Decimal(to_unsigned_monetary(transaction_data.get("value")))
        owner_id = resolve_holder_owner(
            db, source, transaction_data.get("account_id"), transaction_data.get("credit_card_id")
        )
        validate_classification(
            db, transaction_data.get("category_id"), transaction_data.get("subcategory_id")
        )
        if tag_ids:
            validate_tags_for_user(db, owner_id, tag_ids)

        transaction_model = insert_transaction_row(db, transaction_data)
        delta = signed_delta(
            transaction_model.transaction_type, source, transaction_model.value
        )
        if not is_zero_delta(delta):
            apply_balance_delta(
                db,
                BalanceHolder.of(
                    source, transaction_model.account_id, transaction_model.credit_card_id
                ),
                delta,
            )
        if tag_ids is not None:
            replace_transaction_tags(db, transaction_model.id, tag_ids)
        created = _with_tags(db, [transaction_model])[0]
    logger.info("Created transaction %s (delta %s)", created["id"], delta)
    return created


def update_transaction_entry(db: Session, transaction_id: int, update_data: dict) -> dict:
    """
    Partially update a transaction entry. The patch is overlaid on the stored row and the
    result is validated as a whole. When the holder or the signed amount changes, the old
    amount is reverted from the old holder and the new one applied to the new holder, as two
    separate deltas; otherwise the balances are left untouched.

    :param db: (Session) SQLAlchemy ORM session.
    :param transaction_id: (int) ID of the transaction entry.
    :param update_data: (dict) attributes to modify; optional key <tags> replaces the tag ids.
    :returns: (dict) the updated entry, serialized, with its tag ids.
    """
    update_data = {
        field: value
        for field, value in update_data.items()
        if value is not None or field not in NON_NULLABLE_FIELDS
    }
    tag_ids = normalize_tag_ids(update_data.pop("tags", None))

    with unit_of_work(db):
        if "value" in update_data:
            update_data["value"] = Decimal(to_unsigned_monetary(update_data["value"]))
        transaction_model = find_transaction_for_update(db, transaction_id)
        if transaction_model is None:
            logger.warning("Transaction %s not found for update", transaction_id)
            raise TransactionNotFound()
        effective = {
            field: update_data[field] if field in update_data else getattr(transaction_model, field)
            for field in EFFECTIVE_FIELDS
        }
        source = TransactionSource(effective["transaction_source"])
        # Switching source drops the reference to the other holder
        if source == TransactionSource.ACCOUNT:
            update_data["credit_card_id"] = effective["credit_card_id"] = None
        else:
            update_data["account_id"] = effective["account_id"] = None
        owner_id = resolve_holder_owner(
            db, source, effective["account_id"], effective["credit_card_id"]
        )
        validate_classification(db, effective["category_id"], effective["subcategory_id"])
        if tag_ids:
            validate_tags_for_user(db, owner_id, tag_ids)

        old_holder = BalanceHolder.of(
            transaction_model.transaction_source,
            transaction_model.account_id,
            transaction_model.credit_card_id,
        )
        old_delta = signed_delta(
            transaction_model.transaction_type,
            transaction_model.transaction_source,
            transaction_model.value,
        )
        new_holder = BalanceHolder.of(
            source, effective["account_id"], effective["credit_card_id"]
        )
        new_delta = signed_delta(
            TransactionType(effective["transaction_type"]), source, effective["value"]
        )
        if old_holder != new_holder or old_delta != new_delta:
            if not is_zero_delta(old_delta):
                apply_balance_delta(db, old_holder, invert_delta(old_delta))
            if not is_zero_delta(new_delta):
                apply_balance_delta(db, new_holder, new_delta)

        update_transaction_row(db, transaction_model, update_data)
        if tag_ids is not None:
            replace_transaction_tags(db, transaction_model.id, tag_ids)
        updated = _with_tags(db, [transaction_model])[0]
    logger.info(
        "Updated transaction %s (delta %s -> %s)", transaction_id, old_delta, new_delta
    )
    return updated


def delete_transaction_entry(db: Session, transaction_id: int) -> dict:
    """
    Delete a transaction entry with its tag links and revert its amount from the balance of
    its account or credit card, in one unit of work.

    :param db: (Session) SQLAlchemy ORM session.
    :param transaction_id: (int) ID of the transaction entry.
    :returns: (dict) {"id": transaction_id}
    """
    with unit_of_work(db):
        transaction_model = find_transaction_for_update(db, transaction_id)
        if transaction_model is None:
            logger.warning("Transaction %s not found for deletion", transaction_id)
            raise TransactionNotFound()
        holder = BalanceHolder.of(
            transaction_model.transaction_source,
            transaction_model.account_id,
            transaction_model.credit_card_id,
        )
        delta = invert_delta(
            signed_delta(
                transaction_model.transaction_type,
                transaction_model.transaction_source,
                transaction_model.value,
            )
        )
        delete_transaction_tags(db, transaction_id)
        delete_transaction_row(db, transaction_model)
        if not is_zero_delta(delta):
            apply_balance_delta(db, holder, delta)
    logger.info("Deleted transaction %s (delta %s)", transaction_id, delta)
    return {"id": transaction_id}


def get_transaction_entry(db: Session, transaction_id: int) -> dict:
    transaction_model = find_transaction(db, transaction_id)
    if transaction_model is None:
        raise TransactionNotFound()
    return _with_tags(db, [transaction_model])[0]


def _filtered_query(db: Session, filters: dict):
    query = db.query(Transaction)
    # Account and credit card filters widen each other
    holder_conditions = []
    if filters.get("account_id") is not None:
        holder_conditions.append(Transaction.account_id == filters["account_id"])
    if filters.get("credit_card_id") is not None:
        holder_conditions.append(Transaction.credit_card_id == filters["credit_card_id"])
    if holder_conditions:
        query = query.filter(or_(*holder_conditions))
    for field in (
        "category_id",
        "subcategory_id",
        "transaction_type",
        "transaction_source",
        "active",
    ):
        if filters.get(field) is not None:
            query = query.filter(getattr(Transaction, field) == filters[field])
    if filters.get("date_from") is not None:
        query = query.filter(Transaction.date >= filters["date_from"])
    if filters.get("date_to") is not None:
        query = query.filter(Transaction.date <= filters["date_to"])
    if filters.get("tag_ids"):
        query = query.filter(
            Transaction.id.in_(
                select(transaction_tag.c.transaction_id).where(
                    transaction_tag.c.tag_id.in_(filters["tag_ids"])
                )
            )
        )
    return query


def _sorted_page(query, sort: str, order: str, limit: int | None, offset: int | None):
    if sort not in SORTABLE_FIELDS:
        raise InvalidSortField(f"Cannot sort transactions by {sort!r}")
    sort_column = getattr(Transaction, sort)
    # The id breaks ties so pages never overlap
    if order == "desc":
        query = query.order_by(sort_column.desc(), Transaction.id.desc())
    else:
        query = query.order_by(sort_column.asc(), Transaction.id.asc())
    if offset:
        query = query.offset(offset)
    if limit:
        query = query.limit(limit)
    return query


def list_transaction_entries(
    db: Session,
    filters: dict,
    limit: int | None = None,
    offset: int | None = None,
    order: str = "asc",
    sort: str = "date",
) -> list[dict]:
    """
    Fetch the transaction entries matching <filters>, ordered by <sort>.

    :param db: (Session) SQLAlchemy ORM session.
    :param filters: (dict) optional keys: account_id, credit_card_id, category_id,
        subcategory_id, transaction_type, transaction_source, active, date_from, date_to,
        tag_ids.
    :param limit: (int) optional; maximum number of entries.
    :param offset: (int) optional; number of entries to skip.
    :param order: (str) "asc" or "desc".
    :param sort: (str) name of the Transaction column to order by; "date" by default.
    :returns: (list[dict]) serialized entries with their tag ids.
    """
    query = _sorted_page(_filtered_query(db, filters), sort, order, limit, offset)
    return _with_tags(db, query.all())


def count_transaction_entries(db: Session, filters: dict) -> int:
    return _filtered_query(db, filters).count()


def find_account_ids_for_user(db: Session, user_id: int) -> list[int]:
    """
    Fetch the ids of the user's accounts, in id order.

    :raises AccountNotFound: if the user has no account.
    """
    account_ids = list(
        db.execute(select(Account.id).where(Account.user_id == user_id).order_by(Account.id))
        .scalars()
        .all()
    )
    if not account_ids:
        logger.warning("User %s has no accounts", user_id)
        raise AccountNotFound()
    return account_ids


def list_transaction_entries_by_user(
    db: Session,
    user_id: int,
    limit: int | None = None,
    offset: int | None = None,
    order: str = "asc",
    sort: str = "date",
) -> list[dict]:
    """
    Fetch the transaction entries of every account of a user, grouped by account. Limit and
    offset page the combined, sorted entries before they are grouped.

    :param db: (Session) SQLAlchemy ORM session.
    :param user_id: (int) ID of the user.
    :param limit: (int) optional; maximum number of entries.
    :param offset: (int) optional; number of entries to skip.
    :param order: (str) "asc" or "desc".
    :param sort: (str) name of the Transaction column to order by; "date" by default.
    :returns: (list[dict]) one {"account_id", "transactions"} group per account, in account
        id order; accounts without entries get an empty list.
    """
    account_ids = find_account_ids_for_user(db, user_id)
    query = _sorted_page(
        db.query(Transaction).filter(Transaction.account_id.in_(account_ids)),
        sort,
        order,
        limit,
        offset,
    )
    groups = {account_id: [] for account_id in account_ids}
    for entry in _with_tags(db, query.all()):
        groups[entry["account_id"]].append(entry)
    return [
        {"account_id": account_id, "transactions": transactions}
        for account_id, transactions in groups.items()
    ]


def count_transaction_entries_by_user(db: Session, user_id: int) -> int:
    account_ids = find_account_ids_for_user(db, user_id)
    return db.query(Transaction).filter(Transaction.account_id.in_(account_ids)).count()


def transaction_filters(
    account_id: int | None = Query(default=None, gt=0),
    credit_card_id: int | None = Query(default=None, gt=0),
    category_id: int | None = Query(default=None, gt=0),
    subcategory_id: int | None = Query(default=None, gt=0),
    transaction_type: TransactionType | None = None,
    transaction_source: TransactionSource | None = None,
    active: bool | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    tag_id: Annotated[list[int] | None, Query()] = None,
) -> dict:
    """Collect the listing filters from the query string."""
    return {
        "account_id": account_id,
        "credit_card_id": credit_card_id,
        "category_id": category_id,
        "subcategory_id": subcategory_id,
        "transaction_type": transaction_type,
        "transaction_source": transaction_source,
        "active": active,
        "date_from": date_from,
        "date_to": date_to,
        "tag_ids": tag_id,
    }


filters_dependency = Annotated[dict, Depends(transaction_filters)]


@router.get("/all", status_code=status.HTTP_200_OK, response_model=list[TransactionResponse])
async def read_all_transactions(
    db: db_dependency,
    filters: filters_dependency,
    limit: int | None = Query(default=None, gt=0),
    offset: int | None = Query(default=None, ge=0),
    order: Literal["asc", "desc"] = "asc",
    sort: str = "date",
):
    """
    Endpoint to fetch the transaction entries from the database, optionally filtered.

    :param db: (db_dependency) SQLAlchemy ORM session.
    :param filters: (filters_dependency) filters read from the query string.
    :param limit: (int) optional; maximum number of entries.
    :param offset: (int) optional; number of entries to skip.
    :param order: (str) ordering, "asc" or "desc".
    :param sort: (str) transaction column to order by.
    """
    return list_transaction_entries(
        db, filters, limit=limit, offset=offset, order=order, sort=sort
    )


@router.get("/all/count", status_code=status.HTTP_200_OK)
async def count_transactions(db: db_dependency, filters: filters_dependency) -> int:
    """
    Endpoint to count the transaction entries, optionally filtered.

    :param db: (db_dependency) SQLAlchemy ORM session.
    :param filters: (filters_dependency) filters read from the query string.
    """
    return count_transaction_entries(db, filters)


@router.get(
    "/user/{user_id}",
    status_code=status.HTTP_200_OK,
    response_model=list[AccountTransactionsResponse],
)
async def read_user_transactions(
    db: db_dependency,
    user_id: int = Path(gt=0),
    limit: int | None = Query(default=None, gt=0),
    offset: int | None = Query(default=None, ge=0),
    order: Literal["asc", "desc"] = "asc",
    sort: str = "date",
):
    """
    Endpoint to fetch the transaction entries of a user, grouped by account.

    :param db: (db_dependency) SQLAlchemy ORM session.
    :param user_id: (int) ID of the user.
    :param limit: (int) optional; maximum number of entries.
    :param offset: (int) optional; number of entries to skip.
    :param order: (str) ordering, "asc" or "desc".
    :param sort: (str) transaction column to order by.
    """
    return list_transaction_entries_by_user(
        db, user_id, limit=limit, offset=offset, order=order, sort=sort
    )


@router.get("/user/{user_id}/count", status_code=status.HTTP_200_OK)
async def count_user_transactions(db: db_dependency, user_id: int = Path(gt=0)) -> int:
    """
    Endpoint to count the transaction entries across the accounts of a user.

    :param db: (db_dependency) SQLAlchemy ORM session.
    :param user_id: (int) ID of the user.
    """
    return count_transaction_entries_by_user(db, user_id)


@router.post("/", status_code=status.HTTP_201_CREATED, response_model=TransactionResponse)
async def create_new_transaction(db: db_dependency, transaction_request: TransactionRequest):
    """
    Endpoint to create a new transaction entry in the database.

    :param db: (db_dependency) SQLAlchemy ORM session.
    :param transaction_request: (TransactionRequest) data to be used to build a new
        transaction entry.
    """
    return create_transaction_entry(db, transaction_request.model_dump())


@router.get("/{id}", status_code=status.HTTP_200_OK, response_model=TransactionResponse)
async def get_transaction(db: db_dependency, id: int = Path(gt=0)):
    """
    Endpoint to get a specific transaction entry from the database.

    :param db: (db_dependency) SQLAlchemy ORM session.
    :param id: (int) ID of the transaction entry.
    """
    return get_transaction_entry(db, id)


@router.patch("/{id}", status_code=status.HTTP_200_OK, response_model=TransactionResponse)
async def partially_update_transaction(
    db: db_dependency,
    transaction_partial_request: TransactionPartialRequest,
    id: int = Path(gt=0),
):
    """
    Endpoint to partially modify an existing transaction entry from the database.

    :param db: (db_dependency) SQLAlchemy ORM session.
    :param transaction_partial_request: (TransactionPartialRequest) data to be used to update
        the transaction entry.
    :param id: (int) ID of the transaction entry.
    """
    # Collect attributes to modify
    update_data = transaction_partial_request.model_dump(exclude_unset=True)
    return update_transaction_entry(db, id, update_data)


@router.delete("/{id}", status_code=status.HTTP_200_OK, response_model=DeletedResponse)
async def delete_transaction(db: db_dependency, id: int = Path(gt=0)):
    """
    Endpoint to delete an existing transaction entry from the database.

    :param db: (db_dependency) SQLAlchemy ORM session.
    :param id: (int) ID of the transaction entry.
    """
    return delete_transaction_entry(db, id)
