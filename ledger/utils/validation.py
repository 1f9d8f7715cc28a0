"""
filename: validation.py
author: Valentin Piombo
email: valenp97@gmail.com
description: Module for the checks a transaction must pass before it is written: its balance
    holder exists, it is classified under an active category and/or subcategory, and its tags
    are active and belong to the holder's owner.
"""

import logging

from sqlalchemy.orm import Session

from ledger.errors import (
    AccountNotFound,
    CategoryNotFoundOrInactive,
    CategoryOrSubcategoryRequired,
    CreditCardNotFound,
    SubcategoryNotFoundOrInactive,
    TagNotFound,
)
from ledger.models import Account, Category, CreditCard, Subcategory, Tag, TransactionSource
from ledger.utils.tools import validate_entries_in_db

logger = logging.getLogger(__name__)


def resolve_holder_owner(
    db: Session,
    transaction_source: TransactionSource,
    account_id: int | None,
    credit_card_id: int | None,
) -> int:
    """
    Validate that the transaction's balance holder exists and return the user that owns it.

    :param db: (Session) SQLAlchemy ORM session.
    :param transaction_source: (TransactionSource) which of the two ids is relevant.
    :param account_id: (int | None) ID of the account entry.
    :param credit_card_id: (int | None) ID of the credit card entry.
    :returns: (int) ID of the owning user.
    """
    if transaction_source == TransactionSource.ACCOUNT:
        model, id_value, error = Account, account_id, AccountNotFound
    else:
        model, id_value, error = CreditCard, credit_card_id, CreditCardNotFound
    if id_value is None:
        logger.warning("Transaction without %s reference", model.__name__)
        raise error()
    holder = validate_entries_in_db(
        db=db,
        entries=[{"model": model, "id_value": id_value, "return_model": True, "error": error}],
    )[model.__name__]
    return holder.user_id


def validate_classification(
    db: Session, category_id: int | None, subcategory_id: int | None
) -> None:
    """
    Validate that at least one of category and subcategory is given, and that every given one
    exists and is active.

    :param db: (Session) SQLAlchemy ORM session.
    :param category_id: (int | None) ID of the category entry.
    :param subcategory_id: (int | None) ID of the subcategory entry.
    """
    if not category_id and not subcategory_id:
        logger.warning("Transaction without category or subcategory")
        raise CategoryOrSubcategoryRequired()
    validate_entries_in_db(
        db=db,
        entries=[
            (
                {
                    "model": Category,
                    "id_value": category_id,
                    "active_only": True,
                    "error": CategoryNotFoundOrInactive,
                }
                if category_id
                else None
            ),
            (
                {
                    "model": Subcategory,
                    "id_value": subcategory_id,
                    "active_only": True,
                    "error": SubcategoryNotFoundOrInactive,
                }
                if subcategory_id
                else None
            ),
        ],
    )


def normalize_tag_ids(tag_ids: list[int] | None) -> list[int] | None:
    """Drop repeated tag ids, keeping the first-seen order. None means "tags not supplied"."""
    if tag_ids is None:
        return None
    return list(dict.fromkeys(tag_ids))


def find_tags_for_user(
    db: Session, tag_ids: list[int], user_id: int, active_only: bool = True
) -> list[Tag]:
    """Fetch the tags among <tag_ids> that belong to the user."""
    if not tag_ids:
        return []
    query = db.query(Tag).filter(Tag.id.in_(tag_ids), Tag.user_id == user_id)
    if active_only:
        query = query.filter(Tag.active.is_(True))
    return query.all()


def validate_tags_for_user(db: Session, user_id: int, tag_ids: list[int]) -> None:
    """
    Validate that every (deduplicated) tag id resolves to an active tag owned by the user.

    :param db: (Session) SQLAlchemy ORM session.
    :param user_id: (int) ID of the user that owns the transaction's balance holder.
    :param tag_ids: (list[int]) deduplicated tag ids.
    """
    found = find_tags_for_user(db, tag_ids, user_id, active_only=True)
    if len(found) != len(tag_ids):
        missing = set(tag_ids) - {tag.id for tag in found}
        logger.warning("Tags %s not found for user %s", sorted(missing), user_id)
        raise TagNotFound()
