"""
filename: test_validation.py
author: Valentin Piombo
email: valenp97@gmail.com
description: Test module for the holder, classification and tag checks.
"""

import pytest

from ledger.errors import (
    AccountNotFound,
    CategoryNotFoundOrInactive,
    CategoryOrSubcategoryRequired,
    CreditCardNotFound,
    SubcategoryNotFoundOrInactive,
    TagNotFound,
)
from ledger.models import TransactionSource
from ledger.utils.validation import (
    find_tags_for_user,
    normalize_tag_ids,
    resolve_holder_owner,
    validate_classification,
    validate_tags_for_user,
)


def test_resolve_holder_owner(db_session):
    assert resolve_holder_owner(db_session, TransactionSource.ACCOUNT, 3, None) == 2
    assert resolve_holder_owner(db_session, TransactionSource.CREDIT_CARD, None, 1) == 1


@pytest.mark.parametrize(
    "transaction_source, account_id, credit_card_id, error",
    [
        (TransactionSource.ACCOUNT, 99, None, AccountNotFound),
        (TransactionSource.ACCOUNT, None, 1, AccountNotFound),
        (TransactionSource.CREDIT_CARD, None, 99, CreditCardNotFound),
        (TransactionSource.CREDIT_CARD, 1, None, CreditCardNotFound),
    ],
)
def test_resolve_holder_owner_missing_holder(
    db_session, transaction_source, account_id, credit_card_id, error
):
    with pytest.raises(error):
        resolve_holder_owner(db_session, transaction_source, account_id, credit_card_id)


@pytest.mark.parametrize("category_id, subcategory_id", [(1, None), (None, 1), (1, 1)])
def test_validate_classification(db_session, category_id, subcategory_id):
    validate_classification(db_session, category_id, subcategory_id)


@pytest.mark.parametrize(
    "category_id, subcategory_id, error",
    [
        (None, None, CategoryOrSubcategoryRequired),
        (2, None, CategoryNotFoundOrInactive),
        (99, 1, CategoryNotFoundOrInactive),
        (None, 2, SubcategoryNotFoundOrInactive),
        (1, 99, SubcategoryNotFoundOrInactive),
    ],
)
def test_validate_classification_failures(db_session, category_id, subcategory_id, error):
    with pytest.raises(error):
        validate_classification(db_session, category_id, subcategory_id)


def test_normalize_tag_ids():
    assert normalize_tag_ids(None) is None
    assert normalize_tag_ids([]) == []
    assert normalize_tag_ids([2, 1, 2, 2, 1]) == [2, 1]


def test_find_tags_for_user(db_session):
    assert {tag.id for tag in find_tags_for_user(db_session, [1, 2, 3, 4], 1)} == {1, 2}
    assert {
        tag.id for tag in find_tags_for_user(db_session, [1, 2, 3, 4], 1, active_only=False)
    } == {1, 2, 3}
    assert find_tags_for_user(db_session, [], 1) == []


def test_validate_tags_for_user(db_session):
    validate_tags_for_user(db_session, 1, [1, 2])
    validate_tags_for_user(db_session, 2, [4])


@pytest.mark.parametrize("tag_ids", [[4], [1, 3], [1, 99]])
def test_validate_tags_for_user_failures(db_session, tag_ids):
    with pytest.raises(TagNotFound):
        validate_tags_for_user(db_session, 1, tag_ids)
