"""
filename: errors.py
author: Valentin Piombo
email: valenp97@gmail.com
description: Module for the typed errors raised by the transaction operations.
"""

from enum import Enum

from fastapi import HTTPException
from starlette import status


class ErrorCode(str, Enum):
    ACCOUNT_NOT_FOUND = "ACCOUNT_NOT_FOUND"
    CREDIT_CARD_NOT_FOUND = "CREDIT_CARD_NOT_FOUND"
    CATEGORY_OR_SUBCATEGORY_REQUIRED = "CATEGORY_OR_SUBCATEGORY_REQUIRED"
    CATEGORY_NOT_FOUND_OR_INACTIVE = "CATEGORY_NOT_FOUND_OR_INACTIVE"
    SUBCATEGORY_NOT_FOUND_OR_INACTIVE = "SUBCATEGORY_NOT_FOUND_OR_INACTIVE"
    TAG_NOT_FOUND = "TAG_NOT_FOUND"
    TRANSACTION_NOT_FOUND = "TRANSACTION_NOT_FOUND"
    INVALID_AMOUNT = "INVALID_AMOUNT"
    INVALID_SORT_FIELD = "INVALID_SORT_FIELD"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class LedgerError(HTTPException):
    """
    Base class of the ledger errors. Each subclass carries its own error code, HTTP status and
    default message, so it can be raised from any layer and still be rendered as a regular
    HTTP error response: {"detail": {"code": ..., "message": ...}}.
    """

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = ErrorCode.INTERNAL_ERROR
    message = "Internal error"

    def __init__(self, message: str | None = None):
        self.message = message or type(self).message
        super().__init__(
            status_code=type(self).status_code,
            detail={"code": self.code.value, "message": self.message},
        )


class AccountNotFound(LedgerError):
    status_code = status.HTTP_404_NOT_FOUND
    code = ErrorCode.ACCOUNT_NOT_FOUND
    message = "Account not found"


class CreditCardNotFound(LedgerError):
    status_code = status.HTTP_404_NOT_FOUND
    code = ErrorCode.CREDIT_CARD_NOT_FOUND
    message = "Credit card not found"


class CategoryOrSubcategoryRequired(LedgerError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = ErrorCode.CATEGORY_OR_SUBCATEGORY_REQUIRED
    message = "A category or a subcategory is required"


class CategoryNotFoundOrInactive(LedgerError):
    status_code = status.HTTP_404_NOT_FOUND
    code = ErrorCode.CATEGORY_NOT_FOUND_OR_INACTIVE
    message = "Category not found or inactive"


class SubcategoryNotFoundOrInactive(LedgerError):
    status_code = status.HTTP_404_NOT_FOUND
    code = ErrorCode.SUBCATEGORY_NOT_FOUND_OR_INACTIVE
    message = "Subcategory not found or inactive"


class TagNotFound(LedgerError):
    status_code = status.HTTP_404_NOT_FOUND
    code = ErrorCode.TAG_NOT_FOUND
    message = "One or more tags not found"


class TransactionNotFound(LedgerError):
    status_code = status.HTTP_404_NOT_FOUND
    code = ErrorCode.TRANSACTION_NOT_FOUND
    message = "Transaction not found"


class MonetaryFormatError(LedgerError):
    """A monetary amount is not a decimal with at most two fraction digits."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = ErrorCode.INVALID_AMOUNT
    message = "Invalid monetary amount"


class InvalidSortField(LedgerError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = ErrorCode.INVALID_SORT_FIELD
    message = "Invalid sort field"


class InternalError(LedgerError):
    pass


class BalanceInvariantViolation(RuntimeError):
    """A balance delta targeted a holder that does not exist."""
