from ledger.database import Base

from .account import Account
from .category import Category, Subcategory
from .credit_card import CreditCard
from .tag import Tag, transaction_tag
from .transaction import Transaction, TransactionSource, TransactionType

__all__ = [
    "Base",
    "Account",
    "Category",
    "CreditCard",
    "Subcategory",
    "Tag",
    "Transaction",
    "TransactionSource",
    "TransactionType",
    "transaction_tag",
]
