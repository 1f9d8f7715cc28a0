"""
filename: conftest.py
author: Valentin Piombo
email: valenp97@gmail.com
description: Configuration of the PyTest suite.
"""

from datetime import datetime
from decimal import Decimal

from fastapi.testclient import TestClient
from pytest import fixture
from sqlalchemy.orm import sessionmaker

from ledger.database import Base, build_engine, get_db
from ledger.main import app
from ledger.models import (
    Account,
    Category,
    CreditCard,
    Subcategory,
    Tag,
    Transaction,
    TransactionSource,
    TransactionType,
    transaction_tag,
)
from ledger.routers import transaction as transaction_router
from ledger.routers.balance import apply_balance_delta
from ledger.utils.monetary import format_monetary

SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///./test.db"
engine = build_engine(SQLALCHEMY_TEST_DATABASE_URL, timeout=30)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


# Fixture to create the database schema before any tests run
@fixture(scope="session", autouse=True)
def setup_schema():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@fixture()
def session_factory():
    return TestingSessionLocal


@fixture()
def db_session():
    # Create a new database session for a test
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.rollback()
        db.close()


# Override FastAPI's dependency so every request gets its own test database session
@fixture()
def client():
    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@fixture(autouse=True)
def setup_database(db_session):
    # Empty all tables
    db_session.execute(transaction_tag.delete())
    db_session.query(Transaction).delete()
    db_session.query(Tag).delete()
    db_session.query(Subcategory).delete()
    db_session.query(Category).delete()
    db_session.query(CreditCard).delete()
    db_session.query(Account).delete()
    db_session.commit()

    # User 1 owns accounts 1 and 2, card 1 and tags 1 to 3; user 2 owns the rest
    db_session.add_all(
        [
            Account(id=1, name="checking", user_id=1, balance=Decimal("0.00")),
            Account(id=2, name="savings", user_id=1, balance=Decimal("1000.00")),
            Account(id=3, name="other checking", user_id=2, balance=Decimal("0.00")),
        ]
    )
    db_session.add_all(
        [
            CreditCard(id=1, name="visa", user_id=1, balance=Decimal("0.00")),
            CreditCard(id=2, name="other visa", user_id=2, balance=Decimal("0.00")),
        ]
    )
    db_session.add_all(
        [
            Category(id=1, name="restaurant", user_id=1),
            Category(id=2, name="old category", user_id=1, active=False),
        ]
    )
    db_session.flush()
    db_session.add_all(
        [
            Subcategory(id=1, name="take-out", category_id=1),
            Subcategory(id=2, name="old subcategory", category_id=1, active=False),
        ]
    )
    db_session.add_all(
        [
            Tag(id=1, name="work", user_id=1),
            Tag(id=2, name="travel", user_id=1),
            Tag(id=3, name="archived", user_id=1, active=False),
            Tag(id=4, name="work", user_id=2),
        ]
    )
    db_session.commit()


@fixture()
def transaction_data():
    def _transaction_data(**kwargs):
        data = {
            "value": "100.00",
            "date": datetime(2024, 1, 15, 12, 30),
            "transaction_type": TransactionType.EXPENSE,
            "transaction_source": TransactionSource.ACCOUNT,
            "account_id": 1,
            "credit_card_id": None,
            "category_id": 1,
            "subcategory_id": None,
        }
        data.update(kwargs)
        return data

    return _transaction_data


@fixture()
def create_transaction(db_session, transaction_data):
    def _create_transaction(**kwargs):
        return transaction_router.create_transaction_entry(db_session, transaction_data(**kwargs))

    return _create_transaction


@fixture()
def balance_of(db_session):
    def _balance_of(model, id_value):
        db_session.expire_all()
        balance = format_monetary(db_session.get(model, id_value).balance)
        # Release the database lock so other sessions can write
        db_session.rollback()
        return balance

    return _balance_of


@fixture()
def delta_calls(monkeypatch):
    """Record every balance delta the transaction operations apply."""
    calls = []

    def recording_apply_balance_delta(db, holder, delta):
        calls.append((holder, delta))
        return apply_balance_delta(db, holder, delta)

    monkeypatch.setattr(transaction_router, "apply_balance_delta", recording_apply_balance_delta)
    return calls
