"""
filename: test_concurrency.py
author: Valentin Piombo
email: valenp97@gmail.com
description: Test module for concurrent transaction operations on the same balance holder.
"""

import threading
import time
from concurrent.futures import ThreadPoolExecutor, wait

import pytest

from ledger.errors import InternalError, TransactionNotFound
from ledger.models import Account, Transaction, TransactionType
from ledger.routers import transaction as transaction_router
from ledger.routers.transaction import (
    create_transaction_entry,
    delete_transaction_entry,
    update_transaction_entry,
)
from ledger.utils.monetary import format_monetary, signed_delta


def run_concurrently(session_factory, operation, arguments):
    def worker(argument):
        with session_factory() as db:
            return operation(db, argument)

    with ThreadPoolExecutor(max_workers=10) as executor:
        return list(executor.map(worker, arguments))


@pytest.mark.parametrize("workers, expected", [(10, "-1.00"), (20, "-2.00")])
def test_concurrent_creates_lose_no_delta(
    session_factory, transaction_data, db_session, balance_of, workers, expected
):
    data = transaction_data(value="0.10", transaction_type=TransactionType.EXPENSE, account_id=1)
    created = run_concurrently(session_factory, create_transaction_entry, [data] * workers)
    assert len({entry["id"] for entry in created}) == workers
    assert db_session.query(Transaction).count() == workers
    assert balance_of(Account, 1) == expected


def test_concurrent_deletes_restore_the_balance(
    session_factory, create_transaction, db_session, balance_of
):
    transaction_ids = [
        create_transaction(value="12.34", transaction_type=TransactionType.INCOME, account_id=2)[
            "id"
        ]
        for _ in range(10)
    ]
    assert balance_of(Account, 2) == "1123.40"
    deleted = run_concurrently(session_factory, delete_transaction_entry, transaction_ids)
    assert sorted(entry["id"] for entry in deleted) == sorted(transaction_ids)
    assert db_session.query(Transaction).count() == 0
    assert balance_of(Account, 2) == "1000.00"


def test_concurrent_creates_on_different_holders(
    session_factory, transaction_data, balance_of
):
    data = [
        transaction_data(value="5.00", transaction_type=TransactionType.INCOME, account_id=1),
        transaction_data(value="5.00", transaction_type=TransactionType.EXPENSE, account_id=2),
    ] * 5
    run_concurrently(session_factory, create_transaction_entry, data)
    assert balance_of(Account, 1) == "25.00"
    assert balance_of(Account, 2) == "975.00"


def pause_around_lock_read(monkeypatch, parties):
    """
    Make <parties> threads reach the lock-read together and hold the row for a moment after
    it, so that any read not serialized by the lock sees the same stale row.
    """
    barrier = threading.Barrier(parties, timeout=10)
    find_transaction_for_update = transaction_router.find_transaction_for_update

    def paused_find_transaction_for_update(db, transaction_id):
        barrier.wait()
        transaction_model = find_transaction_for_update(db, transaction_id)
        time.sleep(0.2)
        return transaction_model

    monkeypatch.setattr(
        transaction_router, "find_transaction_for_update", paused_find_transaction_for_update
    )


def run_together(session_factory, *calls):
    """Run each (operation, *args) in its own thread and session; return results or errors."""

    def worker(operation, *args):
        with session_factory() as db:
            return operation(db, *args)

    with ThreadPoolExecutor(max_workers=len(calls)) as executor:
        futures = [executor.submit(worker, *call) for call in calls]
        wait(futures)
    return [future.exception() or future.result() for future in futures]


def test_concurrent_updates_of_the_same_transaction(
    monkeypatch, session_factory, create_transaction, db_session, balance_of
):
    created = create_transaction(value="10.00", account_id=1)
    pause_around_lock_read(monkeypatch, 2)
    outcomes = run_together(
        session_factory,
        (update_transaction_entry, created["id"], {"value": "20.00"}),
        (update_transaction_entry, created["id"], {"value": "30.00"}),
    )
    assert all(isinstance(outcome, dict) for outcome in outcomes)
    db_session.expire_all()
    stored = db_session.get(Transaction, created["id"])
    final_delta = signed_delta(stored.transaction_type, stored.transaction_source, stored.value)
    assert format_monetary(stored.value) in ("20.00", "30.00")
    assert balance_of(Account, 1) == final_delta


def test_concurrent_update_and_delete_of_the_same_transaction(
    monkeypatch, session_factory, create_transaction, db_session, balance_of
):
    created = create_transaction(value="10.00", account_id=2)
    assert balance_of(Account, 2) == "990.00"
    pause_around_lock_read(monkeypatch, 2)
    updated, deleted = run_together(
        session_factory,
        (update_transaction_entry, created["id"], {"value": "20.00", "account_id": 1}),
        (delete_transaction_entry, created["id"]),
    )
    assert deleted == {"id": created["id"]}
    # The update either ran first, and the delete reverted it, or found nothing to update
    if not isinstance(updated, dict):
        assert isinstance(updated, (TransactionNotFound, InternalError))
    assert db_session.query(Transaction).count() == 0
    assert balance_of(Account, 1) == "0.00"
    assert balance_of(Account, 2) == "1000.00"
