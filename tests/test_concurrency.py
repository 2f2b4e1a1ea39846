"""
Test suite for locking and concurrent processing

Hammers the processor from several threads and checks that balances never
go negative, money is conserved and each transaction is applied once.
"""

import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from bank_ledger.currency import Money, Currency
from bank_ledger.storage import InMemoryStorage, SQLiteStorage
from bank_ledger.audit import AuditTrail
from bank_ledger.accounts import AccountManager
from bank_ledger.locking import LockManager, account_key, transaction_key
from bank_ledger.transactions import TransactionProcessor, TransactionStatus
from bank_ledger.errors import (
    InsufficientFundsError, InvalidStateError, LedgerError, LockTimeoutError
)


def usd(amount):
    return Money(amount, Currency.USD)


class TestLockManager:
    """Test per-key locking"""

    def setup_method(self):
        self.locks = LockManager()

    def test_keys(self):
        assert account_key("a1") == "account:a1"
        assert transaction_key("t1") == "transaction:t1"

    def test_locks_are_dropped_after_use(self):
        with self.locks.hold(["account:b", "account:a", "account:a"]):
            assert len(self.locks) == 2
        assert len(self.locks) == 0

    def test_reentrant(self):
        with self.locks.hold(["account:a"]):
            with self.locks.hold(["account:a"]):
                pass
        assert len(self.locks) == 0

    def test_timeout(self):
        """A held key makes other threads time out"""
        held = threading.Event()
        release = threading.Event()

        def holder():
            with self.locks.hold(["account:a"]):
                held.set()
                release.wait(5)

        thread = threading.Thread(target=holder)
        thread.start()
        held.wait(5)
        try:
            started = time.monotonic()
            with pytest.raises(LockTimeoutError, match="account:a"):
                with self.locks.hold(["account:a", "account:b"], timeout=0.1):
                    pass
            assert time.monotonic() - started < 2
        finally:
            release.set()
            thread.join()
        assert len(self.locks) == 0

    def test_default_timeout(self):
        locks = LockManager(default_timeout=0.05)
        held = threading.Event()
        release = threading.Event()

        def holder():
            with locks.hold(["account:a"]):
                held.set()
                release.wait(5)

        thread = threading.Thread(target=holder)
        thread.start()
        held.wait(5)
        try:
            with pytest.raises(LockTimeoutError):
                with locks.hold(["account:a"]):
                    pass
        finally:
            release.set()
            thread.join()

    def test_opposite_order_does_not_deadlock(self):
        """Two threads asking for the same keys in opposite order both finish"""
        counter = {"value": 0}

        def work(keys):
            for _ in range(200):
                with self.locks.hold(keys, timeout=5):
                    counter["value"] += 1

        threads = [
            threading.Thread(target=work, args=(["account:a", "account:b"],)),
            threading.Thread(target=work, args=(["account:b", "account:a"],)),
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(10)
        assert counter["value"] == 400
        assert len(self.locks) == 0


@pytest.fixture(params=["memory", "sqlite"])
def ledger(request, tmp_path):
    if request.param == "memory":
        storage = InMemoryStorage()
    else:
        storage = SQLiteStorage(tmp_path / "ledger.db")
    audit_trail = AuditTrail(storage)
    account_manager = AccountManager(storage, audit_trail, LockManager(default_timeout=10))
    processor = TransactionProcessor(storage, account_manager, audit_trail)
    yield account_manager, processor, audit_trail
    storage.close()


class TestConcurrentProcessing:
    """Concurrent processing keeps balances consistent"""

    def test_concurrent_withdrawals_never_overdraw(self, ledger):
        """10 withdrawals of 1000 from 5000: exactly five succeed"""
        account_manager, processor, _ = ledger
        account = account_manager.create_account("ACC-001", "Alice", usd(5000))
        transactions = [processor.withdraw(account.id, usd(1000)) for _ in range(10)]

        def attempt(transaction):
            try:
                processor.process_transaction(transaction.id)
                return "ok"
            except InsufficientFundsError:
                return "insufficient"

        with ThreadPoolExecutor(max_workers=10) as pool:
            results = list(pool.map(attempt, transactions))

        assert results.count("ok") == 5
        assert results.count("insufficient") == 5
        assert account_manager.get_account(account.id).balance == usd(0)

        statuses = [processor.get_transaction(t.id).status for t in transactions]
        assert statuses.count(TransactionStatus.COMPLETED) == 5
        assert statuses.count(TransactionStatus.FAILED) == 5

    def test_crossing_transfers_conserve_money(self, ledger):
        """Transfers in both directions at once keep the total"""
        account_manager, processor, audit_trail = ledger
        a = account_manager.create_account("ACC-A", "Alice", usd(10000))
        b = account_manager.create_account("ACC-B", "Bob", usd(10000))

        transactions = []
        for i in range(20):
            if i % 2:
                transactions.append(processor.transfer(a.id, b.id, usd(300)))
            else:
                transactions.append(processor.transfer(b.id, a.id, usd(200)))

        def attempt(transaction):
            try:
                processor.process_transaction(transaction.id)
            except LedgerError:
                pass

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(attempt, transactions))

        balance_a = account_manager.get_account(a.id).balance
        balance_b = account_manager.get_account(b.id).balance
        assert balance_a + balance_b == usd(20000)
        assert not balance_a.is_negative()
        assert not balance_b.is_negative()
        assert audit_trail.verify_integrity()["valid"] is True

    def test_observer_never_sees_half_a_transfer(self, ledger):
        """Reads inside a storage unit always see both sides of a transfer or neither"""
        account_manager, processor, _ = ledger
        a = account_manager.create_account("ACC-A", "Alice", usd(10000))
        b = account_manager.create_account("ACC-B", "Bob", usd(0))
        transactions = [processor.transfer(a.id, b.id, usd(100)) for _ in range(30)]

        done = threading.Event()
        sums = []

        def observe():
            while True:
                with account_manager.storage.atomic():
                    total = account_manager.get_account(a.id).balance + account_manager.get_account(b.id).balance
                sums.append(total.amount)
                if done.is_set():
                    break

        observer = threading.Thread(target=observe)
        observer.start()
        try:
            with ThreadPoolExecutor(max_workers=4) as pool:
                list(pool.map(lambda t: processor.process_transaction(t.id), transactions))
        finally:
            done.set()
            observer.join(10)

        assert sums
        assert set(sums) == {10000}
        assert account_manager.get_account(b.id).balance == usd(3000)

    def test_same_transaction_processed_once(self, ledger):
        """Racing callers on one transaction: one applies it, the rest see it is done"""
        account_manager, processor, _ = ledger
        account = account_manager.create_account("ACC-001", "Alice", usd(0))
        transaction = processor.deposit(account.id, usd(100))

        def attempt(_):
            try:
                processor.process_transaction(transaction.id)
                return "ok"
            except InvalidStateError:
                return "not pending"

        with ThreadPoolExecutor(max_workers=5) as pool:
            results = list(pool.map(attempt, range(5)))

        assert results.count("ok") == 1
        assert results.count("not pending") == 4
        assert account_manager.get_account(account.id).balance == usd(100)

    def test_processing_timeout_leaves_transaction_pending(self, ledger):
        """A held account lock makes processing time out without side effects"""
        account_manager, processor, _ = ledger
        account = account_manager.create_account("ACC-001", "Alice", usd(1000))
        transaction = processor.withdraw(account.id, usd(100))

        held = threading.Event()
        release = threading.Event()

        def holder():
            with processor.locks.hold([account_key(account.id)]):
                held.set()
                release.wait(5)

        thread = threading.Thread(target=holder)
        thread.start()
        held.wait(5)
        try:
            with pytest.raises(LockTimeoutError):
                processor.process_transaction(transaction.id, timeout=0.1)
        finally:
            release.set()
            thread.join()

        assert processor.get_transaction(transaction.id).status == TransactionStatus.PENDING
        assert account_manager.get_account(account.id).balance == usd(1000)
