"""
Transaction Processing Module

Handles deposits, withdrawals and transfers between accounts. A transaction
is created Pending and moves exactly once to Completed, Failed or Cancelled.
Processing applies the balance mutations, the status change and the audit
record as one storage unit, under per-account locks.
"""

from datetime import datetime, timezone
from dataclasses import dataclass
from typing import Dict, List, Optional, Union
from enum import Enum
import uuid

from .currency import Money, Currency
from .errors import (
    InvalidStateError, InvalidTypeError, LedgerError, NotFoundError,
    PersistenceError, ValidationError
)
from .storage import StorageInterface, StorageRecord, parse_datetime
from .audit import AuditTrail, AuditEventType
from .accounts import AccountManager
from .locking import LockManager, account_key, transaction_key
from .pagination import Page, PageRequest, paginate
from .logging_config import get_logger, log_action


NOT_PENDING = "transaction is not in pending status"
CANCEL_NOT_PENDING = "only pending transactions can be cancelled"


class TransactionType(Enum):
    """Types of money movement"""
    DEPOSIT = "deposit"      # External money into to_account
    WITHDRAW = "withdraw"    # Money out of from_account
    TRANSFER = "transfer"    # from_account -> to_account


class TransactionStatus(Enum):
    """States of a transaction"""
    PENDING = "pending"          # Recorded, balances untouched
    COMPLETED = "completed"      # Balances updated
    FAILED = "failed"            # Processing attempted and rejected
    CANCELLED = "cancelled"      # Withdrawn before processing

    @property
    def is_terminal(self) -> bool:
        return self != TransactionStatus.PENDING


@dataclass
class Transaction(StorageRecord):
    """
    Intended money movement between accounts
    """
    transaction_type: TransactionType
    amount: Money
    status: TransactionStatus = TransactionStatus.PENDING
    from_account_id: Optional[str] = None  # None for deposits
    to_account_id: Optional[str] = None    # None for withdrawals
    description: str = ""
    reference: str = ""
    processed_at: Optional[datetime] = None
    error_message: Optional[str] = None

    def validate(self) -> None:
        """Check the account ids match the transaction type"""
        if self.transaction_type == TransactionType.DEPOSIT:
            if not self.to_account_id or self.from_account_id:
                raise ValidationError("deposit requires to_account_id only")
        elif self.transaction_type == TransactionType.WITHDRAW:
            if not self.from_account_id or self.to_account_id:
                raise ValidationError("withdrawal requires from_account_id only")
        elif self.transaction_type == TransactionType.TRANSFER:
            if not self.from_account_id or not self.to_account_id:
                raise ValidationError("transfer requires from_account_id and to_account_id")
            if self.from_account_id == self.to_account_id:
                raise ValidationError("cannot transfer to the same account")

    @property
    def is_pending(self) -> bool:
        return self.status == TransactionStatus.PENDING

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def account_ids(self) -> List[str]:
        return [i for i in (self.from_account_id, self.to_account_id) if i]

    def _require_pending(self, message: str) -> None:
        if not self.is_pending:
            raise InvalidStateError(message)

    def complete(self) -> None:
        self._require_pending(NOT_PENDING)
        self.status = TransactionStatus.COMPLETED
        self.processed_at = self.touch()

    def fail(self, reason: Optional[str] = None) -> None:
        self._require_pending(NOT_PENDING)
        self.status = TransactionStatus.FAILED
        self.error_message = reason
        self.processed_at = self.touch()

    def cancel(self) -> None:
        # processed_at stays unset: the transaction was never applied
        self._require_pending(CANCEL_NOT_PENDING)
        self.status = TransactionStatus.CANCELLED
        self.touch()

    def set_reference(self, reference: str) -> None:
        self.reference = reference
        self.touch()


def new_transaction(
    transaction_type: TransactionType,
    amount: Money,
    description: str = "",
    from_account_id: Optional[str] = None,
    to_account_id: Optional[str] = None
) -> Transaction:
    """Build a Pending transaction with a fresh id and default reference"""
    now = datetime.now(timezone.utc)
    transaction_id = str(uuid.uuid4())
    return Transaction(
        id=transaction_id,
        created_at=now,
        updated_at=now,
        transaction_type=transaction_type,
        amount=amount,
        from_account_id=from_account_id,
        to_account_id=to_account_id,
        description=description,
        reference=f"{transaction_type.value.upper()}-{transaction_id[:8]}"
    )


def new_deposit(to_account_id: str, amount: Money, description: str = "") -> Transaction:
    return new_transaction(TransactionType.DEPOSIT, amount, description, to_account_id=to_account_id)


def new_withdraw(from_account_id: str, amount: Money, description: str = "") -> Transaction:
    return new_transaction(TransactionType.WITHDRAW, amount, description, from_account_id=from_account_id)


def new_transfer(from_account_id: str, to_account_id: str, amount: Money, description: str = "") -> Transaction:
    return new_transaction(
        TransactionType.TRANSFER, amount, description,
        from_account_id=from_account_id, to_account_id=to_account_id
    )


class TransactionProcessor:
    """
    Creates, processes and cancels transactions against account balances
    """

    def __init__(
        self,
        storage: StorageInterface,
        account_manager: AccountManager,
        audit_trail: Optional[AuditTrail] = None,
        lock_manager: Optional[LockManager] = None,
        lock_timeout: Optional[float] = None
    ):
        self.storage = storage
        self.account_manager = account_manager
        self.audit_trail = audit_trail
        # Shared with the account manager so administrative updates and
        # balance mutations on the same account serialize
        self.locks = lock_manager or account_manager.locks
        self.lock_timeout = lock_timeout
        self.table_name = "transactions"
        self.logger = get_logger("bank_ledger.transactions")

        self._handlers = {
            TransactionType.DEPOSIT: self._process_deposit,
            TransactionType.WITHDRAW: self._process_withdraw,
            TransactionType.TRANSFER: self._process_transfer,
        }

    def _audit(self, event_type: AuditEventType, transaction: Transaction, metadata: Optional[Dict] = None) -> None:
        if self.audit_trail:
            self.audit_trail.log_event(
                event_type=event_type,
                entity_type="transaction",
                entity_id=transaction.id,
                metadata=metadata
            )

    def create_transaction(
        self,
        transaction_type: Union[TransactionType, str],
        amount: Money,
        description: str = "",
        from_account_id: Optional[str] = None,
        to_account_id: Optional[str] = None,
        reference: Optional[str] = None
    ) -> Transaction:
        """
        Create a new Pending transaction

        Account ids that do not apply to the type are ignored.

        Args:
            transaction_type: deposit, withdraw or transfer
            amount: Positive transaction amount
            description: Free text
            from_account_id: Source account (withdraw, transfer)
            to_account_id: Destination account (deposit, transfer)
            reference: External reference, generated if not provided

        Returns:
            Created Transaction object in PENDING state

        Raises:
            ValidationError: unknown type, missing account id, bad amount
                or duplicate reference
        """
        try:
            transaction_type = TransactionType(transaction_type)
        except ValueError:
            raise ValidationError("invalid transaction type")

        if not amount.is_positive():
            raise ValidationError("transaction amount must be positive")

        if transaction_type == TransactionType.DEPOSIT:
            if not to_account_id:
                raise ValidationError("to_account_id is required for deposit")
            transaction = new_deposit(to_account_id, amount, description)
        elif transaction_type == TransactionType.WITHDRAW:
            if not from_account_id:
                raise ValidationError("from_account_id is required for withdrawal")
            transaction = new_withdraw(from_account_id, amount, description)
        else:
            if not from_account_id or not to_account_id:
                raise ValidationError("both from_account_id and to_account_id are required for transfer")
            transaction = new_transfer(from_account_id, to_account_id, amount, description)
        transaction.validate()

        with self.storage.atomic():
            if reference:
                if self.find_by_reference(reference):
                    raise ValidationError(f"reference {reference} already exists")
                transaction.set_reference(reference)

            self._save_transaction(transaction)
            self._audit(AuditEventType.TRANSACTION_CREATED, transaction, {
                "transaction_type": transaction_type.value,
                "amount": amount.to_display_string(),
                "from_account": transaction.from_account_id,
                "to_account": transaction.to_account_id,
                "reference": transaction.reference
            })

        log_action(
            self.logger, "info", f"Transaction created: {transaction_type.value}",
            action="create_transaction", resource=f"transaction:{transaction.id}",
            extra={
                "transaction_type": transaction_type.value,
                "amount": amount.to_display_string(),
                "from_account": transaction.from_account_id,
                "to_account": transaction.to_account_id,
                "reference": transaction.reference
            }
        )
        return transaction

    def deposit(self, account_id: str, amount: Money, description: str = "",
                reference: Optional[str] = None) -> Transaction:
        """Convenience method for deposits"""
        return self.create_transaction(
            TransactionType.DEPOSIT, amount, description,
            to_account_id=account_id, reference=reference
        )

    def withdraw(self, account_id: str, amount: Money, description: str = "",
                 reference: Optional[str] = None) -> Transaction:
        """Convenience method for withdrawals"""
        return self.create_transaction(
            TransactionType.WITHDRAW, amount, description,
            from_account_id=account_id, reference=reference
        )

    def transfer(self, from_account_id: str, to_account_id: str, amount: Money,
                 description: str = "", reference: Optional[str] = None) -> Transaction:
        """Convenience method for transfers"""
        return self.create_transaction(
            TransactionType.TRANSFER, amount, description,
            from_account_id=from_account_id, to_account_id=to_account_id,
            reference=reference
        )

    def process_transaction(self, transaction_id: str, timeout: Optional[float] = None) -> Transaction:
        """
        Apply a pending transaction to its account balances

        Either every balance mutation and the Completed status are stored
        together, or none of them are. A business rule failure marks the
        transaction Failed and re-raises; a PersistenceError leaves it
        Pending so the caller can retry.

        Args:
            transaction_id: ID of transaction to process
            timeout: Seconds to wait for account locks

        Returns:
            The Completed transaction

        Raises:
            NotFoundError, InvalidStateError, InvalidTypeError,
            AccountNotActiveError, InsufficientFundsError,
            CurrencyMismatchError, PersistenceError, LockTimeoutError
        """
        transaction = self.require_transaction(transaction_id)
        if not transaction.is_pending:
            raise InvalidStateError(NOT_PENDING)

        handler = self._handlers.get(transaction.transaction_type)
        if handler is None:
            raise InvalidTypeError("invalid transaction type")

        keys = [transaction_key(transaction_id)] + [account_key(i) for i in transaction.account_ids]
        with self.locks.hold(keys, timeout=timeout if timeout is not None else self.lock_timeout):
            # Another caller may have finished it while we waited
            transaction = self.require_transaction(transaction_id)
            if not transaction.is_pending:
                raise InvalidStateError(NOT_PENDING)

            try:
                with self.storage.atomic():
                    handler(transaction)
                    transaction.complete()
                    self._save_transaction(transaction)
                    self._audit(AuditEventType.TRANSACTION_COMPLETED, transaction, {
                        "processed_at": transaction.processed_at
                    })
            except PersistenceError:
                log_action(
                    self.logger, "error", f"Transaction {transaction_id} could not be stored",
                    action="process_transaction", resource=f"transaction:{transaction_id}",
                    exc_info=True
                )
                raise
            except LedgerError as e:
                try:
                    self._fail_transaction(transaction_id, str(e))
                except PersistenceError:
                    log_action(
                        self.logger, "error",
                        f"Transaction {transaction_id} failed but its Failed status could not be stored",
                        action="process_transaction", resource=f"transaction:{transaction_id}",
                        extra={"error_message": str(e), "error": type(e).__name__},
                        exc_info=True
                    )
                    raise
                raise

        log_action(
            self.logger, "info", f"Transaction completed: {transaction.transaction_type.value}",
            action="process_transaction", resource=f"transaction:{transaction.id}",
            extra={
                "amount": transaction.amount.to_display_string(),
                "from_account": transaction.from_account_id,
                "to_account": transaction.to_account_id
            }
        )
        return transaction

    def cancel_transaction(self, transaction_id: str) -> Transaction:
        """
        Cancel a transaction that was never processed. Balances are not touched.
        """
        with self.locks.hold([transaction_key(transaction_id)], timeout=self.lock_timeout):
            transaction = self.require_transaction(transaction_id)
            transaction.cancel()
            with self.storage.atomic():
                self._save_transaction(transaction)
                self._audit(AuditEventType.TRANSACTION_CANCELLED, transaction)

        log_action(
            self.logger, "info", f"Transaction cancelled: {transaction.reference}",
            action="cancel_transaction", resource=f"transaction:{transaction.id}"
        )
        return transaction

    def _process_deposit(self, transaction: Transaction) -> None:
        account = self.account_manager.require_account(transaction.to_account_id)
        account.credit(transaction.amount)
        self.account_manager.save_account(account)

    def _process_withdraw(self, transaction: Transaction) -> None:
        account = self.account_manager.require_account(transaction.from_account_id)
        account.debit(transaction.amount)
        self.account_manager.save_account(account)

    def _process_transfer(self, transaction: Transaction) -> None:
        from_account = self.account_manager.require_account(transaction.from_account_id)
        to_account = self.account_manager.require_account(transaction.to_account_id)

        # Debit first; a failed debit means the credit is never attempted
        from_account.debit(transaction.amount)
        to_account.credit(transaction.amount)

        self.account_manager.save_account(from_account)
        self.account_manager.save_account(to_account)

    def _fail_transaction(self, transaction_id: str, error_message: str) -> None:
        """Mark transaction as failed, starting from its stored (rolled back) state"""
        transaction = self.require_transaction(transaction_id)
        transaction.fail(error_message)
        with self.storage.atomic():
            self._save_transaction(transaction)
            self._audit(AuditEventType.TRANSACTION_FAILED, transaction, {
                "error_message": error_message,
                "failed_at": transaction.processed_at
            })

        log_action(
            self.logger, "warning", f"Transaction failed: {error_message}",
            action="process_transaction", resource=f"transaction:{transaction_id}",
            extra={"error_message": error_message}
        )

    def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        """Get transaction by ID"""
        transaction_dict = self.storage.load(self.table_name, transaction_id)
        if transaction_dict:
            return self._transaction_from_dict(transaction_dict)
        return None

    def require_transaction(self, transaction_id: str) -> Transaction:
        """Get transaction by ID or raise NotFoundError"""
        transaction = self.get_transaction(transaction_id)
        if not transaction:
            raise NotFoundError(f"transaction {transaction_id} not found")
        return transaction

    def find_by_reference(self, reference: str) -> Optional[Transaction]:
        found = self.storage.find(self.table_name, {"reference": reference})
        if found:
            return self._transaction_from_dict(found[0])
        return None

    def list_transactions(self, page_request: Optional[PageRequest] = None) -> Page[Transaction]:
        return paginate(self._all_transactions(), page_request or PageRequest())

    def get_account_transactions(
        self,
        account_id: str,
        page_request: Optional[PageRequest] = None
    ) -> Page[Transaction]:
        """Transactions where the account is source or destination, most recent first"""
        transactions = [
            t for t in self._all_transactions()
            if t.from_account_id == account_id or t.to_account_id == account_id
        ]
        transactions.sort(key=lambda t: t.created_at, reverse=True)
        return paginate(transactions, page_request or PageRequest())

    def find_by_status(
        self,
        status: TransactionStatus,
        page_request: Optional[PageRequest] = None
    ) -> Page[Transaction]:
        found = self.storage.find(self.table_name, {"status": status.value})
        return paginate([self._transaction_from_dict(d) for d in found], page_request or PageRequest())

    def find_by_type(
        self,
        transaction_type: TransactionType,
        page_request: Optional[PageRequest] = None
    ) -> Page[Transaction]:
        found = self.storage.find(self.table_name, {"transaction_type": transaction_type.value})
        return paginate([self._transaction_from_dict(d) for d in found], page_request or PageRequest())

    def find_by_date_range(
        self,
        start: datetime,
        end: datetime,
        page_request: Optional[PageRequest] = None
    ) -> Page[Transaction]:
        """Transactions created within [start, end]. Naive bounds are taken as UTC."""
        if start.tzinfo is None:
            start = start.replace(tzinfo=timezone.utc)
        if end.tzinfo is None:
            end = end.replace(tzinfo=timezone.utc)
        transactions = [t for t in self._all_transactions() if start <= t.created_at <= end]
        return paginate(transactions, page_request or PageRequest())

    def _all_transactions(self) -> List[Transaction]:
        return [self._transaction_from_dict(data) for data in self.storage.load_all(self.table_name)]

    def _save_transaction(self, transaction: Transaction) -> None:
        """Save transaction to storage"""
        self.storage.save(self.table_name, transaction.id, self._transaction_to_dict(transaction))

    def _transaction_to_dict(self, transaction: Transaction) -> Dict:
        """Convert Transaction to dictionary for storage"""
        result = transaction.to_dict()
        result['transaction_type'] = transaction.transaction_type.value
        result['status'] = transaction.status.value
        result['amount'] = transaction.amount.amount
        result['currency'] = transaction.amount.currency.code
        result['from_account_id'] = transaction.from_account_id
        result['to_account_id'] = transaction.to_account_id
        result['description'] = transaction.description
        result['reference'] = transaction.reference
        result['processed_at'] = transaction.processed_at.isoformat() if transaction.processed_at else None
        result['error_message'] = transaction.error_message
        return result

    def _transaction_from_dict(self, data: Dict) -> Transaction:
        """Convert dictionary to Transaction"""
        return Transaction(
            id=data['id'],
            created_at=parse_datetime(data['created_at']),
            updated_at=parse_datetime(data['updated_at']),
            transaction_type=TransactionType(data['transaction_type']),
            amount=Money(int(data['amount']), Currency.from_code(data['currency'])),
            status=TransactionStatus(data['status']),
            from_account_id=data.get('from_account_id'),
            to_account_id=data.get('to_account_id'),
            description=data.get('description', ""),
            reference=data.get('reference', ""),
            processed_at=parse_datetime(data.get('processed_at')),
            error_message=data.get('error_message')
        )
