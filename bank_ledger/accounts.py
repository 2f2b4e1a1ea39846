"""
Account Management Module

Accounts own a balance and expose debit/credit operations gated by status.
AccountManager persists accounts and provides the administrative operations
(create, rename, block, activate, delete, listings).
"""

from datetime import datetime, timezone
from dataclasses import dataclass
from typing import Dict, List, Optional
from enum import Enum
import uuid

from .currency import Money, Currency
from .errors import (
    AccountNotActiveError, CurrencyMismatchError, InsufficientFundsError,
    NotFoundError, ValidationError
)
from .storage import StorageInterface, StorageRecord, parse_datetime
from .audit import AuditTrail, AuditEventType
from .locking import LockManager, account_key
from .pagination import Page, PageRequest, paginate
from .logging_config import get_logger, log_action


class AccountStatus(Enum):
    """Account lifecycle states"""
    ACTIVE = "active"        # Normal operation
    INACTIVE = "inactive"    # Dormant, no money movement
    BLOCKED = "blocked"      # Suspended by an administrator


@dataclass
class Account(StorageRecord):
    """
    Bank account holding a single-currency balance
    """
    number: str
    holder_name: str
    balance: Money
    status: AccountStatus = AccountStatus.ACTIVE

    @classmethod
    def new(cls, number: str, holder_name: str, initial_balance: Money) -> 'Account':
        """Create an Active account with a fresh id"""
        now = datetime.now(timezone.utc)
        return cls(
            id=str(uuid.uuid4()),
            created_at=now,
            updated_at=now,
            number=number,
            holder_name=holder_name,
            balance=initial_balance,
        )

    @property
    def currency(self) -> Currency:
        return self.balance.currency

    @property
    def is_active(self) -> bool:
        return self.status == AccountStatus.ACTIVE

    def _check_movement(self, amount: Money) -> None:
        if not self.is_active:
            raise AccountNotActiveError()
        if amount.currency != self.balance.currency:
            raise CurrencyMismatchError(
                f"account {self.number} holds {self.balance.currency.code}, "
                f"cannot move {amount.currency.code}"
            )
        if amount.is_negative():
            raise ValidationError("amount must not be negative")

    def debit(self, amount: Money) -> None:
        """Take money out. Fails without touching the balance on any violation."""
        self._check_movement(amount)
        if self.balance.amount < amount.amount:
            raise InsufficientFundsError()
        self.balance = self.balance - amount
        self.touch()

    def credit(self, amount: Money) -> None:
        """Put money in. There is no upper bound on a balance."""
        self._check_movement(amount)
        self.balance = self.balance + amount
        self.touch()

    def block(self) -> None:
        self.status = AccountStatus.BLOCKED
        self.touch()

    def activate(self) -> None:
        self.status = AccountStatus.ACTIVE
        self.touch()

    def deactivate(self) -> None:
        self.status = AccountStatus.INACTIVE
        self.touch()

    def rename(self, holder_name: str) -> None:
        self.holder_name = holder_name
        self.touch()


class AccountManager:
    """
    Manages account persistence and lifecycle
    """

    def __init__(
        self,
        storage: StorageInterface,
        audit_trail: Optional[AuditTrail] = None,
        lock_manager: Optional[LockManager] = None
    ):
        self.storage = storage
        self.audit_trail = audit_trail
        self.locks = lock_manager or LockManager()
        self.accounts_table = "accounts"
        self.logger = get_logger("bank_ledger.accounts")

    def _audit(self, event_type: AuditEventType, account: Account, metadata: Optional[Dict] = None) -> None:
        if self.audit_trail:
            self.audit_trail.log_event(
                event_type=event_type,
                entity_type="account",
                entity_id=account.id,
                metadata=metadata
            )

    def create_account(self, number: str, holder_name: str, initial_balance: Money) -> Account:
        """
        Create a new Active account

        Args:
            number: Unique account number
            holder_name: Name of the account holder
            initial_balance: Opening balance, also fixes the account currency

        Returns:
            Created Account object

        Raises:
            ValidationError: blank fields, negative balance or duplicate number
        """
        if not number or not number.strip():
            raise ValidationError("account number is required")
        if not holder_name or not holder_name.strip():
            raise ValidationError("holder name is required")
        if initial_balance.is_negative():
            raise ValidationError("initial balance must not be negative")

        with self.storage.atomic():
            if self.get_account_by_number(number):
                raise ValidationError(f"account number {number} already exists")

            account = Account.new(number, holder_name, initial_balance)
            self.save_account(account)
            self._audit(AuditEventType.ACCOUNT_CREATED, account, {
                "number": number,
                "holder_name": holder_name,
                "initial_balance": initial_balance.to_display_string()
            })

        log_action(
            self.logger, "info", f"Account created: {number}",
            action="create_account", resource=f"account:{account.id}",
            extra={"number": number, "currency": account.currency.code}
        )
        return account

    def get_account(self, account_id: str) -> Optional[Account]:
        """Get account by ID"""
        account_dict = self.storage.load(self.accounts_table, account_id)
        if account_dict:
            return self._account_from_dict(account_dict)
        return None

    def require_account(self, account_id: str) -> Account:
        """Get account by ID or raise NotFoundError"""
        account = self.get_account(account_id)
        if not account:
            raise NotFoundError(f"account {account_id} not found")
        return account

    def get_account_by_number(self, number: str) -> Optional[Account]:
        """Get account by account number"""
        accounts = self.storage.find(self.accounts_table, {"number": number})
        if accounts:
            return self._account_from_dict(accounts[0])
        return None

    def save_account(self, account: Account) -> None:
        """Persist an account as-is"""
        self.storage.save(self.accounts_table, account.id, self._account_to_dict(account))

    def update_account(self, account_id: str, holder_name: Optional[str] = None) -> Account:
        """Rename the holder. A blank name leaves the account unchanged."""
        with self.locks.hold([account_key(account_id)]):
            account = self.require_account(account_id)
            if holder_name and holder_name.strip():
                old_name = account.holder_name
                account.rename(holder_name)
                with self.storage.atomic():
                    self.save_account(account)
                    self._audit(AuditEventType.ACCOUNT_UPDATED, account, {
                        "old_holder_name": old_name,
                        "new_holder_name": holder_name
                    })
            return account

    def _change_status(self, account_id: str, new_status: AccountStatus) -> Account:
        transitions = {
            AccountStatus.ACTIVE: (Account.activate, AuditEventType.ACCOUNT_ACTIVATED),
            AccountStatus.BLOCKED: (Account.block, AuditEventType.ACCOUNT_BLOCKED),
            AccountStatus.INACTIVE: (Account.deactivate, AuditEventType.ACCOUNT_DEACTIVATED),
        }
        transition, event_type = transitions[new_status]

        with self.locks.hold([account_key(account_id)]):
            account = self.require_account(account_id)
            old_status = account.status
            transition(account)
            with self.storage.atomic():
                self.save_account(account)
                self._audit(event_type, account, {
                    "old_status": old_status.value,
                    "new_status": new_status.value
                })

        log_action(
            self.logger, "info", f"Account {account.number} is now {new_status.value}",
            action="change_account_status", resource=f"account:{account.id}",
            extra={"old_status": old_status.value, "new_status": new_status.value}
        )
        return account

    def block_account(self, account_id: str) -> Account:
        return self._change_status(account_id, AccountStatus.BLOCKED)

    def activate_account(self, account_id: str) -> Account:
        return self._change_status(account_id, AccountStatus.ACTIVE)

    def deactivate_account(self, account_id: str) -> Account:
        return self._change_status(account_id, AccountStatus.INACTIVE)

    def delete_account(self, account_id: str) -> bool:
        """Administrative delete. Transactions referencing the account are kept."""
        with self.locks.hold([account_key(account_id)]):
            account = self.require_account(account_id)
            with self.storage.atomic():
                deleted = self.storage.delete(self.accounts_table, account_id)
                self._audit(AuditEventType.ACCOUNT_DELETED, account, {"number": account.number})

        log_action(
            self.logger, "warning", f"Account deleted: {account.number}",
            action="delete_account", resource=f"account:{account_id}"
        )
        return deleted

    def list_accounts(self, page_request: Optional[PageRequest] = None) -> Page[Account]:
        return paginate(self._all_accounts(), page_request or PageRequest())

    def find_accounts_by_status(
        self,
        status: AccountStatus,
        page_request: Optional[PageRequest] = None
    ) -> Page[Account]:
        accounts_data = self.storage.find(self.accounts_table, {"status": status.value})
        accounts = [self._account_from_dict(data) for data in accounts_data]
        return paginate(accounts, page_request or PageRequest())

    def search_accounts_by_holder_name(
        self,
        fragment: str,
        page_request: Optional[PageRequest] = None
    ) -> Page[Account]:
        """Case-insensitive substring match on the holder name"""
        needle = fragment.lower()
        accounts = [a for a in self._all_accounts() if needle in a.holder_name.lower()]
        return paginate(accounts, page_request or PageRequest())

    def _all_accounts(self) -> List[Account]:
        return [self._account_from_dict(data) for data in self.storage.load_all(self.accounts_table)]

    def _account_to_dict(self, account: Account) -> Dict:
        """Convert Account to dictionary for storage"""
        result = account.to_dict()
        result['number'] = account.number
        result['holder_name'] = account.holder_name
        result['balance_amount'] = account.balance.amount
        result['currency'] = account.balance.currency.code
        result['status'] = account.status.value
        return result

    def _account_from_dict(self, data: Dict) -> Account:
        """Convert dictionary to Account"""
        return Account(
            id=data['id'],
            created_at=parse_datetime(data['created_at']),
            updated_at=parse_datetime(data['updated_at']),
            number=data['number'],
            holder_name=data['holder_name'],
            balance=Money(int(data['balance_amount']), Currency.from_code(data['currency'])),
            status=AccountStatus(data['status'])
        )
