"""
Ledger system wiring and FastAPI dependencies
"""

import threading
from typing import Optional

from ..config import LedgerConfig, get_config
from ..storage import StorageInterface, create_storage
from ..audit import AuditTrail
from ..locking import LockManager
from ..accounts import AccountManager
from ..transactions import TransactionProcessor
from ..pagination import PageRequest


class LedgerSystem:
    """Ledger components wired together by explicit constructor injection"""

    def __init__(self, config: Optional[LedgerConfig] = None, storage: Optional[StorageInterface] = None):
        self.config = config or get_config()
        self.storage = storage or create_storage(self.config.database_url)

        self.audit_trail = AuditTrail(self.storage) if self.config.enable_audit_logging else None
        self.lock_manager = LockManager(default_timeout=self.config.lock_timeout_seconds)
        self.account_manager = AccountManager(self.storage, self.audit_trail, self.lock_manager)
        self.transaction_processor = TransactionProcessor(
            self.storage, self.account_manager, self.audit_trail,
            lock_manager=self.lock_manager,
            lock_timeout=self.config.lock_timeout_seconds
        )

    def page_request(self, page: int, page_size: Optional[int] = None) -> PageRequest:
        """Page request with the configured default size filling in a missing or non-positive page_size"""
        if page_size is None or page_size <= 0:
            page_size = self.config.default_page_size
        return PageRequest(page=page, page_size=page_size, max_page_size=self.config.max_page_size)

    def close(self) -> None:
        self.storage.close()


_system: Optional[LedgerSystem] = None
_system_lock = threading.Lock()


# Dependency to get ledger system
def get_ledger_system() -> LedgerSystem:
    global _system
    with _system_lock:
        if _system is None:
            _system = LedgerSystem()
        return _system
