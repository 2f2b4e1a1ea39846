"""
Pydantic schemas for API requests and responses
"""

from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field

from ..currency import Money, Currency
from ..errors import ValidationError
from ..accounts import Account
from ..transactions import Transaction
from ..pagination import Page


class MoneyModel(BaseModel):
    amount: int = Field(..., description="Amount in minor units (cents)")
    currency: str = Field(..., description="Currency code (USD, THB)")

    def to_money(self) -> Money:
        try:
            return Money(self.amount, Currency.from_code(self.currency))
        except ValueError as e:
            raise ValidationError(str(e))

    @classmethod
    def from_money(cls, money: Money) -> 'MoneyModel':
        return cls(amount=money.amount, currency=money.currency.code)


# Account schemas
class CreateAccountRequest(BaseModel):
    number: str
    holder_name: str
    initial_balance: MoneyModel


class UpdateAccountRequest(BaseModel):
    holder_name: Optional[str] = None


class AccountResponse(BaseModel):
    id: str
    number: str
    holder_name: str
    balance: MoneyModel
    status: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_account(cls, account: Account) -> 'AccountResponse':
        return cls(
            id=account.id,
            number=account.number,
            holder_name=account.holder_name,
            balance=MoneyModel.from_money(account.balance),
            status=account.status.value,
            created_at=account.created_at,
            updated_at=account.updated_at
        )


class AccountPage(BaseModel):
    data: List[AccountResponse]
    page: int
    page_size: int
    total: int
    total_pages: int

    @classmethod
    def from_page(cls, page: Page[Account]) -> 'AccountPage':
        return cls(**page.to_dict(AccountResponse.from_account))


# Transaction schemas
class CreateTransactionRequest(BaseModel):
    type: str = Field(..., description="deposit, withdraw or transfer")
    amount: MoneyModel
    description: str = ""
    from_account_id: Optional[str] = None
    to_account_id: Optional[str] = None
    reference: Optional[str] = None


class TransactionResponse(BaseModel):
    id: str
    type: str
    status: str
    amount: MoneyModel
    from_account_id: Optional[str] = None
    to_account_id: Optional[str] = None
    description: str
    reference: str
    processed_at: Optional[datetime] = None
    error_message: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_transaction(cls, transaction: Transaction) -> 'TransactionResponse':
        return cls(
            id=transaction.id,
            type=transaction.transaction_type.value,
            status=transaction.status.value,
            amount=MoneyModel.from_money(transaction.amount),
            from_account_id=transaction.from_account_id,
            to_account_id=transaction.to_account_id,
            description=transaction.description,
            reference=transaction.reference,
            processed_at=transaction.processed_at,
            error_message=transaction.error_message,
            created_at=transaction.created_at,
            updated_at=transaction.updated_at
        )


class TransactionPage(BaseModel):
    data: List[TransactionResponse]
    page: int
    page_size: int
    total: int
    total_pages: int

    @classmethod
    def from_page(cls, page: Page[Transaction]) -> 'TransactionPage':
        return cls(**page.to_dict(TransactionResponse.from_transaction))
