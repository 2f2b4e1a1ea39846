"""
Transaction endpoints
"""

from typing import Optional
from fastapi import APIRouter, Depends, status

from .dependencies import LedgerSystem, get_ledger_system
from .errors import to_http_exception
from .schemas import CreateTransactionRequest, TransactionPage, TransactionResponse
from ..errors import LedgerError, ValidationError
from ..transactions import TransactionStatus, TransactionType


router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED, response_model=TransactionResponse)
def create_transaction(
    request: CreateTransactionRequest,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Create a pending deposit, withdraw or transfer"""
    try:
        transaction = system.transaction_processor.create_transaction(
            transaction_type=request.type,
            amount=request.amount.to_money(),
            description=request.description,
            from_account_id=request.from_account_id,
            to_account_id=request.to_account_id,
            reference=request.reference
        )
        return TransactionResponse.from_transaction(transaction)
    except LedgerError as e:
        raise to_http_exception(e)


@router.get("", response_model=TransactionPage)
def list_transactions(
    page: int = 1,
    page_size: Optional[int] = None,
    status: Optional[str] = None,
    type: Optional[str] = None,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """List transactions, optionally filtered by status or type"""
    processor = system.transaction_processor
    page_request = system.page_request(page, page_size)
    try:
        if status:
            try:
                transaction_status = TransactionStatus(status)
            except ValueError:
                raise ValidationError(f"invalid transaction status: {status}")
            result = processor.find_by_status(transaction_status, page_request)
        elif type:
            try:
                transaction_type = TransactionType(type)
            except ValueError:
                raise ValidationError("invalid transaction type")
            result = processor.find_by_type(transaction_type, page_request)
        else:
            result = processor.list_transactions(page_request)
        return TransactionPage.from_page(result)
    except LedgerError as e:
        raise to_http_exception(e)


@router.get("/{transaction_id}", response_model=TransactionResponse)
def get_transaction(
    transaction_id: str,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Get transaction details"""
    try:
        return TransactionResponse.from_transaction(
            system.transaction_processor.require_transaction(transaction_id)
        )
    except LedgerError as e:
        raise to_http_exception(e)


@router.post("/{transaction_id}/process", response_model=TransactionResponse)
def process_transaction(
    transaction_id: str,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Apply a pending transaction to account balances"""
    try:
        return TransactionResponse.from_transaction(
            system.transaction_processor.process_transaction(transaction_id)
        )
    except LedgerError as e:
        raise to_http_exception(e)


@router.post("/{transaction_id}/cancel", response_model=TransactionResponse)
def cancel_transaction(
    transaction_id: str,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Cancel a pending transaction"""
    try:
        return TransactionResponse.from_transaction(
            system.transaction_processor.cancel_transaction(transaction_id)
        )
    except LedgerError as e:
        raise to_http_exception(e)
