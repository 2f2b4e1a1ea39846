"""
Account management endpoints
"""

from typing import Optional
from fastapi import APIRouter, Depends, status

from .dependencies import LedgerSystem, get_ledger_system
from .errors import to_http_exception
from .schemas import (
    AccountPage, AccountResponse, CreateAccountRequest, TransactionPage,
    UpdateAccountRequest
)
from ..accounts import AccountStatus
from ..errors import LedgerError, NotFoundError, ValidationError


router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED, response_model=AccountResponse)
def create_account(
    request: CreateAccountRequest,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Create a new account"""
    try:
        account = system.account_manager.create_account(
            number=request.number,
            holder_name=request.holder_name,
            initial_balance=request.initial_balance.to_money()
        )
        return AccountResponse.from_account(account)
    except LedgerError as e:
        raise to_http_exception(e)


@router.get("", response_model=AccountPage)
def list_accounts(
    page: int = 1,
    page_size: Optional[int] = None,
    status: Optional[str] = None,
    holder_name: Optional[str] = None,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """List accounts, optionally filtered by status or holder name"""
    page_request = system.page_request(page, page_size)
    try:
        if status:
            try:
                account_status = AccountStatus(status)
            except ValueError:
                raise ValidationError(f"invalid account status: {status}")
            result = system.account_manager.find_accounts_by_status(account_status, page_request)
        elif holder_name:
            result = system.account_manager.search_accounts_by_holder_name(holder_name, page_request)
        else:
            result = system.account_manager.list_accounts(page_request)
        return AccountPage.from_page(result)
    except LedgerError as e:
        raise to_http_exception(e)


@router.get("/number/{number}", response_model=AccountResponse)
def get_account_by_number(
    number: str,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Get account by account number"""
    account = system.account_manager.get_account_by_number(number)
    if not account:
        raise to_http_exception(NotFoundError(f"account {number} not found"))
    return AccountResponse.from_account(account)


@router.get("/{account_id}", response_model=AccountResponse)
def get_account(
    account_id: str,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Get account details"""
    try:
        return AccountResponse.from_account(system.account_manager.require_account(account_id))
    except LedgerError as e:
        raise to_http_exception(e)


@router.put("/{account_id}", response_model=AccountResponse)
def update_account(
    account_id: str,
    request: UpdateAccountRequest,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Update the account holder name"""
    try:
        account = system.account_manager.update_account(account_id, holder_name=request.holder_name)
        return AccountResponse.from_account(account)
    except LedgerError as e:
        raise to_http_exception(e)


@router.post("/{account_id}/block", response_model=AccountResponse)
def block_account(
    account_id: str,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Block an account"""
    try:
        return AccountResponse.from_account(system.account_manager.block_account(account_id))
    except LedgerError as e:
        raise to_http_exception(e)


@router.post("/{account_id}/activate", response_model=AccountResponse)
def activate_account(
    account_id: str,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Activate an account"""
    try:
        return AccountResponse.from_account(system.account_manager.activate_account(account_id))
    except LedgerError as e:
        raise to_http_exception(e)


@router.post("/{account_id}/deactivate", response_model=AccountResponse)
def deactivate_account(
    account_id: str,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Mark an account inactive"""
    try:
        return AccountResponse.from_account(system.account_manager.deactivate_account(account_id))
    except LedgerError as e:
        raise to_http_exception(e)


@router.delete("/{account_id}")
def delete_account(
    account_id: str,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Delete an account"""
    try:
        return {"success": system.account_manager.delete_account(account_id)}
    except LedgerError as e:
        raise to_http_exception(e)


@router.get("/{account_id}/transactions", response_model=TransactionPage)
def get_account_transactions(
    account_id: str,
    page: int = 1,
    page_size: Optional[int] = None,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Transactions touching an account, most recent first"""
    result = system.transaction_processor.get_account_transactions(
        account_id, system.page_request(page, page_size)
    )
    return TransactionPage.from_page(result)
