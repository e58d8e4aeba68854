"""
Account management endpoints
"""

from fastapi import APIRouter, Depends, status

from .deps import BankingSystem, get_banking_system, get_current_user
from .schemas import (
    CreateAccountRequest, FundAccountRequest, account_to_response, transaction_to_response
)
from ..accounts import AccountType
from ..errors import ValidationError
from ..money import amount_to_string
from ..users import User
from ..validation import ValidationIssue


router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_account(
    request: CreateAccountRequest,
    user: User = Depends(get_current_user),
    system: BankingSystem = Depends(get_banking_system)
):
    """Open a checking or savings account"""
    try:
        account_type = AccountType(request.account_type)
    except ValueError:
        raise ValidationError([
            ValidationIssue("account_type", "Account type must be 'checking' or 'savings'")
        ])

    account = system.account_manager.create_account(user.id, account_type)
    return account_to_response(account)


@router.get("")
async def get_accounts(
    user: User = Depends(get_current_user),
    system: BankingSystem = Depends(get_banking_system)
):
    """List the caller's accounts"""
    accounts = system.account_manager.get_accounts(user.id)
    return {"accounts": [account_to_response(account) for account in accounts]}


@router.post("/{account_id}/fund")
async def fund_account(
    account_id: int,
    request: FundAccountRequest,
    user: User = Depends(get_current_user),
    system: BankingSystem = Depends(get_banking_system)
):
    """Deposit from a card or bank account"""
    result = system.funding_engine.fund_account(
        account_id=account_id,
        amount=request.amount,
        funding_source=request.funding_source.model_dump(),
        acting_user_id=user.id
    )
    return {
        "transaction": transaction_to_response(result.transaction),
        "new_balance": amount_to_string(result.new_balance),
    }


@router.get("/{account_id}/transactions")
async def get_account_transactions(
    account_id: int,
    user: User = Depends(get_current_user),
    system: BankingSystem = Depends(get_banking_system)
):
    """Get transaction history for account, most recent first"""
    transactions = system.funding_engine.get_transactions(account_id, user.id)
    return {"transactions": [transaction_to_response(txn) for txn in transactions]}
