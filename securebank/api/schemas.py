"""
Pydantic schemas for API requests and responses
"""

from typing import Any, Dict, Optional, Union
from pydantic import BaseModel, Field, StrictFloat, StrictInt, StrictStr

from ..accounts import Account
from ..transactions import Transaction
from ..money import amount_to_string


# Auth schemas
class SignupRequest(BaseModel):
    # Field rules live in securebank.validation so that clients get the
    # exact messages; pydantic only checks the JSON shape here.
    email: Optional[str] = None
    password: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone_number: Optional[str] = None
    date_of_birth: Optional[str] = Field(None, description="ISO date YYYY-MM-DD")
    ssn: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None


class LoginRequest(BaseModel):
    email: str
    password: str


# Account schemas
class CreateAccountRequest(BaseModel):
    account_type: str = Field(..., description="Account type (checking, savings)")


class FundingSourceModel(BaseModel):
    type: str = Field(..., description="Funding type (card, bank)")
    account_number: str = Field(..., description="Card number or bank account number")
    routing_number: Optional[str] = Field(None, description="Required for bank transfers")


class FundAccountRequest(BaseModel):
    # Strict types: JSON booleans must not coerce to 1 or 0
    amount: Union[StrictStr, StrictInt, StrictFloat] = Field(..., description="Positive amount, at most 2 decimal places")
    funding_source: FundingSourceModel


def account_to_response(account: Account) -> Dict[str, Any]:
    return {
        "id": account.id,
        "user_id": account.user_id,
        "account_number": account.account_number,
        "account_type": account.account_type.value,
        "balance": amount_to_string(account.balance),
        "status": account.status.value,
        "created_at": account.created_at.isoformat(),
    }


def transaction_to_response(txn: Transaction) -> Dict[str, Any]:
    return {
        "id": txn.id,
        "account_id": txn.account_id,
        "account_type": txn.account_type.value if txn.account_type else None,
        "type": txn.transaction_type.value,
        "amount": amount_to_string(txn.amount),
        "description": txn.description,
        "status": txn.status.value,
        "created_at": txn.created_at.isoformat(),
        "processed_at": txn.processed_at.isoformat() if txn.processed_at else None,
    }
