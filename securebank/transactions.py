"""
Funding Transaction Module

Deposits into user accounts from a simulated external card or bank
instrument. Every deposit appends an immutable transaction row and updates
the account balance inside one storage transaction, so the sum of an
account's deposits always equals its balance.
"""

from decimal import Decimal
from datetime import datetime, timezone
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, List, Optional
from enum import Enum

from .storage import StorageInterface, StorageRecord
from .accounts import AccountManager, AccountType
from .cards import mask_card_number
from .errors import BadRequestError, InternalError, NotFoundError, ValidationError
from .money import ZERO, add_amounts, amount_to_string, quantize_amount
from .validation import FundingSource, FundingType, validate_amount, validate_funding_source
from .logging_config import get_logger, log_action


logger = get_logger(__name__)


class TransactionType(Enum):
    """Types of ledger entries"""
    DEPOSIT = "deposit"


class TransactionStatus(Enum):
    """States of a transaction"""
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class Transaction(StorageRecord):
    """
    Immutable ledger entry for one account.

    ``account_type`` is not stored; it is filled in when listing an account's
    history.
    """
    account_id: int
    transaction_type: TransactionType
    amount: Decimal
    description: str
    status: TransactionStatus = TransactionStatus.COMPLETED
    processed_at: Optional[datetime] = None
    account_type: Optional[AccountType] = None

    @property
    def is_completed(self) -> bool:
        return self.status == TransactionStatus.COMPLETED

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result['amount'] = amount_to_string(self.amount)
        if self.account_type is None:
            result.pop('account_type')
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Transaction":
        processed_at = None
        if data.get('processed_at'):
            processed_at = datetime.fromisoformat(data['processed_at'])

        return cls(
            id=data['id'],
            created_at=datetime.fromisoformat(data['created_at']),
            account_id=data['account_id'],
            transaction_type=TransactionType(data['transaction_type']),
            amount=Decimal(data['amount']),
            description=data['description'],
            status=TransactionStatus(data['status']),
            processed_at=processed_at,
        )


@dataclass(frozen=True)
class FundingResult:
    transaction: Transaction
    new_balance: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            "transaction": self.transaction.to_dict(),
            "new_balance": amount_to_string(self.new_balance),
        }


@dataclass(frozen=True)
class ReconciliationReport:
    """Stored balance versus the balance recomputed from the ledger"""
    account_id: int
    stored_balance: Decimal
    ledger_balance: Decimal
    repaired: bool

    @property
    def in_balance(self) -> bool:
        return self.stored_balance == self.ledger_balance


def _describe_source(source: FundingSource) -> str:
    """Masked instrument reference for log lines"""
    if source.type == FundingType.CARD:
        return mask_card_number(source.account_number)
    return f"****{source.account_number[-4:]}"


class FundingEngine:
    """
    Applies deposits to accounts and reads account history
    """

    def __init__(
        self,
        storage: StorageInterface,
        account_manager: AccountManager,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.storage = storage
        self.account_manager = account_manager
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.table_name = "transactions"

    def fund_account(
        self,
        account_id: int,
        amount: Any,
        funding_source: Any,
        acting_user_id: int
    ) -> FundingResult:
        """
        Deposit money into an account owned by the acting user

        Args:
            account_id: Account to fund
            amount: Positive amount with at most two decimal places
            funding_source: Mapping or object with type, account_number and
                routing_number
            acting_user_id: Authenticated user; must own the account

        Returns:
            FundingResult with the new transaction and persisted balance

        Raises:
            ValidationError: Bad amount or funding source (no side effects)
            NotFoundError: Account missing or owned by someone else
            BadRequestError: Account is not active
            InternalError: Persisted balance could not be confirmed
        """
        amount_result = validate_amount(amount)
        source_result = validate_funding_source(funding_source)
        issues = amount_result.issues + source_result.issues
        if issues:
            raise ValidationError(issues)

        amount = quantize_amount(amount_result.value)
        source = source_result.value

        with self.storage.atomic():
            account = self.account_manager.get_owned_account(account_id, acting_user_id)
            if not account.is_active:
                raise BadRequestError("Account is not active")

            now = self.clock()
            transaction = Transaction(
                id=self.storage.next_id(self.table_name),
                created_at=now,
                account_id=account.id,
                transaction_type=TransactionType.DEPOSIT,
                amount=amount,
                description=f"Funding from {source.type.value}",
                status=TransactionStatus.COMPLETED,
                processed_at=now,
            )
            self.storage.save(self.table_name, transaction.id, transaction.to_dict())

            new_balance = add_amounts(account.balance, amount)
            account.balance = new_balance
            self.account_manager.save_account(account)

            stored = self.account_manager.get_account(account.id)
            if stored is None or stored.balance != new_balance:
                log_action(
                    logger, "error", "Balance read-back failed after funding",
                    user_id=acting_user_id, action="fund_account", resource="account",
                    extra={
                        "account_id": account.id,
                        "expected_balance": amount_to_string(new_balance),
                        "stored_balance": amount_to_string(stored.balance) if stored else None,
                    }
                )
                raise InternalError("Failed to update account balance")

        log_action(
            logger, "info", "Account funded",
            user_id=acting_user_id, action="fund_account", resource="account",
            extra={
                "account_id": account.id,
                "transaction_id": transaction.id,
                "amount": amount_to_string(amount),
                "funding_type": source.type.value,
                "source": _describe_source(source),
            }
        )
        return FundingResult(
            transaction=replace(transaction, account_type=account.account_type),
            new_balance=stored.balance,
        )

    def get_transactions(self, account_id: int, acting_user_id: int) -> List[Transaction]:
        """
        Account history, most recent first, each tagged with the account type.

        Rows created at the same instant keep insertion order, newest first.
        """
        account = self.account_manager.get_owned_account(account_id, acting_user_id)

        transactions = [
            replace(Transaction.from_dict(data), account_type=account.account_type)
            for data in self.storage.find(self.table_name, {"account_id": account.id})
        ]
        return sorted(transactions, key=lambda t: (t.created_at, t.id), reverse=True)

    def ledger_balance(self, account_id: int) -> Decimal:
        """Sum of completed deposits for an account"""
        balance = ZERO
        for data in self.storage.find(self.table_name, {"account_id": account_id}):
            transaction = Transaction.from_dict(data)
            if transaction.is_completed and transaction.transaction_type == TransactionType.DEPOSIT:
                balance = add_amounts(balance, transaction.amount)
        return balance

    def reconcile_account(self, account_id: int) -> ReconciliationReport:
        """
        Compare the stored balance with the ledger and repair drift.

        The ledger is authoritative: a mismatched balance is overwritten
        with the ledger total.
        """
        with self.storage.atomic():
            account = self.account_manager.get_account(account_id)
            if account is None:
                raise NotFoundError("Account not found")

            stored_balance = account.balance
            ledger_balance = self.ledger_balance(account_id)
            repaired = False

            if stored_balance != ledger_balance:
                log_action(
                    logger, "warning", "Account balance drifted from ledger; repairing",
                    user_id=account.user_id, action="reconcile_account", resource="account",
                    extra={
                        "account_id": account_id,
                        "stored_balance": amount_to_string(stored_balance),
                        "ledger_balance": amount_to_string(ledger_balance),
                    }
                )
                account.balance = ledger_balance
                self.account_manager.save_account(account)
                repaired = True

        return ReconciliationReport(
            account_id=account_id,
            stored_balance=stored_balance,
            ledger_balance=ledger_balance,
            repaired=repaired,
        )
