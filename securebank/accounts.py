"""
Account Management Module

Opens checking and savings accounts for users and resolves accounts for
their owners. Account numbers are random 10-digit strings; uniqueness is
guaranteed by a bounded generate-and-retry loop backed by a storage unique
constraint.
"""

from decimal import Decimal
from datetime import datetime, timezone
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Union
from enum import Enum
import secrets

from .storage import StorageInterface, StorageRecord
from .errors import ConflictError, InternalError, NotFoundError, UniqueConstraintError
from .money import ZERO, amount_to_string
from .logging_config import get_logger, log_action


logger = get_logger(__name__)

ACCOUNT_NUMBER_DIGITS = 10
DEFAULT_MAX_ATTEMPTS = 100


class AccountType(Enum):
    """Deposit products a user may open, at most one of each"""
    CHECKING = "checking"
    SAVINGS = "savings"


class AccountStatus(Enum):
    """Account lifecycle states; only ACTIVE accounts accept funding"""
    ACTIVE = "active"
    PENDING = "pending"
    FROZEN = "frozen"
    CLOSED = "closed"


def generate_account_number() -> str:
    """Uniform random 10-digit account number, zero padded"""
    return str(secrets.randbelow(10 ** ACCOUNT_NUMBER_DIGITS)).zfill(ACCOUNT_NUMBER_DIGITS)


@dataclass
class Account(StorageRecord):
    """Deposit account owned by exactly one user"""
    user_id: int
    account_number: str
    account_type: AccountType
    balance: Decimal = ZERO
    status: AccountStatus = AccountStatus.ACTIVE

    @property
    def is_active(self) -> bool:
        return self.status == AccountStatus.ACTIVE

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result['balance'] = amount_to_string(self.balance)
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Account":
        return cls(
            id=data['id'],
            created_at=datetime.fromisoformat(data['created_at']),
            user_id=data['user_id'],
            account_number=data['account_number'],
            account_type=AccountType(data['account_type']),
            balance=Decimal(data['balance']),
            status=AccountStatus(data['status']),
        )


class AccountManager:
    """
    Manages account creation and owner-scoped lookups
    """

    def __init__(
        self,
        storage: StorageInterface,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        number_generator: Callable[[], str] = generate_account_number,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.storage = storage
        self.max_attempts = max_attempts
        self.number_generator = number_generator
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.accounts_table = "accounts"
        self.storage.add_unique_constraint(self.accounts_table, "account_number")

    def create_account(self, user_id: int, account_type: Union[AccountType, str]) -> Account:
        """
        Open a new account with a zero balance

        Args:
            user_id: Owner of the account
            account_type: checking or savings

        Returns:
            The account as read back from storage

        Raises:
            ConflictError: If the user already has an account of this type
            InternalError: If no unique number could be generated, or the
                read-back after insert failed
        """
        account_type = AccountType(account_type)

        account = None
        for attempt in range(1, self.max_attempts + 1):
            candidate = self.number_generator()
            with self.storage.atomic():
                if self.storage.find(self.accounts_table, {"user_id": user_id,
                                                           "account_type": account_type.value}):
                    raise ConflictError(f"You already have a {account_type.value} account")

                if self.storage.find(self.accounts_table, {"account_number": candidate}):
                    logger.debug("Account number collision on attempt %d", attempt)
                    continue

                account = Account(
                    id=self.storage.next_id(self.accounts_table),
                    created_at=self.clock(),
                    user_id=user_id,
                    account_number=candidate,
                    account_type=account_type,
                )
                try:
                    self.storage.save(self.accounts_table, account.id, account.to_dict())
                except UniqueConstraintError as e:
                    if e.field != "account_number":
                        raise
                    logger.debug("Account number collision at insert on attempt %d", attempt)
                    account = None
                    continue
            break

        if account is None:
            log_action(
                logger, "error", "Failed to generate a unique account number",
                user_id=user_id, action="create_account", resource="account",
                extra={"attempts": self.max_attempts}
            )
            raise InternalError("Failed to generate a unique account number")

        stored = self.get_account(account.id)
        if stored is None:
            log_action(
                logger, "error", "Account read-back failed after insert",
                user_id=user_id, action="create_account", resource="account",
                extra={"account_id": account.id}
            )
            raise InternalError("Failed to create account")

        log_action(
            logger, "info", "Account created",
            user_id=user_id, action="create_account", resource="account",
            extra={"account_id": stored.id, "account_type": account_type.value}
        )
        return stored

    def get_account(self, account_id: int) -> Optional[Account]:
        """Get account by ID"""
        account_dict = self.storage.load(self.accounts_table, account_id)
        if account_dict:
            return Account.from_dict(account_dict)
        return None

    def get_accounts(self, user_id: int) -> List[Account]:
        """All accounts of a user, oldest first"""
        accounts_data = self.storage.find(self.accounts_table, {"user_id": user_id})
        return [Account.from_dict(data) for data in accounts_data]

    def get_owned_account(self, account_id: int, user_id: int) -> Account:
        """
        Resolve an account for its owner.

        Missing and foreign accounts raise the same error.
        """
        account = self.get_account(account_id)
        if account is None or account.user_id != user_id:
            raise NotFoundError("Account not found")
        return account

    def save_account(self, account: Account) -> None:
        self.storage.save(self.accounts_table, account.id, account.to_dict())

    def update_account_status(self, account_id: int, status: AccountStatus) -> Account:
        """Move an account to a new lifecycle state"""
        account = self.get_account(account_id)
        if account is None:
            raise NotFoundError("Account not found")

        old_status = account.status
        account.status = status
        self.save_account(account)

        log_action(
            logger, "info", "Account status changed",
            user_id=account.user_id, action="update_account_status", resource="account",
            extra={"account_id": account_id, "old_status": old_status.value, "new_status": status.value}
        )
        return account
