"""
Authentication and authorization dependencies
"""

from datetime import datetime, timedelta
from typing import Callable, Optional

from fastapi import Depends, Request, Response

from ..storage import StorageInterface, create_storage
from ..security import JWTSessionIssuer, ScryptHasher
from ..users import User, UserManager
from ..accounts import AccountManager
from ..transactions import FundingEngine
from ..auth import AuthService
from ..cookies import StarletteCookieTransport
from ..errors import UnauthorizedError
from ..config import SecureBankConfig, get_config


class BankingSystem:
    """SecureBank services wired to one storage backend"""

    def __init__(
        self,
        storage: Optional[StorageInterface] = None,
        settings: Optional[SecureBankConfig] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.config = settings or get_config()
        self.storage = storage or create_storage(self.config)

        self.hasher = ScryptHasher(
            n=self.config.scrypt_n, r=self.config.scrypt_r, p=self.config.scrypt_p
        )
        session_max_age = timedelta(seconds=self.config.session_max_age_seconds)
        self.token_issuer = JWTSessionIssuer(
            self.config.jwt_secret, self.config.jwt_algorithm, session_max_age
        )

        self.user_manager = UserManager(self.storage, self.hasher, clock=clock)
        self.account_manager = AccountManager(
            self.storage, max_attempts=self.config.account_number_max_attempts, clock=clock
        )
        self.funding_engine = FundingEngine(self.storage, self.account_manager, clock=clock)
        self.auth_service = AuthService(
            self.storage, self.user_manager, self.token_issuer,
            cookie_name=self.config.session_cookie_name,
            session_max_age=session_max_age,
            minimum_age=self.config.minimum_age_years,
            clock=clock
        )


# Global banking system instance, created on first request
banking_system: Optional[BankingSystem] = None


# Dependency to get banking system
def get_banking_system() -> BankingSystem:
    global banking_system
    if banking_system is None:
        banking_system = BankingSystem()
    return banking_system


def get_cookie_transport(request: Request, response: Response) -> StarletteCookieTransport:
    return StarletteCookieTransport(request, response)


def get_current_user(
    request: Request,
    system: BankingSystem = Depends(get_banking_system)
) -> User:
    """Dependency that resolves the session cookie to a user"""
    token = request.cookies.get(system.config.session_cookie_name)
    user = system.auth_service.get_session_user(token)
    if user is None:
        raise UnauthorizedError("Not authenticated")
    return user
