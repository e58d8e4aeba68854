"""
Credential Security Module

Secret hashing for passwords and SSNs, and signed session tokens. Both are
exposed as small interfaces so the auth flow can be exercised with any
implementation; the shipped defaults use salted scrypt and PyJWT.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
import hashlib
import hmac
import secrets

import jwt


class SecretHasher(ABC):
    """One-way hashing of secrets at rest"""

    @abstractmethod
    def hash(self, plaintext: str) -> str:
        """Return an opaque digest string"""
        pass

    @abstractmethod
    def compare(self, plaintext: str, digest: str) -> bool:
        """Check plaintext against a digest produced by ``hash``"""
        pass


class ScryptHasher(SecretHasher):
    """
    Salted scrypt hashing.

    Digests are stored as ``scrypt$<salt hex>$<hash hex>`` so that each
    value carries its own salt.
    """

    SCHEME = "scrypt"

    def __init__(self, n: int = 16384, r: int = 8, p: int = 1):
        self.n = n
        self.r = r
        self.p = p

    def _generate_salt(self) -> str:
        """Generate random salt for hashing"""
        return secrets.token_hex(16)

    def _derive(self, plaintext: str, salt: str) -> str:
        return hashlib.scrypt(
            plaintext.encode(),
            salt=salt.encode(),
            n=self.n, r=self.r, p=self.p
        ).hex()

    def hash(self, plaintext: str) -> str:
        salt = self._generate_salt()
        return f"{self.SCHEME}${salt}${self._derive(plaintext, salt)}"

    def compare(self, plaintext: str, digest: str) -> bool:
        try:
            scheme, salt, expected = digest.split("$")
        except (AttributeError, ValueError):
            return False
        if scheme != self.SCHEME:
            return False
        return hmac.compare_digest(self._derive(plaintext, salt), expected)


class SessionTokenIssuer(ABC):
    """Issues opaque session tokens bound to a user"""

    @abstractmethod
    def issue(self, user_id: int, issued_at: datetime) -> str:
        pass

    @abstractmethod
    def decode(self, token: str, verify_exp: bool = True) -> Optional[Dict[str, Any]]:
        """Return the token claims, or None when the token is invalid or expired"""
        pass


class JWTSessionIssuer(SessionTokenIssuer):
    """HS256 JSON Web Tokens carrying the user id as ``sub``"""

    def __init__(self, secret: str, algorithm: str = "HS256",
                 max_age: timedelta = timedelta(days=7)):
        self.secret = secret
        self.algorithm = algorithm
        self.max_age = max_age

    def issue(self, user_id: int, issued_at: Optional[datetime] = None) -> str:
        issued_at = issued_at or datetime.now(timezone.utc)
        token_payload = {
            "sub": str(user_id),
            "iat": issued_at,
            "exp": issued_at + self.max_age,
            # Two logins in the same second still get distinct tokens
            "jti": secrets.token_hex(8),
        }
        return jwt.encode(token_payload, self.secret, algorithm=self.algorithm)

    def decode(self, token: str, verify_exp: bool = True) -> Optional[Dict[str, Any]]:
        try:
            return jwt.decode(token, self.secret, algorithms=[self.algorithm],
                              options={"verify_exp": verify_exp, "verify_iat": verify_exp})
        except jwt.ExpiredSignatureError:
            return None
        except jwt.InvalidTokenError:
            return None
