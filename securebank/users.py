"""
User Management Module

Stores signed-up users. Passwords and SSNs are hashed independently before
they reach storage; the public projection of a user never contains either.
"""

from datetime import date, datetime, timezone
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from .storage import StorageInterface, StorageRecord
from .security import SecretHasher
from .validation import SignupData


@dataclass
class User(StorageRecord):
    """Account holder identity"""
    email: str
    password: str  # scrypt digest
    first_name: str
    last_name: str
    phone_number: str
    date_of_birth: date
    ssn: str  # scrypt digest
    address: str
    city: str
    state: str
    zip_code: str

    PRIVATE_FIELDS = ("password", "ssn")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def to_public_dict(self) -> Dict[str, Any]:
        """Projection safe to return to clients"""
        result = self.to_dict()
        for name in self.PRIVATE_FIELDS:
            result.pop(name, None)
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "User":
        data = dict(data)
        data['created_at'] = datetime.fromisoformat(data['created_at'])
        data['date_of_birth'] = date.fromisoformat(data['date_of_birth'])
        return cls(**data)


class UserManager:
    """Creates and looks up users"""

    def __init__(self, storage: StorageInterface, hasher: SecretHasher,
                 clock: Optional[Callable[[], datetime]] = None):
        self.storage = storage
        self.hasher = hasher
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.users_table = "users"
        self.storage.add_unique_constraint(self.users_table, "email")

    def create_user(self, data: SignupData) -> User:
        """
        Persist a validated signup.

        Raises:
            UniqueConstraintError: If the email is already registered
        """
        user = User(
            id=self.storage.next_id(self.users_table),
            created_at=self.clock(),
            email=data.email,
            password=self.hasher.hash(data.password),
            first_name=data.first_name,
            last_name=data.last_name,
            phone_number=data.phone_number,
            date_of_birth=data.date_of_birth,
            ssn=self.hasher.hash(data.ssn),
            address=data.address,
            city=data.city,
            state=data.state,
            zip_code=data.zip_code,
        )
        self.storage.save(self.users_table, user.id, user.to_dict())
        return user

    def get_user(self, user_id: int) -> Optional[User]:
        """Get user by ID"""
        user_dict = self.storage.load(self.users_table, user_id)
        if user_dict:
            return User.from_dict(user_dict)
        return None

    def get_user_by_email(self, email: str) -> Optional[User]:
        """Get user by normalized email"""
        users = self.storage.find(self.users_table, {"email": email})
        if users:
            return User.from_dict(users[0])
        return None

    def verify_password(self, user: User, password: str) -> bool:
        return self.hasher.compare(password, user.password)
