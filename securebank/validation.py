"""
Validation Schema Layer

Field validators for identity data (signup) and funding instruments. Each
field is an explicit ordered list of ``Rule(predicate, message)`` pairs run
against a normalized value. Password rules report every violation at once;
every other field stops at its first failing rule.

Message texts are part of the public contract and are asserted verbatim by
callers and tests.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Dict, Generic, List, Mapping, Optional, Sequence, TypeVar
import re

from .cards import digits_only, is_luhn_valid, MIN_CARD_DIGITS, MAX_CARD_DIGITS
from .errors import ValidationError
from .money import parse_amount, decimal_places, CURRENCY_PRECISION, MAX_AMOUNT, format_amount


T = TypeVar("T")

# Email
INVALID_EMAIL = "Invalid email address"
EMAIL_DOT_CON = "Email domain looks incorrect. Did you mean '.com'?"

# Password
PASSWORD_REQUIRED = "Password is required"
PASSWORD_TOO_SHORT = "Password must be at least 8 characters long"
PASSWORD_NO_UPPERCASE = "Password must contain at least one uppercase letter"
PASSWORD_NO_LOWERCASE = "Password must contain at least one lowercase letter"
PASSWORD_NO_NUMBER = "Password must contain at least one number"
PASSWORD_NO_SPECIAL = "Password must contain at least one special character"
PASSWORD_TOO_COMMON = "Password is too common"

# Date of birth
INVALID_DATE = "Invalid date"
DOB_IN_FUTURE = "Date of birth cannot be in the future"

# Identity fields
INVALID_PHONE = "Phone number must follow NXX-NXX-XXXX format"
INVALID_SSN = "SSN must be 9 digits"
INVALID_STATE_FORMAT = "Invalid state code"
UNKNOWN_STATE = "Enter a valid 2-letter state code"
INVALID_ZIP = "ZIP code must be 5 digits"

# Funding
INVALID_FUNDING_TYPE = "Funding type must be 'card' or 'bank'"
ACCOUNT_NUMBER_REQUIRED = "Account number is required"
CARD_WRONG_LENGTH = "Card number is not the right amount of digits."
CARD_INVALID = "Invalid card number"
ROUTING_REQUIRED = "Routing number is required for bank transfers"
ROUTING_WRONG_LENGTH = "Routing number must be 9 digits"

# Amount
AMOUNT_NOT_A_NUMBER = "Amount must be a valid number"
AMOUNT_NOT_POSITIVE = "Amount must be greater than $0.00"
AMOUNT_TOO_PRECISE = "Amount cannot have more than 2 decimal places"
AMOUNT_TOO_LARGE = f"Amount cannot exceed {format_amount(MAX_AMOUNT)}"

MIN_PASSWORD_LENGTH = 8
DEFAULT_MINIMUM_AGE = 18

COMMON_PASSWORDS = frozenset({
    "password1!",
    "password123!",
    "qwerty123!",
    "welcome123!",
    "admin123!",
})

US_STATE_CODES = frozenset({
    "AL", "AK", "AZ", "AR", "CA", "CO", "CT", "DE", "FL", "GA",
    "HI", "ID", "IL", "IN", "IA", "KS", "KY", "LA", "ME", "MD",
    "MA", "MI", "MN", "MS", "MO", "MT", "NE", "NV", "NH", "NJ",
    "NM", "NY", "NC", "ND", "OH", "OK", "OR", "PA", "RI", "SC",
    "SD", "TN", "TX", "UT", "VT", "VA", "WA", "WV", "WI", "WY",
})

_EMAIL_PATTERN = re.compile(
    r'^(?!\.)(?!.*\.\.)[a-z0-9._%+-]+(?<!\.)'
    r'@[a-z0-9](?:[a-z0-9-]*[a-z0-9])?'
    r'(?:\.[a-z0-9](?:[a-z0-9-]*[a-z0-9])?)*'
    r'\.[a-z]{2,}$'
)
_PHONE_PATTERN = re.compile(r'^[2-9][0-9]{2}[2-9][0-9]{2}[0-9]{4}$')
_PHONE_FORMATTING = re.compile(r'[\s().-]')
_SSN_PATTERN = re.compile(r'^[0-9]{3}-?[0-9]{2}-?[0-9]{4}$')
_STATE_PATTERN = re.compile(r'^[A-Z]{2}$')
_ZIP_PATTERN = re.compile(r'^[0-9]{5}$')
_ROUTING_PATTERN = re.compile(r'^[0-9]{9}$')
_DATE_PART = re.compile(r'^[0-9]+$')


@dataclass(frozen=True)
class ValidationIssue:
    """A single failed rule for a named field"""
    field: str
    message: str

    def to_dict(self) -> Dict[str, str]:
        return {"field": self.field, "message": self.message}


@dataclass
class ValidationResult(Generic[T]):
    """Outcome of a validator: a normalized value or a list of issues"""
    value: Optional[T] = None
    issues: List[ValidationIssue] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.issues

    @property
    def messages(self) -> List[str]:
        return [issue.message for issue in self.issues]

    def unwrap(self) -> T:
        """Return the value or raise ValidationError with every issue"""
        if self.issues:
            raise ValidationError(self.issues)
        return self.value

    @classmethod
    def success(cls, value: T) -> "ValidationResult[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, field_name: str, *messages: str) -> "ValidationResult[T]":
        return cls(issues=[ValidationIssue(field_name, message) for message in messages])


@dataclass(frozen=True)
class Rule:
    """Predicate returning True when the value passes, plus its failure message"""
    predicate: Callable[[Any], bool]
    message: str


def run_rules(field_name: str, value: Any, rules: Sequence[Rule],
              collect_all: bool = False) -> ValidationResult:
    """
    Evaluate rules in order against an already-normalized value.

    With ``collect_all`` every failing rule contributes an issue; otherwise
    the first failure ends evaluation.
    """
    issues = []
    for rule in rules:
        if not rule.predicate(value):
            issues.append(ValidationIssue(field_name, rule.message))
            if not collect_all:
                break

    if issues:
        return ValidationResult(issues=issues)
    return ValidationResult.success(value)


def _required_text(field_name: str, value: Any, message: str) -> ValidationResult[str]:
    text = value.strip() if isinstance(value, str) else ""
    return run_rules(field_name, text, [Rule(bool, message)])


# Identity fields

EMAIL_RULES = (
    Rule(lambda v: bool(_EMAIL_PATTERN.match(v)), INVALID_EMAIL),
    Rule(lambda v: not v.endswith(".con"), EMAIL_DOT_CON),
)

PASSWORD_RULES = (
    Rule(lambda v: len(v) >= MIN_PASSWORD_LENGTH, PASSWORD_TOO_SHORT),
    Rule(lambda v: re.search(r'[A-Z]', v) is not None, PASSWORD_NO_UPPERCASE),
    Rule(lambda v: re.search(r'[a-z]', v) is not None, PASSWORD_NO_LOWERCASE),
    Rule(lambda v: re.search(r'[0-9]', v) is not None, PASSWORD_NO_NUMBER),
    Rule(lambda v: re.search(r'[^A-Za-z0-9]', v) is not None, PASSWORD_NO_SPECIAL),
    Rule(lambda v: v.lower() not in COMMON_PASSWORDS, PASSWORD_TOO_COMMON),
)

PHONE_RULES = (
    Rule(lambda v: bool(_PHONE_PATTERN.match(v)), INVALID_PHONE),
)

SSN_RULES = (
    Rule(lambda v: bool(_SSN_PATTERN.match(v)), INVALID_SSN),
)

STATE_RULES = (
    Rule(lambda v: bool(_STATE_PATTERN.match(v)), INVALID_STATE_FORMAT),
    Rule(lambda v: v in US_STATE_CODES, UNKNOWN_STATE),
)

ZIP_RULES = (
    Rule(lambda v: bool(_ZIP_PATTERN.match(v)), INVALID_ZIP),
)


def validate_email(value: Any) -> ValidationResult[str]:
    """Trim, lowercase, then check shape and the '.con' typo"""
    if not isinstance(value, str):
        return ValidationResult.failure("email", INVALID_EMAIL)
    return run_rules("email", value.strip().lower(), EMAIL_RULES)


def validate_password(value: Any) -> ValidationResult[str]:
    """Report every violated password rule together"""
    if not isinstance(value, str) or not value:
        return ValidationResult.failure("password", PASSWORD_REQUIRED)
    return run_rules("password", value, PASSWORD_RULES, collect_all=True)


def _parse_iso_date(value: str) -> Optional[date]:
    parts = value.strip().split("-")
    if len(parts) != 3 or not all(_DATE_PART.match(part) for part in parts):
        return None

    year, month, day = (int(part) for part in parts)
    if not year or not month or not day:
        return None

    try:
        parsed = date(year, month, day)
    except ValueError:
        return None

    if (parsed.year, parsed.month, parsed.day) != (year, month, day):
        return None
    return parsed


def age_on(birth_date: date, today: date) -> int:
    """Whole years elapsed, minus one if this year's birthday is still ahead"""
    age = today.year - birth_date.year
    if (today.month, today.day) < (birth_date.month, birth_date.day):
        age -= 1
    return age


def validate_date_of_birth(value: Any, today: Optional[date] = None,
                           minimum_age: int = DEFAULT_MINIMUM_AGE) -> ValidationResult[date]:
    """
    Validate a YYYY-MM-DD date of birth.

    Args:
        value: ISO date string (a ``date`` instance is also accepted)
        today: Reference date for the future and age checks
        minimum_age: Minimum age in whole years

    Returns:
        ValidationResult carrying the parsed date
    """
    if today is None:
        today = date.today()
    if isinstance(today, datetime):
        today = today.date()

    if isinstance(value, datetime):
        value = value.date()
    if isinstance(value, date):
        value = value.isoformat()

    birth_date = _parse_iso_date(value) if isinstance(value, str) else None
    if birth_date is None:
        return ValidationResult.failure("date_of_birth", INVALID_DATE)

    rules = (
        Rule(lambda d: d <= today, DOB_IN_FUTURE),
        Rule(lambda d: age_on(d, today) >= minimum_age,
             f"You must be at least {minimum_age} years old"),
    )
    return run_rules("date_of_birth", birth_date, rules)


def validate_phone(value: Any) -> ValidationResult[str]:
    """NANP ten-digit number; spaces, dots, dashes and parentheses are ignored"""
    text = _PHONE_FORMATTING.sub('', value) if isinstance(value, str) else ""
    return run_rules("phone_number", text, PHONE_RULES)


def validate_ssn(value: Any) -> ValidationResult[str]:
    """Nine digits, optionally written as 123-45-6789; normalized to digits"""
    text = value.strip() if isinstance(value, str) else ""
    result = run_rules("ssn", text, SSN_RULES)
    if result.ok:
        result.value = text.replace("-", "")
    return result


def validate_state(value: Any) -> ValidationResult[str]:
    text = value.strip().upper() if isinstance(value, str) else ""
    return run_rules("state", text, STATE_RULES)


def validate_zip_code(value: Any) -> ValidationResult[str]:
    text = value.strip() if isinstance(value, str) else ""
    return run_rules("zip_code", text, ZIP_RULES)


@dataclass(frozen=True)
class SignupData:
    """Normalized signup payload; password and ssn are still plaintext here"""
    email: str
    password: str
    first_name: str
    last_name: str
    phone_number: str
    date_of_birth: date
    ssn: str
    address: str
    city: str
    state: str
    zip_code: str


@dataclass(frozen=True)
class LoginData:
    email: str
    password: str


def validate_signup(payload: Mapping[str, Any], today: Optional[date] = None,
                    minimum_age: int = DEFAULT_MINIMUM_AGE) -> ValidationResult[SignupData]:
    """Validate every identity field and report all failing fields together"""
    results = {
        "email": validate_email(payload.get("email")),
        "password": validate_password(payload.get("password")),
        "first_name": _required_text("first_name", payload.get("first_name"), "First name is required"),
        "last_name": _required_text("last_name", payload.get("last_name"), "Last name is required"),
        "phone_number": validate_phone(payload.get("phone_number")),
        "date_of_birth": validate_date_of_birth(payload.get("date_of_birth"), today, minimum_age),
        "ssn": validate_ssn(payload.get("ssn")),
        "address": _required_text("address", payload.get("address"), "Address is required"),
        "city": _required_text("city", payload.get("city"), "City is required"),
        "state": validate_state(payload.get("state")),
        "zip_code": validate_zip_code(payload.get("zip_code")),
    }

    issues = [issue for result in results.values() for issue in result.issues]
    if issues:
        return ValidationResult(issues=issues)

    return ValidationResult.success(
        SignupData(**{name: result.value for name, result in results.items()})
    )


def validate_login(payload: Mapping[str, Any]) -> ValidationResult[LoginData]:
    """Normalize the login email; password strength is not re-checked"""
    email = validate_email(payload.get("email"))
    password = payload.get("password")

    issues = list(email.issues)
    if not isinstance(password, str) or not password:
        issues.append(ValidationIssue("password", PASSWORD_REQUIRED))

    if issues:
        return ValidationResult(issues=issues)
    return ValidationResult.success(LoginData(email=email.value, password=password))


# Funding instruments

class FundingType(Enum):
    """Simulated funding instrument kinds"""
    CARD = "card"
    BANK = "bank"


@dataclass(frozen=True)
class FundingSource:
    """
    Validated, transient funding instrument.

    Never persisted; only ``type`` is recorded in the transaction description.
    """
    type: FundingType
    account_number: str
    routing_number: Optional[str] = None


CARD_NUMBER_RULES = (
    Rule(lambda v: MIN_CARD_DIGITS <= len(v) <= MAX_CARD_DIGITS, CARD_WRONG_LENGTH),
    Rule(is_luhn_valid, CARD_INVALID),
)

ROUTING_NUMBER_RULES = (
    Rule(bool, ROUTING_REQUIRED),
    Rule(lambda v: bool(_ROUTING_PATTERN.match(digits_only(v))), ROUTING_WRONG_LENGTH),
)


def validate_card_number(value: Any, field_name: str = "funding_source.account_number") -> ValidationResult[str]:
    """
    Length and Luhn only. Network classification is deliberately not
    enforced: a Luhn-valid number from an unlisted range is accepted.
    """
    digits = digits_only(value) if isinstance(value, str) else ""
    return run_rules(field_name, digits, CARD_NUMBER_RULES)


def validate_routing_number(value: Any,
                            field_name: str = "funding_source.routing_number") -> ValidationResult[str]:
    text = value.strip() if isinstance(value, str) else ""
    result = run_rules(field_name, text, ROUTING_NUMBER_RULES)
    if result.ok:
        result.value = digits_only(text)
    return result


def _get(source: Any, name: str) -> Any:
    if isinstance(source, Mapping):
        return source.get(name)
    return getattr(source, name, None)


def validate_funding_source(source: Any) -> ValidationResult[FundingSource]:
    """
    Validate a funding instrument against the rules for its declared type.

    Accepts a mapping or an object with ``type``, ``account_number`` and
    ``routing_number`` attributes.
    """
    raw_type = _get(source, "type")
    if isinstance(raw_type, FundingType):
        raw_type = raw_type.value

    try:
        funding_type = FundingType(raw_type)
    except ValueError:
        return ValidationResult.failure("funding_source.type", INVALID_FUNDING_TYPE)

    account_number = _get(source, "account_number")

    if funding_type == FundingType.CARD:
        card = validate_card_number(account_number)
        if not card.ok:
            return ValidationResult(issues=card.issues)
        return ValidationResult.success(FundingSource(funding_type, card.value))

    account = _required_text("funding_source.account_number", account_number, ACCOUNT_NUMBER_REQUIRED)
    routing = validate_routing_number(_get(source, "routing_number"))
    issues = account.issues + routing.issues
    if issues:
        return ValidationResult(issues=issues)

    return ValidationResult.success(
        FundingSource(funding_type, digits_only(account.value) or account.value, routing.value)
    )


def validate_amount(value: Any) -> ValidationResult[Decimal]:
    """Positive and finite, capped at MAX_AMOUNT, with at most two decimal places"""
    try:
        amount = parse_amount(value)
    except ValueError:
        return ValidationResult.failure("amount", AMOUNT_NOT_A_NUMBER)

    rules = (
        Rule(lambda a: a.is_finite(), AMOUNT_NOT_A_NUMBER),
        Rule(lambda a: a > 0, AMOUNT_NOT_POSITIVE),
        Rule(lambda a: a <= MAX_AMOUNT, AMOUNT_TOO_LARGE),
        Rule(lambda a: decimal_places(a) <= CURRENCY_PRECISION, AMOUNT_TOO_PRECISE),
    )
    return run_rules("amount", amount, rules)
