"""
Test suite for validation module

Tests field rules, evaluation modes and the exact client-facing messages.
"""

import pytest
from datetime import date
from decimal import Decimal

from securebank.errors import ValidationError
from securebank.validation import (
    FundingSource, FundingType, Rule, SignupData, ValidationIssue, run_rules,
    validate_amount, validate_card_number, validate_date_of_birth, validate_email,
    validate_funding_source, validate_login, validate_password, validate_phone,
    validate_routing_number, validate_signup, validate_ssn, validate_state,
    validate_zip_code
)


TODAY = date(2025, 11, 16)

VALID_SIGNUP = {
    "email": "Jane.Doe@Example.com",
    "password": "Str0ng!Pass",
    "first_name": "Jane",
    "last_name": "Doe",
    "phone_number": "(415) 555-2671",
    "date_of_birth": "1990-05-15",
    "ssn": "123-45-6789",
    "address": "1 Market St",
    "city": "San Francisco",
    "state": "ca",
    "zip_code": "94105",
}


class TestRuleEngine:
    """Test ordered rule evaluation"""

    def test_fail_fast_reports_first_failure(self):
        rules = [Rule(lambda v: v > 0, "positive"), Rule(lambda v: v > 10, "big")]
        result = run_rules("n", -1, rules)
        assert not result.ok
        assert result.messages == ["positive"]

    def test_collect_all_reports_every_failure(self):
        rules = [Rule(lambda v: v > 0, "positive"), Rule(lambda v: v > 10, "big")]
        result = run_rules("n", -1, rules, collect_all=True)
        assert result.messages == ["positive", "big"]
        assert result.issues[0] == ValidationIssue("n", "positive")

    def test_unwrap_raises_validation_error(self):
        result = run_rules("n", -1, [Rule(lambda v: v > 0, "positive")])
        with pytest.raises(ValidationError) as exc_info:
            result.unwrap()
        assert exc_info.value.messages == ["positive"]
        assert exc_info.value.code == "VALIDATION"


class TestEmail:

    def test_normalizes_case_and_whitespace(self):
        """Test email is trimmed and lowercased"""
        result = validate_email("  Jane.Doe@Example.COM ")
        assert result.ok
        assert result.value == "jane.doe@example.com"

    def test_dot_con_typo(self):
        """Test the .con typo gets its own message"""
        result = validate_email("jane@example.con")
        assert result.messages == ["Email domain looks incorrect. Did you mean '.com'?"]

    @pytest.mark.parametrize("value", [
        "plainstring", "user@example", "@example.com", "user@.com",
        "user@@example.com", "a..b@example.com", "", None,
    ])
    def test_invalid_shapes(self, value):
        assert validate_email(value).messages == ["Invalid email address"]


class TestPassword:
    """Test password rules report every violation"""

    def test_weakpass_reports_all_violations(self):
        """Test 'weakpass' fails uppercase, number and special character together"""
        result = validate_password("weakpass")
        assert result.messages == [
            "Password must contain at least one uppercase letter",
            "Password must contain at least one number",
            "Password must contain at least one special character",
        ]

    def test_short_password(self):
        result = validate_password("short")
        assert "Password must be at least 8 characters long" in result.messages
        assert len(result.messages) == 4

    def test_common_password(self):
        """Test denylisted passwords are rejected case-insensitively"""
        result = validate_password("Password123!")
        assert result.messages == ["Password is too common"]

    def test_strong_password(self):
        assert validate_password("Str0ng!Pass").ok

    def test_missing_password(self):
        assert validate_password("").messages == ["Password is required"]


class TestDateOfBirth:
    """Test date-of-birth parsing and the age gate, with today fixed at 2025-11-16"""

    def test_exactly_eighteen_passes(self):
        result = validate_date_of_birth("2007-11-16", today=TODAY)
        assert result.ok
        assert result.value == date(2007, 11, 16)

    def test_one_day_short_fails(self):
        result = validate_date_of_birth("2007-11-17", today=TODAY)
        assert not result.ok
        assert "18" in result.messages[0]

    def test_future_date(self):
        result = validate_date_of_birth("2027-01-01", today=TODAY)
        assert "future" in result.messages[0]

    @pytest.mark.parametrize("value", [
        "2025-13-40", "2023-02-29", "2000-00-10", "banana", "2000/01/01", "", None,
    ])
    def test_structurally_invalid(self, value):
        assert validate_date_of_birth(value, today=TODAY).messages == ["Invalid date"]

    def test_leap_day_birthday(self):
        """Test a real leap day parses and is age-checked"""
        assert validate_date_of_birth("2000-02-29", today=TODAY).ok

    def test_configurable_minimum_age(self):
        result = validate_date_of_birth("2005-01-01", today=TODAY, minimum_age=21)
        assert result.messages == ["You must be at least 21 years old"]


class TestIdentityFields:

    def test_phone(self):
        """Test NANP numbers with formatting are accepted and normalized"""
        assert validate_phone("(415) 555-2671").value == "4155552671"
        assert validate_phone("415.555.2671").ok
        for bad in ["1155552671", "415-155-2671", "415555267", "", None]:
            assert validate_phone(bad).messages == ["Phone number must follow NXX-NXX-XXXX format"]

    def test_ssn(self):
        assert validate_ssn("123456789").value == "123456789"
        assert validate_ssn("123-45-6789").value == "123456789"
        for bad in ["12345678", "12345678a", "1234567890", None]:
            assert validate_ssn(bad).messages == ["SSN must be 9 digits"]

    def test_state(self):
        assert validate_state(" ca ").value == "CA"
        assert validate_state("XX").messages == ["Enter a valid 2-letter state code"]
        assert validate_state("C1").messages == ["Invalid state code"]
        assert validate_state("CAL").messages == ["Invalid state code"]

    def test_zip_code(self):
        assert validate_zip_code("94105").ok
        for bad in ["9410", "94105-1234", "abcde"]:
            assert validate_zip_code(bad).messages == ["ZIP code must be 5 digits"]


class TestSignup:
    """Test the composite signup validator"""

    def test_valid_payload_is_normalized(self):
        result = validate_signup(VALID_SIGNUP, today=TODAY)
        assert result.ok
        data = result.value
        assert isinstance(data, SignupData)
        assert data.email == "jane.doe@example.com"
        assert data.phone_number == "4155552671"
        assert data.ssn == "123456789"
        assert data.state == "CA"
        assert data.date_of_birth == date(1990, 5, 15)

    def test_all_failing_fields_are_reported(self):
        """Test issues from several fields come back together"""
        payload = dict(VALID_SIGNUP, password="weakpass", zip_code="123", first_name="  ")
        result = validate_signup(payload, today=TODAY)
        fields = [issue.field for issue in result.issues]
        assert fields.count("password") == 3
        assert "zip_code" in fields
        assert "first_name" in fields
        assert "First name is required" in result.messages

    def test_missing_fields(self):
        result = validate_signup({}, today=TODAY)
        assert not result.ok
        assert "Invalid email address" in result.messages
        assert "City is required" in result.messages

    def test_login_normalizes_email(self):
        result = validate_login({"email": " JANE@example.com", "password": "x"})
        assert result.value.email == "jane@example.com"
        assert validate_login({"email": "jane@example.com"}).messages == ["Password is required"]


class TestFunding:
    """Test funding instrument and amount rules"""

    def test_card_length_and_checksum(self):
        assert validate_card_number("411111111111").messages == [
            "Card number is not the right amount of digits."
        ]
        assert validate_card_number("4111111111111112").messages == ["Invalid card number"]
        assert validate_card_number("4111 1111 1111 1111").value == "4111111111111111"

    def test_unclassified_network_is_accepted(self):
        """Test a Luhn-valid JCB number passes even though no network is detected"""
        result = validate_funding_source({"type": "card", "account_number": "3530111333300000"})
        assert result.ok
        assert result.value == FundingSource(FundingType.CARD, "3530111333300000")

    def test_bank_requires_routing_number(self):
        result = validate_funding_source({"type": "bank", "account_number": "000123456789"})
        assert result.messages == ["Routing number is required for bank transfers"]

        result = validate_funding_source({"type": "bank", "account_number": "000123456789",
                                          "routing_number": "12345"})
        assert result.messages == ["Routing number must be 9 digits"]

    def test_bank_source(self):
        result = validate_funding_source({"type": "bank", "account_number": "000123456789",
                                          "routing_number": "021000021"})
        assert result.ok
        assert result.value.type == FundingType.BANK
        assert result.value.routing_number == "021000021"

    def test_routing_number_strips_formatting(self):
        assert validate_routing_number("021-000-021").value == "021000021"

    def test_unknown_funding_type(self):
        result = validate_funding_source({"type": "paypal", "account_number": "x"})
        assert result.messages == ["Funding type must be 'card' or 'bank'"]
        assert result.issues[0].field == "funding_source.type"

    def test_amounts(self):
        """Test amount must be positive with at most two decimals"""
        assert validate_amount(10).value == Decimal('10')
        assert validate_amount(2.5).value == Decimal('2.5')
        assert validate_amount("100.01").ok
        assert validate_amount(0).messages == ["Amount must be greater than $0.00"]
        assert validate_amount("-5").messages == ["Amount must be greater than $0.00"]
        assert validate_amount("10.001").messages == ["Amount cannot have more than 2 decimal places"]
        for bad in ["abc", "NaN", "Infinity", None, True]:
            assert validate_amount(bad).messages == ["Amount must be a valid number"]

    def test_amount_ceiling(self):
        """Test amounts beyond the per-deposit ceiling are rejected, not quantized"""
        assert validate_amount("1000000.00").ok
        for huge in ["1000000.01", "1e30", 1e30, "99999999999999999999999999999"]:
            assert validate_amount(huge).messages == ["Amount cannot exceed $1,000,000.00"]
