"""
Card Checksum and Network Classification Module

Luhn checksum validation and BIN-range network detection for payment card
numbers. The two checks are independent: a Luhn-valid number may belong to
no recognized network, and network detection does not imply a valid checksum.
"""

from enum import Enum
import re


MIN_CARD_DIGITS = 13
MAX_CARD_DIGITS = 19

_NON_DIGITS = re.compile(r'[^0-9]')
_SPACES_AND_HYPHENS = re.compile(r'[\s-]')
_CARD_NUMBER = re.compile(r'[0-9]{13,19}')


class CardNetwork(Enum):
    """Card networks recognized by BIN range"""
    VISA = "visa"
    MASTERCARD = "mastercard"
    AMEX = "amex"
    DISCOVER = "discover"
    NONE = "none"


def digits_only(value: str) -> str:
    """Return only the digit characters of a string"""
    return _NON_DIGITS.sub('', value)


def is_luhn_valid(digit_string: str) -> bool:
    """
    Validate a card number with the Luhn (mod 10) checksum.

    Non-digit characters are stripped first. Numbers outside 13..19 digits
    are rejected with False rather than an exception.
    """
    digits = digits_only(digit_string)
    if not (MIN_CARD_DIGITS <= len(digits) <= MAX_CARD_DIGITS):
        return False

    total = 0
    for position, char in enumerate(reversed(digits)):
        digit = int(char)
        if position % 2 == 1:
            digit *= 2
            if digit > 9:
                digit -= 9
        total += digit

    return total % 10 == 0


def _is_visa(number: str) -> bool:
    return number.startswith('4') and len(number) in (13, 16, 19)


def _is_mastercard(number: str) -> bool:
    if len(number) != 16:
        return False
    if 51 <= int(number[:2]) <= 55:
        return True
    return 2221 <= int(number[:4]) <= 2720


def _is_amex(number: str) -> bool:
    return number[:2] in ('34', '37') and len(number) == 15


def _is_discover(number: str) -> bool:
    if len(number) != 16:
        return False
    return (
        number.startswith('6011')
        or number.startswith('65')
        or 644 <= int(number[:3]) <= 649
    )


_NETWORK_RULES = (
    (CardNetwork.VISA, _is_visa),
    (CardNetwork.MASTERCARD, _is_mastercard),
    (CardNetwork.AMEX, _is_amex),
    (CardNetwork.DISCOVER, _is_discover),
)


def detect_card_network(raw: str) -> CardNetwork:
    """
    Classify a card number by its leading digits and length.

    Only whitespace and hyphens are stripped; any other character makes the
    number unclassifiable. Unlisted ranges (JCB, UnionPay, ...) are NONE.
    """
    number = _SPACES_AND_HYPHENS.sub('', raw)
    if not _CARD_NUMBER.fullmatch(number):
        return CardNetwork.NONE

    for network, matches in _NETWORK_RULES:
        if matches(number):
            return network

    return CardNetwork.NONE


def mask_card_number(raw: str) -> str:
    """Mask all but the last four digits, for log lines and receipts"""
    digits = digits_only(raw)
    if len(digits) <= 4:
        return "*" * len(digits)
    return f"**** **** **** {digits[-4:]}"
