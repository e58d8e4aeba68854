#!/usr/bin/env python3
"""
Example: Signing up, opening an account and funding it

Runs the whole flow against in-memory storage and prints the resulting
history, showing that balances accumulate exactly.
"""

import os
import sys

# Add the securebank package to the path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from securebank.api.deps import BankingSystem
from securebank.config import SecureBankConfig
from securebank.cookies import CookieJar
from securebank.money import format_amount
from securebank.storage import InMemoryStorage


def main():
    print("SecureBank - funding walkthrough")
    print("=" * 40)

    settings = SecureBankConfig(use_in_memory_storage=True)
    system = BankingSystem(storage=InMemoryStorage(), settings=settings)

    cookies = CookieJar()
    signup = system.auth_service.signup({
        "email": "jane@example.com",
        "password": "Str0ng!Pass",
        "first_name": "Jane",
        "last_name": "Doe",
        "phone_number": "415-555-2671",
        "date_of_birth": "1990-05-15",
        "ssn": "123-45-6789",
        "address": "1 Market St",
        "city": "San Francisco",
        "state": "CA",
        "zip_code": "94105",
    }, cookies)
    user = system.auth_service.get_session_user(cookies.get_cookie("session"))
    print(f"\nSigned up {signup.user['email']} (user {user.id})")
    print(f"Cookie: {cookies.headers[-1]}")

    account = system.account_manager.create_account(user.id, "checking")
    print(f"Opened checking account {account.account_number}")

    card = {"type": "card", "account_number": "4111 1111 1111 1111"}
    for amount in [10, 2.5, 100.01, 7.49]:
        result = system.funding_engine.fund_account(account.id, amount, card, user.id)
        print(f"  deposit {format_amount(result.transaction.amount):>9} -> balance {format_amount(result.new_balance)}")

    print("\nHistory (most recent first):")
    for txn in system.funding_engine.get_transactions(account.id, user.id):
        print(f"  #{txn.id} {txn.account_type.value} {txn.description}: {format_amount(txn.amount)}")

    report = system.funding_engine.reconcile_account(account.id)
    print(f"\nLedger balance {format_amount(report.ledger_balance)}, in balance: {report.in_balance}")

    print(system.auth_service.logout(cookies).message)


if __name__ == "__main__":
    main()
