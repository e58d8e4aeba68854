"""
Integration tests for the SecureBank API
Tests end-to-end workflows using FastAPI TestClient
"""

import pytest
from fastapi.testclient import TestClient

from securebank.api import create_app
from securebank.api.deps import BankingSystem
from securebank.accounts import AccountStatus
from securebank.config import SecureBankConfig
from securebank.storage import InMemoryStorage


SIGNUP = {
    "email": "jane@example.com",
    "password": "Str0ng!Pass",
    "first_name": "Jane",
    "last_name": "Doe",
    "phone_number": "415-555-2671",
    "date_of_birth": "1990-05-15",
    "ssn": "123456789",
    "address": "1 Market St",
    "city": "San Francisco",
    "state": "CA",
    "zip_code": "94105",
}

CARD = {"type": "card", "account_number": "4111111111111111"}


@pytest.fixture
def system():
    """Banking system on in-memory storage with cheap hashing"""
    settings = SecureBankConfig(use_in_memory_storage=True, scrypt_n=1024, jwt_secret="test-secret")
    return BankingSystem(storage=InMemoryStorage(), settings=settings)


@pytest.fixture
def app(system):
    return create_app(system)


@pytest.fixture
def client(app):
    """Client already signed up as Jane"""
    client = TestClient(app)
    r = client.post("/auth/signup", json=SIGNUP)
    assert r.status_code == 201
    return client


def open_account(client, account_type="checking"):
    r = client.post("/accounts", json={"account_type": account_type})
    assert r.status_code == 201
    return r.json()


class TestHealthEndpoints:

    def test_health(self, app):
        r = TestClient(app).get("/health")
        assert r.status_code == 200
        assert r.json()["status"] == "healthy"


class TestAuthFlow:
    """End-to-end signup, login and logout"""

    def test_signup_sets_session_cookie(self, app):
        r = TestClient(app).post("/auth/signup", json=SIGNUP)
        assert r.status_code == 201
        data = r.json()
        assert data["user"]["email"] == "jane@example.com"
        assert "password" not in data["user"]
        assert "ssn" not in data["user"]

        cookie = r.headers["set-cookie"]
        assert cookie.startswith(f"session={data['token']}")
        assert "HttpOnly" in cookie
        assert "SameSite=Strict" in cookie
        assert "Max-Age=604800" in cookie

    def test_signup_validation_error(self, app):
        """Test field issues come back with the exact messages"""
        r = TestClient(app).post("/auth/signup", json=dict(SIGNUP, password="weakpass"))
        assert r.status_code == 400
        data = r.json()
        assert data["error"] == "VALIDATION"
        assert [i["message"] for i in data["issues"] if i["field"] == "password"] == [
            "Password must contain at least one uppercase letter",
            "Password must contain at least one number",
            "Password must contain at least one special character",
        ]

    def test_duplicate_signup(self, client, app):
        r = TestClient(app).post("/auth/signup", json=SIGNUP)
        assert r.status_code == 409
        assert r.json()["message"] == "User already exists"

    def test_login(self, client, app):
        other = TestClient(app)
        r = other.post("/auth/login", json={"email": "JANE@example.com", "password": "Str0ng!Pass"})
        assert r.status_code == 200
        assert r.json()["user"]["first_name"] == "Jane"
        assert other.get("/accounts").status_code == 200

        # The login replaced the signup session
        assert client.get("/accounts").status_code == 401

    def test_login_failure(self, client, app):
        r = TestClient(app).post("/auth/login", json={"email": "jane@example.com", "password": "nope"})
        assert r.status_code == 401
        assert r.json() == {"error": "UNAUTHORIZED", "message": "Invalid credentials"}

    def test_logout(self, client):
        r = client.post("/auth/logout")
        assert r.status_code == 200
        assert r.json() == {"success": True, "message": "Logged out successfully"}
        assert "Max-Age=0" in r.headers["set-cookie"]
        assert client.get("/accounts").status_code == 401

        r = client.post("/auth/logout")
        assert r.json() == {"success": False, "message": "No active session"}
        assert "Max-Age=0" in r.headers["set-cookie"]


class TestAccountFlow:
    """End-to-end account and funding tests"""

    def test_requires_session(self, app):
        r = TestClient(app).get("/accounts")
        assert r.status_code == 401

    def test_create_and_list_accounts(self, client):
        account = open_account(client)
        assert account["balance"] == "0.00"
        assert account["status"] == "active"
        assert len(account["account_number"]) == 10

        r = client.post("/accounts", json={"account_type": "checking"})
        assert r.status_code == 409
        assert r.json()["message"] == "You already have a checking account"

        open_account(client, "savings")
        accounts = client.get("/accounts").json()["accounts"]
        assert [a["account_type"] for a in accounts] == ["checking", "savings"]

    def test_unknown_account_type(self, client):
        r = client.post("/accounts", json={"account_type": "brokerage"})
        assert r.status_code == 400
        assert r.json()["error"] == "VALIDATION"

    def test_fund_and_history(self, client):
        """Test running balances and most-recent-first history"""
        account = open_account(client)
        balances = []
        for amount in [10, 2.5, 100.01, 7.49]:
            r = client.post(f"/accounts/{account['id']}/fund",
                            json={"amount": amount, "funding_source": CARD})
            assert r.status_code == 200
            assert r.json()["transaction"]["account_type"] == "checking"
            balances.append(r.json()["new_balance"])
        assert balances == ["10.00", "12.50", "112.51", "120.00"]

        r = client.get(f"/accounts/{account['id']}/transactions")
        history = r.json()["transactions"]
        assert [t["amount"] for t in history] == ["7.49", "100.01", "2.50", "10.00"]
        assert all(t["account_type"] == "checking" for t in history)
        assert all(t["description"] == "Funding from card" for t in history)

    def test_fund_from_bank(self, client):
        account = open_account(client)
        source = {"type": "bank", "account_number": "000123456789", "routing_number": "021000021"}
        r = client.post(f"/accounts/{account['id']}/fund", json={"amount": "25.00", "funding_source": source})
        assert r.status_code == 200
        assert r.json()["transaction"]["description"] == "Funding from bank"

    def test_fund_validation(self, client):
        account = open_account(client)
        r = client.post(f"/accounts/{account['id']}/fund", json={
            "amount": 10,
            "funding_source": {"type": "card", "account_number": "4111111111111112"},
        })
        assert r.status_code == 400
        assert r.json()["issues"] == [
            {"field": "funding_source.account_number", "message": "Invalid card number"}
        ]

    def test_malformed_body(self, client):
        account = open_account(client)
        r = client.post(f"/accounts/{account['id']}/fund", json={"amount": 10})
        assert r.status_code == 400
        assert r.json()["error"] == "VALIDATION"

    def test_boolean_amount_is_rejected(self, client, system):
        """Test a JSON boolean is not coerced into a $1.00 deposit"""
        account = open_account(client)
        r = client.post(f"/accounts/{account['id']}/fund", json={"amount": True, "funding_source": CARD})
        assert r.status_code == 400
        assert r.json()["error"] == "VALIDATION"
        assert system.account_manager.get_account(account["id"]).balance == 0

    def test_oversized_amount(self, client):
        account = open_account(client)
        r = client.post(f"/accounts/{account['id']}/fund", json={"amount": "1e30", "funding_source": CARD})
        assert r.status_code == 400
        assert r.json()["issues"] == [
            {"field": "amount", "message": "Amount cannot exceed $1,000,000.00"}
        ]

    def test_other_users_account_is_not_found(self, client, app):
        account = open_account(client)

        intruder = TestClient(app)
        intruder.post("/auth/signup", json=dict(SIGNUP, email="mallory@example.com"))
        r = intruder.post(f"/accounts/{account['id']}/fund", json={"amount": 10, "funding_source": CARD})
        assert r.status_code == 404
        assert r.json()["message"] == "Account not found"

        r = intruder.post("/accounts/999/fund", json={"amount": 10, "funding_source": CARD})
        assert r.status_code == 404

        r = intruder.get(f"/accounts/{account['id']}/transactions")
        assert r.status_code == 404

    def test_inactive_account(self, client, system):
        account = open_account(client)
        system.account_manager.update_account_status(account["id"], AccountStatus.FROZEN)
        r = client.post(f"/accounts/{account['id']}/fund", json={"amount": 10, "funding_source": CARD})
        assert r.status_code == 400
        assert r.json()["message"] == "Account is not active"
