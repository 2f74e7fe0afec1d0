"""
Tests for account endpoints.

These tests verify:
  - Account creation with types, currencies and initial balances
  - The running balance starts at the initial balance and is verifiable
  - Editing initial_balance shifts the running balance by the difference
  - Only credit cards carry a credit limit
  - Archiving hides an account from the default listing
  - Admin read-only endpoints
"""

from decimal import Decimal


class TestAccountCreation:
    """Tests for POST /accounts."""

    async def test_create_checking_account(self, authenticated_client):
        response = await authenticated_client.post(
            "/accounts",
            json={"name": "Main", "type": "checking", "bank_name": "First Bank"},
        )
        assert response.status_code == 201
        data = response.json()
        assert data["name"] == "Main"
        assert data["type"] == "checking"
        assert data["currency"] == "USD"
        assert data["bank_name"] == "First Bank"
        assert Decimal(data["current_balance"]) == Decimal("0")
        assert data["is_archived"] is False

    async def test_initial_balance_seeds_running_balance(self, authenticated_client, balance):
        response = await authenticated_client.post(
            "/accounts",
            json={"name": "Wallet", "type": "cash", "initial_balance": "250.75"},
        )
        account_id = response.json()["id"]
        assert await balance(account_id) == Decimal("250.75")

    async def test_credit_card_with_limit(self, authenticated_client):
        response = await authenticated_client.post(
            "/accounts",
            json={"name": "Visa", "type": "credit_card", "credit_limit": "5000.00"},
        )
        assert response.status_code == 201
        assert Decimal(response.json()["credit_limit"]) == Decimal("5000.00")

    async def test_credit_limit_rejected_on_non_card(self, authenticated_client):
        response = await authenticated_client.post(
            "/accounts",
            json={"name": "Main", "type": "checking", "credit_limit": "100.00"},
        )
        assert response.status_code == 422
        assert response.json()["error_type"] == "validation_error"

    async def test_create_invalid_account_type(self, authenticated_client):
        response = await authenticated_client.post(
            "/accounts",
            json={"name": "Odd", "type": "brokerage"},
        )
        assert response.status_code == 422

    async def test_currency_is_uppercased(self, authenticated_client):
        response = await authenticated_client.post(
            "/accounts",
            json={"name": "Euro", "currency": "eur"},
        )
        assert response.json()["currency"] == "EUR"


class TestAccountRetrieval:
    """Tests for listing, reading and archiving accounts."""

    async def test_list_accounts_empty(self, authenticated_client):
        response = await authenticated_client.get("/accounts")
        assert response.status_code == 200
        assert response.json() == []

    async def test_get_account_by_id(self, authenticated_client, checking_account):
        response = await authenticated_client.get(f"/accounts/{checking_account}")
        assert response.status_code == 200
        assert response.json()["id"] == checking_account

    async def test_get_nonexistent_account(self, authenticated_client):
        response = await authenticated_client.get(
            "/accounts/00000000-0000-0000-0000-000000000000"
        )
        assert response.status_code == 404
        assert response.json()["error_type"] == "not_found"

    async def test_archive_hides_account(self, authenticated_client, checking_account):
        response = await authenticated_client.delete(f"/accounts/{checking_account}")
        assert response.status_code == 200
        assert response.json()["is_archived"] is True

        listed = await authenticated_client.get("/accounts")
        assert listed.json() == []

        with_archived = await authenticated_client.get(
            "/accounts", params={"include_archived": True}
        )
        assert [a["id"] for a in with_archived.json()] == [checking_account]


class TestAccountUpdate:
    """Tests for PATCH /accounts/{id}."""

    async def test_rename_only_changes_name(self, authenticated_client, checking_account, balance):
        response = await authenticated_client.patch(
            f"/accounts/{checking_account}", json={"name": "Everyday"}
        )
        assert response.status_code == 200
        assert response.json()["name"] == "Everyday"
        assert await balance(checking_account) == Decimal("1000000.00")

    async def test_initial_balance_edit_shifts_running_balance(
        self, authenticated_client, project_url, checking_account, balance
    ):
        """The running balance moves by exactly the initial-balance difference."""
        await authenticated_client.post(
            f"{project_url}/transactions",
            json={
                "type": "expense",
                "amount": "100.00",
                "date": "2026-01-10",
                "description": "Groceries",
                "account_id": checking_account,
                "is_paid": True,
            },
        )
        assert await balance(checking_account) == Decimal("999900.00")

        response = await authenticated_client.patch(
            f"/accounts/{checking_account}", json={"initial_balance": "500.00"}
        )
        assert response.status_code == 200
        assert await balance(checking_account) == Decimal("400.00")


class TestAdminReadOnly:
    """Admin endpoints list and audit every account."""

    async def test_admin_can_list_all_accounts(self, client, admin_client):
        member = await client.post(
            "/auth/signup",
            json={"email": "member@example.com", "password": "MemberPass99!"},
        )
        member_headers = {"Authorization": f"Bearer {member.json()['token']}"}
        await client.post("/accounts", json={"name": "Member's"}, headers=member_headers)

        response = await admin_client.get("/admin/accounts")
        assert response.status_code == 200
        assert [a["name"] for a in response.json()] == ["Member's"]

    async def test_admin_can_view_any_balance(self, client, admin_client):
        member = await client.post(
            "/auth/signup",
            json={"email": "member@example.com", "password": "MemberPass99!"},
        )
        member_headers = {"Authorization": f"Bearer {member.json()['token']}"}
        account = await client.post(
            "/accounts",
            json={"name": "Savings", "type": "savings", "initial_balance": "42.00"},
            headers=member_headers,
        )

        response = await admin_client.get(f"/admin/accounts/{account.json()['id']}/balance")
        assert response.status_code == 200
        assert Decimal(response.json()["current_balance"]) == Decimal("42.00")
        assert response.json()["match"] is True

    async def test_member_cannot_use_admin_endpoints(self, authenticated_client):
        response = await authenticated_client.get("/admin/accounts")
        assert response.status_code == 403

    async def test_unauthenticated_cannot_use_admin_endpoints(self, client):
        response = await client.get("/admin/accounts")
        assert response.status_code == 401
