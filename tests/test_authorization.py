"""
Authorization tests — project membership and account ownership.

Every project-scoped operation requires an ACCEPTED membership. These
tests verify:
  - Non-members get 403 on project-scoped writes and detail reads
  - Summary endpoints answer non-members with zeroed data, never 403
  - A pending invitation grants nothing; accepting it grants access
  - Only the owner can invite
  - Accounts stay private to their owner, even inside a shared project
"""

from decimal import Decimal


class TestNonMemberProjectAccess:
    """User B has no membership in User A's project."""

    async def test_cannot_list_transactions(self, authenticated_client, project_url, second_user):
        response = await authenticated_client.get(
            f"{project_url}/transactions", headers=second_user["headers"]
        )
        assert response.status_code == 403
        assert response.json()["error_type"] == "authorization_error"

    async def test_cannot_create_transaction(self, authenticated_client, project_url, second_user):
        response = await authenticated_client.post(
            f"{project_url}/transactions",
            json={
                "type": "income",
                "amount": "10.00",
                "date": "2026-01-01",
                "description": "Sneaky",
            },
            headers=second_user["headers"],
        )
        assert response.status_code == 403

    async def test_cannot_view_single_transaction(
        self, authenticated_client, project_url, second_user
    ):
        created = await authenticated_client.post(
            f"{project_url}/transactions",
            json={
                "type": "income",
                "amount": "10.00",
                "date": "2026-01-01",
                "description": "Salary",
            },
        )
        response = await authenticated_client.get(
            f"{project_url}/transactions/{created.json()['id']}",
            headers=second_user["headers"],
        )
        assert response.status_code == 403

    async def test_cannot_open_billing_cycle(self, authenticated_client, project_url, second_user):
        response = await authenticated_client.post(
            f"{project_url}/billing-cycles",
            json={"name": "Hijack", "start_date": "2026-01-01", "end_date": "2026-01-31"},
            headers=second_user["headers"],
        )
        assert response.status_code == 403

    async def test_cannot_create_credit(self, authenticated_client, project_url, second_user):
        response = await authenticated_client.post(
            f"{project_url}/credits",
            json={
                "name": "Loan",
                "principal_amount": "1000.00",
                "installment_amount": "100.00",
                "installments": 10,
                "start_date": "2026-01-01",
            },
            headers=second_user["headers"],
        )
        assert response.status_code == 403

    async def test_cannot_read_project(self, authenticated_client, project_id, second_user):
        response = await authenticated_client.get(
            f"/projects/{project_id}", headers=second_user["headers"]
        )
        assert response.status_code == 403


class TestSummariesZeroedForNonMembers:
    """Aggregate reads return empty values instead of failing."""

    async def test_card_purchase_summary_is_zeroed(
        self, authenticated_client, project_url, card_account, second_user
    ):
        await authenticated_client.post(
            f"{project_url}/card-purchases",
            json={
                "account_id": card_account,
                "description": "Laptop",
                "original_amount": "1200.00",
                "installments": 3,
                "first_charge_date": "2030-01-10",
            },
        )
        response = await authenticated_client.get(
            f"{project_url}/card-purchases/summary", headers=second_user["headers"]
        )
        assert response.status_code == 200
        data = response.json()
        assert data["total_purchases"] == 0
        assert Decimal(data["total_debt"]) == Decimal("0")

    async def test_transaction_summary_is_zeroed(
        self, authenticated_client, project_url, second_user
    ):
        await authenticated_client.post(
            f"{project_url}/transactions",
            json={
                "type": "income",
                "amount": "500.00",
                "date": "2026-01-01",
                "description": "Salary",
            },
        )
        response = await authenticated_client.get(
            f"{project_url}/transactions/summary", headers=second_user["headers"]
        )
        assert response.status_code == 200
        assert response.json()["transaction_count"] == 0
        assert Decimal(response.json()["total_income"]) == Decimal("0")

    async def test_billing_cycle_list_is_empty(
        self, authenticated_client, project_url, second_user
    ):
        await authenticated_client.post(
            f"{project_url}/billing-cycles",
            json={"name": "January", "start_date": "2026-01-01", "end_date": "2026-01-31"},
        )
        listed = await authenticated_client.get(
            f"{project_url}/billing-cycles", headers=second_user["headers"]
        )
        assert listed.status_code == 200
        assert listed.json() == []

        current = await authenticated_client.get(
            f"{project_url}/billing-cycles/current", headers=second_user["headers"]
        )
        assert current.status_code == 200
        assert current.json() is None

    async def test_credit_and_savings_summaries_are_zeroed(
        self, authenticated_client, project_url, second_user
    ):
        credits = await authenticated_client.get(
            f"{project_url}/credits/summary", headers=second_user["headers"]
        )
        savings = await authenticated_client.get(
            f"{project_url}/savings/summary", headers=second_user["headers"]
        )
        assert credits.status_code == 200
        assert credits.json()["total_credits"] == 0
        assert savings.status_code == 200
        assert savings.json()["total_funds"] == 0


class TestMembership:
    """Invitations only grant access once accepted."""

    async def test_pending_invitation_grants_nothing(
        self, authenticated_client, project_id, second_user
    ):
        invite = await authenticated_client.post(
            f"/projects/{project_id}/members", json={"email": second_user["email"]}
        )
        assert invite.status_code == 201
        assert invite.json()["accepted_at"] is None

        response = await authenticated_client.get(
            f"/projects/{project_id}/transactions", headers=second_user["headers"]
        )
        assert response.status_code == 403

    async def test_accepted_invitation_grants_access(
        self, authenticated_client, project_id, second_user
    ):
        await authenticated_client.post(
            f"/projects/{project_id}/members", json={"email": second_user["email"]}
        )
        accept = await authenticated_client.post(
            f"/projects/{project_id}/members/accept", headers=second_user["headers"]
        )
        assert accept.status_code == 200
        assert accept.json()["accepted_at"] is not None

        response = await authenticated_client.get(
            f"/projects/{project_id}/transactions", headers=second_user["headers"]
        )
        assert response.status_code == 200

        projects = await authenticated_client.get("/projects", headers=second_user["headers"])
        assert project_id in [p["id"] for p in projects.json()]

    async def test_duplicate_invitation_conflicts(
        self, authenticated_client, project_id, second_user
    ):
        await authenticated_client.post(
            f"/projects/{project_id}/members", json={"email": second_user["email"]}
        )
        again = await authenticated_client.post(
            f"/projects/{project_id}/members", json={"email": second_user["email"]}
        )
        assert again.status_code == 409

    async def test_only_owner_can_invite(self, authenticated_client, project_id, second_user):
        await authenticated_client.post(
            f"/projects/{project_id}/members", json={"email": second_user["email"]}
        )
        await authenticated_client.post(
            f"/projects/{project_id}/members/accept", headers=second_user["headers"]
        )

        response = await authenticated_client.post(
            f"/projects/{project_id}/members",
            json={"email": "testuser@example.com"},
            headers=second_user["headers"],
        )
        assert response.status_code == 403

    async def test_accept_without_invitation_is_not_found(
        self, authenticated_client, project_id, second_user
    ):
        response = await authenticated_client.post(
            f"/projects/{project_id}/members/accept", headers=second_user["headers"]
        )
        assert response.status_code == 404


class TestAccountOwnership:
    """Accounts belong to users, not projects."""

    async def test_cannot_view_other_users_account(
        self, authenticated_client, checking_account, second_user
    ):
        response = await authenticated_client.get(
            f"/accounts/{checking_account}", headers=second_user["headers"]
        )
        assert response.status_code == 403

    async def test_cannot_view_other_users_balance(
        self, authenticated_client, checking_account, second_user
    ):
        response = await authenticated_client.get(
            f"/accounts/{checking_account}/balance", headers=second_user["headers"]
        )
        assert response.status_code == 403

    async def test_shared_project_member_cannot_book_on_owners_account(
        self, authenticated_client, project_id, checking_account, second_user, balance
    ):
        await authenticated_client.post(
            f"/projects/{project_id}/members", json={"email": second_user["email"]}
        )
        await authenticated_client.post(
            f"/projects/{project_id}/members/accept", headers=second_user["headers"]
        )

        response = await authenticated_client.post(
            f"/projects/{project_id}/transactions",
            json={
                "type": "expense",
                "amount": "100.00",
                "date": "2026-01-01",
                "description": "Not mine",
                "account_id": checking_account,
                "is_paid": True,
            },
            headers=second_user["headers"],
        )
        assert response.status_code == 403
        assert await balance(checking_account) == Decimal("1000000.00")

    async def test_cannot_transfer_from_other_users_account(
        self, authenticated_client, checking_account, second_user
    ):
        own = await authenticated_client.post(
            "/accounts", json={"name": "Mine"}, headers=second_user["headers"]
        )
        response = await authenticated_client.post(
            f"/projects/{second_user['project_id']}/transfers",
            json={
                "from_account_id": checking_account,
                "to_account_id": own.json()["id"],
                "amount": "100.00",
                "date": "2026-01-01",
            },
            headers=second_user["headers"],
        )
        assert response.status_code == 403
