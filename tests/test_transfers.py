"""
Tests for transfers between accounts.

A transfer is two linked records written in one transaction: an expense on
the source and an income on the destination. These tests verify:
  - Symmetry: source loses exactly what destination gains
  - Both legs link to each other and are always paid
  - Same-account and non-positive transfers are rejected
  - Editing the amount moves both balances together
  - Deleting either leg removes both and reverts both balances
  - A failing transfer leaves no partial state behind
"""

from decimal import Decimal


class TestTransferSuccess:
    """Tests for successful transfer operations."""

    async def test_transfer_moves_money_symmetrically(
        self, authenticated_client, project_url, checking_account, balance
    ):
        savings = await authenticated_client.post(
            "/accounts", json={"name": "Rainy day", "type": "savings"}
        )
        savings_id = savings.json()["id"]

        response = await authenticated_client.post(
            f"{project_url}/transfers",
            json={
                "from_account_id": checking_account,
                "to_account_id": savings_id,
                "amount": "2500.00",
                "date": "2026-02-01",
            },
        )
        assert response.status_code == 201
        data = response.json()
        assert Decimal(data["amount"]) == Decimal("2500.00")
        assert data["from_account_id"] == checking_account
        assert data["to_account_id"] == savings_id

        assert await balance(checking_account) == Decimal("997500.00")
        assert await balance(savings_id) == Decimal("2500.00")

    async def test_legs_are_linked_and_paid(
        self, authenticated_client, project_url, checking_account, card_account
    ):
        response = await authenticated_client.post(
            f"{project_url}/transfers",
            json={
                "from_account_id": checking_account,
                "to_account_id": card_account,
                "amount": "10.00",
                "date": "2026-02-01",
                "description": "Top up",
            },
        )
        out_leg = response.json()["out_transaction"]
        in_leg = response.json()["in_transaction"]

        assert out_leg["type"] == "expense"
        assert in_leg["type"] == "income"
        assert out_leg["linked_transaction_id"] == in_leg["id"]
        assert in_leg["linked_transaction_id"] == out_leg["id"]
        assert out_leg["is_paid"] is True and in_leg["is_paid"] is True
        assert out_leg["description"] == "Top up → Visa"
        assert in_leg["description"] == "Top up ← Checking"
        assert out_leg["category_id"] == in_leg["category_id"] is not None


class TestTransferValidation:
    """Invalid transfers are rejected without touching balances."""

    async def test_same_account_rejected(
        self, authenticated_client, project_url, checking_account, balance
    ):
        response = await authenticated_client.post(
            f"{project_url}/transfers",
            json={
                "from_account_id": checking_account,
                "to_account_id": checking_account,
                "amount": "10.00",
                "date": "2026-02-01",
            },
        )
        assert response.status_code == 409
        assert response.json()["error_type"] == "invariant_violation"
        assert await balance(checking_account) == Decimal("1000000.00")

    async def test_zero_amount_rejected(
        self, authenticated_client, project_url, checking_account, card_account
    ):
        response = await authenticated_client.post(
            f"{project_url}/transfers",
            json={
                "from_account_id": checking_account,
                "to_account_id": card_account,
                "amount": "0.00",
                "date": "2026-02-01",
            },
        )
        assert response.status_code == 422

    async def test_missing_destination_rolls_back(
        self, authenticated_client, project_url, checking_account, balance
    ):
        """A failed transfer leaves no legs and no balance change behind."""
        response = await authenticated_client.post(
            f"{project_url}/transfers",
            json={
                "from_account_id": checking_account,
                "to_account_id": "00000000-0000-0000-0000-000000000000",
                "amount": "50.00",
                "date": "2026-02-01",
            },
        )
        assert response.status_code == 404
        assert await balance(checking_account) == Decimal("1000000.00")

        listed = await authenticated_client.get(f"{project_url}/transactions")
        assert listed.json() == []


class TestTransferEditAndDelete:
    """Both legs always change together."""

    async def _transfer(self, client, project_url, source, destination, amount="100.00"):
        response = await client.post(
            f"{project_url}/transfers",
            json={
                "from_account_id": source,
                "to_account_id": destination,
                "amount": amount,
                "date": "2026-02-01",
            },
        )
        assert response.status_code == 201
        return response.json()

    async def test_amount_edit_moves_both_balances(
        self, authenticated_client, project_url, checking_account, card_account, balance
    ):
        transfer = await self._transfer(
            authenticated_client, project_url, checking_account, card_account
        )
        response = await authenticated_client.patch(
            f"{project_url}/transfers/{transfer['in_transaction']['id']}",
            json={"amount": "300.00"},
        )
        assert response.status_code == 200
        assert Decimal(response.json()["out_transaction"]["amount"]) == Decimal("300.00")
        assert Decimal(response.json()["in_transaction"]["amount"]) == Decimal("300.00")

        assert await balance(checking_account) == Decimal("999700.00")
        assert await balance(card_account) == Decimal("300.00")

    async def test_edit_leg_through_transactions_route(
        self, authenticated_client, project_url, checking_account, card_account, balance
    ):
        transfer = await self._transfer(
            authenticated_client, project_url, checking_account, card_account
        )
        response = await authenticated_client.patch(
            f"{project_url}/transactions/{transfer['out_transaction']['id']}",
            json={"amount": "40.00"},
        )
        assert response.status_code == 200
        assert await balance(checking_account) == Decimal("999960.00")
        assert await balance(card_account) == Decimal("40.00")

    async def test_leg_cannot_change_account_or_unpay(
        self, authenticated_client, project_url, checking_account, card_account
    ):
        transfer = await self._transfer(
            authenticated_client, project_url, checking_account, card_account
        )
        leg_id = transfer["out_transaction"]["id"]

        moved = await authenticated_client.patch(
            f"{project_url}/transactions/{leg_id}", json={"account_id": card_account}
        )
        assert moved.status_code == 409

        unpaid = await authenticated_client.patch(
            f"{project_url}/transactions/{leg_id}/paid", json={"is_paid": False}
        )
        assert unpaid.status_code == 409

    async def test_delete_reverts_both_balances(
        self, authenticated_client, project_url, checking_account, card_account, balance
    ):
        transfer = await self._transfer(
            authenticated_client, project_url, checking_account, card_account
        )
        response = await authenticated_client.delete(
            f"{project_url}/transfers/{transfer['out_transaction']['id']}"
        )
        assert response.status_code == 204

        assert await balance(checking_account) == Decimal("1000000.00")
        assert await balance(card_account) == Decimal("0.00")
        listed = await authenticated_client.get(f"{project_url}/transactions")
        assert listed.json() == []

    async def test_deleting_one_leg_deletes_both(
        self, authenticated_client, project_url, checking_account, card_account, balance
    ):
        transfer = await self._transfer(
            authenticated_client, project_url, checking_account, card_account
        )
        response = await authenticated_client.delete(
            f"{project_url}/transactions/{transfer['in_transaction']['id']}"
        )
        assert response.status_code == 204

        other = await authenticated_client.get(
            f"{project_url}/transactions/{transfer['out_transaction']['id']}"
        )
        assert other.status_code == 404
        assert await balance(checking_account) == Decimal("1000000.00")

    async def test_non_transfer_record_rejected(
        self, authenticated_client, project_url, checking_account
    ):
        record = await authenticated_client.post(
            f"{project_url}/transactions",
            json={
                "type": "expense",
                "amount": "5.00",
                "date": "2026-02-01",
                "description": "Coffee",
                "account_id": checking_account,
            },
        )
        response = await authenticated_client.delete(
            f"{project_url}/transfers/{record.json()['id']}"
        )
        assert response.status_code == 409

    async def test_category_and_entity_edit_applies_to_both_legs(
        self, authenticated_client, project_url, checking_account, card_account
    ):
        transfer = await self._transfer(
            authenticated_client, project_url, checking_account, card_account
        )
        category = await authenticated_client.post(
            f"{project_url}/categories",
            json={"name": "Card payments", "type": "expense"},
        )
        entity_id = "11111111-1111-1111-1111-111111111111"

        response = await authenticated_client.patch(
            f"{project_url}/transactions/{transfer['in_transaction']['id']}",
            json={"category_id": category.json()["id"], "entity_id": entity_id},
        )
        assert response.status_code == 200

        for leg in ("out_transaction", "in_transaction"):
            fetched = await authenticated_client.get(
                f"{project_url}/transactions/{transfer[leg]['id']}"
            )
            assert fetched.json()["category_id"] == category.json()["id"]
            assert fetched.json()["entity_id"] == entity_id

    async def test_unknown_category_on_transfer_edit(
        self, authenticated_client, project_url, checking_account, card_account
    ):
        transfer = await self._transfer(
            authenticated_client, project_url, checking_account, card_account
        )
        response = await authenticated_client.patch(
            f"{project_url}/transfers/{transfer['out_transaction']['id']}",
            json={"category_id": "00000000-0000-0000-0000-000000000000"},
        )
        assert response.status_code == 404


class TestPayoffDeletion:
    """Deleting a card payment only removes its reconciliation stamp."""

    async def test_plain_card_expense_keeps_paid_at(
        self, authenticated_client, project_url, checking_account, card_account
    ):
        expense = await authenticated_client.post(
            f"{project_url}/transactions",
            json={
                "type": "expense",
                "amount": "75.00",
                "date": "2026-02-01",
                "description": "Dinner",
                "account_id": card_account,
                "paid_at": "2026-02-01T20:30:00Z",
            },
        )
        url = f"{project_url}/transactions/{expense.json()['id']}"
        before = (await authenticated_client.get(url)).json()
        assert before["paid_at"] is not None

        payment = await authenticated_client.post(
            f"{project_url}/transfers/credit-card-payment",
            json={
                "source_account_id": checking_account,
                "card_account_id": card_account,
                "transaction_ids": [expense.json()["id"]],
                "date": "2026-02-10",
            },
        )
        assert payment.status_code == 201
        await authenticated_client.delete(
            f"{project_url}/transfers/{payment.json()['transfer_id']}"
        )

        after = (await authenticated_client.get(url)).json()
        assert after["paid_by_transfer_id"] is None
        assert after["is_paid"] is True
        assert after["paid_at"] == before["paid_at"]
