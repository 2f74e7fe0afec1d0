"""
Tests for transaction records and the balance invariant.

An account's running balance always equals its initial balance plus the
signed amounts of its PAID records. These tests drive every mutation
(create, update, toggle, delete) and check the running balance after each
step; the ``balance`` fixture also asserts it still matches a from-scratch
recomputation.
"""

from decimal import Decimal


def _txn(account_id=None, **overrides):
    body = {
        "type": "expense",
        "amount": "100.00",
        "date": "2026-01-15",
        "description": "Groceries",
        "is_paid": True,
    }
    if account_id is not None:
        body["account_id"] = account_id
    body.update(overrides)
    return body


class TestCreate:
    """Only paid records move a balance."""

    async def test_paid_expense_decreases_balance(
        self, authenticated_client, project_url, checking_account, balance
    ):
        response = await authenticated_client.post(
            f"{project_url}/transactions", json=_txn(checking_account)
        )
        assert response.status_code == 201
        data = response.json()
        assert data["is_paid"] is True
        assert data["paid_at"] is not None
        assert await balance(checking_account) == Decimal("999900.00")

    async def test_paid_income_increases_balance(
        self, authenticated_client, project_url, checking_account, balance
    ):
        await authenticated_client.post(
            f"{project_url}/transactions",
            json=_txn(checking_account, type="income", amount="2500.50"),
        )
        assert await balance(checking_account) == Decimal("1002500.50")

    async def test_unpaid_record_leaves_balance(
        self, authenticated_client, project_url, checking_account, balance
    ):
        response = await authenticated_client.post(
            f"{project_url}/transactions", json=_txn(checking_account, is_paid=False)
        )
        assert response.json()["paid_at"] is None
        assert await balance(checking_account) == Decimal("1000000.00")

    async def test_card_expense_is_always_paid(
        self, authenticated_client, project_url, card_account, balance
    ):
        response = await authenticated_client.post(
            f"{project_url}/transactions", json=_txn(card_account, is_paid=False)
        )
        assert response.json()["is_paid"] is True
        assert await balance(card_account) == Decimal("-100.00")

    async def test_record_without_account(self, authenticated_client, project_url):
        response = await authenticated_client.post(f"{project_url}/transactions", json=_txn())
        assert response.status_code == 201
        assert response.json()["account_id"] is None

    async def test_non_positive_amount_rejected(
        self, authenticated_client, project_url, checking_account
    ):
        response = await authenticated_client.post(
            f"{project_url}/transactions", json=_txn(checking_account, amount="0")
        )
        assert response.status_code == 422

    async def test_unknown_category_is_not_found(
        self, authenticated_client, project_url, checking_account
    ):
        response = await authenticated_client.post(
            f"{project_url}/transactions",
            json=_txn(checking_account, category_id="00000000-0000-0000-0000-000000000000"),
        )
        assert response.status_code == 404


class TestUpdate:
    """Updates revert the old contribution and apply the new one."""

    async def test_amount_change_on_paid_record(
        self, authenticated_client, project_url, checking_account, balance
    ):
        created = await authenticated_client.post(
            f"{project_url}/transactions", json=_txn(checking_account)
        )
        txn_id = created.json()["id"]

        response = await authenticated_client.patch(
            f"{project_url}/transactions/{txn_id}", json={"amount": "250.00"}
        )
        assert response.status_code == 200
        assert await balance(checking_account) == Decimal("999750.00")

    async def test_type_change_flips_sign(
        self, authenticated_client, project_url, checking_account, balance
    ):
        created = await authenticated_client.post(
            f"{project_url}/transactions", json=_txn(checking_account)
        )
        await authenticated_client.patch(
            f"{project_url}/transactions/{created.json()['id']}", json={"type": "income"}
        )
        assert await balance(checking_account) == Decimal("1000100.00")

    async def test_moving_record_between_accounts(
        self, authenticated_client, project_url, checking_account, balance
    ):
        other = await authenticated_client.post("/accounts", json={"name": "Cash", "type": "cash"})
        other_id = other.json()["id"]
        created = await authenticated_client.post(
            f"{project_url}/transactions", json=_txn(checking_account)
        )

        await authenticated_client.patch(
            f"{project_url}/transactions/{created.json()['id']}",
            json={"account_id": other_id},
        )
        assert await balance(checking_account) == Decimal("1000000.00")
        assert await balance(other_id) == Decimal("-100.00")

    async def test_description_only_update_keeps_balance(
        self, authenticated_client, project_url, checking_account, balance
    ):
        created = await authenticated_client.post(
            f"{project_url}/transactions", json=_txn(checking_account)
        )
        response = await authenticated_client.patch(
            f"{project_url}/transactions/{created.json()['id']}",
            json={"description": "Weekly groceries"},
        )
        assert response.json()["description"] == "Weekly groceries"
        assert Decimal(response.json()["amount"]) == Decimal("100.00")
        assert await balance(checking_account) == Decimal("999900.00")

    async def test_update_unpaid_record_then_pay(
        self, authenticated_client, project_url, checking_account, balance
    ):
        created = await authenticated_client.post(
            f"{project_url}/transactions", json=_txn(checking_account, is_paid=False)
        )
        txn_id = created.json()["id"]

        await authenticated_client.patch(
            f"{project_url}/transactions/{txn_id}", json={"amount": "40.00"}
        )
        assert await balance(checking_account) == Decimal("1000000.00")

        response = await authenticated_client.patch(
            f"{project_url}/transactions/{txn_id}", json={"is_paid": True}
        )
        assert response.json()["paid_at"] is not None
        assert await balance(checking_account) == Decimal("999960.00")


class TestTogglePaid:
    """PATCH /transactions/{id}/paid."""

    async def test_toggle_paid_and_back(
        self, authenticated_client, project_url, checking_account, balance
    ):
        created = await authenticated_client.post(
            f"{project_url}/transactions", json=_txn(checking_account, is_paid=False)
        )
        url = f"{project_url}/transactions/{created.json()['id']}/paid"

        paid = await authenticated_client.patch(url, json={"is_paid": True})
        assert paid.json()["is_paid"] is True
        assert await balance(checking_account) == Decimal("999900.00")

        unpaid = await authenticated_client.patch(url, json={"is_paid": False})
        assert unpaid.json()["paid_at"] is None
        assert await balance(checking_account) == Decimal("1000000.00")

    async def test_toggle_to_same_state_is_noop(
        self, authenticated_client, project_url, checking_account, balance
    ):
        created = await authenticated_client.post(
            f"{project_url}/transactions", json=_txn(checking_account)
        )
        url = f"{project_url}/transactions/{created.json()['id']}/paid"

        response = await authenticated_client.patch(url, json={"is_paid": True})
        assert response.status_code == 200
        assert response.json()["paid_at"] is not None
        assert await balance(checking_account) == Decimal("999900.00")


class TestDelete:
    """Deleting a paid record reverts it; an unpaid one changes nothing."""

    async def test_delete_paid_record_reverts(
        self, authenticated_client, project_url, checking_account, balance
    ):
        created = await authenticated_client.post(
            f"{project_url}/transactions", json=_txn(checking_account)
        )
        response = await authenticated_client.delete(
            f"{project_url}/transactions/{created.json()['id']}"
        )
        assert response.status_code == 204
        assert await balance(checking_account) == Decimal("1000000.00")

        missing = await authenticated_client.get(
            f"{project_url}/transactions/{created.json()['id']}"
        )
        assert missing.status_code == 404

    async def test_delete_unpaid_record(
        self, authenticated_client, project_url, checking_account, balance
    ):
        created = await authenticated_client.post(
            f"{project_url}/transactions", json=_txn(checking_account, is_paid=False)
        )
        await authenticated_client.delete(f"{project_url}/transactions/{created.json()['id']}")
        assert await balance(checking_account) == Decimal("1000000.00")


class TestQueries:
    """Listing filters and the summary."""

    async def test_filters_and_summary(self, authenticated_client, project_url, checking_account):
        await authenticated_client.post(
            f"{project_url}/transactions",
            json=_txn(checking_account, type="income", amount="1000.00", date="2026-01-01"),
        )
        await authenticated_client.post(
            f"{project_url}/transactions",
            json=_txn(checking_account, amount="300.00", date="2026-01-20", is_paid=False),
        )
        await authenticated_client.post(
            f"{project_url}/transactions",
            json=_txn(checking_account, amount="50.00", date="2026-02-05"),
        )

        expenses = await authenticated_client.get(
            f"{project_url}/transactions", params={"type": "expense"}
        )
        assert [Decimal(t["amount"]) for t in expenses.json()] == [Decimal("50.00"), Decimal("300.00")]

        unpaid = await authenticated_client.get(
            f"{project_url}/transactions", params={"is_paid": False}
        )
        assert len(unpaid.json()) == 1

        january = await authenticated_client.get(
            f"{project_url}/transactions",
            params={"start_date": "2026-01-01", "end_date": "2026-01-31"},
        )
        assert len(january.json()) == 2

        summary = await authenticated_client.get(
            f"{project_url}/transactions/summary",
            params={"start_date": "2026-01-01", "end_date": "2026-01-31"},
        )
        data = summary.json()
        assert Decimal(data["total_income"]) == Decimal("1000.00")
        assert Decimal(data["total_expenses"]) == Decimal("300.00")
        assert Decimal(data["balance"]) == Decimal("700.00")
        assert data["transaction_count"] == 2

    async def test_paging(self, authenticated_client, project_url):
        for day in range(1, 6):
            await authenticated_client.post(
                f"{project_url}/transactions", json=_txn(date=f"2026-03-0{day}")
            )
        page = await authenticated_client.get(
            f"{project_url}/transactions", params={"limit": 2, "offset": 1}
        )
        assert [t["date"] for t in page.json()] == ["2026-03-04", "2026-03-03"]


class TestUnpaidCardRecords:
    """Planned card expenses stay unpaid until someone pays them."""

    async def _planned_card_expense(self, client, project_url, card_account):
        template = await client.post(f"{project_url}/templates", json={"name": "Subscriptions"})
        await client.post(
            f"{project_url}/templates/{template.json()['id']}/items",
            json={
                "type": "expense",
                "description": "Streaming",
                "amount": "15.00",
                "account_id": card_account,
            },
        )
        await client.post(
            f"{project_url}/billing-cycles",
            json={"name": "January", "start_date": "2026-01-01", "end_date": "2026-01-31"},
        )
        listed = await client.get(
            f"{project_url}/transactions", params={"account_id": card_account}
        )
        record = listed.json()[0]
        assert record["is_paid"] is False
        return record

    async def test_description_edit_keeps_record_unpaid(
        self, authenticated_client, project_url, card_account, balance
    ):
        record = await self._planned_card_expense(
            authenticated_client, project_url, card_account
        )
        response = await authenticated_client.patch(
            f"{project_url}/transactions/{record['id']}",
            json={"description": "Streaming (family plan)"},
        )
        assert response.status_code == 200
        assert response.json()["is_paid"] is False
        assert response.json()["paid_at"] is None
        assert await balance(card_account) == Decimal("0.00")

    async def test_amount_edit_keeps_record_unpaid(
        self, authenticated_client, project_url, card_account, balance
    ):
        record = await self._planned_card_expense(
            authenticated_client, project_url, card_account
        )
        response = await authenticated_client.patch(
            f"{project_url}/transactions/{record['id']}", json={"amount": "18.00"}
        )
        assert response.json()["is_paid"] is False
        assert await balance(card_account) == Decimal("0.00")

    async def test_moving_expense_onto_card_pays_it(
        self, authenticated_client, project_url, card_account, balance
    ):
        created = await authenticated_client.post(
            f"{project_url}/transactions", json=_txn(is_paid=False)
        )
        response = await authenticated_client.patch(
            f"{project_url}/transactions/{created.json()['id']}",
            json={"account_id": card_account},
        )
        assert response.json()["is_paid"] is True
        assert await balance(card_account) == Decimal("-100.00")

    async def test_unpaid_record_not_offered_for_payoff(
        self, authenticated_client, project_url, card_account
    ):
        await self._planned_card_expense(authenticated_client, project_url, card_account)
        payable = await authenticated_client.get(
            f"{project_url}/transactions/credit-card/{card_account}/unpaid"
        )
        assert payable.status_code == 200
        assert payable.json() == []
