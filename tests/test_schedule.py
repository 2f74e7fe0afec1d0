"""
Unit tests for installment schedule math and amount splitting.

Pure functions, no database:
  - due dates start on the start date and strictly increase
  - monthly steps clamp the day to the target month
  - count_past_due counts the contiguous prefix of due dates before today
  - split_installments sums exactly to the total
"""

import uuid
from datetime import date
from decimal import Decimal

import pytest

from finledger.services.card_purchase_service import purchase_totals, split_installments
from finledger.services.ledger import LegState, delta_for, money, transition_deltas
from finledger.services.schedule import (
    BIWEEKLY,
    MONTHLY,
    WEEKLY,
    count_past_due,
    due_date,
    due_dates,
    schedule_end_date,
)


class TestDueDates:
    """Tests for due_date / due_dates."""

    def test_index_zero_is_start_date(self):
        start = date(2026, 3, 15)
        for frequency in (WEEKLY, BIWEEKLY, MONTHLY):
            assert due_date(start, frequency, 0) == start

    def test_weekly_and_biweekly_steps(self):
        start = date(2026, 1, 1)
        assert due_date(start, WEEKLY, 3) == date(2026, 1, 22)
        assert due_date(start, BIWEEKLY, 2) == date(2026, 1, 29)

    def test_monthly_clamps_day(self):
        start = date(2026, 1, 31)
        assert due_dates(start, MONTHLY, 4) == [
            date(2026, 1, 31),
            date(2026, 2, 28),
            date(2026, 3, 31),
            date(2026, 4, 30),
        ]

    def test_monthly_clamps_to_leap_day(self):
        assert due_date(date(2028, 1, 31), MONTHLY, 1) == date(2028, 2, 29)

    @pytest.mark.parametrize("frequency", [WEEKLY, BIWEEKLY, MONTHLY])
    def test_due_dates_strictly_increase(self, frequency):
        dates = due_dates(date(2025, 8, 31), frequency, 36)
        assert all(a < b for a, b in zip(dates, dates[1:]))

    def test_offset_skips_leading_indices(self):
        start = date(2026, 1, 10)
        assert due_dates(start, MONTHLY, 3, offset=1) == [date(2026, 2, 10), date(2026, 3, 10)]

    def test_schedule_end_is_one_period_after_last(self):
        assert schedule_end_date(date(2026, 1, 10), MONTHLY, 12) == date(2027, 1, 10)

    def test_unknown_frequency_raises(self):
        with pytest.raises(ValueError):
            due_date(date(2026, 1, 1), "yearly", 1)

    def test_negative_index_raises(self):
        with pytest.raises(ValueError):
            due_date(date(2026, 1, 1), MONTHLY, -1)


class TestCountPastDue:
    """Tests for count_past_due."""

    def test_future_start_has_none(self):
        assert count_past_due(date(2026, 6, 1), MONTHLY, 12, today=date(2026, 5, 1)) == 0

    def test_start_today_has_none(self):
        """A due date equal to today is not past due."""
        assert count_past_due(date(2026, 5, 1), MONTHLY, 12, today=date(2026, 5, 1)) == 0

    def test_counts_dates_strictly_before_today(self):
        # Due: Jan 10, Feb 10, Mar 10 (today), Apr 10 ...
        assert count_past_due(date(2026, 1, 10), MONTHLY, 12, today=date(2026, 3, 10)) == 2
        assert count_past_due(date(2026, 1, 10), MONTHLY, 12, today=date(2026, 3, 11)) == 3

    def test_capped_at_installment_count(self):
        assert count_past_due(date(2020, 1, 1), WEEKLY, 4, today=date(2026, 1, 1)) == 4


class TestSplitInstallments:
    """Tests for split_installments and purchase_totals."""

    def test_even_split(self):
        assert split_installments(Decimal("300000.00"), 3) == [Decimal("100000.00")] * 3

    def test_last_installment_absorbs_remainder(self):
        amounts = split_installments(Decimal("100.00"), 3)
        assert amounts == [Decimal("33.33"), Decimal("33.33"), Decimal("33.34")]
        assert sum(amounts) == Decimal("100.00")

    @pytest.mark.parametrize("total,n", [("999.99", 7), ("0.05", 4), ("12345.67", 60)])
    def test_split_sums_exactly(self, total, n):
        assert sum(split_installments(Decimal(total), n)) == Decimal(total)

    def test_purchase_totals_with_interest(self):
        totals = purchase_totals(Decimal("1000.00"), Decimal("10"), 4)
        assert totals["total_amount"] == Decimal("1100.00")
        assert totals["interest_amount"] == Decimal("100.00")
        assert totals["installment_amount"] == Decimal("275.00")


class TestDeltas:
    """Tests for the signed delta and transition helpers."""

    def test_delta_signs(self):
        assert delta_for("income", Decimal("10")) == Decimal("10.00")
        assert delta_for("expense", Decimal("10")) == Decimal("-10.00")

    def test_money_rounds_half_up(self):
        assert money(Decimal("0.005")) == Decimal("0.01")
        assert money("2.345") == Decimal("2.35")

    def test_transition_reverts_old_and_applies_new(self):
        acct_a, acct_b = uuid.uuid4(), uuid.uuid4()
        old = LegState(account_id=acct_a, type="expense", amount=Decimal("50.00"), is_paid=True)
        new = LegState(account_id=acct_b, type="expense", amount=Decimal("70.00"), is_paid=True)
        assert transition_deltas(old, new) == {
            acct_a: Decimal("50.00"),
            acct_b: Decimal("-70.00"),
        }

    def test_unpaid_states_contribute_nothing(self):
        acct = uuid.uuid4()
        unpaid = LegState(account_id=acct, type="income", amount=Decimal("10.00"), is_paid=False)
        assert transition_deltas(None, unpaid) == {}
        assert transition_deltas(unpaid, None) == {}

    def test_unchanged_paid_state_nets_to_nothing(self):
        acct = uuid.uuid4()
        paid = LegState(account_id=acct, type="income", amount=Decimal("10.00"), is_paid=True)
        assert transition_deltas(paid, paid) == {}
