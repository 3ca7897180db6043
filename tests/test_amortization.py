"""Tests for the shared amortization primitive."""

import logging
import math

import pytest

from loan_engine.amortization import (
    amortize,
    calculate_monthly_payment,
    level_payment,
    solve_term,
    to_monthly_rate,
    yearly_summary,
)
from loan_engine.errors import ErrorKind


class TestCalculateMonthlyPayment:
    """Tests for the level-payment formula."""

    def test_monthly_payment_calculation(self):
        """Test standard amortization formula."""
        # $300,000 at 6.5% for 30 years
        payment = calculate_monthly_payment(300000, 6.5, 360)

        # Expected: ~$1,896.20
        assert abs(payment - 1896.20) < 0.10

    def test_monthly_payment_zero_rate(self):
        """Test edge case of 0% interest."""
        assert calculate_monthly_payment(120000, 0.0, 120) == 1000.0

    def test_level_payment_overflow_falls_back_to_linear(self, caplog):
        """Test that an overflowing formula falls back to principal / n."""
        with caplog.at_level(logging.WARNING, logger='loan_engine.amortization'):
            payment, used_fallback = level_payment(360000, 1000.0, 360)

        assert used_fallback
        assert payment == 1000.0
        assert 'falling back to linear division' in caplog.text

    def test_level_payment_vanishing_rate_falls_back(self):
        """Test a rate too small to change (1+r)^n."""
        payment, used_fallback = level_payment(360000, 1e-18, 360)

        assert used_fallback
        assert payment == 1000.0

    def test_level_payment_normal_inputs_no_fallback(self):
        _, used_fallback = level_payment(300000, to_monthly_rate(6.5), 360)
        assert not used_fallback


class TestAmortize:
    """Tests for the period-by-period simulation."""

    def test_schedule_length(self):
        """Test that schedule has correct number of rows."""
        rate = to_monthly_rate(5.0)
        payment = calculate_monthly_payment(200000, 5.0, 180)

        schedule = amortize(200000, rate, payment)

        assert schedule.ok
        assert len(schedule) == 180

    def test_final_balance_is_zero(self):
        """Test that final balance is zero."""
        payment = calculate_monthly_payment(520000, 6.75, 360)

        schedule = amortize(520000, to_monthly_rate(6.75), payment)

        assert len(schedule) == 360
        assert schedule.final_balance == 0.0
        assert schedule.fully_amortized

    def test_principal_sum(self):
        """Test that total principal paid equals original principal."""
        payment = calculate_monthly_payment(200000, 6.0, 240)

        schedule = amortize(200000, to_monthly_rate(6.0), payment)

        assert abs(schedule.total_principal - 200000) < 0.01

    def test_payment_decomposition(self):
        """Test interest + principal == payment and interest == prior balance * rate."""
        rate = to_monthly_rate(6.75)
        payment = calculate_monthly_payment(520000, 6.75, 360)

        schedule = amortize(520000, rate, payment)

        previous_balance = 520000
        for p in schedule:
            assert p.interest + p.principal == pytest.approx(p.payment, abs=1e-9)
            assert p.interest == pytest.approx(previous_balance * rate, abs=1e-9)
            previous_balance = p.balance

    def test_payment_decomposition_with_extras(self):
        """Test that the decomposition holds with monthly and one-time extras."""
        rate = to_monthly_rate(6.75)
        payment = calculate_monthly_payment(520000, 6.75, 360)

        schedule = amortize(520000, rate, payment, extra_fn=lambda period: 200 + (10000 if period == 12 else 0))

        assert schedule.fully_amortized
        assert schedule.periods[11].extra == 10200
        previous_balance = 520000
        for p in schedule:
            assert p.interest + p.principal == pytest.approx(p.payment, abs=1e-9)
            assert p.interest == pytest.approx(previous_balance * rate, abs=1e-9)
            assert p.balance == pytest.approx(previous_balance - p.principal, abs=1e-6)
            previous_balance = p.balance
        assert previous_balance == 0.0

    def test_term_periods_pays_off_remaining_balance(self):
        rate = to_monthly_rate(6.0)
        payment = calculate_monthly_payment(100000, 6.0, 360)

        schedule = amortize(100000, rate, payment, term_periods=12)

        assert len(schedule) == 12
        assert schedule.final_balance == 0.0
        assert schedule.periods[-1].payment > 10 * payment

    def test_balance_monotonic_and_non_negative(self):
        payment = calculate_monthly_payment(250000, 5.5, 360)

        schedule = amortize(250000, to_monthly_rate(5.5), payment, extra_fn=lambda period: 300)

        balances = [p.balance for p in schedule]
        assert all(b >= 0 for b in balances)
        assert all(later <= earlier for earlier, later in zip(balances, balances[1:]))

    def test_insufficient_payment_detected(self):
        """Test payment below interest-only amount."""
        # $500,000 at 6.5% accrues ~$2,708 in month one
        schedule = amortize(500000, to_monthly_rate(6.5), 2000)

        assert not schedule.ok
        assert schedule.error.kind == ErrorKind.INSUFFICIENT_PAYMENT
        assert len(schedule) == 0

    def test_interest_only_payment_is_insufficient(self):
        rate = to_monthly_rate(6.0)
        schedule = amortize(100000, rate, 100000 * rate)

        assert schedule.error.kind == ErrorKind.INSUFFICIENT_PAYMENT

    def test_zero_rate_zero_payment_is_insufficient(self):
        schedule = amortize(100000, 0.0, 0.0)

        assert schedule.error.kind == ErrorKind.INSUFFICIENT_PAYMENT

    def test_truncated_at_ceiling(self):
        """Test that a barely-amortizing loan stops at the period ceiling."""
        # Interest is $1,000/month; one cent of principal at first
        schedule = amortize(100000, 0.01, 1000.01)

        assert schedule.ok
        assert schedule.truncated
        assert not schedule.fully_amortized
        assert len(schedule) == 600
        assert schedule.final_balance > 0

    def test_custom_max_periods(self):
        payment = calculate_monthly_payment(200000, 5.0, 360)

        schedule = amortize(200000, to_monthly_rate(5.0), payment, max_periods=12)

        assert len(schedule) == 12
        assert schedule.truncated

    def test_extra_payments_shorten_schedule(self):
        rate = to_monthly_rate(6.0)
        payment = calculate_monthly_payment(300000, 6.0, 360)

        regular = amortize(300000, rate, payment)
        accelerated = amortize(300000, rate, payment, extra_fn=lambda period: 500)

        assert len(accelerated) < len(regular)
        assert accelerated.total_interest < regular.total_interest
        assert accelerated.periods[0].extra == 500
        assert accelerated.final_balance == 0.0

    def test_extra_capped_at_balance(self):
        """Test a lump sum larger than the balance only pays what is owed."""
        payment = calculate_monthly_payment(10000, 5.0, 60)

        schedule = amortize(10000, to_monthly_rate(5.0), payment, extra_fn=lambda period: 1_000_000)

        assert len(schedule) == 1
        assert schedule.periods[0].principal == pytest.approx(10000)
        assert schedule.periods[0].balance == 0.0

    def test_negative_extra_ignored(self):
        rate = to_monthly_rate(5.0)
        payment = calculate_monthly_payment(100000, 5.0, 120)

        schedule = amortize(100000, rate, payment, extra_fn=lambda period: -250)

        assert len(schedule) == 120
        assert schedule.total_extra == 0.0

    @pytest.mark.parametrize('principal,rate,field', [
        (0, 0.005, 'principal'),
        (-1000, 0.005, 'principal'),
        (math.nan, 0.005, 'principal'),
        (100000, -0.001, 'monthly_rate'),
    ])
    def test_invalid_inputs(self, principal, rate, field):
        schedule = amortize(principal, rate, 5000)

        assert schedule.error.kind == ErrorKind.INVALID_RANGE
        assert schedule.error.field == field
        assert len(schedule) == 0

    def test_calendar_labels(self):
        payment = calculate_monthly_payment(100000, 5.0, 120)

        schedule = amortize(100000, to_monthly_rate(5.0), payment, start_date='2027-01')

        assert schedule.periods[0].label == 'Jan 2027'
        assert schedule.periods[12].label == 'Jan 2028'

    def test_default_labels(self):
        payment = calculate_monthly_payment(100000, 5.0, 120)

        schedule = amortize(100000, to_monthly_rate(5.0), payment)

        assert schedule.periods[0].label == 'Month 1'

    def test_invalid_start_date(self):
        schedule = amortize(100000, 0.004, 2000, start_date='not-a-date')

        assert schedule.error.kind == ErrorKind.INVALID_RANGE
        assert schedule.error.field == 'start_date'

    def test_idempotent(self):
        rate = to_monthly_rate(6.75)
        payment = calculate_monthly_payment(520000, 6.75, 360)

        first = amortize(520000, rate, payment, extra_fn=lambda period: 100)
        second = amortize(520000, rate, payment, extra_fn=lambda period: 100)

        assert first == second

    def test_to_dataframe(self):
        payment = calculate_monthly_payment(200000, 5.0, 180)
        df = amortize(200000, to_monthly_rate(5.0), payment).to_dataframe()

        assert len(df) == 180
        assert list(df.columns[:7]) == ['period', 'date', 'payment', 'principal', 'interest', 'extra', 'balance']
        assert df.iloc[-1]['balance'] == 0.0

    def test_interest_share(self):
        payment = calculate_monthly_payment(120000, 0.0, 120)
        schedule = amortize(120000, 0.0, payment)

        assert schedule.interest_share == 0.0


class TestSolveTerm:
    """Tests for solving the term from a target payment."""

    def test_matches_level_payment(self):
        """Test that the level payment solves back to the original term."""
        payment = calculate_monthly_payment(300000, 6.5, 360)

        solution = solve_term(300000, 6.5, payment)

        assert solution.ok
        assert solution.term_months == pytest.approx(360, abs=1e-6)
        assert solution.term_years == pytest.approx(30, abs=1e-6)
        assert len(solution.schedule) == 360

    def test_fractional_term(self):
        solution = solve_term(500000, 6.5, 3500)

        assert 270 < solution.term_months < 280
        assert abs(len(solution.schedule) - solution.term_months) < 1
        assert solution.total_interest == pytest.approx(solution.total_paid - 500000, abs=0.01)

    def test_zero_rate(self):
        solution = solve_term(120000, 0.0, 1000)

        assert solution.term_months == 120
        assert len(solution.schedule) == 120

    def test_payment_too_low(self):
        solution = solve_term(500000, 6.5, 2000)

        assert not solution.ok
        assert solution.error.kind == ErrorKind.INSUFFICIENT_PAYMENT
        assert solution.term_months == 0.0
        assert len(solution.schedule) == 0


class TestYearlySummary:
    """Tests for yearly aggregation."""

    def test_one_row_per_year(self):
        payment = calculate_monthly_payment(300000, 6.0, 360)
        schedule = amortize(300000, to_monthly_rate(6.0), payment)

        yearly = yearly_summary(schedule)

        assert len(yearly) == 30
        assert yearly.iloc[-1]['balance'] == 0.0
        assert abs(yearly.iloc[-1]['cumulative_principal'] - 300000) < 1.0

    def test_partial_final_year(self):
        solution = solve_term(500000, 6.5, 3500)

        yearly = yearly_summary(solution.schedule)

        assert len(yearly) == math.ceil(len(solution.schedule) / 12)

    def test_empty_schedule(self):
        schedule = amortize(500000, to_monthly_rate(6.5), 2000)

        assert yearly_summary(schedule).empty
