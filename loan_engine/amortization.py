"""Shared amortization primitive and closed-form payment/term solvers."""

import logging
import math
from dataclasses import dataclass, field
from typing import Callable, Iterator, List, Optional, Tuple

import numpy as np
import pandas as pd

from .config import BALANCE_EPSILON, MAX_PERIODS
from .errors import CalculationError, insufficient_payment, invalid_range
from .validation import first_error, require_finite, require_non_negative, require_positive

logger = logging.getLogger(__name__)

# Maps a 1-based period index to the extra principal paid in that period
ExtraPaymentFn = Callable[[int], float]

SCHEDULE_COLUMNS = ['period', 'date', 'payment', 'principal', 'interest', 'extra', 'balance']


@dataclass(frozen=True)
class Period:
    """One row of an amortization schedule."""

    period: int  # 1-indexed
    label: str  # e.g. "Jan 2027", or "Month 1" without a start date
    payment: float  # interest + principal actually paid
    interest: float
    principal: float  # includes extra
    extra: float
    balance: float  # remaining after this payment


@dataclass
class AmortizationSchedule:
    """Period-by-period breakdown of a loan.

    A schedule that hit the period ceiling with money still owed is marked
    ``truncated``. A schedule that could not be computed carries an ``error``
    and has no periods.
    """

    periods: List[Period] = field(default_factory=list)
    truncated: bool = False
    error: Optional[CalculationError] = None

    def __iter__(self) -> Iterator[Period]:
        return iter(self.periods)

    def __len__(self) -> int:
        return len(self.periods)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def fully_amortized(self) -> bool:
        return self.ok and not self.truncated

    @property
    def total_interest(self) -> float:
        return sum(p.interest for p in self.periods)

    @property
    def total_principal(self) -> float:
        return sum(p.principal for p in self.periods)

    @property
    def total_extra(self) -> float:
        return sum(p.extra for p in self.periods)

    @property
    def total_paid(self) -> float:
        return sum(p.payment for p in self.periods)

    @property
    def final_balance(self) -> float:
        return self.periods[-1].balance if self.periods else 0.0

    @property
    def interest_share(self) -> float:
        """Fraction of everything paid that went to interest."""
        total = self.total_paid
        return self.total_interest / total if total > 0 else 0.0

    def to_dataframe(self) -> pd.DataFrame:
        """Schedule as a DataFrame rounded to cents.

        Columns: period, date, payment, principal, interest, extra, balance,
        cumulative_interest, cumulative_principal.
        """
        columns = SCHEDULE_COLUMNS + ['cumulative_interest', 'cumulative_principal']
        if not self.periods:
            return pd.DataFrame(columns=columns)

        rows = []
        cumulative_interest = 0.0
        cumulative_principal = 0.0
        for p in self.periods:
            cumulative_interest += p.interest
            cumulative_principal += p.principal
            rows.append({
                'period': p.period,
                'date': p.label,
                'payment': round(p.payment, 2),
                'principal': round(p.principal, 2),
                'interest': round(p.interest, 2),
                'extra': round(p.extra, 2),
                'balance': round(p.balance, 2),
                'cumulative_interest': round(cumulative_interest, 2),
                'cumulative_principal': round(cumulative_principal, 2),
            })

        return pd.DataFrame(rows, columns=columns)


@dataclass
class TermSolution:
    """Result of solving for the number of payments at a fixed payment."""

    principal: float
    monthly_payment: float
    term_months: float = 0.0  # fractional; the schedule has ceil(term_months) rows
    schedule: AmortizationSchedule = field(default_factory=AmortizationSchedule)
    error: Optional[CalculationError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def term_years(self) -> float:
        return self.term_months / 12

    @property
    def total_paid(self) -> float:
        return self.schedule.total_paid

    @property
    def total_interest(self) -> float:
        return self.schedule.total_interest


def to_monthly_rate(annual_rate: float) -> float:
    """Convert an annual percentage rate (6.75) to a monthly decimal rate."""
    return annual_rate / 100 / 12


def level_payment(principal: float, monthly_rate: float, num_payments: int) -> Tuple[float, bool]:
    """Fixed payment that fully amortizes ``principal`` over ``num_payments``.

    M = P * [r(1+r)^n] / [(1+r)^n - 1]

    Returns (payment, used_fallback). When the closed form is not finite
    (overflow, or a rate so small that (1+r)^n == 1) the payment falls back to
    simple linear division and ``used_fallback`` is True.
    """
    if monthly_rate == 0:
        return principal / num_payments, False

    try:
        growth = (1 + monthly_rate) ** num_payments
        payment = principal * (monthly_rate * growth) / (growth - 1)
    except (OverflowError, ZeroDivisionError):
        payment = float('nan')

    if not np.isfinite(payment):
        logger.warning(
            "Level-payment formula not finite (principal=%s, monthly_rate=%s, n=%s); "
            "falling back to linear division",
            principal, monthly_rate, num_payments,
        )
        return principal / num_payments, True

    return payment, False


def calculate_monthly_payment(principal: float, annual_rate: float, term_months: int) -> float:
    """Standalone function for monthly payment calculation (annual rate in percent)."""
    payment, _ = level_payment(principal, to_monthly_rate(annual_rate), term_months)
    return payment


def _parse_start_date(start_date: Optional[str]) -> Tuple[Optional[pd.Period], Optional[CalculationError]]:
    if start_date is None:
        return None, None
    try:
        return pd.Period(start_date, freq='M'), None
    except (ValueError, TypeError):
        return None, invalid_range('start_date', f"start_date must be YYYY-MM (got {start_date!r}).")


def _label(start: Optional[pd.Period], period: int) -> str:
    if start is None:
        return f"Month {period}"
    return (start + (period - 1)).strftime('%b %Y')


def amortize(
    principal: float,
    monthly_rate: float,
    monthly_payment: float,
    max_periods: int = MAX_PERIODS,
    extra_fn: Optional[ExtraPaymentFn] = None,
    start_date: Optional[str] = None,
    term_periods: Optional[int] = None,
) -> AmortizationSchedule:
    """Simulate a loan period by period until it is paid off.

    Args:
        principal: Amount borrowed
        monthly_rate: Periodic rate as decimal (annual % / 100 / 12)
        monthly_payment: Scheduled payment, excluding extras
        max_periods: Safety ceiling on schedule length
        extra_fn: Optional extra principal for a given period
        start_date: Month of the first payment (YYYY-MM), for labels
        term_periods: Contractual number of payments; any balance left
            in that period is paid off with it

    Returns:
        AmortizationSchedule. If the payment does not exceed the first
        period's interest the schedule is empty and carries an
        INSUFFICIENT_PAYMENT error; nothing is iterated.
    """
    error = first_error(
        require_positive(principal, 'principal'),
        require_non_negative(monthly_rate, 'monthly_rate'),
        require_finite(monthly_payment, 'monthly_payment'),
        require_positive(max_periods, 'max_periods'),
    )
    if error is None and int(max_periods) < 1:
        error = invalid_range('max_periods', f"max_periods must be at least 1 (got {max_periods}).")
    start, date_error = _parse_start_date(start_date)
    error = error or date_error
    if error is not None:
        return AmortizationSchedule(error=error)

    first_interest = principal * monthly_rate
    if monthly_payment <= first_interest:
        logger.debug("Payment %.2f does not cover interest %.2f", monthly_payment, first_interest)
        return AmortizationSchedule(error=insufficient_payment(monthly_payment, first_interest))

    max_periods = int(max_periods)
    periods = []
    balance = principal
    period = 0

    while balance > 0 and period < max_periods:
        period += 1

        interest = balance * monthly_rate
        base_principal = min(balance, monthly_payment - interest)

        extra = max(0.0, extra_fn(period)) if extra_fn is not None else 0.0
        extra = min(extra, balance - base_principal)
        principal_paid = base_principal + extra

        # Fold sub-cent residue, or floating drift at the end of the term,
        # into the final payment
        if balance - principal_paid <= BALANCE_EPSILON or period == term_periods:
            principal_paid = balance

        balance -= principal_paid

        periods.append(Period(
            period=period,
            label=_label(start, period),
            payment=interest + principal_paid,
            interest=interest,
            principal=principal_paid,
            extra=extra,
            balance=max(0.0, balance),
        ))

    truncated = balance > 0
    if truncated:
        logger.warning(
            "Loan did not amortize within %d periods; remaining balance %.2f",
            max_periods, balance,
        )

    return AmortizationSchedule(periods=periods, truncated=truncated)


def solve_term(
    principal: float,
    annual_rate: float,
    monthly_payment: float,
    max_periods: int = MAX_PERIODS,
    start_date: Optional[str] = None,
) -> TermSolution:
    """Find how long it takes to repay ``principal`` at a fixed payment.

    n = -ln(1 - P*r/M) / ln(1 + r)
    """
    error = first_error(
        require_positive(principal, 'principal'),
        require_non_negative(annual_rate, 'annual_rate'),
        require_finite(monthly_payment, 'monthly_payment'),
    )
    if error is not None:
        return TermSolution(principal, monthly_payment, error=error)

    r = to_monthly_rate(annual_rate)
    interest_only = principal * r
    if monthly_payment <= interest_only:
        return TermSolution(
            principal, monthly_payment, error=insufficient_payment(monthly_payment, interest_only),
        )

    if r == 0:
        n = principal / monthly_payment
    else:
        n = float(-np.log1p(-interest_only / monthly_payment) / np.log1p(r))

    schedule = amortize(
        principal, r, monthly_payment, max_periods, start_date=start_date, term_periods=math.ceil(n),
    )
    return TermSolution(principal, monthly_payment, term_months=n, schedule=schedule, error=schedule.error)


def yearly_summary(schedule: AmortizationSchedule) -> pd.DataFrame:
    """Aggregate a schedule into one row per loan year."""
    columns = ['year', 'payment', 'principal', 'interest', 'extra', 'balance',
               'cumulative_principal', 'cumulative_interest']
    df = schedule.to_dataframe()
    if df.empty:
        return pd.DataFrame(columns=columns)

    df['year'] = ((df['period'] - 1) // 12) + 1
    yearly = df.groupby('year').agg({
        'payment': 'sum',
        'principal': 'sum',
        'interest': 'sum',
        'extra': 'sum',
        'balance': 'last',
    }).reset_index()

    yearly['cumulative_principal'] = yearly['principal'].cumsum()
    yearly['cumulative_interest'] = yearly['interest'].cumsum()

    return yearly[columns].round(2)
