"""Extra payment and payoff strategy calculations."""

import math
from dataclasses import dataclass, field
from typing import Optional

import pandas as pd

from .amortization import AmortizationSchedule
from .config import DEFAULT_POLICY, UnderwritingPolicy
from .errors import CalculationError
from .purchase import ExtraPaymentParams, LoanTerms, calculate_purchase


@dataclass
class PayoffResult:
    """Effect of extra payments compared with the regular schedule."""

    original_term_months: int = 0
    new_term_months: int = 0
    original_total_interest: float = 0.0
    new_total_interest: float = 0.0
    total_extra_paid: float = 0.0
    schedule: AmortizationSchedule = field(default_factory=AmortizationSchedule)
    error: Optional[CalculationError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def interest_saved(self) -> float:
        return self.original_total_interest - self.new_total_interest

    @property
    def months_eliminated(self) -> int:
        return self.original_term_months - self.new_term_months

    @property
    def years_saved(self) -> float:
        return round(self.months_eliminated / 12, 1)


def calculate_accelerated_payoff(
    terms: LoanTerms,
    extra: ExtraPaymentParams,
    policy: UnderwritingPolicy = DEFAULT_POLICY,
) -> PayoffResult:
    """Compare the regular schedule against one with extra payments.

    Months eliminated are measured against the contractual term
    (term_years * 12), not the length of the regular schedule.
    """
    baseline = calculate_purchase(terms, policy=policy)
    if not baseline.ok:
        return PayoffResult(error=baseline.error)

    accelerated = calculate_purchase(terms, extra, policy=policy)
    if not accelerated.ok:
        return PayoffResult(error=accelerated.error)

    # Nothing financed means there is no term to shorten
    original_term_months = terms.term_months if baseline.financed_amount > 0 else 0

    return PayoffResult(
        original_term_months=original_term_months,
        new_term_months=len(accelerated.schedule),
        original_total_interest=baseline.schedule.total_interest,
        new_total_interest=accelerated.schedule.total_interest,
        total_extra_paid=accelerated.schedule.total_extra,
        schedule=accelerated.schedule,
    )


def compare_payoff_strategies(
    terms: LoanTerms,
    extra_amounts=(100, 200, 500, 1000),
    policy: UnderwritingPolicy = DEFAULT_POLICY,
) -> pd.DataFrame:
    """Compare common extra monthly payment amounts side by side."""
    baseline = calculate_purchase(terms, policy=policy)
    if not baseline.ok:
        return pd.DataFrame()

    strategies = [{
        'strategy': 'Original Schedule',
        'extra_monthly': 0.0,
        'term_months': len(baseline.schedule),
        'total_interest': baseline.schedule.total_interest,
        'interest_saved': 0.0,
        'months_saved': 0,
    }]

    for amount in extra_amounts:
        result = calculate_accelerated_payoff(terms, ExtraPaymentParams(monthly_extra=amount), policy)
        strategies.append({
            'strategy': f'+${amount:,.0f}/month',
            'extra_monthly': float(amount),
            'term_months': result.new_term_months,
            'total_interest': result.new_total_interest,
            'interest_saved': result.interest_saved,
            'months_saved': result.months_eliminated,
        })

    # One extra payment per year, spread monthly
    monthly_equivalent = baseline.principal_and_interest / 12
    result = calculate_accelerated_payoff(terms, ExtraPaymentParams(monthly_extra=monthly_equivalent), policy)
    strategies.append({
        'strategy': '1 Extra Payment/Year',
        'extra_monthly': monthly_equivalent,
        'term_months': result.new_term_months,
        'total_interest': result.new_total_interest,
        'interest_saved': result.interest_saved,
        'months_saved': result.months_eliminated,
    })

    df = pd.DataFrame(strategies)
    df['total_interest'] = df['total_interest'].round(2)
    df['interest_saved'] = df['interest_saved'].round(2)
    df['extra_monthly'] = df['extra_monthly'].round(2)

    return df


def find_extra_for_target_payoff(
    terms: LoanTerms,
    target_months: int,
    policy: UnderwritingPolicy = DEFAULT_POLICY,
) -> Optional[float]:
    """Find the extra monthly payment needed to pay off in target months.

    Returns 0.0 if the target is not shorter than the term (or nothing is
    financed), None if the target is not achievable or the loan itself is
    invalid.
    """
    baseline = calculate_purchase(terms, policy=policy)
    if not baseline.ok:
        return None

    if target_months >= terms.term_months or baseline.financed_amount <= 0:
        return 0.0

    if target_months <= 0:
        return None

    # Paying the whole balance in month one always works
    low = 0.0
    high = baseline.financed_amount

    while high - low > 0.01:
        mid = (low + high) / 2
        result = calculate_accelerated_payoff(terms, ExtraPaymentParams(monthly_extra=mid), policy)

        if result.new_term_months > target_months:
            low = mid
        else:
            high = mid

    # Round up so the returned amount still meets the target
    return math.ceil(high * 100) / 100
