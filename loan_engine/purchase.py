"""Purchase loan calculator: monthly obligation and full schedule."""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from .amortization import AmortizationSchedule, amortize, level_payment, to_monthly_rate
from .config import DEFAULT_POLICY, UnderwritingPolicy
from .errors import CalculationError, non_finite_result
from .validation import (
    first_error,
    require_at_most,
    require_non_negative,
    require_positive,
)

logger = logging.getLogger(__name__)


class LoanProgram(Enum):
    CONVENTIONAL = "conventional"
    GOVERNMENT = "government"  # FHA-style: upfront fee plus flat MI


@dataclass
class LoanTerms:
    """Inputs for a home purchase."""

    price: float
    down_payment: float
    term_years: int
    annual_rate: float  # percent, e.g. 6.75
    program: LoanProgram = LoanProgram.CONVENTIONAL
    annual_property_tax: float = 0.0
    annual_insurance: float = 0.0
    monthly_hoa: float = 0.0
    mortgage_insurance_rate: float = 0.0  # annual percent, conventional only
    start_date: Optional[str] = None  # YYYY-MM of first payment

    @property
    def term_months(self) -> int:
        return int(round(self.term_years * 12))

    @property
    def base_loan(self) -> float:
        return self.price - self.down_payment


@dataclass
class ExtraPaymentParams:
    """Extra principal on top of the scheduled payment."""

    monthly_extra: float = 0.0
    one_time_extra: float = 0.0
    one_time_month: int = 1  # period receiving the one-time extra

    def amount_for(self, period: int) -> float:
        """Extra principal for a given 1-based period."""
        extra = self.monthly_extra
        if period == self.one_time_month:
            extra += self.one_time_extra
        return extra


@dataclass
class PurchaseResult:
    """Monthly obligation breakdown and amortization schedule."""

    financed_amount: float = 0.0
    upfront_fee: float = 0.0
    loan_to_value: float = 0.0
    principal_and_interest: float = 0.0
    monthly_tax: float = 0.0
    monthly_insurance: float = 0.0
    monthly_mortgage_insurance: float = 0.0
    monthly_hoa: float = 0.0
    schedule: AmortizationSchedule = field(default_factory=AmortizationSchedule)
    error: Optional[CalculationError] = None
    notices: List[CalculationError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def total_monthly_payment(self) -> float:
        return (
            self.principal_and_interest
            + self.monthly_tax
            + self.monthly_insurance
            + self.monthly_mortgage_insurance
            + self.monthly_hoa
        )

    @property
    def total_interest(self) -> float:
        return self.schedule.total_interest

    @property
    def num_payments(self) -> int:
        return len(self.schedule)


def validate_loan_terms(terms: LoanTerms, policy: UnderwritingPolicy = DEFAULT_POLICY) -> Optional[CalculationError]:
    error = first_error(
        require_positive(terms.price, 'price'),
        require_non_negative(terms.down_payment, 'down_payment'),
        require_positive(terms.term_years, 'term_years'),
        require_non_negative(terms.annual_rate, 'annual_rate'),
        require_non_negative(terms.annual_property_tax, 'annual_property_tax'),
        require_non_negative(terms.annual_insurance, 'annual_insurance'),
        require_non_negative(terms.monthly_hoa, 'monthly_hoa'),
        require_non_negative(terms.mortgage_insurance_rate, 'mortgage_insurance_rate'),
    )
    if error is not None:
        return error

    return first_error(
        require_at_most(terms.down_payment, terms.price, 'down_payment', 'price'),
        require_at_most(terms.term_months, policy.max_periods, 'term_years', 'maximum term in months'),
        require_positive(terms.term_months, 'term_years'),
    )


def validate_extra_payment(extra: ExtraPaymentParams) -> Optional[CalculationError]:
    return first_error(
        require_non_negative(extra.monthly_extra, 'monthly_extra'),
        require_non_negative(extra.one_time_extra, 'one_time_extra'),
        require_positive(extra.one_time_month, 'one_time_month'),
    )


def calculate_purchase(
    terms: LoanTerms,
    extra: Optional[ExtraPaymentParams] = None,
    policy: UnderwritingPolicy = DEFAULT_POLICY,
) -> PurchaseResult:
    """Calculate the monthly obligation and schedule for a purchase.

    Args:
        terms: Price, down payment, rate, term and cost inputs
        extra: Optional extra principal payments
        policy: Underwriting constants (upfront fee, MI rates, LTV threshold)

    Returns:
        PurchaseResult. Invalid inputs and payments that cannot cover interest
        are reported through ``error``; nothing is raised.
    """
    error = validate_loan_terms(terms, policy)
    if error is None and extra is not None:
        error = validate_extra_payment(extra)
    if error is not None:
        return PurchaseResult(error=error)

    base_loan = terms.base_loan
    upfront_fee = 0.0
    if terms.program == LoanProgram.GOVERNMENT:
        upfront_fee = base_loan * policy.government_upfront_fee
    financed = base_loan + upfront_fee

    ltv = base_loan / terms.price

    if terms.program == LoanProgram.GOVERNMENT:
        mortgage_insurance = financed * policy.government_mi_rate / 12
    elif ltv > policy.mi_ltv_threshold:
        mortgage_insurance = financed * terms.mortgage_insurance_rate / 100 / 12
    else:
        mortgage_insurance = 0.0

    result = PurchaseResult(
        financed_amount=financed,
        upfront_fee=upfront_fee,
        loan_to_value=financed / terms.price,
        monthly_tax=terms.annual_property_tax / 12,
        monthly_insurance=terms.annual_insurance / 12,
        monthly_mortgage_insurance=mortgage_insurance,
        monthly_hoa=terms.monthly_hoa,
    )

    # Paid in cash: nothing to amortize
    if financed <= 0:
        return result

    monthly_rate = to_monthly_rate(terms.annual_rate)
    payment, used_fallback = level_payment(financed, monthly_rate, terms.term_months)
    if used_fallback:
        result.notices.append(non_finite_result('principal_and_interest'))
    result.principal_and_interest = payment

    extra_fn = extra.amount_for if extra is not None else None
    result.schedule = amortize(
        financed,
        monthly_rate,
        payment,
        max_periods=policy.max_periods,
        extra_fn=extra_fn,
        start_date=terms.start_date,
        term_periods=terms.term_months,
    )
    result.error = result.schedule.error

    logger.debug(
        "Purchase: financed=%.2f P&I=%.2f total=%.2f periods=%d",
        financed, payment, result.total_monthly_payment, len(result.schedule),
    )
    return result
