"""Maximum affordable loan and price from income and debts."""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from .amortization import level_payment, to_monthly_rate
from .config import DEFAULT_POLICY, UnderwritingPolicy
from .errors import CalculationError, non_finite_result
from .validation import first_error, require_non_negative, require_positive

logger = logging.getLogger(__name__)


@dataclass
class AffordabilityInputs:
    annual_income: float  # gross
    monthly_debts: float
    down_payment: float
    annual_rate: float  # percent
    term_years: int

    @property
    def monthly_income(self) -> float:
        return self.annual_income / 12

    @property
    def term_months(self) -> int:
        return int(round(self.term_years * 12))


@dataclass
class AffordabilityResult:
    """Housing budget under the back-end DTI ceiling and the loan it supports."""

    back_end_ceiling: float = 0.0  # max total monthly debt
    max_housing_payment: float = 0.0  # ceiling less existing debts
    max_loan_amount: float = 0.0
    max_purchase_price: float = 0.0
    debt_to_income: float = 0.0  # percent
    estimated_principal_and_interest: float = 0.0
    estimated_tax_and_insurance: float = 0.0
    error: Optional[CalculationError] = None
    notices: List[CalculationError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None


def loan_constant(monthly_rate: float, num_payments: int) -> float:
    """Payment per dollar borrowed: r(1+r)^n / ((1+r)^n - 1)."""
    factor, _ = level_payment(1.0, monthly_rate, num_payments)
    return factor


def calculate_affordability(
    inputs: AffordabilityInputs,
    policy: UnderwritingPolicy = DEFAULT_POLICY,
) -> AffordabilityResult:
    """Calculate maximum affordable home price.

    The whole back-end ceiling, less existing debts, is treated as the
    housing budget. Taxes and insurance are approximated as a flat annual
    share of the loan (policy.tax_insurance_rate).

    The reported debt_to_income is the ceiling itself, so it always equals
    policy.max_dti as a percentage.
    """
    error = first_error(
        require_positive(inputs.annual_income, 'annual_income'),
        require_non_negative(inputs.monthly_debts, 'monthly_debts'),
        require_non_negative(inputs.down_payment, 'down_payment'),
        require_non_negative(inputs.annual_rate, 'annual_rate'),
        require_positive(inputs.term_years, 'term_years'),
    ) or require_positive(inputs.term_months, 'term_years')
    if error is not None:
        return AffordabilityResult(error=error)

    monthly_income = inputs.monthly_income
    back_end_ceiling = policy.max_dti * monthly_income
    available = max(0.0, back_end_ceiling - inputs.monthly_debts)

    loan_factor, used_fallback = level_payment(1.0, to_monthly_rate(inputs.annual_rate), inputs.term_months)
    notices = [non_finite_result('max_loan_amount')] if used_fallback else []
    tax_insurance_factor = policy.tax_insurance_rate / 12

    max_loan = available / (loan_factor + tax_insurance_factor)

    logger.debug(
        "Affordability: ceiling=%.2f budget=%.2f loan=%.2f",
        back_end_ceiling, available, max_loan,
    )

    return AffordabilityResult(
        back_end_ceiling=back_end_ceiling,
        max_housing_payment=available,
        max_loan_amount=max_loan,
        max_purchase_price=max_loan + inputs.down_payment,
        debt_to_income=back_end_ceiling / monthly_income * 100,
        estimated_principal_and_interest=max_loan * loan_factor,
        estimated_tax_and_insurance=max_loan * tax_insurance_factor,
        notices=notices,
    )
