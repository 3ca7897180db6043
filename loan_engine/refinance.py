"""Refinance comparison and break-even analysis."""

from dataclasses import dataclass, field
from typing import List, Optional

import pandas as pd

from .amortization import level_payment, to_monthly_rate
from .errors import CalculationError, non_finite_result
from .validation import first_error, require_non_negative, require_positive


@dataclass
class RefinanceInputs:
    """An existing loan and the proposed replacement.

    The new loan re-borrows the same outstanding balance.
    """

    current_balance: float
    current_rate: float  # annual percent
    current_remaining_years: float
    new_rate: float  # annual percent
    new_term_years: float
    closing_costs: float = 0.0

    @property
    def current_remaining_months(self) -> int:
        return int(round(self.current_remaining_years * 12))

    @property
    def new_term_months(self) -> int:
        return int(round(self.new_term_years * 12))


@dataclass
class RefinanceResult:
    """Payment and lifetime comparison of keeping vs. refinancing."""

    current_payment: float = 0.0
    new_payment: float = 0.0
    current_total_paid: float = 0.0
    new_total_paid: float = 0.0
    current_total_interest: float = 0.0
    new_total_interest: float = 0.0
    closing_costs: float = 0.0
    break_even_months: Optional[float] = None  # None: never breaks even
    recommendation: str = ""
    error: Optional[CalculationError] = None
    notices: List[CalculationError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def monthly_savings(self) -> float:
        """Positive when the new payment is lower."""
        return self.current_payment - self.new_payment

    @property
    def lifetime_savings(self) -> float:
        return self.current_total_paid - self.new_total_paid - self.closing_costs

    @property
    def breaks_even(self) -> bool:
        return self.break_even_months is not None


def validate_refinance_inputs(inputs: RefinanceInputs) -> Optional[CalculationError]:
    return first_error(
        require_positive(inputs.current_balance, 'current_balance'),
        require_non_negative(inputs.current_rate, 'current_rate'),
        require_positive(inputs.current_remaining_years, 'current_remaining_years'),
        require_non_negative(inputs.new_rate, 'new_rate'),
        require_positive(inputs.new_term_years, 'new_term_years'),
        require_non_negative(inputs.closing_costs, 'closing_costs'),
    ) or first_error(
        require_positive(inputs.current_remaining_months, 'current_remaining_years'),
        require_positive(inputs.new_term_months, 'new_term_years'),
    )


def calculate_refinance(inputs: RefinanceInputs) -> RefinanceResult:
    """Compare the remaining payments on the current loan to a new loan.

    Args:
        inputs: Current balance and terms plus the proposed rate, term and
            closing costs

    Returns:
        RefinanceResult with signed monthly and lifetime savings
    """
    error = validate_refinance_inputs(inputs)
    if error is not None:
        return RefinanceResult(error=error)

    balance = inputs.current_balance
    current_months = inputs.current_remaining_months
    new_months = inputs.new_term_months

    current_payment, current_fallback = level_payment(balance, to_monthly_rate(inputs.current_rate), current_months)
    new_payment, new_fallback = level_payment(balance, to_monthly_rate(inputs.new_rate), new_months)

    notices = []
    if current_fallback:
        notices.append(non_finite_result('current_payment'))
    if new_fallback:
        notices.append(non_finite_result('new_payment'))

    current_total = current_payment * current_months
    new_total = new_payment * new_months

    monthly_savings = current_payment - new_payment
    if monthly_savings > 0:
        break_even_months = inputs.closing_costs / monthly_savings
    else:
        break_even_months = None

    lifetime_savings = current_total - new_total - inputs.closing_costs

    return RefinanceResult(
        current_payment=current_payment,
        new_payment=new_payment,
        current_total_paid=current_total,
        new_total_paid=new_total,
        current_total_interest=current_total - balance,
        new_total_interest=new_total - balance,
        closing_costs=inputs.closing_costs,
        break_even_months=break_even_months,
        recommendation=_get_recommendation(break_even_months, current_months, lifetime_savings),
        notices=notices,
    )


def _get_recommendation(break_even_months: Optional[float], remaining_months: int, lifetime_savings: float) -> str:
    """Generate a recommendation based on the analysis."""
    if break_even_months is None:
        return "Not recommended: Monthly payment would increase with no monthly savings."

    if break_even_months > remaining_months:
        return f"Not recommended: Break-even ({break_even_months:.0f} months) exceeds remaining term ({remaining_months} months)."

    if lifetime_savings < 0:
        return (
            f"Lower payment, higher lifetime cost: breaks even in {break_even_months:.0f} months "
            f"but costs ${-lifetime_savings:,.0f} more over the life of the loan."
        )

    if break_even_months <= 12:
        return f"Strongly recommended: Quick break-even in {break_even_months:.0f} months with ${lifetime_savings:,.0f} total savings."

    if break_even_months <= 36:
        return f"Recommended: Reasonable break-even in {break_even_months:.0f} months with ${lifetime_savings:,.0f} total savings."

    return f"Consider carefully: Break-even in {break_even_months:.0f} months. Beneficial if you stay in the home long enough."


def generate_break_even_data(inputs: RefinanceInputs, months_to_show: int = 120) -> pd.DataFrame:
    """Cumulative cost of keeping vs. refinancing, month by month.

    The refinance path starts at the closing costs.
    """
    columns = ['month', 'current_cumulative', 'new_cumulative', 'savings']
    comparison = calculate_refinance(inputs)
    if not comparison.ok:
        return pd.DataFrame(columns=columns)

    data = []
    current_cumulative = 0.0
    new_cumulative = comparison.closing_costs

    for month in range(1, months_to_show + 1):
        if month <= inputs.current_remaining_months:
            current_cumulative += comparison.current_payment

        if month <= inputs.new_term_months:
            new_cumulative += comparison.new_payment

        data.append({
            'month': month,
            'current_cumulative': round(current_cumulative, 2),
            'new_cumulative': round(new_cumulative, 2),
            'savings': round(current_cumulative - new_cumulative, 2),
        })

    return pd.DataFrame(data, columns=columns)


def compare_refinance_options(options: List[RefinanceInputs]) -> pd.DataFrame:
    """Compare multiple refinance options side by side."""
    results = []

    for i, option in enumerate(options):
        comparison = calculate_refinance(option)
        results.append({
            'option': i + 1,
            'rate': option.new_rate,
            'term_years': option.new_term_years,
            'new_payment': round(comparison.new_payment, 2),
            'monthly_savings': round(comparison.monthly_savings, 2),
            'break_even_months': (
                round(comparison.break_even_months, 1) if comparison.breaks_even else None
            ),
            'lifetime_savings': round(comparison.lifetime_savings, 2),
            'closing_costs': option.closing_costs,
            'recommendation': comparison.recommendation if comparison.ok else str(comparison.error),
        })

    return pd.DataFrame(results)
