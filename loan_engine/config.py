"""Engine limits and underwriting policy constants."""

from dataclasses import dataclass

# Safety ceiling on schedule length (50 years of monthly payments)
MAX_PERIODS = 600

# Balances at or below one cent count as paid off
BALANCE_EPSILON = 0.01


@dataclass(frozen=True)
class UnderwritingPolicy:
    """Policy constants used by the purchase and affordability calculators.

    Real guidelines vary by program and jurisdiction, so callers can pass
    their own policy instead of the defaults.
    """

    max_dti: float = 0.43  # back-end debt-to-income ceiling
    tax_insurance_rate: float = 0.015  # annual tax + insurance loading, as share of loan
    government_upfront_fee: float = 0.0175  # capitalized into the loan
    government_mi_rate: float = 0.0055  # annual, applies regardless of LTV
    mi_ltv_threshold: float = 0.80  # conventional MI above this LTV
    max_periods: int = MAX_PERIODS


DEFAULT_POLICY = UnderwritingPolicy()
