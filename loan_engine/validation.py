"""Input range checks shared by the calculators.

Each check returns None when the value is acceptable, otherwise a
CalculationError describing the first problem found.
"""

from typing import Optional

import numpy as np

from .errors import CalculationError, invalid_range


def _is_number(value) -> bool:
    try:
        return bool(np.isfinite(value))
    except TypeError:
        return False


def require_positive(value: float, field: str) -> Optional[CalculationError]:
    if not _is_number(value):
        return invalid_range(field, f"{field} must be a finite number.")
    if value <= 0:
        return invalid_range(field, f"{field} must be greater than zero (got {value}).")
    return None


def require_non_negative(value: float, field: str) -> Optional[CalculationError]:
    if not _is_number(value):
        return invalid_range(field, f"{field} must be a finite number.")
    if value < 0:
        return invalid_range(field, f"{field} cannot be negative (got {value}).")
    return None


def require_at_most(value: float, limit: float, field: str, limit_name: str) -> Optional[CalculationError]:
    """Check value <= limit. Assumes value has already passed a finiteness check."""
    if value > limit:
        return invalid_range(field, f"{field} ({value}) cannot exceed {limit_name} ({limit}).")
    return None


def first_error(*checks: Optional[CalculationError]) -> Optional[CalculationError]:
    """Return the first non-None check result."""
    for check in checks:
        if check is not None:
            return check
    return None


def require_finite(value: float, field: str) -> Optional[CalculationError]:
    if not _is_number(value):
        return invalid_range(field, f"{field} must be a finite number.")
    return None
