"""Structured calculation errors returned by the calculators."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ErrorKind(Enum):
    """Categories of calculation failure."""
    INSUFFICIENT_PAYMENT = "insufficient_payment"  # payment does not cover first-period interest
    INVALID_RANGE = "invalid_range"  # input outside its domain
    NON_FINITE_RESULT = "non_finite_result"  # closed form produced NaN/inf


@dataclass(frozen=True)
class CalculationError:
    """A rejected (or flagged) computation."""

    kind: ErrorKind
    message: str
    field: Optional[str] = None

    def __str__(self) -> str:
        if self.field:
            return f"{self.kind.value} ({self.field}): {self.message}"
        return f"{self.kind.value}: {self.message}"


def insufficient_payment(payment: float, interest: float) -> CalculationError:
    """Error for a payment that never amortizes the loan."""
    return CalculationError(
        ErrorKind.INSUFFICIENT_PAYMENT,
        f"Payment of ${payment:,.2f} does not cover first-period interest of ${interest:,.2f}.",
        field="monthly_payment",
    )


def invalid_range(field: str, message: str) -> CalculationError:
    return CalculationError(ErrorKind.INVALID_RANGE, message, field=field)


def non_finite_result(field: str) -> CalculationError:
    """Notice that the payment formula was replaced by linear division."""
    return CalculationError(
        ErrorKind.NON_FINITE_RESULT,
        "Payment formula was not finite for these inputs; used principal / number of payments.",
        field=field,
    )
