"""CSV export of schedules, currency display and LoanTerms serialization."""

from pathlib import Path
from typing import Optional, Union

from .amortization import SCHEDULE_COLUMNS, AmortizationSchedule
from .purchase import LoanProgram, LoanTerms


def format_currency(value: float, decimals: int = 0) -> str:
    """Format a dollar amount for display, e.g. -1234.4 -> "-$1,234"."""
    sign = '-' if value < 0 else ''
    return f"{sign}${abs(value):,.{decimals}f}"


def schedule_to_csv(
    schedule: AmortizationSchedule,
    filepath: Optional[Union[str, Path]] = None,
) -> str:
    """Serialize a schedule as comma-separated rows.

    Columns: period, date, payment, principal, interest, extra, balance.
    Writes to ``filepath`` when given; always returns the CSV text.
    """
    df = schedule.to_dataframe()[SCHEDULE_COLUMNS]
    csv_text = df.to_csv(index=False, float_format='%.2f')

    if filepath is not None:
        with open(filepath, 'w', newline='') as f:
            f.write(csv_text)

    return csv_text


def loan_terms_to_dict(terms: LoanTerms) -> dict:
    """Convert LoanTerms to serializable dictionary."""
    return {
        'price': terms.price,
        'down_payment': terms.down_payment,
        'term_years': terms.term_years,
        'annual_rate': terms.annual_rate,
        'program': terms.program.value,
        'annual_property_tax': terms.annual_property_tax,
        'annual_insurance': terms.annual_insurance,
        'monthly_hoa': terms.monthly_hoa,
        'mortgage_insurance_rate': terms.mortgage_insurance_rate,
        'start_date': terms.start_date,
    }


def dict_to_loan_terms(data: dict) -> LoanTerms:
    """Convert dictionary to LoanTerms."""
    return LoanTerms(
        price=data['price'],
        down_payment=data['down_payment'],
        term_years=data['term_years'],
        annual_rate=data['annual_rate'],
        program=LoanProgram(data.get('program', 'conventional')),
        annual_property_tax=data.get('annual_property_tax', 0.0),
        annual_insurance=data.get('annual_insurance', 0.0),
        monthly_hoa=data.get('monthly_hoa', 0.0),
        mortgage_insurance_rate=data.get('mortgage_insurance_rate', 0.0),
        start_date=data.get('start_date'),
    )
