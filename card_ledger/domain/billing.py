"""Billing-cycle rules: which invoice a purchase lands in and when it is due"""

from datetime import date, timedelta

from card_ledger.domain.exceptions import InvalidInputError
from card_ledger.domain.models import BillingCycle
from card_ledger.utils.date_utils import days_in_month, shift_month

OVERFLOW_POLICIES = ("clamp", "roll")


def validate_day_of_month(value: int, field_name: str) -> int:
    if not 1 <= value <= 31:
        raise InvalidInputError(f"{field_name} must be between 1 and 31")
    return value


def resolve_cycle(purchase_date: date, closing_day: int) -> BillingCycle:
    """
    Map a purchase date to the billing cycle of its invoice.

    A purchase made on or after the card's closing day belongs to the
    following month's invoice; anything earlier stays in the current month.

    Example:
        closing_day=10, purchase on 12 March → April invoice
        closing_day=10, purchase on 5 March → March invoice
    """
    validate_day_of_month(closing_day, "closing_day")
    if purchase_date.day >= closing_day:
        month, year = shift_month(purchase_date.month, purchase_date.year, 1)
        return BillingCycle(month=month, year=year)
    return BillingCycle(month=purchase_date.month, year=purchase_date.year)


def compute_due_date(month: int, year: int, due_day: int, policy: str = "clamp") -> date:
    """
    Build the invoice due date for a cycle.

    When due_day does not exist in the month (e.g. 31 in April):
    - clamp: use the last day of the month (30 April)
    - roll:  carry the surplus into the next month (1 May)
    """
    if policy not in OVERFLOW_POLICIES:
        raise ValueError(f"Unknown due day overflow policy: {policy}")

    validate_day_of_month(due_day, "due_day")
    last_day = days_in_month(year, month)
    if due_day <= last_day:
        return date(year, month, due_day)

    if policy == "clamp":
        return date(year, month, last_day)
    return date(year, month, 1) + timedelta(days=due_day - 1)
