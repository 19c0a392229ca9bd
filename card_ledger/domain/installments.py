"""Installment plan generation for credit card purchases"""

from datetime import date
from typing import List

from card_ledger.domain.exceptions import InvalidInputError, InvalidInstallmentCountError
from card_ledger.domain.models import Installment, InstallmentSplit
from card_ledger.utils.date_utils import add_months

MIN_INSTALLMENTS = 2
MAX_INSTALLMENTS = 24


def split_installments(
    amount_cents: int,
    num_installments: int,
    first_installment_date: date,
    max_installments: int = MAX_INSTALLMENTS,
) -> InstallmentSplit:
    """
    Split a purchase into monthly installments.

    Requirements:
    - Between 2 and max_installments slices
    - One calendar month apart, keeping the first installment's day
      (clamped to shorter months)
    - Last installment absorbs the rounding remainder so the slices sum
      to the purchase total exactly

    Example:
        $100.00 in 3 → [$33.33, $33.33, $33.34]
        10000 cents // 3 = 3333 base, remainder 1
        Last installment: 3333 + 1 = 3334
    """
    if not MIN_INSTALLMENTS <= num_installments <= max_installments:
        raise InvalidInstallmentCountError(
            f"Installment count must be between {MIN_INSTALLMENTS} and {max_installments}"
        )
    if amount_cents <= 0:
        raise InvalidInputError("Amount must be greater than zero")
    if amount_cents < num_installments:
        raise InvalidInputError("Amount is too small to split into the requested installments")

    base_amount = amount_cents // num_installments
    remainder = amount_cents - base_amount * num_installments

    installments: List[Installment] = []
    for i in range(num_installments):
        # Last installment absorbs remainder to ensure exact total
        amount = base_amount + (remainder if i == num_installments - 1 else 0)

        installments.append(
            Installment(
                number=i + 1,
                count=num_installments,
                purchase_date=add_months(first_installment_date, i),
                amount_cents=amount,
            )
        )

    return InstallmentSplit(
        total_cents=amount_cents,
        base_cents=base_amount,
        remainder_cents=remainder,
        count=num_installments,
        installments=installments,
    )
