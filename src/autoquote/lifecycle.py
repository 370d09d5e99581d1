"""Summary: Quote status and payment state machine.

Importance: Keeps every status change in one place for the UI layer and the expiry sweep.
Alternatives: Let each caller mutate status fields directly.
"""

from __future__ import annotations

import logging
import re
from dataclasses import replace
from datetime import date, timedelta

from autoquote.models import PAYMENT_STATUSES, QUOTE_STATUSES, Quote


logger = logging.getLogger(__name__)

STATUS_TRANSITIONS: dict[str, frozenset[str]] = {
    "draft": frozenset({"sent"}),
    "sent": frozenset({"accepted", "rejected", "expired"}),
    "accepted": frozenset(),
    "rejected": frozenset(),
    "expired": frozenset(),
}

PAYMENT_TRANSITIONS: dict[str, frozenset[str]] = {
    "unpaid": frozenset({"partial", "paid"}),
    "partial": frozenset({"partial", "paid"}),
    "paid": frozenset({"unpaid"}),
}


class TransitionError(ValueError):
    """Raised for an illegal transition when strict checking is requested."""

    def __init__(self, kind: str, current: str, target: str) -> None:
        super().__init__(f"Illegal {kind} transition: {current} -> {target}")
        self.kind = kind
        self.current = current
        self.target = target


def is_legal_status_transition(current: str, target: str) -> bool:
    """Summary: Check a quote status change against the transition table.

    Importance: Lets callers surface illegal changes without applying them.
    Alternatives: Encode transitions as methods on the Quote class.
    """

    return target in STATUS_TRANSITIONS.get(current, frozenset())


def is_legal_payment_transition(current: str, target: str) -> bool:
    return target in PAYMENT_TRANSITIONS.get(current, frozenset())


def change_status(quote: Quote, target: str, strict: bool = False) -> Quote:
    """Summary: Move a quote to a new status.

    Importance: Single entry point for user-initiated status changes.
    Alternatives: Reject every transition missing from the table.
    """

    if target not in QUOTE_STATUSES:
        raise ValueError(f"Unknown quote status: {target}")
    if quote.status == target:
        return quote
    if not is_legal_status_transition(quote.status, target):
        if strict:
            raise TransitionError("status", quote.status, target)
        logger.warning(
            "Applying unchecked status transition %s -> %s for quote %s.",
            quote.status,
            target,
            quote.id,
        )
    return replace(quote, status=target)


def update_payment(
    quote: Quote,
    target: str,
    amount: float | None = None,
    today: date | None = None,
    strict: bool = False,
) -> Quote:
    """Summary: Apply a payment sub-state change to an accepted quote.

    Importance: Keeps paid amount and paid date consistent with the payment status.
    Alternatives: Store payments as separate ledger rows.
    """

    if target not in PAYMENT_STATUSES:
        raise ValueError(f"Unknown payment status: {target}")
    if amount is not None and amount < 0:
        raise ValueError("Payment amount cannot be negative")
    if target == "partial" and amount is None:
        raise ValueError("A partial payment needs an amount")
    current = quote.effective_payment_status
    legal = quote.status == "accepted" and (
        current == target == "unpaid" or is_legal_payment_transition(current, target)
    )
    if not legal:
        if strict:
            raise TransitionError("payment", current, target)
        logger.warning(
            "Applying unchecked payment transition %s -> %s for quote %s (status %s).",
            current,
            target,
            quote.id,
            quote.status,
        )
    today = today or date.today()
    if target == "unpaid":
        return replace(quote, payment_status="unpaid", paid_amount=0.0, paid_date=None)
    if target == "partial":
        return replace(quote, payment_status="partial", paid_amount=amount)
    return replace(
        quote,
        payment_status="paid",
        paid_amount=amount if amount is not None else quote.total(),
        paid_date=quote.paid_date or today,
    )


def record_payment_amount(quote: Quote, amount: float, today: date | None = None) -> Quote:
    """Summary: Translate a received amount into a partial or full payment.

    Importance: Mirrors how users type in what the client actually paid.
    Alternatives: Require users to pick the payment status explicitly.
    """

    if amount <= 0:
        raise ValueError("Payment amount must be positive")
    total = quote.total()
    if amount >= total:
        return update_payment(quote, "paid", amount=total, today=today)
    return update_payment(quote, "partial", amount=amount, today=today)


def is_lapsed(quote: Quote, today: date) -> bool:
    return quote.status == "sent" and quote.expiry_date is not None and quote.expiry_date < today


def expire_overdue_quotes(quotes: list[Quote], today: date | None = None) -> list[Quote]:
    """Summary: Mark sent quotes past their expiry date as expired.

    Importance: The only automatic transition; safe to re-run on the same data.
    Alternatives: Compute expiry lazily when displaying quotes.
    """

    today = today or date.today()
    return [replace(quote, status="expired") if is_lapsed(quote, today) else quote for quote in quotes]


def calculate_expiry_date(issue_date: date, days: int = 30) -> date:
    return issue_date + timedelta(days=days)


def next_quote_number(quotes: list[Quote], year: int, prefix: str = "PRV") -> str:
    """Summary: Generate the next sequential quote number for a year.

    Importance: Produces human-friendly numbers like PRV-2026-007.
    Alternatives: Use opaque IDs as quote numbers.
    """

    pattern = re.compile(rf"^{re.escape(prefix)}-{year}-(\d+)$")
    highest = 0
    for quote in quotes:
        match = pattern.match(quote.number)
        if match:
            highest = max(highest, int(match.group(1)))
    return f"{prefix}-{year}-{highest + 1:03d}"
