"""Summary: Domain model dataclasses for AutoQuote.

Importance: Defines the quote, rule, log and reminder entities shared by every layer.
Alternatives: Use Pydantic models or ORM classes directly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date


QUOTE_STATUSES = ("draft", "sent", "accepted", "rejected", "expired")
PAYMENT_STATUSES = ("unpaid", "partial", "paid")

RULE_CHANNELS = ("email", "internal", "both")
LOG_CHANNELS = ("email", "internal")
LOG_STATUSES = ("sent", "failed", "pending", "skipped")
TARGET_AUDIENCES = ("self", "client", "team")

TRIGGER_QUOTE_EXPIRING = "quote_expiring"
TRIGGER_QUOTE_EXPIRED = "quote_expired"
TRIGGER_FOLLOW_UP = "follow_up"
TRIGGER_PAYMENT_OVERDUE = "payment_overdue"
TRIGGER_QUOTE_ACCEPTED = "quote_accepted"
TRIGGER_PAYMENT_RECEIVED = "payment_received"
TRIGGER_WEEKLY_REPORT = "weekly_report"

AUTOMATION_TRIGGERS = (
    TRIGGER_QUOTE_EXPIRING,
    TRIGGER_QUOTE_EXPIRED,
    TRIGGER_FOLLOW_UP,
    TRIGGER_PAYMENT_OVERDUE,
    TRIGGER_QUOTE_ACCEPTED,
    TRIGGER_PAYMENT_RECEIVED,
    TRIGGER_WEEKLY_REPORT,
)
EVENT_TRIGGERS = (TRIGGER_QUOTE_ACCEPTED, TRIGGER_PAYMENT_RECEIVED)

URGENCY_ORDER = {"high": 0, "medium": 1, "low": 2}


@dataclass(frozen=True)
class ClientInfo:
    """Summary: Client contact details printed on a quote.

    Importance: Personalizes reminders and rendered notification text.
    Alternatives: Reference a separate client table by ID.
    """

    name: str = ""
    company: str = ""
    email: str = ""

    def display_name(self, fallback: str = "Cliente") -> str:
        return self.company or self.name or fallback


@dataclass(frozen=True)
class LineItem:
    """Summary: Single priced line on a quote.

    Importance: Drives quote totals for payment reminders and reports.
    Alternatives: Store only a precomputed quote total.
    """

    description: str
    quantity: float
    unit_price: float
    tax_rate: float = 0.0

    def gross_amount(self) -> float:
        return self.quantity * self.unit_price * (1 + self.tax_rate / 100)


@dataclass(frozen=True)
class Quote:
    """Summary: Represents a quote document and its sales lifecycle state.

    Importance: Central entity read by the rule engine and reminder deriver.
    Alternatives: Split lifecycle state into a separate table.
    """

    id: str
    number: str
    date: date | None
    expiry_date: date | None
    client: ClientInfo = field(default_factory=ClientInfo)
    items: list[LineItem] = field(default_factory=list)
    status: str = "draft"
    payment_status: str | None = None
    paid_amount: float | None = None
    paid_date: date | None = None
    notes: str = ""

    @property
    def client_name(self) -> str:
        return self.client.display_name()

    @property
    def effective_payment_status(self) -> str:
        return self.payment_status or "unpaid"

    def total(self) -> float:
        """Summary: Compute the gross quote total including tax.

        Importance: Feeds overdue notices, payment tracking and weekly revenue.
        Alternatives: Persist totals alongside line items.
        """

        return sum(item.gross_amount() for item in self.items)


@dataclass(frozen=True)
class AutomationRule:
    """Summary: User-authored automation rule configuration.

    Importance: Declares what the engine watches for and how the action is delivered.
    Alternatives: Hardcode reminder behavior in the engine.
    """

    id: str
    name: str
    trigger: str
    enabled: bool = True
    delay_days: int = 0
    channel: str = "internal"
    target_audience: str = "self"
    description: str = ""
    email_template: str | None = None
    run_count: int = 0
    last_run: str | None = None


@dataclass(frozen=True)
class AutomationLog:
    """Summary: Immutable record of an action decided by the automation engine.

    Importance: Doubles as the idempotency ledger through its deterministic ID.
    Alternatives: Track fired rules in a separate dedup table.
    """

    id: str
    rule_id: str
    rule_name: str
    action: str
    status: str
    channel: str
    timestamp: str
    quote_id: str | None = None
    quote_number: str | None = None
    client_name: str | None = None
    message: str | None = None


@dataclass(frozen=True)
class Reminder:
    """Summary: Ephemeral UI reminder derived from the live quote list.

    Importance: Keeps dashboard badges current without touching the log.
    Alternatives: Persist reminders and expire them explicitly.
    """

    id: str
    quote_id: str
    quote_number: str
    client_name: str
    type: str
    urgency: str
    message: str
    date: date | None


@dataclass(frozen=True)
class RunState:
    """Summary: Day-gate marker for the automation pass.

    Importance: Makes the once-per-day limiter explicit instead of process-wide state.
    Alternatives: Keep a module-level last-run variable.
    """

    last_run_date: date | None = None
