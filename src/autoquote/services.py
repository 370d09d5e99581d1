"""Summary: Core application services for AutoQuote.

Importance: Orchestrates quote lifecycle changes, the daily automation pass and dashboard views.
Alternatives: Build a full service layer with dependency injection framework.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
import secrets
import sqlite3
from datetime import date, datetime, timezone

from autoquote import lifecycle
from autoquote.engine import AutomationEngine, EvaluationResult, apply_run_stats, cap_log
from autoquote.models import (
    LOG_STATUSES,
    QUOTE_STATUSES,
    TRIGGER_PAYMENT_RECEIVED,
    TRIGGER_QUOTE_ACCEPTED,
    AutomationLog,
    AutomationRule,
    ClientInfo,
    LineItem,
    Quote,
    Reminder,
)
from autoquote.reminders import derive_reminders
from autoquote.rule_catalog import default_rules, edit_rule, find_rule
from autoquote.storage.sqlite_store import SqliteStore


logger = logging.getLogger(__name__)


def sweep_expired_quotes(store: SqliteStore, quotes: list[Quote], today: date) -> list[Quote]:
    """Summary: Persist the sent -> expired transition for lapsed quotes.

    Importance: Shared by the daily pass and the explicit sweep command.
    Alternatives: Expire quotes lazily when they are displayed.
    """

    swept = lifecycle.expire_overdue_quotes(quotes, today)
    changed = [after for before, after in zip(quotes, swept) if before.status != after.status]
    for quote in changed:
        store.upsert_quote(quote)
    if changed:
        logger.info("Marked %s quotes as expired.", len(changed))
    return changed


@dataclass(frozen=True)
class AutomationService:
    """Summary: Runs the automation engine against stored quotes, rules and log.

    Importance: Owns persistence of the log, rule statistics and the day-gate marker.
    Alternatives: Let the engine talk to the store directly.
    """

    store: SqliteStore
    engine: AutomationEngine
    log_cap: int = 200

    def run_daily(self, today: date | None = None, now: datetime | None = None) -> EvaluationResult:
        """Summary: Execute the gated daily pass, then the expiry sweep.

        Importance: Evaluation runs before the sweep so lapsed quotes are still "sent" when checked.
        Alternatives: Sweep first and derive expiry notices from the status change.
        """

        today = today or date.today()
        now = now or datetime.now(timezone.utc)
        quotes = self.store.load_all_quotes()
        rules = self.store.load_rules()
        existing_log = self.store.load_log()
        result = self.engine.evaluate(
            quotes, rules, existing_log, self.store.load_run_state(), today=today, now=now
        )
        # marker advances only after the log is stored
        if not result.skipped and self._save_log(existing_log + result.entries):
            self._save_marker(today)
            if result.entries:
                self._save_rules(apply_run_stats(rules, result.entries, now.isoformat()))
        sweep_expired_quotes(self.store, quotes, today)
        return result

    def record_event(
        self, trigger: str, quote: Quote, today: date | None = None, now: datetime | None = None
    ) -> list[AutomationLog]:
        """Summary: Fire event-driven rules for a quote and persist the entries.

        Importance: Called at the moment a quote is accepted or fully paid.
        Alternatives: Queue events and process them in the next daily pass.
        """

        now = now or datetime.now(timezone.utc)
        rules = self.store.load_rules()
        existing_log = self.store.load_log()
        entries = self.engine.fire_event(trigger, quote, rules, existing_log, today=today, now=now)
        if entries and self._save_log(existing_log + entries):
            self._save_rules(apply_run_stats(rules, entries, now.isoformat()))
            logger.info("Event %s fired %s entries for quote %s.", trigger, len(entries), quote.id)
        return entries

    def list_log(self, status: str | None = None, limit: int | None = None) -> list[AutomationLog]:
        """Summary: Return log entries newest first, optionally filtered by status.

        Importance: Backs the execution log view.
        Alternatives: Return the raw append-ordered log.
        """

        if status is not None and status not in LOG_STATUSES:
            raise ValueError(f"Unknown log status: {status}")
        entries = sorted(self.store.load_log(), key=lambda entry: entry.timestamp, reverse=True)
        if status is not None:
            entries = [entry for entry in entries if entry.status == status]
        return entries[:limit] if limit is not None else entries

    def clear_log(self) -> None:
        self.store.save_log([])

    def list_rules(self) -> list[AutomationRule]:
        return self.store.load_rules()

    def update_rule(self, rule_id: str, **changes: object) -> AutomationRule:
        """Summary: Change a rule's settings and save the catalog.

        Importance: Supports toggling, delays, channels, audiences and templates.
        Alternatives: Expose one method per editable field.
        """

        rules = edit_rule(self.store.load_rules(), rule_id, **changes)
        self.store.save_rules(rules)
        return next(rule for rule in rules if rule.id == rule_id)

    def toggle_rule(self, rule_id: str) -> AutomationRule:
        current = find_rule(self.store.load_rules(), rule_id)
        return self.update_rule(rule_id, enabled=not current.enabled)

    def reset_rules(self) -> list[AutomationRule]:
        rules = default_rules()
        self.store.save_rules(rules)
        return rules

    def _save_log(self, entries: list[AutomationLog]) -> bool:
        try:
            self.store.save_log(cap_log(entries, self.log_cap))
        except sqlite3.Error as exc:
            logger.warning("Could not save automation log: %s", exc)
            return False
        return True

    def _save_marker(self, today: date) -> None:
        try:
            self.store.set_last_run_date(today)
        except sqlite3.Error as exc:
            logger.warning("Could not save automation run date: %s", exc)

    def _save_rules(self, rules: list[AutomationRule]) -> None:
        try:
            self.store.save_rules(rules)
        except sqlite3.Error as exc:
            logger.warning("Could not save rule statistics: %s", exc)


@dataclass(frozen=True)
class QuoteService:
    """Summary: Creates quotes and applies user-initiated lifecycle changes.

    Importance: Keeps numbering, expiry derivation and event firing consistent.
    Alternatives: Mutate quotes directly from the UI or API layer.
    """

    store: SqliteStore
    expiry_days: int = 30
    quote_prefix: str = "PRV"
    automations: AutomationService | None = None

    def create_quote(
        self,
        client: ClientInfo,
        items: list[LineItem],
        issue_date: date | None = None,
        notes: str = "",
    ) -> Quote:
        """Summary: Create a draft quote with a sequential number and derived expiry.

        Importance: Expiry is fixed at creation and never recomputed afterwards.
        Alternatives: Compute expiry on the fly from the issue date.
        """

        issue_date = issue_date or date.today()
        quote = Quote(
            id=secrets.token_hex(8),
            number=lifecycle.next_quote_number(
                self.store.load_all_quotes(), issue_date.year, self.quote_prefix
            ),
            date=issue_date,
            expiry_date=lifecycle.calculate_expiry_date(issue_date, self.expiry_days),
            client=client,
            items=list(items),
            notes=notes,
        )
        self.store.upsert_quote(quote)
        logger.info("Created quote %s (%s).", quote.number, quote.id)
        return quote

    def get_quote(self, quote_id: str) -> Quote:
        quote = self.store.get_quote(quote_id)
        if quote is None:
            raise ValueError(f"Unknown quote: {quote_id}")
        return quote

    def list_quotes(self, status: str | None = None) -> list[Quote]:
        quotes = self.store.load_all_quotes()
        if status is None:
            return quotes
        return [quote for quote in quotes if quote.status == status]

    def delete_quote(self, quote_id: str) -> None:
        if not self.store.delete_quote(quote_id):
            raise ValueError(f"Unknown quote: {quote_id}")

    def change_status(
        self, quote_id: str, target: str, strict: bool = False, today: date | None = None
    ) -> Quote:
        """Summary: Apply a status change and fire acceptance notices.

        Importance: Acceptance rules run synchronously with the user's action.
        Alternatives: Detect acceptance in the next daily pass.
        """

        quote = self.get_quote(quote_id)
        updated = lifecycle.change_status(quote, target, strict=strict)
        if updated is quote:
            return quote
        self.store.upsert_quote(updated)
        if target == "accepted" and self.automations is not None:
            self.automations.record_event(TRIGGER_QUOTE_ACCEPTED, updated, today=today)
        return updated

    def update_payment(
        self,
        quote_id: str,
        target: str,
        amount: float | None = None,
        strict: bool = False,
        today: date | None = None,
    ) -> Quote:
        quote = self.get_quote(quote_id)
        updated = lifecycle.update_payment(quote, target, amount=amount, today=today, strict=strict)
        return self._save_payment(quote, updated, today)

    def record_payment(self, quote_id: str, amount: float, today: date | None = None) -> Quote:
        """Summary: Record a received amount as partial or full payment.

        Importance: Amounts at or above the total settle the quote.
        Alternatives: Require an explicit payment status from the caller.
        """

        quote = self.get_quote(quote_id)
        updated = lifecycle.record_payment_amount(quote, amount, today=today)
        return self._save_payment(quote, updated, today)

    def expire_sweep(self, today: date | None = None) -> list[Quote]:
        return sweep_expired_quotes(self.store, self.store.load_all_quotes(), today or date.today())

    def _save_payment(self, before: Quote, after: Quote, today: date | None) -> Quote:
        self.store.upsert_quote(after)
        became_paid = after.payment_status == "paid" and before.payment_status != "paid"
        if became_paid and self.automations is not None:
            self.automations.record_event(TRIGGER_PAYMENT_RECEIVED, after, today=today)
        return after


@dataclass(frozen=True)
class ReminderService:
    """Summary: Serves reminder badges computed from the current quotes.

    Importance: Recomputed on every call, never gated or logged.
    Alternatives: Cache reminders between renders.
    """

    store: SqliteStore

    def reminders(self, today: date | None = None) -> list[Reminder]:
        return derive_reminders(self.store.load_all_quotes(), today=today)


@dataclass(frozen=True)
class StatsService:
    """Summary: Provides payment tracking totals.

    Importance: Enables dashboard cards for revenue and outstanding amounts.
    Alternatives: Calculate totals directly in the API or UI.
    """

    store: SqliteStore

    def payment_summary(self) -> dict[str, float]:
        """Summary: Sum revenue, paid, partial and outstanding amounts.

        Importance: Covers accepted quotes and anything already carrying a payment status.
        Alternatives: Track payments in a separate ledger.
        """

        tracked = [
            quote
            for quote in self.store.load_all_quotes()
            if quote.status == "accepted" or quote.payment_status
        ]
        revenue = sum(quote.total() for quote in tracked)
        paid = sum(quote.total() for quote in tracked if quote.payment_status == "paid")
        partial = sum(
            quote.paid_amount or 0.0 for quote in tracked if quote.payment_status == "partial"
        )
        return {
            "revenue": round(revenue, 2),
            "paid": round(paid, 2),
            "partial": round(partial, 2),
            "outstanding": round(revenue - paid - partial, 2),
        }

    def status_counts(self) -> dict[str, int]:
        counts = {status: 0 for status in QUOTE_STATUSES}
        for quote in self.store.load_all_quotes():
            counts[quote.status] = counts.get(quote.status, 0) + 1
        return counts
