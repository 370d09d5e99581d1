"""Summary: Rule evaluation engine for quote automations.

Importance: Decides once per day which reminders and notices should fire, exactly once each.
Alternatives: Schedule one job per quote in an external task queue.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta, timezone
from typing import Callable

from autoquote.models import (
    EVENT_TRIGGERS,
    TRIGGER_FOLLOW_UP,
    TRIGGER_PAYMENT_OVERDUE,
    TRIGGER_PAYMENT_RECEIVED,
    TRIGGER_QUOTE_ACCEPTED,
    TRIGGER_QUOTE_EXPIRED,
    TRIGGER_QUOTE_EXPIRING,
    TRIGGER_WEEKLY_REPORT,
    AutomationLog,
    AutomationRule,
    Quote,
    RunState,
)
from autoquote.templates import format_amount, quote_variables, render_template, weekly_variables


logger = logging.getLogger(__name__)

DEFAULT_LOG_CAP = 200

QuoteEvaluator = Callable[[AutomationRule, Quote, date, str], str | None]


def log_key(rule_id: str, fired_on: date, quote_id: str | None = None) -> str:
    """Summary: Build the deterministic dedup key for a firing.

    Importance: Its presence in the log is the only test for "already fired today".
    Alternatives: Keep a separate table of (rule, quote, day) tuples.
    """

    if quote_id is None:
        return f"{rule_id}_{fired_on.isoformat()}"
    return f"{rule_id}_{quote_id}_{fired_on.isoformat()}"


def cap_log(entries: list[AutomationLog], cap: int = DEFAULT_LOG_CAP) -> list[AutomationLog]:
    """Summary: Keep only the most recent entries of the execution log.

    Importance: Bounds the ledger; the oldest entries are dropped first.
    Alternatives: Archive old entries instead of discarding them.
    """

    if cap <= 0:
        return []
    return list(entries[-cap:])


def _plural_days(days: int) -> str:
    return f"{days} giorn{'o' if days == 1 else 'i'}"


def _check_expiring(rule: AutomationRule, quote: Quote, today: date, currency: str) -> str | None:
    if quote.status != "sent" or quote.expiry_date is None:
        return None
    days_until = (quote.expiry_date - today).days
    if days_until != rule.delay_days:
        return None
    return f"Promemoria scadenza: {quote.number} scade tra {_plural_days(days_until)}"


def _check_expired(rule: AutomationRule, quote: Quote, today: date, currency: str) -> str | None:
    if quote.status != "sent" or quote.expiry_date is None or quote.expiry_date >= today:
        return None
    if (today - quote.expiry_date).days != 1:
        return None
    return f"Preventivo {quote.number} scaduto"


def _check_follow_up(rule: AutomationRule, quote: Quote, today: date, currency: str) -> str | None:
    if quote.status != "sent" or quote.date is None:
        return None
    days_since = (today - quote.date).days
    if days_since != rule.delay_days:
        return None
    return f"Follow-up per {quote.number}: {days_since} giorni senza risposta"


def _check_payment_overdue(
    rule: AutomationRule, quote: Quote, today: date, currency: str
) -> str | None:
    if quote.status != "accepted" or quote.effective_payment_status == "paid" or quote.date is None:
        return None
    if (today - quote.date).days < rule.delay_days:
        return None
    return f"Pagamento in ritardo per {quote.number}: {format_amount(quote.total(), currency)}"


def _describe_acceptance(rule: AutomationRule, quote: Quote, today: date, currency: str) -> str:
    return f"Preventivo {quote.number} accettato da {quote.client_name}"


def _describe_payment(rule: AutomationRule, quote: Quote, today: date, currency: str) -> str:
    amount = quote.paid_amount if quote.paid_amount is not None else quote.total()
    return f"Pagamento ricevuto per {quote.number}: {format_amount(amount, currency)}"


QUOTE_EVALUATORS: dict[str, QuoteEvaluator] = {
    TRIGGER_QUOTE_EXPIRING: _check_expiring,
    TRIGGER_QUOTE_EXPIRED: _check_expired,
    TRIGGER_FOLLOW_UP: _check_follow_up,
    TRIGGER_PAYMENT_OVERDUE: _check_payment_overdue,
}

EVENT_DESCRIBERS: dict[str, QuoteEvaluator] = {
    TRIGGER_QUOTE_ACCEPTED: _describe_acceptance,
    TRIGGER_PAYMENT_RECEIVED: _describe_payment,
}


@dataclass(frozen=True)
class EvaluationResult:
    """Summary: Output of a daily automation pass.

    Importance: Returns new log entries together with the advanced day-gate state.
    Alternatives: Persist state from inside the engine.
    """

    entries: list[AutomationLog]
    state: RunState
    skipped: bool = False


@dataclass(frozen=True)
class AutomationEngine:
    """Summary: Evaluates automation rules against the quote collection.

    Importance: Pure computation over materialized data; persistence stays with the caller.
    Alternatives: Let the engine read and write the store directly.
    """

    company_name: str
    currency_symbol: str = "€"

    def evaluate(
        self,
        quotes: list[Quote],
        rules: list[AutomationRule],
        existing_log: list[AutomationLog],
        state: RunState,
        today: date | None = None,
        now: datetime | None = None,
    ) -> EvaluationResult:
        """Summary: Run the once-per-day pass over every enabled rule and quote.

        Importance: Produces only entries whose dedup key is not already logged.
        Alternatives: Evaluate rules on every application load without a gate.
        """

        today = today or date.today()
        if state.last_run_date == today:
            logger.debug("Automation pass already ran on %s.", today.isoformat())
            return EvaluationResult(entries=[], state=state, skipped=True)
        timestamp = (now or datetime.now(timezone.utc)).isoformat()
        seen = {entry.id for entry in existing_log}
        entries: list[AutomationLog] = []

        for rule in rules:
            if not rule.enabled:
                continue
            if rule.trigger == TRIGGER_WEEKLY_REPORT:
                entry = self._weekly_report(rule, quotes, today, timestamp)
                if entry is not None and entry.id not in seen:
                    seen.add(entry.id)
                    entries.append(entry)
                continue
            evaluator = QUOTE_EVALUATORS.get(rule.trigger)
            if evaluator is None:
                # event-driven or unknown triggers are not part of the daily sweep
                continue
            for quote in quotes:
                key = log_key(rule.id, today, quote.id)
                if key in seen:
                    continue
                action = evaluator(rule, quote, today, self.currency_symbol)
                if action is None:
                    continue
                seen.add(key)
                entries.append(self._build_entry(key, rule, quote, action, timestamp))

        logger.info("Automation pass on %s produced %s entries.", today.isoformat(), len(entries))
        return EvaluationResult(entries=entries, state=RunState(last_run_date=today))

    def fire_event(
        self,
        trigger: str,
        quote: Quote,
        rules: list[AutomationRule],
        existing_log: list[AutomationLog],
        today: date | None = None,
        now: datetime | None = None,
    ) -> list[AutomationLog]:
        """Summary: Fire event-driven rules for a quote at the moment the event happens.

        Importance: Covers acceptance and payment notices that the daily sweep ignores.
        Alternatives: Detect these events by diffing quotes during the daily pass.
        """

        if trigger not in EVENT_TRIGGERS:
            raise ValueError(f"Not an event trigger: {trigger}")
        today = today or date.today()
        timestamp = (now or datetime.now(timezone.utc)).isoformat()
        seen = {entry.id for entry in existing_log}
        describe = EVENT_DESCRIBERS[trigger]
        entries: list[AutomationLog] = []
        for rule in rules:
            if not rule.enabled or rule.trigger != trigger:
                continue
            key = log_key(rule.id, today, quote.id)
            if key in seen:
                continue
            seen.add(key)
            action = describe(rule, quote, today, self.currency_symbol)
            entries.append(self._build_entry(key, rule, quote, action, timestamp))
        return entries

    def _build_entry(
        self, key: str, rule: AutomationRule, quote: Quote, action: str, timestamp: str
    ) -> AutomationLog:
        message = None
        if rule.email_template:
            message = render_template(
                rule.email_template,
                quote_variables(quote, self.company_name, self.currency_symbol),
            )
        return AutomationLog(
            id=key,
            rule_id=rule.id,
            rule_name=rule.name,
            quote_id=quote.id,
            quote_number=quote.number,
            client_name=quote.client_name,
            action=action,
            status=_initial_status(rule),
            channel=_log_channel(rule),
            timestamp=timestamp,
            message=message,
        )

    def _weekly_report(
        self, rule: AutomationRule, quotes: list[Quote], today: date, timestamp: str
    ) -> AutomationLog | None:
        """Summary: Build the Monday summary entry over the trailing seven days.

        Importance: Aggregates activity instead of reacting to a single quote.
        Alternatives: Compute the report on demand from the dashboard.
        """

        if today.weekday() != 0:
            return None
        week_ago = today - timedelta(days=7)
        recent = [quote for quote in quotes if quote.date is not None and quote.date >= week_ago]
        counts = Counter(quote.status for quote in recent)
        revenue = sum(quote.total() for quote in recent if quote.status == "accepted")
        created = len(recent)
        message = None
        if rule.email_template:
            message = render_template(
                rule.email_template,
                weekly_variables(
                    created,
                    counts["accepted"],
                    counts["rejected"],
                    revenue,
                    self.company_name,
                    self.currency_symbol,
                ),
            )
        return AutomationLog(
            id=log_key(rule.id, today),
            rule_id=rule.id,
            rule_name=rule.name,
            action=f"Report settimanale: {created} creati, {counts['accepted']} accettati",
            status=_initial_status(rule),
            channel=_log_channel(rule),
            timestamp=timestamp,
            message=message,
        )


def _initial_status(rule: AutomationRule) -> str:
    # internal notices need no external delivery
    return "sent" if rule.channel == "internal" else "pending"


def _log_channel(rule: AutomationRule) -> str:
    return "internal" if rule.channel == "internal" else "email"


def apply_run_stats(
    rules: list[AutomationRule], entries: list[AutomationLog], timestamp: str
) -> list[AutomationRule]:
    """Summary: Bump run counters for rules that produced entries.

    Importance: Feeds the "executions" and "last run" columns of the rule list.
    Alternatives: Derive counts from the capped log on demand.
    """

    fired = Counter(entry.rule_id for entry in entries)
    if not fired:
        return list(rules)
    return [
        replace(rule, run_count=rule.run_count + fired[rule.id], last_run=timestamp)
        if rule.id in fired
        else rule
        for rule in rules
    ]
