"""Summary: Tests for the automation rule engine.

Importance: Ensures exact-day matching, dedup keys and the day gate behave as designed.
Alternatives: Validate automations manually through the dashboard.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

from autoquote.engine import AutomationEngine, apply_run_stats, cap_log, log_key
from autoquote.models import AutomationLog, AutomationRule, ClientInfo, LineItem, Quote, RunState


WEDNESDAY = date(2026, 3, 11)
MONDAY = date(2026, 3, 9)
NOW = datetime(2026, 3, 11, 9, 0, tzinfo=timezone.utc)


def _quote(
    quote_id: str = "q1",
    status: str = "sent",
    issued: date | None = None,
    expiry: date | None = None,
    payment_status: str | None = None,
) -> Quote:
    """Summary: Build a quote for engine tests.

    Importance: Keeps each test focused on the fields that matter.
    Alternatives: Use a factory library.
    """

    issued = issued or WEDNESDAY - timedelta(days=2)
    return Quote(
        id=quote_id,
        number=f"PRV-2026-{quote_id}",
        date=issued,
        expiry_date=expiry if expiry is not None else issued + timedelta(days=30),
        client=ClientInfo(name="Mario Rossi", company="Rossi Srl"),
        items=[LineItem(description="Sito web", quantity=1, unit_price=1000.0, tax_rate=22.0)],
        status=status,
        payment_status=payment_status,
    )


def _rule(trigger: str, delay_days: int = 0, channel: str = "email", enabled: bool = True) -> AutomationRule:
    return AutomationRule(
        id=f"rule_{trigger}_{delay_days}",
        name=f"Rule {trigger}",
        trigger=trigger,
        enabled=enabled,
        delay_days=delay_days,
        channel=channel,
    )


def _evaluate(quotes, rules, log=None, state=None, today=WEDNESDAY):
    engine = AutomationEngine(company_name="Acme")
    return engine.evaluate(quotes, rules, log or [], state or RunState(), today=today, now=NOW)


def test_follow_up_fires_on_exact_day() -> None:
    """Summary: Verify a 7-day follow-up fires for a quote sent 7 days ago.

    Importance: Confirms the primary follow-up scenario and its status by channel.
    Alternatives: Test only the action text.
    """

    quote = _quote(issued=WEDNESDAY - timedelta(days=7))
    result = _evaluate([quote], [_rule("follow_up", 7, channel="both")])
    assert len(result.entries) == 1
    entry = result.entries[0]
    assert "7 giorni" in entry.action
    assert entry.status == "pending"
    assert entry.channel == "email"
    assert entry.id == f"rule_follow_up_7_q1_{WEDNESDAY.isoformat()}"

    internal = _evaluate([quote], [_rule("follow_up", 7, channel="internal")])
    assert internal.entries[0].status == "sent"
    assert internal.entries[0].channel == "internal"


def test_follow_up_does_not_fire_on_other_days() -> None:
    quote = _quote(issued=WEDNESDAY - timedelta(days=8))
    assert _evaluate([quote], [_rule("follow_up", 7)]).entries == []


def test_expiring_matches_exact_day_only() -> None:
    """Summary: Verify expiring rules fire at exactly N days before expiry.

    Importance: Prevents reminder spam on the surrounding days.
    Alternatives: Fire within a range of days.
    """

    rule = _rule("quote_expiring", 3)
    for days_out, expected in ((2, 0), (3, 1), (4, 0)):
        quote = _quote(expiry=WEDNESDAY + timedelta(days=days_out))
        assert len(_evaluate([quote], [rule]).entries) == expected
    fired = _evaluate([_quote(expiry=WEDNESDAY + timedelta(days=3))], [rule]).entries[0]
    assert fired.action.endswith("scade tra 3 giorni")


def test_expiring_ignores_non_sent_quotes() -> None:
    quote = _quote(status="draft", expiry=WEDNESDAY + timedelta(days=3))
    assert _evaluate([quote], [_rule("quote_expiring", 3)]).entries == []


def test_expired_fires_once_the_day_after_lapse() -> None:
    """Summary: Verify the expired notice fires only on the day after expiry.

    Importance: Later days must not re-fire even though the quote is still lapsed.
    Alternatives: Fire every day until the quote is expired by the sweep.
    """

    rule = _rule("quote_expired", channel="internal")
    quote = _quote(expiry=WEDNESDAY - timedelta(days=1))
    first = _evaluate([quote], [rule])
    assert len(first.entries) == 1
    assert first.entries[0].status == "sent"

    next_day = WEDNESDAY + timedelta(days=1)
    later = _evaluate([quote], [rule], log=first.entries, state=first.state, today=next_day)
    assert later.entries == []
    assert _evaluate([_quote(expiry=WEDNESDAY)], [rule]).entries == []


def test_payment_overdue_uses_threshold() -> None:
    """Summary: Verify overdue notices fire at or beyond the delay threshold.

    Importance: A missed day must not silently skip an overdue notice.
    Alternatives: Require an exact day match.
    """

    rule = _rule("payment_overdue", 30)
    overdue = _quote(status="accepted", issued=WEDNESDAY - timedelta(days=45))
    early = _quote("q2", status="accepted", issued=WEDNESDAY - timedelta(days=10))
    paid = _quote("q3", status="accepted", issued=WEDNESDAY - timedelta(days=45), payment_status="paid")
    partial = _quote("q4", status="accepted", issued=WEDNESDAY - timedelta(days=30), payment_status="partial")
    result = _evaluate([overdue, early, paid, partial], [rule])
    assert [entry.quote_id for entry in result.entries] == ["q1", "q4"]
    assert "€1220.00" in result.entries[0].action


def test_same_day_rerun_produces_nothing() -> None:
    """Summary: Verify the day gate and dedup keys block repeat firing.

    Importance: Core exactly-once-per-day guarantee.
    Alternatives: Rely only on the day gate.
    """

    quote = _quote(issued=WEDNESDAY - timedelta(days=7))
    rule = _rule("follow_up", 7)
    first = _evaluate([quote], [rule])
    assert first.state.last_run_date == WEDNESDAY
    gated = _evaluate([quote], [rule], log=first.entries, state=first.state)
    assert gated.skipped
    assert gated.entries == []
    ungated = _evaluate([quote], [rule], log=first.entries, state=RunState())
    assert ungated.entries == []
    assert ungated.state.last_run_date == WEDNESDAY


def test_gate_advances_even_without_entries() -> None:
    result = _evaluate([], [_rule("follow_up", 7)])
    assert result.entries == []
    assert not result.skipped
    assert result.state == RunState(last_run_date=WEDNESDAY)


def test_disabled_rule_never_fires() -> None:
    quote = _quote(issued=WEDNESDAY - timedelta(days=7))
    assert _evaluate([quote], [_rule("follow_up", 7, enabled=False)]).entries == []


def test_event_triggers_are_not_part_of_the_sweep() -> None:
    quote = _quote(status="accepted")
    rules = [_rule("quote_accepted"), _rule("payment_received")]
    assert _evaluate([quote], rules).entries == []


def test_weekly_report_fires_only_on_monday() -> None:
    """Summary: Verify the weekly report is limited to Mondays with its own key.

    Importance: The report is quote-independent and must not carry a quote ID.
    Alternatives: Fire the report every seven days from the last run.
    """

    rule = AutomationRule(
        id="rule_weekly_report",
        name="Report Settimanale",
        trigger="weekly_report",
        channel="email",
        email_template="Creati: {{weeklyCreated}} Fatturato: {{weeklyRevenue}} {{companyName}}",
    )
    quotes = [
        _quote("q1", status="accepted", issued=MONDAY - timedelta(days=2)),
        _quote("q2", status="rejected", issued=MONDAY - timedelta(days=3)),
        _quote("q3", status="sent", issued=MONDAY - timedelta(days=20)),
    ]
    assert _evaluate(quotes, [rule], today=MONDAY + timedelta(days=1)).entries == []
    result = _evaluate(quotes, [rule], today=MONDAY)
    assert len(result.entries) == 1
    entry = result.entries[0]
    assert entry.id == f"rule_weekly_report_{MONDAY.isoformat()}"
    assert entry.quote_id is None
    assert entry.action == "Report settimanale: 2 creati, 1 accettati"
    assert entry.message == "Creati: 2 Fatturato: €1220.00 Acme"


def test_rendered_message_uses_quote_variables() -> None:
    rule = AutomationRule(
        id="rule_followup",
        name="Follow-up",
        trigger="follow_up",
        delay_days=7,
        channel="both",
        email_template="Gentile {{clientName}}, {{quoteNumber}} del {{quoteDate}} {{unknown}}",
    )
    quote = _quote(issued=date(2026, 3, 4))
    entry = _evaluate([quote], [rule]).entries[0]
    assert entry.message == "Gentile Rossi Srl, PRV-2026-q1 del 04/03/2026 {{unknown}}"
    assert entry.client_name == "Rossi Srl"
    assert entry.rule_name == "Follow-up"


def test_fire_event_dedups_per_day() -> None:
    engine = AutomationEngine(company_name="Acme")
    rule = _rule("quote_accepted", channel="internal")
    quote = _quote(status="accepted")
    first = engine.fire_event("quote_accepted", quote, [rule], [], today=WEDNESDAY, now=NOW)
    assert len(first) == 1
    assert "accettato" in first[0].action
    again = engine.fire_event("quote_accepted", quote, [rule], first, today=WEDNESDAY, now=NOW)
    assert again == []


def test_cap_log_keeps_most_recent() -> None:
    """Summary: Verify the log cap drops the oldest entries first.

    Importance: The ledger is bounded at 200 entries.
    Alternatives: Cap by age instead of count.
    """

    entries = [
        AutomationLog(
            id=f"entry-{index}",
            rule_id="r",
            rule_name="R",
            action="a",
            status="sent",
            channel="internal",
            timestamp=str(index),
        )
        for index in range(205)
    ]
    capped = cap_log(entries)
    assert len(capped) == 200
    assert capped[0].id == "entry-5"
    assert capped[-1].id == "entry-204"
    assert cap_log(entries[:3]) == entries[:3]


def test_log_key_format() -> None:
    assert log_key("rule", WEDNESDAY, "q9") == "rule_q9_2026-03-11"
    assert log_key("rule", WEDNESDAY) == "rule_2026-03-11"


def test_apply_run_stats_counts_firings() -> None:
    rules = [_rule("follow_up", 7), _rule("quote_expiring", 3)]
    quote = _quote(issued=WEDNESDAY - timedelta(days=7))
    entries = _evaluate([quote, _quote("q2", issued=WEDNESDAY - timedelta(days=7))], rules).entries
    updated = apply_run_stats(rules, entries, NOW.isoformat())
    assert updated[0].run_count == 2
    assert updated[0].last_run == NOW.isoformat()
    assert updated[1] == rules[1]
