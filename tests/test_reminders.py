"""Summary: Tests for the reminder deriver.

Importance: Ensures reminder checks stay independent and ordered by urgency.
Alternatives: Validate badges visually in the dashboard.
"""

from __future__ import annotations

from datetime import date, timedelta

from autoquote.models import ClientInfo, Quote
from autoquote.reminders import derive_reminders


TODAY = date(2026, 3, 11)


def _quote(quote_id: str, issued: date, expiry: date, status: str = "sent") -> Quote:
    return Quote(
        id=quote_id,
        number=f"PRV-2026-{quote_id}",
        date=issued,
        expiry_date=expiry,
        client=ClientInfo(name="Giulia Verdi"),
        status=status,
    )


def test_quote_can_yield_two_reminders() -> None:
    """Summary: Verify an expiring, stale quote yields expiring_soon then follow_up.

    Importance: Checks are independent rather than mutually exclusive.
    Alternatives: Keep only the most urgent reminder per quote.
    """

    quote = _quote("q1", TODAY - timedelta(days=8), TODAY + timedelta(days=2))
    reminders = derive_reminders([quote], today=TODAY)
    assert [reminder.type for reminder in reminders] == ["expiring_soon", "follow_up"]
    assert [reminder.urgency for reminder in reminders] == ["medium", "low"]
    assert reminders[0].id == "soon-q1"
    assert "2 giorni" in reminders[0].message
    assert "8 giorni" in reminders[1].message


def test_reminders_sorted_by_urgency_and_stable() -> None:
    fresh_stale = _quote("a", TODAY - timedelta(days=10), TODAY + timedelta(days=20))
    expired = _quote("b", TODAY - timedelta(days=40), TODAY - timedelta(days=10))
    other_stale = _quote("c", TODAY - timedelta(days=7), TODAY + timedelta(days=1))
    reminders = derive_reminders([fresh_stale, expired, other_stale], today=TODAY)
    assert [reminder.id for reminder in reminders] == [
        "exp-b",
        "soon-c",
        "fup-a",
        "fup-b",
        "fup-c",
    ]
    assert "1 giorno." in reminders[1].message
    assert "10/03/2026" not in reminders[0].message
    assert "01/03/2026" in reminders[0].message


def test_expiring_window_bounds() -> None:
    on_expiry_day = _quote("d", TODAY, TODAY)
    four_days = _quote("e", TODAY, TODAY + timedelta(days=4))
    assert derive_reminders([on_expiry_day, four_days], today=TODAY) == []


def test_only_sent_quotes_produce_reminders() -> None:
    quote = _quote("f", TODAY - timedelta(days=30), TODAY - timedelta(days=1), status="accepted")
    assert derive_reminders([quote], today=TODAY) == []


def test_reminders_are_recomputed_not_deduplicated() -> None:
    quote = _quote("g", TODAY - timedelta(days=9), TODAY + timedelta(days=21))
    first = derive_reminders([quote], today=TODAY)
    second = derive_reminders([quote], today=TODAY)
    assert first == second
    assert len(second) == 1
