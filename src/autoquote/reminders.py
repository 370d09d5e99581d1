"""Summary: Reminder badges derived from the live quote list.

Importance: Gives the dashboard always-current hints without touching the automation log.
Alternatives: Read reminders back from the execution log.
"""

from __future__ import annotations

from datetime import date

from autoquote.models import URGENCY_ORDER, Quote, Reminder


EXPIRING_SOON_DAYS = 3
FOLLOW_UP_AFTER_DAYS = 7


def derive_reminders(quotes: list[Quote], today: date | None = None) -> list[Reminder]:
    """Summary: Compute reminders for every quote, most urgent first.

    Importance: Checks are independent, so one quote can yield several reminders.
    Alternatives: Emit at most one reminder per quote.
    """

    today = today or date.today()
    reminders: list[Reminder] = []
    for quote in quotes:
        if quote.status != "sent":
            continue
        client_name = quote.client.display_name("Senza nome")
        if quote.expiry_date is not None:
            days_until = (quote.expiry_date - today).days
            if days_until < 0:
                reminders.append(
                    Reminder(
                        id=f"exp-{quote.id}",
                        quote_id=quote.id,
                        quote_number=quote.number,
                        client_name=client_name,
                        type="expired",
                        urgency="high",
                        message=(
                            f"Il preventivo {quote.number} per {client_name} è scaduto il "
                            f"{quote.expiry_date.strftime('%d/%m/%Y')}."
                        ),
                        date=quote.expiry_date,
                    )
                )
            elif 0 < days_until <= EXPIRING_SOON_DAYS:
                reminders.append(
                    Reminder(
                        id=f"soon-{quote.id}",
                        quote_id=quote.id,
                        quote_number=quote.number,
                        client_name=client_name,
                        type="expiring_soon",
                        urgency="medium",
                        message=(
                            f"Il preventivo {quote.number} per {client_name} scade tra "
                            f"{days_until} giorn{'o' if days_until == 1 else 'i'}."
                        ),
                        date=quote.expiry_date,
                    )
                )
        if quote.date is not None:
            days_since = (today - quote.date).days
            if days_since >= FOLLOW_UP_AFTER_DAYS:
                reminders.append(
                    Reminder(
                        id=f"fup-{quote.id}",
                        quote_id=quote.id,
                        quote_number=quote.number,
                        client_name=client_name,
                        type="follow_up",
                        urgency="low",
                        message=(
                            f"Nessuna risposta per {quote.number} ({client_name}) da "
                            f"{days_since} giorni. Prova un follow-up."
                        ),
                        date=quote.date,
                    )
                )
    # sorted() is stable, so ties keep quote order
    return sorted(reminders, key=lambda reminder: URGENCY_ORDER[reminder.urgency])
