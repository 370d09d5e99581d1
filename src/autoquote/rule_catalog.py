"""Summary: Built-in automation rule catalog.

Importance: Provides a working set of rules before the user configures anything.
Alternatives: Ship rules as a JSON file outside the codebase.
"""

from __future__ import annotations

from dataclasses import replace

from autoquote.models import (
    RULE_CHANNELS,
    TARGET_AUDIENCES,
    TRIGGER_FOLLOW_UP,
    TRIGGER_PAYMENT_OVERDUE,
    TRIGGER_PAYMENT_RECEIVED,
    TRIGGER_QUOTE_ACCEPTED,
    TRIGGER_QUOTE_EXPIRED,
    TRIGGER_QUOTE_EXPIRING,
    TRIGGER_WEEKLY_REPORT,
    AutomationRule,
)


def default_rules() -> list[AutomationRule]:
    """Summary: Return the default rule catalog.

    Importance: Used whenever no user configuration has been saved yet.
    Alternatives: Start with an empty catalog and require manual setup.
    """

    return [
        AutomationRule(
            id="rule_expiring_3d",
            name="Preventivo in Scadenza (3 giorni)",
            description="Invia promemoria quando un preventivo scade tra 3 giorni",
            trigger=TRIGGER_QUOTE_EXPIRING,
            enabled=True,
            delay_days=3,
            channel="both",
            target_audience="client",
            email_template=(
                "Gentile {{clientName}},\n\n"
                "Le ricordiamo che il preventivo {{quoteNumber}} del {{quoteDate}} "
                "è in scadenza il {{expiryDate}}.\n\n"
                "La invitiamo a visionarlo e confermare quanto prima.\n\n"
                "Cordiali saluti,\n{{companyName}}"
            ),
        ),
        AutomationRule(
            id="rule_expiring_1d",
            name="Preventivo in Scadenza (1 giorno)",
            description="Promemoria urgente: preventivo scade domani",
            trigger=TRIGGER_QUOTE_EXPIRING,
            enabled=True,
            delay_days=1,
            channel="both",
            target_audience="client",
            email_template=(
                "Gentile {{clientName}},\n\n"
                "Ultimo avviso: il preventivo {{quoteNumber}} scade domani ({{expiryDate}}).\n\n"
                "Se necessita di ulteriori informazioni, non esiti a contattarci.\n\n"
                "Cordiali saluti,\n{{companyName}}"
            ),
        ),
        AutomationRule(
            id="rule_expired",
            name="Preventivo Scaduto",
            description="Notifica interna quando un preventivo è scaduto",
            trigger=TRIGGER_QUOTE_EXPIRED,
            enabled=True,
            delay_days=0,
            channel="internal",
            target_audience="self",
        ),
        AutomationRule(
            id="rule_followup_7d",
            name="Follow-up Automatico (7 giorni)",
            description="Invia follow-up se il cliente non risponde dopo 7 giorni",
            trigger=TRIGGER_FOLLOW_UP,
            enabled=True,
            delay_days=7,
            channel="both",
            target_audience="client",
            email_template=(
                "Gentile {{clientName}},\n\n"
                "Faccio seguito al preventivo {{quoteNumber}} inviato il {{quoteDate}}.\n\n"
                "Sarebbe disponibile per un confronto? "
                "Resto a disposizione per qualsiasi chiarimento.\n\n"
                "Cordiali saluti,\n{{companyName}}"
            ),
        ),
        AutomationRule(
            id="rule_followup_14d",
            name="Follow-up Finale (14 giorni)",
            description="Secondo follow-up dopo 14 giorni senza risposta",
            trigger=TRIGGER_FOLLOW_UP,
            enabled=False,
            delay_days=14,
            channel="email",
            target_audience="client",
            email_template=(
                "Gentile {{clientName}},\n\n"
                "Desideravo verificare se ha avuto modo di valutare il preventivo {{quoteNumber}}.\n\n"
                "Se il progetto non è più di interesse, la preghiamo di farcelo sapere "
                "così da poter aggiornare i nostri archivi.\n\n"
                "Cordiali saluti,\n{{companyName}}"
            ),
        ),
        AutomationRule(
            id="rule_payment_overdue",
            name="Pagamento Scaduto",
            description="Promemoria di pagamento per fatture non pagate dopo 30 giorni",
            trigger=TRIGGER_PAYMENT_OVERDUE,
            enabled=True,
            delay_days=30,
            channel="both",
            target_audience="client",
            email_template=(
                "Gentile {{clientName}},\n\n"
                "La informiamo che il pagamento per il preventivo {{quoteNumber}} "
                "di {{amount}} risulta ancora in sospeso.\n\n"
                "La preghiamo di procedere al saldo quanto prima.\n\n"
                "Cordiali saluti,\n{{companyName}}"
            ),
        ),
        AutomationRule(
            id="rule_payment_received",
            name="Conferma Pagamento",
            description="Notifica interna quando un pagamento viene ricevuto",
            trigger=TRIGGER_PAYMENT_RECEIVED,
            enabled=True,
            delay_days=0,
            channel="internal",
            target_audience="self",
        ),
        AutomationRule(
            id="rule_accepted_notify",
            name="Notifica Accettazione",
            description="Avvisa il team quando un preventivo viene accettato",
            trigger=TRIGGER_QUOTE_ACCEPTED,
            enabled=True,
            delay_days=0,
            channel="internal",
            target_audience="team",
        ),
        AutomationRule(
            id="rule_weekly_report",
            name="Report Settimanale",
            description="Invia un riepilogo settimanale delle attività ogni lunedì",
            trigger=TRIGGER_WEEKLY_REPORT,
            enabled=False,
            delay_days=0,
            channel="email",
            target_audience="self",
            email_template=(
                "Riepilogo Settimanale AutoQuote\n\n"
                "Preventivi creati: {{weeklyCreated}}\n"
                "Accettati: {{weeklyAccepted}}\n"
                "Rifiutati: {{weeklyRejected}}\n"
                "Fatturato: {{weeklyRevenue}}\n\n"
                "Buon lavoro!\n{{companyName}}"
            ),
        ),
    ]


def find_rule(rules: list[AutomationRule], rule_id: str) -> AutomationRule:
    for rule in rules:
        if rule.id == rule_id:
            return rule
    raise ValueError(f"Unknown rule: {rule_id}")


def edit_rule(rules: list[AutomationRule], rule_id: str, **changes: object) -> list[AutomationRule]:
    """Summary: Return a new catalog with one rule's settings changed.

    Importance: Backs the toggle, delay, channel, audience and template editors.
    Alternatives: Mutate rules in place inside the store.
    """

    find_rule(rules, rule_id)
    if "delay_days" in changes:
        changes["delay_days"] = max(0, int(changes["delay_days"]))
    if "channel" in changes and changes["channel"] not in RULE_CHANNELS:
        raise ValueError(f"Unknown channel: {changes['channel']}")
    if "target_audience" in changes and changes["target_audience"] not in TARGET_AUDIENCES:
        raise ValueError(f"Unknown audience: {changes['target_audience']}")
    return [replace(rule, **changes) if rule.id == rule_id else rule for rule in rules]
