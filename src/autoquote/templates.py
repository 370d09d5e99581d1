"""Summary: Notification template rendering.

Importance: Turns rule templates into personalized text for each fired action.
Alternatives: Use a full template engine such as Jinja2.
"""

from __future__ import annotations

from datetime import date

from autoquote.models import Quote


def render_template(template: str, variables: dict[str, str]) -> str:
    """Summary: Replace every {{key}} token with its value.

    Importance: Keeps rendering predictable: unknown placeholders stay as literal text.
    Alternatives: Raise on missing variables or fall back to empty strings.
    """

    result = template
    for key, value in variables.items():
        result = result.replace("{{" + key + "}}", value)
    return result


def format_date(value: date | None) -> str:
    if value is None:
        return ""
    return value.strftime("%d/%m/%Y")


def format_amount(amount: float, currency_symbol: str = "€") -> str:
    return f"{currency_symbol}{amount:.2f}"


def quote_variables(quote: Quote, company_name: str, currency_symbol: str = "€") -> dict[str, str]:
    """Summary: Build the template variables available for a single quote.

    Importance: Shared by every per-quote rule so templates stay interchangeable.
    Alternatives: Let each rule declare its own variable builder.
    """

    return {
        "clientName": quote.client_name,
        "quoteNumber": quote.number,
        "quoteDate": format_date(quote.date),
        "expiryDate": format_date(quote.expiry_date),
        "amount": format_amount(quote.total(), currency_symbol),
        "companyName": company_name,
    }


def weekly_variables(
    created: int,
    accepted: int,
    rejected: int,
    revenue: float,
    company_name: str,
    currency_symbol: str = "€",
) -> dict[str, str]:
    return {
        "weeklyCreated": str(created),
        "weeklyAccepted": str(accepted),
        "weeklyRejected": str(rejected),
        "weeklyRevenue": format_amount(revenue, currency_symbol),
        "companyName": company_name,
    }
