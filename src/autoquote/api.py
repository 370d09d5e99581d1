"""Summary: FastAPI application for AutoQuote.

Importance: Exposes quotes, automations and reminders to UI clients over HTTP.
Alternatives: Use a CLI-only workflow or a different web framework.
"""

from __future__ import annotations

import logging
from dataclasses import asdict
from datetime import date
from typing import Any

from fastapi import Depends, FastAPI, Header, HTTPException
from pydantic import BaseModel, Field

from autoquote.app import build_services
from autoquote.config import AppConfig
from autoquote.lifecycle import TransitionError
from autoquote.models import ClientInfo, LineItem, Quote


class LineItemPayload(BaseModel):
    """Summary: Line item inside a quote creation payload.

    Importance: Validates quantities and prices before they reach the store.
    Alternatives: Accept free-form dictionaries.
    """

    description: str
    quantity: float = Field(gt=0)
    unit_price: float = Field(ge=0)
    tax_rate: float = Field(default=0.0, ge=0)


class QuoteCreateRequest(BaseModel):
    """Summary: Request payload for quote creation.

    Importance: Keeps quote inputs explicit for API clients.
    Alternatives: Create quotes only through the CLI.
    """

    client_name: str
    client_company: str = ""
    client_email: str = ""
    items: list[LineItemPayload] = Field(default_factory=list)
    issue_date: date | None = None
    notes: str = ""


class StatusUpdateRequest(BaseModel):
    """Summary: Request payload for quote status changes.

    Importance: Lets clients opt into strict transition checking.
    Alternatives: Expose one endpoint per transition.
    """

    status: str
    strict: bool = False


class PaymentRequest(BaseModel):
    """Summary: Request payload for payment updates.

    Importance: Accepts either a received amount or an explicit payment status.
    Alternatives: Separate endpoints for amounts and status resets.
    """

    amount: float | None = Field(default=None, gt=0)
    status: str | None = None


class RuleUpdateRequest(BaseModel):
    """Summary: Request payload for editing an automation rule.

    Importance: Only provided fields are changed.
    Alternatives: Require the full rule on every update.
    """

    enabled: bool | None = None
    delay_days: int | None = Field(default=None, ge=0)
    channel: str | None = None
    target_audience: str | None = None
    email_template: str | None = None


class RunRequest(BaseModel):
    """Summary: Request payload for triggering the daily automation pass."""

    today: date | None = None


def _quote_to_dict(quote: Quote) -> dict[str, Any]:
    payload = asdict(quote)
    payload["client_name"] = quote.client_name
    payload["total"] = round(quote.total(), 2)
    return payload


def create_app(config: AppConfig) -> FastAPI:
    """Summary: Create a FastAPI app wired to AutoQuote services.

    Importance: Ensures the API layer shares the same configuration and storage.
    Alternatives: Instantiate services globally outside the factory.
    """

    if not logging.getLogger().handlers:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    app = FastAPI(title="AutoQuote API", version="0.1.0")
    services = build_services(config)

    def require_api_key(x_api_key: str | None = Header(default=None)) -> None:
        """Summary: Enforce API key authentication when configured.

        Importance: Adds a minimal security layer for local and private deployments.
        Alternatives: Use OAuth or session-based authentication.
        """

        if not config.api_key:
            return
        if x_api_key != config.api_key:
            raise HTTPException(status_code=401, detail="Invalid API key")

    def _load_quote(quote_id: str) -> Quote:
        try:
            return services.quotes.get_quote(quote_id)
        except ValueError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc

    @app.get("/health")
    def health() -> dict[str, str]:
        """Summary: Health check endpoint.

        Importance: Supports uptime checks in local deployments.
        Alternatives: Use a metrics endpoint only.
        """

        return {"status": "ok"}

    @app.get("/quotes", dependencies=[Depends(require_api_key)])
    def list_quotes(status: str | None = None) -> list[dict[str, Any]]:
        return [_quote_to_dict(quote) for quote in services.quotes.list_quotes(status=status)]

    @app.post("/quotes", dependencies=[Depends(require_api_key)])
    def create_quote(payload: QuoteCreateRequest) -> dict[str, Any]:
        """Summary: Create a draft quote.

        Importance: Numbering and expiry are derived server-side from configuration.
        Alternatives: Let clients send the number and expiry date.
        """

        client = ClientInfo(
            name=payload.client_name, company=payload.client_company, email=payload.client_email
        )
        items = [
            LineItem(
                description=item.description,
                quantity=item.quantity,
                unit_price=item.unit_price,
                tax_rate=item.tax_rate,
            )
            for item in payload.items
        ]
        quote = services.quotes.create_quote(
            client, items, issue_date=payload.issue_date, notes=payload.notes
        )
        return _quote_to_dict(quote)

    @app.get("/quotes/{quote_id}", dependencies=[Depends(require_api_key)])
    def get_quote(quote_id: str) -> dict[str, Any]:
        return _quote_to_dict(_load_quote(quote_id))

    @app.delete("/quotes/{quote_id}", dependencies=[Depends(require_api_key)])
    def delete_quote(quote_id: str) -> dict[str, str]:
        try:
            services.quotes.delete_quote(quote_id)
        except ValueError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        return {"status": "deleted"}

    @app.post("/quotes/{quote_id}/status", dependencies=[Depends(require_api_key)])
    def update_status(quote_id: str, payload: StatusUpdateRequest) -> dict[str, Any]:
        """Summary: Change a quote status.

        Importance: Illegal transitions return 409 only when strict checking is requested.
        Alternatives: Always reject transitions missing from the table.
        """

        _load_quote(quote_id)
        try:
            quote = services.quotes.change_status(quote_id, payload.status, strict=payload.strict)
        except TransitionError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return _quote_to_dict(quote)

    @app.post("/quotes/{quote_id}/payment", dependencies=[Depends(require_api_key)])
    def update_payment(quote_id: str, payload: PaymentRequest) -> dict[str, Any]:
        """Summary: Record a payment amount or set a payment status.

        Importance: Backs the payment tracker actions.
        Alternatives: Track payments in an external billing system.
        """

        _load_quote(quote_id)
        if payload.amount is None and payload.status is None:
            raise HTTPException(status_code=400, detail="Provide an amount or a status")
        try:
            if payload.status is None:
                quote = services.quotes.record_payment(quote_id, payload.amount)
            else:
                quote = services.quotes.update_payment(quote_id, payload.status, amount=payload.amount)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return _quote_to_dict(quote)

    @app.post("/automations/run", dependencies=[Depends(require_api_key)])
    def run_automations(payload: RunRequest | None = None) -> dict[str, Any]:
        """Summary: Run the gated daily automation pass.

        Importance: Lets the UI trigger the pass on load; repeated calls the same day are no-ops.
        Alternatives: Run the pass from a system scheduler.
        """

        result = services.automations.run_daily(today=payload.today if payload else None)
        return {
            "skipped": result.skipped,
            "entries": [asdict(entry) for entry in result.entries],
        }

    @app.get("/automations/log", dependencies=[Depends(require_api_key)])
    def list_log(status: str | None = None, limit: int = 50) -> list[dict[str, Any]]:
        try:
            entries = services.automations.list_log(status=status, limit=limit)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return [asdict(entry) for entry in entries]

    @app.delete("/automations/log", dependencies=[Depends(require_api_key)])
    def clear_log() -> dict[str, str]:
        services.automations.clear_log()
        return {"status": "cleared"}

    @app.get("/automations/rules", dependencies=[Depends(require_api_key)])
    def list_rules() -> list[dict[str, Any]]:
        return [asdict(rule) for rule in services.automations.list_rules()]

    @app.patch("/automations/rules/{rule_id}", dependencies=[Depends(require_api_key)])
    def update_rule(rule_id: str, payload: RuleUpdateRequest) -> dict[str, Any]:
        """Summary: Edit an automation rule.

        Importance: Supports toggling and tuning rules from the UI.
        Alternatives: Replace the entire catalog on each edit.
        """

        changes = payload.model_dump(exclude_none=True)
        if not changes:
            raise HTTPException(status_code=400, detail="No changes provided")
        if rule_id not in {rule.id for rule in services.automations.list_rules()}:
            raise HTTPException(status_code=404, detail=f"Unknown rule: {rule_id}")
        try:
            rule = services.automations.update_rule(rule_id, **changes)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return asdict(rule)

    @app.get("/reminders", dependencies=[Depends(require_api_key)])
    def list_reminders() -> list[dict[str, Any]]:
        return [asdict(reminder) for reminder in services.reminders.reminders()]

    @app.get("/stats/payments", dependencies=[Depends(require_api_key)])
    def payment_stats() -> dict[str, Any]:
        return {
            "payments": services.stats.payment_summary(),
            "statuses": services.stats.status_counts(),
        }

    return app
