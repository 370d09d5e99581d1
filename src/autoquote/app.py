"""Summary: Application wiring for AutoQuote.

Importance: Builds the store, engine and services from configuration in one place.
Alternatives: Instantiate dependencies separately in each entry point.
"""

from __future__ import annotations

from dataclasses import dataclass

from autoquote.config import AppConfig
from autoquote.engine import AutomationEngine
from autoquote.services import AutomationService, QuoteService, ReminderService, StatsService
from autoquote.storage.sqlite_store import SqliteStore


@dataclass(frozen=True)
class AppServices:
    """Summary: Bundle of core services for AutoQuote.

    Importance: Simplifies passing dependencies to CLI or API layers.
    Alternatives: Use a dependency injection container.
    """

    quotes: QuoteService
    automations: AutomationService
    reminders: ReminderService
    stats: StatsService
    store: SqliteStore


def build_services(config: AppConfig) -> AppServices:
    """Summary: Build core services from configuration.

    Importance: Provides a single construction path for the application.
    Alternatives: Instantiate services directly within the CLI entrypoint.
    """

    store = SqliteStore(config.db_path)
    store.initialize()
    engine = AutomationEngine(
        company_name=config.company_name, currency_symbol=config.currency_symbol
    )
    automations = AutomationService(store=store, engine=engine, log_cap=config.log_cap)
    quotes = QuoteService(
        store=store,
        expiry_days=config.expiry_days,
        quote_prefix=config.quote_prefix,
        automations=automations,
    )
    return AppServices(
        quotes=quotes,
        automations=automations,
        reminders=ReminderService(store=store),
        stats=StatsService(store=store),
        store=store,
    )
