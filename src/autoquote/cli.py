"""Summary: Command-line interface for AutoQuote.

Importance: Provides a local-first entry point for quoting and automation workflows.
Alternatives: Build a web UI or desktop client first.
"""

from __future__ import annotations

import argparse
import logging
from datetime import date

import uvicorn

from autoquote.api import create_app
from autoquote.app import AppServices, build_services
from autoquote.config import AppConfig
from autoquote.models import LOG_STATUSES, QUOTE_STATUSES, ClientInfo, LineItem


def parse_item(text: str) -> LineItem:
    """Summary: Parse a line item written as description:quantity:unit_price[:tax_rate].

    Importance: Lets quotes be created from the shell without a JSON payload.
    Alternatives: Read line items from a CSV file.
    """

    parts = text.rsplit(":", 3)
    if len(parts) < 3:
        raise argparse.ArgumentTypeError(f"Invalid item (expected desc:qty:price[:tax]): {text}")
    try:
        quantity = float(parts[1])
        unit_price = float(parts[2])
        tax_rate = float(parts[3]) if len(parts) == 4 else 0.0
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Invalid number in item: {text}") from exc
    return LineItem(description=parts[0], quantity=quantity, unit_price=unit_price, tax_rate=tax_rate)


def build_parser() -> argparse.ArgumentParser:
    """Summary: Build the CLI argument parser.

    Importance: Defines supported commands for local operation.
    Alternatives: Use a CLI framework like Typer or Click.
    """

    parser = argparse.ArgumentParser(description="AutoQuote CLI")
    subparsers = parser.add_subparsers(dest="command", required=True)

    create_quote = subparsers.add_parser("create-quote", help="Create a draft quote")
    create_quote.add_argument("client_name", type=str)
    create_quote.add_argument("--company", type=str, default="")
    create_quote.add_argument("--email", type=str, default="")
    create_quote.add_argument("--item", dest="items", action="append", type=parse_item, default=[])
    create_quote.add_argument("--date", type=date.fromisoformat, default=None)
    create_quote.add_argument("--notes", type=str, default="")

    list_quotes = subparsers.add_parser("list-quotes", help="List quotes")
    list_quotes.add_argument("--status", choices=QUOTE_STATUSES, default=None)

    set_status = subparsers.add_parser("set-status", help="Change a quote status")
    set_status.add_argument("quote_id", type=str)
    set_status.add_argument("status", choices=QUOTE_STATUSES)
    set_status.add_argument("--strict", action="store_true")

    record_payment = subparsers.add_parser("record-payment", help="Record a received amount")
    record_payment.add_argument("quote_id", type=str)
    record_payment.add_argument("amount", type=float)

    reset_payment = subparsers.add_parser("reset-payment", help="Mark a quote as unpaid")
    reset_payment.add_argument("quote_id", type=str)

    subparsers.add_parser("expire-sweep", help="Expire sent quotes past their expiry date")
    subparsers.add_parser("run-automations", help="Run the daily automation pass")

    list_log = subparsers.add_parser("list-log", help="Show the automation log")
    list_log.add_argument("--status", choices=LOG_STATUSES, default=None)
    list_log.add_argument("--limit", type=int, default=50)

    subparsers.add_parser("clear-log", help="Clear the automation log")
    subparsers.add_parser("list-rules", help="List automation rules")

    toggle_rule = subparsers.add_parser("toggle-rule", help="Enable or disable a rule")
    toggle_rule.add_argument("rule_id", type=str)

    set_delay = subparsers.add_parser("set-rule-delay", help="Change a rule delay in days")
    set_delay.add_argument("rule_id", type=str)
    set_delay.add_argument("days", type=int)

    subparsers.add_parser("reset-rules", help="Restore the default rule catalog")
    subparsers.add_parser("reminders", help="Show current reminders")
    subparsers.add_parser("stats", help="Show payment totals and status counts")
    subparsers.add_parser("serve", help="Run the HTTP API")

    return parser


def run_cli(argv: list[str] | None = None) -> None:
    """Summary: Execute CLI commands based on arguments.

    Importance: Drives the quoting workflow without a UI.
    Alternatives: Invoke services via the HTTP API.
    """

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    parser = build_parser()
    args = parser.parse_args(argv)
    config = AppConfig.from_env()

    if args.command == "serve":
        uvicorn.run(create_app(config), host=config.api_host, port=config.api_port)
        return

    services = build_services(config)
    try:
        _run_command(args, services)
    except ValueError as exc:
        # unknown ids, illegal strict transitions and bad amounts
        parser.error(str(exc))


def _run_command(args: argparse.Namespace, services: AppServices) -> None:
    if args.command == "create-quote":
        client = ClientInfo(name=args.client_name, company=args.company, email=args.email)
        quote = services.quotes.create_quote(client, args.items, issue_date=args.date, notes=args.notes)
        print(f"Created quote {quote.number} ({quote.id}), expires {quote.expiry_date}.")
        return

    if args.command == "list-quotes":
        for quote in services.quotes.list_quotes(status=args.status):
            payment = f" [{quote.effective_payment_status}]" if quote.status == "accepted" else ""
            print(
                f"{quote.id}: {quote.number} {quote.client_name} {quote.status}{payment} "
                f"{quote.total():.2f}"
            )
        return

    if args.command == "set-status":
        quote = services.quotes.change_status(args.quote_id, args.status, strict=args.strict)
        print(f"Quote {quote.number} is now {quote.status}.")
        return

    if args.command == "record-payment":
        quote = services.quotes.record_payment(args.quote_id, args.amount)
        print(f"Quote {quote.number} payment: {quote.payment_status} ({quote.paid_amount:.2f}).")
        return

    if args.command == "reset-payment":
        quote = services.quotes.update_payment(args.quote_id, "unpaid")
        print(f"Quote {quote.number} payment reset.")
        return

    if args.command == "expire-sweep":
        changed = services.quotes.expire_sweep()
        print(f"Expired {len(changed)} quotes.")
        return

    if args.command == "run-automations":
        result = services.automations.run_daily()
        if result.skipped:
            print("Automations already ran today.")
            return
        for entry in result.entries:
            print(f"[{entry.status}] {entry.rule_name}: {entry.action}")
        print(f"{len(result.entries)} new actions.")
        return

    if args.command == "list-log":
        for entry in services.automations.list_log(status=args.status, limit=args.limit):
            print(f"{entry.timestamp} [{entry.status}/{entry.channel}] {entry.rule_name}: {entry.action}")
        return

    if args.command == "clear-log":
        services.automations.clear_log()
        print("Automation log cleared.")
        return

    if args.command == "list-rules":
        for rule in services.automations.list_rules():
            state = "on" if rule.enabled else "off"
            print(
                f"{rule.id}: {rule.name} [{state}] trigger={rule.trigger} "
                f"delay={rule.delay_days} channel={rule.channel} runs={rule.run_count}"
            )
        return

    if args.command == "toggle-rule":
        rule = services.automations.toggle_rule(args.rule_id)
        print(f"{rule.name} {'enabled' if rule.enabled else 'disabled'}.")
        return

    if args.command == "set-rule-delay":
        rule = services.automations.update_rule(args.rule_id, delay_days=args.days)
        print(f"{rule.name} delay set to {rule.delay_days} days.")
        return

    if args.command == "reset-rules":
        rules = services.automations.reset_rules()
        print(f"Restored {len(rules)} default rules.")
        return

    if args.command == "reminders":
        reminders = services.reminders.reminders()
        if not reminders:
            print("No reminders.")
            return
        for reminder in reminders:
            print(f"{reminder.urgency}: {reminder.message}")
        return

    if args.command == "stats":
        for key, value in services.stats.payment_summary().items():
            print(f"{key}: {value:.2f}")
        for key, value in services.stats.status_counts().items():
            print(f"{key}: {value}")
        return


if __name__ == "__main__":
    run_cli()
