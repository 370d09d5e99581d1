"""Summary: SQLite storage implementation for AutoQuote.

Importance: Provides the local-first quote store, rule catalog, execution log and day-gate marker.
Alternatives: Use an ORM or a hosted database from day one.
"""

from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from datetime import date
from pathlib import Path
from typing import Iterator

from autoquote.models import AutomationLog, AutomationRule, ClientInfo, LineItem, Quote, RunState
from autoquote.rule_catalog import default_rules


LAST_RUN_KEY = "automation_last_run"


class SqliteStore:
    """Summary: SQLite-backed storage for AutoQuote.

    Importance: Fulfills every persistence seam the services need with minimal dependencies.
    Alternatives: Keep everything in JSON files next to the application.
    """

    def __init__(self, db_path: str) -> None:
        """Summary: Initialize the storage with a database path.

        Importance: Allows configurable database location per environment.
        Alternatives: Hardcode a default path in the class.
        """

        self._db_path = Path(db_path)

    def initialize(self) -> None:
        """Summary: Create tables if they do not exist.

        Importance: Ensures the database is ready before the first read.
        Alternatives: Run migrations using a dedicated migration tool.
        """

        with self._connection() as connection:
            cursor = connection.cursor()
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS quotes (
                    id TEXT PRIMARY KEY,
                    number TEXT NOT NULL,
                    date TEXT,
                    expiry_date TEXT,
                    client_name TEXT,
                    client_company TEXT,
                    client_email TEXT,
                    items TEXT,
                    status TEXT,
                    payment_status TEXT,
                    paid_amount REAL,
                    paid_date TEXT
                )
                """
            )
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS automation_rules (
                    id TEXT PRIMARY KEY,
                    position INTEGER NOT NULL,
                    name TEXT NOT NULL,
                    description TEXT,
                    trigger TEXT NOT NULL,
                    enabled INTEGER NOT NULL,
                    delay_days INTEGER NOT NULL,
                    channel TEXT NOT NULL,
                    target_audience TEXT NOT NULL,
                    email_template TEXT,
                    run_count INTEGER NOT NULL DEFAULT 0,
                    last_run TEXT
                )
                """
            )
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS automation_log (
                    seq INTEGER PRIMARY KEY AUTOINCREMENT,
                    id TEXT NOT NULL UNIQUE,
                    rule_id TEXT NOT NULL,
                    rule_name TEXT NOT NULL,
                    quote_id TEXT,
                    quote_number TEXT,
                    client_name TEXT,
                    action TEXT NOT NULL,
                    status TEXT NOT NULL,
                    channel TEXT NOT NULL,
                    timestamp TEXT NOT NULL,
                    message TEXT
                )
                """
            )
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS settings (
                    key TEXT PRIMARY KEY,
                    value TEXT
                )
                """
            )
            connection.commit()
        self._ensure_column("quotes", "notes", "TEXT")

    def load_all_quotes(self) -> list[Quote]:
        """Summary: Return every stored quote, oldest first.

        Importance: The engine and reminder deriver work on the full materialized list.
        Alternatives: Page through quotes lazily.
        """

        with self._connection() as connection:
            cursor = connection.cursor()
            cursor.execute(
                """
                SELECT id, number, date, expiry_date, client_name, client_company, client_email,
                       items, status, payment_status, paid_amount, paid_date, notes
                FROM quotes
                ORDER BY date, number
                """
            )
            rows = cursor.fetchall()
        return [_row_to_quote(row) for row in rows]

    def get_quote(self, quote_id: str) -> Quote | None:
        with self._connection() as connection:
            cursor = connection.cursor()
            cursor.execute(
                """
                SELECT id, number, date, expiry_date, client_name, client_company, client_email,
                       items, status, payment_status, paid_amount, paid_date, notes
                FROM quotes
                WHERE id = ?
                """,
                (quote_id,),
            )
            row = cursor.fetchone()
        return _row_to_quote(row) if row else None

    def upsert_quote(self, quote: Quote) -> None:
        """Summary: Insert or replace a quote by ID.

        Importance: Single write path for creation and every status change.
        Alternatives: Separate insert and update methods.
        """

        items = json.dumps(
            [
                {
                    "description": item.description,
                    "quantity": item.quantity,
                    "unit_price": item.unit_price,
                    "tax_rate": item.tax_rate,
                }
                for item in quote.items
            ]
        )
        with self._connection() as connection:
            cursor = connection.cursor()
            cursor.execute(
                """
                INSERT OR REPLACE INTO quotes (
                    id, number, date, expiry_date, client_name, client_company, client_email,
                    items, status, payment_status, paid_amount, paid_date, notes
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    quote.id,
                    quote.number,
                    _date_text(quote.date),
                    _date_text(quote.expiry_date),
                    quote.client.name,
                    quote.client.company,
                    quote.client.email,
                    items,
                    quote.status,
                    quote.payment_status,
                    quote.paid_amount,
                    _date_text(quote.paid_date),
                    quote.notes,
                ),
            )
            connection.commit()

    def delete_quote(self, quote_id: str) -> bool:
        with self._connection() as connection:
            cursor = connection.cursor()
            cursor.execute("DELETE FROM quotes WHERE id = ?", (quote_id,))
            deleted = cursor.rowcount > 0
            connection.commit()
        return deleted

    def load_rules(self) -> list[AutomationRule]:
        """Summary: Load the rule catalog in display order.

        Importance: Falls back to the default catalog when nothing has been saved.
        Alternatives: Seed default rules into the database on initialize.
        """

        with self._connection() as connection:
            cursor = connection.cursor()
            cursor.execute(
                """
                SELECT id, name, trigger, enabled, delay_days, channel, target_audience,
                       description, email_template, run_count, last_run
                FROM automation_rules
                ORDER BY position
                """
            )
            rows = cursor.fetchall()
        if not rows:
            return default_rules()
        return [
            AutomationRule(
                id=row[0],
                name=row[1],
                trigger=row[2],
                enabled=bool(row[3]),
                delay_days=int(row[4]),
                channel=row[5],
                target_audience=row[6],
                description=row[7] or "",
                email_template=row[8],
                run_count=int(row[9] or 0),
                last_run=row[10],
            )
            for row in rows
        ]

    def save_rules(self, rules: list[AutomationRule]) -> None:
        with self._connection() as connection:
            cursor = connection.cursor()
            cursor.execute("DELETE FROM automation_rules")
            cursor.executemany(
                """
                INSERT INTO automation_rules (
                    id, position, name, description, trigger, enabled, delay_days, channel,
                    target_audience, email_template, run_count, last_run
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        rule.id,
                        position,
                        rule.name,
                        rule.description,
                        rule.trigger,
                        int(rule.enabled),
                        rule.delay_days,
                        rule.channel,
                        rule.target_audience,
                        rule.email_template,
                        rule.run_count,
                        rule.last_run,
                    )
                    for position, rule in enumerate(rules)
                ],
            )
            connection.commit()

    def load_log(self) -> list[AutomationLog]:
        """Summary: Load the execution log in append order.

        Importance: Provides the dedup keys for the next automation pass.
        Alternatives: Query only keys for the current day.
        """

        with self._connection() as connection:
            cursor = connection.cursor()
            cursor.execute(
                """
                SELECT id, rule_id, rule_name, action, status, channel, timestamp,
                       quote_id, quote_number, client_name, message
                FROM automation_log
                ORDER BY seq
                """
            )
            rows = cursor.fetchall()
        return [AutomationLog(*row) for row in rows]

    def save_log(self, entries: list[AutomationLog]) -> None:
        """Summary: Replace the stored execution log with the given entries.

        Importance: Callers apply the size cap before saving, so order is preserved as given.
        Alternatives: Append new rows and prune old ones with a DELETE.
        """

        with self._connection() as connection:
            cursor = connection.cursor()
            cursor.execute("DELETE FROM automation_log")
            cursor.executemany(
                """
                INSERT INTO automation_log (
                    id, rule_id, rule_name, action, status, channel, timestamp,
                    quote_id, quote_number, client_name, message
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        entry.id,
                        entry.rule_id,
                        entry.rule_name,
                        entry.action,
                        entry.status,
                        entry.channel,
                        entry.timestamp,
                        entry.quote_id,
                        entry.quote_number,
                        entry.client_name,
                        entry.message,
                    )
                    for entry in entries
                ],
            )
            connection.commit()

    def get_last_run_date(self) -> date | None:
        with self._connection() as connection:
            cursor = connection.cursor()
            cursor.execute("SELECT value FROM settings WHERE key = ?", (LAST_RUN_KEY,))
            row = cursor.fetchone()
        return _parse_date(row[0]) if row else None

    def set_last_run_date(self, value: date) -> None:
        with self._connection() as connection:
            cursor = connection.cursor()
            cursor.execute(
                "INSERT OR REPLACE INTO settings (key, value) VALUES (?, ?)",
                (LAST_RUN_KEY, value.isoformat()),
            )
            connection.commit()

    def load_run_state(self) -> RunState:
        return RunState(last_run_date=self.get_last_run_date())

    def _ensure_column(self, table: str, column: str, column_type: str) -> None:
        """Summary: Ensure a column exists in a table.

        Importance: Provides lightweight migration support for databases created by older versions.
        Alternatives: Use a migration tool to manage schema changes.
        """

        with self._connection() as connection:
            cursor = connection.cursor()
            cursor.execute(f"PRAGMA table_info({table})")
            columns = {row[1] for row in cursor.fetchall()}
            if column in columns:
                return
            cursor.execute(f"ALTER TABLE {table} ADD COLUMN {column} {column_type}")
            connection.commit()

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        """Summary: Context manager for SQLite connections.

        Importance: Ensures connections are closed cleanly after use.
        Alternatives: Keep a single long-lived connection.
        """

        connection = sqlite3.connect(self._db_path)
        try:
            yield connection
        finally:
            connection.close()


def _date_text(value: date | None) -> str | None:
    return value.isoformat() if value else None


def _parse_date(value: str | None) -> date | None:
    if not value:
        return None
    return date.fromisoformat(value[:10])


def _row_to_quote(row: tuple) -> Quote:
    """Summary: Convert a quotes row into a Quote, defaulting missing fields.

    Importance: Legacy rows without a status are treated as drafts.
    Alternatives: Reject incomplete rows at read time.
    """

    items = [
        LineItem(
            description=item.get("description", ""),
            quantity=float(item.get("quantity", 0)),
            unit_price=float(item.get("unit_price", 0)),
            tax_rate=float(item.get("tax_rate", 0)),
        )
        for item in json.loads(row[7] or "[]")
    ]
    return Quote(
        id=row[0],
        number=row[1],
        date=_parse_date(row[2]),
        expiry_date=_parse_date(row[3]),
        client=ClientInfo(name=row[4] or "", company=row[5] or "", email=row[6] or ""),
        items=items,
        status=row[8] or "draft",
        payment_status=row[9],
        paid_amount=row[10],
        paid_date=_parse_date(row[11]),
        notes=row[12] or "",
    )


def default_store_path() -> str:
    """Summary: Provide the default database path.

    Importance: Centralizes the default storage location.
    Alternatives: Compute the path based on OS user directories.
    """

    return "autoquote.db"
