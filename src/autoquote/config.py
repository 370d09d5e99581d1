"""Summary: Application configuration for AutoQuote.

Importance: Centralizes environment, .env, and config defaults for consistent behavior.
Alternatives: Use a dedicated settings library like Pydantic Settings.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from dataclasses import dataclass

from autoquote.storage.sqlite_store import default_store_path


@dataclass(frozen=True)
class AppConfig:
    """Summary: Holds configuration values for storage, quoting and the HTTP surface.

    Importance: Ensures all services derive settings from a single source of truth.
    Alternatives: Store settings in a shared config file and parse at startup.
    """

    db_path: str
    company_name: str
    expiry_days: int
    quote_prefix: str
    log_cap: int
    currency_symbol: str
    api_host: str
    api_port: int
    api_key: str

    @staticmethod
    def from_env() -> "AppConfig":
        """Summary: Build configuration from defaults, .env, and environment.

        Importance: Keeps all variables defined in config defaults while allowing overrides.
        Alternatives: Parse only environment variables without a defaults file.
        """

        defaults = load_defaults(Path("config") / "defaults.json")
        load_dotenv(Path(".env"))
        return AppConfig(
            db_path=os.getenv("AUTOQUOTE_DB_PATH", defaults["db_path"]) or default_store_path(),
            company_name=os.getenv("AUTOQUOTE_COMPANY_NAME", defaults["company_name"]),
            expiry_days=int(os.getenv("AUTOQUOTE_EXPIRY_DAYS", defaults["expiry_days"])),
            quote_prefix=os.getenv("AUTOQUOTE_QUOTE_PREFIX", defaults["quote_prefix"]),
            log_cap=int(os.getenv("AUTOQUOTE_LOG_CAP", defaults["log_cap"])),
            currency_symbol=os.getenv("AUTOQUOTE_CURRENCY_SYMBOL", defaults["currency_symbol"]),
            api_host=os.getenv("AUTOQUOTE_API_HOST", defaults["api_host"]),
            api_port=int(os.getenv("AUTOQUOTE_API_PORT", defaults["api_port"])),
            api_key=os.getenv("AUTOQUOTE_API_KEY", defaults["api_key"]),
        )


def load_defaults(path: Path) -> dict[str, str]:
    """Summary: Load configuration defaults from JSON.

    Importance: Ensures all variables exist in a single config file.
    Alternatives: Inline defaults in the AppConfig initializer.
    """

    if not path.exists():
        raise FileNotFoundError(f"Defaults file not found: {path}")
    return json.loads(path.read_text(encoding="utf-8"))


def load_dotenv(path: Path) -> None:
    """Summary: Load key-value pairs from a .env file into the environment.

    Importance: Keeps local overrides out of code while supporting local workflows.
    Alternatives: Use python-dotenv or OS-specific secret stores.
    """

    if not path.exists():
        return
    for raw_line in path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        os.environ.setdefault(key.strip(), value.strip())
