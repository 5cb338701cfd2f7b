import os
from decimal import Decimal
from pathlib import Path

from dotenv import load_dotenv


_PACKAGE_DIR = Path(__file__).resolve().parent
_PROJECT_ROOT = _PACKAGE_DIR.parent

# Root .env is canonical; tabshare/.env remains a local override fallback.
load_dotenv(_PROJECT_ROOT / ".env")
load_dotenv(_PACKAGE_DIR / ".env")


def _first_non_empty_env(*names: str, default: str) -> str:
    """Returns the first non-empty env var value from `names`, else `default`."""
    for name in names:
        value = os.getenv(name)
        if value is not None and value != "":
            return value
    return default


def _parse_int_env(*names: str, default: int) -> int:
    """Parses the first non-empty env var in `names` as int, else returns `default`."""
    raw = _first_non_empty_env(*names, default=str(default))
    try:
        return int(raw)
    except (TypeError, ValueError):
        return default


def _parse_decimal_env(*names: str, default: str) -> Decimal:
    """Parses the first non-empty env var in `names` as Decimal, else `default`."""
    raw = _first_non_empty_env(*names, default=default)
    try:
        return Decimal(raw)
    except ArithmeticError:
        return Decimal(default)


class BaseConfig:

    SECRET_KEY: str = _first_non_empty_env(
        "SECRET_KEY",
        default="change-me-in-production",
    )

    SQLALCHEMY_TRACK_MODIFICATIONS: bool = False
    JSON_SORT_KEYS: bool = False

    LOG_LEVEL: str = _first_non_empty_env("LOG_LEVEL", default="INFO")

    # Row key under which the whole ledger snapshot is stored.
    LEDGER_SNAPSHOT_KEY: str = _first_non_empty_env("LEDGER_SNAPSHOT_KEY", default="ledger")

    # Accepted |sum(splits) - amount| for a recorded expense.
    LEDGER_SPLIT_TOLERANCE: Decimal = _parse_decimal_env(
        "LEDGER_SPLIT_TOLERANCE",
        default="0.10",
    )

    # The user acting through the API. There is no authentication layer;
    # the ledger runs on behalf of one local user.
    LEDGER_CURRENT_USER_ID: str = _first_non_empty_env(
        "LEDGER_CURRENT_USER_ID",
        default="u1",
    )

    LEDGER_REMINDER_OVERDUE_DAYS: int = _parse_int_env(
        "LEDGER_REMINDER_OVERDUE_DAYS",
        default=7,
    )


class DevelopmentConfig(BaseConfig):
    DEBUG:   bool = True
    TESTING: bool = False

    SQLALCHEMY_DATABASE_URI: str = _first_non_empty_env(
        "LEDGER_DATABASE_URL",
        default=f"sqlite:///{_PROJECT_ROOT / 'tabshare.db'}",
    )
    SQLALCHEMY_ECHO: bool = False
    LOG_LEVEL: str = _first_non_empty_env("LOG_LEVEL", default="DEBUG")


class TestingConfig(BaseConfig):

    DEBUG:   bool = True
    TESTING: bool = True

    # In-memory SQLite; every app instance gets its own empty snapshot table.
    SQLALCHEMY_DATABASE_URI: str = _first_non_empty_env(
        "TEST_LEDGER_DATABASE_URL",
        default="sqlite://",
    )
    SQLALCHEMY_ECHO: bool = False
    LOG_LEVEL: str = "WARNING"


class ProductionConfig(BaseConfig):

    DEBUG:   bool = False
    TESTING: bool = False
    SQLALCHEMY_ECHO: bool = False

    # Resolved at import time. Hosted Postgres providers hand out
    # 'postgres://' which SQLAlchemy 1.4+ rejects; normalise it.
    _raw_db_url: str = os.getenv("LEDGER_DATABASE_URL", "")
    SQLALCHEMY_DATABASE_URI: str = (
        _raw_db_url.replace("postgres://", "postgresql://", 1)
        if _raw_db_url.startswith("postgres://")
        else _raw_db_url
    )


def validate_production_config(app) -> None:
    """
    Fail-fast guard for production configuration.

    Called in the app factory right after
    app.config.from_object(ProductionConfig).

    Raises ValueError if any required production value is missing or insecure.
    """
    if not app.config.get("SQLALCHEMY_DATABASE_URI"):
        raise ValueError(
            "LEDGER_DATABASE_URL environment variable is required in production. "
            "Set it to the database that holds the ledger snapshot."
        )
    if app.config.get("SECRET_KEY") == "change-me-in-production":
        raise ValueError(
            "SECRET_KEY must be set to a strong random value in production. "
            "Do not use the default placeholder."
        )


# ── Config selector ────────────────────────────────────────────────────────
#
# Used by the app factory:
#   from tabshare.config import config_by_name
#   app.config.from_object(config_by_name[config_name])
# ──────────────────────────────────────────────────────────────────────────

config_by_name: dict[str, type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing":     TestingConfig,
    "production":  ProductionConfig,
}

# Resolves the active config name from TABSHARE_ENV (defaults to development).
ACTIVE_CONFIG_NAME: str = os.getenv("TABSHARE_ENV", "development")
