import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int, min_value: int | None = None) -> int:
    raw = os.getenv(name)
    if raw is None:
        value = default
    else:
        try:
            value = int(raw)
        except ValueError:
            value = default
    if min_value is not None:
        return max(min_value, value)
    return value


def _env_decimal(name: str, default: str) -> Decimal:
    raw = os.getenv(name)
    try:
        return Decimal(raw) if raw is not None else Decimal(default)
    except InvalidOperation:
        return Decimal(default)


@dataclass(frozen=True)
class Settings:
    app_name: str
    service_name: str
    database_url: str
    sql_echo: bool
    cors_origins: tuple[str, ...]
    log_level: str
    log_json: bool
    expiring_soon_days: int
    critical_stock_percent: Decimal


settings = Settings(
    app_name=os.getenv("APP_NAME", "Kitchen Ledger API"),
    service_name=os.getenv("SERVICE_NAME", "kitchen-ledger"),
    database_url=os.getenv("DATABASE_URL", "sqlite:///./kitchen_ledger.db"),
    sql_echo=_env_bool("SQL_ECHO", False),
    cors_origins=tuple(
        origin.strip().rstrip("/")
        for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")
        if origin.strip()
    ),
    log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    log_json=_env_bool("LOG_JSON", True),
    expiring_soon_days=_env_int("EXPIRING_SOON_DAYS", 7, min_value=1),
    critical_stock_percent=_env_decimal("CRITICAL_STOCK_PERCENT", "80"),
)
