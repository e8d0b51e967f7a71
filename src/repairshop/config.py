from __future__ import annotations

import logging
import tomllib
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from pathlib import Path


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class DbConfig:
    host: str
    port: int
    name: str
    user: str
    password: str
    sslmode: str = "disable"


@dataclass(frozen=True)
class BusinessConfig:
    default_review_cost: Decimal = Decimal("30.00")
    currency_symbol: str = "S/"


@dataclass(frozen=True)
class AppConfig:
    name: str
    log_level: str
    db: DbConfig
    business: BusinessConfig


def load_config(path: str | Path) -> AppConfig:
    p = Path(path)
    if not p.exists():
        raise ConfigError(f"Config file not found: {p.resolve()}")

    try:
        data = tomllib.loads(p.read_text(encoding="utf-8"))
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigError(f"Failed to read config TOML: {e}") from e

    app = data.get("app", {})
    log_level = str(app.get("log_level", "INFO")).upper()
    if log_level not in logging.getLevelNamesMapping():
        raise ConfigError(f"Unknown log_level: {log_level}")

    try:
        db = data["db"]
        business = data.get("business", {})
        return AppConfig(
            name=str(app.get("name", "RepairShop")),
            log_level=log_level,
            db=DbConfig(
                host=str(db["host"]),
                port=int(db.get("port", 5432)),
                name=str(db["name"]),
                user=str(db["user"]),
                password=str(db["password"]),
                sslmode=str(db.get("sslmode", "disable")),
            ),
            business=BusinessConfig(
                default_review_cost=Decimal(str(business.get("default_review_cost", "30.00"))),
                currency_symbol=str(business.get("currency_symbol", "S/")),
            ),
        )
    except KeyError as e:
        raise ConfigError(f"Missing config key: {e}") from e
    except (TypeError, ValueError, InvalidOperation) as e:
        raise ConfigError(f"Invalid config values: {e}") from e
