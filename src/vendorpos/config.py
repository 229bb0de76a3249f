from __future__ import annotations

import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


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
class ApiConfig:
    base_url: str
    token: Optional[str] = None
    timeout_seconds: float = 15.0


@dataclass(frozen=True)
class BusinessConfig:
    vendor_id: str = ""
    business_name: str = "Vyora"
    currency_symbol: str = "₹"
    walk_in_label: str = "Walk-in Customer"
    default_service_duration_minutes: int = 30


@dataclass(frozen=True)
class AppConfig:
    name: str
    log_level: str
    log_format: str
    db: Optional[DbConfig]
    api: Optional[ApiConfig]
    business: BusinessConfig


def load_config(path: str | Path) -> AppConfig:
    p = Path(path)
    try:
        with p.open("rb") as f:
            data = tomllib.load(f)
    except FileNotFoundError as e:
        raise ConfigError(f"Config file not found: {p.resolve()}") from e
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigError(f"Failed to read config TOML: {e}") from e

    return parse_config(data)


def parse_config(data: dict) -> AppConfig:
    try:
        app = data.get("app", {})
        db = data.get("db")
        api = data.get("api")
        business = data.get("business", {})
        if db is None and api is None:
            raise ConfigError("Config needs a [db] or an [api] section.")

        log_format = str(app.get("log_format", "console"))
        if log_format not in ("console", "json"):
            raise ConfigError(f"Unknown log_format: {log_format}")

        duration = int(business.get("default_service_duration_minutes", 30))
        if duration <= 0:
            raise ConfigError("default_service_duration_minutes must be > 0")

        return AppConfig(
            name=str(app.get("name", "VendorPOS")),
            log_level=str(app.get("log_level", "INFO")).upper(),
            log_format=log_format,
            db=(
                DbConfig(
                    host=str(db["host"]),
                    port=int(db.get("port", 5432)),
                    name=str(db["name"]),
                    user=str(db["user"]),
                    password=str(db["password"]),
                    sslmode=str(db.get("sslmode", "disable")),
                )
                if db is not None
                else None
            ),
            api=(
                ApiConfig(
                    base_url=str(api["base_url"]).rstrip("/"),
                    token=(str(api["token"]) if api.get("token") else None),
                    timeout_seconds=float(api.get("timeout_seconds", 15.0)),
                )
                if api is not None
                else None
            ),
            business=BusinessConfig(
                vendor_id=str(business.get("vendor_id", "")),
                business_name=str(business.get("business_name", "Vyora")),
                currency_symbol=str(business.get("currency_symbol", "₹")),
                walk_in_label=str(business.get("walk_in_label", "Walk-in Customer")),
                default_service_duration_minutes=duration,
            ),
        )
    except ConfigError:
        raise
    except KeyError as e:
        raise ConfigError(f"Missing config key: {e}") from e
    except Exception as e:
        raise ConfigError(f"Invalid config values: {e}") from e
